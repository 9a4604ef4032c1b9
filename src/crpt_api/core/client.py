"""
CrptApi: thread-safe client for the Chestny ZNAK document creation API.

Wires a PermitPool, a serializer and a transport into a Dispatcher and adds
batch submission on top.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from .dispatcher import Dispatcher, OutcomeStatus, SubmissionOutcome
from .errors import InvalidConfiguration
from .logger import create_error_tracker
from .permit_pool import PermitPool
from .serializer import JsonSerializer
from .transport import DEFAULT_USER_AGENT, RequestsTransport
from ..utils.time_units import TimeUnit
from ..utils.validators import validate_duration, validate_endpoint, validate_request_limit

DOCUMENT_CREATE_URI = "https://ismp.crpt.ru/api/v3/lk/documents/create"


@dataclass
class ApiConfig:
    time_unit: Union[TimeUnit, str] = TimeUnit.SECONDS
    duration: float = 1.0
    request_limit: int = 10
    endpoint: str = DOCUMENT_CREATE_URI
    timeout: Optional[float] = 30.0
    max_workers: int = 4
    user_agent: str = DEFAULT_USER_AGENT

    def validate(self) -> "ApiConfig":
        """
        Check every field and normalize ``time_unit`` and ``endpoint``.

        Raises:
            InvalidConfiguration: on the first invalid field
        """
        try:
            self.time_unit = TimeUnit.parse(self.time_unit)
        except ValueError as e:
            raise InvalidConfiguration(str(e)) from e
        for ok, err in (validate_duration(self.duration), validate_request_limit(self.request_limit)):
            if not ok:
                raise InvalidConfiguration(err)
        ok, endpoint, err = validate_endpoint(self.endpoint)
        if not ok:
            raise InvalidConfiguration(f"Invalid endpoint {self.endpoint!r}: {err}")
        self.endpoint = endpoint
        # None means no HTTP timeout, as in requests
        if self.timeout is not None:
            ok, _ = validate_duration(self.timeout)
            if not ok:
                raise InvalidConfiguration(f"Timeout must be a positive number or None, got {self.timeout!r}")
        if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int) or self.max_workers < 1:
            raise InvalidConfiguration(f"max_workers must be at least 1, got {self.max_workers!r}")
        return self


class CrptApi:
    """
    Client that sends documents while keeping to ``request_limit`` calls per
    ``duration`` ``time_unit``. Safe to call from many threads at once.
    """

    def __init__(self,
                 time_unit: Union[TimeUnit, str],
                 duration: float,
                 request_limit: int,
                 endpoint: str = DOCUMENT_CREATE_URI,
                 transport=None,
                 serializer=None,
                 timeout: Optional[float] = 30.0,
                 max_workers: int = 4,
                 logger: Optional[logging.Logger] = None):
        """
        Args:
            time_unit: unit of ``duration``
            duration: length of one throttling window
            request_limit: maximum requests per window
            endpoint: URI documents are posted to
            transport: replaces the default RequestsTransport
            serializer: replaces the default JsonSerializer
            timeout: HTTP timeout for the default transport, None to wait forever
            max_workers: thread count for ``send_documents``

        Raises:
            InvalidConfiguration: if the limit, window or endpoint is invalid
        """
        self.config = ApiConfig(time_unit=time_unit, duration=duration, request_limit=request_limit,
                                endpoint=endpoint, timeout=timeout, max_workers=max_workers).validate()
        self.logger = logger or logging.getLogger(__name__)
        self.pool = PermitPool(self.config.request_limit, self.config.duration, self.config.time_unit)
        self.transport = transport or RequestsTransport(timeout=self.config.timeout)
        self._owns_transport = transport is None
        self.serializer = serializer or JsonSerializer()
        self.error_tracker = create_error_tracker('client')
        self.dispatcher = Dispatcher(self.pool, self.serializer, self.transport, self.config.endpoint,
                                     error_tracker=self.error_tracker)
        self._batch_events = set()
        self._batch_lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._stats = {s.value: 0 for s in OutcomeStatus}

    @classmethod
    def from_config(cls, config: ApiConfig, transport=None, serializer=None) -> "CrptApi":
        client = cls(config.time_unit, config.duration, config.request_limit, endpoint=config.endpoint,
                     transport=transport, serializer=serializer, timeout=config.timeout,
                     max_workers=config.max_workers)
        if transport is None and config.user_agent != DEFAULT_USER_AGENT:
            client.transport.session.headers['User-Agent'] = config.user_agent
        return client

    def send_document(self, document: Any, signature: str,
                      cancel_event: Optional[threading.Event] = None,
                      timeout: Optional[float] = None) -> SubmissionOutcome:
        """
        Send one document, blocking while the current window is exhausted.

        Args:
            document: Document to create
            signature: document signature, sent as the ``Signature`` header
            cancel_event: set it to give up waiting for a free slot
            timeout: maximum seconds to wait for a free slot
        """
        outcome = self.dispatcher.submit(document, signature, cancel_event=cancel_event, timeout=timeout)
        self._record(outcome)
        return outcome

    create_document = send_document

    def send_raw(self, json_payload: Union[str, bytes], signature: str,
                 cancel_event: Optional[threading.Event] = None,
                 timeout: Optional[float] = None) -> SubmissionOutcome:
        """Send a document that is already encoded as JSON."""
        outcome = self.dispatcher.submit_payload(json_payload, signature, cancel_event=cancel_event, timeout=timeout)
        self._record(outcome)
        return outcome

    def send_documents(self,
                       items: Iterable[Tuple[Any, str]],
                       max_workers: Optional[int] = None,
                       progress: Optional[Callable[[Dict[str, Any]], None]] = None) -> List[SubmissionOutcome]:
        """
        Send many (document, signature) pairs from a thread pool.

        The permit pool still applies, so the workers simply queue on it.
        ``stop()`` cancels items that are still waiting.

        Returns:
            Outcomes in the same order as ``items``
        """
        items = list(items)
        workers = max(1, min(max_workers or self.config.max_workers, len(items) or 1))
        results: List[Optional[SubmissionOutcome]] = [None] * len(items)

        self.logger.info(f"Sending batch of {len(items)} document(s) with {workers} worker(s)")
        if progress:
            progress({"type": "batch", "total": len(items)})

        stop_event = threading.Event()
        with self._batch_lock:
            self._batch_events.add(stop_event)

        def send_one(idx: int, document: Any, signature: str) -> SubmissionOutcome:
            if progress:
                progress({"type": "document", "index": idx, "stage": "waiting"})
            return self.send_document(document, signature, cancel_event=stop_event)

        try:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="crpt-send") as ex:
                futures = {ex.submit(send_one, idx, doc, sig): idx for idx, (doc, sig) in enumerate(items)}
                for fut in as_completed(futures):
                    idx = futures[fut]
                    outcome = fut.result()
                    results[idx] = outcome
                    if progress:
                        progress({"type": "document", "index": idx, "stage": outcome.status.value,
                                  "status_code": outcome.status_code})
        finally:
            with self._batch_lock:
                self._batch_events.discard(stop_event)

        succeeded = sum(1 for r in results if r is not None and r.ok)
        self.logger.info(f"Batch complete: {succeeded} succeeded, {len(items) - succeeded} not accepted")
        if progress:
            progress({"type": "counters", "stats": self.get_stats()})
        return results

    def stop(self):
        """
        Cancel items of the batches currently running that have not been sent
        yet. Batches started afterwards run normally.
        """
        with self._batch_lock:
            for event in self._batch_events:
                event.set()

    def get_error_summary(self) -> Dict[str, Any]:
        return self.error_tracker.get_error_summary()

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            counters = dict(self._stats)
        return {
            'endpoint': self.config.endpoint,
            'request_limit': self.config.request_limit,
            'window': f"{self.config.duration} {self.config.time_unit.name.lower()}",
            'available_permits': self.pool.available,
            'submitted': sum(counters.values()),
            **counters,
        }

    def _record(self, outcome: SubmissionOutcome):
        with self._stats_lock:
            self._stats[outcome.status.value] += 1

    def close(self):
        """Stop the reset schedule and close the HTTP session."""
        self.stop()
        self.pool.close()
        if self._owns_transport:
            self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
