"""
Submission dispatcher.

Runs one submission through the fixed sequence: take a permit, encode the
document, POST it, read the status code. Each failure is turned into a
SubmissionOutcome instead of propagating, and nothing is retried.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from .errors import Cancelled, CrptApiError, RemoteRejection, SerializationError, TransportError
from .logger import ErrorTracker
from .permit_pool import PermitPool


class OutcomeStatus(Enum):
    SUCCESS = "success"
    CANCELLED = "cancelled"
    SERIALIZATION_ERROR = "serialization_error"
    TRANSPORT_ERROR = "transport_error"
    REMOTE_REJECTION = "remote_rejection"


@dataclass
class SubmissionOutcome:
    status: OutcomeStatus
    status_code: Optional[int] = None
    error: Optional[CrptApiError] = None
    body: Optional[str] = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    @property
    def attempted(self) -> bool:
        """False when the submission never got a permit."""
        return self.status is not OutcomeStatus.CANCELLED

    def raise_for_status(self):
        """Raise the error behind a failed outcome; no-op on success."""
        if self.error is not None:
            raise self.error


class Dispatcher:
    """
    Sends documents to a single endpoint, gated by a PermitPool.

    The pool lock is only held while a permit is taken; encoding and the
    HTTP call run outside it.
    """

    def __init__(self, pool: PermitPool, serializer, transport, endpoint: str,
                 error_tracker: Optional[ErrorTracker] = None):
        """
        Args:
            pool: permit pool shared by every caller of this dispatcher
            serializer: object with ``encode(document) -> bytes``
            transport: object with ``send(method, uri, headers, body)``
            endpoint: URI documents are POSTed to
            error_tracker: optional tracker receiving every failure
        """
        self.pool = pool
        self.serializer = serializer
        self.transport = transport
        self.endpoint = endpoint
        self.error_tracker = error_tracker
        self.logger = logging.getLogger(__name__)

    def submit(self, document: Any, signature: str,
               cancel_event: Optional[threading.Event] = None,
               timeout: Optional[float] = None) -> SubmissionOutcome:
        """
        Submit one document.

        Args:
            document: Document (or wire-shaped mapping) to send
            signature: value of the ``Signature`` header
            cancel_event: set it to abandon the wait for a permit
            timeout: maximum seconds to wait for a permit

        Returns:
            SubmissionOutcome describing what happened
        """
        started = time.monotonic()
        outcome = self._acquire(cancel_event, timeout, started)
        if outcome is not None:
            return outcome

        # The permit stays spent even if encoding fails
        try:
            payload = self.serializer.encode(document)
        except SerializationError as e:
            self._track(e, "serialize")
            return SubmissionOutcome(OutcomeStatus.SERIALIZATION_ERROR, error=e,
                                     elapsed=time.monotonic() - started)

        return self._send(payload, signature, started)

    def submit_payload(self, payload: Union[bytes, str], signature: str,
                       cancel_event: Optional[threading.Event] = None,
                       timeout: Optional[float] = None) -> SubmissionOutcome:
        """Submit an already-encoded JSON document under the same limit."""
        started = time.monotonic()
        outcome = self._acquire(cancel_event, timeout, started)
        if outcome is not None:
            return outcome
        if isinstance(payload, str):
            payload = payload.encode('utf-8')
        return self._send(payload, signature, started)

    def build_headers(self, signature: str) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'Signature': signature,
        }

    def _acquire(self, cancel_event, timeout, started) -> Optional[SubmissionOutcome]:
        try:
            self.pool.acquire(cancel_event=cancel_event, timeout=timeout)
        except Cancelled as e:
            if self.error_tracker:
                self.error_tracker.log_warning(f"Submission abandoned before sending: {e}",
                                               context="acquire", endpoint=self.endpoint)
            else:
                self.logger.warning(f"Submission abandoned before sending: {e}")
            return SubmissionOutcome(OutcomeStatus.CANCELLED, error=e, elapsed=time.monotonic() - started)
        self.logger.info("Permit granted, sending request to API")
        return None

    def _send(self, payload: bytes, signature: str, started: float) -> SubmissionOutcome:
        try:
            response = self.transport.send('POST', self.endpoint, self.build_headers(signature), payload)
        except TransportError as e:
            self._track(e, "send")
            return SubmissionOutcome(OutcomeStatus.TRANSPORT_ERROR, error=e,
                                     elapsed=time.monotonic() - started)

        elapsed = time.monotonic() - started
        if response.status_code == 200:
            self.logger.info(f"API accepted the document in {elapsed:.2f}s")
            return SubmissionOutcome(OutcomeStatus.SUCCESS, status_code=200, body=response.body, elapsed=elapsed)

        rejection = RemoteRejection(response.status_code, response.body)
        self._track(rejection, "response", {'status_code': response.status_code})
        return SubmissionOutcome(OutcomeStatus.REMOTE_REJECTION, status_code=response.status_code,
                                 error=rejection, body=response.body, elapsed=elapsed)

    def _track(self, error: CrptApiError, context: str, info: Optional[Dict[str, Any]] = None):
        if self.error_tracker:
            self.error_tracker.log_error(error, context=context, endpoint=self.endpoint, additional_info=info)
        else:
            self.logger.warning(f"Request not completed ({context}): {error}")
