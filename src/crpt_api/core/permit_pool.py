"""
Fixed-window permit pool.

A pool holds ``capacity`` permits. Every outbound request takes one; a
background schedule tops the pool back up to full capacity once per window,
independent of when the permits were spent.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, Union

from .errors import Cancelled, InvalidConfiguration
from ..utils.time_units import TimeUnit
from ..utils.validators import validate_duration, validate_request_limit

logger = logging.getLogger(__name__)

# Upper bound on how long a waiter sleeps before re-checking its cancel token
WAIT_SLICE_SECS = 0.05


class ResetSchedule:
    """
    Fixed-rate timer thread: tick k fires at ``start + k * interval``.

    A late tick does not push the following ones back, so the window stays
    aligned to the moment the schedule was started.
    """

    def __init__(self, interval: float, unit: TimeUnit, action: Callable[[], None], name: str = "permit-reset"):
        self.interval = interval
        self.unit = unit
        self.period = unit.to_seconds(interval)
        self._action = action
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self.ticks = 0

    def start(self):
        self._thread.start()

    def stop(self, timeout: Optional[float] = None):
        self._stop_event.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._stop_event.is_set()

    def _run(self):
        started = time.monotonic()
        next_tick = 1
        while True:
            delay = started + next_tick * self.period - time.monotonic()
            if self._stop_event.wait(max(delay, 0)):
                break
            try:
                self._action()
            except Exception:
                logger.exception("Permit reset failed")
            self.ticks += 1
            next_tick += 1
            # Skip ticks that were missed entirely (e.g. the process was suspended)
            behind = int((time.monotonic() - started) / self.period)
            if behind >= next_tick:
                next_tick = behind + 1


class PermitPool:
    """
    Counting pool of request permits refilled on a fixed schedule.

    All reads and writes of the counter happen under one condition variable,
    shared by ``acquire`` and the reset thread.
    """

    def __init__(self,
                 capacity: int,
                 interval: float,
                 unit: Union[TimeUnit, str] = TimeUnit.SECONDS,
                 autostart: bool = True):
        """
        Args:
            capacity: permits available per window, must be positive
            interval: window length, expressed in ``unit``
            unit: time unit of ``interval``
            autostart: start the reset schedule immediately

        Raises:
            InvalidConfiguration: on a non-positive capacity or interval
        """
        ok, err = validate_request_limit(capacity)
        if not ok:
            raise InvalidConfiguration(err)
        ok, err = validate_duration(interval)
        if not ok:
            raise InvalidConfiguration(err)
        try:
            unit = TimeUnit.parse(unit)
        except ValueError as e:
            raise InvalidConfiguration(str(e)) from e

        self._capacity = capacity
        self._available = capacity
        self._cond = threading.Condition(threading.Lock())
        self._closed = False
        self.schedule = ResetSchedule(interval, unit, self._reset)
        if autostart:
            self.schedule.start()
        logger.debug(f"Permit pool created: {capacity} permits per {interval} {unit.name.lower()}")

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def available(self) -> int:
        """Snapshot of the permits left in the current window."""
        with self._cond:
            return self._available

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def acquire(self, cancel_event: Optional[threading.Event] = None, timeout: Optional[float] = None):
        """
        Take one permit, blocking until one is available.

        Args:
            cancel_event: set it from another thread to abandon the wait
            timeout: give up after this many seconds

        Raises:
            Cancelled: if the wait was cancelled, timed out or the pool was
                closed; no permit is consumed in that case
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while True:
                if self._closed:
                    raise Cancelled("Permit pool is closed")
                if cancel_event is not None and cancel_event.is_set():
                    raise Cancelled("Permit wait cancelled")
                if self._available > 0:
                    self._available -= 1
                    return
                wait = WAIT_SLICE_SECS
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise Cancelled(f"No permit available within {timeout}s")
                    wait = min(wait, remaining)
                self._cond.wait(wait)

    def try_acquire(self) -> bool:
        """Take a permit only if one is free right now."""
        with self._cond:
            if self._closed or self._available <= 0:
                return False
            self._available -= 1
            return True

    def _reset(self):
        with self._cond:
            consumed = self._capacity - self._available
            if consumed > 0:
                self._available += consumed
                self._cond.notify_all()
        if consumed > 0:
            logger.debug(f"Window reset: restored {consumed} permit(s)")

    def close(self):
        """Stop the reset schedule and release every waiter with Cancelled."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            self._cond.notify_all()
        self.schedule.stop()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
