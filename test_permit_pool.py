#!/usr/bin/env python3
"""
Permit pool tests: capacity, blocking, window resets and cancellation.
"""

import sys
import threading
import time
from pathlib import Path

import pytest

# Add the src directory to the path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from crpt_api.core.errors import Cancelled, InvalidConfiguration
from crpt_api.core.permit_pool import PermitPool
from crpt_api.utils.time_units import TimeUnit


def _acquire_in_thread(pool, done, errors, **kwargs):
    def worker():
        try:
            pool.acquire(**kwargs)
            done.append(time.monotonic())
        except Cancelled as e:
            errors.append(e)
    t = threading.Thread(target=worker, daemon=True)
    t.start()
    return t


def test_rejects_non_positive_capacity():
    for capacity in (0, -5):
        with pytest.raises(InvalidConfiguration):
            PermitPool(capacity, 1, TimeUnit.SECONDS)


def test_rejects_bad_interval_and_unit():
    with pytest.raises(InvalidConfiguration):
        PermitPool(1, 0)
    with pytest.raises(InvalidConfiguration):
        PermitPool(1, 1, "fortnights")


def test_string_unit_is_accepted():
    with PermitPool(1, 2, "minutes", autostart=False) as pool:
        assert pool.schedule.unit is TimeUnit.MINUTES
        assert pool.schedule.period == 120.0


def test_starts_full():
    with PermitPool(3, 60) as pool:
        assert pool.capacity == 3
        assert pool.available == 3


def test_excess_callers_block_until_reset():
    with PermitPool(3, 60) as pool:
        done, errors = [], []
        threads = [_acquire_in_thread(pool, done, errors) for _ in range(5)]
        time.sleep(0.3)
        assert len(done) == 3
        assert pool.available == 0

        pool._reset()
        for t in threads:
            t.join(2)
        assert len(done) == 5
        assert not errors
        # 3 permits restored, 2 taken by the waiters
        assert pool.available == 1


def test_never_more_than_capacity_per_window():
    with PermitPool(4, 60) as pool:
        done, errors = [], []
        threads = [_acquire_in_thread(pool, done, errors) for _ in range(20)]
        time.sleep(0.3)
        assert len(done) == 4
        for expected in (8, 12):
            pool._reset()
            time.sleep(0.3)
            assert len(done) == expected
        pool.close()
        for t in threads:
            t.join(2)
        assert len(done) == 12
        assert len(errors) == 8


def test_schedule_refills_after_interval():
    with PermitPool(2, 200, TimeUnit.MILLISECONDS) as pool:
        pool.acquire()
        pool.acquire()
        assert pool.available == 0
        time.sleep(0.5)
        assert pool.available == 2
        assert pool.schedule.ticks >= 1


def test_first_reset_waits_one_full_interval():
    with PermitPool(1, 400, TimeUnit.MILLISECONDS) as pool:
        pool.acquire()
        time.sleep(0.1)
        assert pool.available == 0
        assert pool.schedule.ticks == 0


def test_second_caller_waits_for_first_tick():
    with PermitPool(1, 300, TimeUnit.MILLISECONDS) as pool:
        start = time.monotonic()
        pool.acquire()
        assert time.monotonic() - start < 0.1

        done, errors = [], []
        t = _acquire_in_thread(pool, done, errors)
        time.sleep(0.1)
        assert not done
        t.join(2)
        assert len(done) == 1
        assert done[0] - start >= 0.25


def test_back_to_back_resets_are_idempotent():
    with PermitPool(5, 60) as pool:
        pool._reset()
        pool._reset()
        assert pool.available == 5
        pool.acquire()
        pool._reset()
        pool._reset()
        assert pool.available == 5


def test_cancel_releases_waiter_without_consuming():
    with PermitPool(1, 60) as pool:
        pool.acquire()
        cancel = threading.Event()
        done, errors = [], []
        t = _acquire_in_thread(pool, done, errors, cancel_event=cancel)
        time.sleep(0.2)
        assert t.is_alive()

        cancel.set()
        t.join(1)
        assert not t.is_alive()
        assert not done
        assert len(errors) == 1

        pool._reset()
        assert pool.available == 1


def test_cancelled_before_waiting_takes_nothing():
    with PermitPool(2, 60) as pool:
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(Cancelled):
            pool.acquire(cancel_event=cancel)
        assert pool.available == 2


def test_acquire_timeout():
    with PermitPool(1, 60) as pool:
        pool.acquire()
        start = time.monotonic()
        with pytest.raises(Cancelled):
            pool.acquire(timeout=0.2)
        assert 0.15 <= time.monotonic() - start < 1.0
        assert pool.available == 0


def test_close_releases_waiters_and_stops_schedule():
    pool = PermitPool(1, 60)
    pool.acquire()
    done, errors = [], []
    t = _acquire_in_thread(pool, done, errors)
    time.sleep(0.1)
    pool.close()
    t.join(1)
    assert len(errors) == 1
    assert not pool.schedule.running
    with pytest.raises(Cancelled):
        pool.acquire()
    # closing twice is harmless
    pool.close()


def test_try_acquire():
    with PermitPool(1, 60) as pool:
        assert pool.try_acquire()
        assert not pool.try_acquire()


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
