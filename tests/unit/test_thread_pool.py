"""
Unit tests for the worker pool.
"""

import threading
import time

import pytest

from streamhttp.core.thread_pool import ThreadPool


def wait_for(predicate, timeout: float = 5.0) -> bool:
    """Poll `predicate` until it is true or `timeout` passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class TestThreadPool:
    """Tests for ThreadPool."""

    def test_runs_tasks(self):
        pool = ThreadPool(min_workers=2, max_workers=2)
        pool.start()
        done = threading.Event()
        results = []

        def task(value):
            results.append(value)
            done.set()

        try:
            pool.submit(task, 42)
            assert done.wait(timeout=5)
        finally:
            pool.shutdown()

        assert results == [42]

    def test_failing_task_keeps_worker_alive(self):
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        done = threading.Event()

        def boom():
            raise RuntimeError("boom")

        try:
            pool.submit(boom)
            assert wait_for(lambda: pool.stats["failed"] == 1 and pool.stats["idle"] == 1)

            pool.submit(done.set)
            assert done.wait(timeout=5)
            assert pool.stats["overflow"] == 0
        finally:
            pool.shutdown()

    def test_second_task_gets_new_worker_immediately(self):
        """Test a task submitted right after another never waits behind it."""
        for _ in range(20):
            pool = ThreadPool(min_workers=1, max_workers=4)
            pool.start()
            gate = threading.Event()
            second = threading.Event()

            try:
                pool.submit(gate.wait, 5)
                pool.submit(second.set)
                assert second.wait(timeout=2)
                assert pool.worker_count == 2
            finally:
                gate.set()
                pool.shutdown()

    def test_idle_worker_is_reused(self):
        pool = ThreadPool(min_workers=1, max_workers=4)
        pool.start()
        done = threading.Event()

        try:
            pool.submit(lambda: None)
            assert wait_for(lambda: pool.stats["completed"] == 1 and pool.stats["idle"] == 1)

            pool.submit(done.set)
            assert done.wait(timeout=5)
            assert pool.worker_count == 1
        finally:
            pool.shutdown()

    def test_overflow_when_every_worker_is_stuck(self):
        """Test tasks beyond max_workers still run without waiting."""
        pool = ThreadPool(min_workers=1, max_workers=2)
        pool.start()
        gate = threading.Event()
        extra = threading.Event()

        try:
            pool.submit(gate.wait, 5)
            pool.submit(gate.wait, 5)
            pool.submit(extra.set)

            assert extra.wait(timeout=2)
            assert pool.worker_count == 2
            assert pool.stats["overflow"] == 1
        finally:
            gate.set()
            pool.shutdown()

    def test_shutdown_waits_for_overflow(self):
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        finished = []

        def slow(tag):
            time.sleep(0.2)
            finished.append(tag)

        pool.submit(slow, "worker")
        pool.submit(slow, "overflow")
        pool.shutdown(wait=True, timeout=5)

        assert sorted(finished) == ["overflow", "worker"]

    def test_stats_count_outcomes(self):
        pool = ThreadPool(min_workers=2, max_workers=2)
        pool.start()

        def boom():
            raise ValueError("bad")

        try:
            pool.submit(lambda: None)
            pool.submit(boom)
            assert wait_for(lambda: pool.stats["idle"] == 2)
            stats = pool.stats
        finally:
            pool.shutdown()

        assert stats["completed"] == 1
        assert stats["failed"] == 1
        assert stats["workers"] == 2

    def test_submit_requires_start(self):
        with pytest.raises(RuntimeError):
            ThreadPool(min_workers=1, max_workers=1).submit(print)

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            ThreadPool(min_workers=3, max_workers=2)
