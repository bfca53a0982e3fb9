"""
Unit tests for the worker thread pool.
"""

import queue
import threading
import time

import pytest

from staticserver.core.thread_pool import ThreadPool


@pytest.fixture
def pool():
    pool = ThreadPool(min_workers=1, max_workers=1, queue_size=10, idle_timeout=0.1)
    pool.start()
    yield pool
    pool.shutdown(wait=False)


def wait_for(condition, timeout=5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.02)
    return condition()


def test_runs_submitted_task(pool):
    done = threading.Event()
    results = []

    def task(value, scale=1):
        results.append(value * scale)
        done.set()

    assert pool.submit(task, args=(21,), kwargs={"scale": 2}) is True
    assert done.wait(timeout=5.0)
    assert results == [42]


def test_blocked_jobs_do_not_hold_up_others(pool):
    """Test that every job gets a thread, whatever max_workers says."""
    release = threading.Event()
    done = threading.Event()
    try:
        for _ in range(5):
            pool.submit(release.wait, args=(5.0,))
        pool.submit(done.set)

        assert done.wait(timeout=2.0)
        assert pool.stats["workers"]["total"] >= 5
    finally:
        release.set()


def test_workers_start_only_when_none_idle():
    pool = ThreadPool(min_workers=2, max_workers=2, queue_size=10, idle_timeout=0.1)
    pool.start()
    release = threading.Event()
    try:
        pool.submit(release.wait, args=(5.0,))
        pool.submit(release.wait, args=(5.0,))
        assert pool.stats["workers"]["total"] == 2

        pool.submit(release.wait, args=(5.0,))
        assert pool.stats["workers"]["total"] == 3
    finally:
        release.set()
        pool.shutdown(wait=True, timeout=5.0)


def test_extra_workers_leave_after_load():
    pool = ThreadPool(min_workers=1, max_workers=2, queue_size=10, idle_timeout=0.1)
    pool.start()
    release = threading.Event()
    try:
        for _ in range(4):
            pool.submit(release.wait, args=(5.0,))
        assert pool.stats["workers"]["total"] == 4

        release.set()

        # Above max_workers: gone once their job ends. Above min_workers:
        # gone after idle_timeout.
        assert wait_for(lambda: pool.stats["workers"]["total"] == 1)
        assert pool.stats["workers"]["idle"] == 1
    finally:
        release.set()
        pool.shutdown(wait=True, timeout=5.0)


def test_full_queue_rejects_without_blocking(pool):
    # Swap in a queue no worker reads, already full
    pool._jobs = queue.Queue(maxsize=1)
    pool._jobs.put(lambda: None)

    assert pool.submit(lambda: None, block=False) is False
    assert pool.stats["workers"]["idle"] == 1


def test_failing_task_keeps_worker_alive(pool):
    done = threading.Event()

    def explode():
        raise ValueError("task failure")

    pool.submit(explode)
    assert wait_for(lambda: pool.stats["jobs"]["failed"] == 1)

    pool.submit(done.set)
    assert done.wait(timeout=5.0)


def test_submit_before_start():
    with pytest.raises(RuntimeError):
        ThreadPool().submit(lambda: None)


def test_submit_after_shutdown():
    pool = ThreadPool(min_workers=1, max_workers=1, idle_timeout=0.1)
    pool.start()
    pool.shutdown(wait=True, timeout=1.0)

    with pytest.raises(RuntimeError):
        pool.submit(lambda: None)


def test_shutdown_waits_for_queued_tasks():
    pool = ThreadPool(min_workers=1, max_workers=1, queue_size=10, idle_timeout=0.1)
    pool.start()
    finished = []
    lock = threading.Lock()

    def record(i):
        with lock:
            finished.append(i)

    for i in range(5):
        pool.submit(record, args=(i,))

    pool.shutdown(wait=True, timeout=5.0)

    assert sorted(finished) == [0, 1, 2, 3, 4]
