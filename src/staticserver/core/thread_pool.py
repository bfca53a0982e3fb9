"""
=============================================================================
CONNECTION WORKER POOL
=============================================================================

Worker threads draining one job queue. The server submits one job per
accepted connection; whatever a job does, it does to its own connection
only.

=============================================================================
ONE WORKER PER JOB
=============================================================================

A job never waits behind another job. submit() hands it to an idle
worker if there is one and starts a new thread if there is not, so ten
clients that connect and say nothing hold ten threads, and the eleventh
client is served at once.

    accept loop                 queue                     workers
    ───────────                 ─────                     ───────
    submit(job)   ──►   idle worker reserved?   ──►   yes: it takes the job
                                 │
                                 └── no: start a thread for it

    min_workers   started by start(), kept until shutdown
    max_workers   threads kept around once a burst is over; an idle
                  worker above min_workers exits after idle_timeout, a
                  worker above max_workers exits as soon as its job ends
    queue_size    jobs handed over but not yet picked up; submit()
                  returns False past it and the server answers 503

=============================================================================
LIFECYCLE
=============================================================================

    start()      min_workers threads come up
    submit()     queues a job, reserving or starting its worker
    shutdown()   optionally waits for queued jobs, then sends every
                 worker a STOP sentinel and joins it

A job that raises is logged with its traceback and counted as failed. The
worker that ran it carries on with the next job.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)

# Queued once per worker at shutdown
STOP = None


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Job:
    """One queued call, plus when it entered the queue."""
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    queued_at: float = field(default_factory=time.monotonic)

    def run(self):
        return self.func(*self.args, **self.kwargs)


class Worker(threading.Thread):
    """Pulls jobs off the pool's queue until it receives STOP or retires."""

    def __init__(self, pool: "ThreadPool", number: int):
        super().__init__(name=f"staticserver-worker-{number}", daemon=True)
        self.pool = pool
        self.number = number
        self.state = WorkerState.IDLE
        self._stopping = threading.Event()

    def run(self):
        jobs = self.pool._jobs
        logger.debug(f"{self.name} up")

        while not self._stopping.is_set():
            try:
                job = jobs.get(timeout=self.pool.idle_timeout)
            except queue.Empty:
                if self.pool._retire_idle(self):
                    break
                continue

            try:
                if job is STOP:
                    break
                self._run(job)
            finally:
                jobs.task_done()

            if not self.pool._back_to_idle(self):
                break

        self.state = WorkerState.STOPPED
        logger.debug(f"{self.name} down")

    def _run(self, job: Job):
        self.state = WorkerState.BUSY
        started = time.monotonic()
        try:
            job.run()
        except Exception as e:
            logger.exception(f"{self.name}: job failed: {e}")
            self.pool._count(failed=True)
        else:
            self.pool._count(failed=False)
            logger.debug(
                f"{self.name}: job done in {time.monotonic() - started:.3f}s "
                f"after {started - job.queued_at:.3f}s in queue"
            )
        finally:
            self.state = WorkerState.IDLE

    def stop(self):
        self._stopping.set()


class ThreadPool:
    """
    Worker threads for connection handling.

        pool = ThreadPool(min_workers=4, max_workers=8, queue_size=100)
        pool.start()
        if not pool.submit(handle, args=(conn,), block=False):
            ...  # queue full
        pool.shutdown()
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 8,
        queue_size: int = 100,
        idle_timeout: float = 60.0
    ):
        """
        Args:
            min_workers: Threads started by start() and kept until shutdown.
            max_workers: Threads kept once a burst of jobs is over.
            queue_size: Jobs that may be handed over but not yet picked up.
            idle_timeout: How long an idle worker waits before re-checking
                its stop flag or retiring.
        """
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._jobs: queue.Queue[Optional[Job]] = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        # Guards _workers, _idle and the counters. _idle counts workers
        # waiting for a job that no queued job has claimed yet.
        self._lock = threading.Lock()
        self._idle = 0
        self._running = False
        self._closing = False
        self._spawned = 0
        self._completed = 0
        self._failed = 0

    def start(self):
        """Bring up min_workers threads. Calling it twice does nothing."""
        if self._running:
            return

        with self._lock:
            while len(self._workers) < self.min_workers:
                self._spawn()
                self._idle += 1

        self._closing = False
        self._running = True
        logger.info(
            f"Worker pool started ({self.min_workers} threads, "
            f"{self.max_workers} kept after load)"
        )

    def _spawn(self) -> Worker:
        # Caller holds self._lock
        worker = Worker(self, self._spawned)
        self._spawned += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def _count(self, failed: bool):
        with self._lock:
            if failed:
                self._failed += 1
            else:
                self._completed += 1

    def _back_to_idle(self, worker: Worker) -> bool:
        """After a job: rejoin the idle set, or leave if over max_workers."""
        with self._lock:
            if len(self._workers) > self.max_workers and worker in self._workers:
                self._workers.remove(worker)
                return False
            self._idle += 1
            return True

    def _retire_idle(self, worker: Worker) -> bool:
        """After idle_timeout without a job: leave if over min_workers."""
        with self._lock:
            if self._idle > 0 and len(self._workers) > self.min_workers and worker in self._workers:
                self._idle -= 1
                self._workers.remove(worker)
                return True
            return False

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None
    ) -> bool:
        """
        Queue func(*args, **kwargs) and make sure a worker is free for it.

        Returns:
            True once queued. False if the queue stayed full (immediately
            when block is False, after queue_timeout otherwise).

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._running:
            raise RuntimeError("Worker pool not started")
        if self._closing:
            raise RuntimeError("Worker pool is shutting down")

        with self._lock:
            reserved = self._idle > 0
            if reserved:
                self._idle -= 1

        try:
            self._jobs.put(Job(func, args, kwargs or {}), block=block, timeout=queue_timeout)
        except queue.Full:
            if reserved:
                with self._lock:
                    self._idle += 1
            return False

        if not reserved:
            with self._lock:
                worker = self._spawn()
            logger.debug(f"No idle worker, started {worker.name}")
        return True

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop every worker.

        Args:
            wait: Drain queued jobs first.
            timeout: Stop draining after this many seconds.
        """
        if not self._running:
            return

        self._closing = True
        logger.info("Stopping worker pool...")

        if wait:
            deadline = None if timeout is None else time.monotonic() + timeout
            while self._jobs.unfinished_tasks:
                if deadline is not None and time.monotonic() > deadline:
                    logger.warning(
                        f"Gave up waiting for {self._jobs.unfinished_tasks} job(s)"
                    )
                    break
                time.sleep(0.05)

        with self._lock:
            workers, self._workers = self._workers, []
            self._idle = 0

        for worker in workers:
            worker.stop()
            try:
                self._jobs.put_nowait(STOP)
            except queue.Full:
                # The stop flag is seen after the next idle_timeout
                logger.debug(f"Queue full, {worker.name} will stop on its own")

        for worker in workers:
            worker.join(timeout=2.0)

        self._running = False
        logger.info("Worker pool stopped")

    @property
    def stats(self) -> dict:
        """Thread and job counters, logged by the server at shutdown."""
        with self._lock:
            workers = list(self._workers)
            idle, completed, failed = self._idle, self._completed, self._failed

        return {
            "workers": {
                "total": len(workers),
                "busy": sum(1 for w in workers if w.state == WorkerState.BUSY),
                "idle": idle,
            },
            "jobs": {
                "queued": self._jobs.qsize(),
                "completed": completed,
                "failed": failed,
            },
        }
