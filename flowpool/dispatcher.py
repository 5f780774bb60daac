"""Pending-job queue and the scheduling loop over a worker pool.

One scheduling pass is active at a time. The loop thread runs a pass
whenever it is woken (a job was enqueued, a worker became idle, or stop was
requested) and at least once every tick interval. After ``stop()`` the loop
keeps running passes until the queue is empty, then exits.
"""

from __future__ import annotations

import collections
import logging
import threading

from .errors import QueueFullError, ShutdownError
from .jobs import Job
from .worker import Worker, WorkerStatus

_LOG = logging.getLogger(__name__)

DEFAULT_TICK = 0.02
DEFAULT_MAX_QUEUE = 10_000


class Dispatcher:
    """Assigns queued jobs to idle workers, oldest job first.

    Args:
        workers: The worker pool. Workers may also be added later.
        tick: Longest wait between passes, in seconds.
        max_queue: Pending-queue capacity; ``None`` for unbounded.
    """

    def __init__(
        self,
        workers: list[Worker] | None = None,
        tick: float = DEFAULT_TICK,
        max_queue: int | None = DEFAULT_MAX_QUEUE,
    ):
        self.tick = tick
        self.max_queue = max_queue
        self._workers: list[Worker] = []
        self._queue: collections.deque[Job] = collections.deque()
        self._lock = threading.Lock()
        self._wakeup = threading.Condition(self._lock)
        self._pass_lock = threading.Lock()
        self._shutdown = False
        self._thread: threading.Thread | None = None
        self._exited = False
        for worker in workers or []:
            self.add_worker(worker)

    @property
    def workers(self) -> list[Worker]:
        return list(self._workers)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    @property
    def stopping(self) -> bool:
        return self._shutdown

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def add_worker(self, worker: Worker) -> None:
        worker.on_idle = self._worker_idle
        self._workers.append(worker)

    def enqueue(self, job: Job) -> Job:
        """Append *job* to the tail of the queue.

        Jobs enqueued after ``stop()`` are still accepted and drained while
        the loop is running.

        Raises:
            QueueFullError: If the queue holds ``max_queue`` jobs.
            ShutdownError: If the loop has already exited.
        """
        with self._wakeup:
            if self._exited:
                raise ShutdownError("dispatcher has stopped")
            if self.max_queue is not None and len(self._queue) >= self.max_queue:
                raise QueueFullError(f"pending queue is full ({self.max_queue} jobs)")
            self._queue.append(job)
            self._wakeup.notify()
        return job

    def run_pass(self) -> int:
        """Hand queued jobs to idle workers without waiting for them.

        A call made while another pass is running does nothing.

        Returns:
            The number of jobs assigned.
        """
        if not self._pass_lock.acquire(blocking=False):
            return 0
        try:
            assigned = 0
            for worker in self._workers:
                if not worker.idle:
                    continue
                with self._lock:
                    if not self._queue:
                        break
                    job = self._queue.popleft()
                try:
                    worker.assign(job)
                except RuntimeError:
                    with self._lock:
                        self._queue.appendleft(job)
                    continue
                assigned += 1
            remaining = self.pending
            if remaining and not assigned:
                _LOG.debug("all workers are busy, work remaining: %d", remaining)
            if self._shutdown and remaining:
                _LOG.debug("draining for shutdown, work remaining: %d", remaining)
            return assigned
        finally:
            self._pass_lock.release()

    def start(self) -> None:
        """Start the scheduling loop thread."""
        if self.running:
            return
        self._shutdown = False
        self._exited = False
        self._thread = threading.Thread(target=self._loop, name="flowpool-dispatcher", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Request shutdown; the loop exits once the queue is drained."""
        with self._wakeup:
            self._shutdown = True
            self._wakeup.notify()

    def fail_pending(self, reason: str) -> int:
        """Fail every queued job with ``ShutdownError`` and empty the queue.

        In-flight jobs are not touched. Returns the number of jobs failed.
        """
        with self._lock:
            jobs = list(self._queue)
            self._queue.clear()
        for job in jobs:
            if job.future.set_running_or_notify_cancel():
                job.future.set_exception(ShutdownError(reason))
        return len(jobs)

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the loop to exit. Returns True if it has."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    # -- internal helpers --

    def _loop(self) -> None:
        _LOG.debug("dispatcher loop started with %d workers", len(self._workers))
        while True:
            self.run_pass()
            if self._shutdown and all(w.status is WorkerStatus.CONNECTING for w in self._workers):
                dropped = self.fail_pending("no connected worker left to run the job")
                if dropped:
                    _LOG.warning("failed %d pending jobs: every worker is closed", dropped)
            with self._wakeup:
                if self._shutdown and not self._queue:
                    self._exited = True
                    break
                self._wakeup.wait(self.tick)
        _LOG.debug("dispatcher loop exited")

    def _worker_idle(self, worker: Worker) -> None:
        with self._wakeup:
            self._wakeup.notify()
