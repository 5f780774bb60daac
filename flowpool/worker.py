"""A worker owns one connection and executes one job at a time."""

from __future__ import annotations

import enum
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from .connection import Connection
from .errors import ArgumentError, UnsupportedJobError
from .jobs import Job, JobKind, validate_args
from .transaction import TransactionProtocol

_LOG = logging.getLogger(__name__)


class WorkerStatus(enum.Enum):
    CONNECTING = "connecting"
    IDLE = "idle"
    PROCESSING = "processing"


class Worker:
    """Wraps one ``Connection`` with a status flag.

    Only the worker changes its own status. ``assign`` flips it to
    PROCESSING on the caller's thread, so a scheduler never sees a claimed
    worker as idle; ``process`` flips it back to IDLE once the job's future
    has been completed.

    Args:
        connection: The channel this worker owns exclusively.
        on_idle: Called (with the worker) every time it becomes IDLE.
    """

    def __init__(self, connection: Connection, on_idle: Callable[["Worker"], None] | None = None):
        self.connection = connection
        self.on_idle = on_idle
        self._status = WorkerStatus.CONNECTING
        self._status_lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self._handlers: dict[Any, Callable[[Job], Any]] = {
            JobKind.SCRIPT: self._run_script,
            JobKind.TRANSACTION: self._run_transaction,
            JobKind.GET_LATEST_BLOCK_HEADER: lambda j: self.connection.get_latest_block(j.args[0], header_only=True),
            JobKind.GET_BLOCK_HEADER_BY_ID: lambda j: self.connection.get_block_by_id(j.args[0], header_only=True),
            JobKind.GET_BLOCK_HEADER_BY_HEIGHT: lambda j: self.connection.get_block_by_height(j.args[0], header_only=True),
            JobKind.GET_LATEST_BLOCK: lambda j: self.connection.get_latest_block(j.args[0]),
            JobKind.GET_BLOCK_BY_ID: lambda j: self.connection.get_block_by_id(j.args[0]),
            JobKind.GET_BLOCK_BY_HEIGHT: lambda j: self.connection.get_block_by_height(j.args[0]),
            JobKind.GET_COLLECTION_BY_ID: lambda j: self.connection.get_collection(j.args[0]),
            JobKind.GET_TRANSACTION: lambda j: self.connection.get_transaction(j.args[0]),
            JobKind.GET_TRANSACTION_RESULT: lambda j: self.connection.get_transaction_result(j.args[0]),
            JobKind.GET_ACCOUNT_AT_LATEST_BLOCK: lambda j: self.connection.get_account(j.args[0]),
            JobKind.GET_ACCOUNT_AT_BLOCK_HEIGHT: lambda j: self.connection.get_account(j.args[0], j.args[1]),
            JobKind.GET_EVENTS_FOR_HEIGHT_RANGE: lambda j: self.connection.get_events(*j.args),
        }

    @property
    def key_index(self) -> int:
        return self.connection.identity.key_index

    @property
    def status(self) -> WorkerStatus:
        return self._status

    @property
    def idle(self) -> bool:
        return self._status is WorkerStatus.IDLE

    def connect(self) -> None:
        """Open the connection and probe liveness.

        Raises:
            WorkerConnectionError: If the probe fails; status stays CONNECTING.
        """
        _LOG.debug("worker %d connecting to %s", self.key_index, self.connection.endpoint)
        try:
            self.connection.open()
        except Exception:
            _LOG.warning("worker %d could not connect to %s", self.key_index, self.connection.endpoint)
            raise
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"flowpool-worker-{self.key_index}"
        )
        self._set_idle()
        _LOG.info("worker %d connected", self.key_index)

    def close(self, wait: bool = True) -> None:
        """Finish any in-flight job and release the connection.

        The worker goes back to CONNECTING and can no longer be assigned.
        """
        with self._status_lock:
            executor, self._executor = self._executor, None
            self._status = WorkerStatus.CONNECTING
        if executor is not None:
            executor.shutdown(wait=wait)
        self.connection.close()

    def assign(self, job: Job) -> None:
        """Claim *job* and run it on this worker's thread without blocking.

        Raises:
            RuntimeError: If the worker is not IDLE.
        """
        with self._status_lock:
            if self._status is not WorkerStatus.IDLE or self._executor is None:
                raise RuntimeError(f"worker {self.key_index} is {self._status.value}")
            # process() blocks on the status lock, so it cannot finish first.
            self._executor.submit(self.process, job)
            self._status = WorkerStatus.PROCESSING
        _LOG.debug("worker %d claimed job %d (%s)", self.key_index, job.id, job.name)

    def process(self, job: Job) -> None:
        """Execute *job* to completion on the calling thread.

        The job's future receives the result or the error, then the worker
        returns to IDLE.
        """
        with self._status_lock:
            if self._executor is not None:
                self._status = WorkerStatus.PROCESSING
        _LOG.debug("worker %d processing %s", self.key_index, job.name)
        try:
            result = self._execute(job)
        except Exception as e:
            _LOG.debug("worker %d job %d failed: %s", self.key_index, job.id, e)
            self._complete(job, error=e)
        else:
            self._complete(job, result=result)
        finally:
            self._set_idle()

    # -- internal helpers --

    def _execute(self, job: Job) -> Any:
        handler = self._handlers.get(job.kind)
        if handler is None:
            raise UnsupportedJobError(f"{job.name} is not implemented")
        validate_args(job.kind, job.args)
        return handler(job)

    def _run_script(self, job: Job) -> Any:
        if len(job.args) != 2:
            raise ArgumentError(f"incorrect number of arguments for script: {len(job.args)}")
        script, arguments = job.args
        return self.connection.execute_script(script, list(arguments))

    def _run_transaction(self, job: Job) -> Any:
        if job.transaction is None:
            raise ArgumentError("transaction job requires a TransactionRequest")
        protocol = TransactionProtocol(self.connection, self.connection.identity)
        return protocol.run(job.transaction)

    def _complete(self, job: Job, result: Any = None, error: BaseException | None = None) -> None:
        if job.future.done():
            return
        if not job.future.set_running_or_notify_cancel():
            return
        if error is not None:
            job.future.set_exception(error)
        else:
            job.future.set_result(result)

    def _set_idle(self) -> None:
        with self._status_lock:
            if self._executor is None:
                # Closed while the job ran.
                return
            self._status = WorkerStatus.IDLE
        if self.on_idle is not None:
            self.on_idle(self)

    def __repr__(self) -> str:
        return f"Worker(key_index={self.key_index}, status={self._status.value})"
