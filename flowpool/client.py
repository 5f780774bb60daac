"""High-level Flow client: a pool of signing workers behind a job queue."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from eth_utils import remove_0x_prefix

from . import cadence
from .config import FlowConfig, FlowNetwork
from .connection import DEFAULT_TIMEOUT, Connection
from .dispatcher import DEFAULT_MAX_QUEUE, DEFAULT_TICK, Dispatcher
from .errors import ArgumentError, FlowError
from .jobs import JobKind, new_job
from .signer import SigningIdentity
from .transaction import DEFAULT_GAS_LIMIT, TransactionRequest
from .types import FlowKey, Signer, normalize_address
from .worker import Worker

_LOG = logging.getLogger(__name__)

CREATE_ACCOUNT_TEMPLATE = """
transaction(publicKeys: [String], contracts: {String: String}) {
    prepare(signer: auth(BorrowValue | Storage) &Account) {
        let acct = Account(payer: signer)

        for key in publicKeys {
            acct.keys.add(
                publicKey: PublicKey(
                    publicKey: key.decodeHex(),
                    signatureAlgorithm: SignatureAlgorithm.ECDSA_P256
                ),
                hashAlgorithm: HashAlgorithm.SHA3_256,
                weight: 1000.0
            )
        }

        for contract in contracts.keys {
            acct.contracts.add(name: contract, code: contracts[contract]!.decodeHex())
        }
    }
}
"""

ConnectionFactory = Callable[[str, SigningIdentity, float], Connection]


class Flow:
    """Client for submitting scripts, transactions and queries to a Flow access node.

    Each configured key gets its own worker and connection. Every operation
    is queued and returns a ``concurrent.futures.Future`` that resolves to
    the result or raises the job's error.

    Args:
        network: A ``FlowNetwork`` preset, a preset name, ``host:port`` or URL.
        service_address: Account the configured keys belong to.
        keys: One ``FlowKey`` per worker.
        tick: Longest wait between scheduling passes, in seconds.
        timeout: Per-call deadline in seconds.
        max_queue: Pending-queue capacity; ``None`` for unbounded.
        gas_limit: Default computation limit for transactions.
        connection_factory: Builds a connection for each worker.
    """

    def __init__(
        self,
        network: FlowNetwork | str,
        service_address: str,
        keys: list[FlowKey],
        tick: float = DEFAULT_TICK,
        timeout: float = DEFAULT_TIMEOUT,
        max_queue: int | None = DEFAULT_MAX_QUEUE,
        gas_limit: int = DEFAULT_GAS_LIMIT,
        connection_factory: ConnectionFactory | None = None,
    ):
        self.config = FlowConfig(
            network=network,
            service_address=service_address,
            keys=list(keys),
            tick=tick,
            timeout=timeout,
            max_queue=max_queue,
            gas_limit=gas_limit,
        )
        self._identities = [
            SigningIdentity.from_hex(k.key_id, k.private, k.public) for k in self.config.keys
        ]
        self._connection_factory = connection_factory or Connection
        self.dispatcher = Dispatcher(tick=self.config.tick, max_queue=self.config.max_queue)

    @classmethod
    def from_config(cls, config: FlowConfig, **kwargs) -> "Flow":
        return cls(
            config.network,
            config.service_address,
            config.keys,
            tick=config.tick,
            timeout=config.timeout,
            max_queue=config.max_queue,
            gas_limit=config.gas_limit,
            **kwargs,
        )

    @classmethod
    def from_env(cls, **kwargs) -> "Flow":
        """Build a client from ``FLOW_*`` environment variables."""
        return cls.from_config(FlowConfig.from_env(), **kwargs)

    @property
    def service_address(self) -> str:
        return self.config.service_address

    @property
    def workers(self):
        return self.dispatcher.workers

    # -- lifecycle --

    def start(self) -> None:
        """Connect one worker per key, then start scheduling.

        Raises:
            WorkerConnectionError: If any worker fails its liveness probe.
        """
        _LOG.info("starting flowpool access_node=%s keys=%d", self.config.endpoint, len(self._identities))
        if not self._identities:
            raise ArgumentError("At least one key is required")
        workers = [
            Worker(self._connection_factory(self.config.endpoint, identity, self.config.timeout))
            for identity in self._identities
        ]
        with ThreadPoolExecutor(max_workers=len(workers)) as pool:
            outcomes = list(pool.map(_connect, workers))
        failures = [e for e in outcomes if e is not None]
        if failures:
            for w in workers:
                w.close(wait=False)
            raise failures[0]
        for w in workers:
            self.dispatcher.add_worker(w)
        self.dispatcher.start()
        _LOG.info("flowpool ready workers=%d", len(workers))

    def stop(self, wait: bool = True, timeout: float | None = None) -> None:
        """Stop accepting scheduling work once the queue drains.

        With *wait*, block until the queue is drained and in-flight jobs
        have finished, then close every connection. Jobs still queued when
        *timeout* runs out fail with ``ShutdownError``.
        """
        _LOG.info("stopping flowpool pending=%d", self.dispatcher.pending)
        self.dispatcher.stop()
        if wait:
            if not self.dispatcher.join(timeout):
                dropped = self.dispatcher.fail_pending(f"shutdown did not drain within {timeout}s")
                _LOG.warning("shutdown timed out, failed %d pending jobs", dropped)
            for w in self.dispatcher.workers:
                w.close(wait=True)
            self.dispatcher.join(timeout)

    def __enter__(self) -> "Flow":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    # -- queries --

    def get_account(self, address: str, height: int | None = None) -> Future:
        """Fetch an account at the latest sealed block or at *height*."""
        address = normalize_address(address)
        if height is None:
            return self._submit(JobKind.GET_ACCOUNT_AT_LATEST_BLOCK, address)
        return self._submit(JobKind.GET_ACCOUNT_AT_BLOCK_HEIGHT, address, height)

    def get_block(
        self,
        block_id: str | None = None,
        height: int | None = None,
        sealed: bool = False,
    ) -> Future:
        """Fetch a block by id, by height, or the latest one."""
        if block_id:
            return self._submit(JobKind.GET_BLOCK_BY_ID, block_id)
        if height is not None:
            return self._submit(JobKind.GET_BLOCK_BY_HEIGHT, height)
        return self._submit(JobKind.GET_LATEST_BLOCK, bool(sealed))

    def get_block_header(
        self,
        block_id: str | None = None,
        height: int | None = None,
        sealed: bool = False,
    ) -> Future:
        if block_id:
            return self._submit(JobKind.GET_BLOCK_HEADER_BY_ID, block_id)
        if height is not None:
            return self._submit(JobKind.GET_BLOCK_HEADER_BY_HEIGHT, height)
        return self._submit(JobKind.GET_LATEST_BLOCK_HEADER, bool(sealed))

    def get_collection(self, collection_id: str) -> Future:
        return self._submit(JobKind.GET_COLLECTION_BY_ID, collection_id)

    def get_transaction(self, transaction_id: str) -> Future:
        return self._submit(JobKind.GET_TRANSACTION, transaction_id)

    def get_transaction_result(self, transaction_id: str) -> Future:
        return self._submit(JobKind.GET_TRANSACTION_RESULT, transaction_id)

    def get_events(self, event_type: str, start_height: int, end_height: int) -> Future:
        return self._submit(JobKind.GET_EVENTS_FOR_HEIGHT_RANGE, event_type, start_height, end_height)

    def execute_script(self, script: str, args: list | None = None) -> Future:
        """Run a read-only Cadence script.

        Args:
            script: Cadence source.
            args: Plain Python values or JSON-Cadence documents.

        Returns:
            Future resolving to the decoded script result.
        """
        return self._submit(
            JobKind.SCRIPT, script.encode("utf-8"), tuple(cadence.encode_arguments(args))
        )

    # -- transactions --

    def execute_transaction(
        self,
        script: str,
        args: list | None = None,
        proposer: str | None = None,
        payer: str | None = None,
        authorizers: list[str] | None = None,
        signers: list[Signer] | None = None,
        reference_block_id: str | None = None,
        gas_limit: int | None = None,
    ) -> Future:
        """Build, sign and send a transaction.

        The worker's key signs as proposer and payer; both default to the
        service account. Extra *signers* add payload signatures for
        authorizers the worker cannot sign for.

        Not idempotent: a failure after resolution may still have consumed
        the proposer's sequence number.

        Returns:
            Future resolving to the access node's send response.
        """
        request = TransactionRequest(
            script=script.encode("utf-8"),
            arguments=tuple(cadence.encode_arguments(args)),
            proposer=normalize_address(proposer or self.service_address),
            payer=normalize_address(payer or self.service_address),
            authorizers=tuple(normalize_address(a) for a in authorizers or []),
            payload_signers=tuple(signers or []),
            reference_block_id=reference_block_id,
            gas_limit=gas_limit or self.config.gas_limit,
        )
        return self._submit(JobKind.TRANSACTION, transaction=request)

    def create_account(
        self,
        public_keys: list[str | FlowKey] | None = None,
        contracts: dict[str, str] | None = None,
    ) -> Future:
        """Create an account funded and authorized by the service account.

        Args:
            public_keys: Hex public keys (or ``FlowKey`` values) for the new
                account. Defaults to this client's own public keys.
            contracts: Contract name to Cadence source, deployed on creation.
        """
        if public_keys is None:
            keys = [identity.public_key_hex for identity in self._identities]
        else:
            keys = [_public_hex(k) for k in public_keys]
        code = {name: source.encode("utf-8").hex() for name, source in (contracts or {}).items()}
        return self.execute_transaction(
            CREATE_ACCOUNT_TEMPLATE,
            [cadence.Array([cadence.String(k) for k in keys]), cadence.Dictionary(code)],
            authorizers=[self.service_address],
        )

    # -- internal helpers --

    def _submit(self, kind: JobKind, *args: Any, transaction: TransactionRequest | None = None) -> Future:
        job = new_job(kind, *args, transaction=transaction)
        self.dispatcher.enqueue(job)
        return job.future


def _connect(worker) -> FlowError | None:
    try:
        worker.connect()
    except FlowError as e:
        return e
    return None


def _public_hex(key: str | FlowKey) -> str:
    if isinstance(key, FlowKey):
        if key.public:
            return remove_0x_prefix(key.public)
        return SigningIdentity.from_hex(key.key_id, key.private).public_key_hex
    return remove_0x_prefix(key)
