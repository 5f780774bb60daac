"""flowpool: pooled, multi-key Python client for Flow access nodes."""

from .client import Flow
from .config import FlowConfig, FlowNetwork
from .connection import Connection
from .dispatcher import Dispatcher
from .jobs import Job, JobKind, new_job
from .signer import SigningIdentity
from .transaction import TransactionRequest, sign_transaction
from .types import (
    Account,
    AccountKey,
    Block,
    BlockHeader,
    FlowKey,
    ProposalKey,
    Signer,
    Transaction,
    TransactionSignature,
    TransactionStatus,
)
from .worker import Worker, WorkerStatus
from .errors import (
    FlowError,
    ArgumentError,
    EncodingError,
    IdentityError,
    KeyNotFoundError,
    QueueFullError,
    ShutdownError,
    RemoteError,
    RemoteTimeoutError,
    SignatureError,
    UnsupportedJobError,
    WorkerConnectionError,
)

__all__ = [
    "Flow",
    "FlowConfig",
    "FlowNetwork",
    "Connection",
    "Dispatcher",
    "Job",
    "JobKind",
    "new_job",
    "SigningIdentity",
    "TransactionRequest",
    "sign_transaction",
    "Account",
    "AccountKey",
    "Block",
    "BlockHeader",
    "FlowKey",
    "ProposalKey",
    "Signer",
    "Transaction",
    "TransactionSignature",
    "TransactionStatus",
    "Worker",
    "WorkerStatus",
    "FlowError",
    "ArgumentError",
    "EncodingError",
    "IdentityError",
    "KeyNotFoundError",
    "QueueFullError",
    "ShutdownError",
    "RemoteError",
    "RemoteTimeoutError",
    "SignatureError",
    "UnsupportedJobError",
    "WorkerConnectionError",
]
