"""Units of work queued by the client and executed by workers."""

from __future__ import annotations

import enum
import itertools
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any

from .errors import ArgumentError
from .transaction import TransactionRequest


class JobKind(enum.Enum):
    SCRIPT = "script"
    TRANSACTION = "transaction"
    GET_LATEST_BLOCK_HEADER = "get_latest_block_header"
    GET_BLOCK_HEADER_BY_ID = "get_block_header_by_id"
    GET_BLOCK_HEADER_BY_HEIGHT = "get_block_header_by_height"
    GET_LATEST_BLOCK = "get_latest_block"
    GET_BLOCK_BY_ID = "get_block_by_id"
    GET_BLOCK_BY_HEIGHT = "get_block_by_height"
    GET_COLLECTION_BY_ID = "get_collection_by_id"
    GET_TRANSACTION = "get_transaction"
    GET_TRANSACTION_RESULT = "get_transaction_result"
    GET_ACCOUNT_AT_LATEST_BLOCK = "get_account_at_latest_block"
    GET_ACCOUNT_AT_BLOCK_HEIGHT = "get_account_at_block_height"
    GET_EVENTS_FOR_HEIGHT_RANGE = "get_events_for_height_range"


def _height(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _text(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _flag(value: Any) -> bool:
    return isinstance(value, bool)


# Positional argument checks per read kind.
ARGUMENT_CHECKS = {
    JobKind.GET_LATEST_BLOCK_HEADER: (_flag,),
    JobKind.GET_BLOCK_HEADER_BY_ID: (_text,),
    JobKind.GET_BLOCK_HEADER_BY_HEIGHT: (_height,),
    JobKind.GET_LATEST_BLOCK: (_flag,),
    JobKind.GET_BLOCK_BY_ID: (_text,),
    JobKind.GET_BLOCK_BY_HEIGHT: (_height,),
    JobKind.GET_COLLECTION_BY_ID: (_text,),
    JobKind.GET_TRANSACTION: (_text,),
    JobKind.GET_TRANSACTION_RESULT: (_text,),
    JobKind.GET_ACCOUNT_AT_LATEST_BLOCK: (_text,),
    JobKind.GET_ACCOUNT_AT_BLOCK_HEIGHT: (_text, _height),
    JobKind.GET_EVENTS_FOR_HEIGHT_RANGE: (_text, _height, _height),
}

_ids = itertools.count(1)


def validate_args(kind: Any, args: tuple) -> None:
    """Check arity and types of a read job's arguments.

    Kinds without checks (script, transaction, unknown) are not checked here.

    Raises:
        ArgumentError: On an arity or type mismatch.
    """
    checks = ARGUMENT_CHECKS.get(kind)
    if checks is None:
        return
    name = getattr(kind, "value", kind)
    if len(args) != len(checks):
        raise ArgumentError(
            f"incorrect number of arguments for {name}: expected {len(checks)}, got {len(args)}"
        )
    for i, (check, value) in enumerate(zip(checks, args)):
        if not check(value):
            raise ArgumentError(f"invalid argument {i} for {name}: {value!r}")
    if kind is JobKind.GET_EVENTS_FOR_HEIGHT_RANGE and args[1] > args[2]:
        raise ArgumentError(f"start height {args[1]} is above end height {args[2]}")


@dataclass(frozen=True)
class Job:
    """One queued request.

    Attributes:
        kind: What the worker should do.
        args: Positional arguments for read kinds; ``(script, arguments)``
            for scripts.
        future: Completion channel; completed exactly once by the worker.
        transaction: Inputs of a transaction job.
    """

    kind: JobKind
    args: tuple = ()
    future: Future = field(default_factory=Future, compare=False, repr=False)
    transaction: TransactionRequest | None = None
    id: int = field(default_factory=lambda: next(_ids))

    @property
    def name(self) -> str:
        return getattr(self.kind, "value", str(self.kind))


def new_job(kind: JobKind, *args: Any, transaction: TransactionRequest | None = None) -> Job:
    """Build a job, validating its arguments up front.

    Raises:
        ArgumentError: If the arguments do not fit the kind.
    """
    validate_args(kind, args)
    if kind is JobKind.TRANSACTION and transaction is None:
        raise ArgumentError("transaction job requires a TransactionRequest")
    if kind is JobKind.SCRIPT:
        if len(args) != 2 or not isinstance(args[0], (bytes, bytearray)):
            raise ArgumentError("script job takes (script bytes, argument list)")
    return Job(kind=kind, args=tuple(args), transaction=transaction)
