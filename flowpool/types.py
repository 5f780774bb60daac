"""Typed values for Flow accounts, blocks, and transactions."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from eth_utils import remove_0x_prefix

ADDRESS_LENGTH = 8


def normalize_address(address: str | bytes) -> str:
    """Return *address* as 16 lowercase hex characters without 0x."""
    if isinstance(address, (bytes, bytearray)):
        raw = bytes(address)
    else:
        raw = bytes.fromhex(remove_0x_prefix(address.strip()).rjust(ADDRESS_LENGTH * 2, "0"))
    if len(raw) > ADDRESS_LENGTH:
        raise ValueError(f"Flow address longer than {ADDRESS_LENGTH} bytes: {raw.hex()}")
    return raw.rjust(ADDRESS_LENGTH, b"\x00").hex()


def _int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    return int(value)


class TransactionStatus(enum.IntEnum):
    UNKNOWN = 0
    PENDING = 1
    FINALIZED = 2
    EXECUTED = 3
    SEALED = 4
    EXPIRED = 5

    @classmethod
    def parse(cls, value: Any) -> "TransactionStatus":
        if isinstance(value, int):
            return cls(value)
        try:
            return cls[str(value).upper()]
        except KeyError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class FlowKey:
    """A key the caller holds for the service account."""

    key_id: int
    private: str = field(repr=False)
    public: str | None = None


@dataclass(frozen=True)
class AccountKey:
    id: int
    public_key: bytes
    sign_algo: str
    hash_algo: str
    weight: int
    sequence_number: int
    revoked: bool

    @classmethod
    def from_json(cls, data: dict) -> "AccountKey":
        return cls(
            id=_int(data.get("index")),
            public_key=bytes.fromhex(remove_0x_prefix(data.get("public_key", ""))),
            sign_algo=str(data.get("signing_algorithm", "")),
            hash_algo=str(data.get("hashing_algorithm", "")),
            weight=_int(data.get("weight")),
            sequence_number=_int(data.get("sequence_number")),
            revoked=bool(data.get("revoked", False)),
        )


@dataclass(frozen=True)
class Account:
    address: str
    balance: int
    keys: list[AccountKey] = field(default_factory=list)
    contracts: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: dict) -> "Account":
        return cls(
            address=normalize_address(data["address"]),
            balance=_int(data.get("balance")),
            keys=[AccountKey.from_json(k) for k in data.get("keys") or []],
            contracts=dict(data.get("contracts") or {}),
        )


@dataclass(frozen=True)
class BlockHeader:
    id: str
    parent_id: str
    height: int
    timestamp: str

    @classmethod
    def from_json(cls, data: dict) -> "BlockHeader":
        header = data.get("header", data)
        return cls(
            id=remove_0x_prefix(header["id"]),
            parent_id=remove_0x_prefix(header.get("parent_id", "")),
            height=_int(header.get("height")),
            timestamp=str(header.get("timestamp", "")),
        )


@dataclass(frozen=True)
class Block:
    header: BlockHeader
    collection_guarantees: list[dict] = field(default_factory=list)
    block_seals: list[dict] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.header.id

    @property
    def height(self) -> int:
        return self.header.height

    @classmethod
    def from_json(cls, data: dict) -> "Block":
        payload = data.get("payload") or {}
        return cls(
            header=BlockHeader.from_json(data),
            collection_guarantees=list(payload.get("collection_guarantees") or []),
            block_seals=list(payload.get("block_seals") or []),
        )


@dataclass(frozen=True)
class ProposalKey:
    address: str
    key_id: int
    sequence_number: int


@dataclass(frozen=True)
class Signer:
    """A party asked to sign one section of a transaction."""

    address: str
    key_id: int
    private_key: str = field(repr=False)


@dataclass(frozen=True)
class TransactionSignature:
    address: str
    key_id: int
    signature: bytes


@dataclass
class Transaction:
    """Working transaction value, scoped to one job's execution."""

    script: bytes
    arguments: list[bytes]
    reference_block_id: str
    gas_limit: int
    proposal_key: ProposalKey
    payer: str
    authorizers: list[str] = field(default_factory=list)
    payload_signatures: list[TransactionSignature] = field(default_factory=list)
    envelope_signatures: list[TransactionSignature] = field(default_factory=list)
