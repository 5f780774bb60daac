"""Transaction construction and two-phase signing.

A transaction job walks a fixed sequence of states::

    RESOLVE_REFERENCE -> RESOLVE_PROPOSER -> RESOLVE_PAYER -> BUILD
        -> SIGN_PAYLOAD -> SIGN_ENVELOPE -> SUBMIT

Any state may fail; the remaining states are skipped and nothing is
submitted. Payload signatures are all appended before the first envelope
signature is computed, because the envelope message embeds them.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any

from . import encoding, signer
from .errors import ArgumentError, KeyNotFoundError
from .types import (
    Account,
    AccountKey,
    ProposalKey,
    Signer,
    Transaction,
    TransactionSignature,
    normalize_address,
)

_LOG = logging.getLogger(__name__)

DEFAULT_GAS_LIMIT = 9999


class ProtocolState(enum.Enum):
    RESOLVE_REFERENCE = "resolve_reference"
    RESOLVE_PROPOSER = "resolve_proposer"
    RESOLVE_PAYER = "resolve_payer"
    BUILD = "build"
    SIGN_PAYLOAD = "sign_payload"
    SIGN_ENVELOPE = "sign_envelope"
    SUBMIT = "submit"
    FAILED = "failed"


@dataclass(frozen=True)
class TransactionRequest:
    """Caller-declared inputs of a transaction job.

    Attributes:
        script: Cadence transaction source, UTF-8 encoded.
        arguments: Encoded JSON-Cadence arguments, in positional order.
        proposer: Address whose key (the worker's key) anchors the sequence number.
        payer: Address paying fees; signs the envelope with the worker's key.
        authorizers: Addresses granting authority to the transaction body.
        payload_signers: Extra payload signers, e.g. authorizers that are
            neither proposer nor payer.
        reference_block_id: Pin the reference block instead of fetching the latest.
        gas_limit: Computation limit.
    """

    script: bytes
    arguments: tuple[bytes, ...]
    proposer: str
    payer: str
    authorizers: tuple[str, ...] = ()
    payload_signers: tuple[Signer, ...] = ()
    reference_block_id: str | None = None
    gas_limit: int = DEFAULT_GAS_LIMIT

    def __post_init__(self):
        if not isinstance(self.script, (bytes, bytearray)):
            raise ArgumentError("Transaction script must be bytes")
        if not self.proposer:
            raise ArgumentError("Transaction must have a proposer")
        if not self.payer:
            raise ArgumentError("Transaction must have a payer")
        if not isinstance(self.gas_limit, int) or self.gas_limit <= 0:
            raise ArgumentError(f"gas_limit must be a positive integer, got {self.gas_limit!r}")


def find_account_key(account: Account, public_key: bytes) -> AccountKey:
    """Return the non-revoked key on *account* whose public key equals *public_key*.

    Raises:
        KeyNotFoundError: If no key matches.
    """
    for key in account.keys:
        if key.public_key == public_key and not key.revoked:
            return key
    raise KeyNotFoundError(
        f"Public key {public_key.hex()[:16]}... not found on account 0x{account.address}"
    )


def build_transaction(
    request: TransactionRequest,
    reference_block_id: str,
    proposal_key: ProposalKey,
    payer: str,
) -> Transaction:
    """Assemble an unsigned transaction from resolved values."""
    return Transaction(
        script=bytes(request.script),
        arguments=list(request.arguments),
        reference_block_id=reference_block_id,
        gas_limit=request.gas_limit,
        proposal_key=proposal_key,
        payer=normalize_address(payer),
        authorizers=[normalize_address(a) for a in request.authorizers],
    )


def _check_distinct(signers: list[Signer], section: str) -> None:
    seen: set[tuple[str, int]] = set()
    for s in signers:
        key = (normalize_address(s.address), s.key_id)
        if key in seen:
            raise ArgumentError(
                f"Duplicate {section} signer 0x{key[0]} key {key[1]}"
            )
        seen.add(key)


def sign_transaction(
    tx: Transaction,
    payload_signers: list[Signer],
    envelope_signers: list[Signer],
) -> Transaction:
    """Append payload signatures, then envelope signatures, in signer order.

    Each payload signature is over the payload message (no signatures).
    Each envelope signature is over the envelope message, which embeds the
    complete ordered payload signature list.

    Raises:
        ArgumentError: If a signer appears twice in the same section.
        EncodingError: If a signer is not a party to the transaction.
    """
    _check_distinct(payload_signers, "payload")
    _check_distinct(envelope_signers, "envelope")

    for s in payload_signers:
        message = encoding.encode_payload(tx)
        sig = signer.sign(s.private_key, signer.digest(message))
        tx.payload_signatures.append(
            TransactionSignature(normalize_address(s.address), s.key_id, sig)
        )
    for s in envelope_signers:
        message = encoding.encode_envelope(tx)
        sig = signer.sign(s.private_key, signer.digest(message))
        tx.envelope_signatures.append(
            TransactionSignature(normalize_address(s.address), s.key_id, sig)
        )
    _LOG.debug(
        "signed tx payload_sigs=%d envelope_sigs=%d",
        len(tx.payload_signatures), len(tx.envelope_signatures),
    )
    return tx


class TransactionProtocol:
    """Runs the construction/signing protocol for one job on one connection.

    Args:
        connection: The worker's connection (``get_latest_block``,
            ``get_account``, ``send_transaction``).
        identity: The worker's signing identity. Its key must be on the
            proposer account and on the payer account.
    """

    def __init__(self, connection, identity: signer.SigningIdentity):
        self._connection = connection
        self._identity = identity
        self.state = ProtocolState.RESOLVE_REFERENCE
        self.transaction: Transaction | None = None

    def _enter(self, state: ProtocolState) -> None:
        _LOG.debug("tx protocol %s -> %s", self.state.value, state.value)
        self.state = state

    def run(self, request: TransactionRequest) -> Any:
        """Execute every state in order and return the send result.

        Raises:
            KeyNotFoundError: If the worker key is not on proposer or payer.
            RemoteError: If any remote call fails.
        """
        try:
            return self._run(request)
        except Exception:
            self._enter(ProtocolState.FAILED)
            self.transaction = None
            raise

    def _run(self, request: TransactionRequest) -> Any:
        if request.reference_block_id:
            reference_block_id = request.reference_block_id
        else:
            reference_block_id = self._connection.get_latest_block(sealed=False).id

        self._enter(ProtocolState.RESOLVE_PROPOSER)
        proposer = self._connection.get_account(request.proposer)
        proposer_key = find_account_key(proposer, self._identity.public_key_bytes)

        self._enter(ProtocolState.RESOLVE_PAYER)
        if normalize_address(request.payer) == proposer.address:
            payer, payer_key = proposer, proposer_key
        else:
            payer = self._connection.get_account(request.payer)
            payer_key = find_account_key(payer, self._identity.public_key_bytes)

        self._enter(ProtocolState.BUILD)
        tx = build_transaction(
            request,
            reference_block_id,
            ProposalKey(proposer.address, proposer_key.id, proposer_key.sequence_number),
            payer.address,
        )
        self.transaction = tx

        self._enter(ProtocolState.SIGN_PAYLOAD)
        private_key = self._identity.private_key_hex
        payload_signers: list[Signer] = []
        if proposer.address != payer.address:
            payload_signers.append(Signer(proposer.address, proposer_key.id, private_key))
        payload_signers.extend(request.payload_signers)
        envelope_signers = [Signer(payer.address, payer_key.id, private_key)]
        sign_transaction(tx, payload_signers, [])

        self._enter(ProtocolState.SIGN_ENVELOPE)
        sign_transaction(tx, [], envelope_signers)

        self._enter(ProtocolState.SUBMIT)
        result = self._connection.send_transaction(tx)
        _LOG.info(
            "submitted tx proposer=0x%s key=%d seq=%d",
            proposer.address, proposer_key.id, proposer_key.sequence_number,
        )
        return result
