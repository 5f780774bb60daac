"""Canonical Flow transaction encoding (RLP with a domain tag).

Delegates list/bytes serialization to the ``rlp`` library. Integers are
encoded as minimal big-endian byte strings, addresses as 8 bytes and the
reference block id as 32 bytes, matching the Flow access node's signable
form.
"""

import rlp
from eth_utils import remove_0x_prefix

from .errors import EncodingError
from .types import Transaction, normalize_address

DOMAIN_TAG_LENGTH = 32
TRANSACTION_DOMAIN_TAG = b"FLOW-V0.0-transaction".ljust(DOMAIN_TAG_LENGTH, b"\x00")
BLOCK_ID_LENGTH = 32


def _address(value: str) -> bytes:
    try:
        return bytes.fromhex(normalize_address(value))
    except ValueError as e:
        raise EncodingError(f"Invalid address {value!r}: {e}") from e


def _block_id(value: str) -> bytes:
    try:
        raw = bytes.fromhex(remove_0x_prefix(value))
    except ValueError as e:
        raise EncodingError(f"Invalid reference block id {value!r}: {e}") from e
    if len(raw) > BLOCK_ID_LENGTH:
        raise EncodingError(f"Reference block id longer than {BLOCK_ID_LENGTH} bytes")
    return raw.rjust(BLOCK_ID_LENGTH, b"\x00")


def payload_fields(tx: Transaction) -> list:
    """RLP field list for the transaction body, excluding signatures."""
    return [
        tx.script,
        list(tx.arguments),
        _block_id(tx.reference_block_id),
        tx.gas_limit,
        _address(tx.proposal_key.address),
        tx.proposal_key.key_id,
        tx.proposal_key.sequence_number,
        _address(tx.payer),
        [_address(a) for a in tx.authorizers],
    ]


def signer_indices(tx: Transaction) -> dict[str, int]:
    """Map each signing address to its position in proposer, payer, authorizers.

    Duplicates keep the index of their first occurrence.
    """
    indices: dict[str, int] = {}
    for address in [tx.proposal_key.address, tx.payer, *tx.authorizers]:
        key = normalize_address(address)
        if key not in indices:
            indices[key] = len(indices)
    return indices


def payload_signature_fields(tx: Transaction) -> list:
    indices = signer_indices(tx)
    fields = []
    for sig in tx.payload_signatures:
        address = normalize_address(sig.address)
        if address not in indices:
            raise EncodingError(
                f"Payload signer {address} is not the proposer, payer or an authorizer"
            )
        fields.append([indices[address], sig.key_id, sig.signature])
    return fields


def encode_payload(tx: Transaction) -> bytes:
    """Domain-tagged canonical payload message.

    Raises:
        EncodingError: If a field cannot be encoded.
    """
    try:
        return TRANSACTION_DOMAIN_TAG + rlp.encode(payload_fields(tx))
    except EncodingError:
        raise
    except Exception as e:
        raise EncodingError(f"Payload encoding failed: {e}") from e


def encode_envelope(tx: Transaction) -> bytes:
    """Domain-tagged canonical envelope message.

    The envelope covers the payload fields plus every payload signature in
    the order they were appended.

    Raises:
        EncodingError: If a field cannot be encoded.
    """
    try:
        return TRANSACTION_DOMAIN_TAG + rlp.encode(
            [payload_fields(tx), payload_signature_fields(tx)]
        )
    except EncodingError:
        raise
    except Exception as e:
        raise EncodingError(f"Envelope encoding failed: {e}") from e
