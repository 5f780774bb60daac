"""JSON-Cadence argument values.

Transaction and script arguments travel as JSON-Cadence documents. They are
serialized with the ``jcs`` library (RFC 8785) so the same value always
produces the same bytes, which matters because argument bytes are part of
the signed payload.
"""

import json
from decimal import Decimal
from typing import Any

import jcs as _jcs

from .errors import EncodingError
from .types import normalize_address

UFIX64_MAX = Decimal("184467440737.09551615")
UFIX64_STEP = Decimal("0.00000001")


def String(value: str) -> dict:
    return {"type": "String", "value": str(value)}


def Bool(value: bool) -> dict:
    return {"type": "Bool", "value": bool(value)}


def Int(value: int) -> dict:
    return {"type": "Int", "value": str(int(value))}


def UInt64(value: int) -> dict:
    if value < 0 or value > 2**64 - 1:
        raise EncodingError(f"UInt64 out of range: {value}")
    return {"type": "UInt64", "value": str(int(value))}


def UFix64(value: str | int | Decimal) -> dict:
    """Fixed-point value with exactly eight decimal places."""
    try:
        amount = Decimal(str(value))
    except ArithmeticError as e:
        raise EncodingError(f"UFix64 is not a number: {value!r}") from e
    if not amount.is_finite():
        raise EncodingError(f"UFix64 is not a number: {value!r}")
    if amount < 0:
        raise EncodingError(f"UFix64 must be non-negative: {value}")
    if amount > UFIX64_MAX:
        raise EncodingError(f"UFix64 out of range: {value}")
    if amount.quantize(UFIX64_STEP) != amount:
        raise EncodingError(f"UFix64 has more than 8 decimal places: {value}")
    return {"type": "UFix64", "value": f"{amount:.8f}"}


def Address(value: str) -> dict:
    return {"type": "Address", "value": "0x" + normalize_address(value)}


def Array(values: list) -> dict:
    return {"type": "Array", "value": [to_cadence(v) for v in values]}


def Dictionary(entries: dict) -> dict:
    return {
        "type": "Dictionary",
        "value": [{"key": to_cadence(k), "value": to_cadence(v)} for k, v in entries.items()],
    }


def Optional(value: Any = None) -> dict:
    return {"type": "Optional", "value": None if value is None else to_cadence(value)}


def _is_cadence(value: Any) -> bool:
    return isinstance(value, dict) and "type" in value and "value" in value


def to_cadence(value: Any) -> dict:
    """Convert a plain Python value to JSON-Cadence.

    Values that are already JSON-Cadence documents pass through unchanged.
    ``bool`` maps to Bool, ``int`` to Int, ``str`` to String, ``Decimal`` to
    UFix64, ``list``/``tuple`` to Array, ``dict`` to Dictionary and ``None``
    to an empty Optional.

    Raises:
        EncodingError: If the value has no Cadence mapping.
    """
    if _is_cadence(value):
        return value
    if isinstance(value, bool):
        return Bool(value)
    if isinstance(value, int):
        return Int(value)
    if isinstance(value, str):
        return String(value)
    if isinstance(value, Decimal):
        return UFix64(value)
    if isinstance(value, (list, tuple)):
        return Array(list(value))
    if isinstance(value, dict):
        return Dictionary(value)
    if value is None:
        return Optional()
    raise EncodingError(f"No Cadence mapping for {type(value).__name__}")


def encode_argument(value: Any) -> bytes:
    """Encode one argument to canonical JSON-Cadence bytes.

    ``bytes`` are taken as already encoded.
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    try:
        return _jcs.canonicalize(to_cadence(value))
    except EncodingError:
        raise
    except Exception as e:
        raise EncodingError(f"Argument encoding failed: {e}") from e


def encode_arguments(values: list | tuple | None) -> list[bytes]:
    return [encode_argument(v) for v in values or []]


_INTEGER_TYPES = frozenset({
    "Int", "Int8", "Int16", "Int32", "Int64", "Int128", "Int256",
    "UInt", "UInt8", "UInt16", "UInt32", "UInt64", "UInt128", "UInt256",
    "Word8", "Word16", "Word32", "Word64",
})
_FIXED_TYPES = frozenset({"Fix64", "UFix64"})
_COMPOSITE_TYPES = frozenset({"Struct", "Resource", "Event", "Contract", "Enum"})


def from_cadence(value: dict) -> Any:
    """Convert a JSON-Cadence document into plain Python values.

    Unknown types are returned as the raw document.
    """
    kind = value.get("type")
    inner = value.get("value")
    if kind in _INTEGER_TYPES:
        return int(inner)
    if kind in _FIXED_TYPES:
        return Decimal(inner)
    if kind in ("String", "Character", "Bool", "Address"):
        return inner
    if kind == "Void":
        return None
    if kind == "Optional":
        return None if inner is None else from_cadence(inner)
    if kind == "Array":
        return [from_cadence(v) for v in inner]
    if kind == "Dictionary":
        return {from_cadence(e["key"]): from_cadence(e["value"]) for e in inner}
    if kind in _COMPOSITE_TYPES:
        return {f["name"]: from_cadence(f["value"]) for f in inner.get("fields", [])}
    return value


def decode_result(raw: bytes | str) -> Any:
    """Decode a JSON-Cadence script result into plain Python values."""
    try:
        return from_cadence(json.loads(raw))
    except (ValueError, TypeError, KeyError, AttributeError) as e:
        raise EncodingError(f"Cannot decode script result: {e}") from e
