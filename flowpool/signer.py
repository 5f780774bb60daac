"""ECDSA P-256 / SHA3-256 signing: digests, signatures, key identities."""

import hashlib

from ecdsa import BadSignatureError, NIST256p, SigningKey, VerifyingKey
from ecdsa.util import sigdecode_string, sigencode_string
from eth_utils import remove_0x_prefix

from .errors import IdentityError, SignatureError

CURVE = NIST256p
SIGNATURE_LENGTH = 64


def digest(message: bytes) -> bytes:
    """SHA3-256 digest of *message* (32 bytes)."""
    return hashlib.sha3_256(message).digest()


def _decode_hex(value: str | bytes, field_name: str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    try:
        return bytes.fromhex(remove_0x_prefix(value.strip()))
    except (AttributeError, ValueError) as e:
        raise IdentityError(f"{field_name} is not valid hex: {e}") from e


def _signing_key(private_key: str | bytes) -> SigningKey:
    raw = _decode_hex(private_key, "private key")
    if len(raw) != CURVE.baselen:
        raise IdentityError(
            f"Invalid private key: expected {CURVE.baselen} bytes, got {len(raw)}"
        )
    try:
        return SigningKey.from_string(raw, curve=CURVE, hashfunc=hashlib.sha3_256)
    except Exception as e:
        raise IdentityError(f"Invalid private key: {e}") from e


def sign(private_key: str | bytes, message_digest: bytes) -> bytes:
    """Sign a digest, returning the 64-byte ``r || s`` signature.

    Args:
        private_key: Hex-encoded (optionally 0x-prefixed) or raw 32-byte
            P-256 private key.
        message_digest: 32-byte SHA3-256 digest.

    Raises:
        IdentityError: If the private key cannot be decoded.
    """
    sk = _signing_key(private_key)
    return sk.sign_digest_deterministic(
        message_digest, hashfunc=hashlib.sha3_256, sigencode=sigencode_string
    )


def verify(public_key: str | bytes, signature: bytes, message_digest: bytes) -> None:
    """Verify a 64-byte ``r || s`` signature over a digest.

    Raises:
        SignatureError: If verification fails.
    """
    try:
        vk = VerifyingKey.from_string(
            _decode_hex(public_key, "public key"), curve=CURVE, hashfunc=hashlib.sha3_256
        )
        vk.verify_digest(signature, message_digest, sigdecode=sigdecode_string)
    except BadSignatureError as e:
        raise SignatureError(f"Signature verification failed: {e}") from e
    except Exception as e:
        raise SignatureError(f"Verification error: {e}") from e


class SigningIdentity:
    """A P-256 key pair bound to one key index on a Flow account."""

    def __init__(self, key_index: int, signing_key: SigningKey):
        self._key_index = int(key_index)
        self._signing_key = signing_key

    @classmethod
    def generate(cls, key_index: int = 0) -> "SigningIdentity":
        """Generate a new random keypair (in-memory only)."""
        return cls(key_index, SigningKey.generate(curve=CURVE, hashfunc=hashlib.sha3_256))

    @classmethod
    def from_hex(
        cls,
        key_index: int,
        private_key: str,
        public_key: str | None = None,
    ) -> "SigningIdentity":
        """Build an identity from hex key material.

        The public key is derived when omitted.

        Raises:
            IdentityError: If the keys are malformed or the supplied public
                key does not belong to the private key.
        """
        identity = cls(key_index, _signing_key(private_key))
        if public_key:
            supplied = _decode_hex(public_key, "public key")
            if supplied != identity.public_key_bytes:
                raise IdentityError(
                    f"Public key does not match private key for key index {key_index}"
                )
        return identity

    @property
    def key_index(self) -> int:
        return self._key_index

    @property
    def public_key_bytes(self) -> bytes:
        """Raw 64-byte uncompressed public key (x || y, no 0x04 prefix)."""
        return self._signing_key.get_verifying_key().to_string()

    @property
    def public_key_hex(self) -> str:
        return self.public_key_bytes.hex()

    @property
    def private_key_hex(self) -> str:
        return self._signing_key.to_string().hex()

    def sign(self, message: bytes) -> bytes:
        """Hash *message* with SHA3-256 and sign the digest."""
        return sign(self._signing_key.to_string(), digest(message))

    def __repr__(self) -> str:
        return f"SigningIdentity(key_index={self._key_index}, public_key={self.public_key_hex[:16]}...)"
