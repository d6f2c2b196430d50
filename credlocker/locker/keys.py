"""
Locker Key Pipeline — Master key -> intermediate key material -> final keys.

Two-level PBKDF2 scheme:
- Intermediate layer: PBKDF2(master_key, SHA256^n(master_key)) -> 32B.
  The salt is derived from the master key itself, so the same master key
  always regenerates the same material and nothing needs to be stored.
- Final layer: PBKDF2(intermediate, random salt, random iterations) -> 32B,
  one fresh key per encryption.
- Signing keys: PBKDF2(intermediate, random salt, random iterations) used
  as an HMAC-SHA256 key; the salt and count travel with the signature.

Security Note:
    Intermediate material lives in a bytearray so it can be zeroed on
    unload. Never log it, nor the master key.
"""
import base64
import binascii
import logging
import secrets
import struct
from typing import Optional

import orjson

from ..exceptions import KeyDerivationError, MalformedEnvelopeError
from .config import VaultConfig, default_config
from .crypto import (
    KEY_LENGTH,
    b64decode,
    b64encode,
    derive_key,
    hash_iterated,
    hmac_sign,
    hmac_verify,
    random_bytes,
)

logger = logging.getLogger("credlocker")

KEY_ALGORITHM = "AES-GCM"
KEY_BITS = KEY_LENGTH * 8

SIGNATURE_SALT_SIZE = 32
SIGNATURE_SIZE = 32  # HMAC-SHA256
# salt | iterations (uint32) | signature
_SIGNATURE_HEADER = struct.Struct(f"!{SIGNATURE_SALT_SIZE}sI")


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(text + padding)


class IntermediateKeyMaterial:
    """Raw intermediate key bytes tagged with their algorithm and size.

    Exported form: ``AES-GCM-256:<base64(JWK JSON)>``.
    """

    __slots__ = ("_raw", "algorithm", "length")

    def __init__(self, raw: bytes, algorithm: str = KEY_ALGORITHM, length: int = KEY_BITS):
        if len(raw) * 8 != length:
            raise KeyDerivationError(
                f"Key material is {len(raw) * 8} bits, expected {length}"
            )
        self._raw = bytearray(raw)
        self.algorithm = algorithm
        self.length = length

    def __repr__(self) -> str:
        state = "wiped" if self.wiped else "loaded"
        return f"<IntermediateKeyMaterial {self.tag} ({state})>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IntermediateKeyMaterial):
            return NotImplemented
        return (
            self.tag == other.tag
            and secrets.compare_digest(bytes(self._raw), bytes(other._raw))
        )

    __hash__ = None

    @property
    def tag(self) -> str:
        return f"{self.algorithm}-{self.length}"

    @property
    def raw(self) -> bytes:
        if self.wiped:
            raise KeyDerivationError("Intermediate key material was wiped")
        return bytes(self._raw)

    @property
    def wiped(self) -> bool:
        return not any(self._raw)

    def wipe(self) -> None:
        """Overwrite the key bytes with zeros."""
        for i in range(len(self._raw)):
            self._raw[i] = 0

    def to_jwk(self) -> dict:
        return {
            "alg": f"A{self.length}GCM",
            "ext": True,
            "k": _b64url(self.raw),
            "key_ops": ["encrypt", "decrypt"],
            "kty": "oct",
        }

    def export(self) -> str:
        """Serialize as ``<algorithm>-<bits>:<base64 JWK>``."""
        jwk = orjson.dumps(self.to_jwk(), option=orjson.OPT_SORT_KEYS)
        return f"{self.tag}:{base64.b64encode(jwk).decode('ascii')}"

    @classmethod
    def load(cls, exported: str) -> "IntermediateKeyMaterial":
        """Rebuild key material from :meth:`export` output.

        Raises:
            KeyDerivationError: If the text is not a valid export.
        """
        tag, sep, payload = exported.partition(":")
        if not sep:
            raise KeyDerivationError("Invalid key format")
        algorithm, _, bits = tag.rpartition("-")
        try:
            length = int(bits)
            jwk = orjson.loads(base64.b64decode(payload, validate=True))
            raw = _b64url_decode(jwk["k"])
        except (ValueError, KeyError, TypeError, binascii.Error, orjson.JSONDecodeError) as err:
            raise KeyDerivationError(f"Invalid key format: {err}") from err
        if algorithm != KEY_ALGORITHM or jwk.get("kty") != "oct":
            raise KeyDerivationError(f"Unsupported key algorithm: {tag}")
        return cls(raw, algorithm=algorithm, length=length)


def derive_intermediate_key_material(
    master_key: str,
    iterations: int,
    hash_iterations: int,
) -> IntermediateKeyMaterial:
    """Derive the session's intermediate key material from a master key.

    Args:
        master_key: User supplied master key (surrounding spaces ignored).
        iterations: PBKDF2 iterations for this layer.
        hash_iterations: Extra SHA-256 rounds used to build the salt.

    Returns:
        Deterministic IntermediateKeyMaterial for (master_key, iterations).
    """
    secret = master_key.strip()
    if not secret:
        raise KeyDerivationError("Master key cannot be empty")
    salt = hash_iterated(secret, hash_iterations)
    raw = derive_key(secret, salt, iterations)
    logger.debug(
        "Intermediate key material derived (%d PBKDF2 / %d hash iterations)",
        iterations, hash_iterations,
    )
    return IntermediateKeyMaterial(raw)


def random_iterations(config: VaultConfig) -> int:
    """Pick a final-key iteration count from the configured range."""
    low = config.final_iteration_factor_min
    high = config.final_iteration_factor_max
    factor = low + secrets.randbelow(high - low + 1)
    return factor * config.final_iteration_multiplier


def derive_final_key(
    material: IntermediateKeyMaterial,
    salt: bytes,
    iterations: int,
) -> bytes:
    """Derive a per-encryption AES key from intermediate material."""
    return derive_key(material.raw, salt, iterations)


def check_iterations(iterations: int, ceiling: int) -> None:
    """Refuse iteration counts above ``ceiling`` before running PBKDF2.

    Raises:
        MalformedEnvelopeError: If the count exceeds the ceiling.
    """
    if iterations > ceiling:
        raise MalformedEnvelopeError(
            f"Iteration count {iterations} exceeds the limit of {ceiling}"
        )


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------

def sign(
    material: IntermediateKeyMaterial,
    message: str,
    config: Optional[VaultConfig] = None,
) -> str:
    """Sign ``message`` with a key derived from intermediate material.

    Each call derives a fresh HMAC key from a random salt and iteration
    count, both stored in front of the signature.

    Returns:
        Base64 of ``salt | iterations | HMAC-SHA256``.
    """
    config = config or default_config()
    salt = random_bytes(SIGNATURE_SALT_SIZE)
    iterations = random_iterations(config)
    key = derive_key(material.raw, salt, iterations)
    signature = hmac_sign(key, message)
    return b64encode(_SIGNATURE_HEADER.pack(salt, iterations) + signature)


def verify(
    material: IntermediateKeyMaterial,
    signed: str,
    message: str,
    max_iterations: Optional[int] = None,
) -> None:
    """Verify a value produced by :func:`sign`.

    Args:
        material: Intermediate key material of the signer.
        signed: Base64 signed value.
        message: The message that was signed.
        max_iterations: Optional ceiling for the embedded iteration count.

    Raises:
        MalformedEnvelopeError: If the signed value cannot be decoded.
        IntegrityError: If the signature does not match.
    """
    data = b64decode(signed)
    if len(data) != _SIGNATURE_HEADER.size + SIGNATURE_SIZE:
        raise MalformedEnvelopeError(
            f"Signature is {len(data)} bytes, expected "
            f"{_SIGNATURE_HEADER.size + SIGNATURE_SIZE}"
        )
    salt, iterations = _SIGNATURE_HEADER.unpack_from(data)
    if iterations < 1:
        raise MalformedEnvelopeError("Signature iteration count must be positive")
    if max_iterations is not None:
        check_iterations(iterations, max_iterations)
    key = derive_key(material.raw, salt, iterations)
    hmac_verify(key, message, data[_SIGNATURE_HEADER.size:])
