"""
Locker Crypto Primitives — PBKDF2, iterated SHA-256, HMAC, AES-GCM, CSPRNG.

Pure functions over bytes and strings. No business logic lives here; the
key pipeline, envelope codec and integrity protocol build on top.

Every provider failure is translated into the locker error taxonomy:
- PBKDF2/hash parameter problems -> KeyDerivationError
- GCM tag mismatch -> AuthenticationError
- HMAC mismatch -> IntegrityError

Security Note:
    Never log plaintext, key bytes or ciphertext values.
"""
import os
import base64
import binascii
import hashlib
import logging
import time
from typing import Union

from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..exceptions import (
    AuthenticationError,
    IntegrityError,
    KeyDerivationError,
    MalformedEnvelopeError,
)

logger = logging.getLogger("credlocker")

KEY_LENGTH = 32  # AES-256
NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # 128-bit GCM tag

BytesOrStr = Union[bytes, bytearray, str]


def _to_bytes(value: BytesOrStr) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(password: BytesOrStr, salt: bytes, iterations: int) -> bytes:
    """Derive a 32-byte AES-GCM key with PBKDF2-HMAC-SHA256.

    Args:
        password: Password string (UTF-8 encoded) or raw key bytes.
        salt: Salt bytes, must not be empty.
        iterations: PBKDF2 iteration count, at least 1.

    Returns:
        32-byte derived key.

    Raises:
        KeyDerivationError: If the parameters are rejected.
    """
    if iterations < 1:
        raise KeyDerivationError(
            f"Key derivation failed: iterations must be positive, got {iterations}"
        )
    if not salt:
        raise KeyDerivationError("Key derivation failed: empty salt")
    started = time.perf_counter()
    try:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=bytes(salt),
            iterations=iterations,
        )
        key = kdf.derive(_to_bytes(password))
    except (TypeError, ValueError, OverflowError) as err:
        raise KeyDerivationError(f"Key derivation failed: {err}") from err
    logger.debug(
        "PBKDF2 key with %d iterations derived in %.1f ms",
        iterations, (time.perf_counter() - started) * 1000,
    )
    return key


def hash_iterated(data: str, iterations: int) -> bytes:
    """SHA-256 of ``data``, then the digest re-hashed ``iterations`` times.

    Chained digest-of-digest, so the result is deterministic and always
    32 bytes.

    Raises:
        KeyDerivationError: If iterations is negative.
    """
    if iterations < 0:
        raise KeyDerivationError(
            f"Hash iterations cannot be negative, got {iterations}"
        )
    started = time.perf_counter()
    digest = hashlib.sha256(data.encode("utf-8")).digest()
    for _ in range(iterations):
        digest = hashlib.sha256(digest).digest()
    logger.debug(
        "Hash with %d iterations generated in %.1f ms",
        iterations, (time.perf_counter() - started) * 1000,
    )
    return digest


# ---------------------------------------------------------------------------
# HMAC
# ---------------------------------------------------------------------------

def hmac_sign(key: BytesOrStr, message: str) -> bytes:
    """Return HMAC-SHA256 of the UTF-8 encoded message."""
    key_bytes = _to_bytes(key)
    if not key_bytes:
        raise KeyDerivationError("HMAC key cannot be empty")
    mac = hmac.HMAC(key_bytes, hashes.SHA256())
    mac.update(message.encode("utf-8"))
    return mac.finalize()


def hmac_verify(key: BytesOrStr, message: str, signature: bytes) -> None:
    """Verify an HMAC-SHA256 signature in constant time.

    Raises:
        IntegrityError: If the signature does not match.
    """
    key_bytes = _to_bytes(key)
    if not key_bytes:
        raise KeyDerivationError("HMAC key cannot be empty")
    mac = hmac.HMAC(key_bytes, hashes.SHA256())
    mac.update(message.encode("utf-8"))
    try:
        mac.verify(bytes(signature))
    except InvalidSignature as err:
        raise IntegrityError() from err


# ---------------------------------------------------------------------------
# Randomness
# ---------------------------------------------------------------------------

def random_bytes(n: int) -> bytes:
    """Return ``n`` bytes from the OS CSPRNG."""
    return os.urandom(n)


# ---------------------------------------------------------------------------
# AES-GCM
# ---------------------------------------------------------------------------

def aead_encrypt(key: bytes, plaintext: str, iv: bytes, aad: str = "") -> bytes:
    """Encrypt plaintext with AES-256-GCM.

    Format: [encrypted_payload][GCM tag 16B]

    Args:
        key: 32-byte AES key.
        plaintext: Text to encrypt (UTF-8 encoded).
        iv: 12-byte nonce, must be unique per key.
        aad: Additional authenticated data ("" when unused).

    Returns:
        Ciphertext with the tag appended.
    """
    cipher = AESGCM(bytes(key))
    return cipher.encrypt(bytes(iv), plaintext.encode("utf-8"), aad.encode("utf-8"))


def aead_decrypt(key: bytes, ciphertext: bytes, iv: bytes, aad: str = "") -> str:
    """Decrypt AES-256-GCM ciphertext and return the UTF-8 plaintext.

    Raises:
        AuthenticationError: If the tag does not verify (wrong key,
            wrong AAD or tampered data).
    """
    cipher = AESGCM(bytes(key))
    try:
        data = cipher.decrypt(bytes(iv), bytes(ciphertext), aad.encode("utf-8"))
    except InvalidTag as err:
        raise AuthenticationError() from err
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as err:
        raise AuthenticationError("Decrypted secret is not valid text") from err


# ---------------------------------------------------------------------------
# Text encoding
# ---------------------------------------------------------------------------

def b64encode(data: bytes) -> str:
    """Standard base64 with padding, as ASCII text."""
    return base64.b64encode(data).decode("ascii")


def b64decode(text: str) -> bytes:
    """Strict base64 decoding.

    Raises:
        MalformedEnvelopeError: If the text is not valid base64.
    """
    try:
        return base64.b64decode(text.strip(), validate=True)
    except (binascii.Error, ValueError) as err:
        raise MalformedEnvelopeError(f"Invalid base64 data: {err}") from err
