"""
Tests for the primitive layer.

Tests cover:
- PBKDF2 key derivation (known vector, parameter errors)
- Iterated SHA-256 chaining
- HMAC sign/verify
- AES-GCM encrypt/decrypt and tag failures
- Strict base64 helpers
"""
import hashlib
import hmac as std_hmac

import pytest

from credlocker.exceptions import (
    AuthenticationError,
    IntegrityError,
    KeyDerivationError,
    MalformedEnvelopeError,
)
from credlocker.locker import crypto


class TestDeriveKey:
    """PBKDF2-HMAC-SHA256 wrapper."""

    def test_known_vector(self):
        """Matches the published PBKDF2-HMAC-SHA256 vector (1 iteration)."""
        key = crypto.derive_key("password", b"salt", 1)
        assert key.hex() == (
            "120fb6cffcf8b32c43e7225256c4f837"
            "a86548c92ccc35480805987cb70be17b"
        )

    def test_str_and_bytes_password_agree(self):
        """A str password is UTF-8 encoded before derivation."""
        salt = b"s" * 32
        assert crypto.derive_key("pässword", salt, 10) == crypto.derive_key(
            "pässword".encode("utf-8"), salt, 10
        )

    def test_zero_iterations_rejected(self):
        """Zero iterations raise KeyDerivationError."""
        with pytest.raises(KeyDerivationError):
            crypto.derive_key("password", b"salt", 0)

    def test_empty_salt_rejected(self):
        """An empty salt raises KeyDerivationError."""
        with pytest.raises(KeyDerivationError):
            crypto.derive_key("password", b"", 10)


class TestHashIterated:
    """Chained SHA-256."""

    def test_zero_iterations_is_plain_sha256(self):
        """With 0 extra rounds the result is SHA-256 of the input."""
        assert crypto.hash_iterated("abc", 0) == hashlib.sha256(b"abc").digest()

    def test_chains_digest_of_digest(self):
        """Each extra round hashes the previous digest, not the input."""
        expected = hashlib.sha256(b"abc").digest()
        for _ in range(3):
            expected = hashlib.sha256(expected).digest()
        assert crypto.hash_iterated("abc", 3) == expected

    def test_deterministic(self):
        """Same input and rounds always give the same digest."""
        assert crypto.hash_iterated("key", 50) == crypto.hash_iterated("key", 50)
        assert crypto.hash_iterated("key", 50) != crypto.hash_iterated("key", 51)

    def test_negative_iterations_rejected(self):
        with pytest.raises(KeyDerivationError):
            crypto.hash_iterated("abc", -1)


class TestHmac:
    """HMAC-SHA256 sign/verify."""

    def test_matches_stdlib(self):
        """Signature equals the standard library HMAC-SHA256."""
        expected = std_hmac.new(b"key", b"message", hashlib.sha256).digest()
        assert crypto.hmac_sign("key", "message") == expected

    def test_verify_accepts_valid_signature(self):
        signature = crypto.hmac_sign("key", "message")
        crypto.hmac_verify("key", "message", signature)

    def test_verify_rejects_other_message(self):
        """A different message raises IntegrityError."""
        signature = crypto.hmac_sign("key", "message")
        with pytest.raises(IntegrityError):
            crypto.hmac_verify("key", "message!", signature)

    def test_verify_rejects_other_key(self):
        signature = crypto.hmac_sign("key", "message")
        with pytest.raises(IntegrityError):
            crypto.hmac_verify("other", "message", signature)


class TestAead:
    """AES-256-GCM round-trip and error handling."""

    @pytest.fixture
    def key(self):
        return crypto.random_bytes(32)

    def test_roundtrip_with_aad(self, key):
        """Encrypt then decrypt with the same AAD returns the plaintext."""
        iv = crypto.random_bytes(crypto.NONCE_SIZE)
        ct = crypto.aead_encrypt(key, "secret value", iv, "context")
        assert crypto.aead_decrypt(key, ct, iv, "context") == "secret value"

    def test_tag_is_appended(self, key):
        """Ciphertext is plaintext length plus the 16-byte tag."""
        iv = crypto.random_bytes(crypto.NONCE_SIZE)
        ct = crypto.aead_encrypt(key, "abcd", iv)
        assert len(ct) == 4 + crypto.TAG_SIZE

    def test_wrong_aad_raises(self, key):
        iv = crypto.random_bytes(crypto.NONCE_SIZE)
        ct = crypto.aead_encrypt(key, "secret", iv, "aad-one")
        with pytest.raises(AuthenticationError):
            crypto.aead_decrypt(key, ct, iv, "aad-two")

    def test_wrong_key_raises(self, key):
        iv = crypto.random_bytes(crypto.NONCE_SIZE)
        ct = crypto.aead_encrypt(key, "secret", iv)
        with pytest.raises(AuthenticationError):
            crypto.aead_decrypt(crypto.random_bytes(32), ct, iv)

    def test_tampered_ciphertext_raises(self, key):
        """Flipping the last byte breaks the tag."""
        iv = crypto.random_bytes(crypto.NONCE_SIZE)
        ct = bytearray(crypto.aead_encrypt(key, "secret", iv))
        ct[-1] ^= 0xFF
        with pytest.raises(AuthenticationError):
            crypto.aead_decrypt(key, bytes(ct), iv)


class TestBase64:
    """Strict base64 helpers."""

    def test_invalid_base64_raises(self):
        with pytest.raises(MalformedEnvelopeError):
            crypto.b64decode("not*base64!")

    def test_non_ascii_raises(self):
        with pytest.raises(MalformedEnvelopeError):
            crypto.b64decode("ñññ")

    def test_decode_of_encode(self):
        assert crypto.b64decode(crypto.b64encode(b"\x00\xffdata")) == b"\x00\xffdata"
