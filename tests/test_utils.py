"""
Tests for display and generation helpers.

Tests cover:
- Master key and secret masking
- Password generation character classes
"""
import pytest

from credlocker.utils import (
    DIGIT_CHARS,
    LOWERCASE_CHARS,
    SYMBOL_CHARS,
    UPPERCASE_CHARS,
    bytes_to_mb,
    generate_password,
    mask_master_key,
    mask_secret,
)


class TestMasking:
    """Masking helpers."""

    def test_mask_master_key(self):
        assert mask_master_key("CorrectHorseBattery1!") == "Co" + "*" * 16 + "y1"

    def test_mask_short_master_key(self):
        assert mask_master_key("abcde") == ""

    def test_mask_master_key_capped(self):
        assert len(mask_master_key("x" * 32)) == 20

    def test_mask_secret(self):
        assert mask_secret("p@ssw0rd") == "******rd"

    def test_mask_short_secret(self):
        assert mask_secret("ab") == "ab"

    def test_bytes_to_mb(self):
        assert bytes_to_mb(1024 * 1024) == 1


class TestGeneratePassword:
    """CSPRNG password generator."""

    def test_default_length_and_classes(self):
        password = generate_password()
        assert len(password) == 16
        assert any(c in UPPERCASE_CHARS for c in password)
        assert any(c in LOWERCASE_CHARS for c in password)
        assert all(c in UPPERCASE_CHARS + LOWERCASE_CHARS for c in password)

    def test_every_enabled_class_present(self):
        for _ in range(20):
            password = generate_password(8, digits=True, symbols=True)
            assert any(c in DIGIT_CHARS for c in password)
            assert any(c in SYMBOL_CHARS for c in password)

    def test_only_digits(self):
        password = generate_password(12, uppercase=False, lowercase=False, digits=True)
        assert password.isdigit()

    def test_no_class_enabled(self):
        with pytest.raises(ValueError):
            generate_password(uppercase=False, lowercase=False)

    def test_length_too_small(self):
        with pytest.raises(ValueError):
            generate_password(2, digits=True, symbols=True)

    def test_passwords_differ(self):
        assert generate_password(32) != generate_password(32)
