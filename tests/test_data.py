"""
Tests for the Vault snapshot model.

Tests cover:
- Copy-on-write mutations
- Integrity field ordering
- Mapping-style access
- Read-only sections
"""
import pytest
from pydantic import ValidationError

from credlocker.data import Vault


@pytest.fixture
def vault() -> Vault:
    return Vault(secrets={"email": "QUJD"}, integrity={"DATE": "2024-05-17", "HMAC": "c2ln"})


class TestVault:
    """Vault snapshot behaviour."""

    def test_empty_vault(self):
        vault = Vault()
        assert vault.empty
        assert len(vault) == 0
        assert not vault.sealed

    def test_properties(self, vault):
        assert vault.date == "2024-05-17"
        assert vault.hmac == "c2ln"
        assert vault.sealed
        assert vault["email"] == "QUJD"
        assert "email" in vault

    def test_with_secret_returns_new_snapshot(self, vault):
        updated = vault.with_secret("bank", "RUZH")
        assert "bank" in updated
        assert "bank" not in vault
        assert updated.names() == ["email", "bank"]

    def test_without_secret(self, vault):
        updated = vault.with_secret("bank", "RUZH").without_secret("email")
        assert updated.names() == ["bank"]
        assert vault.names() == ["email"]

    def test_without_unknown_secret(self, vault):
        with pytest.raises(KeyError):
            vault.without_secret("missing")

    def test_hmac_stays_last(self, vault):
        updated = vault.with_integrity(DATE="2024-06-01", VERSION="2")
        assert list(updated.integrity) == ["DATE", "VERSION", "HMAC"]

    def test_frozen(self, vault):
        with pytest.raises(ValidationError):
            vault.secrets = {}

    def test_sections_are_read_only(self, vault):
        """Snapshots cannot be changed in place."""
        with pytest.raises(TypeError):
            vault.secrets["bank"] = "RUZH"
        with pytest.raises(TypeError):
            vault.integrity["HMAC"] = "Zm9v"
        assert "bank" not in vault
        assert vault.hmac == "c2ln"

    def test_input_dict_is_copied(self):
        source = {"email": "QUJD"}
        vault = Vault(secrets=source)
        source["bank"] = "RUZH"
        assert vault.names() == ["email"]

    def test_dump_gives_plain_dicts(self, vault):
        assert vault.model_dump() == {
            "secrets": {"email": "QUJD"},
            "integrity": {"DATE": "2024-05-17", "HMAC": "c2ln"},
        }

    def test_iter_secrets(self, vault):
        assert list(vault.iter_secrets()) == [("email", "QUJD")]
