"""
VaultSession — Lifecycle of one vault file bound to one master key.

States:
    EMPTY    -> nothing loaded or every secret removed
    LOADED   -> parsed from text (or just saved), HMAC verified
    MODIFIED -> secrets added/removed since the last load or save

Every mutation builds a new :class:`~credlocker.data.Vault` snapshot and
then reseals it, so the HMAC always covers the snapshot it is stored in.
"""
import logging
from enum import Enum
from typing import Optional

from ..data import Vault
from .config import VaultConfig, default_config
from .integrity import parse_and_validate, seal, serialize
from .protocol import CredentialLocker

logger = logging.getLogger("credlocker")

_NAME_MAX_LENGTH = 255


class VaultState(str, Enum):
    EMPTY = "empty"
    LOADED = "loaded"
    MODIFIED = "modified"


class VaultSession:
    """Vault file editing session.

    Wraps a :class:`CredentialLocker` for per-secret encryption and keeps
    the current vault snapshot plus its lifecycle state.
    """

    def __init__(
        self,
        master_key: str,
        config: Optional[VaultConfig] = None,
        check_policy: bool = True,
    ):
        self._config = config or default_config()
        if check_policy:
            self._config.check_master_key(master_key)
        self._check_policy = check_policy
        self._locker = CredentialLocker(master_key, self._config)
        self._vault = Vault()
        self._state = VaultState.EMPTY

    def __repr__(self) -> str:
        return (
            f'<VaultSession [{self._state.value}] '
            f'secrets={len(self._vault)}>'
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> VaultState:
        return self._state

    @property
    def vault(self) -> Vault:
        return self._vault

    @property
    def secrets(self) -> dict[str, str]:
        return dict(self._vault.secrets)

    @property
    def locker(self) -> CredentialLocker:
        return self._locker

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate_name(self, name: str) -> None:
        """Validate a secret name.

        Raises:
            ValueError: If name is empty, too long, or contains ':' or
                a non-printable character (line breaks included).
        """
        if not name or not name.strip():
            raise ValueError("Secret name cannot be empty")
        if name != name.strip():
            raise ValueError("Secret name cannot start or end with spaces")
        if len(name) > _NAME_MAX_LENGTH:
            raise ValueError(
                f"Secret name cannot exceed {_NAME_MAX_LENGTH} characters"
            )
        if ":" in name:
            raise ValueError("Secret name cannot contain ':'")
        # str.splitlines() also breaks on \v, \f, \x1c-\x1e, \x85 and \u2028
        if not name.isprintable():
            raise ValueError(
                "Secret name cannot contain line breaks or control characters"
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _commit(self, vault: Vault, state: VaultState) -> None:
        self._vault = vault
        self._state = state

    def load(self, text: str) -> Vault:
        """Parse and verify vault text, replacing the current snapshot.

        On failure the previous snapshot and state are kept.
        """
        vault = parse_and_validate(
            text, self._locker.master_key, max_size=self._config.file_size,
        )
        self._commit(vault, VaultState.LOADED)
        return vault

    async def add_secret(self, name: str, plaintext: str, aad: str = "") -> str:
        """Encrypt a secret and add it under ``name``.

        Returns:
            The base64 envelope stored in the vault.

        Raises:
            ValueError: If the name is invalid or already used.
            PolicyError: If the secret or AAD violates the length policy.
        """
        self._validate_name(name)
        if name in self._vault:
            raise ValueError(f"Secret '{name}' already exists")
        if self._check_policy:
            self._config.check_secret(plaintext)
            self._config.check_aad(aad)
        envelope = await self._locker.encrypt_secret(plaintext, aad)
        if name in self._vault:
            raise ValueError(f"Secret '{name}' already exists")
        # mutate first, then seal the snapshot just produced
        snapshot = self._vault.with_secret(name, envelope)
        self._commit(seal(snapshot, self._locker.master_key), VaultState.MODIFIED)
        logger.debug("Secret added: name=%s", name)
        return envelope

    def remove_secret(self, name: str) -> None:
        """Remove a secret; removing the last one empties the vault.

        Raises:
            KeyError: If the secret does not exist.
        """
        snapshot = self._vault.without_secret(name)
        if snapshot.empty:
            self.reset()
        else:
            self._commit(seal(snapshot, self._locker.master_key), VaultState.MODIFIED)
        logger.debug("Secret removed: name=%s", name)

    async def decrypt_secret(self, name: str, aad: str = "") -> str:
        """Decrypt the secret stored under ``name``."""
        return await self._locker.decrypt_secret(self._vault[name], aad)

    def dump(self) -> str:
        """Serialized text of the current snapshot."""
        return serialize(self._vault)

    def mark_saved(self) -> None:
        """Record that the current snapshot was handed out for saving."""
        if self._state is VaultState.MODIFIED:
            self._state = VaultState.LOADED

    def reset(self) -> None:
        """Drop every secret but keep the master key loaded."""
        self._commit(Vault(), VaultState.EMPTY)

    def unload(self) -> None:
        """Drop every secret and wipe the master key."""
        self.reset()
        self._locker.unload()
        logger.info("Vault session unloaded")
