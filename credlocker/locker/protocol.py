"""
CredentialLocker — Per-secret encryption bound to one master key.

Provides the public API of the Credential Locker protocol:
- ``encrypt_secret(plaintext, aad)`` — seal a secret into a base64 envelope
- ``decrypt_secret(envelope, aad)`` — open a base64 envelope
- ``sign(message)`` / ``verify(signed, message)`` — per-consumer signatures
- ``intermediate_key()`` — derive (once) and return the key material
- ``unload()`` — wipe the master key and derived material

PBKDF2 work is CPU bound and deliberately slow; it runs through
``asyncio.to_thread`` so awaiting callers suspend instead of blocking the
event loop.

Security Note:
    Never log plaintext, AAD, master keys or ciphertext values. Only log
    operations, iteration counts and key names.
"""
import asyncio
import logging
from datetime import date as date_cls
from typing import Optional

from ..exceptions import AuthenticationError, LockerUnloadedError
from .config import VaultConfig, default_config
from .crypto import NONCE_SIZE, aead_decrypt, aead_encrypt, random_bytes
from .envelope import (
    AAD_NOT_USED,
    AAD_USED,
    SALT_SIZE,
    Envelope,
    from_base64,
    to_base64,
)
from .keys import (
    IntermediateKeyMaterial,
    check_iterations,
    derive_final_key,
    derive_intermediate_key_material,
    random_iterations,
    sign as sign_message,
    verify as verify_signature,
)

logger = logging.getLogger("credlocker")


def _normalize_aad(aad: Optional[str]) -> str:
    """Blank AAD means no AAD at all."""
    if aad is None or not aad.strip():
        return ""
    return aad


class CredentialLocker:
    """Encryption context for one master key.

    Construct one instance per active session and call :meth:`unload`
    when the session ends. Intermediate key material is derived lazily
    on first use and cached until unload.
    """

    def __init__(self, master_key: str, config: Optional[VaultConfig] = None):
        self._master_key: Optional[str] = master_key
        self._config = config or default_config()
        self._material: Optional[IntermediateKeyMaterial] = None
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        state = "unloaded" if self.unloaded else "loaded"
        return f"<CredentialLocker [{state}]>"

    @property
    def config(self) -> VaultConfig:
        return self._config

    @property
    def unloaded(self) -> bool:
        return self._master_key is None

    @property
    def master_key(self) -> str:
        if self._master_key is None:
            raise LockerUnloadedError()
        return self._master_key

    # ------------------------------------------------------------------
    # Key material
    # ------------------------------------------------------------------

    async def intermediate_key(self) -> IntermediateKeyMaterial:
        """Return cached intermediate key material, deriving it once."""
        master_key = self.master_key
        async with self._lock:
            if self._material is None:
                material = await asyncio.to_thread(
                    derive_intermediate_key_material,
                    master_key,
                    self._config.intermediate_iterations,
                    self._config.master_key_hash_iterations,
                )
                if self.unloaded:
                    material.wipe()
                    raise LockerUnloadedError()
                self._material = material
            return self._material

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def encrypt_secret(self, plaintext: str, aad: str = "") -> str:
        """Encrypt a secret into a base64 envelope.

        Args:
            plaintext: Secret value.
            aad: Optional additional authenticated data; blank means none.

        Returns:
            Base64 envelope string.
        """
        aad = _normalize_aad(aad)
        material = await self.intermediate_key()
        salt = random_bytes(SALT_SIZE)
        iterations = random_iterations(self._config)
        key = await asyncio.to_thread(derive_final_key, material, salt, iterations)
        iv = random_bytes(NONCE_SIZE)
        ciphertext = aead_encrypt(key, plaintext, iv, aad)
        envelope = Envelope(
            aad_flag=AAD_USED if aad else AAD_NOT_USED,
            date=date_cls.today().isoformat(),
            salt=salt,
            iv=iv,
            iterations=iterations,
            ciphertext=ciphertext,
        )
        logger.debug(
            "Secret encrypted (aad=%s, final iterations=%d)", bool(aad), iterations,
        )
        return to_base64(envelope)

    async def decrypt_secret(self, envelope: str, aad: str = "") -> str:
        """Decrypt a base64 envelope.

        Raises:
            MalformedEnvelopeError: If the envelope cannot be decoded or
                asks for more than ``max_final_iterations``.
            AuthenticationError: If the key, AAD or ciphertext is wrong.
        """
        aad = _normalize_aad(aad)
        sealed = from_base64(envelope)
        check_iterations(sealed.iterations, self._config.max_final_iterations)
        material = await self.intermediate_key()
        key = await asyncio.to_thread(
            derive_final_key, material, sealed.salt, sealed.iterations,
        )
        try:
            return aead_decrypt(key, sealed.ciphertext, sealed.iv, aad)
        except AuthenticationError:
            logger.debug(
                "Secret decryption failed (aad expected=%s, given=%s)",
                sealed.aad_used, bool(aad),
            )
            raise

    async def sign(self, message: str) -> str:
        """Sign a message with a key derived from this locker's material."""
        material = await self.intermediate_key()
        return await asyncio.to_thread(sign_message, material, message, self._config)

    async def verify(self, signed: str, message: str) -> None:
        """Verify a signature made by :meth:`sign` with the same master key.

        Raises:
            MalformedEnvelopeError: If the signed value cannot be decoded.
            IntegrityError: If the signature does not match.
        """
        material = await self.intermediate_key()
        await asyncio.to_thread(
            verify_signature, material, signed, message, self._config.max_final_iterations,
        )

    def unload(self) -> None:
        """Forget the master key and zero the derived key material."""
        if self._material is not None:
            self._material.wipe()
            self._material = None
        self._master_key = None
        logger.debug("Master key unloaded")


async def encrypt_secret(
    master_key: str,
    plaintext: str,
    aad: str = "",
    config: Optional[VaultConfig] = None,
) -> str:
    """One-shot encryption with a transient :class:`CredentialLocker`."""
    locker = CredentialLocker(master_key, config)
    try:
        return await locker.encrypt_secret(plaintext, aad)
    finally:
        locker.unload()


async def decrypt_secret(
    master_key: str,
    envelope: str,
    aad: str = "",
    config: Optional[VaultConfig] = None,
) -> str:
    """One-shot decryption with a transient :class:`CredentialLocker`."""
    locker = CredentialLocker(master_key, config)
    try:
        return await locker.decrypt_secret(envelope, aad)
    finally:
        locker.unload()
