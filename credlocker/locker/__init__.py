"""Credential Locker — Encrypted secrets inside an HMAC-guarded text file.

Security Note (Threat Model):
    The master key and intermediate key material live in process memory
    for the whole session and are only zeroed on ``unload()``. There is
    no stored verifier and no recovery path: a lost master key means the
    secrets are lost for good.
"""

from .config import VaultConfig
from .envelope import Envelope, peek_aad_flag
from .integrity import (
    compute_file_hmac,
    parse_and_validate,
    seal,
    serialize,
)
from .keys import (
    IntermediateKeyMaterial,
    derive_intermediate_key_material,
    sign,
    verify,
)
from .protocol import CredentialLocker, decrypt_secret, encrypt_secret
from .session import VaultSession, VaultState

__all__ = [
    "VaultConfig",
    "Envelope",
    "peek_aad_flag",
    "compute_file_hmac",
    "parse_and_validate",
    "seal",
    "serialize",
    "IntermediateKeyMaterial",
    "derive_intermediate_key_material",
    "sign",
    "verify",
    "CredentialLocker",
    "encrypt_secret",
    "decrypt_secret",
    "VaultSession",
    "VaultState",
]
