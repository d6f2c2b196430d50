"""CredLocker.

Offline credential locker: named secrets sealed with AES-GCM under keys
derived from one master key, stored in a self-describing text file whose
integrity is guarded by an HMAC.
"""
from .version import __version__
from .data import Vault
from .exceptions import (
    CredLockerError,
    KeyDerivationError,
    AuthenticationError,
    MalformedEnvelopeError,
    StructuralError,
    IntegrityError,
    PolicyError,
    LockerUnloadedError,
)
from .locker import (
    VaultConfig,
    CredentialLocker,
    VaultSession,
    VaultState,
    encrypt_secret,
    decrypt_secret,
    serialize,
    parse_and_validate,
    compute_file_hmac,
    seal,
)

__all__ = (
    "__version__",
    "Vault",
    "CredLockerError",
    "KeyDerivationError",
    "AuthenticationError",
    "MalformedEnvelopeError",
    "StructuralError",
    "IntegrityError",
    "PolicyError",
    "LockerUnloadedError",
    "VaultConfig",
    "CredentialLocker",
    "VaultSession",
    "VaultState",
    "encrypt_secret",
    "decrypt_secret",
    "serialize",
    "parse_and_validate",
    "compute_file_hmac",
    "seal",
)
