"""
CredLocker errors.

Every failure the locker can report derives from :class:`CredLockerError`.
Lower layers raise these directly; upper layers may re-raise them with
more context (``raise ... from err``) but never swallow them.
"""


class CredLockerError(Exception):
    """Base class for all locker errors."""

    message: str = "Credential locker error"

    def __init__(self, message: str = None, *args):
        super().__init__(message or self.message, *args)


class KeyDerivationError(CredLockerError):
    """PBKDF2/SHA-256 rejected the derivation parameters."""

    message = "Key derivation failed"


class AuthenticationError(CredLockerError):
    """AES-GCM tag did not verify (wrong key, wrong AAD or tampering)."""

    message = "Cannot decrypt this secret"


class MalformedEnvelopeError(CredLockerError, ValueError):
    """Envelope bytes are too short or structurally inconsistent."""

    message = "Malformed encrypted secret"


class StructuralError(CredLockerError, ValueError):
    """Vault file misses required markers or lines."""

    message = "Invalid file format"


class IntegrityError(CredLockerError):
    """File-level HMAC did not match."""

    message = "File tampered or wrong master key"


class PolicyError(CredLockerError, ValueError):
    """Input violates a configured length policy."""

    message = "Input violates the configured policy"


class LockerUnloadedError(CredLockerError, RuntimeError):
    """The master key was unloaded from this locker."""

    message = "Master key is not loaded"
