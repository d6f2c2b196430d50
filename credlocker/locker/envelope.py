"""
Locker Envelope Codec — Fixed-layout framing of one encrypted secret.

Format (big-endian):
    [aad_flag 1B][date 10B ASCII][salt 32B][iv 12B]
    [iterations 4B uint32][length 4B uint32][ciphertext + GCM tag]

The final-key iteration count travels with the envelope, so decryption
never has to guess it. The ciphertext length is a full uint32, so secrets
of any configured size fit.

Decoding only checks structure. Authenticity is established later by
AES-GCM when the ciphertext is decrypted.
"""
import re
import struct
from dataclasses import dataclass

from ..exceptions import MalformedEnvelopeError
from .crypto import NONCE_SIZE, TAG_SIZE, b64decode, b64encode

SALT_SIZE = 32
DATE_SIZE = 10
HEADER_FORMAT = f"!B{DATE_SIZE}s{SALT_SIZE}s{NONCE_SIZE}sII"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)  # 63 bytes
MIN_SIZE = HEADER_SIZE + TAG_SIZE

AAD_NOT_USED = 0
AAD_USED = 1

_DATE_PATTERN = re.compile(rb"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class Envelope:
    """One encrypted secret and the parameters needed to decrypt it."""

    aad_flag: int
    date: str
    salt: bytes
    iv: bytes
    iterations: int
    ciphertext: bytes

    @property
    def aad_used(self) -> bool:
        return self.aad_flag == AAD_USED


def encode(envelope: Envelope) -> bytes:
    """Pack an envelope into its binary layout.

    Raises:
        MalformedEnvelopeError: If a field does not fit its slot.
    """
    if envelope.aad_flag not in (AAD_NOT_USED, AAD_USED):
        raise MalformedEnvelopeError(f"Invalid AAD flag: {envelope.aad_flag}")
    date = envelope.date.encode("ascii", errors="replace")
    if not _DATE_PATTERN.match(date):
        raise MalformedEnvelopeError(f"Invalid envelope date: {envelope.date!r}")
    if len(envelope.salt) != SALT_SIZE:
        raise MalformedEnvelopeError(
            f"Salt must be {SALT_SIZE} bytes, got {len(envelope.salt)}"
        )
    if len(envelope.iv) != NONCE_SIZE:
        raise MalformedEnvelopeError(
            f"IV must be {NONCE_SIZE} bytes, got {len(envelope.iv)}"
        )
    try:
        header = struct.pack(
            HEADER_FORMAT,
            envelope.aad_flag,
            date,
            bytes(envelope.salt),
            bytes(envelope.iv),
            envelope.iterations,
            len(envelope.ciphertext),
        )
    except struct.error as err:
        raise MalformedEnvelopeError(f"Cannot pack envelope: {err}") from err
    return header + bytes(envelope.ciphertext)


def decode(data: bytes) -> Envelope:
    """Unpack envelope bytes using fixed offsets.

    Raises:
        MalformedEnvelopeError: If the data is too short or inconsistent.
    """
    if len(data) < MIN_SIZE:
        raise MalformedEnvelopeError(
            f"Envelope too short: {len(data)} bytes (minimum {MIN_SIZE})"
        )
    aad_flag, date, salt, iv, iterations, length = struct.unpack(
        HEADER_FORMAT, data[:HEADER_SIZE],
    )
    if aad_flag not in (AAD_NOT_USED, AAD_USED):
        raise MalformedEnvelopeError(f"Invalid AAD flag: {aad_flag}")
    if not _DATE_PATTERN.match(date):
        raise MalformedEnvelopeError("Invalid envelope date")
    if iterations < 1:
        raise MalformedEnvelopeError("Envelope iteration count must be positive")
    ciphertext = data[HEADER_SIZE:]
    if length != len(ciphertext):
        raise MalformedEnvelopeError(
            f"Ciphertext length mismatch: header says {length}, "
            f"found {len(ciphertext)}"
        )
    return Envelope(
        aad_flag=aad_flag,
        date=date.decode("ascii"),
        salt=salt,
        iv=iv,
        iterations=iterations,
        ciphertext=ciphertext,
    )


def to_base64(envelope: Envelope) -> str:
    """Encode an envelope for textual storage."""
    return b64encode(encode(envelope))


def from_base64(text: str) -> Envelope:
    """Decode a base64 envelope string."""
    return decode(b64decode(text))


def peek_aad_flag(text: str) -> bool:
    """Tell whether an encoded envelope was sealed with AAD."""
    return from_base64(text).aad_used
