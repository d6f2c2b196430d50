"""
Locker File Integrity — Canonical vault serialization and file HMAC.

File layout (one item per line, ``\\n`` separated, trailing ``\\n``):
    <header text>
    <<<<>>>>
    <name>: <base64 envelope>      (insertion order)
    <<<<<>>>>>
    DATE: <YYYY-MM-DD>
    HMAC: <base64 HMAC-SHA256>
    >>>><<<<

The HMAC message is the exact text preceding the ``HMAC:`` line, so the
bytes signed on save are the bytes re-derived on load. The HMAC key is
the raw master key string.

Security Note:
    Never log master keys or envelope values. A failed HMAC means the
    whole file is untrusted; nothing from it is returned.
"""
import logging
from datetime import date as date_cls
from typing import Optional

from ..data import DATE_FIELD, HMAC_FIELD, Vault
from ..exceptions import IntegrityError, MalformedEnvelopeError, StructuralError
from ..utils import bytes_to_mb
from .crypto import b64decode, b64encode, hmac_sign, hmac_verify

logger = logging.getLogger("credlocker")

HEADER = "This is an auto generated File. Please do not tamper with it."
SECRETS_MARKER = "<<<<>>>>"
INTEGRITY_MARKER = "<<<<<>>>>>"
FOOTER = ">>>><<<<"

_HMAC_PREFIX = f"{HMAC_FIELD}:"

# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def _signed_lines(vault: Vault) -> list[str]:
    """Every line of the serialized vault that the HMAC covers."""
    lines = [HEADER, SECRETS_MARKER]
    lines.extend(f"{name}: {value}" for name, value in vault.secrets.items())
    lines.append(INTEGRITY_MARKER)
    lines.extend(
        f"{name}: {value}"
        for name, value in vault.integrity.items()
        if name != HMAC_FIELD
    )
    return lines


def _join(lines: list[str]) -> str:
    return "\n".join(lines) + "\n"


def signed_content(vault: Vault) -> str:
    """Serialization truncated right before the HMAC line."""
    return _join(_signed_lines(vault))


def serialize(vault: Vault) -> str:
    """Render the vault in its canonical text form.

    The ``HMAC`` line is always the last integrity line.
    """
    lines = _signed_lines(vault)
    lines.append(f"{HMAC_FIELD}: {vault.hmac or ''}".rstrip())
    lines.append(FOOTER)
    return _join(lines)


# ---------------------------------------------------------------------------
# HMAC
# ---------------------------------------------------------------------------


def compute_file_hmac(vault: Vault, master_key: str) -> str:
    """Return the base64 HMAC-SHA256 of the vault's signed content."""
    return b64encode(hmac_sign(master_key, signed_content(vault)))


def seal(vault: Vault, master_key: str, date: Optional[str] = None) -> Vault:
    """Stamp ``DATE`` and recompute ``HMAC`` over that same snapshot.

    Args:
        vault: Snapshot produced by the latest mutation.
        master_key: HMAC key.
        date: Override for the DATE field (defaults to today).

    Returns:
        New sealed snapshot.
    """
    staged = vault.with_integrity(
        **{DATE_FIELD: date or date_cls.today().isoformat(), HMAC_FIELD: ""}
    )
    signature = compute_file_hmac(staged, master_key)
    logger.debug("Vault sealed with %d secret(s)", len(staged))
    return staged.with_integrity(**{HMAC_FIELD: signature})


def _verify(lines: list[str], signature: str, master_key: str) -> None:
    try:
        expected = b64decode(signature)
    except MalformedEnvelopeError as err:
        raise IntegrityError() from err
    hmac_verify(master_key, _join(lines), expected)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _parse_entries(lines: list[str], section: str) -> dict[str, str]:
    entries: dict[str, str] = {}
    for number, line in enumerate(lines, start=1):
        if not line:
            continue
        name, sep, value = line.partition(":")
        name, value = name.strip(), value.strip()
        if not sep or not name or not value:
            raise StructuralError(
                f"Invalid file format: malformed {section} line {number}"
            )
        if name in entries:
            raise StructuralError(
                f"Invalid file format: duplicate {section} key '{name}'"
            )
        entries[name] = value
    return entries


def _marker_index(lines: list[str], marker: str) -> int:
    count = lines.count(marker)
    if count != 1:
        raise StructuralError(
            f"Invalid file format: expected one '{marker}' marker, found {count}"
        )
    return lines.index(marker)


def parse_and_validate(
    text: str,
    master_key: str,
    max_size: Optional[int] = None,
) -> Vault:
    """Parse vault text, verifying structure and the file HMAC.

    Args:
        text: Raw file content.
        master_key: HMAC key.
        max_size: Optional size limit in bytes.

    Returns:
        The parsed Vault.

    Raises:
        StructuralError: Missing/misplaced markers or malformed lines.
        IntegrityError: HMAC mismatch (tampering or wrong master key).
    """
    if max_size is not None and len(text.encode("utf-8")) > max_size:
        raise StructuralError(
            f"File size exceeds {bytes_to_mb(max_size):g} MB"
        )
    lines = [line.strip() for line in text.split("\n")]
    while lines and not lines[-1]:
        lines.pop()

    if not lines or lines[-1] != FOOTER:
        raise StructuralError("Invalid file format: missing footer marker")
    if len(lines) < 2 or not lines[-2].startswith(_HMAC_PREFIX):
        raise StructuralError("Invalid file format: missing HMAC line")

    signature = lines[-2][len(_HMAC_PREFIX):].strip()
    signed = lines[:-2]
    try:
        _verify(signed, signature, master_key)
    except IntegrityError:
        logger.warning("Vault file failed HMAC verification")
        raise

    secrets_at = _marker_index(signed, SECRETS_MARKER)
    integrity_at = _marker_index(signed, INTEGRITY_MARKER)
    if FOOTER in signed:
        raise StructuralError("Invalid file format: footer marker out of place")
    if secrets_at > integrity_at:
        raise StructuralError("Invalid file format: markers out of order")

    secrets = _parse_entries(signed[secrets_at + 1:integrity_at], "secrets")
    integrity = _parse_entries(
        signed[integrity_at + 1:] + [lines[-2]], "integrity",
    )
    if DATE_FIELD not in integrity:
        raise StructuralError("Invalid file format: missing DATE field")

    vault = Vault(secrets=secrets, integrity=integrity)
    logger.info("Vault file loaded with %d secret(s)", len(vault))
    return vault
