"""Display and generation helpers for callers of the locker."""
import secrets

UPPERCASE_CHARS = "ABCDEFGHJKMNPQRSTUVWXYZ"
LOWERCASE_CHARS = "abcdefghjkmnpqrstuvwxyz"
DIGIT_CHARS = "23456789"
SYMBOL_CHARS = "!@#$%^&*()_+[]{}|;:,.<>?"


def bytes_to_mb(size: int) -> float:
    return size / (1024 * 1024)


def mask_master_key(key: str) -> str:
    """Show the first 2 and last 3 characters of a master key.

    Output is capped at 20 characters; keys of 5 characters or fewer are
    fully hidden.
    """
    if len(key) <= 5:
        return ""
    return f"{key[:2]}{'*' * (len(key) - 5)}{key[-3:]}"[:20]


def mask_secret(secret: str) -> str:
    """Hide everything but the last 2 characters of a secret."""
    if len(secret) <= 2:
        return secret
    return f"{'*' * (len(secret) - 2)}{secret[-2:]}"


def generate_password(
    length: int = 16,
    uppercase: bool = True,
    lowercase: bool = True,
    digits: bool = False,
    symbols: bool = False,
) -> str:
    """Generate a random password from unambiguous character sets.

    At least one character of every enabled class is included.

    Raises:
        ValueError: If no class is enabled or length is too small.
    """
    classes = [
        chars for enabled, chars in (
            (uppercase, UPPERCASE_CHARS),
            (lowercase, LOWERCASE_CHARS),
            (digits, DIGIT_CHARS),
            (symbols, SYMBOL_CHARS),
        ) if enabled
    ]
    if not classes:
        raise ValueError("At least one character class must be enabled")
    if length < len(classes):
        raise ValueError(
            f"Password length must be at least {len(classes)} characters"
        )
    charset = "".join(classes)
    chars = [secrets.choice(group) for group in classes]
    chars.extend(secrets.choice(charset) for _ in range(length - len(chars)))
    # Fisher-Yates with the CSPRNG so mandatory chars are not always first
    for i in range(len(chars) - 1, 0, -1):
        j = secrets.randbelow(i + 1)
        chars[i], chars[j] = chars[j], chars[i]
    return "".join(chars)
