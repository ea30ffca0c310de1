"""Random resource names and admin passwords for sample resources."""

from __future__ import annotations

import secrets
import string

_SYMBOLS = "!@#$%^*-_"


def create_random_name(prefix: str, digits: int = 4, *, lowercase: bool = False) -> str:
    """Return *prefix* followed by *digits* random decimal digits.

    SQL server and DNS alias names must be lower case; pass
    ``lowercase=True`` for those.
    """
    if digits < 1:
        raise ValueError(f"digits must be >= 1, got {digits}")
    suffix = "".join(secrets.choice(string.digits) for _ in range(digits))
    name = f"{prefix}{suffix}"
    return name.lower() if lowercase else name


def create_password(length: int = 16) -> str:
    """Return a password that satisfies the Azure SQL complexity rules.

    Always contains at least one upper-case letter, lower-case letter,
    digit and symbol.
    """
    if length < 8:
        raise ValueError(f"password length must be >= 8, got {length}")
    pools = [string.ascii_uppercase, string.ascii_lowercase, string.digits, _SYMBOLS]
    chars = [secrets.choice(pool) for pool in pools]
    alphabet = "".join(pools)
    chars.extend(secrets.choice(alphabet) for _ in range(length - len(chars)))
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)
