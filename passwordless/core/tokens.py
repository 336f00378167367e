"""Token generation and hashing.

Default tokens are drawn from the OS CSPRNG and rendered in the base58
alphabet (no 0/O/I/l lookalikes, URL-safe, case-sensitive). 22 characters
of base58 carry just under 129 bits of entropy, i.e. at least 16 random
bytes' worth.

Numeric tokens are short codes for channels like SMS. They reduce a secure
random 32-bit value modulo ``max_value``.
"""

import hashlib
import secrets
from collections.abc import Callable

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

# 22 base58 characters >= 128 bits of entropy
DEFAULT_TOKEN_LENGTH = 22

# Numeric tokens come from a 32-bit draw, so max_value cannot exceed 2^32
MAX_NUMBER_TOKEN = 2**32

TokenAlgorithm = Callable[[], str]


def generate_token(length: int = DEFAULT_TOKEN_LENGTH) -> str:
    """Generate an unguessable base58 token.

    Args:
        length: Number of base58 characters. Must be at least 20.

    Returns:
        Random token string.

    Raises:
        ValueError: If ``length`` is below 20.
    """
    if length < 20:
        msg = f"Token length must be at least 20 characters, got {length}"
        raise ValueError(msg)
    return "".join(secrets.choice(BASE58_ALPHABET) for _ in range(length))


def generate_number_token(max_value: int) -> str:
    """Generate a numeric token in ``[0, max_value)``.

    Args:
        max_value: Exclusive upper bound, 1 <= max_value <= 2^32.

    Returns:
        Decimal string of the random number.
    """
    if not 1 <= max_value <= MAX_NUMBER_TOKEN:
        msg = f"max_value must be between 1 and 2^32, got {max_value}"
        raise ValueError(msg)
    return str(secrets.randbits(32) % max_value)


def token_generator(length: int = DEFAULT_TOKEN_LENGTH) -> TokenAlgorithm:
    """Return a zero-argument generator bound to ``length``."""

    def _generate() -> str:
        return generate_token(length)

    return _generate


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a token, for stores that must not keep plaintext."""
    return hashlib.sha256(token.encode()).hexdigest()
