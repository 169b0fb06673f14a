"""Generators for transaction identifiers and short random keys."""

from __future__ import annotations

import secrets
import string
import time
from typing import Protocol

LOWER_ALPHANUMERIC = string.ascii_lowercase + string.digits
EXCHANGE_KEY_ALPHABET = string.ascii_letters + string.digits + "!@#$%&*"
EXCHANGE_KEY_LENGTH = 5


class _HasTransactionId(Protocol):
    transaction_id: str | None


def random_string(length: int, alphabet: str = LOWER_ALPHANUMERIC) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_transaction_id() -> str:
    """Build an id of the form ``txn-<epoch millis>-<6 random chars>``."""
    return f"txn-{time.time_ns() // 1_000_000}-{random_string(6)}"


def ensure_transaction_id(request: _HasTransactionId) -> str:
    """Assign a generated transaction id when the caller left it blank."""
    if request.transaction_id is None or not request.transaction_id.strip():
        request.transaction_id = generate_transaction_id()
    return request.transaction_id


def append_random_suffix(
    value: str, *, min_length: int = 12, min_suffix: int = 4
) -> str:
    """Append ``-<random>`` so short seeds still yield unique, long-enough ids."""
    suffix_length = max(min_suffix, min_length - len(value))
    return f"{value}-{random_string(suffix_length)}"


def generate_exchange_key(length: int = EXCHANGE_KEY_LENGTH) -> str:
    return random_string(length, EXCHANGE_KEY_ALPHABET)


__all__ = [
    "EXCHANGE_KEY_ALPHABET",
    "append_random_suffix",
    "ensure_transaction_id",
    "generate_exchange_key",
    "generate_transaction_id",
    "random_string",
]
