"""argon2id password hashes for stored user credentials."""

from __future__ import annotations

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError

_hasher = PasswordHasher(time_cost=2, memory_cost=64 * 1024, parallelism=1, type=Type.ID)

# Checked when the email is unknown so both login failures take as long.
_UNKNOWN_USER_HASH = _hasher.hash("unknown-user")


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """True on match; a mismatch or a malformed hash is False, never an exception.

    With no stored hash the check still runs, against a throwaway hash.
    """
    target = password_hash if password_hash is not None else _UNKNOWN_USER_HASH
    try:
        matched = _hasher.verify(target, password)
    except (VerificationError, InvalidHashError):
        return False
    return matched and password_hash is not None


def check_needs_rehash(password_hash: str) -> bool:
    """Stored hash was made with older parameters."""
    return _hasher.check_needs_rehash(password_hash)
