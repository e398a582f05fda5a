# backend/app/security/password_hash.py
"""
k-anonymity hash splitting for breach corpus lookups.

Key points:
- SHA-1, uppercase hex (40 chars) - the digest format of the Pwned Passwords corpus
- Only the 5-char prefix ever leaves the process
- The plaintext password is never logged or stored
"""
import hashlib
from dataclasses import dataclass

from backend.app.core.errors import ValidationFailure

PREFIX_LENGTH = 5
DIGEST_LENGTH = 40
HEX_DIGITS = frozenset("0123456789ABCDEF")


@dataclass(frozen=True)
class PasswordHashSplit:
    prefix: str
    suffix: str

    @property
    def digest(self) -> str:
        return self.prefix + self.suffix


def sha1_hex(password: str) -> str:
    """
    Return the uppercase SHA-1 hex digest of a password.

    This is also the value stored as BreachRecord.password_hash.
    """
    if not password:
        raise ValidationFailure("Password must not be empty")
    return hashlib.sha1(password.encode("utf-8")).hexdigest().upper()


def split_digest(digest: str) -> PasswordHashSplit:
    digest = digest.upper()
    if len(digest) != DIGEST_LENGTH or not set(digest) <= HEX_DIGITS:
        raise ValidationFailure(f"Expected a {DIGEST_LENGTH}-char hex digest")
    return PasswordHashSplit(prefix=digest[:PREFIX_LENGTH], suffix=digest[PREFIX_LENGTH:])


def split_password_hash(password: str) -> PasswordHashSplit:
    """
    Hash a password and split the digest into (prefix, suffix).

    >>> split_password_hash("password123").prefix
    'CBFDA'
    """
    return split_digest(sha1_hex(password))
