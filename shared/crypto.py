"""
Cryptographic helpers — password hashing and code hashing.

Uses argon2 for passwords (via argon2-cffi) and SHA-256 for one-time codes.
"""

from __future__ import annotations

import hashlib
import hmac

from argon2 import PasswordHasher

_password_hasher = PasswordHasher()


def hash_password(plain_password: str) -> str:
    """Hash *plain_password* with argon2id.

    Returns:
        Argon2 hash string (includes algorithm parameters and salt).
    """
    return _password_hasher.hash(plain_password)


def hash_token(token: str) -> str:
    """Return the hex-encoded SHA-256 digest of *token*.

    Used to hash one-time codes before storing them so the plaintext is
    never persisted.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_matches(token: str, token_hash: str) -> bool:
    """Constant-time check that *token* hashes to *token_hash*."""
    return hmac.compare_digest(hash_token(token), token_hash)
