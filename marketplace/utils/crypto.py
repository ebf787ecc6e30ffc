"""
Crypto utilities — bcrypt password hashing and opaque token digests.

Password hashing:
  bcrypt with 12 rounds outside testing. ``BCRYPT_ROUNDS`` in app config
  lowers the cost for the test suite.

Token digests:
  Password-reset tokens are stored as SHA-256 digests; the raw token only
  ever leaves the server once.
"""

import hashlib
import secrets

import bcrypt
from flask import current_app, has_app_context

DEFAULT_ROUNDS = 12
_BCRYPT_PREFIXES = ("$2b$", "$2a$", "$2y$")


def _rounds() -> int:
    if has_app_context():
        return current_app.config.get("BCRYPT_ROUNDS", DEFAULT_ROUNDS)
    return DEFAULT_ROUNDS


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password with bcrypt."""
    salt = bcrypt.gensalt(rounds=_rounds())
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def is_password_hash(value: str | None) -> bool:
    """True when ``value`` already looks like a bcrypt digest."""
    return bool(value) and value.startswith(_BCRYPT_PREFIXES) and len(value) == 60


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify a plain-text password against its bcrypt hash."""
    if not password_hash or not plain_password or not is_password_hash(password_hash):
        return False
    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        password_hash.encode("utf-8"),
    )


def generate_opaque_token() -> str:
    """Random URL-safe token (43 chars, 256 bits)."""
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    """SHA-256 hash of a token (for DB storage — never store raw tokens)."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
