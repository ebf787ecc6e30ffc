"""
JWT Service — token generation and verification.

Access token:  7 days  (configurable via JWT_ACCESS_EXPIRES)
Refresh token: 30 days (configurable via JWT_REFRESH_EXPIRES)
Algorithm:     HS256; access and refresh tokens use separate secrets.

Token payload (access):
{
    "sub": <user_id>,
    "email": <email>,
    "role": "specialist",
    "permissions": ["specialist.read.own", ...],
    "type": "access",
    "iat": <issued_at>,
    "exp": <expires_at>,
    "jti": <unique_id>
}
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

from marketplace.core.exceptions import ExpiredTokenError, InvalidTokenError


# ─── Defaults ────────────────────────────────────────────────
DEFAULT_ACCESS_EXPIRES = 604800    # 7 days
DEFAULT_REFRESH_EXPIRES = 2592000  # 30 days
ALGORITHM = "HS256"

ACCESS = "access"
REFRESH = "refresh"


def _get_secret(kind: str = ACCESS):
    if kind == REFRESH:
        return current_app.config["JWT_REFRESH_SECRET_KEY"]
    return current_app.config.get("JWT_SECRET_KEY") or current_app.config["SECRET_KEY"]


def get_access_expires() -> int:
    return current_app.config.get("JWT_ACCESS_EXPIRES", DEFAULT_ACCESS_EXPIRES)


def get_refresh_expires() -> int:
    return current_app.config.get("JWT_REFRESH_EXPIRES", DEFAULT_REFRESH_EXPIRES)


# ═══════════════════════════════════════════════════════════════
# Token Generation
# ═══════════════════════════════════════════════════════════════
def generate_access_token(user) -> str:
    """Sign an access token carrying the user's identity, role and permissions."""
    from marketplace.services.permission_service import get_effective_permissions

    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.id,
        "email": user.email,
        "role": user.role,
        "permissions": sorted(get_effective_permissions(user)),
        "type": ACCESS,
        "iat": now,
        "exp": now + timedelta(seconds=get_access_expires()),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _get_secret(ACCESS), algorithm=ALGORITHM)


def generate_refresh_token(user) -> str:
    """Sign a long-lived refresh token (identity only)."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.id,
        "type": REFRESH,
        "iat": now,
        "exp": now + timedelta(seconds=get_refresh_expires()),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _get_secret(REFRESH), algorithm=ALGORITHM)


def generate_token_pair(user) -> dict:
    """Generate both access + refresh tokens."""
    return {
        "access_token": generate_access_token(user),
        "refresh_token": generate_refresh_token(user),
        "token_type": "Bearer",
        "expires_in": get_access_expires(),
    }


# ═══════════════════════════════════════════════════════════════
# Token Verification
# ═══════════════════════════════════════════════════════════════
def decode_token(token: str, expected_type: str = ACCESS) -> dict:
    """
    Decode and verify a JWT token.

    Returns the payload dict on success.

    Raises:
        ExpiredTokenError: Signature valid but ``exp`` has passed.
        InvalidTokenError: Bad signature, malformed token or wrong token type.
    """
    if not token:
        raise InvalidTokenError("Token is missing")
    try:
        payload = jwt.decode(token, _get_secret(expected_type), algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise ExpiredTokenError() from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidTokenError() from exc

    if payload.get("type") != expected_type:
        raise InvalidTokenError(f"Expected {expected_type} token")
    if not payload.get("sub"):
        raise InvalidTokenError("Token has no subject")
    return payload


def decode_access_token(token: str) -> dict:
    return decode_token(token, expected_type=ACCESS)


def decode_refresh_token(token: str) -> dict:
    return decode_token(token, expected_type=REFRESH)
