"""Authentication utilities: JWT tokens and password hashing.

Tokens are HS256 JWTs signed with the stdlib hmac module; passwords are
hashed with bcrypt through passlib.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import time
from datetime import timedelta
from typing import Optional

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from estate_crm.core.config import get_settings
from estate_crm.core.logging_config import get_logger
from estate_crm.core.models import User
from estate_crm.core.utils import utcnow

LOGGER = get_logger(__name__)
SETTINGS = get_settings()

TOKEN_TYPE = "access"


# ---------------------------------------------------------------------------
# Pure-Python HS256 JWT
# ---------------------------------------------------------------------------

def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _b64url_decode(s: str) -> bytes:
    padding = 4 - len(s) % 4
    if padding != 4:
        s += "=" * padding
    return base64.urlsafe_b64decode(s)


def _sign(signing_input: str, secret: str) -> bytes:
    return hmac.new(secret.encode(), signing_input.encode(), hashlib.sha256).digest()


def _jwt_encode(payload: dict, secret: str) -> str:
    header = {"alg": "HS256", "typ": "JWT"}
    segments = [
        _b64url_encode(json.dumps(header, separators=(",", ":")).encode()),
        _b64url_encode(json.dumps(payload, separators=(",", ":"), default=str).encode()),
    ]
    signing_input = f"{segments[0]}.{segments[1]}"
    segments.append(_b64url_encode(_sign(signing_input, secret)))
    return ".".join(segments)


def _jwt_decode(token: str, secret: str) -> Optional[dict]:
    """Verify signature and expiry; any defect yields None."""
    parts = token.split(".")
    if len(parts) != 3:
        return None

    try:
        header = json.loads(_b64url_decode(parts[0]))
        actual_sig = _b64url_decode(parts[2])
    except (binascii.Error, ValueError):
        return None

    if not isinstance(header, dict) or header.get("alg") != "HS256":
        return None

    expected_sig = _sign(f"{parts[0]}.{parts[1]}", secret)
    if not hmac.compare_digest(expected_sig, actual_sig):
        return None

    try:
        payload = json.loads(_b64url_decode(parts[1]))
    except (binascii.Error, ValueError):
        return None

    if not isinstance(payload, dict):
        return None

    exp = payload.get("exp")
    if not isinstance(exp, (int, float)) or exp < time.time():
        return None

    return payload


# ---------------------------------------------------------------------------
# Password Hashing (bcrypt via passlib)
# ---------------------------------------------------------------------------

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return _pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    try:
        return _pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Malformed or unknown hash format
        return False


# ---------------------------------------------------------------------------
# Token Creation/Decoding
# ---------------------------------------------------------------------------

def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed access token bound to the user's id and current role."""
    issued_at = utcnow()
    expire = issued_at + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=SETTINGS.jwt_access_token_expire_minutes)
    )
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "iat": int(issued_at.timestamp()),
        "exp": int(expire.timestamp()),
        "type": TOKEN_TYPE,
    }
    return _jwt_encode(payload, SETTINGS.jwt_secret_key)


def decode_access_token(token: str) -> Optional[dict]:
    """
    Decode and validate a JWT access token.

    Returns:
        Token payload dict, or None if invalid/expired.
    """
    if not token:
        return None
    payload = _jwt_decode(token, SETTINGS.jwt_secret_key)
    if payload is None:
        return None
    if payload.get("type") != TOKEN_TYPE:
        return None
    if not str(payload.get("sub", "")).isdigit() or not payload.get("role"):
        return None
    return payload


def issue_token(session: Session, user: User) -> str:
    """
    Mint a credential for a user that already passed password verification.

    Records the login time on the user row as a side effect.
    """
    user.last_login = utcnow()
    session.flush()
    token = create_access_token(user)
    LOGGER.info(
        f"Issued access token for user {user.id}",
        extra={"extra_data": {"user_id": user.id, "role": user.role}},
    )
    return token


def token_max_age_seconds() -> int:
    """Lifetime of an access token, used for the auth cookie max-age."""
    return SETTINGS.jwt_access_token_expire_minutes * 60


__all__ = [
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_access_token",
    "issue_token",
    "token_max_age_seconds",
]
