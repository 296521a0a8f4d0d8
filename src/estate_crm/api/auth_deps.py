"""Authentication dependencies for FastAPI routes."""
from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security.utils import get_authorization_scheme_param

from estate_crm.core.auth import decode_access_token
from estate_crm.core.config import get_settings
from estate_crm.core.exceptions import AuthenticationError, PermissionDeniedError
from estate_crm.core.types import Identity

SETTINGS = get_settings()

# Attribute names on request.state
_IDENTITY_ATTR = "identity"
_RESOLVED_ATTR = "identity_resolved"


def extract_token(request: Request) -> Optional[str]:
    """Credential from the auth cookie, falling back to a Bearer header."""
    token = request.cookies.get(SETTINGS.auth_cookie_name)
    if token:
        return token

    scheme, param = get_authorization_scheme_param(request.headers.get("Authorization"))
    if scheme.lower() == "bearer" and param:
        return param
    return None


def authenticate(request: Request) -> Optional[Identity]:
    """
    Resolve the caller's identity from the request credential.

    Missing, malformed, expired or badly signed credentials all yield None.
    The result is cached on request.state, so the middleware and the route
    share one resolution per request.
    """
    if getattr(request.state, _RESOLVED_ATTR, False):
        return getattr(request.state, _IDENTITY_ATTR, None)

    identity: Optional[Identity] = None
    token = extract_token(request)
    if token:
        claims = decode_access_token(token)
        if claims is not None:
            try:
                identity = Identity.from_claims(claims)
            except (KeyError, TypeError, ValueError):
                identity = None

    setattr(request.state, _IDENTITY_ATTR, identity)
    setattr(request.state, _RESOLVED_ATTR, True)
    return identity


def get_optional_identity(request: Request) -> Optional[Identity]:
    return authenticate(request)


def get_current_identity(request: Request) -> Identity:
    """
    Require a valid credential.

    Raises:
        AuthenticationError: If the request is unauthenticated.
    """
    identity = authenticate(request)
    if identity is None:
        raise AuthenticationError()
    return identity


def require_roles(*roles: str) -> Callable[..., Identity]:
    """Build a dependency that admits only the given roles."""
    allowed = frozenset(roles)

    def dependency(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in allowed:
            raise PermissionDeniedError()
        return identity

    return dependency


def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    """Require the current identity to have the ADMIN role."""
    if not identity.is_admin:
        raise PermissionDeniedError("Admin access required")
    return identity


__all__ = [
    "extract_token",
    "authenticate",
    "get_optional_identity",
    "get_current_identity",
    "require_roles",
    "require_admin",
]
