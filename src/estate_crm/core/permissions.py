"""Role and ownership policy.

Two kinds of rules are enforced:

- path rules: a path prefix requires the caller's role to be in a set
  (checked by the auth middleware before routing)
- ownership rules: a row is visible/mutable to ADMIN or to the user named
  in its owner column (checked by the domain services)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

from estate_crm.core.exceptions import PermissionDeniedError
from estate_crm.core.models import UserRole
from estate_crm.core.types import Identity

ADMIN_ONLY: FrozenSet[str] = frozenset({UserRole.ADMIN.value})
STAFF: FrozenSet[str] = frozenset({UserRole.ADMIN.value, UserRole.AGENT.value})
ANY_ROLE: FrozenSet[str] = frozenset(role.value for role in UserRole)


@dataclass(frozen=True)
class PathRule:
    """Role requirement for every path under a prefix."""

    prefix: str
    roles: FrozenSet[str]
    # Where page (non-API) requests go when the role check fails
    redirect_to: str = "/"

    def matches(self, path: str) -> bool:
        return path == self.prefix or path.startswith(self.prefix.rstrip("/") + "/")


# First match wins
PATH_RULES: tuple[PathRule, ...] = (
    PathRule("/api/analytics", ADMIN_ONLY),
    PathRule("/api/users", ADMIN_ONLY),
    PathRule("/admin", ADMIN_ONLY, redirect_to="/dashboard"),
    PathRule("/agent", STAFF, redirect_to="/"),
    PathRule("/dashboard", ANY_ROLE),
)

# Paths under these prefixes need an identity even without a role rule
AUTHENTICATED_PREFIXES: tuple[str, ...] = (
    "/api/leads",
    "/api/properties",
    "/api/visits",
    "/api/commissions",
    "/api/auth/me",
)

LOGIN_PAGE = "/auth/login"


def match_path_rule(path: str) -> Optional[PathRule]:
    """Return the first rule covering a path, if any."""
    for rule in PATH_RULES:
        if rule.matches(path):
            return rule
    return None


def requires_identity(path: str) -> bool:
    """Whether a request to this path must carry a valid credential."""
    if match_path_rule(path) is not None:
        return True
    return any(
        path == prefix or path.startswith(prefix + "/") for prefix in AUTHENTICATED_PREFIXES
    )


def is_api_path(path: str) -> bool:
    return path == "/api" or path.startswith("/api/")


def has_role(identity: Identity, roles: Iterable[str]) -> bool:
    return identity.role in set(roles)


def can_access(identity: Identity, owner_id: Optional[int]) -> bool:
    """ADMIN sees everything; everyone else only rows they own."""
    if identity.is_admin:
        return True
    return owner_id is not None and owner_id == identity.id


def ensure_can_access(identity: Identity, owner_id: Optional[int]) -> None:
    if not can_access(identity, owner_id):
        raise PermissionDeniedError("Forbidden")


def ensure_admin(identity: Identity, message: str = "Admin access required") -> None:
    if not identity.is_admin:
        raise PermissionDeniedError(message)


def owner_filter_id(identity: Identity) -> Optional[int]:
    """Owner id to filter list queries by, or None when the caller sees all rows."""
    return None if identity.is_admin else identity.id


__all__ = [
    "ADMIN_ONLY",
    "STAFF",
    "ANY_ROLE",
    "PathRule",
    "PATH_RULES",
    "LOGIN_PAGE",
    "match_path_rule",
    "requires_identity",
    "is_api_path",
    "has_role",
    "can_access",
    "ensure_can_access",
    "ensure_admin",
    "owner_filter_id",
]
