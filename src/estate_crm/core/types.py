"""Shared dataclasses and type helpers."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(slots=True, frozen=True)
class Identity:
    """The authenticated caller, resolved once per request from its credential."""

    id: int
    email: str
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "Identity":
        """Build an identity from decoded token claims."""
        return cls(
            id=int(claims["sub"]),
            email=claims["email"],
            role=claims["role"],
            first_name=claims.get("firstName"),
            last_name=claims.get("lastName"),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "firstName": self.first_name,
            "lastName": self.last_name,
        }


@dataclass(slots=True, frozen=True)
class PageRequest:
    """1-based page/limit pair translated to an offset."""

    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(slots=True)
class Page:
    """One page of serialized rows plus the total row count."""

    items: list
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "pages": self.pages,
        }


__all__ = ["Identity", "PageRequest", "Page"]
