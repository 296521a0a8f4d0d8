"""API route modules."""
from __future__ import annotations

from . import analytics, auth, commissions, health, leads, properties, users, visits

__all__ = [
    "analytics",
    "auth",
    "commissions",
    "health",
    "leads",
    "properties",
    "users",
    "visits",
]
