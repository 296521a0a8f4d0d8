"""Domain layer for estate_crm business logic.

Routes stay thin: every read and write, including ownership checks, goes
through one of these services.
"""
from __future__ import annotations

from .analytics import AnalyticsService
from .commissions import CommissionService
from .leads import LeadService
from .properties import PropertyService
from .users import UserService
from .visits import VisitService

__all__ = [
    "AnalyticsService",
    "CommissionService",
    "LeadService",
    "PropertyService",
    "UserService",
    "VisitService",
]
