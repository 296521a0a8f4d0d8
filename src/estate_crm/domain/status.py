"""Status transition tables for leads, properties, visits and commissions.

In permissive mode any enum value may be written. In strict mode a change
must follow the table below; writing the current value again is a no-op and
always allowed.
"""
from __future__ import annotations

from typing import Dict, FrozenSet, Mapping, Optional

from estate_crm.core.config import get_settings
from estate_crm.core.exceptions import InvalidStatusTransitionError
from estate_crm.core.models import CommissionStatus, LeadStatus, PropertyStatus, VisitStatus

_L = LeadStatus
_P = PropertyStatus
_V = VisitStatus
_C = CommissionStatus

LEAD_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    _L.NEW.value: frozenset({_L.CONTACTED.value, _L.CLOSED_LOST.value, _L.DEAD.value}),
    _L.CONTACTED.value: frozenset({_L.INTERESTED.value, _L.CLOSED_LOST.value, _L.DEAD.value}),
    _L.INTERESTED.value: frozenset({
        _L.SITE_VISIT_SCHEDULED.value,
        _L.NEGOTIATING.value,
        _L.CLOSED_LOST.value,
        _L.DEAD.value,
    }),
    _L.SITE_VISIT_SCHEDULED.value: frozenset({
        _L.INTERESTED.value,
        _L.NEGOTIATING.value,
        _L.CLOSED_LOST.value,
        _L.DEAD.value,
    }),
    _L.NEGOTIATING.value: frozenset({_L.CLOSED_WON.value, _L.CLOSED_LOST.value, _L.DEAD.value}),
    _L.CLOSED_WON.value: frozenset(),
    _L.CLOSED_LOST.value: frozenset(),
    _L.DEAD.value: frozenset(),
}

PROPERTY_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    _P.AVAILABLE.value: frozenset({
        _P.UNDER_OFFER.value, _P.RENTED.value, _P.SOLD.value, _P.OFF_MARKET.value,
    }),
    _P.UNDER_OFFER.value: frozenset({
        _P.AVAILABLE.value, _P.RENTED.value, _P.SOLD.value, _P.OFF_MARKET.value,
    }),
    _P.RENTED.value: frozenset({_P.AVAILABLE.value, _P.OFF_MARKET.value}),
    _P.OFF_MARKET.value: frozenset({_P.AVAILABLE.value}),
    _P.SOLD.value: frozenset(),
}

VISIT_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    _V.SCHEDULED.value: frozenset({
        _V.COMPLETED.value, _V.NO_SHOW.value, _V.RESCHEDULED.value, _V.CANCELLED.value,
    }),
    _V.RESCHEDULED.value: frozenset({
        _V.SCHEDULED.value, _V.COMPLETED.value, _V.NO_SHOW.value, _V.CANCELLED.value,
    }),
    _V.COMPLETED.value: frozenset(),
    _V.NO_SHOW.value: frozenset(),
    _V.CANCELLED.value: frozenset(),
}

COMMISSION_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    _C.PENDING.value: frozenset({_C.PAID.value, _C.CANCELLED.value}),
    _C.PAID.value: frozenset(),
    _C.CANCELLED.value: frozenset(),
}

TRANSITION_TABLES: Dict[str, Mapping[str, FrozenSet[str]]] = {
    "lead": LEAD_TRANSITIONS,
    "property": PROPERTY_TRANSITIONS,
    "visit": VISIT_TRANSITIONS,
    "commission": COMMISSION_TRANSITIONS,
}


def is_transition_allowed(entity: str, current: str, requested: str) -> bool:
    """Check a change against the strict table for an entity kind."""
    if current == requested:
        return True
    return requested in TRANSITION_TABLES[entity].get(current, frozenset())


def check_transition(
    entity: str,
    current: str,
    requested: Optional[str],
    strict: Optional[bool] = None,
) -> None:
    """
    Raise InvalidStatusTransitionError if a status change is not allowed.

    Args:
        entity: One of "lead", "property", "visit", "commission".
        current: Status stored on the row.
        requested: Status the caller wants to write (None means unchanged).
        strict: Override the configured STATUS_TRANSITION_MODE.
    """
    if requested is None:
        return
    if strict is None:
        strict = get_settings().is_strict_transitions()
    if not strict:
        return
    if not is_transition_allowed(entity, current, requested):
        raise InvalidStatusTransitionError(entity, current, requested)


__all__ = [
    "LEAD_TRANSITIONS",
    "PROPERTY_TRANSITIONS",
    "VISIT_TRANSITIONS",
    "COMMISSION_TRANSITIONS",
    "is_transition_allowed",
    "check_transition",
]
