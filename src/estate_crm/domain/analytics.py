"""Analytics domain service - admin dashboard aggregates."""
from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from estate_crm.core.logging_config import get_logger
from estate_crm.core.models import (
    AgentStatus,
    Commission,
    CommissionStatus,
    Lead,
    LeadStatus,
    Property,
    PropertyStatus,
    PropertyVisit,
    User,
    UserRole,
    VisitStatus,
)
from estate_crm.core.permissions import ensure_admin
from estate_crm.core.types import Identity

LOGGER = get_logger(__name__)


def percentage(part: int, whole: int) -> str:
    """Ratio as a percentage string with two decimals; "0.00" when whole is 0."""
    if whole <= 0:
        return "0.00"
    return f"{part / whole * 100:.2f}"


class AnalyticsService:
    """Aggregates for the admin dashboard."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _count(self, column, *criteria) -> int:
        return self.session.query(func.count(column)).filter(*criteria).scalar() or 0

    def _commission_totals(self, status: str) -> Dict[str, Any]:
        count, amount = (
            self.session.query(
                func.count(Commission.id),
                func.coalesce(func.sum(Commission.commission_amount), 0.0),
            )
            .filter(Commission.status == status)
            .one()
        )
        return {"count": int(count or 0), "amount": float(amount or 0.0)}

    def _agent_performance(self) -> List[Dict[str, Any]]:
        property_counts = dict(
            self.session.query(Property.agent_id, func.count(Property.id))
            .group_by(Property.agent_id)
            .all()
        )
        lead_counts = dict(
            self.session.query(Lead.assigned_agent_id, func.count(Lead.id))
            .filter(Lead.assigned_agent_id.isnot(None))
            .group_by(Lead.assigned_agent_id)
            .all()
        )
        earned = dict(
            self.session.query(Commission.agent_id, func.sum(Commission.commission_amount))
            .filter(Commission.status == CommissionStatus.PAID.value)
            .group_by(Commission.agent_id)
            .all()
        )

        agents = (
            self.session.query(User)
            .options(selectinload(User.agent_details))
            .filter(User.role == UserRole.AGENT.value)
            .order_by(User.id)
            .all()
        )
        return [
            {
                "id": agent.id,
                "name": agent.full_name,
                "properties": property_counts.get(agent.id, 0),
                "leads": lead_counts.get(agent.id, 0),
                "commissionEarned": float(earned.get(agent.id) or 0.0),
                "status": (
                    agent.agent_details.status
                    if agent.agent_details is not None
                    else AgentStatus.INACTIVE.value
                ),
            }
            for agent in agents
        ]

    def get_dashboard(self, identity: Identity) -> Dict[str, Any]:
        """
        Build the admin dashboard payload.

        Structure:
            overview: property and lead headline counts plus conversion rate
                (closed-won over closed-won + interested)
            visits: totals and completion rate
            commissions: pending / paid / total counts and amounts
            agents: per-agent rollup of listings, leads and paid commissions
        """
        ensure_admin(identity, "Only admins can access analytics")

        total_properties = self._count(Property.id)
        available_properties = self._count(
            Property.id, Property.status == PropertyStatus.AVAILABLE.value
        )
        active_leads = self._count(Lead.id, Lead.status == LeadStatus.INTERESTED.value)
        closed_leads = self._count(Lead.id, Lead.status == LeadStatus.CLOSED_WON.value)

        total_visits = self._count(PropertyVisit.id)
        completed_visits = self._count(
            PropertyVisit.id, PropertyVisit.status == VisitStatus.COMPLETED.value
        )

        pending = self._commission_totals(CommissionStatus.PENDING.value)
        paid = self._commission_totals(CommissionStatus.PAID.value)

        performance = self._agent_performance()

        LOGGER.debug(
            "Built analytics dashboard",
            extra={"extra_data": {"user_id": identity.id, "agents": len(performance)}},
        )

        return {
            "overview": {
                "totalProperties": total_properties,
                "availableProperties": available_properties,
                "activeLeads": active_leads,
                "closedLeads": closed_leads,
                "conversionRate": percentage(closed_leads, closed_leads + active_leads),
            },
            "visits": {
                "total": total_visits,
                "completed": completed_visits,
                "pending": total_visits - completed_visits,
                "completionRate": percentage(completed_visits, total_visits),
            },
            "commissions": {
                "pending": pending,
                "paid": paid,
                "total": {
                    "count": pending["count"] + paid["count"],
                    "amount": pending["amount"] + paid["amount"],
                },
            },
            "agents": {
                "total": len(performance),
                "performance": performance,
            },
        }


__all__ = ["AnalyticsService", "percentage"]
