"""Commission domain service.

A commission snapshots the property price at creation time. Later price
changes on the property never touch existing commissions.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session, selectinload

from estate_crm.core.exceptions import NotFoundError
from estate_crm.core.logging_config import get_logger
from estate_crm.core.models import Commission, CommissionStatus, Property
from estate_crm.core.permissions import ensure_admin, owner_filter_id
from estate_crm.core.types import Identity, Page, PageRequest
from estate_crm.core.utils import calculate_commission, isoformat, utcnow
from estate_crm.domain.status import check_transition
from estate_crm.domain.users import agent_brief, require_staff

LOGGER = get_logger(__name__)


class CommissionService:
    """Service for agent commissions."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _commission_to_dict(self, commission: Commission) -> Dict[str, Any]:
        prop = commission.property
        return {
            "id": commission.id,
            "agentId": commission.agent_id,
            "propertyId": commission.property_id,
            "percentage": commission.percentage,
            "propertyPrice": commission.property_price,
            "commissionAmount": commission.commission_amount,
            "status": commission.status,
            "paidAt": isoformat(commission.paid_at),
            "agent": agent_brief(commission.agent),
            "property": {
                "id": prop.id,
                "title": prop.title,
                "price": prop.price,
            } if prop is not None else None,
            "createdAt": isoformat(commission.created_at),
            "updatedAt": isoformat(commission.updated_at),
        }

    def _load(self, commission_id: int) -> Commission:
        commission = (
            self.session.query(Commission)
            .options(selectinload(Commission.agent), selectinload(Commission.property))
            .filter(Commission.id == commission_id)
            .one_or_none()
        )
        if commission is None:
            raise NotFoundError("Commission not found")
        return commission

    def list_commissions(
        self,
        identity: Identity,
        page: PageRequest,
        status: Optional[str] = None,
        agent_id: Optional[int] = None,
    ) -> Page:
        query = self.session.query(Commission)

        owner_id = owner_filter_id(identity)
        if owner_id is not None:
            query = query.filter(Commission.agent_id == owner_id)
        elif agent_id is not None:
            query = query.filter(Commission.agent_id == agent_id)

        if status:
            query = query.filter(Commission.status == status)

        total = query.count()
        rows = (
            query.options(selectinload(Commission.agent), selectinload(Commission.property))
            .order_by(Commission.created_at.desc(), Commission.id.desc())
            .offset(page.offset)
            .limit(page.limit)
            .all()
        )
        return Page(
            items=[self._commission_to_dict(c) for c in rows],
            total=total,
            page=page.page,
            limit=page.limit,
        )

    def create_commission(
        self,
        identity: Identity,
        agent_id: int,
        property_id: int,
        percentage: float,
    ) -> Dict[str, Any]:
        """
        Record a commission for an agent on a property. Admin only.

        The amount is computed once from the property's current price.
        """
        ensure_admin(identity, "Only admins can create commissions")

        prop = self.session.get(Property, property_id)
        if prop is None:
            raise NotFoundError("Property not found")
        require_staff(self.session, agent_id)

        commission = Commission(
            agent_id=agent_id,
            property_id=prop.id,
            percentage=percentage,
            property_price=prop.price,
            commission_amount=calculate_commission(prop.price, percentage),
            status=CommissionStatus.PENDING.value,
        )
        self.session.add(commission)
        self.session.flush()

        LOGGER.info(
            f"Created commission {commission.id} for agent {agent_id}",
            extra={"extra_data": {
                "commission_id": commission.id,
                "property_id": prop.id,
                "amount": commission.commission_amount,
                "user_id": identity.id,
            }},
        )
        return self._commission_to_dict(self._load(commission.id))

    def update_commission_status(
        self, identity: Identity, commission_id: int, status: str
    ) -> Dict[str, Any]:
        """Mark a commission paid or cancelled. Admin only."""
        commission = self._load(commission_id)
        ensure_admin(identity, "Only admins can update commissions")
        check_transition("commission", commission.status, status)

        if status != commission.status:
            commission.status = status
            commission.paid_at = utcnow() if status == CommissionStatus.PAID.value else None

        self.session.flush()
        self.session.refresh(commission)
        LOGGER.info(f"Commission {commission.id} marked {status}")
        return self._commission_to_dict(commission)


__all__ = ["CommissionService"]
