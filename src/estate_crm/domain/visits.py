"""Property visit domain service - scheduling and outcomes of site visits."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session, selectinload

from estate_crm.core.exceptions import NotFoundError
from estate_crm.core.logging_config import get_logger
from estate_crm.core.models import Lead, Property, PropertyVisit, VisitStatus
from estate_crm.core.permissions import ensure_admin, ensure_can_access, owner_filter_id
from estate_crm.core.types import Identity, Page, PageRequest
from estate_crm.core.utils import ensure_aware, isoformat
from estate_crm.domain.status import check_transition
from estate_crm.domain.users import agent_brief, require_staff

LOGGER = get_logger(__name__)


class VisitService:
    """Service for property visits."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _visit_to_dict(self, visit: PropertyVisit) -> Dict[str, Any]:
        lead = visit.lead
        prop = visit.property
        return {
            "id": visit.id,
            "leadId": visit.lead_id,
            "propertyId": visit.property_id,
            "assignedAgentId": visit.assigned_agent_id,
            "scheduledAt": isoformat(visit.scheduled_at),
            "status": visit.status,
            "notes": visit.notes,
            "feedback": visit.feedback,
            "rating": visit.rating,
            "lead": {
                "id": lead.id,
                "firstName": lead.first_name,
                "lastName": lead.last_name,
                "phone": lead.phone,
            } if lead is not None else None,
            "property": {
                "id": prop.id,
                "title": prop.title,
                "address": prop.address,
            } if prop is not None else None,
            "assignedAgent": agent_brief(visit.assigned_agent),
            "createdAt": isoformat(visit.created_at),
            "updatedAt": isoformat(visit.updated_at),
        }

    def _load(self, visit_id: int) -> PropertyVisit:
        visit = (
            self.session.query(PropertyVisit)
            .options(
                selectinload(PropertyVisit.lead),
                selectinload(PropertyVisit.property),
                selectinload(PropertyVisit.assigned_agent),
            )
            .filter(PropertyVisit.id == visit_id)
            .one_or_none()
        )
        if visit is None:
            raise NotFoundError("Visit not found")
        return visit

    def list_visits(
        self,
        identity: Identity,
        page: PageRequest,
        status: Optional[str] = None,
        agent_id: Optional[int] = None,
    ) -> Page:
        """
        List visits, most recently scheduled first.

        The ``agent_id`` filter only applies to admins; everyone else is
        pinned to their own visits.
        """
        query = self.session.query(PropertyVisit)

        owner_id = owner_filter_id(identity)
        if owner_id is not None:
            query = query.filter(PropertyVisit.assigned_agent_id == owner_id)
        elif agent_id is not None:
            query = query.filter(PropertyVisit.assigned_agent_id == agent_id)

        if status:
            query = query.filter(PropertyVisit.status == status)

        total = query.count()
        visits = (
            query.options(
                selectinload(PropertyVisit.lead),
                selectinload(PropertyVisit.property),
                selectinload(PropertyVisit.assigned_agent),
            )
            .order_by(PropertyVisit.scheduled_at.desc(), PropertyVisit.id.desc())
            .offset(page.offset)
            .limit(page.limit)
            .all()
        )
        return Page(
            items=[self._visit_to_dict(v) for v in visits],
            total=total,
            page=page.page,
            limit=page.limit,
        )

    def get_visit(self, identity: Identity, visit_id: int) -> Dict[str, Any]:
        visit = self._load(visit_id)
        ensure_can_access(identity, visit.assigned_agent_id)
        return self._visit_to_dict(visit)

    def create_visit(
        self,
        identity: Identity,
        lead_id: int,
        property_id: int,
        scheduled_at: datetime,
        assigned_agent_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Schedule a visit.

        Raises:
            NotFoundError: If the lead or property does not exist.
        """
        lead = self.session.get(Lead, lead_id)
        prop = self.session.get(Property, property_id)
        if lead is None or prop is None:
            raise NotFoundError("Lead or property not found")

        if identity.is_admin:
            agent_id = assigned_agent_id if assigned_agent_id is not None else prop.agent_id
            require_staff(self.session, agent_id)
        else:
            agent_id = identity.id

        visit = PropertyVisit(
            lead_id=lead.id,
            property_id=prop.id,
            assigned_agent_id=agent_id,
            scheduled_at=ensure_aware(scheduled_at),
            status=VisitStatus.SCHEDULED.value,
            notes=notes,
        )
        self.session.add(visit)
        self.session.flush()

        LOGGER.info(
            f"Scheduled visit {visit.id} for lead {lead.id} at property {prop.id}",
            extra={"extra_data": {"visit_id": visit.id, "assigned_agent_id": agent_id, "user_id": identity.id}},
        )
        return self._visit_to_dict(self._load(visit.id))

    def update_visit_status(
        self,
        identity: Identity,
        visit_id: int,
        status: str,
        feedback: Optional[str] = None,
        rating: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Record the outcome of a visit, optionally with client feedback."""
        visit = self._load(visit_id)
        ensure_can_access(identity, visit.assigned_agent_id)
        check_transition("visit", visit.status, status)

        visit.status = status
        if feedback is not None:
            visit.feedback = feedback
        if rating is not None:
            visit.rating = rating

        self.session.flush()
        self.session.refresh(visit)
        LOGGER.info(
            f"Visit {visit.id} marked {status}",
            extra={"extra_data": {"visit_id": visit.id, "status": status, "user_id": identity.id}},
        )
        return self._visit_to_dict(visit)

    def delete_visit(self, identity: Identity, visit_id: int) -> None:
        """Delete a visit. Admin only."""
        visit = self._load(visit_id)
        ensure_admin(identity, "Only admins can delete visits")
        self.session.delete(visit)
        self.session.flush()
        LOGGER.info(f"Deleted visit {visit_id}")


__all__ = ["VisitService"]
