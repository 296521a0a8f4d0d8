"""Lead domain service - core business logic for lead management."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from estate_crm.core.exceptions import NotFoundError
from estate_crm.core.logging_config import get_logger
from estate_crm.core.models import Activity, Lead, LeadStatus, LeadType, Property
from estate_crm.core.permissions import ensure_admin, ensure_can_access, owner_filter_id
from estate_crm.core.types import Identity, Page, PageRequest
from estate_crm.core.utils import isoformat, like_pattern
from estate_crm.domain.properties import property_brief
from estate_crm.domain.status import check_transition
from estate_crm.domain.users import agent_brief, require_staff

LOGGER = get_logger(__name__)

LEAD_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "type",
    "source",
    "status",
    "budget_min",
    "budget_max",
    "interested_property_id",
    "notes",
)

REQUIRED_FIELDS = frozenset({"first_name", "last_name", "phone", "type", "source", "status"})


def activity_to_dict(activity: Activity) -> Dict[str, Any]:
    return {
        "id": activity.id,
        "leadId": activity.lead_id,
        "type": activity.type,
        "title": activity.title,
        "notes": activity.notes,
        "createdById": activity.created_by_id,
        "createdAt": isoformat(activity.created_at),
    }


class LeadService:
    """Service for lead-related operations."""

    def __init__(self, session: Session) -> None:
        """Initialize the lead service with a database session."""
        self.session = session

    def _lead_to_summary(self, lead: Lead) -> Dict[str, Any]:
        """Convert a Lead model to its list representation."""
        return {
            "id": lead.id,
            "firstName": lead.first_name,
            "lastName": lead.last_name,
            "email": lead.email,
            "phone": lead.phone,
            "type": lead.type,
            "source": lead.source,
            "status": lead.status,
            "budgetMin": lead.budget_min,
            "budgetMax": lead.budget_max,
            "interestedPropertyId": lead.interested_property_id,
            "notes": lead.notes,
            "assignedAgentId": lead.assigned_agent_id,
            "assignedAgent": agent_brief(lead.assigned_agent),
            "interestedProperty": property_brief(lead.interested_property),
            "createdAt": isoformat(lead.created_at),
            "updatedAt": isoformat(lead.updated_at),
        }

    def _lead_to_detail(self, lead: Lead) -> Dict[str, Any]:
        """Convert a Lead model to its detail representation with history."""
        data = self._lead_to_summary(lead)
        data["activities"] = [activity_to_dict(a) for a in lead.activities]
        data["visits"] = [
            {
                "id": visit.id,
                "propertyId": visit.property_id,
                "assignedAgentId": visit.assigned_agent_id,
                "scheduledAt": isoformat(visit.scheduled_at),
                "status": visit.status,
            }
            for visit in lead.visits
        ]
        return data

    def _load(self, lead_id: int) -> Lead:
        lead = (
            self.session.query(Lead)
            .options(
                selectinload(Lead.assigned_agent),
                selectinload(Lead.interested_property),
            )
            .filter(Lead.id == lead_id)
            .one_or_none()
        )
        if lead is None:
            raise NotFoundError("Lead not found")
        return lead

    def _load_for(self, identity: Identity, lead_id: int) -> Lead:
        """Fetch a lead the caller may touch; 404 takes precedence over 403."""
        lead = self._load(lead_id)
        ensure_can_access(identity, lead.assigned_agent_id)
        return lead

    def _require_property(self, property_id: Optional[int]) -> None:
        if property_id is not None and self.session.get(Property, property_id) is None:
            raise NotFoundError("Property not found")

    def _require_agent(self, agent_id: Optional[int]) -> None:
        if agent_id is not None:
            require_staff(self.session, agent_id)

    def list_leads(
        self,
        identity: Identity,
        page: PageRequest,
        search: Optional[str] = None,
        status: Optional[str] = None,
        source: Optional[str] = None,
    ) -> Page:
        """
        List leads with filtering and pagination.

        Args:
            identity: Caller; non-admins only see leads assigned to them.
            page: Page/limit request.
            search: Case-insensitive substring over name, email and phone.
            status: Filter by pipeline status.
            source: Filter by lead source.

        Returns:
            Page of lead summaries, newest first.
        """
        query = self.session.query(Lead)

        owner_id = owner_filter_id(identity)
        if owner_id is not None:
            query = query.filter(Lead.assigned_agent_id == owner_id)

        if search:
            pattern = like_pattern(search)
            query = query.filter(
                Lead.first_name.ilike(pattern, escape="\\")
                | Lead.last_name.ilike(pattern, escape="\\")
                | Lead.email.ilike(pattern, escape="\\")
                | Lead.phone.ilike(pattern, escape="\\")
            )

        if status:
            query = query.filter(Lead.status == status)

        if source:
            query = query.filter(Lead.source == source)

        total = query.count()
        leads = (
            query.options(
                selectinload(Lead.assigned_agent),
                selectinload(Lead.interested_property),
            )
            .order_by(Lead.created_at.desc(), Lead.id.desc())
            .offset(page.offset)
            .limit(page.limit)
            .all()
        )
        return Page(
            items=[self._lead_to_summary(lead) for lead in leads],
            total=total,
            page=page.page,
            limit=page.limit,
        )

    def get_lead(self, identity: Identity, lead_id: int) -> Dict[str, Any]:
        """
        Get detailed information for a specific lead.

        Raises:
            NotFoundError: If the lead does not exist.
            PermissionDeniedError: If the caller is neither admin nor assignee.
        """
        return self._lead_to_detail(self._load_for(identity, lead_id))

    def create_lead(self, identity: Identity, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a lead.

        Non-admin callers are always recorded as the assigned agent, whatever
        the payload says. Admins may assign any agent or leave it empty.
        """
        if identity.is_admin:
            assigned_agent_id = data.get("assigned_agent_id")
            self._require_agent(assigned_agent_id)
        else:
            assigned_agent_id = identity.id

        self._require_property(data.get("interested_property_id"))

        values = {k: data[k] for k in LEAD_FIELDS if data.get(k) is not None}
        values.setdefault("type", LeadType.BUYER.value)
        values.setdefault("status", LeadStatus.NEW.value)

        lead = Lead(assigned_agent_id=assigned_agent_id, **values)
        self.session.add(lead)
        self.session.flush()

        LOGGER.info(
            f"Created lead {lead.id}",
            extra={"extra_data": {
                "lead_id": lead.id,
                "assigned_agent_id": assigned_agent_id,
                "user_id": identity.id,
            }},
        )
        return self._lead_to_summary(self._load(lead.id))

    def update_lead(self, identity: Identity, lead_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply a partial update to a lead.

        ``assigned_agent_id`` is only honored for admins.
        """
        lead = self._load_for(identity, lead_id)

        if data.get("status") is not None:
            check_transition("lead", lead.status, data["status"])
        if "interested_property_id" in data:
            self._require_property(data["interested_property_id"])

        for key in LEAD_FIELDS:
            if key not in data:
                continue
            if data[key] is None and key in REQUIRED_FIELDS:
                continue
            setattr(lead, key, data[key])

        if identity.is_admin and "assigned_agent_id" in data:
            self._require_agent(data["assigned_agent_id"])
            lead.assigned_agent_id = data["assigned_agent_id"]

        self.session.flush()
        self.session.refresh(lead)
        LOGGER.info(
            f"Updated lead {lead.id}",
            extra={"extra_data": {"lead_id": lead.id, "status": lead.status, "user_id": identity.id}},
        )
        return self._lead_to_summary(lead)

    def update_lead_status(self, identity: Identity, lead_id: int, status: str) -> Dict[str, Any]:
        """Update a lead's pipeline status."""
        return self.update_lead(identity, lead_id, {"status": status})

    def delete_lead(self, identity: Identity, lead_id: int) -> None:
        """Delete a lead with its activities and visits. Admin only."""
        lead = self._load(lead_id)
        ensure_admin(identity, "Only admins can delete leads")
        self.session.delete(lead)
        self.session.flush()
        LOGGER.info(
            f"Deleted lead {lead_id}",
            extra={"extra_data": {"lead_id": lead_id, "user_id": identity.id}},
        )

    # -------------------------------------------------------------------------
    # Activities
    # -------------------------------------------------------------------------

    def list_activities(self, identity: Identity, lead_id: int) -> List[Dict[str, Any]]:
        lead = self._load_for(identity, lead_id)
        return [activity_to_dict(a) for a in lead.activities]

    def add_activity(
        self,
        identity: Identity,
        lead_id: int,
        type: str,
        title: str,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Log a touchpoint on a lead the caller may access."""
        lead = self._load_for(identity, lead_id)
        activity = Activity(
            lead_id=lead.id,
            type=type,
            title=title,
            notes=notes,
            created_by_id=identity.id,
        )
        self.session.add(activity)
        self.session.flush()
        LOGGER.info(
            f"Logged {type} activity on lead {lead.id}",
            extra={"extra_data": {"lead_id": lead.id, "activity_id": activity.id, "user_id": identity.id}},
        )
        return activity_to_dict(activity)


__all__ = ["LeadService", "activity_to_dict", "LEAD_FIELDS"]
