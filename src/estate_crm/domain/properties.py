"""Property domain service - listings owned by agents."""
from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from estate_crm.core.config import get_settings
from estate_crm.core.exceptions import ConflictError, NotFoundError, ValidationError
from estate_crm.core.logging_config import get_logger
from estate_crm.core.models import Commission, Property, PropertyStatus
from estate_crm.core.permissions import ensure_admin, ensure_can_access, owner_filter_id
from estate_crm.core.types import Identity, Page, PageRequest
from estate_crm.core.utils import isoformat, like_pattern
from estate_crm.domain.status import check_transition
from estate_crm.domain.users import agent_brief, require_staff

LOGGER = get_logger(__name__)
SETTINGS = get_settings()

# Writable columns, keyed by attribute name
PROPERTY_FIELDS = (
    "title",
    "description",
    "type",
    "status",
    "address",
    "city",
    "state",
    "zip_code",
    "country",
    "price",
    "bedrooms",
    "bathrooms",
    "square_feet",
    "furnished_status",
    "latitude",
    "longitude",
    "notes",
)

# Columns that may not be cleared by an update
REQUIRED_FIELDS = frozenset({
    "title", "type", "status", "address", "city", "country", "price", "furnished_status",
})


def property_brief(prop: Optional[Property]) -> Optional[Dict[str, Any]]:
    """Minimal property reference embedded in leads, visits and commissions."""
    if prop is None:
        return None
    return {"id": prop.id, "title": prop.title, "type": prop.type, "price": prop.price}


class PropertyService:
    """Service for property listings."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _property_to_dict(self, prop: Property, detail: bool = False) -> Dict[str, Any]:
        data = {
            "id": prop.id,
            "title": prop.title,
            "description": prop.description,
            "type": prop.type,
            "status": prop.status,
            "address": prop.address,
            "city": prop.city,
            "state": prop.state,
            "zipCode": prop.zip_code,
            "country": prop.country,
            "price": prop.price,
            "bedrooms": prop.bedrooms,
            "bathrooms": prop.bathrooms,
            "squareFeet": prop.square_feet,
            "furnishedStatus": prop.furnished_status,
            "latitude": prop.latitude,
            "longitude": prop.longitude,
            "notes": prop.notes,
            "agentId": prop.agent_id,
            "agent": agent_brief(prop.agent),
            "createdAt": isoformat(prop.created_at),
            "updatedAt": isoformat(prop.updated_at),
        }
        if detail:
            data["visits"] = [
                {
                    "id": visit.id,
                    "leadId": visit.lead_id,
                    "scheduledAt": isoformat(visit.scheduled_at),
                    "status": visit.status,
                }
                for visit in sorted(prop.visits, key=lambda v: v.scheduled_at, reverse=True)
            ]
            data["interestedLeadCount"] = len(prop.interested_leads)
        return data

    def _load(self, property_id: int) -> Property:
        prop = (
            self.session.query(Property)
            .options(selectinload(Property.agent))
            .filter(Property.id == property_id)
            .one_or_none()
        )
        if prop is None:
            raise NotFoundError("Property not found")
        return prop

    def _require_agent(self, agent_id: int) -> None:
        require_staff(self.session, agent_id)

    def list_properties(
        self,
        identity: Identity,
        page: PageRequest,
        search: Optional[str] = None,
        status: Optional[str] = None,
        type: Optional[str] = None,
    ) -> Page:
        """
        List properties visible to the caller.

        Args:
            identity: Caller; non-admins only see their own listings.
            page: Page/limit request.
            search: Case-insensitive substring over title, address and city.
            status: Exact status filter.
            type: Exact property type filter.
        """
        query = self.session.query(Property)

        owner_id = owner_filter_id(identity)
        if owner_id is not None:
            query = query.filter(Property.agent_id == owner_id)

        if search:
            pattern = like_pattern(search)
            query = query.filter(
                Property.title.ilike(pattern, escape="\\")
                | Property.address.ilike(pattern, escape="\\")
                | Property.city.ilike(pattern, escape="\\")
            )
        if status:
            query = query.filter(Property.status == status)
        if type:
            query = query.filter(Property.type == type)

        total = query.count()
        rows = (
            query.options(selectinload(Property.agent))
            .order_by(Property.created_at.desc(), Property.id.desc())
            .offset(page.offset)
            .limit(page.limit)
            .all()
        )
        return Page(
            items=[self._property_to_dict(p) for p in rows],
            total=total,
            page=page.page,
            limit=page.limit,
        )

    def get_property(self, identity: Identity, property_id: int) -> Dict[str, Any]:
        prop = self._load(property_id)
        ensure_can_access(identity, prop.agent_id)
        return self._property_to_dict(prop, detail=True)

    def create_property(self, identity: Identity, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a listing.

        Non-admins always own what they create; admins must name the agent.
        """
        if identity.is_admin:
            agent_id = data.get("agent_id")
            if agent_id is None:
                raise ValidationError("Agent must be assigned")
            self._require_agent(agent_id)
        else:
            agent_id = identity.id

        values = {k: data[k] for k in PROPERTY_FIELDS if data.get(k) is not None}
        values.setdefault("status", PropertyStatus.AVAILABLE.value)
        values.setdefault("country", SETTINGS.default_country)

        prop = Property(agent_id=agent_id, **values)
        self.session.add(prop)
        self.session.flush()

        LOGGER.info(
            f"Created property {prop.id}",
            extra={"extra_data": {"property_id": prop.id, "agent_id": agent_id, "user_id": identity.id}},
        )
        return self._property_to_dict(self._load(prop.id))

    def update_property(
        self, identity: Identity, property_id: int, data: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Apply a partial update.

        Only keys present in ``data`` are written. ``agent_id`` is honored for
        admins and ignored for everyone else.
        """
        prop = self._load(property_id)
        ensure_can_access(identity, prop.agent_id)

        if data.get("status") is not None:
            check_transition("property", prop.status, data["status"])

        for key in PROPERTY_FIELDS:
            if key not in data:
                continue
            if data[key] is None and key in REQUIRED_FIELDS:
                continue
            setattr(prop, key, data[key])

        if identity.is_admin and data.get("agent_id") is not None:
            self._require_agent(data["agent_id"])
            prop.agent_id = data["agent_id"]

        self.session.flush()
        self.session.refresh(prop)
        LOGGER.info(f"Updated property {prop.id}")
        return self._property_to_dict(prop)

    def delete_property(self, identity: Identity, property_id: int) -> None:
        """Delete a listing and its visits. Admin only."""
        prop = self._load(property_id)
        ensure_admin(identity, "Only admins can delete properties")

        has_commissions = (
            self.session.query(func.count(Commission.id))
            .filter(Commission.property_id == prop.id)
            .scalar()
        )
        if has_commissions:
            raise ConflictError("Property has commissions and cannot be deleted")

        self.session.delete(prop)
        self.session.flush()
        LOGGER.info(
            f"Deleted property {property_id}",
            extra={"extra_data": {"property_id": property_id, "user_id": identity.id}},
        )


__all__ = ["PropertyService", "property_brief", "PROPERTY_FIELDS"]
