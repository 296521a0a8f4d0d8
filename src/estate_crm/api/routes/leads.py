"""Lead management routes, including the activity log of each lead."""
from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BeforeValidator, EmailStr, Field, field_validator
from sqlalchemy.orm import Session

from estate_crm.api.auth_deps import get_current_identity
from estate_crm.api.deps import get_db
from estate_crm.api.responses import paginated_response, success_response
from estate_crm.api.schemas import CamelModel, page_params
from estate_crm.core.logging_config import get_logger
from estate_crm.core.models import ActivityType, LeadSource, LeadStatus, LeadType
from estate_crm.core.types import Identity, PageRequest
from estate_crm.domain.leads import LeadService

router = APIRouter()
LOGGER = get_logger(__name__)


# =============================================================================
# Pydantic Models
# =============================================================================


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


# An empty string means "no email"
OptionalEmail = Annotated[Optional[EmailStr], BeforeValidator(_blank_to_none)]


class LeadCreate(CamelModel):
    """Request body for lead creation."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: OptionalEmail = None
    phone: str = Field(..., description="Phone number (min 10 chars)")
    type: LeadType = LeadType.BUYER
    source: LeadSource
    status: LeadStatus = LeadStatus.NEW
    budget_min: Optional[float] = Field(None, gt=0)
    budget_max: Optional[float] = Field(None, gt=0)
    interested_property_id: Optional[int] = None
    notes: Optional[str] = None
    # Honored for admins only; everyone else is assigned to themselves
    assigned_agent_id: Optional[int] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        if len(v) < 10:
            raise ValueError("Valid phone number required")
        return v


class LeadUpdate(CamelModel):
    """Partial update; only the keys sent are written."""

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: OptionalEmail = None
    phone: Optional[str] = Field(None, min_length=10)
    type: Optional[LeadType] = None
    source: Optional[LeadSource] = None
    status: Optional[LeadStatus] = None
    budget_min: Optional[float] = Field(None, gt=0)
    budget_max: Optional[float] = Field(None, gt=0)
    interested_property_id: Optional[int] = None
    notes: Optional[str] = None
    assigned_agent_id: Optional[int] = None


class ActivityCreate(CamelModel):
    """Request body for logging an activity on a lead."""

    type: ActivityType
    title: str = Field(..., min_length=3, max_length=255)
    notes: Optional[str] = None


# =============================================================================
# Routes
# =============================================================================


@router.get("")
async def list_leads(
    search: Optional[str] = Query(default=None, description="Name, email or phone substring"),
    status: Optional[LeadStatus] = Query(default=None),
    source: Optional[LeadSource] = Query(default=None),
    page: PageRequest = Depends(page_params),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """List leads visible to the caller, newest first."""
    service = LeadService(session=db)
    result = service.list_leads(
        identity,
        page,
        search=search,
        status=status.value if status else None,
        source=source.value if source else None,
    )
    return paginated_response(result, "Leads fetched successfully")


@router.post("", status_code=201)
async def create_lead(
    body: LeadCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Create a lead."""
    lead = LeadService(session=db).create_lead(identity, body.set_fields())
    return success_response(lead, "Lead created successfully", 201)


@router.get("/{lead_id}")
async def get_lead(
    lead_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Get a lead with its activities and visits."""
    lead = LeadService(session=db).get_lead(identity, lead_id)
    return success_response(lead, "Lead fetched successfully")


@router.put("/{lead_id}")
async def update_lead(
    lead_id: int,
    body: LeadUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Update a lead. Reassignment is ignored for non-admins."""
    lead = LeadService(session=db).update_lead(identity, lead_id, body.set_fields())
    return success_response(lead, "Lead updated successfully")


@router.delete("/{lead_id}")
async def delete_lead(
    lead_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Delete a lead (admin only)."""
    LeadService(session=db).delete_lead(identity, lead_id)
    return success_response(None, "Lead deleted successfully")


@router.get("/{lead_id}/activities")
async def list_activities(
    lead_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    activities = LeadService(session=db).list_activities(identity, lead_id)
    return success_response(activities, "Activities fetched successfully")


@router.post("/{lead_id}/activities", status_code=201)
async def add_activity(
    lead_id: int,
    body: ActivityCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Log a call, email, meeting or other touchpoint on a lead."""
    activity = LeadService(session=db).add_activity(
        identity,
        lead_id,
        type=body.type.value,
        title=body.title,
        notes=body.notes,
    )
    return success_response(activity, "Activity logged successfully", 201)
