"""Property visit routes."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import Field
from sqlalchemy.orm import Session

from estate_crm.api.auth_deps import get_current_identity
from estate_crm.api.deps import get_db
from estate_crm.api.responses import paginated_response, success_response
from estate_crm.api.schemas import CamelModel, page_params
from estate_crm.core.models import VisitStatus
from estate_crm.core.types import Identity, PageRequest
from estate_crm.domain.visits import VisitService

router = APIRouter()


# =============================================================================
# Pydantic Models
# =============================================================================


class VisitCreate(CamelModel):
    """Request body for scheduling a visit."""

    lead_id: int
    property_id: int
    scheduled_at: datetime
    # Admins may pick the agent (defaults to the listing agent); others run their own visits
    assigned_agent_id: Optional[int] = None
    notes: Optional[str] = None


class VisitStatusUpdate(CamelModel):
    """Outcome of a visit."""

    status: VisitStatus
    feedback: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)


# =============================================================================
# Routes
# =============================================================================


@router.get("")
async def list_visits(
    status: Optional[VisitStatus] = Query(default=None),
    agent_id: Optional[int] = Query(default=None, alias="agentId", description="Admin only"),
    page: PageRequest = Depends(page_params),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """List visits, most recently scheduled first."""
    result = VisitService(session=db).list_visits(
        identity,
        page,
        status=status.value if status else None,
        agent_id=agent_id,
    )
    return paginated_response(result, "Visits fetched successfully")


@router.post("", status_code=201)
async def create_visit(
    body: VisitCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    visit = VisitService(session=db).create_visit(
        identity,
        lead_id=body.lead_id,
        property_id=body.property_id,
        scheduled_at=body.scheduled_at,
        assigned_agent_id=body.assigned_agent_id,
        notes=body.notes,
    )
    return success_response(visit, "Visit scheduled successfully", 201)


@router.get("/{visit_id}")
async def get_visit(
    visit_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    visit = VisitService(session=db).get_visit(identity, visit_id)
    return success_response(visit, "Visit fetched successfully")


@router.patch("/{visit_id}/status")
async def update_visit_status(
    visit_id: int,
    body: VisitStatusUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Record a visit outcome with optional feedback and 1-5 rating."""
    visit = VisitService(session=db).update_visit_status(
        identity,
        visit_id,
        status=body.status.value,
        feedback=body.feedback,
        rating=body.rating,
    )
    return success_response(visit, "Visit updated successfully")


@router.delete("/{visit_id}")
async def delete_visit(
    visit_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Delete a visit (admin only)."""
    VisitService(session=db).delete_visit(identity, visit_id)
    return success_response(None, "Visit deleted successfully")
