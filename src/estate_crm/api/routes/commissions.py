"""Commission routes."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import Field
from sqlalchemy.orm import Session

from estate_crm.api.auth_deps import get_current_identity
from estate_crm.api.deps import get_db
from estate_crm.api.responses import paginated_response, success_response
from estate_crm.api.schemas import CamelModel, page_params
from estate_crm.core.models import CommissionStatus
from estate_crm.core.types import Identity, PageRequest
from estate_crm.domain.commissions import CommissionService

router = APIRouter()


# =============================================================================
# Pydantic Models
# =============================================================================


class CommissionCreate(CamelModel):
    agent_id: int
    property_id: int
    percentage: float = Field(..., gt=0, le=100, description="Percent of the property price")


class CommissionStatusUpdate(CamelModel):
    status: CommissionStatus


# =============================================================================
# Routes
# =============================================================================


@router.get("")
async def list_commissions(
    status: Optional[CommissionStatus] = Query(default=None),
    agent_id: Optional[int] = Query(default=None, alias="agentId", description="Admin only"),
    page: PageRequest = Depends(page_params),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """List commissions; agents only see their own."""
    result = CommissionService(session=db).list_commissions(
        identity,
        page,
        status=status.value if status else None,
        agent_id=agent_id,
    )
    return paginated_response(result, "Commissions fetched successfully")


@router.post("", status_code=201)
async def create_commission(
    body: CommissionCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Record a commission (admin only). The amount is fixed at creation."""
    commission = CommissionService(session=db).create_commission(
        identity,
        agent_id=body.agent_id,
        property_id=body.property_id,
        percentage=body.percentage,
    )
    return success_response(commission, "Commission created successfully", 201)


@router.patch("/{commission_id}/status")
async def update_commission_status(
    commission_id: int,
    body: CommissionStatusUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    commission = CommissionService(session=db).update_commission_status(
        identity, commission_id, body.status.value
    )
    return success_response(commission, "Commission updated successfully")
