"""Admin analytics routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from estate_crm.api.auth_deps import require_admin
from estate_crm.api.deps import get_db
from estate_crm.api.responses import success_response
from estate_crm.core.types import Identity
from estate_crm.domain.analytics import AnalyticsService

router = APIRouter()


@router.get("/dashboard")
async def dashboard(
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Headline counts, visit and commission totals, and per-agent performance."""
    data = AnalyticsService(session=db).get_dashboard(identity)
    return success_response(data, "Analytics retrieved successfully")
