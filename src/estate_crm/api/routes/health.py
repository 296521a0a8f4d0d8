"""Health check routes."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from estate_crm import __version__
from estate_crm.api.deps import get_db
from estate_crm.core.config import get_settings
from estate_crm.core.logging_config import get_logger
from estate_crm.core.utils import utcnow

router = APIRouter()
LOGGER = get_logger(__name__)
SETTINGS = get_settings()


@router.get("")
async def health_check() -> Dict[str, Any]:
    """Basic liveness check - no database access, always returns OK."""
    return {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "environment": SETTINGS.environment,
        "version": __version__,
    }


@router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Health check including a database round trip."""
    status = "healthy"
    checks: Dict[str, Any] = {}

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = {"status": "healthy", "connected": True}
    except SQLAlchemyError as e:
        LOGGER.error(f"Database health check failed: {e}")
        status = "unhealthy"
        checks["database"] = {"status": "unhealthy", "connected": False}

    checks["auth"] = {
        "cookie_name": SETTINGS.auth_cookie_name,
        "token_lifetime_minutes": SETTINGS.jwt_access_token_expire_minutes,
    }
    checks["status_transitions"] = {"mode": SETTINGS.status_transition_mode}

    return {
        "status": status,
        "timestamp": utcnow().isoformat(),
        "environment": SETTINGS.environment,
        "checks": checks,
    }
