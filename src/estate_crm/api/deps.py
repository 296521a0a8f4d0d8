"""Database session dependency for FastAPI routes."""
from __future__ import annotations

from typing import Generator

from sqlalchemy.orm import Session

from estate_crm.core.db import get_session


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session: committed when the route returns, rolled back if it raises."""
    with get_session() as session:
        yield session


__all__ = ["get_db"]
