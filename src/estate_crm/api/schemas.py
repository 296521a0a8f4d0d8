"""Shared request model base and query parameter helpers."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict

from fastapi import Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from estate_crm.core.config import get_settings
from estate_crm.core.types import PageRequest

SETTINGS = get_settings()

# Keeps (page - 1) * limit inside a signed 64-bit OFFSET
MAX_PAGE = (2**63 - 1) // SETTINGS.max_page_limit


class CamelModel(BaseModel):
    """Request body accepting camelCase keys (snake_case also accepted)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def set_fields(self) -> Dict[str, Any]:
        """
        Fields the client actually sent, keyed by attribute name.

        Enum members are replaced by their string values, as stored in the
        database.
        """
        data = self.model_dump(exclude_unset=True)
        return {k: v.value if isinstance(v, Enum) else v for k, v in data.items()}


def page_params(
    page: int = Query(default=1, ge=1, le=MAX_PAGE, description="1-based page number"),
    limit: int = Query(
        default=SETTINGS.default_page_limit,
        ge=1,
        le=SETTINGS.max_page_limit,
        description="Rows per page",
    ),
) -> PageRequest:
    """FastAPI dependency turning page/limit query params into a PageRequest."""
    return PageRequest(page=page, limit=limit)


__all__ = ["CamelModel", "page_params"]
