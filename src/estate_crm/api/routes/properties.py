"""Property listing routes."""
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
from estate_crm.core.models import FurnishedStatus, PropertyStatus, PropertyType
from estate_crm.core.types import Identity, PageRequest
from estate_crm.domain.properties import PropertyService

router = APIRouter()


# =============================================================================
# Pydantic Models
# =============================================================================


class PropertyCreate(CamelModel):
    """Request body for property creation."""

    title: str = Field(..., min_length=5, max_length=255)
    description: Optional[str] = None
    type: PropertyType
    status: PropertyStatus = PropertyStatus.AVAILABLE
    address: str = Field(..., min_length=5, max_length=255)
    city: str = Field(..., min_length=2, max_length=100)
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    price: float = Field(..., gt=0, description="Asking price, must be greater than 0")
    bedrooms: Optional[int] = Field(None, gt=0)
    bathrooms: Optional[int] = Field(None, gt=0)
    square_feet: Optional[float] = Field(None, gt=0)
    furnished_status: FurnishedStatus = FurnishedStatus.UNFURNISHED
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    notes: Optional[str] = None
    # Required for admins; ignored for agents, who always own their listings
    agent_id: Optional[int] = None


class PropertyUpdate(CamelModel):
    """Partial update; only the keys sent are written."""

    title: Optional[str] = Field(None, min_length=5, max_length=255)
    description: Optional[str] = None
    type: Optional[PropertyType] = None
    status: Optional[PropertyStatus] = None
    address: Optional[str] = Field(None, min_length=5, max_length=255)
    city: Optional[str] = Field(None, min_length=2, max_length=100)
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    price: Optional[float] = Field(None, gt=0)
    bedrooms: Optional[int] = Field(None, gt=0)
    bathrooms: Optional[int] = Field(None, gt=0)
    square_feet: Optional[float] = Field(None, gt=0)
    furnished_status: Optional[FurnishedStatus] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    notes: Optional[str] = None
    agent_id: Optional[int] = None


# =============================================================================
# Routes
# =============================================================================


@router.get("")
async def list_properties(
    search: Optional[str] = Query(default=None, description="Title, address or city substring"),
    status: Optional[PropertyStatus] = Query(default=None),
    type: Optional[PropertyType] = Query(default=None),
    page: PageRequest = Depends(page_params),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """List properties visible to the caller, newest first."""
    result = PropertyService(session=db).list_properties(
        identity,
        page,
        search=search,
        status=status.value if status else None,
        type=type.value if type else None,
    )
    return paginated_response(result, "Properties fetched successfully")


@router.post("", status_code=201)
async def create_property(
    body: PropertyCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    prop = PropertyService(session=db).create_property(identity, body.set_fields())
    return success_response(prop, "Property created successfully", 201)


@router.get("/{property_id}")
async def get_property(
    property_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    prop = PropertyService(session=db).get_property(identity, property_id)
    return success_response(prop, "Property fetched successfully")


@router.put("/{property_id}")
async def update_property(
    property_id: int,
    body: PropertyUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Update a listing. Reassignment is ignored for non-admins."""
    prop = PropertyService(session=db).update_property(identity, property_id, body.set_fields())
    return success_response(prop, "Property updated successfully")


@router.delete("/{property_id}")
async def delete_property(
    property_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Delete a listing (admin only)."""
    PropertyService(session=db).delete_property(identity, property_id)
    return success_response(None, "Property deleted successfully")
