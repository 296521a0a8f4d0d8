"""Admin account management routes."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from estate_crm.api.auth_deps import require_admin
from estate_crm.api.deps import get_db
from estate_crm.api.responses import paginated_response, success_response
from estate_crm.api.schemas import CamelModel, page_params
from estate_crm.core.models import UserRole
from estate_crm.core.types import Identity, PageRequest
from estate_crm.domain.users import UserService, user_to_dict

router = APIRouter()


class UserUpdate(CamelModel):
    """Fields an admin may change on an account."""

    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


@router.get("")
async def list_users(
    role: Optional[UserRole] = Query(default=None),
    search: Optional[str] = Query(default=None),
    page: PageRequest = Depends(page_params),
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
) -> JSONResponse:
    result = UserService(session=db).list_users(
        page,
        role=role.value if role else None,
        search=search,
    )
    return paginated_response(result, "Users fetched successfully")


@router.patch("/{user_id}")
async def update_user(
    user_id: int,
    body: UserUpdate,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """
    Change a user's role or deactivate the account.

    Credentials already issued keep their role claim until they expire.
    """
    user = UserService(session=db).update_user(
        user_id,
        role=body.role.value if body.role else None,
        is_active=body.is_active,
        acting_user_id=identity.id,
    )
    return success_response(user_to_dict(user), "User updated successfully")
