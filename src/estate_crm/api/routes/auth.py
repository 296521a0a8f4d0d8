"""Authentication routes: login, register, logout, current user."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import EmailStr, Field, field_validator
from sqlalchemy.orm import Session

from estate_crm.api.auth_deps import get_current_identity
from estate_crm.api.deps import get_db
from estate_crm.api.responses import success_response
from estate_crm.api.schemas import CamelModel
from estate_crm.core.auth import issue_token, token_max_age_seconds
from estate_crm.core.config import get_settings
from estate_crm.core.exceptions import AuthenticationError, NotFoundError
from estate_crm.core.logging_config import get_logger
from estate_crm.core.types import Identity
from estate_crm.domain.users import UserService, user_to_dict

router = APIRouter()
LOGGER = get_logger(__name__)
SETTINGS = get_settings()


# =============================================================================
# Request Models
# =============================================================================


class LoginRequest(CamelModel):
    """Login request body."""

    email: EmailStr
    password: str = Field(..., min_length=1, description="Account password")


class RegisterRequest(CamelModel):
    """Registration request body. The role is always AGENT."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., description="Password (min 6 chars)")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., description="Phone number (min 10 chars)")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        if len(v) < 10:
            raise ValueError("Valid phone number required")
        return v


# =============================================================================
# Helpers
# =============================================================================


def _set_auth_cookie(response: JSONResponse, token: str) -> None:
    response.set_cookie(
        key=SETTINGS.auth_cookie_name,
        value=token,
        max_age=token_max_age_seconds(),
        httponly=True,
        secure=SETTINGS.auth_cookie_secure,
        samesite="lax",
        path="/",
    )


# =============================================================================
# Routes
# =============================================================================


@router.post("/login")
async def login(body: LoginRequest, db: Session = Depends(get_db)) -> JSONResponse:
    """
    Exchange email/password for a credential.

    The token is returned in the body and set as an httpOnly cookie.
    """
    service = UserService(session=db)
    user = service.authenticate(body.email, body.password)
    token = issue_token(db, user)

    response = success_response(
        {"user": user_to_dict(user), "token": token},
        "Login successful",
    )
    _set_auth_cookie(response, token)
    return response


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, db: Session = Depends(get_db)) -> JSONResponse:
    """Create an AGENT account."""
    service = UserService(session=db)
    user = service.register(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
    )
    return success_response(user_to_dict(user), "User registered successfully", 201)


@router.post("/logout")
async def logout() -> JSONResponse:
    """Clear the auth cookie. Bearer tokens stay valid until they expire."""
    response = success_response(None, "Logout successful")
    response.delete_cookie(key=SETTINGS.auth_cookie_name, path="/")
    return response


@router.get("/me")
async def me(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Return the current user's account."""
    try:
        user = UserService(session=db).get_user(identity.id)
    except NotFoundError:
        raise AuthenticationError() from None
    return success_response({"user": user_to_dict(user)}, "User retrieved successfully")
