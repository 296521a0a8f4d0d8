"""User domain service - registration, credential checks and account management."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from estate_crm.core.auth import hash_password, verify_password
from estate_crm.core.exceptions import (
    ConflictError,
    InactiveAccountError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
)
from estate_crm.core.logging_config import get_logger
from estate_crm.core.models import AgentDetails, AgentStatus, User, UserRole
from estate_crm.core.types import Page, PageRequest
from estate_crm.core.utils import isoformat, like_pattern

LOGGER = get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def user_to_dict(user: User) -> Dict[str, Any]:
    """Sanitized user representation; never includes the password hash."""
    return {
        "id": user.id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "phone": user.phone,
        "avatar": user.avatar,
        "role": user.role,
        "isActive": user.is_active,
        "lastLogin": isoformat(user.last_login),
        "createdAt": isoformat(user.created_at),
        "updatedAt": isoformat(user.updated_at),
    }


def agent_brief(user: Optional[User]) -> Optional[Dict[str, Any]]:
    """Minimal agent reference embedded in other resources."""
    if user is None:
        return None
    return {"id": user.id, "firstName": user.first_name, "lastName": user.last_name}


STAFF_ROLES = frozenset({UserRole.AGENT.value, UserRole.ADMIN.value})


def require_staff(session: Session, user_id: int) -> User:
    """
    Load the account that listings, leads, visits or commissions are pinned to.

    Raises:
        NotFoundError: If no such user exists.
        ValidationError: If the user is a client.
    """
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("Agent not found")
    if user.role not in STAFF_ROLES:
        raise ValidationError("User is not an agent")
    return user


class UserService:
    """Service for user accounts."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_email(self, email: str) -> Optional[User]:
        return (
            self.session.query(User)
            .filter(func.lower(User.email) == normalize_email(email))
            .one_or_none()
        )

    def get_user(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
    ) -> User:
        """
        Create a new AGENT account.

        Self-registration never grants another role; admins are created from
        the command line.

        Raises:
            ConflictError: If the email is already registered.
        """
        email = normalize_email(email)
        if self.get_by_email(email) is not None:
            raise ConflictError("User with this email already exists")

        user = User(
            email=email,
            hashed_password=hash_password(password),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            phone=phone,
            role=UserRole.AGENT.value,
            is_active=True,
        )
        user.agent_details = AgentDetails(status=AgentStatus.ACTIVE.value)
        self.session.add(user)
        self.session.flush()

        LOGGER.info(
            f"Registered user {user.id}",
            extra={"extra_data": {"user_id": user.id, "role": user.role}},
        )
        return user

    def create_admin(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> User:
        """Create an ADMIN account (command line only)."""
        email = normalize_email(email)
        if self.get_by_email(email) is not None:
            raise ConflictError("User with this email already exists")

        user = User(
            email=email,
            hashed_password=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=UserRole.ADMIN.value,
            is_active=True,
        )
        self.session.add(user)
        self.session.flush()
        LOGGER.info(f"Created admin user {user.id}")
        return user

    def authenticate(self, email: str, password: str) -> User:
        """
        Check an email/password pair.

        Unknown email and wrong password raise the same error so callers
        cannot tell which one failed.

        Raises:
            InvalidCredentialsError: On any mismatch.
            InactiveAccountError: If the account is deactivated.
        """
        user = self.get_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            LOGGER.warning("Failed login attempt")
            raise InvalidCredentialsError()
        if not user.is_active:
            LOGGER.warning(f"Login attempt for deactivated user {user.id}")
            raise InactiveAccountError()
        return user

    def list_users(
        self,
        page: PageRequest,
        role: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Page:
        query = self.session.query(User)
        if role:
            query = query.filter(User.role == role)
        if search:
            pattern = like_pattern(search)
            query = query.filter(
                User.email.ilike(pattern, escape="\\")
                | User.first_name.ilike(pattern, escape="\\")
                | User.last_name.ilike(pattern, escape="\\")
            )

        total = query.count()
        users: List[User] = (
            query.order_by(User.created_at.desc(), User.id.desc())
            .offset(page.offset)
            .limit(page.limit)
            .all()
        )
        return Page(
            items=[user_to_dict(u) for u in users],
            total=total,
            page=page.page,
            limit=page.limit,
        )

    def update_user(
        self,
        user_id: int,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        acting_user_id: Optional[int] = None,
    ) -> User:
        """
        Change a user's role or active flag.

        Tokens already issued keep their old role claim until they expire.
        """
        user = self.get_user(user_id)
        if acting_user_id is not None and user.id == acting_user_id:
            if (role is not None and role != user.role) or is_active is False:
                raise ValidationError("You cannot change your own role or deactivate yourself")

        if role is not None:
            user.role = role
            if role == UserRole.AGENT.value and user.agent_details is None:
                user.agent_details = AgentDetails(status=AgentStatus.ACTIVE.value)
        if is_active is not None:
            user.is_active = is_active

        self.session.flush()
        LOGGER.info(
            f"Updated user {user.id}",
            extra={"extra_data": {"user_id": user.id, "role": user.role, "is_active": user.is_active}},
        )
        return user


__all__ = ["UserService", "user_to_dict", "agent_brief", "normalize_email"]
