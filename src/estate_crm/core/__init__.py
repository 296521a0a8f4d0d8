"""Core module exports."""
from __future__ import annotations

from estate_crm.core.config import Settings, get_settings, reload_settings
from estate_crm.core.db import Base, SessionLocal, get_session, init_db, translate_db_error
from estate_crm.core.exceptions import (
    # Base
    EstateCRMError,
    # Configuration
    ConfigurationError,
    # Auth
    AuthenticationError,
    InvalidCredentialsError,
    PermissionDeniedError,
    InactiveAccountError,
    # Request
    ValidationError,
    InvalidStatusTransitionError,
    NotFoundError,
    ConflictError,
    # Database
    DatabaseError,
    BackendUnavailableError,
)
from estate_crm.core.logging_config import (
    setup_logging,
    get_logger,
    log_request,
    request_id_var,
    JSONFormatter,
)
from estate_crm.core.models import (
    User,
    AgentDetails,
    Property,
    Lead,
    Activity,
    PropertyVisit,
    Commission,
)
from estate_crm.core.types import Identity, Page, PageRequest

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "reload_settings",
    # Database
    "Base",
    "SessionLocal",
    "get_session",
    "init_db",
    "translate_db_error",
    # Models
    "User",
    "AgentDetails",
    "Property",
    "Lead",
    "Activity",
    "PropertyVisit",
    "Commission",
    # Types
    "Identity",
    "Page",
    "PageRequest",
    # Exceptions - Base
    "EstateCRMError",
    # Exceptions - Config
    "ConfigurationError",
    # Exceptions - Auth
    "AuthenticationError",
    "InvalidCredentialsError",
    "PermissionDeniedError",
    "InactiveAccountError",
    # Exceptions - Request
    "ValidationError",
    "InvalidStatusTransitionError",
    "NotFoundError",
    "ConflictError",
    # Exceptions - Database
    "DatabaseError",
    "BackendUnavailableError",
    # Logging
    "setup_logging",
    "get_logger",
    "log_request",
    "request_id_var",
    "JSONFormatter",
]
