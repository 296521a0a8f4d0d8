"""Configuration management for the estate_crm platform.

All configuration is loaded from environment variables and/or .env file.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root detection
PROJECT_ROOT = Path(__file__).resolve().parents[3]
ENV_FILE = PROJECT_ROOT / ".env"

# Absolute path to the default SQLite database (never changes regardless of CWD)
DATABASE_FILE = PROJECT_ROOT / "estate_crm.db"
ABSOLUTE_DATABASE_URL = f"sqlite:///{DATABASE_FILE.as_posix()}"

DEFAULT_JWT_SECRET = "change-me-in-production"


def _resolve_database_url(url: str) -> str:
    """
    Convert relative SQLite paths to absolute paths based on PROJECT_ROOT.

    In-memory databases and server URLs are returned unchanged.
    """
    if not url.startswith("sqlite:///"):
        return url

    path_part = url.replace("sqlite:///", "")
    if path_part == ":memory:" or not path_part:
        return url

    if path_part.startswith("./") or (not path_part.startswith("/") and ":" not in path_part):
        if path_part.startswith("./"):
            path_part = path_part[2:]

        absolute_path = PROJECT_ROOT / path_part
        return f"sqlite:///{absolute_path.as_posix()}"

    return url


class Settings(BaseSettings):
    """
    Runtime configuration powered by environment variables and .env overrides.

    All settings can be configured via:
    1. Environment variables (highest priority)
    2. .env file in project root (loaded automatically)
    3. Default values (lowest priority)
    """

    model_config = SettingsConfigDict(
        env_file=ENV_FILE if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # Database
    # -------------------------------------------------------------------------
    database_url: str = Field(
        default=ABSOLUTE_DATABASE_URL,
        alias="DATABASE_URL",
        description="SQLAlchemy connection string.",
    )
    db_pool_size: int = Field(default=5, alias="DB_POOL_SIZE", ge=1)
    db_max_overflow: int = Field(default=10, alias="DB_MAX_OVERFLOW", ge=0)
    db_pool_timeout: int = Field(default=30, alias="DB_POOL_TIMEOUT", ge=1)

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------
    jwt_secret_key: str = Field(default=DEFAULT_JWT_SECRET, alias="JWT_SECRET_KEY")
    jwt_access_token_expire_minutes: int = Field(
        default=24 * 60, alias="JWT_ACCESS_TOKEN_EXPIRE_MINUTES", ge=1
    )
    auth_cookie_name: str = Field(default="auth-token", alias="AUTH_COOKIE_NAME")
    auth_cookie_secure: bool = Field(
        default=False,
        alias="AUTH_COOKIE_SECURE",
        description="Only send the auth cookie over HTTPS",
    )

    # -------------------------------------------------------------------------
    # Business rules
    # -------------------------------------------------------------------------
    status_transition_mode: str = Field(
        default="permissive",
        alias="STATUS_TRANSITION_MODE",
        description="'permissive' allows any status value, 'strict' enforces transition tables",
    )
    default_page_limit: int = Field(default=10, alias="DEFAULT_PAGE_LIMIT", ge=1)
    max_page_limit: int = Field(default=100, alias="MAX_PAGE_LIMIT", ge=1)
    default_country: str = Field(default="India", alias="DEFAULT_COUNTRY")

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="text", alias="LOG_FORMAT")  # "text" or "json"
    environment: str = Field(default="local", alias="ENVIRONMENT")
    allowed_origins: str = Field(
        default="http://localhost:3000",
        alias="ALLOWED_ORIGINS",
        description="Comma-separated list of CORS origins",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Ensure log format is valid."""
        lower = v.lower()
        if lower not in {"text", "json"}:
            raise ValueError("log_format must be 'text' or 'json'")
        return lower

    @field_validator("status_transition_mode")
    @classmethod
    def validate_status_transition_mode(cls, v: str) -> str:
        lower = v.lower()
        if lower not in {"permissive", "strict"}:
            raise ValueError("status_transition_mode must be 'permissive' or 'strict'")
        return lower

    @model_validator(mode="after")
    def validate_jwt_secret(self) -> "Settings":
        """Refuse to run production with the placeholder signing secret."""
        if self.environment == "production" and self.jwt_secret_key == DEFAULT_JWT_SECRET:
            raise ValueError("JWT_SECRET_KEY must be set in production mode")
        return self

    @model_validator(mode="after")
    def resolve_database_url(self) -> "Settings":
        """Convert relative SQLite paths to absolute paths."""
        self.database_url = _resolve_database_url(self.database_url)
        return self

    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def is_strict_transitions(self) -> bool:
        """Check whether status changes must follow the transition tables."""
        return self.status_transition_mode == "strict"

    def get_allowed_origins(self) -> List[str]:
        """Split ALLOWED_ORIGINS into a list, ignoring blanks."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once and cached. To reload settings,
    call `get_settings.cache_clear()` first.

    Returns:
        Settings object with all configuration.
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Clear settings cache and reload from environment.

    Useful for testing or after modifying .env file.
    """
    get_settings.cache_clear()
    return get_settings()
