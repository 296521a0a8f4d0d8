"""Database connection and session management."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, List

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from estate_crm.core.config import get_settings
from estate_crm.core.exceptions import (
    BackendUnavailableError,
    ConflictError,
    DatabaseError,
    EstateCRMError,
)
from estate_crm.core.logging_config import get_logger

LOGGER = get_logger(__name__)
SETTINGS = get_settings()

# Required tables that MUST exist for the system to function
REQUIRED_TABLES = ["user", "property", "lead", "property_visit", "commission"]


def _build_engine():
    """Create the process-wide engine for the configured database."""
    if SETTINGS.is_sqlite():
        # NullPool: each session opens its own connection. An in-memory
        # database only exists on one connection, so it gets StaticPool.
        in_memory = ":memory:" in SETTINGS.database_url
        sqlite_engine = create_engine(
            SETTINGS.database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if in_memory else NullPool,
        )

        @event.listens_for(sqlite_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=30000")
            cursor.close()

        return sqlite_engine

    return create_engine(
        SETTINGS.database_url,
        pool_size=SETTINGS.db_pool_size,
        max_overflow=SETTINGS.db_max_overflow,
        pool_timeout=SETTINGS.db_pool_timeout,
        pool_pre_ping=True,  # Verify connection before usage
    )


engine = _build_engine()

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def translate_db_error(exc: SQLAlchemyError) -> EstateCRMError:
    """
    Map a SQLAlchemy exception onto the application error taxonomy.

    Classification is by exception type only:
    - connection-class failures become BackendUnavailableError (503)
    - integrity violations become ConflictError (409)
    - everything else becomes DatabaseError (500)
    """
    if isinstance(exc, (OperationalError, InterfaceError, PoolTimeoutError)):
        return BackendUnavailableError()
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return BackendUnavailableError()
    if isinstance(exc, IntegrityError):
        return ConflictError("Record conflicts with existing data")
    return DatabaseError()


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Yields:
        SQLAlchemy Session object.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(create_missing_only: bool = True) -> dict:
    """
    Initialize database tables.

    Args:
        create_missing_only: If True, only creates missing tables (safe).
                            If False, creates all tables (use for fresh install).

    Returns:
        Dict with initialization results.
    """
    # Import models to ensure they are registered with Base
    from estate_crm.core import models  # noqa: F401

    result = {
        "status": "success",
        "tables_created": [],
        "tables_existing": [],
        "warnings": [],
    }

    try:
        existing_tables = set(inspect(engine).get_table_names())

        if create_missing_only and existing_tables:
            all_tables = set(Base.metadata.tables.keys())
            missing_tables = all_tables - existing_tables

            if missing_tables:
                tables_to_create = [Base.metadata.tables[name] for name in missing_tables]
                Base.metadata.create_all(bind=engine, tables=tables_to_create)
                result["tables_created"] = sorted(missing_tables)
                LOGGER.info(f"Created missing tables: {sorted(missing_tables)}")

            result["tables_existing"] = sorted(existing_tables)
        else:
            Base.metadata.create_all(bind=engine)
            new_tables = set(inspect(engine).get_table_names())
            result["tables_created"] = sorted(new_tables - existing_tables)
            result["tables_existing"] = sorted(existing_tables)

        final_tables = set(inspect(engine).get_table_names())
        missing_required = [t for t in REQUIRED_TABLES if t not in final_tables]
        if missing_required:
            result["warnings"].append(f"Missing required tables: {missing_required}")
            result["status"] = "warning"

    except SQLAlchemyError as e:
        result["status"] = "error"
        result["error"] = str(e)
        LOGGER.error(f"init_db failed: {e}")

    return result


def validate_database() -> dict:
    """
    Validate database connection and required tables.

    Call this at application startup to ensure the database is ready.

    Returns:
        Dict with validation results.
    """
    result = {
        "status": "ok",
        "database_url": engine.url.render_as_string(hide_password=True),
        "tables_found": [],
        "tables_missing": [],
        "errors": [],
    }

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

        existing_tables = inspect(engine).get_table_names()
        result["tables_found"] = existing_tables

        missing: List[str] = [t for t in REQUIRED_TABLES if t not in existing_tables]
        result["tables_missing"] = missing

        if missing:
            result["status"] = "missing_tables"
            result["errors"].append(f"Missing required tables: {missing}")

    except SQLAlchemyError as e:
        result["status"] = "error"
        result["errors"].append(str(e))

    return result


__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_session",
    "init_db",
    "validate_database",
    "translate_db_error",
    "REQUIRED_TABLES",
]
