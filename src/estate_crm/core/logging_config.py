"""Logging setup: plain text or JSON lines, tagged with the current request id."""
from __future__ import annotations

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

TEXT_LOG_FORMAT = "%(asctime)s [%(request_id)s] %(name)s %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Set by the request logging middleware while a request is being served
request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")

QUIET_LOGGERS: Dict[str, int] = {
    "passlib": logging.ERROR,
    "httpx": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "uvicorn.access": logging.WARNING,
}


class RequestIdFilter(logging.Filter):
    """Stamp every record with the id of the request it was emitted under."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get()
        return True


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    Keys passed as ``extra={"extra_data": {...}}`` are merged into the top
    level, so ``user_id``, ``lead_id`` and friends are directly queryable.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", request_id_var.get()),
        }

        extra = getattr(record, "extra_data", None)
        if isinstance(extra, dict):
            for key, value in extra.items():
                log_data.setdefault(key, value)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def _build_handler(handler: logging.Handler, json_format: bool) -> logging.Handler:
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_LOG_FORMAT, DATE_FORMAT))
    handler.addFilter(RequestIdFilter())
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False,
) -> None:
    """
    Configure root logging for the API and the CLI.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to an additional log file.
        json_format: Emit JSON lines instead of text.
    """
    handlers = [_build_handler(logging.StreamHandler(sys.stdout), json_format)]
    if log_file:
        handlers.append(_build_handler(logging.FileHandler(log_file), json_format))

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_request(
    logger: logging.Logger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    **extra: Any,
) -> None:
    """
    Log one handled HTTP request.

    5xx responses are logged at ERROR, refused requests (401/403) at
    WARNING, everything else at INFO.
    """
    log_data = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2),
        **extra,
    }
    message = f"{method} {path} -> {status_code} in {duration_ms:.2f}ms"

    if status_code >= 500:
        logger.error(message, extra={"extra_data": log_data})
    elif status_code in (401, 403):
        logger.warning(message, extra={"extra_data": log_data})
    else:
        logger.info(message, extra={"extra_data": log_data})


__all__ = [
    "setup_logging",
    "get_logger",
    "log_request",
    "request_id_var",
    "RequestIdFilter",
    "JSONFormatter",
]
