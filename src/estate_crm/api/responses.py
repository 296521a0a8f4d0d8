"""JSON envelopes shared by every endpoint.

success:   {success: true,  data, message, statusCode}
paginated: success plus pagination {total, page, limit, pages}
error:     {success: false, error, statusCode}
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

from estate_crm.core.types import Page


def success_body(data: Any, message: str = "Success", status_code: int = 200) -> Dict[str, Any]:
    return {
        "success": True,
        "data": data,
        "message": message,
        "statusCode": status_code,
    }


def error_body(error: str, status_code: int = 400) -> Dict[str, Any]:
    return {
        "success": False,
        "error": error,
        "statusCode": status_code,
    }


def success_response(
    data: Any,
    message: str = "Success",
    status_code: int = 200,
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=success_body(data, message, status_code))


def error_response(
    error: str,
    status_code: int = 400,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_body(error, status_code),
        headers=headers,
    )


def paginated_response(page: Page, message: str = "Success") -> JSONResponse:
    """Envelope for a page of rows; pages = ceil(total / limit)."""
    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "data": page.items,
            "pagination": page.pagination(),
            "message": message,
            "statusCode": 200,
        },
    )


__all__ = [
    "success_body",
    "error_body",
    "success_response",
    "error_response",
    "paginated_response",
]
