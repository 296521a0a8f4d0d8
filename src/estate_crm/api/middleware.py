"""Request middleware: path-level role rules and request logging."""
from __future__ import annotations

import time
import uuid
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from estate_crm.api.auth_deps import authenticate
from estate_crm.api.responses import error_response
from estate_crm.core.logging_config import get_logger, log_request, request_id_var
from estate_crm.core.permissions import (
    LOGIN_PAGE,
    is_api_path,
    match_path_rule,
    requires_identity,
)

LOGGER = get_logger(__name__)


class AuthGuardMiddleware(BaseHTTPMiddleware):
    """
    Enforce path role rules before routing.

    API paths answer with 401/403 envelopes. Page paths redirect: to the
    login page when unauthenticated, or to the rule's fallback page when the
    role is not allowed.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS":
            return await call_next(request)

        path = request.url.path
        if not requires_identity(path):
            return await call_next(request)

        identity = authenticate(request)
        api = is_api_path(path)

        if identity is None:
            if api:
                return error_response("Unauthorized", 401)
            return RedirectResponse(url=f"{LOGIN_PAGE}?{urlencode({'callbackUrl': path})}", status_code=307)

        rule = match_path_rule(path)
        if rule is not None and identity.role not in rule.roles:
            LOGGER.warning(
                f"Role {identity.role} denied for {path}",
                extra={"extra_data": {"user_id": identity.id, "role": identity.role, "path": path}},
            )
            if api:
                return error_response("Forbidden", 403)
            return RedirectResponse(url=rule.redirect_to, status_code=307)

        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Assign a request id and log method, path, status and duration."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        start = time.perf_counter()

        try:
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start) * 1000
            identity = getattr(request.state, "identity", None)
            log_request(
                LOGGER,
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                user_id=identity.id if identity is not None else None,
            )
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            request_id_var.reset(token)


__all__ = ["AuthGuardMiddleware", "RequestLoggingMiddleware"]
