"""Request ID middleware for HTTP request tracing.

Every HTTP response carries an ``X-Request-ID`` header (echoed from the client
or generated).  The ID is bound into structlog contextvars as
``http_request_id``; ``request_id`` in log lines always names a payment
request.  Routes under ``/users/{user_id}/`` also bind ``user_id`` so work triggered over HTTP
can be traced to its account.
"""

from __future__ import annotations

import re
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

SERVICE_NAME = "payment-chaser"

_USER_PATH_RE = re.compile(r"^/users/(?P<user_id>[^/]+)(?:/|$)")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a trace ID (and the acting user, when known) to every HTTP call."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Bind tracing context for the duration of the request and echo the ID back.

        Args:
            request: The incoming HTTP request.
            call_next: The next middleware or route handler.

        Returns:
            The HTTP response with ``X-Request-ID`` header set.
        """
        http_request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        context: dict[str, str] = {"http_request_id": http_request_id, "service": SERVICE_NAME}
        match = _USER_PATH_RE.match(request.url.path)
        if match:
            context["user_id"] = match.group("user_id")
        structlog.contextvars.bind_contextvars(**context)

        response = await call_next(request)
        response.headers["X-Request-ID"] = http_request_id
        return response
