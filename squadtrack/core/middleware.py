"""
FastAPI middleware binding per-request ids to the logging context.

For every request the middleware:
1. Reads or generates the X-Correlation-ID header
2. Stores it in request.state.correlation_id
3. Binds correlation, team (X-Team-ID) and user (X-User-ID) ids to the log context
4. Echoes the correlation id in the response headers
"""
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from squadtrack.core.logging import bind_request_context, unbind_request_context, get_logger

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
TEAM_HEADER = "X-Team-ID"
USER_HEADER = "X-User-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Request correlation tracking.

    Usage:
        app.add_middleware(CorrelationIdMiddleware)

    Access in endpoints:
        correlation_id = request.state.correlation_id
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        tokens = bind_request_context(
            correlation_id,
            team_id=request.headers.get(TEAM_HEADER, ""),
            user_id=request.headers.get(USER_HEADER, ""),
        )

        try:
            response = await call_next(request)
            response.headers[CORRELATION_HEADER] = correlation_id

            logger.debug(
                f"Request completed: {request.method} {request.url.path}",
                extra={"method": request.method, "path": request.url.path, "status": response.status_code},
            )
            return response
        finally:
            unbind_request_context(tokens)
