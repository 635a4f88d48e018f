"""Request ID middleware for request correlation.

Every response carries an X-Request-ID header. A client-supplied id is
echoed back (so the dashboard can correlate its polling calls); otherwise
a new UUID is generated. The id is also made available to log records
through RequestIDLogFilter.
"""

import logging
import uuid
from collections.abc import Callable
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

REQUEST_ID_HEADER = "X-Request-ID"

# Longer client ids are replaced rather than echoed
MAX_REQUEST_ID_LENGTH = 128


def get_request_id() -> str | None:
    """Get the request ID of the current request, None outside a request."""
    return request_id_ctx.get()


class RequestIDLogFilter(logging.Filter):
    """Logging filter adding `request_id` to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware that ensures every request has an X-Request-ID.

    The id is stored in a context variable and on `request.state`, and
    added to the response headers.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        """Process the request and add X-Request-ID to the response."""
        request_id = request.headers.get(REQUEST_ID_HEADER)
        if not request_id or len(request_id) > MAX_REQUEST_ID_LENGTH:
            request_id = str(uuid.uuid4())

        token = request_id_ctx.set(request_id)
        request.state.request_id = request_id
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
