"""MenuTrail API middleware components.

This module provides middleware for:
- Request ID tracking and log correlation
- Consistent error response formatting
"""

from menutrail.api.middleware.errors import (
    APIError,
    ErrorHandlerMiddleware,
    NotFoundError,
    SimulatedErrorAPIError,
    ValidationAPIError,
    build_error_response,
)
from menutrail.api.middleware.request_id import (
    REQUEST_ID_HEADER,
    RequestIDLogFilter,
    RequestIDMiddleware,
    get_request_id,
)

__all__ = [
    "REQUEST_ID_HEADER",
    "APIError",
    "ErrorHandlerMiddleware",
    "NotFoundError",
    "RequestIDLogFilter",
    "RequestIDMiddleware",
    "SimulatedErrorAPIError",
    "ValidationAPIError",
    "build_error_response",
    "get_request_id",
]
