"""Error handling middleware for consistent JSON error responses.

All errors are converted to one JSON structure:
- error: Error type/code
- message: Human-readable description
- detail: Optional additional information
- request_id: Correlation ID for debugging

The dashboard's delivery test page relies on this shape to show sandbox
failures, including the ones it asks for on purpose.
"""

import logging
from collections.abc import Callable
from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from menutrail.api.middleware.request_id import get_request_id

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors with structured details.

    Subclass for specific error categories.
    """

    def __init__(
        self,
        error: str,
        message: str,
        status_code: int = 400,
        detail: dict[str, Any] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            error: Machine-readable error code (e.g., "validation_error").
            message: Human-readable error description.
            status_code: HTTP status code to return.
            detail: Optional additional details for debugging.
        """
        self.error = error
        self.message = message
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class NotFoundError(APIError):
    """Resource not found error (404)."""

    def __init__(
        self, resource: str, identifier: str, detail: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            error="not_found",
            message=f"{resource} not found: {identifier}",
            status_code=404,
            detail=detail,
        )


class ValidationAPIError(APIError):
    """Request validation error (400)."""

    def __init__(self, message: str, detail: dict[str, Any] | None = None) -> None:
        super().__init__(
            error="validation_error",
            message=message,
            status_code=400,
            detail=detail,
        )


class SimulatedErrorAPIError(APIError):
    """Failure requested by the caller through the sandbox (400)."""

    error_code = "SANDBOX_SIMULATED_ERROR"

    def __init__(self, reason: str, delivery_id: str | None = None) -> None:
        detail: dict[str, Any] = {"errorCode": self.error_code, "reason": reason}
        if delivery_id:
            detail["deliveryId"] = delivery_id
        super().__init__(
            error="sandbox_simulated_error",
            message=f"Simulated error: {reason}",
            status_code=400,
            detail=detail,
        )


def build_error_response(
    error: str,
    message: str,
    status_code: int,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build a standardized error response.

    Args:
        error: Machine-readable error code.
        message: Human-readable description.
        status_code: HTTP status code.
        detail: Optional additional details.

    Returns:
        JSONResponse with consistent error structure.
    """
    body: dict[str, Any] = {
        "error": error,
        "message": message,
    }

    request_id = get_request_id()
    if request_id:
        body["request_id"] = request_id

    if detail:
        body["detail"] = detail

    return JSONResponse(status_code=status_code, content=body)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware that catches exceptions and returns consistent JSON errors.

    Handles:
    - APIError and subclasses: Custom application errors
    - HTTPException: FastAPI's built-in HTTP errors
    - ValidationError: Pydantic validation failures
    - Generic exceptions: Unexpected errors (logged, returns 500)
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        """Process request and handle any exceptions."""
        try:
            return await call_next(request)
        except APIError as exc:
            if exc.status_code >= 500:
                logger.error("API error %s: %s", exc.error, exc.message)
            return build_error_response(
                error=exc.error,
                message=exc.message,
                status_code=exc.status_code,
                detail=exc.detail,
            )
        except HTTPException as exc:
            return build_error_response(
                error="http_error",
                message=str(exc.detail),
                status_code=exc.status_code,
            )
        except ValidationError as exc:
            return build_error_response(
                error="validation_error",
                message="Request validation failed",
                status_code=422,
                detail={"errors": exc.errors(include_url=False)},
            )
        except Exception:
            logger.exception(
                "Unexpected error processing request: %s %s",
                request.method,
                request.url.path,
            )
            return build_error_response(
                error="internal_error",
                message="An internal error occurred",
                status_code=500,
            )
