"""
Standardized error response system.

Every failure path answers with ``{"error": "<message>"}`` and never includes
stack traces or internal identifiers.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from community_connect.core.exceptions import AppError

logger = logging.getLogger(__name__)


class ErrorResponse:
    """Standard error response format."""

    @staticmethod
    def create(message: str, status_code: int = 500, headers: dict[str, str] | None = None) -> JSONResponse:
        """
        Create a standardized error response.

        Args:
            message: Human-readable error message, shown to the client as-is
            status_code: HTTP status code
            headers: Extra response headers (optional)

        Returns:
            JSONResponse with standard error format
        """
        return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)

    @staticmethod
    def from_exception(exc: AppError) -> JSONResponse:
        return ErrorResponse.create(exc.message, exc.status_code)


def describe_validation_error(exc: RequestValidationError) -> str:
    """Turn the first pydantic error into a client-safe message."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"

    first = errors[0]
    # loc looks like ("body", "email"); the field name is the last string part
    field = next((str(part) for part in reversed(first.get("loc", ())) if isinstance(part, str)), None)
    if field == "body" or field is None:
        return "Invalid request body"
    if first.get("type") == "missing":
        return f"{field} is required"
    return f"Invalid value for {field}"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render AppError subclasses."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return ErrorResponse.from_exception(exc)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body validation failures are 400s, not FastAPI's default 422."""
    logger.debug(f"Validation error on {request.url.path}: {exc.errors()}")
    return ErrorResponse.create(describe_validation_error(exc), status.HTTP_400_BAD_REQUEST)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
