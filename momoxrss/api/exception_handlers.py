"""
API Exception Handlers
======================

Maps the MomoXRSS exception hierarchy to HTTP responses of the form
``{"detail": message, "error_code": code}``.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..utils.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DatabaseError,
    DeliveryError,
    DuplicateSubscriptionError,
    ErrorCode,
    FeedFetchError,
    MomoXRSSError,
    NotFoundError,
    UnsupportedChannelTypeError,
    ValidationError,
    get_user_friendly_message,
)
from ..utils.logging import get_logger_for_component
from .models import ErrorResponse

logger = get_logger_for_component("api")

# exception -> (status code, fixed message or None for the exception's own)
EXCEPTION_MAP = {
    ValidationError: (400, None),
    AuthenticationError: (401, None),
    NotFoundError: (404, None),
    DuplicateSubscriptionError: (409, None),
    UnsupportedChannelTypeError: (422, None),
    FeedFetchError: (502, None),
    DeliveryError: (502, None),
    ConfigurationError: (503, None),
    DatabaseError: (500, "Database operation failed"),
    MomoXRSSError: (500, None),
}


def _error_response(status_code: int, message: str, error_code=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=message, error_code=error_code).model_dump(),
    )


def add_exception_handlers(app: FastAPI):
    # Starlette resolves handlers along the exception's MRO, so subclasses
    # registered here win over their parents.
    for exception, (status_code, error_message) in EXCEPTION_MAP.items():

        def handler(
            request: Request,
            exc: MomoXRSSError,
            status_code=status_code,
            error_message=error_message,
        ):
            message = error_message or get_user_friendly_message(exc)
            error_code = exc.error_code.value if exc.error_code else None

            if status_code == 401:
                logger.info(
                    f"[Auth] Rejected {request.method} {request.url.path}",
                    extra={
                        "method": request.method,
                        "path": request.url.path,
                        "client_host": request.client.host if request.client else "unknown",
                    },
                )
            elif status_code >= 500:
                logger.error(
                    f"{request.method} {request.url.path} failed: {exc}",
                    extra=exc.to_dict(),
                )
            else:
                logger.debug(f"{request.method} {request.url.path} -> {status_code}: {exc}")

            return _error_response(status_code, message, error_code)

        app.add_exception_handler(exception, handler)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"Invalid {location or 'body'}: {first.get('msg', 'malformed value')}"
        else:
            message = "Malformed request body"

        return _error_response(400, message, ErrorCode.VALIDATION_INVALID_FORMAT.value)
