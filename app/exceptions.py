import logging
from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Base error for the authentication flow.

    ``message`` is what the client sees; ``reason`` is for logs only.
    """
    status_code = 400
    default_message = "Bad request"

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None):
        self.message = message or self.default_message
        self.reason = reason or self.message
        super().__init__(self.reason)


class ValidationError(AuthError):
    default_message = "Validation error"


class NotFoundOrExpired(AuthError):
    default_message = "Invalid or expired OTP"


class InvalidCredential(AuthError):
    default_message = "Invalid or expired OTP"


class Conflict(AuthError):
    default_message = "Invalid or expired OTP"


class InvalidToken(AuthError):
    status_code = 401
    default_message = "Invalid or expired token"


class TokenExpired(InvalidToken):
    pass


class ResendCooldown(AuthError):
    status_code = 429
    default_message = "Please wait before requesting another code"

    def __init__(self, retry_after: int, message: Optional[str] = None):
        self.retry_after = retry_after
        super().__init__(message, reason=f"resend cooldown, {retry_after}s left")


class CodeDeliveryError(AuthError):
    status_code = 500
    default_message = "Failed to send OTP"


class SessionStoreError(AuthError):
    status_code = 500
    default_message = "Internal server error"


def create_error_response(error_message: str, **extra) -> dict:
    """Create a standardized error response"""
    body = {"success": False, "message": error_message}
    body.update(extra)
    return body


async def auth_exception_handler(request: Request, exc: AuthError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.reason}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.reason}")
    extra = {}
    if isinstance(exc, ResendCooldown):
        extra["retryAfter"] = exc.retry_after
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.message, **extra),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(str(exc.detail)),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=create_error_response("Validation error"),
    )
