"""
Domain error taxonomy.

Services raise these exceptions; nothing below the router layer knows
about HTTP.  Each error carries an ``ErrorCategory`` which the exception
handler installed in ``main.py`` translates into a status code.
"""
import logging
from enum import Enum

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    BAD_INPUT = "bad_input"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


HTTP_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.BAD_INPUT: 400,
    ErrorCategory.UNAUTHORIZED: 401,
    ErrorCategory.FORBIDDEN: 403,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.INTERNAL: 500,
}


class BlogsphereError(Exception):
    """Base class for every error a service may raise."""

    category: ErrorCategory = ErrorCategory.INTERNAL
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.category]


class ValidationError(BlogsphereError):
    """Malformed or missing input.  *field* names the offending input."""

    category = ErrorCategory.BAD_INPUT
    default_detail = "Invalid input"

    def __init__(self, detail: str | None = None, field: str | None = None) -> None:
        super().__init__(detail)
        self.field = field


class NotFoundError(BlogsphereError):
    category = ErrorCategory.NOT_FOUND
    default_detail = "Not found"


class ConflictError(BlogsphereError):
    category = ErrorCategory.CONFLICT
    default_detail = "Conflict"


class AccessDeniedError(BlogsphereError):
    category = ErrorCategory.FORBIDDEN
    default_detail = "Access denied"


class InvalidSessionError(AccessDeniedError):
    category = ErrorCategory.UNAUTHORIZED
    default_detail = "Missing or invalid access token"


class InvalidCredentialError(BlogsphereError):
    category = ErrorCategory.UNAUTHORIZED
    default_detail = "Invalid email or password"


class AccountNotFoundError(InvalidCredentialError, NotFoundError):
    """
    Sign-in email is unknown.

    Shares the wording and status of ``InvalidCredentialError`` so the
    response does not reveal whether an account exists.
    """


class StoreError(BlogsphereError):
    category = ErrorCategory.INTERNAL
    default_detail = "Internal server error"


class DuplicateKeyError(StoreError):
    category = ErrorCategory.CONFLICT
    default_detail = "Duplicate key"


async def blogsphere_error_handler(request: Request, exc: BlogsphereError) -> JSONResponse:
    """Render a domain error.  Backend failures are logged and redacted."""
    if exc.category is ErrorCategory.INTERNAL:
        logger.error(
            "Store failure on %s %s",
            request.method,
            request.url.path,
            exc_info=exc,
        )
        content = {"detail": StoreError.default_detail}
    else:
        logger.warning(
            "%s on %s %s: %s",
            exc.category.value,
            request.method,
            request.url.path,
            exc.detail,
        )
        content = {"detail": exc.detail}
        field = getattr(exc, "field", None)
        if field:
            content["field"] = field
    return JSONResponse(content=content, status_code=exc.status_code)
