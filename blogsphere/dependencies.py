from functools import lru_cache

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from blogsphere.config import settings
from blogsphere.errors import InvalidSessionError
from blogsphere.federated import GoogleTokenVerifier
from blogsphere.services.blog_service import BlogLifecycle
from blogsphere.services.identity_service import IdentityService

_bearer = HTTPBearer(auto_error=False)


@lru_cache
def get_identity_service() -> IdentityService:
    """Process-wide Identity Service built from ``settings``."""
    return IdentityService(settings, GoogleTokenVerifier(settings.GOOGLE_CLIENT_ID))


@lru_cache
def get_blog_lifecycle() -> BlogLifecycle:
    return BlogLifecycle(settings)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    identity: IdentityService = Depends(get_identity_service),
) -> int:
    """
    Resolve the caller from an ``Authorization: Bearer <token>`` header.

    Missing or invalid tokens raise ``InvalidSessionError`` (401).
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise InvalidSessionError("No access token")
    return identity.verify(credentials.credentials)


class PaginationParams:
    """
    Reusable FastAPI dependency for 1-based page navigation.

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    limit:
        Optional page size requested by the caller, clamped to
        ``settings.MAX_PAGE_SIZE``.  ``None`` means "use the endpoint's
        default page size".
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        limit: int | None = Query(
            None,
            ge=1,
            description="Items per page; defaults depend on the endpoint.",
        ),
    ) -> None:
        self.page = page
        self.limit = min(limit, settings.MAX_PAGE_SIZE) if limit is not None else None
