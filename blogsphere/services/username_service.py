"""
Username allocation.

A handle is derived from the local part of an email address.  When that
handle is taken a short random suffix is appended and the check repeated,
up to a bounded number of attempts.  The unique index on
``users.username`` remains the final guard against two concurrent
signups picking the same candidate.
"""
import logging
import secrets
import string

from sqlalchemy.ext.asyncio import AsyncSession

from blogsphere.errors import ConflictError
from blogsphere.models import User
from blogsphere.store import DocumentStore

logger = logging.getLogger(__name__)

_SUFFIX_ALPHABET = string.ascii_letters + string.digits


def _random_suffix(length: int) -> str:
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))


async def allocate(
    db: AsyncSession,
    email: str,
    suffix_length: int = 3,
    max_attempts: int = 5,
) -> str:
    """
    Return a username not currently used by any account.

    Raises ``ConflictError`` when every attempt collided.
    """
    store = DocumentStore(db)
    base = email.split("@")[0]
    candidate = base
    for attempt in range(max_attempts):
        if not await store.exists(User, username=candidate):
            return candidate
        logger.debug("Username %r taken (attempt %d)", candidate, attempt + 1)
        candidate = base + _random_suffix(suffix_length)
    raise ConflictError("Could not allocate a unique username")
