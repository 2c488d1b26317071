"""
Notification queries for the recipient side.

Notifications are written by the engagement ledger; this module only
reads them.  A user's own actions on their own blogs are never reported
as new.
"""
from sqlalchemy.ext.asyncio import AsyncSession

from blogsphere.config import settings
from blogsphere.errors import ValidationError
from blogsphere.models import Notification, NotificationType
from blogsphere.services.blog_service import author_summary
from blogsphere.store import DocumentStore


def _criteria(user_id: int, type: str | None) -> tuple[list, dict]:
    if type is not None and type not in NotificationType.ALL:
        raise ValidationError(f"Unknown notification type {type!r}", field="filter")
    equals: dict = {"notification_for_id": user_id}
    if type is not None:
        equals["type"] = type
    return [Notification.user_id != user_id], equals


def _notification_to_dict(notification: Notification) -> dict:
    blog = notification.blog
    return {
        "id": notification.id,
        "type": notification.type,
        "seen": notification.seen,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
        "blog": {"id": blog.id, "blog_id": blog.blog_id, "title": blog.title} if blog else None,
        "user": author_summary(notification.user),
        "comment": (
            {"id": notification.comment.id, "comment": notification.comment.comment}
            if notification.comment
            else None
        ),
    }


async def has_new_notifications(db: AsyncSession, user_id: int) -> bool:
    criteria, equals = _criteria(user_id, None)
    return await DocumentStore(db).exists(Notification, *criteria, seen=False, **equals)


async def list_notifications(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    type: str | None = None,
) -> list[dict]:
    """Newest first, ``NOTIFICATIONS_PAGE_SIZE`` per page."""
    criteria, equals = _criteria(user_id, type)
    page_size = settings.NOTIFICATIONS_PAGE_SIZE
    notifications = await DocumentStore(db).find(
        Notification,
        *criteria,
        sort=(Notification.created_at.desc(), Notification.id.desc()),
        skip=(page - 1) * page_size,
        limit=page_size,
        load=("blog", "user", "comment"),
        **equals,
    )
    return [_notification_to_dict(n) for n in notifications]


async def count_notifications(db: AsyncSession, user_id: int, type: str | None = None) -> int:
    criteria, equals = _criteria(user_id, type)
    return await DocumentStore(db).count(Notification, *criteria, **equals)
