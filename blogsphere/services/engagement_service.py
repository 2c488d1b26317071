"""
Engagement ledger: likes and comments on blogs.

A like has no row of its own: the ``like`` Notification from the user on
the blog *is* the like, and ``Blog.total_likes`` moves only when such a
row is actually created or removed.  A partial unique index on
``(user_id, blog_id)`` for like notifications keeps double-likes out even
when two requests race; losing that race is treated as "already liked".

Adding a comment writes three documents in order: the Comment, the
Blog (reference push plus counters in one statement) and the author's
Notification.  When driven through the API all three commit together.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from blogsphere.config import settings
from blogsphere.errors import DuplicateKeyError, NotFoundError, ValidationError
from blogsphere.models import Blog, Comment, Notification, NotificationType, User
from blogsphere.services.blog_service import author_summary
from blogsphere.store import DocumentStore

logger = logging.getLogger(__name__)


async def _get_blog(store: DocumentStore, blog_id: str) -> Blog:
    blog = await store.find_one(Blog, blog_id=blog_id)
    if blog is None:
        raise NotFoundError("Blog not found")
    return blog


def _comment_to_dict(comment: Comment, commenter: User | None) -> dict:
    return {
        "id": comment.id,
        "blog_id": comment.blog_id,
        "blog_author": comment.blog_author_id,
        "comment": comment.comment,
        "commented_by": author_summary(commenter),
        "commented_at": comment.commented_at.isoformat() if comment.commented_at else None,
        "is_reply": comment.is_reply,
        "children": [child.id for child in comment.children],
        "parent": comment.parent_id,
    }


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------

async def set_liked(db: AsyncSession, user_id: int, blog_id: str, like: bool) -> dict:
    """
    Make *user_id* like (or stop liking) *blog_id*.

    Idempotent in both directions: repeating a like or an unlike leaves
    ``total_likes`` and the notification set unchanged.
    """
    store = DocumentStore(db)
    blog = await _get_blog(store, blog_id)

    if like:
        if await store.exists(Notification, user_id=user_id, blog_id=blog.id, type=NotificationType.LIKE):
            return {"liked_by_user": True, "total_likes": blog.total_likes}
        try:
            await store.insert(
                Notification(
                    type=NotificationType.LIKE,
                    blog_id=blog.id,
                    notification_for_id=blog.author_id,
                    user_id=user_id,
                    created_at=datetime.now(timezone.utc),
                )
            )
        except DuplicateKeyError:
            logger.debug("Concurrent like by user id=%s on %s ignored", user_id, blog_id)
            return {"liked_by_user": True, "total_likes": blog.total_likes}
        blog = await store.atomic_update(Blog, id=blog.id, inc={"total_likes": 1})
        return {"liked_by_user": True, "total_likes": blog.total_likes}

    removed = await store.atomic_delete(
        Notification, user_id=user_id, blog_id=blog.id, type=NotificationType.LIKE
    )
    if removed is not None:
        blog = await store.atomic_update(Blog, id=blog.id, inc={"total_likes": -1})
    return {"liked_by_user": False, "total_likes": blog.total_likes}


async def is_liked(db: AsyncSession, user_id: int, blog_id: str) -> bool:
    store = DocumentStore(db)
    blog = await _get_blog(store, blog_id)
    return await store.exists(
        Notification, user_id=user_id, blog_id=blog.id, type=NotificationType.LIKE
    )


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

async def add_comment(
    db: AsyncSession,
    user_id: int,
    blog_id: str,
    blog_author_id: int,
    text: str,
) -> dict:
    """
    Add a top-level comment by *user_id* on *blog_id* and notify the
    blog's author.

    *blog_author_id* must match the blog's author, otherwise the blog is
    reported as not found.
    """
    if not text or not text.strip():
        raise ValidationError("Write something to leave a comment", field="comment")

    store = DocumentStore(db)
    blog = await store.find_one(Blog, blog_id=blog_id, author_id=blog_author_id)
    if blog is None:
        raise NotFoundError("Blog not found")

    comment = await store.insert(
        Comment(
            blog_id=blog.id,
            blog_author_id=blog_author_id,
            comment=text,
            commented_by_id=user_id,
            commented_at=datetime.now(timezone.utc),
            is_reply=False,
        )
    )

    await store.atomic_update(
        Blog,
        id=blog.id,
        inc={"total_comments": 1, "total_parent_comments": 1},
        push={"comments": comment.id},
    )

    await store.insert(
        Notification(
            type=NotificationType.COMMENT,
            blog_id=blog.id,
            notification_for_id=blog_author_id,
            user_id=user_id,
            comment_id=comment.id,
            created_at=datetime.now(timezone.utc),
        )
    )

    commenter = await store.find_one(User, id=user_id)
    return _comment_to_dict(comment, commenter)


async def list_comments(db: AsyncSession, blog_id: str, skip: int = 0) -> list[dict]:
    """Top-level comments on *blog_id*, oldest first."""
    store = DocumentStore(db)
    blog = await _get_blog(store, blog_id)
    comments = await store.find(
        Comment,
        blog_id=blog.id,
        is_reply=False,
        sort=(Comment.commented_at.asc(), Comment.id.asc()),
        skip=skip,
        limit=settings.COMMENTS_PAGE_SIZE,
        load=("commented_by",),
    )
    return [_comment_to_dict(c, c.commented_by) for c in comments]
