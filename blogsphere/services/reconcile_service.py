"""
Counter reconciliation.

Blog and author counters are maintained incrementally.  Any write path
that does not commit all of its steps together (a crash between
statements, a script writing outside ``get_db``) can leave them drifted
from the documents they summarise.  This module recomputes them from the
source documents:

- ``Blog.total_likes``            = like notifications on the blog
- ``Blog.total_comments``         = comments on the blog
- ``Blog.total_parent_comments``  = top-level comments on the blog
- ``User.total_posts``            = the user's published blogs
- ``User.total_reads``            = sum of ``total_reads`` over the user's blogs

Intended to run offline (``scripts/reconcile.py``); counters moved by
live traffic while it runs may need another pass.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from blogsphere.models import Blog, Comment, Notification, NotificationType, User
from blogsphere.store import DocumentStore

logger = logging.getLogger(__name__)


async def rebuild_blog_counters(db: AsyncSession, blog: Blog) -> bool:
    """Recompute *blog*'s counters; return True if anything changed."""
    store = DocumentStore(db)
    expected = {
        "total_likes": await store.count(Notification, blog_id=blog.id, type=NotificationType.LIKE),
        "total_comments": await store.count(Comment, blog_id=blog.id),
        "total_parent_comments": await store.count(Comment, blog_id=blog.id, is_reply=False),
    }
    drift = {k: v for k, v in expected.items() if getattr(blog, k) != v}
    if not drift:
        return False
    logger.info("Repairing blog %s counters: %s", blog.blog_id, drift)
    await store.atomic_update(Blog, id=blog.id, set=drift)
    return True


async def rebuild_author_counters(db: AsyncSession, user: User) -> bool:
    """Recompute *user*'s account counters; return True if anything changed."""
    store = DocumentStore(db)
    blogs = await store.find(Blog, author_id=user.id, projection=("id", "draft", "total_reads"))
    expected = {
        "total_posts": sum(1 for b in blogs if not b.draft),
        "total_reads": sum(b.total_reads for b in blogs),
    }
    drift = {k: v for k, v in expected.items() if getattr(user, k) != v}
    if not drift:
        return False
    logger.info("Repairing user id=%s counters: %s", user.id, drift)
    await store.atomic_update(User, id=user.id, set=drift)
    return True


async def reconcile_all(db: AsyncSession) -> int:
    """
    Repair every drifted blog, then every drifted author.

    Blogs go first so author read totals are summed from repaired data.
    Returns the number of documents changed.
    """
    store = DocumentStore(db)
    repaired = 0
    for blog in await store.find(Blog, sort=(Blog.id.asc(),)):
        repaired += await rebuild_blog_counters(db, blog)
    for user in await store.find(User, sort=(User.id.asc(),)):
        repaired += await rebuild_author_counters(db, user)
    logger.info("Reconciliation finished: %d document(s) repaired", repaired)
    return repaired
