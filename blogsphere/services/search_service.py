"""
Read-only listing and search.

Every query here filters out drafts and returns partial projections
(never password hashes or auth flags).  The latest and trending feeds go
through the Redis cache-aside helper; search results are not cached
because their key space is unbounded.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from blogsphere.cache import LATEST_PREFIX, TRENDING_KEY, cache
from blogsphere.config import settings
from blogsphere.errors import NotFoundError, ValidationError
from blogsphere.models import Blog, Tag, User
from blogsphere.services.blog_service import activity_to_dict, author_summary
from blogsphere.store import DocumentStore

logger = logging.getLogger(__name__)

_USER_CARD_FIELDS = ("id", "fullname", "username", "profile_img")


def _blog_card(blog: Blog) -> dict:
    """List-view projection of a blog: no content, no draft flag."""
    return {
        "blog_id": blog.blog_id,
        "title": blog.title,
        "des": blog.des,
        "banner": blog.banner,
        "tags": blog.tag_names,
        "activity": activity_to_dict(blog),
        "published_at": blog.published_at.isoformat() if blog.published_at else None,
        "author": author_summary(blog.author),
    }


def _search_criteria(tag: str | None, query: str | None, author: int | None, eliminate_blog: str | None) -> tuple[list, dict]:
    given = [name for name, value in (("tag", tag), ("query", query), ("author", author)) if value is not None]
    if len(given) != 1:
        raise ValidationError("Search by exactly one of tag, query or author", field="filter")

    criteria: list = []
    equals: dict = {"draft": False}
    if tag is not None:
        criteria.append(Blog.tags.any(Tag.name == tag.strip().lower()))
    elif query is not None:
        criteria.append(Blog.title.icontains(query, autoescape=True))
    else:
        equals["author_id"] = author
    if eliminate_blog:
        criteria.append(Blog.blog_id != eliminate_blog)
    return criteria, equals


# ---------------------------------------------------------------------------
# Blog feeds
# ---------------------------------------------------------------------------

async def latest_blogs(db: AsyncSession, page: int = 1) -> list[dict]:
    """Published blogs, newest first, ``LATEST_PAGE_SIZE`` per page."""
    page_size = settings.LATEST_PAGE_SIZE

    async def load() -> list[dict]:
        blogs = await DocumentStore(db).find(
            Blog,
            draft=False,
            sort=(Blog.published_at.desc(), Blog.id.desc()),
            skip=(page - 1) * page_size,
            limit=page_size,
            load=("author", "tags"),
        )
        return [_blog_card(b) for b in blogs]

    return await cache.get_or_load(f"{LATEST_PREFIX}:{page}", load, ttl=settings.CACHE_TTL_LIST)


async def count_latest(db: AsyncSession) -> int:
    return await DocumentStore(db).count(Blog, draft=False)


async def trending_blogs(db: AsyncSession) -> list[dict]:
    """Most read, then most liked, then newest published blogs."""
    async def load() -> list[dict]:
        blogs = await DocumentStore(db).find(
            Blog,
            draft=False,
            sort=(Blog.total_reads.desc(), Blog.total_likes.desc(), Blog.published_at.desc()),
            limit=settings.TRENDING_LIMIT,
            load=("author", "tags"),
        )
        return [_blog_card(b) for b in blogs]

    return await cache.get_or_load(TRENDING_KEY, load, ttl=settings.CACHE_TTL_LIST)


async def search_blogs(
    db: AsyncSession,
    tag: str | None = None,
    query: str | None = None,
    author: int | None = None,
    page: int = 1,
    limit: int | None = None,
    eliminate_blog: str | None = None,
) -> list[dict]:
    """
    Published blogs filtered by exactly one of *tag*, *query* (title
    substring, case-insensitive) or *author*, newest first.

    *eliminate_blog* excludes one blog, used for "more like this" lists.
    """
    criteria, equals = _search_criteria(tag, query, author, eliminate_blog)
    page_size = min(limit or settings.SEARCH_PAGE_SIZE, settings.MAX_PAGE_SIZE)
    blogs = await DocumentStore(db).find(
        Blog,
        *criteria,
        sort=(Blog.published_at.desc(), Blog.id.desc()),
        skip=(page - 1) * page_size,
        limit=page_size,
        load=("author", "tags"),
        **equals,
    )
    return [_blog_card(b) for b in blogs]


async def count_search(
    db: AsyncSession,
    tag: str | None = None,
    query: str | None = None,
    author: int | None = None,
    eliminate_blog: str | None = None,
) -> int:
    criteria, equals = _search_criteria(tag, query, author, eliminate_blog)
    return await DocumentStore(db).count(Blog, *criteria, **equals)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

async def search_users(db: AsyncSession, query: str) -> list[dict]:
    """Users whose username contains *query*, ignoring case."""
    users = await DocumentStore(db).find(
        User,
        User.username.icontains(query, autoescape=True),
        sort=(User.username.asc(),),
        limit=settings.USER_SEARCH_LIMIT,
        projection=_USER_CARD_FIELDS,
    )
    return [
        {"fullname": u.fullname, "username": u.username, "profile_img": u.profile_img}
        for u in users
    ]


async def get_profile(db: AsyncSession, username: str) -> dict:
    user = await DocumentStore(db).find_one(User, username=username)
    if user is None:
        raise NotFoundError("User not found")
    return {
        "id": user.id,
        "fullname": user.fullname,
        "username": user.username,
        "profile_img": user.profile_img,
        "bio": user.bio,
        "account_info": {"total_posts": user.total_posts, "total_reads": user.total_reads},
        "joined_at": user.joined_at.isoformat() if user.joined_at else None,
    }
