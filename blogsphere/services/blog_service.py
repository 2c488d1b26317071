"""
Blog lifecycle: creating, editing and reading blogs.

Design notes
------------
- A new blog and its author's bookkeeping (``total_posts`` and the
  ordered ``blogs`` sequence) are written with one ``atomic_update`` on
  the author, never as separate writes.
- Editing only touches the editable fields; the author, ``blog_id`` and
  activity counters are never rewritten by an edit.
- Reads count towards ``total_reads`` on the blog and on its author.
  Edit-mode fetches do not count.  Draft access is refused *before*
  anything is counted.
- Functions flush but do not commit; the caller owns the transaction.
  Feed invalidation is deferred until that transaction commits.
"""
import logging
import re
import secrets
import string
from datetime import datetime, timezone
from typing import Literal

from sqlalchemy.ext.asyncio import AsyncSession

from blogsphere.cache import mark_feeds_stale
from blogsphere.config import Settings
from blogsphere.errors import AccessDeniedError, DuplicateKeyError, NotFoundError, ValidationError
from blogsphere.models import Blog, Tag, User
from blogsphere.schemas import BlogDraft
from blogsphere.store import DocumentStore

logger = logging.getLogger(__name__)

_SLUG_STRIP_RE = re.compile(r"[^a-zA-Z0-9]")
_SLUG_SPACE_RE = re.compile(r"\s+")
_ID_ALPHABET = string.ascii_letters + string.digits + "_-"

ReadMode = Literal["read", "edit"]


def slugify(title: str) -> str:
    """Alphanumerics of *title* with whitespace runs collapsed to hyphens."""
    text = _SLUG_STRIP_RE.sub(" ", title).strip()
    return _SLUG_SPACE_RE.sub("-", text)


def normalize_tags(tags: list[str]) -> list[str]:
    """Lowercase, trim and de-duplicate *tags*, keeping first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags:
        name = tag.strip().lower()
        if name:
            seen.setdefault(name, None)
    return list(seen)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def author_summary(user: User | None) -> dict | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "fullname": user.fullname,
        "username": user.username,
        "profile_img": user.profile_img,
    }


def activity_to_dict(blog: Blog) -> dict:
    return {
        "total_reads": blog.total_reads,
        "total_likes": blog.total_likes,
        "total_comments": blog.total_comments,
        "total_parent_comments": blog.total_parent_comments,
    }


def blog_detail_to_dict(blog: Blog) -> dict:
    return {
        "id": blog.id,
        "blog_id": blog.blog_id,
        "title": blog.title,
        "des": blog.des,
        "banner": blog.banner,
        "content": blog.content,
        "tags": blog.tag_names,
        "draft": blog.draft,
        "activity": activity_to_dict(blog),
        "published_at": blog.published_at.isoformat() if blog.published_at else None,
        "author": author_summary(blog.author),
    }


# ---------------------------------------------------------------------------
# Lifecycle manager
# ---------------------------------------------------------------------------

class BlogLifecycle:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _new_blog_id(self, title: str) -> str:
        suffix = "".join(
            secrets.choice(_ID_ALPHABET) for _ in range(self.settings.BLOG_ID_SUFFIX_LENGTH)
        )
        slug = slugify(title)
        return f"{slug}-{suffix}" if slug else suffix

    def _validate(self, data: BlogDraft) -> list[str]:
        if not data.title.strip():
            raise ValidationError("You must provide a title", field="title")
        if len(data.title) > self.settings.BLOG_TITLE_MAX_LENGTH:
            raise ValidationError(
                f"Title must be under {self.settings.BLOG_TITLE_MAX_LENGTH} characters", field="title"
            )
        tags = normalize_tags(data.tags)
        if any(len(tag) > self.settings.TAG_MAX_LENGTH for tag in tags):
            raise ValidationError(
                f"Tags must be under {self.settings.TAG_MAX_LENGTH} characters", field="tags"
            )
        if not data.draft:
            limit = self.settings.BLOG_DESCRIPTION_MAX_LENGTH
            if not data.des.strip():
                raise ValidationError(
                    f"You must provide blog description under {limit} characters", field="des"
                )
            if len(data.des) > limit:
                raise ValidationError(
                    f"Blog description must be under {limit} characters", field="des"
                )
            if len(tags) > self.settings.BLOG_MAX_TAGS:
                raise ValidationError(
                    f"Provide at most {self.settings.BLOG_MAX_TAGS} tags", field="tags"
                )
        return tags

    async def _resolve_tags(self, store: DocumentStore, names: list[str]) -> list[Tag]:
        """Return Tag documents for *names*, creating the missing ones."""
        tags: list[Tag] = []
        for name in names:
            tag = await store.find_one(Tag, name=name)
            if tag is None:
                try:
                    tag = await store.insert(Tag(name=name))
                except DuplicateKeyError:
                    # Created concurrently by another request.
                    tag = await store.find_one(Tag, name=name)
            tags.append(tag)
        return tags

    async def create_or_update(self, db: AsyncSession, author_id: int, data: BlogDraft) -> dict:
        """
        Create a blog, or edit the caller's blog when ``data.id`` is set.

        Returns ``{"id": blog_id}``.
        """
        tag_names = self._validate(data)
        store = DocumentStore(db)
        if data.id:
            blog_id = await self._update(store, author_id, data, tag_names)
        else:
            blog_id = await self._create(store, author_id, data, tag_names)
        mark_feeds_stale(db)
        return {"id": blog_id}

    async def _create(self, store: DocumentStore, author_id: int, data: BlogDraft, tag_names: list[str]) -> str:
        if not await store.exists(User, id=author_id):
            raise NotFoundError("Author not found")

        blog = Blog(
            blog_id=self._new_blog_id(data.title),
            title=data.title,
            des=data.des,
            banner=data.banner,
            content=data.content,
            draft=data.draft,
            author_id=author_id,
            published_at=datetime.now(timezone.utc),
        )
        blog.tags = await self._resolve_tags(store, tag_names)
        await store.insert(blog)

        await store.atomic_update(
            User,
            id=author_id,
            inc={"total_posts": 0 if data.draft else 1},
            push={"blogs": blog.id},
        )
        logger.info(
            "Created %s blog %s for user id=%s",
            "draft" if data.draft else "published",
            blog.blog_id,
            author_id,
        )
        return blog.blog_id

    async def _update(self, store: DocumentStore, author_id: int, data: BlogDraft, tag_names: list[str]) -> str:
        blog = await store.find_one(Blog, blog_id=data.id, load=("tags",))
        if blog is None:
            raise NotFoundError("Blog not found")
        if blog.author_id != author_id:
            raise AccessDeniedError("You can only edit your own blogs")

        blog.tags = await self._resolve_tags(store, tag_names)
        await store.flush()

        now = datetime.now(timezone.utc)
        fields = {
            "title": data.title,
            "des": data.des,
            "banner": data.banner,
            "content": data.content,
            "draft": data.draft,
            "updated_at": now,
        }
        if blog.draft and not data.draft:
            fields["published_at"] = now
            logger.info("Publishing draft blog %s", blog.blog_id)
        elif data.draft and not blog.draft:
            logger.info("Unpublishing blog %s", blog.blog_id)
        was_draft = blog.draft
        await store.atomic_update(Blog, id=blog.id, set=fields)

        # total_posts counts published blogs only.
        if was_draft != data.draft:
            await store.atomic_update(
                User, id=author_id, inc={"total_posts": 1 if was_draft else -1}
            )
        return blog.blog_id

    async def fetch_for_read(
        self,
        db: AsyncSession,
        blog_id: str,
        want_draft: bool = False,
        mode: ReadMode = "read",
    ) -> dict:
        """
        Return the full blog identified by *blog_id*.

        Drafts are only returned when *want_draft* is set.  Unless *mode*
        is ``"edit"``, the blog's and its author's ``total_reads`` are
        each incremented by one; the two increments are separate atomic
        statements.
        """
        store = DocumentStore(db)
        blog = await store.find_one(Blog, blog_id=blog_id, load=("tags", "author"))
        if blog is None:
            raise NotFoundError("Blog not found")
        if blog.draft and not want_draft:
            raise AccessDeniedError("You can not access draft blogs")

        if mode != "edit":
            await store.atomic_update(Blog, id=blog.id, inc={"total_reads": 1})
            await store.atomic_update(User, id=blog.author_id, inc={"total_reads": 1})

        return blog_detail_to_dict(blog)
