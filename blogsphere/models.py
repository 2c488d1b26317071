from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blogsphere.database import Base

# ---------------------------------------------------------------------------
# Association table: Blog <-> Tag (many-to-many)
# ---------------------------------------------------------------------------
blog_tags = Table(
    "blog_tags",
    Base.metadata,
    Column("blog_id", Integer, ForeignKey("blogs.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)

# ---------------------------------------------------------------------------
# Ordered reference sequences (User.blogs, Blog.comments).  Rows are only
# ever appended; the surrogate id gives the order.
# ---------------------------------------------------------------------------
user_blogs = Table(
    "user_blogs",
    Base.metadata,
    Column("position", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("blog_id", Integer, ForeignKey("blogs.id", ondelete="CASCADE"), nullable=False, unique=True),
)

blog_comments = Table(
    "blog_comments",
    Base.metadata,
    Column("position", Integer, primary_key=True, autoincrement=True),
    Column("blog_id", Integer, ForeignKey("blogs.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("comment_id", Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=False, unique=True),
)


class NotificationType:
    LIKE = "like"
    COMMENT = "comment"
    REPLY = "reply"

    ALL = (LIKE, COMMENT, REPLY)


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    __table_args__ = (
        # A federated-only account has no local password, and vice versa.
        CheckConstraint(
            "(password_hash IS NOT NULL AND google_auth = false)"
            " OR (password_hash IS NULL AND google_auth = true)",
            name="ck_users_one_auth_method",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    fullname: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    username: Mapped[str] = mapped_column(Text, unique=True, nullable=False, index=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    profile_img: Mapped[str] = mapped_column(Text, nullable=False, default="")
    bio: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    google_auth: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    total_posts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_reads: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships: lazy="noload" enforces explicit eager loading in services
    blogs: Mapped[List["Blog"]] = relationship(
        "Blog", secondary=user_blogs, order_by=user_blogs.c.position, viewonly=True, lazy="noload"
    )


# ---------------------------------------------------------------------------
# Tag
# ---------------------------------------------------------------------------
class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, unique=True, nullable=False, index=True)

    blogs: Mapped[List["Blog"]] = relationship(
        "Blog", secondary=blog_tags, back_populates="tags", lazy="noload"
    )


# ---------------------------------------------------------------------------
# Blog
# ---------------------------------------------------------------------------
class Blog(Base):
    __tablename__ = "blogs"

    __table_args__ = (
        # Latest feed
        Index("ix_blogs_draft_published_at", "draft", "published_at"),
        # Trending ranking
        Index("ix_blogs_total_reads_total_likes", "total_reads", "total_likes"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    blog_id: Mapped[str] = mapped_column(Text, unique=True, nullable=False, index=True)
    title: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    des: Mapped[str] = mapped_column(Text, nullable=False, default="")
    banner: Mapped[str] = mapped_column(Text, nullable=False, default="")
    content: Mapped[Any] = mapped_column(JSON, nullable=False, default=list)
    draft: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    total_reads: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_likes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_comments: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_parent_comments: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    published_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    author: Mapped["User"] = relationship("User", lazy="noload")
    tags: Mapped[List["Tag"]] = relationship(
        "Tag", secondary=blog_tags, back_populates="blogs", lazy="noload"
    )
    comments: Mapped[List["Comment"]] = relationship(
        "Comment",
        secondary=blog_comments,
        order_by=blog_comments.c.position,
        viewonly=True,
        lazy="noload",
    )

    @property
    def tag_names(self) -> list[str]:
        return [t.name for t in self.tags]


# ---------------------------------------------------------------------------
# Comment
# ---------------------------------------------------------------------------
class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    is_reply: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    commented_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    blog_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("blogs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Copied from Blog.author_id when the comment is written.
    blog_author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    commented_by_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )

    commented_by: Mapped["User"] = relationship(
        "User", foreign_keys=[commented_by_id], lazy="noload"
    )
    # Replies; nothing in this service writes them yet.
    children: Mapped[List["Comment"]] = relationship(
        "Comment", order_by="Comment.id", lazy="noload"
    )


# ---------------------------------------------------------------------------
# Notification
# ---------------------------------------------------------------------------
class Notification(Base):
    __tablename__ = "notifications"

    __table_args__ = (
        # A like notification is the like itself: at most one per user and blog.
        Index(
            "uq_notifications_like",
            "user_id",
            "blog_id",
            unique=True,
            postgresql_where=text("type = 'like'"),
            sqlite_where=text("type = 'like'"),
        ),
        Index("ix_notifications_for_seen", "notification_for_id", "seen"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(
        Enum(*NotificationType.ALL, name="notification_type", native_enum=False),
        nullable=False,
    )
    seen: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    blog_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("blogs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    notification_for_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    comment_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )

    blog: Mapped["Blog"] = relationship("Blog", lazy="noload")
    user: Mapped["User"] = relationship("User", foreign_keys=[user_id], lazy="noload")
    comment: Mapped[Optional["Comment"]] = relationship("Comment", lazy="noload")


# Reference sequences that DocumentStore.atomic_update may ``push`` onto:
# (model, attribute) -> (link table, owner column, member column)
PUSH_TARGETS: dict[tuple[type, str], tuple[Table, str, str]] = {
    (User, "blogs"): (user_blogs, "user_id", "blog_id"),
    (Blog, "comments"): (blog_comments, "blog_id", "comment_id"),
}
