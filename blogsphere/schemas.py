from typing import Any

from pydantic import BaseModel, Field


# --- Auth ---

class SignupRequest(BaseModel):
    fullname: str = ""
    email: str = ""
    password: str = ""


class SigninRequest(BaseModel):
    email: str = ""
    password: str = ""


class FederatedAuthRequest(BaseModel):
    access_token: str


class SessionResponse(BaseModel):
    access_token: str
    profile_img: str
    username: str
    fullname: str


# --- Blog ---

class BlogDraft(BaseModel):
    """Payload for creating a blog, or updating one when *id* is set."""

    id: str | None = None
    title: str = ""
    des: str = ""
    banner: str = ""
    content: Any = Field(default_factory=list)
    tags: list[str] = []
    draft: bool = False


class BlogCreated(BaseModel):
    id: str


class LikeRequest(BaseModel):
    liked: bool


class LikeStatus(BaseModel):
    liked_by_user: bool
    total_likes: int | None = None


class CommentCreate(BaseModel):
    blog_author: int
    comment: str = ""


# --- Pagination / counts ---

class CountResponse(BaseModel):
    total_docs: int


# --- Metrics ---

class MetricsResponse(BaseModel):
    total_users: int
    total_blogs: int
    total_comments: int
    total_likes: int
    avg_comments_per_blog: float
    cache_info: dict = {}
