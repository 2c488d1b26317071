from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from blogsphere.database import get_db
from blogsphere.dependencies import PaginationParams, get_blog_lifecycle, get_current_user_id
from blogsphere.schemas import BlogCreated, BlogDraft, CommentCreate, CountResponse, LikeRequest, LikeStatus
from blogsphere.services import engagement_service, search_service
from blogsphere.services.blog_service import BlogLifecycle

router = APIRouter(prefix="/api/v1/blogs", tags=["blogs"])


# Fixed paths are declared before "/{blog_id}" so they are not captured by it.

@router.get("/latest")
async def latest_blogs(pagination: PaginationParams = Depends(), db: AsyncSession = Depends(get_db)):
    return await search_service.latest_blogs(db, pagination.page)


@router.get("/latest/count", response_model=CountResponse)
async def count_latest(db: AsyncSession = Depends(get_db)):
    return {"total_docs": await search_service.count_latest(db)}


@router.get("/trending")
async def trending_blogs(db: AsyncSession = Depends(get_db)):
    return await search_service.trending_blogs(db)


@router.get("/search")
async def search_blogs(
    tag: str | None = None,
    query: str | None = None,
    author: int | None = None,
    eliminate_blog: str | None = None,
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await search_service.search_blogs(
        db,
        tag=tag,
        query=query,
        author=author,
        page=pagination.page,
        limit=pagination.limit,
        eliminate_blog=eliminate_blog,
    )


@router.get("/search/count", response_model=CountResponse)
async def count_search(
    tag: str | None = None,
    query: str | None = None,
    author: int | None = None,
    eliminate_blog: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    total = await search_service.count_search(
        db, tag=tag, query=query, author=author, eliminate_blog=eliminate_blog
    )
    return {"total_docs": total}


@router.post("", response_model=BlogCreated)
async def create_or_update_blog(
    data: BlogDraft,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    lifecycle: BlogLifecycle = Depends(get_blog_lifecycle),
):
    return await lifecycle.create_or_update(db, user_id, data)


@router.get("/{blog_id}")
async def get_blog(
    blog_id: str,
    draft: bool = False,
    mode: Literal["read", "edit"] = Query("read"),
    db: AsyncSession = Depends(get_db),
    lifecycle: BlogLifecycle = Depends(get_blog_lifecycle),
):
    return await lifecycle.fetch_for_read(db, blog_id, want_draft=draft, mode=mode)


@router.post("/{blog_id}/like", response_model=LikeStatus)
async def set_liked(
    blog_id: str,
    data: LikeRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await engagement_service.set_liked(db, user_id, blog_id, data.liked)


@router.get("/{blog_id}/like", response_model=LikeStatus)
async def is_liked(
    blog_id: str,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"liked_by_user": await engagement_service.is_liked(db, user_id, blog_id)}


@router.post("/{blog_id}/comments", status_code=201)
async def add_comment(
    blog_id: str,
    data: CommentCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await engagement_service.add_comment(db, user_id, blog_id, data.blog_author, data.comment)


@router.get("/{blog_id}/comments")
async def list_comments(
    blog_id: str,
    skip: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    return await engagement_service.list_comments(db, blog_id, skip)
