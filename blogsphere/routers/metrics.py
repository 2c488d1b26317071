from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from blogsphere.cache import cache
from blogsphere.database import get_db
from blogsphere.models import Blog, Comment, Notification, NotificationType, User
from blogsphere.schemas import MetricsResponse
from blogsphere.store import DocumentStore

router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])


@router.get("", response_model=MetricsResponse)
async def get_metrics(db: AsyncSession = Depends(get_db)):
    store = DocumentStore(db)
    total_blogs = await store.count(Blog, draft=False)
    total_comments = await store.count(Comment)
    avg_comments = total_comments / total_blogs if total_blogs > 0 else 0

    return MetricsResponse(
        total_users=await store.count(User),
        total_blogs=total_blogs,
        total_comments=total_comments,
        total_likes=await store.count(Notification, type=NotificationType.LIKE),
        avg_comments_per_blog=round(avg_comments, 2),
        cache_info=cache.stats,
    )
