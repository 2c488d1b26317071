from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from blogsphere.database import get_db
from blogsphere.dependencies import get_current_user_id
from blogsphere.schemas import CountResponse
from blogsphere.services import notification_service

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("/new")
async def has_new_notifications(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"new_notification_available": await notification_service.has_new_notifications(db, user_id)}


@router.get("")
async def list_notifications(
    page: int = Query(1, ge=1),
    filter: str | None = Query(None, description="like, comment or reply"),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await notification_service.list_notifications(db, user_id, page, filter)


@router.get("/count", response_model=CountResponse)
async def count_notifications(
    filter: str | None = Query(None, description="like, comment or reply"),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"total_docs": await notification_service.count_notifications(db, user_id, filter)}
