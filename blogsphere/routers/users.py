from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from blogsphere.database import get_db
from blogsphere.services import search_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/search")
async def search_users(query: str = Query(..., min_length=1), db: AsyncSession = Depends(get_db)):
    return await search_service.search_users(db, query)


@router.get("/{username}")
async def get_profile(username: str, db: AsyncSession = Depends(get_db)):
    return await search_service.get_profile(db, username)
