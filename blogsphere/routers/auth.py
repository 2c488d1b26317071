from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from blogsphere.database import get_db
from blogsphere.dependencies import get_identity_service
from blogsphere.schemas import FederatedAuthRequest, SessionResponse, SigninRequest, SignupRequest
from blogsphere.services.identity_service import IdentityService

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/signup", response_model=SessionResponse)
async def signup(
    data: SignupRequest,
    db: AsyncSession = Depends(get_db),
    identity: IdentityService = Depends(get_identity_service),
):
    return await identity.register(db, data.fullname, data.email, data.password)


@router.post("/signin", response_model=SessionResponse)
async def signin(
    data: SigninRequest,
    db: AsyncSession = Depends(get_db),
    identity: IdentityService = Depends(get_identity_service),
):
    return await identity.authenticate(db, data.email, data.password)


@router.post("/google-auth", response_model=SessionResponse)
async def google_auth(
    data: FederatedAuthRequest,
    db: AsyncSession = Depends(get_db),
    identity: IdentityService = Depends(get_identity_service),
):
    return await identity.authenticate_federated(db, data.access_token)
