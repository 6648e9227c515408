from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status

from space_together.auth.dependencies import get_current_user
from space_together.auth.schemas import AuthResponse, LoginRequest, RegisterRequest, SchoolTokenResponse, UserClaims
from space_together.auth.services import issue_school_token, login_user, refresh_user_token, register_user
from space_together.core.exceptions import ServiceError
from space_together.db.mongo import MongoManager, get_mongo

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=http_status.HTTP_201_CREATED,
)
async def register(
    payload: RegisterRequest,
    mongo: MongoManager = Depends(get_mongo),
) -> AuthResponse:
    try:
        return await register_user(mongo, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/login",
    response_model=AuthResponse,
    status_code=http_status.HTTP_200_OK,
)
async def login(
    payload: LoginRequest,
    mongo: MongoManager = Depends(get_mongo),
) -> AuthResponse:
    try:
        return await login_user(mongo, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/refresh", response_model=AuthResponse)
async def refresh(
    current_user: UserClaims = Depends(get_current_user),
    mongo: MongoManager = Depends(get_mongo),
) -> AuthResponse:
    """Re-sign the caller's token with a fresh expiry and up-to-date claims."""
    try:
        return await refresh_user_token(mongo, current_user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/schools/{school_id}/token", response_model=SchoolTokenResponse)
async def select_school(
    school_id: str,
    current_user: UserClaims = Depends(get_current_user),
    mongo: MongoManager = Depends(get_mongo),
) -> SchoolTokenResponse:
    """Issue a school token for one of the caller's schools and make it the current one."""
    try:
        return await issue_school_token(mongo, current_user, school_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
