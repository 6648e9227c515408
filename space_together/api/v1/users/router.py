from fastapi import APIRouter, Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from space_together.auth.dependencies import get_current_user
from space_together.auth.rbac import require_admin
from space_together.auth.schemas import UserClaims, UserResponse
from space_together.core.enums import UserRole
from space_together.core.exceptions import ServiceError
from space_together.core.media import MediaClient, get_media_client
from space_together.core.schemas import CountResponse, ListQuery, MessageResponse, Paginated, list_query
from space_together.db.mongo import get_main_db

from .schemas import UserCreate, UserUpdate
from . import service

router = APIRouter(prefix="/users", tags=["users"])


def _public(page: Paginated) -> Paginated[UserResponse]:
    return Paginated[UserResponse](
        data=[UserResponse.model_validate(user) for user in page.data],
        total=page.total,
        total_pages=page.total_pages,
        current_page=page.current_page,
    )


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> UserResponse:
    try:
        return UserResponse.model_validate(await service.get_user(db, current_user.user_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=Paginated[UserResponse],
    dependencies=[Depends(require_admin)],
)
async def list_users(
    query: ListQuery = Depends(list_query),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> Paginated[UserResponse]:
    return _public(await service.list_users(db, query))


@router.get("/stats/count", response_model=CountResponse, dependencies=[Depends(require_admin)])
async def count_users(db: AsyncIOMotorDatabase = Depends(get_main_db)) -> CountResponse:
    return CountResponse(count=await service.count_users(db))


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_user(
    payload: UserCreate,
    db: AsyncIOMotorDatabase = Depends(get_main_db),
    media: MediaClient = Depends(get_media_client),
) -> UserResponse:
    try:
        return UserResponse.model_validate(await service.create_user(db, payload, media))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/username/{username}", response_model=UserResponse)
async def get_user_by_username(
    username: str,
    _: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> UserResponse:
    try:
        return UserResponse.model_validate(await service.get_user_by_username(db, username))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    _: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> UserResponse:
    try:
        return UserResponse.model_validate(await service.get_user(db, user_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    payload: UserUpdate,
    current_user: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
    media: MediaClient = Depends(get_media_client),
) -> UserResponse:
    is_admin = current_user.role == UserRole.ADMIN.value
    if not is_admin and str(current_user.user_id) != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only update your own account")
    if not is_admin and "role" in payload.model_fields_set:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can change roles")
    try:
        return UserResponse.model_validate(await service.update_user(db, user_id, payload, media))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{user_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_user(
    user_id: str,
    db: AsyncIOMotorDatabase = Depends(get_main_db),
    media: MediaClient = Depends(get_media_client),
) -> MessageResponse:
    try:
        await service.delete_user(db, user_id, media)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(message="User deleted successfully")
