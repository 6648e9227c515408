from fastapi import APIRouter, Depends, HTTPException, Request, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from space_together.auth.dependencies import get_current_user
from space_together.auth.rbac import require_admin
from space_together.auth.schemas import UserClaims
from space_together.core.exceptions import ServiceError
from space_together.core.media import MediaClient, get_media_client
from space_together.core.models import School
from space_together.core.schemas import CountResponse, ListQuery, MessageResponse, Paginated, list_query
from space_together.db.mongo import MongoManager, get_main_db, get_mongo

from .schemas import AcademicSetupRequest, AcademicSetupResult, SchoolCreate, SchoolUpdate
from . import academics, service

router = APIRouter(prefix="/schools", tags=["schools"])


@router.get("", response_model=Paginated[School])
async def list_schools(
    query: ListQuery = Depends(list_query),
    _: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> Paginated[School]:
    return await service.list_schools(db, query)


@router.get("/stats/count", response_model=CountResponse)
async def count_schools(
    _: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> CountResponse:
    return CountResponse(count=await service.count_schools(db))


@router.get("/username/{username}", response_model=School)
async def get_school_by_username(
    username: str,
    _: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> School:
    try:
        return await service.get_school_by_username(db, username)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/code/{code}", response_model=School)
async def get_school_by_code(
    code: str,
    _: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> School:
    try:
        return await service.get_school_by_code(db, code)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{school_id}", response_model=School)
async def get_school(
    school_id: str,
    _: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> School:
    try:
        return await service.get_school(db, school_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("", response_model=School, status_code=status.HTTP_201_CREATED)
async def create_school(
    payload: SchoolCreate,
    current_user: UserClaims = Depends(require_admin),
    mongo: MongoManager = Depends(get_mongo),
    media: MediaClient = Depends(get_media_client),
) -> School:
    try:
        return await service.create_school(mongo, payload, current_user.user_id, media)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{school_id}", response_model=School, dependencies=[Depends(require_admin)])
async def update_school(
    school_id: str,
    payload: SchoolUpdate,
    db: AsyncIOMotorDatabase = Depends(get_main_db),
    media: MediaClient = Depends(get_media_client),
) -> School:
    try:
        return await service.update_school(db, school_id, payload, media)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{school_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_school(
    school_id: str,
    db: AsyncIOMotorDatabase = Depends(get_main_db),
    media: MediaClient = Depends(get_media_client),
) -> MessageResponse:
    try:
        await service.delete_school(db, school_id, media)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(message="School deleted successfully")


@router.post("/{school_id}/bootstrap", response_model=AcademicSetupResult)
async def setup_school_academics(
    school_id: str,
    payload: AcademicSetupRequest,
    request: Request,
    current_user: UserClaims = Depends(require_admin),
    mongo: MongoManager = Depends(get_mongo),
) -> AcademicSetupResult:
    """Create the school's classes and class subjects from the catalog. Runs once per school."""
    try:
        if await academics.tenant_has_classes(mongo, school_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="School academics already set up",
            )
        return await academics.setup_school_academics(
            mongo, school_id, payload, current_user.user_id, is_cancelled=request.is_disconnected
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
