from fastapi import APIRouter, Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from space_together.auth.dependencies import get_current_user
from space_together.auth.rbac import require_admin
from space_together.core.exceptions import ServiceError
from space_together.core.models import MainClass
from space_together.core.schemas import CountResponse, ListQuery, MessageResponse, Paginated, list_query
from space_together.db.mongo import get_main_db

from .schemas import MainClassCreate, MainClassUpdate
from . import service

router = APIRouter(prefix="/main-classes", tags=["main-classes"], dependencies=[Depends(get_current_user)])


@router.get("", response_model=Paginated[MainClass])
async def list_main_classes(
    query: ListQuery = Depends(list_query),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> Paginated[MainClass]:
    return await service.list_main_classes(db, query)


@router.get("/stats/count", response_model=CountResponse)
async def count_main_classes(db: AsyncIOMotorDatabase = Depends(get_main_db)) -> CountResponse:
    return CountResponse(count=await service.count_main_classes(db))


@router.get("/username/{username}", response_model=MainClass)
async def get_main_class_by_username(username: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> MainClass:
    try:
        return await service.get_main_class_by_username(db, username)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{main_class_id}", response_model=MainClass)
async def get_main_class(main_class_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> MainClass:
    try:
        return await service.get_main_class(db, main_class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "",
    response_model=MainClass,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_main_class(payload: MainClassCreate, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> MainClass:
    try:
        return await service.create_main_class(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{main_class_id}", response_model=MainClass, dependencies=[Depends(require_admin)])
async def update_main_class(
    main_class_id: str,
    payload: MainClassUpdate,
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> MainClass:
    try:
        return await service.update_main_class(db, main_class_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{main_class_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_main_class(main_class_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> MessageResponse:
    try:
        await service.delete_main_class(db, main_class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(message="Main class deleted successfully")
