from fastapi import APIRouter, Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from space_together.auth.dependencies import get_current_user
from space_together.auth.rbac import require_admin
from space_together.core.exceptions import ServiceError
from space_together.core.media import MediaClient, get_media_client
from space_together.core.models import Sector
from space_together.core.schemas import CountResponse, ListQuery, MessageResponse, Paginated, list_query
from space_together.db.mongo import get_main_db

from .schemas import SectorCreate, SectorUpdate
from . import service

router = APIRouter(prefix="/sectors", tags=["sectors"], dependencies=[Depends(get_current_user)])


@router.get("", response_model=Paginated[Sector])
async def list_sectors(
    query: ListQuery = Depends(list_query),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> Paginated[Sector]:
    return await service.list_sectors(db, query)


@router.get("/stats/count", response_model=CountResponse)
async def count_sectors(db: AsyncIOMotorDatabase = Depends(get_main_db)) -> CountResponse:
    return CountResponse(count=await service.count_sectors(db))


@router.get("/username/{username}", response_model=Sector)
async def get_sector_by_username(username: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> Sector:
    try:
        return await service.get_sector_by_username(db, username)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{sector_id}", response_model=Sector)
async def get_sector(sector_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> Sector:
    try:
        return await service.get_sector(db, sector_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "",
    response_model=Sector,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_sector(
    payload: SectorCreate,
    db: AsyncIOMotorDatabase = Depends(get_main_db),
    media: MediaClient = Depends(get_media_client),
) -> Sector:
    try:
        return await service.create_sector(db, payload, media)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{sector_id}", response_model=Sector, dependencies=[Depends(require_admin)])
async def update_sector(
    sector_id: str,
    payload: SectorUpdate,
    db: AsyncIOMotorDatabase = Depends(get_main_db),
    media: MediaClient = Depends(get_media_client),
) -> Sector:
    try:
        return await service.update_sector(db, sector_id, payload, media)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{sector_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_sector(
    sector_id: str,
    db: AsyncIOMotorDatabase = Depends(get_main_db),
    media: MediaClient = Depends(get_media_client),
) -> MessageResponse:
    try:
        await service.delete_sector(db, sector_id, media)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(message="Sector deleted successfully")
