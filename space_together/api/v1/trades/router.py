from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from space_together.auth.dependencies import get_current_user
from space_together.auth.rbac import require_admin
from space_together.core.exceptions import ServiceError
from space_together.core.models import MainClass, Trade
from space_together.core.schemas import CountResponse, ListQuery, MessageResponse, Paginated, list_query
from space_together.db.mongo import get_main_db

from .schemas import TradeCreate, TradeUpdate
from . import service

router = APIRouter(prefix="/trades", tags=["trades"], dependencies=[Depends(get_current_user)])


@router.get("", response_model=Paginated[Trade])
async def list_trades(
    query: ListQuery = Depends(list_query),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> Paginated[Trade]:
    return await service.list_trades(db, query)


@router.get("/stats/count", response_model=CountResponse)
async def count_trades(db: AsyncIOMotorDatabase = Depends(get_main_db)) -> CountResponse:
    return CountResponse(count=await service.count_trades(db))


@router.get("/sector/{sector_id}", response_model=List[Trade])
async def list_trades_by_sector(sector_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> List[Trade]:
    try:
        return await service.list_trades_by_sector(db, sector_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/username/{username}", response_model=Trade)
async def get_trade_by_username(username: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> Trade:
    try:
        return await service.get_trade_by_username(db, username)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{trade_id}", response_model=Trade)
async def get_trade(trade_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> Trade:
    try:
        return await service.get_trade(db, trade_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{trade_id}/main-classes", response_model=List[MainClass])
async def list_trade_main_classes(trade_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> List[MainClass]:
    try:
        return await service.list_main_classes(db, trade_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "",
    response_model=Trade,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_trade(payload: TradeCreate, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> Trade:
    try:
        return await service.create_trade(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{trade_id}", response_model=Trade, dependencies=[Depends(require_admin)])
async def update_trade(
    trade_id: str,
    payload: TradeUpdate,
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> Trade:
    try:
        return await service.update_trade(db, trade_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{trade_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_trade(trade_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> MessageResponse:
    try:
        await service.delete_trade(db, trade_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(message="Trade deleted successfully")
