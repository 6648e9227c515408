from typing import List, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from space_together.core.enums import EntityKind, EventType
from space_together.core.events import emits
from space_together.core.exceptions import ConflictError, NotFoundError, ValidationError
from space_together.core.models import MainClass, Sector, Trade
from space_together.core.schemas import ListQuery, Paginated, split_partial
from space_together.core.validators import validate_name, validate_username
from space_together.db.document import parse_object_id
from space_together.db.repository import Repository

from .schemas import TradeCreate, TradeUpdate


def trades(db: AsyncIOMotorDatabase) -> Repository[Trade]:
    return Repository(db, Trade)


async def _check_references(db: AsyncIOMotorDatabase, trade: Trade) -> None:
    if trade.trade_id is not None and trade.id is not None and trade.trade_id == trade.id:
        raise ValidationError("A trade cannot be its own parent")
    if trade.class_min > trade.class_max:
        raise ValidationError("class_min must not exceed class_max")
    if trade.sector_id is not None and not await Repository(db, Sector).exists({"_id": trade.sector_id}):
        raise NotFoundError("Sector not found")
    if trade.trade_id is not None and not await trades(db).exists({"_id": trade.trade_id}):
        raise NotFoundError("Parent trade not found")


async def _check_username(db: AsyncIOMotorDatabase, username: str, exclude=None) -> None:
    query = {"username": username}
    if exclude:
        query["_id"] = {"$ne": exclude}
    if await trades(db).exists(query):
        raise ConflictError("Trade username already exists", field="username")


@emits(EntityKind.TRADE, EventType.CREATED)
async def create_trade(db: AsyncIOMotorDatabase, payload: TradeCreate) -> Trade:
    validate_name(payload.name)
    validate_username(payload.username)
    trade = Trade(**payload.model_dump())
    await _check_references(db, trade)
    await _check_username(db, trade.username)
    return await trades(db).create(trade, unique_fields=("username",))


async def get_trade(db: AsyncIOMotorDatabase, trade_id: Union[str, ObjectId]) -> Trade:
    return await trades(db).get(trade_id, "Trade")


async def get_trade_by_username(db: AsyncIOMotorDatabase, username: str) -> Trade:
    trade = await trades(db).find_one({"username": username})
    if trade is None:
        raise NotFoundError("Trade not found")
    return trade


async def list_trades(db: AsyncIOMotorDatabase, query: ListQuery) -> Paginated:
    return await trades(db).list(query.filter, query.extra_match(), query.limit, query.skip)


async def list_trades_by_sector(db: AsyncIOMotorDatabase, sector_id: Union[str, ObjectId]) -> List[Trade]:
    return await trades(db).find_many({"sector_id": parse_object_id(sector_id, "sector_id")}, sort=[("name", ASCENDING)])


async def list_main_classes(db: AsyncIOMotorDatabase, trade_id: Union[str, ObjectId]) -> List[MainClass]:
    trade = await get_trade(db, trade_id)
    return await Repository(db, MainClass).find_many({"trade_id": trade.id}, sort=[("level", ASCENDING)])


async def count_trades(db: AsyncIOMotorDatabase) -> int:
    return await trades(db).count()


@emits(EntityKind.TRADE, EventType.UPDATED)
async def update_trade(db: AsyncIOMotorDatabase, trade_id: Union[str, ObjectId], payload: TradeUpdate) -> Trade:
    current = await get_trade(db, trade_id)
    values, unset = split_partial(payload)
    unset = [field for field in unset if field not in ("name", "username", "type", "class_min", "class_max")]
    if "name" in values:
        validate_name(values["name"])
    if "username" in values:
        validate_username(values["username"])
        await _check_username(db, values["username"], exclude=current.id)
    merged = current.model_copy(update=values)
    for field in unset:
        setattr(merged, field, None)
    await _check_references(db, merged)
    return await trades(db).update_and_fetch(current.id, values, unset, unique_fields=("username",))


@emits(EntityKind.TRADE, EventType.DELETED)
async def delete_trade(db: AsyncIOMotorDatabase, trade_id: Union[str, ObjectId]) -> Trade:
    trade = await get_trade(db, trade_id)
    if await Repository(db, MainClass).exists({"trade_id": trade.id}):
        raise ConflictError("Cannot delete trade: main classes still reference it")
    await trades(db).delete(trade.id)
    return trade
