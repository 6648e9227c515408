from typing import Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from space_together.core.enums import EntityKind, EventType
from space_together.core.events import emits
from space_together.core.exceptions import ConflictError, NotFoundError
from space_together.core.models import MainClass, TemplateSubject, Trade
from space_together.core.schemas import ListQuery, Paginated, split_partial
from space_together.core.validators import validate_name, validate_username
from space_together.db.repository import Repository

from .schemas import MainClassCreate, MainClassUpdate


def main_classes(db: AsyncIOMotorDatabase) -> Repository[MainClass]:
    return Repository(db, MainClass)


async def _check_username(db: AsyncIOMotorDatabase, username: str, exclude=None) -> None:
    query = {"username": username}
    if exclude:
        query["_id"] = {"$ne": exclude}
    if await main_classes(db).exists(query):
        raise ConflictError("Main class username already exists", field="username")


async def _check_trade(db: AsyncIOMotorDatabase, trade_id: ObjectId) -> None:
    if not await Repository(db, Trade).exists({"_id": trade_id}):
        raise NotFoundError("Trade not found")


@emits(EntityKind.MAIN_CLASS, EventType.CREATED)
async def create_main_class(db: AsyncIOMotorDatabase, payload: MainClassCreate) -> MainClass:
    validate_name(payload.name)
    validate_username(payload.username)
    await _check_trade(db, payload.trade_id)
    await _check_username(db, payload.username)
    return await main_classes(db).create(MainClass(**payload.model_dump()), unique_fields=("username",))


async def get_main_class(db: AsyncIOMotorDatabase, main_class_id: Union[str, ObjectId]) -> MainClass:
    return await main_classes(db).get(main_class_id, "Main class")


async def get_main_class_by_username(db: AsyncIOMotorDatabase, username: str) -> MainClass:
    main_class = await main_classes(db).find_one({"username": username})
    if main_class is None:
        raise NotFoundError("Main class not found")
    return main_class


async def list_main_classes(db: AsyncIOMotorDatabase, query: ListQuery) -> Paginated:
    return await main_classes(db).list(query.filter, query.extra_match(), query.limit, query.skip)


async def count_main_classes(db: AsyncIOMotorDatabase) -> int:
    return await main_classes(db).count()


@emits(EntityKind.MAIN_CLASS, EventType.UPDATED)
async def update_main_class(
    db: AsyncIOMotorDatabase, main_class_id: Union[str, ObjectId], payload: MainClassUpdate
) -> MainClass:
    current = await get_main_class(db, main_class_id)
    values, unset = split_partial(payload)
    unset = [field for field in unset if field not in ("name", "username", "trade_id", "level")]
    if "name" in values:
        validate_name(values["name"])
    if "username" in values:
        validate_username(values["username"])
        await _check_username(db, values["username"], exclude=current.id)
    if "trade_id" in values:
        await _check_trade(db, values["trade_id"])
    return await main_classes(db).update_and_fetch(current.id, values, unset, unique_fields=("username",))


@emits(EntityKind.MAIN_CLASS, EventType.DELETED)
async def delete_main_class(db: AsyncIOMotorDatabase, main_class_id: Union[str, ObjectId]) -> MainClass:
    main_class = await get_main_class(db, main_class_id)
    if await Repository(db, TemplateSubject).exists({"prerequisites": main_class.id}):
        raise ConflictError("Cannot delete main class: template subjects still reference it")
    await main_classes(db).delete(main_class.id)
    return main_class
