from typing import Optional, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from space_together.core.enums import EntityKind, EventType
from space_together.core.events import emits
from space_together.core.exceptions import ConflictError, NotFoundError
from space_together.core.media import MediaClient, prepare_image_update
from space_together.core.models import Sector, Trade
from space_together.core.schemas import ListQuery, Paginated, split_partial
from space_together.core.validators import validate_name, validate_username
from space_together.db.repository import Repository

from .schemas import SectorCreate, SectorUpdate


def sectors(db: AsyncIOMotorDatabase) -> Repository[Sector]:
    return Repository(db, Sector)


async def _check_username(db: AsyncIOMotorDatabase, username: str, exclude=None) -> None:
    query = {"username": username}
    if exclude:
        query["_id"] = {"$ne": exclude}
    if await sectors(db).exists(query):
        raise ConflictError("Sector username already exists", field="username")


@emits(EntityKind.SECTOR, EventType.CREATED)
async def create_sector(db: AsyncIOMotorDatabase, payload: SectorCreate, media: Optional[MediaClient] = None) -> Sector:
    validate_name(payload.name)
    validate_username(payload.username)
    await _check_username(db, payload.username)
    sector = Sector(**payload.model_dump(exclude={"logo"}))
    if payload.logo and media is not None:
        stored = await media.upload(payload.logo)
        sector.logo, sector.logo_id = stored.url, stored.public_id
    return await sectors(db).create(sector, unique_fields=("username",))


async def get_sector(db: AsyncIOMotorDatabase, sector_id: Union[str, ObjectId]) -> Sector:
    return await sectors(db).get(sector_id, "Sector")


async def get_sector_by_username(db: AsyncIOMotorDatabase, username: str) -> Sector:
    sector = await sectors(db).find_one({"username": username})
    if sector is None:
        raise NotFoundError("Sector not found")
    return sector


async def list_sectors(db: AsyncIOMotorDatabase, query: ListQuery) -> Paginated:
    return await sectors(db).list(query.filter, query.extra_match(), query.limit, query.skip)


async def count_sectors(db: AsyncIOMotorDatabase) -> int:
    return await sectors(db).count()


@emits(EntityKind.SECTOR, EventType.UPDATED)
async def update_sector(
    db: AsyncIOMotorDatabase,
    sector_id: Union[str, ObjectId],
    payload: SectorUpdate,
    media: Optional[MediaClient] = None,
) -> Sector:
    current = await get_sector(db, sector_id)
    values, unset = split_partial(payload)
    if "name" in values:
        validate_name(values["name"])
    if "username" in values:
        validate_username(values["username"])
        await _check_username(db, values["username"], exclude=current.id)
    unset = [field for field in unset if field not in ("name", "username")]
    stale_logo = None
    if media is not None:
        stale_logo = await prepare_image_update(media, values, unset, current.logo_id, "logo", "logo_id")
    updated = await sectors(db).update_and_fetch(current.id, values, unset, unique_fields=("username",))
    if stale_logo:
        await media.delete(stale_logo)
    return updated


@emits(EntityKind.SECTOR, EventType.DELETED)
async def delete_sector(
    db: AsyncIOMotorDatabase,
    sector_id: Union[str, ObjectId],
    media: Optional[MediaClient] = None,
) -> Sector:
    sector = await get_sector(db, sector_id)
    if await Repository(db, Trade).exists({"sector_id": sector.id}):
        raise ConflictError("Cannot delete sector: trades still reference it")
    await sectors(db).delete(sector.id)
    if media is not None and sector.logo_id:
        await media.delete(sector.logo_id)
    return sector
