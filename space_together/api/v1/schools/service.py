import logging
from typing import Optional, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from space_together.core.codes import generate_code
from space_together.core.enums import EntityKind, EventType
from space_together.core.events import emits
from space_together.core.exceptions import ConflictError, NotFoundError
from space_together.core.media import MediaClient, prepare_image_update
from space_together.core.models import School
from space_together.core.schemas import ListQuery, Paginated, split_partial
from space_together.core.validators import validate_name, validate_username
from space_together.db.mongo import MongoManager, tenant_db_name_for
from space_together.db.repository import Repository

from .schemas import SchoolCreate, SchoolUpdate

logger = logging.getLogger(__name__)

UNIQUE_FIELDS = ("username", "code")


def schools(db: AsyncIOMotorDatabase) -> Repository[School]:
    return Repository(db, School)


async def _check_unique(db: AsyncIOMotorDatabase, username: Optional[str], code: Optional[str], exclude=None) -> None:
    not_self = {"_id": {"$ne": exclude}} if exclude else {}
    if username and await schools(db).exists({"username": username, **not_self}):
        raise ConflictError("School username already exists", field="username")
    if code and await schools(db).exists({"code": code, **not_self}):
        raise ConflictError("School code already exists", field="code")


@emits(EntityKind.SCHOOL, EventType.CREATED)
async def create_school(
    mongo: MongoManager,
    payload: SchoolCreate,
    creator_id: Optional[ObjectId] = None,
    media: Optional[MediaClient] = None,
) -> School:
    """Insert the school, then provision its tenant database and record its name."""
    db = mongo.main_db()
    repo = schools(db)
    name = validate_name(payload.name, "school name")
    username = validate_username(payload.username)
    await _check_unique(db, username, payload.code)
    code = payload.code or await generate_code(lambda candidate: repo.exists({"code": candidate}))

    school = School(
        **payload.model_dump(exclude={"logo", "name", "username", "code"}),
        name=name,
        username=username,
        code=code,
        creator_id=creator_id,
    )
    if payload.logo and media is not None:
        stored = await media.upload(payload.logo)
        school.logo, school.logo_id = stored.url, stored.public_id
    school = await repo.create(school, unique_fields=UNIQUE_FIELDS)

    database_name = tenant_db_name_for(school.id)
    await mongo.provision_tenant(database_name)
    return await repo.update_and_fetch(school.id, {"database_name": database_name})


async def get_school(db: AsyncIOMotorDatabase, school_id: Union[str, ObjectId]) -> School:
    return await schools(db).get(school_id, "School")


async def get_school_by_username(db: AsyncIOMotorDatabase, username: str) -> School:
    school = await schools(db).find_one({"username": username})
    if school is None:
        raise NotFoundError("School not found")
    return school


async def get_school_by_code(db: AsyncIOMotorDatabase, code: str) -> School:
    school = await schools(db).find_one({"code": code})
    if school is None:
        raise NotFoundError("School not found")
    return school


async def list_schools(db: AsyncIOMotorDatabase, query: ListQuery) -> Paginated:
    return await schools(db).list(query.filter, query.extra_match(), query.limit, query.skip)


async def count_schools(db: AsyncIOMotorDatabase) -> int:
    return await schools(db).count()


@emits(EntityKind.SCHOOL, EventType.UPDATED)
async def update_school(
    db: AsyncIOMotorDatabase,
    school_id: Union[str, ObjectId],
    payload: SchoolUpdate,
    media: Optional[MediaClient] = None,
) -> School:
    repo = schools(db)
    current = await repo.get(school_id, "School")
    values, unset = split_partial(payload)
    if "name" in values:
        values["name"] = validate_name(values["name"], "school name")
    if "username" in values:
        validate_username(values["username"])
    await _check_unique(db, values.get("username"), values.get("code"), exclude=current.id)
    unset = [field for field in unset if field not in ("name", "username", "code")]

    stale_logo = None
    if media is not None:
        stale_logo = await prepare_image_update(media, values, unset, current.logo_id, "logo", "logo_id")
    updated = await repo.update_and_fetch(current.id, values, unset, unique_fields=UNIQUE_FIELDS)
    if stale_logo:
        await media.delete(stale_logo)
    return updated


@emits(EntityKind.SCHOOL, EventType.DELETED)
async def delete_school(
    db: AsyncIOMotorDatabase,
    school_id: Union[str, ObjectId],
    media: Optional[MediaClient] = None,
) -> School:
    """Remove the school row and its logo. The tenant database is left in place."""
    repo = schools(db)
    school = await repo.get(school_id, "School")
    await repo.delete(school.id)
    if media is not None and school.logo_id:
        await media.delete(school.logo_id)
    logger.info("School %s deleted; tenant database %s retained", school.id, school.database_name)
    return school
