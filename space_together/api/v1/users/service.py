import logging
from typing import Optional, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from space_together.auth.security import hash_password
from space_together.core.codes import generate_username
from space_together.core.enums import EntityKind, EventType, UserRole
from space_together.core.events import emits
from space_together.core.exceptions import ConflictError, NotFoundError, ValidationError
from space_together.core.media import MediaClient, prepare_image_update
from space_together.core.models import User
from space_together.core.schemas import ListQuery, Paginated, split_partial
from space_together.core.validators import validate_email, validate_name, validate_username
from space_together.db.document import parse_object_id
from space_together.db.repository import Repository

from .schemas import UserCreate, UserUpdate

logger = logging.getLogger(__name__)

UNIQUE_FIELDS = ("email", "username")


def users(db: AsyncIOMotorDatabase) -> Repository[User]:
    return Repository(db, User)


async def get_user(db: AsyncIOMotorDatabase, user_id: Union[str, ObjectId]) -> User:
    return await users(db).get(user_id, "User")


async def get_user_by_email(db: AsyncIOMotorDatabase, email: str) -> Optional[User]:
    return await users(db).find_one({"email": email.strip().lower()})


async def get_user_by_username(db: AsyncIOMotorDatabase, username: str) -> User:
    user = await users(db).find_one({"username": username})
    if user is None:
        raise NotFoundError("User not found")
    return user


async def list_users(db: AsyncIOMotorDatabase, query: ListQuery) -> Paginated:
    return await users(db).list(query.filter, query.extra_match(), query.limit, query.skip)


async def count_users(db: AsyncIOMotorDatabase) -> int:
    return await users(db).count()


async def _check_unique(db: AsyncIOMotorDatabase, email: Optional[str], username: Optional[str], exclude=None) -> None:
    not_self = {"_id": {"$ne": exclude}} if exclude else {}
    if email and await users(db).exists({"email": email, **not_self}):
        raise ConflictError("A user with this email already exists", field="email")
    if username and await users(db).exists({"username": username, **not_self}):
        raise ConflictError("A user with this username already exists", field="username")


@emits(EntityKind.USER, EventType.CREATED)
async def create_user(
    db: AsyncIOMotorDatabase,
    payload: UserCreate,
    media: Optional[MediaClient] = None,
) -> User:
    name = validate_name(payload.name)
    email = validate_email(payload.email)
    repo = users(db)
    if payload.username:
        username = validate_username(payload.username)
    else:
        username = await generate_username(name, lambda candidate: repo.exists({"username": candidate}))
    await _check_unique(db, email, username)

    data = payload.model_dump(exclude={"password", "image", "role"})
    user = User(
        **{**data, "name": name, "email": email, "username": username},
        password_hash=hash_password(payload.password),
        role=payload.role or UserRole.STUDENT,
    )
    if payload.image:
        if media is None:
            raise ValidationError("Image upload is not available here")
        stored = await media.upload(payload.image)
        user.image, user.image_id = stored.url, stored.public_id
    return await repo.create(user, unique_fields=UNIQUE_FIELDS)


@emits(EntityKind.USER, EventType.UPDATED)
async def update_user(
    db: AsyncIOMotorDatabase,
    user_id: Union[str, ObjectId],
    payload: UserUpdate,
    media: Optional[MediaClient] = None,
) -> User:
    repo = users(db)
    current = await repo.get(user_id, "User")
    values, unset = split_partial(payload)
    if "name" in values:
        values["name"] = validate_name(values["name"])
    if "email" in values:
        values["email"] = validate_email(values["email"])
    if "username" in values:
        validate_username(values["username"])
    await _check_unique(db, values.get("email"), values.get("username"), exclude=current.id)
    if "password" in values:
        values["password_hash"] = hash_password(values.pop("password"))
    unset = [name for name in unset if name not in ("password", "name", "email", "username")]
    if "current_school_id" in values and values["current_school_id"] not in current.schools:
        raise ValidationError("current_school_id must be one of the user's schools")

    stale_image = None
    if media is not None:
        stale_image = await prepare_image_update(media, values, unset, current.image_id)
    else:
        values.pop("image", None)
    updated = await repo.update_and_fetch(current.id, values, unset, unique_fields=UNIQUE_FIELDS)
    if stale_image:
        await media.delete(stale_image)
    return updated


@emits(EntityKind.USER, EventType.DELETED)
async def delete_user(
    db: AsyncIOMotorDatabase,
    user_id: Union[str, ObjectId],
    media: Optional[MediaClient] = None,
) -> User:
    repo = users(db)
    user = await repo.get(user_id, "User")
    await repo.delete(user.id)
    if media is not None and user.image_id:
        await media.delete(user.image_id)
    return user


@emits(EntityKind.USER, EventType.UPDATED)
async def add_school_to_user(
    db: AsyncIOMotorDatabase,
    user_id: Union[str, ObjectId],
    school_id: Union[str, ObjectId],
    make_current: bool = False,
) -> User:
    """Link a school to a user; it becomes the current school when none is set."""
    school_oid = parse_object_id(school_id, "school_id")
    repo = users(db)
    user = await repo.get(user_id, "User")
    update = {"$addToSet": {"schools": school_oid}}
    if make_current or user.current_school_id is None:
        update["$set"] = {"current_school_id": school_oid}
    return await repo.apply(user.id, update)


async def set_current_school(db: AsyncIOMotorDatabase, user_id: Union[str, ObjectId], school_id: ObjectId) -> User:
    return await users(db).apply(user_id, {"$set": {"current_school_id": school_id}})


async def ensure_platform_admin(db: AsyncIOMotorDatabase, email: str, password: str, name: str) -> User:
    """Create the configured platform admin account if it does not exist yet."""
    existing = await get_user_by_email(db, email)
    if existing is not None:
        return existing
    logger.info("Creating platform admin %s", email)
    return await create_user(db, UserCreate(name=name, email=email, password=password, role=UserRole.ADMIN))
