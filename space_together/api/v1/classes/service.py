"""Classes of a school.

The same service backs the catalog-level ``/classes`` routes (main database)
and the tenant ``/school/classes`` routes; callers pass the database to use.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING

from space_together.core.codes import generate_code
from space_together.core.enums import ClassLevelType, EntityKind, EventType
from space_together.core.events import emits
from space_together.core.exceptions import (
    CancelCheck,
    ConflictError,
    NotFoundError,
    ServiceError,
    ValidationError,
    ensure_not_cancelled,
)
from space_together.core.media import MediaClient, prepare_image_update
from space_together.core.models import SchoolClass
from space_together.core.schemas import BulkItemError, ListQuery, Paginated, split_partial
from space_together.core.validators import validate_name, validate_username
from space_together.db.document import parse_object_id
from space_together.db.relations import RelationSet, relation_pipeline
from space_together.db.repository import Repository

from .schemas import (
    BulkClassCreateResult,
    BulkClassUpdateResult,
    ClassBulkUpdateItem,
    ClassCreate,
    ClassUpdate,
    ClassWithDetails,
)

logger = logging.getLogger(__name__)

UNIQUE_FIELDS = ("username", "code")
REQUIRED_FIELDS = ("name", "username", "code", "type", "level_type", "is_active", "tags")


def classes(db: AsyncIOMotorDatabase) -> Repository[SchoolClass]:
    return Repository(db, SchoolClass)


def _build(data: Dict[str, Any]) -> SchoolClass:
    try:
        return SchoolClass.model_validate(data)
    except PydanticValidationError as exc:
        error = exc.errors()[0]
        raise ValidationError(str(error.get("msg", "Invalid class")).replace("Value error, ", ""))


async def _check_unique(
    db: AsyncIOMotorDatabase, username: Optional[str], code: Optional[str], exclude=None
) -> None:
    not_self = {"_id": {"$ne": exclude}} if exclude else {}
    if username and await classes(db).exists({"username": username, **not_self}):
        raise ConflictError("Class username already exists", field="username")
    if code and await classes(db).exists({"code": code, **not_self}):
        raise ConflictError("Class code already exists", field="code")


async def _check_parent(db: AsyncIOMotorDatabase, school_class: SchoolClass) -> None:
    if school_class.level_type != ClassLevelType.SUB_CLASS.value:
        return
    if school_class.id is not None and school_class.parent_class_id == school_class.id:
        raise ValidationError("A class cannot be its own parent")
    parent = await classes(db).find_by_id(school_class.parent_class_id)
    if parent is None:
        raise NotFoundError("Parent class not found")
    if parent.level_type != ClassLevelType.MAIN_CLASS.value:
        raise ValidationError("The parent of a SubClass must be a MainClass")


async def _link_parent(db: AsyncIOMotorDatabase, school_class: SchoolClass) -> None:
    if school_class.parent_class_id is not None:
        await classes(db).apply(school_class.parent_class_id, {"$addToSet": {"subclass_ids": school_class.id}})


async def _unlink_parent(db: AsyncIOMotorDatabase, parent_id: Optional[ObjectId], child_id: ObjectId) -> None:
    if parent_id is not None and await classes(db).exists({"_id": parent_id}):
        await classes(db).apply(parent_id, {"$pull": {"subclass_ids": child_id}})


async def _prepare(
    db: AsyncIOMotorDatabase,
    payload: ClassCreate,
    creator_id: Optional[ObjectId],
    school_id: Optional[ObjectId],
) -> SchoolClass:
    """Validate a create payload into an unsaved class with its code assigned."""
    name = validate_name(payload.name, "class name")
    username = validate_username(payload.username)
    await _check_unique(db, username, payload.code)
    school_class = _build({
        **payload.model_dump(exclude={"name", "username", "image"}),
        "name": name,
        "username": username,
        "creator_id": creator_id,
        "school_id": payload.school_id or school_id,
    })
    await _check_parent(db, school_class)
    if not school_class.code:
        school_class.code = await generate_code(lambda candidate: classes(db).exists({"code": candidate}))
    return school_class


@emits(EntityKind.CLASS, EventType.CREATED)
async def create_class(
    db: AsyncIOMotorDatabase,
    payload: ClassCreate,
    creator_id: Optional[ObjectId] = None,
    school_id: Optional[ObjectId] = None,
    media: Optional[MediaClient] = None,
) -> SchoolClass:
    school_class = await _prepare(db, payload, creator_id, school_id)
    if payload.image and media is not None:
        stored = await media.upload(payload.image)
        school_class.image, school_class.image_id = stored.url, stored.public_id
    created = await classes(db).create(school_class, unique_fields=UNIQUE_FIELDS)
    await _link_parent(db, created)
    return created


async def get_class(db: AsyncIOMotorDatabase, class_id: Union[str, ObjectId]) -> SchoolClass:
    return await classes(db).get(class_id, "Class")


async def get_class_by_username(db: AsyncIOMotorDatabase, username: str) -> SchoolClass:
    school_class = await classes(db).find_one({"username": username})
    if school_class is None:
        raise NotFoundError("Class not found")
    return school_class


async def get_class_by_code(db: AsyncIOMotorDatabase, code: str) -> SchoolClass:
    school_class = await classes(db).find_one({"code": code})
    if school_class is None:
        raise NotFoundError("Class not found")
    return school_class


async def get_class_with_details(db: AsyncIOMotorDatabase, class_id: Union[str, ObjectId]) -> ClassWithDetails:
    oid = parse_object_id(class_id, "class_id")
    rows = await classes(db).aggregate(relation_pipeline(RelationSet.CLASS_DETAILS, match={"_id": oid}))
    if not rows:
        raise NotFoundError("Class not found")
    return ClassWithDetails.model_validate(rows[0])


async def list_classes(db: AsyncIOMotorDatabase, query: ListQuery) -> Paginated:
    return await classes(db).list(query.filter, query.extra_match(), query.limit, query.skip)


async def list_subclasses(db: AsyncIOMotorDatabase, class_id: Union[str, ObjectId]) -> List[SchoolClass]:
    parent = await get_class(db, class_id)
    return await classes(db).find_many({"parent_class_id": parent.id}, sort=[("name", ASCENDING)])


async def count_classes(db: AsyncIOMotorDatabase) -> int:
    return await classes(db).count()


async def _check_update(
    db: AsyncIOMotorDatabase, current: SchoolClass, values: Dict[str, Any], unset: Iterable[str]
) -> SchoolClass:
    """Validate the class as it will look after the update and return that shape."""
    if "name" in values:
        values["name"] = validate_name(values["name"], "class name")
    if "username" in values:
        validate_username(values["username"])
    await _check_unique(db, values.get("username"), values.get("code"), exclude=current.id)
    merged = current.model_dump()
    merged.update(values)
    for field in unset:
        merged.pop(field, None)
    merged = _build(merged)
    if merged.level_type == ClassLevelType.SUB_CLASS.value and current.subclass_ids:
        raise ValidationError("A class that has subclasses cannot become a SubClass")
    if merged.parent_class_id != current.parent_class_id:
        await _check_parent(db, merged)
    return merged


async def _move_parent(db: AsyncIOMotorDatabase, before: SchoolClass, after: SchoolClass) -> None:
    if before.parent_class_id == after.parent_class_id:
        return
    await _unlink_parent(db, before.parent_class_id, before.id)
    await _link_parent(db, after)


@emits(EntityKind.CLASS, EventType.UPDATED)
async def update_class(
    db: AsyncIOMotorDatabase,
    class_id: Union[str, ObjectId],
    payload: ClassUpdate,
    media: Optional[MediaClient] = None,
) -> SchoolClass:
    current = await get_class(db, class_id)
    values, unset = split_partial(payload)
    unset = [field for field in unset if field not in REQUIRED_FIELDS]
    await _check_update(db, current, values, unset)
    stale_image = None
    if media is not None:
        stale_image = await prepare_image_update(media, values, unset, current.image_id)
    updated = await classes(db).update_and_fetch(current.id, values, unset, unique_fields=UNIQUE_FIELDS)
    await _move_parent(db, current, updated)
    if stale_image:
        await media.delete(stale_image)
    return updated


@emits(EntityKind.CLASS, EventType.UPDATED)
async def update_class_merged(
    db: AsyncIOMotorDatabase,
    class_id: Union[str, ObjectId],
    payload: ClassUpdate,
    media: Optional[MediaClient] = None,
) -> SchoolClass:
    """Overlay the provided fields on the stored class and write the whole document back."""
    current = await get_class(db, class_id)
    values, _ = split_partial(payload)
    await _check_update(db, current, values, ())
    stale_image = None
    if media is not None:
        stale_image = await prepare_image_update(media, values, [], current.image_id)
    merged = _build({**current.model_dump(), **values})
    updated = await classes(db).replace(merged, unique_fields=UNIQUE_FIELDS)
    await _move_parent(db, current, updated)
    if stale_image:
        await media.delete(stale_image)
    return updated


@emits(EntityKind.CLASS, EventType.DELETED)
async def delete_class(
    db: AsyncIOMotorDatabase, class_id: Union[str, ObjectId], media: Optional[MediaClient] = None
) -> SchoolClass:
    school_class = await get_class(db, class_id)
    if school_class.subclass_ids or await classes(db).exists({"parent_class_id": school_class.id}):
        raise ConflictError("Cannot delete a class that has subclasses")
    await classes(db).delete(school_class.id)
    await _unlink_parent(db, school_class.parent_class_id, school_class.id)
    if school_class.image_id and media is not None:
        await media.delete(school_class.image_id)
    return school_class


async def create_classes_bulk(
    db: AsyncIOMotorDatabase,
    payloads: Sequence[ClassCreate],
    creator_id: Optional[ObjectId] = None,
    school_id: Optional[ObjectId] = None,
    media: Optional[MediaClient] = None,
    is_cancelled: CancelCheck = None,
) -> BulkClassCreateResult:
    """Create each class on its own; failures are reported per item and never undo the others."""
    result = BulkClassCreateResult()
    for index, payload in enumerate(payloads):
        await ensure_not_cancelled(is_cancelled)
        try:
            result.created.append(await create_class(db, payload, creator_id, school_id, media))
        except ServiceError as e:
            result.errors.append(BulkItemError(index=index, message=e.message))
    logger.info("Bulk class create: %d created, %d failed", len(result.created), len(result.errors))
    return result


async def create_classes_bulk_validated(
    db: AsyncIOMotorDatabase,
    payloads: Sequence[ClassCreate],
    creator_id: Optional[ObjectId] = None,
    school_id: Optional[ObjectId] = None,
    is_cancelled: CancelCheck = None,
) -> List[SchoolClass]:
    """All or nothing: every item is validated before any class is written."""
    drafts: List[SchoolClass] = []
    seen: Dict[str, Set[str]] = {"username": set(), "code": set()}
    for index, payload in enumerate(payloads):
        await ensure_not_cancelled(is_cancelled)
        try:
            draft = await _prepare(db, payload, creator_id, school_id)
        except ServiceError as e:
            raise _at(index, e)
        for field in UNIQUE_FIELDS:
            value = getattr(draft, field)
            if value in seen[field]:
                raise ConflictError(f"Item {index}: duplicate class {field} '{value}' in request", field=field)
            seen[field].add(value)
        drafts.append(draft)

    created = await classes(db).create_many(drafts, unique_fields=UNIQUE_FIELDS)
    for school_class in created:
        await _link_parent(db, school_class)
    for school_class in created:
        await _publish_created(school_class)
    return created


def _at(index: int, error: ServiceError) -> ServiceError:
    error.message = f"Item {index}: {error.message}"
    error.args = (error.message,)
    return error


@emits(EntityKind.CLASS, EventType.CREATED)
async def _publish_created(school_class: SchoolClass) -> SchoolClass:
    return school_class


async def update_classes_bulk(
    db: AsyncIOMotorDatabase,
    items: Sequence[ClassBulkUpdateItem],
    media: Optional[MediaClient] = None,
    is_cancelled: CancelCheck = None,
) -> BulkClassUpdateResult:
    result = BulkClassUpdateResult()
    for index, item in enumerate(items):
        await ensure_not_cancelled(is_cancelled)
        try:
            result.updated.append(await update_class(db, item.id, item.update, media))
        except ServiceError as e:
            result.errors.append(BulkItemError(index=index, message=e.message))
    return result
