"""Catalog subjects: main subjects and the template subjects copied into schools at bootstrap."""
from typing import Iterable, List, Optional, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from space_together.core.codes import generate_code
from space_together.core.enums import EntityKind, EventType
from space_together.core.events import emits
from space_together.core.exceptions import ConflictError, NotFoundError, ValidationError
from space_together.core.models import MainClass, MainSubject, TemplateSubject
from space_together.core.schemas import ListQuery, Paginated, split_partial
from space_together.core.validators import validate_name
from space_together.db.document import parse_object_id
from space_together.db.repository import Repository

from .schemas import MainSubjectCreate, MainSubjectUpdate, TemplateSubjectCreate, TemplateSubjectUpdate

REQUIRED_FIELDS = ("name", "code", "category", "estimated_hours")


def main_subjects(db: AsyncIOMotorDatabase) -> Repository[MainSubject]:
    return Repository(db, MainSubject)


def template_subjects(db: AsyncIOMotorDatabase) -> Repository[TemplateSubject]:
    return Repository(db, TemplateSubject)


async def _check_code(repo: Repository, code: str, label: str, exclude=None) -> None:
    query = {"code": code}
    if exclude:
        query["_id"] = {"$ne": exclude}
    if await repo.exists(query):
        raise ConflictError(f"{label} code already exists", field="code")


async def _check_main_classes(db: AsyncIOMotorDatabase, ids: Iterable[ObjectId]) -> None:
    wanted = set(ids)
    if not wanted:
        return
    found = await Repository(db, MainClass).count({"_id": {"$in": list(wanted)}})
    if found != len(wanted):
        raise NotFoundError("Main class not found")


# Main subjects


@emits(EntityKind.MAIN_SUBJECT, EventType.CREATED)
async def create_main_subject(
    db: AsyncIOMotorDatabase, payload: MainSubjectCreate, created_by: Optional[ObjectId] = None
) -> MainSubject:
    repo = main_subjects(db)
    name = validate_name(payload.name, "subject name")
    if payload.code:
        await _check_code(repo, payload.code, "Main subject")
    code = payload.code or await generate_code(lambda candidate: repo.exists({"code": candidate}))
    await _check_main_classes(db, payload.main_class_ids)
    subject = MainSubject(**payload.model_dump(exclude={"name", "code"}), name=name, code=code, created_by=created_by)
    return await repo.create(subject, unique_fields=("code",))


async def get_main_subject(db: AsyncIOMotorDatabase, subject_id: Union[str, ObjectId]) -> MainSubject:
    return await main_subjects(db).get(subject_id, "Main subject")


async def get_main_subject_by_code(db: AsyncIOMotorDatabase, code: str) -> MainSubject:
    subject = await main_subjects(db).find_one({"code": code})
    if subject is None:
        raise NotFoundError("Main subject not found")
    return subject


async def list_main_subjects(db: AsyncIOMotorDatabase, query: ListQuery) -> Paginated:
    return await main_subjects(db).list(query.filter, query.extra_match(), query.limit, query.skip)


async def list_main_subjects_by_main_class(
    db: AsyncIOMotorDatabase, main_class_id: Union[str, ObjectId]
) -> List[MainSubject]:
    oid = parse_object_id(main_class_id, "main_class_id")
    return await main_subjects(db).find_many({"main_class_ids": oid}, sort=[("name", ASCENDING)])


async def count_main_subjects(db: AsyncIOMotorDatabase) -> int:
    return await main_subjects(db).count()


@emits(EntityKind.MAIN_SUBJECT, EventType.UPDATED)
async def update_main_subject(
    db: AsyncIOMotorDatabase, subject_id: Union[str, ObjectId], payload: MainSubjectUpdate
) -> MainSubject:
    current = await get_main_subject(db, subject_id)
    values, unset = split_partial(payload)
    unset = [field for field in unset if field not in REQUIRED_FIELDS + ("is_active",)]
    if "name" in values:
        values["name"] = validate_name(values["name"], "subject name")
    if "code" in values:
        await _check_code(main_subjects(db), values["code"], "Main subject", exclude=current.id)
    if "main_class_ids" in values:
        await _check_main_classes(db, values["main_class_ids"])
    return await main_subjects(db).update_and_fetch(current.id, values, unset, unique_fields=("code",))


@emits(EntityKind.MAIN_SUBJECT, EventType.DELETED)
async def delete_main_subject(db: AsyncIOMotorDatabase, subject_id: Union[str, ObjectId]) -> MainSubject:
    subject = await get_main_subject(db, subject_id)
    await main_subjects(db).delete(subject.id)
    return subject


# Template subjects


@emits(EntityKind.TEMPLATE_SUBJECT, EventType.CREATED)
async def create_template_subject(
    db: AsyncIOMotorDatabase, payload: TemplateSubjectCreate, created_by: Optional[ObjectId] = None
) -> TemplateSubject:
    repo = template_subjects(db)
    name = validate_name(payload.name, "subject name")
    code = payload.code.strip()
    if not code:
        raise ValidationError("The subject code must not be empty")
    await _check_code(repo, code, "Template subject")
    await _check_main_classes(db, payload.prerequisites)
    subject = TemplateSubject(
        **payload.model_dump(exclude={"name", "code"}), name=name, code=code, created_by=created_by
    )
    return await repo.create(subject, unique_fields=("code",))


async def get_template_subject(db: AsyncIOMotorDatabase, subject_id: Union[str, ObjectId]) -> TemplateSubject:
    return await template_subjects(db).get(subject_id, "Template subject")


async def get_template_subject_by_code(db: AsyncIOMotorDatabase, code: str) -> TemplateSubject:
    subject = await template_subjects(db).find_one({"code": code})
    if subject is None:
        raise NotFoundError("Template subject not found")
    return subject


async def list_template_subjects(db: AsyncIOMotorDatabase, query: ListQuery) -> Paginated:
    return await template_subjects(db).list(query.filter, query.extra_match(), query.limit, query.skip)


async def list_template_subjects_by_main_class(
    db: AsyncIOMotorDatabase, main_class_id: Union[str, ObjectId]
) -> List[TemplateSubject]:
    """Templates whose ``prerequisites`` include the main class."""
    oid = parse_object_id(main_class_id, "main_class_id")
    return await template_subjects(db).find_many({"prerequisites": oid}, sort=[("code", ASCENDING)])


async def count_template_subjects(db: AsyncIOMotorDatabase) -> int:
    return await template_subjects(db).count()


@emits(EntityKind.TEMPLATE_SUBJECT, EventType.UPDATED)
async def update_template_subject(
    db: AsyncIOMotorDatabase, subject_id: Union[str, ObjectId], payload: TemplateSubjectUpdate
) -> TemplateSubject:
    current = await get_template_subject(db, subject_id)
    values, unset = split_partial(payload)
    unset = [field for field in unset if field not in REQUIRED_FIELDS + ("credits",)]
    if "name" in values:
        values["name"] = validate_name(values["name"], "subject name")
    if "code" in values:
        await _check_code(template_subjects(db), values["code"], "Template subject", exclude=current.id)
    if "prerequisites" in values:
        await _check_main_classes(db, values["prerequisites"])
    return await template_subjects(db).update_and_fetch(current.id, values, unset, unique_fields=("code",))


@emits(EntityKind.TEMPLATE_SUBJECT, EventType.DELETED)
async def delete_template_subject(db: AsyncIOMotorDatabase, subject_id: Union[str, ObjectId]) -> TemplateSubject:
    subject = await get_template_subject(db, subject_id)
    await template_subjects(db).delete(subject.id)
    return subject
