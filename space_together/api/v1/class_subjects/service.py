from typing import List, Optional, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from space_together.core.codes import generate_code
from space_together.core.enums import EntityKind, EventType
from space_together.core.events import emits
from space_together.core.exceptions import ConflictError, NotFoundError
from space_together.core.models import ClassSubject, SchoolClass, Teacher
from space_together.core.schemas import ListQuery, Paginated, split_partial
from space_together.core.validators import validate_name
from space_together.db.document import parse_object_id
from space_together.db.relations import RelationSet, relation_pipeline
from space_together.db.repository import Repository

from .schemas import ClassSubjectCreate, ClassSubjectUpdate, ClassSubjectWithDetails

REQUIRED_FIELDS = ("name", "code", "class_id", "category", "estimated_hours", "topics", "is_active")


def class_subjects(db: AsyncIOMotorDatabase) -> Repository[ClassSubject]:
    return Repository(db, ClassSubject)


async def _check_code(db: AsyncIOMotorDatabase, code: str, exclude=None) -> None:
    query = {"code": code}
    if exclude:
        query["_id"] = {"$ne": exclude}
    if await class_subjects(db).exists(query):
        raise ConflictError("Class subject code already exists", field="code")


async def _check_class(db: AsyncIOMotorDatabase, class_id: ObjectId) -> SchoolClass:
    school_class = await Repository(db, SchoolClass).find_by_id(class_id)
    if school_class is None:
        raise NotFoundError("Class not found")
    return school_class


async def _check_teacher(db: AsyncIOMotorDatabase, teacher_id: Optional[ObjectId]) -> None:
    if teacher_id is not None and not await Repository(db, Teacher).exists({"_id": teacher_id}):
        raise NotFoundError("Teacher not found")


@emits(EntityKind.CLASS_SUBJECT, EventType.CREATED)
async def create_class_subject(
    db: AsyncIOMotorDatabase,
    payload: ClassSubjectCreate,
    created_by: Optional[ObjectId] = None,
) -> ClassSubject:
    repo = class_subjects(db)
    name = validate_name(payload.name, "subject name")
    school_class = await _check_class(db, payload.class_id)
    await _check_teacher(db, payload.teacher_id)
    if payload.code:
        await _check_code(db, payload.code)
    code = payload.code or await generate_code(lambda candidate: repo.exists({"code": candidate}))
    subject = ClassSubject(
        **payload.model_dump(exclude={"name", "code", "school_id"}),
        name=name,
        code=code,
        school_id=payload.school_id or school_class.school_id,
        created_by=created_by,
    )
    return await repo.create(subject, unique_fields=("code",))


async def get_class_subject(db: AsyncIOMotorDatabase, subject_id: Union[str, ObjectId]) -> ClassSubject:
    return await class_subjects(db).get(subject_id, "Class subject")


async def get_class_subject_by_code(db: AsyncIOMotorDatabase, code: str) -> ClassSubject:
    subject = await class_subjects(db).find_one({"code": code})
    if subject is None:
        raise NotFoundError("Class subject not found")
    return subject


async def get_class_subject_with_details(
    db: AsyncIOMotorDatabase, subject_id: Union[str, ObjectId]
) -> ClassSubjectWithDetails:
    oid = parse_object_id(subject_id, "subject_id")
    rows = await class_subjects(db).aggregate(relation_pipeline(RelationSet.CLASS_SUBJECT_DETAILS, match={"_id": oid}))
    if not rows:
        raise NotFoundError("Class subject not found")
    return ClassSubjectWithDetails.model_validate(rows[0])


async def list_class_subjects(db: AsyncIOMotorDatabase, query: ListQuery) -> Paginated:
    return await class_subjects(db).list(query.filter, query.extra_match(), query.limit, query.skip)


async def list_class_subjects_by_class(db: AsyncIOMotorDatabase, class_id: Union[str, ObjectId]) -> List[ClassSubject]:
    oid = parse_object_id(class_id, "class_id")
    return await class_subjects(db).find_many({"class_id": oid}, sort=[("name", ASCENDING)])


async def count_class_subjects(db: AsyncIOMotorDatabase) -> int:
    return await class_subjects(db).count()


@emits(EntityKind.CLASS_SUBJECT, EventType.UPDATED)
async def update_class_subject(
    db: AsyncIOMotorDatabase, subject_id: Union[str, ObjectId], payload: ClassSubjectUpdate
) -> ClassSubject:
    current = await get_class_subject(db, subject_id)
    values, unset = split_partial(payload)
    unset = [field for field in unset if field not in REQUIRED_FIELDS]
    if "name" in values:
        values["name"] = validate_name(values["name"], "subject name")
    if "code" in values:
        await _check_code(db, values["code"], exclude=current.id)
    if "class_id" in values:
        await _check_class(db, values["class_id"])
    if "teacher_id" in values:
        await _check_teacher(db, values["teacher_id"])
    return await class_subjects(db).update_and_fetch(current.id, values, unset, unique_fields=("code",))


@emits(EntityKind.CLASS_SUBJECT, EventType.DELETED)
async def delete_class_subject(db: AsyncIOMotorDatabase, subject_id: Union[str, ObjectId]) -> ClassSubject:
    subject = await get_class_subject(db, subject_id)
    await class_subjects(db).delete(subject.id)
    return subject
