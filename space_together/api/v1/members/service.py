"""Teachers, students and staff of a school (tenant database)."""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Type, TypeVar, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from space_together.core.codes import generate_registration_number
from space_together.core.enums import EntityKind, EventType, StaffType, TeacherType
from space_together.core.events import publish
from space_together.core.exceptions import ConflictError, NotFoundError
from space_together.core.media import MediaClient, prepare_image_update
from space_together.core.models import ClassSubject, SchoolClass, SchoolMember, SchoolStaff, Student, Teacher
from space_together.core.schemas import ListQuery, Paginated, split_partial
from space_together.core.validators import validate_email, validate_name
from space_together.db.document import parse_object_id
from space_together.db.relations import RelationSet, relation_pipeline
from space_together.db.repository import Repository

from .schemas import MemberCreate, MemberUpdate, StaffCreate, StudentCreate, TeacherCreate

M = TypeVar("M", bound=SchoolMember)

MEMBER_KINDS: Dict[Type[SchoolMember], EntityKind] = {
    Teacher: EntityKind.TEACHER,
    Student: EntityKind.STUDENT,
    SchoolStaff: EntityKind.SCHOOL_STAFF,
}
LABELS = {Teacher: "Teacher", Student: "Student", SchoolStaff: "Staff member"}
STAFF_LIMITS = {StaffType.DIRECTOR.value: 1, StaffType.HEAD_OF_STUDIES.value: 5}
REQUIRED_FIELDS = ("name", "email", "is_active", "tags", "type", "status", "class_ids", "subject_ids")
REGISTRATION_ATTEMPTS = 20


def members(db: AsyncIOMotorDatabase, model: Type[M]) -> Repository[M]:
    return Repository(db, model)


async def _check_user_link(
    db: AsyncIOMotorDatabase, model: Type[M], user_id: Optional[ObjectId], school_id: Optional[ObjectId], exclude=None
) -> None:
    if user_id is None:
        return
    query: Dict[str, Any] = {"user_id": user_id, "school_id": school_id}
    if exclude:
        query["_id"] = {"$ne": exclude}
    if await members(db, model).exists(query):
        raise ConflictError(f"{LABELS[model]} already exists for this user in the school", field="user_id")


async def _check_staff_limit(
    db: AsyncIOMotorDatabase, school_id: Optional[ObjectId], staff_type: str, exclude=None
) -> None:
    limit = STAFF_LIMITS.get(staff_type)
    if limit is None:
        return
    query: Dict[str, Any] = {"school_id": school_id, "type": staff_type}
    if exclude:
        query["_id"] = {"$ne": exclude}
    if await members(db, SchoolStaff).count(query) >= limit:
        raise ConflictError(f"A school can have at most {limit} {staff_type} staff member(s)", field="type")


async def _check_classes(db: AsyncIOMotorDatabase, class_ids: Iterable[ObjectId]) -> None:
    wanted = set(class_ids)
    if wanted and await Repository(db, SchoolClass).count({"_id": {"$in": list(wanted)}}) != len(wanted):
        raise NotFoundError("Class not found")


async def _check_subjects(db: AsyncIOMotorDatabase, subject_ids: Iterable[ObjectId]) -> None:
    wanted = set(subject_ids)
    if wanted and await Repository(db, ClassSubject).count({"_id": {"$in": list(wanted)}}) != len(wanted):
        raise NotFoundError("Class subject not found")


async def _check_registration(db: AsyncIOMotorDatabase, number: str, exclude=None) -> None:
    query: Dict[str, Any] = {"registration_number": number}
    if exclude:
        query["_id"] = {"$ne": exclude}
    if await members(db, Student).exists(query):
        raise ConflictError("Registration number already exists", field="registration_number")


async def new_registration_number(db: AsyncIOMotorDatabase, school_username: str, year: Optional[int] = None) -> str:
    year = year or datetime.now(timezone.utc).year
    repo = members(db, Student)
    for _ in range(REGISTRATION_ATTEMPTS):
        candidate = generate_registration_number(school_username, year)
        if not await repo.exists({"registration_number": candidate}):
            return candidate
    raise ConflictError("Could not generate a free registration number", field="registration_number")


async def _insert(
    db: AsyncIOMotorDatabase,
    model: Type[M],
    payload: MemberCreate,
    extra: Dict[str, Any],
    media: Optional[MediaClient],
    unique_fields=(),
) -> M:
    member = model(
        **payload.model_dump(exclude={"name", "email", "image", *extra}),
        name=validate_name(payload.name),
        email=validate_email(payload.email),
        **extra,
    )
    await _check_user_link(db, model, member.user_id, member.school_id)
    if payload.image and media is not None:
        stored = await media.upload(payload.image)
        member.image, member.image_id = stored.url, stored.public_id
    created = await members(db, model).create(member, unique_fields=unique_fields)
    await publish(MEMBER_KINDS[model], EventType.CREATED, created)
    return created


async def create_teacher(
    db: AsyncIOMotorDatabase,
    payload: TeacherCreate,
    creator_id: Optional[ObjectId] = None,
    school_id: Optional[ObjectId] = None,
    media: Optional[MediaClient] = None,
) -> Teacher:
    await _check_classes(db, payload.class_ids)
    await _check_subjects(db, payload.subject_ids)
    extra = {"creator_id": creator_id, "school_id": payload.school_id or school_id}
    return await _insert(db, Teacher, payload, extra, media)


async def create_student(
    db: AsyncIOMotorDatabase,
    payload: StudentCreate,
    creator_id: Optional[ObjectId] = None,
    school_id: Optional[ObjectId] = None,
    school_username: Optional[str] = None,
    media: Optional[MediaClient] = None,
) -> Student:
    if payload.class_id is not None:
        await _check_classes(db, [payload.class_id])
    number = payload.registration_number
    if number:
        await _check_registration(db, number)
    elif school_username:
        number = await new_registration_number(db, school_username, payload.admission_year)
    extra = {
        "creator_id": creator_id,
        "school_id": payload.school_id or school_id,
        "registration_number": number,
    }
    return await _insert(db, Student, payload, extra, media, unique_fields=("registration_number",))


async def create_staff(
    db: AsyncIOMotorDatabase,
    payload: StaffCreate,
    creator_id: Optional[ObjectId] = None,
    school_id: Optional[ObjectId] = None,
    media: Optional[MediaClient] = None,
) -> SchoolStaff:
    school_id = payload.school_id or school_id
    await _check_staff_limit(db, school_id, payload.type)
    extra = {"creator_id": creator_id, "school_id": school_id}
    return await _insert(db, SchoolStaff, payload, extra, media)


async def get_member(db: AsyncIOMotorDatabase, model: Type[M], member_id: Union[str, ObjectId]) -> M:
    return await members(db, model).get(member_id, LABELS[model])


async def find_member_by_user(
    db: AsyncIOMotorDatabase, model: Type[M], user_id: ObjectId, school_id: Optional[ObjectId] = None
) -> Optional[M]:
    query: Dict[str, Any] = {"user_id": user_id}
    if school_id is not None:
        query["school_id"] = school_id
    return await members(db, model).find_one(query)


async def get_member_by_user(db: AsyncIOMotorDatabase, model: Type[M], user_id: Union[str, ObjectId]) -> M:
    member = await find_member_by_user(db, model, parse_object_id(user_id, "user_id"))
    if member is None:
        raise NotFoundError(f"{LABELS[model]} not found")
    return member


async def get_member_with_details(
    db: AsyncIOMotorDatabase, model: Type[M], relations: RelationSet, member_id: Union[str, ObjectId]
) -> Dict[str, Any]:
    oid = parse_object_id(member_id)
    rows = await members(db, model).aggregate(relation_pipeline(relations, match={"_id": oid}))
    if not rows:
        raise NotFoundError(f"{LABELS[model]} not found")
    return rows[0]


async def list_members(db: AsyncIOMotorDatabase, model: Type[M], query: ListQuery) -> Paginated:
    return await members(db, model).list(query.filter, query.extra_match(), query.limit, query.skip)


async def count_members(db: AsyncIOMotorDatabase, model: Type[M]) -> int:
    return await members(db, model).count()


async def update_member(
    db: AsyncIOMotorDatabase,
    model: Type[M],
    member_id: Union[str, ObjectId],
    payload: MemberUpdate,
    media: Optional[MediaClient] = None,
) -> M:
    current = await get_member(db, model, member_id)
    values, unset = split_partial(payload)
    unset = [field for field in unset if field not in REQUIRED_FIELDS]
    if "name" in values:
        values["name"] = validate_name(values["name"])
    if "email" in values:
        values["email"] = validate_email(values["email"])
    if "user_id" in values:
        await _check_user_link(db, model, values["user_id"], current.school_id, exclude=current.id)
    if "class_ids" in values:
        await _check_classes(db, values["class_ids"])
    if "subject_ids" in values:
        await _check_subjects(db, values["subject_ids"])
    if values.get("class_id") is not None:
        await _check_classes(db, [values["class_id"]])
    if "registration_number" in values:
        await _check_registration(db, values["registration_number"], exclude=current.id)
    if model is SchoolStaff and values.get("type") not in (None, current.type):
        await _check_staff_limit(db, current.school_id, values["type"], exclude=current.id)
    stale_image = None
    if media is not None:
        stale_image = await prepare_image_update(media, values, unset, current.image_id)
    updated = await members(db, model).update_and_fetch(current.id, values, unset)
    if stale_image:
        await media.delete(stale_image)
    await publish(MEMBER_KINDS[model], EventType.UPDATED, updated)
    return updated


async def delete_member(
    db: AsyncIOMotorDatabase, model: Type[M], member_id: Union[str, ObjectId], media: Optional[MediaClient] = None
) -> M:
    member = await get_member(db, model, member_id)
    await members(db, model).delete(member.id)
    if member.image_id and media is not None:
        await media.delete(member.image_id)
    await publish(MEMBER_KINDS[model], EventType.DELETED, member)
    return member


def parse_teacher_type(value: Optional[str]) -> str:
    for member in TeacherType:
        if member.value == value:
            return member.value
    return TeacherType.REGULAR.value


def parse_staff_type(value: Optional[str]) -> str:
    for member in StaffType:
        if member.value == value:
            return member.value
    return StaffType.HEAD_OF_STUDIES.value

