import logging
import random
from typing import List, Optional, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from space_together.api.v1.education_years.service import current_term, find_current_education_year
from space_together.core.enums import EntityKind, EventType
from space_together.core.events import emits
from space_together.core.exceptions import ConflictError, NotFoundError, ValidationError
from space_together.core.models import ClassSubject, ClassTimetable, EducationYear, SchoolClass, Trade
from space_together.core.schemas import ListQuery, Paginated, split_partial
from space_together.db.document import parse_object_id
from space_together.db.relations import RelationSet, relation_pipeline
from space_together.db.repository import Repository

from .generator import default_day_template, generate_timetable
from .schemas import (
    ClassTimetableCreate,
    ClassTimetableUpdate,
    ClassTimetableWithDetails,
    GenerateTimetableRequest,
    StructureTemplate,
)

logger = logging.getLogger(__name__)


def class_timetables(db: AsyncIOMotorDatabase) -> Repository[ClassTimetable]:
    return Repository(db, ClassTimetable)


async def _check_slot_free(
    db: AsyncIOMotorDatabase, class_id: ObjectId, education_year_id: ObjectId, term_order: int, exclude=None
) -> None:
    query = {"class_id": class_id, "education_year_id": education_year_id, "term_order": term_order}
    if exclude:
        query["_id"] = {"$ne": exclude}
    if await class_timetables(db).exists(query):
        raise ConflictError("A timetable already exists for this class and term", field="term_order")


async def _get_class(db: AsyncIOMotorDatabase, class_id: ObjectId) -> SchoolClass:
    school_class = await Repository(db, SchoolClass).find_by_id(class_id)
    if school_class is None:
        raise NotFoundError("Class not found")
    return school_class


async def _check_education_year(main_db: AsyncIOMotorDatabase, year_id: ObjectId) -> None:
    if not await Repository(main_db, EducationYear).exists({"_id": year_id}):
        raise NotFoundError("Education year not found")


def structure_template() -> StructureTemplate:
    return StructureTemplate(day_template=default_day_template())


@emits(EntityKind.CLASS_TIMETABLE, EventType.CREATED)
async def create_class_timetable(
    db: AsyncIOMotorDatabase,
    main_db: AsyncIOMotorDatabase,
    payload: ClassTimetableCreate,
    created_by: Optional[ObjectId] = None,
) -> ClassTimetable:
    await _get_class(db, payload.class_id)
    await _check_education_year(main_db, payload.education_year_id)
    await _check_slot_free(db, payload.class_id, payload.education_year_id, payload.term_order)
    timetable = ClassTimetable(**payload.model_dump(), created_by=created_by)
    return await class_timetables(db).create(timetable)


async def get_class_timetable(db: AsyncIOMotorDatabase, timetable_id: Union[str, ObjectId]) -> ClassTimetable:
    return await class_timetables(db).get(timetable_id, "Class timetable")


async def get_class_timetable_with_details(
    db: AsyncIOMotorDatabase, timetable_id: Union[str, ObjectId]
) -> ClassTimetableWithDetails:
    oid = parse_object_id(timetable_id, "timetable_id")
    rows = await class_timetables(db).aggregate(relation_pipeline(RelationSet.TIMETABLE_DETAILS, match={"_id": oid}))
    if not rows:
        raise NotFoundError("Class timetable not found")
    return ClassTimetableWithDetails.model_validate(rows[0])


async def list_class_timetables(db: AsyncIOMotorDatabase, query: ListQuery) -> Paginated:
    return await class_timetables(db).list(query.filter, query.extra_match(), query.limit, query.skip)


async def list_class_timetables_by_class(
    db: AsyncIOMotorDatabase, class_id: Union[str, ObjectId]
) -> List[ClassTimetable]:
    oid = parse_object_id(class_id, "class_id")
    return await class_timetables(db).find_many({"class_id": oid}, sort=[("term_order", ASCENDING)])


async def count_class_timetables(db: AsyncIOMotorDatabase) -> int:
    return await class_timetables(db).count()


@emits(EntityKind.CLASS_TIMETABLE, EventType.UPDATED)
async def update_class_timetable(
    db: AsyncIOMotorDatabase,
    main_db: AsyncIOMotorDatabase,
    timetable_id: Union[str, ObjectId],
    payload: ClassTimetableUpdate,
) -> ClassTimetable:
    current = await get_class_timetable(db, timetable_id)
    values, unset = split_partial(payload)
    unset = [field for field in unset if field == "disabled"]
    if "education_year_id" in values:
        await _check_education_year(main_db, values["education_year_id"])
    if "education_year_id" in values or "term_order" in values:
        await _check_slot_free(
            db,
            current.class_id,
            values.get("education_year_id", current.education_year_id),
            values.get("term_order", current.term_order),
            exclude=current.id,
        )
    return await class_timetables(db).update_and_fetch(current.id, values, unset)


@emits(EntityKind.CLASS_TIMETABLE, EventType.DELETED)
async def delete_class_timetable(db: AsyncIOMotorDatabase, timetable_id: Union[str, ObjectId]) -> ClassTimetable:
    timetable = await get_class_timetable(db, timetable_id)
    await class_timetables(db).delete(timetable.id)
    return timetable


async def _resolve_education_year(
    main_db: AsyncIOMotorDatabase, school_class: SchoolClass, year_id: Optional[ObjectId]
) -> EducationYear:
    if year_id is not None:
        return await Repository(main_db, EducationYear).get(year_id, "Education year")
    curriculum_id = None
    if school_class.trade_id is not None:
        trade = await Repository(main_db, Trade).find_by_id(school_class.trade_id)
        curriculum_id = trade.sector_id if trade else None
    year = None
    if curriculum_id is not None:
        year = await find_current_education_year(main_db, curriculum_id)
    year = year or await find_current_education_year(main_db)
    if year is None:
        raise NotFoundError("No education year is currently running")
    return year


@emits(EntityKind.CLASS_TIMETABLE, EventType.CREATED)
async def generate_class_timetable(
    db: AsyncIOMotorDatabase,
    main_db: AsyncIOMotorDatabase,
    payload: GenerateTimetableRequest,
    created_by: Optional[ObjectId] = None,
) -> ClassTimetable:
    """Generate and store a balanced timetable from the class's subjects."""
    school_class = await _get_class(db, payload.class_id)
    subjects = await Repository(db, ClassSubject).find_many(
        {"class_id": school_class.id, "is_active": {"$ne": False}}, sort=[("code", ASCENDING)]
    )
    if not subjects:
        raise ValidationError("The class has no subjects to schedule")

    year = await _resolve_education_year(main_db, school_class, payload.education_year_id)
    term_order = payload.term_order
    if term_order is None:
        term = current_term(year)
        term_order = term.order if term and term.order >= 1 else 1
    await _check_slot_free(db, school_class.id, year.id, term_order)

    rng = random.Random(payload.seed) if payload.seed is not None else random.Random()
    timetable = generate_timetable(
        school_class.id,
        year.id,
        term_order,
        subjects,
        payload.start_time,
        payload.days,
        payload.day_template or default_day_template(),
        rng,
    )
    timetable.created_by = created_by
    created = await class_timetables(db).create(timetable)
    logger.info("Generated timetable %s for class %s (term %d)", created.id, school_class.id, term_order)
    return created
