"""School-wide timetables: the daily frame every class timetable sits in."""
from typing import List, Optional, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from space_together.api.v1.education_years.service import find_current_education_year
from space_together.core.enums import WORKING_DAYS, EntityKind, EventType, Weekday
from space_together.core.events import emits
from space_together.core.exceptions import ConflictError, NotFoundError
from space_together.core.models import DailySchoolSchedule, EducationYear, SchoolTimetable, TimeBlock
from space_together.core.schemas import ListQuery, Paginated, split_partial
from space_together.db.repository import Repository

from .schemas import SchoolTimetableCreate, SchoolTimetableUpdate


def school_timetables(db: AsyncIOMotorDatabase) -> Repository[SchoolTimetable]:
    return Repository(db, SchoolTimetable)


def default_weekly_schedule() -> List[DailySchoolSchedule]:
    """Monday to Friday, 08:30 to 17:00, with two breaks and lunch. Weekends are off."""
    schedule = []
    for day in Weekday:
        if day not in WORKING_DAYS:
            schedule.append(DailySchoolSchedule(day=day, is_school_day=False))
            continue
        schedule.append(DailySchoolSchedule(
            day=day,
            is_school_day=True,
            school_start_time="08:30",
            school_end_time="17:00",
            study_start_time="09:00",
            study_end_time="17:00",
            breaks=[
                TimeBlock(title="Morning Break", start_time="10:20", end_time="10:40"),
                TimeBlock(title="Afternoon Break", start_time="15:20", end_time="15:40"),
            ],
            lunch=TimeBlock(title="Lunch", start_time="13:00", end_time="14:00"),
        ))
    return schedule


async def _check_year(
    db: AsyncIOMotorDatabase, school_id: ObjectId, academic_year_id: ObjectId
) -> None:
    if await school_timetables(db).exists({"school_id": school_id, "academic_year_id": academic_year_id}):
        raise ConflictError("A school timetable already exists for this academic year", field="academic_year_id")


async def _year_or_current(main_db: AsyncIOMotorDatabase, year_id: Optional[ObjectId]) -> EducationYear:
    if year_id is not None:
        return await Repository(main_db, EducationYear).get(year_id, "Education year")
    year = await find_current_education_year(main_db)
    if year is None:
        raise NotFoundError("No education year is currently running")
    return year


@emits(EntityKind.SCHOOL_TIMETABLE, EventType.CREATED)
async def create_school_timetable(
    db: AsyncIOMotorDatabase,
    main_db: AsyncIOMotorDatabase,
    school_id: ObjectId,
    payload: SchoolTimetableCreate,
    created_by: Optional[ObjectId] = None,
) -> SchoolTimetable:
    await _year_or_current(main_db, payload.academic_year_id)
    await _check_year(db, school_id, payload.academic_year_id)
    timetable = SchoolTimetable(**payload.model_dump(), school_id=school_id, created_by=created_by)
    return await school_timetables(db).create(timetable)


@emits(EntityKind.SCHOOL_TIMETABLE, EventType.CREATED)
async def generate_default_timetable(
    db: AsyncIOMotorDatabase,
    main_db: AsyncIOMotorDatabase,
    school_id: ObjectId,
    academic_year_id: Optional[ObjectId] = None,
    created_by: Optional[ObjectId] = None,
) -> SchoolTimetable:
    year = await _year_or_current(main_db, academic_year_id)
    await _check_year(db, school_id, year.id)
    timetable = SchoolTimetable(
        school_id=school_id,
        academic_year_id=year.id,
        default_weekly_schedule=default_weekly_schedule(),
        created_by=created_by,
    )
    return await school_timetables(db).create(timetable)


async def get_school_timetable(db: AsyncIOMotorDatabase, timetable_id: Union[str, ObjectId]) -> SchoolTimetable:
    return await school_timetables(db).get(timetable_id, "School timetable")


async def get_current_school_timetable(
    db: AsyncIOMotorDatabase, main_db: AsyncIOMotorDatabase, school_id: ObjectId
) -> SchoolTimetable:
    year = await _year_or_current(main_db, None)
    timetable = await school_timetables(db).find_one({"school_id": school_id, "academic_year_id": year.id})
    if timetable is None:
        raise NotFoundError("No school timetable for the current academic year")
    return timetable


async def list_school_timetables(db: AsyncIOMotorDatabase, query: ListQuery) -> Paginated:
    return await school_timetables(db).list(query.filter, query.extra_match(), query.limit, query.skip)


@emits(EntityKind.SCHOOL_TIMETABLE, EventType.UPDATED)
async def update_school_timetable(
    db: AsyncIOMotorDatabase, timetable_id: Union[str, ObjectId], payload: SchoolTimetableUpdate
) -> SchoolTimetable:
    current = await get_school_timetable(db, timetable_id)
    values, _ = split_partial(payload)
    return await school_timetables(db).update_and_fetch(current.id, values)


@emits(EntityKind.SCHOOL_TIMETABLE, EventType.DELETED)
async def delete_school_timetable(db: AsyncIOMotorDatabase, timetable_id: Union[str, ObjectId]) -> SchoolTimetable:
    timetable = await get_school_timetable(db, timetable_id)
    await school_timetables(db).delete(timetable.id)
    return timetable
