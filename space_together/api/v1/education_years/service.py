from datetime import datetime
from typing import Optional, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING

from space_together.core.enums import EntityKind, EventType
from space_together.core.events import emits
from space_together.core.exceptions import ConflictError, NotFoundError, ValidationError
from space_together.core.models import EducationYear, Sector, Term
from space_together.core.schemas import ListQuery, Paginated, split_partial
from space_together.core.validators import validate_name
from space_together.db.document import utc_now
from space_together.db.repository import Repository

from .schemas import EducationYearCreate, EducationYearUpdate


def education_years(db: AsyncIOMotorDatabase) -> Repository[EducationYear]:
    return Repository(db, EducationYear)


def check_calendar(year: EducationYear) -> None:
    """Terms must sit inside the year, must not overlap and must have distinct orders."""
    if year.start_date >= year.end_date:
        raise ValidationError("The education year must start before it ends")
    orders = set()
    previous: Optional[Term] = None
    for term in sorted(year.terms, key=lambda t: t.start_date):
        if term.start_date >= term.end_date:
            raise ValidationError(f"Term '{term.name}' must start before it ends")
        if term.start_date < year.start_date or term.end_date > year.end_date:
            raise ValidationError(f"Term '{term.name}' falls outside the education year")
        if previous is not None and term.start_date < previous.end_date:
            raise ValidationError(f"Terms '{previous.name}' and '{term.name}' overlap")
        if term.order in orders:
            raise ValidationError(f"Duplicate term order {term.order}")
        orders.add(term.order)
        previous = term


async def _check_label(db: AsyncIOMotorDatabase, curriculum_id: ObjectId, label: str, exclude=None) -> None:
    query = {"curriculum_id": curriculum_id, "label": label}
    if exclude:
        query["_id"] = {"$ne": exclude}
    if await education_years(db).exists(query):
        raise ConflictError("Education year label already exists for this curriculum", field="label")


async def _check_curriculum(db: AsyncIOMotorDatabase, curriculum_id: ObjectId) -> None:
    if not await Repository(db, Sector).exists({"_id": curriculum_id}):
        raise NotFoundError("Curriculum not found")


@emits(EntityKind.EDUCATION_YEAR, EventType.CREATED)
async def create_education_year(
    db: AsyncIOMotorDatabase, payload: EducationYearCreate, created_by: Optional[ObjectId] = None
) -> EducationYear:
    label = validate_name(payload.label, "label")
    year = EducationYear(**payload.model_dump(exclude={"label"}), label=label, created_by=created_by)
    check_calendar(year)
    await _check_curriculum(db, year.curriculum_id)
    await _check_label(db, year.curriculum_id, label)
    return await education_years(db).create(year)


async def get_education_year(db: AsyncIOMotorDatabase, year_id: Union[str, ObjectId]) -> EducationYear:
    return await education_years(db).get(year_id, "Education year")


async def list_education_years(db: AsyncIOMotorDatabase, query: ListQuery) -> Paginated:
    return await education_years(db).list(query.filter, query.extra_match(), query.limit, query.skip)


async def count_education_years(db: AsyncIOMotorDatabase) -> int:
    return await education_years(db).count()


async def find_current_education_year(
    db: AsyncIOMotorDatabase, curriculum_id: Optional[ObjectId] = None, at: Optional[datetime] = None
) -> Optional[EducationYear]:
    at = at or utc_now()
    query = {"start_date": {"$lte": at}, "end_date": {"$gte": at}}
    if curriculum_id is not None:
        query["curriculum_id"] = curriculum_id
    found = await education_years(db).find_many(query, sort=[("start_date", DESCENDING)], limit=1)
    return found[0] if found else None


async def get_current_education_year(
    db: AsyncIOMotorDatabase, curriculum_id: Optional[ObjectId] = None
) -> EducationYear:
    year = await find_current_education_year(db, curriculum_id)
    if year is None:
        raise NotFoundError("No education year is currently running")
    return year


def current_term(year: EducationYear, at: Optional[datetime] = None) -> Optional[Term]:
    at = at or utc_now()
    for term in year.terms:
        if term.start_date <= at <= term.end_date:
            return term
    return None


async def get_current_term(db: AsyncIOMotorDatabase, year_id: Union[str, ObjectId]) -> Term:
    term = current_term(await get_education_year(db, year_id))
    if term is None:
        raise NotFoundError("No term is currently running")
    return term


@emits(EntityKind.EDUCATION_YEAR, EventType.UPDATED)
async def update_education_year(
    db: AsyncIOMotorDatabase, year_id: Union[str, ObjectId], payload: EducationYearUpdate
) -> EducationYear:
    current = await get_education_year(db, year_id)
    values, _ = split_partial(payload)
    if "label" in values:
        values["label"] = validate_name(values["label"], "label")
    merged = EducationYear.model_validate({**current.model_dump(), **values})
    check_calendar(merged)
    if "curriculum_id" in values:
        await _check_curriculum(db, merged.curriculum_id)
    if "label" in values or "curriculum_id" in values:
        await _check_label(db, merged.curriculum_id, merged.label, exclude=current.id)
    return await education_years(db).update_and_fetch(current.id, values)


@emits(EntityKind.EDUCATION_YEAR, EventType.DELETED)
async def delete_education_year(db: AsyncIOMotorDatabase, year_id: Union[str, ObjectId]) -> EducationYear:
    year = await get_education_year(db, year_id)
    await education_years(db).delete(year.id)
    return year
