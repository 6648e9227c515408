"""Subject grading schemes: grade boundaries, assessment weights and grade calculation."""
import logging
from typing import Dict, List, Mapping, Optional, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from space_together.core.enums import EntityKind, EventType, GradingType, SubjectRole
from space_together.core.events import emits
from space_together.core.exceptions import ConflictError, NotFoundError, ValidationError
from space_together.core.models import MainSubject, SubjectGradingScheme
from space_together.core.schemas import ListQuery, Paginated, split_partial
from space_together.db.document import parse_object_id
from space_together.db.repository import Repository

from .schemas import GradeResult, GradingSchemeCreate, GradingSchemeUpdate

logger = logging.getLogger(__name__)

WEIGHT_TOTAL = 100.0
WEIGHT_TOLERANCE = 0.01

DEFAULT_SCHEMES = {
    GradingType.LETTER_GRADE.value: {
        "grade_boundaries": {"A": 90.0, "B": 80.0, "C": 70.0, "D": 60.0, "F": 0.0},
        "assessment_weights": {"exams": 40.0, "assignments": 30.0, "participation": 20.0, "projects": 10.0},
        "minimum_passing_grade": "D",
    },
    GradingType.PERCENTAGE.value: {
        "grade_boundaries": {"Excellent": 90.0, "Good": 80.0, "Average": 70.0, "Pass": 60.0, "Fail": 0.0},
        "assessment_weights": {"exams": 50.0, "assignments": 30.0, "participation": 20.0},
        "minimum_passing_grade": "Pass",
    },
}


def grading_schemes(db: AsyncIOMotorDatabase) -> Repository[SubjectGradingScheme]:
    return Repository(db, SubjectGradingScheme)


def _check_boundaries(boundaries: Mapping[str, float], scheme_type: str) -> None:
    if not boundaries:
        raise ValidationError("Grade boundaries cannot be empty")
    if scheme_type == GradingType.PASS_FAIL.value:
        if set(boundaries) != {"Pass", "Fail"}:
            raise ValidationError("A PassFail scheme must have exactly 'Pass' and 'Fail' boundaries")
        return
    for grade, boundary in boundaries.items():
        if boundary < 0:
            raise ValidationError(f"Grade boundary for {grade} cannot be negative")
        if scheme_type != GradingType.POINTS.value and boundary > 100:
            raise ValidationError(f"Grade boundary for {grade} must be between 0 and 100")


def _check_weights(weights: Mapping[str, float]) -> None:
    if not weights:
        raise ValidationError("Assessment weights cannot be empty")
    for category, weight in weights.items():
        if weight < 0 or weight > 100:
            raise ValidationError(f"Weight for {category} must be between 0 and 100")
    if abs(sum(weights.values()) - WEIGHT_TOTAL) > WEIGHT_TOLERANCE:
        raise ValidationError("Assessment weights must sum to 100")


def check_scheme(scheme: SubjectGradingScheme) -> None:
    """Boundaries fit the scheme type, weights sum to 100 and the passing grade is a known grade."""
    _check_boundaries(scheme.grade_boundaries, scheme.scheme_type)
    _check_weights(scheme.assessment_weights)
    if scheme.minimum_passing_grade not in scheme.grade_boundaries:
        raise ValidationError("Minimum passing grade must exist in grade boundaries")


def default_scheme(
    main_subject_id: ObjectId,
    scheme_type: GradingType = GradingType.LETTER_GRADE,
    created_by: Optional[ObjectId] = None,
) -> SubjectGradingScheme:
    defaults = DEFAULT_SCHEMES.get(GradingType(scheme_type).value)
    if defaults is None:
        raise ValidationError(f"No default grading scheme for {GradingType(scheme_type).value}")
    return SubjectGradingScheme(
        main_subject_id=main_subject_id,
        scheme_type=scheme_type,
        role=SubjectRole.MAIN_SUBJECT,
        created_by=created_by,
        **defaults,
    )


async def _check_main_subject(db: AsyncIOMotorDatabase, subject_id: ObjectId) -> None:
    if not await Repository(db, MainSubject).exists({"_id": subject_id}):
        raise NotFoundError("Main subject not found")


async def _check_unique(db: AsyncIOMotorDatabase, subject_id: ObjectId, role: str, exclude=None) -> None:
    query = {"main_subject_id": subject_id, "role": role}
    if exclude:
        query["_id"] = {"$ne": exclude}
    if await grading_schemes(db).exists(query):
        raise ConflictError("Grading scheme already exists for this subject and role", field="role")


async def _store(db: AsyncIOMotorDatabase, scheme: SubjectGradingScheme) -> SubjectGradingScheme:
    check_scheme(scheme)
    await _check_main_subject(db, scheme.main_subject_id)
    await _check_unique(db, scheme.main_subject_id, scheme.role)
    return await grading_schemes(db).create(scheme)


@emits(EntityKind.GRADING_SCHEME, EventType.CREATED)
async def create_grading_scheme(
    db: AsyncIOMotorDatabase, payload: GradingSchemeCreate, created_by: Optional[ObjectId] = None
) -> SubjectGradingScheme:
    scheme = SubjectGradingScheme(**payload.model_dump(), created_by=created_by)
    return await _store(db, scheme)


async def get_grading_scheme(db: AsyncIOMotorDatabase, scheme_id: Union[str, ObjectId]) -> SubjectGradingScheme:
    return await grading_schemes(db).get(scheme_id, "Grading scheme")


async def list_grading_schemes(db: AsyncIOMotorDatabase, query: ListQuery) -> Paginated:
    return await grading_schemes(db).list(query.filter, query.extra_match(), query.limit, query.skip)


async def count_grading_schemes(db: AsyncIOMotorDatabase) -> int:
    return await grading_schemes(db).count()


async def find_subject_scheme(
    db: AsyncIOMotorDatabase, subject_id: Union[str, ObjectId], role: Optional[SubjectRole] = None
) -> Optional[SubjectGradingScheme]:
    query: Dict[str, object] = {"main_subject_id": parse_object_id(subject_id, "subject_id")}
    if role is not None:
        query["role"] = SubjectRole(role).value
    found = await grading_schemes(db).find_many(query, sort=[("role", ASCENDING)], limit=1)
    return found[0] if found else None


async def get_subject_scheme(
    db: AsyncIOMotorDatabase, subject_id: Union[str, ObjectId], role: Optional[SubjectRole] = None
) -> SubjectGradingScheme:
    scheme = await find_subject_scheme(db, subject_id, role)
    if scheme is None:
        raise NotFoundError("Grading scheme not found")
    return scheme


async def list_grading_schemes_by_type(
    db: AsyncIOMotorDatabase, scheme_type: GradingType
) -> List[SubjectGradingScheme]:
    return await grading_schemes(db).find_many(
        {"scheme_type": GradingType(scheme_type).value}, sort=[("created_at", ASCENDING)]
    )


async def get_or_create_default_scheme(
    db: AsyncIOMotorDatabase,
    subject_id: Union[str, ObjectId],
    scheme_type: GradingType = GradingType.LETTER_GRADE,
    created_by: Optional[ObjectId] = None,
) -> SubjectGradingScheme:
    """The subject's main-subject scheme, created from the defaults when it has none."""
    oid = parse_object_id(subject_id, "subject_id")
    existing = await find_subject_scheme(db, oid, SubjectRole.MAIN_SUBJECT)
    if existing is not None:
        return existing
    scheme = await _store(db, default_scheme(oid, scheme_type, created_by))
    logger.info("Created default %s grading scheme for subject %s", scheme.scheme_type, oid)
    return scheme


@emits(EntityKind.GRADING_SCHEME, EventType.UPDATED)
async def update_grading_scheme(
    db: AsyncIOMotorDatabase, scheme_id: Union[str, ObjectId], payload: GradingSchemeUpdate
) -> SubjectGradingScheme:
    current = await get_grading_scheme(db, scheme_id)
    values, _ = split_partial(payload)
    merged = current.model_copy(update=values)
    check_scheme(SubjectGradingScheme.model_validate(merged.model_dump()))
    if "role" in values:
        await _check_unique(db, current.main_subject_id, values["role"], exclude=current.id)
    return await grading_schemes(db).update_and_fetch(current.id, values)


@emits(EntityKind.GRADING_SCHEME, EventType.DELETED)
async def delete_grading_scheme(db: AsyncIOMotorDatabase, scheme_id: Union[str, ObjectId]) -> SubjectGradingScheme:
    scheme = await get_grading_scheme(db, scheme_id)
    await grading_schemes(db).delete(scheme.id)
    return scheme


def determine_grade(score: float, boundaries: Mapping[str, float]) -> str:
    """The grade with the highest boundary the score reaches, else the lowest grade."""
    reached = [(boundary, grade) for grade, boundary in boundaries.items() if score >= boundary]
    if reached:
        return max(reached)[1]
    return min((boundary, grade) for grade, boundary in boundaries.items())[1]


def calculate_grade(scheme: SubjectGradingScheme, scores: Mapping[str, float]) -> GradeResult:
    total = 0.0
    for category, score in scores.items():
        weight = scheme.assessment_weights.get(category)
        if weight is None:
            raise ValidationError(f"Unknown assessment category: {category}")
        total += score * weight / WEIGHT_TOTAL
    return GradeResult(grade=determine_grade(total, scheme.grade_boundaries), score=round(total, 2))


def is_passing_grade(scheme: SubjectGradingScheme, grade: str) -> bool:
    if scheme.scheme_type == GradingType.PASS_FAIL.value:
        return grade.lower() == "pass"
    if grade not in scheme.grade_boundaries:
        raise ValidationError(f"Unknown grade: {grade}")
    return scheme.grade_boundaries[grade] >= scheme.grade_boundaries[scheme.minimum_passing_grade]
