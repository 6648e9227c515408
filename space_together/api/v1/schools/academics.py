"""One-shot academic setup: materialize catalog trades, main classes and
template subjects as classes and class subjects inside a school's database.

The catalog lives in the main database and the result in the tenant database,
so the operation is not transactional. It is meant to run once against a
fresh tenant; the router refuses tenants that already hold classes.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Set, Tuple, Union

from bson import ObjectId
from pymongo import ASCENDING

from space_together.core.codes import generate_code_candidate, slugify
from space_together.core.enums import ClassLevelType, ClassType, EntityKind, EventType
from space_together.core.events import publish
from space_together.core.exceptions import CancelCheck, ConflictError, ValidationError, ensure_not_cancelled
from space_together.core.models import ClassSubject, MainClass, School, SchoolClass, TemplateSubject, Trade
from space_together.db.mongo import MongoManager
from space_together.db.repository import Repository

from .schemas import AcademicSetupRequest, AcademicSetupResult

logger = logging.getLogger(__name__)

DEFAULT_CLASS_CAPACITY = 30


def academic_year_label(now: Optional[datetime] = None) -> str:
    year = (now or datetime.now(timezone.utc)).year
    return f"{year}-{year + 1}"


async def tenant_has_classes(mongo: MongoManager, school_id: Union[str, ObjectId]) -> bool:
    school = await Repository(mongo.main_db(), School).get(school_id, "School")
    if not school.database_name:
        return False
    return await Repository(mongo.tenant_db(school.database_name), SchoolClass).count() > 0


async def _select_trades(main: Repository[Trade], payload: AcademicSetupRequest) -> List[Trade]:
    if payload.trade_ids:
        return await main.find_many({"_id": {"$in": payload.trade_ids}}, sort=[("name", ASCENDING)])
    if payload.sector_ids is not None:
        if not payload.sector_ids:
            return []
        return await main.find_many({"sector_id": {"$in": payload.sector_ids}}, sort=[("name", ASCENDING)])
    if payload.trade_ids is not None:
        return []
    raise ValidationError("Select at least one sector or trade")


def _unique_code(used: Set[str]) -> str:
    while True:
        candidate = generate_code_candidate()
        if candidate not in used:
            used.add(candidate)
            return candidate


async def setup_school_academics(
    mongo: MongoManager,
    school_id: Union[str, ObjectId],
    payload: AcademicSetupRequest,
    creator_id: Optional[ObjectId] = None,
    is_cancelled: CancelCheck = None,
) -> AcademicSetupResult:
    main_db = mongo.main_db()
    school = await Repository(main_db, School).get(school_id, "School")
    if not school.database_name:
        raise ValidationError("School database not configured")
    tenant_db = mongo.tenant_db(school.database_name)
    classes = Repository(tenant_db, SchoolClass)
    class_subjects = Repository(tenant_db, ClassSubject)
    year = academic_year_label()

    trades = await _select_trades(Repository(main_db, Trade), payload)
    main_classes = Repository(main_db, MainClass)

    drafts: List[Tuple[Trade, MainClass, SchoolClass]] = []
    used_codes: Set[str] = set()
    for trade in trades:
        await ensure_not_cancelled(is_cancelled)
        levels = await main_classes.find_many(
            {"trade_id": trade.id, "disable": {"$ne": True}}, sort=[("level", ASCENDING)]
        )
        for main_class in levels:
            name = f"{trade.type} {main_class.level} {trade.name} {year}"
            drafts.append((
                trade,
                main_class,
                SchoolClass(
                    name=name,
                    username=slugify(name),
                    code=_unique_code(used_codes),
                    school_id=school.id,
                    creator_id=creator_id,
                    type=ClassType.SCHOOL,
                    level_type=ClassLevelType.MAIN_CLASS,
                    main_class_id=main_class.id,
                    trade_id=trade.id,
                    is_active=True,
                    capacity=DEFAULT_CLASS_CAPACITY,
                    description=f"Class for {trade.name} - {year}",
                    tags=["academic", trade.name],
                ),
            ))

    if not drafts:
        return AcademicSetupResult(success=True, created_classes=0, created_subjects=0)

    usernames = [draft.username for _, _, draft in drafts]
    if len(set(usernames)) != len(usernames):
        raise ConflictError("Two selected main classes produce the same class username", field="username")
    taken = await classes.find_many({"username": {"$in": usernames}}, limit=1)
    if taken:
        raise ConflictError(f"Class username '{taken[0].username}' already exists", field="username")
    await ensure_not_cancelled(is_cancelled)

    created = await classes.create_many([draft for _, _, draft in drafts], unique_fields=("username", "code"))
    for school_class in created:
        await publish(EntityKind.CLASS, EventType.CREATED, school_class)

    templates = Repository(main_db, TemplateSubject)
    subject_codes: Set[str] = set()
    created_subjects = 0
    for (trade, main_class, _), school_class in zip(drafts, created):
        await ensure_not_cancelled(is_cancelled)
        rows: List[ClassSubject] = []
        for template in await templates.find_many({"prerequisites": main_class.id}, sort=[("code", ASCENDING)]):
            code = template.code
            if code in subject_codes:
                code = f"{template.code}-{school_class.code}"
            subject_codes.add(code)
            rows.append(ClassSubject(
                name=f"{template.name} {trade.type} {main_class.level} {year}",
                code=code,
                description=template.description,
                class_id=school_class.id,
                school_id=school.id,
                category=template.category,
                estimated_hours=template.estimated_hours,
                credits=template.credits,
                topics=template.topics,
                created_by=creator_id,
            ))
        for subject in await class_subjects.create_many(rows, unique_fields=("code",)):
            created_subjects += 1
            await publish(EntityKind.CLASS_SUBJECT, EventType.CREATED, subject)

    logger.info(
        "Academic setup for school %s: %d classes, %d subjects", school.id, len(created), created_subjects
    )
    return AcademicSetupResult(success=True, created_classes=len(created), created_subjects=created_subjects)
