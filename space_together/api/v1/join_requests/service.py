"""Join-school invitations.

A request starts Pending and moves once to Accepted, Rejected, Cancelled or
Expired. Every transition is a conditional update on ``status=Pending`` so two
concurrent responses cannot both succeed.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING

from space_together.api.v1.members import service as members_service
from space_together.api.v1.members.schemas import StaffCreate, StudentCreate, TeacherCreate
from space_together.api.v1.users import service as users_service
from space_together.auth.schemas import UserClaims
from space_together.core.config import settings
from space_together.core.enums import EntityKind, EventType, JoinRole, JoinStatus, StudentStatus, UserRole
from space_together.core.events import emits, publish
from space_together.core.exceptions import (
    CancelCheck,
    ConflictError,
    DependencyFailedError,
    ForbiddenError,
    NotFoundError,
    ServiceError,
    ValidationError,
    ensure_not_cancelled,
)
from space_together.core.models import JoinSchoolRequest, School, SchoolMember, SchoolStaff, Student, Teacher, User
from space_together.core.schemas import BulkItemError, ListQuery, Paginated
from space_together.core.validators import validate_email
from space_together.db.document import parse_object_id, utc_now
from space_together.db.mongo import MongoManager
from space_together.db.relations import RelationSet, relation_pipeline
from space_together.db.repository import Repository

from .schemas import (
    BulkJoinCreateResult,
    BulkRespondResult,
    JoinRequestCreate,
    JoinRequestWithRelations,
    PendingCheck,
    RespondAction,
)

logger = logging.getLogger(__name__)

PENDING = {"status": JoinStatus.PENDING.value}


def join_requests(db: AsyncIOMotorDatabase) -> Repository[JoinSchoolRequest]:
    return Repository(db, JoinSchoolRequest)


def _not_pending(request: JoinSchoolRequest) -> ConflictError:
    return ConflictError(f"Join request is not pending (status: {request.status})", field="status")


async def _transition(
    db: AsyncIOMotorDatabase, request: JoinSchoolRequest, status: JoinStatus, extra: Optional[Dict[str, Any]] = None
) -> JoinSchoolRequest:
    values = {"status": status.value, "responded_at": utc_now(), **(extra or {})}
    updated = await join_requests(db).update_if(request.id, PENDING, values)
    if updated is None:
        current = await join_requests(db).find_by_id(request.id)
        if current is None:
            raise NotFoundError("Join request not found")
        raise _not_pending(current)
    logger.info("Join request %s for %s: %s", updated.id, updated.email, updated.status)
    return updated


def _is_school_staff(actor: UserClaims, school_id: ObjectId) -> bool:
    return actor.role == UserRole.SCHOOLSTAFF.value and any(str(s) == str(school_id) for s in actor.schools)


def check_can_invite(actor: Optional[UserClaims], school_id: ObjectId) -> None:
    if actor is None or actor.role == UserRole.ADMIN.value or _is_school_staff(actor, school_id):
        return
    raise ForbiddenError("Only admins or staff of the school can send join requests")


def check_can_respond(actor: Optional[UserClaims], request: JoinSchoolRequest) -> None:
    """The invitee answers; admins and staff of the school may answer for them."""
    if actor is None or actor.role == UserRole.ADMIN.value:
        return
    if actor.email.lower() == request.email or _is_school_staff(actor, request.school_id):
        return
    raise ForbiddenError("You cannot respond to this join request")


def check_can_cancel(actor: Optional[UserClaims], request: JoinSchoolRequest) -> None:
    if actor is None or actor.role == UserRole.ADMIN.value:
        return
    if str(actor.user_id) == str(request.sent_by) or _is_school_staff(actor, request.school_id):
        return
    raise ForbiddenError("Only the sender or staff of the school can cancel this join request")


async def find_pending(db: AsyncIOMotorDatabase, email: str, school_id: ObjectId) -> Optional[JoinSchoolRequest]:
    return await join_requests(db).find_one({"email": email, "school_id": school_id, **PENDING})


@emits(EntityKind.JOIN_REQUEST, EventType.CREATED)
async def create_join_request(
    db: AsyncIOMotorDatabase, payload: JoinRequestCreate, actor: Optional[UserClaims] = None
) -> JoinSchoolRequest:
    email = validate_email(payload.email)
    school = await Repository(db, School).get(payload.school_id, "School")
    check_can_invite(actor, school.id)
    if await find_pending(db, email, school.id):
        raise ConflictError("A pending request already exists for this email and school", field="email")
    user = await users_service.get_user_by_email(db, email)
    if user is not None and school.id in user.schools:
        raise ConflictError("User already belongs to this school", field="email")

    now = utc_now()
    expires_at = payload.expires_at or now + timedelta(days=settings.join_request_expire_days)
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=now.tzinfo)
    if expires_at <= now:
        raise ValidationError("expires_at must be in the future")

    request = JoinSchoolRequest(
        school_id=school.id,
        invited_user_id=user.id if user else None,
        email=email,
        role=payload.role,
        type=payload.type or JoinRole(payload.role).default_type,
        class_id=payload.class_id,
        message=payload.message,
        sent_by=actor.user_id if actor else None,
        sent_at=now,
        expires_at=expires_at,
    )
    return await join_requests(db).create(request)


async def _existing_member(tenant: AsyncIOMotorDatabase, request: JoinSchoolRequest, user: User) -> Optional[SchoolMember]:
    model = {JoinRole.STUDENT.value: Student, JoinRole.TEACHER.value: Teacher, JoinRole.STAFF.value: SchoolStaff}
    return await members_service.find_member_by_user(tenant, model[request.role], user.id, request.school_id)


async def _materialize_role(
    tenant: AsyncIOMotorDatabase, request: JoinSchoolRequest, user: User, school: School
) -> SchoolMember:
    """Create the Student, Teacher or Staff row the request grants, reusing one that already exists."""
    existing = await _existing_member(tenant, request, user)
    if existing is not None:
        return existing
    common = {"user_id": user.id, "name": user.name, "email": user.email, "phone": user.phone, "gender": user.gender}
    if request.role == JoinRole.STUDENT.value:
        payload = StudentCreate(
            **common,
            class_id=request.class_id,
            admission_year=utc_now().year,
            status=StudentStatus.ACTIVE,
        )
        return await members_service.create_student(
            tenant, payload, request.sent_by, school.id, school_username=school.username
        )
    if request.role == JoinRole.TEACHER.value:
        payload = TeacherCreate(
            **common,
            type=members_service.parse_teacher_type(request.type),
            class_ids=[request.class_id] if request.class_id else [],
        )
        return await members_service.create_teacher(tenant, payload, request.sent_by, school.id)
    payload = StaffCreate(**common, type=members_service.parse_staff_type(request.type))
    return await members_service.create_staff(tenant, payload, request.sent_by, school.id)


async def accept_join_request(
    mongo: MongoManager, request_id: Union[str, ObjectId], actor: Optional[UserClaims] = None
) -> JoinSchoolRequest:
    db = mongo.main_db()
    request = await get_join_request(db, request_id)
    check_can_respond(actor, request)
    if request.status != JoinStatus.PENDING.value:
        raise _not_pending(request)
    if request.expires_at is not None and request.expires_at < utc_now():
        raise ConflictError("Join request has expired", field="expires_at")
    user = await users_service.get_user_by_email(db, request.email)
    if user is None:
        raise NotFoundError(f"No user account exists for {request.email}")
    school = await Repository(db, School).get(request.school_id, "School")
    if not school.database_name:
        raise DependencyFailedError("School database not configured")

    try:
        await _materialize_role(mongo.tenant_db(school.database_name), request, user, school)
    except ServiceError as e:
        logger.warning("Join request %s: role creation failed: %s", request.id, e.message)
        raise DependencyFailedError(f"Could not create the {request.role} record: {e.message}") from e

    await users_service.add_school_to_user(db, user.id, school.id)
    accepted = await _transition(db, request, JoinStatus.ACCEPTED, {"invited_user_id": user.id})
    await publish(EntityKind.JOIN_REQUEST, EventType.UPDATED, accepted)
    return accepted


async def _check_pending(db: AsyncIOMotorDatabase, request_id: Union[str, ObjectId]) -> JoinSchoolRequest:
    request = await get_join_request(db, request_id)
    if request.status != JoinStatus.PENDING.value:
        raise _not_pending(request)
    return request


@emits(EntityKind.JOIN_REQUEST, EventType.UPDATED)
async def reject_join_request(
    db: AsyncIOMotorDatabase, request_id: Union[str, ObjectId], actor: Optional[UserClaims] = None
) -> JoinSchoolRequest:
    request = await _check_pending(db, request_id)
    check_can_respond(actor, request)
    return await _transition(db, request, JoinStatus.REJECTED)


@emits(EntityKind.JOIN_REQUEST, EventType.UPDATED)
async def cancel_join_request(
    db: AsyncIOMotorDatabase, request_id: Union[str, ObjectId], actor: Optional[UserClaims] = None
) -> JoinSchoolRequest:
    request = await _check_pending(db, request_id)
    check_can_cancel(actor, request)
    return await _transition(db, request, JoinStatus.CANCELLED)


@emits(EntityKind.JOIN_REQUEST, EventType.UPDATED)
async def update_expiration(
    db: AsyncIOMotorDatabase, request_id: Union[str, ObjectId], expires_at: datetime
) -> JoinSchoolRequest:
    request = await _check_pending(db, request_id)
    now = utc_now()
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=now.tzinfo)
    if expires_at <= now:
        raise ValidationError("expires_at must be in the future")
    updated = await join_requests(db).update_if(request.id, PENDING, {"expires_at": expires_at})
    if updated is None:
        raise _not_pending(await get_join_request(db, request.id))
    return updated


async def create_join_requests_bulk(
    db: AsyncIOMotorDatabase,
    payloads: Sequence[JoinRequestCreate],
    actor: Optional[UserClaims] = None,
    is_cancelled: CancelCheck = None,
) -> BulkJoinCreateResult:
    result = BulkJoinCreateResult()
    for index, payload in enumerate(payloads):
        await ensure_not_cancelled(is_cancelled)
        try:
            result.created.append(await create_join_request(db, payload, actor))
        except ServiceError as e:
            result.skipped.append(BulkItemError(index=index, message=e.message))
    return result


async def respond_bulk(
    mongo: MongoManager,
    request_ids: Sequence[ObjectId],
    action: RespondAction,
    actor: Optional[UserClaims] = None,
    is_cancelled: CancelCheck = None,
) -> BulkRespondResult:
    db = mongo.main_db()
    result = BulkRespondResult()
    for index, request_id in enumerate(request_ids):
        await ensure_not_cancelled(is_cancelled)
        try:
            if action == RespondAction.ACCEPT:
                done = await accept_join_request(mongo, request_id, actor)
            elif action == RespondAction.REJECT:
                done = await reject_join_request(db, request_id, actor)
            else:
                done = await cancel_join_request(db, request_id, actor)
            result.succeeded.append(done)
        except ServiceError as e:
            result.failed.append(BulkItemError(index=index, message=e.message))
    return result


async def expire_old_requests(db: AsyncIOMotorDatabase, is_cancelled: CancelCheck = None) -> int:
    await ensure_not_cancelled(is_cancelled)
    count = await join_requests(db).update_many(
        {**PENDING, "expires_at": {"$lt": utc_now()}}, {"status": JoinStatus.EXPIRED.value}
    )
    logger.info("Expired %d pending join request(s)", count)
    return count


async def cleanup_expired_requests(db: AsyncIOMotorDatabase, older_than_days: int) -> int:
    if older_than_days < 0:
        raise ValidationError("older_than_days must not be negative")
    cutoff = utc_now() - timedelta(days=older_than_days)
    count = await join_requests(db).delete_many(
        {"status": JoinStatus.EXPIRED.value, "updated_at": {"$lte": cutoff}}
    )
    logger.info("Removed %d expired join request(s) older than %d day(s)", count, older_than_days)
    return count


async def get_join_request(db: AsyncIOMotorDatabase, request_id: Union[str, ObjectId]) -> JoinSchoolRequest:
    return await join_requests(db).get(request_id, "Join request")


async def get_join_request_with_relations(
    db: AsyncIOMotorDatabase, request_id: Union[str, ObjectId]
) -> JoinRequestWithRelations:
    oid = parse_object_id(request_id, "request_id")
    rows = await join_requests(db).aggregate(relation_pipeline(RelationSet.JOIN_REQUEST_DETAILS, match={"_id": oid}))
    if not rows:
        raise NotFoundError("Join request not found")
    return JoinRequestWithRelations.model_validate(rows[0])


async def list_join_requests(db: AsyncIOMotorDatabase, query: ListQuery) -> Paginated:
    return await join_requests(db).list(query.filter, query.extra_match(), query.limit, query.skip)


async def list_pending_for_email(db: AsyncIOMotorDatabase, email: str) -> List[JoinSchoolRequest]:
    return await join_requests(db).find_many(
        {"email": email.strip().lower(), **PENDING}, sort=[("created_at", DESCENDING)]
    )


async def list_pending_for_school(
    db: AsyncIOMotorDatabase, school_id: Union[str, ObjectId]
) -> List[JoinSchoolRequest]:
    oid = parse_object_id(school_id, "school_id")
    return await join_requests(db).find_many({"school_id": oid, **PENDING}, sort=[("created_at", DESCENDING)])


async def check_pending(db: AsyncIOMotorDatabase, email: str, school_id: Union[str, ObjectId]) -> PendingCheck:
    request = await find_pending(db, validate_email(email), parse_object_id(school_id, "school_id"))
    return PendingCheck(has_pending=request is not None, request=request)


async def count_by_status(db: AsyncIOMotorDatabase) -> Dict[str, int]:
    counts = {status.value: 0 for status in JoinStatus}
    rows = await join_requests(db).aggregate([{"$group": {"_id": "$status", "count": {"$sum": 1}}}])
    for row in rows:
        counts[row["_id"]] = row["count"]
    return counts


@emits(EntityKind.JOIN_REQUEST, EventType.DELETED)
async def delete_join_request(db: AsyncIOMotorDatabase, request_id: Union[str, ObjectId]) -> JoinSchoolRequest:
    request = await get_join_request(db, request_id)
    await join_requests(db).delete(request.id)
    return request
