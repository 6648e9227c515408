from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from space_together.auth.dependencies import get_current_user
from space_together.auth.rbac import require_admin, require_school_access
from space_together.auth.schemas import UserClaims
from space_together.core.exceptions import ServiceError
from space_together.core.models import JoinSchoolRequest
from space_together.core.schemas import ListQuery, MessageResponse, Paginated, list_query
from space_together.db.mongo import MongoManager, get_main_db, get_mongo

from .schemas import (
    BulkJoinCreateResult,
    BulkRespondRequest,
    BulkRespondResult,
    ExpirationUpdate,
    JoinRequestCreate,
    JoinRequestWithRelations,
    PendingCheck,
    RespondRequest,
    SweepResult,
)
from . import service

router = APIRouter(prefix="/join-requests", tags=["join-requests"])


@router.post("", response_model=JoinSchoolRequest, status_code=status.HTTP_201_CREATED)
async def create_join_request(
    payload: JoinRequestCreate,
    current_user: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> JoinSchoolRequest:
    try:
        return await service.create_join_request(db, payload, current_user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/accept", response_model=JoinSchoolRequest)
async def accept_join_request(
    payload: RespondRequest,
    current_user: UserClaims = Depends(get_current_user),
    mongo: MongoManager = Depends(get_mongo),
) -> JoinSchoolRequest:
    try:
        return await service.accept_join_request(mongo, payload.request_id, current_user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/reject", response_model=JoinSchoolRequest)
async def reject_join_request(
    payload: RespondRequest,
    current_user: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> JoinSchoolRequest:
    try:
        return await service.reject_join_request(db, payload.request_id, current_user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/cancel", response_model=JoinSchoolRequest)
async def cancel_join_request(
    payload: RespondRequest,
    current_user: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> JoinSchoolRequest:
    try:
        return await service.cancel_join_request(db, payload.request_id, current_user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/bulk", response_model=BulkJoinCreateResult)
async def create_join_requests_bulk(
    payloads: List[JoinRequestCreate],
    request: Request,
    current_user: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> BulkJoinCreateResult:
    try:
        return await service.create_join_requests_bulk(
            db, payloads, current_user, is_cancelled=request.is_disconnected
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/bulk/respond", response_model=BulkRespondResult)
async def respond_bulk(
    payload: BulkRespondRequest,
    request: Request,
    current_user: UserClaims = Depends(get_current_user),
    mongo: MongoManager = Depends(get_mongo),
) -> BulkRespondResult:
    try:
        return await service.respond_bulk(
            mongo, payload.request_ids, payload.action, current_user, is_cancelled=request.is_disconnected
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/expire", response_model=SweepResult)
async def expire_old_requests(
    request: Request,
    _: UserClaims = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> SweepResult:
    try:
        return SweepResult(count=await service.expire_old_requests(db, is_cancelled=request.is_disconnected))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/cleanup/{days}", response_model=SweepResult)
async def cleanup_expired_requests(
    days: int,
    _: UserClaims = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> SweepResult:
    try:
        return SweepResult(count=await service.cleanup_expired_requests(db, days))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=Paginated[JoinSchoolRequest])
async def list_join_requests(
    query: ListQuery = Depends(list_query),
    _: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> Paginated[JoinSchoolRequest]:
    return await service.list_join_requests(db, query)


@router.get("/my/pending", response_model=List[JoinSchoolRequest])
async def list_my_pending(
    current_user: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> List[JoinSchoolRequest]:
    return await service.list_pending_for_email(db, current_user.email)


@router.get("/school/{school_id}/pending", response_model=List[JoinSchoolRequest])
async def list_school_pending(
    school_id: str,
    _: UserClaims = Depends(require_school_access("school_id")),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> List[JoinSchoolRequest]:
    try:
        return await service.list_pending_for_school(db, school_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/check-pending", response_model=PendingCheck)
async def check_pending(
    email: str = Query(...),
    school_id: str = Query(...),
    _: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> PendingCheck:
    try:
        return await service.check_pending(db, email, school_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/stats/count-by-status", response_model=Dict[str, int])
async def count_by_status(
    _: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> Dict[str, int]:
    return await service.count_by_status(db)


@router.get("/{request_id}", response_model=JoinSchoolRequest)
async def get_join_request(
    request_id: str,
    _: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> JoinSchoolRequest:
    try:
        return await service.get_join_request(db, request_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{request_id}/with-relations", response_model=JoinRequestWithRelations)
async def get_join_request_with_relations(
    request_id: str,
    _: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> JoinRequestWithRelations:
    try:
        return await service.get_join_request_with_relations(db, request_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{request_id}/expiration", response_model=JoinSchoolRequest)
async def update_expiration(
    request_id: str,
    payload: ExpirationUpdate,
    _: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> JoinSchoolRequest:
    try:
        return await service.update_expiration(db, request_id, payload.expires_at)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{request_id}", response_model=MessageResponse)
async def delete_join_request(
    request_id: str,
    _: UserClaims = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> MessageResponse:
    try:
        await service.delete_join_request(db, request_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(message="Join request deleted successfully")
