from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from space_together.auth.dependencies import RequestScope, school_scope
from space_together.auth.rbac import require_admin_or_staff
from space_together.core.exceptions import ServiceError
from space_together.core.models import SchoolTimetable
from space_together.core.schemas import ListQuery, MessageResponse, Paginated, list_query
from space_together.db.mongo import get_main_db

from .schemas import GenerateSchoolTimetableRequest, SchoolTimetableCreate, SchoolTimetableUpdate
from . import service

router = APIRouter(prefix="/school/timetables", tags=["school-timetables"])
can_write = [Depends(require_admin_or_staff)]


@router.get("", response_model=Paginated[SchoolTimetable])
async def list_school_timetables(
    query: ListQuery = Depends(list_query),
    scope: RequestScope = Depends(school_scope),
) -> Paginated[SchoolTimetable]:
    return await service.list_school_timetables(scope.db, query)


@router.get("/current", response_model=SchoolTimetable)
async def get_current_school_timetable(
    scope: RequestScope = Depends(school_scope),
    main_db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> SchoolTimetable:
    try:
        return await service.get_current_school_timetable(scope.db, main_db, scope.school_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/generate", response_model=SchoolTimetable, status_code=status.HTTP_201_CREATED, dependencies=can_write)
async def generate_default_timetable(
    payload: Optional[GenerateSchoolTimetableRequest] = Body(None),
    scope: RequestScope = Depends(school_scope),
    main_db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> SchoolTimetable:
    try:
        year_id = payload.academic_year_id if payload else None
        return await service.generate_default_timetable(scope.db, main_db, scope.school_id, year_id, scope.creator_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{timetable_id}", response_model=SchoolTimetable)
async def get_school_timetable(timetable_id: str, scope: RequestScope = Depends(school_scope)) -> SchoolTimetable:
    try:
        return await service.get_school_timetable(scope.db, timetable_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("", response_model=SchoolTimetable, status_code=status.HTTP_201_CREATED, dependencies=can_write)
async def create_school_timetable(
    payload: SchoolTimetableCreate,
    scope: RequestScope = Depends(school_scope),
    main_db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> SchoolTimetable:
    try:
        return await service.create_school_timetable(scope.db, main_db, scope.school_id, payload, scope.creator_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{timetable_id}", response_model=SchoolTimetable, dependencies=can_write)
async def update_school_timetable(
    timetable_id: str,
    payload: SchoolTimetableUpdate,
    scope: RequestScope = Depends(school_scope),
) -> SchoolTimetable:
    try:
        return await service.update_school_timetable(scope.db, timetable_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{timetable_id}", response_model=MessageResponse, dependencies=can_write)
async def delete_school_timetable(timetable_id: str, scope: RequestScope = Depends(school_scope)) -> MessageResponse:
    try:
        await service.delete_school_timetable(scope.db, timetable_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(message="School timetable deleted successfully")
