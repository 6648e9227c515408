from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from space_together.auth.dependencies import get_current_user
from space_together.auth.rbac import require_admin
from space_together.auth.schemas import UserClaims
from space_together.core.exceptions import ServiceError
from space_together.core.models import EducationYear, Term
from space_together.core.schemas import CountResponse, ListQuery, MessageResponse, Paginated, list_query
from space_together.db.document import parse_object_id
from space_together.db.mongo import get_main_db

from .schemas import EducationYearCreate, EducationYearUpdate
from . import service

router = APIRouter(prefix="/education-years", tags=["education-years"], dependencies=[Depends(get_current_user)])


@router.get("", response_model=Paginated[EducationYear])
async def list_education_years(
    query: ListQuery = Depends(list_query),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> Paginated[EducationYear]:
    return await service.list_education_years(db, query)


@router.get("/stats/count", response_model=CountResponse)
async def count_education_years(db: AsyncIOMotorDatabase = Depends(get_main_db)) -> CountResponse:
    return CountResponse(count=await service.count_education_years(db))


@router.get("/current", response_model=EducationYear)
async def get_current_education_year(
    curriculum_id: Optional[str] = Query(None),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> EducationYear:
    try:
        curriculum = parse_object_id(curriculum_id, "curriculum_id") if curriculum_id else None
        return await service.get_current_education_year(db, curriculum)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{year_id}", response_model=EducationYear)
async def get_education_year(year_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> EducationYear:
    try:
        return await service.get_education_year(db, year_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{year_id}/current-term", response_model=Term)
async def get_current_term(year_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> Term:
    try:
        return await service.get_current_term(db, year_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("", response_model=EducationYear, status_code=status.HTTP_201_CREATED)
async def create_education_year(
    payload: EducationYearCreate,
    current_user: UserClaims = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> EducationYear:
    try:
        return await service.create_education_year(db, payload, current_user.user_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{year_id}", response_model=EducationYear, dependencies=[Depends(require_admin)])
async def update_education_year(
    year_id: str,
    payload: EducationYearUpdate,
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> EducationYear:
    try:
        return await service.update_education_year(db, year_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{year_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_education_year(year_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> MessageResponse:
    try:
        await service.delete_education_year(db, year_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(message="Education year deleted successfully")
