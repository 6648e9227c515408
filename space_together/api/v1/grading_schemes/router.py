from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from space_together.auth.dependencies import get_current_user
from space_together.auth.rbac import require_admin
from space_together.auth.schemas import UserClaims
from space_together.core.enums import GradingType, SubjectRole
from space_together.core.exceptions import ServiceError
from space_together.core.models import SubjectGradingScheme
from space_together.core.schemas import CountResponse, ListQuery, MessageResponse, Paginated, list_query
from space_together.db.mongo import get_main_db

from .schemas import GradeResult, GradingSchemeCreate, GradingSchemeUpdate, PassingCheck, PassingResult
from . import service

router = APIRouter(
    prefix="/subject-grading-schemes", tags=["subject-grading-schemes"], dependencies=[Depends(get_current_user)]
)


@router.get("", response_model=Paginated[SubjectGradingScheme])
async def list_grading_schemes(
    query: ListQuery = Depends(list_query),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> Paginated[SubjectGradingScheme]:
    return await service.list_grading_schemes(db, query)


@router.get("/stats/count", response_model=CountResponse)
async def count_grading_schemes(db: AsyncIOMotorDatabase = Depends(get_main_db)) -> CountResponse:
    return CountResponse(count=await service.count_grading_schemes(db))


@router.get("/subject/{subject_id}", response_model=SubjectGradingScheme)
async def get_subject_scheme(subject_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> SubjectGradingScheme:
    try:
        return await service.get_subject_scheme(db, subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/subject/{subject_id}/role/{role}", response_model=SubjectGradingScheme)
async def get_subject_scheme_for_role(
    subject_id: str, role: SubjectRole, db: AsyncIOMotorDatabase = Depends(get_main_db)
) -> SubjectGradingScheme:
    try:
        return await service.get_subject_scheme(db, subject_id, role)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/type/{scheme_type}", response_model=List[SubjectGradingScheme])
async def list_grading_schemes_by_type(
    scheme_type: GradingType, db: AsyncIOMotorDatabase = Depends(get_main_db)
) -> List[SubjectGradingScheme]:
    return await service.list_grading_schemes_by_type(db, scheme_type)


@router.get("/{scheme_id}", response_model=SubjectGradingScheme)
async def get_grading_scheme(scheme_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> SubjectGradingScheme:
    try:
        return await service.get_grading_scheme(db, scheme_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{scheme_id}/calculate-grade", response_model=GradeResult)
async def calculate_grade(
    scheme_id: str,
    scores: Dict[str, float],
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> GradeResult:
    """Weighted total of per-category scores and the grade it earns."""
    try:
        scheme = await service.get_grading_scheme(db, scheme_id)
        return service.calculate_grade(scheme, scores)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{scheme_id}/check-passing", response_model=PassingResult)
async def check_passing_grade(
    scheme_id: str,
    payload: PassingCheck,
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> PassingResult:
    try:
        scheme = await service.get_grading_scheme(db, scheme_id)
        return PassingResult(grade=payload.grade, passing=service.is_passing_grade(scheme, payload.grade))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("", response_model=SubjectGradingScheme, status_code=status.HTTP_201_CREATED)
async def create_grading_scheme(
    payload: GradingSchemeCreate,
    current_user: UserClaims = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> SubjectGradingScheme:
    try:
        return await service.create_grading_scheme(db, payload, current_user.user_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/subject/{subject_id}/default", response_model=SubjectGradingScheme, status_code=status.HTTP_201_CREATED)
async def create_default_scheme(
    subject_id: str,
    scheme_type: GradingType = Query(GradingType.LETTER_GRADE),
    current_user: UserClaims = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> SubjectGradingScheme:
    try:
        return await service.get_or_create_default_scheme(db, subject_id, scheme_type, current_user.user_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{scheme_id}", response_model=SubjectGradingScheme, dependencies=[Depends(require_admin)])
async def update_grading_scheme(
    scheme_id: str,
    payload: GradingSchemeUpdate,
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> SubjectGradingScheme:
    try:
        return await service.update_grading_scheme(db, scheme_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{scheme_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_grading_scheme(scheme_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> MessageResponse:
    try:
        await service.delete_grading_scheme(db, scheme_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(message="Grading scheme deleted successfully")
