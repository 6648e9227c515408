from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from space_together.auth.dependencies import get_current_user
from space_together.auth.rbac import require_admin
from space_together.auth.schemas import UserClaims
from space_together.core.exceptions import ServiceError
from space_together.core.models import MainSubject, TemplateSubject
from space_together.core.schemas import CountResponse, ListQuery, MessageResponse, Paginated, list_query
from space_together.db.mongo import get_main_db

from .schemas import MainSubjectCreate, MainSubjectUpdate, TemplateSubjectCreate, TemplateSubjectUpdate
from . import service

main_subjects_router = APIRouter(
    prefix="/main-subjects", tags=["main-subjects"], dependencies=[Depends(get_current_user)]
)
template_subjects_router = APIRouter(
    prefix="/template-subjects", tags=["template-subjects"], dependencies=[Depends(get_current_user)]
)


@main_subjects_router.get("", response_model=Paginated[MainSubject])
async def list_main_subjects(
    query: ListQuery = Depends(list_query),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> Paginated[MainSubject]:
    return await service.list_main_subjects(db, query)


@main_subjects_router.get("/stats/count", response_model=CountResponse)
async def count_main_subjects(db: AsyncIOMotorDatabase = Depends(get_main_db)) -> CountResponse:
    return CountResponse(count=await service.count_main_subjects(db))


@main_subjects_router.get("/code/{code}", response_model=MainSubject)
async def get_main_subject_by_code(code: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> MainSubject:
    try:
        return await service.get_main_subject_by_code(db, code)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@main_subjects_router.get("/main-class/{main_class_id}", response_model=List[MainSubject])
async def list_main_subjects_by_main_class(
    main_class_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)
) -> List[MainSubject]:
    try:
        return await service.list_main_subjects_by_main_class(db, main_class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@main_subjects_router.get("/{subject_id}", response_model=MainSubject)
async def get_main_subject(subject_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> MainSubject:
    try:
        return await service.get_main_subject(db, subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@main_subjects_router.post("", response_model=MainSubject, status_code=status.HTTP_201_CREATED)
async def create_main_subject(
    payload: MainSubjectCreate,
    current_user: UserClaims = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> MainSubject:
    try:
        return await service.create_main_subject(db, payload, current_user.user_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@main_subjects_router.put("/{subject_id}", response_model=MainSubject, dependencies=[Depends(require_admin)])
async def update_main_subject(
    subject_id: str,
    payload: MainSubjectUpdate,
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> MainSubject:
    try:
        return await service.update_main_subject(db, subject_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@main_subjects_router.delete("/{subject_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_main_subject(subject_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> MessageResponse:
    try:
        await service.delete_main_subject(db, subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(message="Main subject deleted successfully")


@template_subjects_router.get("", response_model=Paginated[TemplateSubject])
async def list_template_subjects(
    query: ListQuery = Depends(list_query),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> Paginated[TemplateSubject]:
    return await service.list_template_subjects(db, query)


@template_subjects_router.get("/stats/count", response_model=CountResponse)
async def count_template_subjects(db: AsyncIOMotorDatabase = Depends(get_main_db)) -> CountResponse:
    return CountResponse(count=await service.count_template_subjects(db))


@template_subjects_router.get("/code/{code}", response_model=TemplateSubject)
async def get_template_subject_by_code(code: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> TemplateSubject:
    try:
        return await service.get_template_subject_by_code(db, code)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@template_subjects_router.get("/main-class/{main_class_id}", response_model=List[TemplateSubject])
async def list_template_subjects_by_main_class(
    main_class_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)
) -> List[TemplateSubject]:
    try:
        return await service.list_template_subjects_by_main_class(db, main_class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@template_subjects_router.get("/{subject_id}", response_model=TemplateSubject)
async def get_template_subject(subject_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> TemplateSubject:
    try:
        return await service.get_template_subject(db, subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@template_subjects_router.post("", response_model=TemplateSubject, status_code=status.HTTP_201_CREATED)
async def create_template_subject(
    payload: TemplateSubjectCreate,
    current_user: UserClaims = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> TemplateSubject:
    try:
        return await service.create_template_subject(db, payload, current_user.user_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@template_subjects_router.put(
    "/{subject_id}", response_model=TemplateSubject, dependencies=[Depends(require_admin)]
)
async def update_template_subject(
    subject_id: str,
    payload: TemplateSubjectUpdate,
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> TemplateSubject:
    try:
        return await service.update_template_subject(db, subject_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@template_subjects_router.delete(
    "/{subject_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)]
)
async def delete_template_subject(subject_id: str, db: AsyncIOMotorDatabase = Depends(get_main_db)) -> MessageResponse:
    try:
        await service.delete_template_subject(db, subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(message="Template subject deleted successfully")
