from typing import Callable, List

from fastapi import APIRouter, Depends, HTTPException, status

from space_together.auth.dependencies import RequestScope, main_scope, school_scope
from space_together.auth.rbac import require_admin_staff_or_teacher, require_subject_access
from space_together.core.exceptions import ServiceError
from space_together.core.models import ClassSubject
from space_together.core.schemas import CountResponse, ListQuery, MessageResponse, Paginated, list_query

from .schemas import ClassSubjectCreate, ClassSubjectUpdate, ClassSubjectWithDetails
from . import service


def build_router(prefix: str, scope_dependency: Callable, tags: List[str]) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=tags)
    can_create = [Depends(require_admin_staff_or_teacher)]
    can_edit = [Depends(require_subject_access(scope_dependency, "subject_id"))]

    @router.get("", response_model=Paginated[ClassSubject])
    async def list_class_subjects(
        query: ListQuery = Depends(list_query),
        scope: RequestScope = Depends(scope_dependency),
    ) -> Paginated[ClassSubject]:
        return await service.list_class_subjects(scope.db, query)

    @router.get("/stats/count", response_model=CountResponse)
    async def count_class_subjects(scope: RequestScope = Depends(scope_dependency)) -> CountResponse:
        return CountResponse(count=await service.count_class_subjects(scope.db))

    @router.get("/code/{code}", response_model=ClassSubject)
    async def get_class_subject_by_code(code: str, scope: RequestScope = Depends(scope_dependency)) -> ClassSubject:
        try:
            return await service.get_class_subject_by_code(scope.db, code)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.get("/class/{class_id}", response_model=List[ClassSubject])
    async def list_class_subjects_by_class(
        class_id: str, scope: RequestScope = Depends(scope_dependency)
    ) -> List[ClassSubject]:
        try:
            return await service.list_class_subjects_by_class(scope.db, class_id)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.get("/{subject_id}", response_model=ClassSubject)
    async def get_class_subject(subject_id: str, scope: RequestScope = Depends(scope_dependency)) -> ClassSubject:
        try:
            return await service.get_class_subject(scope.db, subject_id)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.get("/{subject_id}/with-details", response_model=ClassSubjectWithDetails)
    async def get_class_subject_with_details(
        subject_id: str, scope: RequestScope = Depends(scope_dependency)
    ) -> ClassSubjectWithDetails:
        try:
            return await service.get_class_subject_with_details(scope.db, subject_id)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.post("", response_model=ClassSubject, status_code=status.HTTP_201_CREATED, dependencies=can_create)
    async def create_class_subject(
        payload: ClassSubjectCreate, scope: RequestScope = Depends(scope_dependency)
    ) -> ClassSubject:
        try:
            return await service.create_class_subject(scope.db, payload, scope.creator_id)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.put("/{subject_id}", response_model=ClassSubject, dependencies=can_edit)
    async def update_class_subject(
        subject_id: str,
        payload: ClassSubjectUpdate,
        scope: RequestScope = Depends(scope_dependency),
    ) -> ClassSubject:
        try:
            return await service.update_class_subject(scope.db, subject_id, payload)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.delete("/{subject_id}", response_model=MessageResponse, dependencies=can_edit)
    async def delete_class_subject(subject_id: str, scope: RequestScope = Depends(scope_dependency)) -> MessageResponse:
        try:
            await service.delete_class_subject(scope.db, subject_id)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)
        return MessageResponse(message="Class subject deleted successfully")

    return router


router = build_router("/class-subjects", main_scope, ["class-subjects"])
school_router = build_router("/school/class-subjects", school_scope, ["school-class-subjects"])
