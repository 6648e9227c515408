from typing import Callable, List

from fastapi import APIRouter, Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from space_together.auth.dependencies import RequestScope, main_scope, school_scope
from space_together.auth.rbac import check_class_access, require_admin_staff_or_teacher
from space_together.auth.schemas import Principal, UserClaims
from space_together.core.exceptions import ServiceError
from space_together.core.models import ClassTimetable
from space_together.core.schemas import CountResponse, ListQuery, MessageResponse, Paginated, list_query
from space_together.db.mongo import get_main_db

from .schemas import (
    ClassTimetableCreate,
    ClassTimetableUpdate,
    ClassTimetableWithDetails,
    GenerateTimetableRequest,
    StructureTemplate,
)
from . import service


def build_router(prefix: str, scope_dependency: Callable, tags: List[str]) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=tags)
    can_write = [Depends(require_admin_staff_or_teacher)]

    @router.get("", response_model=Paginated[ClassTimetable])
    async def list_class_timetables(
        query: ListQuery = Depends(list_query),
        scope: RequestScope = Depends(scope_dependency),
    ) -> Paginated[ClassTimetable]:
        return await service.list_class_timetables(scope.db, query)

    @router.get("/stats/count", response_model=CountResponse)
    async def count_class_timetables(scope: RequestScope = Depends(scope_dependency)) -> CountResponse:
        return CountResponse(count=await service.count_class_timetables(scope.db))

    @router.post("/structure-template", response_model=StructureTemplate)
    async def get_structure_template(_: RequestScope = Depends(scope_dependency)) -> StructureTemplate:
        """Default shape of one school day, for the timetable editor."""
        return service.structure_template()

    @router.post("/generate", response_model=ClassTimetable, status_code=status.HTTP_201_CREATED)
    async def generate_class_timetable(
        payload: GenerateTimetableRequest,
        scope: RequestScope = Depends(scope_dependency),
        main_db: AsyncIOMotorDatabase = Depends(get_main_db),
        user: UserClaims = Depends(require_admin_staff_or_teacher),
    ) -> ClassTimetable:
        try:
            check_class_access(Principal(user=user), payload.class_id)
            return await service.generate_class_timetable(scope.db, main_db, payload, scope.creator_id)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.get("/class/{class_id}", response_model=List[ClassTimetable])
    async def list_class_timetables_by_class(
        class_id: str, scope: RequestScope = Depends(scope_dependency)
    ) -> List[ClassTimetable]:
        try:
            return await service.list_class_timetables_by_class(scope.db, class_id)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.get("/{timetable_id}", response_model=ClassTimetable)
    async def get_class_timetable(timetable_id: str, scope: RequestScope = Depends(scope_dependency)) -> ClassTimetable:
        try:
            return await service.get_class_timetable(scope.db, timetable_id)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.get("/{timetable_id}/with-details", response_model=ClassTimetableWithDetails)
    async def get_class_timetable_with_details(
        timetable_id: str, scope: RequestScope = Depends(scope_dependency)
    ) -> ClassTimetableWithDetails:
        try:
            return await service.get_class_timetable_with_details(scope.db, timetable_id)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.post("", response_model=ClassTimetable, status_code=status.HTTP_201_CREATED)
    async def create_class_timetable(
        payload: ClassTimetableCreate,
        scope: RequestScope = Depends(scope_dependency),
        main_db: AsyncIOMotorDatabase = Depends(get_main_db),
        user: UserClaims = Depends(require_admin_staff_or_teacher),
    ) -> ClassTimetable:
        try:
            check_class_access(Principal(user=user), payload.class_id)
            return await service.create_class_timetable(scope.db, main_db, payload, scope.creator_id)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.put("/{timetable_id}", response_model=ClassTimetable, dependencies=can_write)
    async def update_class_timetable(
        timetable_id: str,
        payload: ClassTimetableUpdate,
        scope: RequestScope = Depends(scope_dependency),
        main_db: AsyncIOMotorDatabase = Depends(get_main_db),
    ) -> ClassTimetable:
        try:
            return await service.update_class_timetable(scope.db, main_db, timetable_id, payload)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.delete("/{timetable_id}", response_model=MessageResponse, dependencies=can_write)
    async def delete_class_timetable(
        timetable_id: str, scope: RequestScope = Depends(scope_dependency)
    ) -> MessageResponse:
        try:
            await service.delete_class_timetable(scope.db, timetable_id)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)
        return MessageResponse(message="Class timetable deleted successfully")

    return router


router = build_router("/class-timetables", main_scope, ["class-timetables"])
school_router = build_router("/school/class-timetables", school_scope, ["school-class-timetables"])
