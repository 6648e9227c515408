from typing import Awaitable, Callable, Optional, Type

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from space_together.auth.dependencies import RequestScope, require_school_token, school_scope
from space_together.auth.rbac import (
    require_admin_or_staff,
    require_admin_staff_or_teacher,
    require_student_access,
    require_teacher_access,
)
from space_together.auth.schemas import SchoolClaims
from space_together.core.exceptions import ServiceError
from space_together.core.media import MediaClient, get_media_client
from space_together.core.models import SchoolMember, SchoolStaff, Student, Teacher
from space_together.core.schemas import CountResponse, ListQuery, MessageResponse, Paginated, list_query
from space_together.db.relations import RelationSet

from .schemas import (
    StaffCreate,
    StaffUpdate,
    StudentCreate,
    StudentUpdate,
    StudentWithDetails,
    TeacherCreate,
    TeacherUpdate,
    TeacherWithDetails,
)
from . import service

CreateHandler = Callable[[RequestScope, SchoolClaims, BaseModel, MediaClient], Awaitable[SchoolMember]]


def build_router(
    prefix: str,
    model: Type[SchoolMember],
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    create: CreateHandler,
    edit_guard: Callable,
    label: str,
    details: Optional[RelationSet] = None,
    details_schema: Optional[Type[BaseModel]] = None,
    create_guard: Callable = require_admin_staff_or_teacher,
) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[prefix.strip("/").replace("/", "-")])
    can_create = [Depends(create_guard)]
    can_edit = [Depends(edit_guard)]

    @router.get("", response_model=Paginated[model])
    async def list_members(
        query: ListQuery = Depends(list_query),
        scope: RequestScope = Depends(school_scope),
    ):
        return await service.list_members(scope.db, model, query)

    @router.get("/stats/count", response_model=CountResponse)
    async def count_members(scope: RequestScope = Depends(school_scope)) -> CountResponse:
        return CountResponse(count=await service.count_members(scope.db, model))

    @router.get("/user/{user_id}", response_model=model)
    async def get_member_by_user(user_id: str, scope: RequestScope = Depends(school_scope)):
        try:
            return await service.get_member_by_user(scope.db, model, user_id)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.get("/{member_id}", response_model=model)
    async def get_member(member_id: str, scope: RequestScope = Depends(school_scope)):
        try:
            return await service.get_member(scope.db, model, member_id)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    if details is not None:

        @router.get("/{member_id}/with-details", response_model=details_schema)
        async def get_member_with_details(member_id: str, scope: RequestScope = Depends(school_scope)):
            try:
                return await service.get_member_with_details(scope.db, model, details, member_id)
            except ServiceError as e:
                raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.post("", response_model=model, status_code=status.HTTP_201_CREATED, dependencies=can_create)
    async def create_member(
        payload: create_schema,
        scope: RequestScope = Depends(school_scope),
        school: SchoolClaims = Depends(require_school_token),
        media: MediaClient = Depends(get_media_client),
    ):
        try:
            return await create(scope, school, payload, media)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.put("/{member_id}", response_model=model, dependencies=can_edit)
    async def update_member(
        member_id: str,
        payload: update_schema,
        scope: RequestScope = Depends(school_scope),
        media: MediaClient = Depends(get_media_client),
    ):
        try:
            return await service.update_member(scope.db, model, member_id, payload, media)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.delete("/{member_id}", response_model=MessageResponse, dependencies=can_edit)
    async def delete_member(
        member_id: str,
        scope: RequestScope = Depends(school_scope),
        media: MediaClient = Depends(get_media_client),
    ) -> MessageResponse:
        try:
            await service.delete_member(scope.db, model, member_id, media)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)
        return MessageResponse(message=f"{label} deleted successfully")

    return router


async def _create_teacher(scope: RequestScope, school: SchoolClaims, payload, media: MediaClient) -> Teacher:
    return await service.create_teacher(scope.db, payload, scope.creator_id, scope.school_id, media)


async def _create_student(scope: RequestScope, school: SchoolClaims, payload, media: MediaClient) -> Student:
    return await service.create_student(
        scope.db, payload, scope.creator_id, scope.school_id, school.username, media
    )


async def _create_staff(scope: RequestScope, school: SchoolClaims, payload, media: MediaClient) -> SchoolStaff:
    return await service.create_staff(scope.db, payload, scope.creator_id, scope.school_id, media)


teachers_router = build_router(
    "/school/teachers",
    Teacher,
    TeacherCreate,
    TeacherUpdate,
    _create_teacher,
    require_teacher_access(school_scope, "member_id"),
    "Teacher",
    RelationSet.TEACHER_DETAILS,
    TeacherWithDetails,
)
students_router = build_router(
    "/school/students",
    Student,
    StudentCreate,
    StudentUpdate,
    _create_student,
    require_student_access(school_scope, "member_id"),
    "Student",
    RelationSet.STUDENT_DETAILS,
    StudentWithDetails,
)
staff_router = build_router(
    "/school/staff",
    SchoolStaff,
    StaffCreate,
    StaffUpdate,
    _create_staff,
    require_admin_or_staff,
    "Staff member",
    create_guard=require_admin_or_staff,
)
