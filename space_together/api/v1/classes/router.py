from typing import Callable, List

from fastapi import APIRouter, Depends, HTTPException, Request, status

from space_together.auth.dependencies import RequestScope, main_scope, school_scope
from space_together.auth.rbac import (
    check_class_access,
    require_admin_staff_or_teacher,
    require_class_access,
    require_school_access,
)
from space_together.auth.schemas import Principal, UserClaims
from space_together.core.exceptions import ServiceError
from space_together.core.media import MediaClient, get_media_client
from space_together.core.models import SchoolClass
from space_together.core.schemas import CountResponse, ListQuery, MessageResponse, Paginated, list_query
from space_together.db.document import parse_object_id

from .schemas import (
    BulkClassCreateResult,
    BulkClassUpdateResult,
    ClassBulkUpdateItem,
    ClassCreate,
    ClassUpdate,
    ClassWithDetails,
)
from . import service


def build_router(prefix: str, scope_dependency: Callable, tags: List[str]) -> APIRouter:
    """Class routes bound to the database chosen by ``scope_dependency``."""
    router = APIRouter(prefix=prefix, tags=tags)
    can_create = [Depends(require_admin_staff_or_teacher)]
    can_edit = [Depends(require_class_access("class_id"))]

    @router.get("", response_model=Paginated[SchoolClass])
    async def list_classes(
        query: ListQuery = Depends(list_query),
        scope: RequestScope = Depends(scope_dependency),
    ) -> Paginated[SchoolClass]:
        return await service.list_classes(scope.db, query)

    @router.get("/stats/count", response_model=CountResponse)
    async def count_classes(scope: RequestScope = Depends(scope_dependency)) -> CountResponse:
        return CountResponse(count=await service.count_classes(scope.db))

    @router.get("/username/{username}", response_model=SchoolClass)
    async def get_class_by_username(username: str, scope: RequestScope = Depends(scope_dependency)) -> SchoolClass:
        try:
            return await service.get_class_by_username(scope.db, username)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.get("/code/{code}", response_model=SchoolClass)
    async def get_class_by_code(code: str, scope: RequestScope = Depends(scope_dependency)) -> SchoolClass:
        try:
            return await service.get_class_by_code(scope.db, code)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.post("/bulk", response_model=BulkClassCreateResult, dependencies=can_create)
    async def create_classes_bulk(
        payloads: List[ClassCreate],
        request: Request,
        scope: RequestScope = Depends(scope_dependency),
        media: MediaClient = Depends(get_media_client),
    ) -> BulkClassCreateResult:
        try:
            return await service.create_classes_bulk(
                scope.db, payloads, scope.creator_id, scope.school_id, media, is_cancelled=request.is_disconnected
            )
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.post(
        "/bulk/validation",
        response_model=List[SchoolClass],
        status_code=status.HTTP_201_CREATED,
        dependencies=can_create,
    )
    async def create_classes_bulk_validated(
        payloads: List[ClassCreate],
        request: Request,
        scope: RequestScope = Depends(scope_dependency),
    ) -> List[SchoolClass]:
        try:
            return await service.create_classes_bulk_validated(
                scope.db, payloads, scope.creator_id, scope.school_id, is_cancelled=request.is_disconnected
            )
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.post(
        "/bulk/school/{school_id}",
        response_model=BulkClassCreateResult,
        dependencies=can_create + [Depends(require_school_access("school_id"))],
    )
    async def create_school_classes_bulk(
        school_id: str,
        payloads: List[ClassCreate],
        request: Request,
        scope: RequestScope = Depends(scope_dependency),
        media: MediaClient = Depends(get_media_client),
    ) -> BulkClassCreateResult:
        try:
            oid = parse_object_id(school_id, "school_id")
            stamped = [payload.model_copy(update={"school_id": oid}) for payload in payloads]
            return await service.create_classes_bulk(
                scope.db, stamped, scope.creator_id, oid, media, is_cancelled=request.is_disconnected
            )
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.put("/bulk", response_model=BulkClassUpdateResult)
    async def update_classes_bulk(
        items: List[ClassBulkUpdateItem],
        request: Request,
        scope: RequestScope = Depends(scope_dependency),
        media: MediaClient = Depends(get_media_client),
        user: UserClaims = Depends(require_admin_staff_or_teacher),
    ) -> BulkClassUpdateResult:
        try:
            principal = Principal(user=user)
            for item in items:
                check_class_access(principal, item.id)
            return await service.update_classes_bulk(scope.db, items, media, is_cancelled=request.is_disconnected)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.get("/{class_id}", response_model=SchoolClass)
    async def get_class(class_id: str, scope: RequestScope = Depends(scope_dependency)) -> SchoolClass:
        try:
            return await service.get_class(scope.db, class_id)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.get("/{class_id}/with-details", response_model=ClassWithDetails)
    async def get_class_with_details(
        class_id: str, scope: RequestScope = Depends(scope_dependency)
    ) -> ClassWithDetails:
        try:
            return await service.get_class_with_details(scope.db, class_id)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.get("/{class_id}/subclasses", response_model=List[SchoolClass])
    async def list_subclasses(class_id: str, scope: RequestScope = Depends(scope_dependency)) -> List[SchoolClass]:
        try:
            return await service.list_subclasses(scope.db, class_id)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.post("", response_model=SchoolClass, status_code=status.HTTP_201_CREATED, dependencies=can_create)
    async def create_class(
        payload: ClassCreate,
        scope: RequestScope = Depends(scope_dependency),
        media: MediaClient = Depends(get_media_client),
    ) -> SchoolClass:
        try:
            return await service.create_class(scope.db, payload, scope.creator_id, scope.school_id, media)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.put("/{class_id}", response_model=SchoolClass, dependencies=can_edit)
    async def update_class(
        class_id: str,
        payload: ClassUpdate,
        scope: RequestScope = Depends(scope_dependency),
        media: MediaClient = Depends(get_media_client),
    ) -> SchoolClass:
        try:
            return await service.update_class(scope.db, class_id, payload, media)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.put("/{class_id}/merged", response_model=SchoolClass, dependencies=can_edit)
    async def update_class_merged(
        class_id: str,
        payload: ClassUpdate,
        scope: RequestScope = Depends(scope_dependency),
        media: MediaClient = Depends(get_media_client),
    ) -> SchoolClass:
        try:
            return await service.update_class_merged(scope.db, class_id, payload, media)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.delete("/{class_id}", response_model=MessageResponse, dependencies=can_edit)
    async def delete_class(
        class_id: str,
        scope: RequestScope = Depends(scope_dependency),
        media: MediaClient = Depends(get_media_client),
    ) -> MessageResponse:
        try:
            await service.delete_class(scope.db, class_id, media)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)
        return MessageResponse(message="Class deleted successfully")

    return router


router = build_router("/classes", main_scope, ["classes"])
school_router = build_router("/school/classes", school_scope, ["school-classes"])
