"""Role guards.

The ``check_*`` functions are plain predicates over a :class:`Principal` that
raise :class:`ForbiddenError`; the ``require_*`` callables wrap them as FastAPI
dependencies.
"""
from typing import Callable, Optional, Type, Union

from bson import ObjectId
from fastapi import Depends, HTTPException, Request

from space_together.auth.dependencies import RequestScope, get_principal
from space_together.auth.schemas import Principal, UserClaims
from space_together.core.enums import UserRole
from space_together.core.exceptions import ForbiddenError, ServiceError, UnauthenticatedError
from space_together.core.models import ClassSubject, Student, Teacher
from space_together.db.document import Document
from space_together.db.repository import Repository

IdLike = Union[str, ObjectId]


def _user(principal: Principal) -> UserClaims:
    if principal.user is None:
        raise UnauthenticatedError("Not authenticated")
    return principal.user


def _same(a: Optional[IdLike], b: Optional[IdLike]) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def _contains(ids, target: Optional[IdLike]) -> bool:
    return any(_same(item, target) for item in ids or [])


def check_admin(principal: Principal) -> None:
    if _user(principal).role != UserRole.ADMIN.value:
        raise ForbiddenError("Only admins can perform this action")


def check_admin_or_staff(principal: Principal) -> None:
    if _user(principal).role not in (UserRole.ADMIN.value, UserRole.SCHOOLSTAFF.value):
        raise ForbiddenError("Only admins or school staff can perform this action")


def check_admin_staff_or_teacher(principal: Principal) -> None:
    if _user(principal).role not in (UserRole.ADMIN.value, UserRole.SCHOOLSTAFF.value, UserRole.TEACHER.value):
        raise ForbiddenError("Only admins, school staff or teachers can perform this action")


def check_class_access(principal: Principal, class_id: IdLike) -> None:
    user = _user(principal)
    if user.role == UserRole.ADMIN.value:
        return
    if user.role == UserRole.TEACHER.value and _contains(user.accessible_classes, class_id):
        return
    if user.role == UserRole.SCHOOLSTAFF.value and user.schools:
        return
    raise ForbiddenError("You do not have access to this class")


def check_subject_access(principal: Principal, subject_id: IdLike, class_id: Optional[IdLike] = None) -> None:
    """Subjects inherit the access rule of the class they belong to."""
    user = _user(principal)
    if user.role == UserRole.ADMIN.value:
        return
    if user.role == UserRole.SCHOOLSTAFF.value and user.schools:
        return
    if user.role == UserRole.TEACHER.value and class_id is not None and _contains(user.accessible_classes, class_id):
        return
    raise ForbiddenError(f"You do not have access to subject {subject_id}")


def check_student_access(
    principal: Principal,
    student_id: IdLike,
    student_user_id: Optional[IdLike] = None,
    class_id: Optional[IdLike] = None,
) -> None:
    user = _user(principal)
    if user.role == UserRole.ADMIN.value:
        return
    if user.role == UserRole.SCHOOLSTAFF.value and user.schools:
        return
    if user.role == UserRole.TEACHER.value and class_id is not None and _contains(user.accessible_classes, class_id):
        return
    if user.role == UserRole.STUDENT.value and _same(user.user_id, student_user_id):
        return
    raise ForbiddenError(f"You do not have access to student {student_id}")


def check_teacher_access(principal: Principal, teacher_id: IdLike, teacher_user_id: Optional[IdLike] = None) -> None:
    user = _user(principal)
    if user.role == UserRole.ADMIN.value:
        return
    if user.role == UserRole.SCHOOLSTAFF.value and user.schools:
        return
    if user.role == UserRole.TEACHER.value and _same(user.user_id, teacher_user_id):
        return
    raise ForbiddenError(f"You do not have access to teacher {teacher_id}")


def check_school_access(principal: Principal, school_id: IdLike) -> None:
    user = _user(principal)
    if user.role == UserRole.ADMIN.value or _contains(user.schools, school_id):
        return
    raise ForbiddenError("You are not a member of this school")


def _as_http(exc: ServiceError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


def _guard(check):
    async def _checker(principal: Principal = Depends(get_principal)) -> UserClaims:
        try:
            check(principal)
        except (ForbiddenError, UnauthenticatedError) as e:
            raise _as_http(e)
        return principal.user

    return _checker


require_admin = _guard(check_admin)
require_admin_or_staff = _guard(check_admin_or_staff)
require_admin_staff_or_teacher = _guard(check_admin_staff_or_teacher)


def require_school_access(param: str = "school_id"):
    """Dependency factory guarding a route whose path carries the school id in ``param``."""
    async def _checker(request: Request, principal: Principal = Depends(get_principal)) -> UserClaims:
        try:
            check_school_access(principal, request.path_params.get(param))
        except (ForbiddenError, UnauthenticatedError) as e:
            raise _as_http(e)
        return principal.user

    return _checker


def require_class_access(param: str = "class_id"):
    async def _checker(request: Request, principal: Principal = Depends(get_principal)) -> UserClaims:
        try:
            check_class_access(principal, request.path_params.get(param))
        except (ForbiddenError, UnauthenticatedError) as e:
            raise _as_http(e)
        return principal.user

    return _checker


def _target_guard(scope_dependency: Callable, model: Type[Document], param: str, check):
    """Guard that loads the targeted document first so ``check`` can see its links.

    A missing document is passed as ``None``; the handler reports the 404.
    """
    async def _checker(
        request: Request,
        principal: Principal = Depends(get_principal),
        scope: RequestScope = Depends(scope_dependency),
    ) -> UserClaims:
        target_id = request.path_params.get(param)
        try:
            _user(principal)
            target = await Repository(scope.db, model).find_by_id(target_id)
            check(principal, target_id, target)
        except ServiceError as e:
            raise _as_http(e)
        return principal.user

    return _checker


def _subject_check(principal: Principal, subject_id: IdLike, subject: Optional[ClassSubject]) -> None:
    check_subject_access(principal, subject_id, subject.class_id if subject else None)


def _student_check(principal: Principal, student_id: IdLike, student: Optional[Student]) -> None:
    if student is None:
        check_student_access(principal, student_id)
    else:
        check_student_access(principal, student_id, student.user_id, student.class_id)


def _teacher_check(principal: Principal, teacher_id: IdLike, teacher: Optional[Teacher]) -> None:
    check_teacher_access(principal, teacher_id, teacher.user_id if teacher else None)


def require_subject_access(scope_dependency: Callable, param: str = "subject_id"):
    return _target_guard(scope_dependency, ClassSubject, param, _subject_check)


def require_student_access(scope_dependency: Callable, param: str = "member_id"):
    return _target_guard(scope_dependency, Student, param, _student_check)


def require_teacher_access(scope_dependency: Callable, param: str = "member_id"):
    return _target_guard(scope_dependency, Teacher, param, _teacher_check)
