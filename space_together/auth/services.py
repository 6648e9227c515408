from typing import List, Union

from bson import ObjectId
from fastapi import status

from space_together.api.v1.users import service as user_service
from space_together.api.v1.users.schemas import UserCreate
from space_together.auth.schemas import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    SchoolClaims,
    SchoolTokenResponse,
    UserClaims,
    UserResponse,
)
from space_together.auth.security import create_access_token, create_school_token, verify_password
from space_together.core.enums import UserRole
from space_together.core.exceptions import (
    ForbiddenError,
    NotFoundError,
    ServiceError,
    UnauthenticatedError,
    ValidationError,
)
from space_together.core.models import School, Teacher, User
from space_together.db.mongo import MongoManager
from space_together.db.repository import Repository


async def _accessible_classes(mongo: MongoManager, user: User) -> List[ObjectId]:
    """Classes a teacher may act on in their current school."""
    if user.role != UserRole.TEACHER.value or user.current_school_id is None:
        return []
    school = await Repository(mongo.main_db(), School).find_by_id(user.current_school_id)
    if school is None or not school.database_name:
        return []
    teacher = await Repository(mongo.tenant_db(school.database_name), Teacher).find_one({"user_id": user.id})
    return list(teacher.class_ids) if teacher else []


async def sign_user_token(mongo: MongoManager, user: User) -> str:
    claims = UserClaims(
        user_id=user.id,
        name=user.name,
        email=user.email,
        username=user.username,
        role=user.role,
        image=user.image,
        current_school_id=user.current_school_id,
        schools=user.schools,
        accessible_classes=await _accessible_classes(mongo, user),
    )
    return create_access_token(subject=claims.model_dump(mode="json", exclude_none=True))


def _auth_response(token: str, user: User) -> AuthResponse:
    return AuthResponse(token=token, user=UserResponse.model_validate(user))


async def register_user(mongo: MongoManager, payload: RegisterRequest) -> AuthResponse:
    """Self-registration. New accounts are students until an admin changes the role."""
    user = await user_service.create_user(
        mongo.main_db(),
        UserCreate(
            name=payload.name,
            email=payload.email,
            password=payload.password,
            phone=payload.phone,
            gender=payload.gender,
            role=UserRole.STUDENT,
        ),
    )
    return _auth_response(await sign_user_token(mongo, user), user)


async def login_user(mongo: MongoManager, payload: LoginRequest) -> AuthResponse:
    user = await user_service.get_user_by_email(mongo.main_db(), payload.email)
    if user is None or not user.password_hash or not verify_password(payload.password, user.password_hash):
        raise ServiceError("Invalid email or password", status.HTTP_401_UNAUTHORIZED)
    if user.disable:
        raise ForbiddenError("This account is disabled")
    return _auth_response(await sign_user_token(mongo, user), user)


async def refresh_user_token(mongo: MongoManager, claims: UserClaims) -> AuthResponse:
    """Re-read the user and sign a fresh token."""
    try:
        user = await user_service.get_user(mongo.main_db(), claims.user_id)
    except NotFoundError:
        raise UnauthenticatedError("User no longer exists")
    return _auth_response(await sign_user_token(mongo, user), user)


async def issue_school_token(
    mongo: MongoManager,
    claims: UserClaims,
    school_id: Union[str, ObjectId],
) -> SchoolTokenResponse:
    """Select a school as the active one and hand out its school token."""
    db = mongo.main_db()
    school = await Repository(db, School).get(school_id, "School")
    user = await user_service.get_user(db, claims.user_id)
    if user.role != UserRole.ADMIN.value and school.id not in user.schools:
        raise ForbiddenError("You are not a member of this school")
    if not school.database_name:
        raise ValidationError("School database not configured")
    if user.current_school_id != school.id and school.id in user.schools:
        await user_service.set_current_school(db, user.id, school.id)

    school_claims = SchoolClaims(
        school_id=school.id,
        database_name=school.database_name,
        name=school.name,
        username=school.username,
        logo=school.logo,
        creator_id=school.creator_id,
    )
    token = create_school_token(subject=school_claims.model_dump(mode="json", exclude_none=True))
    return SchoolTokenResponse(token=token, school_id=school.id, database_name=school.database_name)
