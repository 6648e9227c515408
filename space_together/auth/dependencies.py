from dataclasses import dataclass
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Depends, Header, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError as PydanticValidationError

from space_together.auth.schemas import SCHOOL_TOKEN, USER_TOKEN, Principal, SchoolClaims, UserClaims
from space_together.auth.security import decode_access_token, decode_school_token
from space_together.core.exceptions import ServiceError
from space_together.db.mongo import MongoManager, get_main_db, get_mongo

SCHOOL_TOKEN_HEADER = "X-School-Token"


def _unauthorized(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _claims(payload: Dict[str, Any], model, kind: str):
    if payload.get("typ") != kind:
        raise _unauthorized()
    try:
        return model.model_validate(payload)
    except PydanticValidationError:
        raise _unauthorized()


async def get_principal(
    authorization: Optional[str] = Header(None),
    x_school_token: Optional[str] = Header(None, alias=SCHOOL_TOKEN_HEADER),
) -> Principal:
    """Verify whichever tokens the request carries."""
    principal = Principal()
    try:
        if authorization:
            principal.user = _claims(decode_access_token(authorization), UserClaims, USER_TOKEN)
        if x_school_token:
            principal.school = _claims(decode_school_token(x_school_token), SchoolClaims, SCHOOL_TOKEN)
    except ServiceError as e:
        raise _unauthorized(e.message)
    return principal


async def get_current_user(principal: Principal = Depends(get_principal)) -> UserClaims:
    if principal.user is None:
        raise _unauthorized("Not authenticated")
    return principal.user


async def get_optional_user(principal: Principal = Depends(get_principal)) -> Optional[UserClaims]:
    return principal.user


async def require_school_token(principal: Principal = Depends(get_principal)) -> SchoolClaims:
    if principal.school is None:
        raise _unauthorized(f"Missing {SCHOOL_TOKEN_HEADER} header")
    return principal.school


async def get_school_db(
    school: SchoolClaims = Depends(require_school_token),
    mongo: MongoManager = Depends(get_mongo),
) -> AsyncIOMotorDatabase:
    """Tenant database named by the school token."""
    try:
        return mongo.tenant_db(school.database_name)
    except ServiceError as e:
        raise _unauthorized(e.message)


@dataclass
class RequestScope:
    """Database a handler works against plus who is acting and for which school."""

    db: AsyncIOMotorDatabase
    user: Optional[UserClaims] = None
    school_id: Optional[ObjectId] = None

    @property
    def creator_id(self) -> Optional[ObjectId]:
        return self.user.user_id if self.user else None


async def main_scope(
    user: UserClaims = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_main_db),
) -> RequestScope:
    return RequestScope(db=db, user=user)


async def school_scope(
    principal: Principal = Depends(get_principal),
    school: SchoolClaims = Depends(require_school_token),
    db: AsyncIOMotorDatabase = Depends(get_school_db),
) -> RequestScope:
    """Tenant scope: the school token picks the database, the user token is optional."""
    return RequestScope(db=db, user=principal.user, school_id=school.school_id)
