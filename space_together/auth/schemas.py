from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

from space_together.core.enums import Gender, UserRole
from space_together.core.models import Address
from space_together.db.document import PyObjectId, StoredModel, UtcDatetime

USER_TOKEN = "user"
SCHOOL_TOKEN = "school"


class UserClaims(BaseModel):
    """Payload of a user token."""

    typ: str = USER_TOKEN
    user_id: PyObjectId
    name: str
    email: str
    username: Optional[str] = None
    role: Optional[UserRole] = None
    image: Optional[str] = None
    current_school_id: Optional[PyObjectId] = None
    schools: List[PyObjectId] = []
    accessible_classes: List[PyObjectId] = []
    iat: Optional[int] = None
    exp: Optional[int] = None


class SchoolClaims(BaseModel):
    """Payload of a school token."""

    typ: str = SCHOOL_TOKEN
    school_id: PyObjectId
    database_name: str
    name: Optional[str] = None
    username: Optional[str] = None
    logo: Optional[str] = None
    creator_id: Optional[PyObjectId] = None
    iat: Optional[int] = None
    exp: Optional[int] = None


class Principal(BaseModel):
    """Claims found on the request: either, both or neither may be present."""

    user: Optional[UserClaims] = None
    school: Optional[SchoolClaims] = None

    @property
    def user_id(self) -> Optional[PyObjectId]:
        return self.user.user_id if self.user else None


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: Optional[str] = None
    gender: Optional[Gender] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(StoredModel):
    """Public view of a user; never carries the password hash."""

    id: PyObjectId = Field(..., validation_alias=AliasChoices("_id", "id"))
    name: str
    email: str
    username: Optional[str] = None
    role: Optional[UserRole] = None
    image: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    age: Optional[UtcDatetime] = None
    address: Optional[Address] = None
    bio: Optional[str] = None
    disable: Optional[bool] = None
    current_school_id: Optional[PyObjectId] = None
    schools: List[PyObjectId] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


class SchoolTokenResponse(BaseModel):
    token: str
    school_id: PyObjectId
    database_name: str
