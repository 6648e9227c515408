from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from space_together.core.enums import Gender, UserRole
from space_together.core.models import Address
from space_together.core.schemas import RequestModel
from space_together.db.document import PyObjectId


class UserCreate(RequestModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    username: Optional[str] = None
    role: Optional[UserRole] = None
    image: Optional[str] = Field(None, description="Inline image data or an image URL")
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    age: Optional[datetime] = None
    address: Optional[Address] = None
    bio: Optional[str] = None


class UserUpdate(RequestModel):
    """Partial update. Omitted fields are kept; fields sent as null are cleared."""

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    username: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)
    role: Optional[UserRole] = None
    image: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    age: Optional[datetime] = None
    address: Optional[Address] = None
    bio: Optional[str] = None
    disable: Optional[bool] = None
    current_school_id: Optional[PyObjectId] = None
