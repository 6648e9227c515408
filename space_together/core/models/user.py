"""Platform users. Lives in the main database."""
from typing import List, Optional

from space_together.core.enums import Gender, UserRole
from space_together.db.document import Document, IndexDef, PyObjectId, StoredModel, UtcDatetime


class Address(StoredModel):
    country: Optional[str] = None
    province: Optional[str] = None
    district: Optional[str] = None
    sector: Optional[str] = None
    cell: Optional[str] = None
    village: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    google_map_url: Optional[str] = None


class User(Document):
    __collection__ = "users"
    __indexes__ = (
        IndexDef.on("email", unique=True),
        IndexDef.on("username", unique=True),
        IndexDef.on("role"),
    )
    __searchable__ = ("name", "email", "username", "phone")

    name: str
    email: str
    username: Optional[str] = None
    password_hash: Optional[str] = None
    role: Optional[UserRole] = None
    image_id: Optional[str] = None
    image: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    age: Optional[UtcDatetime] = None
    address: Optional[Address] = None
    bio: Optional[str] = None
    disable: Optional[bool] = None
    current_school_id: Optional[PyObjectId] = None
    schools: List[PyObjectId] = []
