"""Schools. Each school owns one tenant database named after its id."""
from typing import List, Optional

from space_together.core.enums import SchoolType
from space_together.core.models.user import Address
from space_together.db.document import Document, IndexDef, PyObjectId, StoredModel


class SchoolContact(StoredModel):
    phone: Optional[str] = None
    email: Optional[str] = None
    whatsapp: Optional[str] = None
    alt_phone: Optional[str] = None
    fax: Optional[str] = None


class SocialMedia(StoredModel):
    platform: str
    link: str


class School(Document):
    __collection__ = "schools"
    __indexes__ = (
        IndexDef.on("username", unique=True),
        IndexDef.on("code", unique=True),
        IndexDef.on("creator_id"),
    )
    __searchable__ = ("name", "username", "code", "description")

    creator_id: Optional[PyObjectId] = None
    username: str
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    logo_id: Optional[str] = None
    logo: Optional[str] = None
    school_type: Optional[SchoolType] = None
    curriculum: List[str] = []
    education_level: List[str] = []
    accreditation_number: Optional[str] = None
    affiliation: Optional[str] = None
    school_members: List[str] = []
    address: Optional[Address] = None
    contact: Optional[SchoolContact] = None
    website: Optional[str] = None
    social_media: List[SocialMedia] = []
    student_capacity: Optional[int] = None
    uniform_required: Optional[bool] = None
    established_year: Optional[int] = None
    is_active: bool = True
    database_name: Optional[str] = None
