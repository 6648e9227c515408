from typing import List, Optional

from pydantic import BaseModel, Field

from space_together.core.enums import SchoolType
from space_together.core.models import Address, SchoolContact, SocialMedia
from space_together.core.schemas import RequestModel
from space_together.db.document import PyObjectId


class SchoolCreate(RequestModel):
    name: str = Field(..., min_length=1)
    username: str = Field(..., description="Lowercase letters, digits and underscores")
    code: Optional[str] = Field(None, description="Generated when omitted")
    description: Optional[str] = None
    logo: Optional[str] = Field(None, description="Inline image data or an image URL")
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
    student_capacity: Optional[int] = Field(None, ge=0)
    uniform_required: Optional[bool] = None
    established_year: Optional[int] = None
    is_active: bool = True


class SchoolUpdate(RequestModel):
    """Partial update. ``database_name`` is fixed at creation and cannot be changed."""

    name: Optional[str] = None
    username: Optional[str] = None
    code: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[str] = None
    school_type: Optional[SchoolType] = None
    curriculum: Optional[List[str]] = None
    education_level: Optional[List[str]] = None
    accreditation_number: Optional[str] = None
    affiliation: Optional[str] = None
    school_members: Optional[List[str]] = None
    address: Optional[Address] = None
    contact: Optional[SchoolContact] = None
    website: Optional[str] = None
    social_media: Optional[List[SocialMedia]] = None
    student_capacity: Optional[int] = Field(None, ge=0)
    uniform_required: Optional[bool] = None
    established_year: Optional[int] = None
    is_active: Optional[bool] = None


class AcademicSetupRequest(BaseModel):
    sector_ids: Optional[List[PyObjectId]] = None
    trade_ids: Optional[List[PyObjectId]] = None


class AcademicSetupResult(BaseModel):
    success: bool = True
    created_classes: int = 0
    created_subjects: int = 0
