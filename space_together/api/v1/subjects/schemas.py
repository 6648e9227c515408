from typing import List, Optional

from pydantic import Field

from space_together.core.enums import SubjectCategory
from space_together.core.models import TemplateTopic
from space_together.core.schemas import RequestModel
from space_together.db.document import PyObjectId


class MainSubjectCreate(RequestModel):
    name: str = Field(..., min_length=1)
    code: Optional[str] = Field(None, description="Generated when omitted")
    description: Optional[str] = None
    level: Optional[str] = None
    estimated_hours: int = Field(0, ge=0)
    credits: Optional[int] = Field(None, ge=0)
    category: SubjectCategory = SubjectCategory.OTHER
    main_class_ids: List[PyObjectId] = []
    prerequisites: List[PyObjectId] = []
    is_active: bool = True


class MainSubjectUpdate(RequestModel):
    name: Optional[str] = None
    code: Optional[str] = None
    description: Optional[str] = None
    level: Optional[str] = None
    estimated_hours: Optional[int] = Field(None, ge=0)
    credits: Optional[int] = Field(None, ge=0)
    category: Optional[SubjectCategory] = None
    main_class_ids: Optional[List[PyObjectId]] = None
    prerequisites: Optional[List[PyObjectId]] = None
    is_active: Optional[bool] = None


class TemplateSubjectCreate(RequestModel):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: SubjectCategory = SubjectCategory.OTHER
    estimated_hours: int = Field(0, ge=0)
    credits: int = Field(0, ge=0)
    prerequisites: List[PyObjectId] = Field([], description="Main classes this template belongs to")
    topics: List[TemplateTopic] = []


class TemplateSubjectUpdate(RequestModel):
    name: Optional[str] = None
    code: Optional[str] = None
    description: Optional[str] = None
    category: Optional[SubjectCategory] = None
    estimated_hours: Optional[int] = Field(None, ge=0)
    credits: Optional[int] = Field(None, ge=0)
    prerequisites: Optional[List[PyObjectId]] = None
    topics: Optional[List[TemplateTopic]] = None
