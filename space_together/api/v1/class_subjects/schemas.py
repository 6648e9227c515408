from typing import List, Optional

from pydantic import Field

from space_together.core.enums import SubjectCategory
from space_together.core.models import ClassSubject, SchoolClass, Teacher, TemplateTopic
from space_together.core.schemas import RequestModel
from space_together.db.document import PyObjectId


class ClassSubjectCreate(RequestModel):
    name: str = Field(..., min_length=1)
    code: Optional[str] = Field(None, description="Generated when omitted")
    description: Optional[str] = None
    class_id: PyObjectId
    school_id: Optional[PyObjectId] = None
    teacher_id: Optional[PyObjectId] = None
    main_subject_id: Optional[PyObjectId] = None
    category: SubjectCategory = SubjectCategory.OTHER
    estimated_hours: int = Field(0, ge=0)
    credits: Optional[int] = Field(None, ge=0)
    topics: List[TemplateTopic] = []
    is_active: bool = True


class ClassSubjectUpdate(RequestModel):
    name: Optional[str] = None
    code: Optional[str] = None
    description: Optional[str] = None
    class_id: Optional[PyObjectId] = None
    teacher_id: Optional[PyObjectId] = None
    main_subject_id: Optional[PyObjectId] = None
    category: Optional[SubjectCategory] = None
    estimated_hours: Optional[int] = Field(None, ge=0)
    credits: Optional[int] = Field(None, ge=0)
    topics: Optional[List[TemplateTopic]] = None
    is_active: Optional[bool] = None


class ClassSubjectWithDetails(ClassSubject):
    school_class: Optional[SchoolClass] = Field(None, alias="class")
    teacher: Optional[Teacher] = None
