from typing import List, Optional

from pydantic import BaseModel, Field

from space_together.core.enums import ClassLevelType, ClassType
from space_together.core.models import ClassSubject, MainClass, SchoolClass, Student, Teacher, Trade
from space_together.core.schemas import BulkItemError, RequestModel
from space_together.db.document import PyObjectId


class ClassCreate(RequestModel):
    name: str = Field(..., min_length=1)
    username: str
    code: Optional[str] = Field(None, description="Generated when omitted")
    school_id: Optional[PyObjectId] = None
    class_teacher_id: Optional[PyObjectId] = None
    type: ClassType = ClassType.SCHOOL
    level_type: ClassLevelType = ClassLevelType.MAIN_CLASS
    parent_class_id: Optional[PyObjectId] = None
    main_class_id: Optional[PyObjectId] = None
    trade_id: Optional[PyObjectId] = None
    is_active: bool = True
    image: Optional[str] = Field(None, description="Data URI, base64 payload or URL")
    description: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)
    subject: Optional[str] = None
    grade_level: Optional[str] = None
    tags: List[str] = []


class ClassUpdate(RequestModel):
    name: Optional[str] = None
    username: Optional[str] = None
    code: Optional[str] = None
    school_id: Optional[PyObjectId] = None
    class_teacher_id: Optional[PyObjectId] = None
    type: Optional[ClassType] = None
    level_type: Optional[ClassLevelType] = None
    parent_class_id: Optional[PyObjectId] = None
    main_class_id: Optional[PyObjectId] = None
    trade_id: Optional[PyObjectId] = None
    is_active: Optional[bool] = None
    image: Optional[str] = None
    description: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)
    subject: Optional[str] = None
    grade_level: Optional[str] = None
    tags: Optional[List[str]] = None


class ClassBulkUpdateItem(BaseModel):
    id: PyObjectId
    update: ClassUpdate


class BulkClassCreateResult(BaseModel):
    created: List[SchoolClass] = []
    errors: List[BulkItemError] = []


class BulkClassUpdateResult(BaseModel):
    updated: List[SchoolClass] = []
    errors: List[BulkItemError] = []


class ClassWithDetails(SchoolClass):
    parent_class: Optional[SchoolClass] = None
    subclasses: List[SchoolClass] = []
    class_teacher: Optional[Teacher] = None
    main_class: Optional[MainClass] = None
    trade: Optional[Trade] = None
    subjects: List[ClassSubject] = []
    students: List[Student] = []
