from typing import List, Optional

from pydantic import EmailStr, Field

from space_together.core.enums import Gender, StaffType, StudentStatus, TeacherType
from space_together.core.models import ClassSubject, SchoolClass, Student, Teacher
from space_together.core.schemas import RequestModel
from space_together.db.document import PyObjectId


class MemberCreate(RequestModel):
    user_id: Optional[PyObjectId] = None
    school_id: Optional[PyObjectId] = Field(None, description="Defaults to the school of the school token")
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    image: Optional[str] = None
    is_active: bool = True
    tags: List[str] = []


class MemberUpdate(RequestModel):
    user_id: Optional[PyObjectId] = None
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    image: Optional[str] = None
    is_active: Optional[bool] = None
    tags: Optional[List[str]] = None


class TeacherCreate(MemberCreate):
    type: TeacherType = TeacherType.REGULAR
    class_ids: List[PyObjectId] = []
    subject_ids: List[PyObjectId] = []


class TeacherUpdate(MemberUpdate):
    type: Optional[TeacherType] = None
    class_ids: Optional[List[PyObjectId]] = None
    subject_ids: Optional[List[PyObjectId]] = None


class StudentCreate(MemberCreate):
    class_id: Optional[PyObjectId] = None
    registration_number: Optional[str] = Field(None, description="Generated when omitted")
    admission_year: Optional[int] = None
    status: StudentStatus = StudentStatus.ACTIVE


class StudentUpdate(MemberUpdate):
    class_id: Optional[PyObjectId] = None
    registration_number: Optional[str] = None
    admission_year: Optional[int] = None
    status: Optional[StudentStatus] = None


class StaffCreate(MemberCreate):
    type: StaffType = StaffType.HEAD_OF_STUDIES


class StaffUpdate(MemberUpdate):
    type: Optional[StaffType] = None


class TeacherWithDetails(Teacher):
    classes: List[SchoolClass] = []
    subjects: List[ClassSubject] = []


class StudentWithDetails(Student):
    school_class: Optional[SchoolClass] = Field(None, alias="class")
