"""Role entities inside a school: teachers, students and staff."""
from typing import List, Optional

from space_together.core.enums import Gender, StaffType, StudentStatus, TeacherType
from space_together.db.document import Document, IndexDef, PyObjectId

_HAS_USER = {"user_id": {"$type": "objectId"}}


class SchoolMember(Document):
    __searchable__ = ("name", "email", "phone")

    user_id: Optional[PyObjectId] = None
    school_id: Optional[PyObjectId] = None
    creator_id: Optional[PyObjectId] = None
    name: str
    email: str
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    image_id: Optional[str] = None
    image: Optional[str] = None
    is_active: bool = True
    tags: List[str] = []


class Teacher(SchoolMember):
    __collection__ = "teachers"
    __indexes__ = (
        IndexDef.on("user_id", "school_id", unique=True, partial=_HAS_USER),
        IndexDef.on("email"),
        IndexDef.on("class_ids"),
    )

    type: TeacherType = TeacherType.REGULAR
    class_ids: List[PyObjectId] = []
    subject_ids: List[PyObjectId] = []


class Student(SchoolMember):
    __collection__ = "students"
    __indexes__ = (
        IndexDef.on("user_id", "school_id", unique=True, partial=_HAS_USER),
        IndexDef.on("registration_number", unique=True, sparse=True),
        IndexDef.on("class_id"),
        IndexDef.on("email"),
    )
    __searchable__ = ("name", "email", "phone", "registration_number")

    class_id: Optional[PyObjectId] = None
    registration_number: Optional[str] = None
    admission_year: Optional[int] = None
    status: StudentStatus = StudentStatus.ACTIVE


class SchoolStaff(SchoolMember):
    __collection__ = "school_staff"
    __indexes__ = (
        IndexDef.on("user_id", "school_id", unique=True, partial=_HAS_USER),
        IndexDef.on("type"),
        IndexDef.on("email"),
    )

    type: StaffType = StaffType.HEAD_OF_STUDIES
