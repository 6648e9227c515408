from typing import List, Optional

from space_together.core.enums import SubjectCategory
from space_together.core.models.subject import TemplateTopic
from space_together.db.document import Document, IndexDef, PyObjectId


class ClassSubject(Document):
    """A subject taught in one class of a school (tenant database)."""

    __collection__ = "class_subjects"
    __indexes__ = (
        IndexDef.on("code", unique=True),
        IndexDef.on("class_id"),
        IndexDef.on("teacher_id"),
    )
    __searchable__ = ("name", "code", "description")

    name: str
    code: str
    description: Optional[str] = None
    class_id: Optional[PyObjectId] = None
    school_id: Optional[PyObjectId] = None
    teacher_id: Optional[PyObjectId] = None
    main_subject_id: Optional[PyObjectId] = None
    category: SubjectCategory = SubjectCategory.OTHER
    estimated_hours: int = 0
    credits: Optional[int] = None
    topics: List[TemplateTopic] = []
    created_by: Optional[PyObjectId] = None
    is_active: bool = True
