"""Per-school classes (tenant database). Named SchoolClass to avoid the Python keyword."""
from typing import List, Optional

from pydantic import model_validator

from space_together.core.enums import ClassLevelType, ClassType
from space_together.db.document import Document, IndexDef, PyObjectId


class SchoolClass(Document):
    __collection__ = "classes"
    __indexes__ = (
        IndexDef.on("username", unique=True),
        IndexDef.on("code", unique=True),
        IndexDef.on("school_id"),
        IndexDef.on("parent_class_id"),
        IndexDef.on("main_class_id"),
    )
    __searchable__ = ("name", "username", "code", "description")

    name: str
    username: str
    code: Optional[str] = None
    school_id: Optional[PyObjectId] = None
    creator_id: Optional[PyObjectId] = None
    class_teacher_id: Optional[PyObjectId] = None
    type: ClassType = ClassType.SCHOOL
    level_type: ClassLevelType = ClassLevelType.MAIN_CLASS
    parent_class_id: Optional[PyObjectId] = None
    subclass_ids: List[PyObjectId] = []
    main_class_id: Optional[PyObjectId] = None
    trade_id: Optional[PyObjectId] = None
    is_active: bool = True
    image_id: Optional[str] = None
    image: Optional[str] = None
    description: Optional[str] = None
    capacity: Optional[int] = None
    subject: Optional[str] = None
    grade_level: Optional[str] = None
    tags: List[str] = []

    @model_validator(mode="after")
    def _parent_matches_level(self) -> "SchoolClass":
        if self.level_type == ClassLevelType.SUB_CLASS.value and self.parent_class_id is None:
            raise ValueError("parent_class_id is required for a SubClass")
        if self.level_type == ClassLevelType.MAIN_CLASS.value and self.parent_class_id is not None:
            raise ValueError("parent_class_id is only allowed on a SubClass")
        return self
