"""Catalog subjects: main subjects and the templates copied into schools."""
from typing import List, Optional

from space_together.core.enums import SubjectCategory
from space_together.db.document import Document, IndexDef, PyObjectId, StoredModel


class TemplateTopic(StoredModel):
    order: str
    title: str
    description: Optional[str] = None
    estimated_hours: Optional[float] = None
    credits: Optional[float] = None
    subtopics: List["TemplateTopic"] = []


class MainSubject(Document):
    __collection__ = "main_subjects"
    __indexes__ = (
        IndexDef.on("code", unique=True),
        IndexDef.on("main_class_ids"),
    )
    __searchable__ = ("name", "code", "description")

    name: str
    code: str
    description: Optional[str] = None
    level: Optional[str] = None
    estimated_hours: int = 0
    credits: Optional[int] = None
    category: SubjectCategory = SubjectCategory.OTHER
    main_class_ids: List[PyObjectId] = []
    prerequisites: List[PyObjectId] = []
    is_active: bool = True
    created_by: Optional[PyObjectId] = None


class TemplateSubject(Document):
    """Keyed by ``code``; ``prerequisites`` lists the main classes it belongs to."""

    __collection__ = "template_subjects"
    __indexes__ = (
        IndexDef.on("code", unique=True),
        IndexDef.on("prerequisites"),
    )
    __searchable__ = ("name", "code", "description")

    name: str
    code: str
    description: Optional[str] = None
    category: SubjectCategory = SubjectCategory.OTHER
    estimated_hours: int = 0
    credits: int = 0
    prerequisites: List[PyObjectId] = []
    topics: List[TemplateTopic] = []
    created_by: Optional[PyObjectId] = None
