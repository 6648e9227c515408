from typing import List, Optional

from space_together.db.document import Document, IndexDef, PyObjectId, StoredModel, UtcDatetime


class Term(StoredModel):
    name: str
    order: int
    start_date: UtcDatetime
    end_date: UtcDatetime


class EducationYear(Document):
    """Academic year of a curriculum (a sector), split into ordered terms."""

    __collection__ = "education_years"
    __indexes__ = (
        IndexDef.on("curriculum_id", "label", unique=True),
        IndexDef.on("start_date"),
    )
    __searchable__ = ("label",)

    curriculum_id: PyObjectId
    label: str
    start_date: UtcDatetime
    end_date: UtcDatetime
    terms: List[Term] = []
    created_by: Optional[PyObjectId] = None
