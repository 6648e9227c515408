from typing import Dict, Optional

from space_together.core.enums import GradingType, SubjectRole
from space_together.db.document import Document, IndexDef, PyObjectId


class SubjectGradingScheme(Document):
    """How a subject's scores turn into grades.

    ``grade_boundaries`` maps a grade to the lowest score that earns it and
    ``assessment_weights`` maps an assessment category to its share of the
    final score, in percent.
    """

    __collection__ = "subject_grading_schemes"
    __indexes__ = (
        IndexDef.on("main_subject_id", "role", unique=True),
        IndexDef.on("scheme_type"),
    )
    __searchable__ = ("scheme_type", "minimum_passing_grade")

    main_subject_id: PyObjectId
    scheme_type: GradingType
    grade_boundaries: Dict[str, float]
    assessment_weights: Dict[str, float]
    minimum_passing_grade: str
    role: SubjectRole = SubjectRole.MAIN_SUBJECT
    created_by: Optional[PyObjectId] = None
