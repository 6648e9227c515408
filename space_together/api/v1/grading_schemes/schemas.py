from typing import Dict, Optional

from pydantic import BaseModel

from space_together.core.enums import GradingType, SubjectRole
from space_together.core.schemas import RequestModel
from space_together.db.document import PyObjectId


class GradingSchemeCreate(RequestModel):
    main_subject_id: PyObjectId
    scheme_type: GradingType
    grade_boundaries: Dict[str, float]
    assessment_weights: Dict[str, float]
    minimum_passing_grade: str
    role: SubjectRole = SubjectRole.MAIN_SUBJECT


class GradingSchemeUpdate(RequestModel):
    scheme_type: Optional[GradingType] = None
    grade_boundaries: Optional[Dict[str, float]] = None
    assessment_weights: Optional[Dict[str, float]] = None
    minimum_passing_grade: Optional[str] = None
    role: Optional[SubjectRole] = None


class PassingCheck(BaseModel):
    grade: str


class GradeResult(BaseModel):
    grade: str
    score: float


class PassingResult(BaseModel):
    grade: str
    passing: bool
