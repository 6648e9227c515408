from datetime import datetime
from typing import List, Optional

from pydantic import Field

from space_together.core.models import Term
from space_together.core.schemas import RequestModel
from space_together.db.document import PyObjectId


class EducationYearCreate(RequestModel):
    curriculum_id: PyObjectId = Field(..., description="Sector whose calendar this year belongs to")
    label: str = Field(..., min_length=1, description='e.g. "2025-2026"')
    start_date: datetime
    end_date: datetime
    terms: List[Term] = []


class EducationYearUpdate(RequestModel):
    curriculum_id: Optional[PyObjectId] = None
    label: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    terms: Optional[List[Term]] = None
