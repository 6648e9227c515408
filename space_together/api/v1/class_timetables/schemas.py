from typing import List, Optional

from pydantic import BaseModel, Field

from space_together.core.enums import WORKING_DAYS, Weekday
from space_together.core.models import ClassTimetable, SchoolClass, WeekSchedule
from space_together.core.schemas import RequestModel
from space_together.db.document import PyObjectId

from .generator import DaySlot


class ClassTimetableCreate(RequestModel):
    class_id: PyObjectId
    education_year_id: PyObjectId
    term_order: int = Field(..., ge=1)
    weekly_schedule: List[WeekSchedule] = []
    disabled: Optional[bool] = None


class ClassTimetableUpdate(RequestModel):
    education_year_id: Optional[PyObjectId] = None
    term_order: Optional[int] = Field(None, ge=1)
    weekly_schedule: Optional[List[WeekSchedule]] = None
    disabled: Optional[bool] = None


class StructureTemplate(BaseModel):
    day_template: List[DaySlot]


class GenerateTimetableRequest(RequestModel):
    class_id: PyObjectId
    education_year_id: Optional[PyObjectId] = Field(None, description="Defaults to the running education year")
    term_order: Optional[int] = Field(None, ge=1, description="Defaults to the running term, else 1")
    start_time: str = "08:00"
    days: List[Weekday] = Field(default_factory=lambda: list(WORKING_DAYS))
    day_template: Optional[List[DaySlot]] = None
    seed: Optional[int] = Field(None, description="Fixes the shuffle for reproducible output")


class ClassTimetableWithDetails(ClassTimetable):
    school_class: Optional[SchoolClass] = Field(None, alias="class")
