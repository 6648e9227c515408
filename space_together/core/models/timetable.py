"""Class timetables and school-wide timetables (tenant database)."""
from typing import List, Optional

from pydantic import Field, model_validator

from space_together.core.enums import OverrideType, PeriodType, SpecialDayType, Weekday
from space_together.core.validators import is_valid_hhmm
from space_together.db.document import Document, IndexDef, PyObjectId, StoredModel, UtcDatetime


class Period(StoredModel):
    period_id: Optional[PyObjectId] = None
    type: PeriodType
    order: int = Field(0, ge=0)
    start_offset: int = Field(0, ge=0, description="Minutes after the day's start_on")
    duration_minutes: int = Field(..., gt=0)
    subject_id: Optional[PyObjectId] = None
    teacher_id: Optional[PyObjectId] = None
    title: Optional[str] = None
    description: Optional[str] = None
    enabled: Optional[bool] = None

    @model_validator(mode="after")
    def _subject_only_on_subject_slots(self) -> "Period":
        is_subject = self.type == PeriodType.SUBJECT.value
        if is_subject and self.subject_id is None:
            raise ValueError("subject_id is required for a Subject period")
        if not is_subject and self.subject_id is not None:
            raise ValueError("subject_id is only allowed on a Subject period")
        return self


class WeekSchedule(StoredModel):
    day: Weekday
    is_holiday: bool = False
    start_on: Optional[str] = None
    periods: List[Period] = []

    @model_validator(mode="after")
    def _start_on_for_school_days(self) -> "WeekSchedule":
        if not self.is_holiday and not is_valid_hhmm(self.start_on or ""):
            raise ValueError(f"start_on must be HH:MM on a school day, got {self.start_on!r}")
        return self


class ClassTimetable(Document):
    __collection__ = "class_timetables"
    __indexes__ = (
        IndexDef.on("class_id", "education_year_id", "term_order", unique=True),
        IndexDef.on("class_id"),
    )
    __searchable__ = ()

    class_id: PyObjectId
    education_year_id: PyObjectId
    term_order: int = Field(..., ge=1)
    weekly_schedule: List[WeekSchedule] = []
    disabled: Optional[bool] = None
    created_by: Optional[PyObjectId] = None


class TimeBlock(StoredModel):
    title: str
    start_time: str
    end_time: str
    description: Optional[str] = None

    @model_validator(mode="after")
    def _valid_times(self) -> "TimeBlock":
        if not is_valid_hhmm(self.start_time) or not is_valid_hhmm(self.end_time):
            raise ValueError("start_time and end_time must be HH:MM")
        if self.start_time >= self.end_time:
            raise ValueError(f"{self.title}: start_time must be before end_time")
        return self


class DailySchoolSchedule(StoredModel):
    day: Weekday
    is_school_day: bool = True
    school_start_time: Optional[str] = None
    school_end_time: Optional[str] = None
    study_start_time: Optional[str] = None
    study_end_time: Optional[str] = None
    breaks: List[TimeBlock] = []
    lunch: Optional[TimeBlock] = None
    activities: List[TimeBlock] = []
    special_type: SpecialDayType = SpecialDayType.NORMAL


class TimetableOverride(StoredModel):
    id: str
    type: OverrideType
    applies_to: List[PyObjectId] = []
    weekly_schedule: List[DailySchoolSchedule] = []


class SchoolEvent(StoredModel):
    event_id: str
    title: str
    description: Optional[str] = None
    start_date: UtcDatetime
    end_date: UtcDatetime


class SchoolTimetable(Document):
    __collection__ = "school_timetables"
    __indexes__ = (IndexDef.on("school_id", "academic_year_id", unique=True),)
    __searchable__ = ()

    school_id: PyObjectId
    academic_year_id: PyObjectId
    default_weekly_schedule: List[DailySchoolSchedule] = []
    overrides: List[TimetableOverride] = []
    events: List[SchoolEvent] = []
    created_by: Optional[PyObjectId] = None
