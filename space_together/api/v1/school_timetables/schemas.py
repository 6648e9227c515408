from typing import List, Optional

from space_together.core.models import DailySchoolSchedule, SchoolEvent, TimetableOverride
from space_together.core.schemas import RequestModel
from space_together.db.document import PyObjectId


class SchoolTimetableCreate(RequestModel):
    academic_year_id: PyObjectId
    default_weekly_schedule: List[DailySchoolSchedule] = []
    overrides: List[TimetableOverride] = []
    events: List[SchoolEvent] = []


class SchoolTimetableUpdate(RequestModel):
    default_weekly_schedule: Optional[List[DailySchoolSchedule]] = None
    overrides: Optional[List[TimetableOverride]] = None
    events: Optional[List[SchoolEvent]] = None


class GenerateSchoolTimetableRequest(RequestModel):
    academic_year_id: Optional[PyObjectId] = None
