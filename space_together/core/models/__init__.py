from space_together.core.models.class_subject import ClassSubject
from space_together.core.models.education_year import EducationYear, Term
from space_together.core.models.grading_scheme import SubjectGradingScheme
from space_together.core.models.join_request import JoinSchoolRequest
from space_together.core.models.main_class import MainClass
from space_together.core.models.members import SchoolMember, SchoolStaff, Student, Teacher
from space_together.core.models.school import School, SchoolContact, SocialMedia
from space_together.core.models.school_class import SchoolClass
from space_together.core.models.sector import Curriculum, Sector
from space_together.core.models.subject import MainSubject, TemplateSubject, TemplateTopic
from space_together.core.models.timetable import (
    ClassTimetable,
    DailySchoolSchedule,
    Period,
    SchoolEvent,
    SchoolTimetable,
    TimeBlock,
    TimetableOverride,
    WeekSchedule,
)
from space_together.core.models.trade import Trade
from space_together.core.models.user import Address, User

MAIN_MODELS = (
    User,
    School,
    Sector,
    Trade,
    MainClass,
    MainSubject,
    TemplateSubject,
    SubjectGradingScheme,
    EducationYear,
    JoinSchoolRequest,
)
TENANT_MODELS = (SchoolClass, ClassSubject, Teacher, Student, SchoolStaff, ClassTimetable, SchoolTimetable)
