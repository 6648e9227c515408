from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    SCHOOLSTAFF = "SCHOOLSTAFF"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class SchoolType(str, Enum):
    PUBLIC = "Public"
    PRIVATE = "Private"
    CHARTER = "Charter"
    INTERNATIONAL = "International"


class ClassType(str, Enum):
    PRIVATE = "Private"
    SCHOOL = "School"
    PUBLIC = "Public"


class ClassLevelType(str, Enum):
    MAIN_CLASS = "MainClass"
    SUB_CLASS = "SubClass"


class SubjectCategory(str, Enum):
    SCIENCE = "Science"
    TECHNOLOGY = "Technology"
    ENGINEERING = "Engineering"
    MATHEMATICS = "Mathematics"
    LANGUAGE = "Language"
    SOCIAL_SCIENCE = "SocialScience"
    ARTS = "Arts"
    TVET = "TVET"
    OTHER = "Other"


class GradingType(str, Enum):
    LETTER_GRADE = "LetterGrade"
    PERCENTAGE = "Percentage"
    POINTS = "Points"
    PASS_FAIL = "PassFail"


class SubjectRole(str, Enum):
    """Which kind of subject a grading scheme is meant for."""

    MAIN_SUBJECT = "MainSubject"
    CLASS_SUBJECT = "ClassSubject"


class TeacherType(str, Enum):
    REGULAR = "Regular"
    HEAD_TEACHER = "HeadTeacher"
    SUBJECT_TEACHER = "SubjectTeacher"
    DEPUTY = "Deputy"


class StudentStatus(str, Enum):
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    GRADUATED = "Graduated"
    LEFT = "Left"


class StaffType(str, Enum):
    DIRECTOR = "Director"
    HEAD_OF_STUDIES = "HeadOfStudies"


class JoinRole(str, Enum):
    TEACHER = "Teacher"
    STUDENT = "Student"
    STAFF = "Staff"

    @property
    def default_type(self) -> str:
        return {
            JoinRole.STUDENT: StudentStatus.ACTIVE.value,
            JoinRole.TEACHER: TeacherType.REGULAR.value,
            JoinRole.STAFF: StaffType.HEAD_OF_STUDIES.value,
        }[self]


class JoinStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    EXPIRED = "Expired"
    CANCELLED = "Cancelled"


class Weekday(str, Enum):
    MONDAY = "Mon"
    TUESDAY = "Tue"
    WEDNESDAY = "Wed"
    THURSDAY = "Thu"
    FRIDAY = "Fri"
    SATURDAY = "Sat"
    SUNDAY = "Sun"


WORKING_DAYS = [Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY, Weekday.FRIDAY]


class PeriodType(str, Enum):
    SUBJECT = "Subject"
    BREAK = "Break"
    LUNCH = "Lunch"
    FREE = "Free"


class SpecialDayType(str, Enum):
    NORMAL = "normal"
    HALF_DAY = "half_day"
    HOLIDAY = "holiday"
    EXAM_DAY = "exam_day"


class OverrideType(str, Enum):
    TRADE = "Trade"
    SECTOR = "Sector"


class EventType(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    CONNECTED = "connected"


class EntityKind(str, Enum):
    """Entity names used in domain events."""

    SYSTEM = "system"
    USER = "user"
    SCHOOL = "school"
    SECTOR = "sector"
    TRADE = "trade"
    MAIN_CLASS = "main_class"
    MAIN_SUBJECT = "main_subject"
    TEMPLATE_SUBJECT = "template_subject"
    GRADING_SCHEME = "grading_scheme"
    EDUCATION_YEAR = "education_year"
    CLASS = "class"
    CLASS_SUBJECT = "class_subject"
    TEACHER = "teacher"
    STUDENT = "student"
    SCHOOL_STAFF = "school_staff"
    CLASS_TIMETABLE = "class_timetable"
    SCHOOL_TIMETABLE = "school_timetable"
    JOIN_REQUEST = "join_request"
