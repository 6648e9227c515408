from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from space_together.auth.schemas import UserResponse
from space_together.core.enums import JoinRole
from space_together.core.models import JoinSchoolRequest, School
from space_together.core.schemas import BulkItemError, RequestModel
from space_together.db.document import PyObjectId


class JoinRequestCreate(RequestModel):
    email: str
    role: JoinRole
    school_id: PyObjectId
    type: Optional[str] = Field(None, description="Role subtype, e.g. SubjectTeacher or Director")
    class_id: Optional[PyObjectId] = None
    message: Optional[str] = None
    expires_at: Optional[datetime] = Field(None, description="Defaults to now plus the configured lifetime")


class RespondRequest(BaseModel):
    request_id: PyObjectId


class RespondAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    CANCEL = "cancel"


class BulkRespondRequest(BaseModel):
    request_ids: List[PyObjectId] = Field(..., min_length=1)
    action: RespondAction


class BulkJoinCreateResult(BaseModel):
    created: List[JoinSchoolRequest] = []
    skipped: List[BulkItemError] = []


class BulkRespondResult(BaseModel):
    succeeded: List[JoinSchoolRequest] = []
    failed: List[BulkItemError] = []


class ExpirationUpdate(BaseModel):
    expires_at: datetime


class PendingCheck(BaseModel):
    has_pending: bool
    request: Optional[JoinSchoolRequest] = None


class SweepResult(BaseModel):
    count: int


class JoinRequestWithRelations(JoinSchoolRequest):
    school: Optional[School] = None
    invited_user: Optional[UserResponse] = None
    sender: Optional[UserResponse] = None
