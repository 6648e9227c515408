from typing import Optional

from space_together.core.enums import JoinRole, JoinStatus
from space_together.db.document import Document, IndexDef, PyObjectId, UtcDatetime


class JoinSchoolRequest(Document):
    """Invitation for an e-mail address to join a school in a given role."""

    __collection__ = "join_school_requests"
    __indexes__ = (
        IndexDef.on("email", "school_id", "status"),
        IndexDef.on("school_id"),
        IndexDef.on("status", "expires_at"),
        IndexDef.on("invited_user_id"),
    )
    __searchable__ = ("email", "type", "message")

    school_id: PyObjectId
    invited_user_id: Optional[PyObjectId] = None
    email: str
    role: JoinRole
    type: str
    class_id: Optional[PyObjectId] = None
    message: Optional[str] = None
    status: JoinStatus = JoinStatus.PENDING
    sent_by: Optional[PyObjectId] = None
    sent_at: Optional[UtcDatetime] = None
    responded_at: Optional[UtcDatetime] = None
    expires_at: Optional[UtcDatetime] = None
