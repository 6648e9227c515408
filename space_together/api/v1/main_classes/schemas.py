from typing import Optional

from pydantic import Field

from space_together.core.schemas import RequestModel
from space_together.db.document import PyObjectId


class MainClassCreate(RequestModel):
    name: str = Field(..., min_length=1)
    username: str
    trade_id: PyObjectId
    level: int = Field(..., ge=1)
    description: Optional[str] = None
    disable: Optional[bool] = None


class MainClassUpdate(RequestModel):
    name: Optional[str] = None
    username: Optional[str] = None
    trade_id: Optional[PyObjectId] = None
    level: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None
    disable: Optional[bool] = None
