from typing import Optional

from pydantic import Field

from space_together.core.schemas import RequestModel
from space_together.db.document import PyObjectId


class TradeCreate(RequestModel):
    name: str = Field(..., min_length=1)
    username: str
    type: str = Field(..., description="e.g. Nursery, Primary, OLevel, TVET")
    sector_id: Optional[PyObjectId] = None
    trade_id: Optional[PyObjectId] = Field(None, description="Parent trade")
    description: Optional[str] = None
    class_min: int = Field(1, ge=0)
    class_max: int = Field(1, ge=0)
    disable: Optional[bool] = None


class TradeUpdate(RequestModel):
    name: Optional[str] = None
    username: Optional[str] = None
    type: Optional[str] = None
    sector_id: Optional[PyObjectId] = None
    trade_id: Optional[PyObjectId] = None
    description: Optional[str] = None
    class_min: Optional[int] = Field(None, ge=0)
    class_max: Optional[int] = Field(None, ge=0)
    disable: Optional[bool] = None
