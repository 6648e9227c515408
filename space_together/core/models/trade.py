from typing import Optional

from space_together.db.document import Document, IndexDef, PyObjectId


class Trade(Document):
    """A branch of study inside a sector (e.g. Primary, Software Development)."""

    __collection__ = "trades"
    __indexes__ = (
        IndexDef.on("username", unique=True),
        IndexDef.on("sector_id"),
        IndexDef.on("trade_id"),
    )
    __searchable__ = ("name", "username", "description", "type")

    sector_id: Optional[PyObjectId] = None
    trade_id: Optional[PyObjectId] = None
    name: str
    username: str
    description: Optional[str] = None
    class_min: int = 1
    class_max: int = 1
    type: str
    disable: Optional[bool] = None
