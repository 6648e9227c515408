from typing import Optional

from space_together.db.document import Document, IndexDef, PyObjectId


class MainClass(Document):
    """Catalog level within a trade, e.g. "Primary 1"."""

    __collection__ = "main_classes"
    __indexes__ = (
        IndexDef.on("username", unique=True),
        IndexDef.on("trade_id"),
    )
    __searchable__ = ("name", "username", "description")

    name: str
    username: str
    trade_id: Optional[PyObjectId] = None
    level: int
    description: Optional[str] = None
    disable: Optional[bool] = None
