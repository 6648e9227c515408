"""Sectors: the top level of the academic catalog."""
from typing import Optional

from space_together.db.document import Document, IndexDef, StoredModel


class Curriculum(StoredModel):
    start: int
    end: int


class Sector(Document):
    __collection__ = "sectors"
    __indexes__ = (IndexDef.on("username", unique=True),)
    __searchable__ = ("name", "username", "description", "country", "type")

    name: str
    username: str
    logo_id: Optional[str] = None
    logo: Optional[str] = None
    description: Optional[str] = None
    curriculum: Optional[Curriculum] = None
    country: str = "Rwanda"
    type: str = "Local"
    disable: Optional[bool] = None
