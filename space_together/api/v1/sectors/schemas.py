from typing import Optional

from pydantic import Field

from space_together.core.models import Curriculum
from space_together.core.schemas import RequestModel


class SectorCreate(RequestModel):
    name: str = Field(..., min_length=1)
    username: str
    description: Optional[str] = None
    logo: Optional[str] = None
    curriculum: Optional[Curriculum] = None
    country: str = "Rwanda"
    type: str = "Local"
    disable: Optional[bool] = None


class SectorUpdate(RequestModel):
    name: Optional[str] = None
    username: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[str] = None
    curriculum: Optional[Curriculum] = None
    country: Optional[str] = None
    type: Optional[str] = None
    disable: Optional[bool] = None
