from typing import Any, Dict, Generic, Iterable, List, Optional, Tuple, TypeVar

from bson import ObjectId
from fastapi import Query
from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Paginated(BaseModel, Generic[T]):
    """Generic paginated response: a page of rows plus total and page info."""

    data: List[T]
    total: int = Field(..., ge=0, description="Total number of rows matching the query")
    total_pages: int = Field(..., ge=0)
    current_page: int = Field(..., ge=1)


class ListQuery(BaseModel):
    """Common list query parameters: text filter, paging and one structural match."""

    filter: Optional[str] = None
    limit: int = 50
    skip: int = 0
    field: Optional[str] = None
    value: Optional[str] = None

    def extra_match(self) -> Optional[Dict[str, Any]]:
        if not self.field or self.value is None:
            return None
        return {self.field: coerce_query_value(self.field, self.value)}


def coerce_query_value(field: str, value: str) -> Any:
    """Turn a query-string value into what is stored: ids, booleans, integers."""
    if (field == "_id" or field.endswith("_id")) and ObjectId.is_valid(value):
        return ObjectId(value)
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if value.lstrip("-").isdigit():
        return int(value)
    return value


def list_query(
    filter: Optional[str] = Query(None, description="Case-insensitive substring match on searchable fields"),
    limit: int = Query(50, ge=1),
    skip: int = Query(0, ge=0),
    field: Optional[str] = Query(None, description="Field name for an exact match"),
    value: Optional[str] = Query(None, description="Value for the exact match on `field`"),
) -> ListQuery:
    return ListQuery(filter=filter, limit=limit, skip=skip, field=field, value=value)


class MessageResponse(BaseModel):
    message: str


class CountResponse(BaseModel):
    count: int


class BulkItemError(BaseModel):
    index: int
    message: str


class RequestModel(BaseModel):
    """Base for request bodies. Enum fields hold their plain values."""

    model_config = ConfigDict(use_enum_values=True)


def split_partial(payload: BaseModel, exclude: Iterable[str] = ()) -> Tuple[Dict[str, Any], List[str]]:
    """Separate a partial update into fields to set and fields explicitly cleared with ``null``.

    Fields absent from the request are in neither.
    """
    data = payload.model_dump(exclude_unset=True, exclude=set(exclude))
    values = {key: value for key, value in data.items() if value is not None}
    unset = [key for key, value in data.items() if value is None]
    return values, unset
