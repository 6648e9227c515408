"""Base document model shared by every stored entity.

Identifiers are ``bson.ObjectId`` in Python and in the store, and hex strings
on the wire. Datetimes are timezone-aware UTC in Python; naive values read back
from the store are interpreted as UTC.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Optional, Sequence, Tuple, Union

from bson import ObjectId
from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field, model_serializer
from pydantic_core import core_schema
from typing_extensions import Annotated

from space_together.core.exceptions import ValidationError


def _validate_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise ValueError("Invalid id: expected a 24 character hex string")


class _ObjectIdAnnotation:
    @classmethod
    def __get_pydantic_core_schema__(cls, _source_type, _handler):
        validator = core_schema.no_info_plain_validator_function(_validate_object_id)
        return core_schema.json_or_python_schema(
            json_schema=validator,
            python_schema=validator,
            serialization=core_schema.plain_serializer_function_ser_schema(str, when_used="json"),
        )

    @classmethod
    def __get_pydantic_json_schema__(cls, _core_schema, handler):
        return handler(core_schema.str_schema())


PyObjectId = Annotated[ObjectId, _ObjectIdAnnotation]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


def utc_now() -> datetime:
    """Current UTC time truncated to the store's millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def parse_object_id(value: Union[str, ObjectId], label: str = "id") -> ObjectId:
    try:
        return _validate_object_id(value)
    except ValueError:
        raise ValidationError(f"Invalid {label}: {value}")


@dataclass(frozen=True)
class IndexDef:
    """Declarative index: one field or a compound of fields, optionally unique."""

    keys: Tuple[str, ...]
    unique: bool = False
    sparse: bool = False
    partial: Optional[Dict[str, Any]] = field(default=None, hash=False)
    name: Optional[str] = None

    @classmethod
    def on(
        cls, *keys: str, unique: bool = False, sparse: bool = False, partial: Optional[Dict[str, Any]] = None
    ) -> "IndexDef":
        return cls(keys=tuple(keys), unique=unique, sparse=sparse, partial=partial)

    @property
    def index_name(self) -> str:
        return self.name or "_".join(f"{k}_1" for k in self.keys)


class StoredModel(BaseModel):
    """Base for stored shapes, embedded ones included. ``None`` values are omitted when dumping."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True, extra="ignore")

    @model_serializer(mode="wrap")
    def _omit_none(self, handler):
        data = handler(self)
        return {key: value for key, value in data.items() if value is not None}


class Document(StoredModel):
    """A top-level stored entity living in ``__collection__``."""

    __collection__: ClassVar[str] = ""
    __indexes__: ClassVar[Sequence[IndexDef]] = ()
    __searchable__: ClassVar[Sequence[str]] = ("name",)

    id: Optional[PyObjectId] = Field(None, validation_alias=AliasChoices("_id", "id"))
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None

    def to_document(self) -> dict:
        """Storage form: ObjectIds preserved, ``_id`` key, no ``None`` values."""
        data = self.model_dump()
        if "id" in data:
            data["_id"] = data.pop("id")
        return data

    def to_response(self) -> dict:
        """Wire form: string ids, ISO datetimes, no ``None`` values."""
        return self.model_dump(mode="json")
