"""Generic typed repository over one collection."""
import logging
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Generic, Iterable, List, Mapping, Optional, Sequence, Type, TypeVar, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import BulkWriteError, DuplicateKeyError, OperationFailure

from space_together.core.exceptions import ConflictError, NotFoundError
from space_together.core.schemas import Paginated
from space_together.db.document import Document, IndexDef, parse_object_id, utc_now

logger = logging.getLogger(__name__)

D = TypeVar("D", bound=Document)

IdLike = Union[str, ObjectId]

_INDEX_EXISTS_CODES = {85, 86}  # IndexOptionsConflict, IndexKeySpecsConflict


def to_store(value: Any) -> Any:
    """Normalize a value for the store: BSON dates are naive UTC."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, Mapping):
        return {key: to_store(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_store(item) for item in value]
    return value


def paginate(data: List[Any], total: int, limit: int, skip: int) -> Paginated:
    limit = max(limit, 1)
    return Paginated(
        data=data,
        total=total,
        total_pages=math.ceil(total / limit),
        current_page=skip // limit + 1,
    )


def search_match(filter_text: Optional[str], fields: Iterable[str]) -> Dict[str, Any]:
    if not filter_text:
        return {}
    pattern = re.escape(filter_text)
    return {"$or": [{name: {"$regex": pattern, "$options": "i"}} for name in fields]}


def merge_match(*matches: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    parts = [m for m in matches if m]
    if not parts:
        return {}
    if len(parts) == 1:
        return parts[0]
    return {"$and": parts}


def _duplicate_field(exc: Union[DuplicateKeyError, BulkWriteError], fallback: Sequence[str]) -> str:
    details = exc.details or {}
    if isinstance(exc, BulkWriteError):
        errors = details.get("writeErrors") or [{}]
        details = errors[0]
    key_pattern = details.get("keyPattern") or details.get("keyValue")
    if key_pattern:
        return ", ".join(key_pattern.keys())
    message = str(details.get("errmsg") or exc)
    for name in fallback:
        if name in message:
            return name
    return ", ".join(fallback) or "key"


class Repository(Generic[D]):
    """Typed access to the collection declared by ``model.__collection__``."""

    def __init__(self, db: AsyncIOMotorDatabase, model: Type[D]) -> None:
        self.db = db
        self.model = model
        self.collection = db[model.__collection__]

    def _load(self, raw: Optional[Mapping[str, Any]]) -> Optional[D]:
        if raw is None:
            return None
        return self.model.model_validate(raw)

    async def ensure_indexes(self, defs: Optional[Sequence[IndexDef]] = None) -> None:
        for index in defs if defs is not None else self.model.__indexes__:
            kwargs: Dict[str, Any] = {"name": index.index_name}
            if index.unique:
                kwargs["unique"] = True
            if index.sparse:
                kwargs["sparse"] = True
            if index.partial:
                kwargs["partialFilterExpression"] = index.partial
            try:
                await self.collection.create_index([(key, ASCENDING) for key in index.keys], **kwargs)
            except OperationFailure as exc:
                if exc.code in _INDEX_EXISTS_CODES or "already exists" in str(exc):
                    continue
                raise

    async def _ensure_unique(self, unique_fields: Sequence[str]) -> None:
        if unique_fields:
            await self.ensure_indexes([IndexDef.on(name, unique=True) for name in unique_fields])

    async def list(
        self,
        filter_text: Optional[str] = None,
        extra_match: Optional[Dict[str, Any]] = None,
        limit: int = 50,
        skip: int = 0,
        searchable_fields: Optional[Sequence[str]] = None,
    ) -> Paginated:
        fields = searchable_fields if searchable_fields is not None else self.model.__searchable__
        match = merge_match(search_match(filter_text, fields), extra_match)
        pipeline: List[Dict[str, Any]] = []
        if match:
            pipeline.append({"$match": match})
        pipeline.append({"$sort": {"updated_at": DESCENDING}})
        page = await self.aggregate_paginated(pipeline, limit, skip)
        page.data = [self.model.model_validate(row) for row in page.data]
        return page

    async def find_one(self, filter: Dict[str, Any], extra_match: Optional[Dict[str, Any]] = None) -> Optional[D]:
        raw = await self.collection.find_one(to_store(merge_match(filter, extra_match)))
        return self._load(raw)

    async def find_by_id(self, id: IdLike) -> Optional[D]:
        return await self.find_one({"_id": parse_object_id(id)})

    async def get(self, id: IdLike, label: Optional[str] = None) -> D:
        found = await self.find_by_id(id)
        if found is None:
            raise NotFoundError(f"{label or self.model.__name__} not found")
        return found

    async def find_many(
        self,
        filter: Optional[Dict[str, Any]] = None,
        sort: Optional[List] = None,
        limit: int = 0,
    ) -> List[D]:
        cursor = self.collection.find(to_store(filter or {}))
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        return [self.model.model_validate(raw) async for raw in cursor]

    async def count(self, filter: Optional[Dict[str, Any]] = None) -> int:
        return await self.collection.count_documents(to_store(filter or {}))

    async def exists(self, filter: Dict[str, Any]) -> bool:
        return await self.collection.find_one(to_store(filter), {"_id": 1}) is not None

    async def create(self, doc: D, unique_fields: Sequence[str] = ()) -> D:
        await self._ensure_unique(unique_fields)
        now = utc_now()
        doc.id = doc.id or ObjectId()
        doc.created_at = now
        doc.updated_at = now
        try:
            await self.collection.insert_one(to_store(doc.to_document()))
        except DuplicateKeyError as exc:
            field = _duplicate_field(exc, unique_fields)
            raise ConflictError(f"A {self.model.__name__} with this {field} already exists", field=field)
        return doc

    async def create_many(self, docs: Sequence[D], unique_fields: Sequence[str] = ()) -> List[D]:
        """Insert all documents in order; the first duplicate aborts the batch."""
        if not docs:
            return []
        await self._ensure_unique(unique_fields)
        now = utc_now()
        for doc in docs:
            doc.id = doc.id or ObjectId()
            doc.created_at = now
            doc.updated_at = now
        try:
            await self.collection.insert_many([to_store(doc.to_document()) for doc in docs], ordered=True)
        except (BulkWriteError, DuplicateKeyError) as exc:
            field = _duplicate_field(exc, unique_fields)
            raise ConflictError(f"A {self.model.__name__} with this {field} already exists", field=field)
        return list(docs)

    async def _next_timestamp(self, oid: ObjectId) -> datetime:
        previous = await self.collection.find_one({"_id": oid}, {"updated_at": 1})
        if previous is None:
            raise NotFoundError(f"{self.model.__name__} not found")
        now = utc_now()
        before = previous.get("updated_at")
        if isinstance(before, datetime):
            if before.tzinfo is None:
                before = before.replace(tzinfo=timezone.utc)
            if now <= before:
                now = before + timedelta(milliseconds=1)
        return now

    async def update_and_fetch(
        self,
        id: IdLike,
        partial: Mapping[str, Any],
        unset: Iterable[str] = (),
        unique_fields: Sequence[str] = (),
    ) -> D:
        """Set the non-null keys of ``partial``, unset the names in ``unset``, return the result."""
        oid = parse_object_id(id)
        await self._ensure_unique(unique_fields)
        values = {key: value for key, value in partial.items() if value is not None and key not in ("_id", "id")}
        values["updated_at"] = await self._next_timestamp(oid)
        update: Dict[str, Any] = {"$set": to_store(values)}
        removed = [name for name in unset if name not in values and name not in ("_id", "id", "created_at")]
        if removed:
            update["$unset"] = {name: "" for name in removed}
        try:
            raw = await self.collection.find_one_and_update(
                {"_id": oid}, update, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError as exc:
            field = _duplicate_field(exc, unique_fields)
            raise ConflictError(f"A {self.model.__name__} with this {field} already exists", field=field)
        if raw is None:
            raise NotFoundError(f"{self.model.__name__} not found")
        return self.model.model_validate(raw)

    async def apply(self, id: IdLike, update: Dict[str, Any]) -> D:
        """Run a raw update document (``$addToSet``, ``$pull`` ...) and stamp ``updated_at``."""
        oid = parse_object_id(id)
        update = dict(update)
        update["$set"] = {**update.get("$set", {}), "updated_at": await self._next_timestamp(oid)}
        raw = await self.collection.find_one_and_update(
            {"_id": oid}, to_store(update), return_document=ReturnDocument.AFTER
        )
        if raw is None:
            raise NotFoundError(f"{self.model.__name__} not found")
        return self.model.model_validate(raw)

    async def update_if(self, id: IdLike, condition: Dict[str, Any], values: Mapping[str, Any]) -> Optional[D]:
        """Set ``values`` only while the document still matches ``condition``; ``None`` when it does not."""
        oid = parse_object_id(id)
        values = {**values, "updated_at": await self._next_timestamp(oid)}
        raw = await self.collection.find_one_and_update(
            to_store({"_id": oid, **condition}), {"$set": to_store(values)}, return_document=ReturnDocument.AFTER
        )
        return self._load(raw)

    async def replace(self, doc: D, unique_fields: Sequence[str] = ()) -> D:
        """Write the whole document over the stored one, keeping ``created_at``."""
        await self._ensure_unique(unique_fields)
        doc.updated_at = await self._next_timestamp(doc.id)
        try:
            result = await self.collection.replace_one({"_id": doc.id}, to_store(doc.to_document()))
        except DuplicateKeyError as exc:
            field = _duplicate_field(exc, unique_fields)
            raise ConflictError(f"A {self.model.__name__} with this {field} already exists", field=field)
        if result.matched_count == 0:
            raise NotFoundError(f"{self.model.__name__} not found")
        return doc

    async def delete(self, id: IdLike) -> None:
        result = await self.collection.delete_one({"_id": parse_object_id(id)})
        if result.deleted_count == 0:
            raise NotFoundError(f"{self.model.__name__} not found")

    async def delete_many(self, filter: Dict[str, Any]) -> int:
        result = await self.collection.delete_many(to_store(filter))
        return result.deleted_count

    async def update_many(self, filter: Dict[str, Any], values: Dict[str, Any]) -> int:
        values = {**values, "updated_at": utc_now()}
        result = await self.collection.update_many(to_store(filter), {"$set": to_store(values)})
        return result.modified_count

    async def aggregate(self, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        cursor = self.collection.aggregate(to_store(pipeline))
        return [row async for row in cursor]

    async def aggregate_paginated(self, pipeline: List[Dict[str, Any]], limit: int = 50, skip: int = 0) -> Paginated:
        limit = max(limit, 1)
        skip = max(skip, 0)
        rows = await self.aggregate(pipeline + [{"$skip": skip}, {"$limit": limit}])
        counted = await self.aggregate(pipeline + [{"$count": "total"}])
        total = counted[0]["total"] if counted else 0
        return paginate(rows, total, limit, skip)
