"""Collections and indexes each database needs. Every step is idempotent."""
import logging
from typing import Iterable, Type

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import CollectionInvalid

from space_together.core.models import MAIN_MODELS, TENANT_MODELS
from space_together.db.document import Document
from space_together.db.repository import Repository

logger = logging.getLogger(__name__)


async def _ensure_collections(db: AsyncIOMotorDatabase, models: Iterable[Type[Document]]) -> None:
    existing = set(await db.list_collection_names())
    for model in models:
        name = model.__collection__
        if name in existing:
            continue
        try:
            await db.create_collection(name)
        except CollectionInvalid:
            # created concurrently
            pass
        logger.debug("Created collection %s.%s", db.name, name)


async def _ensure_schema(db: AsyncIOMotorDatabase, models: Iterable[Type[Document]]) -> None:
    models = tuple(models)
    await _ensure_collections(db, models)
    for model in models:
        await Repository(db, model).ensure_indexes()


async def ensure_tenant_schema(db: AsyncIOMotorDatabase) -> None:
    await _ensure_schema(db, TENANT_MODELS)


async def ensure_main_schema(db: AsyncIOMotorDatabase) -> None:
    await _ensure_schema(db, MAIN_MODELS)
