"""Connection management: the shared main database plus one database per school."""
import asyncio
import logging
from typing import Dict, Optional, Union

from bson import ObjectId
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from space_together.core.config import settings
from space_together.core.exceptions import TenantProvisionFailed, ValidationError

logger = logging.getLogger(__name__)

TENANT_DB_PREFIX = "school_"


def tenant_db_name_for(school_id: Union[str, ObjectId]) -> str:
    return f"{TENANT_DB_PREFIX}{ObjectId(school_id)}"


class MongoManager:
    """Hands out database handles. Tenant handles are cached by name."""

    def __init__(self, client: AsyncIOMotorClient, main_db_name: str) -> None:
        self.client = client
        self.main_db_name = main_db_name
        self._main = client[main_db_name]
        self._tenants: Dict[str, AsyncIOMotorDatabase] = {}
        self._provision_lock = asyncio.Lock()

    def main_db(self) -> AsyncIOMotorDatabase:
        return self._main

    def tenant_db(self, name: str) -> AsyncIOMotorDatabase:
        if not name or not name.startswith(TENANT_DB_PREFIX):
            raise ValidationError(f"Invalid school database name: {name}")
        db = self._tenants.get(name)
        if db is None:
            db = self._tenants.setdefault(name, self.client[name])
        return db

    async def provision_tenant(self, name: str) -> AsyncIOMotorDatabase:
        """Create the tenant collections and indexes. Safe to call repeatedly."""
        from space_together.db.tenant_schema import ensure_tenant_schema

        async with self._provision_lock:
            db = self.tenant_db(name)
            try:
                await ensure_tenant_schema(db)
            except Exception as exc:
                logger.exception("Provisioning of tenant database %s failed", name)
                raise TenantProvisionFailed(f"TenantProvisionFailed: {exc}") from exc
            logger.info("Tenant database %s provisioned", name)
            return db

    def close(self) -> None:
        self.client.close()


_manager: Optional[MongoManager] = None


def get_mongo() -> MongoManager:
    global _manager
    if _manager is None:
        client = AsyncIOMotorClient(settings.mongodb_uri, tz_aware=True)
        _manager = MongoManager(client, settings.main_db_name)
    return _manager


async def get_main_db(mongo: MongoManager = Depends(get_mongo)) -> AsyncIOMotorDatabase:
    return mongo.main_db()
