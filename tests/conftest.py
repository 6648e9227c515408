import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from typing import AsyncGenerator, Dict, List, Optional, Tuple

import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from space_together.api.v1.users import service as users_service
from space_together.api.v1.users.schemas import UserCreate
from space_together.auth.security import create_school_token
from space_together.auth.services import sign_user_token
from space_together.core.enums import UserRole
from space_together.core.media import StoredImage, get_media_client, is_inline_image
from space_together.core.models import School, User
from space_together.db.mongo import MongoManager, get_mongo
from space_together.main import app


class FakeMediaClient:
    """Records uploads and deletions instead of calling the media service."""

    def __init__(self) -> None:
        self.uploaded: List[str] = []
        self.deleted: List[str] = []

    async def upload(self, data: str) -> StoredImage:
        if not is_inline_image(data):
            return StoredImage(url=data)
        public_id = f"img-{len(self.uploaded) + 1}"
        self.uploaded.append(public_id)
        return StoredImage(public_id=public_id, url=f"https://media.test/{public_id}.png")

    async def delete(self, public_id: Optional[str]) -> None:
        if public_id:
            self.deleted.append(public_id)


@pytest.fixture()
def mongo() -> MongoManager:
    return MongoManager(AsyncMongoMockClient(), "test_main")


@pytest.fixture()
def media() -> FakeMediaClient:
    return FakeMediaClient()


@pytest.fixture()
async def client(mongo: MongoManager, media: FakeMediaClient) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app and an in-memory Mongo."""
    app.dependency_overrides[get_mongo] = lambda: mongo
    app.dependency_overrides[get_media_client] = lambda: media
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def make_user(
    mongo: MongoManager,
    email: str,
    role: UserRole = UserRole.ADMIN,
    name: str = "Test User",
) -> Tuple[User, Dict[str, str]]:
    user = await users_service.create_user(
        mongo.main_db(),
        UserCreate(name=name, email=email, password="secret123", role=role),
    )
    token = await sign_user_token(mongo, user)
    return user, {"Authorization": f"Bearer {token}"}


def school_headers(school: School, user_headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    token = create_school_token(
        subject={
            "typ": "school",
            "school_id": str(school.id),
            "database_name": school.database_name,
            "name": school.name,
            "username": school.username,
        }
    )
    return {**(user_headers or {}), "X-School-Token": token}


@pytest.fixture()
async def admin(mongo: MongoManager) -> Tuple[User, Dict[str, str]]:
    return await make_user(mongo, "admin@school.io", UserRole.ADMIN, "Platform Admin")


@pytest.fixture()
async def school(client: AsyncClient, admin, mongo: MongoManager) -> School:
    _, headers = admin
    response = await client.post("/schools", json={"name": "Demo", "username": "demo"}, headers=headers)
    assert response.status_code == 201, response.text
    return School.model_validate(response.json())


@pytest.fixture()
def tenant_headers(school: School, admin) -> Dict[str, str]:
    """Admin user token plus the demo school's token."""
    return school_headers(school, admin[1])


@pytest.fixture()
def make_account(mongo: MongoManager):
    async def _make(email: str, role: UserRole = UserRole.STUDENT, name: str = "Test User"):
        return await make_user(mongo, email, role, name)

    return _make


@pytest.fixture()
def scoped(school: School):
    """Adds the demo school's token to any user's headers."""
    def _scoped(user_headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        return school_headers(school, user_headers)

    return _scoped
