import pytest
from httpx import AsyncClient

from space_together.api.v1.users import service as users_service
from space_together.api.v1.users.schemas import UserUpdate
from space_together.auth.security import (
    create_access_token,
    create_school_token,
    decode_access_token,
    decode_school_token,
    hash_password,
    verify_password,
)
from space_together.core.enums import UserRole
from space_together.core.exceptions import UnauthenticatedError
from space_together.core.models import School
from space_together.db.mongo import MongoManager


def test_password_hash_round_trip() -> None:
    hashed = hash_password("StrongPass123")
    assert hashed != "StrongPass123"
    assert verify_password("StrongPass123", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("StrongPass123", "not-a-hash")


def test_user_token_round_trip_accepts_bearer_prefix() -> None:
    token = create_access_token(subject={"typ": "user", "user_id": "65a000000000000000000001"})
    claims = decode_access_token(f"Bearer {token}")
    assert claims["user_id"] == "65a000000000000000000001"
    assert claims["exp"] > claims["iat"]


def test_expired_token_is_rejected() -> None:
    token = create_access_token(subject={"typ": "user"}, expires_minutes=-1)
    with pytest.raises(UnauthenticatedError):
        decode_access_token(token)


def test_school_token_uses_its_own_decoder() -> None:
    token = create_school_token(subject={"typ": "school", "database_name": "school_x"})
    assert decode_school_token(token)["database_name"] == "school_x"


@pytest.mark.asyncio
async def test_register_login_and_me(client: AsyncClient) -> None:
    payload = {"name": "Jane Doe", "email": "Jane@School.io", "password": "StrongPass123"}
    register_resp = await client.post("/auth/register", json=payload)
    assert register_resp.status_code == 201, register_resp.text
    data = register_resp.json()
    assert data["user"]["email"] == "jane@school.io"
    assert data["user"]["role"] == "STUDENT"
    assert "password_hash" not in data["user"]
    assert data["user"]["username"].endswith(tuple("0123456789"))

    login_resp = await client.post("/auth/login", json={"email": "jane@school.io", "password": "StrongPass123"})
    assert login_resp.status_code == 200
    token = login_resp.json()["token"]

    me_resp = await client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me_resp.status_code == 200
    assert me_resp.json()["name"] == "Jane Doe"


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient) -> None:
    payload = {"name": "John", "email": "john@school.io", "password": "StrongPass123"}
    assert (await client.post("/auth/register", json=payload)).status_code == 201
    again = await client.post("/auth/register", json=payload)
    assert again.status_code == 400
    assert "email" in again.json()["message"]


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient) -> None:
    payload = {"name": "Ann", "email": "ann@school.io", "password": "StrongPass123"}
    await client.post("/auth/register", json=payload)
    response = await client.post("/auth/login", json={"email": "ann@school.io", "password": "nope"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_me_requires_token(client: AsyncClient) -> None:
    response = await client.get("/users/me")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_catalog_mutation_requires_admin(client: AsyncClient) -> None:
    payload = {"name": "Stu", "email": "stu@school.io", "password": "StrongPass123"}
    token = (await client.post("/auth/register", json=payload)).json()["token"]
    response = await client.post(
        "/sectors",
        json={"name": "Rwanda Education Board", "username": "reb"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_refresh_reflects_current_user(client: AsyncClient, mongo: MongoManager, make_account) -> None:
    user, headers = await make_account("renamed@school.io", UserRole.STUDENT, "Old Name")
    await users_service.update_user(mongo.main_db(), user.id, UserUpdate(name="New Name"))

    response = await client.post("/auth/refresh", headers=headers)
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["user"]["name"] == "New Name"
    assert decode_access_token(body["token"])["name"] == "New Name"
    assert (await client.post("/auth/refresh")).status_code == 401


@pytest.mark.asyncio
async def test_school_token_switches_current_school(
    client: AsyncClient, mongo: MongoManager, admin, school: School, make_account
) -> None:
    _, admin_headers = admin
    other = await client.post("/schools", json={"name": "Other", "username": "other"}, headers=admin_headers)
    assert other.status_code == 201, other.text
    other_id = other.json()["id"]

    user, headers = await make_account("member@school.io", UserRole.SCHOOLSTAFF)
    await users_service.add_school_to_user(mongo.main_db(), user.id, school.id)
    await users_service.add_school_to_user(mongo.main_db(), user.id, other_id)

    response = await client.post(f"/auth/schools/{other_id}/token", headers=headers)
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["school_id"] == other_id
    assert decode_school_token(body["token"])["database_name"] == body["database_name"]

    reloaded = await users_service.get_user(mongo.main_db(), user.id)
    assert str(reloaded.current_school_id) == other_id


@pytest.mark.asyncio
async def test_school_token_membership(client: AsyncClient, mongo: MongoManager, school: School, make_account) -> None:
    _, outsider = await make_account("outsider@school.io", UserRole.SCHOOLSTAFF)
    denied = await client.post(f"/auth/schools/{school.id}/token", headers=outsider)
    assert denied.status_code == 403
    assert denied.json()["message"] == "You are not a member of this school"

    operator, operator_headers = await make_account("operator@school.io", UserRole.ADMIN)
    granted = await client.post(f"/auth/schools/{school.id}/token", headers=operator_headers)
    assert granted.status_code == 200
    assert granted.json()["school_id"] == str(school.id)
    reloaded = await users_service.get_user(mongo.main_db(), operator.id)
    assert reloaded.current_school_id is None
