from typing import Dict

import pytest
from httpx import AsyncClient

from space_together.api.v1.members import service as members_service
from space_together.api.v1.members.schemas import StudentCreate, TeacherCreate
from space_together.api.v1.users import service as users_service
from space_together.auth.security import decode_access_token
from space_together.auth.services import sign_user_token
from space_together.core.enums import UserRole
from space_together.core.models import School
from space_together.db.mongo import MongoManager


async def _class(client: AsyncClient, headers: Dict[str, str], username: str) -> dict:
    payload = {"name": username.upper(), "username": username}
    response = await client.post("/school/classes", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _teacher_in_class(mongo: MongoManager, school: School, make_account, class_id: str):
    """A TEACHER account linked to ``school`` whose Teacher row owns ``class_id``."""
    user, _ = await make_account("teach@x.io", UserRole.TEACHER, "Tina Teacher")
    await users_service.add_school_to_user(mongo.main_db(), user.id, school.id)
    await members_service.create_teacher(
        mongo.tenant_db(school.database_name),
        TeacherCreate(user_id=user.id, name=user.name, email=user.email, class_ids=[class_id]),
        school_id=school.id,
    )
    user = await users_service.get_user(mongo.main_db(), user.id)
    token = await sign_user_token(mongo, user)
    return user, {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_student_cannot_write_classes(client: AsyncClient, admin, make_account) -> None:
    _, admin_headers = admin
    _, student_headers = await make_account("s@x.io", UserRole.STUDENT)
    created = await client.post("/classes", json={"name": "P1", "username": "p1"}, headers=admin_headers)
    assert created.status_code == 201, created.text
    class_id = created.json()["id"]

    assert (await client.delete(f"/classes/{class_id}", headers=student_headers)).status_code == 403
    updated = await client.put(f"/classes/{class_id}", json={"capacity": 5}, headers=student_headers)
    assert updated.status_code == 403
    merged = await client.put(f"/classes/{class_id}/merged", json={"capacity": 5}, headers=student_headers)
    assert merged.status_code == 403
    student_create = await client.post("/classes", json={"name": "P2", "username": "p2"}, headers=student_headers)
    assert student_create.status_code == 403
    items = [{"id": class_id, "update": {"capacity": 5}}]
    bulk = await client.put("/classes/bulk", json=items, headers=student_headers)
    assert bulk.status_code == 403

    still_there = await client.get(f"/classes/{class_id}", headers=student_headers)
    assert still_there.status_code == 200
    assert "capacity" not in still_there.json()


@pytest.mark.asyncio
async def test_school_writes_need_a_user_token(client: AsyncClient, scoped) -> None:
    token_only = scoped()
    assert (await client.get("/school/classes", headers=token_only)).status_code == 200
    response = await client.post("/school/classes", json={"name": "P1", "username": "p1"}, headers=token_only)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_teacher_token_lists_own_classes(
    client: AsyncClient, tenant_headers: Dict[str, str], school: School, mongo: MongoManager, make_account, scoped
) -> None:
    mine = await _class(client, tenant_headers, "mine")
    other = await _class(client, tenant_headers, "other")
    _, headers = await _teacher_in_class(mongo, school, make_account, mine["id"])

    claims = decode_access_token(headers["Authorization"])
    assert claims["accessible_classes"] == [mine["id"]]
    assert claims["current_school_id"] == str(school.id)

    refreshed = await client.post("/auth/refresh", headers=headers)
    assert refreshed.status_code == 200
    assert decode_access_token(refreshed.json()["token"])["accessible_classes"] == [mine["id"]]

    as_teacher = scoped(headers)
    allowed = await client.put(f"/school/classes/{mine['id']}", json={"capacity": 30}, headers=as_teacher)
    assert allowed.status_code == 200, allowed.text
    denied = await client.put(f"/school/classes/{other['id']}", json={"capacity": 30}, headers=as_teacher)
    assert denied.status_code == 403
    assert (await client.delete(f"/school/classes/{other['id']}", headers=as_teacher)).status_code == 403


@pytest.mark.asyncio
async def test_teacher_subject_access_follows_class(
    client: AsyncClient, tenant_headers: Dict[str, str], school: School, mongo: MongoManager, make_account, scoped
) -> None:
    mine = await _class(client, tenant_headers, "mine")
    other = await _class(client, tenant_headers, "other")
    _, headers = await _teacher_in_class(mongo, school, make_account, mine["id"])
    as_teacher = scoped(headers)

    subjects = []
    for class_id in (mine["id"], other["id"]):
        created = await client.post(
            "/school/class-subjects", json={"name": "Math", "class_id": class_id}, headers=tenant_headers
        )
        assert created.status_code == 201, created.text
        subjects.append(created.json()["id"])

    own = await client.put(f"/school/class-subjects/{subjects[0]}", json={"credits": 3}, headers=as_teacher)
    assert own.status_code == 200, own.text
    foreign = await client.put(f"/school/class-subjects/{subjects[1]}", json={"credits": 3}, headers=as_teacher)
    assert foreign.status_code == 403


@pytest.mark.asyncio
async def test_student_may_only_edit_own_record(
    client: AsyncClient, school: School, mongo: MongoManager, make_account, scoped
) -> None:
    tenant = mongo.tenant_db(school.database_name)
    me, my_headers = await make_account("me@x.io", UserRole.STUDENT, "Me Student")
    own = await members_service.create_student(
        tenant, StudentCreate(user_id=me.id, name=me.name, email=me.email), school_id=school.id
    )
    other = await members_service.create_student(
        tenant, StudentCreate(name="Someone Else", email="else@x.io"), school_id=school.id
    )
    as_student = scoped(my_headers)

    mine = await client.put(f"/school/students/{own.id}", json={"phone": "0788"}, headers=as_student)
    assert mine.status_code == 200, mine.text
    theirs = await client.put(f"/school/students/{other.id}", json={"phone": "0788"}, headers=as_student)
    assert theirs.status_code == 403
    assert (await client.delete(f"/school/students/{other.id}", headers=as_student)).status_code == 403
    created = await client.post("/school/students", json={"name": "New", "email": "new@x.io"}, headers=as_student)
    assert created.status_code == 403


@pytest.mark.asyncio
async def test_school_pending_requests_need_membership(client: AsyncClient, school: School, make_account) -> None:
    _, outsider = await make_account("out@x.io", UserRole.SCHOOLSTAFF)
    response = await client.get(f"/join-requests/school/{school.id}/pending", headers=outsider)
    assert response.status_code == 403
