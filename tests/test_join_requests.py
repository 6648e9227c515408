import asyncio
from datetime import timedelta

import pytest
from httpx import AsyncClient

from space_together.api.v1.join_requests import service
from space_together.core.enums import UserRole
from space_together.core.models import JoinSchoolRequest, School
from space_together.db.document import utc_now
from space_together.db.mongo import MongoManager
from space_together.db.repository import Repository


async def _invite(client: AsyncClient, headers, school: School, email: str = "t@x.io", **fields):
    payload = {"email": email, "role": "Teacher", "school_id": str(school.id), "type": "SubjectTeacher", **fields}
    return await client.post("/join-requests", json=payload, headers=headers)


@pytest.mark.asyncio
async def test_join_request_happy_path(
    client: AsyncClient, admin, school: School, mongo: MongoManager, make_account
) -> None:
    _, headers = admin
    teacher_user, _ = await make_account("t@x.io", UserRole.TEACHER, "Tom Teacher")

    created = await _invite(client, headers, school)
    assert created.status_code == 201, created.text
    request = created.json()
    assert request["status"] == "Pending"
    assert request["invited_user_id"] == str(teacher_user.id)
    assert request["expires_at"] > request["sent_at"]

    accepted = await client.post("/join-requests/accept", json={"request_id": request["id"]}, headers=headers)
    assert accepted.status_code == 200, accepted.text
    assert accepted.json()["status"] == "Accepted"
    assert accepted.json()["responded_at"] is not None

    tenant = mongo.tenant_db(school.database_name)
    teachers = await tenant["teachers"].find({"user_id": teacher_user.id}).to_list(None)
    assert len(teachers) == 1
    assert teachers[0]["type"] == "SubjectTeacher"

    user = await mongo.main_db()["users"].find_one({"_id": teacher_user.id})
    assert school.id in user["schools"]
    assert user["current_school_id"] == school.id


@pytest.mark.asyncio
async def test_duplicate_pending_and_double_accept(
    client: AsyncClient, admin, school: School, make_account
) -> None:
    _, headers = admin
    await make_account("t@x.io", UserRole.TEACHER)
    request = (await _invite(client, headers, school)).json()

    duplicate = await _invite(client, headers, school)
    assert duplicate.status_code == 400
    assert "pending request already exists" in duplicate.json()["message"]

    first = await client.post("/join-requests/accept", json={"request_id": request["id"]}, headers=headers)
    assert first.status_code == 200
    second = await client.post("/join-requests/accept", json={"request_id": request["id"]}, headers=headers)
    assert second.status_code == 400
    assert "not pending" in second.json()["message"]

    member_again = await _invite(client, headers, school)
    assert member_again.status_code == 400
    assert member_again.json()["message"] == "User already belongs to this school"


@pytest.mark.asyncio
async def test_accept_without_account_keeps_request_pending(client: AsyncClient, admin, school: School) -> None:
    _, headers = admin
    request = (await _invite(client, headers, school, email="nobody@x.io")).json()
    response = await client.post("/join-requests/accept", json={"request_id": request["id"]}, headers=headers)
    assert response.status_code == 404
    stored = (await client.get(f"/join-requests/{request['id']}", headers=headers)).json()
    assert stored["status"] == "Pending"


@pytest.mark.asyncio
async def test_invitee_rejects_and_sender_cannot_reopen(
    client: AsyncClient, admin, school: School, make_account
) -> None:
    _, headers = admin
    _, student_headers = await make_account("s@x.io", UserRole.STUDENT)
    request = (await _invite(client, headers, school, email="s@x.io", role="Student", type=None)).json()
    assert request["type"] == "Active"

    pending = await client.get("/join-requests/my/pending", headers=student_headers)
    assert [r["id"] for r in pending.json()] == [request["id"]]

    rejected = await client.post("/join-requests/reject", json={"request_id": request["id"]}, headers=student_headers)
    assert rejected.status_code == 200
    assert rejected.json()["status"] == "Rejected"

    cancelled = await client.post("/join-requests/cancel", json={"request_id": request["id"]}, headers=headers)
    assert cancelled.status_code == 400


@pytest.mark.asyncio
async def test_stranger_cannot_respond(client: AsyncClient, admin, school: School, make_account) -> None:
    _, headers = admin
    _, stranger_headers = await make_account("other@x.io", UserRole.STUDENT)
    request = (await _invite(client, headers, school)).json()
    response = await client.post("/join-requests/reject", json={"request_id": request["id"]}, headers=stranger_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_bulk_create_and_bulk_respond(client: AsyncClient, admin, school: School, make_account) -> None:
    _, headers = admin
    await make_account("a@x.io", UserRole.STUDENT)
    payload = [
        {"email": "a@x.io", "role": "Student", "school_id": str(school.id)},
        {"email": "not-an-email", "role": "Student", "school_id": str(school.id)},
        {"email": "b@x.io", "role": "Staff", "school_id": str(school.id)},
    ]
    bulk = await client.post("/join-requests/bulk", json=payload, headers=headers)
    assert bulk.status_code == 200
    body = bulk.json()
    assert [r["email"] for r in body["created"]] == ["a@x.io", "b@x.io"]
    assert [s["index"] for s in body["skipped"]] == [1]

    ids = [r["id"] for r in body["created"]]
    responded = await client.post(
        "/join-requests/bulk/respond", json={"request_ids": ids, "action": "accept"}, headers=headers
    )
    assert responded.status_code == 200
    result = responded.json()
    assert [r["email"] for r in result["succeeded"]] == ["a@x.io"]
    assert [f["index"] for f in result["failed"]] == [1]

    counts = (await client.get("/join-requests/stats/count-by-status", headers=headers)).json()
    assert counts["Accepted"] == 1
    assert counts["Pending"] == 1


@pytest.mark.asyncio
async def test_check_pending_and_school_listing(client: AsyncClient, admin, school: School) -> None:
    _, headers = admin
    await _invite(client, headers, school, email="c@x.io")
    check = await client.get(
        "/join-requests/check-pending", params={"email": "C@x.io", "school_id": str(school.id)}, headers=headers
    )
    assert check.json()["has_pending"] is True

    listed = await client.get(f"/join-requests/school/{school.id}/pending", headers=headers)
    assert [r["email"] for r in listed.json()] == ["c@x.io"]


@pytest.mark.asyncio
async def test_expiration_update_and_sweeps(client: AsyncClient, admin, school: School, mongo: MongoManager) -> None:
    _, headers = admin
    request = (await _invite(client, headers, school)).json()

    past = (utc_now() - timedelta(days=1)).isoformat()
    rejected = await client.put(f"/join-requests/{request['id']}/expiration", json={"expires_at": past}, headers=headers)
    assert rejected.status_code == 400

    await Repository(mongo.main_db(), JoinSchoolRequest).update_and_fetch(
        request["id"], {"expires_at": utc_now() - timedelta(hours=1)}
    )
    expired = await client.post("/join-requests/expire", headers=headers)
    assert expired.json() == {"count": 1}
    stored = (await client.get(f"/join-requests/{request['id']}", headers=headers)).json()
    assert stored["status"] == "Expired"

    kept = await client.post("/join-requests/cleanup/30", headers=headers)
    assert kept.json() == {"count": 0}
    removed = await client.post("/join-requests/cleanup/0", headers=headers)
    assert removed.json() == {"count": 1}


@pytest.mark.asyncio
async def test_concurrent_accepts_have_one_winner(
    admin, school: School, mongo: MongoManager, make_account, client: AsyncClient
) -> None:
    _, headers = admin
    await make_account("t@x.io", UserRole.TEACHER)
    request = (await _invite(client, headers, school)).json()

    results = await asyncio.gather(
        service.accept_join_request(mongo, request["id"]),
        service.accept_join_request(mongo, request["id"]),
        return_exceptions=True,
    )
    winners = [r for r in results if isinstance(r, JoinSchoolRequest)]
    assert len(winners) == 1
    assert await mongo.tenant_db(school.database_name)["teachers"].count_documents({}) == 1
