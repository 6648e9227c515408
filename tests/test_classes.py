from typing import Dict

import pytest
from httpx import AsyncClient

from space_together.core.models import School


@pytest.fixture()
def headers(tenant_headers: Dict[str, str]) -> Dict[str, str]:
    return tenant_headers


async def _create(client: AsyncClient, headers: Dict[str, str], **fields):
    payload = {"name": fields.pop("name", "P1"), "username": fields.pop("username", "p1"), **fields}
    return await client.post("/school/classes", json=payload, headers=headers)


@pytest.mark.asyncio
async def test_class_username_is_unique_per_tenant(client: AsyncClient, headers: Dict[str, str], school: School) -> None:
    first = await _create(client, headers)
    assert first.status_code == 201, first.text
    body = first.json()
    assert body["school_id"] == str(school.id)
    assert len(body["code"]) == 5

    again = await _create(client, headers)
    assert again.status_code == 400
    assert "username" in again.json()["message"]


@pytest.mark.asyncio
async def test_tenant_routes_need_school_token(client: AsyncClient, admin) -> None:
    response = await client.get("/school/classes", headers=admin[1])
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_subclass_links_to_parent(client: AsyncClient, headers: Dict[str, str]) -> None:
    parent = (await _create(client, headers, name="S1", username="s1")).json()
    child = await _create(
        client, headers, name="S1 A", username="s1_a", level_type="SubClass", parent_class_id=parent["id"]
    )
    assert child.status_code == 201, child.text
    child_id = child.json()["id"]

    stored_parent = (await client.get(f"/school/classes/{parent['id']}", headers=headers)).json()
    assert stored_parent["subclass_ids"] == [child_id]

    subclasses = (await client.get(f"/school/classes/{parent['id']}/subclasses", headers=headers)).json()
    assert [c["id"] for c in subclasses] == [child_id]

    blocked = await client.delete(f"/school/classes/{parent['id']}", headers=headers)
    assert blocked.status_code == 400

    deleted = await client.delete(f"/school/classes/{child_id}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Class deleted successfully"}
    stored_parent = (await client.get(f"/school/classes/{parent['id']}", headers=headers)).json()
    assert stored_parent.get("subclass_ids", []) == []


@pytest.mark.asyncio
async def test_subclass_requires_main_class_parent(client: AsyncClient, headers: Dict[str, str]) -> None:
    missing_parent = await _create(client, headers, name="Orphan", username="orphan", level_type="SubClass")
    assert missing_parent.status_code == 400

    ghost = await _create(
        client,
        headers,
        name="Ghost",
        username="ghost",
        level_type="SubClass",
        parent_class_id="65a000000000000000000001",
    )
    assert ghost.status_code == 404


@pytest.mark.asyncio
async def test_partial_update_and_merged_update(client: AsyncClient, headers: Dict[str, str]) -> None:
    created = (await _create(client, headers, description="first", capacity=20)).json()

    updated = await client.put(
        f"/school/classes/{created['id']}", json={"capacity": 25, "description": None}, headers=headers
    )
    assert updated.status_code == 200
    assert updated.json()["capacity"] == 25
    assert "description" not in updated.json()

    merged = await client.put(f"/school/classes/{created['id']}/merged", json={"name": "P1 Blue"}, headers=headers)
    assert merged.status_code == 200
    assert merged.json()["name"] == "P1 Blue"
    assert merged.json()["capacity"] == 25


@pytest.mark.asyncio
async def test_bulk_create_reports_per_item_errors(client: AsyncClient, headers: Dict[str, str]) -> None:
    payload = [
        {"name": "B1", "username": "b1"},
        {"name": "B1 again", "username": "b1"},
        {"name": "B2", "username": "Not Valid"},
        {"name": "B3", "username": "b3"},
    ]
    response = await client.post("/school/classes/bulk", json=payload, headers=headers)
    assert response.status_code == 200, response.text
    body = response.json()
    assert [c["username"] for c in body["created"]] == ["b1", "b3"]
    assert [e["index"] for e in body["errors"]] == [1, 2]


@pytest.mark.asyncio
async def test_bulk_validation_is_all_or_nothing(client: AsyncClient, headers: Dict[str, str]) -> None:
    payload = [{"name": "V1", "username": "v1"}, {"name": "V1 dup", "username": "v1"}]
    rejected = await client.post("/school/classes/bulk/validation", json=payload, headers=headers)
    assert rejected.status_code == 400
    assert rejected.json()["message"].startswith("Item 1: ")
    assert (await client.get("/school/classes/stats/count", headers=headers)).json() == {"count": 0}

    accepted = await client.post(
        "/school/classes/bulk/validation",
        json=[{"name": "V1", "username": "v1"}, {"name": "V2", "username": "v2"}],
        headers=headers,
    )
    assert accepted.status_code == 201
    assert len(accepted.json()) == 2


@pytest.mark.asyncio
async def test_bulk_update(client: AsyncClient, headers: Dict[str, str]) -> None:
    created = (await _create(client, headers)).json()
    items = [
        {"id": created["id"], "update": {"capacity": 40}},
        {"id": "65a000000000000000000001", "update": {"capacity": 10}},
    ]
    response = await client.put("/school/classes/bulk", json=items, headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["updated"][0]["capacity"] == 40
    assert body["errors"][0]["index"] == 1
