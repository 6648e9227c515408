from typing import Dict

import pytest
from httpx import AsyncClient


async def _staff(client: AsyncClient, headers: Dict[str, str], index: int, staff_type: str):
    payload = {"name": f"Staff {index}", "email": f"staff{index}@demo.io", "type": staff_type}
    return await client.post("/school/staff", json=payload, headers=headers)


@pytest.mark.asyncio
async def test_one_director_per_school(client: AsyncClient, tenant_headers: Dict[str, str]) -> None:
    first = await _staff(client, tenant_headers, 1, "Director")
    assert first.status_code == 201, first.text

    second = await _staff(client, tenant_headers, 2, "Director")
    assert second.status_code == 400
    assert second.json()["message"] == "A school can have at most 1 Director staff member(s)"


@pytest.mark.asyncio
async def test_head_of_studies_cap(client: AsyncClient, tenant_headers: Dict[str, str]) -> None:
    for index in range(5):
        created = await _staff(client, tenant_headers, index, "HeadOfStudies")
        assert created.status_code == 201, created.text

    sixth = await _staff(client, tenant_headers, 5, "HeadOfStudies")
    assert sixth.status_code == 400
    assert "at most 5 HeadOfStudies" in sixth.json()["message"]

    count = await client.get("/school/staff/stats/count", headers=tenant_headers)
    assert count.json()["count"] == 5


@pytest.mark.asyncio
async def test_staff_type_change_respects_cap(client: AsyncClient, tenant_headers: Dict[str, str]) -> None:
    assert (await _staff(client, tenant_headers, 1, "Director")).status_code == 201
    head = await _staff(client, tenant_headers, 2, "HeadOfStudies")
    promoted = await client.put(
        f"/school/staff/{head.json()['id']}", json={"type": "Director"}, headers=tenant_headers
    )
    assert promoted.status_code == 400
