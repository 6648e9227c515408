from datetime import datetime, timedelta, timezone
from typing import Dict

import pytest
from httpx import AsyncClient


def _day(offset: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=offset)).isoformat()


@pytest.fixture()
async def current_year(client: AsyncClient, admin) -> dict:
    """A running education year whose second term is the current one."""
    _, headers = admin
    sector = await client.post("/sectors", json={"name": "REB", "username": "reb"}, headers=headers)
    assert sector.status_code == 201, sector.text
    start, end = _day(-120), _day(200)
    payload = {
        "curriculum_id": sector.json()["id"],
        "label": "2025-2026",
        "start_date": start,
        "end_date": end,
        "terms": [
            {"name": "Term 1", "order": 1, "start_date": start, "end_date": _day(-31)},
            {"name": "Term 2", "order": 2, "start_date": _day(-30), "end_date": _day(60)},
            {"name": "Term 3", "order": 3, "start_date": _day(61), "end_date": end},
        ],
    }
    response = await client.post("/education-years", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture()
async def class_with_subjects(client: AsyncClient, tenant_headers: Dict[str, str]) -> str:
    created = await client.post("/school/classes", json={"name": "S1A", "username": "s1a"}, headers=tenant_headers)
    assert created.status_code == 201, created.text
    class_id = created.json()["id"]
    for name, credits in (("Math", 4), ("English", 2), ("Art", 1)):
        subject = await client.post(
            "/school/class-subjects",
            json={"name": name, "class_id": class_id, "credits": credits},
            headers=tenant_headers,
        )
        assert subject.status_code == 201, subject.text
    return class_id


@pytest.mark.asyncio
async def test_generate_uses_running_year_and_term(
    client: AsyncClient, tenant_headers: Dict[str, str], current_year: dict, class_with_subjects: str
) -> None:
    body = {"class_id": class_with_subjects, "seed": 11}
    response = await client.post("/school/class-timetables/generate", json=body, headers=tenant_headers)
    assert response.status_code == 201, response.text
    timetable = response.json()
    assert timetable["education_year_id"] == current_year["id"]
    assert timetable["term_order"] == 2
    assert [day["day"] for day in timetable["weekly_schedule"]] == ["Mon", "Tue", "Wed", "Thu", "Fri"]

    again = await client.post("/school/class-timetables/generate", json=body, headers=tenant_headers)
    assert again.status_code == 400
    assert again.json()["message"] == "A timetable already exists for this class and term"

    listed = await client.get(f"/school/class-timetables/class/{class_with_subjects}", headers=tenant_headers)
    assert [t["term_order"] for t in listed.json()] == [2]


@pytest.mark.asyncio
async def test_generate_needs_subjects(
    client: AsyncClient, tenant_headers: Dict[str, str], current_year: dict
) -> None:
    created = await client.post("/school/classes", json={"name": "Empty", "username": "empty"}, headers=tenant_headers)
    body = {"class_id": created.json()["id"]}
    response = await client.post("/school/class-timetables/generate", json=body, headers=tenant_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "The class has no subjects to schedule"


@pytest.mark.asyncio
async def test_generate_without_running_year(
    client: AsyncClient, tenant_headers: Dict[str, str], class_with_subjects: str
) -> None:
    body = {"class_id": class_with_subjects}
    response = await client.post("/school/class-timetables/generate", json=body, headers=tenant_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_one_timetable_per_class_and_term(
    client: AsyncClient, tenant_headers: Dict[str, str], current_year: dict, class_with_subjects: str
) -> None:
    payload = {"class_id": class_with_subjects, "education_year_id": current_year["id"], "term_order": 1}
    first = await client.post("/school/class-timetables", json=payload, headers=tenant_headers)
    assert first.status_code == 201, first.text

    duplicate = await client.post("/school/class-timetables", json=payload, headers=tenant_headers)
    assert duplicate.status_code == 400
    assert duplicate.json()["message"] == "A timetable already exists for this class and term"

    next_term = await client.post(
        "/school/class-timetables", json={**payload, "term_order": 3}, headers=tenant_headers
    )
    assert next_term.status_code == 201, next_term.text

    moved = await client.put(
        f"/school/class-timetables/{next_term.json()['id']}", json={"term_order": 1}, headers=tenant_headers
    )
    assert moved.status_code == 400


@pytest.mark.asyncio
async def test_school_timetable_default_week(
    client: AsyncClient, tenant_headers: Dict[str, str], current_year: dict
) -> None:
    response = await client.post("/school/timetables/generate", headers=tenant_headers)
    assert response.status_code == 201, response.text
    timetable = response.json()
    assert timetable["academic_year_id"] == current_year["id"]

    week = {day["day"]: day for day in timetable["default_weekly_schedule"]}
    assert list(week) == ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    assert not week["Sat"]["is_school_day"]
    assert not week["Sun"]["is_school_day"]
    monday = week["Mon"]
    assert (monday["school_start_time"], monday["school_end_time"]) == ("08:30", "17:00")
    assert [b["start_time"] for b in monday["breaks"]] == ["10:20", "15:20"]
    assert monday["lunch"]["start_time"] == "13:00"

    current = await client.get("/school/timetables/current", headers=tenant_headers)
    assert current.json()["id"] == timetable["id"]

    again = await client.post("/school/timetables/generate", headers=tenant_headers)
    assert again.status_code == 400
    assert again.json()["message"] == "A school timetable already exists for this academic year"


@pytest.mark.asyncio
async def test_school_timetable_needs_running_year(client: AsyncClient, tenant_headers: Dict[str, str]) -> None:
    response = await client.post("/school/timetables/generate", headers=tenant_headers)
    assert response.status_code == 404
