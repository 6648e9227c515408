from datetime import datetime, timedelta, timezone
from typing import Dict

import pytest
from httpx import AsyncClient


NOW = datetime.now(timezone.utc)


def _day(offset: int) -> str:
    return (NOW + timedelta(days=offset)).isoformat()


def _term(name: str, order: int, start: int, end: int) -> dict:
    return {"name": name, "order": order, "start_date": _day(start), "end_date": _day(end)}


def _year(curriculum_id: str, **overrides) -> dict:
    payload = {
        "curriculum_id": curriculum_id,
        "label": "2025-2026",
        "start_date": _day(-30),
        "end_date": _day(300),
        "terms": [_term("Term 1", 1, -30, 60), _term("Term 2", 2, 61, 150), _term("Term 3", 3, 151, 300)],
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
async def curriculum(client: AsyncClient, admin) -> str:
    _, headers = admin
    response = await client.post("/sectors", json={"name": "REB", "username": "reb"}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["id"]


@pytest.mark.asyncio
async def test_current_year_and_term(client: AsyncClient, admin, curriculum: str) -> None:
    _, headers = admin
    missing = await client.get("/education-years/current", headers=headers)
    assert missing.status_code == 404

    created = await client.post("/education-years", json=_year(curriculum), headers=headers)
    assert created.status_code == 201, created.text
    year_id = created.json()["id"]

    current = await client.get("/education-years/current", params={"curriculum_id": curriculum}, headers=headers)
    assert current.status_code == 200
    assert current.json()["id"] == year_id

    term = await client.get(f"/education-years/{year_id}/current-term", headers=headers)
    assert term.status_code == 200
    assert term.json()["name"] == "Term 1"


@pytest.mark.asyncio
async def test_past_year_is_not_current(client: AsyncClient, admin, curriculum: str) -> None:
    _, headers = admin
    past = _year(curriculum, start_date=_day(-400), end_date=_day(-40), terms=[_term("Only", 1, -400, -40)])
    assert (await client.post("/education-years", json=past, headers=headers)).status_code == 201
    assert (await client.get("/education-years/current", headers=headers)).status_code == 404


@pytest.mark.asyncio
async def test_label_is_unique_per_curriculum(client: AsyncClient, admin, curriculum: str) -> None:
    _, headers = admin
    assert (await client.post("/education-years", json=_year(curriculum), headers=headers)).status_code == 201
    again = await client.post("/education-years", json=_year(curriculum), headers=headers)
    assert again.status_code == 400
    assert "already exists" in again.json()["message"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"start_date": _day(300), "end_date": _day(-30), "terms": []}, "must start before it ends"),
        ({"terms": [_term("Term 1", 1, -60, 30)]}, "falls outside the education year"),
        ({"terms": [_term("Term 1", 1, -30, 60), _term("Term 2", 2, 50, 150)]}, "overlap"),
        ({"terms": [_term("Term 1", 1, -30, 60), _term("Term 2", 1, 61, 150)]}, "Duplicate term order 1"),
    ],
)
async def test_calendar_rules(client: AsyncClient, admin, curriculum: str, overrides: Dict, message: str) -> None:
    _, headers = admin
    response = await client.post("/education-years", json=_year(curriculum, **overrides), headers=headers)
    assert response.status_code == 400
    assert message in response.json()["message"]


@pytest.mark.asyncio
async def test_unknown_curriculum(client: AsyncClient, admin) -> None:
    _, headers = admin
    response = await client.post("/education-years", json=_year("0" * 24), headers=headers)
    assert response.status_code == 404
