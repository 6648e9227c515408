from typing import List

import pytest
from httpx import AsyncClient

from space_together.core.exceptions import ValidationError
from space_together.core.models import MainClass, School, Sector, TemplateSubject, Trade
from space_together.db.mongo import MongoManager, tenant_db_name_for
from space_together.db.repository import Repository


async def _seed_catalog(mongo: MongoManager) -> Trade:
    """One sector, one trade with two main classes, three template subjects per main class."""
    db = mongo.main_db()
    sector = await Repository(db, Sector).create(Sector(name="REB", username="reb"))
    trade = await Repository(db, Trade).create(
        Trade(name="General", username="general", type="Primary", sector_id=sector.id, class_min=1, class_max=2)
    )
    main_classes: List[MainClass] = []
    for level in (1, 2):
        main_classes.append(
            await Repository(db, MainClass).create(
                MainClass(name=f"Primary {level}", username=f"primary_{level}", trade_id=trade.id, level=level)
            )
        )
    templates = Repository(db, TemplateSubject)
    for main_class in main_classes:
        for subject in ("MATH", "ENG", "SCI"):
            await templates.create(
                TemplateSubject(
                    name=subject.title(),
                    code=f"{subject}{main_class.level}",
                    credits=2,
                    prerequisites=[main_class.id],
                )
            )
    return trade


@pytest.mark.asyncio
async def test_provision_tenant_is_idempotent(mongo: MongoManager) -> None:
    name = tenant_db_name_for("65a000000000000000000001")
    first = await mongo.provision_tenant(name)
    second = await mongo.provision_tenant(name)
    assert first is second
    collections = set(await first.list_collection_names())
    assert {"classes", "class_subjects", "teachers", "students", "school_staff"} <= collections


def test_tenant_db_rejects_foreign_names(mongo: MongoManager) -> None:
    with pytest.raises(ValidationError):
        mongo.tenant_db("admin")


@pytest.mark.asyncio
async def test_create_school_provisions_database(client: AsyncClient, school: School, admin) -> None:
    assert school.database_name == f"school_{school.id}"
    assert len(school.code) == 5
    assert school.is_active is True
    assert school.creator_id == admin[0].id


@pytest.mark.asyncio
async def test_create_school_rejects_bad_username_and_duplicates(client: AsyncClient, school: School, admin) -> None:
    _, headers = admin
    bad = await client.post("/schools", json={"name": "Bad", "username": "Bad Name"}, headers=headers)
    assert bad.status_code == 400

    dup = await client.post("/schools", json={"name": "Demo again", "username": "demo"}, headers=headers)
    assert dup.status_code == 400
    assert "username" in dup.json()["message"]


@pytest.mark.asyncio
async def test_bootstrap_with_no_matching_trades(client: AsyncClient, school: School, admin) -> None:
    _, headers = admin
    response = await client.post(f"/schools/{school.id}/bootstrap", json={"sector_ids": []}, headers=headers)
    assert response.status_code == 200
    assert response.json() == {"success": True, "created_classes": 0, "created_subjects": 0}


@pytest.mark.asyncio
async def test_bootstrap_requires_a_selection(client: AsyncClient, school: School, admin) -> None:
    _, headers = admin
    response = await client.post(f"/schools/{school.id}/bootstrap", json={}, headers=headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_bootstrap_creates_classes_and_subjects_once(
    client: AsyncClient, school: School, admin, mongo: MongoManager
) -> None:
    _, headers = admin
    trade = await _seed_catalog(mongo)

    response = await client.post(
        f"/schools/{school.id}/bootstrap", json={"trade_ids": [str(trade.id)]}, headers=headers
    )
    assert response.status_code == 200, response.text
    assert response.json() == {"success": True, "created_classes": 2, "created_subjects": 6}

    tenant = mongo.tenant_db(school.database_name)
    classes = await tenant["classes"].find({}).to_list(None)
    assert sorted(c["username"].split("_")[:3] for c in classes) == [
        ["primary", "1", "general"],
        ["primary", "2", "general"],
    ]
    assert all(c["capacity"] == 30 and c["trade_id"] == trade.id for c in classes)
    assert len({c["code"] for c in classes}) == 2
    assert await tenant["class_subjects"].count_documents({}) == 6

    again = await client.post(
        f"/schools/{school.id}/bootstrap", json={"trade_ids": [str(trade.id)]}, headers=headers
    )
    assert again.status_code == 400
    assert again.json()["message"] == "School academics already set up"
