import pytest

from space_together.core.exceptions import ConflictError, NotFoundError, ValidationError
from space_together.core.models import Sector
from space_together.db.mongo import MongoManager
from space_together.db.repository import Repository, merge_match, paginate, search_match


def _sector(index: int) -> Sector:
    return Sector(name=f"Sector {index}", username=f"sector_{index}", description="catalog")


@pytest.mark.asyncio
async def test_list_paginates_and_filters(mongo: MongoManager) -> None:
    repo = Repository(mongo.main_db(), Sector)
    for index in range(7):
        await repo.create(_sector(index))

    page = await repo.list(limit=3, skip=3)
    assert page.total == 7
    assert page.total_pages == 3
    assert page.current_page == 2
    assert len(page.data) == 3

    filtered = await repo.list(filter_text="sector 4")
    assert [s.username for s in filtered.data] == ["sector_4"]

    matched = await repo.list(extra_match={"username": "sector_6"})
    assert matched.total == 1


@pytest.mark.asyncio
async def test_create_sets_timestamps_and_unique_conflict(mongo: MongoManager) -> None:
    repo = Repository(mongo.main_db(), Sector)
    created = await repo.create(_sector(1), unique_fields=("username",))
    assert created.id is not None
    assert created.created_at == created.updated_at

    with pytest.raises(ConflictError) as excinfo:
        await repo.create(_sector(1), unique_fields=("username",))
    assert "username" in excinfo.value.message


@pytest.mark.asyncio
async def test_partial_update_sets_and_unsets(mongo: MongoManager) -> None:
    repo = Repository(mongo.main_db(), Sector)
    created = await repo.create(_sector(1))
    stored = await repo.get(created.id)

    updated = await repo.update_and_fetch(created.id, {"name": "Renamed", "country": None}, unset=["description"])
    assert updated.name == "Renamed"
    assert updated.country == "Rwanda"
    assert updated.description is None
    assert updated.updated_at >= stored.updated_at
    assert updated.created_at == stored.created_at


@pytest.mark.asyncio
async def test_update_if_only_matches_condition(mongo: MongoManager) -> None:
    repo = Repository(mongo.main_db(), Sector)
    created = await repo.create(_sector(1))

    assert await repo.update_if(created.id, {"type": "Global"}, {"name": "Nope"}) is None
    changed = await repo.update_if(created.id, {"type": "Local"}, {"name": "Yes"})
    assert changed is not None and changed.name == "Yes"


@pytest.mark.asyncio
async def test_get_and_delete_missing(mongo: MongoManager) -> None:
    repo = Repository(mongo.main_db(), Sector)
    with pytest.raises(NotFoundError):
        await repo.get("65a000000000000000000001", "Sector")
    with pytest.raises(NotFoundError):
        await repo.delete("65a000000000000000000001")
    with pytest.raises(ValidationError):
        await repo.get("not-an-id")


def test_query_helpers() -> None:
    assert search_match(None, ["name"]) == {}
    assert search_match("a.b", ["name"]) == {"$or": [{"name": {"$regex": "a\\.b", "$options": "i"}}]}
    assert merge_match({"a": 1}, None) == {"a": 1}
    assert merge_match({"a": 1}, {"b": 2}) == {"$and": [{"a": 1}, {"b": 2}]}

    page = paginate([], total=0, limit=10, skip=0)
    assert page.total_pages == 0
    assert page.current_page == 1
