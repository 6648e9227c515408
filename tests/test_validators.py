import re

import pytest

from space_together.core.codes import (
    CODE_ALPHABET,
    CODE_LENGTH,
    generate_code,
    generate_registration_number,
    generate_username,
    slugify,
)
from space_together.core.exceptions import InternalError, ValidationError
from space_together.core.validators import (
    hhmm_to_minutes,
    minutes_to_hhmm,
    validate_email,
    validate_hhmm,
    validate_username,
)
from space_together.db.relations import RelationSet, relation_pipeline


def test_email_is_trimmed_and_lowercased() -> None:
    assert validate_email("  Jane.Doe@Example.COM ") == "jane.doe@example.com"
    with pytest.raises(ValidationError):
        validate_email("jane@")


@pytest.mark.parametrize("username", ["", "Upper", "has space", "dash-ed"])
def test_bad_usernames(username: str) -> None:
    with pytest.raises(ValidationError):
        validate_username(username)


def test_hhmm_helpers() -> None:
    assert validate_hhmm("07:30") == "07:30"
    assert hhmm_to_minutes("08:20") == 500
    assert minutes_to_hhmm(500) == "08:20"
    assert minutes_to_hhmm(24 * 60 + 5) == "00:05"
    with pytest.raises(ValidationError):
        validate_hhmm("24:00")


def test_slugify() -> None:
    assert slugify("Primary 1 General 2026-2027") == "primary_1_general_2026_2027"
    assert slugify("  --  ") == ""


@pytest.mark.asyncio
async def test_generate_code_retries_on_collision() -> None:
    seen = []

    async def exists(code: str) -> bool:
        seen.append(code)
        return len(seen) < 3

    code = await generate_code(exists)
    assert len(seen) == 3
    assert code == seen[-1]
    assert len(code) == CODE_LENGTH
    assert set(code) <= set(CODE_ALPHABET)


@pytest.mark.asyncio
async def test_generate_code_gives_up() -> None:
    async def always(_: str) -> bool:
        return True

    with pytest.raises(InternalError):
        await generate_code(always, max_attempts=3)


@pytest.mark.asyncio
async def test_generate_username_falls_back_to_random_suffix() -> None:
    async def always(_: str) -> bool:
        return True

    username = await generate_username("Jane Doe", always, max_attempts=2)
    assert re.fullmatch(r"jane_doe_[0-9a-f]{8}", username)


def test_registration_number_format() -> None:
    assert re.fullmatch(r"demo-2026-\d{4}", generate_registration_number("demo", 2026))


def test_relation_pipeline_stage_order() -> None:
    pipeline = relation_pipeline(RelationSet.JOIN_REQUEST_DETAILS, match={"status": "Pending"}, sort={"sent_at": -1})
    stages = [next(iter(stage)) for stage in pipeline]
    assert stages[:3] == ["$match", "$sort", "$addFields"]
    assert stages[-1] == "$project"
    assert stages.count("$lookup") == 3

    hidden = pipeline[-1]["$project"]
    assert hidden["sender.password_hash"] == 0
    assert hidden["__school_ref"] == 0


def test_reverse_relations_skip_id_conversion() -> None:
    pipeline = relation_pipeline(RelationSet.CLASS_DETAILS)
    conversions = pipeline[0]["$addFields"]
    assert "__students_ref" not in conversions
    assert "__parent_class_ref" in conversions
    students = next(s for s in pipeline if s.get("$lookup", {}).get("as") == "students")
    assert students["$lookup"]["localField"] == "_id"
    assert students["$lookup"]["foreignField"] == "class_id"
