import random
from collections import Counter

import pytest
from bson import ObjectId

from space_together.api.v1.class_timetables.generator import (
    FREE_PERIOD_TITLE,
    DaySlot,
    _day_schedule,
    build_subject_deck,
    deal_into_days,
    default_day_template,
    generate_timetable,
    subject_weight,
)
from space_together.core.enums import WORKING_DAYS, PeriodType
from space_together.core.exceptions import ValidationError
from space_together.core.models import ClassSubject


def _subject(name: str, **fields) -> ClassSubject:
    return ClassSubject(id=ObjectId(), name=name, code=name.upper(), **fields)


def _subject_grid(timetable):
    return [[p.subject_id for p in day.periods] for day in timetable.weekly_schedule]


@pytest.fixture()
def subjects():
    return [_subject("Math", credits=4), _subject("English", credits=2), _subject("Art", credits=1)]


def test_weight_prefers_credits_then_hours() -> None:
    assert subject_weight(_subject("A", credits=3, estimated_hours=10)) == 3
    assert subject_weight(_subject("B", estimated_hours=5)) == 5
    assert subject_weight(_subject("C", estimated_hours=0)) == 0


def test_deck_is_weighted_and_exactly_full(subjects) -> None:
    deck = build_subject_deck(subjects, 30, random.Random(7))
    counts = Counter(deck)
    assert len(deck) == 30
    math, english, art = (s.id for s in subjects)
    assert abs(counts[math] - 17) <= 1
    assert abs(counts[english] - 9) <= 1
    assert abs(counts[art] - 4) <= 1


def test_deck_pads_when_rounding_falls_short() -> None:
    even = [_subject(name, credits=1) for name in ("A", "B", "C")]
    deck = build_subject_deck(even, 10, random.Random(1))
    assert len(deck) == 10
    assert set(deck) == {s.id for s in even}


@pytest.mark.parametrize("seed", range(20))
def test_padding_never_picks_zero_weight_subjects(seed: int) -> None:
    weighted = [_subject(name, credits=1) for name in ("A", "B", "C")]
    idle = _subject("Idle", credits=0)
    deck = build_subject_deck(weighted + [idle], 10, random.Random(seed))
    assert len(deck) == 10
    assert idle.id not in deck


def test_zero_total_weight_is_rejected() -> None:
    with pytest.raises(ValidationError):
        build_subject_deck([_subject("Idle", credits=0)], 10, random.Random(0))


def test_dealing_spreads_round_robin() -> None:
    deck = [ObjectId() for _ in range(11)]
    buckets = deal_into_days(deck, 5, random.Random(3))
    assert [len(b) for b in buckets] == [3, 2, 2, 2, 2]
    assert sorted(map(str, sum(buckets, []))) == sorted(map(str, deck))


def test_generated_week_is_balanced(subjects) -> None:
    class_id, year_id = ObjectId(), ObjectId()
    timetable = generate_timetable(
        class_id, year_id, 1, subjects, "08:00", WORKING_DAYS, default_day_template(), random.Random(42)
    )
    assert timetable.class_id == class_id
    assert len(timetable.weekly_schedule) == 5
    for day in timetable.weekly_schedule:
        subject_periods = [p for p in day.periods if p.type == PeriodType.SUBJECT.value]
        assert len(subject_periods) == 6
        assert all(p.subject_id is not None for p in subject_periods)
        assert [p.order for p in day.periods] == list(range(1, 9))
        assert day.periods[2].title == "Morning Break"
        assert day.periods[2].start_offset == 80
        assert day.start_on == "08:00"


def test_same_seed_same_timetable(subjects) -> None:
    args = (ObjectId(), ObjectId(), 1, subjects, "08:00", WORKING_DAYS, default_day_template())
    first = generate_timetable(*args, rng=random.Random(5))
    second = generate_timetable(*args, rng=random.Random(5))
    assert _subject_grid(first) == _subject_grid(second)


def test_empty_slots_become_free_periods() -> None:
    template = [
        DaySlot(period_type=PeriodType.SUBJECT, duration_minutes=40),
        DaySlot(period_type=PeriodType.SUBJECT, duration_minutes=40),
    ]
    deck_day = generate_timetable(
        ObjectId(), ObjectId(), 1, [_subject("Solo", credits=1)], "09:00", WORKING_DAYS[:1], template,
        random.Random(0),
    ).weekly_schedule[0]
    assert all(p.type == PeriodType.SUBJECT.value for p in deck_day.periods)

    free_day = _day_schedule(WORKING_DAYS[0], "09:00", template, [])
    assert [p.type for p in free_day.periods] == [PeriodType.FREE.value, PeriodType.FREE.value]
    assert free_day.periods[0].title == FREE_PERIOD_TITLE


def test_invalid_inputs() -> None:
    subjects = [_subject("Math", credits=1)]
    with pytest.raises(ValidationError):
        generate_timetable(ObjectId(), ObjectId(), 1, subjects, "8am", WORKING_DAYS, default_day_template())
    with pytest.raises(ValidationError):
        generate_timetable(ObjectId(), ObjectId(), 1, subjects, "08:00", [], default_day_template())
