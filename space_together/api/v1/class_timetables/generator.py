"""Weighted weekly timetable generation.

Subjects are turned into a "deck" holding one entry per weekly slot, sized by
each subject's weight, then dealt round-robin into the days so a heavy subject
is spread over the week instead of piling up on one day.
"""
import math
import random
from typing import List, Optional, Sequence

from bson import ObjectId
from pydantic import BaseModel, Field

from space_together.core.enums import PeriodType, Weekday
from space_together.core.exceptions import ValidationError
from space_together.core.models import ClassSubject, ClassTimetable, Period, WeekSchedule
from space_together.core.validators import validate_hhmm

FREE_PERIOD_TITLE = "Free Period"


class DaySlot(BaseModel):
    """One slot of the day template."""

    period_type: PeriodType
    duration_minutes: int = Field(..., gt=0)
    title: Optional[str] = None


def default_day_template() -> List[DaySlot]:
    """Two subjects, a break, two subjects, lunch, two subjects."""
    return [
        DaySlot(period_type=PeriodType.SUBJECT, duration_minutes=40),
        DaySlot(period_type=PeriodType.SUBJECT, duration_minutes=40),
        DaySlot(period_type=PeriodType.BREAK, duration_minutes=20, title="Morning Break"),
        DaySlot(period_type=PeriodType.SUBJECT, duration_minutes=40),
        DaySlot(period_type=PeriodType.SUBJECT, duration_minutes=40),
        DaySlot(period_type=PeriodType.LUNCH, duration_minutes=60, title="Lunch"),
        DaySlot(period_type=PeriodType.SUBJECT, duration_minutes=40),
        DaySlot(period_type=PeriodType.SUBJECT, duration_minutes=40),
    ]


def subject_weight(subject: ClassSubject) -> int:
    if subject.credits is not None:
        return subject.credits
    if subject.estimated_hours is not None:
        return subject.estimated_hours
    return 1


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def build_subject_deck(subjects: Sequence[ClassSubject], capacity: int, rng: random.Random) -> List[ObjectId]:
    """Weighted, padded and shuffled list of exactly ``capacity`` subject ids."""
    usable = [s for s in subjects if s.id is not None and subject_weight(s) > 0]
    total_weight = sum(subject_weight(s) for s in usable)
    if total_weight <= 0:
        raise ValidationError("Cannot generate a timetable: the subjects' total weight is 0")

    deck: List[ObjectId] = []
    for subject in usable:
        count = _round_half_up(subject_weight(subject) / total_weight * capacity)
        deck.extend([subject.id] * count)
    while len(deck) < capacity:
        deck.append(rng.choice(usable).id)
    while len(deck) > capacity:
        deck.pop(rng.randrange(len(deck)))
    rng.shuffle(deck)
    return deck


def deal_into_days(deck: Sequence[ObjectId], days: int, rng: random.Random) -> List[List[ObjectId]]:
    buckets: List[List[ObjectId]] = [[] for _ in range(days)]
    for index, subject_id in enumerate(deck):
        buckets[index % days].append(subject_id)
    for bucket in buckets:
        rng.shuffle(bucket)
    return buckets


def _day_schedule(day: Weekday, start_time: str, template: Sequence[DaySlot], bucket: List[ObjectId]) -> WeekSchedule:
    pending = iter(bucket)
    periods: List[Period] = []
    offset = 0
    for order, slot in enumerate(template, start=1):
        period_type = PeriodType(slot.period_type)
        title = slot.title
        subject_id = None
        if period_type == PeriodType.SUBJECT:
            subject_id = next(pending, None)
            if subject_id is None:
                period_type, title = PeriodType.FREE, FREE_PERIOD_TITLE
        periods.append(Period(
            period_id=ObjectId(),
            type=period_type,
            order=order,
            start_offset=offset,
            duration_minutes=slot.duration_minutes,
            subject_id=subject_id,
            title=title,
            enabled=True,
        ))
        offset += slot.duration_minutes
    return WeekSchedule(day=day, is_holiday=False, start_on=start_time, periods=periods)


def generate_timetable(
    class_id: ObjectId,
    education_year_id: ObjectId,
    term_order: int,
    subjects: Sequence[ClassSubject],
    start_time: str,
    days: Sequence[Weekday],
    day_template: Sequence[DaySlot],
    rng: Optional[random.Random] = None,
) -> ClassTimetable:
    """Build an unsaved timetable; the same ``rng`` seed gives the same result."""
    rng = rng or random.Random()
    validate_hhmm(start_time, "start_time")
    if not days:
        raise ValidationError("Select at least one day to schedule")
    if not day_template:
        raise ValidationError("The day template must contain at least one slot")

    slots_per_day = sum(1 for slot in day_template if PeriodType(slot.period_type) == PeriodType.SUBJECT)
    capacity = slots_per_day * len(days)
    deck = build_subject_deck(subjects, capacity, rng)
    buckets = deal_into_days(deck, len(days), rng)
    weekly_schedule = [
        _day_schedule(Weekday(day), start_time, day_template, bucket) for day, bucket in zip(days, buckets)
    ]
    return ClassTimetable(
        class_id=class_id,
        education_year_id=education_year_id,
        term_order=term_order,
        weekly_schedule=weekly_schedule,
        disabled=False,
    )
