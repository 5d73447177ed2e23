# backend/booking_core/services/slots/calculator.py
"""
Slot generator: candidate start times for one day.

Produces per-candidate data:
  {"start": ISO start, "slots": [contiguous slot indices]}

Contains:
✓ duration → number of 15-minute slots (rounded up)
✓ interval → step between candidate starts (rounded up to whole slots)
✓ business window [start_slot, end_slot)

Does NOT contain:
✗ Busy slots (checked by are_slots_available / is_day_available)
✗ Schedules (callers pass bounds derived from services.schedules)
"""

from collections.abc import Iterable, Iterator
from math import ceil

from ...errors import ValidationError
from .quantizer import (
    BUSINESS_HOURS_END,
    BUSINESS_HOURS_START,
    SLOT_MINUTES,
    SLOTS_PER_DAY,
    slot_to_timestamp,
)

DEFAULT_INTERVAL_MINUTES = 15


def slots_needed(duration_minutes: int) -> int:
    if duration_minutes <= 0:
        raise ValidationError(f"Duration must be positive, got {duration_minutes}")
    return ceil(duration_minutes / SLOT_MINUTES)


def _step(interval_minutes: int | None) -> int:
    interval = interval_minutes or DEFAULT_INTERVAL_MINUTES
    if interval <= 0:
        raise ValidationError(f"Slot interval must be positive, got {interval}")
    return ceil(interval / SLOT_MINUTES)


def _candidate_runs(
    duration_minutes: int,
    interval_minutes: int | None,
    start_slot: int,
    end_slot: int,
) -> Iterator[list[int]]:
    needed = slots_needed(duration_minutes)
    step = _step(interval_minutes)
    for first in range(start_slot, end_slot - needed + 1, step):
        yield list(range(first, first + needed))


def generate_day_slots(
    date: str,
    duration_minutes: int,
    interval_minutes: int | None = None,
    start_slot: int = BUSINESS_HOURS_START,
    end_slot: int = BUSINESS_HOURS_END,
) -> list[dict]:
    """
    Enumerate candidate windows fully inside [start_slot, end_slot).

    Returns:
        List of {"start": ISO string, "slots": [slot indices]}.
    """
    return [
        {"start": slot_to_timestamp(date, run[0]), "slots": run}
        for run in _candidate_runs(duration_minutes, interval_minutes, start_slot, end_slot)
    ]


def are_slots_available(required: Iterable[int], busy: Iterable[int]) -> bool:
    """True iff no required slot is busy."""
    busy_set = busy if isinstance(busy, (set, frozenset)) else set(busy)
    return not any(slot in busy_set for slot in required)


def is_day_available(
    duration_minutes: int,
    busy: Iterable[int],
    interval_minutes: int | None = None,
    start_slot: int = BUSINESS_HOURS_START,
    end_slot: int = BUSINESS_HOURS_END,
) -> bool:
    """
    True iff at least one candidate window is free.

    Stops at the first fit; month views call this once per day.
    """
    busy_set = set(busy)
    for run in _candidate_runs(duration_minutes, interval_minutes, start_slot, end_slot):
        if are_slots_available(run, busy_set):
            return True
    return False


def expand_with_buffers(
    slots: list[int],
    buffer_before_minutes: int = 0,
    buffer_after_minutes: int = 0,
) -> list[int]:
    """Widen a contiguous run by buffer slots on each side, clipped to the day."""
    if not slots:
        return []
    before = ceil(max(buffer_before_minutes, 0) / SLOT_MINUTES)
    after = ceil(max(buffer_after_minutes, 0) / SLOT_MINUTES)
    first = max(slots[0] - before, 0)
    last = min(slots[-1] + after, SLOTS_PER_DAY - 1)
    return list(range(first, last + 1))
