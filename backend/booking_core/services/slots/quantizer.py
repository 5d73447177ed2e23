# backend/booking_core/services/slots/quantizer.py
"""
Time quantizer: epoch milliseconds <-> (UTC date, slot index).

The day is cut into 96 buckets of 15 minutes anchored at UTC midnight.
Stored busy_slots and slot_quantities depend on this exact indexing.
"""

import time
from datetime import date, datetime, timedelta, timezone

SLOT_MINUTES = 15
SLOT_DURATION_MS = SLOT_MINUTES * 60 * 1000
SLOTS_PER_DAY = 24 * 60 // SLOT_MINUTES  # 96
DAY_MS = 24 * 60 * 60 * 1000

BUSINESS_HOURS_START = 36  # 09:00
BUSINESS_HOURS_END = 68  # 17:00

_EPOCH = date(1970, 1, 1)
_EPOCH_DT = datetime(1970, 1, 1, tzinfo=timezone.utc)


def now_ms() -> int:
    return int(time.time() * 1000)


def timestamp_to_slot(timestamp: int) -> tuple[str, int]:
    """
    Map a timestamp to the slot containing it.

    Flooring: 14:07 lands in the 14:00 slot.

    Returns:
        (ISO date, slot index in [0, 96))
    """
    days, offset = divmod(int(timestamp), DAY_MS)
    day = _EPOCH + timedelta(days=days)
    slot = offset // SLOT_DURATION_MS
    return day.isoformat(), slot


def slot_to_millis(day: str | date, slot: int) -> int:
    """Start of a slot as epoch milliseconds."""
    if isinstance(day, str):
        day = date.fromisoformat(day)
    return (day - _EPOCH).days * DAY_MS + slot * SLOT_DURATION_MS


def slot_to_timestamp(day: str | date, slot: int) -> str:
    """Start of a slot as an ISO string, e.g. "2025-06-17T09:00:00.000Z"."""
    return millis_to_iso(slot_to_millis(day, slot))


def millis_to_iso(timestamp: int) -> str:
    dt = _EPOCH_DT + timedelta(milliseconds=int(timestamp))
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def iso_to_millis(value: str) -> int:
    """Parse an ISO timestamp ("Z" or explicit offset) into epoch millis."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - _EPOCH_DT) // timedelta(milliseconds=1)


def iso_to_slot(value: str) -> tuple[str, int]:
    return timestamp_to_slot(iso_to_millis(value))


def required_slots(start: int, end: int) -> dict[str, list[int]]:
    """
    Slots covered by the half-open interval [start, end), grouped by date.

    Strides are realigned to slot boundaries after the first step, so an
    unaligned start still covers every bucket it touches exactly once.
    Intervals crossing midnight yield one entry per calendar date.
    """
    slots: dict[str, list[int]] = {}
    current = int(start)

    while current < end:
        day, slot = timestamp_to_slot(current)
        day_slots = slots.setdefault(day, [])
        if slot not in day_slots:
            day_slots.append(slot)

        current += SLOT_DURATION_MS
        current -= current % SLOT_DURATION_MS

    for day_slots in slots.values():
        day_slots.sort()
    return slots


def date_range(date_from: str | date, date_to: str | date) -> list[str]:
    """Inclusive list of ISO dates; empty when date_to < date_from."""
    if isinstance(date_from, str):
        date_from = date.fromisoformat(date_from)
    if isinstance(date_to, str):
        date_to = date.fromisoformat(date_to)

    return [
        (date_from + timedelta(days=offset)).isoformat()
        for offset in range((date_to - date_from).days + 1)
    ]
