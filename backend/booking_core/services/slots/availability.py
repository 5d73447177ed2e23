# backend/booking_core/services/slots/availability.py
"""
Availability engine.

Answers three questions from the per-day availability rows:
- is [start, end) free for a resource?            get_availability
- which days of a range have at least one fit?    get_month_availability
- which start times of one day are free?          get_day_slots

Reads one row per spanned day, never the booking history.
Event-type aware day slots add schedules, buffers and notice windows.
"""

from datetime import date

from sqlalchemy.orm import Session

from ...errors import NotFoundError, ValidationError
from ...models import EventTypes
from .. import schedules
from .calculator import (
    are_slots_available,
    expand_with_buffers,
    generate_day_slots,
    is_day_available,
)
from .config import BookingConfig, get_booking_config
from .quantizer import date_range, iso_to_millis, now_ms, required_slots
from .store import AvailabilityStore


def is_available(
    db: Session,
    resource_id: str,
    start: int,
    end: int,
    quantity: int = 1,
) -> bool:
    """True only if every spanned date is clear for `quantity` units."""
    store = AvailabilityStore(db)
    for day, slots in required_slots(start, end).items():
        if store.conflicts(resource_id, day, slots, quantity):
            return False
    return True


def get_availability(db: Session, resource_id: str, start: int, end: int) -> bool:
    if end <= start:
        raise ValidationError("end must be after start")
    return is_available(db, resource_id, start, end)


def get_month_availability(
    db: Session,
    resource_id: str,
    date_from: str,
    date_to: str,
    event_length: int,
    slot_interval: int | None = None,
    bounds: tuple[int, int] | None = None,
    config: BookingConfig | None = None,
) -> dict[str, bool]:
    """
    Boolean per day, no slot objects.

    Returns:
        {"2025-06-17": True, "2025-06-18": False, ...}
    """
    config = config or get_booking_config()
    start_slot, end_slot = bounds or config.default_bounds

    first, last = _parse_date(date_from), _parse_date(date_to)
    if (date.fromisoformat(last) - date.fromisoformat(first)).days >= config.max_range_days:
        raise ValidationError(f"Date range may span at most {config.max_range_days} days")

    dates = date_range(first, last)
    blocked = AvailabilityStore(db).blocked_by_date(resource_id, dates)

    return {
        day: is_day_available(event_length, blocked[day], slot_interval, start_slot, end_slot)
        for day in dates
    }


def get_day_slots(
    db: Session,
    resource_id: str,
    date: str,
    event_length: int,
    slot_interval: int | None = None,
    bounds: tuple[int, int] | None = None,
    config: BookingConfig | None = None,
) -> list[dict]:
    """
    Free start times for a single day.

    Returns:
        [{"time": "2025-06-17T09:00:00.000Z"}, ...]
    """
    config = config or get_booking_config()
    start_slot, end_slot = bounds or config.default_bounds
    day = _parse_date(date)

    possible = generate_day_slots(day, event_length, slot_interval, start_slot, end_slot)
    busy = set(AvailabilityStore(db).blocked_slots(resource_id, day))

    return [
        {"time": candidate["start"]}
        for candidate in possible
        if are_slots_available(candidate["slots"], busy)
    ]


def get_event_type_day_slots(
    db: Session,
    event_type_id: str,
    resource_id: str,
    date: str,
    duration: int | None = None,
    now: int | None = None,
    config: BookingConfig | None = None,
) -> list[dict]:
    """
    Free start times for an event type on a resource.

    On top of get_day_slots:
    ✓ effective schedule hours (gaps inside the window count as busy)
    ✓ effective slot interval and selectable durations
    ✓ buffer_before / buffer_after around each candidate
    ✓ min_notice_minutes / max_future_minutes relative to `now`
    """
    config = config or get_booking_config()
    event_type = db.get(EventTypes, event_type_id)
    if event_type is None:
        raise NotFoundError(f'Event type "{event_type_id}" not found')

    length = duration or event_type.length_in_minutes
    allowed = {event_type.length_in_minutes, *(event_type.length_in_minutes_options or [])}
    if length not in allowed:
        raise ValidationError(f"Duration {length} is not offered by this event type")

    day = _parse_date(date)
    schedule_id = event_type.schedule_id
    if schedule_id is None and event_type.organization_id:
        default = schedules.get_default_schedule(db, event_type.organization_id)
        schedule_id = default.id if default else None

    open_slots = schedules.get_effective_availability(db, schedule_id, day, config)
    bounds = schedules.day_bounds(open_slots)
    if bounds is None:
        return []

    busy = set(AvailabilityStore(db).blocked_slots(resource_id, day))
    busy.update(set(range(*bounds)) - set(open_slots))

    now = now if now is not None else now_ms()
    earliest = now + (event_type.min_notice_minutes or 0) * 60_000
    latest = None
    if event_type.max_future_minutes:
        latest = now + event_type.max_future_minutes * 60_000

    result = []
    for candidate in generate_day_slots(
        day, length, event_type.effective_slot_interval, *bounds
    ):
        start = iso_to_millis(candidate["start"])
        if start < earliest or (latest is not None and start > latest):
            continue
        guarded = expand_with_buffers(
            candidate["slots"], event_type.buffer_before, event_type.buffer_after
        )
        if are_slots_available(guarded, busy):
            result.append({"time": candidate["start"]})
    return result


def _parse_date(value: str | date) -> str:
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}") from None
