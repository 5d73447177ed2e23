# backend/booking_core/services/schedules.py
"""
Effective opening hours of a schedule on a date.

Resolution order:
✓ date override "unavailable" → closed
✓ date override "custom" → its custom hours
✓ weekly hours for the weekday (dayOfWeek 0 = Sunday)
✓ unknown schedule → default business window 09:00-17:00
"""

from datetime import date

from sqlalchemy.orm import Session

from ..errors import ValidationError
from ..models import DateOverrides, Schedules
from .slots.config import BookingConfig, get_booking_config, time_str_to_slot


def get_effective_availability(
    db: Session,
    schedule_id: str | None,
    target_date: str,
    config: BookingConfig | None = None,
) -> list[int]:
    """
    Open slot indices for a schedule on a date.

    Returns:
        Sorted list of slot indices; empty list = closed.
    """
    config = config or get_booking_config()

    schedule = db.get(Schedules, schedule_id) if schedule_id else None
    if schedule is None:
        return list(range(*config.default_bounds))

    override = (
        db.query(DateOverrides)
        .filter(
            DateOverrides.schedule_id == schedule.id,
            DateOverrides.date == target_date,
        )
        .first()
    )
    if override is not None:
        if override.type == "unavailable":
            return []
        if override.custom_hours:
            return _ranges_to_slots(override.custom_hours, config)

    try:
        weekday = date.fromisoformat(target_date).weekday()
    except ValueError:
        raise ValidationError(f"Invalid date: {target_date!r}") from None

    # Python weekday(): Monday = 0; stored dayOfWeek: Sunday = 0
    day_of_week = (weekday + 1) % 7
    entries = [h for h in schedule.weekly_hours if h.get("dayOfWeek") == day_of_week]
    return _ranges_to_slots(entries, config)


def _ranges_to_slots(ranges: list[dict], config: BookingConfig) -> list[int]:
    slots: set[int] = set()
    for entry in ranges:
        start = entry.get("startTime")
        end = entry.get("endTime")
        if not start or not end:
            continue
        slots.update(range(time_str_to_slot(start, config), time_str_to_slot(end, config)))
    return sorted(slots)


def day_bounds(slots: list[int]) -> tuple[int, int] | None:
    """Outer [first, last + 1) window of open slots; None for a closed day."""
    if not slots:
        return None
    return slots[0], slots[-1] + 1


def get_default_schedule(db: Session, organization_id: str) -> Schedules | None:
    schedules = (
        db.query(Schedules)
        .filter(Schedules.organization_id == organization_id)
        .order_by(Schedules.created_at)
        .all()
    )
    for schedule in schedules:
        if schedule.is_default:
            return schedule
    return schedules[0] if schedules else None
