import pytest

from booking_core.errors import NotFoundError, ValidationError
from booking_core.models import DateOverrides
from booking_core.services.reservations import create_reservation
from booking_core.services.schedules import day_bounds, get_effective_availability
from booking_core.services.slots import (
    AvailabilityStore,
    get_availability,
    get_day_slots,
    get_event_type_day_slots,
    get_month_availability,
)

from conftest import ms

DAY = "2025-06-17"  # a Tuesday


def test_empty_day_offers_whole_business_window(db, make_resource):
    make_resource("studio-a")

    slots = get_day_slots(db, "studio-a", DAY, 30)

    assert slots[0] == {"time": "2025-06-17T09:00:00.000Z"}
    assert slots[-1] == {"time": "2025-06-17T16:30:00.000Z"}


def test_booking_marks_busy_slots(db, make_resource):
    make_resource("studio-a")

    create_reservation(db, "studio-a", "ada", ms("2025-06-17T14:00:00Z"), ms("2025-06-17T15:00:00Z"))

    assert AvailabilityStore(db).busy_slots("studio-a", DAY) == [56, 57, 58, 59]
    assert not get_availability(db, "studio-a", ms("2025-06-17T14:00:00Z"), ms("2025-06-17T15:00:00Z"))
    assert get_availability(db, "studio-a", ms("2025-06-17T13:00:00Z"), ms("2025-06-17T14:00:00Z"))
    assert not get_availability(db, "studio-a", ms("2025-06-17T14:45:00Z"), ms("2025-06-17T15:15:00Z"))


def test_day_slots_skip_busy_candidates(db, make_resource):
    make_resource("studio-a")
    create_reservation(db, "studio-a", "ada", ms("2025-06-17T14:00:00Z"), ms("2025-06-17T15:00:00Z"))

    times = [s["time"] for s in get_day_slots(db, "studio-a", DAY, 60, 60)]

    assert "2025-06-17T13:00:00.000Z" in times
    assert "2025-06-17T14:00:00.000Z" not in times
    assert "2025-06-17T15:00:00.000Z" in times


def test_get_availability_rejects_empty_interval(db, make_resource):
    make_resource("studio-a")
    t = ms("2025-06-17T14:00:00Z")
    with pytest.raises(ValidationError):
        get_availability(db, "studio-a", t, t)


def test_month_availability_one_flag_per_day(db, make_resource):
    make_resource("studio-a")
    # Fill 2025-06-18 business hours completely
    create_reservation(db, "studio-a", "ada", ms("2025-06-18T09:00:00Z"), ms("2025-06-18T17:00:00Z"))

    month = get_month_availability(db, "studio-a", "2025-06-16", "2025-06-19", 30)

    assert month == {
        "2025-06-16": True,
        "2025-06-17": True,
        "2025-06-18": False,
        "2025-06-19": True,
    }


def test_month_availability_invalid_date(db, make_resource):
    make_resource("studio-a")
    with pytest.raises(ValidationError):
        get_month_availability(db, "studio-a", "2025-13-01", "2025-13-05", 30)


def test_month_availability_range_is_capped(db, make_resource):
    make_resource("studio-a")

    year = get_month_availability(db, "studio-a", "2024-01-01", "2024-12-31", 30)
    assert len(year) == 366

    with pytest.raises(ValidationError):
        get_month_availability(db, "studio-a", "2024-01-01", "2025-01-01", 30)
    with pytest.raises(ValidationError):
        get_month_availability(db, "studio-a", "2025-06-01", "9999-12-31", 30)


def test_pool_day_is_blocked_only_at_capacity(db, make_resource):
    make_resource("chairs", is_fungible=1, quantity=2)
    store = AvailabilityStore(db)

    store.reserve("chairs", DAY, list(range(36, 68)), 1)
    db.commit()
    assert get_month_availability(db, "chairs", DAY, DAY, 60) == {DAY: True}

    store.reserve("chairs", DAY, list(range(36, 68)), 1)
    db.commit()
    assert get_month_availability(db, "chairs", DAY, DAY, 60) == {DAY: False}


# ── Schedules ────────────────────────────────────────────────────────────


def test_effective_availability_weekly_hours(db, make_schedule):
    make_schedule("weekdays", weekly_hours=[
        {"dayOfWeek": 2, "startTime": "10:00", "endTime": "12:00"},
        {"dayOfWeek": 2, "startTime": "13:00", "endTime": "14:00"},
        {"dayOfWeek": 3, "startTime": "08:00", "endTime": "18:00"},
    ])

    slots = get_effective_availability(db, "weekdays", DAY)

    assert slots == list(range(40, 48)) + list(range(52, 56))
    assert day_bounds(slots) == (40, 56)
    # Sunday = 0, nothing configured
    assert get_effective_availability(db, "weekdays", "2025-06-15") == []


def test_effective_availability_overrides(db, make_schedule):
    schedule = make_schedule("weekdays", weekly_hours=[
        {"dayOfWeek": 2, "startTime": "09:00", "endTime": "17:00"},
    ])
    db.add(DateOverrides(schedule_id=schedule.id, date=DAY, type="unavailable"))
    db.add(DateOverrides(
        schedule_id=schedule.id,
        date="2025-06-24",
        type="custom",
        custom_hours=[{"startTime": "12:00", "endTime": "13:00"}],
    ))
    db.commit()

    assert get_effective_availability(db, "weekdays", DAY) == []
    assert get_effective_availability(db, "weekdays", "2025-06-24") == [48, 49, 50, 51]


def test_unknown_schedule_falls_back_to_default_window(db):
    assert get_effective_availability(db, None, DAY) == list(range(36, 68))
    assert get_effective_availability(db, "missing", DAY) == list(range(36, 68))
    assert day_bounds([]) is None


# ── Event-type aware slots ───────────────────────────────────────────────


NOW = ms("2025-06-01T00:00:00Z")


def test_event_type_slots_follow_schedule(db, make_resource, make_event_type, make_schedule):
    make_resource("studio-a")
    make_schedule("weekdays", weekly_hours=[
        {"dayOfWeek": 2, "startTime": "10:00", "endTime": "12:00"},
        {"dayOfWeek": 2, "startTime": "13:00", "endTime": "14:00"},
    ])
    make_event_type("consult", length_in_minutes=60, schedule_id="weekdays")

    times = [s["time"][11:16] for s in get_event_type_day_slots(db, "consult", "studio-a", DAY, now=NOW)]

    # hourly interval derived from the length; lunch gap is not bookable
    assert times == ["10:00", "11:00", "13:00"]


def test_event_type_slots_use_org_default_schedule(db, make_resource, make_event_type, make_schedule):
    make_resource("studio-a")
    make_schedule("first", weekly_hours=[], created_at=1)
    make_schedule("house-hours", weekly_hours=[
        {"dayOfWeek": 2, "startTime": "15:00", "endTime": "17:00"},
    ], is_default=1, created_at=2)
    make_event_type("consult", length_in_minutes=60)

    times = [s["time"][11:16] for s in get_event_type_day_slots(db, "consult", "studio-a", DAY, now=NOW)]

    assert times == ["15:00", "16:00"]


def test_event_type_slots_closed_day(db, make_resource, make_event_type, make_schedule):
    make_resource("studio-a")
    make_schedule("weekdays", weekly_hours=[])
    make_event_type("consult", schedule_id="weekdays")

    assert get_event_type_day_slots(db, "consult", "studio-a", DAY, now=NOW) == []


def test_event_type_slots_apply_buffers(db, make_resource, make_event_type):
    make_resource("studio-a")
    make_event_type("consult", length_in_minutes=30, slot_interval=30, buffer_after=15)
    create_reservation(db, "studio-a", "ada", ms("2025-06-17T10:00:00Z"), ms("2025-06-17T11:00:00Z"))

    times = [s["time"][11:16] for s in get_event_type_day_slots(db, "consult", "studio-a", DAY, now=NOW)]

    # 09:30 would need its 15-minute buffer at 10:00
    assert "09:00" in times
    assert "09:30" not in times
    assert "10:00" not in times
    assert "11:00" in times


def test_event_type_slots_notice_window(db, make_resource, make_event_type):
    make_resource("studio-a")
    make_event_type("consult", length_in_minutes=60, min_notice_minutes=120, max_future_minutes=300)
    now = ms("2025-06-17T08:00:00Z")

    times = [s["time"][11:16] for s in get_event_type_day_slots(db, "consult", "studio-a", DAY, now=now)]

    assert times == ["10:00", "11:00", "12:00", "13:00"]


def test_event_type_slots_duration_options(db, make_resource, make_event_type):
    make_resource("studio-a")
    make_event_type("consult", length_in_minutes=60, length_in_minutes_options=[30, 60])

    slots = get_event_type_day_slots(db, "consult", "studio-a", DAY, duration=30, now=NOW)
    assert slots[1]["time"] == "2025-06-17T09:30:00.000Z"

    with pytest.raises(ValidationError):
        get_event_type_day_slots(db, "consult", "studio-a", DAY, duration=45, now=NOW)


def test_event_type_slots_unknown_event_type(db, make_resource):
    make_resource("studio-a")
    with pytest.raises(NotFoundError):
        get_event_type_day_slots(db, "missing", "studio-a", DAY, now=NOW)
