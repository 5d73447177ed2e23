import pytest

from booking_core.errors import ValidationError
from booking_core.services.slots.calculator import (
    are_slots_available,
    expand_with_buffers,
    generate_day_slots,
    is_day_available,
    slots_needed,
)


def test_slots_needed_rounds_up():
    assert slots_needed(15) == 1
    assert slots_needed(20) == 2
    assert slots_needed(60) == 4


@pytest.mark.parametrize("duration", [0, -15])
def test_non_positive_duration_rejected(duration):
    with pytest.raises(ValidationError):
        generate_day_slots("2025-06-17", duration)


def test_non_positive_interval_rejected():
    with pytest.raises(ValidationError):
        generate_day_slots("2025-06-17", 30, -15)


def test_generate_day_slots_default_window():
    slots = generate_day_slots("2025-06-17", 30)

    assert slots[0] == {"start": "2025-06-17T09:00:00.000Z", "slots": [36, 37]}
    assert slots[-1] == {"start": "2025-06-17T16:30:00.000Z", "slots": [66, 67]}
    assert len(slots) == 31
    assert all(s["slots"][-1] < 68 for s in slots)


def test_generate_day_slots_interval_steps():
    slots = generate_day_slots("2025-06-17", 60, 60)

    assert [s["slots"][0] for s in slots] == [36, 40, 44, 48, 52, 56, 60, 64]


def test_generate_day_slots_interval_rounds_up_to_whole_slots():
    # 20 minutes → every 2 slots
    slots = generate_day_slots("2025-06-17", 15, 20, start_slot=36, end_slot=42)
    assert [s["slots"][0] for s in slots] == [36, 38, 40]


def test_generate_day_slots_too_long_for_window():
    assert generate_day_slots("2025-06-17", 9 * 60) == []


def test_are_slots_available():
    assert are_slots_available([56, 57], [])
    assert are_slots_available([56, 57], [55, 58])
    assert not are_slots_available([56, 57], [57])


def test_availability_is_monotonic_in_busy_set():
    required = [40, 41, 42]
    busy = [10, 20, 30, 43]
    assert are_slots_available(required, busy)
    assert are_slots_available(required, busy[:2])
    for slot in required:
        assert not are_slots_available(required, busy + [slot])


def test_is_day_available_finds_single_gap():
    busy = [s for s in range(36, 68) if s not in (50, 51)]
    assert is_day_available(30, busy)
    assert not is_day_available(45, busy)


def test_is_day_available_respects_interval_grid():
    # Free run 37-38 is off the hourly grid
    busy = [s for s in range(36, 68) if s not in (37, 38)]
    assert is_day_available(30, busy, 15)
    assert not is_day_available(30, busy, 60)


def test_is_day_available_fully_booked():
    assert not is_day_available(15, list(range(36, 68)))


def test_expand_with_buffers():
    assert expand_with_buffers([40, 41], 15, 30) == [39, 40, 41, 42, 43]
    assert expand_with_buffers([0, 1], 30, 0) == [0, 1]
    assert expand_with_buffers([95], 0, 15) == [95]
    assert expand_with_buffers([], 15, 15) == []
