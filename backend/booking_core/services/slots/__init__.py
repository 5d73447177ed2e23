# backend/booking_core/services/slots/__init__.py
"""
Slots module.

Level 1: Per-day availability rows (busy slot lists / pool counters)
Level 2: Free-slot queries (calculated on-the-fly from level 1)
"""

from .config import BookingConfig, get_booking_config
from .quantizer import (
    SLOT_MINUTES,
    SLOT_DURATION_MS,
    SLOTS_PER_DAY,
    BUSINESS_HOURS_START,
    BUSINESS_HOURS_END,
    timestamp_to_slot,
    slot_to_timestamp,
    slot_to_millis,
    required_slots,
    iso_to_slot,
)
from .calculator import generate_day_slots, are_slots_available, is_day_available
from .store import AvailabilityStore
from .availability import (
    get_availability,
    get_month_availability,
    get_day_slots,
    get_event_type_day_slots,
)

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "SLOT_MINUTES",
    "SLOT_DURATION_MS",
    "SLOTS_PER_DAY",
    "BUSINESS_HOURS_START",
    "BUSINESS_HOURS_END",
    "timestamp_to_slot",
    "slot_to_timestamp",
    "slot_to_millis",
    "required_slots",
    "iso_to_slot",
    "generate_day_slots",
    "are_slots_available",
    "is_day_available",
    "AvailabilityStore",
    "get_availability",
    "get_month_availability",
    "get_day_slots",
    "get_event_type_day_slots",
]
