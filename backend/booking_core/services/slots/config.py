# backend/booking_core/services/slots/config.py
"""
Booking grid configuration.
"""

from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for the availability grid.

    Attributes:
        slot_minutes: Quantum of all availability bookkeeping (fixed at 15)
        business_start_slot: First bookable slot when no schedule applies (09:00)
        business_end_slot: Exclusive end of the default window (17:00)
        default_interval_minutes: Step between offered start times
        max_range_days: Longest date range a month query may span
    """
    slot_minutes: int = 15
    business_start_slot: int = 36
    business_end_slot: int = 68
    default_interval_minutes: int = 15
    max_range_days: int = 366

    def __post_init__(self):
        """Validate configuration."""
        if self.slot_minutes != 15:
            # Stored busy_slots / slot_quantities assume a 96-slot UTC day
            raise ValueError(f"slot_minutes must be 15, got {self.slot_minutes}")
        if not 0 <= self.business_start_slot < self.business_end_slot <= self.slots_per_day:
            raise ValueError(
                f"invalid business window {self.business_start_slot}..{self.business_end_slot}"
            )

    @property
    def slots_per_day(self) -> int:
        return (24 * 60) // self.slot_minutes

    @property
    def default_bounds(self) -> tuple[int, int]:
        return self.business_start_slot, self.business_end_slot

    def time_to_slot(self, hour: int, minute: int) -> int:
        """Convert time to slot index."""
        total_minutes = hour * 60 + minute
        return total_minutes // self.slot_minutes


def time_str_to_slot(value: str, config: BookingConfig | None = None) -> int:
    """Parse "HH:MM" into a slot index; "24:00" maps to the end of the day."""
    config = config or get_booking_config()
    hours, minutes = (int(part) for part in value.split(":"))
    return config.time_to_slot(hours, minutes)


@lru_cache
def get_booking_config() -> BookingConfig:
    """
    Get booking configuration (singleton).
    """
    return BookingConfig()
