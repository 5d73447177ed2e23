from .tables import (
    Base,
    metadata,
    Resources,
    Schedules,
    DateOverrides,
    EventTypes,
    ResourceEventTypes,
    DailyAvailability,
    QuantityAvailability,
    Bookings,
    BookingItems,
    BookingHistory,
    Presence,
    PresenceHeartbeats,
)

__all__ = [
    "Base",
    "metadata",
    "Resources",
    "Schedules",
    "DateOverrides",
    "EventTypes",
    "ResourceEventTypes",
    "DailyAvailability",
    "QuantityAvailability",
    "Bookings",
    "BookingItems",
    "BookingHistory",
    "Presence",
    "PresenceHeartbeats",
]
