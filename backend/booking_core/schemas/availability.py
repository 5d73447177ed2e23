# backend/booking_core/schemas/availability.py

from pydantic import BaseModel


class AvailabilityRead(BaseModel):
    resource_id: str
    start: int
    end: int
    available: bool


class MonthAvailabilityRead(BaseModel):
    resource_id: str
    days: dict[str, bool]


class DaySlotRead(BaseModel):
    time: str
