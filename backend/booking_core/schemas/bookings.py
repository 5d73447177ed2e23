# backend/booking_core/schemas/bookings.py

from typing import Optional
from pydantic import BaseModel, Field

EMAIL = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class Booker(BaseModel):
    name: str = Field(min_length=2)
    email: str = Field(pattern=EMAIL)
    phone: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class BookingLocation(BaseModel):
    type: str
    value: Optional[str] = None


class ReservationCreate(BaseModel):
    resource_id: str
    actor_id: str
    start: int
    end: int


class ReservationCreated(BaseModel):
    booking_id: int


class BookingCreate(BaseModel):
    event_type_id: str
    resource_id: str
    start: int
    end: int
    timezone: str = "UTC"
    booker: Booker
    location: BookingLocation
    # Presence session id of the caller, enables the hold guard
    holder: Optional[str] = None


class BookingItemRead(BaseModel):
    id: int
    resource_id: str
    quantity: int

    model_config = {"from_attributes": True}


class BookingRead(BaseModel):
    id: int
    uid: str
    resource_id: str
    actor_id: str
    event_type_id: Optional[str] = None
    organization_id: Optional[str] = None

    start: int
    end: int
    timezone: str
    status: str

    booker_name: str
    booker_email: str
    booker_phone: Optional[str] = None
    booker_notes: Optional[str] = None

    event_title: str
    event_description: Optional[str] = None
    location: dict

    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[int] = None
    rescheduled_from_uid: Optional[str] = None
    rescheduled_to_uid: Optional[str] = None

    items: list[BookingItemRead] = []

    created_at: int
    updated_at: int

    model_config = {"from_attributes": True}


class BookingCreated(BookingRead):
    # Returned once; only its hash is stored
    management_token: str


class BookingHistoryRead(BaseModel):
    id: int
    booking_id: int
    from_status: str
    to_status: str
    changed_by: Optional[str] = None
    reason: Optional[str] = None
    timestamp: int

    model_config = {"from_attributes": True}


class StatusChange(BaseModel):
    reason: Optional[str] = None
    changed_by: Optional[str] = None


class Reschedule(BaseModel):
    start: int
    end: int
    reason: Optional[str] = None
    changed_by: Optional[str] = None


class TokenCancel(BaseModel):
    token: str
    reason: Optional[str] = None


class TokenReschedule(BaseModel):
    token: str
    start: int
    end: int
    reason: Optional[str] = None
