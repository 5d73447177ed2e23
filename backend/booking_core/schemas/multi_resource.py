# backend/booking_core/schemas/multi_resource.py

from typing import Optional
from pydantic import BaseModel, Field

from .bookings import Booker, BookingLocation


class ResourceRequest(BaseModel):
    resource_id: str
    quantity: int = Field(default=1, ge=1)


class MultiResourceCheck(BaseModel):
    resources: list[ResourceRequest] = Field(min_length=1)
    start: int
    end: int


class ResourceAvailabilityRead(BaseModel):
    resource_id: str = Field(alias="resourceId")
    available: bool
    requested_quantity: int = Field(alias="requestedQuantity")
    available_quantity: int = Field(alias="availableQuantity")
    conflicts: list[int]

    model_config = {"populate_by_name": True}


class MultiResourceCheckRead(BaseModel):
    available: bool
    resources: list[ResourceAvailabilityRead]


class MultiResourceBookingCreate(BaseModel):
    event_type_id: str
    organization_id: Optional[str] = None
    resources: list[ResourceRequest] = Field(min_length=1)
    start: int
    end: int
    timezone: str = "UTC"
    booker: Booker
    location: Optional[BookingLocation] = None
