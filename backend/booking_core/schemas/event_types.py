# backend/booking_core/schemas/event_types.py

from typing import Optional
from pydantic import BaseModel, Field


class LocationOption(BaseModel):
    type: str
    address: Optional[str] = None
    public: Optional[bool] = None


class EventTypeCreate(BaseModel):
    id: str = Field(min_length=1)
    organization_id: Optional[str] = None
    slug: str = Field(min_length=1)
    title: str
    description: Optional[str] = None
    length_in_minutes: int = Field(gt=0)
    length_in_minutes_options: Optional[list[int]] = None
    slot_interval: Optional[int] = Field(default=None, gt=0)
    timezone: str = "UTC"
    lock_time_zone_toggle: bool = False
    locations: list[LocationOption] = []
    schedule_id: Optional[str] = None
    buffer_before: int = Field(default=0, ge=0)
    buffer_after: int = Field(default=0, ge=0)
    min_notice_minutes: int = Field(default=0, ge=0)
    max_future_minutes: Optional[int] = Field(default=None, gt=0)
    requires_confirmation: bool = False
    is_active: bool = True

    model_config = {"from_attributes": True}


class EventTypeUpdate(BaseModel):
    slug: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    length_in_minutes: Optional[int] = Field(default=None, gt=0)
    length_in_minutes_options: Optional[list[int]] = None
    slot_interval: Optional[int] = Field(default=None, gt=0)
    timezone: Optional[str] = None
    lock_time_zone_toggle: Optional[bool] = None
    locations: Optional[list[LocationOption]] = None
    schedule_id: Optional[str] = None
    buffer_before: Optional[int] = Field(default=None, ge=0)
    buffer_after: Optional[int] = Field(default=None, ge=0)
    min_notice_minutes: Optional[int] = Field(default=None, ge=0)
    max_future_minutes: Optional[int] = Field(default=None, gt=0)
    requires_confirmation: Optional[bool] = None
    is_active: Optional[bool] = None

    model_config = {"from_attributes": True}


class EventTypeRead(BaseModel):
    id: str
    organization_id: Optional[str] = None
    slug: str
    title: str
    description: Optional[str] = None
    length_in_minutes: int
    length_in_minutes_options: Optional[list[int]] = None
    slot_interval: Optional[int] = None
    effective_slot_interval: int
    timezone: str
    lock_time_zone_toggle: bool
    locations: list[LocationOption]
    schedule_id: Optional[str] = None
    buffer_before: int
    buffer_after: int
    min_notice_minutes: int
    max_future_minutes: Optional[int] = None
    requires_confirmation: bool
    is_active: bool
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    model_config = {"from_attributes": True}


class ResourceEventTypeRead(BaseModel):
    id: int
    resource_id: str
    event_type_id: str
    created_at: Optional[int] = None

    model_config = {"from_attributes": True}
