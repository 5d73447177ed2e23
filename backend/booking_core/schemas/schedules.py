# backend/booking_core/schemas/schedules.py
# Hours are stored with the camelCase keys dayOfWeek / startTime / endTime

from typing import Literal, Optional
from pydantic import BaseModel, Field

HHMM = r"^([01]\d|2[0-3]):[0-5]\d$|^24:00$"


class TimeRange(BaseModel):
    start_time: str = Field(alias="startTime", pattern=HHMM)
    end_time: str = Field(alias="endTime", pattern=HHMM)

    model_config = {"populate_by_name": True}


class WeeklyHours(TimeRange):
    day_of_week: int = Field(alias="dayOfWeek", ge=0, le=6)  # 0 = Sunday


class ScheduleCreate(BaseModel):
    id: str = Field(min_length=1)
    organization_id: str
    name: str
    timezone: str = "UTC"
    is_default: bool = False
    weekly_hours: list[WeeklyHours] = []

    model_config = {"from_attributes": True}


class ScheduleUpdate(BaseModel):
    name: Optional[str] = None
    timezone: Optional[str] = None
    is_default: Optional[bool] = None
    weekly_hours: Optional[list[WeeklyHours]] = None

    model_config = {"from_attributes": True}


class ScheduleRead(BaseModel):
    id: str
    organization_id: str
    name: str
    timezone: str
    is_default: bool
    weekly_hours: list[WeeklyHours]
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    model_config = {"from_attributes": True}


class DateOverrideCreate(BaseModel):
    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    type: Literal["unavailable", "custom"]
    custom_hours: Optional[list[TimeRange]] = None

    model_config = {"from_attributes": True}


class DateOverrideRead(BaseModel):
    id: int
    schedule_id: str
    date: str
    type: str
    custom_hours: list[TimeRange]

    model_config = {"from_attributes": True}


class EffectiveAvailabilityRead(BaseModel):
    schedule_id: str
    date: str
    slots: list[int]
