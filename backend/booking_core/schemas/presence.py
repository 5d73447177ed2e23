# backend/booking_core/schemas/presence.py

from typing import Any, Optional
from pydantic import BaseModel


class Heartbeat(BaseModel):
    resource_id: str
    slots: list[str]
    user: str
    # Opaque, never validated
    data: Optional[Any] = None


class Leave(BaseModel):
    resource_id: str
    slots: list[str]
    user: str


class HeartbeatAck(BaseModel):
    updated: int


class PresenceRead(BaseModel):
    slot: str
    user: str
    updated: int

    model_config = {"from_attributes": True}


class PresenceCountRead(BaseModel):
    count: int
