# backend/booking_core/routers/presence.py
# Advisory holds; the session id travels in every request body / query

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_admin
from ..schemas.presence import (
    Heartbeat,
    HeartbeatAck,
    Leave,
    PresenceCountRead,
    PresenceRead,
)
from ..services import presence

router = APIRouter(prefix="/presence", tags=["presence"])


@router.post("/heartbeat", response_model=HeartbeatAck)
def heartbeat(data: Heartbeat, db: Session = Depends(get_db)):
    updated = presence.heartbeat(db, data.resource_id, data.slots, data.user, data.data)
    return HeartbeatAck(updated=updated)


@router.post("/leave", status_code=204)
def leave(data: Leave, db: Session = Depends(get_db)):
    presence.leave(db, data.resource_id, data.slots, data.user)


@router.get("/date", response_model=list[PresenceRead])
def date_presence(resource_id: str, date: str, db: Session = Depends(get_db)):
    return presence.get_date_presence(db, resource_id, date)


@router.get("/slot", response_model=list[PresenceRead])
def slot_presence(resource_id: str, slot: str, db: Session = Depends(get_db)):
    return presence.list_presence(db, resource_id, slot)


@router.get(
    "/count",
    response_model=PresenceCountRead,
    dependencies=[Depends(require_admin)],
)
def active_count(resource_id: Optional[str] = None, db: Session = Depends(get_db)):
    return PresenceCountRead(count=presence.get_active_presence_count(db, resource_id))
