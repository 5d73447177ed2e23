# backend/booking_core/routers/availability.py
# Public, read-only

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.availability import (
    AvailabilityRead,
    DaySlotRead,
    MonthAvailabilityRead,
)
from ..services.slots import (
    get_availability,
    get_day_slots,
    get_event_type_day_slots,
    get_month_availability,
)

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("", response_model=AvailabilityRead)
def interval(
    resource_id: str,
    start: int,
    end: int,
    db: Session = Depends(get_db),
):
    available = get_availability(db, resource_id, start, end)
    return AvailabilityRead(resource_id=resource_id, start=start, end=end, available=available)


@router.get("/month", response_model=MonthAvailabilityRead)
def month(
    resource_id: str,
    date_from: str,
    date_to: str,
    event_length: int = Query(gt=0),
    slot_interval: Optional[int] = Query(default=None, gt=0),
    db: Session = Depends(get_db),
):
    days = get_month_availability(
        db, resource_id, date_from, date_to, event_length, slot_interval
    )
    return MonthAvailabilityRead(resource_id=resource_id, days=days)


@router.get("/day", response_model=list[DaySlotRead])
def day(
    resource_id: str,
    date: str,
    event_length: int = Query(gt=0),
    slot_interval: Optional[int] = Query(default=None, gt=0),
    db: Session = Depends(get_db),
):
    return get_day_slots(db, resource_id, date, event_length, slot_interval)


@router.get("/event-type", response_model=list[DaySlotRead])
def event_type_day(
    event_type_id: str,
    resource_id: str,
    date: str,
    duration: Optional[int] = Query(default=None, gt=0),
    db: Session = Depends(get_db),
):
    return get_event_type_day_slots(db, event_type_id, resource_id, date, duration)
