# backend/booking_core/routers/admin_bookings.py
# Admin only: list / inspect / drive the booking lifecycle by id

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_admin
from ..schemas.bookings import (
    BookingHistoryRead,
    BookingRead,
    Reschedule,
    StatusChange,
)
from ..services import reservations

router = APIRouter(
    prefix="/admin/bookings",
    tags=["admin: bookings"],
    dependencies=[Depends(require_admin)],
)


@router.get("", response_model=list[BookingRead])
def list_bookings(
    organization_id: Optional[str] = None,
    resource_id: Optional[str] = None,
    event_type_id: Optional[str] = None,
    status: Optional[str] = None,
    date_from: Optional[int] = None,
    date_to: Optional[int] = None,
    limit: Optional[int] = Query(default=None, gt=0),
    db: Session = Depends(get_db),
):
    return reservations.list_bookings(
        db,
        organization_id=organization_id,
        resource_id=resource_id,
        event_type_id=event_type_id,
        status=status,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
    )


@router.get("/{id}", response_model=BookingRead)
def get_booking(id: int, db: Session = Depends(get_db)):
    return reservations.get_booking_with_items(db, id)


@router.get("/{id}/history", response_model=list[BookingHistoryRead])
def get_history(id: int, db: Session = Depends(get_db)):
    return reservations.get_booking_history(db, id)


@router.post("/{id}/cancel", response_model=BookingRead)
def cancel(id: int, data: StatusChange, db: Session = Depends(get_db)):
    return reservations.cancel_reservation(db, id, data.reason, data.changed_by)


@router.post("/{id}/confirm", response_model=BookingRead)
def confirm(id: int, data: StatusChange, db: Session = Depends(get_db)):
    return reservations.confirm_booking(db, id, data.changed_by)


@router.post("/{id}/decline", response_model=BookingRead)
def decline(id: int, data: StatusChange, db: Session = Depends(get_db)):
    return reservations.decline_booking(db, id, data.reason, data.changed_by)


@router.post("/{id}/complete", response_model=BookingRead)
def complete(id: int, data: StatusChange, db: Session = Depends(get_db)):
    return reservations.complete_booking(db, id, data.changed_by)


@router.post("/{id}/reschedule", response_model=BookingRead)
def reschedule(id: int, data: Reschedule, db: Session = Depends(get_db)):
    return reservations.reschedule_booking(
        db, id, data.start, data.end, data.reason, data.changed_by
    )
