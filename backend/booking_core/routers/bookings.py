# backend/booking_core/routers/bookings.py
# Public booking flow; management by uid + token, never by numeric id

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.bookings import (
    BookingCreate,
    BookingCreated,
    BookingRead,
    ReservationCreate,
    ReservationCreated,
    TokenCancel,
    TokenReschedule,
)
from ..services import reservations

router = APIRouter(tags=["bookings"])


@router.post(
    "/reservations",
    response_model=ReservationCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_reservation(data: ReservationCreate, db: Session = Depends(get_db)):
    booking_id = reservations.create_reservation(
        db, data.resource_id, data.actor_id, data.start, data.end
    )
    return ReservationCreated(booking_id=booking_id)


@router.post(
    "/bookings",
    response_model=BookingCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_booking(data: BookingCreate, db: Session = Depends(get_db)):
    booking, token = reservations.create_booking(
        db,
        event_type_id=data.event_type_id,
        resource_id=data.resource_id,
        start=data.start,
        end=data.end,
        timezone=data.timezone,
        booker=data.booker.model_dump(),
        location=data.location.model_dump(exclude_none=True),
        holder=data.holder,
    )
    return BookingCreated(
        **BookingRead.model_validate(booking).model_dump(),
        management_token=token,
    )


@router.get("/bookings/uid/{uid}", response_model=BookingRead)
def get_booking_by_uid(uid: str, db: Session = Depends(get_db)):
    return reservations.get_booking_by_uid(db, uid)


@router.post("/bookings/manage/{uid}/cancel", response_model=BookingRead)
def cancel_by_token(uid: str, data: TokenCancel, db: Session = Depends(get_db)):
    return reservations.cancel_booking_by_token(db, uid, data.token, data.reason)


@router.post("/bookings/manage/{uid}/reschedule", response_model=BookingRead)
def reschedule_by_token(uid: str, data: TokenReschedule, db: Session = Depends(get_db)):
    return reservations.reschedule_booking_by_token(
        db, uid, data.token, data.start, data.end, data.reason
    )
