# backend/booking_core/routers/multi_resource.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.bookings import BookingCreated, BookingRead
from ..schemas.multi_resource import (
    MultiResourceBookingCreate,
    MultiResourceCheck,
    MultiResourceCheckRead,
)
from ..services.multi_resource import (
    check_multi_resource_availability,
    create_multi_resource_booking,
)

router = APIRouter(prefix="/bookings/multi-resource", tags=["bookings"])


@router.post("/check", response_model=MultiResourceCheckRead)
def check(data: MultiResourceCheck, db: Session = Depends(get_db)):
    return check_multi_resource_availability(
        db,
        [r.model_dump() for r in data.resources],
        data.start,
        data.end,
    )


@router.post("", response_model=BookingCreated, status_code=status.HTTP_201_CREATED)
def create(data: MultiResourceBookingCreate, db: Session = Depends(get_db)):
    booking, token = create_multi_resource_booking(
        db,
        event_type_id=data.event_type_id,
        resources=[r.model_dump() for r in data.resources],
        start=data.start,
        end=data.end,
        timezone=data.timezone,
        booker=data.booker.model_dump(),
        location=data.location.model_dump(exclude_none=True) if data.location else None,
        organization_id=data.organization_id,
    )
    return BookingCreated(
        **BookingRead.model_validate(booking).model_dump(),
        management_token=token,
    )
