# backend/booking_core/services/reservations.py
"""
Reservation engine: bookings that consume time against resources.

Every mutating call is one UnitOfWork:
  re-check availability → reserve slots per date → write booking + history
A conflict anywhere rolls the whole transaction back, so no partial slot
marking or half-written booking is ever visible to readers.

Lifecycle:
  pending   → confirmed | cancelled | declined
  confirmed → cancelled | completed
  cancelled, completed, declined, rescheduled are terminal.

Cancel and decline free exactly the slots the booking consumed.
"""

import hashlib
import hmac
import logging
import secrets

from sqlalchemy.orm import Session, selectinload

from ..config import settings
from ..errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from ..models import (
    BookingHistory,
    BookingItems,
    Bookings,
    EventTypes,
    ResourceEventTypes,
    Resources,
)
from .presence import holds_by_others
from .slots.availability import is_available
from .slots.quantizer import now_ms, required_slots
from .slots.store import AvailabilityStore
from .uow import UnitOfWork

logger = logging.getLogger(__name__)

PENDING = "pending"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"
DECLINED = "declined"
COMPLETED = "completed"
RESCHEDULED = "rescheduled"

ACTIVE_STATUSES = (PENDING, CONFIRMED)
TERMINAL_STATUSES = (CANCELLED, COMPLETED, DECLINED, RESCHEDULED)

TRANSITIONS = {
    PENDING: {CONFIRMED, CANCELLED, DECLINED},
    CONFIRMED: {CANCELLED, COMPLETED},
}
RELEASES_SLOTS = {CANCELLED, DECLINED}


# ── Helpers ──────────────────────────────────────────────────────────────


def generate_uid() -> str:
    return f"bk_{secrets.token_urlsafe(16)}"


def generate_management_token() -> str:
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def check_interval(start: int, end: int) -> None:
    if end <= start:
        raise ValidationError("end must be after start")


def get_active_resource(db: Session, resource_id: str) -> Resources:
    resource = db.get(Resources, resource_id)
    if resource is None:
        raise NotFoundError(f'Resource "{resource_id}" not found')
    if not resource.is_active:
        raise ValidationError(f'Resource "{resource_id}" is not active')
    return resource


def get_active_event_type(db: Session, event_type_id: str) -> EventTypes:
    event_type = db.get(EventTypes, event_type_id)
    if event_type is None:
        raise NotFoundError("Event type not found")
    if not event_type.is_active:
        raise ValidationError(f'Event type "{event_type_id}" is not active')
    return event_type


def check_event_type_link(db: Session, event_type_id: str, resource_id: str) -> None:
    """
    Enforce resource ↔ event type links.

    Event types without any link accept every resource; once one link
    exists only linked resources may be booked.
    """
    links = (
        db.query(ResourceEventTypes.resource_id)
        .filter(ResourceEventTypes.event_type_id == event_type_id)
        .all()
    )
    if links and resource_id not in {row.resource_id for row in links}:
        raise ValidationError(
            f'Resource "{resource_id}" is not offered for event type "{event_type_id}"'
        )


def reserve_interval(
    store: AvailabilityStore,
    resource_id: str,
    start: int,
    end: int,
    quantity: int = 1,
) -> None:
    for day, slots in required_slots(start, end).items():
        store.reserve(resource_id, day, slots, quantity)


def release_interval(
    store: AvailabilityStore,
    resource_id: str,
    start: int,
    end: int,
    quantity: int = 1,
) -> None:
    for day, slots in required_slots(start, end).items():
        store.release(resource_id, day, slots, quantity)


def allocations(booking: Bookings) -> list[tuple[str, int]]:
    """(resource_id, quantity) pairs a booking consumes."""
    if booking.items:
        return [(item.resource_id, item.quantity) for item in booking.items]
    return [(booking.resource_id, 1)]


def add_history(
    db: Session,
    booking: Bookings,
    from_status: str,
    to_status: str,
    changed_by: str | None = None,
    reason: str | None = None,
    timestamp: int | None = None,
) -> None:
    db.add(BookingHistory(
        booking_id=booking.id,
        from_status=from_status,
        to_status=to_status,
        changed_by=changed_by,
        reason=reason,
        timestamp=timestamp or now_ms(),
    ))


def event_payload(booking: Bookings) -> dict:
    return {
        "booking_id": booking.id,
        "uid": booking.uid,
        "resource_id": booking.resource_id,
        "event_type_id": booking.event_type_id,
        "start": booking.start,
        "end": booking.end,
        "status": booking.status,
    }


# ── Read ─────────────────────────────────────────────────────────────────


def get_booking(db: Session, booking_id: int) -> Bookings:
    booking = db.get(Bookings, booking_id)
    if booking is None:
        raise NotFoundError(f"Booking {booking_id} not found")
    return booking


def get_booking_by_uid(db: Session, uid: str) -> Bookings:
    booking = db.query(Bookings).filter(Bookings.uid == uid).one_or_none()
    if booking is None:
        raise NotFoundError(f'Booking "{uid}" not found')
    return booking


def get_booking_with_items(db: Session, booking_id: int) -> Bookings:
    booking = (
        db.query(Bookings)
        .options(selectinload(Bookings.items))
        .filter(Bookings.id == booking_id)
        .one_or_none()
    )
    if booking is None:
        raise NotFoundError(f"Booking {booking_id} not found")
    return booking


def get_booking_history(db: Session, booking_id: int) -> list[BookingHistory]:
    get_booking(db, booking_id)
    return (
        db.query(BookingHistory)
        .filter(BookingHistory.booking_id == booking_id)
        .order_by(BookingHistory.timestamp, BookingHistory.id)
        .all()
    )


def list_bookings(
    db: Session,
    organization_id: str | None = None,
    resource_id: str | None = None,
    event_type_id: str | None = None,
    status: str | None = None,
    date_from: int | None = None,
    date_to: int | None = None,
    limit: int | None = None,
) -> list[Bookings]:
    """Filtered bookings, newest start first."""
    query = db.query(Bookings)
    if organization_id:
        query = query.filter(Bookings.organization_id == organization_id)
    if resource_id:
        query = query.filter(Bookings.resource_id == resource_id)
    if event_type_id:
        query = query.filter(Bookings.event_type_id == event_type_id)
    if status:
        query = query.filter(Bookings.status == status)
    if date_from is not None:
        query = query.filter(Bookings.start >= date_from)
    if date_to is not None:
        query = query.filter(Bookings.start <= date_to)

    query = query.order_by(Bookings.start.desc(), Bookings.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


# ── Create ───────────────────────────────────────────────────────────────


def create_reservation(
    db: Session,
    resource_id: str,
    actor_id: str,
    start: int,
    end: int,
) -> int:
    """
    Reserve [start, end) on a single resource for an actor.

    Returns:
        id of the confirmed booking

    Raises:
        ValidationError: end <= start / inactive resource
        NotFoundError: unknown resource
        ConflictError: any spanned slot is taken
    """
    check_interval(start, end)

    with UnitOfWork(db) as uow:
        resource = get_active_resource(db, resource_id)

        # Authoritative check; store.reserve() re-verifies each row it writes
        if not is_available(db, resource_id, start, end):
            raise ConflictError(
                "Resource is not available for the requested time range",
                resource_ids=[resource_id],
            )
        reserve_interval(AvailabilityStore(db), resource_id, start, end)

        now = now_ms()
        booking = Bookings(
            uid=generate_uid(),
            resource_id=resource_id,
            actor_id=actor_id,
            organization_id=resource.organization_id,
            start=start,
            end=end,
            timezone=resource.timezone or "UTC",
            status=CONFIRMED,
            booker_name=actor_id,
            booker_email=actor_id,
            event_title=resource.name,
            created_at=now,
            updated_at=now,
        )
        db.add(booking)
        db.flush()
        add_history(db, booking, "", CONFIRMED, changed_by=actor_id, timestamp=now)
        uow.emit(f"booking.{CONFIRMED}", event_payload(booking))

    logger.info(f"Reservation {booking.id} created on {resource_id} for {actor_id}")
    return booking.id


def create_booking(
    db: Session,
    event_type_id: str,
    resource_id: str,
    start: int,
    end: int,
    timezone: str,
    booker: dict,
    location: dict | None = None,
    holder: str | None = None,
) -> tuple[Bookings, str]:
    """
    Book an event type on a resource.

    Snapshots the event type's title and description onto the booking.
    Status is pending when the event type requires confirmation.

    `holder` is the caller's presence session id; when given (and the
    presence guard is enabled) slots held by other sessions are refused.

    Returns:
        (booking, management token). The token is only returned here;
        the booking stores its sha256 hash.
    """
    check_interval(start, end)

    with UnitOfWork(db) as uow:
        event_type = get_active_event_type(db, event_type_id)
        resource = get_active_resource(db, resource_id)
        check_event_type_link(db, event_type_id, resource_id)

        if holder is not None and settings.presence_guard:
            if holds_by_others(db, resource_id, start, end, holder):
                raise ConflictError(
                    "Time slot is being held by another booker",
                    resource_ids=[resource_id],
                )

        if not is_available(db, resource_id, start, end):
            raise ConflictError("Time slot no longer available", resource_ids=[resource_id])
        reserve_interval(AvailabilityStore(db), resource_id, start, end)

        status = PENDING if event_type.requires_confirmation else CONFIRMED
        token = generate_management_token()
        now = now_ms()

        booking = Bookings(
            uid=generate_uid(),
            resource_id=resource_id,
            actor_id=booker["email"],
            event_type_id=event_type.id,
            organization_id=event_type.organization_id or resource.organization_id,
            start=start,
            end=end,
            timezone=timezone,
            status=status,
            booker_name=booker["name"],
            booker_email=booker["email"],
            booker_phone=booker.get("phone"),
            booker_notes=booker.get("notes"),
            event_title=event_type.title,
            event_description=event_type.description,
            location=location,
            management_token_hash=hash_token(token),
            created_at=now,
            updated_at=now,
        )
        db.add(booking)
        db.flush()
        add_history(db, booking, "", status, changed_by=booker["email"], timestamp=now)
        uow.emit(f"booking.{status}", event_payload(booking))

    logger.info(f"Booking {booking.uid} created ({status}) on {resource_id}")
    return booking, token


# ── Transitions ──────────────────────────────────────────────────────────


def _apply_transition(
    db: Session,
    uow: UnitOfWork,
    booking: Bookings,
    to_status: str,
    reason: str | None,
    changed_by: str | None,
) -> None:
    from_status = booking.status
    if to_status not in TRANSITIONS.get(from_status, set()):
        raise InvalidStateError(
            f"Cannot change booking {booking.uid} from {from_status} to {to_status}"
        )

    if to_status in RELEASES_SLOTS:
        store = AvailabilityStore(db)
        for resource_id, quantity in allocations(booking):
            release_interval(store, resource_id, booking.start, booking.end, quantity)

    now = now_ms()
    booking.status = to_status
    booking.updated_at = now
    if to_status == CANCELLED:
        booking.cancelled_at = now
    if reason is not None and to_status in RELEASES_SLOTS:
        booking.cancellation_reason = reason

    add_history(db, booking, from_status, to_status, changed_by, reason, timestamp=now)
    uow.emit(f"booking.{to_status}", event_payload(booking))


def transition_booking_state(
    db: Session,
    booking_id: int,
    to_status: str,
    reason: str | None = None,
    changed_by: str | None = None,
) -> Bookings:
    """
    Guarded state change with history and a post-commit event.

    Raises:
        NotFoundError: unknown booking
        InvalidStateError: transition not allowed from the current status
    """
    with UnitOfWork(db) as uow:
        booking = get_booking(db, booking_id)
        _apply_transition(db, uow, booking, to_status, reason, changed_by)

    logger.info(f"Booking {booking.uid} → {to_status}")
    return booking


def confirm_booking(db: Session, booking_id: int, changed_by: str | None = None) -> Bookings:
    return transition_booking_state(db, booking_id, CONFIRMED, changed_by=changed_by)


def decline_booking(
    db: Session,
    booking_id: int,
    reason: str | None = None,
    changed_by: str | None = None,
) -> Bookings:
    return transition_booking_state(db, booking_id, DECLINED, reason, changed_by)


def complete_booking(db: Session, booking_id: int, changed_by: str | None = None) -> Bookings:
    return transition_booking_state(db, booking_id, COMPLETED, changed_by=changed_by)


def cancel_reservation(
    db: Session,
    booking_id: int,
    reason: str | None = None,
    changed_by: str | None = None,
) -> Bookings:
    """
    Cancel a booking and free its slots.

    Already cancelled → returned unchanged (no double free).
    Completed / declined / rescheduled → InvalidStateError.
    Multi-resource bookings release every item, pools decrement counts.
    """
    with UnitOfWork(db) as uow:
        booking = get_booking(db, booking_id)
        if booking.status == CANCELLED:
            return booking
        _apply_transition(db, uow, booking, CANCELLED, reason, changed_by)

    logger.info(f"Booking {booking.uid} cancelled")
    return booking


# ── Reschedule ───────────────────────────────────────────────────────────


def reschedule_booking(
    db: Session,
    booking_id: int,
    new_start: int,
    new_end: int,
    reason: str | None = None,
    changed_by: str | None = None,
) -> Bookings:
    """
    Move a booking to a new interval.

    One transaction: free the old slots, reserve the new ones, cancel the
    old booking (rescheduled_to_uid) and create its successor with the same
    status and items (rescheduled_from_uid). If the new interval is taken
    the whole transaction rolls back and the original booking keeps its slots.

    Returns:
        the new booking
    """
    check_interval(new_start, new_end)

    with UnitOfWork(db) as uow:
        old = get_booking(db, booking_id)
        if old.status not in ACTIVE_STATUSES:
            raise InvalidStateError(f"Cannot reschedule a {old.status} booking")

        store = AvailabilityStore(db)
        consumed = allocations(old)

        for resource_id, quantity in consumed:
            get_active_resource(db, resource_id)
            release_interval(store, resource_id, old.start, old.end, quantity)

        for resource_id, quantity in consumed:
            if not is_available(db, resource_id, new_start, new_end, quantity):
                raise ConflictError(
                    f'Resource "{resource_id}" is not available for the new time',
                    resource_ids=[resource_id],
                )
            reserve_interval(store, resource_id, new_start, new_end, quantity)

        now = now_ms()
        new = Bookings(
            uid=generate_uid(),
            resource_id=old.resource_id,
            actor_id=old.actor_id,
            event_type_id=old.event_type_id,
            organization_id=old.organization_id,
            start=new_start,
            end=new_end,
            timezone=old.timezone,
            status=old.status,
            booker_name=old.booker_name,
            booker_email=old.booker_email,
            booker_phone=old.booker_phone,
            booker_notes=old.booker_notes,
            event_title=old.event_title,
            event_description=old.event_description,
            location=old.location,
            management_token_hash=old.management_token_hash,
            rescheduled_from_uid=old.uid,
            created_at=now,
            updated_at=now,
        )
        if old.items:
            new.items = [
                BookingItems(resource_id=item.resource_id, quantity=item.quantity)
                for item in old.items
            ]
        db.add(new)
        db.flush()

        from_status = old.status
        old.status = CANCELLED
        old.cancelled_at = now
        old.cancellation_reason = reason or "Rescheduled"
        old.rescheduled_to_uid = new.uid
        old.updated_at = now

        add_history(db, old, from_status, CANCELLED, changed_by, reason or "Rescheduled", now)
        add_history(db, new, "", new.status, changed_by, f"Rescheduled from {old.uid}", now)

        uow.emit("booking.rescheduled", {
            **event_payload(new),
            "rescheduled_from_uid": old.uid,
        })

    logger.info(f"Booking {old.uid} rescheduled to {new.uid}")
    return new


# ── Management token flows ───────────────────────────────────────────────


def get_booking_by_token(db: Session, uid: str, token: str) -> Bookings:
    """Booking for its public uid, only when the management token matches."""
    booking = db.query(Bookings).filter(Bookings.uid == uid).one_or_none()
    if (
        booking is None
        or not booking.management_token_hash
        or not hmac.compare_digest(booking.management_token_hash, hash_token(token))
    ):
        raise NotFoundError("Booking not found")
    return booking


def cancel_booking_by_token(
    db: Session,
    uid: str,
    token: str,
    reason: str | None = None,
) -> Bookings:
    booking = get_booking_by_token(db, uid, token)
    return cancel_reservation(db, booking.id, reason, changed_by=booking.booker_email)


def reschedule_booking_by_token(
    db: Session,
    uid: str,
    token: str,
    new_start: int,
    new_end: int,
    reason: str | None = None,
) -> Bookings:
    booking = get_booking_by_token(db, uid, token)
    return reschedule_booking(
        db, booking.id, new_start, new_end, reason, changed_by=booking.booker_email
    )
