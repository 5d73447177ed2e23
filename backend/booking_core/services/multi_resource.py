# backend/booking_core/services/multi_resource.py
"""
Bundle bookings: one booking reserving several resources for one interval.

Phase 1 validates every requested resource and raises on the first conflict.
Phase 2 (only reached when Phase 1 passed for all of them) writes the
booking, one item per resource, and every availability row.
Both phases share one UnitOfWork, so a failure leaves no item and no
slot change behind.

Singular resources use busy-slot membership, fungible pools
(is_fungible and quantity > 1) compare booked + requested against quantity.
"""

import logging

from sqlalchemy.orm import Session

from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import BookingItems, Bookings, Resources
from .reservations import (
    CONFIRMED,
    PENDING,
    add_history,
    check_event_type_link,
    check_interval,
    event_payload,
    generate_management_token,
    generate_uid,
    get_active_event_type,
    get_active_resource,
    hash_token,
    reserve_interval,
)
from .slots.quantizer import now_ms, required_slots
from .slots.store import AvailabilityStore
from .uow import UnitOfWork

logger = logging.getLogger(__name__)


def _normalize(resources: list[dict]) -> list[tuple[str, int]]:
    if not resources:
        raise ValidationError("At least one resource is required")

    requested = []
    seen = set()
    for entry in resources:
        resource_id = entry["resource_id"]
        quantity = entry.get("quantity")
        if quantity is None:
            quantity = 1
        if quantity < 1:
            raise ValidationError(f'Quantity for "{resource_id}" must be at least 1')
        if resource_id in seen:
            raise ValidationError(f'Resource "{resource_id}" requested twice')
        seen.add(resource_id)
        requested.append((resource_id, quantity))
    return requested


def _check_quantity(resource: Resources, quantity: int) -> None:
    if quantity > 1 and not resource.is_pool:
        raise ValidationError(
            f'Resource "{resource.id}" is not a pool, quantity must be 1'
        )


def check_multi_resource_availability(
    db: Session,
    resources: list[dict],
    start: int,
    end: int,
) -> dict:
    """
    Per-resource availability report for a bundle.

    Returns:
        {
            "available": bool,
            "resources": [
                {"resourceId", "available", "requestedQuantity",
                 "availableQuantity", "conflicts": [slot indices]},
            ],
        }
    """
    check_interval(start, end)
    requested = _normalize(resources)
    span = required_slots(start, end)
    store = AvailabilityStore(db)

    results = []
    for resource_id, quantity in requested:
        resource = db.get(Resources, resource_id)
        if resource is None:
            raise NotFoundError(f'Resource "{resource_id}" not found')

        conflicts: list[int] = []
        available_quantity = resource.quantity if resource.is_pool else 1
        for day, slots in span.items():
            conflicts.extend(store.conflicts(resource_id, day, slots, quantity))
            available_quantity = min(
                available_quantity, store.available_quantity(resource_id, day, slots)
            )

        results.append({
            "resourceId": resource_id,
            "available": bool(resource.is_active)
            and not conflicts
            and quantity <= available_quantity,
            "requestedQuantity": quantity,
            "availableQuantity": available_quantity,
            "conflicts": conflicts,
        })

    return {
        "available": all(r["available"] for r in results),
        "resources": results,
    }


def create_multi_resource_booking(
    db: Session,
    event_type_id: str,
    resources: list[dict],
    start: int,
    end: int,
    timezone: str,
    booker: dict,
    location: dict | None = None,
    organization_id: str | None = None,
) -> tuple[Bookings, str]:
    """
    Reserve every resource of the bundle or none of them.

    The first resource is the booking's primary resource and must be
    standalone; add-ons (is_standalone = 0) can only ride along.

    Returns:
        (booking with items, management token)

    Raises:
        ConflictError: naming the first resource that is not available
    """
    check_interval(start, end)
    requested = _normalize(resources)

    with UnitOfWork(db) as uow:
        event_type = get_active_event_type(db, event_type_id)
        store = AvailabilityStore(db)
        span = required_slots(start, end)

        # Phase 1: validate everything, reserve nothing
        for index, (resource_id, quantity) in enumerate(requested):
            resource = get_active_resource(db, resource_id)
            if index == 0:
                if not resource.is_standalone:
                    raise ValidationError(
                        f'Resource "{resource_id}" cannot be booked on its own'
                    )
                check_event_type_link(db, event_type_id, resource_id)
            _check_quantity(resource, quantity)

            for day, slots in span.items():
                if store.conflicts(resource_id, day, slots, quantity):
                    logger.warning(f"Bundle conflict on {resource_id} {day}")
                    if resource.is_pool:
                        message = f'Resource "{resource_id}" is not available for the requested quantity'
                    else:
                        message = f'Resource "{resource_id}" is not available for the selected time'
                    raise ConflictError(message, resource_ids=[resource_id])

        # Phase 2: booking, items, availability rows
        status = PENDING if event_type.requires_confirmation else CONFIRMED
        token = generate_management_token()
        now = now_ms()
        primary_id = requested[0][0]

        booking = Bookings(
            uid=generate_uid(),
            resource_id=primary_id,
            actor_id=booker["email"],
            event_type_id=event_type.id,
            organization_id=organization_id or event_type.organization_id,
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
            location=location or {"type": "address"},
            management_token_hash=hash_token(token),
            created_at=now,
            updated_at=now,
            items=[
                BookingItems(resource_id=resource_id, quantity=quantity)
                for resource_id, quantity in requested
            ],
        )
        db.add(booking)
        db.flush()

        for resource_id, quantity in requested:
            reserve_interval(store, resource_id, start, end, quantity)

        add_history(db, booking, "", status, "system", "Booking created", now)
        uow.emit(f"booking.{status}", {
            **event_payload(booking),
            "resource_ids": [resource_id for resource_id, _ in requested],
        })

    logger.info(
        f"Bundle booking {booking.uid} created on {len(requested)} resources ({status})"
    )
    return booking, token
