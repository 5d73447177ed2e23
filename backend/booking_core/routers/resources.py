# backend/booking_core/routers/resources.py
# Admin CRUD. DELETE = hard delete, refused while bookings reference the resource

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_admin
from ..models import Bookings, BookingItems, Resources as DBResources
from ..schemas.resources import (
    ResourceCreate,
    ResourceRead,
    ResourceToggleRead,
    ResourceUpdate,
)
from ..services.presence import get_active_presence_count
from ..services.slots.quantizer import now_ms
from ..services.slots.store import AvailabilityStore

router = APIRouter(
    prefix="/admin/resources",
    tags=["admin: resources"],
    dependencies=[Depends(require_admin)],
)


def _get_or_404(db: Session, id: str) -> DBResources:
    obj = db.get(DBResources, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Resource not found")
    return obj


def _check_capacity_change(db: Session, obj: DBResources, changes: dict) -> None:
    # Booked slots live in the busy lists or the pool counters depending on
    # is_pool; neither table may be orphaned nor a pool shrunk below its peak
    quantity = changes.get("quantity")
    if quantity is None:
        quantity = obj.quantity
    fungible = changes.get("is_fungible")
    if fungible is None:
        fungible = obj.is_fungible
    becomes_pool = bool(fungible) and (quantity or 1) > 1

    peak = AvailabilityStore(db).peak_usage(obj.id)
    if not peak:
        return

    if becomes_pool != obj.is_pool:
        raise HTTPException(
            status_code=409,
            detail="Cannot switch between single and pooled capacity while bookings exist",
        )
    if becomes_pool and quantity < peak:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot lower quantity to {quantity}: {peak} units are booked in one slot",
        )


@router.get("", response_model=list[ResourceRead])
def list_resources(
    organization_id: Optional[str] = None,
    active_only: bool = False,
    db: Session = Depends(get_db),
):
    query = db.query(DBResources)
    if organization_id:
        query = query.filter(DBResources.organization_id == organization_id)
    if active_only:
        query = query.filter(DBResources.is_active == 1)
    return query.order_by(DBResources.name).all()


@router.get("/{id}", response_model=ResourceRead)
def get_resource(id: str, db: Session = Depends(get_db)):
    return _get_or_404(db, id)


@router.post("", response_model=ResourceRead, status_code=status.HTTP_201_CREATED)
def create_resource(
    data: ResourceCreate,
    db: Session = Depends(get_db),
):
    if db.get(DBResources, data.id):
        raise HTTPException(status_code=409, detail=f'Resource "{data.id}" already exists')

    now = now_ms()
    obj = DBResources(**data.model_dump(), created_at=now, updated_at=now)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.patch("/{id}", response_model=ResourceRead)
def update_resource(
    id: str,
    data: ResourceUpdate,
    db: Session = Depends(get_db),
):
    obj = _get_or_404(db, id)
    changes = data.model_dump(exclude_unset=True)

    if "quantity" in changes or "is_fungible" in changes:
        _check_capacity_change(db, obj, changes)

    for field, value in changes.items():
        setattr(obj, field, value)
    obj.updated_at = now_ms()

    db.commit()
    db.refresh(obj)
    return obj


@router.post("/{id}/toggle-active", response_model=ResourceToggleRead)
def toggle_resource_active(id: str, db: Session = Depends(get_db)):
    obj = _get_or_404(db, id)

    warning = None
    if obj.is_active:
        holders = get_active_presence_count(db, id)
        if holders:
            warning = f"{holders} session(s) are currently holding slots on this resource"

    obj.is_active = 0 if obj.is_active else 1
    obj.updated_at = now_ms()
    db.commit()
    db.refresh(obj)
    return ResourceToggleRead(resource=ResourceRead.model_validate(obj), warning=warning)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_resource(id: str, db: Session = Depends(get_db)):
    obj = _get_or_404(db, id)

    has_bookings = (
        db.query(Bookings.id).filter(Bookings.resource_id == id).first()
        or db.query(BookingItems.id).filter(BookingItems.resource_id == id).first()
    )
    if has_bookings:
        raise HTTPException(
            status_code=409,
            detail="Cannot delete resource with existing bookings. Deactivate it instead.",
        )

    db.delete(obj)
    db.commit()
