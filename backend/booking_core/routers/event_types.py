# backend/booking_core/routers/event_types.py
# Public read by id / slug; admin CRUD + resource links

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_admin
from ..models import (
    Bookings,
    EventTypes as DBEventTypes,
    ResourceEventTypes as DBLinks,
    Resources,
    Schedules,
)
from ..schemas.event_types import (
    EventTypeCreate,
    EventTypeRead,
    EventTypeUpdate,
    ResourceEventTypeRead,
)
from ..schemas.resources import ResourceRead
from ..services.slots.quantizer import now_ms

router = APIRouter(prefix="/event-types", tags=["event types"])
admin_router = APIRouter(
    prefix="/admin/event-types",
    tags=["admin: event types"],
    dependencies=[Depends(require_admin)],
)


def _get_or_404(db: Session, id: str) -> DBEventTypes:
    obj = db.get(DBEventTypes, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Event type not found")
    return obj


def _check_schedule(db: Session, schedule_id: Optional[str]) -> None:
    if schedule_id and not db.get(Schedules, schedule_id):
        raise HTTPException(status_code=422, detail=f'Schedule "{schedule_id}" not found')


def _check_slug(db: Session, organization_id: Optional[str], slug: str, exclude_id: str = None):
    query = db.query(DBEventTypes).filter(
        DBEventTypes.organization_id == organization_id,
        DBEventTypes.slug == slug,
    )
    if exclude_id:
        query = query.filter(DBEventTypes.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=409, detail=f'Slug "{slug}" is already in use')


# ── Public ───────────────────────────────────────────────────────────────


@router.get("/by-slug/{slug}", response_model=EventTypeRead)
def get_event_type_by_slug(
    slug: str,
    organization_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    obj = (
        db.query(DBEventTypes)
        .filter(
            DBEventTypes.organization_id == organization_id,
            DBEventTypes.slug == slug,
            DBEventTypes.is_active == 1,
        )
        .first()
    )
    if not obj:
        raise HTTPException(status_code=404, detail="Event type not found")
    return obj


@router.get("/{id}", response_model=EventTypeRead)
def get_event_type(id: str, db: Session = Depends(get_db)):
    obj = _get_or_404(db, id)
    if not obj.is_active:
        raise HTTPException(status_code=404, detail="Event type not found")
    return obj


@router.get("/{id}/resources", response_model=list[ResourceRead])
def list_event_type_resources(id: str, db: Session = Depends(get_db)):
    _get_or_404(db, id)
    return (
        db.query(Resources)
        .join(DBLinks, DBLinks.resource_id == Resources.id)
        .filter(DBLinks.event_type_id == id, Resources.is_active == 1)
        .order_by(Resources.name)
        .all()
    )


# ── Admin ────────────────────────────────────────────────────────────────


@admin_router.get("", response_model=list[EventTypeRead])
def list_event_types(
    organization_id: Optional[str] = None,
    active_only: bool = False,
    db: Session = Depends(get_db),
):
    query = db.query(DBEventTypes)
    if organization_id:
        query = query.filter(DBEventTypes.organization_id == organization_id)
    if active_only:
        query = query.filter(DBEventTypes.is_active == 1)
    return query.order_by(DBEventTypes.title).all()


@admin_router.post("", response_model=EventTypeRead, status_code=status.HTTP_201_CREATED)
def create_event_type(data: EventTypeCreate, db: Session = Depends(get_db)):
    if db.get(DBEventTypes, data.id):
        raise HTTPException(status_code=409, detail=f'Event type "{data.id}" already exists')
    _check_slug(db, data.organization_id, data.slug)
    _check_schedule(db, data.schedule_id)

    now = now_ms()
    obj = DBEventTypes(**data.model_dump(), created_at=now, updated_at=now)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@admin_router.patch("/{id}", response_model=EventTypeRead)
def update_event_type(id: str, data: EventTypeUpdate, db: Session = Depends(get_db)):
    obj = _get_or_404(db, id)
    changes = data.model_dump(exclude_unset=True)

    if "slug" in changes:
        _check_slug(db, obj.organization_id, changes["slug"], exclude_id=id)
    if "schedule_id" in changes:
        _check_schedule(db, changes["schedule_id"])

    for field, value in changes.items():
        setattr(obj, field, value)
    obj.updated_at = now_ms()

    db.commit()
    db.refresh(obj)
    return obj


@admin_router.post("/{id}/toggle-active", response_model=EventTypeRead)
def toggle_event_type_active(id: str, db: Session = Depends(get_db)):
    obj = _get_or_404(db, id)
    obj.is_active = 0 if obj.is_active else 1
    obj.updated_at = now_ms()
    db.commit()
    db.refresh(obj)
    return obj


@admin_router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event_type(id: str, db: Session = Depends(get_db)):
    obj = _get_or_404(db, id)

    if db.query(Bookings.id).filter(Bookings.event_type_id == id).first():
        raise HTTPException(
            status_code=409,
            detail="Cannot delete event type with existing bookings. Deactivate it instead.",
        )

    db.query(DBLinks).filter(DBLinks.event_type_id == id).delete()
    db.delete(obj)
    db.commit()


@admin_router.get("/{id}/resources", response_model=list[ResourceEventTypeRead])
def list_links(id: str, db: Session = Depends(get_db)):
    _get_or_404(db, id)
    return db.query(DBLinks).filter(DBLinks.event_type_id == id).all()


@admin_router.post(
    "/{id}/resources/{resource_id}",
    response_model=ResourceEventTypeRead,
    status_code=status.HTTP_201_CREATED,
)
def link_resource(id: str, resource_id: str, db: Session = Depends(get_db)):
    _get_or_404(db, id)
    if not db.get(Resources, resource_id):
        raise HTTPException(status_code=404, detail="Resource not found")

    existing = (
        db.query(DBLinks)
        .filter(DBLinks.event_type_id == id, DBLinks.resource_id == resource_id)
        .first()
    )
    if existing:
        return existing

    obj = DBLinks(resource_id=resource_id, event_type_id=id, created_at=now_ms())
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@admin_router.delete("/{id}/resources/{resource_id}", status_code=status.HTTP_204_NO_CONTENT)
def unlink_resource(id: str, resource_id: str, db: Session = Depends(get_db)):
    deleted = (
        db.query(DBLinks)
        .filter(DBLinks.event_type_id == id, DBLinks.resource_id == resource_id)
        .delete()
    )
    if not deleted:
        raise HTTPException(status_code=404, detail="Link not found")
    db.commit()
