# backend/booking_core/routers/schedules.py
# Admin CRUD; overrides are replaced per (schedule, date)

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_admin
from ..models import DateOverrides as DBOverrides, Schedules as DBSchedules
from ..schemas.schedules import (
    DateOverrideCreate,
    DateOverrideRead,
    EffectiveAvailabilityRead,
    ScheduleCreate,
    ScheduleRead,
    ScheduleUpdate,
)
from ..services.schedules import get_effective_availability
from ..services.slots.quantizer import now_ms

router = APIRouter(
    prefix="/admin/schedules",
    tags=["admin: schedules"],
    dependencies=[Depends(require_admin)],
)


def _get_or_404(db: Session, id: str) -> DBSchedules:
    obj = db.get(DBSchedules, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return obj


def _hours(entries) -> list[dict]:
    return [e.model_dump(by_alias=True) for e in entries]


def _clear_other_defaults(db: Session, obj: DBSchedules) -> None:
    (
        db.query(DBSchedules)
        .filter(
            DBSchedules.organization_id == obj.organization_id,
            DBSchedules.id != obj.id,
        )
        .update({DBSchedules.is_default: 0})
    )


@router.get("", response_model=list[ScheduleRead])
def list_schedules(organization_id: Optional[str] = None, db: Session = Depends(get_db)):
    query = db.query(DBSchedules)
    if organization_id:
        query = query.filter(DBSchedules.organization_id == organization_id)
    return query.order_by(DBSchedules.name).all()


@router.get("/{id}", response_model=ScheduleRead)
def get_schedule(id: str, db: Session = Depends(get_db)):
    return _get_or_404(db, id)


@router.post("", response_model=ScheduleRead, status_code=status.HTTP_201_CREATED)
def create_schedule(data: ScheduleCreate, db: Session = Depends(get_db)):
    if db.get(DBSchedules, data.id):
        raise HTTPException(status_code=409, detail=f'Schedule "{data.id}" already exists')

    now = now_ms()
    obj = DBSchedules(
        **data.model_dump(exclude={"weekly_hours"}),
        weekly_hours=_hours(data.weekly_hours),
        created_at=now,
        updated_at=now,
    )
    db.add(obj)
    db.flush()
    if obj.is_default:
        _clear_other_defaults(db, obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.patch("/{id}", response_model=ScheduleRead)
def update_schedule(id: str, data: ScheduleUpdate, db: Session = Depends(get_db)):
    obj = _get_or_404(db, id)

    changes = data.model_dump(exclude_unset=True, exclude={"weekly_hours"})
    for field, value in changes.items():
        setattr(obj, field, value)
    if data.weekly_hours is not None:
        obj.weekly_hours = _hours(data.weekly_hours)
    obj.updated_at = now_ms()

    if obj.is_default:
        _clear_other_defaults(db, obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule(id: str, db: Session = Depends(get_db)):
    obj = _get_or_404(db, id)
    db.delete(obj)
    db.commit()


# ── Date overrides ───────────────────────────────────────────────────────


@router.get("/{id}/overrides", response_model=list[DateOverrideRead])
def list_overrides(id: str, db: Session = Depends(get_db)):
    _get_or_404(db, id)
    return (
        db.query(DBOverrides)
        .filter(DBOverrides.schedule_id == id)
        .order_by(DBOverrides.date)
        .all()
    )


@router.put("/{id}/overrides", response_model=DateOverrideRead)
def set_override(id: str, data: DateOverrideCreate, db: Session = Depends(get_db)):
    _get_or_404(db, id)
    if data.type == "custom" and not data.custom_hours:
        raise HTTPException(status_code=422, detail="Custom overrides need custom_hours")

    obj = (
        db.query(DBOverrides)
        .filter(DBOverrides.schedule_id == id, DBOverrides.date == data.date)
        .first()
    )
    if obj is None:
        obj = DBOverrides(schedule_id=id, date=data.date)
        db.add(obj)

    obj.type = data.type
    obj.custom_hours = _hours(data.custom_hours) if data.type == "custom" else None

    db.commit()
    db.refresh(obj)
    return obj


@router.delete("/{id}/overrides/{date}", status_code=status.HTTP_204_NO_CONTENT)
def delete_override(id: str, date: str, db: Session = Depends(get_db)):
    deleted = (
        db.query(DBOverrides)
        .filter(DBOverrides.schedule_id == id, DBOverrides.date == date)
        .delete()
    )
    if not deleted:
        raise HTTPException(status_code=404, detail="Override not found")
    db.commit()


@router.get("/{id}/effective", response_model=EffectiveAvailabilityRead)
def effective_availability(id: str, date: str, db: Session = Depends(get_db)):
    _get_or_404(db, id)
    return EffectiveAvailabilityRead(
        schedule_id=id,
        date=date,
        slots=get_effective_availability(db, id, date),
    )
