# backend/booking_core/services/presence.py
"""
Presence / hold engine: decaying, advisory soft locks on slots.

A client that is looking at a slot heartbeats it every few seconds.
Each (resource, slot, user) triple has:
  presence             : last heartbeat time + opaque data
  presence_heartbeats  : handle of the outstanding cleanup job

A hold is active while now - updated <= presence_timeout_ms. The cleanup
job deletes stale holds and reschedules itself for live ones.

Contains:
✓ heartbeat / leave / cleanup
✓ active-hold queries (slot, date, global count)
✓ hold ↔ candidate span intersection

Does NOT contain:
✗ Booking decisions (the reservation engine re-checks availability itself)
"""

import logging

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from ..config import settings
from ..models import Presence, PresenceHeartbeats
from .scheduler import RedisJobScheduler, get_scheduler, register_job
from .slots.quantizer import iso_to_slot, now_ms, required_slots
from .uow import UnitOfWork

logger = logging.getLogger(__name__)

CLEANUP_JOB = "presence.cleanup"
LIST_LIMIT = 20


def _timeout() -> int:
    return settings.presence_timeout_ms


def _get_presence(db: Session, resource_id: str, slot: str, user: str) -> Presence | None:
    return (
        db.query(Presence)
        .filter(
            Presence.resource_id == resource_id,
            Presence.slot == slot,
            Presence.user == user,
        )
        .one_or_none()
    )


def _get_heartbeat(
    db: Session, resource_id: str, slot: str, user: str
) -> PresenceHeartbeats | None:
    return (
        db.query(PresenceHeartbeats)
        .filter(
            PresenceHeartbeats.resource_id == resource_id,
            PresenceHeartbeats.slot == slot,
            PresenceHeartbeats.user == user,
        )
        .one_or_none()
    )


# ── Write ────────────────────────────────────────────────────────────────


def heartbeat(
    db: Session,
    resource_id: str,
    slots: list[str],
    user: str,
    data=None,
    scheduler: RedisJobScheduler | None = None,
    now: int | None = None,
) -> int:
    """
    Mark `user` present on every slot of the batch.

    The batch is one transaction and every record gets the same `updated`
    value. A cleanup job is scheduled for triples that have none yet.

    Returns:
        the shared `updated` timestamp (ms)
    """
    now = now if now is not None else now_ms()
    if not slots:
        return now

    scheduler = scheduler or get_scheduler()

    with UnitOfWork(db):
        for slot in dict.fromkeys(slots):
            presence = _get_presence(db, resource_id, slot, user)
            if presence is None:
                db.add(Presence(
                    resource_id=resource_id,
                    slot=slot,
                    user=user,
                    updated=now,
                    data=data,
                ))
            else:
                presence.updated = now
                if data is not None:
                    presence.data = data

            if _get_heartbeat(db, resource_id, slot, user) is None:
                handle = scheduler.run_after(
                    _timeout(),
                    CLEANUP_JOB,
                    {"resource_id": resource_id, "slot": slot, "user": user},
                )
                db.add(PresenceHeartbeats(
                    resource_id=resource_id,
                    slot=slot,
                    user=user,
                    mark_as_gone=handle,
                ))

    return now


@register_job(CLEANUP_JOB, with_handle=True)
def cleanup(
    db: Session,
    resource_id: str,
    slot: str,
    user: str,
    job_handle: str | None = None,
    scheduler: RedisJobScheduler | None = None,
    now: int | None = None,
) -> None:
    """
    Scheduled check for one hold, never called by clients.

    Superseded job (handle on record is another one) → nothing.
    Stale → delete presence + handle.
    Heartbeated since → reschedule and record the new handle.
    Either record already gone (leave) → delete what remains.
    """
    now = now if now is not None else now_ms()

    with UnitOfWork(db):
        presence = _get_presence(db, resource_id, slot, user)
        handle = _get_heartbeat(db, resource_id, slot, user)

        if job_handle is not None and handle is not None and handle.mark_as_gone != job_handle:
            logger.debug(f"Cleanup {job_handle} superseded by {handle.mark_as_gone}")
            return

        if presence is None or handle is None:
            if presence is not None:
                db.delete(presence)
            if handle is not None:
                db.delete(handle)
            return

        if now - presence.updated > _timeout():
            db.delete(presence)
            db.delete(handle)
            logger.debug(f"Presence expired: {user} on {resource_id} {slot}")
            return

        scheduler = scheduler or get_scheduler()
        handle.mark_as_gone = scheduler.run_after(
            _timeout(),
            CLEANUP_JOB,
            {"resource_id": resource_id, "slot": slot, "user": user},
        )


def leave(db: Session, resource_id: str, slots: list[str], user: str) -> None:
    """Drop holds early; outstanding cleanup jobs later fire as no-ops."""
    if not slots:
        return

    with UnitOfWork(db):
        for slot in dict.fromkeys(slots):
            presence = _get_presence(db, resource_id, slot, user)
            if presence is not None:
                db.delete(presence)
            handle = _get_heartbeat(db, resource_id, slot, user)
            if handle is not None:
                db.delete(handle)


# ── Read ─────────────────────────────────────────────────────────────────


def list_presence(
    db: Session, resource_id: str, slot: str, now: int | None = None
) -> list[Presence]:
    """Active holders of one slot, most recently active first."""
    now = now if now is not None else now_ms()
    rows = (
        db.query(Presence)
        .filter(Presence.resource_id == resource_id, Presence.slot == slot)
        .order_by(Presence.updated.desc())
        .limit(LIST_LIMIT)
        .all()
    )
    return [p for p in rows if now - p.updated <= _timeout()]


def _active_on_date(db: Session, resource_id: str, day: str, now: int) -> list[Presence]:
    # Slot strings are ISO timestamps, so a date prefix is a string range
    rows = (
        db.query(Presence)
        .filter(
            Presence.resource_id == resource_id,
            Presence.slot >= day,
            Presence.slot < day + "\uffff",
        )
        .all()
    )
    return [p for p in rows if now - p.updated <= _timeout()]


def get_date_presence(
    db: Session, resource_id: str, date: str, now: int | None = None
) -> list[dict]:
    """
    Active holds on a resource for one date.

    Returns:
        [{"slot": "2025-06-17T10:00:00.000Z", "user": "...", "updated": ms}, ...]
    """
    now = now if now is not None else now_ms()
    return [
        {"slot": p.slot, "user": p.user, "updated": p.updated}
        for p in _active_on_date(db, resource_id, date, now)
    ]


def get_active_presence_count(
    db: Session, resource_id: str | None = None, now: int | None = None
) -> int:
    """Distinct users holding anything (optionally on one resource)."""
    now = now if now is not None else now_ms()
    query = db.query(func.count(distinct(Presence.user))).filter(
        Presence.updated >= now - _timeout()
    )
    if resource_id:
        query = query.filter(Presence.resource_id == resource_id)
    return query.scalar() or 0


def _slot_key(slot: str) -> tuple[str, int] | None:
    try:
        return iso_to_slot(slot)
    except ValueError:
        return None


def _holds_in_span(presence: list[dict], span: dict[str, list[int]], me: str) -> list[dict]:
    conflicts = []
    for hold in presence:
        if hold["user"] == me:
            continue
        key = _slot_key(hold["slot"])
        if key is None:
            continue
        day, index = key
        if index in span.get(day, ()):
            conflicts.append(hold)
    return conflicts


def find_presence_conflicts(
    presence: list[dict],
    start: int,
    duration_minutes: int,
    me: str,
) -> list[dict]:
    """
    Holds by other users that fall inside a candidate booking.

    Pure function over get_date_presence() output: the candidate is mapped to
    the slot indices it would occupy, each hold to the slot its timestamp
    falls in.
    """
    span = required_slots(start, start + duration_minutes * 60_000)
    return _holds_in_span(presence, span, me)


def holds_by_others(
    db: Session,
    resource_id: str,
    start: int,
    end: int,
    user: str,
    now: int | None = None,
) -> list[dict]:
    """Active holds of other users on [start, end), for the booking guard."""
    now = now if now is not None else now_ms()
    span = required_slots(start, end)

    holds = []
    for day in span:
        holds.extend(get_date_presence(db, resource_id, day, now))

    conflicts = _holds_in_span(holds, span, user)
    if conflicts:
        logger.warning(
            f"Booking on {resource_id} overlaps {len(conflicts)} hold(s) by other sessions"
        )
    return conflicts
