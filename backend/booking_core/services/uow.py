# backend/booking_core/services/uow.py
"""
Unit of Work.

One database transaction per mutating operation:
- commit when the block finishes, rollback on any exception
- version / unique-key violations from a racing writer → ConflictError
- events queued with emit() are published only after a successful commit

Usage:
    with UnitOfWork(db) as uow:
        store.reserve(...)
        db.add(booking)
        uow.emit("booking.confirmed", {"uid": booking.uid})
    # committed, events pushed
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError
from .events import publish_booking_event

logger = logging.getLogger(__name__)

CONCURRENT_WRITE = (StaleDataError, IntegrityError)


class UnitOfWork:

    def __init__(self, db: Session):
        self.db = db
        self._events: list[tuple[str, dict]] = []

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.rollback()
            if issubclass(exc_type, CONCURRENT_WRITE):
                raise _as_conflict(exc_val) from exc_val
            return False

        self.commit()
        return False

    def emit(self, event_type: str, payload: dict) -> None:
        self._events.append((event_type, payload))

    def commit(self) -> None:
        try:
            self.db.commit()
        except CONCURRENT_WRITE as e:
            self.rollback()
            raise _as_conflict(e) from e

        events = self._events.copy()
        self._events.clear()
        for event_type, payload in events:
            publish_booking_event(event_type, payload)

    def rollback(self) -> None:
        if self._events:
            logger.warning(f"Rolling back transaction, discarding {len(self._events)} events")
        self._events.clear()
        self.db.rollback()


def _as_conflict(error: Exception) -> ConflictError:
    logger.warning(f"Concurrent write detected: {error.__class__.__name__}")
    return ConflictError("Availability changed concurrently, please retry")
