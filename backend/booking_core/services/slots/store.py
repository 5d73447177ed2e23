# backend/booking_core/services/slots/store.py
"""
Daily / quantity availability storage.

One row per (resource, date):
  daily_availability.busy_slots        sorted slot indices, singular resources
  quantity_availability.slot_quantities 96 booked-unit counters, fungible pools

No row means the whole day is free. Only the reservation services write
through this store; every write re-verifies against the row it updates.
Rows are versioned (version_id_col), so a racing writer that committed
first turns this session's flush into a StaleDataError / IntegrityError.
"""

import logging

from sqlalchemy.orm import Session

from ...errors import ConflictError
from ...models import DailyAvailability, QuantityAvailability, Resources
from .quantizer import SLOTS_PER_DAY

logger = logging.getLogger(__name__)


class AvailabilityStore:
    """Session-bound access to the availability rows of one transaction."""

    def __init__(self, db: Session):
        self.db = db

    def _pool_size(self, resource_id: str) -> int | None:
        """Total units for fungible pools, None for singular resources."""
        resource = self.db.get(Resources, resource_id)
        if resource is not None and resource.is_pool:
            return resource.quantity
        return None

    # ── Read ─────────────────────────────────────────────────────────────

    def get_day(self, resource_id: str, day: str) -> DailyAvailability | None:
        return (
            self.db.query(DailyAvailability)
            .filter(
                DailyAvailability.resource_id == resource_id,
                DailyAvailability.date == day,
            )
            .one_or_none()
        )

    def get_quantities(self, resource_id: str, day: str) -> QuantityAvailability | None:
        return (
            self.db.query(QuantityAvailability)
            .filter(
                QuantityAvailability.resource_id == resource_id,
                QuantityAvailability.date == day,
            )
            .one_or_none()
        )

    def busy_slots(self, resource_id: str, day: str) -> list[int]:
        record = self.get_day(resource_id, day)
        return record.busy_slots if record else []

    def slot_quantities(self, resource_id: str, day: str) -> list[int]:
        record = self.get_quantities(resource_id, day)
        return record.slot_quantities if record else [0] * SLOTS_PER_DAY

    def blocked_slots(self, resource_id: str, day: str) -> list[int]:
        """Slots that cannot take one more unit (busy, or pool at capacity)."""
        return self.blocked_by_date(resource_id, [day])[day]

    def blocked_by_date(self, resource_id: str, dates: list[str]) -> dict[str, list[int]]:
        """
        Blocked slots for many dates with one range query.

        Cost is O(len(dates)) rows whatever the booking history.
        """
        if not dates:
            return {}

        result: dict[str, list[int]] = {d: [] for d in dates}
        pool = self._pool_size(resource_id)

        if pool is None:
            rows = (
                self.db.query(DailyAvailability)
                .filter(
                    DailyAvailability.resource_id == resource_id,
                    DailyAvailability.date >= min(dates),
                    DailyAvailability.date <= max(dates),
                )
                .all()
            )
            for row in rows:
                if row.date in result:
                    result[row.date] = row.busy_slots
            return result

        rows = (
            self.db.query(QuantityAvailability)
            .filter(
                QuantityAvailability.resource_id == resource_id,
                QuantityAvailability.date >= min(dates),
                QuantityAvailability.date <= max(dates),
            )
            .all()
        )
        for row in rows:
            if row.date in result:
                counts = row.slot_quantities
                result[row.date] = [i for i, booked in enumerate(counts) if booked >= pool]
        return result

    def peak_usage(self, resource_id: str) -> int:
        """
        Most units booked in any one slot, over every stored day.

        Reads the table the resource currently books into: busy lists count
        as 1, pool counters as their value. 0 means nothing is booked.
        """
        if self._pool_size(resource_id) is None:
            rows = (
                self.db.query(DailyAvailability)
                .filter(DailyAvailability.resource_id == resource_id)
                .all()
            )
            return 1 if any(row.busy_slots for row in rows) else 0

        rows = (
            self.db.query(QuantityAvailability)
            .filter(QuantityAvailability.resource_id == resource_id)
            .all()
        )
        return max((max(row.slot_quantities, default=0) for row in rows), default=0)

    def conflicts(
        self,
        resource_id: str,
        day: str,
        slots: list[int],
        quantity: int = 1,
    ) -> list[int]:
        """Requested slots that cannot take `quantity` more units."""
        pool = self._pool_size(resource_id)
        if pool is None:
            busy = set(self.busy_slots(resource_id, day))
            return [s for s in slots if s in busy]

        counts = self.slot_quantities(resource_id, day)
        return [s for s in slots if counts[s] + quantity > pool]

    def available_quantity(self, resource_id: str, day: str, slots: list[int]) -> int:
        """Minimum free units across the slots (0/1 for singular resources)."""
        pool = self._pool_size(resource_id)
        if pool is None:
            busy = set(self.busy_slots(resource_id, day))
            return 0 if any(s in busy for s in slots) else 1

        counts = self.slot_quantities(resource_id, day)
        if not slots:
            return pool
        return max(min(pool - counts[s] for s in slots), 0)

    # ── Write ────────────────────────────────────────────────────────────

    def reserve(
        self,
        resource_id: str,
        day: str,
        slots: list[int],
        quantity: int = 1,
    ) -> None:
        """
        Mark slots as consumed for one date.

        Raises:
            ConflictError: a slot is already busy / the pool would overflow.
        """
        if not slots:
            return

        pool = self._pool_size(resource_id)
        if pool is None:
            self._reserve_busy(resource_id, day, slots)
        else:
            self._reserve_quantity(resource_id, day, slots, quantity, pool)

        # Surface unique / version violations inside the caller's transaction
        self.db.flush()

    def _reserve_busy(self, resource_id: str, day: str, slots: list[int]) -> None:
        record = self.get_day(resource_id, day)
        if record is None:
            self.db.add(DailyAvailability(
                resource_id=resource_id,
                date=day,
                busy_slots=slots,
            ))
            return

        busy = record.busy_slots
        clash = sorted(set(busy) & set(slots))
        if clash:
            logger.warning(f"Conflict on {resource_id} {day}: slots {clash} already busy")
            raise ConflictError(
                f"Conflict detected on {day} at slot {clash[0]}",
                resource_ids=[resource_id],
            )
        record.busy_slots = busy + list(slots)

    def _reserve_quantity(
        self,
        resource_id: str,
        day: str,
        slots: list[int],
        quantity: int,
        pool: int,
    ) -> None:
        record = self.get_quantities(resource_id, day)
        counts = record.slot_quantities if record else [0] * SLOTS_PER_DAY

        over = [s for s in slots if counts[s] + quantity > pool]
        if over:
            logger.warning(
                f"Conflict on {resource_id} {day}: {quantity} more units exceed {pool} at {over}"
            )
            raise ConflictError(
                f'Resource "{resource_id}" is not available for the requested quantity',
                resource_ids=[resource_id],
            )

        for s in slots:
            counts[s] += quantity

        if record is None:
            self.db.add(QuantityAvailability(
                resource_id=resource_id,
                date=day,
                slot_quantities=counts,
            ))
        else:
            record.slot_quantities = counts

    def release(
        self,
        resource_id: str,
        day: str,
        slots: list[int],
        quantity: int = 1,
    ) -> None:
        """
        Free exactly the given slots for one date.

        Filters the stored list instead of rebuilding it, so slots owned by
        other bookings on the same day are untouched. Freeing a slot that is
        already free is a no-op.
        """
        if not slots:
            return

        pool = self._pool_size(resource_id)
        if pool is None:
            record = self.get_day(resource_id, day)
            if record is not None:
                freed = set(slots)
                record.busy_slots = [s for s in record.busy_slots if s not in freed]
        else:
            record = self.get_quantities(resource_id, day)
            if record is not None:
                counts = record.slot_quantities
                for s in slots:
                    counts[s] = max(0, counts[s] - quantity)
                record.slot_quantities = counts

        self.db.flush()
