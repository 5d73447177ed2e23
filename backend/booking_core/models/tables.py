import json

from sqlalchemy import (
    BigInteger,
    Column,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


def _loads(raw, default):
    if not raw:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return default


class Resources(Base):
    __tablename__ = 'resources'

    id = Column(Text, primary_key=True)  # caller-chosen, e.g. "studio-a"
    organization_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    type = Column(Text, nullable=False)
    description = Column(Text)
    timezone = Column(Text, nullable=False, server_default=text("'UTC'"))
    quantity = Column(Integer, nullable=False, server_default=text('1'))
    is_fungible = Column(Integer, nullable=False, server_default=text('0'))
    is_standalone = Column(Integer, nullable=False, server_default=text('1'))
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    created_at = Column(BigInteger)
    updated_at = Column(BigInteger)

    event_type_links = relationship('ResourceEventTypes', back_populates='resource')

    @property
    def is_pool(self) -> bool:
        """Fungible pool: N identical units tracked by per-slot counts."""
        return bool(self.is_fungible) and (self.quantity or 1) > 1


class Schedules(Base):
    __tablename__ = 'schedules'

    id = Column(Text, primary_key=True)
    organization_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    timezone = Column(Text, nullable=False, server_default=text("'UTC'"))
    is_default = Column(Integer, nullable=False, server_default=text('0'))
    weekly_hours_json = Column('weekly_hours', Text, nullable=False, server_default=text("'[]'"))
    created_at = Column(BigInteger)
    updated_at = Column(BigInteger)

    date_overrides = relationship(
        'DateOverrides', back_populates='schedule', cascade='all, delete-orphan'
    )

    @property
    def weekly_hours(self) -> list[dict]:
        return _loads(self.weekly_hours_json, [])

    @weekly_hours.setter
    def weekly_hours(self, value: list[dict]) -> None:
        self.weekly_hours_json = json.dumps(value or [])


class DateOverrides(Base):
    __tablename__ = 'date_overrides'
    __table_args__ = (
        UniqueConstraint('schedule_id', 'date'),
    )

    id = Column(Integer, primary_key=True)
    schedule_id = Column(ForeignKey('schedules.id', ondelete='CASCADE'), nullable=False)
    date = Column(Text, nullable=False)
    type = Column(Text, nullable=False)  # "unavailable" | "custom"
    custom_hours_json = Column('custom_hours', Text)

    schedule = relationship('Schedules', back_populates='date_overrides')

    @property
    def custom_hours(self) -> list[dict]:
        return _loads(self.custom_hours_json, [])

    @custom_hours.setter
    def custom_hours(self, value: list[dict] | None) -> None:
        self.custom_hours_json = json.dumps(value) if value else None


class EventTypes(Base):
    __tablename__ = 'event_types'
    __table_args__ = (
        UniqueConstraint('organization_id', 'slug'),
    )

    id = Column(Text, primary_key=True)
    organization_id = Column(Text, index=True)
    slug = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text)
    length_in_minutes = Column(Integer, nullable=False)
    length_in_minutes_options_json = Column('length_in_minutes_options', Text)
    slot_interval = Column(Integer)
    timezone = Column(Text, nullable=False, server_default=text("'UTC'"))
    lock_time_zone_toggle = Column(Integer, nullable=False, server_default=text('0'))
    locations_json = Column('locations', Text, nullable=False, server_default=text("'[]'"))
    schedule_id = Column(ForeignKey('schedules.id', ondelete='SET NULL'))
    buffer_before = Column(Integer, nullable=False, server_default=text('0'))
    buffer_after = Column(Integer, nullable=False, server_default=text('0'))
    min_notice_minutes = Column(Integer, nullable=False, server_default=text('0'))
    max_future_minutes = Column(Integer)
    requires_confirmation = Column(Integer, nullable=False, server_default=text('0'))
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    created_at = Column(BigInteger)
    updated_at = Column(BigInteger)

    resource_links = relationship('ResourceEventTypes', back_populates='event_type')

    @property
    def length_in_minutes_options(self) -> list[int] | None:
        return _loads(self.length_in_minutes_options_json, None)

    @length_in_minutes_options.setter
    def length_in_minutes_options(self, value: list[int] | None) -> None:
        self.length_in_minutes_options_json = json.dumps(value) if value else None

    @property
    def locations(self) -> list[dict]:
        return _loads(self.locations_json, [])

    @locations.setter
    def locations(self, value: list[dict]) -> None:
        self.locations_json = json.dumps(value or [])

    @property
    def effective_slot_interval(self) -> int:
        """Explicit interval, else the shortest selectable duration."""
        if self.slot_interval:
            return self.slot_interval
        options = self.length_in_minutes_options
        if options:
            return min(options)
        return self.length_in_minutes


class ResourceEventTypes(Base):
    __tablename__ = 'resource_event_types'
    __table_args__ = (
        UniqueConstraint('resource_id', 'event_type_id'),
    )

    id = Column(Integer, primary_key=True)
    resource_id = Column(ForeignKey('resources.id', ondelete='CASCADE'), nullable=False)
    event_type_id = Column(ForeignKey('event_types.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(BigInteger)

    resource = relationship('Resources', back_populates='event_type_links')
    event_type = relationship('EventTypes', back_populates='resource_links')


class DailyAvailability(Base):
    __tablename__ = 'daily_availability'
    __table_args__ = (
        UniqueConstraint('resource_id', 'date'),
    )

    id = Column(Integer, primary_key=True)
    resource_id = Column(Text, nullable=False)
    date = Column(Text, nullable=False)  # "2025-06-17"
    busy_slots_json = Column('busy_slots', Text, nullable=False, server_default=text("'[]'"))
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def busy_slots(self) -> list[int]:
        return _loads(self.busy_slots_json, [])

    @busy_slots.setter
    def busy_slots(self, value: list[int]) -> None:
        self.busy_slots_json = json.dumps(sorted(set(value)))


class QuantityAvailability(Base):
    __tablename__ = 'quantity_availability'
    __table_args__ = (
        UniqueConstraint('resource_id', 'date'),
    )

    id = Column(Integer, primary_key=True)
    resource_id = Column(Text, nullable=False)
    date = Column(Text, nullable=False)
    # Fixed 96-int array: booked units per slot index
    slot_quantities_json = Column('slot_quantities', Text, nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def slot_quantities(self) -> list[int]:
        return _loads(self.slot_quantities_json, [])

    @slot_quantities.setter
    def slot_quantities(self, value: list[int]) -> None:
        self.slot_quantities_json = json.dumps(list(value))


class Bookings(Base):
    __tablename__ = 'bookings'

    id = Column(Integer, primary_key=True)
    uid = Column(Text, nullable=False, unique=True)
    resource_id = Column(Text, nullable=False, index=True)
    actor_id = Column(Text, nullable=False)
    event_type_id = Column(Text, index=True)
    organization_id = Column(Text, index=True)
    start = Column(BigInteger, nullable=False)
    end = Column(BigInteger, nullable=False)
    timezone = Column(Text, nullable=False, server_default=text("'UTC'"))
    status = Column(Text, nullable=False, server_default=text("'confirmed'"))
    booker_name = Column(Text, nullable=False)
    booker_email = Column(Text, nullable=False)
    booker_phone = Column(Text)
    booker_notes = Column(Text)
    event_title = Column(Text, nullable=False)
    event_description = Column(Text)
    location_json = Column('location', Text, nullable=False, server_default=text("'{}'"))
    management_token_hash = Column(Text)
    cancellation_reason = Column(Text)
    cancelled_at = Column(BigInteger)
    rescheduled_from_uid = Column(Text)
    rescheduled_to_uid = Column(Text)
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)

    items = relationship(
        'BookingItems', back_populates='booking', cascade='all, delete-orphan'
    )
    history = relationship(
        'BookingHistory',
        back_populates='booking',
        order_by='BookingHistory.id',
    )

    @property
    def location(self) -> dict:
        return _loads(self.location_json, {})

    @location.setter
    def location(self, value: dict | None) -> None:
        self.location_json = json.dumps(value or {})


class BookingItems(Base):
    __tablename__ = 'booking_items'

    id = Column(Integer, primary_key=True)
    booking_id = Column(ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False, index=True)
    resource_id = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False, server_default=text('1'))

    booking = relationship('Bookings', back_populates='items')


class BookingHistory(Base):
    __tablename__ = 'booking_history'

    id = Column(Integer, primary_key=True)
    booking_id = Column(ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False, index=True)
    from_status = Column(Text, nullable=False, server_default=text("''"))
    to_status = Column(Text, nullable=False)
    changed_by = Column(Text)
    reason = Column(Text)
    timestamp = Column(BigInteger, nullable=False)

    booking = relationship('Bookings', back_populates='history')


class Presence(Base):
    __tablename__ = 'presence'
    __table_args__ = (
        UniqueConstraint('resource_id', 'slot', 'user'),
    )

    id = Column(Integer, primary_key=True)
    resource_id = Column(Text, nullable=False)
    slot = Column(Text, nullable=False)  # ISO start, "2025-06-17T10:00:00.000Z"
    user = Column(Text, nullable=False)
    updated = Column(BigInteger, nullable=False)
    data_json = Column('data', Text)

    @property
    def data(self):
        return _loads(self.data_json, None)

    @data.setter
    def data(self, value) -> None:
        self.data_json = json.dumps(value) if value is not None else None


class PresenceHeartbeats(Base):
    __tablename__ = 'presence_heartbeats'
    __table_args__ = (
        UniqueConstraint('resource_id', 'slot', 'user'),
    )

    id = Column(Integer, primary_key=True)
    resource_id = Column(Text, nullable=False)
    slot = Column(Text, nullable=False)
    user = Column(Text, nullable=False)
    mark_as_gone = Column(Text, nullable=False)  # scheduled cleanup job handle
