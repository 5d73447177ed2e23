import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from booking_core.config import settings
from booking_core.database import build_engine
from booking_core.models import Base, EventTypes, Resources, Schedules
from booking_core.services.slots.quantizer import iso_to_millis


class RecordingScheduler:
    """In-memory stand-in for RedisJobScheduler."""

    def __init__(self):
        self.jobs: list[dict] = []
        self._counter = 0

    def run_after(self, delay_ms: int, job: str, args: dict) -> str:
        self._counter += 1
        handle = f"job-{self._counter}"
        self.jobs.append({"handle": handle, "delay_ms": delay_ms, "job": job, "args": args})
        return handle

    def cancel(self, handle: str) -> bool:
        before = len(self.jobs)
        self.jobs = [j for j in self.jobs if j["handle"] != handle]
        return len(self.jobs) != before

    def pop_due(self, now=None) -> list[dict]:
        jobs, self.jobs = self.jobs, []
        return jobs


def ms(value: str) -> int:
    """"2025-06-17T14:00:00Z" → epoch millis."""
    return iso_to_millis(value)


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def events(monkeypatch):
    """Events published after commit, instead of pushing to Redis."""
    emitted = []
    monkeypatch.setattr(
        "booking_core.services.uow.publish_booking_event",
        lambda event_type, payload: emitted.append((event_type, payload)),
    )
    return emitted


@pytest.fixture(autouse=True)
def scheduler(monkeypatch):
    recording = RecordingScheduler()
    monkeypatch.setattr("booking_core.services.presence.get_scheduler", lambda: recording)
    return recording


@pytest.fixture(autouse=True)
def presence_settings(monkeypatch):
    monkeypatch.setattr(settings, "presence_timeout_ms", 10_000)
    monkeypatch.setattr(settings, "presence_guard", True)


@pytest.fixture
def make_resource(db):
    def _make(id="studio-a", **overrides):
        fields = {
            "organization_id": "org-1",
            "name": id.replace("-", " ").title(),
            "type": "room",
            "quantity": 1,
            "is_fungible": 0,
            "is_standalone": 1,
            "is_active": 1,
            "created_at": 0,
            "updated_at": 0,
        }
        fields.update(overrides)
        resource = Resources(id=id, **fields)
        db.add(resource)
        db.commit()
        return resource

    return _make


@pytest.fixture
def make_event_type(db):
    def _make(id="consult", **overrides):
        fields = {
            "organization_id": "org-1",
            "slug": id,
            "title": f"{id.title()} session",
            "description": "Snapshot me",
            "length_in_minutes": 60,
            "requires_confirmation": 0,
            "is_active": 1,
            "created_at": 0,
            "updated_at": 0,
        }
        fields.update(overrides)
        event_type = EventTypes(id=id, **fields)
        db.add(event_type)
        db.commit()
        return event_type

    return _make


@pytest.fixture
def make_schedule(db):
    def _make(id="weekdays", weekly_hours=None, **overrides):
        fields = {
            "organization_id": "org-1",
            "name": id,
            "is_default": 0,
            "created_at": 0,
            "updated_at": 0,
        }
        fields.update(overrides)
        schedule = Schedules(id=id, weekly_hours=weekly_hours or [], **fields)
        db.add(schedule)
        db.commit()
        return schedule

    return _make


@pytest.fixture
def booker():
    return {"name": "Ada Lovelace", "email": "ada@example.com"}
