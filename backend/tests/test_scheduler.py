import json

import pytest

from booking_core.models import Presence, PresenceHeartbeats
from booking_core.services import presence, scheduler as jobs
from booking_core.services.scheduler import RedisJobScheduler, register_job, run_due_jobs
from booking_core.services.slots.quantizer import now_ms, slot_to_timestamp

from conftest import RecordingScheduler


class SortedSetClient:
    """The handful of Redis commands RedisJobScheduler issues, in memory."""

    def __init__(self):
        self.zsets: dict[str, dict[str, float]] = {}
        self.hashes: dict[str, dict[str, str]] = {}

    def pipeline(self):
        return _Pipeline(self)

    def zadd(self, key, mapping):
        self.zsets.setdefault(key, {}).update(mapping)
        return len(mapping)

    def zrem(self, key, member):
        return 1 if self.zsets.get(key, {}).pop(member, None) is not None else 0

    def zrangebyscore(self, key, low, high):
        members = self.zsets.get(key, {})
        return [m for m, score in sorted(members.items(), key=lambda kv: kv[1]) if score <= high]

    def hset(self, key, field, value):
        self.hashes.setdefault(key, {})[field] = value
        return 1

    def hget(self, key, field):
        return self.hashes.get(key, {}).get(field)

    def hdel(self, key, field):
        return 1 if self.hashes.get(key, {}).pop(field, None) is not None else 0


class _Pipeline:

    def __init__(self, client):
        self.client = client
        self.calls = []

    def __getattr__(self, name):
        def queue(*args):
            self.calls.append((name, args))
            return self
        return queue

    def execute(self):
        return [getattr(self.client, name)(*args) for name, args in self.calls]


@pytest.fixture
def client():
    return SortedSetClient()


# ── RedisJobScheduler ────────────────────────────────────────────────────


def test_run_after_stores_payload_and_due_time(client, monkeypatch):
    monkeypatch.setattr(jobs.time, "time", lambda: 1_000.0)
    scheduler = RedisJobScheduler(client)

    handle = scheduler.run_after(2_500, "presence.cleanup", {"user": "alice"})

    assert client.zsets[jobs.SCHEDULED_KEY] == {handle: 1_002.5}
    assert json.loads(client.hashes[jobs.PAYLOADS_KEY][handle]) == {
        "job": "presence.cleanup",
        "args": {"user": "alice"},
    }


def test_pop_due_claims_only_due_jobs_once(client, monkeypatch):
    monkeypatch.setattr(jobs.time, "time", lambda: 1_000.0)
    scheduler = RedisJobScheduler(client)
    early = scheduler.run_after(1_000, "a", {"n": 1})
    late = scheduler.run_after(60_000, "b", {"n": 2})

    due = scheduler.pop_due(now=1_005.0)

    assert due == [{"handle": early, "job": "a", "args": {"n": 1}}]
    assert scheduler.pop_due(now=1_005.0) == []
    assert list(client.zsets[jobs.SCHEDULED_KEY]) == [late]
    assert early not in client.hashes[jobs.PAYLOADS_KEY]


def test_cancel(client):
    scheduler = RedisJobScheduler(client)
    handle = scheduler.run_after(0, "a", {})

    assert scheduler.cancel(handle) is True
    assert scheduler.cancel(handle) is False
    assert scheduler.pop_due(now=float("inf")) == []


# ── run_due_jobs ─────────────────────────────────────────────────────────


@pytest.fixture
def job_sessions(session_factory, monkeypatch):
    monkeypatch.setattr(jobs, "SessionLocal", session_factory)
    # Handlers registered by a test disappear with it
    monkeypatch.setattr(jobs, "_JOBS", dict(jobs._JOBS))


def test_run_due_jobs_dispatches_registered_handlers(job_sessions):
    calls = []

    @register_job("test.record")
    def record(db, value):
        calls.append((db.is_active, value))

    recording = RecordingScheduler()
    recording.run_after(0, "test.record", {"value": 7})
    recording.run_after(0, "test.unknown", {})

    assert run_due_jobs(recording) == 1
    assert calls == [(True, 7)]


def test_run_due_jobs_passes_handle_when_asked(job_sessions):
    seen = []

    @register_job("test.handle", with_handle=True)
    def with_handle(db, value, job_handle):
        seen.append((value, job_handle))

    recording = RecordingScheduler()
    handle = recording.run_after(0, "test.handle", {"value": 1})

    assert run_due_jobs(recording) == 1
    assert seen == [(1, handle)]


def test_failing_job_does_not_stop_the_batch(job_sessions):
    calls = []

    @register_job("test.boom")
    def boom(db):
        raise RuntimeError("boom")

    @register_job("test.ok")
    def ok(db):
        calls.append("ok")

    recording = RecordingScheduler()
    recording.run_after(0, "test.boom", {})
    recording.run_after(0, "test.ok", {})

    assert run_due_jobs(recording) == 1
    assert calls == ["ok"]


def test_presence_cleanup_runs_through_the_queue(db, job_sessions, scheduler):
    slot = slot_to_timestamp("2025-06-17", 40)
    presence.heartbeat(db, "studio-a", [slot], "alice", now=now_ms() - 60_000)

    assert run_due_jobs(scheduler) == 1

    db.expire_all()
    assert db.query(Presence).count() == 0
    assert db.query(PresenceHeartbeats).count() == 0
