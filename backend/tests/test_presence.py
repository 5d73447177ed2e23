from booking_core.models import Presence, PresenceHeartbeats
from booking_core.services import presence
from booking_core.services.slots.quantizer import slot_to_millis, slot_to_timestamp

DAY = "2025-06-17"
T0 = slot_to_millis(DAY, 40)  # 10:00, heartbeat clock
SLOT_10 = slot_to_timestamp(DAY, 40)
SLOT_1015 = slot_to_timestamp(DAY, 41)
SLOT_14 = slot_to_timestamp(DAY, 56)


def handles(db):
    return {(h.slot, h.user): h.mark_as_gone for h in db.query(PresenceHeartbeats)}


# ── heartbeat ────────────────────────────────────────────────────────────


def test_heartbeat_batch_shares_one_timestamp(db, scheduler):
    updated = presence.heartbeat(
        db, "studio-a", [SLOT_10, SLOT_1015, SLOT_10], "alice", data={"name": "Alice"}, now=T0
    )

    assert updated == T0
    rows = db.query(Presence).order_by(Presence.slot).all()
    assert [(p.slot, p.user, p.updated) for p in rows] == [
        (SLOT_10, "alice", T0),
        (SLOT_1015, "alice", T0),
    ]
    assert rows[0].data == {"name": "Alice"}
    assert [job["args"]["slot"] for job in scheduler.jobs] == [SLOT_10, SLOT_1015]
    assert all(job["delay_ms"] == 10_000 for job in scheduler.jobs)
    assert all(job["job"] == presence.CLEANUP_JOB for job in scheduler.jobs)


def test_repeated_heartbeat_schedules_one_job_per_triple(db, scheduler):
    presence.heartbeat(db, "studio-a", [SLOT_10], "alice", data={"v": 1}, now=T0)
    presence.heartbeat(db, "studio-a", [SLOT_10], "alice", now=T0 + 3_000)

    assert len(scheduler.jobs) == 1
    assert handles(db) == {(SLOT_10, "alice"): "job-1"}
    row = db.query(Presence).one()
    assert row.updated == T0 + 3_000
    # data is kept when a heartbeat carries none
    assert row.data == {"v": 1}


def test_empty_heartbeat_writes_nothing(db, scheduler):
    assert presence.heartbeat(db, "studio-a", [], "alice", now=T0) == T0
    assert db.query(Presence).count() == 0
    assert scheduler.jobs == []


# ── cleanup ──────────────────────────────────────────────────────────────


def test_cleanup_deletes_stale_hold(db, scheduler):
    presence.heartbeat(db, "studio-a", [SLOT_10], "alice", now=T0)

    presence.cleanup(db, "studio-a", SLOT_10, "alice", now=T0 + 10_001)

    assert db.query(Presence).count() == 0
    assert db.query(PresenceHeartbeats).count() == 0
    assert len(scheduler.jobs) == 1


def test_cleanup_reschedules_live_hold(db, scheduler):
    presence.heartbeat(db, "studio-a", [SLOT_10], "alice", now=T0)
    presence.heartbeat(db, "studio-a", [SLOT_10], "alice", now=T0 + 8_000)

    presence.cleanup(db, "studio-a", SLOT_10, "alice", now=T0 + 10_001)

    assert db.query(Presence).count() == 1
    assert handles(db) == {(SLOT_10, "alice"): "job-2"}
    assert len(scheduler.jobs) == 2


def test_cleanup_after_leave_is_noop(db, scheduler):
    presence.heartbeat(db, "studio-a", [SLOT_10], "alice", now=T0)
    presence.leave(db, "studio-a", [SLOT_10], "alice")

    presence.cleanup(db, "studio-a", SLOT_10, "alice", now=T0 + 10_001)

    assert db.query(Presence).count() == 0
    assert db.query(PresenceHeartbeats).count() == 0
    assert len(scheduler.jobs) == 1


def test_superseded_cleanup_job_is_noop(db, scheduler):
    presence.heartbeat(db, "studio-a", [SLOT_10], "alice", now=T0)
    presence.leave(db, "studio-a", [SLOT_10], "alice")
    presence.heartbeat(db, "studio-a", [SLOT_10], "alice", now=T0 + 4_000)
    assert handles(db) == {(SLOT_10, "alice"): "job-2"}

    presence.cleanup(db, "studio-a", SLOT_10, "alice", job_handle="job-1", now=T0 + 10_001)

    # job-2 stays the only live job for the triple
    assert [job["handle"] for job in scheduler.jobs] == ["job-1", "job-2"]
    assert handles(db) == {(SLOT_10, "alice"): "job-2"}
    assert db.query(Presence).one().updated == T0 + 4_000

    presence.cleanup(db, "studio-a", SLOT_10, "alice", job_handle="job-2", now=T0 + 14_001)

    assert db.query(Presence).count() == 0
    assert db.query(PresenceHeartbeats).count() == 0


def test_cleanup_drops_orphaned_record(db, scheduler):
    presence.heartbeat(db, "studio-a", [SLOT_10], "alice", now=T0)
    db.query(PresenceHeartbeats).delete()
    db.commit()

    presence.cleanup(db, "studio-a", SLOT_10, "alice", now=T0 + 1_000)

    assert db.query(Presence).count() == 0
    assert len(scheduler.jobs) == 1


def test_leave_only_touches_own_holds(db):
    presence.heartbeat(db, "studio-a", [SLOT_10, SLOT_1015], "alice", now=T0)
    presence.heartbeat(db, "studio-a", [SLOT_10], "bob", now=T0)

    presence.leave(db, "studio-a", [SLOT_10], "alice")

    assert sorted((p.slot, p.user) for p in db.query(Presence)) == [
        (SLOT_10, "bob"),
        (SLOT_1015, "alice"),
    ]
    assert set(handles(db)) == {(SLOT_10, "bob"), (SLOT_1015, "alice")}


# ── Queries ──────────────────────────────────────────────────────────────


def test_list_presence_newest_first_and_active_only(db):
    presence.heartbeat(db, "studio-a", [SLOT_10], "stale", now=T0)
    presence.heartbeat(db, "studio-a", [SLOT_10], "alice", now=T0 + 9_000)
    presence.heartbeat(db, "studio-a", [SLOT_10], "bob", now=T0 + 12_000)

    holders = presence.list_presence(db, "studio-a", SLOT_10, now=T0 + 15_000)

    assert [p.user for p in holders] == ["bob", "alice"]


def test_list_presence_is_capped(db):
    for i in range(25):
        presence.heartbeat(db, "studio-a", [SLOT_10], f"user-{i:02d}", now=T0 + i)

    holders = presence.list_presence(db, "studio-a", SLOT_10, now=T0 + 100)

    assert len(holders) == presence.LIST_LIMIT
    assert holders[0].user == "user-24"


def test_date_presence(db):
    presence.heartbeat(db, "studio-a", [SLOT_10, SLOT_14], "alice", now=T0)
    presence.heartbeat(db, "studio-a", [slot_to_timestamp("2025-06-18", 40)], "alice", now=T0)
    presence.heartbeat(db, "studio-b", [SLOT_10], "bob", now=T0)

    holds = presence.get_date_presence(db, "studio-a", DAY, now=T0 + 1_000)

    assert sorted(h["slot"] for h in holds) == [SLOT_10, SLOT_14]
    assert all(h["user"] == "alice" and h["updated"] == T0 for h in holds)


def test_active_presence_count(db):
    presence.heartbeat(db, "studio-a", [SLOT_10, SLOT_14], "alice", now=T0)
    presence.heartbeat(db, "studio-b", [SLOT_10], "bob", now=T0 + 5_000)
    presence.heartbeat(db, "studio-b", [SLOT_14], "gone", now=T0 - 20_000)

    assert presence.get_active_presence_count(db, now=T0 + 6_000) == 2
    assert presence.get_active_presence_count(db, "studio-b", now=T0 + 6_000) == 1
    assert presence.get_active_presence_count(db, now=T0 + 12_000) == 1


# ── Conflicts with candidate bookings ────────────────────────────────────


def test_find_presence_conflicts():
    holds = [
        {"slot": SLOT_10, "user": "alice", "updated": T0},
        {"slot": SLOT_1015, "user": "bob", "updated": T0},
        {"slot": SLOT_14, "user": "bob", "updated": T0},
        {"slot": "not-a-timestamp", "user": "bob", "updated": T0},
    ]

    conflicts = presence.find_presence_conflicts(holds, slot_to_millis(DAY, 40), 30, "alice")

    assert conflicts == [holds[1]]
    assert presence.find_presence_conflicts(holds, slot_to_millis(DAY, 40), 30, "bob") == [holds[0]]
    assert presence.find_presence_conflicts(holds, slot_to_millis(DAY, 60), 60, "alice") == []


def test_holds_by_others_ignores_stale_and_own(db):
    presence.heartbeat(db, "studio-a", [SLOT_10], "alice", now=T0)
    presence.heartbeat(db, "studio-a", [SLOT_1015], "bob", now=T0 - 30_000)

    start, end = slot_to_millis(DAY, 40), slot_to_millis(DAY, 44)

    assert presence.holds_by_others(db, "studio-a", start, end, "alice", now=T0) == []
    assert [h["user"] for h in presence.holds_by_others(db, "studio-a", start, end, "carol", now=T0)] == ["alice"]
