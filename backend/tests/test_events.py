import json
import logging

from booking_core.services import events


class ListClient:

    def __init__(self, fail=False):
        self.lists: dict[str, list[str]] = {}
        self.fail = fail

    def rpush(self, key, value):
        if self.fail:
            raise ConnectionError("redis down")
        self.lists.setdefault(key, []).append(value)
        return len(self.lists[key])


def test_publish_pushes_envelope(monkeypatch):
    client = ListClient()
    monkeypatch.setattr(events, "redis_client", client)
    monkeypatch.setattr(events, "now_ms", lambda: 1_750_000_000_000)

    events.publish_booking_event("booking.confirmed", {"uid": "abc", "status": "confirmed"})

    [raw] = client.lists[events.BOOKING_EVENTS_KEY]
    assert json.loads(raw) == {
        "event": "booking.confirmed",
        "data": {"uid": "abc", "status": "confirmed"},
        "emitted_at": 1_750_000_000_000,
    }


def test_publish_failure_is_logged_not_raised(monkeypatch, caplog):
    monkeypatch.setattr(events, "redis_client", ListClient(fail=True))

    with caplog.at_level(logging.ERROR, logger=events.__name__):
        events.publish_booking_event("booking.cancelled", {"uid": "abc"})

    assert "Dropped booking.cancelled for abc" in caplog.text
