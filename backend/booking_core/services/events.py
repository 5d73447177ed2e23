# backend/booking_core/services/events.py
"""
Booking lifecycle events for out-of-process consumers (webhooks, e-mail).

Only UnitOfWork.commit calls publish_booking_event, so a rolled back
transaction never reaches the queue.

Envelope pushed to the Redis list `booking:events`:
    {"event": "booking.confirmed", "data": {...}, "emitted_at": <epoch ms>}
"""

import json
import logging

from ..redis_client import redis_client
from .slots.quantizer import now_ms

logger = logging.getLogger(__name__)

BOOKING_EVENTS_KEY = "booking:events"


def build_envelope(event_type: str, payload: dict) -> dict:
    return {"event": event_type, "data": payload, "emitted_at": now_ms()}


def publish_booking_event(event_type: str, payload: dict) -> None:
    # The booking is already committed; a Redis outage only costs the event
    envelope = build_envelope(event_type, payload)
    try:
        redis_client.rpush(BOOKING_EVENTS_KEY, json.dumps(envelope))
    except Exception as e:
        logger.error(f"Dropped {event_type} for {payload.get('uid', '?')}: {e}")
        return
    logger.info(f"Published {event_type} ({payload.get('uid', '?')})")
