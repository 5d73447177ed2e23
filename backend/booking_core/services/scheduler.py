"""
Scheduled-job facility.

Deferred jobs live in Redis:
- jobs:scheduled: sorted set, member = handle, score = due time (epoch seconds)
- jobs:payloads: hash, handle → {"job", "args"} JSON

Claiming a job is ZREM of its handle: only the worker whose ZREM returns 1
runs it, so several backend processes can poll the same set.

Runs as an asyncio task in backend lifespan.
Uses synchronous DB and Redis (via asyncio.to_thread).
"""

import asyncio
import json
import logging
import time
import uuid
from collections.abc import Callable
from functools import lru_cache

from redis import Redis

from ..config import settings
from ..database import SessionLocal
from ..redis_client import redis_client

logger = logging.getLogger(__name__)

SCHEDULED_KEY = "jobs:scheduled"
PAYLOADS_KEY = "jobs:payloads"

_JOBS: dict[str, tuple[Callable, bool]] = {}


def register_job(name: str, with_handle: bool = False):
    """
    Register `func(db, **args)` as the handler for job `name`.

    with_handle=True also passes `job_handle`, the handle of the firing job.
    """

    def decorator(func: Callable) -> Callable:
        _JOBS[name] = (func, with_handle)
        return func

    return decorator


class RedisJobScheduler:

    def __init__(self, client: Redis, key: str = SCHEDULED_KEY, payloads_key: str = PAYLOADS_KEY):
        self.client = client
        self.key = key
        self.payloads_key = payloads_key

    def run_after(self, delay_ms: int, job: str, args: dict) -> str:
        """Schedule `job(**args)` in delay_ms; returns the job handle."""
        handle = uuid.uuid4().hex
        due = time.time() + delay_ms / 1000

        pipe = self.client.pipeline()
        pipe.hset(self.payloads_key, handle, json.dumps({"job": job, "args": args}))
        pipe.zadd(self.key, {handle: due})
        pipe.execute()

        logger.debug(f"Scheduled {job} as {handle} in {delay_ms}ms")
        return handle

    def cancel(self, handle: str) -> bool:
        pipe = self.client.pipeline()
        pipe.zrem(self.key, handle)
        pipe.hdel(self.payloads_key, handle)
        removed, _ = pipe.execute()
        return bool(removed)

    def pop_due(self, now: float | None = None) -> list[dict]:
        """
        Claim every job due at `now`.

        Returns:
            [{"handle", "job", "args"}, ...]
        """
        now = now if now is not None else time.time()
        handles = self.client.zrangebyscore(self.key, "-inf", now)

        claimed = []
        for handle in handles:
            if not self.client.zrem(self.key, handle):
                continue  # another worker got it
            raw = self.client.hget(self.payloads_key, handle)
            self.client.hdel(self.payloads_key, handle)
            if not raw:
                continue
            payload = json.loads(raw)
            claimed.append({"handle": handle, **payload})
        return claimed


@lru_cache()
def get_scheduler() -> RedisJobScheduler:
    return RedisJobScheduler(redis_client)


def run_due_jobs(scheduler: RedisJobScheduler | None = None, now: float | None = None) -> int:
    """Run every due job in its own session (synchronous). Returns jobs run."""
    scheduler = scheduler or get_scheduler()
    ran = 0

    for job in scheduler.pop_due(now):
        entry = _JOBS.get(job["job"])
        if entry is None:
            logger.warning(f"No handler registered for job {job['job']} ({job['handle']})")
            continue

        func, with_handle = entry
        kwargs = dict(job["args"])
        if with_handle:
            kwargs["job_handle"] = job["handle"]

        db = SessionLocal()
        try:
            func(db, **kwargs)
            ran += 1
        except Exception:
            logger.exception(f"Job {job['job']} ({job['handle']}) failed")
        finally:
            db.close()

    return ran


async def scheduled_jobs_loop() -> None:
    """Periodic loop draining jobs:scheduled."""
    logger.info("scheduled_jobs_loop started")

    try:
        while True:
            try:
                await asyncio.to_thread(run_due_jobs)
            except asyncio.CancelledError:
                logger.info("scheduled_jobs_loop cancelled")
                raise
            except Exception:
                logger.exception("scheduled_jobs_loop error")

            await asyncio.sleep(settings.scheduler_poll_seconds)
    except asyncio.CancelledError:
        pass
