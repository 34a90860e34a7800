"""
Per-attendee lock so overlapping deliveries for the same attendee never
reconcile concurrently.

The reconciler itself does not serialise runs; job entry points wrap it in
``attendee_lock``.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from eventbrite_sync.config import settings
from eventbrite_sync.infrastructure.observability.logging import get_logger
from eventbrite_sync.services.redis_client import fast_redis

logger = get_logger(__name__)


class AttendeeLockedError(Exception):
    """Another delivery for the same attendee is being processed."""

    def __init__(self, attendee_id: str):
        super().__init__(f"Attendee {attendee_id} is already being processed")
        self.attendee_id = attendee_id


def lock_key(attendee_id: str) -> str:
    return f"eventbrite:attendee:{attendee_id}:lock"


@asynccontextmanager
async def attendee_lock(attendee_id: str, redis_client=None) -> AsyncGenerator[None, None]:
    """
    Hold the attendee's lock for the duration of the block.

    Runs unlocked when no Redis server is configured. Redis errors while
    taking the lock propagate unchanged.

    Raises:
        AttendeeLockedError: If the lock is already held
    """
    if not settings.lock_enabled():
        logger.debug("Attendee lock disabled, REDIS_URL not set", attendee_id=attendee_id)
        yield
        return

    client = redis_client or fast_redis
    lock = await client.acquire_lock(lock_key(attendee_id), ttl_s=settings.ATTENDEE_LOCK_TTL_S)
    if lock is None:
        logger.warning("Attendee lock held by another delivery", attendee_id=attendee_id)
        raise AttendeeLockedError(attendee_id)

    try:
        yield
    finally:
        await client.release_lock(lock)
