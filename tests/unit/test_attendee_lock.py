import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from eventbrite_sync.features.attendee_sync.services import locking
from eventbrite_sync.features.attendee_sync.services.locking import (
    AttendeeLockedError,
    attendee_lock,
    lock_key,
)


@pytest.fixture
def redis_enabled(monkeypatch):
    monkeypatch.setattr(locking.settings, "REDIS_URL", "redis://localhost:6379/0")


@pytest.mark.asyncio
async def test_lock_is_held_inside_block_and_released_after(redis_enabled, fake_redis):
    async with attendee_lock("A1", redis_client=fake_redis):
        assert lock_key("A1") in fake_redis.store

    assert fake_redis.store == {}


@pytest.mark.asyncio
async def test_second_delivery_is_rejected_while_locked(redis_enabled, fake_redis):
    async with attendee_lock("A1", redis_client=fake_redis):
        with pytest.raises(AttendeeLockedError) as exc_info:
            async with attendee_lock("A1", redis_client=fake_redis):
                pass

    assert exc_info.value.attendee_id == "A1"
    assert fake_redis.store == {}


@pytest.mark.asyncio
async def test_other_attendees_are_not_blocked(redis_enabled, fake_redis):
    async with attendee_lock("A1", redis_client=fake_redis):
        async with attendee_lock("A2", redis_client=fake_redis):
            assert len(fake_redis.store) == 2


@pytest.mark.asyncio
async def test_lock_released_when_block_raises(redis_enabled, fake_redis):
    with pytest.raises(RuntimeError):
        async with attendee_lock("A1", redis_client=fake_redis):
            raise RuntimeError("boom")

    assert fake_redis.store == {}


@pytest.mark.asyncio
async def test_lock_taken_over_after_expiry_is_not_released(redis_enabled, fake_redis):
    async with attendee_lock("A1", redis_client=fake_redis):
        # Simulate expiry followed by another worker acquiring the lock
        fake_redis.store[lock_key("A1")] = "someone-else"

    assert fake_redis.store[lock_key("A1")] == "someone-else"


@pytest.mark.asyncio
async def test_redis_outage_is_not_reported_as_held_lock(redis_enabled, fake_redis):
    fake_redis.error = RedisConnectionError("redis unreachable")
    entered = False

    with pytest.raises(RedisConnectionError):
        async with attendee_lock("A1", redis_client=fake_redis):
            entered = True

    assert entered is False


@pytest.mark.asyncio
async def test_lock_disabled_without_redis(monkeypatch, fake_redis):
    monkeypatch.setattr(locking.settings, "REDIS_URL", None)

    async with attendee_lock("A1", redis_client=fake_redis):
        async with attendee_lock("A1", redis_client=fake_redis):
            pass

    assert fake_redis.store == {}
