"""Tests for the consistency monitor's Redis counter."""

from fakeredis import FakeAsyncRedis, FakeServer

from survival.services.consistency_monitor import ConsistencyMonitor


async def test_counts_per_story(redis):
    monitor = ConsistencyMonitor(redis)
    await monitor.record_incomplete(1, "a@example.com", 10)
    await monitor.record_incomplete(1, "b@example.com", 11)
    await monitor.record_incomplete(2, "a@example.com", 12)

    assert await monitor.incomplete_count(1) == 2
    assert await monitor.incomplete_count(2) == 1
    assert await monitor.incomplete_count(3) == 0

    await monitor.reset(1)
    assert await monitor.incomplete_count(1) == 0


async def test_redis_outage_is_not_raised():
    server = FakeServer()
    server.connected = False
    monitor = ConsistencyMonitor(FakeAsyncRedis(server=server))

    # Logged and swallowed; the caller's own error is what matters
    await monitor.record_incomplete(1, "a@example.com", 10)
