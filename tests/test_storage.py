"""
Unit tests for the report store
"""

import asyncio
import os
from unittest.mock import AsyncMock, patch
from datetime import datetime, timedelta, timezone

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from sahayak.models import ReportSubmission, VerificationStatus
from sahayak.storage import ReportNotFoundError, ReportStore


def submission(message="Water entering ground floor homes on our lane", location="7 Canal Road", **extra):
    return ReportSubmission(message=message, location=location, **extra)


@pytest.mark.asyncio
async def test_insert_assigns_id_and_pending_state():
    store = ReportStore()
    await store.connect()

    report = await store.insert(submission(contact="  "))

    assert store.backend == "memory"
    assert report.id.startswith("rpt_")
    assert report.classification == VerificationStatus.PENDING
    assert report.confidence == 0.0
    assert report.rationale == "Analyzing..."
    assert report.contact is None
    assert await store.get(report.id) == report


@pytest.mark.asyncio
async def test_unreachable_redis_falls_back_and_closes_client():
    client = AsyncMock()
    client.ping.side_effect = RedisConnectionError("connection refused")

    with patch("sahayak.storage.redis.from_url", return_value=client):
        store = ReportStore("redis://unreachable:6379/0")
        await store.connect()

    assert store.backend == "memory"
    assert store.redis_client is None
    client.aclose.assert_awaited_once()
    assert (await store.insert(submission())).is_pending


@pytest.mark.asyncio
async def test_update_attaches_classification():
    store = ReportStore()
    report = await store.insert(submission())

    updated = await store.update(
        report.id,
        classification=VerificationStatus.LIKELY_GENUINE,
        confidence=0.82,
        rationale="Contains 2 disaster-related terms.",
    )

    assert updated.classification == VerificationStatus.LIKELY_GENUINE
    assert updated.classified_at is not None
    assert updated.created_at == report.created_at
    assert (await store.get(report.id)).confidence == 0.82


@pytest.mark.asyncio
async def test_update_unknown_report_raises():
    store = ReportStore()

    with pytest.raises(ReportNotFoundError) as exc_info:
        await store.update(
            "rpt_missing",
            classification=VerificationStatus.NEEDS_VERIFICATION,
            confidence=0.5,
            rationale="n/a",
        )
    assert exc_info.value.report_id == "rpt_missing"


@pytest.mark.asyncio
async def test_repeated_update_last_write_wins():
    store = ReportStore()
    report = await store.insert(submission())

    await store.update(report.id, classification=VerificationStatus.LIKELY_GENUINE, confidence=0.9, rationale="first")
    await store.update(report.id, classification=VerificationStatus.HIGH_SCAM_PROBABILITY, confidence=0.2, rationale="second")

    stored = await store.get(report.id)
    assert stored.classification == VerificationStatus.HIGH_SCAM_PROBABILITY
    assert stored.confidence == 0.2
    assert stored.rationale == "second"
    assert len(await store.query()) == 1


@pytest.mark.asyncio
async def test_query_orders_and_filters():
    store = ReportStore()
    now = datetime.now(timezone.utc)
    old = await store.insert(submission(message="Old report about the storm drain"), created_at=now - timedelta(hours=30))
    new = await store.insert(submission(message="New report about the storm drain"), created_at=now)
    await store.update(new.id, classification=VerificationStatus.LIKELY_GENUINE, confidence=0.7, rationale="ok")

    assert [r.id for r in await store.query()] == [new.id, old.id]
    assert [r.id for r in await store.query(newest_first=False)] == [old.id, new.id]
    assert [r.id for r in await store.query(since=now - timedelta(hours=24))] == [new.id]
    assert [r.id for r in await store.query(status=VerificationStatus.PENDING)] == [old.id]
    assert [r.id for r in await store.query(limit=1)] == [new.id]


@pytest.mark.asyncio
async def test_subscribers_receive_insert_and_update_events():
    store = ReportStore()

    with store.subscribe() as subscription:
        report = await store.insert(submission())
        await store.update(report.id, classification=VerificationStatus.NEEDS_VERIFICATION, confidence=0.5, rationale="x")

        inserted = await subscription.get(timeout=1)
        updated = await subscription.get(timeout=1)

    assert inserted.event_type == "insert"
    assert inserted.report.is_pending
    assert updated.event_type == "update"
    assert updated.report.classification == VerificationStatus.NEEDS_VERIFICATION

    # closed subscriptions stop receiving events
    await store.insert(submission())
    with pytest.raises(asyncio.TimeoutError):
        await subscription.get(timeout=0.05)


@pytest.mark.asyncio
async def test_slow_subscriber_keeps_newest_events():
    store = ReportStore(subscriber_queue_size=2)
    subscription = store.subscribe()

    await store.insert(submission(message="First report about rising water"))
    second = await store.insert(submission(message="Second report about rising water"))
    third = await store.insert(submission(message="Third report about rising water"))

    assert subscription.dropped == 1
    assert (await subscription.get(timeout=1)).report.id == second.id
    assert (await subscription.get(timeout=1)).report.id == third.id
    subscription.close()


@pytest.mark.asyncio
async def test_redis_storage():
    """Test Redis storage (if available)"""
    redis_url = os.getenv("TEST_REDIS_URL")
    if not redis_url:
        pytest.skip("TEST_REDIS_URL not set")

    store = ReportStore(redis_url)
    await store.connect()
    if not store.use_redis:
        pytest.skip("Redis not available")

    report = await store.insert(submission())
    try:
        await store.update(report.id, classification=VerificationStatus.LIKELY_GENUINE, confidence=0.7, rationale="ok")

        stored = await store.get(report.id)
        assert stored.classification == VerificationStatus.LIKELY_GENUINE
        assert report.id in [r.id for r in await store.query(since=report.created_at)]
        assert await store.ping() is True
    finally:
        await store.redis_client.delete(f"report:{report.id}")
        await store.redis_client.zrem("reports:by_created", report.id)
        await store.close()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
