"""
Report store with Redis persistence and in-memory fallback.

Redis layout: report:<id> holds the JSON document, the sorted set
reports:by_created indexes ids by creation timestamp. Every insert and
update is also fanned out to in-process subscribers (live feed).
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

import redis.asyncio as redis
from redis.exceptions import RedisError

from .models import DistressReport, ReportEvent, ReportSubmission, VerificationStatus

logger = logging.getLogger(__name__)

REPORT_KEY = "report:{}"
CREATED_INDEX = "reports:by_created"


class PersistenceError(RuntimeError):
    """Record store unavailable or write rejected."""


class ReportNotFoundError(PersistenceError):
    def __init__(self, report_id: str) -> None:
        super().__init__(f"Report {report_id} not found")
        self.report_id = report_id


class ReportSubscription:
    """Queue of report events for one live-feed consumer."""

    def __init__(self, store: "ReportStore", maxsize: int) -> None:
        self._store = store
        self._queue: asyncio.Queue[ReportEvent] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def push(self, event: ReportEvent) -> None:
        if self._queue.full():
            # slow consumer: keep the newest events
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(event)

    async def get(self, timeout: float | None = None) -> ReportEvent:
        if timeout is None:
            return await self._queue.get()
        return await asyncio.wait_for(self._queue.get(), timeout)

    def close(self) -> None:
        self._store._subscribers.discard(self)

    def __aiter__(self) -> "ReportSubscription":
        return self

    async def __anext__(self) -> ReportEvent:
        return await self.get()

    def __enter__(self) -> "ReportSubscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ReportStore:
    """Manages Redis or in-memory storage with automatic fallback"""

    def __init__(self, redis_url: str | None = None, *, subscriber_queue_size: int = 100):
        self.redis_url = redis_url
        self.redis_client: Optional[redis.Redis] = None
        self.memory_storage: Dict[str, DistressReport] = {}
        self.use_redis = False
        self._subscriber_queue_size = subscriber_queue_size
        self._subscribers: Set[ReportSubscription] = set()

    @property
    def backend(self) -> str:
        return "redis" if self.use_redis else "memory"

    async def connect(self):
        """Attempt Redis connection, fallback to memory"""
        if not self.redis_url:
            logger.info("No REDIS_URL configured, using in-memory storage")
            return

        try:
            self.redis_client = redis.from_url(
                self.redis_url,
                decode_responses=True,
                socket_connect_timeout=5
            )
            await self.redis_client.ping()
            self.use_redis = True
            logger.info("Redis connected successfully")
        except (RedisError, OSError) as e:
            logger.warning(f"Redis connection failed: {e}. Using in-memory storage")
            if self.redis_client is not None:
                await self.redis_client.aclose()
            self.redis_client = None

    async def close(self):
        """Close Redis connection"""
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None
            self.use_redis = False

    async def ping(self) -> bool:
        if not self.use_redis:
            return True
        try:
            return bool(await self.redis_client.ping())
        except RedisError:
            return False

    # Writes ---------------------------------------------------------
    async def insert(self, submission: ReportSubmission, *, created_at: datetime | None = None) -> DistressReport:
        """
        Store a new report in Pending state; the id is assigned here.
        created_at defaults to now and is only overridden when seeding.
        """
        report = DistressReport.new_pending(
            report_id=f"rpt_{uuid.uuid4().hex[:12]}",
            submission=submission,
            created_at=created_at or datetime.now(timezone.utc),
        )
        await self._save(report, index=True)
        self._publish(ReportEvent(event_type="insert", report=report))
        return report

    async def update(
        self,
        report_id: str,
        *,
        classification: VerificationStatus,
        confidence: float,
        rationale: str,
    ) -> DistressReport:
        """Attach a classification. Last write wins; unknown ids raise ReportNotFoundError."""
        current = await self.get(report_id)
        if current is None:
            raise ReportNotFoundError(report_id)

        updated = current.model_copy(
            update={
                "classification": classification,
                "confidence": confidence,
                "rationale": rationale,
                "classified_at": datetime.now(timezone.utc),
            }
        )
        await self._save(updated, index=False)
        self._publish(ReportEvent(event_type="update", report=updated))
        return updated

    async def _save(self, report: DistressReport, *, index: bool) -> None:
        if not self.use_redis:
            self.memory_storage[report.id] = report
            return
        try:
            async with self.redis_client.pipeline(transaction=True) as pipe:
                pipe.set(REPORT_KEY.format(report.id), report.model_dump_json())
                if index:
                    pipe.zadd(CREATED_INDEX, {report.id: report.created_at.timestamp()})
                await pipe.execute()
        except RedisError as e:
            logger.error(f"[{report.id}] Redis write error: {e}")
            raise PersistenceError(f"Could not store report {report.id}") from e

    # Reads ----------------------------------------------------------
    async def get(self, report_id: str) -> Optional[DistressReport]:
        if not self.use_redis:
            return self.memory_storage.get(report_id)
        try:
            data = await self.redis_client.get(REPORT_KEY.format(report_id))
        except RedisError as e:
            logger.error(f"Redis get error: {e}")
            raise PersistenceError("Record store unavailable") from e
        return DistressReport.model_validate_json(data) if data else None

    async def query(
        self,
        *,
        status: VerificationStatus | None = None,
        since: datetime | None = None,
        limit: int | None = None,
        newest_first: bool = True,
    ) -> List[DistressReport]:
        if self.use_redis:
            reports = await self._query_redis(since)
        else:
            # reversed() so equal timestamps come out newest-inserted first
            reports = [
                report for report in reversed(list(self.memory_storage.values()))
                if since is None or report.created_at >= since
            ]
        reports.sort(key=lambda report: report.created_at, reverse=True)

        if status is not None:
            reports = [report for report in reports if report.classification == status]
        if not newest_first:
            reports.reverse()
        if limit is not None:
            reports = reports[:limit]
        return reports

    async def _query_redis(self, since: datetime | None) -> List[DistressReport]:
        low = since.timestamp() if since else "-inf"
        try:
            ids = await self.redis_client.zrevrangebyscore(CREATED_INDEX, "+inf", low)
            if not ids:
                return []
            documents = await self.redis_client.mget([REPORT_KEY.format(i) for i in ids])
        except RedisError as e:
            logger.error(f"Redis query error: {e}")
            raise PersistenceError("Record store unavailable") from e
        return [DistressReport.model_validate_json(doc) for doc in documents if doc]

    # Live feed ------------------------------------------------------
    def subscribe(self) -> ReportSubscription:
        subscription = ReportSubscription(self, self._subscriber_queue_size)
        self._subscribers.add(subscription)
        return subscription

    def _publish(self, event: ReportEvent) -> None:
        for subscription in list(self._subscribers):
            subscription.push(event)
