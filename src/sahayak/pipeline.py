"""
Submission pipeline: validate, store as Pending, acknowledge, classify later.

The classification step is detached from the caller. Under FastAPI it is
handed to BackgroundTasks; elsewhere it runs as an asyncio task that the
pipeline keeps a reference to until it finishes. Either way nothing awaits
it, so every error inside it is logged here and the report stays Pending.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Optional, Set, Tuple

from .classifier import AIClassifier
from .metrics import Metrics
from .models import DistressReport, ReportSubmission
from .storage import ReportStore

logger = logging.getLogger(__name__)

Scheduler = Callable[..., Any]


class SubmissionPipeline:
    def __init__(
        self,
        store: ReportStore,
        classifier: AIClassifier,
        *,
        metrics: Optional[Metrics] = None,
    ) -> None:
        self._store = store
        self._classifier = classifier
        self._metrics = metrics or Metrics()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def submit(self, submission: ReportSubmission, *, schedule: Scheduler | None = None) -> DistressReport:
        """
        Persist the report in Pending state and return it immediately.
        `schedule(func, *args)` runs the classification; defaults to a detached asyncio task.
        PersistenceError from the initial insert propagates to the caller.
        """
        report = await self._store.insert(submission)
        self._metrics.record_submission()
        logger.info(f"[{report.id}] New report from {report.location[:50]}: {report.message[:50]}...")

        (schedule or self._spawn)(self.classify_report, report.id, report.message, report.location)
        return report

    async def submit_report(
        self,
        message: str,
        location: str,
        contact: str | None = None,
        coordinates: Tuple[float, float] | None = None,
        submitted_by: str | None = None,
        *,
        schedule: Scheduler | None = None,
    ) -> DistressReport:
        """Validate raw fields (pydantic ValidationError lists every bad field) and submit."""
        latitude, longitude = coordinates if coordinates is not None else (None, None)
        submission = ReportSubmission(
            message=message,
            location=location,
            contact=contact,
            latitude=latitude,
            longitude=longitude,
            submitted_by=submitted_by,
        )
        return await self.submit(submission, schedule=schedule)

    async def classify_report(self, report_id: str, message: str, location: str) -> Optional[DistressReport]:
        """Background step: classify and write the single Pending -> terminal update."""
        start_time = time.time()
        self._metrics.active_classifications += 1
        source = None
        try:
            result, source = await self._classifier.classify_with_source(message, location)
            updated = await self._store.update(
                report_id,
                classification=result.status,
                confidence=result.confidence,
                rationale=result.reason,
            )
            logger.info(
                f"[{report_id}] Classified as {result.status.value} "
                f"({result.confidence:.2f}) via {source} in {time.time() - start_time:.2f}s"
            )
            return updated
        except Exception as e:
            source = None
            logger.error(f"[{report_id}] Classification update failed, report stays Pending: {e}", exc_info=True)
            return None
        finally:
            self._metrics.active_classifications -= 1
            self._metrics.record_classification(source, time.time() - start_time)

    def _spawn(self, func: Callable[..., Any], *args: Any) -> None:
        task = asyncio.create_task(func(*args))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for detached classifications (shutdown and tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
