"""
Feed filtering and dashboard aggregates over stored reports.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from .models import (
    DistressReport,
    LocationCount,
    ReportStats,
    TimelinePoint,
    VerificationStatus,
)

TOP_LOCATIONS = 5
LOCATION_LABEL_LENGTH = 20
TIMELINE_DAYS = 7


def filter_reports(
    reports: Iterable[DistressReport],
    *,
    status: Optional[VerificationStatus] = None,
    since: Optional[datetime] = None,
    search: Optional[str] = None,
) -> List[DistressReport]:
    needle = (search or "").strip().lower()
    selected = []
    for report in reports:
        if status is not None and report.classification != status:
            continue
        if since is not None and report.created_at < since:
            continue
        if needle and needle not in report.message.lower() and needle not in report.location.lower():
            continue
        selected.append(report)
    return selected


def location_label(location: str) -> str:
    """First comma-separated segment, trimmed, cut to 20 characters."""
    return location.split(",")[0].strip()[:LOCATION_LABEL_LENGTH]


def _rate(count: int, total: int) -> float:
    return round(count / total * 100, 1) if total else 0.0


def summarize(reports: Iterable[DistressReport], now: Optional[datetime] = None) -> ReportStats:
    reports = list(reports)
    now = now or datetime.now(timezone.utc)
    total = len(reports)
    by_status = Counter(report.classification for report in reports)

    genuine = by_status[VerificationStatus.LIKELY_GENUINE]
    scam = by_status[VerificationStatus.HIGH_SCAM_PROBABILITY]
    average_confidence = sum(report.confidence for report in reports) / total if total else 0.0

    # Counter.most_common keeps first-seen order for ties
    locations = Counter(location_label(report.location) for report in reports)
    top_locations = [
        LocationCount(name=name, count=count)
        for name, count in locations.most_common(TOP_LOCATIONS)
    ]

    today = now.astimezone(timezone.utc).date()
    timeline = {
        today - timedelta(days=offset): TimelinePoint(day=today - timedelta(days=offset))
        for offset in range(TIMELINE_DAYS - 1, -1, -1)
    }
    for report in reports:
        point = timeline.get(report.created_at.astimezone(timezone.utc).date())
        if point is None:
            continue
        point.total += 1
        if report.classification == VerificationStatus.LIKELY_GENUINE:
            point.genuine += 1
        elif report.classification == VerificationStatus.HIGH_SCAM_PROBABILITY:
            point.scam += 1

    return ReportStats(
        total=total,
        genuine=genuine,
        needs_verification=by_status[VerificationStatus.NEEDS_VERIFICATION],
        scam=scam,
        pending=by_status[VerificationStatus.PENDING],
        average_confidence=round(average_confidence, 4),
        genuine_rate=_rate(genuine, total),
        scam_rate=_rate(scam, total),
        top_locations=top_locations,
        timeline=list(timeline.values()),
    )
