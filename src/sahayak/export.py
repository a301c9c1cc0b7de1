import csv
import io
from datetime import date
from typing import Iterable, Optional

from .models import DistressReport

CSV_HEADERS = [
    "ID",
    "Timestamp",
    "Message",
    "Location",
    "Contact",
    "Verification Status",
    "Confidence Score",
    "AI Reason",
]


def export_filename(prefix: str = "distress-reports", today: Optional[date] = None) -> str:
    return f"{prefix}-{(today or date.today()).isoformat()}.csv"


def reports_to_csv(reports: Iterable[DistressReport]) -> str:
    """Render reports as CSV text; an empty iterable yields only the header row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for report in reports:
        writer.writerow([
            report.id,
            report.created_at.isoformat(),
            report.message,
            report.location,
            report.contact or "",
            report.classification.value,
            f"{report.confidence * 100:.1f}%",
            report.rationale,
        ])
    return buffer.getvalue()
