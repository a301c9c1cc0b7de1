"""
Demo report loader used to seed an empty store.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, List

from pydantic import ValidationError

from sahayak.models import ReportSubmission

logger = logging.getLogger(__name__)

DEMO_REPORTS_FILE = "demo_reports.json"


@dataclass(frozen=True)
class DemoReport:
    submission: ReportSubmission
    age: timedelta


def load_json(path: Path) -> Any:
    """Load a JSON file with UTF-8 encoding."""
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def load_demo_reports(data_dir: str | os.PathLike[str]) -> List[DemoReport]:
    """
    Load data_dir/demo_reports.json. Each entry is a submission plus
    `minutes_ago`; invalid entries are skipped with a warning.
    """
    path = Path(data_dir) / DEMO_REPORTS_FILE
    if not path.exists():
        logger.warning("Demo reports file %s does not exist; nothing to seed", path)
        return []

    try:
        raw = load_json(path)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Failed to load demo reports %s: %s", path, exc)
        return []
    if not isinstance(raw, list):
        logger.warning("Demo reports file %s must hold a JSON list", path)
        return []

    reports: List[DemoReport] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            logger.warning("Skip demo report #%d: not an object", index)
            continue
        fields = dict(entry)
        minutes_ago = fields.pop("minutes_ago", 0)
        try:
            submission = ReportSubmission(**fields)
            age = timedelta(minutes=float(minutes_ago))
        except (ValidationError, TypeError, ValueError) as exc:
            logger.warning("Skip demo report #%d: %s", index, exc)
            continue
        reports.append(DemoReport(submission=submission, age=age))

    logger.info("Loaded %d demo reports from %s", len(reports), path)
    return reports
