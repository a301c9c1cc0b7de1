import time
from typing import Any, Dict


class Metrics:
    """Track submission and classification counters"""

    def __init__(self):
        self.total_submissions = 0
        self.rejected_submissions = 0
        self.classified = 0
        self.ai_classifications = 0
        self.heuristic_classifications = 0
        self.failed_updates = 0
        self.total_classification_time = 0.0
        self.active_classifications = 0
        self.start_time = time.time()

    def record_submission(self, accepted: bool = True):
        if accepted:
            self.total_submissions += 1
        else:
            self.rejected_submissions += 1

    def record_classification(self, source: str | None, processing_time: float):
        """Record one finished background classification; source None means the update failed."""
        self.total_classification_time += processing_time
        if source is None:
            self.failed_updates += 1
            return
        self.classified += 1
        if source == "ai":
            self.ai_classifications += 1
        else:
            self.heuristic_classifications += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get current metrics"""
        uptime = time.time() - self.start_time
        finished = self.classified + self.failed_updates
        avg_time = self.total_classification_time / finished if finished > 0 else 0

        return {
            "total_submissions": self.total_submissions,
            "rejected_submissions": self.rejected_submissions,
            "classified": self.classified,
            "ai_classifications": self.ai_classifications,
            "heuristic_classifications": self.heuristic_classifications,
            "failed_updates": self.failed_updates,
            "average_classification_time": f"{avg_time:.2f}s",
            "active_classifications": self.active_classifications,
            "uptime_seconds": int(uptime)
        }
