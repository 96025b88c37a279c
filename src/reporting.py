"""
Outcome reporting for orchestration runs.
"""

import json
import logging
from datetime import datetime
from typing import List, Optional

from models import OperationOutcome

logger = logging.getLogger(__name__)


def format_duration(seconds: float) -> str:
    """Format duration in human-readable format."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        mins = int(seconds // 60)
        secs = seconds % 60
        return f"{mins}m {secs:.0f}s"
    else:
        hours = int(seconds // 3600)
        mins = int((seconds % 3600) // 60)
        secs = seconds % 60
        return f"{hours}h {mins}m {secs:.0f}s"


def _iso(ts: Optional[float]) -> Optional[str]:
    return datetime.fromtimestamp(ts).isoformat() if ts else None


class UpgradeReporter:
    """Collects one outcome per orchestration call."""

    def __init__(self):
        self.outcomes: List[OperationOutcome] = []

    def record(self, outcome: OperationOutcome) -> None:
        """Record a finished operation."""
        self.outcomes.append(outcome)
        duration = format_duration(outcome.duration_seconds or 0)
        if outcome.success:
            logger.info(f"✓ {outcome.name} SUCCEEDED in {duration}")
        else:
            phase = outcome.phase.value if outcome.phase else "unknown phase"
            logger.error(
                f"{outcome.name} FAILED in {phase} after {duration}: {outcome.error_message}"
            )

    @property
    def failed(self) -> List[OperationOutcome]:
        return [o for o in self.outcomes if not o.success]

    def print_report(self) -> None:
        """Print timing and status of every recorded operation."""
        logger.info("")
        logger.info("=" * 70)
        logger.info("UPGRADE REPORT")
        logger.info("=" * 70)
        logger.info(f"{'Operation':<25} {'Status':<10} {'Duration':<12} {'Version'}")
        logger.info("-" * 70)
        for o in self.outcomes:
            status = "success" if o.success else "failed"
            logger.info(
                f"{o.name:<25} {status:<10} {format_duration(o.duration_seconds or 0):<12} {o.target_version or 'N/A'}"
            )

        if self.failed:
            logger.info("")
            logger.info("FAILURES")
            logger.info("-" * 40)
            for o in self.failed:
                phase = o.phase.value if o.phase else "unknown"
                logger.info(f"{o.name} [{phase}]: {o.error_message or 'Unknown'}")

        logger.info("=" * 70)

    def to_dict(self) -> dict:
        return {
            "generated_at": datetime.now().isoformat(),
            "results": [
                {
                    "name": o.name,
                    "status": "success" if o.success else "failed",
                    "phase": o.phase.value if o.phase else None,
                    "start_time": _iso(o.start_time),
                    "end_time": _iso(o.end_time),
                    "duration_seconds": o.duration_seconds,
                    "target_version": o.target_version,
                    "error_message": o.error_message,
                }
                for o in self.outcomes
            ],
        }

    def export_results_json(self, filename: Optional[str] = None) -> str:
        """Export results to a JSON file and return its name."""
        if filename is None:
            filename = f"upgrade-report-{datetime.now().strftime('%Y%m%d-%H%M%S')}.json"
        with open(filename, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Detailed report exported to: {filename}")
        return filename
