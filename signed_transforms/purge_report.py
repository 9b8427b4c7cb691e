"""
Purge Report Module

Records the outcome of executed purge jobs and prints a summary.
"""

import os
import json
import logging
from datetime import datetime
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, asdict, field

from .models import PurgeOutcome

logger = logging.getLogger(__name__)

REPORT_FILE_NAME = "purge_report.json"


@dataclass
class PurgeState:
    """Purge run state data structure."""

    # Timestamps
    started_at: str = ""
    updated_at: str = ""
    completed_at: str = ""

    # Progress counters
    total_jobs: int = 0
    executed_count: int = 0
    success_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    urls_purged: int = 0

    # Tracking
    failed_jobs: List[Dict[str, Any]] = field(default_factory=list)


class PurgeReport:
    """
    Collects purge outcomes across jobs, optionally persisting them to disk.
    """

    def __init__(self, report_dir: Optional[str] = None):
        """
        Initialize the report.

        Args:
            report_dir: Directory for the JSON report, None to keep it in memory
        """
        self.report_file = os.path.join(report_dir, REPORT_FILE_NAME) if report_dir else None
        self.state = PurgeState(started_at=datetime.now().isoformat())

        if report_dir:
            os.makedirs(report_dir, exist_ok=True)

    def set_total(self, total: int) -> None:
        """Set total number of jobs to run."""
        self.state.total_jobs = total

    def record_outcome(self, files: List[str], outcome: PurgeOutcome) -> None:
        """
        Record the result of one executed purge job.

        Args:
            files: URLs the job purged
            outcome: Cloudflare's answer
        """
        self.state.executed_count += 1

        if outcome.success:
            self.state.success_count += 1
            self.state.urls_purged += len(files)
            return

        self.state.failed_count += 1
        self.state.failed_jobs.append({
            'files': list(files),
            'status_code': outcome.status_code,
            'errors': list(outcome.errors),
        })
        self.save_state()

    def record_error(self, files: List[str], error: Exception) -> None:
        """Record a job that raised after exhausting its retries."""
        self.state.executed_count += 1
        self.state.failed_count += 1
        self.state.failed_jobs.append({
            'files': list(files),
            'status_code': 0,
            'errors': [f"{type(error).__name__}: {error}"],
        })
        self.save_state()

    def record_skipped(self) -> None:
        self.state.skipped_count += 1

    def mark_complete(self) -> None:
        """Mark the run as complete."""
        self.state.completed_at = datetime.now().isoformat()
        self.save_state()

    def save_state(self) -> None:
        """Write the report to disk when a report directory was given."""
        if not self.report_file:
            return

        self.state.updated_at = datetime.now().isoformat()
        try:
            with open(self.report_file, 'w', encoding='utf-8') as f:
                json.dump(asdict(self.state), f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error(f"Error saving purge report: {e}")

    @property
    def has_failures(self) -> bool:
        return self.state.failed_count > 0

    def get_progress(self) -> Dict[str, Any]:
        """Get current progress statistics."""
        return {
            'total': self.state.total_jobs,
            'executed': self.state.executed_count,
            'success': self.state.success_count,
            'failed': self.state.failed_count,
            'skipped': self.state.skipped_count,
            'urls_purged': self.state.urls_purged,
        }

    def print_summary(self) -> None:
        """Print a summary of the purge run."""
        progress = self.get_progress()

        print("\n" + "=" * 50)
        print("CACHE PURGE SUMMARY")
        print("=" * 50)
        print(f"Jobs queued:    {progress['total']}")
        print(f"Executed:       {progress['executed']}")
        print(f"  ✓ Success:    {progress['success']}")
        print(f"  ✗ Failed:     {progress['failed']}")
        print(f"  ⊘ Skipped:    {progress['skipped']}")
        print(f"URLs purged:    {progress['urls_purged']}")

        if self.state.failed_count > 0:
            print("\nFailed jobs:")
            for job in self.state.failed_jobs[:5]:  # Show first 5
                first_url = job['files'][0] if job['files'] else 'unknown'
                print(f"  - {first_url[:60]} ({len(job['files'])} URL(s))")
                print(f"    Errors: {'; '.join(job['errors'])}")
            if self.state.failed_count > 5:
                print(f"  ... and {self.state.failed_count - 5} more")

        print("=" * 50 + "\n")
