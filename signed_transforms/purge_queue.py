"""
Purge Queue Module

Deferred cache purge jobs and the in-process queue that runs them.

Jobs are safe to run more than once and in any order: purging the same URL
twice is harmless.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol

import requests
from tqdm import tqdm
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log
)

from .cloudflare_purger import CloudflarePurger
from .errors import TransportError
from .models import PurgeBatch, PurgeOutcome
from .purge_batcher import batch_urls
from .purge_report import PurgeReport
from .settings import Settings

logger = logging.getLogger(__name__)

# Retry configuration
MAX_RETRIES = 3
MIN_WAIT_SECONDS = 2
MAX_WAIT_SECONDS = 30


@dataclass
class PurgeImageCacheJob:
    """Purges specific URLs (and optionally tags) when assets are updated or replaced."""

    files: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    prefix: Optional[str] = None

    @classmethod
    def from_batch(cls, batch: PurgeBatch) -> "PurgeImageCacheJob":
        return cls(files=list(batch.urls), prefix=batch.prefix)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PurgeImageCacheJob":
        """Rebuild a job from its queued payload."""
        return cls(
            files=list(payload.get('files') or []),
            tags=list(payload.get('tags') or []),
            prefix=payload.get('prefix') or None,
        )

    def to_payload(self) -> Dict[str, Any]:
        """Serializable form handed to a task queue."""
        payload: Dict[str, Any] = {'files': list(self.files)}
        if self.tags:
            payload['tags'] = list(self.tags)
        if self.prefix:
            payload['prefix'] = self.prefix
        return payload

    @property
    def description(self) -> str:
        return f"Purging {len(self.files)} URL(s) from Cloudflare cache"

    def execute(self, purger: CloudflarePurger) -> Optional[PurgeOutcome]:
        """
        Run the purge.

        Files are sent in batches of at most MAX_PURGE_BATCH_SIZE, then tags
        in a request of their own. The prefix is purged last and only on a
        best-effort basis: its failure is logged and never fails the job.

        Args:
            purger: Authenticated Cloudflare purger

        Returns:
            The combined purge outcome, or None when there was nothing to purge

        Raises:
            TransportError: If Cloudflare could not be reached
        """
        if not self.files and not self.tags and not self.prefix:
            logger.warning("No files or tags specified for cache purge")
            return None

        outcomes = [purger.dispatch(batch) for batch in batch_urls(self.files)]
        if self.tags:
            outcomes.append(purger.purge_tags(self.tags))

        if self.prefix:
            prefix_outcome = self._purge_prefix(purger)
            if not outcomes and prefix_outcome is not None:
                outcomes.append(prefix_outcome)

        return PurgeOutcome.combine(outcomes) if outcomes else None

    def _purge_prefix(self, purger: CloudflarePurger) -> Optional[PurgeOutcome]:
        try:
            outcome = purger.purge_prefixes([self.prefix])
        except TransportError as e:
            logger.warning(f"Prefix purge for {self.prefix} failed: {e}")
            return None

        if not outcome.success:
            logger.warning(f"Prefix purge for {self.prefix} rejected: {'; '.join(outcome.errors)}")
        return outcome


class TaskQueue(Protocol):
    """Anything that accepts purge jobs for later execution."""

    def push(self, job: PurgeImageCacheJob) -> Any:
        ...


@retry(
    stop=stop_after_attempt(MAX_RETRIES),
    wait=wait_exponential(multiplier=2, min=MIN_WAIT_SECONDS, max=MAX_WAIT_SECONDS),
    retry=retry_if_exception_type(TransportError),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True
)
def execute_job(job: PurgeImageCacheJob, purger: CloudflarePurger) -> Optional[PurgeOutcome]:
    """Execute a job, retrying transport failures with exponential backoff."""
    return job.execute(purger)


class PurgeQueue:
    """
    Collects purge jobs and runs them in-process.

    Rejected purges are recorded and never retried. Transport failures are
    retried up to MAX_RETRIES times before being recorded as failed.
    """

    def __init__(
        self,
        settings: Settings,
        report: Optional[PurgeReport] = None,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the queue.

        Args:
            settings: Provides the Cloudflare zone ID and API key
            report: Report to record outcomes in (a fresh in-memory one by default)
            session: Optional requests session for the purger
        """
        self.settings = settings
        self.report = report or PurgeReport()
        self.session = session
        self.jobs: List[PurgeImageCacheJob] = []

    def push(self, job: PurgeImageCacheJob) -> int:
        """
        Queue a job.

        Returns:
            The number of jobs waiting to run
        """
        self.jobs.append(job)
        logger.debug(f"Queued: {job.description}")
        return len(self.jobs)

    def __len__(self) -> int:
        return len(self.jobs)

    def run(self, show_progress: bool = False) -> PurgeReport:
        """
        Run every queued job.

        Args:
            show_progress: Display a progress bar

        Returns:
            The report with one entry per job
        """
        jobs, self.jobs = self.jobs, []
        self.report.set_total(self.report.state.total_jobs + len(jobs))

        credentials = self.settings.purge_credentials()
        if credentials is None:
            logger.warning("Cannot purge cache: Zone ID or API Key not configured")
            for _ in jobs:
                self.report.record_skipped()
            return self.report

        purger = CloudflarePurger(credentials, session=self.session)

        for job in tqdm(jobs, desc="Purging", disable=not show_progress):
            try:
                outcome = execute_job(job, purger)
            except TransportError as e:
                logger.error(f"Giving up on purge job after {MAX_RETRIES} attempts: {e}")
                self.report.record_error(job.files, e)
                continue
            except Exception as e:
                logger.exception(f"Purge job failed: {e}")
                self.report.record_error(job.files, e)
                continue

            if outcome is None:
                self.report.record_skipped()
            else:
                self.report.record_outcome(job.files, outcome)

        self.report.mark_complete()
        return self.report
