"""Background re-aggregation of goal/solution pairings.

New ratings only *enqueue* their pairing; a periodic caller (cron, API
endpoint, scheduler) drains the queue with :meth:`process_pending_jobs`.
Aggregation itself is pure, so the only thing that needs serializing is the
write of each result, which :class:`ThreadSafeAggregateStore` handles.

Guarantees:
• a pairing is queued at most once at a time
• at most one job per pairing runs at a time
• a failing job is retried until it has been attempted ``max_retries`` times
"""
from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Tuple

from wwfm_fields.aggregation import config
from wwfm_fields.aggregation.pipeline import compute_aggregates
from wwfm_fields.store import PairingKey, ThreadSafeAggregateStore

logger = logging.getLogger(__name__)

ReportFetcher = Callable[[str, str], Iterable[Any]]
CategoryLookup = Callable[[str, str], Optional[str]]


@dataclass(slots=True)
class QueueRunResult:
    """Outcome of one :meth:`AggregationQueueProcessor.process_pending_jobs` run."""

    processed: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)


class _QueuedJob:
    """Internal container for a pending pairing."""

    __slots__ = ("goal_id", "implementation_id", "attempts", "queued_at")

    def __init__(self, goal_id: str, implementation_id: str) -> None:
        self.goal_id = goal_id
        self.implementation_id = implementation_id
        self.attempts = 0
        self.queued_at = time.time()

    @property
    def key(self) -> PairingKey:
        return (self.goal_id, self.implementation_id)


class AggregationQueueProcessor:
    """Drain queued pairings through :func:`compute_aggregates` into a store."""

    def __init__(
        self,
        fetch_reports: ReportFetcher,
        store: ThreadSafeAggregateStore,
        *,
        category_for: Optional[CategoryLookup] = None,
        max_concurrent: int = config.QUEUE_MAX_CONCURRENT,
        max_retries: int = config.QUEUE_MAX_RETRIES,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        if max_concurrent <= 0:
            raise ValueError("max_concurrent must be positive")
        if max_retries <= 0:
            raise ValueError("max_retries must be positive")
        self._fetch_reports = fetch_reports
        self._store = store
        self._category_for = category_for
        self._max_concurrent = max_concurrent
        self._max_retries = max_retries
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_concurrent, thread_name_prefix="aggregation"
        )
        self._lock = threading.Lock()
        # Insertion order == queued order; keys make enqueue idempotent.
        self._queue: "OrderedDict[PairingKey, _QueuedJob]" = OrderedDict()
        self._processing = False

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    def enqueue(self, goal_id: str, implementation_id: str) -> bool:
        """Queue a pairing for re-aggregation.

        Returns *False* if the pairing was already waiting in the queue.
        """
        key = (goal_id, implementation_id)
        with self._lock:
            if key in self._queue:
                return False
            self._queue[key] = _QueuedJob(goal_id, implementation_id)
        logger.debug("Queued aggregation for %s/%s", goal_id, implementation_id)
        return True

    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    def process_pending_jobs(self) -> QueueRunResult:
        """Run up to ``max_concurrent`` of the oldest queued jobs concurrently."""
        with self._lock:
            if self._processing:
                logger.info("Aggregation queue already processing, skipping run")
                return QueueRunResult()
            self._processing = True
            batch: List[_QueuedJob] = []
            while self._queue and len(batch) < self._max_concurrent:
                _, job = self._queue.popitem(last=False)
                batch.append(job)

        result = QueueRunResult()
        try:
            if not batch:
                logger.debug("No pending aggregation jobs")
                return result

            logger.info("Processing %d aggregation jobs", len(batch))
            futures = [
                (job, self._executor.submit(self._process_job, job)) for job in batch
            ]
            for job, future in futures:
                try:
                    future.result()
                    result.processed += 1
                except Exception as exc:  # noqa: BLE001
                    result.failed += 1
                    result.errors.append(
                        f"Job {job.goal_id}/{job.implementation_id}: {exc}"
                    )
                    self._handle_failure(job, exc)

            logger.info(
                "Aggregation run completed: %d processed, %d failed",
                result.processed,
                result.failed,
            )
            return result
        finally:
            with self._lock:
                self._processing = False

    def shutdown(self) -> None:
        """Shut down the executor if this processor created it."""
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _process_job(self, job: _QueuedJob) -> Tuple[str, str]:
        job.attempts += 1
        reports = list(self._fetch_reports(job.goal_id, job.implementation_id))
        category = (
            self._category_for(job.goal_id, job.implementation_id)
            if self._category_for is not None
            else None
        )
        fields = compute_aggregates(reports, category=category)
        self._store.put(job.goal_id, job.implementation_id, fields)
        return job.key

    def _handle_failure(self, job: _QueuedJob, exc: Exception) -> None:
        if job.attempts >= self._max_retries:
            logger.error(
                "Dropping aggregation job %s/%s after %d attempts: %s",
                job.goal_id,
                job.implementation_id,
                job.attempts,
                exc,
            )
            return

        logger.warning(
            "Aggregation job %s/%s failed (attempt %d/%d): %s",
            job.goal_id,
            job.implementation_id,
            job.attempts,
            self._max_retries,
            exc,
        )
        with self._lock:
            # A fresh enqueue for the same pairing supersedes the retry.
            self._queue.setdefault(job.key, job)
