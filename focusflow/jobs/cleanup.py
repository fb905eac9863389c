"""Periodic eviction of finished jobs and expiry of stranded ones."""

from __future__ import annotations

import asyncio
import logging

from focusflow.jobs.models import JobStatus
from focusflow.jobs.stats import JobStatsTracker
from focusflow.storage.jobs_repo import JobsRepository

logger = logging.getLogger(__name__)


class JobCleanupLoop:
  """Expire overdue jobs and evict old terminal jobs on a fixed interval.

  A processing job whose budget has run out is failed with `timeout`; this
  covers jobs whose worker was lost to a crash or restart. Eviction only
  deletes records that carry a completion time, so pending and processing
  jobs are never removed.
  """

  def __init__(self, *, jobs_repo: JobsRepository, retention_seconds: float, interval_seconds: float, default_timeout_seconds: float, stats: JobStatsTracker | None = None) -> None:
    self._jobs_repo = jobs_repo
    self._retention_seconds = retention_seconds
    self._interval_seconds = interval_seconds
    self._default_timeout_seconds = default_timeout_seconds
    self._stats = stats
    self._task: asyncio.Task[None] | None = None

  async def expire_overdue(self) -> int:
    """Fail processing jobs past their execution budget; return how many."""
    expired = await self._jobs_repo.fail_overdue(self._default_timeout_seconds)
    for record in expired:
      logger.warning("Failed overdue job job_id=%s kind=%s", record.job_id, record.job_kind.value)
      if self._stats is not None and record.completed_at is not None:
        self._stats.record_terminal(JobStatus.FAILED, record.running_time_ms(record.completed_at))
    return len(expired)

  async def run_once(self) -> int:
    """Run one expiry and eviction pass; return the number of evicted jobs."""
    await self.expire_overdue()
    evicted = await self._jobs_repo.evict_older_than(self._retention_seconds)
    if evicted:
      logger.info("Evicted %d finished jobs older than %ss.", evicted, self._retention_seconds)
    return evicted

  async def _loop(self) -> None:
    while True:
      await asyncio.sleep(self._interval_seconds)
      try:
        await self.run_once()
      except Exception:  # noqa: BLE001
        logger.error("Job cleanup pass failed", exc_info=True)

  def start(self) -> None:
    if self._task is None:
      self._task = asyncio.create_task(self._loop(), name="focusflow-job-cleanup")

  async def stop(self) -> None:
    task, self._task = self._task, None
    if task is None:
      return
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
