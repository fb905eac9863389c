"""In-process job store guarded by an asyncio lock."""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Any

from focusflow.jobs.models import CLAIMED_PROGRESS, MAX_TRACKED_LOGS, TERMINAL_STATUSES, JobError, JobKind, JobProgress, JobRecord, JobStatus, budget_exceeded_error
from focusflow.storage.jobs_repo import JobsRepository
from focusflow.utils.clock import utc_now
from focusflow.utils.ids import generate_job_id

logger = logging.getLogger(__name__)


class InMemoryJobsRepository(JobsRepository):
  """Keep jobs in a dict; records do not survive a restart."""

  def __init__(self, *, clock: Callable[[], datetime] = utc_now) -> None:
    self._jobs: dict[str, JobRecord] = {}
    self._lock = asyncio.Lock()
    self._clock = clock

  async def insert(self, kind: JobKind, params: Mapping[str, Any], *, timeout_seconds: float | None = None) -> str:
    async with self._lock:
      job_id = generate_job_id()
      while job_id in self._jobs:
        job_id = generate_job_id()
      self._jobs[job_id] = JobRecord(job_id=job_id, job_kind=kind, params=copy.deepcopy(dict(params)), status=JobStatus.PENDING, created_at=self._clock(), timeout_seconds=timeout_seconds)
      return job_id

  async def claim_next_pending(self) -> JobRecord | None:
    async with self._lock:
      # Dict order is insertion order, so this is oldest-first.
      record = next((job for job in self._jobs.values() if job.status == JobStatus.PENDING), None)
      if record is None:
        return None
      record.status = JobStatus.PROCESSING
      record.started_at = self._clock()
      record.progress = CLAIMED_PROGRESS
      record.logs = [*record.logs, CLAIMED_PROGRESS.message][-MAX_TRACKED_LOGS:]
      return copy.deepcopy(record)

  async def update_progress(self, job_id: str, progress: JobProgress, *, attempt: int | None = None, logs: list[str] | None = None) -> bool:
    async with self._lock:
      record = self._jobs.get(job_id)
      if record is None or record.status != JobStatus.PROCESSING:
        return False
      record.progress = progress
      if attempt is not None:
        record.attempt = attempt
      if logs:
        record.logs = [*record.logs, *logs][-MAX_TRACKED_LOGS:]
      return True

  async def complete(self, job_id: str, result: dict[str, Any]) -> bool:
    async with self._lock:
      record = self._jobs.get(job_id)
      if record is None or record.status != JobStatus.PROCESSING:
        logger.warning("Ignoring stale complete job_id=%s status=%s", job_id, record.status.value if record else "missing")
        return False
      record.status = JobStatus.COMPLETED
      record.result = copy.deepcopy(result)
      record.completed_at = self._clock()
      return True

  async def fail(self, job_id: str, error: JobError, *, pending_only: bool = False) -> bool:
    allowed = {JobStatus.PENDING} if pending_only else {JobStatus.PENDING, JobStatus.PROCESSING}
    async with self._lock:
      record = self._jobs.get(job_id)
      if record is None or record.status not in allowed:
        logger.warning("Ignoring stale fail job_id=%s status=%s kind=%s", job_id, record.status.value if record else "missing", error.kind.value)
        return False
      record.status = JobStatus.FAILED
      record.error = error
      record.completed_at = self._clock()
      return True

  async def fail_overdue(self, default_timeout_seconds: float) -> list[JobRecord]:
    async with self._lock:
      now = self._clock()
      expired: list[JobRecord] = []
      for record in self._jobs.values():
        if record.status != JobStatus.PROCESSING or record.started_at is None:
          continue
        budget = record.timeout_seconds or default_timeout_seconds
        if record.started_at + timedelta(seconds=budget) > now:
          continue
        record.status = JobStatus.FAILED
        record.error = budget_exceeded_error(budget)
        record.completed_at = now
        expired.append(copy.deepcopy(record))
      return expired

  async def get(self, job_id: str) -> JobRecord | None:
    async with self._lock:
      record = self._jobs.get(job_id)
      return copy.deepcopy(record) if record is not None else None

  async def evict_older_than(self, seconds: float) -> int:
    async with self._lock:
      cutoff = self._clock() - timedelta(seconds=seconds)
      expired = [job_id for job_id, record in self._jobs.items() if record.status in TERMINAL_STATUSES and record.completed_at is not None and record.completed_at <= cutoff]
      for job_id in expired:
        del self._jobs[job_id]
      return len(expired)

  async def count_by_status(self) -> dict[JobStatus, int]:
    async with self._lock:
      counts = dict.fromkeys(JobStatus, 0)
      for record in self._jobs.values():
        counts[record.status] += 1
      return counts
