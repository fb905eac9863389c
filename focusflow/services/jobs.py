"""Job queue facade: the only entry point callers use."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from fastapi import HTTPException, Request, status
from pydantic import ValidationError

from focusflow.core.errors import InvalidJobInputError, JobConflictError, JobNotFoundError
from focusflow.jobs.catalog import get_kind_spec
from focusflow.jobs.models import ErrorKind, JobError, JobKind, JobProgress, JobRecord, JobStatus
from focusflow.jobs.stats import JobStats, JobStatsTracker
from focusflow.jobs.worker import JobWorkerPool
from focusflow.storage.jobs_repo import JobsRepository
from focusflow.utils.clock import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobStatusView:
  """Read-only view of a job returned to pollers."""

  job_id: str
  kind: JobKind
  status: JobStatus
  progress: JobProgress
  logs: list[str]
  result: dict[str, Any] | None
  error: JobError | None
  attempt: int
  created_at: datetime
  started_at: datetime | None
  completed_at: datetime | None
  running_time_ms: int
  estimated_duration_ms: int


def _sanitize_errors(exc: ValidationError) -> list[dict[str, Any]]:
  # Drop raw inputs so callers never get their payload echoed back.
  return [{"loc": [str(part) for part in error.get("loc", ())], "msg": str(error.get("msg", "")), "type": str(error.get("type", ""))} for error in exc.errors()]


class JobQueueService:
  """Create, inspect and cancel generation jobs."""

  def __init__(self, *, jobs_repo: JobsRepository, stats: JobStatsTracker, pool: JobWorkerPool | None = None, max_timeout_seconds: float = 600.0, clock: Callable[[], datetime] = utc_now) -> None:
    self._jobs_repo = jobs_repo
    self._stats = stats
    self._pool = pool
    self._max_timeout_seconds = max_timeout_seconds
    self._clock = clock

  def _resolve_kind(self, kind: JobKind | str) -> JobKind:
    try:
      return JobKind(kind)
    except ValueError as exc:
      allowed = ", ".join(item.value for item in JobKind)
      raise InvalidJobInputError(f"Unknown job type '{kind}'. Expected one of: {allowed}.") from exc

  def _resolve_timeout(self, timeout_seconds: Any) -> float | None:
    if timeout_seconds is None:
      return None
    if isinstance(timeout_seconds, bool) or not isinstance(timeout_seconds, int | float):
      raise InvalidJobInputError("timeoutSeconds must be a number.")
    if timeout_seconds <= 0 or timeout_seconds > self._max_timeout_seconds:
      raise InvalidJobInputError(f"timeoutSeconds must be greater than 0 and at most {self._max_timeout_seconds:g}.")
    return float(timeout_seconds)

  async def create_job(self, kind: JobKind | str, params: Mapping[str, Any] | None, *, timeout_seconds: float | None = None) -> str:
    """Validate a request and enqueue it; nothing is stored when validation fails."""
    job_kind = self._resolve_kind(kind)
    if not isinstance(params, Mapping):
      raise InvalidJobInputError("params must be an object.")
    try:
      get_kind_spec(job_kind).parse_params(params)
    except ValidationError as exc:
      raise InvalidJobInputError(f"Invalid params for {job_kind.value}.", errors=_sanitize_errors(exc)) from exc
    budget = self._resolve_timeout(timeout_seconds)

    job_id = await self._jobs_repo.insert(job_kind, params, timeout_seconds=budget)
    self._stats.record_created()
    logger.info("Job created job_id=%s kind=%s", job_id, job_kind.value)
    if self._pool is not None:
      self._pool.notify()
    return job_id

  async def get_job_status(self, job_id: str) -> JobStatusView:
    record = await self._jobs_repo.get(job_id)
    if record is None:
      raise JobNotFoundError(job_id)
    return self._to_view(record)

  async def get_stats(self) -> JobStats:
    counts = await self._jobs_repo.count_by_status()
    active = self._pool.active_workers if self._pool is not None else 0
    return self._stats.snapshot(counts, active_workers=active)

  async def cancel_job(self, job_id: str) -> JobStatusView:
    """Cancel a job that has not started yet; running jobs cannot be canceled."""
    record = await self._jobs_repo.get(job_id)
    if record is None:
      raise JobNotFoundError(job_id)
    if record.status != JobStatus.PENDING:
      raise JobConflictError(job_id, f"Job '{job_id}' is {record.status.value} and can no longer be canceled.")

    # A worker may claim the job between the read and this write.
    if not await self._jobs_repo.fail(job_id, JobError(ErrorKind.CANCELED, "Job was canceled before it started."), pending_only=True):
      current = await self._jobs_repo.get(job_id)
      if current is None:
        raise JobNotFoundError(job_id)
      raise JobConflictError(job_id, f"Job '{job_id}' is {current.status.value} and can no longer be canceled.")

    self._stats.record_terminal(JobStatus.FAILED, None)
    logger.info("Job canceled job_id=%s", job_id)
    return await self.get_job_status(job_id)

  def _to_view(self, record: JobRecord) -> JobStatusView:
    return JobStatusView(
      job_id=record.job_id,
      kind=record.job_kind,
      status=record.status,
      progress=record.progress,
      logs=list(record.logs),
      result=record.result,
      error=record.error,
      attempt=record.attempt,
      created_at=record.created_at,
      started_at=record.started_at,
      completed_at=record.completed_at,
      running_time_ms=record.running_time_ms(self._clock()),
      estimated_duration_ms=get_kind_spec(record.job_kind).estimated_duration_ms,
    )


def get_job_service(request: Request) -> JobQueueService:
  """Resolve the facade built during application startup."""
  service = getattr(request.app.state, "job_service", None)
  if service is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Job service is not ready.")
  return service
