"""Job progress tracking utilities."""

from __future__ import annotations

from focusflow.jobs.models import ErrorKind, JobError, JobProgress
from focusflow.storage.jobs_repo import JobsRepository

_REASON_LABELS = {
  ErrorKind.TRUNCATED: "response truncated",
  ErrorKind.SCHEMA_MISMATCH: "response did not match the schema",
  ErrorKind.UNPARSEABLE: "response was not JSON",
  ErrorKind.PROVIDER_ERROR: "provider error",
}


def describe_retry_reason(error: JobError) -> str:
  label = _REASON_LABELS.get(error.kind, error.kind.value)
  if error.kind == ErrorKind.PROVIDER_ERROR and error.message:
    return f"{label}: {error.message}"
  return label


class JobProgressTracker:
  """Write advisory progress notes for one processing job.

  Every method returns whether the store accepted the note; False means the
  job is no longer processing and the caller should stop working on it.
  """

  def __init__(self, *, job_id: str, jobs_repo: JobsRepository, max_attempts: int) -> None:
    self._job_id = job_id
    self._jobs_repo = jobs_repo
    self._max_attempts = max(max_attempts, 1)

  def _percentage(self, attempt: int, *, offset: float = 0.0) -> float:
    # Spread 10..90 across the attempt budget; the last 10% is the terminal write.
    share = 80.0 / self._max_attempts
    return round(min(10.0 + share * (attempt - 1) + share * offset, 90.0), 2)

  async def _write(self, progress: JobProgress, *, attempt: int | None = None) -> bool:
    return await self._jobs_repo.update_progress(self._job_id, progress, attempt=attempt, logs=[progress.message])

  async def attempt_started(self, attempt: int) -> bool:
    """Record that provider attempt `attempt` is starting."""
    message = f"attempt {attempt}/{self._max_attempts}: calling provider"
    return await self._write(JobProgress(stage="generating", message=message, percentage=self._percentage(attempt)), attempt=attempt)

  async def validating(self, attempt: int) -> bool:
    message = f"attempt {attempt}/{self._max_attempts}: validating response"
    return await self._write(JobProgress(stage="validating", message=message, percentage=self._percentage(attempt, offset=0.5)))

  async def retrying(self, next_attempt: int, error: JobError) -> bool:
    """Record why the previous attempt was rejected before backing off."""
    message = f"retry {next_attempt}/{self._max_attempts}: {describe_retry_reason(error)}"
    return await self._write(JobProgress(stage="retrying", message=message, percentage=self._percentage(next_attempt)))
