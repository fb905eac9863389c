from __future__ import annotations

import pytest

from focusflow.jobs.models import ErrorKind, JobError, JobKind, JobStatus
from focusflow.jobs.progress import JobProgressTracker, describe_retry_reason
from focusflow.jobs.stats import JobStatsTracker


@pytest.mark.anyio
async def test_job_progress_tracker_appends_attempt_notes(memory_repo) -> None:
  job_id = await memory_repo.insert(JobKind.PERSONALIZATION, {"title": "Learn Japanese"})
  await memory_repo.claim_next_pending()
  tracker = JobProgressTracker(job_id=job_id, jobs_repo=memory_repo, max_attempts=2)

  assert await tracker.attempt_started(1) is True
  assert await tracker.validating(1) is True
  assert await tracker.retrying(2, JobError(ErrorKind.SCHEMA_MISMATCH, "bad")) is True
  assert await tracker.attempt_started(2) is True

  record = await memory_repo.get(job_id)
  assert record.attempt == 2
  assert record.progress.stage == "generating"
  assert record.progress.percentage == 50.0
  assert record.logs[1:] == [
    "attempt 1/2: calling provider",
    "attempt 1/2: validating response",
    "retry 2/2: response did not match the schema",
    "attempt 2/2: calling provider",
  ]


@pytest.mark.anyio
async def test_job_progress_tracker_reports_lost_jobs(memory_repo) -> None:
  job_id = await memory_repo.insert(JobKind.PERSONALIZATION, {"title": "Learn Japanese"})
  tracker = JobProgressTracker(job_id=job_id, jobs_repo=memory_repo, max_attempts=3)
  # Still pending, so there is no processing job to annotate.
  assert await tracker.attempt_started(1) is False


def test_describe_retry_reason() -> None:
  assert describe_retry_reason(JobError(ErrorKind.TRUNCATED, "cut")) == "response truncated"
  assert describe_retry_reason(JobError(ErrorKind.PROVIDER_ERROR, "429 RESOURCE_EXHAUSTED")) == "provider error: 429 RESOURCE_EXHAUSTED"


def test_stats_tracker_aggregates_running_times() -> None:
  tracker = JobStatsTracker()
  for _ in range(3):
    tracker.record_created()
  tracker.record_terminal(JobStatus.COMPLETED, 1000)
  tracker.record_terminal(JobStatus.FAILED, 3000)
  # Canceled jobs never ran and are excluded from the averages.
  tracker.record_terminal(JobStatus.FAILED, None)

  snapshot = tracker.snapshot({JobStatus.PENDING: 0, JobStatus.FAILED: 2, JobStatus.COMPLETED: 1}, active_workers=0)
  assert snapshot.total_created == 3
  assert snapshot.total_processed == 3
  assert snapshot.total_completed == 1
  assert snapshot.total_failed == 2
  assert snapshot.average_running_time_ms == 2000.0
  assert snapshot.longest_running_time_ms == 3000
  assert snapshot.processing == 0
  assert snapshot.failed == 2


def test_stats_tracker_rejects_non_terminal_status() -> None:
  with pytest.raises(ValueError):
    JobStatsTracker().record_terminal(JobStatus.PROCESSING, 10)


def test_empty_stats_snapshot() -> None:
  snapshot = JobStatsTracker().snapshot({}, active_workers=2)
  assert snapshot.average_running_time_ms == 0.0
  assert snapshot.pending == 0
  assert snapshot.active_workers == 2
