"""Cumulative job statistics for the stats endpoint."""

from __future__ import annotations

from dataclasses import dataclass

from focusflow.jobs.models import JobStatus


@dataclass(frozen=True)
class JobStats:
  """Advisory snapshot of queue activity."""

  pending: int
  processing: int
  completed: int
  failed: int
  total_created: int
  total_processed: int
  total_completed: int
  total_failed: int
  average_running_time_ms: float
  longest_running_time_ms: int
  active_workers: int


class JobStatsTracker:
  """Count lifecycle events in process.

  Counters only move when a store write actually won, so a stale
  completion that lost to a timeout is never counted twice.
  """

  def __init__(self) -> None:
    self._total_created = 0
    self._total_completed = 0
    self._total_failed = 0
    self._timed_jobs = 0
    self._total_running_ms = 0
    self._longest_running_ms = 0

  def record_created(self) -> None:
    self._total_created += 1

  def record_terminal(self, status: JobStatus, running_time_ms: int | None) -> None:
    """Count a job that reached `status`; jobs that never ran pass None."""
    if status == JobStatus.COMPLETED:
      self._total_completed += 1
    elif status == JobStatus.FAILED:
      self._total_failed += 1
    else:
      raise ValueError(f"{status.value} is not a terminal status")

    if running_time_ms is None:
      return
    self._timed_jobs += 1
    self._total_running_ms += running_time_ms
    self._longest_running_ms = max(self._longest_running_ms, running_time_ms)

  def snapshot(self, counts: dict[JobStatus, int], *, active_workers: int) -> JobStats:
    average = self._total_running_ms / self._timed_jobs if self._timed_jobs else 0.0
    return JobStats(
      pending=counts.get(JobStatus.PENDING, 0),
      processing=counts.get(JobStatus.PROCESSING, 0),
      completed=counts.get(JobStatus.COMPLETED, 0),
      failed=counts.get(JobStatus.FAILED, 0),
      total_created=self._total_created,
      total_processed=self._total_completed + self._total_failed,
      total_completed=self._total_completed,
      total_failed=self._total_failed,
      average_running_time_ms=round(average, 2),
      longest_running_time_ms=self._longest_running_ms,
      active_workers=active_workers,
    )
