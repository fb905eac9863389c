from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from focusflow.jobs.models import ErrorKind, JobStatus
from focusflow.jobs.stats import JobStats
from focusflow.schema.plans import to_camel
from focusflow.services.jobs import JobStatusView


class _ApiModel(BaseModel):
  model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class JobCreateRequest(_ApiModel):
  """Request payload for job creation."""

  model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="forbid")

  type: StrictStr = Field(description="Job kind: personalization, learning_plan or subtask_generation.", examples=["learning_plan"])
  params: dict[str, Any] = Field(default_factory=dict, description="Kind-specific parameters; title is always required.", examples=[{"title": "Learn conversational Japanese", "language": "en"}])
  timeout_seconds: float | None = Field(default=None, description="Optional execution budget overriding the configured default.")


class JobCreateResponse(_ApiModel):
  """Response payload for job creation."""

  job_id: StrictStr
  status: JobStatus


class JobProgressModel(_ApiModel):
  stage: str
  message: str
  percentage: float


class JobErrorModel(_ApiModel):
  kind: ErrorKind
  message: str


class JobStatusResponse(_ApiModel):
  """Status payload for a background job."""

  job_id: StrictStr
  type: str
  status: JobStatus
  progress: JobProgressModel
  logs: list[str] = Field(default_factory=list)
  result: dict[str, Any] | None = None
  error: JobErrorModel | None = None
  attempt: int
  created_at: datetime
  started_at: datetime | None = None
  completed_at: datetime | None = None
  running_time: int = Field(description="Elapsed processing time in milliseconds.")
  estimated_duration: int = Field(description="Typical processing time for this job type in milliseconds.")

  @classmethod
  def from_view(cls, view: JobStatusView) -> JobStatusResponse:
    return cls(
      job_id=view.job_id,
      type=view.kind.value,
      status=view.status,
      progress=JobProgressModel(stage=view.progress.stage, message=view.progress.message, percentage=view.progress.percentage),
      logs=view.logs,
      result=view.result,
      error=JobErrorModel(kind=view.error.kind, message=view.error.message) if view.error is not None else None,
      attempt=view.attempt,
      created_at=view.created_at,
      started_at=view.started_at,
      completed_at=view.completed_at,
      running_time=view.running_time_ms,
      estimated_duration=view.estimated_duration_ms,
    )


class JobStatsResponse(_ApiModel):
  """Aggregate queue counters; advisory only."""

  pending: int
  processing: int
  completed: int
  failed: int
  total_created: int
  total_processed: int
  total_completed: int
  total_failed: int
  average_running_time: float = Field(description="Mean processing time of finished jobs in milliseconds.")
  longest_running_time: int = Field(description="Longest processing time seen in milliseconds.")
  active_workers: int

  @classmethod
  def from_stats(cls, stats: JobStats) -> JobStatsResponse:
    return cls(
      pending=stats.pending,
      processing=stats.processing,
      completed=stats.completed,
      failed=stats.failed,
      total_created=stats.total_created,
      total_processed=stats.total_processed,
      total_completed=stats.total_completed,
      total_failed=stats.total_failed,
      average_running_time=stats.average_running_time_ms,
      longest_running_time=stats.longest_running_time_ms,
      active_workers=stats.active_workers,
    )
