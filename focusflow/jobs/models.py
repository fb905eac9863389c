"""Domain models for asynchronous AI generation jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

MAX_TRACKED_LOGS = 100


class JobKind(str, Enum):
  """Closed set of generation tasks a job can run."""

  PERSONALIZATION = "personalization"
  LEARNING_PLAN = "learning_plan"
  SUBTASK_GENERATION = "subtask_generation"


class JobStatus(str, Enum):
  """Lifecycle states; a job only ever moves forward through them."""

  PENDING = "pending"
  PROCESSING = "processing"
  COMPLETED = "completed"
  FAILED = "failed"

  @property
  def is_terminal(self) -> bool:
    return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


class ErrorKind(str, Enum):
  """Stable failure classifications surfaced on failed jobs."""

  INVALID_INPUT = "invalid_input"
  TRUNCATED = "truncated"
  SCHEMA_MISMATCH = "schema_mismatch"
  UNPARSEABLE = "unparseable"
  PROVIDER_ERROR = "provider_error"
  TIMEOUT = "timeout"
  CANCELED = "canceled"


@dataclass(frozen=True)
class JobError:
  """Terminal error classification plus a human-readable message."""

  kind: ErrorKind
  message: str

  def to_dict(self) -> dict[str, str]:
    return {"kind": self.kind.value, "message": self.message}

  @classmethod
  def from_dict(cls, data: dict[str, Any]) -> JobError:
    return cls(kind=ErrorKind(data["kind"]), message=str(data.get("message", "")))


@dataclass(frozen=True)
class JobProgress:
  """Advisory progress indicator; never used for correctness decisions."""

  stage: str
  message: str
  percentage: float = 0.0

  def to_dict(self) -> dict[str, Any]:
    return {"stage": self.stage, "message": self.message, "percentage": self.percentage}

  @classmethod
  def from_dict(cls, data: dict[str, Any]) -> JobProgress:
    return cls(stage=str(data.get("stage", "")), message=str(data.get("message", "")), percentage=float(data.get("percentage", 0.0)))


QUEUED_PROGRESS = JobProgress(stage="queued", message="Job created, waiting for a worker.", percentage=0.0)
CLAIMED_PROGRESS = JobProgress(stage="processing", message="Worker picked up the job.", percentage=10.0)


@dataclass
class JobRecord:
  """Represents a background generation job."""

  job_id: str
  job_kind: JobKind
  params: dict[str, Any]
  status: JobStatus
  created_at: datetime
  progress: JobProgress = QUEUED_PROGRESS
  logs: list[str] = field(default_factory=list)
  result: dict[str, Any] | None = None
  error: JobError | None = None
  started_at: datetime | None = None
  completed_at: datetime | None = None
  attempt: int = 0
  timeout_seconds: float | None = None

  def running_time_ms(self, now: datetime) -> int:
    """Return elapsed processing time; frozen once the job is terminal."""

    if self.started_at is None:
      return 0
    end = self.completed_at if self.completed_at is not None else now
    return max(int((end - self.started_at).total_seconds() * 1000), 0)


def budget_exceeded_error(budget_seconds: float) -> JobError:
  """Timeout classification used by both the worker and the overdue sweep."""
  return JobError(ErrorKind.TIMEOUT, f"job exceeded its {budget_seconds:g}s execution budget")
