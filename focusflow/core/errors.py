"""Domain exceptions raised by the job queue facade."""

from __future__ import annotations

from typing import Any


class JobQueueError(Exception):
  """Base class for job queue failures surfaced to callers."""


class InvalidJobInputError(JobQueueError):
  """Raised when a job request fails validation; nothing is created."""

  def __init__(self, message: str, *, errors: list[dict[str, Any]] | None = None) -> None:
    super().__init__(message)
    self.message = message
    self.errors = errors or []


class JobNotFoundError(JobQueueError):
  """Raised when a job id is unknown or its record was evicted."""

  def __init__(self, job_id: str) -> None:
    super().__init__(f"Job '{job_id}' was not found.")
    self.job_id = job_id


class JobConflictError(JobQueueError):
  """Raised when a job is not in a state that allows the requested action."""

  def __init__(self, job_id: str, message: str) -> None:
    super().__init__(message)
    self.job_id = job_id
    self.message = message
