"""Storage interface for background jobs."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from focusflow.jobs.models import JobError, JobKind, JobProgress, JobRecord, JobStatus


class JobsRepository(Protocol):
  """Repository contract for job persistence.

  Every state-changing call is a guarded transition: it only takes effect
  when the job is in the expected source status and reports whether it
  won. Callers never mutate records they read; `get` and
  `claim_next_pending` return snapshots.
  """

  async def insert(self, kind: JobKind, params: Mapping[str, Any], *, timeout_seconds: float | None = None) -> str:
    """Create a pending job and return its id."""

  async def claim_next_pending(self) -> JobRecord | None:
    """Move one pending job to processing and return its snapshot, or None when idle."""

  async def update_progress(self, job_id: str, progress: JobProgress, *, attempt: int | None = None, logs: list[str] | None = None) -> bool:
    """Record advisory progress (and append log lines) for a processing job."""

  async def complete(self, job_id: str, result: dict[str, Any]) -> bool:
    """Transition processing -> completed with a result."""

  async def fail(self, job_id: str, error: JobError, *, pending_only: bool = False) -> bool:
    """Transition processing or pending -> failed with an error; `pending_only` refuses jobs already claimed."""

  async def fail_overdue(self, default_timeout_seconds: float) -> list[JobRecord]:
    """Fail processing jobs whose execution budget has run out and return their snapshots.

    The budget is the job's own `timeout_seconds`, or `default_timeout_seconds`
    when it has none, counted from `started_at`. This finalizes jobs whose
    worker died (crash, restart) and would otherwise stay processing forever.
    """

  async def get(self, job_id: str) -> JobRecord | None:
    """Fetch a snapshot of a job by identifier."""

  async def evict_older_than(self, seconds: float) -> int:
    """Delete terminal jobs finished at least `seconds` ago; return how many were removed."""

  async def count_by_status(self) -> dict[JobStatus, int]:
    """Return the number of retained jobs per status."""
