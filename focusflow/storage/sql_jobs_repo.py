"""SQL-backed job store using SQLAlchemy's async ORM.

State transitions are compare-and-set UPDATE statements filtered on the
expected source status; the affected row count tells the caller whether its
write won. This keeps the guards intact when several processes share one
database.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from focusflow.jobs.models import CLAIMED_PROGRESS, MAX_TRACKED_LOGS, QUEUED_PROGRESS, TERMINAL_STATUSES, JobError, JobKind, JobProgress, JobRecord, JobStatus, budget_exceeded_error
from focusflow.schema.jobs import Job
from focusflow.storage.jobs_repo import JobsRepository
from focusflow.utils.clock import as_utc, utc_now
from focusflow.utils.ids import generate_job_id

logger = logging.getLogger(__name__)

_TERMINAL_VALUES = [status.value for status in TERMINAL_STATUSES]


class SqlJobsRepository(JobsRepository):
  """Persist jobs to a relational database."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession], *, clock: Callable[[], datetime] = utc_now) -> None:
    self._session_factory = session_factory
    self._clock = clock

  async def insert(self, kind: JobKind, params: Mapping[str, Any], *, timeout_seconds: float | None = None) -> str:
    job_id = generate_job_id()
    async with self._session_factory() as session:
      session.add(
        Job(
          job_id=job_id,
          job_kind=kind.value,
          params=copy.deepcopy(dict(params)),
          status=JobStatus.PENDING.value,
          progress=QUEUED_PROGRESS.to_dict(),
          logs=[],
          attempt=0,
          timeout_seconds=timeout_seconds,
          created_at=self._clock(),
        )
      )
      await session.commit()
    return job_id

  async def claim_next_pending(self) -> JobRecord | None:
    # Another process may win the race for a candidate; move on to the next one.
    while True:
      async with self._session_factory() as session:
        stmt = select(Job.job_id).where(Job.status == JobStatus.PENDING.value).order_by(Job.created_at.asc()).limit(1).with_for_update(skip_locked=True)
        candidate = (await session.execute(stmt)).scalar_one_or_none()
        if candidate is None:
          return None

        claim = (
          update(Job)
          .where(Job.job_id == candidate, Job.status == JobStatus.PENDING.value)
          .values(status=JobStatus.PROCESSING.value, started_at=self._clock(), progress=CLAIMED_PROGRESS.to_dict(), logs=[CLAIMED_PROGRESS.message])
        )
        result = await session.execute(claim)
        await session.commit()
        if result.rowcount != 1:
          continue

        row = await session.get(Job, candidate)
        if row is None:
          continue
        return self._model_to_record(row)

  async def update_progress(self, job_id: str, progress: JobProgress, *, attempt: int | None = None, logs: list[str] | None = None) -> bool:
    async with self._session_factory() as session:
      current = (await session.execute(select(Job.logs).where(Job.job_id == job_id, Job.status == JobStatus.PROCESSING.value))).scalar_one_or_none()
      if current is None:
        return False

      values: dict[str, Any] = {"progress": progress.to_dict()}
      if attempt is not None:
        values["attempt"] = attempt
      if logs:
        values["logs"] = [*current, *logs][-MAX_TRACKED_LOGS:]
      result = await session.execute(update(Job).where(Job.job_id == job_id, Job.status == JobStatus.PROCESSING.value).values(**values))
      await session.commit()
      return result.rowcount == 1

  async def complete(self, job_id: str, result: dict[str, Any]) -> bool:
    async with self._session_factory() as session:
      stmt = update(Job).where(Job.job_id == job_id, Job.status == JobStatus.PROCESSING.value).values(status=JobStatus.COMPLETED.value, result=copy.deepcopy(result), completed_at=self._clock())
      outcome = await session.execute(stmt)
      await session.commit()
    if outcome.rowcount != 1:
      logger.warning("Ignoring stale complete job_id=%s", job_id)
      return False
    return True

  async def fail(self, job_id: str, error: JobError, *, pending_only: bool = False) -> bool:
    allowed = [JobStatus.PENDING.value] if pending_only else [JobStatus.PENDING.value, JobStatus.PROCESSING.value]
    async with self._session_factory() as session:
      stmt = (
        update(Job)
        .where(Job.job_id == job_id, Job.status.in_(allowed))
        .values(status=JobStatus.FAILED.value, error=error.to_dict(), completed_at=self._clock())
      )
      outcome = await session.execute(stmt)
      await session.commit()
    if outcome.rowcount != 1:
      logger.warning("Ignoring stale fail job_id=%s kind=%s", job_id, error.kind.value)
      return False
    return True

  async def fail_overdue(self, default_timeout_seconds: float) -> list[JobRecord]:
    # Budgets are per job, so the deadline is computed here rather than in SQL.
    now = self._clock()
    expired: list[JobRecord] = []
    async with self._session_factory() as session:
      rows = (await session.execute(select(Job.job_id, Job.started_at, Job.timeout_seconds).where(Job.status == JobStatus.PROCESSING.value))).all()
      for job_id, started_at, timeout_seconds in rows:
        started = as_utc(started_at)
        budget = timeout_seconds or default_timeout_seconds
        if started is None or started + timedelta(seconds=budget) > now:
          continue
        stmt = (
          update(Job)
          .where(Job.job_id == job_id, Job.status == JobStatus.PROCESSING.value)
          .values(status=JobStatus.FAILED.value, error=budget_exceeded_error(budget).to_dict(), completed_at=now)
        )
        outcome = await session.execute(stmt)
        await session.commit()
        if outcome.rowcount != 1:
          continue
        row = await session.get(Job, job_id, populate_existing=True)
        if row is not None:
          expired.append(self._model_to_record(row))
    return expired

  async def get(self, job_id: str) -> JobRecord | None:
    async with self._session_factory() as session:
      row = await session.get(Job, job_id)
      if row is None:
        return None
      return self._model_to_record(row)

  async def evict_older_than(self, seconds: float) -> int:
    cutoff = self._clock() - timedelta(seconds=seconds)
    async with self._session_factory() as session:
      outcome = await session.execute(delete(Job).where(Job.status.in_(_TERMINAL_VALUES), Job.completed_at.is_not(None), Job.completed_at <= cutoff))
      await session.commit()
    return int(outcome.rowcount or 0)

  async def count_by_status(self) -> dict[JobStatus, int]:
    counts = dict.fromkeys(JobStatus, 0)
    async with self._session_factory() as session:
      rows = (await session.execute(select(Job.status, func.count()).group_by(Job.status))).all()
    for status, count in rows:
      counts[JobStatus(status)] = int(count)
    return counts

  def _model_to_record(self, row: Job) -> JobRecord:
    return JobRecord(
      job_id=row.job_id,
      job_kind=JobKind(row.job_kind),
      params=copy.deepcopy(row.params),
      status=JobStatus(row.status),
      created_at=as_utc(row.created_at),
      progress=JobProgress.from_dict(row.progress or {}),
      logs=list(row.logs or []),
      result=copy.deepcopy(row.result) if row.result is not None else None,
      error=JobError.from_dict(row.error) if row.error is not None else None,
      started_at=as_utc(row.started_at),
      completed_at=as_utc(row.completed_at),
      attempt=int(row.attempt or 0),
      timeout_seconds=row.timeout_seconds,
    )
