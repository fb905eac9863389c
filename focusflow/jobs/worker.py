"""Bounded pool of asyncio workers that execute generation jobs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from focusflow.ai.errors import classify_provider_exception
from focusflow.ai.providers.base import AIModel
from focusflow.ai.validator import validate_response
from focusflow.config import Settings
from focusflow.jobs.catalog import get_kind_spec
from focusflow.jobs.models import ErrorKind, JobError, JobRecord, JobStatus, budget_exceeded_error
from focusflow.jobs.progress import JobProgressTracker
from focusflow.jobs.stats import JobStatsTracker
from focusflow.storage.jobs_repo import JobsRepository
from focusflow.utils.clock import utc_now

logger = logging.getLogger(__name__)

MAX_BACKOFF_SECONDS = 8.0


class JobWorkerPool:
  """Claims pending jobs and runs them with at most `concurrency` in flight.

  Each worker task loops: claim a job, execute it to a terminal write, repeat.
  When nothing is pending it waits for `notify()` or the idle poll interval.
  The claimed snapshot is only read; every state change goes through the
  store, whose guarded transitions decide which terminal write wins.
  """

  def __init__(
    self,
    *,
    jobs_repo: JobsRepository,
    model: AIModel,
    stats: JobStatsTracker,
    concurrency: int = 3,
    max_attempts: int = 3,
    default_timeout_seconds: float = 120.0,
    retry_backoff_seconds: float = 1.0,
    idle_poll_seconds: float = 1.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    clock: Callable[[], datetime] = utc_now,
  ) -> None:
    if concurrency < 1:
      raise ValueError("concurrency must be at least 1")
    if max_attempts < 1:
      raise ValueError("max_attempts must be at least 1")
    self._jobs_repo = jobs_repo
    self._model = model
    self._stats = stats
    self._concurrency = concurrency
    self._max_attempts = max_attempts
    self._default_timeout_seconds = default_timeout_seconds
    self._retry_backoff_seconds = retry_backoff_seconds
    self._idle_poll_seconds = idle_poll_seconds
    self._sleep = sleep
    self._clock = clock
    self._wake = asyncio.Event()
    self._tasks: list[asyncio.Task[None]] = []
    self._active = 0

  @classmethod
  def from_settings(cls, settings: Settings, *, jobs_repo: JobsRepository, model: AIModel, stats: JobStatsTracker) -> JobWorkerPool:
    return cls(
      jobs_repo=jobs_repo,
      model=model,
      stats=stats,
      concurrency=settings.jobs_max_concurrency,
      max_attempts=settings.jobs_max_attempts,
      default_timeout_seconds=settings.jobs_timeout_seconds,
      retry_backoff_seconds=settings.jobs_retry_backoff_seconds,
      idle_poll_seconds=settings.jobs_idle_poll_seconds,
    )

  @property
  def active_workers(self) -> int:
    """Number of jobs currently being executed."""
    return self._active

  @property
  def running(self) -> bool:
    return bool(self._tasks)

  def notify(self) -> None:
    """Wake idle workers because a job was inserted."""
    self._wake.set()

  def start(self) -> None:
    if self._tasks:
      return
    self._tasks = [asyncio.create_task(self._worker_loop(index), name=f"focusflow-worker-{index}") for index in range(self._concurrency)]
    logger.info("Job worker pool started with %d workers.", self._concurrency)

  async def stop(self) -> None:
    tasks, self._tasks = self._tasks, []
    for task in tasks:
      task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    if tasks:
      logger.info("Job worker pool stopped.")

  async def _worker_loop(self, index: int) -> None:
    while True:
      try:
        claimed = await self.run_once()
      except asyncio.CancelledError:
        raise
      except Exception:  # noqa: BLE001
        # Store outages must not kill the worker; back off to the idle poll.
        logger.error("Worker %d failed to claim a job", index, exc_info=True)
        claimed = False
      if not claimed:
        await self._wait_for_work()

  async def _wait_for_work(self) -> None:
    try:
      async with asyncio.timeout(self._idle_poll_seconds):
        await self._wake.wait()
    except TimeoutError:
      return
    self._wake.clear()

  async def run_once(self) -> bool:
    """Claim and execute one pending job; return False when none was pending."""
    record = await self._jobs_repo.claim_next_pending()
    if record is None:
      return False
    logger.info("Claimed job job_id=%s kind=%s", record.job_id, record.job_kind.value)
    await self.execute(record)
    return True

  async def execute(self, record: JobRecord) -> None:
    """Run a claimed job to a terminal write within its execution budget."""
    budget = record.timeout_seconds or self._default_timeout_seconds
    self._active += 1
    try:
      async with asyncio.timeout(budget):
        await self._run_attempts(record)
    except TimeoutError:
      logger.warning("Job timed out job_id=%s budget=%ss", record.job_id, budget)
      await self._finish_failed(record, budget_exceeded_error(budget))
    except asyncio.CancelledError:
      # The pool is stopping; a job left processing would never be picked up again.
      logger.warning("Worker stopped while executing job job_id=%s", record.job_id)
      await asyncio.shield(self._finish_failed(record, JobError(ErrorKind.CANCELED, "worker stopped before the job finished")))
      raise
    except Exception as exc:  # noqa: BLE001
      logger.error("Unexpected failure while executing job job_id=%s", record.job_id, exc_info=True)
      await self._finish_failed(record, JobError(ErrorKind.PROVIDER_ERROR, f"unexpected error: {type(exc).__name__}"))
    finally:
      self._active -= 1

  async def _run_attempts(self, record: JobRecord) -> None:
    spec = get_kind_spec(record.job_kind)
    try:
      params = spec.parse_params(record.params)
    except ValidationError as exc:
      await self._finish_failed(record, JobError(ErrorKind.INVALID_INPUT, f"params are invalid for {record.job_kind.value}: {exc.error_count()} errors"))
      return

    prompt = spec.build_prompt(params)
    tracker = JobProgressTracker(job_id=record.job_id, jobs_repo=self._jobs_repo, max_attempts=self._max_attempts)
    last_error = JobError(ErrorKind.PROVIDER_ERROR, "no attempt was made")

    for attempt in range(1, self._max_attempts + 1):
      if not await tracker.attempt_started(attempt):
        logger.warning("Job is no longer processing; abandoning job_id=%s", record.job_id)
        return

      try:
        raw = await self._model.generate(prompt, spec.provider_schema)
      except Exception as exc:  # noqa: BLE001
        error = classify_provider_exception(exc)
        last_error = JobError(ErrorKind.PROVIDER_ERROR, error.message)
        if not error.retryable:
          logger.warning("Permanent provider error job_id=%s attempt=%d status=%s", record.job_id, attempt, error.status_code)
          await self._finish_failed(record, last_error)
          return
      else:
        await tracker.validating(attempt)
        outcome = validate_response(raw, record.job_kind)
        if outcome.ok:
          if outcome.repaired:
            logger.info("Accepted repaired response job_id=%s attempt=%d", record.job_id, attempt)
          await self._finish_completed(record, outcome.payload or {})
          return
        last_error = JobError(outcome.reason or ErrorKind.UNPARSEABLE, outcome.message)

      logger.info("Attempt rejected job_id=%s attempt=%d/%d reason=%s", record.job_id, attempt, self._max_attempts, last_error.kind.value)
      if attempt < self._max_attempts:
        await tracker.retrying(attempt + 1, last_error)
        await self._sleep(self.backoff_delay(attempt))

    await self._finish_failed(record, last_error)

  def backoff_delay(self, attempt: int) -> float:
    """Delay before the attempt following `attempt`: base * 2^(attempt-1), capped."""
    return min(self._retry_backoff_seconds * (2 ** (attempt - 1)), MAX_BACKOFF_SECONDS)

  def _running_time_ms(self, record: JobRecord) -> int | None:
    if record.started_at is None:
      return None
    return max(int((self._clock() - record.started_at).total_seconds() * 1000), 0)

  async def _finish_completed(self, record: JobRecord, result: dict[str, Any]) -> None:
    if await self._jobs_repo.complete(record.job_id, result):
      self._stats.record_terminal(JobStatus.COMPLETED, self._running_time_ms(record))
      logger.info("Job completed job_id=%s kind=%s", record.job_id, record.job_kind.value)

  async def _finish_failed(self, record: JobRecord, error: JobError) -> None:
    if await self._jobs_repo.fail(record.job_id, error):
      self._stats.record_terminal(JobStatus.FAILED, self._running_time_ms(record))
      logger.warning("Job failed job_id=%s kind=%s error=%s", record.job_id, record.job_kind.value, error.kind.value)
