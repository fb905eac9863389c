import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from focusflow.ai.providers import build_gemini_model
from focusflow.config import get_settings
from focusflow.core.logging import _initialize_logging
from focusflow.jobs.cleanup import JobCleanupLoop
from focusflow.jobs.stats import JobStatsTracker
from focusflow.jobs.worker import JobWorkerPool
from focusflow.services.jobs import JobQueueService
from focusflow.storage.factory import build_jobs_repository


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Wire the job store, worker pool and cleanup loop for the app's lifetime."""
  settings = get_settings()
  logger = logging.getLogger("focusflow.core.lifespan")

  _initialize_logging(settings)
  logger.info("Starting FocusFlow jobs service environment=%s store=%s", settings.environment, settings.jobs_store)

  # A store that cannot be reached is fatal; jobs would be silently lost otherwise.
  jobs_repo, engine = await build_jobs_repository(settings)

  if not settings.gemini_api_key:
    logger.warning("GEMINI_API_KEY is not set; generation jobs will fail with provider_error.")
  model = build_gemini_model(model=settings.gemini_model, api_key=settings.gemini_api_key, request_timeout_seconds=settings.gemini_request_timeout_seconds, temperature=settings.gemini_temperature)

  stats = JobStatsTracker()
  pool = JobWorkerPool.from_settings(settings, jobs_repo=jobs_repo, model=model, stats=stats)
  cleanup = JobCleanupLoop(jobs_repo=jobs_repo, retention_seconds=settings.jobs_retention_seconds, interval_seconds=settings.jobs_cleanup_interval_seconds, default_timeout_seconds=settings.jobs_timeout_seconds, stats=stats)
  app.state.job_service = JobQueueService(jobs_repo=jobs_repo, stats=stats, pool=pool, max_timeout_seconds=settings.jobs_max_timeout_seconds)
  app.state.job_pool = pool
  app.state.job_cleanup = cleanup

  # Jobs left processing by a previous process have no worker; fail the overdue ones now.
  expired = await cleanup.expire_overdue()
  if expired:
    logger.warning("Failed %d jobs left processing past their budget by a previous run.", expired)

  if settings.jobs_auto_process:
    pool.start()
    cleanup.start()
    logger.info("Job workers started concurrency=%s", settings.jobs_max_concurrency)
  else:
    logger.info("Automatic job processing is disabled; jobs stay pending.")

  try:
    yield
  finally:
    await pool.stop()
    await cleanup.stop()
    if engine is not None:
      await engine.dispose()
    logger.info("FocusFlow jobs service stopped.")
