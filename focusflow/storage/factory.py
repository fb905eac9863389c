"""Select and construct the configured job store."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from focusflow.config import Settings
from focusflow.core.database import build_engine, build_session_factory, create_tables, redact_dsn
from focusflow.storage.jobs_repo import JobsRepository
from focusflow.storage.memory_jobs_repo import InMemoryJobsRepository
from focusflow.storage.sql_jobs_repo import SqlJobsRepository

logger = logging.getLogger(__name__)


async def build_jobs_repository(settings: Settings) -> tuple[JobsRepository, AsyncEngine | None]:
  """Return the job store and, for SQL stores, the engine the caller must dispose."""
  if settings.jobs_store == "memory":
    logger.info("Using in-memory job store; jobs do not survive a restart.")
    return InMemoryJobsRepository(), None

  engine = build_engine(settings)
  await create_tables(engine)
  logger.info("Using SQL job store at %s", redact_dsn(settings.pg_dsn))
  return SqlJobsRepository(build_session_factory(engine)), engine
