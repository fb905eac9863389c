from __future__ import annotations

from urllib.parse import urlparse

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from focusflow.config import Settings


class Base(DeclarativeBase):
  pass


def database_url(dsn: str) -> str:
  """Point plain Postgres DSNs at the asyncpg driver."""
  if dsn.startswith("postgresql://"):
    return dsn.replace("postgresql://", "postgresql+asyncpg://", 1)
  if dsn.startswith("postgres://"):
    return dsn.replace("postgres://", "postgresql+asyncpg://", 1)
  return dsn


def build_engine(settings: Settings) -> AsyncEngine:
  if not settings.pg_dsn:
    raise RuntimeError("Database connection is not configured (FOCUSFLOW_PG_DSN is missing).")
  url = database_url(settings.pg_dsn)
  connect_args = {"timeout": settings.pg_connect_timeout} if url.startswith("postgresql+asyncpg://") else {}
  return create_async_engine(url, echo=settings.debug, connect_args=connect_args)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
  return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


async def create_tables(engine: AsyncEngine) -> None:
  """Create missing tables for all registered models."""
  # Import for side effects so the jobs table is registered on Base.metadata.
  import focusflow.schema.jobs  # noqa: F401

  async with engine.begin() as connection:
    await connection.run_sync(Base.metadata.create_all)


def redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"

  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"

  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"
