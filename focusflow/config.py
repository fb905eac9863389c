"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Literal

JobsStoreBackend = Literal["memory", "sql"]

_ENV_FILE = Path(__file__).resolve().parents[1] / ".env"


def _load_env_file(path: Path) -> None:
  """Seed os.environ from a repo-root .env file without overriding real env vars."""

  if not path.is_file():
    return

  for raw_line in path.read_text(encoding="utf-8").splitlines():
    line = raw_line.strip().removeprefix("export ").strip()
    if not line or line.startswith("#") or "=" not in line:
      continue
    key, value = (part.strip() for part in line.split("=", 1))
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
      value = value[1:-1]
    if key:
      os.environ.setdefault(key, value)


_load_env_file(_ENV_FILE)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the FocusFlow jobs service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  gemini_api_key: str | None
  gemini_model: str
  gemini_request_timeout_seconds: float
  gemini_temperature: float
  jobs_store: JobsStoreBackend
  pg_dsn: str | None
  pg_connect_timeout: int
  jobs_max_concurrency: int
  jobs_max_attempts: int
  jobs_timeout_seconds: float
  jobs_max_timeout_seconds: float
  jobs_retry_backoff_seconds: float
  jobs_idle_poll_seconds: float
  jobs_retention_seconds: float
  jobs_cleanup_interval_seconds: float
  jobs_auto_process: bool


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("FOCUSFLOW_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("FOCUSFLOW_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("FOCUSFLOW_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None, *, default: bool = False) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None or raw.strip() == "":
    return default

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _positive_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


def _non_negative_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value < 0:
    raise ValueError(f"{name} must be zero or a positive number.")
  return value


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("FOCUSFLOW_ENV", "development").lower()

  log_backup_count = int(os.getenv("FOCUSFLOW_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("FOCUSFLOW_LOG_BACKUP_COUNT must be zero or a positive integer.")

  jobs_store = (os.getenv("FOCUSFLOW_JOBS_STORE") or "memory").strip().lower()
  if jobs_store not in {"memory", "sql"}:
    raise ValueError("FOCUSFLOW_JOBS_STORE must be 'memory' or 'sql'.")

  # Support fallback to DATABASE_URL for hosted Postgres add-ons.
  pg_dsn = _optional_str(os.getenv("FOCUSFLOW_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))
  if jobs_store == "sql" and not pg_dsn:
    raise ValueError("FOCUSFLOW_PG_DSN must be set when FOCUSFLOW_JOBS_STORE=sql.")

  jobs_timeout_seconds = _positive_float("FOCUSFLOW_JOBS_TIMEOUT_SECONDS", "120")
  jobs_max_timeout_seconds = _positive_float("FOCUSFLOW_JOBS_MAX_TIMEOUT_SECONDS", "600")
  if jobs_max_timeout_seconds < jobs_timeout_seconds:
    raise ValueError("FOCUSFLOW_JOBS_MAX_TIMEOUT_SECONDS must not be lower than FOCUSFLOW_JOBS_TIMEOUT_SECONDS.")

  temperature = float(os.getenv("FOCUSFLOW_GEMINI_TEMPERATURE", "0.3"))
  if not 0.0 <= temperature <= 2.0:
    raise ValueError("FOCUSFLOW_GEMINI_TEMPERATURE must be between 0 and 2.")

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("FOCUSFLOW_ALLOWED_ORIGINS")),
    debug=_parse_bool(os.getenv("FOCUSFLOW_DEBUG")),
    log_max_bytes=_positive_int("FOCUSFLOW_LOG_MAX_BYTES", "5242880"),  # 5MB default
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("FOCUSFLOW_LOG_HTTP_4XX")),
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")),
    gemini_model=(os.getenv("FOCUSFLOW_GEMINI_MODEL") or "gemini-2.5-flash").strip(),
    gemini_request_timeout_seconds=_positive_float("FOCUSFLOW_GEMINI_REQUEST_TIMEOUT_SECONDS", "60"),
    gemini_temperature=temperature,
    jobs_store=jobs_store,  # type: ignore[arg-type]
    pg_dsn=pg_dsn,
    pg_connect_timeout=_positive_int("FOCUSFLOW_PG_CONNECT_TIMEOUT", "5"),
    jobs_max_concurrency=_positive_int("FOCUSFLOW_JOBS_MAX_CONCURRENCY", "3"),
    jobs_max_attempts=_positive_int("FOCUSFLOW_JOBS_MAX_ATTEMPTS", "3"),
    jobs_timeout_seconds=jobs_timeout_seconds,
    jobs_max_timeout_seconds=jobs_max_timeout_seconds,
    jobs_retry_backoff_seconds=_non_negative_float("FOCUSFLOW_JOBS_RETRY_BACKOFF_SECONDS", "1.0"),
    jobs_idle_poll_seconds=_positive_float("FOCUSFLOW_JOBS_IDLE_POLL_SECONDS", "1.0"),
    jobs_retention_seconds=_non_negative_float("FOCUSFLOW_JOBS_RETENTION_SECONDS", "1800"),
    jobs_cleanup_interval_seconds=_positive_float("FOCUSFLOW_JOBS_CLEANUP_INTERVAL_SECONDS", "300"),
    jobs_auto_process=_parse_bool(os.getenv("FOCUSFLOW_JOBS_AUTO_PROCESS"), default=True),
  )
