"""Time helpers."""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
  return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
  """Attach UTC to naive datetimes read back from stores that drop the offset."""
  if value is None:
    return None
  if value.tzinfo is None:
    return value.replace(tzinfo=UTC)
  return value.astimezone(UTC)
