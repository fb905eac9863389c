from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from focusflow.core.database import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Job(Base):
  __tablename__ = "focusflow_jobs"
  __table_args__ = (Index("ix_focusflow_jobs_status_created", "status", "created_at"),)

  job_id: Mapped[str] = mapped_column(String, primary_key=True)
  job_kind: Mapped[str] = mapped_column(String, nullable=False)
  params: Mapped[dict] = mapped_column(JSONType, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False)
  progress: Mapped[dict] = mapped_column(JSONType, nullable=False)
  logs: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
  result: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
  error: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
  attempt: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  timeout_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
  started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
