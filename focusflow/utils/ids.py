"""Identifier utilities."""

from __future__ import annotations

import uuid


def generate_job_id() -> str:
  """Return a new job identifier."""
  return str(uuid.uuid4())


def generate_request_id() -> str:
  """Return a short identifier used to correlate request logs."""
  return uuid.uuid4().hex[:12]
