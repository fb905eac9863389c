"""Shared fixtures for the FocusFlow jobs test suite."""

from __future__ import annotations

import asyncio
import copy
import os
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

# Required settings must exist before focusflow.main is imported.
os.environ.setdefault("FOCUSFLOW_ALLOWED_ORIGINS", "http://localhost:3000")
os.environ.setdefault("FOCUSFLOW_JOBS_AUTO_PROCESS", "0")

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402

from focusflow.ai.providers.base import AIModel  # noqa: E402
from focusflow.core.database import build_session_factory, create_tables  # noqa: E402
from focusflow.jobs.stats import JobStatsTracker  # noqa: E402
from focusflow.storage.memory_jobs_repo import InMemoryJobsRepository  # noqa: E402
from focusflow.storage.sql_jobs_repo import SqlJobsRepository  # noqa: E402

SUBTASKS = [
  {"id": "s1", "title": "Learn hiragana", "text": "Memorize the 46 basic hiragana.", "aiEstimatedDuration": 120, "difficulty": "easy", "order": 1, "completed": False},
  {"id": "s2", "title": "Core phrases", "text": "Practice greetings and self introductions.", "aiEstimatedDuration": 90, "difficulty": "medium", "order": 2, "completed": False},
  {"id": "s3", "title": "Shadowing", "text": "Shadow a short podcast episode daily.", "aiEstimatedDuration": 45.5, "difficulty": "hard", "order": 3, "completed": False},
]

SUBTASKS_PAYLOAD: dict[str, Any] = {"subtasks": SUBTASKS}

LEARNING_PLAN_PAYLOAD: dict[str, Any] = {
  "personalizationQuestions": [],
  "learningPlan": {"achievableGoal": "Hold a five minute conversation in Japanese", "recommendedTools": ["Anki", "NHK Easy"], "checkpoints": ["Read all kana", "Introduce yourself"], "estimatedTimeToCompletion": 40},
  "subtasks": SUBTASKS,
}

PERSONALIZATION_PAYLOAD: dict[str, Any] = {
  "questions": [{"id": "q1", "question": "Why do you want to learn Japanese?", "type": "text", "required": True}],
  "isSufficient": False,
  "initialInsight": "Motivation is unclear.",
}


class FakeClock:
  """Manually advanced UTC clock."""

  def __init__(self, start: datetime | None = None) -> None:
    self.now = start or datetime(2026, 1, 5, 9, 0, tzinfo=UTC)

  def __call__(self) -> datetime:
    return self.now

  def advance(self, seconds: float) -> None:
    self.now = self.now + timedelta(seconds=seconds)


class ScriptedModel(AIModel):
  """Return (or raise) scripted responses in order, one per generate call."""

  def __init__(self, responses: Sequence[str | Exception], *, delay: float = 0.0, name: str = "scripted") -> None:
    self.name = name
    self._responses = list(responses)
    self._delay = delay
    self.calls: list[str] = []
    self.in_flight = 0
    self.max_in_flight = 0

  async def generate(self, prompt: str, schema: Any) -> str:
    self.calls.append(prompt)
    self.in_flight += 1
    self.max_in_flight = max(self.max_in_flight, self.in_flight)
    try:
      if self._delay:
        await asyncio.sleep(self._delay)
      # The last response repeats once the script runs out.
      response = self._responses[min(len(self.calls), len(self._responses)) - 1]
      if isinstance(response, Exception):
        raise response
      return response
    finally:
      self.in_flight -= 1


class RecordingSleep:
  """Stand-in for asyncio.sleep that records backoff delays without waiting."""

  def __init__(self) -> None:
    self.delays: list[float] = []

  async def __call__(self, delay: float) -> None:
    self.delays.append(delay)


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
  return FakeClock()


@pytest.fixture
def memory_repo(clock: FakeClock) -> InMemoryJobsRepository:
  return InMemoryJobsRepository(clock=clock)


@pytest.fixture
def stats() -> JobStatsTracker:
  return JobStatsTracker()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
  return RecordingSleep()


@pytest.fixture
def subtasks_payload() -> dict[str, Any]:
  return copy.deepcopy(SUBTASKS_PAYLOAD)


@pytest.fixture
def learning_plan_payload() -> dict[str, Any]:
  return copy.deepcopy(LEARNING_PLAN_PAYLOAD)


@pytest.fixture
def personalization_payload() -> dict[str, Any]:
  return copy.deepcopy(PERSONALIZATION_PAYLOAD)


@pytest.fixture
def scripted_model():
  """Factory for scripted provider fakes."""
  return ScriptedModel


@pytest.fixture(params=["memory", "sql"])
async def repo(request, clock: FakeClock, tmp_path):
  """Each job store implementation in turn; the SQL one runs on a SQLite file."""
  if request.param == "memory":
    yield InMemoryJobsRepository(clock=clock)
    return

  engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'jobs.db'}")
  await create_tables(engine)
  try:
    yield SqlJobsRepository(build_session_factory(engine), clock=clock)
  finally:
    await engine.dispose()
