"""Unit tests for job params, prompt builders and the job kind catalog."""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from focusflow.ai.prompts import build_learning_plan_prompt, build_personalization_prompt, build_subtask_prompt
from focusflow.jobs.catalog import JOB_CATALOG, get_kind_spec
from focusflow.jobs.models import JobKind
from focusflow.schema.params import LearningPlanParams, PersonalizationParams, SubtaskGenerationParams
from focusflow.schema.plans import LearningPlanResult, PersonalizationResult, SubtaskGenerationResult


def test_params_accept_camel_case_and_defaults() -> None:
  params = LearningPlanParams.model_validate({"title": "  Learn Japanese ", "clarificationResponses": {"q1": "travel", "q2": 3}, "currentProficiency": "advanced", "unknown": "ignored"})
  assert params.title == "Learn Japanese"
  assert params.language == "zh"
  assert params.task_type == "skill_learning"
  assert params.current_proficiency == "advanced"
  assert params.target_proficiency == "intermediate"
  assert params.clarification_responses == {"q1": "travel", "q2": 3}


@pytest.mark.parametrize("payload", [{}, {"title": ""}, {"title": "   "}, {"title": 42}, {"title": "x" * 201}, {"title": "ok", "language": "fr"}])
def test_invalid_params_are_rejected(payload) -> None:
  with pytest.raises(ValidationError):
    PersonalizationParams.model_validate(payload)


def test_due_date_accepts_iso_timestamps() -> None:
  params = SubtaskGenerationParams.model_validate({"title": "Exam prep", "dueDate": "2026-03-01T23:59:59.000Z"})
  assert params.due_date == date(2026, 3, 1)


def test_personalization_prompt_mentions_title_and_language() -> None:
  prompt = build_personalization_prompt(PersonalizationParams(title="Learn Japanese", description="For a trip", language="zh"))
  assert '"Learn Japanese"' in prompt
  assert '"For a trip"' in prompt
  assert "Traditional Chinese" in prompt


def test_subtask_prompt_includes_time_context() -> None:
  params = SubtaskGenerationParams(title="Exam prep", language="en", due_date=date(2026, 1, 15))
  prompt = build_subtask_prompt(params, today=date(2026, 1, 10))
  assert "Available time: 5 days." in prompt
  assert "Write all content in English." in prompt
  assert "No additional personal context." in prompt

  overdue = build_subtask_prompt(params, today=date(2026, 1, 20))
  assert "Urgent" in overdue
  assert "No specific deadline." in build_subtask_prompt(SubtaskGenerationParams(title="Exam prep"), today=date(2026, 1, 10))


def test_learning_plan_prompt_lists_clarification_answers() -> None:
  params = LearningPlanParams(title="Learn Japanese", clarification_responses={"motivation": "travel", "hours_per_week": 5})
  prompt = build_learning_plan_prompt(params)
  assert "- motivation: travel" in prompt
  assert "- hours_per_week: 5" in prompt
  assert "Current level: beginner" in prompt


def test_learning_plan_without_answers_still_asks_for_full_plan() -> None:
  params = LearningPlanParams.model_validate({"title": "Learn Japanese"})
  assert params.clarification_responses == {}

  prompt = build_learning_plan_prompt(params)
  assert "Create a complete learning plan" in prompt
  assert "No additional personal context." in prompt
  # A plan-less result does not satisfy the learning_plan result model.
  with pytest.raises(ValidationError):
    LearningPlanResult.model_validate({"personalizationQuestions": [], "learningPlan": None, "subtasks": []})


@pytest.mark.parametrize(
  ("kind", "result_model", "estimate"),
  [(JobKind.PERSONALIZATION, PersonalizationResult, 15_000), (JobKind.SUBTASK_GENERATION, SubtaskGenerationResult, 30_000), (JobKind.LEARNING_PLAN, LearningPlanResult, 60_000)],
)
def test_catalog_covers_every_kind(kind, result_model, estimate) -> None:
  spec = get_kind_spec(kind)
  assert spec.kind == kind
  assert spec.result_model is result_model
  assert spec.estimated_duration_ms == estimate
  assert spec.provider_schema["type"] == "OBJECT"
  assert spec.build_prompt(spec.parse_params({"title": "Learn Japanese"}))
  assert set(JOB_CATALOG) == set(JobKind)
