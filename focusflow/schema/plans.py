"""Pydantic models for AI generation results.

Validation is strict: numbers must be JSON numbers and booleans must be JSON
booleans, so a provider answer with quoted values is a schema mismatch instead
of being silently coerced. Unknown fields are kept so richer model output is
not lost.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr, model_validator

Number = StrictInt | StrictFloat
TaskType = Literal["exam_preparation", "skill_learning", "project_completion", "general"]
Proficiency = Literal["beginner", "intermediate", "advanced"]


def to_camel(string: str) -> str:
  """Convert snake_case to camelCase so payloads match the mobile client."""
  parts = string.split("_")
  return parts[0] + "".join(part[:1].upper() + part[1:] for part in parts[1:])


class _ResultModel(BaseModel):
  model_config = ConfigDict(strict=True, extra="allow", populate_by_name=True, alias_generator=to_camel)


class PersonalizationQuestion(_ResultModel):
  id: StrictStr
  question: StrictStr
  type: Literal["text", "choice", "scale", "boolean"]
  required: StrictBool
  options: list[StrictStr] | None = None


class PersonalizationResult(_ResultModel):
  """Diagnostic questions asked before a plan is generated."""

  questions: list[PersonalizationQuestion]
  is_sufficient: StrictBool | None = None
  initial_insight: StrictStr | None = None
  auto_detected_task_type: TaskType | None = None
  inferred_current_proficiency: Proficiency | None = None

  @model_validator(mode="after")
  def _questions_or_sufficient(self) -> PersonalizationResult:
    # An empty list only makes sense when the model says it already knows enough.
    if not self.questions and self.is_sufficient is not True:
      raise ValueError("questions may only be empty when isSufficient is true")
    return self


class Subtask(_ResultModel):
  id: StrictStr
  title: StrictStr
  text: StrictStr
  ai_estimated_duration: Number
  difficulty: Literal["easy", "medium", "hard"]
  order: Number
  completed: StrictBool
  skills: list[StrictStr] | None = None
  recommended_resources: list[StrictStr] | None = None
  phase: Literal["knowledge", "practice", "application", "reflection", "output", "review"] | None = None


class SubtaskGenerationResult(_ResultModel):
  subtasks: list[Subtask] = Field(min_length=1)


class LearningPlan(_ResultModel):
  achievable_goal: StrictStr
  recommended_tools: list[StrictStr]
  checkpoints: list[StrictStr]
  estimated_time_to_completion: Number


class LearningPlanResult(_ResultModel):
  """Unified plan: follow-up questions, the plan itself and its subtasks."""

  personalization_questions: list[PersonalizationQuestion]
  learning_plan: LearningPlan
  subtasks: list[Subtask] = Field(min_length=1)
