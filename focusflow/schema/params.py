"""Request parameter models for each job kind."""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from focusflow.schema.plans import Proficiency, TaskType, to_camel

Language = Literal["zh", "en"]


class BaseJobParams(BaseModel):
  model_config = ConfigDict(populate_by_name=True, extra="ignore", alias_generator=to_camel)

  title: StrictStr = Field(min_length=1, max_length=200, description="Task title the content is generated for.", examples=["Learn conversational Japanese"])
  description: StrictStr = Field(default="", max_length=2000, description="Optional free-text task description.")
  language: Language = Field(default="zh", description="Output language; zh produces Traditional Chinese.")

  @field_validator("title")
  @classmethod
  def _title_not_blank(cls, value: str) -> str:
    stripped = value.strip()
    if not stripped:
      raise ValueError("title must not be blank")
    return stripped


class PersonalizationParams(BaseJobParams):
  """Inputs for the diagnostic question round."""


class PlanningParams(BaseJobParams):
  """Inputs shared by plan and subtask generation."""

  clarification_responses: dict[str, str | int | float | bool] = Field(default_factory=dict, description="Answers to earlier personalization questions, keyed by question id.")
  task_type: TaskType = "skill_learning"
  current_proficiency: Proficiency = "beginner"
  target_proficiency: Proficiency = "intermediate"


class SubtaskGenerationParams(PlanningParams):
  due_date: date | None = Field(default=None, description="Optional deadline used to size the subtasks.")

  @field_validator("due_date", mode="before")
  @classmethod
  def _accept_timestamps(cls, value: object) -> object:
    # Clients send full ISO timestamps; only the calendar day matters here.
    if isinstance(value, str) and len(value) > 10 and value[10] in {"T", " "}:
      return value[:10]
    return value


class LearningPlanParams(PlanningParams):
  """Inputs for a full learning plan.

  `clarificationResponses` is optional. Every learning_plan job produces the
  complete plan (personalization questions, learningPlan and subtasks), with
  or without prior answers; answers only sharpen the prompt.
  """
