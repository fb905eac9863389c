"""Explicit table mapping each job kind to how it is generated and validated."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from focusflow.ai.prompts import build_learning_plan_prompt, build_personalization_prompt, build_subtask_prompt
from focusflow.ai.response_schemas import LEARNING_PLAN_RESPONSE_SCHEMA, PERSONALIZATION_RESPONSE_SCHEMA, SUBTASKS_RESPONSE_SCHEMA
from focusflow.jobs.models import JobKind
from focusflow.schema.params import LearningPlanParams, PersonalizationParams, SubtaskGenerationParams
from focusflow.schema.plans import LearningPlanResult, PersonalizationResult, SubtaskGenerationResult


@dataclass(frozen=True)
class JobKindSpec:
  """Everything the worker needs to run one kind of job."""

  kind: JobKind
  params_model: type[BaseModel]
  build_prompt: Callable[[Any], str]
  provider_schema: Mapping[str, Any]
  result_model: type[BaseModel]
  estimated_duration_ms: int

  def parse_params(self, params: Mapping[str, Any]) -> BaseModel:
    """Validate raw params; raises pydantic.ValidationError."""
    return self.params_model.model_validate(dict(params))


JOB_CATALOG: dict[JobKind, JobKindSpec] = {
  JobKind.PERSONALIZATION: JobKindSpec(
    kind=JobKind.PERSONALIZATION,
    params_model=PersonalizationParams,
    build_prompt=build_personalization_prompt,
    provider_schema=PERSONALIZATION_RESPONSE_SCHEMA,
    result_model=PersonalizationResult,
    estimated_duration_ms=15_000,
  ),
  JobKind.SUBTASK_GENERATION: JobKindSpec(
    kind=JobKind.SUBTASK_GENERATION,
    params_model=SubtaskGenerationParams,
    build_prompt=build_subtask_prompt,
    provider_schema=SUBTASKS_RESPONSE_SCHEMA,
    result_model=SubtaskGenerationResult,
    estimated_duration_ms=30_000,
  ),
  JobKind.LEARNING_PLAN: JobKindSpec(
    kind=JobKind.LEARNING_PLAN,
    params_model=LearningPlanParams,
    build_prompt=build_learning_plan_prompt,
    provider_schema=LEARNING_PLAN_RESPONSE_SCHEMA,
    result_model=LearningPlanResult,
    estimated_duration_ms=60_000,
  ),
}


def get_kind_spec(kind: JobKind) -> JobKindSpec:
  return JOB_CATALOG[kind]
