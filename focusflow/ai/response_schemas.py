"""Structured-output schemas sent to the provider for each job kind.

These follow the OpenAPI subset Gemini accepts for `response_schema`. They
steer generation only; acceptance is decided by the pydantic result models.
"""

from __future__ import annotations

import copy
from typing import Any

_STRING_LIST: dict[str, Any] = {"type": "ARRAY", "items": {"type": "STRING"}}

QUESTION_SCHEMA: dict[str, Any] = {
  "type": "OBJECT",
  "properties": {
    "id": {"type": "STRING", "description": "Question identifier"},
    "question": {"type": "STRING", "description": "Question text"},
    "type": {"type": "STRING", "description": "Question type", "enum": ["text", "choice", "scale", "boolean"]},
    "required": {"type": "BOOLEAN", "description": "Is required"},
    "options": _STRING_LIST,
  },
  "required": ["id", "question", "type", "required"],
}

SUBTASK_SCHEMA: dict[str, Any] = {
  "type": "OBJECT",
  "properties": {
    "id": {"type": "STRING"},
    "title": {"type": "STRING"},
    "text": {"type": "STRING"},
    "aiEstimatedDuration": {"type": "NUMBER"},
    "difficulty": {"type": "STRING", "enum": ["easy", "medium", "hard"]},
    "order": {"type": "NUMBER"},
    "completed": {"type": "BOOLEAN"},
    "skills": _STRING_LIST,
    "recommendedResources": _STRING_LIST,
    "phase": {"type": "STRING", "enum": ["knowledge", "practice", "application", "reflection", "output", "review"]},
  },
  "required": ["id", "title", "text", "aiEstimatedDuration", "difficulty", "order", "completed"],
}

LEARNING_PLAN_SCHEMA: dict[str, Any] = {
  "type": "OBJECT",
  "properties": {
    "achievableGoal": {"type": "STRING"},
    "recommendedTools": _STRING_LIST,
    "checkpoints": _STRING_LIST,
    "estimatedTimeToCompletion": {"type": "NUMBER"},
  },
  "required": ["achievableGoal", "recommendedTools", "checkpoints", "estimatedTimeToCompletion"],
}

PERSONALIZATION_RESPONSE_SCHEMA: dict[str, Any] = {
  "type": "OBJECT",
  "properties": {
    "questions": {"type": "ARRAY", "items": QUESTION_SCHEMA},
    "isSufficient": {"type": "BOOLEAN"},
    "initialInsight": {"type": "STRING"},
    "autoDetectedTaskType": {"type": "STRING", "enum": ["exam_preparation", "skill_learning", "project_completion", "general"]},
    "inferredCurrentProficiency": {"type": "STRING", "enum": ["beginner", "intermediate", "advanced"]},
  },
  "required": ["questions"],
}

SUBTASKS_RESPONSE_SCHEMA: dict[str, Any] = {
  "type": "OBJECT",
  "properties": {"subtasks": {"type": "ARRAY", "items": SUBTASK_SCHEMA}},
  "required": ["subtasks"],
}

LEARNING_PLAN_RESPONSE_SCHEMA: dict[str, Any] = {
  "type": "OBJECT",
  "properties": {
    "personalizationQuestions": {"type": "ARRAY", "items": QUESTION_SCHEMA},
    "learningPlan": LEARNING_PLAN_SCHEMA,
    "subtasks": {"type": "ARRAY", "items": SUBTASK_SCHEMA},
  },
  "required": ["personalizationQuestions", "learningPlan", "subtasks"],
}


def provider_schema(schema: dict[str, Any]) -> dict[str, Any]:
  """Return a private copy so SDK-side mutation never leaks into the shared constants."""
  return copy.deepcopy(schema)
