"""Unit tests for provider response validation."""

from __future__ import annotations

import json
from typing import Any

import pytest

from focusflow.ai.validator import validate_response
from focusflow.jobs.models import ErrorKind, JobKind


def test_valid_subtasks_are_accepted(subtasks_payload: dict[str, Any]) -> None:
  outcome = validate_response(json.dumps(subtasks_payload), JobKind.SUBTASK_GENERATION)
  assert outcome.ok is True
  assert outcome.repaired is False
  assert outcome.payload == subtasks_payload


def test_fenced_learning_plan_is_accepted(learning_plan_payload: dict[str, Any]) -> None:
  raw = f"```json\n{json.dumps(learning_plan_payload, indent=2)}\n```"
  outcome = validate_response(raw, JobKind.LEARNING_PLAN)
  assert outcome.ok is True
  assert outcome.payload == learning_plan_payload


def test_personalization_with_prose_and_trailing_comma(personalization_payload: dict[str, Any]) -> None:
  body = json.dumps(personalization_payload)
  raw = f"Here are the questions: {body[:-1]},}}"
  outcome = validate_response(raw, JobKind.PERSONALIZATION)
  assert outcome.ok is True
  assert outcome.payload == personalization_payload


def test_unknown_fields_are_kept(subtasks_payload: dict[str, Any]) -> None:
  subtasks_payload["subtasks"][0]["notes"] = "extra"
  outcome = validate_response(json.dumps(subtasks_payload), JobKind.SUBTASK_GENERATION)
  assert outcome.ok is True
  assert outcome.payload is not None
  assert outcome.payload["subtasks"][0]["notes"] == "extra"


@pytest.mark.parametrize("raw", ["", "   ", "```json\n```"])
def test_empty_response_is_unparseable(raw: str) -> None:
  outcome = validate_response(raw, JobKind.SUBTASK_GENERATION)
  assert outcome.ok is False
  assert outcome.reason == ErrorKind.UNPARSEABLE


def test_prose_without_json_is_unparseable() -> None:
  outcome = validate_response("I am sorry, I cannot help with that.", JobKind.PERSONALIZATION)
  assert outcome.reason == ErrorKind.UNPARSEABLE


def test_quoted_number_is_schema_mismatch(subtasks_payload: dict[str, Any]) -> None:
  subtasks_payload["subtasks"][0]["aiEstimatedDuration"] = "120"
  outcome = validate_response(json.dumps(subtasks_payload), JobKind.SUBTASK_GENERATION)
  assert outcome.ok is False
  assert outcome.reason == ErrorKind.SCHEMA_MISMATCH
  assert any(error["loc"][:3] == ["subtasks", "0", "aiEstimatedDuration"] for error in outcome.errors)


def test_missing_required_field_is_schema_mismatch(learning_plan_payload: dict[str, Any]) -> None:
  del learning_plan_payload["learningPlan"]
  outcome = validate_response(json.dumps(learning_plan_payload), JobKind.LEARNING_PLAN)
  assert outcome.reason == ErrorKind.SCHEMA_MISMATCH


def test_empty_subtasks_is_schema_mismatch() -> None:
  outcome = validate_response('{"subtasks": []}', JobKind.SUBTASK_GENERATION)
  assert outcome.reason == ErrorKind.SCHEMA_MISMATCH


def test_empty_questions_require_sufficient_flag() -> None:
  assert validate_response('{"questions": [], "isSufficient": true}', JobKind.PERSONALIZATION).ok is True
  assert validate_response('{"questions": [], "isSufficient": false}', JobKind.PERSONALIZATION).reason == ErrorKind.SCHEMA_MISMATCH


def test_cut_inside_learning_plan_is_truncated() -> None:
  raw = '{"personalizationQuestions": [], "learningPlan": {"achievableGoal": "Ship a'
  outcome = validate_response(raw, JobKind.LEARNING_PLAN)
  assert outcome.ok is False
  assert outcome.reason == ErrorKind.TRUNCATED


def test_truncation_at_every_offset_is_truncated_or_a_pruned_prefix(subtasks_payload: dict[str, Any]) -> None:
  text = json.dumps(subtasks_payload)
  originals = subtasks_payload["subtasks"]
  for cut in range(1, len(text)):
    outcome = validate_response(text[:cut], JobKind.SUBTASK_GENERATION)
    if not outcome.ok:
      assert outcome.reason == ErrorKind.TRUNCATED, f"cut={cut} reason={outcome.reason}"
      continue
    # Accepted repairs keep only whole subtasks that were fully written.
    assert outcome.repaired is True
    assert outcome.payload is not None
    kept = outcome.payload["subtasks"]
    assert 1 <= len(kept) <= len(originals)
    assert kept == originals[: len(kept)], f"cut={cut}"


def test_repaired_subset_is_accepted(subtasks_payload: dict[str, Any]) -> None:
  text = json.dumps(subtasks_payload)
  second = text.index('{"id": "s2"')
  outcome = validate_response(text[:second], JobKind.SUBTASK_GENERATION)
  assert outcome.ok is True
  assert outcome.repaired is True
  assert outcome.payload == {"subtasks": subtasks_payload["subtasks"][:1]}
