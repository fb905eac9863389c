"""Convert raw provider text into a validated result or a classified rejection."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ValidationError

from focusflow.ai.json_parser import is_structurally_open, parse_json_with_fallback, repair_truncated_json, strip_json_fences
from focusflow.jobs.catalog import get_kind_spec
from focusflow.jobs.models import ErrorKind, JobKind


@dataclass(frozen=True)
class ValidationOutcome:
  """Result of validating one provider response."""

  ok: bool
  payload: dict[str, Any] | None = None
  reason: ErrorKind | None = None
  message: str = ""
  errors: list[dict[str, Any]] = field(default_factory=list)
  repaired: bool = False

  @classmethod
  def accepted(cls, payload: dict[str, Any], *, repaired: bool = False) -> ValidationOutcome:
    return cls(ok=True, payload=payload, repaired=repaired)

  @classmethod
  def rejected(cls, reason: ErrorKind, message: str, *, errors: list[dict[str, Any]] | None = None) -> ValidationOutcome:
    return cls(ok=False, reason=reason, message=message, errors=errors or [])


def _summarize_errors(exc: ValidationError) -> list[dict[str, Any]]:
  # Keep location and message only; raw model output can be large.
  return [{"loc": [str(part) for part in error.get("loc", ())], "msg": str(error.get("msg", "")), "type": str(error.get("type", ""))} for error in exc.errors()]


def _check_schema(document: Any, model: type[BaseModel]) -> tuple[dict[str, Any] | None, ValidationError | None]:
  try:
    validated = model.model_validate(document)
  except ValidationError as exc:
    return None, exc
  return validated.model_dump(by_alias=True, exclude_unset=True), None


def validate_response(raw: str, kind: JobKind) -> ValidationOutcome:
  """Parse, repair if cut off, and schema-check a provider response.

  Reasons on rejection:
  - unparseable: no JSON structure could be recovered from the text.
  - truncated: the text stops mid-structure and syntactic repair did not yield a schema-valid document.
  - schema_mismatch: complete JSON whose fields are missing or of the wrong type.
  """
  model = get_kind_spec(kind).result_model
  text = strip_json_fences(raw or "")
  if not text:
    return ValidationOutcome.rejected(ErrorKind.UNPARSEABLE, "provider returned an empty response")

  try:
    document = parse_json_with_fallback(text)
  except json.JSONDecodeError as exc:
    if not is_structurally_open(text):
      return ValidationOutcome.rejected(ErrorKind.UNPARSEABLE, f"response is not valid JSON: {exc.msg}")
    return _validate_repaired(text, model)

  payload, error = _check_schema(document, model)
  if error is not None:
    errors = _summarize_errors(error)
    return ValidationOutcome.rejected(ErrorKind.SCHEMA_MISMATCH, f"response does not match the {kind.value} schema ({len(errors)} errors)", errors=errors)
  return ValidationOutcome.accepted(payload or {})


def _validate_repaired(text: str, model: type[BaseModel]) -> ValidationOutcome:
  repaired = repair_truncated_json(text)
  if repaired is None:
    return ValidationOutcome.rejected(ErrorKind.TRUNCATED, "response was cut off and could not be closed")

  try:
    document = json.loads(repaired)
  except json.JSONDecodeError as exc:
    return ValidationOutcome.rejected(ErrorKind.TRUNCATED, f"response was cut off; repaired text is still invalid: {exc.msg}")

  payload, error = _check_schema(document, model)
  if error is not None:
    return ValidationOutcome.rejected(ErrorKind.TRUNCATED, "response was cut off before all required fields were written", errors=_summarize_errors(error))
  return ValidationOutcome.accepted(payload or {}, repaired=True)
