"""Unit tests for API exception sanitization behavior."""

from __future__ import annotations

from decimal import Decimal

from focusflow.core.exceptions import _coerce_json_safe, _error_payload, _sanitize_http_detail, _sanitize_validation_errors


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  """Ensure validation errors stay JSON-serializable and redact raw request payloads."""
  errors = [{"type": "value_error", "loc": ("body", "params"), "msg": "Value error, title must not be blank", "input": {"title": "  "}, "url": "https://errors.pydantic.dev", "ctx": {"error": ValueError("title must not be blank"), "input": {"title": "  "}}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert "url" not in sanitized[0]
  assert sanitized[0]["loc"] == ["body", "params"]
  assert sanitized[0]["ctx"]["error"] == "ValueError: title must not be blank"
  assert "input" not in sanitized[0]["ctx"]


def test_sanitize_http_detail_drops_payload_keys() -> None:
  detail = {"code": "invalid_input", "params": {"title": "secret plan"}, "errors": [{"loc": ["title"], "body": "raw"}]}
  assert _sanitize_http_detail(detail) == {"code": "invalid_input", "errors": [{"loc": ["title"]}]}


def test_coerce_json_safe_stringifies_unknown_values() -> None:
  assert _coerce_json_safe({"amount": Decimal("1.50")}) == {"amount": "1.50"}
  assert _coerce_json_safe((1, {2})) == [1, [2]]


def test_error_payload_attaches_request_id() -> None:
  assert _error_payload("Internal Server Error", request_id="abc123") == {"detail": "Internal Server Error", "requestId": "abc123"}
  assert _error_payload("Not Found") == {"detail": "Not Found"}
