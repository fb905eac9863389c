"""Unit tests for provider error classification and the Gemini client."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from google.genai import errors as genai_errors

from focusflow.ai.errors import ProviderError, classify_provider_exception, is_retryable_status
from focusflow.ai.providers.gemini import GeminiModel, build_gemini_model
from focusflow.ai.response_schemas import SUBTASKS_RESPONSE_SCHEMA


def _api_error(code: int, message: str) -> genai_errors.APIError:
  return genai_errors.APIError(code, {"error": {"code": code, "message": message, "status": "ERROR"}})


def _fake_client(generate_content) -> SimpleNamespace:
  return SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate_content)))


@pytest.mark.parametrize(("status_code", "expected"), [(408, True), (429, True), (500, True), (503, True), (400, False), (401, False), (404, False), (None, False)])
def test_is_retryable_status(status_code, expected) -> None:
  assert is_retryable_status(status_code) is expected


def test_provider_error_passes_through() -> None:
  error = ProviderError("boom", retryable=True, status_code=502)
  assert classify_provider_exception(error) is error


@pytest.mark.parametrize(("code", "retryable"), [(429, True), (503, True), (400, False), (403, False)])
def test_sdk_errors_are_classified_by_status(code, retryable) -> None:
  classified = classify_provider_exception(_api_error(code, "provider said no"))
  assert classified.retryable is retryable
  assert classified.status_code == code


@pytest.mark.parametrize(
  ("exc", "retryable"),
  [
    (TimeoutError(), True),
    (ConnectionError("reset by peer"), True),
    (RuntimeError("Rate limit exceeded, slow down"), True),
    (RuntimeError("Invalid API key provided"), False),
    (RuntimeError("model not found: gemini-9"), False),
    (RuntimeError("something odd happened"), False),
  ],
)
def test_other_exceptions_are_classified_by_type_and_message(exc, retryable) -> None:
  assert classify_provider_exception(exc).retryable is retryable


@pytest.mark.anyio
async def test_gemini_without_key_fails_permanently() -> None:
  model = GeminiModel("gemini-2.5-flash", api_key=None, request_timeout_seconds=5)
  with pytest.raises(ProviderError) as exc_info:
    await model.generate("prompt", SUBTASKS_RESPONSE_SCHEMA)
  assert exc_info.value.retryable is False


@pytest.mark.anyio
async def test_gemini_returns_raw_text_with_json_config() -> None:
  generate_content = AsyncMock(return_value=SimpleNamespace(text='{"subtasks": []}', usage_metadata=None))
  model = GeminiModel("gemini-2.5-flash", api_key=None, request_timeout_seconds=5, temperature=0.2, client=_fake_client(generate_content))

  assert await model.generate("plan my week", SUBTASKS_RESPONSE_SCHEMA) == '{"subtasks": []}'

  kwargs = generate_content.await_args.kwargs
  assert kwargs["model"] == "gemini-2.5-flash"
  assert kwargs["contents"] == "plan my week"
  assert kwargs["config"]["response_mime_type"] == "application/json"
  assert kwargs["config"]["temperature"] == 0.2
  assert kwargs["config"]["response_schema"] == SUBTASKS_RESPONSE_SCHEMA
  assert kwargs["config"]["response_schema"] is not SUBTASKS_RESPONSE_SCHEMA


@pytest.mark.anyio
async def test_gemini_empty_text_is_returned_as_empty_string() -> None:
  generate_content = AsyncMock(return_value=SimpleNamespace(text=None, usage_metadata=SimpleNamespace(prompt_token_count=10, candidates_token_count=0)))
  model = GeminiModel("gemini-2.5-flash", api_key=None, request_timeout_seconds=5, client=_fake_client(generate_content))
  assert await model.generate("prompt", SUBTASKS_RESPONSE_SCHEMA) == ""


@pytest.mark.anyio
async def test_gemini_sdk_errors_become_provider_errors() -> None:
  generate_content = AsyncMock(side_effect=_api_error(503, "overloaded"))
  model = GeminiModel("gemini-2.5-flash", api_key=None, request_timeout_seconds=5, client=_fake_client(generate_content))

  with pytest.raises(ProviderError) as exc_info:
    await model.generate("prompt", SUBTASKS_RESPONSE_SCHEMA)
  assert exc_info.value.retryable is True
  assert exc_info.value.status_code == 503


@pytest.mark.anyio
async def test_gemini_request_timeout_is_retryable() -> None:
  async def slow_generate(**_: object) -> SimpleNamespace:
    await asyncio.sleep(1)
    return SimpleNamespace(text="{}", usage_metadata=None)

  model = GeminiModel("gemini-2.5-flash", api_key=None, request_timeout_seconds=0.01, client=_fake_client(slow_generate))
  with pytest.raises(ProviderError) as exc_info:
    await model.generate("prompt", SUBTASKS_RESPONSE_SCHEMA)
  assert exc_info.value.retryable is True
  assert exc_info.value.status_code == 408


def test_build_gemini_model_uses_configured_name() -> None:
  model = build_gemini_model(model="gemini-2.5-pro", api_key=None, request_timeout_seconds=30, temperature=0.3)
  assert model.name == "gemini-2.5-pro"
