"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from google import genai

from focusflow.ai.errors import ProviderError, classify_provider_exception
from focusflow.ai.providers.base import AIModel
from focusflow.ai.response_schemas import provider_schema

logger = logging.getLogger(__name__)


class GeminiModel(AIModel):
  """Gemini model client with JSON-mode structured output."""

  def __init__(self, name: str, *, api_key: str | None, request_timeout_seconds: float, temperature: float = 0.3, client: Any | None = None) -> None:
    self.name = name
    self._request_timeout_seconds = request_timeout_seconds
    self._temperature = temperature
    # Without a key the service still starts; jobs then fail with a permanent provider error.
    self._client = client if client is not None else (genai.Client(api_key=api_key) if api_key else None)

  async def generate(self, prompt: str, schema: Mapping[str, Any]) -> str:
    if self._client is None:
      raise ProviderError("GEMINI_API_KEY is not configured", retryable=False)

    config = {"response_mime_type": "application/json", "response_schema": provider_schema(dict(schema)), "temperature": self._temperature}
    try:
      # Use the async client so the event loop stays free for other jobs.
      async with asyncio.timeout(self._request_timeout_seconds):
        response = await self._client.aio.models.generate_content(model=self.name, contents=prompt, config=config)
    except TimeoutError as exc:
      raise ProviderError(f"Gemini request exceeded {self._request_timeout_seconds}s", retryable=True, status_code=408) from exc
    except ProviderError:
      raise
    except Exception as exc:  # noqa: BLE001
      error = classify_provider_exception(exc)
      logger.warning("Gemini call failed model=%s retryable=%s status=%s error=%s", self.name, error.retryable, error.status_code, error.message)
      raise error from exc

    text = response.text or ""
    if response.usage_metadata:
      logger.info("Gemini usage model=%s prompt_tokens=%s completion_tokens=%s", self.name, response.usage_metadata.prompt_token_count, response.usage_metadata.candidates_token_count)
    logger.debug("Gemini structured response (raw):\n%s", text)
    return text


def build_gemini_model(*, model: str, api_key: str | None, request_timeout_seconds: float, temperature: float) -> GeminiModel:
  """Construct the configured Gemini model client."""
  return GeminiModel(model, api_key=api_key, request_timeout_seconds=request_timeout_seconds, temperature=temperature)
