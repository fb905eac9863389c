"""Base interface for AI text generation providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any


class AIModel(ABC):
  """A model that turns a prompt into raw structured-output text.

  Implementations perform exactly one provider call per `generate` and never
  retry or validate; both are the job worker's responsibility. Transport
  failures are raised as `focusflow.ai.errors.ProviderError`.
  """

  name: str

  @abstractmethod
  async def generate(self, prompt: str, schema: Mapping[str, Any]) -> str:
    """Return the provider's raw text for a structured-output request."""
