"""Provider implementations."""

from focusflow.ai.providers.base import AIModel
from focusflow.ai.providers.gemini import GeminiModel, build_gemini_model

__all__ = ["AIModel", "GeminiModel", "build_gemini_model"]
