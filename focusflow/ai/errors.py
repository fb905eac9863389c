"""Provider error classification for AI calls."""

from __future__ import annotations

from collections.abc import Iterable

from google.genai import errors as genai_errors

# Transient failures that are worth another attempt.
_RETRYABLE_HINTS: tuple[str, ...] = (
  "rate limit",
  "resource exhausted",
  "quota",
  "too many requests",
  "timeout",
  "timed out",
  "deadline",
  "connection",
  "network",
  "temporarily",
  "service unavailable",
  "bad gateway",
  "gateway",
  "overloaded",
)

# Permanent failures; retrying only burns budget.
_PERMANENT_HINTS: tuple[str, ...] = (
  "api key",
  "unauthorized",
  "forbidden",
  "permission",
  "invalid argument",
  "bad request",
  "unsupported model",
  "model not found",
  "no such model",
  "not supported",
)

_RETRYABLE_STATUS_CODES = frozenset({408, 429})


class ProviderError(Exception):
  """Transport-level failure from an AI provider call."""

  def __init__(self, message: str, *, retryable: bool, status_code: int | None = None) -> None:
    super().__init__(message)
    self.message = message
    self.retryable = retryable
    self.status_code = status_code


def _match_hint(message: str, hints: Iterable[str]) -> bool:
  """Return True when any hint appears in the message."""
  return any(hint in message for hint in hints)


def is_retryable_status(status_code: int | None) -> bool:
  if status_code is None:
    return False
  return status_code in _RETRYABLE_STATUS_CODES or status_code >= 500


def classify_provider_exception(exc: Exception) -> ProviderError:
  """Map an arbitrary provider exception onto a ProviderError."""
  if isinstance(exc, ProviderError):
    return exc

  # SDK errors carry an HTTP status code; trust it over message text.
  if isinstance(exc, genai_errors.APIError):
    status_code = getattr(exc, "code", None)
    message = str(exc) or type(exc).__name__
    return ProviderError(message, retryable=is_retryable_status(status_code), status_code=status_code)

  if isinstance(exc, TimeoutError | ConnectionError):
    return ProviderError(f"{type(exc).__name__}: {exc}".rstrip(": "), retryable=True)

  message = str(exc).lower()
  if _match_hint(message, _PERMANENT_HINTS):
    return ProviderError(str(exc), retryable=False)
  if _match_hint(message, _RETRYABLE_HINTS):
    return ProviderError(str(exc), retryable=True)

  # Unknown failures are treated as permanent so a bug never loops through the budget.
  return ProviderError(str(exc) or type(exc).__name__, retryable=False)
