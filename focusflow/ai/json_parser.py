"""Lenient JSON parsing and truncation repair for LLM outputs."""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from typing import Any, NamedTuple

_NUMBER_RE = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?")
_BARE_KEY_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_\-]*")
_PARTIAL_UNICODE_ESCAPE_RE = re.compile(r"\\u[0-9a-fA-F]{0,3}$")
_LITERALS = frozenset({"true", "false", "null"})
_PUNCTUATION = frozenset("{}[]:,")
_VALUE_END_KINDS = frozenset({"string", "scalar", "}", "]"})
_VALUE_START_KINDS = frozenset({"string", "scalar", "{", "["})


_FENCE_RE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\n?|\n?[ \t]*```\s*$")


class _Token(NamedTuple):
  kind: str
  text: str
  end: int


def strip_json_fences(raw: str) -> str:
  """Remove a surrounding markdown code fence (```json ... ```) if present."""
  return _FENCE_RE.sub("", raw.strip()).strip()


def parse_json_with_fallback(raw: str) -> Any:
  """Parse JSON with minimal recovery to keep provider retries low."""
  # Prefer strict parsing so valid JSON is preserved without mutation.
  try:
    return json.loads(raw)
  except json.JSONDecodeError as exc:
    last_error = exc

  # Extract the first JSON object/array to ignore leading or trailing prose.
  candidate = extract_json_block(raw)
  if candidate is None:
    raise last_error

  try:
    return json.loads(candidate)
  except json.JSONDecodeError as exc:
    last_error = exc

  # Each pass builds on the previous one; stop at the first that parses.
  tokens = _tokenize(candidate)
  recovery_passes: tuple[Callable[[list[_Token]], list[_Token]], ...] = (_strip_trailing_commas, _quote_unquoted_keys, _insert_missing_commas)
  for recovery in recovery_passes:
    tokens = recovery(tokens)
    try:
      return json.loads(_render(tokens))
    except json.JSONDecodeError as exc:
      last_error = exc

  raise last_error


def extract_json_block(raw: str) -> str | None:
  """Locate the first balanced JSON object/array for recovery parsing."""
  start = _first_container_index(raw)
  if start is None:
    return None
  end = _balanced_end(raw, start)
  if end is None:
    return None
  return raw[start:end]


def is_structurally_open(raw: str) -> bool:
  """Return True when the first JSON container never closes (cut-off output)."""
  start = _first_container_index(raw)
  if start is None:
    return False
  return _balanced_end(raw, start) is None


def repair_truncated_json(raw: str) -> str | None:
  """Restore syntactic closure of a cut-off JSON document.

  The text is cut back to the last point where the structure was complete:
  dangling keys, half-written numbers or literals and partial escapes are
  dropped. An unterminated string in value position is closed where it stops.
  The missing closing brackets are then appended in nesting order.

  Nothing is ever added besides quotes and closers, so the result can only
  contain keys and values that were present in the input. A malformed token
  ends the scan like the end of text does. Returns None when the text holds
  no cut-off JSON container.
  """
  start = _first_container_index(raw)
  if start is None:
    return None

  text = raw[start:]
  tokens = _tokenize(text)
  # Each frame is [container, state]; states: open, key, colon, value, after.
  stack: list[list[str]] = []
  safe_cut: int | None = None
  safe_closers = ""

  for token in tokens:
    frame = stack[-1] if stack else None

    if token.kind in {"{", "["}:
      if frame is not None and not _accepts_value(frame):
        break
      stack.append(["object" if token.kind == "{" else "array", "open"])
      safe_cut, safe_closers = token.end, _closers(stack)
      continue

    if token.kind in {"}", "]"}:
      expected = "object" if token.kind == "}" else "array"
      if frame is None or frame[0] != expected or frame[1] not in {"open", "after"}:
        break
      stack.pop()
      if not stack:
        # The container closed on its own; there is nothing to repair.
        return None
      stack[-1][1] = "after"
      safe_cut, safe_closers = token.end, _closers(stack)
      continue

    if frame is None:
      break

    if token.kind == ",":
      if frame[1] != "after":
        break
      frame[1] = "key" if frame[0] == "object" else "value"
      continue

    if token.kind == ":":
      if frame[0] != "object" or frame[1] != "colon":
        break
      frame[1] = "value"
      continue

    if token.kind == "string":
      if frame[0] == "object" and frame[1] in {"open", "key"}:
        frame[1] = "colon"
        continue
      if not _accepts_value(frame):
        break
      frame[1] = "after"
      safe_cut, safe_closers = token.end, _closers(stack)
      continue

    if token.kind == "open_string":
      # Only value strings can be closed; a cut-off key has no value to keep.
      if not _accepts_value(frame):
        break
      body = _trim_partial_escape(token.text[1:])
      return f'{text[: token.end - len(token.text)]}"{body}"{_closers(stack)}'

    # Scalars that run into the end of the text may be incomplete.
    if token.end >= len(text) or not _accepts_value(frame) or not _is_complete_scalar(token.text):
      break
    frame[1] = "after"
    safe_cut, safe_closers = token.end, _closers(stack)

  if safe_cut is None:
    return None
  return text[:safe_cut] + safe_closers


def _first_container_index(raw: str) -> int | None:
  for index, char in enumerate(raw):
    if char in "{[":
      return index
  return None


def _string_end(raw: str, start: int) -> int | None:
  """Return the index after the closing quote of the string at start, or None."""
  index = start + 1
  while index < len(raw):
    char = raw[index]
    if char == "\\":
      index += 2
      continue
    if char == '"':
      return index + 1
    index += 1
  return None


def _balanced_end(raw: str, start: int) -> int | None:
  """Return the index after the container opened at start closes, or None."""
  depth = 0
  index = start
  while index < len(raw):
    char = raw[index]
    if char == '"':
      end = _string_end(raw, index)
      if end is None:
        return None
      index = end
      continue
    if char in "{[":
      depth += 1
    elif char in "}]":
      depth -= 1
      if depth == 0:
        return index + 1
    index += 1
  return None


def _tokenize(text: str) -> list[_Token]:
  """Split near-JSON text into strings, punctuation and bare scalar tokens."""
  tokens: list[_Token] = []
  index = 0
  while index < len(text):
    char = text[index]
    if char.isspace():
      index += 1
      continue

    if char == '"':
      end = _string_end(text, index)
      if end is None:
        tokens.append(_Token("open_string", text[index:], len(text)))
        break
      tokens.append(_Token("string", text[index:end], end))
      index = end
      continue

    if char in _PUNCTUATION:
      tokens.append(_Token(char, char, index + 1))
      index += 1
      continue

    end = index
    while end < len(text) and not text[end].isspace() and text[end] not in _PUNCTUATION and text[end] != '"':
      end += 1
    tokens.append(_Token("scalar", text[index:end], end))
    index = end
  return tokens


def _render(tokens: list[_Token]) -> str:
  return "".join(token.text for token in tokens)


def _strip_trailing_commas(tokens: list[_Token]) -> list[_Token]:
  """Remove commas that directly precede a closing bracket."""
  kept: list[_Token] = []
  for index, token in enumerate(tokens):
    following = tokens[index + 1] if index + 1 < len(tokens) else None
    if token.kind == "," and following is not None and following.kind in {"}", "]"}:
      continue
    kept.append(token)
  return kept


def _quote_unquoted_keys(tokens: list[_Token]) -> list[_Token]:
  """Wrap bare identifier keys in quotes to handle JS-style output."""
  quoted: list[_Token] = []
  for index, token in enumerate(tokens):
    following = tokens[index + 1] if index + 1 < len(tokens) else None
    if token.kind == "scalar" and following is not None and following.kind == ":" and token.text not in _LITERALS and _BARE_KEY_RE.fullmatch(token.text):
      quoted.append(_Token("string", json.dumps(token.text), token.end))
      continue
    quoted.append(token)
  return quoted


def _insert_missing_commas(tokens: list[_Token]) -> list[_Token]:
  """Insert commas between values that run together."""
  repaired: list[_Token] = []
  for token in tokens:
    if repaired and repaired[-1].kind in _VALUE_END_KINDS and token.kind in _VALUE_START_KINDS:
      repaired.append(_Token(",", ",", repaired[-1].end))
    repaired.append(token)
  return repaired


def _accepts_value(frame: list[str]) -> bool:
  container, state = frame
  if container == "array":
    return state in {"open", "value"}
  return state == "value"


def _closers(stack: list[list[str]]) -> str:
  return "".join("}" if container == "object" else "]" for container, _ in reversed(stack))


def _is_complete_scalar(text: str) -> bool:
  return text in _LITERALS or _NUMBER_RE.fullmatch(text) is not None


def _trim_partial_escape(body: str) -> str:
  """Drop a half-written escape sequence from the end of a cut-off string."""
  trailing = len(body) - len(body.rstrip("\\"))
  if trailing % 2 == 1:
    return body[:-1]

  match = _PARTIAL_UNICODE_ESCAPE_RE.search(body)
  if match is not None:
    # Only a real escape if the backslash itself is not escaped.
    prefix = body[: match.start()]
    escaped = len(prefix) - len(prefix.rstrip("\\"))
    if escaped % 2 == 0:
      return prefix
  return body
