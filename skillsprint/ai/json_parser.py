"""Lenient JSON parsing for LLM outputs.

Model responses are asked to be strict JSON but routinely arrive wrapped in
markdown fences, annotated with comments, or written as JS object literals.
``parse_response`` strips the fence, tries a strict parse and then applies a
fixed list of textual repairs cumulatively, retrying after each one so the
earliest repair that yields valid JSON wins. Every repair only touches text
outside string literals.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

_FENCE_RE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\r?\n?(.*?)\r?\n?```$", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


class ResponseParseError(ValueError):
  """Raised when a model response cannot be turned into JSON."""

  def __init__(self, context_id: str, message: str) -> None:
    self.context_id = context_id
    super().__init__(f"[{context_id}] {message}")


@dataclass(frozen=True)
class ParseReport:
  """Parsed value plus the repairs that were applied to reach it."""

  value: Any
  repairs: tuple[str, ...]


def parse_response(raw: str, context_id: str) -> Any:
  """Parse a model response, raising ResponseParseError when nothing works."""
  return parse_response_with_report(raw, context_id).value


def parse_response_with_report(raw: str, context_id: str) -> ParseReport:
  """Parse a model response and report which repair steps were needed."""
  if raw is None:
    raise ResponseParseError(context_id, "Model response was empty.")

  cleaned = strip_code_fence(raw)
  if cleaned == "":
    raise ResponseParseError(context_id, "Model response was empty.")

  # Prefer strict parsing so valid JSON is preserved without mutation.
  try:
    return ParseReport(value=json.loads(cleaned), repairs=())
  except json.JSONDecodeError as exc:
    last_error = exc

  applied: list[str] = []
  candidate = cleaned
  for name, repair in REPAIRS:
    repaired = repair(candidate)
    # Only count repairs that changed the text; an untouched payload cannot parse any better.
    if repaired is None or repaired == candidate:
      continue
    candidate = repaired
    applied.append(name)
    try:
      return ParseReport(value=json.loads(candidate), repairs=tuple(applied))
    except json.JSONDecodeError as exc:
      last_error = exc

  raise ResponseParseError(context_id, f"Failed to parse model response as JSON after {len(applied)} repair step(s): {last_error.msg} (line {last_error.lineno}, column {last_error.colno})")


def strip_code_fence(raw: str) -> str:
  """Trim whitespace and remove a surrounding ```json or bare ``` fence."""
  text = raw.strip()
  match = _FENCE_RE.match(text)
  if match:
    return match.group(1).strip()

  # Tolerate a truncated response that opened a fence but never closed it.
  if text.startswith("```"):
    _, _, remainder = text.partition("\n")
    return remainder.strip()

  return text


def strip_comments(raw: str) -> str:
  """Remove // line comments and /* */ block comments outside strings.

  Prose before the first ``{`` or ``[`` is left alone so a URL in a lead-in
  sentence cannot swallow the payload that follows it.
  """
  starts = [position for position in (raw.find("{"), raw.find("[")) if position != -1]
  if not starts:
    return raw

  index = min(starts)
  output: list[str] = [raw[:index]]
  in_string = False
  escape = False
  length = len(raw)

  while index < length:
    char = raw[index]

    if in_string:
      output.append(char)
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      index += 1
      continue

    if char == '"':
      in_string = True
      output.append(char)
      index += 1
      continue

    if raw.startswith("//", index):
      newline = raw.find("\n", index)
      index = length if newline == -1 else newline
      continue

    if raw.startswith("/*", index):
      end = raw.find("*/", index + 2)
      index = length if end == -1 else end + 2
      # Keep tokens on either side of the comment separated.
      output.append(" ")
      continue

    output.append(char)
    index += 1

  return "".join(output)


def strip_trailing_commas(raw: str) -> str:
  """Remove commas that sit directly before a closing brace or bracket."""
  return _apply_outside_strings(raw, lambda segment: _TRAILING_COMMA_RE.sub(r"\1", segment))


def quote_unquoted_keys(raw: str) -> str:
  """Wrap bare identifier keys in double quotes (``{a: 1}`` -> ``{"a": 1}``)."""
  output: list[str] = []
  in_string = False
  escape = False
  expecting_key = False
  index = 0
  length = len(raw)

  while index < length:
    char = raw[index]

    if in_string:
      output.append(char)
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      index += 1
      continue

    if char == '"':
      in_string = True
      expecting_key = False
      output.append(char)
      index += 1
      continue

    if char in "{,":
      expecting_key = True
      output.append(char)
      index += 1
      continue

    if expecting_key and (char.isalpha() or char in "_$"):
      start = index
      while index < length and (raw[index].isalnum() or raw[index] in "_$-"):
        index += 1
      key = raw[start:index]
      probe = index
      while probe < length and raw[probe].isspace():
        probe += 1
      if probe < length and raw[probe] == ":":
        output.append(f'"{key}"')
      else:
        output.append(key)
      expecting_key = False
      continue

    if not char.isspace():
      expecting_key = False
    output.append(char)
    index += 1

  return "".join(output)


def escape_control_characters(raw: str) -> str:
  """Escape literal newlines and tabs that appear inside string values."""
  output: list[str] = []
  in_string = False
  escape = False

  for char in raw:
    if in_string:
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      elif char in _CONTROL_ESCAPES:
        output.append(_CONTROL_ESCAPES[char])
        continue
    elif char == '"':
      in_string = True
    output.append(char)

  return "".join(output)


def insert_missing_commas(raw: str) -> str:
  """Insert a comma where two values run together inside a container."""
  output: list[str] = []
  in_string = False
  escape = False
  stack: list[str] = []
  # True right after a complete value (string, number, literal or closed container).
  value_ended = False
  # True while the current object string is a key rather than a value.
  reading_key = False
  awaiting_key = False

  index = 0
  length = len(raw)
  while index < length:
    char = raw[index]

    if in_string:
      output.append(char)
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
        value_ended = not reading_key
        reading_key = False
      index += 1
      continue

    if char.isspace():
      output.append(char)
      index += 1
      continue

    if value_ended and stack and _is_value_start(char):
      output.append(",")
      value_ended = False
      awaiting_key = stack[-1] == "object"

    if char == '"':
      in_string = True
      reading_key = awaiting_key
      awaiting_key = False
      output.append(char)
    elif char in "{[":
      stack.append("object" if char == "{" else "array")
      awaiting_key = char == "{"
      value_ended = False
      output.append(char)
    elif char in "}]":
      if stack:
        stack.pop()
      value_ended = True
      awaiting_key = False
      output.append(char)
    elif char == ",":
      value_ended = False
      awaiting_key = bool(stack) and stack[-1] == "object"
      output.append(char)
    elif char == ":":
      value_ended = False
      output.append(char)
    elif _is_value_start(char):
      start = index
      while index < length and raw[index] not in " \t\r\n,]}:\"":
        index += 1
      output.append(raw[start:index])
      value_ended = True
      continue
    else:
      output.append(char)
    index += 1

  return "".join(output)


def extract_json_block(raw: str) -> str | None:
  """Return the first balanced JSON object/array, ignoring surrounding prose."""
  start_index: int | None = None
  depth = 0
  in_string = False
  escape = False

  for index, char in enumerate(raw):
    if start_index is None:
      if char in "{[":
        start_index = index
        depth = 1
      continue

    if in_string:
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      continue

    if char == '"':
      in_string = True
    elif char in "{[":
      depth += 1
    elif char in "}]":
      depth -= 1
      if depth == 0:
        return raw[start_index : index + 1]

  return None


def _is_value_start(char: str) -> bool:
  return char in '"{[-' or char.isdigit() or char in "tfn"


def _apply_outside_strings(raw: str, transform: Callable[[str], str]) -> str:
  """Run a regex transform over the non-string segments of a payload."""
  output: list[str] = []
  segment: list[str] = []
  in_string = False
  escape = False

  for char in raw:
    if in_string:
      output.append(char)
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      continue

    if char == '"':
      output.append(transform("".join(segment)))
      segment = []
      output.append(char)
      in_string = True
      continue

    segment.append(char)

  output.append(transform("".join(segment)))
  return "".join(output)


# Ordered and cumulative. A repair returning None is skipped.
REPAIRS: tuple[tuple[str, Callable[[str], str | None]], ...] = (
  ("strip_comments", strip_comments),
  ("strip_trailing_commas", strip_trailing_commas),
  ("quote_unquoted_keys", quote_unquoted_keys),
  ("escape_control_characters", escape_control_characters),
  ("insert_missing_commas", insert_missing_commas),
  ("extract_json_block", extract_json_block),
)
