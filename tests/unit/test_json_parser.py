"""Tests for the lenient model-response JSON parser."""

from __future__ import annotations

import pytest

from skillsprint.ai.json_parser import ResponseParseError, parse_response, parse_response_with_report, strip_code_fence


def test_strict_json_is_parsed_without_repairs() -> None:
  report = parse_response_with_report('{"title": "Rust", "modules": []}', "ctx-1")
  assert report.value == {"title": "Rust", "modules": []}
  assert report.repairs == ()


def test_code_fence_is_stripped_before_parsing() -> None:
  raw = '```json\n{"a": [1, 2]}\n```'
  report = parse_response_with_report(raw, "ctx-1")
  assert report.value == {"a": [1, 2]}
  assert report.repairs == ()


def test_unclosed_code_fence_is_tolerated() -> None:
  assert strip_code_fence('```json\n{"a": 1}') == '{"a": 1}'


def test_unquoted_keys_are_repaired() -> None:
  report = parse_response_with_report('{a: "x"}', "ctx-1")
  assert report.value == {"a": "x"}
  assert report.repairs == ("quote_unquoted_keys",)


def test_trailing_commas_are_removed() -> None:
  report = parse_response_with_report('{"a": [1, 2,],}', "ctx-1")
  assert report.value == {"a": [1, 2]}
  assert report.repairs == ("strip_trailing_commas",)


def test_comments_are_removed_but_urls_in_strings_survive() -> None:
  raw = '{"a": 1, // note\n "b": "http://example.com/x"}'
  report = parse_response_with_report(raw, "ctx-1")
  assert report.value == {"a": 1, "b": "http://example.com/x"}
  assert report.repairs == ("strip_comments",)


def test_literal_newlines_inside_strings_are_escaped() -> None:
  report = parse_response_with_report('{"a": "line1\nline2"}', "ctx-1")
  assert report.value == {"a": "line1\nline2"}
  assert report.repairs == ("escape_control_characters",)


def test_missing_comma_between_members_is_inserted() -> None:
  report = parse_response_with_report('{"a": 1 "b": 2}', "ctx-1")
  assert report.value == {"a": 1, "b": 2}
  assert report.repairs == ("insert_missing_commas",)


def test_prose_around_json_is_discarded() -> None:
  report = parse_response_with_report('Here is the course: {"a": 1} Thanks!', "ctx-1")
  assert report.value == {"a": 1}
  assert report.repairs == ("extract_json_block",)


def test_url_in_lead_in_prose_does_not_hide_the_payload() -> None:
  report = parse_response_with_report('Sure, see https://x.io: {"a": 1}', "ctx-1")
  assert report.value == {"a": 1}
  assert report.repairs == ("extract_json_block",)


def test_repairs_accumulate_in_order() -> None:
  raw = '```\n{title: "x", /* draft */ "tags": ["a", "b",],}\n```'
  report = parse_response_with_report(raw, "ctx-1")
  assert report.value == {"title": "x", "tags": ["a", "b"]}
  assert report.repairs == ("strip_comments", "strip_trailing_commas", "quote_unquoted_keys")


def test_unrepairable_text_raises_with_context() -> None:
  with pytest.raises(ResponseParseError) as excinfo:
    parse_response("not json at all", "req-42:0-1")
  assert excinfo.value.context_id == "req-42:0-1"
  assert str(excinfo.value).startswith("[req-42:0-1] Failed to parse model response as JSON")


@pytest.mark.parametrize("raw", ["", "   ", "```json\n```"])
def test_empty_responses_raise(raw: str) -> None:
  with pytest.raises(ResponseParseError, match="Model response was empty."):
    parse_response(raw, "ctx-1")
