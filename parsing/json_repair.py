# parsing/json_repair.py
"""Best-effort recovery of JSON payloads from model output.

Model replies wrap JSON in code fences, add prose around it, leave trailing
commas, embed raw newlines inside strings or use typographic quotes. Each
repair strategy below is tried in order until one produces valid JSON.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)```")
_OPEN_FENCE_RE = re.compile(r"^```(?:json|JSON)?\s*")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_WHITESPACE_RE = re.compile(r"\s+")
_LINE_BREAK_RE = re.compile(r"[\r\n\t]")
_CONTROL_CHAR_RE = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_MISSING_COMMA_RE = re.compile(r'([}\]"]|\d|true|false|null)(\s*\n\s*)(["{\[])')
_SMART_QUOTES = {
    "“": '"',
    "”": '"',
    "‘": "'",
    "’": "'",
}


class ParseError(Exception):
    """Raised when no strategy can recover a JSON value from the text."""


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or the text minus a dangling fence."""
    stripped = text.strip()
    match = _FENCE_RE.search(stripped)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return _OPEN_FENCE_RE.sub("", stripped).strip()


def _span(text: str, opener: str, closer: str) -> str | None:
    start = text.find(opener)
    end = text.rfind(closer)
    if start != -1 and end > start:
        return text[start : end + 1]
    return None


def extract_json_span(text: str, allow_array: bool = False) -> str:
    """Cut the text down to the outermost object (or array) it contains."""
    return candidate_spans(text, allow_array)[0]


def candidate_spans(text: str, allow_array: bool = False) -> list[str]:
    """Spans worth parsing, most likely first.

    The array span leads only when its bracket precedes the first brace.
    The object span is always a candidate; a bracket in surrounding prose
    can open an array span that never parses.
    """
    object_span = _span(text, "{", "}")
    array_span = _span(text, "[", "]") if allow_array else None
    spans: list[str] = []
    if array_span is not None and (
        object_span is None or text.find("[") < text.find("{")
    ):
        spans.append(array_span)
    if object_span is not None and object_span not in spans:
        spans.append(object_span)
    if array_span is not None and array_span not in spans:
        spans.append(array_span)
    if not spans:
        logger.debug("No JSON span found in payload")
        spans.append(text)
    return spans


def _direct(content: str) -> Any:
    return json.loads(content)


def _insert_missing_commas(content: str) -> Any:
    fixed = _MISSING_COMMA_RE.sub(r"\1,\2\3", content)
    fixed = _TRAILING_COMMA_RE.sub(r"\1", fixed)
    return json.loads(fixed)


def _basic_cleanup(content: str) -> Any:
    cleaned = _LINE_BREAK_RE.sub(" ", content)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned)
    cleaned = _TRAILING_COMMA_RE.sub(r"\1", cleaned).strip()
    return json.loads(cleaned)


def _remove_control_characters(content: str) -> Any:
    cleaned = _CONTROL_CHAR_RE.sub(" ", content)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned)
    cleaned = _TRAILING_COMMA_RE.sub(r"\1", cleaned).strip()
    return json.loads(cleaned)


def _normalize_quotes(content: str) -> Any:
    cleaned = content
    for smart, plain in _SMART_QUOTES.items():
        cleaned = cleaned.replace(smart, plain)
    cleaned = _LINE_BREAK_RE.sub(" ", cleaned)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned)
    cleaned = _TRAILING_COMMA_RE.sub(r"\1", cleaned).strip()
    return json.loads(cleaned)


def _rebuild_strings(content: str) -> Any:
    """Walk the text tracking string state and blank out raw breaks inside strings."""
    out: list[str] = []
    in_string = False
    escaped = False
    for char in content:
        if escaped:
            out.append(char)
            escaped = False
            continue
        if char == "\\":
            escaped = True
            out.append(char)
            continue
        if char == '"':
            in_string = not in_string
        if ord(char) < 32 and (in_string or char not in "\n\r\t"):
            out.append(" ")
        else:
            out.append(char)
    cleaned = _WHITESPACE_RE.sub(" ", "".join(out))
    cleaned = _TRAILING_COMMA_RE.sub(r"\1", cleaned).strip()
    return json.loads(cleaned)


REPAIR_STRATEGIES: tuple[tuple[str, Callable[[str], Any]], ...] = (
    ("direct", _direct),
    ("missing_commas", _insert_missing_commas),
    ("basic_cleanup", _basic_cleanup),
    ("control_characters", _remove_control_characters),
    ("smart_quotes", _normalize_quotes),
    ("rebuild_strings", _rebuild_strings),
)


def parse_json_payload(raw: str | None, allow_array: bool = False) -> Any:
    """Parse JSON out of a model reply, repairing common defects.

    Raises:
        ParseError: if the text is empty or every strategy fails.
    """
    if not raw or not raw.strip():
        raise ParseError("Empty response")

    spans = candidate_spans(strip_code_fences(raw), allow_array=allow_array)
    last_error: Exception | None = None
    for span_index, content in enumerate(spans):
        for name, strategy in REPAIR_STRATEGIES:
            try:
                result = strategy(content)
            except (json.JSONDecodeError, ValueError) as exc:
                last_error = exc
                continue
            if name != "direct" or span_index:
                logger.info(
                    "Recovered JSON payload", strategy=name, span=span_index + 1
                )
            return result

    raise ParseError(
        f"Unable to parse JSON after {len(REPAIR_STRATEGIES)} strategies: {last_error}"
    )
