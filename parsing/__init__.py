# parsing/__init__.py
"""Common parsing utilities for model output."""

from __future__ import annotations

from .json_repair import (
    REPAIR_STRATEGIES,
    ParseError,
    extract_json_span,
    parse_json_payload,
    strip_code_fences,
)

__all__ = [
    "REPAIR_STRATEGIES",
    "ParseError",
    "extract_json_span",
    "parse_json_payload",
    "strip_code_fences",
]
