# utils/__init__.py
"""General utility functions for the actor-materials pipeline."""

from __future__ import annotations

from .logging import setup_logging
from .name_matching import (
    dedupe_names,
    find_matching_name,
    name_appears_in_text,
    names_match,
    normalize_name,
)

__all__ = [
    "setup_logging",
    "dedupe_names",
    "find_matching_name",
    "name_appears_in_text",
    "names_match",
    "normalize_name",
]
