# utils/name_matching.py
"""Fuzzy, case-insensitive matching of character names across documents.

Story bibles, episode cast lists, script breakdowns and screenplay cues are
written independently and spell the same person differently ("JACE",
"Jace", "Jace Castro"). ``names_match`` reconciles them with three tiers:
exact normalized equality, substring containment, then first-token equality.

Known limitation: two characters sharing a first name ("John Smith" and
"John Doe") are treated as the same person by the first-token tier.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from config import settings

_WHITESPACE_RE = re.compile(r"\s+")
_PUNCTUATION_RE = re.compile(r"[^\w\s]")


def normalize_name(name: str | None) -> str:
    """Lower-case, trim, collapse whitespace and strip punctuation."""
    if not name:
        return ""
    collapsed = _WHITESPACE_RE.sub(" ", name.lower().strip())
    return _PUNCTUATION_RE.sub("", collapsed)


def names_match(name_a: str | None, name_b: str | None) -> bool:
    norm_a = normalize_name(name_a)
    norm_b = normalize_name(name_b)
    if not norm_a or not norm_b:
        return False

    if norm_a == norm_b:
        return True

    min_len = settings.NAME_MATCH_MIN_LENGTH
    if norm_a in norm_b or norm_b in norm_a:
        shorter = norm_a if len(norm_a) < len(norm_b) else norm_b
        if len(shorter) >= min_len:
            return True

    first_a = norm_a.split(" ")[0]
    first_b = norm_b.split(" ")[0]
    return first_a == first_b and len(first_a) >= min_len


def find_matching_name(name: str | None, candidates: Iterable[str]) -> str | None:
    """Return the first candidate that matches ``name``, or None."""
    for candidate in candidates:
        if names_match(name, candidate):
            return candidate
    return None


def name_appears_in_text(name: str | None, text: str | None) -> bool:
    """Return True if the name, or its first name as a whole word, occurs in text."""
    if not name or not name.strip() or not text:
        return False
    upper_text = text.upper()
    if name.strip().upper() in upper_text:
        return True

    first_name = name.strip().split(" ")[0]
    if len(first_name) < settings.NAME_MATCH_MIN_LENGTH:
        return False
    if first_name.upper() not in upper_text:
        return False
    return re.search(rf"\b{re.escape(first_name)}\b", text, re.IGNORECASE) is not None


def dedupe_names(
    names: Iterable[str], exclude: Iterable[str] | str | None = None
) -> list[str]:
    """Drop names matching ``exclude`` or an earlier entry, keeping first spellings."""
    if isinstance(exclude, str):
        excluded = [exclude]
    else:
        excluded = list(exclude or [])

    kept: list[str] = []
    for raw in names:
        if not isinstance(raw, str) or not raw.strip():
            continue
        name = raw.strip()
        if any(names_match(name, other) for other in excluded):
            continue
        if find_matching_name(name, kept) is not None:
            continue
        kept.append(name)
    return kept
