# processing/screenplay_scanner.py
"""Heuristic extraction of speaker cues and dialogue from screenplay text.

Scene text arrives in whatever shape the writers left it, so nothing here
parses screenplay grammar. A speaker cue is simply a short line written
entirely in capitals that is not a heading, transition or sound effect.
"""

from __future__ import annotations

import structlog

from config import settings
from processing.screenplay_constants import (
    DIRECTION_PREFIXES,
    HAS_LETTER_PATTERN,
    HEADING_PREFIXES,
    LETTER_CUE_PATTERNS,
    PARENTHETICAL_PATTERN,
    SOUND_EFFECT_WORDS,
)

logger = structlog.get_logger(__name__)


def _is_all_caps(line: str) -> bool:
    return line == line.upper()


def _within_cue_length(line: str) -> bool:
    return settings.SPEAKER_CUE_MIN_LENGTH < len(line) < settings.SPEAKER_CUE_MAX_LENGTH


def is_denied_cue(line: str) -> bool:
    """Return True if an all-caps line is a heading, direction or sound effect."""
    upper = line.upper()
    if upper.startswith(HEADING_PREFIXES) or upper.startswith(DIRECTION_PREFIXES):
        return True
    word = upper[:-1] if upper.endswith(".") else upper
    if word in SOUND_EFFECT_WORDS:
        return True
    return any(pattern.match(line) for pattern in LETTER_CUE_PATTERNS)


def clean_cue(line: str) -> str:
    """Strip parenthetical extensions such as (CONT'D) or (V.O.) from a cue."""
    return PARENTHETICAL_PATTERN.sub("", line).strip()


def extract_character_names(text: str | None) -> list[str]:
    """Return speaker names in order of first appearance, without duplicates."""
    if not text:
        return []
    names: dict[str, None] = {}
    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if not line or not _is_all_caps(line) or not _within_cue_length(line):
            continue
        if is_denied_cue(line):
            continue
        name = clean_cue(line)
        if len(name) > settings.SPEAKER_CUE_MIN_LENGTH and HAS_LETTER_PATTERN.search(
            name
        ):
            names.setdefault(name, None)
    return list(names)


def _is_cue_for(line: str, upper_name: str) -> bool:
    return (
        line == upper_name
        or line.startswith(upper_name + " ")
        or line.startswith(upper_name + ":")
    )


def extract_dialogue_lines(
    text: str | None, character_name: str | None, max_lines: int | None = None
) -> list[str]:
    """Collect the lines spoken by ``character_name`` under each of their cues.

    Collection after a cue stops at the next all-caps line longer than the
    minimum cue length. Bracketed parentheticals are skipped, and the total
    is capped at ``max_lines``.
    """
    if not text or not character_name or not character_name.strip():
        return []
    limit = settings.MAX_DIALOGUE_LINES_PER_SCENE if max_lines is None else max_lines
    if limit <= 0:
        return []

    upper_name = character_name.strip().upper()
    scene_lines = [line.strip() for line in text.split("\n")]
    collected: list[str] = []

    for i, line in enumerate(scene_lines):
        if not _is_cue_for(line, upper_name):
            continue
        for follow in scene_lines[i + 1 :]:
            if not follow:
                continue
            if _is_all_caps(follow) and len(follow) > settings.SPEAKER_CUE_MIN_LENGTH:
                break
            if follow.startswith("(") and follow.endswith(")"):
                continue
            collected.append(follow)
            if len(collected) >= limit:
                return collected
    return collected
