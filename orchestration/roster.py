# orchestration/roster.py
"""Work out which characters an arc needs materials for."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from models import CharacterIdentity, Episode, PreProductionRecord, StoryBible
from orchestration.errors import CharacterNotFoundError
from processing.screenplay_scanner import extract_character_names
from utils.name_matching import find_matching_name, names_match

logger = structlog.get_logger(__name__)


def character_slug(name: str) -> str:
    return "-".join(name.lower().split())


def collect_arc_names(
    episodes: Mapping[int, Episode],
    pre_production: Mapping[int, PreProductionRecord],
    episode_numbers: Iterable[int],
    log: Any = logger,
) -> list[str]:
    """Every name the arc's documents mention, in first-seen order.

    Sources, in order: breakdown cast lists, non-minor episode cast entries,
    speaker cues in episode scenes, speaker cues in pre-production scenes.
    """
    numbers = list(episode_numbers)
    names: dict[str, None] = {}

    def _add(name: str | None) -> None:
        if isinstance(name, str) and name.strip():
            names.setdefault(name.strip(), None)

    for number in numbers:
        pre_prod = pre_production.get(number)
        if pre_prod is None or pre_prod.script_breakdown is None:
            log.debug("No script breakdown for episode", episode=number)
            continue
        for scene in pre_prod.breakdown_scenes:
            for name in scene.cast_names:
                _add(name)

    for number in numbers:
        episode = episodes.get(number)
        if episode is None:
            log.debug("No episode document", episode=number)
            continue
        for member in episode.characters:
            if not member.is_minor:
                _add(member.name)

    for number in numbers:
        episode = episodes.get(number)
        if episode is None:
            continue
        for scene in episode.scenes:
            for name in extract_character_names(scene.content or scene.screenplay):
                _add(name)

    for number in numbers:
        pre_prod = pre_production.get(number)
        if pre_prod is None:
            continue
        for notes in pre_prod.scenes:
            for name in extract_character_names(
                notes.linked_scene_content or notes.notes
            ):
                _add(name)

    log.info(
        "Collected arc character names",
        episodes=numbers,
        unique_names=len(names),
    )
    return list(names)


def resolve_roster(
    story_bible: StoryBible,
    episodes: Mapping[int, Episode],
    pre_production: Mapping[int, PreProductionRecord],
    episode_numbers: Iterable[int],
    log: Any = logger,
) -> list[CharacterIdentity]:
    """Story-bible characters present in the arc, then uncovered cast entries."""
    numbers = list(episode_numbers)
    arc_names = collect_arc_names(episodes, pre_production, numbers, log)
    roster: list[CharacterIdentity] = []
    seen: list[str] = []

    for member in story_bible.main_characters:
        if not member.name or member.name in seen:
            continue
        if find_matching_name(member.name, arc_names) is None:
            log.info("Story-bible character not in arc", character=member.name)
            continue
        roster.append(
            CharacterIdentity(
                id=member.id or character_slug(member.name),
                name=member.name,
                description=member.description or member.background,
            )
        )
        seen.append(member.name)

    for number in numbers:
        episode = episodes.get(number)
        if episode is None:
            continue
        for cast_member in episode.characters:
            if not cast_member.name or cast_member.is_minor:
                continue
            if find_matching_name(cast_member.name, seen) is not None:
                continue
            roster.append(
                CharacterIdentity(
                    id=character_slug(cast_member.name),
                    name=cast_member.name,
                    description=cast_member.description,
                )
            )
            seen.append(cast_member.name)
            log.info(
                "Added episode cast member",
                character=cast_member.name,
                episode=number,
            )

    log.info("Resolved arc roster", characters=[c.name for c in roster])
    return roster


def filter_roster(
    roster: list[CharacterIdentity], requested: str
) -> list[CharacterIdentity]:
    """Narrow the roster to one character by id or name.

    Exact (case-insensitive) id or name wins; otherwise the fuzzy matcher
    picks the first roster entry that matches.
    """
    target = requested.strip().lower()
    if not target:
        raise CharacterNotFoundError(requested)
    for identity in roster:
        if identity.id.lower() == target or identity.name.lower() == target:
            return [identity]
    for identity in roster:
        if names_match(identity.name, requested) or names_match(
            identity.id.replace("-", " "), requested
        ):
            return [identity]
    raise CharacterNotFoundError(requested)
