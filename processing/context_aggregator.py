# processing/context_aggregator.py
"""Gather everything the arc says about one character into a CharacterContext.

Scenes are found in two passes per episode: first the script breakdown,
whose cast lists are the most reliable attribution, then the episode's own
scenes for anything the breakdown missed. Scene text prefers the breakdown's
linked screenplay, then the episode screenplay, then the narrative content.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from config import settings
from models import (
    CharacterContext,
    CharacterIdentity,
    CharacterNote,
    Episode,
    EpisodeScene,
    PreProductionRecord,
    SceneReference,
    ScriptBreakdownScene,
    StoryBible,
    StoryBibleCharacter,
)
from processing.screenplay_scanner import (
    extract_character_names,
    extract_dialogue_lines,
)
from utils.name_matching import dedupe_names, name_appears_in_text, names_match

logger = structlog.get_logger(__name__)


def resolve_scene_text(
    breakdown_scene: ScriptBreakdownScene | None,
    episode_scene: EpisodeScene | None,
) -> str:
    """Return the first non-empty of linked content, screenplay, content."""
    if breakdown_scene is not None and breakdown_scene.linked_scene_content.strip():
        return breakdown_scene.linked_scene_content
    if episode_scene is not None:
        if episode_scene.screenplay.strip():
            return episode_scene.screenplay
        if episode_scene.content.strip():
            return episode_scene.content
    return ""


def find_story_bible_character(
    name: str, cast: Iterable[StoryBibleCharacter]
) -> StoryBibleCharacter | None:
    """Exact case-insensitive match first, then the fuzzy matcher."""
    members = [c for c in cast if c.name]
    lowered = name.strip().lower()
    for member in members:
        if member.name.strip().lower() == lowered:
            return member
    for member in members:
        if names_match(name, member.name):
            return member
    return None


class _SceneCollector:
    """Accumulates scenes, dialogue and co-occurring names for one character."""

    def __init__(self, name: str, log: Any):
        self.name = name
        self.log = log
        self.scenes: list[SceneReference] = []
        self.dialogue: list[str] = []
        self.raw_others: list[str] = []
        self.from_breakdown = 0
        self._seen: set[tuple[int, int | None]] = set()

    def add(
        self,
        episode_number: int,
        scene_number: int | None,
        text: str,
        episode_scene: EpisodeScene | None,
        breakdown_scene: ScriptBreakdownScene | None,
        pre_prod: PreProductionRecord | None,
        source: str,
    ) -> None:
        key = (episode_number, scene_number)
        if key in self._seen:
            return
        self._seen.add(key)

        notes = pre_prod.find_scene_notes(scene_number) if pre_prod else None
        self.scenes.append(
            SceneReference(
                episode_number=episode_number,
                scene_number=scene_number,
                text=text,
                heading=(episode_scene.heading if episode_scene else "")
                or (breakdown_scene.scene_title if breakdown_scene else ""),
                location=(episode_scene.location if episode_scene else "")
                or (breakdown_scene.location if breakdown_scene else ""),
                time_of_day=(episode_scene.time_of_day if episode_scene else "")
                or (breakdown_scene.time_of_day if breakdown_scene else ""),
                pre_prod_notes=notes.notes if notes else "",
                director_notes=notes.director_notes if notes else "",
                character_notes=notes.character_notes if notes else "",
                blocking=notes.blocking if notes else "",
                emotional_beats=tuple(notes.emotional_beats) if notes else (),
                source=source,
            )
        )
        if source == "breakdown":
            self.from_breakdown += 1
        self.log.debug(
            "Scene attributed",
            episode=episode_number,
            scene=scene_number,
            source=source,
        )

        speakers = extract_character_names(text)
        lines = extract_dialogue_lines(text, self.name)
        if not lines:
            # Cues often carry only the first name ("JACE" for "Jace Castro").
            cue = next((s for s in speakers if names_match(s, self.name)), None)
            if cue is not None:
                lines = extract_dialogue_lines(text, cue)
        self.dialogue.extend(lines)
        if breakdown_scene is not None:
            self.raw_others.extend(breakdown_scene.cast_names)
        self.raw_others.extend(speakers)


def _collect_breakdown_scenes(
    collector: _SceneCollector,
    episode_number: int,
    episode: Episode | None,
    pre_prod: PreProductionRecord | None,
) -> None:
    if pre_prod is None:
        return
    for breakdown_scene in pre_prod.breakdown_scenes:
        if not any(names_match(n, collector.name) for n in breakdown_scene.cast_names):
            continue
        episode_scene = (
            episode.find_scene(breakdown_scene.scene_number) if episode else None
        )
        text = resolve_scene_text(breakdown_scene, episode_scene)
        if not text:
            collector.log.warning(
                "Character listed in breakdown but scene has no text",
                episode=episode_number,
                scene=breakdown_scene.scene_number,
            )
            continue
        collector.add(
            episode_number,
            breakdown_scene.scene_number,
            text,
            episode_scene,
            breakdown_scene,
            pre_prod,
            "breakdown",
        )


def _collect_episode_scenes(
    collector: _SceneCollector,
    episode_number: int,
    episode: Episode | None,
    pre_prod: PreProductionRecord | None,
) -> None:
    if episode is None:
        return
    for episode_scene in episode.scenes:
        breakdown_scene = (
            pre_prod.find_breakdown_scene(episode_scene.scene_number)
            if pre_prod
            else None
        )
        text = resolve_scene_text(breakdown_scene, episode_scene)
        if not text or not name_appears_in_text(collector.name, text):
            continue
        collector.add(
            episode_number,
            episode_scene.scene_number,
            text,
            episode_scene,
            breakdown_scene,
            pre_prod,
            "episode",
        )


def _character_note(
    name: str, episode_number: int, pre_prod: PreProductionRecord | None
) -> CharacterNote | None:
    if pre_prod is None:
        return None
    for note in pre_prod.characters:
        if note.name and names_match(note.name, name):
            return CharacterNote(
                episode_number=episode_number,
                notes=note.notes,
                character_motivation=note.character_motivation,
                emotional_state=note.emotional_state,
                objectives=tuple(note.objectives),
                relationships=tuple(note.relationships),
            )
    return None


def _episode_relationships(name: str, episode: Episode | None) -> list[Any]:
    if episode is None:
        return []
    for member in episode.characters:
        if member.name and names_match(member.name, name):
            return list(member.relationships)
    return []


def aggregate(
    identity: CharacterIdentity,
    story_bible: StoryBible,
    episodes: Mapping[int, Episode],
    pre_production: Mapping[int, PreProductionRecord],
    episode_numbers: Iterable[int],
    arc_title: str = "",
    log: Any | None = None,
) -> CharacterContext:
    """Build the context bundle for one character across the arc's episodes.

    Missing episodes or pre-production records are skipped silently; an
    empty result is reported as a warning rather than an error.
    """
    log = log or logger
    numbers = tuple(episode_numbers)
    collector = _SceneCollector(identity.name, log)
    relationships: list[Any] = []
    notes: list[CharacterNote] = []

    for number in numbers:
        episode = episodes.get(number)
        pre_prod = pre_production.get(number)

        _collect_breakdown_scenes(collector, number, episode, pre_prod)
        _collect_episode_scenes(collector, number, episode, pre_prod)

        note = _character_note(identity.name, number, pre_prod)
        if note is not None:
            notes.append(note)
        relationships.extend(_episode_relationships(identity.name, episode))

    others = dedupe_names(collector.raw_others, exclude=identity.name)
    bible_entry = find_story_bible_character(identity.name, story_bible.main_characters)
    dialogue = collector.dialogue[: settings.MAX_CONTEXT_DIALOGUE_LINES]

    log.info(
        "Context gathered",
        scenes=len(collector.scenes),
        scenes_from_breakdown=collector.from_breakdown,
        scenes_from_episode=len(collector.scenes) - collector.from_breakdown,
        dialogue_lines=len(dialogue),
        other_characters=len(others),
        relationships=len(relationships),
        character_notes=len(notes),
    )
    if not collector.scenes:
        log.warning(
            "No scenes found for character",
            episodes=list(numbers),
        )
    elif not others:
        log.warning("No other characters found in character's scenes")

    return CharacterContext(
        identity=identity,
        deep_profile=bible_entry.deep_profile() if bible_entry else None,
        scenes=tuple(collector.scenes),
        dialogue_lines=tuple(dialogue),
        other_character_names=tuple(others),
        relationships=tuple(relationships),
        episode_numbers=numbers,
        character_notes=tuple(notes),
        story_title=story_bible.title,
        logline=story_bible.logline,
        genre=story_bible.genre or "Drama",
        themes=tuple(story_bible.themes),
        setting=story_bible.world_building.setting,
        arc_title=arc_title,
    )
