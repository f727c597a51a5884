# prompt_data_getters.py
"""
Helper functions to prepare specific data snippets for generation prompts.
These functions select and format parts of a character context so templates
stay free of filtering logic.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

import structlog

from config import settings
from core.llm_interface import truncate_text_by_tokens
from models import (
    CharacterContext,
    CoreResult,
    SceneReference,
    StoryBibleCharacter,
)
from utils.name_matching import name_appears_in_text, names_match

logger = structlog.get_logger(__name__)


def scene_for_prompt(scene: SceneReference, model_name: str) -> dict[str, Any]:
    """Flatten one scene into template data, truncating long scene text."""
    return {
        "episode_number": scene.episode_number,
        "scene_number": scene.scene_number,
        "heading": scene.heading or "No heading",
        "location": scene.location or "Not specified",
        "time_of_day": scene.time_of_day or "Not specified",
        "pre_prod_notes": scene.pre_prod_notes,
        "director_notes": scene.director_notes,
        "character_notes": scene.character_notes,
        "blocking": scene.blocking,
        "emotional_beats": list(scene.emotional_beats),
        "text": truncate_text_by_tokens(
            scene.text, model_name, settings.MAX_SCENE_PROMPT_TOKENS
        ),
    }


def scenes_for_prompt(
    scenes: Iterable[SceneReference], model_name: str
) -> list[dict[str, Any]]:
    return [scene_for_prompt(scene, model_name) for scene in scenes]


def scenes_shared_with(
    context: CharacterContext, other_names: Sequence[str]
) -> list[SceneReference]:
    """Return the context's scenes in which at least one of ``other_names`` appears."""
    shared: list[SceneReference] = []
    for scene in context.scenes:
        if not scene.text:
            continue
        if not name_appears_in_text(context.name, scene.text):
            continue
        if any(name_appears_in_text(name, scene.text) for name in other_names):
            shared.append(scene)
    return shared


def core_summary_for_prompt(core: CoreResult) -> dict[str, Any]:
    """Condense the core phase output for seeding the relationship prompt."""
    objectives = [
        item.get("objective")
        for item in core.scene_breakdowns
        if isinstance(item, dict) and item.get("objective")
    ]
    return {
        "super_objective": core.through_line.super_objective,
        "character_arc": core.study_guide.character_arc,
        "motivations": list(core.study_guide.motivations),
        "internal_conflicts": list(core.study_guide.internal_conflicts),
        "scene_objectives": objectives[:10],
    }


def character_descriptions(
    names: Iterable[str], cast: Sequence[StoryBibleCharacter]
) -> list[dict[str, str]]:
    """Pair each name with its story-bible description when one exists."""
    described: list[dict[str, str]] = []
    for name in names:
        match = next((c for c in cast if names_match(name, c.name)), None)
        description = ""
        if match is not None:
            description = match.description or match.background
        described.append(
            {"name": name, "description": description or "Character in story"}
        )
    return described


def character_notes_for_prompt(context: CharacterContext) -> list[dict[str, Any]]:
    return [
        note.model_dump(by_alias=False)
        for note in context.character_notes
        if note.notes
        or note.character_motivation
        or note.emotional_state
        or note.objectives
    ]
