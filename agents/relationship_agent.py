# agents/relationship_agent.py
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog

from agents.phase_runner import GenerationPhaseRunner, params_for_phase
from config import settings
from models import (
    CharacterContext,
    CoreResult,
    GenerationPhase,
    RelationshipResult,
    StoryBibleCharacter,
)
from processing.screenplay_constants import (
    LETTER_CUE_PATTERNS,
    RELATIONSHIP_NAME_DENYLIST,
)
from prompt_data_getters import (
    character_descriptions,
    core_summary_for_prompt,
    scenes_for_prompt,
    scenes_shared_with,
)
from prompt_renderer import render_prompt
from utils.name_matching import find_matching_name, names_match

logger = structlog.get_logger(__name__)

_SUMMARY_LIST_KEYS = (
    "primaryAllies",
    "primaryConflicts",
    "romanticInterests",
    "familyConnections",
    "mentorFigures",
    "complexDynamics",
)
_SOCIAL_CIRCLE_KEYS = ("innerCircle", "outerCircle", "adversaries", "unknownQuantities")
_LOYALTY_LIST_KEYS = ("conditional", "wouldBetray")


def map_to_story_bible(
    other_names: Sequence[str], self_name: str, cast: Sequence[StoryBibleCharacter]
) -> tuple[list[str], list[str]]:
    """Translate scene names to story-bible spellings.

    Returns the unique matched story-bible names in first-seen order and the
    names that matched nobody.
    """
    cast_names = [c.name for c in cast if c.name]
    matched: list[str] = []
    unmatched: list[str] = []
    for name in other_names:
        if names_match(name, self_name):
            continue
        canonical = find_matching_name(name, cast_names)
        if canonical is None:
            unmatched.append(name)
        elif canonical not in matched and not names_match(canonical, self_name):
            matched.append(canonical)
    return matched, unmatched


def _entry_name(entry: dict[str, Any]) -> str:
    name = entry.get("characterName") or entry.get("character") or ""
    return name.strip() if isinstance(name, str) else ""


def filter_relationship_entries(
    entries: Sequence[Any], cast: Sequence[StoryBibleCharacter], log: Any = logger
) -> list[dict[str, Any]]:
    """Drop direction-like or unknown names and normalize kept names.

    Without any story-bible characters to check against, only the
    direction filter applies.
    """
    cast_names = [c.name for c in cast if c.name]
    kept: list[dict[str, Any]] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        name = _entry_name(entry)
        if not name:
            continue
        upper = name.upper()
        if any(token in upper for token in RELATIONSHIP_NAME_DENYLIST):
            continue
        if LETTER_CUE_PATTERNS[0].match(name):
            continue
        if not cast_names:
            kept.append({**entry, "characterName": name})
            continue
        canonical = find_matching_name(name, cast_names)
        if canonical is None:
            log.debug("Filtered relationship outside story bible", other=name)
            continue
        kept.append({**entry, "characterName": canonical})

    if len(kept) < len(entries):
        log.info(
            "Filtered relationship entries",
            kept=len(kept),
            dropped=len(entries) - len(kept),
        )
    return kept


class RelationshipAgent:
    """Relationship map generation, seeded with the core phase output."""

    def __init__(self, runner: GenerationPhaseRunner, model_name: str | None = None):
        self.runner = runner
        self.model_name = model_name or settings.GENERATION_MODEL

    async def generate(
        self,
        context: CharacterContext,
        core: CoreResult,
        cast: Sequence[StoryBibleCharacter],
        log: Any | None = None,
    ) -> RelationshipResult:
        log = log or logger
        matched, unmatched = map_to_story_bible(
            context.other_character_names, context.name, cast
        )
        log.info(
            "Relationship candidates resolved",
            other_characters=len(context.other_character_names),
            matched_to_story_bible=len(matched),
            unmatched=len(unmatched),
        )
        if not matched and context.other_character_names and cast:
            log.warning(
                "No scene characters matched the story bible",
                scene_characters=list(context.other_character_names[:10]),
            )

        if cast:
            others = matched
        else:
            others = [
                n
                for n in context.other_character_names
                if not names_match(n, context.name)
            ]
        core_summary = core_summary_for_prompt(core)
        system_prompt = render_prompt("actor_materials/relationships_system.j2", {})

        if len(others) > settings.RELATIONSHIP_BATCH_SIZE:
            result = await self._generate_batched(
                context, others, core_summary, system_prompt, cast, log
            )
        else:
            prompt = render_prompt(
                "actor_materials/relationships_user.j2",
                {
                    "context": context,
                    "others": character_descriptions(others, cast),
                    "core_summary": core_summary,
                    "scenes": scenes_for_prompt(context.scenes, self.model_name),
                },
            )
            phase_result = await self.runner.run_phase(
                GenerationPhase.RELATIONSHIPS,
                prompt,
                system_prompt,
                params_for_phase(GenerationPhase.RELATIONSHIPS, model=self.model_name),
                RelationshipResult.fallback(context),
            )
            if not isinstance(phase_result, RelationshipResult):
                phase_result = RelationshipResult.fallback(context)
            result = phase_result.model_copy(
                update={
                    "relationship_map": filter_relationship_entries(
                        phase_result.relationship_map, cast, log
                    )
                }
            )

        log.info(
            "Relationship generation complete",
            relationships=len(result.relationship_map),
        )
        return result

    async def _generate_batched(
        self,
        context: CharacterContext,
        others: list[str],
        core_summary: dict[str, Any],
        system_prompt: str,
        cast: Sequence[StoryBibleCharacter],
        log: Any,
    ) -> RelationshipResult:
        size = settings.RELATIONSHIP_BATCH_SIZE
        batches = [others[i : i + size] for i in range(0, len(others), size)]
        log.info(
            "Batching relationship generation",
            characters=len(others),
            batch_count=len(batches),
        )
        params = params_for_phase(
            GenerationPhase.RELATIONSHIPS, batch=True, model=self.model_name
        )

        relationship_map: list[dict[str, Any]] = []
        summary: dict[str, list[Any]] = {key: [] for key in _SUMMARY_LIST_KEYS}
        social_circle: dict[str, list[Any]] = {key: [] for key in _SOCIAL_CIRCLE_KEYS}
        loyalty_map: dict[str, Any] = {
            "mostLoyal": "",
            "conditional": [],
            "wouldBetray": [],
        }

        for number, batch in enumerate(batches, start=1):
            shared = scenes_shared_with(context, batch)
            log.debug("Relationship batch scenes", batch=number, scenes=len(shared))
            prompt = render_prompt(
                "actor_materials/relationships_batch_user.j2",
                {
                    "context": context,
                    "others": character_descriptions(batch, cast),
                    "core_summary": core_summary,
                    "scenes": scenes_for_prompt(shared, self.model_name),
                    "batch_number": number,
                    "total_batches": len(batches),
                },
            )
            parsed = await self.runner.request_json(
                prompt,
                system_prompt,
                params,
                allow_array=True,
                phase=GenerationPhase.RELATIONSHIPS.value,
                relationship_batch=number,
            )
            if parsed is None:
                log.warning("Relationship batch skipped", batch=number)
                continue
            if isinstance(parsed, list):
                relationship_map.extend(filter_relationship_entries(parsed, cast, log))
                continue
            if not isinstance(parsed, dict):
                log.warning("Relationship batch returned unexpected JSON", batch=number)
                continue

            entries = parsed.get("relationshipMap")
            if isinstance(entries, list):
                relationship_map.extend(filter_relationship_entries(entries, cast, log))
            _extend_lists(summary, parsed.get("relationshipSummary"), _SUMMARY_LIST_KEYS)
            _extend_lists(social_circle, parsed.get("socialCircle"), _SOCIAL_CIRCLE_KEYS)
            loyalty = parsed.get("loyaltyMap")
            if isinstance(loyalty, dict):
                if loyalty.get("mostLoyal") and not loyalty_map["mostLoyal"]:
                    loyalty_map["mostLoyal"] = loyalty["mostLoyal"]
                _extend_lists(loyalty_map, loyalty, _LOYALTY_LIST_KEYS)

        if not relationship_map:
            log.warning(
                "No relationships generated despite story-bible matches",
                candidates=len(others),
            )
        return RelationshipResult(
            relationship_map=relationship_map,
            relationship_summary=summary,
            social_circle=social_circle,
            loyalty_map=loyalty_map,
        )


def _extend_lists(target: dict[str, Any], source: Any, keys: Sequence[str]) -> None:
    if not isinstance(source, dict):
        return
    for key in keys:
        value = source.get(key)
        if isinstance(value, list):
            target[key].extend(value)
