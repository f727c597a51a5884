# orchestration/arc_materials_orchestrator.py
"""Top-level controller producing an ArcMaterialsBundle for one narrative arc."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

import structlog

from agents.core_materials_agent import CoreMaterialsAgent
from agents.phase_runner import GenerationPhaseRunner
from agents.practice_agent import PracticeAgent
from agents.relationship_agent import RelationshipAgent
from config import settings
from core.llm_interface import GenerationProvider, llm_service
from models import (
    ActingTechnique,
    ArcMaterialsBundle,
    CharacterIdentity,
    CharacterMaterials,
    Episode,
    GenerationPhase,
    PreProductionRecord,
    StoryBible,
)
from orchestration.character_materials_runner import CharacterMaterialsRunner
from orchestration.errors import ArcNotFoundError
from orchestration.progress import ProgressChannel, ProgressSink
from orchestration.roster import filter_roster, resolve_roster
from processing.context_aggregator import aggregate

logger = structlog.get_logger(__name__)


def _coerce_documents(documents: Mapping[int, Any], model: Any) -> dict[int, Any]:
    # Callers may hand over raw decoded documents instead of models.
    coerced: dict[int, Any] = {}
    for number, doc in documents.items():
        if doc is None:
            continue
        coerced[int(number)] = doc if isinstance(doc, model) else model.model_validate(doc)
    return coerced


def bundle_id(story_bible_id: str, arc_index: int, generated_at: datetime) -> str:
    millis = int(generated_at.timestamp() * 1000)
    return f"actor-materials-{story_bible_id}-arc{arc_index}-{millis}"


class ArcMaterialsOrchestrator:
    """Resolve the arc roster and generate materials for each character in turn.

    Characters are processed one after another; within a character the three
    phases are strictly ordered. A character whose context cannot be built is
    logged and skipped. Cancellation stops new phases from starting, seals the
    progress channel and returns whatever characters already finished.
    """

    def __init__(
        self,
        provider: GenerationProvider | None = None,
        model_name: str | None = None,
        log: Any | None = None,
    ):
        self.provider = provider or llm_service
        self.log = log or logger
        self.model_name = model_name or settings.GENERATION_MODEL
        self.runner = GenerationPhaseRunner(self.provider, log=self.log)
        self.core_agent = CoreMaterialsAgent(self.runner, self.model_name)
        self.relationship_agent = RelationshipAgent(self.runner, self.model_name)
        self.practice_agent = PracticeAgent(self.runner, self.model_name)

    async def generate(
        self,
        story_bible: StoryBible | Mapping[str, Any],
        episodes: Mapping[int, Episode | Mapping[str, Any]],
        pre_production: Mapping[int, PreProductionRecord | Mapping[str, Any]],
        arc_index: int,
        episode_numbers: Iterable[int],
        character_filter: str | None = None,
        technique: ActingTechnique | None = None,
        progress: ProgressSink | None = None,
        cancel_event: asyncio.Event | None = None,
        story_bible_id: str | None = None,
    ) -> ArcMaterialsBundle:
        if not isinstance(story_bible, StoryBible):
            story_bible = StoryBible.model_validate(story_bible)
        episode_docs = _coerce_documents(episodes, Episode)
        pre_prod_docs = _coerce_documents(pre_production, PreProductionRecord)
        numbers = list(episode_numbers)
        log = self.log.bind(arc_index=arc_index)

        arcs = story_bible.narrative_arcs
        if arc_index < 0 or arc_index >= len(arcs):
            raise ArcNotFoundError(arc_index, len(arcs))
        arc = arcs[arc_index]
        arc_title = arc.title or f"Arc {arc_index + 1}"

        log.info(
            "Starting actor materials generation",
            episodes=numbers,
            technique=technique.value if technique else None,
            character_filter=character_filter,
        )
        roster = resolve_roster(story_bible, episode_docs, pre_prod_docs, numbers, log)
        if character_filter:
            roster = filter_roster(roster, character_filter)
            log.info("Single character mode", character=roster[0].name)

        materials: list[CharacterMaterials] = []
        async with ProgressChannel(progress, log) as channel:
            total = len(roster)
            for index, identity in enumerate(roster):
                if cancel_event is not None and cancel_event.is_set():
                    log.info("Generation cancelled", completed=len(materials))
                    channel.seal()
                    break
                result = await self._generate_character(
                    identity,
                    index,
                    total,
                    story_bible,
                    episode_docs,
                    pre_prod_docs,
                    numbers,
                    arc_title,
                    technique,
                    channel,
                    cancel_event,
                    log.bind(character=identity.name),
                )
                if result is not None:
                    materials.append(result)
                if cancel_event is not None and cancel_event.is_set():
                    log.info("Generation cancelled", completed=len(materials))
                    channel.seal()
                    break
            channel.completed()

        generated_at = datetime.now(timezone.utc)
        bible_id = story_bible_id or story_bible.id or "story-bible"
        bundle = ArcMaterialsBundle(
            id=bundle_id(bible_id, arc_index, generated_at),
            story_bible_id=bible_id,
            arc_index=arc_index,
            arc_title=arc_title,
            technique=technique,
            characters=tuple(materials),
            generated_at=generated_at,
            last_updated=generated_at,
        )
        log.info(
            "Actor materials generation complete",
            characters=len(materials),
            roster_size=len(roster),
            cancelled=channel.sealed,
        )
        return bundle

    async def _generate_character(
        self,
        identity: CharacterIdentity,
        index: int,
        total: int,
        story_bible: StoryBible,
        episodes: Mapping[int, Episode],
        pre_production: Mapping[int, PreProductionRecord],
        episode_numbers: list[int],
        arc_title: str,
        technique: ActingTechnique | None,
        channel: ProgressChannel,
        cancel_event: asyncio.Event | None,
        log: Any,
    ) -> CharacterMaterials | None:
        log.info(
            "Generating materials for character",
            position=index + 1,
            total=total,
        )
        channel.character_started(identity.name, index, total)

        def _on_phase(phase: GenerationPhase) -> None:
            channel.phase_started(identity.name, index, total, phase)

        try:
            context = aggregate(
                identity,
                story_bible,
                episodes,
                pre_production,
                episode_numbers,
                arc_title=arc_title,
                log=log,
            )
            runner = CharacterMaterialsRunner(
                context=context,
                core_agent=self.core_agent,
                relationship_agent=self.relationship_agent,
                practice_agent=self.practice_agent,
                story_bible_cast=story_bible.main_characters,
                technique=technique,
                cancel_event=cancel_event,
                on_phase=_on_phase,
                log=log,
            )
            result = await runner.run()
        except Exception as exc:
            log.error(
                "Error generating materials for character",
                error=str(exc),
                exc_info=True,
            )
            return None

        if result is None:
            return None
        if cancel_event is not None and cancel_event.is_set():
            # Keep the materials; a cancelled run emits no further events.
            channel.seal()
            log.info("Completed character after cancellation")
            return result
        channel.character_completed(identity.name, index, total)
        log.info("Completed character")
        return result


async def generate_arc_materials(
    story_bible: StoryBible | Mapping[str, Any],
    episodes: Mapping[int, Episode | Mapping[str, Any]],
    pre_production: Mapping[int, PreProductionRecord | Mapping[str, Any]],
    arc_index: int,
    episode_numbers: Iterable[int],
    character_filter: str | None = None,
    *,
    technique: ActingTechnique | None = None,
    provider: GenerationProvider | None = None,
    progress: ProgressSink | None = None,
    cancel_event: asyncio.Event | None = None,
    story_bible_id: str | None = None,
    log: Any | None = None,
) -> ArcMaterialsBundle:
    """Generate actor materials for every character of one arc."""
    orchestrator = ArcMaterialsOrchestrator(provider=provider, log=log)
    return await orchestrator.generate(
        story_bible,
        episodes,
        pre_production,
        arc_index,
        episode_numbers,
        character_filter=character_filter,
        technique=technique,
        progress=progress,
        cancel_event=cancel_event,
        story_bible_id=story_bible_id,
    )
