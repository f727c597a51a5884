# orchestration/character_materials_runner.py
from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

import structlog

from agents.core_materials_agent import CoreMaterialsAgent
from agents.practice_agent import PracticeAgent
from agents.relationship_agent import RelationshipAgent
from models import (
    ActingTechnique,
    CharacterContext,
    CharacterMaterials,
    CoreResult,
    GenerationPhase,
    PracticeResult,
    RelationshipResult,
    StoryBibleCharacter,
)

logger = structlog.get_logger(__name__)


class RunnerState(Enum):
    """States for one character's three-phase generation."""

    CORE = auto()
    RELATIONSHIPS = auto()
    PRACTICE = auto()
    FINISH = auto()
    CANCELLED = auto()


_PHASE_FOR_STATE = {
    RunnerState.CORE: GenerationPhase.CORE,
    RunnerState.RELATIONSHIPS: GenerationPhase.RELATIONSHIPS,
    RunnerState.PRACTICE: GenerationPhase.PRACTICE,
}


@dataclass
class CharacterMaterialsRunner:
    """Drive core -> relationships -> practice for a single character.

    Each phase sees the output of the one before it. The cancel event is
    checked before every phase; a cancelled run produces no materials.
    """

    context: CharacterContext
    core_agent: CoreMaterialsAgent
    relationship_agent: RelationshipAgent
    practice_agent: PracticeAgent
    story_bible_cast: Sequence[StoryBibleCharacter] = ()
    technique: ActingTechnique | None = None
    cancel_event: asyncio.Event | None = None
    on_phase: Callable[[GenerationPhase], None] | None = None
    log: Any = field(default=logger)
    state: RunnerState = RunnerState.CORE
    core: CoreResult | None = None
    relationships: RelationshipResult | None = None
    practice: PracticeResult | None = None

    @property
    def cancelled(self) -> bool:
        return self.state is RunnerState.CANCELLED

    async def run(self) -> CharacterMaterials | None:
        while self.state not in (RunnerState.FINISH, RunnerState.CANCELLED):
            if self.cancel_event is not None and self.cancel_event.is_set():
                self.log.info(
                    "Cancelled before phase",
                    phase=_PHASE_FOR_STATE[self.state].value,
                )
                self.state = RunnerState.CANCELLED
                break
            if self.on_phase is not None:
                self.on_phase(_PHASE_FOR_STATE[self.state])
            if self.state == RunnerState.CORE:
                await self._core()
            elif self.state == RunnerState.RELATIONSHIPS:
                await self._relationships()
            elif self.state == RunnerState.PRACTICE:
                await self._practice()

        if self.state is RunnerState.CANCELLED:
            return None
        if self.core is None or self.relationships is None or self.practice is None:
            raise RuntimeError(
                f"Runner for {self.context.name} finished without all phase results"
            )
        return CharacterMaterials.from_phases(
            self.context.identity,
            self.core,
            self.relationships,
            self.practice,
            self.technique,
        )

    async def _core(self) -> None:
        self.log.info("[1/3] Generating core materials", scenes=len(self.context.scenes))
        self.core = await self.core_agent.generate(
            self.context, self.technique, log=self.log
        )
        self.state = RunnerState.RELATIONSHIPS

    async def _relationships(self) -> None:
        self.log.info(
            "[2/3] Generating relationship dynamics",
            other_characters=len(self.context.other_character_names),
        )
        if self.core is None:
            raise RuntimeError("Relationship phase started before the core phase")
        self.relationships = await self.relationship_agent.generate(
            self.context, self.core, self.story_bible_cast, log=self.log
        )
        self.state = RunnerState.PRACTICE

    async def _practice(self) -> None:
        self.log.info("[3/3] Generating practice materials")
        self.practice = await self.practice_agent.generate(
            self.context, self.technique, log=self.log
        )
        self.state = RunnerState.FINISH
