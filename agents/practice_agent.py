# agents/practice_agent.py
from __future__ import annotations

from typing import Any

import structlog

from agents.phase_runner import GenerationPhaseRunner, params_for_phase
from config import settings
from models import ActingTechnique, CharacterContext, GenerationPhase, PracticeResult
from prompt_data_getters import scenes_for_prompt
from prompt_renderer import render_prompt

logger = structlog.get_logger(__name__)


class PracticeAgent:
    """Monologues, key scenes, on-set prep and technique exercises."""

    def __init__(self, runner: GenerationPhaseRunner, model_name: str | None = None):
        self.runner = runner
        self.model_name = model_name or settings.GENERATION_MODEL

    async def generate(
        self,
        context: CharacterContext,
        technique: ActingTechnique | None = None,
        log: Any | None = None,
    ) -> PracticeResult:
        log = log or logger
        prompt = render_prompt(
            "actor_materials/practice_user.j2",
            {
                "context": context,
                "scenes": scenes_for_prompt(context.scenes, self.model_name),
                "technique": technique,
            },
        )
        system_prompt = render_prompt("actor_materials/practice_system.j2", {})
        result = await self.runner.run_phase(
            GenerationPhase.PRACTICE,
            prompt,
            system_prompt,
            params_for_phase(GenerationPhase.PRACTICE, model=self.model_name),
            PracticeResult.fallback(context),
        )
        if not isinstance(result, PracticeResult):
            result = PracticeResult.fallback(context)
        log.debug(
            "Practice materials ready",
            monologues=len(result.monologues),
            key_scenes=len(result.key_scenes),
        )
        return result
