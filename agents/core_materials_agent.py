# agents/core_materials_agent.py
from __future__ import annotations

from typing import Any

import structlog

from agents.phase_runner import GenerationPhaseRunner, params_for_phase
from config import settings
from models import ActingTechnique, CharacterContext, CoreResult, GenerationPhase
from prompt_data_getters import character_notes_for_prompt, scenes_for_prompt
from prompt_renderer import render_prompt

logger = structlog.get_logger(__name__)


class CoreMaterialsAgent:
    """Study guide, through-line, GOTE analysis and voice/physical work."""

    def __init__(self, runner: GenerationPhaseRunner, model_name: str | None = None):
        self.runner = runner
        self.model_name = model_name or settings.GENERATION_MODEL

    async def generate(
        self,
        context: CharacterContext,
        technique: ActingTechnique | None = None,
        log: Any | None = None,
    ) -> CoreResult:
        log = log or logger
        prompt_scenes = scenes_for_prompt(context.scenes, self.model_name)
        prompt = render_prompt(
            "actor_materials/core_user.j2",
            {
                "context": context,
                "scenes": prompt_scenes,
                "character_notes": character_notes_for_prompt(context),
                "technique": technique,
            },
        )
        system_prompt = render_prompt("actor_materials/core_system.j2", {})
        result = await self.runner.run_phase(
            GenerationPhase.CORE,
            prompt,
            system_prompt,
            params_for_phase(GenerationPhase.CORE, model=self.model_name),
            CoreResult.fallback(context),
        )
        if not isinstance(result, CoreResult):
            result = CoreResult.fallback(context)

        if len(prompt_scenes) > settings.GOTE_BATCH_SIZE:
            batched = await self._batched_gote_analysis(
                context, prompt_scenes, technique, log
            )
            if batched:
                result = result.model_copy(update={"got_analysis": batched})
                log.info("GOTE analysis complete", analyzed_scenes=len(batched))
            else:
                log.warning(
                    "All GOTE batches failed; keeping single-call analysis",
                    analyzed_scenes=len(result.got_analysis),
                )
        return result

    async def _batched_gote_analysis(
        self,
        context: CharacterContext,
        prompt_scenes: list[dict[str, Any]],
        technique: ActingTechnique | None,
        log: Any,
    ) -> list[Any]:
        """Regenerate GOTE entries for every scene in fixed-size batches.

        Failed batches are skipped; the remaining batches still contribute.
        """
        size = settings.GOTE_BATCH_SIZE
        batches = [
            prompt_scenes[i : i + size] for i in range(0, len(prompt_scenes), size)
        ]
        log.info(
            "Batching GOTE analysis",
            scene_count=len(prompt_scenes),
            batch_count=len(batches),
        )
        system_prompt = render_prompt("actor_materials/gote_batch_system.j2", {})
        params = params_for_phase(
            GenerationPhase.CORE, batch=True, model=self.model_name
        )

        collected: list[Any] = []
        for number, batch in enumerate(batches, start=1):
            prompt = render_prompt(
                "actor_materials/gote_batch_user.j2",
                {
                    "context": context,
                    "scenes": batch,
                    "technique": technique,
                    "batch_number": number,
                    "total_batches": len(batches),
                },
            )
            parsed = await self.runner.request_json(
                prompt,
                system_prompt,
                params,
                allow_array=True,
                phase=GenerationPhase.CORE.value,
                gote_batch=number,
            )
            entries: Any = None
            if isinstance(parsed, dict):
                entries = parsed.get("gotAnalysis")
            elif isinstance(parsed, list):
                entries = parsed
            if isinstance(entries, list):
                collected.extend(entries)
                log.debug("GOTE batch complete", gote_batch=number, entries=len(entries))
            else:
                log.warning("GOTE batch skipped", gote_batch=number)
        return collected
