# agents/phase_runner.py
"""Single structured-generation calls with parse/repair and per-phase fallback."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from pydantic import ValidationError

from config import settings
from core.llm_interface import GenerationProvider
from models import (
    CoreResult,
    GenerationParams,
    GenerationPhase,
    PhaseResult,
    PracticeResult,
    RelationshipResult,
)
from parsing import ParseError, parse_json_payload

logger = structlog.get_logger(__name__)

PHASE_RESULT_TYPES: dict[GenerationPhase, type[PhaseResult]] = {
    GenerationPhase.CORE: CoreResult,
    GenerationPhase.RELATIONSHIPS: RelationshipResult,
    GenerationPhase.PRACTICE: PracticeResult,
}


def params_for_phase(
    phase: GenerationPhase, batch: bool = False, model: str | None = None
) -> GenerationParams:
    """Build generation parameters for a phase from settings."""
    temperature = {
        GenerationPhase.CORE: settings.TEMPERATURE_CORE,
        GenerationPhase.RELATIONSHIPS: settings.TEMPERATURE_RELATIONSHIPS,
        GenerationPhase.PRACTICE: settings.TEMPERATURE_PRACTICE,
    }[phase]
    max_tokens = {
        GenerationPhase.CORE: settings.MAX_TOKENS_CORE,
        GenerationPhase.RELATIONSHIPS: settings.MAX_TOKENS_RELATIONSHIPS,
        GenerationPhase.PRACTICE: settings.MAX_TOKENS_PRACTICE,
    }[phase]
    if batch:
        max_tokens = settings.MAX_TOKENS_BATCH
    return GenerationParams(
        temperature=temperature,
        max_tokens=max_tokens,
        model=model or settings.GENERATION_MODEL,
    )


class GenerationPhaseRunner:
    """Issue one generation request and always hand back a usable result.

    Provider failures, unparsable output and payloads of the wrong shape all
    end in the phase fallback. Only cancellation propagates.
    """

    def __init__(self, provider: GenerationProvider, log: Any | None = None):
        self.provider = provider
        self.log = log or logger

    async def request_json(
        self,
        prompt: str,
        system_prompt: str,
        params: GenerationParams,
        allow_array: bool = False,
        **log_fields: Any,
    ) -> Any | None:
        """Return the parsed JSON value of one call, or None on any failure."""
        try:
            raw = await self.provider.generate(prompt, system_prompt, params)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.log.warning(
                "Generation provider call failed",
                error=str(exc),
                error_type=type(exc).__name__,
                **log_fields,
            )
            return None

        try:
            return parse_json_payload(raw, allow_array=allow_array)
        except ParseError as exc:
            self.log.warning(
                "Unparsable generation output",
                error=str(exc),
                response_length=len(raw or ""),
                response_preview=(raw or "")[:200],
                **log_fields,
            )
            return None

    async def run_phase(
        self,
        phase: GenerationPhase,
        prompt: str,
        system_prompt: str,
        params: GenerationParams,
        fallback: PhaseResult,
    ) -> PhaseResult:
        result_type = PHASE_RESULT_TYPES[phase]
        parsed = await self.request_json(
            prompt,
            system_prompt,
            params,
            allow_array=phase is GenerationPhase.RELATIONSHIPS,
            phase=phase.value,
        )
        if parsed is None:
            return self._fallback(phase, fallback, "no_parsable_output")

        if not isinstance(parsed, dict) and not (
            phase is GenerationPhase.RELATIONSHIPS and isinstance(parsed, list)
        ):
            return self._fallback(
                phase, fallback, f"unexpected_json_type:{type(parsed).__name__}"
            )

        try:
            return result_type.model_validate(parsed)
        except ValidationError as exc:
            return self._fallback(phase, fallback, f"validation_error:{exc.error_count()}")

    def _fallback(
        self, phase: GenerationPhase, fallback: PhaseResult, reason: str
    ) -> PhaseResult:
        self.log.warning("Using phase fallback", phase=phase.value, reason=reason)
        return fallback
