# tests/test_core_materials_agent.py
import json
from unittest.mock import AsyncMock

import pytest
from config import settings
from models import (
    ActingTechnique,
    CharacterContext,
    CharacterIdentity,
    CoreResult,
    SceneReference,
)

from agents.core_materials_agent import CoreMaterialsAgent
from agents.phase_runner import GenerationPhaseRunner


def _context(scene_count):
    scenes = tuple(
        SceneReference(episode_number=1, scene_number=i, text=f"JACE\nLine {i}.")
        for i in range(1, scene_count + 1)
    )
    return CharacterContext(
        identity=CharacterIdentity(id="jace", name="Jace"), scenes=scenes
    )


@pytest.mark.asyncio
async def test_single_call_when_few_scenes():
    provider = AsyncMock()
    provider.generate = AsyncMock(
        return_value=json.dumps({"gotAnalysis": [{"scene": 1}]})
    )
    agent = CoreMaterialsAgent(GenerationPhaseRunner(provider), "test-model")

    result = await agent.generate(_context(2), ActingTechnique.MEISNER)

    assert provider.generate.await_count == 1
    assert result.got_analysis == [{"scene": 1}]
    prompt = provider.generate.await_args.args[0]
    assert "Meisner" in prompt


@pytest.mark.asyncio
async def test_gote_batches_replace_analysis(monkeypatch):
    monkeypatch.setattr(settings, "GOTE_BATCH_SIZE", 2)
    responses = [
        json.dumps({"gotAnalysis": [{"scene": "first-call"}]}),
        json.dumps({"gotAnalysis": [{"scene": 1}, {"scene": 2}]}),
        "not json at all",
        json.dumps([{"scene": 5}]),
    ]
    provider = AsyncMock()
    provider.generate = AsyncMock(side_effect=responses)
    agent = CoreMaterialsAgent(GenerationPhaseRunner(provider), "test-model")

    result = await agent.generate(_context(5))

    assert provider.generate.await_count == 4
    assert result.got_analysis == [{"scene": 1}, {"scene": 2}, {"scene": 5}]


@pytest.mark.asyncio
async def test_all_batches_failing_keeps_first_call(monkeypatch):
    monkeypatch.setattr(settings, "GOTE_BATCH_SIZE", 2)
    provider = AsyncMock()
    provider.generate = AsyncMock(
        side_effect=[json.dumps({"gotAnalysis": [{"scene": "kept"}]})]
        + [RuntimeError("down")] * 2
    )
    agent = CoreMaterialsAgent(GenerationPhaseRunner(provider), "test-model")

    result = await agent.generate(_context(3))

    assert result.got_analysis == [{"scene": "kept"}]


@pytest.mark.asyncio
async def test_core_failure_returns_fallback():
    provider = AsyncMock()
    provider.generate = AsyncMock(side_effect=RuntimeError("down"))
    agent = CoreMaterialsAgent(GenerationPhaseRunner(provider), "test-model")
    context = _context(1)

    result = await agent.generate(context)

    assert result == CoreResult.fallback(context)
