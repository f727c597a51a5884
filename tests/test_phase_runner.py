# tests/test_phase_runner.py
import asyncio
from unittest.mock import AsyncMock

import pytest
from core.llm_interface import GenerationProviderError
from models import (
    CharacterContext,
    CharacterIdentity,
    CoreResult,
    GenerationPhase,
    PracticeResult,
    RelationshipResult,
)

from agents.phase_runner import GenerationPhaseRunner, params_for_phase


def _context():
    return CharacterContext(
        identity=CharacterIdentity(id="jace", name="Jace", description="Leader"),
        dialogue_lines=("one", "two"),
    )


def _provider(response=None, side_effect=None):
    provider = AsyncMock()
    provider.generate = AsyncMock(return_value=response, side_effect=side_effect)
    return provider


def test_params_for_phase_uses_batch_budget():
    params = params_for_phase(GenerationPhase.CORE, batch=True, model="m")
    assert params.max_tokens == 12000
    assert params.model == "m"
    assert params_for_phase(GenerationPhase.PRACTICE).max_tokens == 16000


@pytest.mark.asyncio
async def test_valid_payload_becomes_typed_result():
    runner = GenerationPhaseRunner(
        _provider('```json\n{"studyGuide": {"background": "x"}, "extraKey": 1}\n```')
    )
    result = await runner.run_phase(
        GenerationPhase.CORE,
        "prompt",
        "system",
        params_for_phase(GenerationPhase.CORE),
        CoreResult.fallback(_context()),
    )
    assert isinstance(result, CoreResult)
    assert result.study_guide.background == "x"
    assert result.got_analysis == []
    assert result.to_document()["extraKey"] == 1


@pytest.mark.asyncio
async def test_mistyped_fields_are_reset_to_empty():
    runner = GenerationPhaseRunner(
        _provider('{"monologues": "not a list", "wardrobeNotes": {"a": 1}}')
    )
    result = await runner.run_phase(
        GenerationPhase.PRACTICE,
        "prompt",
        "system",
        params_for_phase(GenerationPhase.PRACTICE),
        PracticeResult.fallback(),
    )
    assert result.monologues == []
    assert result.wardrobe_notes == {"a": 1}


@pytest.mark.asyncio
async def test_unparsable_output_uses_fallback():
    fallback = CoreResult.fallback(_context())
    runner = GenerationPhaseRunner(_provider("Sorry, I cannot help with that."))
    result = await runner.run_phase(
        GenerationPhase.CORE,
        "prompt",
        "system",
        params_for_phase(GenerationPhase.CORE),
        fallback,
    )
    assert result is fallback
    assert result.voice_patterns.key_phrases == ["one", "two"]


@pytest.mark.asyncio
async def test_provider_error_uses_fallback():
    fallback = PracticeResult.fallback()
    runner = GenerationPhaseRunner(
        _provider(side_effect=GenerationProviderError("boom", status_code=503))
    )
    result = await runner.run_phase(
        GenerationPhase.PRACTICE,
        "prompt",
        "system",
        params_for_phase(GenerationPhase.PRACTICE),
        fallback,
    )
    assert result is fallback
    assert result.on_set_prep.warm_up == ["Vocal warmups", "Physical warmups"]


@pytest.mark.asyncio
async def test_array_payload_only_for_relationships():
    runner = GenerationPhaseRunner(_provider('[{"characterName": "Mara"}, "junk"]'))
    result = await runner.run_phase(
        GenerationPhase.RELATIONSHIPS,
        "prompt",
        "system",
        params_for_phase(GenerationPhase.RELATIONSHIPS),
        RelationshipResult.fallback(),
    )
    assert isinstance(result, RelationshipResult)
    assert result.relationship_map == [{"characterName": "Mara"}]

    fallback = CoreResult.fallback()
    runner = GenerationPhaseRunner(_provider("[1, 2, 3]"))
    result = await runner.run_phase(
        GenerationPhase.CORE,
        "prompt",
        "system",
        params_for_phase(GenerationPhase.CORE),
        fallback,
    )
    assert result is fallback


@pytest.mark.asyncio
async def test_cancellation_propagates():
    runner = GenerationPhaseRunner(_provider(side_effect=asyncio.CancelledError()))
    with pytest.raises(asyncio.CancelledError):
        await runner.run_phase(
            GenerationPhase.CORE,
            "prompt",
            "system",
            params_for_phase(GenerationPhase.CORE),
            CoreResult.fallback(),
        )


def test_fallback_shapes_match_empty_shapes():
    for result_type in (CoreResult, RelationshipResult, PracticeResult):
        empty_keys = set(result_type.empty().to_document())
        fallback_keys = set(result_type.fallback(_context()).to_document())
        assert empty_keys == fallback_keys


@pytest.mark.asyncio
async def test_relationship_reply_with_bracketed_heading_is_parsed():
    runner = GenerationPhaseRunner(
        _provider(
            "[Relationship analysis]\n"
            '{"relationshipMap": [{"characterName": "Mara Quinn"}]}'
        )
    )
    result = await runner.run_phase(
        GenerationPhase.RELATIONSHIPS,
        "prompt",
        "system",
        params_for_phase(GenerationPhase.RELATIONSHIPS),
        RelationshipResult.fallback(_context()),
    )
    assert result.relationship_map == [{"characterName": "Mara Quinn"}]
