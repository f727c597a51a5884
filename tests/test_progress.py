# tests/test_progress.py
import pytest
from models import GenerationPhase, ProgressEvent, ProgressKind

from orchestration.progress import ProgressChannel, character_bounds, phase_percentage


def test_character_bounds():
    assert character_bounds(1, 4) == (25.0, 50.0)


def test_phase_percentages_stay_below_character_end():
    assert phase_percentage(0, 1, GenerationPhase.CORE) == pytest.approx(100 / 3)
    assert phase_percentage(0, 1, GenerationPhase.PRACTICE) == pytest.approx(99.0)
    # A narrow character span keeps a proportional gap below its boundary.
    end = character_bounds(0, 300)[1]
    assert phase_percentage(0, 300, GenerationPhase.PRACTICE) < end


@pytest.mark.asyncio
async def test_channel_delivers_in_order_to_sync_sink():
    received = []
    async with ProgressChannel(received.append) as channel:
        channel.character_started("Jace", 0, 2)
        channel.phase_started("Jace", 0, 2, GenerationPhase.CORE)
        channel.character_completed("Jace", 0, 2)
        channel.completed()
    assert [e.kind for e in received] == [
        ProgressKind.CHARACTER,
        ProgressKind.PHASE,
        ProgressKind.CHARACTER,
        ProgressKind.COMPLETE,
    ]
    assert received[1].message == "Jace: Generating study guide & scene analysis"
    assert received[-1].percentage == 100.0


@pytest.mark.asyncio
async def test_channel_clamps_and_seals():
    received = []

    async def sink(event):
        received.append(event.percentage)

    async with ProgressChannel(sink) as channel:
        channel.emit(ProgressEvent(kind=ProgressKind.PHASE, message="a", percentage=40))
        channel.emit(ProgressEvent(kind=ProgressKind.PHASE, message="b", percentage=10))
        channel.seal()
        channel.completed()
    assert received == [40, 40]


@pytest.mark.asyncio
async def test_failing_sink_does_not_stop_delivery():
    seen = []

    def sink(event):
        seen.append(event.message)
        raise RuntimeError("ui gone")

    async with ProgressChannel(sink) as channel:
        channel.character_started("Jace", 0, 1)
        channel.completed()
    assert seen == ["Starting Jace", "Generation complete"]
