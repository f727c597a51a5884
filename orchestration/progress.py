# orchestration/progress.py
"""Progress accounting and the ordered channel that delivers events to a sink."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from models import GenerationPhase, ProgressEvent, ProgressKind

logger = structlog.get_logger(__name__)

ProgressSink = Callable[[ProgressEvent], Awaitable[None] | None]

_PHASE_COUNT = 3


def character_bounds(index: int, total: int) -> tuple[float, float]:
    """Start and end percentage of character ``index`` out of ``total``."""
    return 100 * index / total, 100 * (index + 1) / total


def phase_percentage(index: int, total: int, phase: GenerationPhase) -> float:
    """Percentage reported for a phase, held below the character's end boundary.

    The character-complete event is the only one allowed to reach the boundary.
    """
    start, end = character_bounds(index, total)
    raw = 100 * (index + (phase.index + 1) / _PHASE_COUNT) / total
    headroom = min(1.0, (end - start) / 6)
    return min(raw, end - headroom)


class ProgressChannel:
    """Single-consumer queue between the orchestrator and a progress sink.

    Events are delivered in emission order by one drain task. Percentages
    never decrease: a lower value is raised to the last one delivered. Once
    sealed, the channel silently drops new events.
    """

    def __init__(self, sink: ProgressSink | None = None, log: Any | None = None):
        self.sink = sink
        self.log = log or logger
        self._queue: asyncio.Queue[ProgressEvent | None] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._last_percentage = 0.0
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def last_percentage(self) -> float:
        return self._last_percentage

    def seal(self) -> None:
        self._sealed = True

    def emit(self, event: ProgressEvent) -> None:
        if self._sealed:
            return
        if event.percentage < self._last_percentage:
            event = event.model_copy(update={"percentage": self._last_percentage})
        self._last_percentage = event.percentage
        self._queue.put_nowait(event)

    def character_started(self, name: str, index: int, total: int) -> None:
        self.emit(
            ProgressEvent(
                kind=ProgressKind.CHARACTER,
                message=f"Starting {name}",
                percentage=character_bounds(index, total)[0],
                character_name=name,
                character_index=index,
                total_characters=total,
            )
        )

    def phase_started(
        self, name: str, index: int, total: int, phase: GenerationPhase
    ) -> None:
        self.emit(
            ProgressEvent(
                kind=ProgressKind.PHASE,
                message=f"{name}: {phase.label}",
                percentage=phase_percentage(index, total, phase),
                character_name=name,
                character_index=index,
                total_characters=total,
                phase=phase,
            )
        )

    def character_completed(self, name: str, index: int, total: int) -> None:
        self.emit(
            ProgressEvent(
                kind=ProgressKind.CHARACTER,
                message=f"Completed {name}",
                percentage=character_bounds(index, total)[1],
                character_name=name,
                character_index=index,
                total_characters=total,
            )
        )

    def completed(self) -> None:
        self.emit(
            ProgressEvent(
                kind=ProgressKind.COMPLETE,
                message="Generation complete",
                percentage=100.0,
            )
        )

    async def __aenter__(self) -> ProgressChannel:
        self._task = asyncio.create_task(self._drain())
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self._queue.put_nowait(None)
        if self._task is not None:
            await self._task

    async def _drain(self) -> None:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            if self.sink is None:
                continue
            try:
                outcome = self.sink(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:
                self.log.warning(
                    "Progress sink raised",
                    error=str(exc),
                    event_kind=event.kind.value,
                )
