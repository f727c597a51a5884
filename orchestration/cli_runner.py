# orchestration/cli_runner.py
"""Command-line runner for arc actor-materials generation."""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Sequence
from typing import Any

import structlog

from core.llm_interface import llm_service
from models import ActingTechnique, NarrativeArc
from orchestration.arc_materials_orchestrator import ArcMaterialsOrchestrator
from orchestration.errors import ActorMaterialsInputError, ArcNotFoundError
from storage.document_store import DocumentNotFoundError, FileDocumentStore
from ui.rich_display import RichDisplayManager
from utils.logging import setup_logging

logger = structlog.get_logger(__name__)


def arc_episode_numbers(arc: NarrativeArc) -> list[int]:
    """Episode numbers listed on a narrative arc (ints or episode objects)."""
    numbers: list[int] = []
    for entry in arc.episodes:
        value: Any = entry
        if isinstance(entry, dict):
            value = entry.get("episodeNumber", entry.get("episode_number"))
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            numbers.append(value)
        elif isinstance(value, str) and value.strip().isdigit():
            numbers.append(int(value))
    return numbers


def _install_cancel_handler(cancel_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    except NotImplementedError:  # pragma: no cover - Windows event loops
        logger.debug("SIGINT handler unavailable; Ctrl-C will abort immediately")


async def _run(
    store: FileDocumentStore,
    arc_index: int,
    episodes: Sequence[int] | None,
    character: str | None,
    technique: ActingTechnique | None,
) -> str | None:
    story_bible = await store.load_story_bible()
    arcs = story_bible.narrative_arcs
    if arc_index < 0 or arc_index >= len(arcs):
        raise ArcNotFoundError(arc_index, len(arcs))
    numbers = list(episodes) if episodes else arc_episode_numbers(arcs[arc_index])
    if not numbers:
        logger.warning("Arc lists no episodes; nothing to read", arc_index=arc_index)

    episode_docs = await store.load_episodes(numbers)
    pre_prod_docs = await store.load_pre_production(numbers)

    cancel_event = asyncio.Event()
    _install_cancel_handler(cancel_event)
    display = RichDisplayManager(arcs[arc_index].title or f"Arc {arc_index + 1}")
    display.start()
    try:
        bundle = await ArcMaterialsOrchestrator(llm_service).generate(
            story_bible,
            episode_docs,
            pre_prod_docs,
            arc_index,
            numbers,
            character_filter=character,
            technique=technique,
            progress=display.handle_event,
            cancel_event=cancel_event,
        )
    finally:
        await display.stop()
        await llm_service.aclose()

    path = await store.save_bundle(bundle)
    logger.info(
        "Token usage for run",
        requests=llm_service.request_count,
        **llm_service.usage.as_dict(),
    )
    return path


def run(
    project_dir: str,
    arc_index: int,
    episodes: Sequence[int] | None = None,
    character: str | None = None,
    technique: str | None = None,
    output_dir: str | None = None,
) -> int:
    """Generate and save one arc bundle; returns a process exit code."""
    setup_logging()
    store = FileDocumentStore(project_dir, output_dir)
    technique_value = ActingTechnique(technique) if technique else None
    try:
        path = asyncio.run(
            _run(store, arc_index, episodes, character, technique_value)
        )
    except (ActorMaterialsInputError, DocumentNotFoundError) as err:
        logger.error("Cannot generate actor materials", error=str(err))
        return 2
    except KeyboardInterrupt:
        logger.info("Actor materials generation interrupted")
        return 130
    except Exception as main_err:  # pragma: no cover - entry point catch
        logger.critical(
            "Actor materials generation encountered an unhandled exception",
            error=str(main_err),
            exc_info=True,
        )
        return 1
    logger.info("Actor materials written", path=path)
    return 0
