from __future__ import annotations

import asyncio
import time
from typing import Optional

from rich.console import Group
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from config import settings
from core.llm_interface import llm_service
from models import ProgressEvent, ProgressKind


class RichDisplayManager:
    """Live panel showing actor-materials progress; also usable as a progress sink."""

    def __init__(self, arc_label: str = "N/A") -> None:
        self.live: Optional[Live] = None
        self.group: Optional[Group] = None
        self.status_text_arc: Text = Text(f"Arc: {arc_label}")
        self.status_text_character: Text = Text("Character: N/A")
        self.status_text_step: Text = Text("Current Step: Initializing...")
        self.status_text_percentage: Text = Text("Progress: 0.0%")
        self.status_text_requests_per_minute: Text = Text("Requests/Min: 0.0")
        self.status_text_elapsed_time: Text = Text("Elapsed Time: 0s")
        self.run_start_time: float = 0.0
        self.last_event: Optional[ProgressEvent] = None
        self._stop_event: asyncio.Event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

        if settings.ENABLE_RICH_PROGRESS:
            self.group = Group(
                self.status_text_arc,
                self.status_text_character,
                self.status_text_step,
                self.status_text_percentage,
                self.status_text_requests_per_minute,
                self.status_text_elapsed_time,
            )
            self.live = Live(
                Panel(
                    self.group,
                    title="Actor Materials Progress",
                    border_style="blue",
                    expand=True,
                ),
                refresh_per_second=4,
                transient=False,
                redirect_stdout=False,
                redirect_stderr=False,
            )

    def start(self) -> None:
        self.run_start_time = time.time()
        if self.live:
            self.live.start()
            self._stop_event.clear()
            self._task = asyncio.create_task(self._auto_refresh())

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task:
            await self._task
            self._task = None
        if self.live and self.live.is_started:
            self.live.stop()

    async def _auto_refresh(self) -> None:
        while not self._stop_event.is_set():
            self.update()
            await asyncio.sleep(1)

    def handle_event(self, event: ProgressEvent) -> None:
        """Progress sink: record the event and refresh the panel."""
        self.last_event = event
        if event.kind is ProgressKind.COMPLETE:
            self.update(step=event.message, percentage=event.percentage)
            return
        character = None
        if event.character_name is not None and event.total_characters:
            position = (event.character_index or 0) + 1
            character = (
                f"{event.character_name} ({position}/{event.total_characters})"
            )
        self.update(
            character=character, step=event.message, percentage=event.percentage
        )

    def update(
        self,
        character: Optional[str] = None,
        step: Optional[str] = None,
        percentage: Optional[float] = None,
    ) -> None:
        if not (self.live and self.group):
            return
        if character is not None:
            self.status_text_character.plain = f"Character: {character}"
        if step is not None:
            self.status_text_step.plain = f"Current Step: {step}"
        if percentage is not None:
            self.status_text_percentage.plain = f"Progress: {percentage:.1f}%"
        elapsed_seconds = time.time() - self.run_start_time
        requests_per_minute = (
            llm_service.request_count / (elapsed_seconds / 60)
            if elapsed_seconds > 0
            else 0.0
        )
        self.status_text_requests_per_minute.plain = (
            f"Requests/Min: {requests_per_minute:.2f}"
        )
        self.status_text_elapsed_time.plain = (
            f"Elapsed Time: {time.strftime('%H:%M:%S', time.gmtime(elapsed_seconds))}"
        )
