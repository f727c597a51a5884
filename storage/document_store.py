# storage/document_store.py
"""Read project documents from disk and write finished bundles."""

from __future__ import annotations

import asyncio
import json
import os
from collections.abc import Iterable
from typing import Any, Protocol

import structlog
import yaml

from config import settings
from models import ArcMaterialsBundle, Episode, PreProductionRecord, StoryBible

logger = structlog.get_logger(__name__)

_EXTENSIONS = (".json", ".yaml", ".yml")


class DocumentNotFoundError(FileNotFoundError):
    pass


class MaterialsSourceStore(Protocol):
    """Read-only access to the documents the pipeline consumes."""

    async def load_story_bible(self) -> StoryBible: ...

    async def load_episodes(self, numbers: Iterable[int]) -> dict[int, Episode]: ...

    async def load_pre_production(
        self, numbers: Iterable[int]
    ) -> dict[int, PreProductionRecord]: ...


class FileDocumentStore:
    """Project directory layout::

        story_bible.json|yaml
        episodes/episode_<n>.json|yaml
        preproduction/episode_<n>.json|yaml
    """

    def __init__(self, project_dir: str, output_dir: str | None = None) -> None:
        self.project_dir = project_dir
        self.output_dir = output_dir or settings.BASE_OUTPUT_DIR

    def _find(self, *parts: str) -> str | None:
        base = os.path.join(self.project_dir, *parts)
        for ext in _EXTENSIONS:
            path = base + ext
            if os.path.isfile(path):
                return path
        return None

    def _read_document(self, path: str) -> dict[str, Any]:
        with open(path, encoding="utf-8") as f:
            if path.endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Document at {path} is not a mapping")
        return data

    def _load_numbered(
        self, folder: str, numbers: Iterable[int]
    ) -> dict[int, dict[str, Any]]:
        loaded: dict[int, dict[str, Any]] = {}
        for number in numbers:
            path = self._find(folder, f"episode_{number}")
            if path is None:
                logger.warning("Document missing", folder=folder, episode=number)
                continue
            loaded[number] = self._read_document(path)
        return loaded

    async def load_story_bible(self) -> StoryBible:
        path = self._find("story_bible")
        if path is None:
            raise DocumentNotFoundError(
                f"No story_bible.json or story_bible.yaml in {self.project_dir}"
            )
        loop = asyncio.get_running_loop()
        data = await loop.run_in_executor(None, self._read_document, path)
        return StoryBible.model_validate(data)

    async def load_episodes(self, numbers: Iterable[int]) -> dict[int, Episode]:
        loop = asyncio.get_running_loop()
        raw = await loop.run_in_executor(
            None, self._load_numbered, "episodes", list(numbers)
        )
        return {n: Episode.model_validate(doc) for n, doc in raw.items()}

    async def load_pre_production(
        self, numbers: Iterable[int]
    ) -> dict[int, PreProductionRecord]:
        loop = asyncio.get_running_loop()
        raw = await loop.run_in_executor(
            None, self._load_numbered, "preproduction", list(numbers)
        )
        return {n: PreProductionRecord.model_validate(doc) for n, doc in raw.items()}

    async def save_bundle(self, bundle: ArcMaterialsBundle) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._save_bundle_sync, bundle)

    def _save_bundle_sync(self, bundle: ArcMaterialsBundle) -> str:
        os.makedirs(self.output_dir, exist_ok=True)
        path = os.path.join(self.output_dir, f"{bundle.id}.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(bundle.to_document(), f, indent=2, ensure_ascii=False)
        logger.info("Saved actor materials bundle", path=path)
        return path
