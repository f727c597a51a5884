# models/source_models.py
"""Read-only models for the story-bible, episode and pre-production documents.

The document store keeps camelCase keys; every model here accepts either
camelCase or snake_case and keeps unknown keys around as extras.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class SourceBaseModel(BaseModel):
    """Base model for persisted documents."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_null_values(cls, data: Any) -> Any:
        # Documents often carry explicit nulls; let field defaults apply instead.
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class StoryBibleCharacter(SourceBaseModel):
    """A main character declared in the story bible."""

    id: str | None = None
    name: str = ""
    description: str = ""
    background: str = ""
    physiology: dict[str, Any] | None = None
    sociology: dict[str, Any] | None = None
    psychology: dict[str, Any] | None = None

    def deep_profile(self) -> dict[str, Any] | None:
        """Return the three-dimensional character profile when any part exists."""
        if not (self.physiology or self.sociology or self.psychology):
            return None
        return {
            "physiology": self.physiology or {},
            "sociology": self.sociology or {},
            "psychology": self.psychology or {},
        }


class NarrativeArc(SourceBaseModel):
    title: str = ""
    summary: str = ""
    episodes: list[Any] = Field(default_factory=list)


class WorldBuilding(SourceBaseModel):
    setting: str = ""


class StoryBible(SourceBaseModel):
    """Top-level story-bible document."""

    id: str = ""
    title: str = ""
    logline: str = ""
    genre: str = ""
    series_overview: str = ""
    themes: list[str] = Field(default_factory=list)
    world_building: WorldBuilding = Field(default_factory=WorldBuilding)
    main_characters: list[StoryBibleCharacter] = Field(default_factory=list)
    narrative_arcs: list[NarrativeArc] = Field(default_factory=list)

    @field_validator("themes", mode="before")
    @classmethod
    def _coerce_themes(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


class EpisodeScene(SourceBaseModel):
    scene_number: int | None = None
    heading: str = ""
    location: str = ""
    time_of_day: str = ""
    screenplay: str = ""
    content: str = ""


class EpisodeCharacter(SourceBaseModel):
    """A cast entry on an episode document."""

    name: str = ""
    description: str = ""
    importance: str | None = None
    relationships: list[Any] = Field(default_factory=list)

    @property
    def is_minor(self) -> bool:
        return (self.importance or "").strip().lower() == "minor"


class Episode(SourceBaseModel):
    episode_number: int | None = None
    title: str = ""
    scenes: list[EpisodeScene] = Field(default_factory=list)
    characters: list[EpisodeCharacter] = Field(default_factory=list)

    def find_scene(self, scene_number: int | None) -> EpisodeScene | None:
        for scene in self.scenes:
            if scene.scene_number == scene_number:
                return scene
        return None


class BreakdownCharacter(SourceBaseModel):
    name: str = ""


class ScriptBreakdownScene(SourceBaseModel):
    """A scene in the structured script breakdown."""

    scene_number: int | None = None
    scene_title: str = ""
    location: str = ""
    time_of_day: str = ""
    linked_scene_content: str = ""
    characters: list[BreakdownCharacter] = Field(default_factory=list)

    @field_validator("characters", mode="before")
    @classmethod
    def _coerce_characters(cls, value: Any) -> Any:
        # Breakdown cast lists mix bare strings and {"name": ...} objects.
        if not isinstance(value, list):
            return []
        coerced: list[dict[str, Any]] = []
        for item in value:
            if isinstance(item, str):
                name = item
            elif isinstance(item, dict):
                name = item.get("name")
            elif isinstance(item, BreakdownCharacter):
                name = item.name
            else:
                name = None
            if isinstance(name, str) and name.strip():
                coerced.append({"name": name.strip()})
        return coerced

    @property
    def cast_names(self) -> list[str]:
        return [c.name for c in self.characters]


class ScriptBreakdown(SourceBaseModel):
    scenes: list[ScriptBreakdownScene] = Field(default_factory=list)


class PreProdScene(SourceBaseModel):
    """Per-scene pre-production notes."""

    scene_number: int | None = None
    notes: str = ""
    director_notes: str = ""
    character_notes: str = ""
    blocking: str = ""
    emotional_beats: list[Any] = Field(default_factory=list)
    linked_scene_content: str = ""


class PreProdCharacterNote(SourceBaseModel):
    name: str = ""
    notes: str = ""
    character_motivation: str = ""
    emotional_state: str = ""
    objectives: list[Any] = Field(default_factory=list)
    relationships: list[Any] = Field(default_factory=list)


class PreProductionRecord(SourceBaseModel):
    """Pre-production document for a single episode."""

    episode_number: int | None = None
    script_breakdown: ScriptBreakdown | None = None
    scenes: list[PreProdScene] = Field(default_factory=list)
    characters: list[PreProdCharacterNote] = Field(default_factory=list)

    @property
    def breakdown_scenes(self) -> list[ScriptBreakdownScene]:
        if self.script_breakdown is None:
            return []
        return self.script_breakdown.scenes

    def find_breakdown_scene(
        self, scene_number: int | None
    ) -> ScriptBreakdownScene | None:
        for scene in self.breakdown_scenes:
            if scene.scene_number == scene_number:
                return scene
        return None

    def find_scene_notes(self, scene_number: int | None) -> PreProdScene | None:
        for scene in self.scenes:
            if scene.scene_number == scene_number:
                return scene
        return None
