# models/materials_models.py
"""Typed structures for character contexts, phase results and arc bundles."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

_CAMEL_CONFIG = dict(alias_generator=to_camel, populate_by_name=True)


class GenerationPhase(str, Enum):
    """The three generation phases run for every character, in order."""

    CORE = "core"
    RELATIONSHIPS = "relationships"
    PRACTICE = "practice"

    @property
    def index(self) -> int:
        return _PHASE_ORDER.index(self)

    @property
    def label(self) -> str:
        return _PHASE_LABELS[self]


_PHASE_ORDER = (
    GenerationPhase.CORE,
    GenerationPhase.RELATIONSHIPS,
    GenerationPhase.PRACTICE,
)
_PHASE_LABELS = {
    GenerationPhase.CORE: "Generating study guide & scene analysis",
    GenerationPhase.RELATIONSHIPS: "Analyzing character relationships",
    GenerationPhase.PRACTICE: "Creating practice materials",
}


class ActingTechnique(str, Enum):
    STANISLAVSKI = "stanislavski"
    MEISNER = "meisner"
    METHOD_ACTING = "method-acting"
    ADLER = "adler"
    HAGEN = "hagen"
    CHEKHOV = "chekhov"
    LABAN = "laban"
    VIEWPOINTS = "viewpoints"
    PRACTICAL_AESTHETICS = "practical-aesthetics"
    SPOLIN = "spolin"

    @property
    def display_name(self) -> str:
        return self.value.replace("-", " ").title()


class ProgressKind(str, Enum):
    CHARACTER = "character"
    PHASE = "phase"
    COMPLETE = "complete"


@dataclass(frozen=True)
class GenerationParams:
    """Per-call generation parameters handed to the provider."""

    temperature: float
    max_tokens: int
    model: str


# ---------------------------------------------------------------------------
# Character context
# ---------------------------------------------------------------------------


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, **_CAMEL_CONFIG)


class CharacterIdentity(FrozenModel):
    id: str
    name: str
    description: str = ""


class SceneReference(FrozenModel):
    """A scene the character participates in, with its resolved text."""

    episode_number: int
    scene_number: int | None = None
    text: str = ""
    heading: str = ""
    location: str = ""
    time_of_day: str = ""
    pre_prod_notes: str = ""
    director_notes: str = ""
    character_notes: str = ""
    blocking: str = ""
    emotional_beats: tuple[Any, ...] = ()
    source: Literal["breakdown", "episode"] = "episode"

    @property
    def from_breakdown(self) -> bool:
        return self.source == "breakdown"


class CharacterNote(FrozenModel):
    """Pre-production notes about the character for one episode."""

    episode_number: int
    notes: str = ""
    character_motivation: str = ""
    emotional_state: str = ""
    objectives: tuple[Any, ...] = ()
    relationships: tuple[Any, ...] = ()


class CharacterContext(FrozenModel):
    """Everything known about one character, built fresh for each run."""

    identity: CharacterIdentity
    deep_profile: dict[str, Any] | None = None
    scenes: tuple[SceneReference, ...] = ()
    dialogue_lines: tuple[str, ...] = ()
    other_character_names: tuple[str, ...] = ()
    relationships: tuple[Any, ...] = ()
    episode_numbers: tuple[int, ...] = ()
    character_notes: tuple[CharacterNote, ...] = ()
    story_title: str = ""
    logline: str = ""
    genre: str = "Drama"
    themes: tuple[str, ...] = ()
    setting: str = ""
    arc_title: str = ""

    @property
    def name(self) -> str:
        return self.identity.name


# ---------------------------------------------------------------------------
# Phase results
# ---------------------------------------------------------------------------


class LenientModel(BaseModel):
    """Model that replaces missing, null or mistyped fields with their empty value.

    Generated payloads are loosely shaped. Unknown keys are kept verbatim so
    richer output survives, while every declared field always holds a value
    of the declared shape.
    """

    model_config = ConfigDict(extra="allow", **_CAMEL_CONFIG)

    @model_validator(mode="before")
    @classmethod
    def _reset_mistyped_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        cleaned = dict(data)
        for name, field in cls.model_fields.items():
            key = field.alias or name
            if key not in cleaned and name in cleaned:
                key = name
            if key not in cleaned:
                continue
            value = cleaned[key]
            default = field.get_default(call_default_factory=True)
            if isinstance(default, BaseModel):
                ok = isinstance(value, (dict, type(default)))
            elif isinstance(default, bool):
                ok = isinstance(value, bool)
            elif isinstance(default, (int, float)) and not isinstance(default, bool):
                ok = isinstance(value, (int, float)) and not isinstance(value, bool)
            else:
                ok = isinstance(value, type(default))
            if not ok:
                cleaned[key] = default
        return cleaned

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class StudyGuide(LenientModel):
    background: str = ""
    motivations: list[Any] = Field(default_factory=list)
    relationships: list[Any] = Field(default_factory=list)
    character_arc: str = ""
    internal_conflicts: list[Any] = Field(default_factory=list)


class ThroughLine(LenientModel):
    super_objective: str = ""
    explanation: str = ""
    key_scenes: list[Any] = Field(default_factory=list)


class PhysicalWork(LenientModel):
    body_language: list[Any] = Field(default_factory=list)
    movement: list[Any] = Field(default_factory=list)
    posture: list[Any] = Field(default_factory=list)


class VoicePatterns(LenientModel):
    vocabulary: list[Any] = Field(default_factory=list)
    rhythm: str = ""
    key_phrases: list[Any] = Field(default_factory=list)
    verbal_tics: list[Any] = Field(default_factory=list)


class OnSetPrep(LenientModel):
    pre_scene: list[Any] = Field(default_factory=list)
    warm_up: list[Any] = Field(default_factory=list)
    emotional_prep: list[Any] = Field(default_factory=list)
    mental_checklist: list[Any] = Field(default_factory=list)


class PhaseResult(LenientModel):
    """Common base for the three per-phase result types."""

    phase: ClassVar[GenerationPhase]

    @classmethod
    def empty(cls) -> PhaseResult:
        return cls()

    @classmethod
    def fallback(cls, context: CharacterContext | None = None) -> PhaseResult:
        return cls.empty()


class CoreResult(PhaseResult):
    """Study guide, scene breakdowns and voice/physical notes."""

    phase: ClassVar[GenerationPhase] = GenerationPhase.CORE

    study_guide: StudyGuide = Field(default_factory=StudyGuide)
    through_line: ThroughLine = Field(default_factory=ThroughLine)
    got_analysis: list[Any] = Field(default_factory=list)
    scene_breakdowns: list[Any] = Field(default_factory=list)
    emotional_beats: list[Any] = Field(default_factory=list)
    physical_work: PhysicalWork = Field(default_factory=PhysicalWork)
    voice_patterns: VoicePatterns = Field(default_factory=VoicePatterns)

    @classmethod
    def fallback(cls, context: CharacterContext | None = None) -> CoreResult:
        description = context.identity.description if context else ""
        key_phrases = list(context.dialogue_lines[:5]) if context else []
        return cls(
            study_guide=StudyGuide(
                background=description or "Character background not available",
                motivations=["Survive the story"],
                character_arc="Character develops throughout the arc",
            ),
            through_line=ThroughLine(
                super_objective="Navigate the challenges of the story",
                explanation="The character must overcome obstacles and grow",
            ),
            voice_patterns=VoicePatterns(
                rhythm="Natural speech patterns", key_phrases=key_phrases
            ),
        )


class RelationshipResult(PhaseResult):
    """Relationship map plus the summary views derived from it."""

    phase: ClassVar[GenerationPhase] = GenerationPhase.RELATIONSHIPS

    relationship_map: list[dict[str, Any]] = Field(default_factory=list)
    relationship_summary: dict[str, Any] = Field(default_factory=dict)
    social_circle: dict[str, Any] = Field(default_factory=dict)
    loyalty_map: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_map(cls, data: Any) -> Any:
        if isinstance(data, list):
            data = {"relationshipMap": data}
        if not isinstance(data, dict):
            return data
        for key in ("relationshipMap", "relationship_map"):
            entries = data.get(key)
            if isinstance(entries, list):
                data = {**data, key: [e for e in entries if isinstance(e, dict)]}
        return data


class PracticeResult(PhaseResult):
    """Monologues, key scenes and preparation checklists."""

    phase: ClassVar[GenerationPhase] = GenerationPhase.PRACTICE

    performance_reference: list[Any] = Field(default_factory=list)
    monologues: list[Any] = Field(default_factory=list)
    key_scenes: list[Any] = Field(default_factory=list)
    on_set_prep: OnSetPrep = Field(default_factory=OnSetPrep)
    research_suggestions: dict[str, Any] = Field(default_factory=dict)
    wardrobe_notes: dict[str, Any] = Field(default_factory=dict)
    memorization_aids: dict[str, Any] = Field(default_factory=dict)
    technique_exercises: list[Any] = Field(default_factory=list)

    @classmethod
    def fallback(cls, context: CharacterContext | None = None) -> PracticeResult:
        return cls(
            on_set_prep=OnSetPrep(
                pre_scene=["Review script", "Get into character mindset"],
                warm_up=["Vocal warmups", "Physical warmups"],
                emotional_prep=["Connect to character emotions"],
                mental_checklist=["Know your objective", "Stay present"],
            )
        )


# ---------------------------------------------------------------------------
# Merged output
# ---------------------------------------------------------------------------


class CharacterMaterials(FrozenModel):
    """Identity plus the three phase results for one character."""

    character_id: str
    character_name: str
    description: str = ""
    technique_focus: ActingTechnique | None = None
    core: CoreResult
    relationships: RelationshipResult
    practice: PracticeResult

    @classmethod
    def from_phases(
        cls,
        identity: CharacterIdentity,
        core: CoreResult,
        relationships: RelationshipResult,
        practice: PracticeResult,
        technique: ActingTechnique | None = None,
    ) -> CharacterMaterials:
        return cls(
            character_id=identity.id,
            character_name=identity.name,
            description=identity.description,
            technique_focus=technique,
            core=core,
            relationships=relationships,
            practice=practice,
        )

    def to_document(self) -> dict[str, Any]:
        """Flatten into the single camelCase record the viewer consumes."""
        doc: dict[str, Any] = {
            "characterId": self.character_id,
            "characterName": self.character_name,
            "description": self.description,
        }
        doc.update(self.core.to_document())
        doc.update(self.relationships.to_document())
        doc.update(self.practice.to_document())
        if self.technique_focus is not None:
            doc["techniqueFocus"] = self.technique_focus.value
        return doc


class ArcMaterialsBundle(FrozenModel):
    id: str
    story_bible_id: str
    arc_index: int
    arc_title: str
    technique: ActingTechnique | None = None
    characters: tuple[CharacterMaterials, ...] = ()
    generated_at: datetime
    last_updated: datetime

    def character_names(self) -> list[str]:
        return [c.character_name for c in self.characters]

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "id": self.id,
            "storyBibleId": self.story_bible_id,
            "arcIndex": self.arc_index,
            "arcTitle": self.arc_title,
            "characters": [c.to_document() for c in self.characters],
            "generatedAt": self.generated_at.isoformat(),
            "lastUpdated": self.last_updated.isoformat(),
        }
        if self.technique is not None:
            doc["technique"] = self.technique.value
        return doc


class ProgressEvent(FrozenModel):
    kind: ProgressKind
    message: str
    percentage: float
    character_name: str | None = None
    character_index: int | None = None
    total_characters: int | None = None
    phase: GenerationPhase | None = None
