"""Central package for actor-materials data models."""

from .materials_models import (
    ActingTechnique,
    ArcMaterialsBundle,
    CharacterContext,
    CharacterIdentity,
    CharacterMaterials,
    CharacterNote,
    CoreResult,
    GenerationParams,
    GenerationPhase,
    OnSetPrep,
    PhaseResult,
    PhysicalWork,
    PracticeResult,
    ProgressEvent,
    ProgressKind,
    RelationshipResult,
    SceneReference,
    StudyGuide,
    ThroughLine,
    VoicePatterns,
)
from .source_models import (
    Episode,
    EpisodeCharacter,
    EpisodeScene,
    NarrativeArc,
    PreProdCharacterNote,
    PreProdScene,
    PreProductionRecord,
    ScriptBreakdown,
    ScriptBreakdownScene,
    StoryBible,
    StoryBibleCharacter,
)

__all__ = [
    "ActingTechnique",
    "ArcMaterialsBundle",
    "CharacterContext",
    "CharacterIdentity",
    "CharacterMaterials",
    "CharacterNote",
    "CoreResult",
    "GenerationParams",
    "GenerationPhase",
    "OnSetPrep",
    "PhaseResult",
    "PhysicalWork",
    "PracticeResult",
    "ProgressEvent",
    "ProgressKind",
    "RelationshipResult",
    "SceneReference",
    "StudyGuide",
    "ThroughLine",
    "VoicePatterns",
    "Episode",
    "EpisodeCharacter",
    "EpisodeScene",
    "NarrativeArc",
    "PreProdCharacterNote",
    "PreProdScene",
    "PreProductionRecord",
    "ScriptBreakdown",
    "ScriptBreakdownScene",
    "StoryBible",
    "StoryBibleCharacter",
]
