# tests/conftest.py
import json
import os
import re
import sys

import pytest

# Ensure repository root is on PYTHONPATH for tests
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

# Ensure placeholder secrets do not trigger validators during tests
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("ENABLE_RICH_PROGRESS", "false")
os.environ.setdefault("LOG_FILE", "")

import core.llm_interface as llm_interface  # noqa: E402
from models import Episode, PreProductionRecord, StoryBible  # noqa: E402

WAREHOUSE_SCENE = """INT. WAREHOUSE - NIGHT

Jace checks the locks.

JACE
We move at midnight.
(beat)
Nobody talks.

MARA
You said that last time.

BANG.

JACE (CONT'D)
This time I mean it.
"""

ROOFTOP_SCENE = """EXT. ROOFTOP - DAWN

Mara stands alone at the edge.

MARA
It's quiet up here.
"""

CAR_SCENE = """INT. CAR - NIGHT

JACE
Drive.

THEO
Where to?
"""


@pytest.fixture(autouse=True)
def offline_tokenizer(monkeypatch):
    """Keep tiktoken from downloading encodings during tests."""
    monkeypatch.setattr(llm_interface, "_get_tokenizer", lambda _model: None)


@pytest.fixture
def story_bible_doc():
    return {
        "id": "sb-1",
        "title": "Night Shift",
        "logline": "A crew plans one last job.",
        "genre": "Thriller",
        "themes": ["loyalty", "trust"],
        "worldBuilding": {"setting": "Harbor city"},
        "mainCharacters": [
            {
                "id": "jace",
                "name": "Jace Castro",
                "description": "Crew leader",
                "psychology": {"fear": "Being left behind"},
            },
            {"name": "Mara Quinn", "background": "Getaway driver"},
            {"name": "Dana Whitfield", "description": "Retired detective"},
        ],
        "narrativeArcs": [{"title": "The Job", "episodes": [1, 2]}],
    }


@pytest.fixture
def episode_docs():
    return {
        1: {
            "episodeNumber": 1,
            "title": "Pilot",
            "scenes": [
                {
                    "sceneNumber": 1,
                    "heading": "INT. WAREHOUSE - NIGHT",
                    "location": "Warehouse",
                    "timeOfDay": "Night",
                    "screenplay": WAREHOUSE_SCENE,
                    "content": "Jace briefs the crew.",
                },
                {"sceneNumber": 2, "content": ROOFTOP_SCENE},
            ],
            "characters": [
                {
                    "name": "Jace Castro",
                    "importance": "main",
                    "relationships": [{"with": "Mara", "type": "partner"}],
                },
                {"name": "Mara Quinn", "importance": "main"},
                {"name": "Officer Reyes", "importance": "minor"},
                {"name": "Theo Park", "importance": "supporting"},
            ],
        }
    }


@pytest.fixture
def pre_production_docs():
    return {
        1: {
            "episodeNumber": 1,
            "scriptBreakdown": {
                "scenes": [
                    {
                        "sceneNumber": 1,
                        "sceneTitle": "Warehouse",
                        "characters": ["JACE", {"name": "MARA"}],
                    },
                    {
                        "sceneNumber": 3,
                        "sceneTitle": "Car",
                        "location": "Car",
                        "characters": [{"name": "Jace"}],
                        "linkedSceneContent": CAR_SCENE,
                    },
                ]
            },
            "scenes": [
                {
                    "sceneNumber": 1,
                    "notes": "Tension high",
                    "directorNotes": "Hold on Jace",
                    "emotionalBeats": ["resolve"],
                }
            ],
            "characters": [
                {"name": "Jace Castro", "characterMotivation": "Protect the crew"}
            ],
        }
    }


@pytest.fixture
def story_bible(story_bible_doc):
    return StoryBible.model_validate(story_bible_doc)


@pytest.fixture
def episodes(episode_docs):
    return {n: Episode.model_validate(doc) for n, doc in episode_docs.items()}


@pytest.fixture
def pre_production(pre_production_docs):
    return {
        n: PreProductionRecord.model_validate(doc)
        for n, doc in pre_production_docs.items()
    }


_NAME_RE = re.compile(r'for "([^"]+)"')


class StubProvider:
    """Deterministic provider that answers by phase, keyed on the system prompt."""

    def __init__(self, fail=None):
        self.calls = []
        self.fail = fail or (lambda phase, name: False)

    @staticmethod
    def phase_of(system_prompt: str) -> str:
        if "GOTE" in system_prompt:
            return "gote"
        if "relationship" in system_prompt:
            return "relationships"
        if "practice" in system_prompt:
            return "practice"
        return "core"

    async def generate(self, prompt, system_prompt, params):
        phase = self.phase_of(system_prompt)
        match = _NAME_RE.search(prompt)
        name = match.group(1) if match else ""
        self.calls.append((phase, name))
        if self.fail(phase, name):
            raise RuntimeError(f"provider down for {name} {phase}")
        if phase == "core":
            payload = {
                "studyGuide": {"background": f"{name} background"},
                "throughLine": {"superObjective": f"{name} wants out"},
                "gotAnalysis": [{"scene": 1}],
            }
        elif phase == "gote":
            payload = {"gotAnalysis": [{"scene": "batch"}]}
        elif phase == "relationships":
            payload = {
                "relationshipMap": [
                    {"characterName": "Mara", "relationshipType": "partner"}
                ]
            }
        else:
            payload = {"monologues": [{"title": f"{name} speech"}]}
        return "```json\n" + json.dumps(payload) + "\n```"


@pytest.fixture
def stub_provider():
    return StubProvider()
