# tests/test_context_aggregator.py
from config import settings
from conftest import CAR_SCENE, WAREHOUSE_SCENE
from models import CharacterIdentity, Episode, EpisodeScene, ScriptBreakdownScene

from processing.context_aggregator import aggregate, resolve_scene_text


def _identity(name="Jace Castro"):
    return CharacterIdentity(id="jace", name=name, description="Crew leader")


def test_scene_text_precedence():
    breakdown = ScriptBreakdownScene(scene_number=1, linked_scene_content="linked")
    scene = EpisodeScene(scene_number=1, screenplay="screenplay", content="content")
    assert resolve_scene_text(breakdown, scene) == "linked"
    assert resolve_scene_text(ScriptBreakdownScene(scene_number=1), scene) == "screenplay"
    assert resolve_scene_text(None, EpisodeScene(content="content")) == "content"
    assert resolve_scene_text(None, None) == ""


def test_aggregate_collects_breakdown_scenes_first(story_bible, episodes, pre_production):
    context = aggregate(
        _identity(), story_bible, episodes, pre_production, [1, 2], arc_title="The Job"
    )

    keys = [(s.episode_number, s.scene_number) for s in context.scenes]
    assert keys == [(1, 1), (1, 3)]
    assert all(s.source == "breakdown" for s in context.scenes)
    assert context.scenes[0].text == WAREHOUSE_SCENE
    assert context.scenes[1].text == CAR_SCENE
    assert context.scenes[0].director_notes == "Hold on Jace"
    assert context.scenes[0].emotional_beats == ("resolve",)
    assert context.scenes[1].heading == "Car"


def test_aggregate_dialogue_and_other_characters(story_bible, episodes, pre_production):
    context = aggregate(_identity(), story_bible, episodes, pre_production, [1])

    assert context.dialogue_lines == (
        "We move at midnight.",
        "Nobody talks.",
        "This time I mean it.",
        "Drive.",
    )
    assert context.other_character_names == ("MARA", "THEO")


def test_aggregate_relationships_profile_and_notes(story_bible, episodes, pre_production):
    context = aggregate(_identity(), story_bible, episodes, pre_production, [1])

    assert context.relationships == ({"with": "Mara", "type": "partner"},)
    assert context.deep_profile["psychology"] == {"fear": "Being left behind"}
    assert len(context.character_notes) == 1
    assert context.character_notes[0].character_motivation == "Protect the crew"
    assert context.genre == "Thriller"
    assert context.setting == "Harbor city"
    assert context.episode_numbers == (1,)


def test_episode_scene_attributed_by_text(story_bible, episodes, pre_production):
    context = aggregate(
        CharacterIdentity(id="mara-quinn", name="Mara Quinn"),
        story_bible,
        episodes,
        pre_production,
        [1],
    )

    sources = {(s.episode_number, s.scene_number): s.source for s in context.scenes}
    assert sources == {(1, 1): "breakdown", (1, 2): "episode"}
    assert context.deep_profile is None
    assert "JACE" in context.other_character_names


def test_dialogue_is_capped(story_bible, monkeypatch):
    monkeypatch.setattr(settings, "MAX_CONTEXT_DIALOGUE_LINES", 5)
    text = "JACE\n" + "\n".join(f"line {i}" for i in range(20))
    episode = Episode(
        episode_number=1, scenes=[EpisodeScene(scene_number=1, screenplay=text)]
    )
    context = aggregate(_identity(), story_bible, {1: episode}, {}, [1])
    assert len(context.dialogue_lines) == 5


def test_missing_inputs_produce_empty_context(story_bible):
    context = aggregate(_identity("Nobody Here"), story_bible, {}, {}, [1, 2])
    assert context.scenes == ()
    assert context.other_character_names == ()
    assert context.dialogue_lines == ()
    assert context.genre == "Thriller"
