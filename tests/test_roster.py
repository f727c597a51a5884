# tests/test_roster.py
import pytest
from models import CharacterIdentity, Episode, EpisodeScene

from orchestration.errors import ActorMaterialsInputError, CharacterNotFoundError
from orchestration.roster import collect_arc_names, filter_roster, resolve_roster


def test_collect_arc_names_from_all_sources(episodes, pre_production):
    names = collect_arc_names(episodes, pre_production, [1, 2])
    assert names[:3] == ["JACE", "MARA", "Jace"]
    assert "Theo Park" in names
    assert "Officer Reyes" not in names


def test_roster_includes_matched_story_bible_and_extra_cast(
    story_bible, episodes, pre_production
):
    roster = resolve_roster(story_bible, episodes, pre_production, [1, 2])
    assert [(c.id, c.name) for c in roster] == [
        ("jace", "Jace Castro"),
        ("mara-quinn", "Mara Quinn"),
        ("theo-park", "Theo Park"),
    ]
    assert roster[1].description == "Getaway driver"


def test_absent_story_bible_character_is_excluded(story_bible, episodes, pre_production):
    roster = resolve_roster(story_bible, episodes, pre_production, [1, 2])
    assert "Dana Whitfield" not in [c.name for c in roster]


def test_roster_from_scene_text_only(story_bible):
    episode = Episode(
        episode_number=4,
        scenes=[EpisodeScene(scene_number=1, content="DANA\nI'm back.")],
    )
    roster = resolve_roster(story_bible, {4: episode}, {}, [4])
    assert [c.name for c in roster] == ["Dana Whitfield"]


ROSTER = [
    CharacterIdentity(id="jace", name="Jace Castro"),
    CharacterIdentity(id="mara-quinn", name="Mara Quinn"),
]


def test_filter_by_id_and_name():
    assert filter_roster(ROSTER, "mara-quinn")[0].name == "Mara Quinn"
    assert filter_roster(ROSTER, "JACE CASTRO")[0].id == "jace"
    assert filter_roster(ROSTER, "Mara")[0].id == "mara-quinn"


@pytest.mark.parametrize("requested", ["nonexistent", "", "   "])
def test_filter_without_match_raises(requested):
    with pytest.raises(CharacterNotFoundError) as excinfo:
        filter_roster(ROSTER, requested)
    assert isinstance(excinfo.value, ActorMaterialsInputError)
