# tests/test_document_store.py
import json
from datetime import datetime, timezone

import pytest
import yaml
from models import ArcMaterialsBundle

from storage.document_store import DocumentNotFoundError, FileDocumentStore


@pytest.fixture
def project_dir(tmp_path, story_bible_doc, episode_docs, pre_production_docs):
    (tmp_path / "story_bible.json").write_text(json.dumps(story_bible_doc))
    (tmp_path / "episodes").mkdir()
    (tmp_path / "episodes" / "episode_1.yaml").write_text(
        yaml.safe_dump(episode_docs[1])
    )
    (tmp_path / "preproduction").mkdir()
    (tmp_path / "preproduction" / "episode_1.json").write_text(
        json.dumps(pre_production_docs[1])
    )
    return tmp_path


@pytest.mark.asyncio
async def test_loads_json_and_yaml_documents(project_dir):
    store = FileDocumentStore(str(project_dir))

    story_bible = await store.load_story_bible()
    episodes = await store.load_episodes([1, 2])
    pre_prod = await store.load_pre_production([1, 2])

    assert story_bible.title == "Night Shift"
    assert list(episodes) == [1]
    assert episodes[1].find_scene(2) is not None
    assert list(pre_prod) == [1]
    assert len(pre_prod[1].breakdown_scenes) == 2


@pytest.mark.asyncio
async def test_missing_story_bible_raises(tmp_path):
    with pytest.raises(DocumentNotFoundError):
        await FileDocumentStore(str(tmp_path)).load_story_bible()


@pytest.mark.asyncio
async def test_non_mapping_document_rejected(tmp_path):
    (tmp_path / "story_bible.yaml").write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        await FileDocumentStore(str(tmp_path)).load_story_bible()


@pytest.mark.asyncio
async def test_save_bundle_writes_camel_case_json(tmp_path):
    now = datetime(2024, 5, 1, tzinfo=timezone.utc)
    bundle = ArcMaterialsBundle(
        id="actor-materials-sb-1-arc0-1",
        story_bible_id="sb-1",
        arc_index=0,
        arc_title="The Job",
        generated_at=now,
        last_updated=now,
    )
    store = FileDocumentStore(str(tmp_path), str(tmp_path / "out"))

    path = await store.save_bundle(bundle)

    with open(path, encoding="utf-8") as f:
        saved = json.load(f)
    assert path.endswith("actor-materials-sb-1-arc0-1.json")
    assert saved["storyBibleId"] == "sb-1"
    assert saved["arcTitle"] == "The Job"
    assert saved["characters"] == []
