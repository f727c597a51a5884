# tests/test_config_validators.py

import pytest
from config import ActorMaterialsSettings


def test_hosted_api_without_key_raises():
    with pytest.raises(ValueError):
        ActorMaterialsSettings(
            OPENAI_API_BASE="https://api.openai.com/v1", OPENAI_API_KEY=""
        )


def test_local_api_accepts_placeholder_key():
    cfg = ActorMaterialsSettings(
        OPENAI_API_BASE="http://127.0.0.1:8080/v1", OPENAI_API_KEY=""
    )
    assert cfg.OPENAI_API_KEY == ""


def test_log_level_alias(monkeypatch):
    monkeypatch.setenv("AGENT_LOG_LEVEL", "DEBUG")
    assert ActorMaterialsSettings().LOG_LEVEL_STR == "DEBUG"
