# config.py
"""Configuration settings for the actor-materials generation pipeline.
Uses Pydantic BaseSettings for automatic environment variable loading.
"""

from __future__ import annotations

import structlog
from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

logger = structlog.get_logger()

_HOSTED_API_MARKERS = ("api.openai.com", "openai.azure.com", "api.anthropic.com")


class ActorMaterialsSettings(BaseSettings):
    """Full configuration for the actor-materials pipeline."""

    # API and Model Configuration
    OPENAI_API_BASE: str = "http://127.0.0.1:8080/v1"
    OPENAI_API_KEY: str = "nope"
    GENERATION_MODEL: str = "gpt-4.1"

    # LLM Call Settings
    LLM_RETRY_ATTEMPTS: int = 3
    LLM_RETRY_DELAY_SECONDS: float = 3.0
    HTTPX_TIMEOUT: float = 600.0
    MAX_CONCURRENT_LLM_CALLS: int = 4
    LLM_TOP_P: float = 0.8
    TIKTOKEN_DEFAULT_ENCODING: str = "cl100k_base"
    FALLBACK_CHARS_PER_TOKEN: float = 4.0
    TOKENIZER_CACHE_SIZE: int = 10

    # Phase Temperatures (low to keep JSON formatting stable)
    TEMPERATURE_CORE: float = 0.5
    TEMPERATURE_RELATIONSHIPS: float = 0.5
    TEMPERATURE_PRACTICE: float = 0.5

    # Phase Token Limits
    MAX_TOKENS_CORE: int = 16000
    MAX_TOKENS_RELATIONSHIPS: int = 16000
    MAX_TOKENS_PRACTICE: int = 16000
    MAX_TOKENS_BATCH: int = 12000

    # Screenplay Extraction Limits
    MAX_DIALOGUE_LINES_PER_SCENE: int = 40
    MAX_CONTEXT_DIALOGUE_LINES: int = 30
    SPEAKER_CUE_MIN_LENGTH: int = 2
    SPEAKER_CUE_MAX_LENGTH: int = 30
    NAME_MATCH_MIN_LENGTH: int = 3

    # Batching
    GOTE_BATCH_SIZE: int = 8
    RELATIONSHIP_BATCH_SIZE: int = 6

    # Prompt Budgeting
    MAX_SCENE_PROMPT_TOKENS: int = 3000

    # Output
    BASE_OUTPUT_DIR: str = "actor_materials_output"

    # Logging & UI
    LOG_LEVEL_STR: str = Field("INFO", alias="AGENT_LOG_LEVEL")
    LOG_FORMAT: str = (
        "%(asctime)s - %(levelname)s - [%(name)s:%(funcName)s:%(lineno)d] - %(message)s"
    )
    LOG_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"
    LOG_FILE: str | None = "actor_materials_run.log"
    ENABLE_RICH_PROGRESS: bool = True

    @model_validator(mode="after")
    def check_hosted_api_key(self) -> ActorMaterialsSettings:
        hosted = any(marker in self.OPENAI_API_BASE for marker in _HOSTED_API_MARKERS)
        if hosted and not self.OPENAI_API_KEY.strip():
            raise ValueError(
                f"OPENAI_API_KEY must be set when OPENAI_API_BASE points at {self.OPENAI_API_BASE}"
            )
        return self

    model_config = SettingsConfigDict(
        env_prefix="", env_file=".env", populate_by_name=True, extra="ignore"
    )


settings = ActorMaterialsSettings()
