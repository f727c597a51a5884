# core/llm_interface.py
"""
Handles all direct interactions with the generation provider: an
OpenAI-compatible chat-completions endpoint reached through httpx. Includes
token counting helpers, response cleaning and the retrying async client used
by every generation phase.
"""

# Standard library imports
import asyncio
import functools
import json
import random
import re

# Type hints
from typing import Any, Protocol

import httpx

# Third-party imports
import structlog
import tiktoken

# Local imports
from config import settings
from core.usage import TokenUsage
from models import GenerationParams

logger = structlog.get_logger(__name__)


class GenerationProviderError(Exception):
    """Raised when the provider cannot produce a response after all retries."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GenerationProvider(Protocol):
    """Anything that turns a prompt into raw model text."""

    async def generate(
        self, prompt: str, system_prompt: str, params: GenerationParams
    ) -> str: ...


# Token parameter handling
def _completion_token_param(api_base: str) -> str:
    """Return the token count parameter expected by the provider."""
    if "api.openai.com" in api_base or "api.anthropic.com" in api_base:
        return "max_completion_tokens"
    return "max_tokens"


# --- Tokenizer Cache and Utility Functions (Module Level) ---


@functools.lru_cache(maxsize=settings.TOKENIZER_CACHE_SIZE)
def _get_tokenizer(model_name: str) -> tiktoken.Encoding | None:
    """
    Gets a tiktoken encoder for the given model name, with caching.
    Tries model-specific encoding, then a default, then returns None.
    """
    try:
        try:
            encoder = tiktoken.encoding_for_model(model_name)
        except KeyError:
            logger.debug(
                f"No direct tiktoken encoding for '{model_name}'. Using default '{settings.TIKTOKEN_DEFAULT_ENCODING}'."
            )
            encoder = tiktoken.get_encoding(settings.TIKTOKEN_DEFAULT_ENCODING)
        return encoder
    except (KeyError, ValueError):
        logger.error(
            f"Default tiktoken encoding '{settings.TIKTOKEN_DEFAULT_ENCODING}' also not found. "
            f"Token counting will fall back to character-based heuristic for '{model_name}'."
        )
        return None
    except Exception as e:
        # tiktoken downloads encodings on first use; offline runs land here.
        logger.warning(f"Could not load tokenizer for '{model_name}': {e}")
        return None


def count_tokens(text: str, model_name: str) -> int:
    """Count tokens with tiktoken, falling back to a characters-per-token estimate."""
    if not text:
        return 0

    encoder = _get_tokenizer(model_name)
    if encoder:
        return len(encoder.encode(text, allowed_special="all"))
    return int(len(text) / settings.FALLBACK_CHARS_PER_TOKEN)


def truncate_text_by_tokens(
    text: str,
    model_name: str,
    max_tokens: int,
    truncation_marker: str = "\n... (truncated)",
) -> str:
    """
    Truncates text to a maximum number of tokens for a given model.
    Adds a truncation marker if truncation occurs.
    """
    if not text:
        return ""

    encoder = _get_tokenizer(model_name)

    if not encoder:
        max_chars = int(max_tokens * settings.FALLBACK_CHARS_PER_TOKEN)
        if len(text) > max_chars:
            effective_max_chars = max(0, max_chars - len(truncation_marker))
            return text[:effective_max_chars] + truncation_marker
        return text

    tokens = encoder.encode(text, allowed_special="all")
    if len(tokens) <= max_tokens:
        return text

    marker_tokens_len = (
        len(encoder.encode(truncation_marker, allowed_special="all"))
        if truncation_marker
        else 0
    )
    content_tokens_to_keep = max_tokens - marker_tokens_len
    effective_truncation_marker = truncation_marker
    if content_tokens_to_keep <= 0:
        content_tokens_to_keep = max(1, max_tokens)
        effective_truncation_marker = ""

    return encoder.decode(tokens[:content_tokens_to_keep]) + effective_truncation_marker


_THINK_TAGS = (
    "think",
    "thought",
    "thinking",
    "reasoning",
    "reflection",
    "analysis",
)

_PREAMBLE_PATTERNS = (
    r"^\s*(Okay,\s*)?(Sure,\s*)?(Here's|Here is)\s+(the|your)\s+[\w\s]+?:\s*",
    r"^\s*(?:Output|Result|Response|Answer)\s*:\s*",
)


def clean_model_response(text: str) -> str:
    """Remove reasoning blocks and conversational preambles from a response.

    Code fences are left alone; the JSON parser strips them.
    """
    if not isinstance(text, str):
        logger.warning(
            f"clean_model_response received non-string input: {type(text)}. Returning empty string."
        )
        return ""

    cleaned_text = text
    for tag_name in _THINK_TAGS:
        cleaned_text = re.sub(
            rf"<\s*{tag_name}\s*>.*?<\s*/\s*{tag_name}\s*>",
            "",
            cleaned_text,
            flags=re.DOTALL | re.IGNORECASE,
        )
        cleaned_text = re.sub(
            rf"<\s*/?\s*{tag_name}\s*/?\s*>", "", cleaned_text, flags=re.IGNORECASE
        )

    for pattern_str in _PREAMBLE_PATTERNS:
        cleaned_text = re.sub(
            pattern_str, "", cleaned_text, count=1, flags=re.IGNORECASE
        )

    if len(cleaned_text) < len(text):
        logger.debug(
            f"clean_model_response: reduced text length from {len(text)} to {len(cleaned_text)}."
        )
    return cleaned_text.strip()


class LLMService:
    """Async client for an OpenAI-compatible chat-completions endpoint."""

    def __init__(
        self,
        timeout: float = settings.HTTPX_TIMEOUT,
        client: httpx.AsyncClient | None = None,
        api_base: str | None = None,
        api_key: str | None = None,
    ):
        # Use a single async client for all requests to reuse connections
        self._client = client or httpx.AsyncClient(timeout=timeout)
        # Add a semaphore to limit concurrent requests
        self._semaphore = asyncio.Semaphore(settings.MAX_CONCURRENT_LLM_CALLS)
        self._api_base = (api_base or settings.OPENAI_API_BASE).rstrip("/")
        self._api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.request_count = 0
        self.usage = TokenUsage()
        logger.info(
            f"LLMService initialized with a concurrency limit of {settings.MAX_CONCURRENT_LLM_CALLS}."
        )

    async def _backoff_delay(self, attempt: int) -> None:
        """Sleep for an exponentially increasing delay with jitter."""
        delay = settings.LLM_RETRY_DELAY_SECONDS * (2**attempt)
        jitter = random.uniform(0, delay / 2)
        await asyncio.sleep(delay + jitter)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _log_llm_usage(self, model_name: str, usage_data: dict[str, int] | None) -> None:
        """Helper to log LLM token usage if available in the response."""
        if usage_data and isinstance(usage_data, dict):
            self.usage.add(usage_data)
            logger.info(
                f"LLM ('{model_name}') Usage - Prompt: {usage_data.get('prompt_tokens', 'N/A')} tk, "
                f"Comp: {usage_data.get('completion_tokens', 'N/A')} tk, Total: {usage_data.get('total_tokens', 'N/A')} tk"
            )
        else:
            logger.debug(
                f"LLM ('{model_name}') response missing 'usage' information or 'usage' was not a dictionary."
            )

    def _build_payload(
        self, prompt: str, system_prompt: str, params: GenerationParams
    ) -> dict[str, Any]:
        messages: list[dict[str, str]] = []
        if system_prompt and system_prompt.strip():
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return {
            "model": params.model,
            "messages": messages,
            "temperature": params.temperature,
            "top_p": settings.LLM_TOP_P,
            _completion_token_param(self._api_base): params.max_tokens,
            "stream": False,
        }

    async def _post_non_streaming(
        self, payload: dict[str, Any], headers: dict[str, str]
    ) -> tuple[str, dict[str, int] | None]:
        """Send a regular chat completion request."""
        response = await self._client.post(
            f"{self._api_base}/chat/completions",
            json=payload,
            headers=headers,
        )
        response.raise_for_status()
        data = response.json()
        raw_text = ""
        if data.get("choices") and len(data["choices"]) > 0:
            message = data["choices"][0].get("message")
            if message and message.get("content"):
                raw_text = message["content"]
        else:
            logger.error(
                f"LLM ('{payload['model']}') Invalid response structure - missing choices/content despite 200 OK: {str(data)[:200]}"
            )
        return raw_text, data.get("usage")

    async def _call_model_with_retries(
        self,
        model_name: str,
        payload: dict[str, Any],
        headers: dict[str, str],
    ) -> str:
        """Try calling the model with retry logic.

        Client errors other than 429 abort immediately; everything else is
        retried with backoff. Raises GenerationProviderError once the
        attempts are exhausted.
        """
        last_exc: Exception | None = None
        for retry_attempt in range(settings.LLM_RETRY_ATTEMPTS):
            try:
                self.request_count += 1
                final_text, usage = await self._post_non_streaming(payload, headers)
                self._log_llm_usage(model_name, usage)
                return clean_model_response(final_text)
            except httpx.HTTPStatusError as e_status:
                last_exc = e_status
                status_code = e_status.response.status_code
                logger.warning(
                    f"LLM ('{model_name}' Attempt {retry_attempt + 1}/{settings.LLM_RETRY_ATTEMPTS}): "
                    f"HTTP status {status_code}. Body: {e_status.response.text[:200]}"
                )
                if 400 <= status_code < 500 and status_code != 429:
                    raise GenerationProviderError(
                        f"Provider rejected request for '{model_name}' with status {status_code}",
                        status_code=status_code,
                    ) from e_status
            except httpx.TimeoutException as e_timeout:
                last_exc = e_timeout
                logger.warning(
                    f"LLM ('{model_name}' Attempt {retry_attempt + 1}/{settings.LLM_RETRY_ATTEMPTS}): Request timed out: {e_timeout}"
                )
            except httpx.RequestError as e_req:
                last_exc = e_req
                logger.warning(
                    f"LLM ('{model_name}' Attempt {retry_attempt + 1}/{settings.LLM_RETRY_ATTEMPTS}): Request error: {e_req}"
                )
            except json.JSONDecodeError as e_json:
                last_exc = e_json
                logger.warning(
                    f"LLM ('{model_name}' Attempt {retry_attempt + 1}/{settings.LLM_RETRY_ATTEMPTS}): Failed to decode JSON response: {e_json}"
                )

            if retry_attempt < settings.LLM_RETRY_ATTEMPTS - 1:
                await self._backoff_delay(retry_attempt)

        status = (
            last_exc.response.status_code
            if isinstance(last_exc, httpx.HTTPStatusError)
            else None
        )
        raise GenerationProviderError(
            f"All {settings.LLM_RETRY_ATTEMPTS} attempts failed for '{model_name}': {last_exc}",
            status_code=status,
        ) from last_exc

    async def generate(
        self, prompt: str, system_prompt: str, params: GenerationParams
    ) -> str:
        """Return the cleaned text of one chat completion."""
        if not prompt or not isinstance(prompt, str) or not prompt.strip():
            raise GenerationProviderError("Empty prompt")

        async with self._semaphore:
            headers = {
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            }
            payload = self._build_payload(prompt, system_prompt, params)
            logger.debug(
                f"Calling LLM '{params.model}'. Prompt tokens (est.): {count_tokens(system_prompt + prompt, params.model)}. "
                f"Max output tokens: {params.max_tokens}. Temp: {params.temperature}, TopP: {settings.LLM_TOP_P}"
            )
            return await self._call_model_with_retries(params.model, payload, headers)


# Instantiate the service for other modules to import and use
llm_service = LLMService()
