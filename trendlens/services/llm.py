"""Hosted completion providers used by the enrichment service.

Each builder returns an async ``llm_call(prompt) -> str`` so the enrichment
service never touches a provider SDK directly.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

import anthropic
import openai
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from trendlens.config.settings import Settings

logger = logging.getLogger(__name__)

LLMCall = Callable[[str], Awaitable[str]]

SYSTEM_PROMPT = "You are an AI assistant analyzing open-source code repositories. Always answer with a single JSON object."

_RATE_LIMIT_ERRORS = (openai.RateLimitError, anthropic.RateLimitError)
_TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.InternalServerError,
    anthropic.APIConnectionError,
    anthropic.InternalServerError,
)


def is_rate_limited(exc: BaseException) -> bool:
    if isinstance(exc, _RATE_LIMIT_ERRORS):
        return True
    return getattr(exc, "status_code", None) == 429


def is_transient(exc: BaseException) -> bool:
    """Errors worth another attempt: rate limits, connection drops, timeouts, provider 5xx."""
    return is_rate_limited(exc) or isinstance(exc, _TRANSIENT_ERRORS)


def retry_after_seconds(exc: BaseException) -> Optional[float]:
    """Provider-supplied wait for a rate-limited call, if the response carried one."""
    if not is_rate_limited(exc):
        return None
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    raw = headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def build_openai_call(config: Settings) -> LLMCall:
    """Chat-completions call that asks for a JSON object response."""
    client = AsyncOpenAI(
        api_key=config.OPENAI_API_KEY,
        timeout=config.LLM_TIMEOUT_SECONDS,
        max_retries=0,  # retries are owned by EnrichmentService
    )

    async def _call(prompt: str) -> str:
        response = await client.chat.completions.create(
            model=config.OPENAI_MODEL,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            response_format={"type": "json_object"},
            temperature=config.LLM_TEMPERATURE,
            max_tokens=config.LLM_MAX_TOKENS,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    return _call


def build_anthropic_call(config: Settings) -> LLMCall:
    """Messages call; the prompt itself demands a JSON object."""
    client = AsyncAnthropic(
        api_key=config.ANTHROPIC_API_KEY,
        timeout=config.LLM_TIMEOUT_SECONDS,
        max_retries=0,
    )

    async def _call(prompt: str) -> str:
        response = await client.messages.create(
            model=config.ANTHROPIC_MODEL,
            max_tokens=config.LLM_MAX_TOKENS,
            temperature=config.LLM_TEMPERATURE,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
        )
        texts = [block.text for block in response.content if getattr(block, "type", None) == "text"]
        return "".join(texts)

    return _call


def build_llm_call(config: Settings) -> LLMCall:
    provider = config.LLM_PROVIDER.lower()
    logger.info(f"Using LLM provider: {provider}")
    if provider == "openai":
        if not config.OPENAI_API_KEY:
            raise ValueError("OPENAI_API_KEY is required when LLM_PROVIDER is 'openai'")
        return build_openai_call(config)
    if provider == "anthropic":
        if not config.ANTHROPIC_API_KEY:
            raise ValueError("ANTHROPIC_API_KEY is required when LLM_PROVIDER is 'anthropic'")
        return build_anthropic_call(config)
    raise ValueError(f"Unsupported LLM provider: {config.LLM_PROVIDER}")
