from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from conftest import FIXED_NOW, VALID_ANALYSIS, FakeLLM, no_sleep
from trendlens.services.analysis_contracts import DEFAULT_CATEGORY, DEFAULT_TRENDING_SCORE
from trendlens.services.enrichment import EnrichmentService


class FakeRateLimitError(Exception):
    status_code = 429

    def __init__(self, retry_after: str | None = None) -> None:
        super().__init__("rate limited")
        headers = {"retry-after": retry_after} if retry_after is not None else {}
        self.response = SimpleNamespace(headers=headers)


def _service(llm: FakeLLM, sleeps: list[float] | None = None) -> EnrichmentService:
    async def record_sleep(seconds: float) -> None:
        if sleeps is not None:
            sleeps.append(seconds)

    return EnrichmentService(
        llm_call=llm,
        max_attempts=3,
        backoff_base_seconds=0.01,
        backoff_max_seconds=60.0,
        sleeper=record_sleep if sleeps is not None else no_sleep,
        clock=lambda: FIXED_NOW,
    )


@pytest.mark.asyncio
async def test_analyze_returns_normalized_analysis() -> None:
    llm = FakeLLM(json.dumps(VALID_ANALYSIS))

    result = await _service(llm).analyze("acme/demo", "Demo project")

    assert result.suggestions == VALID_ANALYSIS["suggestions"]
    assert result.top_keywords == ["web", "framework"]
    assert result.domain_category == "Web Development"
    assert result.trending_score == 82
    assert result.insights is not None
    assert result.insights.trend_reason == "A fast new release landed"
    assert result.analyzed_at == FIXED_NOW
    assert "acme/demo" in llm.prompts[0]
    assert "Demo project" in llm.prompts[0]


@pytest.mark.asyncio
async def test_prompt_uses_placeholder_for_missing_description() -> None:
    llm = FakeLLM(json.dumps(VALID_ANALYSIS))

    await _service(llm).analyze("acme/demo", None)

    assert 'with description: "No description"' in llm.prompts[0]


@pytest.mark.asyncio
async def test_fenced_json_is_accepted() -> None:
    llm = FakeLLM("```json\n" + json.dumps(VALID_ANALYSIS) + "\n```")

    result = await _service(llm).analyze("acme/demo", None)

    assert result.domain_category == "Web Development"


@pytest.mark.asyncio
async def test_suggestions_are_truncated_and_padded_to_three() -> None:
    payload = dict(VALID_ANALYSIS, suggestions=["x" * 250, "", 7])
    llm = FakeLLM(json.dumps(payload))

    result = await _service(llm).analyze("acme/demo", None)

    assert len(result.suggestions) == 3
    assert len(result.suggestions[0]) == 100
    assert result.suggestions[0].endswith("...")
    assert result.suggestions[1] == "Implement a small feature in acme/demo to practice contributing"
    assert result.suggestions[2] == "Write tests for acme/demo to learn testing practices"


@pytest.mark.asyncio
async def test_out_of_range_fields_fall_back_to_defaults() -> None:
    payload = dict(VALID_ANALYSIS, domainCategory="Gardening", trendingScore=150, topKeywords="nope")
    llm = FakeLLM(json.dumps(payload))

    result = await _service(llm).analyze("acme/fast-kit", None)

    assert result.domain_category == DEFAULT_CATEGORY
    assert result.trending_score == 100
    assert result.top_keywords == ["acme", "fast", "kit"]


@pytest.mark.asyncio
async def test_invalid_json_falls_back_without_retrying() -> None:
    llm = FakeLLM("I cannot answer that")
    sleeps: list[float] = []

    result = await _service(llm, sleeps).analyze("acme/demo", None)

    assert llm.calls == 1
    assert sleeps == []
    assert result.trending_score == DEFAULT_TRENDING_SCORE
    assert result.domain_category == DEFAULT_CATEGORY
    assert result.suggestions[0] == "Study the codebase of acme/demo to understand its architecture"


@pytest.mark.asyncio
async def test_rate_limits_are_retried_with_retry_after() -> None:
    llm = FakeLLM(FakeRateLimitError("2"), json.dumps(VALID_ANALYSIS))
    sleeps: list[float] = []

    result = await _service(llm, sleeps).analyze("acme/demo", None)

    assert llm.calls == 2
    assert sleeps == [2.0]
    assert result.trending_score == 82


@pytest.mark.asyncio
async def test_persistent_rate_limit_yields_fallback_after_three_attempts() -> None:
    llm = FakeLLM(FakeRateLimitError())
    sleeps: list[float] = []

    result = await _service(llm, sleeps).analyze("acme/demo", None)

    assert llm.calls == 3
    assert sleeps == [0.01, 0.02]
    assert result.trending_score == DEFAULT_TRENDING_SCORE


@pytest.mark.asyncio
async def test_unexpected_provider_error_is_not_retried() -> None:
    llm = FakeLLM(RuntimeError("invalid api key"))

    result = await _service(llm).analyze("acme/demo", None)

    assert llm.calls == 1
    assert result.top_keywords == ["acme", "demo"]


@pytest.mark.asyncio
async def test_forced_failure_still_yields_three_bounded_suggestions() -> None:
    long_name = "org/" + "very-long-repository-name-" * 8
    llm = FakeLLM(RuntimeError("down"))

    result = await _service(llm).analyze(long_name, None)

    assert len(result.suggestions) == 3
    assert all(0 < len(s) <= 100 for s in result.suggestions)


def test_fallback_record_without_usable_name_tokens() -> None:
    service = _service(FakeLLM())

    result = service.fallback("x")

    assert result.top_keywords == ["github", "learning", "programming"]
    assert result.to_payload()["schemaVersion"] == 2
