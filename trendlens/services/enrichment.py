"""Repository enrichment: "why this matters" suggestions from a hosted LLM."""

from __future__ import annotations

import asyncio
import json
import logging
import math
from typing import Any, Awaitable, Callable, Optional

from trendlens.config.settings import settings
from trendlens.services.analysis_contracts import (
    DEFAULT_CATEGORY,
    DEFAULT_TRENDING_SCORE,
    DOMAIN_CATEGORIES,
    AiAnalysis,
    AnalysisInsights,
    normalize_suggestions,
)
from trendlens.services.llm import LLMCall, is_transient, retry_after_seconds
from trendlens.utils.helpers import name_tokens, utc_now_iso
from trendlens.utils.retry import RetryPolicy, retry_async

logger = logging.getLogger(__name__)

MAX_KEYWORDS = 8
DEFAULT_KEYWORDS = ("github", "learning", "programming")


class EnrichmentResponseError(ValueError):
    """Raised when the completion is empty or not the JSON object we asked for."""


class EnrichmentService:
    """Analyze repositories with retry on transient errors and deterministic fallback."""

    def __init__(
        self,
        *,
        llm_call: LLMCall,
        max_attempts: int | None = None,
        backoff_base_seconds: float | None = None,
        backoff_max_seconds: float | None = None,
        sleeper: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._llm_call = llm_call
        self._policy = RetryPolicy(
            max_attempts=max_attempts or settings.ENRICHMENT_MAX_ATTEMPTS,
            base_delay=backoff_base_seconds or settings.ENRICHMENT_BACKOFF_BASE_SECONDS,
            max_delay=backoff_max_seconds or settings.ENRICHMENT_BACKOFF_MAX_SECONDS,
            is_retryable=is_transient,
            delay_hint=retry_after_seconds,
        )
        self._sleep = sleeper
        self._clock = clock

    async def analyze(self, name: str, description: Optional[str]) -> AiAnalysis:
        """
        Produce an analysis record for a repository

        Args:
            name: Display name, e.g. "acme/demo"
            description: Upstream description, may be None

        Returns:
            AiAnalysis with exactly three suggestions. Never raises for
            provider or parsing failures; those yield the fallback record.
        """
        prompt = self._build_prompt(name, description)
        try:
            raw_response = await retry_async(
                lambda: self._llm_call(prompt),
                self._policy,
                sleeper=self._sleep,
                label=f"enrichment of {name}",
            )
            parsed = self._parse_response(raw_response)
        except Exception as e:
            logger.error(f"Failed to analyze repository {name}: {e}")
            return self.fallback(name)

        return self._build_analysis(name, parsed)

    def fallback(self, name: str) -> AiAnalysis:
        """Fully-defaulted record used when the provider is unusable."""
        return AiAnalysis(
            suggestions=normalize_suggestions([], name),
            analyzed_at=self._clock(),
            top_keywords=self._default_keywords(name),
            domain_category=DEFAULT_CATEGORY,
            trending_score=DEFAULT_TRENDING_SCORE,
            insights=AnalysisInsights(
                trend_reason=f"{name} shows potential for growth",
                ecosystem_impact="Contributing to developer productivity",
                future_outlook="Monitoring community adoption and development",
            ),
        )

    def _build_prompt(self, name: str, description: Optional[str]) -> str:
        categories = ", ".join(DOMAIN_CATEGORIES)
        return f"""Given this repository: "{name}" with description: "{description or 'No description'}", analyze its impact and provide insights.

Remember to:
1. Provide 3 practical learning suggestions (each under 100 characters)
2. Analyze why this repository is trending
3. Assess its impact on the developer ecosystem
4. Predict its future trajectory
5. List up to 8 short lowercase keywords
6. Pick the single best domain category from: {categories}
7. Rate how strongly it is trending from 0 to 100

Respond in this exact JSON format:
{{
  "suggestions": ["suggestion1", "suggestion2", "suggestion3"],
  "topKeywords": ["keyword1", "keyword2"],
  "domainCategory": "Web Development",
  "trendingScore": 75,
  "insights": {{
    "trendReason": "Brief explanation of why this repo is trending",
    "ecosystemImpact": "How this affects the developer ecosystem",
    "futureOutlook": "Predicted future trajectory and relevance"
  }}
}}"""

    @staticmethod
    def _parse_response(raw_response: Any) -> dict[str, Any]:
        if not isinstance(raw_response, str) or not raw_response.strip():
            raise EnrichmentResponseError("Invalid or empty response from LLM")

        content = raw_response.strip()
        if content.startswith("```"):
            content = content.strip("`")
            if content.startswith("json"):
                content = content[4:]
            content = content.strip()

        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise EnrichmentResponseError("Invalid JSON response from LLM") from exc
        if not isinstance(data, dict):
            raise EnrichmentResponseError("LLM response must be a JSON object")
        if not isinstance(data.get("suggestions"), list):
            raise EnrichmentResponseError("LLM response has no suggestions list")
        return data

    def _build_analysis(self, name: str, data: dict[str, Any]) -> AiAnalysis:
        insights = data.get("insights") if isinstance(data.get("insights"), dict) else {}

        def _text(key: str, default: str) -> str:
            value = insights.get(key)
            return value.strip() if isinstance(value, str) and value.strip() else default

        return AiAnalysis(
            suggestions=normalize_suggestions(data.get("suggestions"), name),
            analyzed_at=self._clock(),
            top_keywords=self._clean_keywords(data.get("topKeywords")) or self._default_keywords(name),
            domain_category=self._clean_category(data.get("domainCategory")),
            trending_score=self._clean_score(data.get("trendingScore")),
            insights=AnalysisInsights(
                trend_reason=_text("trendReason", f"{name} is gaining traction in the developer community"),
                ecosystem_impact=_text("ecosystemImpact", "Contributing to developer productivity"),
                future_outlook=_text("futureOutlook", "Expected to maintain steady growth and adoption"),
            ),
        )

    @staticmethod
    def _clean_keywords(raw: Any) -> list[str]:
        if not isinstance(raw, list):
            return []
        keywords: list[str] = []
        for item in raw:
            if not isinstance(item, str):
                continue
            keyword = item.strip().lower()
            if keyword and keyword not in keywords:
                keywords.append(keyword)
        return keywords[:MAX_KEYWORDS]

    @staticmethod
    def _default_keywords(name: str) -> list[str]:
        tokens = name_tokens(name)[:3]
        return tokens or list(DEFAULT_KEYWORDS)

    @staticmethod
    def _clean_category(raw: Any) -> str:
        if isinstance(raw, str):
            for category in DOMAIN_CATEGORIES:
                if raw.strip().lower() == category.lower():
                    return category
        return DEFAULT_CATEGORY

    @staticmethod
    def _clean_score(raw: Any) -> int:
        if isinstance(raw, bool) or not isinstance(raw, (int, float)) or not math.isfinite(raw):
            return DEFAULT_TRENDING_SCORE
        return min(max(int(round(raw)), 0), 100)
