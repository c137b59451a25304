"""Typed contracts for the AI analysis stored on each repository.

Two shapes exist in the ``repositories.ai_analysis`` column:

- current rows carry ``schemaVersion: 2`` and are validated strictly;
- legacy rows have no ``schemaVersion`` and only guarantee ``suggestions`` and
  ``analyzedAt``. They are upgraded on read with deterministic defaults, so a
  given row always renders the same JSON.
"""

from __future__ import annotations

import math
from typing import Any, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from trendlens.utils.helpers import truncate_string

CURRENT_SCHEMA_VERSION = 2
SUGGESTION_COUNT = 3
SUGGESTION_MAX_LENGTH = 100
DEFAULT_TRENDING_SCORE = 50
DEFAULT_CATEGORY = "Educational Resources"

DomainCategory = Literal[
    "Web Development",
    "Data Science & ML",
    "DevOps & Infrastructure",
    "Mobile Development",
    "Security & Privacy",
    "UI/UX & Design",
    "Enterprise Solutions",
    "Educational Resources",
]
DOMAIN_CATEGORIES: tuple[str, ...] = get_args(DomainCategory)

_FALLBACK_TEMPLATES = (
    "Study the codebase of {name} to understand its architecture",
    "Implement a small feature in {name} to practice contributing",
    "Write tests for {name} to learn testing practices",
)


class AnalysisPayloadError(ValueError):
    """Raised when a stored analysis payload matches no known schema version."""


def fallback_suggestion(name: str, slot: int) -> str:
    return truncate_string(_FALLBACK_TEMPLATES[slot].format(name=name), SUGGESTION_MAX_LENGTH)


def normalize_suggestions(raw: Any, name: str) -> list[str]:
    """
    Keep usable suggestions and pad to exactly three

    Non-string and blank entries are dropped, long ones are truncated to 100
    characters, and missing slots take the fallback template for that slot.
    """
    cleaned: list[str] = []
    if isinstance(raw, list):
        for item in raw:
            if isinstance(item, str) and item.strip():
                cleaned.append(truncate_string(item.strip(), SUGGESTION_MAX_LENGTH))
    cleaned = cleaned[:SUGGESTION_COUNT]
    while len(cleaned) < SUGGESTION_COUNT:
        cleaned.append(fallback_suggestion(name, len(cleaned)))
    return cleaned


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalysisInsights(_CamelModel):
    """Narrative fields explaining why a repository is trending."""

    trend_reason: str
    ecosystem_impact: str
    future_outlook: str


class AiAnalysis(_CamelModel):
    """Current (version 2) analysis record."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    schema_version: Literal[2] = CURRENT_SCHEMA_VERSION
    suggestions: list[StrictStr]
    analyzed_at: StrictStr
    top_keywords: Optional[list[StrictStr]] = None
    domain_category: Optional[DomainCategory] = None
    trending_score: Optional[StrictInt] = Field(default=None, ge=0, le=100)
    insights: Optional[AnalysisInsights] = None

    @field_validator("suggestions")
    @classmethod
    def validate_suggestions(cls, value: list[str]) -> list[str]:
        if len(value) != SUGGESTION_COUNT:
            raise ValueError(f"exactly {SUGGESTION_COUNT} suggestions are required")
        for item in value:
            if not item.strip() or len(item) > SUGGESTION_MAX_LENGTH:
                raise ValueError("suggestions must be non-empty and at most 100 characters")
        return value

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready camelCase dict, optional fields omitted when absent."""
        return self.model_dump(by_alias=True, exclude_none=True)


class LegacyAiAnalysis(_CamelModel):
    """Rows written before schemaVersion existed. Only suggestions and analyzedAt are guaranteed."""

    suggestions: list[Any]
    analyzed_at: StrictStr
    top_keywords: Optional[list[Any]] = None
    domain_category: Optional[str] = None
    trending_score: Optional[float] = None
    insights: Optional[AnalysisInsights] = None

    def upgrade(self, repository_name: str) -> AiAnalysis:
        keywords = None
        if self.top_keywords is not None:
            keywords = [k for k in self.top_keywords if isinstance(k, str) and k.strip()]
        category = self.domain_category if self.domain_category in DOMAIN_CATEGORIES else None
        score = None
        if self.trending_score is not None and math.isfinite(self.trending_score):
            score = min(max(int(round(self.trending_score)), 0), 100)
        return AiAnalysis(
            suggestions=normalize_suggestions(self.suggestions, repository_name),
            analyzed_at=self.analyzed_at,
            top_keywords=keywords,
            domain_category=category,
            trending_score=score,
            insights=self.insights,
        )


def parse_ai_analysis(payload: Any, *, repository_name: str) -> Optional[AiAnalysis]:
    """
    Decode a stored analysis payload into the current shape

    Args:
        payload: Value of the ai_analysis column
        repository_name: Used when a legacy row needs fallback suggestions

    Returns:
        AiAnalysis, or None when the row was never analysed

    Raises:
        AnalysisPayloadError: unknown schemaVersion or missing required fields
    """
    if payload is None:
        return None
    if not isinstance(payload, dict):
        raise AnalysisPayloadError("analysis payload must be an object")

    version = payload.get("schemaVersion")
    try:
        if version is None:
            return LegacyAiAnalysis.model_validate(payload).upgrade(repository_name)
        if version == CURRENT_SCHEMA_VERSION:
            return AiAnalysis.model_validate(payload)
    except ValidationError as exc:
        raise AnalysisPayloadError(f"invalid analysis payload: {exc.error_count()} error(s)") from exc
    raise AnalysisPayloadError(f"unsupported analysis schemaVersion: {version!r}")
