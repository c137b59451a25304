"""Upstream trending sources."""

from __future__ import annotations

from typing import Callable

import httpx

from trendlens.config.settings import Settings
from trendlens.crawlers.base import BaseTrendingSource, RawRepository, TrendingQuery
from trendlens.crawlers.github import GitHubTrendingSource
from trendlens.crawlers.gitlab import GitLabTrendingSource
from trendlens.models.repository import Platform
from trendlens.services.exceptions import BadRequestError

SourceFactory = Callable[[Platform], BaseTrendingSource]


def build_trending_source(
    platform: Platform,
    config: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> BaseTrendingSource:
    """
    Build the upstream client for a platform

    Raises:
        BadRequestError: the platform has no trending concept (Bitbucket)
        UpstreamUnavailableError: the platform's credentials are missing
    """
    if platform == Platform.GITHUB:
        return GitHubTrendingSource.from_settings(config, transport=transport)
    if platform == Platform.GITLAB:
        return GitLabTrendingSource.from_settings(config, transport=transport)
    raise BadRequestError(f"Trending repositories are not supported for platform: {platform.value}")


def default_source_factory(
    config: Settings, transport: httpx.AsyncBaseTransport | None = None
) -> SourceFactory:
    return lambda platform: build_trending_source(platform, config, transport=transport)


__all__ = [
    "BaseTrendingSource",
    "GitHubTrendingSource",
    "GitLabTrendingSource",
    "RawRepository",
    "SourceFactory",
    "TrendingQuery",
    "build_trending_source",
    "default_source_factory",
]
