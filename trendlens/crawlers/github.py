"""GitHub search-API trending source"""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr, ValidationError

from trendlens.config.settings import Settings
from trendlens.crawlers.base import BaseTrendingSource, RawRepository, TrendingQuery
from trendlens.models.repository import Platform
from trendlens.services.exceptions import (
    UpstreamAuthError,
    UpstreamError,
    UpstreamPayloadError,
    UpstreamRateLimitError,
    UpstreamUnavailableError,
)
from trendlens.utils.logger import sanitize_for_log

logger = logging.getLogger(__name__)


class GitHubOwner(BaseModel):
    login: StrictStr


class GitHubLicense(BaseModel):
    spdx_id: Optional[str] = None
    name: Optional[str] = None


class GitHubSearchItem(BaseModel):
    """Fields of a search result item the pipeline relies on."""

    model_config = ConfigDict(extra="ignore")

    id: StrictInt
    name: StrictStr
    full_name: StrictStr
    html_url: StrictStr
    description: Optional[str] = None
    language: Optional[str] = None
    stargazers_count: StrictInt
    forks_count: StrictInt
    owner: Optional[GitHubOwner] = None
    topics: List[str] = []
    license: Optional[GitHubLicense] = None


class GitHubSearchResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total_count: Optional[int] = None
    items: List[GitHubSearchItem]


class GitHubTrendingSource(BaseTrendingSource):
    """Trending = search for repositories above a star threshold, sorted descending."""

    platform = Platform.GITHUB

    def __init__(
        self,
        *,
        token: Optional[str],
        base_url: str = "https://api.github.com",
        timeout_seconds: float = 15.0,
        page_size: int = 30,
        user_agent: str = "TrendLens/1.0",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not (token or "").strip():
            logger.error("Missing GitHub token")
            raise UpstreamUnavailableError("GitHub API service unavailable")
        super().__init__(
            base_url=base_url,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"token {token}",
                "User-Agent": user_agent,
            },
            timeout_seconds=timeout_seconds,
            page_size=page_size,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, config: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> "GitHubTrendingSource":
        return cls(
            token=config.GITHUB_TOKEN,
            base_url=config.GITHUB_API_URL,
            timeout_seconds=config.UPSTREAM_TIMEOUT_SECONDS,
            page_size=config.TRENDING_PAGE_SIZE,
            user_agent=config.USER_AGENT,
            transport=transport,
        )

    @staticmethod
    def build_search_query(query: TrendingQuery) -> str:
        q = f"stars:>{query.min_stars}"
        if query.has_language:
            language = query.language
            # Multi-word languages ("Jupyter Notebook") must be quoted or the tail becomes a keyword
            if any(ch.isspace() for ch in language):
                language = f'"{language}"'
            q += f" language:{language}"
        return q

    async def fetch_trending(self, query: TrendingQuery) -> List[RawRepository]:
        self.log_start(query)
        params = {
            "q": self.build_search_query(query),
            "sort": query.sort,
            "order": "desc",
            "per_page": str(self.page_size),
        }
        try:
            response = await self._client.get("/search/repositories", params=params)
        except httpx.RequestError as exc:
            self.logger.error(f"GitHub API request failed: {exc!r}")
            raise UpstreamError(f"GitHub API request failed: {type(exc).__name__}") from exc
        if response.status_code >= 400:
            self._raise_for_status(response)

        try:
            payload = GitHubSearchResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            self.logger.error(f"Invalid GitHub API response: {exc}")
            raise UpstreamPayloadError("Invalid response format from GitHub API") from exc

        repositories = [self._to_raw(item) for item in payload.items]
        self.log_end(len(repositories))
        return repositories

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        self.logger.error(
            "GitHub API Error",
            extra={"status": status, "body": sanitize_for_log(response.text[:500])},
        )
        if status == 403 or status == 429:
            raise UpstreamRateLimitError("GitHub API rate limit exceeded. Please try again later.", status)
        if status == 401:
            raise UpstreamAuthError("Unauthorized access to GitHub API. Please check your token.", status)
        raise UpstreamError(f"GitHub API error: {status} {response.reason_phrase}", status)

    @staticmethod
    def _to_raw(item: GitHubSearchItem) -> RawRepository:
        owner, _, repo = item.full_name.partition("/")
        github_data = {
            "owner": item.owner.login if item.owner else owner,
            "repo": repo or item.name,
            "topics": list(item.topics),
        }
        if item.license and (item.license.spdx_id or item.license.name):
            github_data["license"] = item.license.spdx_id or item.license.name
        return RawRepository(
            platform=Platform.GITHUB,
            platform_id=str(item.id),
            name=item.full_name,
            url=item.html_url,
            description=item.description,
            language=item.language,
            stars=item.stargazers_count,
            forks=item.forks_count,
            platform_data={"github": github_data},
        )
