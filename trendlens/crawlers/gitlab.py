"""GitLab projects-API trending source"""

from __future__ import annotations

from typing import Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr, TypeAdapter, ValidationError

from trendlens.config.settings import Settings
from trendlens.crawlers.base import BaseTrendingSource, RawRepository, TrendingQuery
from trendlens.models.repository import Platform
from trendlens.services.exceptions import (
    UpstreamAuthError,
    UpstreamError,
    UpstreamPayloadError,
    UpstreamRateLimitError,
)
from trendlens.utils.logger import sanitize_for_log

# GitLab has no fork ordering; forks are re-sorted client-side from a star-ordered page
_ORDER_BY = {
    "stars": "star_count",
    "forks": "star_count",
    "updated": "last_activity_at",
}


class GitLabNamespace(BaseModel):
    full_path: Optional[str] = None


class GitLabProject(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: StrictInt
    name: StrictStr
    path_with_namespace: StrictStr
    web_url: StrictStr
    description: Optional[str] = None
    star_count: StrictInt
    forks_count: StrictInt = 0
    visibility: Optional[str] = None
    namespace: Optional[GitLabNamespace] = None


_PROJECT_LIST = TypeAdapter(List[GitLabProject])


class GitLabTrendingSource(BaseTrendingSource):
    """
    Trending = most-starred (or most recently active) public projects

    GitLab cannot filter on star count server-side, so min_stars is applied to
    the fetched page.
    """

    platform = Platform.GITLAB

    def __init__(
        self,
        *,
        token: Optional[str] = None,
        base_url: str = "https://gitlab.com/api/v4",
        timeout_seconds: float = 15.0,
        page_size: int = 30,
        user_agent: str = "TrendLens/1.0",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers: Dict[str, str] = {"User-Agent": user_agent}
        if token:
            headers["PRIVATE-TOKEN"] = token
        super().__init__(
            base_url=base_url,
            headers=headers,
            timeout_seconds=timeout_seconds,
            page_size=page_size,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, config: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> "GitLabTrendingSource":
        return cls(
            token=config.GITLAB_TOKEN,
            base_url=config.GITLAB_API_URL,
            timeout_seconds=config.UPSTREAM_TIMEOUT_SECONDS,
            page_size=config.TRENDING_PAGE_SIZE,
            user_agent=config.USER_AGENT,
            transport=transport,
        )

    async def fetch_trending(self, query: TrendingQuery) -> List[RawRepository]:
        self.log_start(query)
        params = {
            "order_by": _ORDER_BY[query.sort],
            "sort": "desc",
            "per_page": str(self.page_size),
            "visibility": "public",
        }
        if query.has_language:
            params["with_programming_language"] = query.language

        try:
            response = await self._client.get("/projects", params=params)
        except httpx.RequestError as exc:
            self.logger.error(f"GitLab API request failed: {exc!r}")
            raise UpstreamError(f"GitLab API request failed: {type(exc).__name__}") from exc
        if response.status_code >= 400:
            self._raise_for_status(response)

        try:
            projects = _PROJECT_LIST.validate_python(response.json())
        except (ValueError, ValidationError) as exc:
            self.logger.error(f"Invalid GitLab API response: {exc}")
            raise UpstreamPayloadError("Invalid response format from GitLab API") from exc

        projects = [p for p in projects if p.star_count > query.min_stars]
        if query.sort == "forks":
            projects.sort(key=lambda p: p.forks_count, reverse=True)

        language = query.language if query.has_language else None
        repositories = [self._to_raw(p, language) for p in projects]
        self.log_end(len(repositories))
        return repositories

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        self.logger.error(
            "GitLab API Error",
            extra={"status": status, "body": sanitize_for_log(response.text[:500])},
        )
        if status == 429 or status == 403:
            raise UpstreamRateLimitError("GitLab API rate limit exceeded. Please try again later.", status)
        if status == 401:
            raise UpstreamAuthError("Unauthorized access to GitLab API. Please check your token.", status)
        raise UpstreamError(f"GitLab API error: {status} {response.reason_phrase}", status)

    @staticmethod
    def _to_raw(project: GitLabProject, language: Optional[str]) -> RawRepository:
        namespace = project.namespace.full_path if project.namespace and project.namespace.full_path else None
        if namespace is None:
            namespace = project.path_with_namespace.rpartition("/")[0]
        return RawRepository(
            platform=Platform.GITLAB,
            platform_id=str(project.id),
            name=project.path_with_namespace,
            url=project.web_url,
            description=project.description,
            language=language,
            stars=project.star_count,
            forks=project.forks_count,
            platform_data={
                "gitlab": {
                    "namespace": namespace,
                    "projectId": project.id,
                    "visibility": project.visibility or "public",
                }
            },
        )
