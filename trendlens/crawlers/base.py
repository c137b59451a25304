"""Base trending-source class with common functionality"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from trendlens.models.repository import Platform
from trendlens.services.exceptions import BadRequestError

ALL_LANGUAGES = "All"
SORT_KEYS = ("stars", "forks", "updated")
_LANGUAGE_PATTERN = re.compile(r"^[A-Za-z0-9+#.\- ]{1,50}$")


@dataclass(frozen=True)
class TrendingQuery:
    """Validated filters for one trending request."""

    platform: Platform = Platform.GITHUB
    language: str = ALL_LANGUAGES
    sort: str = "stars"
    min_stars: int = 100

    @property
    def has_language(self) -> bool:
        return self.language != ALL_LANGUAGES

    @classmethod
    def from_params(
        cls,
        *,
        platform: Optional[str],
        languages: List[str],
        sort: Optional[str],
        min_stars: Optional[str],
        default_min_stars: int,
    ) -> "TrendingQuery":
        """
        Build a query from raw query-string values

        Raises:
            BadRequestError: any value is malformed
        """
        try:
            resolved_platform = Platform((platform or Platform.GITHUB.value).strip().lower())
        except ValueError:
            raise BadRequestError(f"Unsupported platform: {platform}")

        if len(languages) > 1:
            raise BadRequestError("Invalid language parameter")
        language = languages[0].strip() if languages else ALL_LANGUAGES
        if not language or not _LANGUAGE_PATTERN.match(language):
            raise BadRequestError("Invalid language parameter")
        if language.lower() == ALL_LANGUAGES.lower():
            language = ALL_LANGUAGES

        resolved_sort = (sort or "stars").strip().lower()
        if resolved_sort not in SORT_KEYS:
            raise BadRequestError(f"Invalid sort parameter: expected one of {', '.join(SORT_KEYS)}")

        if min_stars is None or min_stars.strip() == "":
            resolved_min_stars = default_min_stars
        else:
            try:
                resolved_min_stars = int(min_stars)
            except ValueError:
                raise BadRequestError("Invalid minStars parameter")
            if resolved_min_stars < 0:
                raise BadRequestError("Invalid minStars parameter")

        return cls(
            platform=resolved_platform,
            language=language,
            sort=resolved_sort,
            min_stars=resolved_min_stars,
        )


class RawRepository:
    """
    Upstream repository data before it is cached

    This is the intermediate format before converting to the Repository model
    """
    def __init__(
        self,
        platform: Platform,
        platform_id: str,
        name: str,
        url: str,
        description: Optional[str] = None,
        language: Optional[str] = None,
        stars: int = 0,
        forks: int = 0,
        platform_data: Optional[Dict[str, Any]] = None
    ):
        self.platform = platform
        self.platform_id = platform_id
        self.name = name
        self.url = url
        self.description = description
        self.language = language
        self.stars = stars
        self.forks = forks
        self.platform_data = platform_data or {}

    def __repr__(self):
        return f"<RawRepository {self.platform.value}:{self.name}>"


class BaseTrendingSource(ABC):
    """
    Base trending source

    Each platform client inherits from this class and is used as an async
    context manager so its HTTP client is always closed.
    """

    platform: Platform

    def __init__(
        self,
        *,
        base_url: str,
        headers: Dict[str, str],
        timeout_seconds: float,
        page_size: int,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.page_size = page_size
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "BaseTrendingSource":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @abstractmethod
    async def fetch_trending(self, query: TrendingQuery) -> List[RawRepository]:
        """
        Fetch one page of trending repositories

        Returns:
            List of RawRepository objects in upstream order

        Raises:
            UpstreamError: the upstream answered with an error or a malformed payload
        """
        pass

    def log_start(self, query: TrendingQuery):
        self.logger.info(f"Fetching trending repositories: {query}")

    def log_end(self, count: int):
        self.logger.info(f"Fetched {count} repositories from {self.platform.value}")
