"""Trending ingestion: fetch upstream, cache each repository once, enrich on first sight."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from trendlens.config.settings import Settings
from trendlens.crawlers import SourceFactory
from trendlens.crawlers.base import RawRepository, TrendingQuery
from trendlens.models.repository import Repository
from trendlens.services.enrichment import EnrichmentService
from trendlens.services.exceptions import BadRequestError
from trendlens.services.repository_store import RepositoryStore, to_projection

logger = logging.getLogger(__name__)


def parse_trending_filters(query_params: Any, config: Settings) -> TrendingQuery:
    """
    Validate the raw query string of a trending request

    Args:
        query_params: Starlette QueryParams (multi-valued)
        config: Settings providing the default star threshold

    Raises:
        BadRequestError: malformed or repeated parameter
    """
    return TrendingQuery.from_params(
        platform=_single(query_params, "platform"),
        languages=list(query_params.getlist("language")),
        sort=_single(query_params, "sort"),
        min_stars=_single(query_params, "minStars"),
        default_min_stars=config.TRENDING_DEFAULT_MIN_STARS,
    )


def _single(query_params: Any, key: str) -> Optional[str]:
    values = query_params.getlist(key)
    if len(values) > 1:
        raise BadRequestError(f"Invalid {key} parameter")
    return values[0] if values else None


class TrendingIngestionService:
    """
    Serve a trending page backed by the repository cache

    For every upstream item the stored row wins; unseen items are enriched and
    inserted. The response is assembled only after every item completes, in
    upstream order.
    """

    def __init__(
        self,
        *,
        db: Session,
        source_factory: SourceFactory,
        enrichment: EnrichmentService,
        concurrency: int = 5,
    ) -> None:
        self._store = RepositoryStore(db)
        self._source_factory = source_factory
        self._enrichment = enrichment
        self._semaphore = asyncio.Semaphore(max(concurrency, 1))

    async def get_trending(self, query: TrendingQuery) -> List[Dict[str, Any]]:
        source = self._source_factory(query.platform)
        async with source:
            items = await source.fetch_trending(query)

        repositories = await asyncio.gather(*(self._resolve(item) for item in items))
        logger.info(f"Served {len(repositories)} trending repositories for {query}")
        return [to_projection(repo) for repo in repositories]

    async def _resolve(self, raw: RawRepository) -> Repository:
        cached = self._store.get_by_platform_id(raw.platform, raw.platform_id)
        if cached is not None:
            return cached

        async with self._semaphore:
            # Another coroutine may have cached it while we waited
            cached = self._store.get_by_platform_id(raw.platform, raw.platform_id)
            if cached is not None:
                return cached
            analysis = await self._enrichment.analyze(raw.name, raw.description)

        return self._store.insert_or_get(raw, analysis)
