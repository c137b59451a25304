"""
Trending repository endpoints
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from trendlens.api.deps import get_db, get_enrichment, get_settings, get_source_factory
from trendlens.config.settings import Settings
from trendlens.crawlers import SourceFactory
from trendlens.services.enrichment import EnrichmentService
from trendlens.services.ingestion import TrendingIngestionService, parse_trending_filters

router = APIRouter()


@router.get("/trending")
async def list_trending(
    request: Request,
    config: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
    enrichment: EnrichmentService = Depends(get_enrichment),
    source_factory: SourceFactory = Depends(get_source_factory),
) -> List[Dict[str, Any]]:
    """Trending repositories for ?platform=&language=&sort=&minStars=, enriched once and cached."""
    query = parse_trending_filters(request.query_params, config)
    service = TrendingIngestionService(
        db=db,
        source_factory=source_factory,
        enrichment=enrichment,
        concurrency=config.ENRICHMENT_CONCURRENCY,
    )
    return await service.get_trending(query)
