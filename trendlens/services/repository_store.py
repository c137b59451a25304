"""Persistence of cached repositories keyed by (platform, platform_id)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from trendlens.crawlers.base import RawRepository
from trendlens.models.repository import Platform, Repository
from trendlens.services.analysis_contracts import AiAnalysis, AnalysisPayloadError, parse_ai_analysis

logger = logging.getLogger(__name__)


class RepositoryStore:
    """Read and insert repository rows. Rows are never updated once written."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_platform_id(self, platform: Platform, platform_id: str) -> Optional[Repository]:
        stmt = select(Repository).where(
            Repository.platform == platform.value,
            Repository.platform_id == platform_id,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_id(self, repository_id: int) -> Optional[Repository]:
        return self.db.get(Repository, repository_id)

    def insert_or_get(self, raw: RawRepository, analysis: AiAnalysis) -> Repository:
        """
        Insert a new repository row, or return the row another writer committed first

        The insert is committed on its own so a unique-key violation only rolls
        back this row; the surviving row is then reselected.
        """
        repository = Repository(
            platform=raw.platform.value,
            platform_id=raw.platform_id,
            name=raw.name,
            description=raw.description,
            language=raw.language,
            stars=raw.stars,
            forks=raw.forks,
            url=raw.url,
            platform_data=raw.platform_data,
            ai_analysis=analysis.to_payload(),
        )
        self.db.add(repository)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.get_by_platform_id(raw.platform, raw.platform_id)
            if existing is None:
                raise
            logger.info(f"Repository {raw.name} was inserted concurrently, using stored row {existing.id}")
            return existing

        logger.info(f"Cached new repository: {raw.name} (id={repository.id})")
        return repository


def to_projection(repository: Repository) -> Dict[str, Any]:
    """
    Public JSON shape of a repository

    A stored analysis that matches no known schema is logged and rendered as null.
    """
    try:
        analysis = parse_ai_analysis(repository.ai_analysis, repository_name=repository.name)
    except AnalysisPayloadError as e:
        logger.error(f"Rejected stored analysis for repository {repository.id}: {e}")
        analysis = None

    return {
        "id": repository.id,
        "name": repository.name,
        "description": repository.description,
        "language": repository.language,
        "stars": repository.stars,
        "forks": repository.forks,
        "url": repository.url,
        "aiAnalysis": analysis.to_payload() if analysis else None,
    }
