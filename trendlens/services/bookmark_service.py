"""Bookmarks: a user's saved repositories."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from trendlens.models.bookmark import Bookmark
from trendlens.models.repository import Repository
from trendlens.services.exceptions import ConflictError, NotFoundError
from trendlens.services.repository_store import RepositoryStore, to_projection

logger = logging.getLogger(__name__)


class BookmarkService:
    def __init__(self, db: Session):
        self.db = db
        self._repositories = RepositoryStore(db)

    def create(self, user_id: int, repository_id: int) -> Dict[str, Any]:
        """
        Bookmark a cached repository for a user

        Raises:
            NotFoundError: no repository with that id
            ConflictError: the user already bookmarked it
        """
        if self._repositories.get_by_id(repository_id) is None:
            raise NotFoundError("Repository not found")

        if self._exists(user_id, repository_id):
            raise ConflictError("Bookmark already exists")

        bookmark = Bookmark(user_id=user_id, repository_id=repository_id)
        self.db.add(bookmark)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            # Only a row from an identical concurrent request is a conflict; anything else (e.g. FK) propagates
            if not self._exists(user_id, repository_id):
                raise
            raise ConflictError("Bookmark already exists")

        logger.info(f"User {user_id} bookmarked repository {repository_id}")
        return bookmark.to_dict()

    def list_for_user(self, user_id: int) -> List[Dict[str, Any]]:
        """Projections of the user's bookmarked repositories, oldest bookmark first."""
        stmt = (
            select(Repository)
            .join(Bookmark, Bookmark.repository_id == Repository.id)
            .where(Bookmark.user_id == user_id)
            .order_by(Bookmark.id)
        )
        return [to_projection(repo) for repo in self.db.execute(stmt).scalars().all()]

    def _exists(self, user_id: int, repository_id: int) -> bool:
        stmt = select(Bookmark.id).where(
            Bookmark.user_id == user_id,
            Bookmark.repository_id == repository_id,
        )
        return self.db.execute(stmt).first() is not None
