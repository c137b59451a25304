"""FastAPI dependencies. Everything is read from app.state set up by create_app."""

from __future__ import annotations

from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from trendlens.config.database import session_scope
from trendlens.config.settings import Settings
from trendlens.crawlers import SourceFactory
from trendlens.services.enrichment import EnrichmentService
from trendlens.services.exceptions import UnauthorizedError

SESSION_USER_KEY = "user_id"
SESSION_STATE_KEY = "oauth_state"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Iterator[Session]:
    yield from session_scope(request.app.state.session_factory)


def get_enrichment(request: Request) -> EnrichmentService:
    return request.app.state.enrichment


def get_source_factory(request: Request) -> SourceFactory:
    return request.app.state.source_factory


def get_session_user_id(request: Request) -> Optional[int]:
    user_id = request.session.get(SESSION_USER_KEY)
    if isinstance(user_id, int) and not isinstance(user_id, bool):
        return user_id
    return None


def require_user_id(request: Request) -> int:
    """Session user id, or 401. Declare it before get_db so no session is opened for anonymous callers."""
    user_id = get_session_user_id(request)
    if user_id is None:
        raise UnauthorizedError("Unauthorized")
    return user_id
