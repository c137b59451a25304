"""
Bookmark endpoints
"""

import json
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError
from sqlalchemy.orm import Session

from trendlens.api.deps import get_db, require_user_id
from trendlens.services.bookmark_service import BookmarkService
from trendlens.services.exceptions import BadRequestError

router = APIRouter()


class BookmarkCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    repo_id: StrictInt = Field(alias="repoId", gt=0)


@router.get("/bookmarks")
def list_bookmarks(
    user_id: int = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    return BookmarkService(db).list_for_user(user_id)


@router.post("/bookmarks")
async def create_bookmark(
    request: Request,
    user_id: int = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Bookmark a cached repository. The body is read only after the session check."""
    try:
        payload = BookmarkCreate.model_validate(await request.json())
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError):
        raise BadRequestError("Invalid repository ID")
    return BookmarkService(db).create(user_id, payload.repo_id)
