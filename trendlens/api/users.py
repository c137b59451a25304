"""
Current-user endpoint
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from trendlens.api.deps import get_db, require_user_id
from trendlens.services.auth_service import AuthService
from trendlens.services.exceptions import UnauthorizedError

router = APIRouter()


@router.get("/me")
def get_me(
    request: Request,
    user_id: int = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    user = AuthService(db).get_user(user_id)
    if user is None:
        # Session outlived its account
        request.session.clear()
        raise UnauthorizedError("Unauthorized")
    return user.to_dict()
