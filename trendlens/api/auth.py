"""
Session authentication through GitHub OAuth
"""

import logging
import secrets

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from trendlens.api.deps import SESSION_STATE_KEY, SESSION_USER_KEY, get_db, get_settings
from trendlens.config.settings import Settings
from trendlens.services import github_oauth
from trendlens.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter()

LOGIN_FAILURE_REDIRECT = "/login"
LOGIN_SUCCESS_REDIRECT = "/"


@router.get("/auth/github")
def github_login(request: Request, config: Settings = Depends(get_settings)):
    """Start the OAuth flow by remembering a state token and redirecting to GitHub."""
    state = github_oauth.new_oauth_state()
    request.session[SESSION_STATE_KEY] = state
    return RedirectResponse(github_oauth.build_authorize_url(state, config), status_code=status.HTTP_302_FOUND)


@router.get("/auth/github/callback")
async def github_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    config: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    """Exchange the code, sign the user in, and send the browser home (or to /login on failure)."""
    expected_state = request.session.pop(SESSION_STATE_KEY, None)
    if not code or not state or not expected_state or not secrets.compare_digest(state, expected_state):
        logger.warning("GitHub OAuth callback rejected: missing code or state mismatch")
        return RedirectResponse(LOGIN_FAILURE_REDIRECT, status_code=status.HTTP_302_FOUND)

    try:
        profile = await github_oauth.exchange_code_for_profile(code, config)
        user = AuthService(db).find_or_create_user(profile)
    except (github_oauth.OAuthExchangeError, SQLAlchemyError) as e:
        logger.error(f"GitHub login failed: {e}")
        return RedirectResponse(LOGIN_FAILURE_REDIRECT, status_code=status.HTTP_302_FOUND)

    request.session[SESSION_USER_KEY] = user.id
    logger.info(f"User {user.id} signed in")
    return RedirectResponse(LOGIN_SUCCESS_REDIRECT, status_code=status.HTTP_302_FOUND)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(request: Request):
    request.session.clear()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
