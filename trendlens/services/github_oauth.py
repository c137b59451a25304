"""GitHub OAuth helper utilities."""
from __future__ import annotations

import logging
import secrets
from typing import Optional

import httpx
from pydantic import BaseModel, StrictInt, StrictStr, ValidationError

from trendlens.config.settings import Settings
from trendlens.services.exceptions import UnauthorizedError
from trendlens.utils.logger import sanitize_for_log

logger = logging.getLogger(__name__)

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"


class OAuthExchangeError(UnauthorizedError):
    """Raised when GitHub rejects the code or returns an unusable profile."""


class GitHubProfile(BaseModel):
    id: StrictInt
    login: StrictStr
    avatar_url: Optional[str] = None
    bio: Optional[str] = None


def new_oauth_state() -> str:
    return secrets.token_urlsafe(24)


def build_authorize_url(state: str, config: Settings) -> str:
    params = {
        "client_id": config.GITHUB_CLIENT_ID or "",
        "redirect_uri": config.oauth_callback_url,
        "scope": " ".join(config.GITHUB_OAUTH_SCOPES),
        "state": state,
    }
    return str(httpx.URL(GITHUB_AUTHORIZE_URL, params=params))


async def exchange_code_for_profile(
    code: str,
    config: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> GitHubProfile:
    """
    Trade an authorization code for the signed-in user's GitHub profile

    Raises:
        OAuthExchangeError: GitHub refused the code or answered with garbage
    """
    async with httpx.AsyncClient(timeout=config.UPSTREAM_TIMEOUT_SECONDS, transport=transport) as client:
        try:
            token_response = await client.post(
                GITHUB_TOKEN_URL,
                headers={"Accept": "application/json"},
                data={
                    "client_id": config.GITHUB_CLIENT_ID,
                    "client_secret": config.GITHUB_CLIENT_SECRET,
                    "code": code,
                    "redirect_uri": config.oauth_callback_url,
                },
            )
            token_response.raise_for_status()
            token_data = token_response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(f"GitHub token exchange failed: {sanitize_for_log(str(exc))}")
            raise OAuthExchangeError("GitHub authentication failed") from exc

        access_token = token_data.get("access_token") if isinstance(token_data, dict) else None
        if not access_token:
            error = token_data.get("error") if isinstance(token_data, dict) else None
            logger.error(f"GitHub did not return an access token (error={error})")
            raise OAuthExchangeError("GitHub did not return an access token")

        try:
            user_response = await client.get(
                f"{config.GITHUB_API_URL.rstrip('/')}/user",
                headers={
                    "Accept": "application/vnd.github+json",
                    "Authorization": f"Bearer {access_token}",
                    "User-Agent": config.USER_AGENT,
                },
            )
            user_response.raise_for_status()
            return GitHubProfile.model_validate(user_response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            logger.error(f"GitHub profile fetch failed: {sanitize_for_log(str(exc))}")
            raise OAuthExchangeError("GitHub authentication failed") from exc
