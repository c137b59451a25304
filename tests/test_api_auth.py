from __future__ import annotations

import httpx
from sqlalchemy import func, select

from trendlens.models.user import User
from trendlens.services import github_oauth


def test_me_requires_session(client) -> None:
    response = client.get("/api/me")

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


def test_login_redirects_to_github_with_state(client) -> None:
    response = client.get("/api/auth/github", follow_redirects=False)

    assert response.status_code == 302
    location = httpx.URL(response.headers["location"])
    assert str(location).startswith(github_oauth.GITHUB_AUTHORIZE_URL)
    assert location.params["client_id"] == "client-id"
    assert location.params["scope"] == "user:email"
    assert location.params["redirect_uri"] == "http://localhost:5000/api/auth/github/callback"
    assert location.params["state"]


def test_successful_login_creates_user_once(client, login, session_factory) -> None:
    first = login()
    assert first.status_code == 302
    assert first.headers["location"] == "/"

    me = client.get("/api/me")
    assert me.status_code == 200
    assert me.json() == {
        "id": me.json()["id"],
        "username": "octocat",
        "avatar": "https://avatars.example/octocat.png",
        "bio": "Builds things",
    }

    login()
    db = session_factory()
    try:
        assert db.execute(select(func.count(User.id))).scalar_one() == 1
    finally:
        db.close()


def test_callback_with_wrong_state_redirects_to_login(client) -> None:
    client.get("/api/auth/github", follow_redirects=False)

    response = client.get(
        "/api/auth/github/callback",
        params={"code": "valid-code", "state": "forged"},
        follow_redirects=False,
    )

    assert response.status_code == 302
    assert response.headers["location"] == "/login"
    assert client.get("/api/me").status_code == 401


def test_callback_exchange_failure_redirects_to_login(client, monkeypatch) -> None:
    async def failing_exchange(code, config, transport=None):
        raise github_oauth.OAuthExchangeError("GitHub did not return an access token")

    monkeypatch.setattr(github_oauth, "exchange_code_for_profile", failing_exchange)
    start = client.get("/api/auth/github", follow_redirects=False)
    state = httpx.URL(start.headers["location"]).params["state"]

    response = client.get(
        "/api/auth/github/callback",
        params={"code": "bad-code", "state": state},
        follow_redirects=False,
    )

    assert response.headers["location"] == "/login"
    assert client.get("/api/me").status_code == 401


def test_logout_clears_session(client, login) -> None:
    login()
    assert client.get("/api/me").status_code == 200

    response = client.post("/api/logout")

    assert response.status_code == 204
    assert client.get("/api/me").status_code == 401


def test_health_endpoints(client) -> None:
    assert client.get("/api/health").json()["status"] == "healthy"
    db_health = client.get("/api/health/db")
    assert db_health.status_code == 200
    assert db_health.json()["database"] == "connected"


def test_unknown_route_uses_error_body(client) -> None:
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"message": "Not Found", "code": "NOT_FOUND"}
