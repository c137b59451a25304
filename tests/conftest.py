from __future__ import annotations

import json
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from trendlens.config.database import bootstrap_database, build_engine, build_session_factory
from trendlens.config.settings import Settings
from trendlens.crawlers import default_source_factory
from trendlens.main import create_app
from trendlens.services import github_oauth
from trendlens.services.enrichment import EnrichmentService

FIXED_NOW = "2024-05-01T12:00:00Z"

VALID_ANALYSIS = {
    "suggestions": [
        "Read the request router to see how middleware is chained",
        "Add a plugin that exposes a new CLI command",
        "Write integration tests for the config loader",
    ],
    "topKeywords": ["Web", "framework", "web"],
    "domainCategory": "Web Development",
    "trendingScore": 82,
    "insights": {
        "trendReason": "A fast new release landed",
        "ecosystemImpact": "Simplifies API services",
        "futureOutlook": "Likely to keep growing",
    },
}


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "APP_ENV": "development",
        "DATABASE_URL": "sqlite://",
        "SESSION_SECRET": "test-session-secret",
        "GITHUB_CLIENT_ID": "client-id",
        "GITHUB_CLIENT_SECRET": "client-secret",
        "GITHUB_TOKEN": "gh-test-token",
        "LLM_PROVIDER": "openai",
        "OPENAI_API_KEY": "sk-test",
    }
    values.update(overrides)
    return Settings(**values)


def github_item(repo_id: int = 42, full_name: str = "acme/demo", stars: int = 1500, **extra: Any) -> dict[str, Any]:
    owner, _, name = full_name.partition("/")
    item = {
        "id": repo_id,
        "name": name,
        "full_name": full_name,
        "html_url": f"https://github.com/{full_name}",
        "description": "Demo project",
        "language": "Python",
        "stargazers_count": stars,
        "forks_count": 12,
        "owner": {"login": owner},
        "topics": ["demo"],
        "license": {"spdx_id": "MIT", "name": "MIT License"},
    }
    item.update(extra)
    return item


class FakeLLM:
    """Scriptable llm_call. Each call pops the next scripted outcome, repeating the last one."""

    def __init__(self, *outcomes: Any) -> None:
        self.outcomes = list(outcomes) or [json.dumps(VALID_ANALYSIS)]
        self.prompts: list[str] = []

    def set(self, *outcomes: Any) -> None:
        self.outcomes = list(outcomes)

    async def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    @property
    def calls(self) -> int:
        return len(self.prompts)


class GitHubStub:
    """MockTransport for the search API that records every request."""

    def __init__(self) -> None:
        self.items: list[dict[str, Any]] = [github_item()]
        self.status_code = 200
        self.body: Any = None
        self.error: Exception | None = None
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"message": "upstream says no"})
        body = self.body if self.body is not None else {"total_count": len(self.items), "items": self.items}
        return httpx.Response(200, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class CountingSessionFactory:
    def __init__(self, factory: Any) -> None:
        self._factory = factory
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self._factory()


async def no_sleep(_: float) -> None:
    return None


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://")
    bootstrap_database(engine, max_attempts=1, retry_delay_seconds=0)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def enrichment(fake_llm: FakeLLM) -> EnrichmentService:
    return EnrichmentService(
        llm_call=fake_llm,
        max_attempts=3,
        backoff_base_seconds=0.01,
        backoff_max_seconds=0.02,
        sleeper=no_sleep,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def github_stub() -> GitHubStub:
    return GitHubStub()


@pytest.fixture
def counting_session_factory(session_factory) -> CountingSessionFactory:
    return CountingSessionFactory(session_factory)


@pytest.fixture
def app(settings, counting_session_factory, enrichment, github_stub):
    return create_app(
        settings,
        session_factory=counting_session_factory,
        enrichment=enrichment,
        source_factory=default_source_factory(settings, transport=github_stub.transport),
    )


@pytest.fixture
def client(app) -> TestClient:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login(client: TestClient, monkeypatch):
    """Sign the test client in as a GitHub user through the real OAuth routes."""

    def _login(github_id: int = 1001, login_name: str = "octocat") -> httpx.Response:
        async def fake_exchange(code: str, config: Settings, transport=None) -> github_oauth.GitHubProfile:
            assert code == "valid-code"
            return github_oauth.GitHubProfile(
                id=github_id,
                login=login_name,
                avatar_url=f"https://avatars.example/{login_name}.png",
                bio="Builds things",
            )

        monkeypatch.setattr(github_oauth, "exchange_code_for_profile", fake_exchange)
        start = client.get("/api/auth/github", follow_redirects=False)
        state = httpx.URL(start.headers["location"]).params["state"]
        return client.get(
            "/api/auth/github/callback",
            params={"code": "valid-code", "state": state},
            follow_redirects=False,
        )

    return _login
