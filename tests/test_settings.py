import pytest

from conftest import make_settings
from trendlens.config.settings import ConfigurationError, validate_startup_settings
from trendlens.main import create_app


def test_valid_settings_pass() -> None:
    validate_startup_settings(make_settings())
    validate_startup_settings(
        make_settings(DATABASE_URL="postgresql://user:pw@db.internal:5432/trendlens")
    )


def test_missing_required_values_are_listed() -> None:
    config = make_settings(SESSION_SECRET=None, GITHUB_CLIENT_SECRET="", OPENAI_API_KEY=None)

    with pytest.raises(ConfigurationError) as exc_info:
        validate_startup_settings(config)

    message = str(exc_info.value)
    assert "SESSION_SECRET" in message
    assert "GITHUB_CLIENT_SECRET" in message
    assert "OPENAI_API_KEY" in message


def test_anthropic_provider_requires_its_own_key() -> None:
    config = make_settings(LLM_PROVIDER="anthropic", OPENAI_API_KEY=None, ANTHROPIC_API_KEY=None)

    with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
        validate_startup_settings(config)


def test_unknown_provider_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="Unsupported LLM provider"):
        validate_startup_settings(make_settings(LLM_PROVIDER="gemini"))


@pytest.mark.parametrize("url", ["not a database url", "postgresql://user:pw@/trendlens", "postgresql://db.internal"])
def test_malformed_database_url_is_rejected(url: str) -> None:
    with pytest.raises(ConfigurationError, match="Invalid DATABASE_URL"):
        validate_startup_settings(make_settings(DATABASE_URL=url))


def test_create_app_refuses_to_start_without_configuration() -> None:
    with pytest.raises(ConfigurationError):
        create_app(make_settings(DATABASE_URL=None))


def test_derived_properties() -> None:
    config = make_settings(APP_ENV="Production", APP_URL="https://trendlens.example/")

    assert config.is_production is True
    assert config.oauth_callback_url == "https://trendlens.example/api/auth/github/callback"
