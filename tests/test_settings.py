"""Tests for environment-driven settings."""

from settings import get_settings, reset_settings


def test_defaults():
    settings = get_settings()

    assert settings.llm_provider is None
    assert not settings.llm_configured
    assert settings.llm_timeout_seconds == 30.0
    assert settings.fetch_timeout_seconds == 10.0
    assert settings.max_results_per_query == 20
    assert settings.fetch_workers == 4
    assert (settings.min_articles, settings.target_articles) == (3, 5)
    assert settings.min_relevance == 0.55
    assert settings.finnhub_api_key is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "anthropic")
    monkeypatch.setenv("NEWS_MIN_RELEVANCE", "0.4")
    monkeypatch.setenv("NEWS_FETCH_WORKERS", "0")
    monkeypatch.setenv("NEWS_TARGET_ARTICLES", "not a number")
    reset_settings()

    settings = get_settings()

    assert settings.llm_configured
    assert settings.min_relevance == 0.4
    assert settings.fetch_workers == 1
    assert settings.target_articles == 5


def test_snapshot_is_cached(monkeypatch):
    first = get_settings()
    monkeypatch.setenv("NEWS_MIN_ARTICLES", "7")

    assert get_settings() is first

    reset_settings()
    assert get_settings().min_articles == 7
