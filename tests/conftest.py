"""Pytest configuration and fixtures shared by all tests.

Tests never touch the network: provider keys are cleared, the ticker
resolver uses a fake company lookup, and fetchers are replaced with mocks.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

import llm_provider
from news_models import Article, TickerRecord
from settings import reset_settings
from ticker_resolver import TickerCache, TickerResolver, clear_ticker_cache, generate_aliases

# Environment variables that would switch on real providers
ENV_VARS = [
    "LLM_PROVIDER",
    "LLM_MODEL",
    "LLM_TIMEOUT_SECONDS",
    "GOOGLE_API_KEY",
    "GEMINI_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "NEWS_FETCH_TIMEOUT",
    "NEWS_MAX_RESULTS",
    "NEWS_FETCH_WORKERS",
    "NEWS_MIN_ARTICLES",
    "NEWS_TARGET_ARTICLES",
    "NEWS_MIN_RELEVANCE",
    "FINNHUB_API_KEY",
    "MARKETAUX_API_KEY",
    "ALPHA_VANTAGE_API_KEY",
]

NOW = datetime(2025, 6, 2, 12, 0, 0, tzinfo=timezone.utc)

COMPANIES = {
    "AAPL": {"shortName": "Apple Inc.", "longName": "Apple Inc."},
    "TSLA": {"shortName": "Tesla, Inc.", "longName": "Tesla, Inc."},
    "MSFT": {"shortName": "Microsoft Corporation", "longName": "Microsoft Corporation"},
}


@pytest.fixture(autouse=True)
def isolate_from_env():
    """Clear provider env vars and cached singletons around every test."""
    original_values = {}
    for var in ENV_VARS:
        if var in os.environ:
            original_values[var] = os.environ.pop(var)
    reset_settings()
    llm_provider.reset_provider()
    clear_ticker_cache()

    yield

    for var, value in original_values.items():
        os.environ[var] = value
    reset_settings()
    llm_provider.reset_provider()
    clear_ticker_cache()


class MockCompanyLookup:
    """Company lookup backed by a fixed table; counts calls."""

    def __init__(self, companies=None, fail=False):
        self.companies = COMPANIES if companies is None else companies
        self.fail = fail
        self.calls = []

    def __call__(self, symbol):
        self.calls.append(symbol)
        if self.fail:
            raise ConnectionError("quote service unavailable")
        return self.companies.get(symbol, {})


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def company_lookup():
    return MockCompanyLookup()


@pytest.fixture
def resolver(company_lookup):
    return TickerResolver(lookup=company_lookup, cache=TickerCache())


@pytest.fixture
def aapl():
    return TickerRecord(
        symbol="AAPL",
        name="Apple Inc.",
        short_name="Apple Inc.",
        long_name="Apple Inc.",
        aliases=generate_aliases("AAPL", "Apple Inc.", "Apple Inc."),
    )


def make_article(title, description=None, hours_ago=1.0, url=None, source="Reuters",
                 symbols=None, content=None, quality=None):
    return Article(
        title=title,
        description=description,
        content=content,
        published_at=NOW - timedelta(hours=hours_ago),
        source=source,
        url=url,
        symbols=frozenset(symbols) if symbols else None,
        quality=quality,
    )


@pytest.fixture
def article_factory():
    return make_article
