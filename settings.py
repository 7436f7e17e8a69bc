#!/usr/bin/env python3
"""
Runtime configuration.

Values come from the process environment, optionally seeded from a `.env`
file next to this module.

Environment Variables:
    LLM_PROVIDER, LLM_MODEL: see llm_provider.py
    LLM_TIMEOUT_SECONDS: deadline for the AI overall-sentiment call (default 30)
    NEWS_FETCH_TIMEOUT: per-request timeout for news providers (default 10)
    NEWS_MAX_RESULTS: articles kept per provider response (default 20)
    NEWS_FETCH_WORKERS: concurrent queries per batch (default 4)
    NEWS_MIN_ARTICLES / NEWS_TARGET_ARTICLES / NEWS_MIN_RELEVANCE:
        orchestrator defaults (3 / 5 / 0.55)
    FINNHUB_API_KEY, MARKETAUX_API_KEY, ALPHA_VANTAGE_API_KEY:
        optional secondary news sources
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv(os.path.join(os.path.dirname(__file__), ".env"))


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    llm_provider: Optional[str]
    llm_model: Optional[str]
    llm_timeout_seconds: float
    fetch_timeout_seconds: float
    max_results_per_query: int
    fetch_workers: int
    min_articles: int
    target_articles: int
    min_relevance: float
    finnhub_api_key: Optional[str]
    marketaux_api_key: Optional[str]
    alpha_vantage_api_key: Optional[str]

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            llm_provider=os.environ.get("LLM_PROVIDER") or None,
            llm_model=os.environ.get("LLM_MODEL") or None,
            llm_timeout_seconds=_env_float("LLM_TIMEOUT_SECONDS", 30.0),
            fetch_timeout_seconds=_env_float("NEWS_FETCH_TIMEOUT", 10.0),
            max_results_per_query=_env_int("NEWS_MAX_RESULTS", 20),
            fetch_workers=max(1, _env_int("NEWS_FETCH_WORKERS", 4)),
            min_articles=_env_int("NEWS_MIN_ARTICLES", 3),
            target_articles=_env_int("NEWS_TARGET_ARTICLES", 5),
            min_relevance=_env_float("NEWS_MIN_RELEVANCE", 0.55),
            finnhub_api_key=os.environ.get("FINNHUB_API_KEY") or None,
            marketaux_api_key=os.environ.get("MARKETAUX_API_KEY") or None,
            alpha_vantage_api_key=os.environ.get("ALPHA_VANTAGE_API_KEY") or None,
        )

    @property
    def llm_configured(self) -> bool:
        return bool(self.llm_provider)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the settings snapshot for this process."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Drop the cached snapshot so the environment is read again."""
    global _settings
    _settings = None
