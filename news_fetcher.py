#!/usr/bin/env python3
"""
News Fetchers
Pulls raw stock news from Yahoo Finance and the optional keyed providers
(Finnhub, MarketAux, Alpha Vantage) and normalizes every provider's record
shape into Article at the boundary.

Also provides MultiSourceNewsFetcher, which walks the providers in priority
order and relaxes the relevance threshold on a fixed schedule when too few
articles survive filtering.
"""

import logging
from abc import ABC, abstractmethod
from calendar import timegm
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence

import feedparser
import requests
import yfinance as yf
from bs4 import BeautifulSoup

from article_relevance import filter_relevant_articles, log_relevance_filtering, relevance_stats
from data_quality import assess_article_quality, meets_quality_threshold
from dedupe import dedupe
from news_models import (
    Article,
    ArticleQuality,
    DataQuality,
    FetchQueryError,
    MultiSourceResult,
)
from settings import Settings, get_settings
from ticker_resolver import TickerResolver, default_resolver

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"

YAHOO_RSS_URL = "https://feeds.finance.yahoo.com/rss/2.0/headline"


def make_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})
    return session


def strip_html(text: Optional[str]) -> Optional[str]:
    """Return plain text for an HTML fragment (feed summaries often carry markup)."""
    if not text:
        return None
    if "<" not in text:
        return text.strip() or None
    plain = BeautifulSoup(text, "html.parser").get_text(" ", strip=True)
    return plain or None


def _epoch(seconds: Any) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(float(seconds), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _iso(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _build(title: Any, description: Any, published: Optional[datetime], source: Any,
           url: Any, symbols: Optional[Sequence[str]] = None,
           content: Any = None) -> Optional[Article]:
    title = strip_html(title) if isinstance(title, str) else None
    if not title:
        return None
    description = strip_html(description) if isinstance(description, str) else None
    content = strip_html(content) if isinstance(content, str) else None
    return Article(
        title=title,
        description=description,
        content=content if content != description else None,
        published_at=published or datetime.now(timezone.utc),
        source=source or None,
        url=url or None,
        symbols=frozenset(s.upper() for s in symbols if s) if symbols else None,
        quality=assess_article_quality(title, description),
    )


# ---------------------------------------------------------------------------
# Provider adapters
# ---------------------------------------------------------------------------

def normalize_yahoo_item(item: dict) -> Optional[Article]:
    """Normalize a yfinance news record (flat or nested under 'content')."""
    content = item.get("content") if isinstance(item.get("content"), dict) else item

    published = _iso(content.get("pubDate")) or _epoch(item.get("providerPublishTime"))

    provider = content.get("provider")
    publisher = provider.get("displayName") if isinstance(provider, dict) else None
    publisher = publisher or item.get("publisher") or "Yahoo Finance"

    link = item.get("link")
    for key in ("canonicalUrl", "clickThroughUrl"):
        ref = content.get(key)
        if not link and isinstance(ref, dict) and ref.get("url"):
            link = ref["url"]

    return _build(
        title=content.get("title"),
        description=content.get("summary") or content.get("description"),
        published=published,
        source=publisher,
        url=link,
        symbols=item.get("relatedTickers"),
    )


def normalize_finnhub_item(item: dict) -> Optional[Article]:
    return _build(
        title=item.get("headline"),
        description=item.get("summary"),
        published=_epoch(item.get("datetime")),
        source=item.get("source") or "Finnhub",
        url=item.get("url"),
        symbols=[s.strip() for s in (item.get("related") or "").split(",")],
    )


def normalize_marketaux_item(item: dict) -> Optional[Article]:
    entities = item.get("entities") or []
    return _build(
        title=item.get("title"),
        description=item.get("description") or item.get("snippet"),
        published=_iso(item.get("published_at")),
        source=item.get("source") or "MarketAux",
        url=item.get("url"),
        symbols=[e.get("symbol") for e in entities if isinstance(e, dict)],
    )


def normalize_alpha_vantage_item(item: dict) -> Optional[Article]:
    published = None
    raw = item.get("time_published")
    if isinstance(raw, str):
        try:
            published = datetime.strptime(raw, "%Y%m%dT%H%M%S").replace(tzinfo=timezone.utc)
        except ValueError:
            published = _iso(raw)
    tickers = [t.get("ticker") for t in item.get("ticker_sentiment") or [] if isinstance(t, dict)]
    return _build(
        title=item.get("title"),
        description=item.get("summary"),
        published=published,
        source=item.get("source") or "Alpha Vantage",
        url=item.get("url"),
        symbols=tickers,
    )


def normalize_rss_entry(entry: Any, source: str = "Yahoo Finance") -> Optional[Article]:
    """Normalize a feedparser entry."""
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    published = _epoch(timegm(parsed)) if parsed else None
    return _build(
        title=entry.get("title"),
        description=entry.get("summary"),
        published=published,
        source=source,
        url=entry.get("link"),
    )


# ---------------------------------------------------------------------------
# Query fetcher used by the multi-query orchestrator
# ---------------------------------------------------------------------------

class YahooSearchNewsFetcher:
    """Free-text news search over Yahoo Finance.

    Callable as fetch(query) -> list[Article]; raises FetchQueryError when the
    search itself fails.
    """

    def __init__(self, max_results: Optional[int] = None, timeout: Optional[float] = None):
        settings = get_settings()
        self.max_results = max_results or settings.max_results_per_query
        self.timeout = timeout or settings.fetch_timeout_seconds

    def __call__(self, query: str) -> list[Article]:
        try:
            search = yf.Search(query, max_results=1, news_count=self.max_results,
                               timeout=int(self.timeout))
            items = search.news or []
        except Exception as e:
            raise FetchQueryError(f"Yahoo search failed for '{query}': {e}") from e

        articles = [normalize_yahoo_item(item) for item in items[: self.max_results]]
        return [a for a in articles if a is not None]


# ---------------------------------------------------------------------------
# Per-symbol news sources
# ---------------------------------------------------------------------------

class NewsSource(ABC):
    """A provider that returns recent news for one ticker symbol."""

    name = "news"

    def __init__(self, session: Optional[requests.Session] = None,
                 settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.session = session or make_session()

    @property
    def available(self) -> bool:
        return True

    @abstractmethod
    def fetch(self, symbol: str) -> list[Article]:
        """Recent articles for the symbol, in the order the provider returns them."""


class YahooNewsSource(NewsSource):
    """Yahoo Finance ticker news via yfinance, falling back to the RSS headline feed."""

    name = "Yahoo Finance"

    def fetch(self, symbol: str) -> list[Article]:
        limit = self.settings.max_results_per_query
        try:
            items = yf.Ticker(symbol).news or []
        except Exception as e:
            logger.info("yfinance news failed for %s, trying RSS: %s", symbol, e)
            items = []

        articles = [a for a in (normalize_yahoo_item(i) for i in items[:limit]) if a]
        if articles:
            return articles
        return self.fetch_rss(symbol)

    def fetch_rss(self, symbol: str) -> list[Article]:
        try:
            response = self.session.get(
                YAHOO_RSS_URL,
                params={"s": symbol, "region": "US", "lang": "en-US"},
                timeout=self.settings.fetch_timeout_seconds,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise FetchQueryError(f"Yahoo RSS request failed for {symbol}: {e}") from e

        feed = feedparser.parse(response.content)
        entries = feed.entries[: self.settings.max_results_per_query]
        return [a for a in (normalize_rss_entry(e, self.name) for e in entries) if a]


class KeyedNewsSource(NewsSource):
    """JSON news API that needs an API key; skipped when no key is configured."""

    url = ""
    adapter = staticmethod(lambda item: None)

    @property
    def api_key(self) -> Optional[str]:
        return None

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    @abstractmethod
    def params(self, symbol: str) -> dict:
        """Query parameters for the request, API key included."""

    @abstractmethod
    def items(self, payload: Any) -> list:
        """The list of raw news items inside the decoded payload."""

    def fetch(self, symbol: str) -> list[Article]:
        try:
            response = self.session.get(self.url, params=self.params(symbol),
                                        timeout=self.settings.fetch_timeout_seconds)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise FetchQueryError(f"{self.name} request failed for {symbol}: {e}") from e

        items = self.items(payload)[: self.settings.max_results_per_query]
        return [a for a in (self.adapter(i) for i in items if isinstance(i, dict)) if a]


class FinnhubNewsSource(KeyedNewsSource):
    name = "Finnhub"
    url = "https://finnhub.io/api/v1/company-news"
    adapter = staticmethod(normalize_finnhub_item)

    @property
    def api_key(self) -> Optional[str]:
        return self.settings.finnhub_api_key

    def params(self, symbol: str) -> dict:
        today = datetime.now(timezone.utc).date()
        return {
            "symbol": symbol,
            "from": (today - timedelta(days=7)).isoformat(),
            "to": today.isoformat(),
            "token": self.api_key,
        }

    def items(self, payload: Any) -> list:
        return payload if isinstance(payload, list) else []


class MarketAuxNewsSource(KeyedNewsSource):
    name = "MarketAux"
    url = "https://api.marketaux.com/v1/news/all"
    adapter = staticmethod(normalize_marketaux_item)

    @property
    def api_key(self) -> Optional[str]:
        return self.settings.marketaux_api_key

    def params(self, symbol: str) -> dict:
        return {
            "symbols": symbol,
            "filter_entities": "true",
            "language": "en",
            "api_token": self.api_key,
        }

    def items(self, payload: Any) -> list:
        return (payload.get("data") or []) if isinstance(payload, dict) else []


class AlphaVantageNewsSource(KeyedNewsSource):
    name = "Alpha Vantage"
    url = "https://www.alphavantage.co/query"
    adapter = staticmethod(normalize_alpha_vantage_item)

    @property
    def api_key(self) -> Optional[str]:
        return self.settings.alpha_vantage_api_key

    def params(self, symbol: str) -> dict:
        return {"function": "NEWS_SENTIMENT", "tickers": symbol, "apikey": self.api_key}

    def items(self, payload: Any) -> list:
        return (payload.get("feed") or []) if isinstance(payload, dict) else []


def default_sources(session: Optional[requests.Session] = None,
                    settings: Optional[Settings] = None) -> list[NewsSource]:
    session = session or make_session()
    return [
        YahooNewsSource(session, settings),
        FinnhubNewsSource(session, settings),
        MarketAuxNewsSource(session, settings),
        AlphaVantageNewsSource(session, settings),
    ]


# ---------------------------------------------------------------------------
# Multi-source fetcher
# ---------------------------------------------------------------------------

DEFAULT_THRESHOLD_SCHEDULE = (0.55, 0.45, 0.35)
MIN_RELEVANT_ARTICLES = 3
ENOUGH_ARTICLES = 10
MAX_ARTICLES = 20

_QUALITY_RANK = {ArticleQuality.HIGH: 3, ArticleQuality.MEDIUM: 2, ArticleQuality.LOW: 1}


def _overall_quality(articles: list[Article]) -> DataQuality:
    if len(articles) < MIN_RELEVANT_ARTICLES:
        return DataQuality.INSUFFICIENT
    if meets_quality_threshold(articles):
        high = sum(1 for a in articles if a.quality is ArticleQuality.HIGH)
        return DataQuality.HIGH if high >= 3 else DataQuality.MEDIUM
    return DataQuality.LOW


class MultiSourceNewsFetcher:
    """Fetches per-symbol news from several providers with fallbacks."""

    def __init__(self, sources: Optional[list[NewsSource]] = None,
                 resolver: Optional[TickerResolver] = None):
        self.sources = sources if sources is not None else default_sources()
        self.resolver = resolver or default_resolver()

    def collect(self, symbol: str) -> tuple[list[Article], list[str]]:
        """Raw articles and the names of the sources that returned any."""
        collected: list[Article] = []
        used: list[str] = []

        for idx, source in enumerate(self.sources):
            if not source.available:
                logger.debug("%s not configured, skipping", source.name)
                continue

            logger.info("Fetching from %s...", source.name)
            try:
                articles = source.fetch(symbol)
            except Exception as e:
                logger.warning("%s failed: %s", source.name, e)
                continue

            if articles:
                logger.info("%s: found %d articles", source.name, len(articles))
                collected.extend(articles)
                used.append(source.name)
                if idx == 0 and meets_quality_threshold(articles):
                    logger.info("Primary source (%s) provided sufficient quality", source.name)
                    break

            if len(collected) >= ENOUGH_ARTICLES and meets_quality_threshold(collected):
                logger.info("Collected %d articles, stopping fetch", len(collected))
                break

        return collected, used

    def fetch(self, symbol: str,
              threshold_schedule: Sequence[float] = DEFAULT_THRESHOLD_SCHEDULE) -> MultiSourceResult:
        if not threshold_schedule:
            raise ValueError("threshold_schedule must not be empty")

        ticker = self.resolver.resolve(symbol)
        logger.info("Ticker info: %s (%s)", ticker.name, ticker.symbol)

        collected, used = self.collect(ticker.symbol)
        unique = dedupe(collected)
        logger.info("After deduplication: %d unique articles", len(unique))

        best: list[Article] = []
        best_threshold = threshold_schedule[0]
        for attempt, threshold in enumerate(threshold_schedule):
            if attempt == 0:
                log_relevance_filtering(unique, ticker, threshold)
            relevant = filter_relevant_articles(unique, ticker, threshold).relevant
            if attempt == 0 or len(relevant) > len(best):
                best, best_threshold = relevant, threshold
            if len(best) >= MIN_RELEVANT_ARTICLES:
                break
            logger.info("Insufficient relevant articles (%d) at threshold %.2f",
                        len(relevant), threshold)

        ranked = sorted(
            best,
            key=lambda a: (_QUALITY_RANK[a.quality or ArticleQuality.LOW], a.published_at),
            reverse=True,
        )
        quality = _overall_quality(ranked)
        logger.info("Final: %d relevant articles, quality: %s, sources: %s",
                    len(ranked), quality.value, ", ".join(used))

        return MultiSourceResult(
            articles=tuple(ranked[:MAX_ARTICLES]),
            sources=tuple(used),
            quality=quality,
            relevance_stats=relevance_stats(unique, ticker, best_threshold),
            threshold_used=best_threshold,
        )
