#!/usr/bin/env python3
"""
Data model and error types shared by the news sentiment pipeline.

Every result type carries a to_dict() that emits the camelCase field names
consumers of the analysis (HTTP layer, UI, JSON export) expect.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from urllib.parse import urlsplit


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class SentimentPipelineError(Exception):
    """Base exception for the news sentiment pipeline."""
    pass


class ResolutionError(SentimentPipelineError):
    """Raised when no ticker record can be produced at all."""
    pass


class FetchQueryError(SentimentPipelineError):
    """Raised by a news source when a single query could not be fetched."""
    pass


class ScorerUnavailableError(SentimentPipelineError):
    """Raised when the AI overall-sentiment scorer fails or times out."""
    pass


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class QueryType(str, Enum):
    SYMBOL = "symbol"
    COMPANY = "company"
    PRODUCT = "product"
    EXECUTIVE = "executive"
    EVENT = "event"
    INDUSTRY = "industry"


# Ordering within a priority tier
QUERY_TYPE_PRECEDENCE = {
    QueryType.SYMBOL: 1,
    QueryType.COMPANY: 2,
    QueryType.EVENT: 3,
    QueryType.PRODUCT: 4,
    QueryType.EXECUTIVE: 5,
    QueryType.INDUSTRY: 6,
}


class MatchType(str, Enum):
    SYMBOL = "symbol"
    COMPANY_NAME = "company_name"
    ALIAS = "alias"
    METADATA = "metadata"
    NONE = "none"


class ArticleQuality(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DataQuality(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INSUFFICIENT = "insufficient"


class SentimentDirection(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


INSUFFICIENT_DATA_LABEL = "Insufficient Data"

SENTIMENT_LABELS = (
    "Extremely Negative",
    "Negative",
    "Slightly Negative",
    "Neutral",
    "Slightly Positive",
    "Positive",
    "Extremely Positive",
    INSUFFICIENT_DATA_LABEL,
)


# ---------------------------------------------------------------------------
# Ticker records and queries
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TickerRecord:
    """Canonical company record for a ticker symbol."""

    symbol: str
    name: str
    short_name: Optional[str] = None
    long_name: Optional[str] = None
    aliases: tuple[str, ...] = ()
    degraded: bool = False

    def alias_keys(self) -> set[str]:
        """Lower-cased aliases, used for case-insensitive comparisons."""
        return {a.lower() for a in self.aliases}

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "shortName": self.short_name,
            "longName": self.long_name,
            "aliases": list(self.aliases),
            "degraded": self.degraded,
        }


@dataclass(frozen=True)
class ExpandedQuery:
    query: str
    priority: int  # 1 = highest
    type: QueryType

    def to_dict(self) -> dict[str, Any]:
        return {"query": self.query, "priority": self.priority, "type": self.type.value}


# ---------------------------------------------------------------------------
# Articles
# ---------------------------------------------------------------------------

_TITLE_STRIP = re.compile(r"[^\w\s]")
_POSSESSIVE = re.compile(r"['’]s\b")


def _parse_timestamp(value: Any) -> datetime:
    """Coerce datetime / ISO string / epoch seconds into an aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        # Some providers send milliseconds
        seconds = value / 1000.0 if value > 1e11 else float(value)
        dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            dt = datetime.now(timezone.utc)
    else:
        dt = datetime.now(timezone.utc)

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def normalize_url(url: Optional[str]) -> Optional[str]:
    """Lowercased scheme://host/path with query string and fragment removed."""
    if not url or not url.strip():
        return None
    parts = urlsplit(url.strip().lower())
    if not parts.netloc:
        # Not an absolute URL; fall back to dropping the query by hand
        return parts.path.split("?")[0] or None
    return f"{parts.scheme}://{parts.netloc}{parts.path}"


def normalize_title(title: Optional[str]) -> str:
    """Lowercased title with possessives and punctuation stripped."""
    if not title:
        return ""
    text = _POSSESSIVE.sub("", title.lower())
    return _TITLE_STRIP.sub("", text).strip()


@dataclass(frozen=True)
class Article:
    """A news article in canonical shape, regardless of which provider sent it."""

    title: str
    published_at: datetime
    description: Optional[str] = None
    content: Optional[str] = None
    source: Optional[str] = None
    url: Optional[str] = None
    symbols: Optional[frozenset[str]] = None
    quality: Optional[ArticleQuality] = None

    def __post_init__(self):
        # Naive timestamps are read as UTC
        if self.published_at.tzinfo is None:
            object.__setattr__(self, "published_at", self.published_at.replace(tzinfo=timezone.utc))

    @property
    def normalized_url(self) -> Optional[str]:
        return normalize_url(self.url)

    @property
    def normalized_title(self) -> str:
        return normalize_title(self.title)

    @property
    def text(self) -> str:
        """Title plus description, the text most scorers look at."""
        return f"{self.title} {self.description or ''}".strip()

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "content": self.content,
            "publishedAt": self.published_at.isoformat(),
            "source": self.source,
            "url": self.url,
            "symbols": sorted(self.symbols) if self.symbols else [],
            "quality": self.quality.value if self.quality else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Article":
        """Build from a canonical dict (camelCase or snake_case keys)."""
        published = data.get("publishedAt", data.get("published_at"))
        symbols = data.get("symbols")
        quality = data.get("quality")
        return cls(
            title=data.get("title") or "",
            description=data.get("description") or None,
            content=data.get("content") or None,
            published_at=_parse_timestamp(published),
            source=data.get("source") or None,
            url=data.get("url") or None,
            symbols=frozenset(s.upper() for s in symbols) if symbols else None,
            quality=ArticleQuality(quality) if quality else None,
        )


# ---------------------------------------------------------------------------
# Relevance
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RelevanceScore:
    is_relevant: bool
    score: float  # 0..1
    matched_terms: tuple[str, ...]
    match_type: MatchType

    def to_dict(self) -> dict[str, Any]:
        return {
            "isRelevant": self.is_relevant,
            "score": self.score,
            "matchedTerms": list(self.matched_terms),
            "matchType": self.match_type.value,
        }


@dataclass(frozen=True)
class RelevanceStats:
    total: int
    relevant: int
    irrelevant: int
    relevance_rate: float
    average_relevance_score: float
    high_relevance: int  # score >= 0.7
    medium_relevance: int  # score >= 0.5
    low_relevance: int  # score >= 0.3

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "relevant": self.relevant,
            "irrelevant": self.irrelevant,
            "relevanceRate": self.relevance_rate,
            "averageRelevanceScore": self.average_relevance_score,
            "highRelevance": self.high_relevance,
            "mediumRelevance": self.medium_relevance,
            "lowRelevance": self.low_relevance,
        }


# ---------------------------------------------------------------------------
# Sentiment
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PolarityResult:
    score: float
    positive_words: tuple[str, ...] = ()
    negative_words: tuple[str, ...] = ()


@dataclass(frozen=True)
class OverallScore:
    score: float  # -1..1
    positive_indicators: tuple[str, ...] = ()
    negative_indicators: tuple[str, ...] = ()
    reasoning: str = ""


@dataclass(frozen=True)
class ArticleSentimentBreakdown:
    title: str
    source: str
    published_at: datetime
    sentiment: SentimentDirection
    score: float  # -1..1
    weight: float  # recency * specificity * impact
    positive_terms: tuple[str, ...]
    negative_terms: tuple[str, ...]
    has_numerical_data: bool
    impact_category: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "source": self.source,
            "publishedAt": self.published_at.isoformat(),
            "sentiment": self.sentiment.value,
            "score": self.score,
            "weight": self.weight,
            "positiveTerms": list(self.positive_terms),
            "negativeTerms": list(self.negative_terms),
            "hasNumericalData": self.has_numerical_data,
            "impactCategory": self.impact_category,
        }


@dataclass(frozen=True)
class DetailedSentimentResult:
    sentiment_score: float
    sentiment_label: str
    analysis: str
    positive_indicators: tuple[str, ...]
    negative_indicators: tuple[str, ...]
    confidence: float
    articles_analyzed: int
    article_breakdown: tuple[ArticleSentimentBreakdown, ...]
    data_quality: DataQuality
    used_fallback: bool = False

    @property
    def is_insufficient(self) -> bool:
        return self.data_quality is DataQuality.INSUFFICIENT

    def to_dict(self) -> dict[str, Any]:
        return {
            "sentimentScore": self.sentiment_score,
            "sentimentLabel": self.sentiment_label,
            "analysis": self.analysis,
            "positiveIndicators": list(self.positive_indicators),
            "negativeIndicators": list(self.negative_indicators),
            "confidence": self.confidence,
            "articlesAnalyzed": self.articles_analyzed,
            "articleBreakdown": [b.to_dict() for b in self.article_breakdown],
            "dataQuality": self.data_quality.value,
        }


@dataclass(frozen=True)
class UserExperienceResult:
    sentiment_score: float  # 0..1
    explanation: str

    def to_dict(self) -> dict[str, Any]:
        return {"sentimentScore": self.sentiment_score, "explanation": self.explanation}


# ---------------------------------------------------------------------------
# Fetch results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MultiQueryFetchResult:
    articles: tuple[Article, ...]
    total_fetched: int
    relevant_count: int
    queries_used: tuple[str, ...]
    sources_used: tuple[str, ...]
    relevance_rate: float
    success: bool
    message: str
    error: Optional[str] = None  # set only when the ticker could not be resolved

    def to_dict(self) -> dict[str, Any]:
        data = {
            "articles": [a.to_dict() for a in self.articles],
            "totalFetched": self.total_fetched,
            "relevantCount": self.relevant_count,
            "queriesUsed": list(self.queries_used),
            "sourcesUsed": list(self.sources_used),
            "relevanceRate": self.relevance_rate,
            "success": self.success,
            "message": self.message,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class FetchAndAnalyzeResult:
    fetch: MultiQueryFetchResult
    sentiment: Optional[DetailedSentimentResult] = None

    @property
    def is_error(self) -> bool:
        return self.fetch.error is not None

    def to_dict(self) -> dict[str, Any]:
        data = self.fetch.to_dict()
        if self.sentiment is not None:
            data.update(self.sentiment.to_dict())
        return data


@dataclass(frozen=True)
class MultiSourceResult:
    articles: tuple[Article, ...]
    sources: tuple[str, ...]
    quality: DataQuality
    relevance_stats: Optional[RelevanceStats] = None
    threshold_used: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "articles": [a.to_dict() for a in self.articles],
            "sources": list(self.sources),
            "quality": self.quality.value,
            "relevanceStats": self.relevance_stats.to_dict() if self.relevance_stats else None,
            "thresholdUsed": self.threshold_used,
        }
