#!/usr/bin/env python3
"""
Weighted news sentiment with calibrated confidence.

Each article gets a lexicon score and a weight (recency x specificity x
impact). The overall score comes from the LLM scorer when one is configured
and answers in time; otherwise it is the weighted average of the per-article
lexicon scores.
"""

import json
import logging
import math
import re
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol, Sequence

import llm_provider
from data_quality import assess
from local_analyzer import PolarityScorer, match_financial_terms
from news_models import (
    INSUFFICIENT_DATA_LABEL,
    Article,
    ArticleSentimentBreakdown,
    DataQuality,
    DetailedSentimentResult,
    OverallScore,
    PolarityResult,
    ScorerUnavailableError,
    SentimentDirection,
)
from settings import get_settings

logger = logging.getLogger(__name__)

MAX_SCORED_ARTICLES = 15
MAX_INDICATORS = 10
MAX_NAMED_FACTORS = 3
MIN_ARTICLES = 3
DIRECTION_THRESHOLD = 0.2

LOW_QUALITY_NOTE = " (Note: Limited article quality - sentiment may be less reliable)"
NO_ARTICLES_TEXT = (
    "Insufficient ticker-specific data to determine sentiment. "
    "No relevant news articles found for this stock."
)
TOO_FEW_ARTICLES_TEXT = (
    "Insufficient ticker-specific data to determine sentiment. "
    "Need at least 3 relevant articles with meaningful content."
)

# Category -> (pattern, impact weight). Table order breaks ties.
HIGH_IMPACT_KEYWORDS: dict[str, tuple[re.Pattern, float]] = {
    "earnings": (re.compile(r"\b(earnings|revenue|profit|loss|eps|quarterly|annual report)\b", re.I), 1.0),
    "product": (re.compile(r"\b(launch|unveil|release|announce|product|new model)\b", re.I), 0.8),
    "regulatory": (re.compile(r"\b(fda|sec|investigation|lawsuit|recall|ban|approved|denied)\b", re.I), 1.0),
    "sales": (re.compile(r"\b(sales|delivery|shipment|order|demand)\b", re.I), 0.6),
    "leadership": (re.compile(r"\b(ceo|cfo|executive|resignation|appointed|hired)\b", re.I), 0.6),
    "analyst": (re.compile(r"\b(upgrade|downgrade|rating|price target|analyst)\b", re.I), 0.8),
    "market": (re.compile(r"\b(ipo|merger|acquisition|buyback|dividend)\b", re.I), 0.6),
    "innovation": (re.compile(r"\b(ai|robot|autonomous|breakthrough|patent|technology)\b", re.I), 0.6),
}
GENERAL_IMPACT = ("general", 0.3)

_PERCENT = re.compile(r"\d+(\.\d+)?%")
_CURRENCY = re.compile(r"\$\d+(\.\d+)?[BMK]?")
_DIGIT = re.compile(r"\d")
_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)


class OverallScorer(Protocol):
    def score_articles(self, articles: Sequence[Article],
                       max_count: int = MAX_SCORED_ARTICLES) -> OverallScore:
        ...


class BasePolarityScorer(Protocol):
    def polarity(self, text: str) -> PolarityResult:
        ...


def _clamp(value: float, low: float = -1.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def age_hours(published_at: datetime, now: datetime) -> float:
    return (now - published_at).total_seconds() / 3600.0


# ---------------------------------------------------------------------------
# Article weighting
# ---------------------------------------------------------------------------

def recency_weight(published_at: datetime, now: datetime) -> float:
    """exp(-age/24h), kept within [0.1, 1.0]."""
    hours = age_hours(published_at, now)
    if hours <= 0:
        return 1.0
    return _clamp(math.exp(-hours / 24.0), 0.1, 1.0)


def specificity_weight(text: str) -> float:
    weight = 0.5
    if _PERCENT.search(text):
        weight += 0.2
    if _CURRENCY.search(text):
        weight += 0.2
    if _DIGIT.search(text):
        weight += 0.1
    return min(1.0, weight)


def impact_weight(text: str) -> tuple[float, str]:
    """Highest-impact matching category and its weight."""
    category, weight = GENERAL_IMPACT
    for name, (pattern, value) in HIGH_IMPACT_KEYWORDS.items():
        if value > weight and pattern.search(text):
            category, weight = name, value
    return weight, category


def sentiment_label(score: float) -> str:
    if score <= -0.7:
        return "Extremely Negative"
    if score <= -0.3:
        return "Negative"
    if score <= -0.1:
        return "Slightly Negative"
    if score >= 0.7:
        return "Extremely Positive"
    if score >= 0.3:
        return "Positive"
    if score >= 0.1:
        return "Slightly Positive"
    return "Neutral"


def direction(score: float) -> SentimentDirection:
    if score > DIRECTION_THRESHOLD:
        return SentimentDirection.POSITIVE
    if score < -DIRECTION_THRESHOLD:
        return SentimentDirection.NEGATIVE
    return SentimentDirection.NEUTRAL


# ---------------------------------------------------------------------------
# Confidence
# ---------------------------------------------------------------------------

def base_confidence(quality: DataQuality, count: int) -> float:
    if quality is DataQuality.HIGH:
        return min(1.0, 0.7 + count / 20 * 0.3)
    if quality is DataQuality.MEDIUM:
        return min(0.7, 0.4 + count / 10 * 0.3)
    if quality is DataQuality.LOW:
        return min(0.5, 0.2 + count / 5 * 0.3)
    return 0.0


def consistency_factor(directions: Sequence[SentimentDirection]) -> float:
    """How strongly the articles agree on a direction, 0.5 (mixed) to 1.0."""
    total = len(directions)
    if total == 0:
        return 0.5
    if total == 1:
        return 0.8

    counts = {d: 0 for d in SentimentDirection}
    for d in directions:
        counts[d] += 1
    alignment = max(counts.values()) / total

    if alignment >= 0.8:
        return 0.95 + (alignment - 0.8) * 0.25
    if alignment >= 0.6:
        return 0.85 + (alignment - 0.6) * 0.5
    return 0.5 + (alignment - 0.33) * 0.5


def compute_confidence(quality: DataQuality, count: int,
                       directions: Sequence[SentimentDirection]) -> float:
    confidence = _clamp(base_confidence(quality, count) * consistency_factor(directions), 0.0, 1.0)
    if count >= 5:
        confidence = min(1.0, confidence + 0.1)
    return _clamp(confidence, 0.0, 1.0)


# ---------------------------------------------------------------------------
# LLM overall scorer
# ---------------------------------------------------------------------------

PROMPT_TEMPLATE = """You are a financial sentiment analyst. Analyze these recent news headlines about a stock and provide:
1. A sentiment score from -1.0 (extremely bearish) to +1.0 (extremely bullish)
2. Key positive indicators (specific terms/phrases that suggest positive outlook)
3. Key negative indicators (specific terms/phrases that suggest negative outlook)
4. Brief reasoning for your assessment

News articles (newer articles listed first):
{articles}

Respond in JSON format only:
{{
  "score": <number between -1.0 and 1.0>,
  "positiveIndicators": [<array of specific positive terms/phrases found>],
  "negativeIndicators": [<array of specific negative terms/phrases found>],
  "reasoning": "<brief 2-3 sentence explanation>"
}}

Consider:
- Specific financial metrics mentioned (earnings beats/misses, revenue growth, etc.)
- Analyst actions (upgrades, downgrades, price target changes)
- Product launches, regulatory approvals/issues
- Leadership changes
- Recent news should carry more weight than older news
- Look for context: a "drop" might be positive if it's smaller than expected"""


def _string_list(value) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(v).strip() for v in value if str(v).strip())


def parse_overall_score(text: str) -> OverallScore:
    """Parse the scorer's JSON reply, raising ScorerUnavailableError if unusable."""
    match = _JSON_BLOCK.search(text or "")
    if not match:
        raise ScorerUnavailableError("No JSON object in scorer response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ScorerUnavailableError(f"Invalid JSON from scorer: {e}") from e

    score = data.get("score") if isinstance(data, dict) else None
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ScorerUnavailableError(f"Scorer returned a non-numeric score: {score!r}")

    return OverallScore(
        score=_clamp(float(score)),
        positive_indicators=_string_list(data.get("positiveIndicators")),
        negative_indicators=_string_list(data.get("negativeIndicators")),
        reasoning=str(data.get("reasoning") or "").strip(),
    )


class LLMOverallScorer:
    """Overall sentiment from the configured LLM provider."""

    def __init__(self, generate: Optional[Callable[..., str]] = None,
                 timeout: Optional[float] = None,
                 now: Optional[Callable[[], datetime]] = None):
        self._generate = generate
        self.timeout = timeout or get_settings().llm_timeout_seconds
        self._now = now or _utcnow

    def build_prompt(self, articles: Sequence[Article], max_count: int = MAX_SCORED_ARTICLES) -> str:
        now = self._now()
        newest_first = sorted(articles, key=lambda a: a.published_at, reverse=True)[:max_count]
        lines = []
        for idx, article in enumerate(newest_first, 1):
            hours = max(0, int(age_hours(article.published_at, now)))
            line = f"{idx}. [{hours}h ago] {article.title}"
            if article.description:
                line += f" - {article.description}"
            lines.append(line)
        return PROMPT_TEMPLATE.format(articles="\n".join(lines))

    def score_articles(self, articles: Sequence[Article],
                       max_count: int = MAX_SCORED_ARTICLES) -> OverallScore:
        generate = self._generate
        if generate is None:
            if not llm_provider.is_configured():
                raise ScorerUnavailableError("No LLM provider configured")
            generate = llm_provider.generate

        prompt = self.build_prompt(articles, max_count)
        try:
            response = generate(prompt, timeout=self.timeout)
        except llm_provider.LLMError as e:
            raise ScorerUnavailableError(str(e)) from e
        return parse_overall_score(response)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

def _merge_unique(*groups: Sequence[str], limit: Optional[int] = None) -> tuple[str, ...]:
    merged = list(dict.fromkeys(item for group in groups for item in group if item))
    return tuple(merged[:limit] if limit is not None else merged)


def insufficient_result(count: int) -> DetailedSentimentResult:
    """The fixed result returned when there is not enough evidence."""
    return DetailedSentimentResult(
        sentiment_score=0.0,
        sentiment_label=INSUFFICIENT_DATA_LABEL,
        analysis=NO_ARTICLES_TEXT if count == 0 else TOO_FEW_ARTICLES_TEXT,
        positive_indicators=(),
        negative_indicators=(),
        confidence=0.0,
        articles_analyzed=count,
        article_breakdown=(),
        data_quality=DataQuality.INSUFFICIENT,
    )


class SentimentEngine:
    """Turns a relevant, de-duplicated article list into a DetailedSentimentResult."""

    def __init__(self, overall_scorer: Optional[OverallScorer] = None,
                 polarity_scorer: Optional[BasePolarityScorer] = None,
                 now: Optional[Callable[[], datetime]] = None):
        self._now = now or _utcnow
        self.overall_scorer = overall_scorer or LLMOverallScorer(now=self._now)
        self.polarity_scorer = polarity_scorer or PolarityScorer()

    def article_breakdown(self, article: Article, now: datetime) -> ArticleSentimentBreakdown:
        text = article.text
        impact, category = impact_weight(text)
        weight = recency_weight(article.published_at, now) * specificity_weight(text) * impact

        base = self.polarity_scorer.polarity(text)
        positive, negative = match_financial_terms(text)
        custom = (len(positive) - len(negative)) * 2
        score = _clamp((base.score + custom) / 10.0)

        return ArticleSentimentBreakdown(
            title=article.title,
            source=article.source or "Unknown",
            published_at=article.published_at,
            sentiment=direction(score),
            score=round(score, 4),
            weight=round(weight, 4),
            positive_terms=_merge_unique(base.positive_words, positive),
            negative_terms=_merge_unique(base.negative_words, negative),
            has_numerical_data=bool(_DIGIT.search(text)),
            impact_category=category,
        )

    def _fallback_score(self, breakdown: Sequence[ArticleSentimentBreakdown]) -> float:
        total_weight = sum(b.weight for b in breakdown)
        if total_weight <= 0:
            return 0.0
        return _clamp(sum(b.score * b.weight for b in breakdown) / total_weight)

    def analyze(self, articles: Sequence[Article],
                data_quality: Optional[DataQuality] = None) -> DetailedSentimentResult:
        articles = list(articles)
        quality = data_quality or assess(articles)
        if quality is DataQuality.INSUFFICIENT or len(articles) < MIN_ARTICLES:
            return insufficient_result(len(articles))

        now = self._now()
        breakdown = [self.article_breakdown(a, now) for a in articles]

        overall: Optional[OverallScore] = None
        try:
            overall = self.overall_scorer.score_articles(articles, MAX_SCORED_ARTICLES)
        except Exception as e:
            logger.warning("Overall sentiment scorer unavailable, using lexicon fallback: %s", e)

        used_fallback = overall is None
        if used_fallback:
            score = self._fallback_score(breakdown)
        else:
            score = _clamp(overall.score)
        label = sentiment_label(score)

        positive_indicators = _merge_unique(
            overall.positive_indicators if overall else (),
            *(b.positive_terms for b in breakdown),
            limit=MAX_INDICATORS,
        )
        negative_indicators = _merge_unique(
            overall.negative_indicators if overall else (),
            *(b.negative_terms for b in breakdown),
            limit=MAX_INDICATORS,
        )

        confidence = compute_confidence(quality, len(articles), [b.sentiment for b in breakdown])

        if used_fallback:
            summary = (
                f"Lexicon analysis of {len(articles)} articles indicates "
                f"{label.lower()} sentiment (weighted score {score:+.2f})."
            )
        else:
            summary = f"AI Analysis: {overall.reasoning or label + ' sentiment.'}"
        analysis = self._analysis_text(summary, quality, positive_indicators, negative_indicators)

        return DetailedSentimentResult(
            sentiment_score=round(score, 4),
            sentiment_label=label,
            analysis=analysis,
            positive_indicators=positive_indicators,
            negative_indicators=negative_indicators,
            confidence=round(confidence, 4),
            articles_analyzed=len(articles),
            article_breakdown=tuple(breakdown),
            data_quality=quality,
            used_fallback=used_fallback,
        )

    @staticmethod
    def _analysis_text(summary: str, quality: DataQuality,
                       positive: Sequence[str], negative: Sequence[str]) -> str:
        text = summary
        if quality is DataQuality.LOW:
            text += LOW_QUALITY_NOTE
        top_positive = ", ".join(positive[:MAX_NAMED_FACTORS])
        top_negative = ", ".join(negative[:MAX_NAMED_FACTORS])
        if top_positive and top_negative:
            text += f" Key factors: Positive - {top_positive}. Negative - {top_negative}."
        elif top_positive:
            text += f" Key positive factors: {top_positive}."
        elif top_negative:
            text += f" Key negative factors: {top_negative}."
        return text
