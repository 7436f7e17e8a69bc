#!/usr/bin/env python3
"""
Article Relevance Filtering
Scores how strongly a news article is about a specific ticker, so that
sentiment is only computed from on-topic evidence.

Scoring is additive and capped at 1.0:
    title mentions the symbol (plain or $-prefixed)    +0.6
    title mentions an alias (only while score < 0.5)   +0.5
    description/body mentions the symbol               +0.3
    description/body mentions an alias                 +0.2
    article metadata lists the symbol                  +0.4
    URL is on a trusted financial domain               +0.2
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import urlsplit

from news_models import Article, MatchType, RelevanceScore, RelevanceStats, TickerRecord

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.55

TITLE_SYMBOL_WEIGHT = 0.6
TITLE_ALIAS_WEIGHT = 0.5
TITLE_ALIAS_CEILING = 0.5
DESCRIPTION_SYMBOL_WEIGHT = 0.3
DESCRIPTION_ALIAS_WEIGHT = 0.2
METADATA_SYMBOL_WEIGHT = 0.4
TRUSTED_DOMAIN_WEIGHT = 0.2

MIN_ALIAS_LENGTH = 3

TRUSTED_DOMAINS = frozenset({
    "reuters.com",
    "bloomberg.com",
    "wsj.com",
    "ft.com",
    "cnbc.com",
    "marketwatch.com",
    "barrons.com",
    "finance.yahoo.com",
    "fool.com",
    "seekingalpha.com",
    "investors.com",
    "benzinga.com",
    "forbes.com",
    "businessinsider.com",
    "thestreet.com",
    "zacks.com",
    "morningstar.com",
    "nasdaq.com",
    "investing.com",
    "apnews.com",
})


def _token_pattern(term: str, prefix: str = "") -> re.Pattern:
    """Case-insensitive whole-token pattern for a literal term.

    Uses alphanumeric lookarounds instead of \\b so terms that start or end
    with punctuation ("Amazon.com", "McDonald's", "$AAPL") still match.
    """
    return re.compile(
        rf"(?<![A-Za-z0-9]){re.escape(prefix + term)}(?![A-Za-z0-9])",
        re.IGNORECASE,
    )


def is_trusted_domain(url: Optional[str]) -> bool:
    """True when the URL's host, or any parent domain of it, is trusted."""
    if not url:
        return False
    try:
        host = (urlsplit(url.strip()).hostname or "").lower()
    except ValueError:
        return False
    if host.startswith("www."):
        host = host[4:]
    labels = host.split(".")
    return any(".".join(labels[i:]) in TRUSTED_DOMAINS for i in range(len(labels) - 1))


class _TickerPatterns:
    """Compiled match patterns for one ticker record."""

    def __init__(self, ticker: TickerRecord):
        self.symbol = ticker.symbol
        self.symbol_re = _token_pattern(ticker.symbol)
        self.dollar_re = _token_pattern(ticker.symbol, prefix="$")
        self.aliases = [
            (alias, _token_pattern(alias))
            for alias in ticker.aliases
            if len(alias) >= MIN_ALIAS_LENGTH or alias.upper() == ticker.symbol
        ]
        self.company_names = {
            n.lower() for n in (ticker.name, ticker.long_name, ticker.short_name) if n
        }

    def symbol_hits(self, text: str) -> list[str]:
        hits = []
        if self.symbol_re.search(text):
            hits.append(self.symbol)
        if self.dollar_re.search(text):
            hits.append(f"${self.symbol}")
        return hits

    def alias_hits(self, text: str) -> list[str]:
        return [alias for alias, pattern in self.aliases if pattern.search(text)]


def score_article(article: Article, ticker: TickerRecord,
                  threshold: float = DEFAULT_THRESHOLD,
                  patterns: Optional[_TickerPatterns] = None) -> RelevanceScore:
    """Score one article's relevance to a ticker."""
    patterns = patterns or _TickerPatterns(ticker)
    title = article.title or ""
    body = " ".join(t for t in (article.description, article.content) if t)

    score = 0.0
    matched: list[str] = []
    symbol_matched = False
    aliases_matched: list[str] = []

    title_symbols = patterns.symbol_hits(title)
    if title_symbols:
        score += TITLE_SYMBOL_WEIGHT
        matched.extend(title_symbols)
        symbol_matched = True

    if score < TITLE_ALIAS_CEILING:
        title_aliases = patterns.alias_hits(title)
        if title_aliases:
            score += TITLE_ALIAS_WEIGHT
            matched.extend(title_aliases)
            aliases_matched.extend(title_aliases)

    body_symbols = patterns.symbol_hits(body)
    if body_symbols:
        score += DESCRIPTION_SYMBOL_WEIGHT
        matched.extend(body_symbols)
        symbol_matched = True

    body_aliases = patterns.alias_hits(body)
    if body_aliases:
        score += DESCRIPTION_ALIAS_WEIGHT
        matched.extend(body_aliases)
        aliases_matched.extend(body_aliases)

    metadata_matched = bool(article.symbols) and any(
        s.upper() == ticker.symbol for s in article.symbols
    )
    if metadata_matched:
        score += METADATA_SYMBOL_WEIGHT
        matched.append(ticker.symbol)

    if is_trusted_domain(article.url):
        score += TRUSTED_DOMAIN_WEIGHT

    score = round(min(1.0, score), 4)

    if symbol_matched:
        match_type = MatchType.SYMBOL
    elif any(a.lower() in patterns.company_names for a in aliases_matched):
        match_type = MatchType.COMPANY_NAME
    elif aliases_matched:
        match_type = MatchType.ALIAS
    elif metadata_matched:
        match_type = MatchType.METADATA
    else:
        match_type = MatchType.NONE

    return RelevanceScore(
        is_relevant=score >= threshold,
        score=score,
        matched_terms=tuple(dict.fromkeys(matched)),
        match_type=match_type,
    )


@dataclass(frozen=True)
class RelevanceFilterResult:
    relevant: list[Article]
    irrelevant: list[Article]
    scores: list[tuple[Article, RelevanceScore]]


def filter_relevant_articles(articles: Iterable[Article], ticker: TickerRecord,
                             threshold: float = DEFAULT_THRESHOLD) -> RelevanceFilterResult:
    """Split articles into relevant (highest score first) and irrelevant."""
    patterns = _TickerPatterns(ticker)
    scored = [(a, score_article(a, ticker, threshold, patterns)) for a in articles]

    relevant = [pair for pair in scored if pair[1].is_relevant]
    relevant.sort(key=lambda pair: pair[1].score, reverse=True)
    irrelevant = [a for a, s in scored if not s.is_relevant]

    return RelevanceFilterResult(
        relevant=[a for a, _ in relevant],
        irrelevant=irrelevant,
        scores=scored,
    )


def relevance_stats(articles: list[Article], ticker: TickerRecord,
                    threshold: float = DEFAULT_THRESHOLD) -> RelevanceStats:
    result = filter_relevant_articles(articles, ticker, threshold)
    relevant_scores = [s.score for _, s in result.scores if s.is_relevant]

    high = sum(1 for s in relevant_scores if s >= 0.7)
    medium = sum(1 for s in relevant_scores if 0.5 <= s < 0.7)
    low = sum(1 for s in relevant_scores if 0.3 <= s < 0.5)

    total = len(articles)
    relevant = len(relevant_scores)
    return RelevanceStats(
        total=total,
        relevant=relevant,
        irrelevant=total - relevant,
        relevance_rate=relevant / total if total else 0.0,
        average_relevance_score=sum(relevant_scores) / relevant if relevant else 0.0,
        high_relevance=high,
        medium_relevance=medium,
        low_relevance=low,
    )


def log_relevance_filtering(articles: list[Article], ticker: TickerRecord,
                            threshold: float = DEFAULT_THRESHOLD) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return

    result = filter_relevant_articles(articles, ticker, threshold)
    by_id = {id(a): s for a, s in result.scores}

    logger.debug("Relevance filtering for %s (%s), aliases: %s",
                 ticker.symbol, ticker.name, ", ".join(ticker.aliases))
    logger.debug("Relevant %d of %d", len(result.relevant), len(articles))
    for article in result.relevant:
        s = by_id[id(article)]
        logger.debug("  [%.2f] %s - %s (matched: %s)", s.score, s.match_type.value,
                     article.title[:80], ", ".join(s.matched_terms))
    for article in result.irrelevant[:5]:
        logger.debug("  filtered [%.2f] %s", by_id[id(article)].score, article.title[:80])
