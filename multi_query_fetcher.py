#!/usr/bin/env python3
"""
Multi-Query News Fetcher
Runs the expanded query batches against a news search function until enough
relevant articles are found or every batch has been tried.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Optional, Union

from article_relevance import filter_relevant_articles
from dedupe import dedupe, merge_articles
from news_fetcher import YahooSearchNewsFetcher
from news_models import Article, ExpandedQuery, MultiQueryFetchResult, ResolutionError
from query_expansion import expand, log_query_expansion
from settings import get_settings
from ticker_resolver import TickerResolver, default_resolver

logger = logging.getLogger(__name__)

RawArticle = Union[Article, dict]
ArticleFetcher = Callable[[str], Iterable[RawArticle]]


def _to_article(item: RawArticle) -> Article:
    return item if isinstance(item, Article) else Article.from_dict(item)


def _validate_options(min_articles: int, target_articles: int, min_relevance: float) -> None:
    if min_articles <= 0 or target_articles <= 0:
        raise ValueError("min_articles and target_articles must be positive")
    if min_articles > target_articles:
        raise ValueError(
            f"min_articles ({min_articles}) cannot exceed target_articles ({target_articles})"
        )
    if not 0.0 <= min_relevance <= 1.0:
        raise ValueError(f"min_relevance must be within [0, 1], got {min_relevance}")


def result_message(relevant: int, min_articles: int, target_articles: int) -> str:
    if relevant < min_articles:
        return (
            "Insufficient relevant news to generate reliable sentiment. "
            f"Found {relevant} relevant articles but need at least {min_articles}. "
            "Please try again later."
        )
    if relevant >= target_articles:
        return f"Successfully retrieved {relevant} high-quality relevant articles."
    return (
        f"Retrieved {relevant} relevant articles "
        f"(below target of {target_articles} but sufficient for analysis)."
    )


def resolution_failed(error: ResolutionError) -> MultiQueryFetchResult:
    return MultiQueryFetchResult(
        articles=(),
        total_fetched=0,
        relevant_count=0,
        queries_used=(),
        sources_used=(),
        relevance_rate=0.0,
        success=False,
        message=f"Failed to resolve ticker information: {error}",
        error=str(error),
    )


class FetchOrchestrator:
    """Fetch-until-satisfied loop over prioritized query batches."""

    def __init__(self, fetch_articles: ArticleFetcher,
                 resolver: Optional[TickerResolver] = None,
                 max_workers: int = 4):
        self.fetch_articles = fetch_articles
        self.resolver = resolver or default_resolver()
        self.max_workers = max(1, max_workers)

    def _fetch_query(self, query: str) -> list[Article]:
        return [_to_article(item) for item in (self.fetch_articles(query) or [])]

    def fetch_batch(self, batch: list[ExpandedQuery]) -> list[tuple[str, list[Article]]]:
        """Run every query in the batch and return results in query order.

        A query that raises is logged and yields no articles.
        """
        workers = min(self.max_workers, len(batch))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [(q.query, executor.submit(self._fetch_query, q.query)) for q in batch]

            results = []
            for query, future in futures:
                try:
                    articles = future.result()
                except Exception as e:
                    logger.warning("Query '%s' failed: %s", query, e)
                    articles = []
                logger.debug("  '%s': %d articles", query, len(articles))
                results.append((query, articles))
        return results

    def fetch_until_satisfied(self, symbol: str, min_articles: int = 3,
                              target_articles: int = 5,
                              min_relevance: float = 0.55) -> MultiQueryFetchResult:
        _validate_options(min_articles, target_articles, min_relevance)

        logger.info("Multi-query fetch for %s: target %d (minimum %d), threshold %.2f",
                    symbol, target_articles, min_articles, min_relevance)

        try:
            ticker = self.resolver.resolve(symbol)
        except ResolutionError as e:
            logger.error("Failed to resolve ticker %r: %s", symbol, e)
            return resolution_failed(e)

        batches = expand(ticker)
        log_query_expansion(ticker, batches)
        accumulated: list[Article] = []
        queries_used: list[str] = []
        sources_used: list[str] = []

        for batch in batches:
            logger.info("Fetching batch (priority %d, %d queries)", batch[0].priority, len(batch))

            results = self.fetch_batch(batch)
            for query, articles in results:
                if not articles:
                    continue
                queries_used.append(query)
                for article in articles:
                    if article.source and article.source not in sources_used:
                        sources_used.append(article.source)

            accumulated = merge_articles(accumulated, *(articles for _, articles in results))
            relevant = filter_relevant_articles(accumulated, ticker, min_relevance).relevant
            logger.info("  %d unique articles, %d relevant", len(accumulated), len(relevant))

            if len(relevant) >= target_articles:
                logger.info("Target reached: %d relevant articles", len(relevant))
                break

        unique = dedupe(accumulated)
        relevant = filter_relevant_articles(unique, ticker, min_relevance).relevant
        success = len(relevant) >= min_articles

        logger.info("Final: %d fetched, %d relevant, %d/%d queries used, success=%s",
                    len(unique), len(relevant), len(queries_used),
                    sum(len(b) for b in batches), success)

        return MultiQueryFetchResult(
            articles=tuple(relevant),
            total_fetched=len(unique),
            relevant_count=len(relevant),
            queries_used=tuple(queries_used),
            sources_used=tuple(sources_used),
            relevance_rate=len(relevant) / len(unique) if unique else 0.0,
            success=success,
            message=result_message(len(relevant), min_articles, target_articles),
        )


def fetch_with_multi_query(symbol: str, min_articles: Optional[int] = None,
                           target_articles: Optional[int] = None,
                           min_relevance: Optional[float] = None,
                           fetch_articles: Optional[ArticleFetcher] = None) -> MultiQueryFetchResult:
    """Run the orchestrator with the Yahoo search fetcher and configured defaults."""
    settings = get_settings()
    orchestrator = FetchOrchestrator(
        fetch_articles or YahooSearchNewsFetcher(),
        max_workers=settings.fetch_workers,
    )
    return orchestrator.fetch_until_satisfied(
        symbol,
        min_articles=settings.min_articles if min_articles is None else min_articles,
        target_articles=settings.target_articles if target_articles is None else target_articles,
        min_relevance=settings.min_relevance if min_relevance is None else min_relevance,
    )
