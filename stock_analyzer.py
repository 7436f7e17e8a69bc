#!/usr/bin/env python3
"""
Stock News Sentiment Analyzer
Finds news that is actually about a ticker, checks there is enough of it,
and scores its sentiment with an explainable label and confidence.

The overall score uses the configured LLM provider when available:
    LLM_PROVIDER: gemini, openai, or anthropic (optional)
    LLM_MODEL: (optional) specific model name
    GOOGLE_API_KEY/GEMINI_API_KEY, OPENAI_API_KEY, or ANTHROPIC_API_KEY
"""

import json
import logging
from datetime import datetime
from typing import Iterable, Optional, Sequence, Union

from article_relevance import filter_relevant_articles
from data_quality import assess
from dedupe import dedupe
from llm_provider import get_provider_info
from local_analyzer import PolarityScorer
from multi_query_fetcher import ArticleFetcher, FetchOrchestrator, resolution_failed, result_message
from news_fetcher import (
    DEFAULT_THRESHOLD_SCHEDULE,
    MIN_RELEVANT_ARTICLES,
    MultiSourceNewsFetcher,
    NewsSource,
    YahooSearchNewsFetcher,
)
from news_models import (
    Article,
    DataQuality,
    DetailedSentimentResult,
    FetchAndAnalyzeResult,
    MultiQueryFetchResult,
    ResolutionError,
    UserExperienceResult,
)
from sentiment_engine import SentimentEngine, insufficient_result
from settings import get_settings
from ticker_resolver import TickerResolver, default_resolver

logger = logging.getLogger(__name__)


class TickerSentimentAnalyzer:
    """Main application class: fetch, gate and score news for a ticker."""

    def __init__(self, fetch_articles: Optional[ArticleFetcher] = None,
                 resolver: Optional[TickerResolver] = None,
                 engine: Optional[SentimentEngine] = None,
                 news_sources: Optional[list[NewsSource]] = None):
        self.settings = get_settings()
        self.resolver = resolver or default_resolver()
        self._fetch_articles = fetch_articles
        self.news_sources = news_sources
        self.engine = engine or SentimentEngine()

    @property
    def fetch_articles(self) -> ArticleFetcher:
        if self._fetch_articles is None:
            self._fetch_articles = YahooSearchNewsFetcher()
        return self._fetch_articles

    def orchestrator(self) -> FetchOrchestrator:
        return FetchOrchestrator(self.fetch_articles, resolver=self.resolver,
                                 max_workers=self.settings.fetch_workers)

    def analyze_ticker(self, symbol: str,
                       articles: Optional[Iterable[Union[Article, dict]]] = None,
                       min_relevance: Optional[float] = None) -> DetailedSentimentResult:
        """Analyze caller-supplied articles, or fetch them when none are given.

        Supplied articles skip fetching entirely; pass min_relevance to also
        drop those that are not about the ticker.

        Raises:
            ResolutionError: If the symbol cannot be resolved at all.
        """
        if articles is None:
            fetch = self.orchestrator().fetch_until_satisfied(
                symbol,
                min_articles=self.settings.min_articles,
                target_articles=self.settings.target_articles,
                min_relevance=self.settings.min_relevance if min_relevance is None else min_relevance,
            )
            if fetch.error is not None:
                raise ResolutionError(fetch.error)
            if not fetch.success:
                return insufficient_result(fetch.relevant_count)
            return self.engine.analyze(fetch.articles)

        supplied = dedupe(a if isinstance(a, Article) else Article.from_dict(a) for a in articles)
        if min_relevance is not None:
            ticker = self.resolver.resolve(symbol)
            supplied = filter_relevant_articles(supplied, ticker, min_relevance).relevant

        return self.engine.analyze(supplied, assess(supplied))

    def fetch_and_analyze(self, symbol: str, min_articles: Optional[int] = None,
                          target_articles: Optional[int] = None,
                          min_relevance: Optional[float] = None) -> FetchAndAnalyzeResult:
        """Fetch until satisfied, then analyze the relevant articles.

        An unresolvable symbol yields a result with `error` set and no
        sentiment; too little evidence yields the Insufficient Data sentiment.
        """
        fetch = self.orchestrator().fetch_until_satisfied(
            symbol,
            min_articles=self.settings.min_articles if min_articles is None else min_articles,
            target_articles=self.settings.target_articles if target_articles is None else target_articles,
            min_relevance=self.settings.min_relevance if min_relevance is None else min_relevance,
        )
        if fetch.error is not None:
            return FetchAndAnalyzeResult(fetch=fetch)

        if not fetch.success:
            return FetchAndAnalyzeResult(fetch=fetch, sentiment=insufficient_result(fetch.relevant_count))

        return FetchAndAnalyzeResult(fetch=fetch, sentiment=self.engine.analyze(fetch.articles))

    def fetch_multi_source_and_analyze(
            self, symbol: str,
            threshold_schedule: Sequence[float] = DEFAULT_THRESHOLD_SCHEDULE) -> FetchAndAnalyzeResult:
        """Analyze per-symbol provider feeds instead of query search results.

        The relevance threshold is relaxed along `threshold_schedule` until
        enough articles pass, and the providers' article grades set the data
        quality handed to the engine.
        """
        fetcher = MultiSourceNewsFetcher(self.news_sources, resolver=self.resolver)
        try:
            found = fetcher.fetch(symbol, threshold_schedule)
        except ResolutionError as e:
            logger.error("Failed to resolve ticker %r: %s", symbol, e)
            return FetchAndAnalyzeResult(fetch=resolution_failed(e))

        relevant = len(found.articles)
        stats = found.relevance_stats
        fetch = MultiQueryFetchResult(
            articles=found.articles,
            total_fetched=stats.total if stats else relevant,
            relevant_count=relevant,
            queries_used=(symbol.strip().upper(),),
            sources_used=found.sources,
            relevance_rate=stats.relevance_rate if stats else 0.0,
            success=found.quality is not DataQuality.INSUFFICIENT,
            message=result_message(relevant, MIN_RELEVANT_ARTICLES,
                                   max(MIN_RELEVANT_ARTICLES, self.settings.target_articles)),
        )
        if not fetch.success:
            return FetchAndAnalyzeResult(fetch=fetch, sentiment=insufficient_result(relevant))

        return FetchAndAnalyzeResult(fetch=fetch,
                                     sentiment=self.engine.analyze(found.articles, found.quality))


_default_analyzer: Optional[TickerSentimentAnalyzer] = None


def _analyzer() -> TickerSentimentAnalyzer:
    global _default_analyzer
    if _default_analyzer is None:
        _default_analyzer = TickerSentimentAnalyzer()
    return _default_analyzer


def analyze_ticker(symbol: str, articles: Optional[Iterable[Union[Article, dict]]] = None,
                   min_relevance: Optional[float] = None) -> DetailedSentimentResult:
    return _analyzer().analyze_ticker(symbol, articles, min_relevance)


def fetch_and_analyze(symbol: str, min_articles: Optional[int] = None,
                      target_articles: Optional[int] = None,
                      min_relevance: Optional[float] = None) -> FetchAndAnalyzeResult:
    return _analyzer().fetch_and_analyze(symbol, min_articles, target_articles, min_relevance)


def analyze_user_experience(note: Optional[str],
                            scorer: Optional[PolarityScorer] = None) -> UserExperienceResult:
    """Map the polarity of a free-text user note onto [0, 1]."""
    if not note or not note.strip():
        return UserExperienceResult(sentiment_score=0.5, explanation="No user input provided")

    result = (scorer or PolarityScorer()).polarity(note)
    score = max(0.0, min(1.0, (result.score + 10) / 20))

    if score > 0.6:
        explanation = (
            f"Your input shows strong positive sentiment with {len(result.positive_words)} "
            "positive indicators, suggesting confidence in the stock."
        )
    elif score < 0.4:
        explanation = (
            f"Your input shows cautious or negative sentiment with {len(result.negative_words)} "
            "concerning indicators, suggesting hesitation about the stock."
        )
    else:
        explanation = "Your input shows neutral sentiment with balanced perspective on the stock."

    return UserExperienceResult(sentiment_score=round(score, 4), explanation=explanation)


def _print_report(result: FetchAndAnalyzeResult) -> None:
    fetch = result.fetch
    print(fetch.message)
    if result.is_error:
        print(f"Error: {fetch.error}")
        return

    print(f"Articles: {fetch.relevant_count} relevant of {fetch.total_fetched} "
          f"({fetch.relevance_rate:.0%}) | Sources: {', '.join(fetch.sources_used) or 'none'}")

    sentiment = result.sentiment
    print(f"Sentiment: {sentiment.sentiment_label} ({sentiment.sentiment_score:+.2f}) | "
          f"Confidence: {sentiment.confidence:.0%} | Data quality: {sentiment.data_quality.value}")
    print(sentiment.analysis)
    for item in sentiment.article_breakdown[:10]:
        print(f"  [{item.sentiment.value:>8} {item.score:+.2f} w={item.weight:.2f}] "
              f"{item.title[:90]} ({item.source})")


def main():
    """Main entry point for CLI."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Stock News Sentiment Analyzer",
        epilog="""
Environment Variables:
  LLM_PROVIDER          gemini, openai, or anthropic (optional)
  LLM_MODEL             Specific model name (optional)
  LLM_TIMEOUT_SECONDS   AI scoring deadline (default 30)
  NEWS_MIN_ARTICLES     Minimum relevant articles (default 3)
  NEWS_TARGET_ARTICLES  Target relevant articles (default 5)
  NEWS_MIN_RELEVANCE    Relevance threshold (default 0.55)

Example:
  LLM_PROVIDER=openai python stock_analyzer.py -t AAPL MSFT --json out.json
  FINNHUB_API_KEY=... python stock_analyzer.py -t NVDA --multi-source
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("--tickers", "-t", nargs="+", required=True,
                        help="Stock tickers to analyze (e.g., AAPL MSFT GOOGL)")
    parser.add_argument("--min", type=int, dest="min_articles", help="Minimum relevant articles")
    parser.add_argument("--target", type=int, dest="target_articles", help="Target relevant articles")
    parser.add_argument("--threshold", type=float, dest="min_relevance", help="Relevance threshold (0-1)")
    parser.add_argument("--multi-source", action="store_true",
                        help="Use per-symbol provider feeds (Yahoo, Finnhub, MarketAux, Alpha Vantage)")
    parser.add_argument("--json", dest="json_path", help="Write results to this JSON file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("=" * 60)
    print("STOCK NEWS SENTIMENT")
    print(f"Run time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    provider_info = get_provider_info()
    if provider_info.get("status") == "ready":
        print(f"Provider: {provider_info.get('provider')} | Model: {provider_info.get('model')}")
    elif provider_info.get("status") == "error":
        print(f"LLM unavailable ({provider_info.get('error')}), using lexicon scoring")
    else:
        print("No LLM provider configured, using lexicon scoring")
    print("=" * 60)

    analyzer = TickerSentimentAnalyzer()
    results = {}
    for symbol in args.tickers:
        print(f"\n--- {symbol.upper()} ---")
        if args.multi_source:
            result = analyzer.fetch_multi_source_and_analyze(symbol)
            _print_report(result)
            results[symbol.upper()] = result.to_dict()
            continue
        try:
            result = analyzer.fetch_and_analyze(
                symbol,
                min_articles=args.min_articles,
                target_articles=args.target_articles,
                min_relevance=args.min_relevance,
            )
        except ValueError as e:
            parser.error(str(e))
        _print_report(result)
        results[symbol.upper()] = result.to_dict()

    if args.json_path:
        with open(args.json_path, "w") as f:
            json.dump(results, f, indent=2, default=str)
        print(f"\nResults saved to: {args.json_path}")


if __name__ == "__main__":
    main()
