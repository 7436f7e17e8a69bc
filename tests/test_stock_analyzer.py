"""End-to-end tests for the analyzer entry points."""

import pytest

from news_models import INSUFFICIENT_DATA_LABEL, DataQuality, ResolutionError, ScorerUnavailableError
from sentiment_engine import SentimentEngine
from stock_analyzer import TickerSentimentAnalyzer, analyze_user_experience
from tests.conftest import NOW, make_article
from tests.test_multi_query_fetcher import MockSearch, relevant
from tests.test_news_fetcher import SYMBOL_TITLES, MockSource, _relevant


class UnavailableScorer:
    def score_articles(self, articles, max_count=15):
        raise ScorerUnavailableError("no provider")


@pytest.fixture
def analyzer(resolver):
    def build(search=None, sources=None):
        return TickerSentimentAnalyzer(
            fetch_articles=search or MockSearch(),
            resolver=resolver,
            engine=SentimentEngine(overall_scorer=UnavailableScorer(), now=lambda: NOW),
            news_sources=sources,
        )
    return build


@pytest.fixture
def supplied_articles():
    return [
        make_article(
            "AAPL shares jump 4% after record iPhone revenue",
            description="Apple Inc. reported quarterly revenue of $94B, up 8% year over year.",
            url="https://www.reuters.com/technology/aapl-q3",
        ),
        make_article(
            "AAPL stock climbs as analysts raise price target to $250",
            description="Several analysts lifted targets citing strong services growth.",
            url="https://www.cnbc.com/aapl-target",
            hours_ago=4,
        ),
        make_article(
            "Stocks mixed as investors await Fed decision",
            description="The S&P 500 edged lower while Treasury yields rose 3 basis points.",
            url="https://www.marketwatch.com/story/markets-mixed",
            hours_ago=2,
        ),
        make_article(
            "Tech giants lead market rebound",
            description="Shares of $AAPL rose 2% while chipmakers gained on strong demand.",
            url="https://www.reuters.com/markets/tech-rebound",
            hours_ago=6,
        ),
    ]


def test_supplied_articles_are_filtered_and_scored(analyzer, supplied_articles):
    result = analyzer().analyze_ticker("AAPL", supplied_articles, min_relevance=0.55)

    assert result.articles_analyzed == 3
    assert result.data_quality in (DataQuality.MEDIUM, DataQuality.HIGH)
    assert result.sentiment_label != INSUFFICIENT_DATA_LABEL
    titles = {b.title for b in result.article_breakdown}
    assert "Stocks mixed as investors await Fed decision" not in titles
    assert result.used_fallback
    assert -1.0 <= result.sentiment_score <= 1.0
    assert 0.0 < result.confidence <= 1.0


def test_supplied_dicts_are_accepted(analyzer, supplied_articles):
    records = [a.to_dict() for a in supplied_articles]

    result = analyzer().analyze_ticker("AAPL", records, min_relevance=0.55)

    assert result.articles_analyzed == 3


def test_supplied_articles_without_filter(analyzer, supplied_articles):
    result = analyzer().analyze_ticker("AAPL", supplied_articles)

    assert result.articles_analyzed == 4


def test_too_few_articles_are_insufficient(analyzer, supplied_articles):
    result = analyzer().analyze_ticker("AAPL", supplied_articles[:2])

    assert result.sentiment_label == INSUFFICIENT_DATA_LABEL
    assert result.confidence == 0.0
    assert result.article_breakdown == ()
    assert result.data_quality is DataQuality.INSUFFICIENT


def test_analyze_ticker_fetches_when_no_articles_given(analyzer):
    search = MockSearch({"AAPL": relevant(5)})

    result = analyzer(search).analyze_ticker("AAPL")

    assert result.articles_analyzed == 5
    assert "AAPL" in search.calls


def test_analyze_ticker_insufficient_fetch(analyzer):
    result = analyzer(MockSearch({"AAPL": relevant(1)})).analyze_ticker("AAPL")

    assert result.sentiment_label == INSUFFICIENT_DATA_LABEL
    assert result.articles_analyzed == 1


def test_analyze_ticker_unresolvable_symbol_raises(analyzer):
    with pytest.raises(ResolutionError):
        analyzer().analyze_ticker("   ")


def test_fetch_and_analyze_success(analyzer):
    result = analyzer(MockSearch({"AAPL": relevant(5)})).fetch_and_analyze("AAPL")

    assert not result.is_error
    assert result.fetch.success
    assert result.sentiment.articles_analyzed == 5
    data = result.to_dict()
    assert data["success"] is True
    assert data["relevantCount"] == 5
    assert "sentimentLabel" in data
    assert "error" not in data


def test_fetch_and_analyze_insufficient(analyzer):
    result = analyzer(MockSearch({"AAPL": relevant(2)})).fetch_and_analyze("AAPL")

    assert not result.fetch.success
    assert result.sentiment.sentiment_label == INSUFFICIENT_DATA_LABEL
    assert result.sentiment.articles_analyzed == 2


def test_fetch_and_analyze_error_shape(analyzer):
    result = analyzer().fetch_and_analyze("  ")

    assert result.is_error
    assert result.sentiment is None
    data = result.to_dict()
    assert data["success"] is False
    assert data["error"]
    assert "sentimentLabel" not in data


def test_fetch_and_analyze_overrides(analyzer):
    result = analyzer(MockSearch({"AAPL": relevant(2)})).fetch_and_analyze(
        "AAPL", min_articles=2, target_articles=2
    )

    assert result.fetch.success
    assert result.fetch.message == "Successfully retrieved 2 high-quality relevant articles."


def test_multi_source_success(analyzer):
    sources = [MockSource("Yahoo Finance", _relevant(SYMBOL_TITLES)), MockSource("Finnhub")]

    result = analyzer(sources=sources).fetch_multi_source_and_analyze("aapl")

    assert result.fetch.success
    assert result.fetch.sources_used == ("Yahoo Finance",)
    assert result.fetch.queries_used == ("AAPL",)
    assert result.fetch.relevant_count == 3
    assert result.fetch.message == (
        "Retrieved 3 relevant articles (below target of 5 but sufficient for analysis)."
    )
    assert result.sentiment.articles_analyzed == 3
    assert result.sentiment.data_quality is DataQuality.MEDIUM


def test_multi_source_too_few_articles(analyzer):
    sources = [MockSource("Yahoo Finance", _relevant(SYMBOL_TITLES[:2]))]

    result = analyzer(sources=sources).fetch_multi_source_and_analyze("AAPL")

    assert not result.fetch.success
    assert result.sentiment.sentiment_label == INSUFFICIENT_DATA_LABEL


def test_multi_source_unresolvable_symbol(analyzer):
    result = analyzer(sources=[MockSource("Yahoo Finance")]).fetch_multi_source_and_analyze("  ")

    assert result.is_error
    assert result.sentiment is None


# ============================================================================
# User experience notes
# ============================================================================


def test_user_experience_empty_note():
    result = analyze_user_experience("   ")

    assert result.sentiment_score == 0.5
    assert result.explanation == "No user input provided"


def test_user_experience_positive():
    result = analyze_user_experience("Very strong growth and record profit, I am optimistic")

    assert result.sentiment_score == 1.0
    assert result.explanation.startswith("Your input shows strong positive sentiment")


def test_user_experience_negative():
    result = analyze_user_experience("Worried about the lawsuit and falling sales, might crash")

    assert result.sentiment_score == pytest.approx(0.0)
    assert result.explanation.startswith("Your input shows cautious or negative sentiment")


def test_user_experience_neutral():
    result = analyze_user_experience("I hold some shares")

    assert result.sentiment_score == 0.5
    assert "neutral" in result.explanation
