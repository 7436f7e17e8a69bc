"""Tests for article relevance scoring and filtering."""

import pytest

from article_relevance import (
    filter_relevant_articles,
    is_trusted_domain,
    relevance_stats,
    score_article,
)
from news_models import MatchType, TickerRecord


@pytest.mark.parametrize("title", ["Pineapple prices surge in Hawaii", "Pineapple farming booms"])
def test_substring_of_longer_word_does_not_match(aapl, article_factory, title):
    article = article_factory(title)

    score = score_article(article, aapl)

    assert score.score == 0.0
    assert not score.is_relevant
    assert score.match_type is MatchType.NONE
    assert score.matched_terms == ()


def test_symbol_in_title_is_relevant(aapl, article_factory):
    score = score_article(article_factory("AAPL shares climb 3% after earnings"), aapl)

    assert score.is_relevant
    assert score.score == pytest.approx(0.6)
    assert score.match_type is MatchType.SYMBOL
    assert "AAPL" in score.matched_terms


def test_dollar_prefixed_symbol_matches(aapl, article_factory):
    score = score_article(article_factory("Traders pile into $AAPL ahead of WWDC"), aapl)

    assert score.match_type is MatchType.SYMBOL
    assert "$AAPL" in score.matched_terms


def test_symbol_matching_is_case_insensitive(aapl, article_factory):
    score = score_article(article_factory("Why aapl could rally"), aapl)

    assert score.match_type is MatchType.SYMBOL


def test_title_alias_alone_is_below_default_threshold(aapl, article_factory):
    score = score_article(article_factory("Apple unveils new iPhone lineup"), aapl)

    assert score.score == pytest.approx(0.5)
    assert not score.is_relevant
    assert score.match_type is MatchType.ALIAS
    assert {"Apple", "iPhone"} <= set(score.matched_terms)


def test_company_name_match_type(aapl, article_factory):
    score = score_article(
        article_factory("Apple Inc. reports record revenue", url="https://www.cnbc.com/apple"),
        aapl,
    )

    assert score.match_type is MatchType.COMPANY_NAME
    assert score.is_relevant


def test_body_symbol_on_trusted_domain(aapl, article_factory):
    article = article_factory(
        "Tech stocks rally into the close",
        description="Shares of $AAPL rose after the event.",
        url="https://www.reuters.com/markets/tech-rally",
    )

    score = score_article(article, aapl)

    assert score.score == pytest.approx(0.7)
    assert score.is_relevant
    assert score.match_type is MatchType.SYMBOL


def test_metadata_only_match(aapl, article_factory):
    article = article_factory("Tech earnings roundup", symbols={"AAPL"},
                              url="https://finance.yahoo.com/news/roundup")

    score = score_article(article, aapl)

    assert score.match_type is MatchType.METADATA
    assert score.score == pytest.approx(0.6)
    assert score.is_relevant


def test_score_is_capped_at_one(aapl, article_factory):
    article = article_factory(
        "AAPL and $AAPL: Apple Inc earnings",
        description="Apple Inc (AAPL) beat estimates.",
        url="https://www.reuters.com/apple",
        symbols={"AAPL"},
    )

    score = score_article(article, aapl)

    assert score.score == 1.0
    assert score.is_relevant


def test_threshold_is_respected(aapl, article_factory):
    article = article_factory("Apple unveils new iPhone lineup")

    assert score_article(article, aapl, threshold=0.5).is_relevant
    assert not score_article(article, aapl, threshold=0.55).is_relevant


def test_short_aliases_are_ignored(article_factory):
    ticker = TickerRecord(symbol="XYZW", name="XYZW Holdings", aliases=("XYZW", "GO", "XYZW Holdings"))

    score = score_article(article_factory("Markets go higher"), ticker)

    assert score.score == 0.0


def test_single_letter_symbol_counts_as_its_own_alias(article_factory):
    ticker = TickerRecord(symbol="V", name="Visa Inc.", aliases=("V", "Visa Inc.", "Visa"))

    score = score_article(article_factory("V shares edge up"), ticker)

    assert score.match_type is MatchType.SYMBOL
    assert score.is_relevant


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://www.reuters.com/business/x", True),
        ("https://markets.businessinsider.com/news", True),
        ("https://finance.yahoo.com/news/x.html", True),
        ("https://notreuters.com/x", False),
        ("https://reuters.com.evil.io/x", False),
        ("https://example.com/x", False),
        (None, False),
        ("", False),
    ],
)
def test_is_trusted_domain(url, expected):
    assert is_trusted_domain(url) is expected


def test_filter_sorts_relevant_by_score(aapl, article_factory):
    weak = article_factory("Tech earnings roundup", symbols={"AAPL"},
                           url="https://finance.yahoo.com/news/roundup")
    strong = article_factory("AAPL beats estimates", url="https://www.reuters.com/aapl")
    off_topic = article_factory("Pineapple prices surge in Hawaii")

    result = filter_relevant_articles([weak, off_topic, strong], aapl)

    assert result.relevant == [strong, weak]
    assert result.irrelevant == [off_topic]
    assert len(result.scores) == 3


def test_relevance_stats(aapl, article_factory):
    articles = [
        article_factory("AAPL and $AAPL: Apple Inc earnings", url="https://www.reuters.com/a",
                        symbols={"AAPL"}),
        article_factory("Tech earnings roundup", symbols={"AAPL"}, url="https://finance.yahoo.com/b"),
        article_factory("Apple unveils new iPhone lineup"),
        article_factory("Pineapple prices surge in Hawaii"),
    ]

    stats = relevance_stats(articles, aapl)

    assert stats.total == 4
    assert stats.relevant == 2
    assert stats.irrelevant == 2
    assert stats.relevance_rate == pytest.approx(0.5)
    assert stats.average_relevance_score == pytest.approx(0.8)
    assert stats.high_relevance == 1
    assert stats.medium_relevance == 1
    assert stats.low_relevance == 0


def test_relevance_stats_empty(aapl):
    stats = relevance_stats([], aapl)

    assert stats.total == 0
    assert stats.relevance_rate == 0.0
    assert stats.average_relevance_score == 0.0
