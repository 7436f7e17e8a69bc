"""Tests for the lexicon polarity scorer."""

import pytest

from local_analyzer import FINANCIAL_LEXICON, PolarityScorer, match_financial_terms


@pytest.fixture
def scorer():
    return PolarityScorer()


def test_lexicon_valences_are_integers_in_range():
    assert all(isinstance(v, int) and -5 <= v <= 5 and v != 0 for v in FINANCIAL_LEXICON.values())


def test_single_word(scorer):
    result = scorer.polarity("Shares plunge at the open")

    assert result.score == -4
    assert result.negative_words == ("plunge",)
    assert result.positive_words == ()


def test_phrase_is_not_counted_twice(scorer):
    result = scorer.polarity("Apple posts an earnings beat")

    assert result.score == 4
    assert result.positive_words == ("earnings beat",)


def test_hyphenated_phrase(scorer):
    assert scorer.polarity("A sell-off hits chip names").score == -3


def test_negation_flips_and_dampens(scorer):
    result = scorer.polarity("Demand is not strong")

    assert result.score == pytest.approx(2 - 1.5)
    assert "strong" in result.negative_words
    assert "demand" in result.positive_words


def test_intensifier_scales(scorer):
    assert scorer.polarity("very strong quarter").score == pytest.approx(2.6)
    assert scorer.polarity("slightly lower guidance").score == pytest.approx(-1.2)


def test_mixed_text_sums(scorer):
    result = scorer.polarity("Profit soars but lawsuit looms")

    assert result.score == pytest.approx(3 + 4 - 3)
    assert set(result.positive_words) == {"profit", "soars"}
    assert result.negative_words == ("lawsuit",)


def test_empty_text(scorer):
    result = scorer.polarity("")

    assert result.score == 0
    assert result.positive_words == ()
    assert result.negative_words == ()


def test_custom_lexicon():
    scorer = PolarityScorer({"moon": 5, "rug pull": -5})

    assert scorer.polarity("to the moon after a rug pull scare").score == 0


def test_match_financial_terms():
    positive, negative = match_financial_terms("Revenue growth strong, but recall and lawsuit loom")

    assert set(positive) == {"revenue growth", "growth", "strong"}
    assert set(negative) == {"recall", "lawsuit"}


def test_match_financial_terms_whole_words_only():
    positive, negative = match_financial_terms("Beaten path, fallen leaves")

    assert positive == []
    assert negative == []


def test_match_financial_terms_empty():
    assert match_financial_terms(None) == ([], [])
