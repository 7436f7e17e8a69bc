#!/usr/bin/env python3
"""
Data quality gate.

Classifies an article set before sentiment is computed. Anything under three
articles is INSUFFICIENT and never reaches the sentiment engine.
"""

import re
from typing import Optional, Sequence

from news_models import Article, ArticleQuality, DataQuality

MIN_ARTICLES = 3
SUBSTANTIVE_LENGTH = 100

FINANCIAL_TERMS = re.compile(
    r"(revenue|earnings|profit|loss|growth|decline|stock|shares|market|price|analyst)",
    re.IGNORECASE,
)
_DIGIT = re.compile(r"\d")


def _has_financial_figures(text: str) -> bool:
    return bool(_DIGIT.search(text)) and bool(FINANCIAL_TERMS.search(text))


def is_substantive(article: Article) -> bool:
    """Has numbers alongside financial terms, or is long enough to say something."""
    text = f"{article.title or ''} {article.description or ''}"
    return _has_financial_figures(text) or len(text) > SUBSTANTIVE_LENGTH


def assess(articles: Sequence[Article]) -> DataQuality:
    total = len(articles)
    if total < MIN_ARTICLES:
        return DataQuality.INSUFFICIENT

    substantive = sum(1 for a in articles if is_substantive(a))
    ratio = substantive / total

    if total >= 10 and ratio >= 0.5:
        return DataQuality.HIGH
    if total >= 5 and ratio >= 0.3:
        return DataQuality.MEDIUM
    if substantive >= 2:
        return DataQuality.MEDIUM
    return DataQuality.LOW


def assess_article_quality(title: Optional[str], description: Optional[str]) -> ArticleQuality:
    """Grade a single raw article by length and informativeness."""
    title = title or ""
    description = description or ""
    text = title + description
    length = len(title) + len(description)
    figures = _has_financial_figures(text)

    if length > 200 and figures:
        return ArticleQuality.HIGH
    if length > 100 or figures:
        return ArticleQuality.MEDIUM
    return ArticleQuality.LOW


def meets_quality_threshold(articles: Sequence[Article]) -> bool:
    """At least three articles, two of them graded medium or better."""
    if len(articles) < MIN_ARTICLES:
        return False
    good = sum(1 for a in articles if a.quality in (ArticleQuality.HIGH, ArticleQuality.MEDIUM))
    return good >= 2
