#!/usr/bin/env python3
"""
Article de-duplication by normalized URL and near-identical titles.
"""

from typing import Iterable

from news_models import Article, normalize_title

TITLE_SIMILARITY_THRESHOLD = 0.85
MIN_WORD_LENGTH = 3

# Connectives that change between rewrites of the same headline
TITLE_STOPWORDS = frozenset({
    "the", "and", "for", "with", "from", "after", "amid", "into", "onto",
    "its", "are", "was", "has", "have", "says", "said",
})


def title_words(title: str) -> set[str]:
    return {
        w for w in normalize_title(title).split()
        if len(w) >= MIN_WORD_LENGTH and w not in TITLE_STOPWORDS
    }


def _jaccard(a: set[str], b: set[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def title_similarity(a: str, b: str) -> float:
    """Jaccard similarity of the two titles' significant words (0..1)."""
    return _jaccard(title_words(a), title_words(b))


def is_duplicate(a: Article, b: Article) -> bool:
    url_a, url_b = a.normalized_url, b.normalized_url
    if url_a and url_b and url_a == url_b:
        return True
    return title_similarity(a.title, b.title) >= TITLE_SIMILARITY_THRESHOLD


def dedupe(articles: Iterable[Article]) -> list[Article]:
    """Drop duplicates, keeping the first occurrence and the input order."""
    accepted: list[Article] = []
    accepted_words: list[set[str]] = []

    for article in articles:
        url = article.normalized_url
        words = title_words(article.title)
        duplicate = any(
            (url and other.normalized_url == url)
            or _jaccard(words, other_words) >= TITLE_SIMILARITY_THRESHOLD
            for other, other_words in zip(accepted, accepted_words)
        )
        if not duplicate:
            accepted.append(article)
            accepted_words.append(words)

    return accepted


def merge_articles(*article_lists: Iterable[Article]) -> list[Article]:
    """Concatenate article lists and de-duplicate the result."""
    merged: list[Article] = []
    for articles in article_lists:
        merged.extend(articles)
    return dedupe(merged)
