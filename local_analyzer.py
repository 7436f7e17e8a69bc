#!/usr/bin/env python3
"""
Local lexicon-based sentiment scoring for financial news text.
No external AI APIs; everything here is rule-based.

    PolarityScorer        - AFINN-style polarity over a financial lexicon,
                            with negation and intensifier handling
    match_financial_terms - whole-word hits against fixed bullish/bearish
                            term lists
"""

import re
from typing import Optional

from news_models import PolarityResult

# ---------------------------------------------------------------------------
# FINANCIAL SENTIMENT LEXICON
#   Integer valence on the AFINN scale (-5 .. +5).
#   Positive = bullish, Negative = bearish.
# ---------------------------------------------------------------------------

_LEXICON_TIERS: dict[int, tuple[str, ...]] = {
    4: (
        "soar", "soars", "soared", "soaring",
        "surge", "surges", "surged", "surging",
        "skyrocket", "skyrockets", "skyrocketed",
        "rally", "rallies", "rallied", "rallying",
        "boom", "booming", "booms",
        "breakthrough", "all-time high", "earnings beat",
    ),
    3: (
        "breakout", "outperform", "outperforms", "outperformed",
        "beat", "beats", "beating",
        "exceed", "exceeds", "exceeded", "exceeding",
        "record", "bullish", "upgrade", "upgraded", "upgrades",
        "profit", "profits", "profitable", "profitability",
        "revenue growth", "optimistic", "optimism",
        "accelerate", "accelerates", "accelerating",
        "jump", "jumps", "jumped", "jumping",
        "recovery", "success", "successful",
        "boost", "boosts", "boosted", "boosting",
        "approved", "rate cut",
    ),
    2: (
        "strong", "strength", "robust", "upbeat", "momentum",
        "innovation", "innovative", "dividend", "buyback", "repurchase",
        "expansion", "expand", "expands", "expanding",
        "recover", "recovers", "recovering",
        "gain", "gains", "gained", "gaining",
        "climb", "climbs", "climbed", "climbing",
        "rise", "rises", "rising", "risen",
        "growth", "growing", "grew", "grow",
        "win", "wins", "winning", "won",
        "demand", "opportunity", "opportunities", "approval",
        "acquisition", "acquire", "acquires", "acquired", "partnership",
        "improve", "improves", "improved", "improving",
        "increase", "increases", "increased", "increasing",
        "launch", "launches", "launched",
        "confident", "confidence", "resilient", "resilience",
        "positive", "higher", "milestone", "dovish", "easing", "stimulus",
    ),
    1: (
        "up", "high", "merger", "deal", "stable", "stability", "steady",
        "invest", "investment", "investing", "maintain", "maintains",
        "announce", "announces", "announced", "expect", "expects",
    ),
    -1: (
        "down", "low", "risk", "risks", "mixed", "flat",
    ),
    -2: (
        "investigation", "litigation", "fined", "penalty", "penalties",
        "decline", "declines", "declined", "declining",
        "drop", "drops", "dropped", "dropping",
        "fall", "falls", "fell", "falling",
        "slide", "slides", "slid", "sliding",
        "weak", "weakness", "weaken",
        "warning", "warn", "warns", "warned",
        "shrink", "shrinks", "shrank", "shrinking",
        "struggle", "struggles", "struggling",
        "recall", "recalls", "recalled", "closure",
        "fear", "fears", "fearful", "missing",
        "cut", "cuts", "cutting", "negative", "lower",
        "hawkish", "rate hike", "rate increase",
        "tariff", "tariffs", "sanctions", "shortage", "shortages",
        "uncertainty", "uncertain", "tighten", "tightening",
        "concern", "concerns", "concerned", "volatile", "volatility",
        "inflation", "inflationary", "debt", "risky",
        "delay", "delayed", "delays", "deficit", "pessimistic", "cancellation",
    ),
    -3: (
        "selloff", "sell-off", "bearish",
        "downgrade", "downgraded", "downgrades",
        "recession", "recessionary", "layoff", "layoffs", "laid off",
        "sink", "sinks", "sank", "sinking",
        "slump", "slumps", "slumped", "slumping",
        "loss", "losses", "miss", "misses", "missed",
        "lawsuit", "sued", "shutdown", "overvalued",
        "underperform", "underperforms", "underperformed",
        "disappoint", "disappoints", "disappointed", "disappointing",
    ),
    -4: (
        "plunge", "plunges", "plunged", "plunging",
        "collapse", "collapses", "collapsed",
        "tank", "tanks", "tanked", "tanking",
        "tumble", "tumbles", "tumbled", "tumbling",
        "plummet", "plummets", "plummeted",
        "default", "defaults", "defaulted",
        "scandal", "bear market",
    ),
    -5: (
        "crash", "crashes", "crashed", "crashing",
        "bankruptcy", "bankrupt", "fraud",
    ),
}

FINANCIAL_LEXICON: dict[str, int] = {
    word: valence for valence, words in _LEXICON_TIERS.items() for word in words
}

NEGATION_WORDS = frozenset([
    "not", "no", "never", "neither", "nobody", "nothing",
    "nowhere", "nor", "cannot", "can't", "won't", "don't",
    "doesn't", "didn't", "wasn't", "weren't", "isn't", "aren't",
    "wouldn't", "shouldn't", "couldn't", "hardly", "barely", "scarcely",
    "fail", "fails", "failed", "failing",
])

NEGATION_FACTOR = -0.75

INTENSIFIERS = {
    "very": 1.3, "extremely": 1.5, "significantly": 1.4,
    "sharply": 1.4, "dramatically": 1.5, "massively": 1.5,
    "strongly": 1.3, "highly": 1.3, "deeply": 1.3,
    "substantially": 1.3, "considerably": 1.25,
    "slightly": 0.6, "marginally": 0.5, "somewhat": 0.7, "modestly": 0.7,
}

# Bullish / bearish terms counted on top of the polarity score
POSITIVE_TERMS = (
    "surge", "soar", "rally", "gain", "profit", "beat", "exceed", "outperform",
    "growth", "expansion", "success", "breakthrough", "innovation", "approved",
    "upgrade", "bullish", "optimistic", "strong", "revenue growth", "record",
    "milestone", "partnership", "acquisition", "investment",
)

NEGATIVE_TERMS = (
    "plunge", "crash", "fall", "decline", "loss", "miss", "underperform",
    "lawsuit", "investigation", "recall", "warning", "downgrade", "bearish",
    "pessimistic", "weak", "layoff", "bankruptcy", "fraud", "scandal",
    "delay", "cancellation", "shortage", "deficit",
)

_TOKEN = re.compile(r"[a-z]+(?:'[a-z]+)?")


def _whole_word(term: str) -> re.Pattern:
    return re.compile(rf"\b{re.escape(term)}\b", re.IGNORECASE)


_POSITIVE_PATTERNS = [(t, _whole_word(t)) for t in POSITIVE_TERMS]
_NEGATIVE_PATTERNS = [(t, _whole_word(t)) for t in NEGATIVE_TERMS]


def match_financial_terms(text: str) -> tuple[list[str], list[str]]:
    """Return the (positive, negative) financial terms found in text."""
    text = text or ""
    positive = [t for t, p in _POSITIVE_PATTERNS if p.search(text)]
    negative = [t for t, p in _NEGATIVE_PATTERNS if p.search(text)]
    return positive, negative


class PolarityScorer:
    """Scores text polarity using the built-in financial lexicon."""

    def __init__(self, lexicon: Optional[dict[str, float]] = None):
        self._lexicon = lexicon or FINANCIAL_LEXICON
        phrases = sorted(
            (k for k in self._lexicon if " " in k or "-" in k),
            key=len, reverse=True,
        )
        self._phrases = [(p, re.compile(rf"\b{re.escape(p)}\b")) for p in phrases]
        self._words = {k: v for k, v in self._lexicon.items() if " " not in k and "-" not in k}

    def polarity(self, text: str) -> PolarityResult:
        """
        Sum the valence of every lexicon hit in text.

        Multi-word phrases are matched first and removed, so "earnings beat"
        is not counted again as "beat". A negation directly before a word
        flips and dampens it; an intensifier scales it.
        """
        remaining = (text or "").lower()
        score = 0.0
        positive: list[str] = []
        negative: list[str] = []

        def record(word: str, value: float) -> None:
            nonlocal score
            score += value
            if value > 0 and word not in positive:
                positive.append(word)
            elif value < 0 and word not in negative:
                negative.append(word)

        for phrase, pattern in self._phrases:
            hits = len(pattern.findall(remaining))
            if hits:
                for _ in range(hits):
                    record(phrase, self._lexicon[phrase])
                remaining = pattern.sub(" ", remaining)

        tokens = _TOKEN.findall(remaining)
        i = 0
        while i < len(tokens):
            token = tokens[i]
            nxt = tokens[i + 1] if i + 1 < len(tokens) else None

            if nxt in self._words:
                if token in INTENSIFIERS:
                    record(nxt, self._words[nxt] * INTENSIFIERS[token])
                    i += 2
                    continue
                if token in NEGATION_WORDS:
                    record(nxt, self._words[nxt] * NEGATION_FACTOR)
                    i += 2
                    continue

            if token in self._words:
                record(token, self._words[token])
            i += 1

        return PolarityResult(
            score=round(score, 4),
            positive_words=tuple(positive),
            negative_words=tuple(negative),
        )
