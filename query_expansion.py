#!/usr/bin/env python3
"""
Query Expansion
Turns a resolved ticker into prioritized batches of search queries, so the
fetcher can start narrow and widen only when it has to.
"""

import logging
from itertools import groupby
from typing import Optional

from news_models import QUERY_TYPE_PRECEDENCE, ExpandedQuery, QueryType, TickerRecord

logger = logging.getLogger(__name__)

# Product and executive keywords per ticker. The first three entries are
# treated as products, the rest as executives.
TICKER_KEYWORDS: dict[str, list[str]] = {
    # Tech
    "AAPL": ["iPhone", "iPad", "Mac", "Tim Cook", "Apple Watch", "M-series", "App Store", "iOS", "MacBook"],
    "TSLA": ["Tesla Model", "Elon Musk", "Cybertruck", "Tesla battery", "EV deliveries", "Gigafactory"],
    "MSFT": ["Windows", "Azure", "Office 365", "Satya Nadella", "Xbox", "Microsoft Teams", "AI Copilot"],
    "GOOGL": ["Google Search", "Sundar Pichai", "YouTube", "Android", "Google Cloud", "Pixel", "Chrome"],
    "GOOG": ["Google Search", "Sundar Pichai", "YouTube", "Android", "Google Cloud", "Pixel", "Chrome"],
    "AMZN": ["AWS", "Jeff Bezos", "Andy Jassy", "Amazon Prime", "Alexa", "Amazon Web Services",
             "Amazon retail", "e-commerce", "Prime Day"],
    "META": ["Facebook", "Instagram", "WhatsApp", "Mark Zuckerberg", "Meta Quest", "Threads", "Metaverse"],
    "NVDA": ["Nvidia GPU", "Jensen Huang", "RTX", "AI chips", "CUDA", "GeForce"],

    # Finance
    "JPM": ["Jamie Dimon", "JPMorgan Chase", "JPM earnings", "investment banking"],
    "BAC": ["Bank of America", "BofA", "Brian Moynihan"],
    "GS": ["Goldman Sachs", "David Solomon", "investment banking"],
    "MS": ["Morgan Stanley", "James Gorman"],
    "V": ["Visa payment", "credit card", "payment processing"],
    "MA": ["Mastercard payment", "credit card processing"],

    # Retail
    "WMT": ["Walmart stores", "Doug McMillon", "Walmart earnings", "retail sales"],
    "COST": ["Costco warehouse", "membership"],

    # Healthcare
    "JNJ": ["Johnson & Johnson", "J&J", "pharmaceuticals"],
    "PFE": ["Pfizer vaccine", "Pfizer drug", "Albert Bourla"],
    "ABBV": ["AbbVie drug", "Humira", "pharmaceutical"],

    # Automotive
    "F": ["Ford F-150", "Ford Mustang", "Jim Farley", "Ford EV"],
    "GM": ["General Motors", "Mary Barra", "GM electric", "Chevrolet"],

    # Energy
    "XOM": ["ExxonMobil", "Exxon", "oil production", "energy sector"],
    "CVX": ["Chevron oil", "energy production"],

    # Consumer goods
    "KO": ["Coca-Cola", "Coke", "James Quincey", "beverage"],
    "PEP": ["Pepsi", "PepsiCo", "Ramon Laguarta", "beverage"],
    "NKE": ["Nike shoes", "athletic wear", "John Donahoe", "sportswear"],

    # Semiconductors
    "AMD": ["AMD processor", "Lisa Su", "Ryzen", "EPYC", "GPU"],
    "INTC": ["Intel chip", "Pat Gelsinger", "processor", "semiconductor"],
    "QCOM": ["Qualcomm chip", "Snapdragon", "5G technology"],

    # Entertainment
    "DIS": ["Disney parks", "Bob Iger", "Disney+", "Marvel", "streaming"],
    "NFLX": ["Netflix streaming", "Netflix series", "subscription"],

    # Payments / e-commerce
    "PYPL": ["PayPal payment", "digital payment", "Venmo"],
    "SQ": ["Square payment", "Block Inc", "Cash App"],
    "SHOP": ["Shopify platform", "e-commerce platform"],
}

PRODUCT_KEYWORD_COUNT = 3


def _keyword_queries(symbol: str) -> list[ExpandedQuery]:
    keywords = TICKER_KEYWORDS.get(symbol.upper(), [])
    return [
        ExpandedQuery(
            query=keyword,
            priority=4,
            type=QueryType.PRODUCT if idx < PRODUCT_KEYWORD_COUNT else QueryType.EXECUTIVE,
        )
        for idx, keyword in enumerate(keywords)
    ]


def _candidate_queries(ticker: TickerRecord) -> list[ExpandedQuery]:
    symbol = ticker.symbol
    queries = [ExpandedQuery(symbol, 1, QueryType.SYMBOL)]
    if ticker.name and ticker.name.lower() != symbol.lower():
        queries.append(ExpandedQuery(ticker.name, 1, QueryType.COMPANY))

    queries.append(ExpandedQuery(f"{symbol} stock", 2, QueryType.SYMBOL))
    if ticker.short_name:
        queries.append(ExpandedQuery(f"{ticker.short_name} stock", 2, QueryType.COMPANY))

    queries.append(ExpandedQuery(f"{symbol} news", 3, QueryType.SYMBOL))
    queries.append(ExpandedQuery(f"{symbol} earnings", 3, QueryType.EVENT))
    if ticker.short_name:
        queries.append(ExpandedQuery(f"{ticker.short_name} earnings", 3, QueryType.EVENT))

    queries.extend(_keyword_queries(symbol))
    return queries


def priority_ordered_queries(ticker: TickerRecord) -> list[ExpandedQuery]:
    """All queries for a ticker, sorted by priority then type, deduplicated."""
    ordered = sorted(
        _candidate_queries(ticker),
        key=lambda q: (q.priority, QUERY_TYPE_PRECEDENCE[q.type]),
    )

    seen = set()
    unique = []
    for q in ordered:
        key = q.query.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append(ExpandedQuery(q.query.strip(), q.priority, q.type))
    return unique


def expand(ticker: TickerRecord) -> list[list[ExpandedQuery]]:
    """Group the ordered queries into batches of equal priority."""
    return [
        list(batch)
        for _, batch in groupby(priority_ordered_queries(ticker), key=lambda q: q.priority)
    ]


def log_query_expansion(ticker: TickerRecord,
                        batches: Optional[list[list[ExpandedQuery]]] = None) -> None:
    if batches is None:
        batches = expand(ticker)
    logger.debug("Query expansion for %s", ticker.symbol)
    for idx, batch in enumerate(batches, 1):
        logger.debug("Priority %d (batch %d): %s", batch[0].priority, idx,
                     ", ".join(f'"{q.query}" [{q.type.value}]' for q in batch))
    logger.debug("Total queries: %d", sum(len(b) for b in batches))
