#!/usr/bin/env python3
"""
Ticker Symbol Resolver
Maps stock tickers to canonical company records (names and aliases) used for
relevance filtering. Records are cached for the life of the process.
"""

import logging
import re
import threading
from typing import Callable, Iterable, Optional

import yfinance as yf

from news_models import ResolutionError, TickerRecord

logger = logging.getLogger(__name__)

CompanyLookup = Callable[[str], dict]

_CORPORATE_SUFFIX = re.compile(
    r",?\s+(Inc\.?|Corp\.?|Corporation|Ltd\.?|Limited|Company|Co\.?|Group|Holdings?)$",
    re.IGNORECASE,
)

# Brand, product and name variants for well-known companies
SPECIAL_ALIASES: dict[str, list[str]] = {
    "AAPL": ["Apple", "Apple Inc", "iPhone", "iPad", "Mac"],
    "TSLA": ["Tesla", "Tesla Motors", "Tesla Inc"],
    "MSFT": ["Microsoft", "Microsoft Corporation"],
    "GOOGL": ["Google", "Alphabet", "Alphabet Inc"],
    "GOOG": ["Google", "Alphabet", "Alphabet Inc"],
    "AMZN": ["Amazon", "Amazon.com", "AWS"],
    "META": ["Meta", "Facebook", "Meta Platforms"],
    "NVDA": ["NVIDIA", "Nvidia", "Nvidia Corporation"],
    "AMD": ["AMD", "Advanced Micro Devices"],
    "INTC": ["Intel", "Intel Corporation"],
    "NFLX": ["Netflix", "Netflix Inc"],
    "DIS": ["Disney", "Walt Disney", "The Walt Disney Company"],
    "BA": ["Boeing", "The Boeing Company"],
    "V": ["Visa", "Visa Inc"],
    "MA": ["Mastercard", "MasterCard"],
    "JPM": ["JPMorgan", "JP Morgan", "JPMorgan Chase"],
    "BAC": ["Bank of America", "BofA"],
    "WMT": ["Walmart", "Wal-Mart"],
    "PG": ["Procter & Gamble", "P&G"],
    "JNJ": ["Johnson & Johnson", "J&J"],
    "UNH": ["UnitedHealth", "United Health Group"],
    "HD": ["Home Depot", "The Home Depot"],
    "CVX": ["Chevron", "Chevron Corporation"],
    "XOM": ["Exxon", "ExxonMobil", "Exxon Mobil"],
    "KO": ["Coca-Cola", "Coca Cola", "Coke"],
    "PEP": ["Pepsi", "PepsiCo"],
    "NKE": ["Nike", "Nike Inc"],
    "MCD": ["McDonald's", "McDonalds"],
    "SBUX": ["Starbucks", "Starbucks Corporation"],
    "COST": ["Costco", "Costco Wholesale"],
    "WFC": ["Wells Fargo", "Wells Fargo & Company"],
    "GS": ["Goldman Sachs", "Goldman Sachs Group"],
    "MS": ["Morgan Stanley"],
    "C": ["Citigroup", "Citi"],
    "PYPL": ["PayPal", "PayPal Holdings"],
    "ADBE": ["Adobe", "Adobe Inc"],
    "CRM": ["Salesforce", "Salesforce.com"],
    "ORCL": ["Oracle", "Oracle Corporation"],
    "IBM": ["IBM", "International Business Machines"],
    "CSCO": ["Cisco", "Cisco Systems"],
    "QCOM": ["Qualcomm", "Qualcomm Inc"],
    "TMO": ["Thermo Fisher", "Thermo Fisher Scientific"],
    "ABT": ["Abbott", "Abbott Laboratories"],
    "BMY": ["Bristol-Myers", "Bristol Myers Squibb"],
    "PFE": ["Pfizer", "Pfizer Inc"],
    "MRK": ["Merck", "Merck & Co"],
    "LLY": ["Eli Lilly", "Lilly"],
    "ABBV": ["AbbVie", "AbbVie Inc"],
    "T": ["AT&T", "AT&T Inc"],
    "VZ": ["Verizon", "Verizon Communications"],
    "CMCSA": ["Comcast", "Comcast Corporation"],
}


def normalize_symbol(symbol: Optional[str]) -> str:
    """Uppercase and trim a ticker; raise if nothing is left."""
    normalized = (symbol or "").strip().upper()
    if not normalized:
        raise ResolutionError("Ticker symbol is empty")
    return normalized


def strip_corporate_suffix(name: str) -> str:
    return _CORPORATE_SUFFIX.sub("", name.strip()).strip()


def generate_aliases(symbol: str, short_name: Optional[str] = None,
                     long_name: Optional[str] = None) -> tuple[str, ...]:
    """Build the alias list for a company.

    Includes the symbol, both names verbatim and with corporate suffixes
    removed, and any curated aliases. Duplicates are dropped
    case-insensitively, keeping the first spelling seen.
    """
    candidates = [symbol.upper()]
    for name in (short_name, long_name):
        if name and name.strip():
            candidates.append(name.strip())
            candidates.append(strip_corporate_suffix(name))
    candidates.extend(SPECIAL_ALIASES.get(symbol.upper(), []))
    return _dedupe_casefold(candidates)


def _dedupe_casefold(values: Iterable[str]) -> tuple[str, ...]:
    seen = set()
    result = []
    for value in values:
        if not value:
            continue
        key = value.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(value)
    return tuple(result)


def yfinance_company_lookup(symbol: str) -> dict:
    """Fetch shortName/longName for a symbol using yfinance."""
    info = yf.Ticker(symbol).info or {}
    display = info.get("displayName")
    return {
        "shortName": info.get("shortName") or display,
        "longName": info.get("longName") or display,
    }


class TickerCache:
    """Process-lifetime cache of resolved ticker records.

    Reads are lock-free; writes take a lock. Two threads resolving the same
    symbol may both compute a record, and either may win the write, since
    both are equivalent.
    """

    def __init__(self):
        self._records: dict[str, TickerRecord] = {}
        self._lock = threading.Lock()

    def get(self, symbol: str) -> Optional[TickerRecord]:
        return self._records.get(symbol)

    def put(self, record: TickerRecord) -> TickerRecord:
        with self._lock:
            return self._records.setdefault(record.symbol, record)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._records

    def __len__(self) -> int:
        return len(self._records)


class TickerResolver:
    """Resolves ticker symbols to TickerRecords via a company lookup."""

    def __init__(self, lookup: Optional[CompanyLookup] = None,
                 cache: Optional[TickerCache] = None):
        self.lookup = lookup or yfinance_company_lookup
        self.cache = cache if cache is not None else TickerCache()

    def resolve(self, symbol: str) -> TickerRecord:
        """Return the record for a symbol, degrading to a minimal record
        when the company lookup fails."""
        normalized = normalize_symbol(symbol)

        cached = self.cache.get(normalized)
        if cached is not None:
            return cached

        try:
            quote = self.lookup(normalized) or {}
            record = self._build_record(normalized, quote)
        except Exception as e:
            logger.warning("Failed to fetch ticker info for %s: %s", normalized, e)
            record = TickerRecord(
                symbol=normalized,
                name=normalized,
                aliases=(normalized,),
                degraded=True,
            )

        return self.cache.put(record)

    def _build_record(self, symbol: str, quote: dict) -> TickerRecord:
        short_name = (quote.get("shortName") or "").strip() or None
        long_name = (quote.get("longName") or "").strip() or None
        return TickerRecord(
            symbol=symbol,
            name=long_name or short_name or symbol,
            short_name=short_name,
            long_name=long_name,
            aliases=generate_aliases(symbol, short_name, long_name),
        )


_default_resolver: Optional[TickerResolver] = None


def default_resolver() -> TickerResolver:
    """Get or create the shared resolver."""
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = TickerResolver()
    return _default_resolver


def clear_ticker_cache() -> None:
    """Clear the shared resolver's cache."""
    if _default_resolver is not None:
        _default_resolver.cache.clear()
