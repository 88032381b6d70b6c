# PURPOSE: Current prices for holdings, with an explicit TTL cache value owned by the caller.
# CONTEXT: The cache is a plain mapping {id: (price, fetched_at)} that goes in and comes back
#          out of resolve_prices(); nothing here holds state between calls. Missing or zero
#          prices never raise: they fall back to the cached price, else 0.

from __future__ import annotations
import os
from datetime import datetime, timedelta
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import requests
import structlog

from wealthpulse.model_interface.collaborators import PriceSource
from wealthpulse.model_interface.records import Asset
from wealthpulse.tools.http_tool import fetch_json
from wealthpulse.utils.clock import align

log = structlog.get_logger(__name__)

PRICE_API_URL = os.getenv("PRICE_API_URL", "https://api.coingecko.com/api/v3/simple/price")
PRICE_CACHE_TTL_S = float(os.getenv("PRICE_CACHE_TTL_S", "300"))
PRICE_VS_CURRENCY = os.getenv("PRICE_VS_CURRENCY", "inr")

CacheEntry = Tuple[float, datetime]
PriceCache = Dict[str, CacheEntry]


def is_stale(entry: Optional[CacheEntry], now: datetime, ttl_s: float = PRICE_CACHE_TTL_S) -> bool:
    """True when there is no entry or it is at least `ttl_s` seconds old."""
    if entry is None:
        return True
    _, fetched_at = entry
    return now - align(fetched_at, now) >= timedelta(seconds=ttl_s)


def resolve_prices(
    ids: Sequence[str],
    cache: Mapping[str, CacheEntry],
    source: PriceSource,
    now: Optional[datetime] = None,
    ttl_s: float = PRICE_CACHE_TTL_S,
) -> Tuple[Dict[str, float], PriceCache]:
    """
    Prices for `ids`, fetching only the ones that are missing or stale in `cache`.

    returns:
    - (prices, new_cache) – prices has an entry for every id; new_cache is a fresh dict with
      the newly fetched prices stamped at `now`. The input cache is not modified.

    notes:
    - A failed fetch, a missing id or a zero price resolves to the last cached price, else 0.
    """
    now = now or datetime.now()
    new_cache: PriceCache = dict(cache)
    prices: Dict[str, float] = {}
    to_fetch: List[str] = []

    for pid in ids:
        entry = cache.get(pid)
        if is_stale(entry, now, ttl_s):
            to_fetch.append(pid)
        else:
            prices[pid] = entry[0]

    if not to_fetch:
        return prices, new_cache

    try:
        fetched = source.fetch(to_fetch)
    except Exception as e:
        log.warning("price.fetch.failed", ids=to_fetch, error=f"{type(e).__name__}: {e}")
        fetched = {}

    for pid in to_fetch:
        price = fetched.get(pid) or 0
        if price > 0:
            new_cache[pid] = (float(price), now)
            prices[pid] = float(price)
        else:
            cached = cache.get(pid)
            prices[pid] = cached[0] if cached else 0.0
    return prices, new_cache


def reprice_assets(assets: Sequence[Asset], prices: Mapping[str, float]) -> List[Asset]:
    """Copies of `assets` at the looked-up prices; a zero or missing price keeps the asset's own."""
    out: List[Asset] = []
    for a in assets:
        price = prices.get(a.id) or 0
        out.append(a.model_copy(update={"current_price": float(price)}) if price > 0 else a)
    return out


class HttpPriceSource(PriceSource):
    """
    Simple-price JSON API client (CoinGecko shape: {id: {currency: price}}).
    """

    def __init__(
        self,
        url: str = PRICE_API_URL,
        vs_currency: str = PRICE_VS_CURRENCY,
        timeout: float = 10.0,
        attempts: int = 2,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.vs_currency = vs_currency
        self.timeout = timeout
        self.attempts = attempts
        self.session = session

    def fetch(self, ids: Sequence[str]) -> Dict[str, float]:
        if not ids:
            return {}
        data = fetch_json(
            self.url,
            params={"ids": ",".join(ids), "vs_currencies": self.vs_currency},
            timeout=self.timeout,
            attempts=self.attempts,
            session=self.session,
        )
        out: Dict[str, float] = {}
        for pid in ids:
            price = (data.get(pid) or {}).get(self.vs_currency)
            if price:
                out[pid] = float(price)
        return out


class StaticPriceSource(PriceSource):
    """Fixed price table; useful offline and in tests."""

    def __init__(self, prices: Mapping[str, float]):
        self.prices = dict(prices)
        self.calls: List[List[str]] = []

    def fetch(self, ids: Sequence[str]) -> Dict[str, float]:
        self.calls.append(list(ids))
        return {pid: self.prices[pid] for pid in ids if pid in self.prices}
