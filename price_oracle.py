"""
price_oracle.py
================
Price Oracle Gateway.

Maps each asset to one Chainlink-style feed and refuses to hand out readings
older than the staleness bound, whatever the price itself is.

Also ships ``DefiLlamaPriceFeed``, a feed adapter backed by the public
DeFi Llama prices API, for running against live prices.
"""

from __future__ import annotations

import time
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

import requests

from chain import Chain
from config import API, HTTP, ORACLE, get_logger
from errors import InvalidPrice, NoFeedConfigured, StalePrice
from interfaces import IPriceFeed

logger = get_logger(__name__)


class PriceOracleGateway:
    """
    Parameters
    ----------
    chain           : Supplies the current block timestamp.
    staleness_bound : Maximum tolerated reading age in seconds.
    feeds           : Initial {asset: feed} bindings.
    """

    def __init__(
        self,
        chain: Chain,
        staleness_bound: int = ORACLE["staleness_seconds"],
        feeds: Optional[Dict[str, IPriceFeed]] = None,
    ) -> None:
        if staleness_bound < 0:
            raise ValueError("staleness_bound must be non-negative")
        self.chain = chain
        self.staleness_bound = staleness_bound
        self._feeds: Dict[str, IPriceFeed] = {}
        for asset, feed in (feeds or {}).items():
            self.set_feed(asset, feed)

    def set_feed(self, asset: str, feed: IPriceFeed) -> None:
        previous = self._feeds.get(asset)
        self._feeds[asset] = feed
        if previous is not None and previous is not feed:
            logger.info("Price feed for %s replaced", asset)

    def price_feed(self, asset: str) -> Optional[IPriceFeed]:
        return self._feeds.get(asset)

    # ── Chain participant ────────────────────────────────────────────────────

    def snapshot(self) -> Dict[str, IPriceFeed]:
        return dict(self._feeds)

    def restore(self, snapshot: Dict[str, IPriceFeed]) -> None:
        self._feeds = dict(snapshot)

    def get_price(self, asset: str) -> Tuple[int, int]:
        """Return (price, updated_at) for ``asset``."""
        feed = self._feeds.get(asset)
        if feed is None:
            raise NoFeedConfigured(asset)

        round_id, answer, _started_at, updated_at, answered_in_round = feed.latest_round_data()
        age = self.chain.timestamp - updated_at
        if updated_at > self.chain.timestamp:
            logger.warning("Price for %s stamped %ds in the future", asset, -age)
            raise InvalidPrice(asset, answer, f"reading stamped in the future ({updated_at})")
        if updated_at <= 0 or answered_in_round < round_id:
            # Incomplete round: treat as infinitely old
            raise StalePrice(asset, age, self.staleness_bound)
        if age > self.staleness_bound:
            logger.warning("Stale price for %s: %ds old (bound %ds)", asset, age, self.staleness_bound)
            raise StalePrice(asset, age, self.staleness_bound)
        if answer <= 0:
            raise InvalidPrice(asset, answer)
        return answer, updated_at


# ─────────────────────────────────────────────────────────────────────────────
# HTTP FEED ADAPTER
# ─────────────────────────────────────────────────────────────────────────────


def _get(
    url: str,
    params: Optional[Dict] = None,
    retries: int = HTTP["max_retries"],
) -> Tuple[Any, float]:
    """GET with retry + latency. Returns (data, latency_ms)."""
    headers = {"User-Agent": HTTP["user_agent"]}
    for attempt in range(1, retries + 1):
        try:
            t0 = time.perf_counter()
            resp = requests.get(
                url, params=params, headers=headers, timeout=HTTP["timeout"]
            )
            latency_ms = (time.perf_counter() - t0) * 1000
            resp.raise_for_status()
            return resp.json(), latency_ms
        except requests.exceptions.RequestException as exc:
            logger.warning("[%d/%d] Request error on %s: %s", attempt, retries, url, exc)
            if attempt == retries:
                raise
            time.sleep(HTTP["retry_delay"] * attempt)
    raise RuntimeError(f"All retries exhausted for {url}")


class DefiLlamaPriceFeed:
    """
    Feed answering from ``coins.llama.fi/prices/current``.

    ``coin_id`` uses DeFi Llama's key format, e.g. ``"coingecko:ethereum"`` or
    ``"ethereum:0xC02a...6Cc2"``.  The answer is scaled to ``decimals`` and the
    API's own timestamp is reported as ``updated_at``, so the gateway's
    staleness bound applies to it like any other feed.
    """

    def __init__(self, coin_id: str, decimals: int = ORACLE["decimals"]) -> None:
        self.coin_id = coin_id
        self.decimals = decimals

    def latest_round_data(self) -> Tuple[int, int, int, int, int]:
        data, latency = _get(API["defillama_prices"] + self.coin_id)
        logger.debug("DeFi Llama price for %s fetched in %.0fms", self.coin_id, latency)
        coin = (data.get("coins") or {}).get(self.coin_id)
        if not coin or coin.get("price") is None:
            raise InvalidPrice(self.coin_id, None, "no quote")

        answer = int(Decimal(str(coin["price"])).scaleb(self.decimals).to_integral_value())
        updated_at = int(coin.get("timestamp") or 0)
        return updated_at, answer, updated_at, updated_at, updated_at
