"""CoinGecko v3 data provider for market-cap and dominance data.

The free tier allows roughly 10-30 calls per minute, so every client instance
spaces its own calls by ``min_call_interval`` seconds (2 s by default).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

import httpx

from ..config import CoinGeckoConfig
from ..indicators import total3_market_cap
from ..rate_limiter import RateLimiter
from .base import DEFAULT_TIMEOUT_SECONDS, BaseDataProvider, OHLCCandle

logger = logging.getLogger(__name__)

DEFAULT_MIN_CALL_INTERVAL = 2.0


@dataclass
class GlobalMarketData:
    total_market_cap: float
    btc_dominance: float
    eth_dominance: float
    total_volume: float
    market_cap_change_24h: float


@dataclass
class CoinMarket:
    id: str
    symbol: str
    name: str
    current_price: float | None
    market_cap: float | None
    market_cap_rank: int | None
    price_change_24h: float | None
    price_change_7d: float | None
    price_change_30d: float | None


@dataclass
class HistoricalMarketData:
    """Series of [timestamp_ms, value] pairs."""

    prices: list[list[float]]
    market_caps: list[list[float]]
    volumes: list[list[float]]


@dataclass
class RotationMetrics:
    """Market structure ratios for the BTC -> ETH -> alts rotation view."""

    timestamp: datetime
    btc_dominance: float
    eth_btc_ratio: float
    total3_eth_ratio: float | None
    total3_btc_ratio: float | None
    btc_price: float
    eth_price: float
    total_market_cap: float
    total3_market_cap: float


class CoinGeckoClient(BaseDataProvider):
    """CoinGecko market aggregator client with per-instance throttling.

    Example:
        client = CoinGeckoClient()
        metrics = await client.get_rotation_metrics()
        await client.close()
    """

    default_base_url = "https://api.coingecko.com/api/v3"

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        min_call_interval: float = DEFAULT_MIN_CALL_INTERVAL,
        rate_limiter: RateLimiter | None = None,
    ):
        """Initialize CoinGecko client.

        Args:
            client: Pre-built HTTP client
            base_url: API base URL used when no client is injected
            timeout: Request timeout in seconds
            min_call_interval: Minimum spacing between calls in seconds
            rate_limiter: Limiter to share; overrides min_call_interval
        """
        super().__init__(
            client=client,
            base_url=base_url,
            timeout=timeout,
            rate_limiter=rate_limiter or RateLimiter(min_call_interval),
        )

    @classmethod
    def from_config(cls, cfg: CoinGeckoConfig, client: httpx.AsyncClient | None = None) -> "CoinGeckoClient":
        return cls(
            client=client,
            base_url=cfg.base_url,
            timeout=cfg.timeout_seconds,
            min_call_interval=cfg.min_call_interval_seconds,
        )

    @property
    def name(self) -> str:
        return "coingecko"

    async def get_global_data(self) -> GlobalMarketData:
        """Total market cap, dominance and 24h market cap change."""
        data = (await self._get("/global"))["data"]
        return GlobalMarketData(
            total_market_cap=float(data["total_market_cap"]["usd"]),
            btc_dominance=float(data["market_cap_percentage"]["btc"]),
            eth_dominance=float(data["market_cap_percentage"]["eth"]),
            total_volume=float(data["total_volume"]["usd"]),
            market_cap_change_24h=float(data["market_cap_change_percentage_24h_usd"]),
        )

    async def get_current_prices(self, coin_ids: Iterable[str] = ("bitcoin", "ethereum")) -> dict[str, dict[str, float]]:
        """Raw simple/price payload keyed by coin id (usd, usd_market_cap, usd_24h_vol, usd_24h_change)."""
        return await self._get(
            "/simple/price",
            {
                "ids": ",".join(coin_ids),
                "vs_currencies": "usd",
                "include_market_cap": "true",
                "include_24hr_vol": "true",
                "include_24hr_change": "true",
            },
        )

    async def get_historical_data(self, coin_id: str, days: int = 30) -> HistoricalMarketData:
        data = await self._get(
            f"/coins/{coin_id}/market_chart",
            {
                "vs_currency": "usd",
                "days": days,
                "interval": "daily" if days > 90 else "hourly",
            },
        )
        return HistoricalMarketData(
            prices=data.get("prices", []),
            market_caps=data.get("market_caps", []),
            volumes=data.get("total_volumes", []),
        )

    async def get_ohlc_data(self, coin_id: str, days: int = 30) -> list[OHLCCandle]:
        data = await self._get(f"/coins/{coin_id}/ohlc", {"vs_currency": "usd", "days": days})
        # Format: [timestamp, open, high, low, close]
        return [
            OHLCCandle(
                timestamp=int(row[0]),
                open=float(row[1]),
                high=float(row[2]),
                low=float(row[3]),
                close=float(row[4]),
            )
            for row in data
        ]

    async def get_top_coins(self, limit: int = 100) -> list[CoinMarket]:
        data = await self._get(
            "/coins/markets",
            {
                "vs_currency": "usd",
                "order": "market_cap_desc",
                "per_page": limit,
                "page": 1,
                "sparkline": "false",
                "price_change_percentage": "24h,7d,30d",
            },
        )
        return [
            CoinMarket(
                id=coin["id"],
                symbol=coin.get("symbol", ""),
                name=coin.get("name", ""),
                current_price=coin.get("current_price"),
                market_cap=coin.get("market_cap"),
                market_cap_rank=coin.get("market_cap_rank"),
                price_change_24h=coin.get("price_change_percentage_24h"),
                price_change_7d=coin.get("price_change_percentage_7d_in_currency"),
                price_change_30d=coin.get("price_change_percentage_30d_in_currency"),
            )
            for coin in data
        ]

    async def get_rotation_metrics(self) -> RotationMetrics:
        """Combine global data, BTC/ETH prices and top 100 coins into rotation ratios.

        Calls run one after another through the throttle.
        """
        global_data = await self.get_global_data()
        prices = await self.get_current_prices(["bitcoin", "ethereum"])
        top_coins = await self.get_top_coins(100)

        total3 = total3_market_cap({coin.id: coin.market_cap for coin in top_coins})

        btc_price = float(prices["bitcoin"]["usd"])
        eth_price = float(prices["ethereum"]["usd"])
        btc_market_cap = prices["bitcoin"].get("usd_market_cap")
        eth_market_cap = prices["ethereum"].get("usd_market_cap")

        return RotationMetrics(
            timestamp=datetime.now(timezone.utc),
            btc_dominance=global_data.btc_dominance,
            eth_btc_ratio=eth_price / btc_price,
            total3_eth_ratio=total3 / eth_market_cap if eth_market_cap else None,
            total3_btc_ratio=total3 / btc_market_cap if btc_market_cap else None,
            btc_price=btc_price,
            eth_price=eth_price,
            total_market_cap=global_data.total_market_cap,
            total3_market_cap=total3,
        )
