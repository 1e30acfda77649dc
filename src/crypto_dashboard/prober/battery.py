"""The fixed battery of provider/endpoint probes."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple, Union

ParamsSource = Union[Dict[str, Any], Callable[[], Dict[str, Any]]]

COINGECKO = "CoinGecko"
BINANCE = "Binance"
CRYPTOCOMPARE = "CryptoCompare"
COINCAP = "CoinCap"
YAHOO_FINANCE = "YahooFinance"
ALPHA_VANTAGE = "AlphaVantage"
COINMARKETCAP = "CoinMarketCap"

PROVIDERS: Tuple[str, ...] = (
    COINGECKO,
    BINANCE,
    CRYPTOCOMPARE,
    COINCAP,
    YAHOO_FINANCE,
    ALPHA_VANTAGE,
    COINMARKETCAP,
)

_WEEK_MS = 7 * 24 * 60 * 60 * 1000


@dataclass(frozen=True)
class ProbeSpec:
    """One probe definition.

    Attributes:
        provider: Provider identifier
        endpoint_name: Logical name of the probed operation
        url: Absolute endpoint URL
        params: Query parameters, or a zero-arg callable evaluated at probe time
        headers: Extra request headers
    """

    provider: str
    endpoint_name: str
    url: str
    params: ParamsSource = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)

    def resolve_params(self) -> Dict[str, Any]:
        if callable(self.params):
            return self.params()
        return dict(self.params)


def _coincap_week_window() -> Dict[str, Any]:
    now_ms = int(time.time() * 1000)
    return {"interval": "d1", "start": now_ms - _WEEK_MS, "end": now_ms}


DEFAULT_BATTERY: List[ProbeSpec] = [
    # CoinGecko
    ProbeSpec(COINGECKO, "global", "https://api.coingecko.com/api/v3/global"),
    ProbeSpec(
        COINGECKO,
        "prices",
        "https://api.coingecko.com/api/v3/simple/price",
        {
            "ids": "bitcoin,ethereum",
            "vs_currencies": "usd",
            "include_market_cap": "true",
            "include_24hr_change": "true",
        },
    ),
    ProbeSpec(
        COINGECKO,
        "markets",
        "https://api.coingecko.com/api/v3/coins/markets",
        {"vs_currency": "usd", "order": "market_cap_desc", "per_page": 10, "page": 1},
    ),
    ProbeSpec(
        COINGECKO,
        "bitcoin_history",
        "https://api.coingecko.com/api/v3/coins/bitcoin/market_chart",
        {"vs_currency": "usd", "days": 7},
    ),
    # Binance
    ProbeSpec(BINANCE, "ticker", "https://api.binance.com/api/v3/ticker/price", {"symbol": "BTCUSDT"}),
    ProbeSpec(
        BINANCE,
        "klines",
        "https://api.binance.com/api/v3/klines",
        {"symbol": "ETHBTC", "interval": "1d", "limit": 7},
    ),
    ProbeSpec(BINANCE, "24hr_ticker", "https://api.binance.com/api/v3/ticker/24hr", {"symbol": "BTCUSDT"}),
    # CryptoCompare
    ProbeSpec(
        CRYPTOCOMPARE,
        "price",
        "https://min-api.cryptocompare.com/data/price",
        {"fsym": "BTC", "tsyms": "USD,ETH"},
    ),
    ProbeSpec(
        CRYPTOCOMPARE,
        "daily_history",
        "https://min-api.cryptocompare.com/data/v2/histoday",
        {"fsym": "BTC", "tsym": "USD", "limit": 7},
    ),
    ProbeSpec(
        CRYPTOCOMPARE,
        "top_coins",
        "https://min-api.cryptocompare.com/data/top/mktcapfull",
        {"limit": 10, "tsym": "USD"},
    ),
    # CoinCap
    ProbeSpec(COINCAP, "assets", "https://api.coincap.io/v2/assets", {"limit": 10}),
    ProbeSpec(COINCAP, "bitcoin", "https://api.coincap.io/v2/assets/bitcoin"),
    ProbeSpec(
        COINCAP,
        "bitcoin_history",
        "https://api.coincap.io/v2/assets/bitcoin/history",
        _coincap_week_window,
    ),
    # Yahoo Finance has no official API; the chart endpoint is the closest stable one
    ProbeSpec(
        YAHOO_FINANCE,
        "quote",
        "https://query1.finance.yahoo.com/v8/finance/chart/BTC-USD",
        {"interval": "1d", "range": "7d"},
    ),
    # Alpha Vantage, probed without an API key
    ProbeSpec(
        ALPHA_VANTAGE,
        "crypto_daily",
        "https://www.alphavantage.co/query",
        {"function": "DIGITAL_CURRENCY_DAILY", "symbol": "BTC", "market": "USD"},
    ),
    # CoinMarketCap
    ProbeSpec(
        COINMARKETCAP,
        "listings",
        "https://pro-api.coinmarketcap.com/v1/cryptocurrency/listings/latest",
        {"limit": 10},
    ),
    ProbeSpec(
        COINMARKETCAP,
        "global_metrics",
        "https://api.coinmarketcap.com/data-api/v3/global-metrics/quotes/latest",
    ),
]
