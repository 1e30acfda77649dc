"""Base classes and record types for market data providers.

This module defines the shared HTTP plumbing for all market data clients.
Clients receive an ``httpx.AsyncClient`` from the caller (or build their own
from a base URL), issue one GET per logical request and surface transport and
upstream errors verbatim instead of retrying.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any

import httpx
import pandas as pd

from ..exceptions import DataProviderException, TransportError, UpstreamError
from ..rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_HEADERS = {"Accept": "application/json"}


@dataclass
class Kline:
    """Exchange candlestick in the upstream positional field order.

    Attributes:
        open_time: Candle open time (ms since epoch)
        open: Opening price
        high: Highest price
        low: Lowest price
        close: Closing price
        volume: Base asset volume
        close_time: Candle close time (ms since epoch)
        quote_asset_volume: Quote asset volume
        number_of_trades: Trade count
        taker_buy_base_asset_volume: Taker buy base asset volume
        taker_buy_quote_asset_volume: Taker buy quote asset volume
    """

    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    close_time: int
    quote_asset_volume: float
    number_of_trades: int
    taker_buy_base_asset_volume: float
    taker_buy_quote_asset_volume: float

    @classmethod
    def from_raw(cls, raw: list) -> "Kline":
        """Parse the 11 leading positional fields of a raw kline row."""
        if len(raw) < 11:
            raise ValueError(f"Kline row has {len(raw)} fields, expected at least 11")
        return cls(
            open_time=int(raw[0]),
            open=float(raw[1]),
            high=float(raw[2]),
            low=float(raw[3]),
            close=float(raw[4]),
            volume=float(raw[5]),
            close_time=int(raw[6]),
            quote_asset_volume=float(raw[7]),
            number_of_trades=int(raw[8]),
            taker_buy_base_asset_volume=float(raw[9]),
            taker_buy_quote_asset_volume=float(raw[10]),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class OHLCCandle:
    """Aggregator OHLC candle (no volume)."""

    timestamp: int
    open: float
    high: float
    low: float
    close: float


class BaseDataProvider(ABC):
    """Abstract base class for HTTP market data providers.

    Provides request plumbing, error translation and optional rate limiting.
    The HTTP client is owned by the caller when injected; otherwise the
    provider builds one and closes it in ``close()``.
    """

    default_base_url: str = ""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        rate_limiter: RateLimiter | None = None,
    ):
        """Initialize base provider.

        Args:
            client: Pre-built HTTP client; its base_url must point at the provider API
            base_url: API base URL used when no client is injected
            timeout: Request timeout in seconds used when no client is injected
            rate_limiter: Optional limiter awaited before every request
        """
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                base_url=(base_url or self.default_base_url).rstrip("/"),
                timeout=timeout,
                headers=DEFAULT_HEADERS,
            )
        self._client = client
        self._rate_limiter = rate_limiter

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @property
    def rate_limiter(self) -> RateLimiter | None:
        return self._rate_limiter

    async def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """Issue one GET and return the decoded JSON body.

        Raises:
            TransportError: On network failures and timeouts
            UpstreamError: On non-2xx responses
        """
        if self._rate_limiter is not None:
            await self._rate_limiter.acquire()

        try:
            response = await self._client.get(endpoint, params=params)
        except httpx.TimeoutException as e:
            logger.error(
                f"{self.name} API timeout for {endpoint}: {e}",
                extra={"event_type": "provider_timeout", "provider": self.name, "endpoint": endpoint},
            )
            raise TransportError(f"Timeout calling {self.name} {endpoint}: {e}") from e
        except httpx.TransportError as e:
            logger.error(
                f"{self.name} API transport error for {endpoint}: {e}",
                extra={"event_type": "provider_transport_error", "provider": self.name, "endpoint": endpoint},
            )
            raise TransportError(f"Transport error calling {self.name} {endpoint}: {e}") from e

        if not response.is_success:
            logger.error(
                f"{self.name} API error for {endpoint}: HTTP {response.status_code}",
                extra={
                    "event_type": "provider_upstream_error",
                    "provider": self.name,
                    "endpoint": endpoint,
                    "status_code": response.status_code,
                },
            )
            raise UpstreamError(
                response.status_code,
                f"{self.name} {endpoint} returned HTTP {response.status_code}",
                body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise DataProviderException(f"{self.name} {endpoint} returned invalid JSON: {e}") from e

    async def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def klines_to_dataframe(klines: list[Kline]) -> pd.DataFrame:
    """Convert klines to a DataFrame indexed by open time.

    Args:
        klines: Kline records, any order

    Returns:
        DataFrame with datetime index and OHLCV columns
    """
    columns = ["open", "high", "low", "close", "volume"]
    if not klines:
        return pd.DataFrame(columns=columns).set_index(
            pd.DatetimeIndex([], name="datetime", tz="UTC")
        )

    df = pd.DataFrame([k.to_dict() for k in klines])
    df["datetime"] = pd.to_datetime(df["open_time"], unit="ms", utc=True)
    df.set_index("datetime", inplace=True)
    df.sort_index(inplace=True)
    return df[columns]
