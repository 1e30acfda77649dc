"""Derived metrics over price series: RSI, moving averages, candle trend, dominance."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

import pandas as pd

RSI_PERIOD = 14
GREEN = "green"
RED = "red"


@dataclass
class IndicatorSnapshot:
    """Technical indicators computed from a closing price series."""

    rsi: Optional[float]
    sma20: Optional[float]
    sma50: Optional[float]

    def to_dict(self) -> dict:
        return {"rsi": self.rsi, "sma20": self.sma20, "sma50": self.sma50}


@dataclass
class CandleTrend:
    """Colour run ending at the most recent candle.

    Attributes:
        colors: Candle colours, oldest first
        latest_color: Colour of the most recent candle (None when no candles)
        consecutive_count: Length of the same-colour run ending at the latest candle
        trend: "bullish", "bearish" or "neutral"
    """

    colors: List[str] = field(default_factory=list)
    latest_color: Optional[str] = None
    consecutive_count: int = 0
    trend: str = "neutral"


def _to_series(closes: Iterable[float]) -> pd.Series:
    return pd.Series(list(closes), dtype="float64")


def calculate_rsi(closes: Sequence[float], period: int = RSI_PERIOD) -> Optional[float]:
    """
    RSI from the initial Wilder averages of the first `period` price changes.

    The averages are not smoothed further over later points. Returns None when
    fewer than period + 1 closes are available and 100.0 when there are no losses.
    """
    if period <= 0:
        raise ValueError("period must be positive")
    if len(closes) < period + 1:
        return None

    deltas = _to_series(closes).iloc[: period + 1].diff().iloc[1:]
    avg_gain = float(deltas.clip(lower=0).sum()) / period
    avg_loss = float((-deltas).clip(lower=0).sum()) / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def simple_moving_average(closes: Sequence[float], window: int) -> Optional[float]:
    """Arithmetic mean of the last `window` closes, None when the series is shorter."""
    if window <= 0:
        raise ValueError("window must be positive")
    if len(closes) < window:
        return None
    return float(_to_series(closes).rolling(window).mean().iloc[-1])


def calculate_indicators(closes: Sequence[float]) -> IndicatorSnapshot:
    """
    Expects closing prices ordered oldest to newest.
    Returns RSI(14), SMA(20) and SMA(50); each is None when there is not enough data.
    """
    closes = [float(c) for c in closes]
    return IndicatorSnapshot(
        rsi=calculate_rsi(closes, RSI_PERIOD),
        sma20=simple_moving_average(closes, 20),
        sma50=simple_moving_average(closes, 50),
    )


def candle_color(open_price: float, close_price: float) -> str:
    return GREEN if close_price > open_price else RED


def classify_candle_colors(colors: Sequence[str]) -> CandleTrend:
    """Count the same-colour run ending at the latest candle and derive the trend."""
    colors = list(colors)
    if not colors:
        return CandleTrend()

    latest = colors[-1]
    consecutive = 1
    for color in reversed(colors[:-1]):
        if color != latest:
            break
        consecutive += 1

    if consecutive >= 2:
        trend = "bullish" if latest == GREEN else "bearish"
    else:
        trend = "neutral"

    return CandleTrend(
        colors=colors,
        latest_color=latest,
        consecutive_count=consecutive,
        trend=trend,
    )


def weekly_candle_trend(candles: Iterable) -> CandleTrend:
    """Classify candles (objects with ``open`` and ``close``) oldest first."""
    return classify_candle_colors([candle_color(c.open, c.close) for c in candles])


def dominance_percent(part_market_cap: float, total_market_cap: float) -> Optional[float]:
    """Share of total market capitalization, as a percentage."""
    if total_market_cap <= 0:
        return None
    return part_market_cap / total_market_cap * 100


def total3_market_cap(market_caps: dict[str, float], excluded: Iterable[str] = ("bitcoin", "ethereum")) -> float:
    """Sum of market caps excluding BTC and ETH (the TOTAL3 index)."""
    excluded = set(excluded)
    return float(sum(cap or 0.0 for coin_id, cap in market_caps.items() if coin_id not in excluded))
