"""Tests for the Binance data provider."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

import httpx
import pytest

from crypto_dashboard.config import BinanceConfig
from crypto_dashboard.data_providers.base import Kline, klines_to_dataframe
from crypto_dashboard.data_providers.binance_client import (
    MAX_KLINES_LIMIT,
    BinanceClient,
    RotationPairs,
)
from crypto_dashboard.exceptions import DataProviderException, TransportError, UpstreamError

BASE_URL = "https://api.binance.com/api/v3"
BASE_TS = int(datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp() * 1000)
WEEK_MS = 7 * 24 * 3600 * 1000


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> BinanceClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)
    return BinanceClient(client=http)


def raw_ticker(symbol: str, last_price: str, change_percent: str) -> dict:
    return {
        "symbol": symbol,
        "priceChange": "12.5",
        "priceChangePercent": change_percent,
        "weightedAvgPrice": "100.1",
        "prevClosePrice": "99.0",
        "lastPrice": last_price,
        "bidPrice": "99.9",
        "askPrice": "100.2",
        "openPrice": "98.0",
        "highPrice": "101.0",
        "lowPrice": "97.5",
        "volume": "1234.5",
        "quoteVolume": "123456.7",
        "openTime": 1700000000000,
        "closeTime": 1700086399999,
        "firstId": 1,
        "lastId": 2,
        "count": 4321,
    }


def raw_kline(i: int, open_price: float, close_price: float, step_ms: int = 3600000) -> list:
    open_time = BASE_TS + i * step_ms
    return [
        open_time,
        str(open_price),
        str(max(open_price, close_price) + 1),
        str(min(open_price, close_price) - 1),
        str(close_price),
        "10.5",
        open_time + step_ms - 1,
        "1050.25",
        42,
        "5.25",
        "525.125",
        "0",
    ]


class TestBinanceClient:
    """Tests for BinanceClient class."""

    def test_provider_name(self) -> None:
        client = make_client(lambda request: httpx.Response(200, json={}))
        assert client.name == "binance"

    @pytest.mark.asyncio
    async def test_get_current_price(self) -> None:
        """Test the price endpoint and symbol parameter."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"symbol": "BTCUSDT", "price": "42000.50000000"})

        client = make_client(handler)
        price = await client.get_current_price("btcusdt")

        assert price == 42000.5
        assert seen[0].url.path == "/api/v3/ticker/price"
        assert seen[0].url.params["symbol"] == "BTCUSDT"

    @pytest.mark.asyncio
    async def test_get_current_price_empty_symbol(self) -> None:
        client = make_client(lambda request: httpx.Response(200, json={}))

        with pytest.raises(ValueError):
            await client.get_current_price("  ")

    @pytest.mark.asyncio
    async def test_upstream_error_surfaces_status(self) -> None:
        """Test non-2xx responses raise UpstreamError without retrying."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(451, json={"code": 0, "msg": "Service unavailable from a restricted location"})

        client = make_client(handler)

        with pytest.raises(UpstreamError) as exc_info:
            await client.get_current_price("BTCUSDT")

        assert exc_info.value.status_code == 451
        assert "restricted location" in exc_info.value.body
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(TransportError):
            await client.get_current_price("BTCUSDT")

    @pytest.mark.asyncio
    async def test_timeout_is_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler)

        with pytest.raises(TransportError):
            await client.get_24hr_stats("BTCUSDT")

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        client = make_client(lambda request: httpx.Response(200, text="<html>blocked</html>"))

        with pytest.raises(DataProviderException):
            await client.get_exchange_info()

    @pytest.mark.asyncio
    async def test_get_24hr_stats(self) -> None:
        """Test 24h fields parse to floats and timestamps/count stay integers."""
        client = make_client(
            lambda request: httpx.Response(200, json=raw_ticker("BTCUSDT", "100.5", "2.5"))
        )

        stats = await client.get_24hr_stats("BTCUSDT")

        assert stats.symbol == "BTCUSDT"
        assert stats.last_price == 100.5
        assert stats.price_change_percent == 2.5
        assert stats.weighted_avg_price == 100.1
        assert isinstance(stats.open_time, int)
        assert isinstance(stats.close_time, int)
        assert stats.count == 4321

    @pytest.mark.asyncio
    async def test_get_klines_parses_positional_fields(self) -> None:
        rows = [raw_kline(i, 100 + i, 101 + i) for i in range(3)]
        client = make_client(lambda request: httpx.Response(200, json=rows))

        klines = await client.get_klines("ETHBTC", "1h", limit=3)

        assert len(klines) == 3
        first = klines[0]
        assert first == Kline(
            open_time=BASE_TS,
            open=100.0,
            high=102.0,
            low=99.0,
            close=101.0,
            volume=10.5,
            close_time=BASE_TS + 3600000 - 1,
            quote_asset_volume=1050.25,
            number_of_trades=42,
            taker_buy_base_asset_volume=5.25,
            taker_buy_quote_asset_volume=525.125,
        )
        assert [k.open_time for k in klines] == sorted(k.open_time for k in klines)

    @pytest.mark.asyncio
    async def test_get_klines_clamps_limit(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        client = make_client(handler)
        await client.get_klines("BTCUSDT", "1d", limit=5000)

        assert seen[0].url.params["limit"] == str(MAX_KLINES_LIMIT)

    @pytest.mark.asyncio
    async def test_get_klines_rejects_unknown_interval(self) -> None:
        client = make_client(lambda request: httpx.Response(200, json=[]))

        with pytest.raises(ValueError):
            await client.get_klines("BTCUSDT", "7h")

    @pytest.mark.asyncio
    async def test_get_historical_klines_sends_window(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[raw_kline(0, 1, 2)])

        client = make_client(handler)
        klines = await client.get_historical_klines("BTCUSDT", "1d", BASE_TS, BASE_TS + WEEK_MS)

        params = seen[0].url.params
        assert params["startTime"] == str(BASE_TS)
        assert params["endTime"] == str(BASE_TS + WEEK_MS)
        assert params["limit"] == "1000"
        assert len(klines) == 1

    @pytest.mark.asyncio
    async def test_get_order_book(self) -> None:
        payload = {
            "lastUpdateId": 1027024,
            "bids": [["4.00000000", "431.00000000"]],
            "asks": [["4.00000200", "12.00000000"], ["4.1", "1.5"]],
        }
        client = make_client(lambda request: httpx.Response(200, json=payload))

        book = await client.get_order_book("BNBBTC", limit=5)

        assert book.last_update_id == 1027024
        assert book.bids[0].price == 4.0
        assert book.bids[0].quantity == 431.0
        assert len(book.asks) == 2

    @pytest.mark.asyncio
    async def test_get_rotation_pairs_passes_eth_btc_through(self) -> None:
        """Test eth_btc_ratio is the ETHBTC last price, not recomputed."""
        tickers = {
            "BTCUSDT": raw_ticker("BTCUSDT", "64000.00", "1.5"),
            "ETHUSDT": raw_ticker("ETHUSDT", "3500.00", "-0.5"),
            "ETHBTC": raw_ticker("ETHBTC", "0.05432100", "-2.0"),
        }

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=tickers[request.url.params["symbol"]])

        client = make_client(handler)
        pairs = await client.get_rotation_pairs()

        assert isinstance(pairs, RotationPairs)
        assert pairs.eth_btc_ratio == float("0.05432100")
        assert pairs.btc_price == 64000.0
        assert pairs.eth_price == 3500.0
        assert pairs.btc_24h_change == 1.5
        assert pairs.eth_24h_change == -0.5
        assert pairs.eth_btc_24h_change == -2.0

    @pytest.mark.asyncio
    async def test_get_rotation_pairs_fails_atomically(self) -> None:
        """Test one failing sub-call fails the whole rotation snapshot."""
        def handler(request: httpx.Request) -> httpx.Response:
            symbol = request.url.params["symbol"]
            if symbol == "ETHBTC":
                return httpx.Response(500, json={"msg": "internal"})
            return httpx.Response(200, json=raw_ticker(symbol, "1.0", "0.0"))

        client = make_client(handler)

        with pytest.raises(UpstreamError):
            await client.get_rotation_pairs()

    @pytest.mark.asyncio
    async def test_get_weekly_candles(self) -> None:
        rows = [
            raw_kline(0, 100, 90, WEEK_MS),
            raw_kline(1, 90, 95, WEEK_MS),
            raw_kline(2, 95, 99, WEEK_MS),
        ]
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=rows)

        client = make_client(handler)
        weekly = await client.get_weekly_candles("ETHBTC", weeks=3)

        assert seen[0].url.params["interval"] == "1w"
        assert len(weekly.candles) == 3
        assert weekly.trend.colors == ["red", "green", "green"]
        assert weekly.trend.consecutive_count == 2
        assert weekly.trend.trend == "bullish"

    def test_calculate_indicators_from_klines(self) -> None:
        klines = [Kline.from_raw(raw_kline(i, 100 + i, 101 + i)) for i in range(20)]

        snapshot = BinanceClient.calculate_indicators(klines)

        assert snapshot.rsi == 100.0
        assert snapshot.sma20 == pytest.approx(sum(101 + i for i in range(20)) / 20)
        assert snapshot.sma50 is None

    @pytest.mark.asyncio
    async def test_close_leaves_injected_client_open(self) -> None:
        http = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
            base_url=BASE_URL,
        )
        client = BinanceClient(client=http)

        await client.close()

        assert not http.is_closed
        await http.aclose()


class TestKlineHelpers:
    def test_from_raw_too_short(self) -> None:
        with pytest.raises(ValueError):
            Kline.from_raw([1, "2", "3"])

    def test_klines_to_dataframe(self) -> None:
        klines = [Kline.from_raw(raw_kline(i, 1, 2)) for i in (2, 0, 1)]

        df = klines_to_dataframe(klines)

        assert list(df.columns) == ["open", "high", "low", "close", "volume"]
        assert df.index.name == "datetime"
        assert df.index.is_monotonic_increasing
        assert len(df) == 3

    def test_klines_to_dataframe_empty(self) -> None:
        df = klines_to_dataframe([])

        assert df.empty
        assert list(df.columns) == ["open", "high", "low", "close", "volume"]


class TestBinanceFromConfig:
    def test_from_config_builds_owned_client(self) -> None:
        cfg = BinanceConfig(base_url="https://api.binance.us/api/v3/", timeout_seconds=3.0)

        client = BinanceClient.from_config(cfg)

        assert str(client._client.base_url).startswith("https://api.binance.us/api/v3")
        assert client._client.timeout.read == 3.0
        assert client._client.headers["Accept"] == "application/json"
        assert "Content-Type" not in client._client.headers
