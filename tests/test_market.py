"""Tests for channelscope.market — Binance client with mocked HTTP responses."""

import httpx
import pytest

from channelscope.config import Config
from channelscope.market import binance_client
from channelscope.market.binance_client import BinanceClient
from channelscope.strategy.models import Candle


def _make_config() -> Config:
    return Config(
        binance_base_url="https://api.binance.com",
        default_symbol="BTCUSDT",
        default_interval="1h",
        candle_limit=1000,
        sr_pivot_period=10,
        sr_channel_width_pct=5.0,
        sr_min_strength=1.0,
        sr_max_channels=6,
        sr_loopback_period=290,
        sr_source="High/Low",
        log_level="INFO",
        api_port=8080,
    )


# ── Mock Binance responses ──────────────────────────────────────────────

MOCK_KLINES_RESPONSE = [
    [
        1736467200000, "94500.10", "95100.00", "94200.55", "94900.00", "1234.5",
        1736470799999, "116789012.34", 10234, "600.1", "56789012.34", "0",
    ],
    [
        1736470800000, "94900.00", "95300.20", "94850.00", "95250.75", "987.25",
        1736474399999, "93912345.67", 8123, "500.0", "47000000.00", "0",
    ],
]


# ── Tests ────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_parse_klines(monkeypatch):
    """Candle fields populated correctly from mock kline rows."""
    client = BinanceClient(_make_config())
    seen: dict = {}

    async def _mock_get(self, url, *, params=None, timeout=None):
        seen["url"] = url
        seen["params"] = params
        return httpx.Response(200, json=MOCK_KLINES_RESPONSE, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    candles = await client.fetch_candles("BTCUSDT", "1h", limit=2, end_time=1736474399999)
    assert seen["url"] == "https://api.binance.com/api/v3/klines"
    assert seen["params"] == {
        "symbol": "BTCUSDT",
        "interval": "1h",
        "limit": 2,
        "endTime": 1736474399999,
    }

    assert len(candles) == 2
    c = candles[0]
    assert isinstance(c, Candle)
    assert c.timestamp == 1736467200000
    assert c.open == pytest.approx(94500.10)
    assert c.high == pytest.approx(95100.00)
    assert c.low == pytest.approx(94200.55)
    assert c.close == pytest.approx(94900.00)
    assert c.volume == pytest.approx(1234.5)
    assert c.turnover == pytest.approx(116789012.34)
    assert candles[1].timestamp > c.timestamp


@pytest.mark.asyncio
async def test_limit_clamped_and_end_time_omitted(monkeypatch):
    client = BinanceClient(_make_config())
    seen: dict = {}

    async def _mock_get(self, url, *, params=None, timeout=None):
        seen["params"] = params
        return httpx.Response(200, json=[], request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    candles = await client.fetch_candles("ETHUSDT", "5m", limit=5000)
    assert candles == []
    assert seen["params"]["limit"] == 1000
    assert "endTime" not in seen["params"]


@pytest.mark.asyncio
async def test_retries_on_rate_limit(monkeypatch):
    """429 is retried; the next 200 is returned."""
    monkeypatch.setattr(binance_client, "_RETRY_BASE_DELAY", 0.0)
    client = BinanceClient(_make_config())
    calls = {"n": 0}

    async def _mock_get(self, url, *, params=None, timeout=None):
        calls["n"] += 1
        status = 429 if calls["n"] == 1 else 200
        return httpx.Response(status, json=MOCK_KLINES_RESPONSE, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    candles = await client.fetch_candles("BTCUSDT", "1h")
    assert calls["n"] == 2
    assert len(candles) == 2


@pytest.mark.asyncio
async def test_retries_exhausted_raises(monkeypatch):
    monkeypatch.setattr(binance_client, "_RETRY_BASE_DELAY", 0.0)
    client = BinanceClient(_make_config())

    async def _mock_get(self, url, *, params=None, timeout=None):
        return httpx.Response(503, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(httpx.HTTPStatusError):
        await client.fetch_candles("BTCUSDT", "1h")


@pytest.mark.asyncio
async def test_transport_error_raises_after_retries(monkeypatch):
    monkeypatch.setattr(binance_client, "_RETRY_BASE_DELAY", 0.0)
    client = BinanceClient(_make_config())
    calls = {"n": 0}

    async def _mock_get(self, url, *, params=None, timeout=None):
        calls["n"] += 1
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(httpx.ConnectError):
        await client.fetch_candles("BTCUSDT", "1h")
    assert calls["n"] == 3


@pytest.mark.asyncio
async def test_client_error_not_retried(monkeypatch):
    monkeypatch.setattr(binance_client, "_RETRY_BASE_DELAY", 0.0)
    client = BinanceClient(_make_config())
    calls = {"n": 0}

    async def _mock_get(self, url, *, params=None, timeout=None):
        calls["n"] += 1
        return httpx.Response(400, json={"code": -1121, "msg": "Invalid symbol."},
                              request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(httpx.HTTPStatusError):
        await client.fetch_candles("NOPE", "1h")
    assert calls["n"] == 1


@pytest.mark.asyncio
async def test_unknown_interval():
    client = BinanceClient(_make_config())
    with pytest.raises(ValueError):
        await client.fetch_candles("BTCUSDT", "2h")


def _record_sleeps(monkeypatch) -> list[float]:
    delays: list[float] = []

    async def _fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr(binance_client.asyncio, "sleep", _fake_sleep)
    return delays


def _rate_limited_then_ok(status: int, headers: dict):
    calls = {"n": 0}

    async def _mock_get(self, url, *, params=None, timeout=None):
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(status, headers=headers, request=httpx.Request("GET", url))
        return httpx.Response(200, json=MOCK_KLINES_RESPONSE, request=httpx.Request("GET", url))

    return _mock_get, calls


@pytest.mark.asyncio
async def test_retry_after_header_sets_delay(monkeypatch):
    delays = _record_sleeps(monkeypatch)
    mock_get, calls = _rate_limited_then_ok(429, {"Retry-After": "7"})
    monkeypatch.setattr(httpx.AsyncClient, "get", mock_get)

    candles = await BinanceClient(_make_config()).fetch_candles("BTCUSDT", "1h")
    assert len(candles) == 2
    assert calls["n"] == 2
    assert delays == [7.0]


@pytest.mark.asyncio
async def test_ip_ban_is_retried_with_retry_after(monkeypatch):
    delays = _record_sleeps(monkeypatch)
    mock_get, calls = _rate_limited_then_ok(418, {"Retry-After": "3"})
    monkeypatch.setattr(httpx.AsyncClient, "get", mock_get)

    await BinanceClient(_make_config()).fetch_candles("BTCUSDT", "1h")
    assert calls["n"] == 2
    assert delays == [3.0]


@pytest.mark.asyncio
async def test_rate_limit_without_header_backs_off(monkeypatch):
    delays = _record_sleeps(monkeypatch)
    mock_get, _ = _rate_limited_then_ok(429, {})
    monkeypatch.setattr(httpx.AsyncClient, "get", mock_get)

    await BinanceClient(_make_config()).fetch_candles("BTCUSDT", "1h")
    assert delays == [2.0]


@pytest.mark.asyncio
async def test_long_ban_is_not_waited_out(monkeypatch):
    delays = _record_sleeps(monkeypatch)
    mock_get, calls = _rate_limited_then_ok(418, {"Retry-After": "7200"})
    monkeypatch.setattr(httpx.AsyncClient, "get", mock_get)

    with pytest.raises(httpx.HTTPStatusError) as exc_info:
        await BinanceClient(_make_config()).fetch_candles("BTCUSDT", "1h")
    assert exc_info.value.response.status_code == 418
    assert calls["n"] == 1
    assert delays == []


@pytest.mark.asyncio
async def test_no_sleep_after_final_attempt(monkeypatch):
    delays = _record_sleeps(monkeypatch)

    async def _mock_get(self, url, *, params=None, timeout=None):
        return httpx.Response(502, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(httpx.HTTPStatusError):
        await BinanceClient(_make_config()).fetch_candles("BTCUSDT", "1h")
    assert delays == [2.0, 4.0]
