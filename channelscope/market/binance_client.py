"""Binance public REST API async client.

Fetches kline (candlestick) history for the simulator.  No auth needed.
"""

import asyncio
import logging
from typing import Optional

import httpx

from channelscope.config import Config
from channelscope.market.timeframes import Timeframe
from channelscope.strategy.models import Candle

logger = logging.getLogger("channelscope")

# Retry settings
_MAX_ATTEMPTS = 3
_RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt
_SERVER_ERROR_CODES = {500, 502, 503, 504}
# 429 = request weight exceeded, 418 = IP auto-banned after ignoring 429s
_RATE_LIMIT_CODES = {429, 418}
# Longer Retry-After values (418 bans run minutes to days) are not waited out
_MAX_RETRY_AFTER = 60.0

# Binance caps /klines at 1000 rows per request
MAX_KLINES = 1000


def _retry_after(resp: httpx.Response) -> Optional[float]:
    """Seconds from the ``Retry-After`` header, or ``None`` if absent/bad."""
    raw = resp.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return max(float(raw), 0.0)
    except ValueError:
        return None


class BinanceClient:
    """Async client wrapping the Binance spot klines endpoint."""

    def __init__(self, config: Config) -> None:
        self._config = config
        self._base_url = config.binance_base_url

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _get_with_retry(self, url: str, params: dict) -> httpx.Response:
        """GET *url*, retrying rate limits, 5xx responses and transport errors.

        Rate-limited responses (429/418) wait for the server's
        ``Retry-After`` when it sends one, otherwise they back off
        exponentially like server errors.  A ban longer than
        ``_MAX_RETRY_AFTER`` is raised at once.  Other 4xx responses are
        raised immediately.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(_MAX_ATTEMPTS):
            backoff = _RETRY_BASE_DELAY * (2 ** attempt)
            try:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(url, params=params, timeout=30.0)
            except httpx.TransportError as exc:
                logger.warning(
                    "Binance GET %s transport error (%s), attempt %d/%d",
                    url, exc, attempt + 1, _MAX_ATTEMPTS,
                )
                last_exc = exc
                delay = backoff
            else:
                status = resp.status_code
                if status not in _RATE_LIMIT_CODES and status not in _SERVER_ERROR_CODES:
                    resp.raise_for_status()
                    return resp

                last_exc = httpx.HTTPStatusError(
                    f"Binance returned {status}", request=resp.request, response=resp,
                )
                delay = backoff
                if status in _RATE_LIMIT_CODES:
                    server_delay = _retry_after(resp)
                    if server_delay is not None:
                        if server_delay > _MAX_RETRY_AFTER:
                            logger.error(
                                "Binance rate limit %d, Retry-After %.0fs; giving up",
                                status, server_delay,
                            )
                            raise last_exc
                        delay = server_delay
                logger.warning(
                    "Binance GET %s returned %d, attempt %d/%d",
                    url, status, attempt + 1, _MAX_ATTEMPTS,
                )

            if attempt + 1 < _MAX_ATTEMPTS:
                await asyncio.sleep(delay)

        raise last_exc  # type: ignore[misc]

    # ── Candle data ──────────────────────────────────────────────────────

    async def fetch_candles(
        self,
        symbol: str,
        interval: Timeframe | str,
        limit: int = MAX_KLINES,
        end_time: Optional[int] = None,
    ) -> list[Candle]:
        """Fetch klines ending at or before *end_time*.

        Args:
            symbol: e.g. ``"BTCUSDT"``
            interval: a ``Timeframe`` or its string, e.g. ``"1h"``
            limit: number of candles (clamped to 1..1000)
            end_time: ms timestamp; omitted means "now"

        Returns:
            List of ``Candle`` objects ordered oldest-first.
        """
        url = f"{self._base_url}/api/v3/klines"
        params: dict = {
            "symbol": symbol,
            "interval": Timeframe(interval).value,
            "limit": max(1, min(limit, MAX_KLINES)),
        }
        if end_time is not None:
            params["endTime"] = end_time

        resp = await self._get_with_retry(url, params)

        candles: list[Candle] = []
        for row in resp.json():
            candles.append(
                Candle(
                    timestamp=int(row[0]),
                    open=float(row[1]),
                    high=float(row[2]),
                    low=float(row[3]),
                    close=float(row[4]),
                    volume=float(row[5]),
                    turnover=float(row[7]),
                )
            )
        return candles
