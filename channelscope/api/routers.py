"""Internal API routers — /channels endpoints.

No detection logic here. Delegates to the market client and the
strategy functions.
"""

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, HTTPException, Query

from channelscope.market.timeframes import Timeframe, higher_timeframe
from channelscope.strategy.colors import get_channel_border_color, get_channel_color
from channelscope.strategy.htf import resample_candles
from channelscope.strategy.models import Candle, SRChannel, SRChannelOptions
from channelscope.strategy.sr_channels import calculate_sr_channels

logger = logging.getLogger("channelscope")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_config = None  # Set via configure_routers()
_market = None  # Set via configure_routers()

_CANDLE_FIELDS = ("timestamp", "open", "high", "low", "close", "volume")


def configure_routers(config=None, market=None) -> None:
    """Inject dependencies from the application startup.

    Args:
        config: A ``Config`` instance; its ``SR_*`` values become the
            detector options for ``GET /channels/{symbol}``.
        market: A ``BinanceClient`` instance (or duck-type for tests).
    """
    global _config, _market  # noqa: PLW0603
    _config = config
    _market = market


def _parse_candles(rows: list) -> list[Candle]:
    """Convert JSON candle objects into ``Candle`` records.

    Raises ``HTTPException(422)`` naming the first bad row.
    """
    candles: list[Candle] = []
    for i, row in enumerate(rows):
        try:
            turnover = row.get("turnover")
            candles.append(
                Candle(
                    timestamp=int(row["timestamp"]),
                    open=float(row["open"]),
                    high=float(row["high"]),
                    low=float(row["low"]),
                    close=float(row["close"]),
                    volume=float(row.get("volume", 0.0)),
                    turnover=float(turnover) if turnover is not None else None,
                )
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise HTTPException(
                status_code=422,
                detail=f"Invalid candle at index {i}: {exc!r}",
            ) from None
    return candles


def _channel_payload(channel: SRChannel) -> dict:
    return {
        **channel.to_dict(),
        "fill_color": get_channel_color(channel.type),
        "border_color": get_channel_border_color(channel.type),
    }


# ── Endpoints ────────────────────────────────────────────────────────────


@router.post("/channels")
async def post_channels(body: dict):
    """Detect channels on caller-supplied candles.

    Body: ``{"candles": [{timestamp, open, high, low, close, volume}, ...],
    "options": {...}}``.  Option keys may be snake_case or camelCase.
    """
    rows = body.get("candles") or []
    if not isinstance(rows, list):
        raise HTTPException(status_code=422, detail="'candles' must be a list")
    options = body.get("options") or {}
    if not isinstance(options, dict):
        raise HTTPException(status_code=422, detail="'options' must be an object")

    candles = _parse_candles(rows)
    try:
        opts = SRChannelOptions.from_mapping(options)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from None

    channels = calculate_sr_channels(candles, opts)
    return {
        "channels": [_channel_payload(c) for c in channels],
        "current_price": candles[-1].close if candles else None,
    }


@router.get("/channels/{symbol}")
async def get_channels(
    symbol: str,
    interval: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    end_time: Optional[int] = Query(None),
    htf: bool = Query(False),
):
    """Fetch market candles for *symbol* and detect channels on them.

    With ``htf=true`` the candles are first resampled to the next higher
    timeframe of *interval*.
    """
    if _market is None or _config is None:
        raise HTTPException(status_code=503, detail="Market data not configured")

    interval = interval or _config.default_interval
    try:
        tf = Timeframe(interval)
    except ValueError:
        raise HTTPException(
            status_code=422, detail=f"Unknown interval: {interval!r}"
        ) from None

    try:
        candles = await _market.fetch_candles(
            symbol.upper(), tf, limit or _config.candle_limit, end_time,
        )
    except httpx.HTTPError as exc:
        logger.error("Failed to fetch %s %s candles: %s", symbol, tf.value, exc)
        raise HTTPException(
            status_code=502, detail=f"Market data unavailable: {exc}"
        ) from None

    if htf:
        tf = higher_timeframe(tf)
        candles = resample_candles(candles, tf)

    channels = calculate_sr_channels(candles, _config.channel_options())
    return {
        "symbol": symbol.upper(),
        "interval": tf.value,
        "channels": [_channel_payload(c) for c in channels],
        "current_price": candles[-1].close if candles else None,
    }
