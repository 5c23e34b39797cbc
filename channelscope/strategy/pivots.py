"""Pivot scanner — symmetric, strict local extrema. Pure functions."""

import math

from channelscope.strategy.models import SOURCE_HIGH_LOW, Candle, PivotPoint


def _upper_value(candle: Candle, source: str) -> float:
    if source == SOURCE_HIGH_LOW:
        return candle.high
    return max(candle.open, candle.close)


def _lower_value(candle: Candle, source: str) -> float:
    if source == SOURCE_HIGH_LOW:
        return candle.low
    return min(candle.open, candle.close)


def find_pivot_highs(
    candles: list[Candle],
    period: int = 10,
    source: str = SOURCE_HIGH_LOW,
) -> list[PivotPoint]:
    """Identify pivot highs.

    A pivot high is a candle whose value is strictly greater than the
    value of each of the *period* candles on either side.  Any tie
    disqualifies it.  With ``source="High/Low"`` the value is the candle
    high, otherwise ``max(open, close)``.

    Returns pivots oldest-first.  Fewer than ``2 * period + 1`` candles
    yields an empty list.
    """
    period = max(math.floor(period), 0)
    values = [_upper_value(c, source) for c in candles]
    pivots: list[PivotPoint] = []
    for i in range(period, len(candles) - period):
        current = values[i]
        is_pivot = True
        for j in range(1, period + 1):
            if values[i - j] >= current or values[i + j] >= current:
                is_pivot = False
                break
        if is_pivot:
            pivots.append(
                PivotPoint(value=current, index=i, timestamp=candles[i].timestamp)
            )
    return pivots


def find_pivot_lows(
    candles: list[Candle],
    period: int = 10,
    source: str = SOURCE_HIGH_LOW,
) -> list[PivotPoint]:
    """Identify pivot lows.

    Mirror of :func:`find_pivot_highs`: the value (candle low, or
    ``min(open, close)``) must be strictly below all *period* neighbours
    on each side.
    """
    period = max(math.floor(period), 0)
    values = [_lower_value(c, source) for c in candles]
    pivots: list[PivotPoint] = []
    for i in range(period, len(candles) - period):
        current = values[i]
        is_pivot = True
        for j in range(1, period + 1):
            if values[i - j] <= current or values[i + j] <= current:
                is_pivot = False
                break
        if is_pivot:
            pivots.append(
                PivotPoint(value=current, index=i, timestamp=candles[i].timestamp)
            )
    return pivots
