"""Support/Resistance channel detection from a candle series — pure functions.

Pipeline: candles → pivots → one candidate channel per pivot → scored
candidates → strongest non-overlapping channels, classified against the
latest close.
"""

import logging
import math
from dataclasses import replace
from typing import Mapping, Optional, Union

from channelscope.strategy.models import (
    NEUTRAL,
    RESISTANCE,
    SUPPORT,
    Candle,
    ChannelCandidate,
    PivotPoint,
    SRChannel,
    SRChannelOptions,
)
from channelscope.strategy.pivots import find_pivot_highs, find_pivot_lows

logger = logging.getLogger("channelscope")

# Pivot evidence is worth this many candle touches.
PIVOT_WEIGHT = 20

# Candles used to measure the recent price range for the width budget.
WIDTH_RANGE_CANDLES = 300


def calculate_channel_width(candles: list[Candle], width_percent: float) -> float:
    """Maximum channel width as a percentage of the recent high-low range.

    The range is taken over the last ``min(300, len(candles))`` candles.
    """
    lookback = min(WIDTH_RANGE_CANDLES, len(candles))
    recent = candles[-lookback:]
    highest = max(c.high for c in recent)
    lowest = min(c.low for c in recent)
    return (highest - lowest) * width_percent / 100


def build_channel_from_pivot(
    pivot_index: int,
    all_pivots: list[PivotPoint],
    channel_width: float,
) -> ChannelCandidate:
    """Grow a channel around ``all_pivots[pivot_index]``.

    Every other pivot is visited once, in list order.  A pivot at or
    below the current high widens the channel downward, one above it
    widens it upward; it is absorbed when the resulting width stays
    within *channel_width*.  Absorbed pivots are not re-checked against
    later bounds, so the result depends on pivot order.
    """
    base = all_pivots[pivot_index]
    high = base.value
    low = base.value
    pivot_count = 1

    for i, pivot in enumerate(all_pivots):
        if i == pivot_index:
            continue
        value = pivot.value
        width = high - value if value <= high else value - low
        if width <= channel_width:
            if value <= high:
                low = min(low, value)
            else:
                high = max(high, value)
            pivot_count += 1

    return ChannelCandidate(high=high, low=low, pivot_count=pivot_count)


def calculate_channel_strength(
    channel: ChannelCandidate,
    candles: list[Candle],
    loopback_period: int = 290,
) -> int:
    """Score a channel: 20 points per pivot plus 1 per touching candle.

    A candle touches the channel when its high or its low lies inside
    ``[channel.low, channel.high]``.  Only the last *loopback_period*
    candles are counted.
    """
    touches = 0
    for candle in candles[-loopback_period:]:
        if (
            channel.low <= candle.high <= channel.high
            or channel.low <= candle.low <= channel.high
        ):
            touches += 1
    return channel.pivot_count * PIVOT_WEIGHT + touches


def determine_channel_type(channel: ChannelCandidate, current_price: float) -> str:
    """Classify a channel relative to *current_price*.

    Entirely below → support, entirely above → resistance, straddling
    (or touching) the price → neutral.
    """
    if channel.high < current_price and channel.low < current_price:
        return SUPPORT
    if channel.high > current_price and channel.low > current_price:
        return RESISTANCE
    return NEUTRAL


def _overlaps(candidate: ChannelCandidate, accepted: SRChannel) -> bool:
    return candidate.high >= accepted.low and candidate.low <= accepted.high


def _normalise_options(options) -> Optional[SRChannelOptions]:
    """Coerce options to the types the pipeline indexes and slices with.

    Fractional periods and caps are floored.  Returns ``None`` when a
    value cannot be interpreted as a number.
    """
    try:
        if not isinstance(options, SRChannelOptions):
            options = SRChannelOptions.from_mapping(options)
        return replace(
            options,
            pivot_period=max(math.floor(options.pivot_period), 0),
            channel_width_percent=float(options.channel_width_percent),
            min_strength=float(options.min_strength),
            max_channels=math.floor(options.max_channels),
            loopback_period=math.floor(options.loopback_period),
        )
    except (TypeError, ValueError, OverflowError) as exc:
        logger.debug("SR channels: unusable options (%s)", exc)
        return None


def calculate_sr_channels(
    candles: list[Candle],
    options: Union[SRChannelOptions, Mapping, None] = None,
) -> list[SRChannel]:
    """Detect support/resistance channels.

    Args:
        candles: Candles ordered oldest-first; the last one is "current".
        options: ``SRChannelOptions`` or a mapping of option names
            (snake_case or camelCase).  ``None`` uses the defaults.

    Returns:
        At most ``max_channels`` non-overlapping ``SRChannel`` objects,
        strongest first.  Degenerate input (too few candles, no pivots in
        the loopback window, nothing above ``min_strength``) or options
        that are not numbers yield ``[]``.  Fractional periods are floored.
    """
    options = _normalise_options(options)
    if options is None:
        return []

    pivot_period = options.pivot_period
    if not candles or len(candles) < pivot_period * 2 + 1:
        logger.debug(
            "SR channels: %d candles, need %d, skipping",
            len(candles), pivot_period * 2 + 1,
        )
        return []

    pivot_highs = find_pivot_highs(candles, pivot_period, options.source)
    pivot_lows = find_pivot_lows(candles, pivot_period, options.source)

    # Newest first; stable, so highs precede lows on equal timestamps
    all_pivots = sorted(
        pivot_highs + pivot_lows, key=lambda p: p.timestamp, reverse=True
    )

    current_index = len(candles) - 1
    valid_pivots = [
        p for p in all_pivots
        if current_index - p.index <= options.loopback_period
    ]
    if not valid_pivots:
        logger.debug("SR channels: no pivots within loopback window")
        return []

    channel_width = calculate_channel_width(candles, options.channel_width_percent)

    candidates: list[ChannelCandidate] = []
    for i in range(len(valid_pivots)):
        channel = build_channel_from_pivot(i, valid_pivots, channel_width)
        strength = calculate_channel_strength(
            channel, candles, options.loopback_period
        )
        candidates.append(
            ChannelCandidate(
                high=channel.high,
                low=channel.low,
                pivot_count=channel.pivot_count,
                strength=strength,
            )
        )

    threshold = options.min_strength * PIVOT_WEIGHT
    ranked = sorted(
        (c for c in candidates if c.strength >= threshold),
        key=lambda c: c.strength,
        reverse=True,
    )

    current_price = candles[-1].close
    selected: list[SRChannel] = []
    for candidate in ranked:
        if len(selected) >= options.max_channels:
            break
        if any(_overlaps(candidate, s) for s in selected):
            continue
        selected.append(
            SRChannel(
                high=candidate.high,
                low=candidate.low,
                strength=candidate.strength,
                type=determine_channel_type(candidate, current_price),
            )
        )

    logger.debug(
        "SR channels: %d pivots, %d candidates, %d selected",
        len(valid_pivots), len(ranked), len(selected),
    )
    return selected
