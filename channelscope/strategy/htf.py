"""Higher-timeframe (HTF) candles built from lower-timeframe (LTF) candles.

Used to run channel detection on a coarser view of the same series, e.g.
1h channels while stepping through 5m candles.
"""

from dataclasses import replace
from typing import Optional

from channelscope.market.timeframes import Timeframe, timeframe_to_ms
from channelscope.strategy.models import Candle


def bucket_start(timestamp: int, timeframe: Timeframe | str) -> int:
    """Floor *timestamp* (ms) to the start of its *timeframe* bucket."""
    size = timeframe_to_ms(timeframe)
    return (timestamp // size) * size


def _merge(candles: list[Candle], start: int) -> Candle:
    """Fold same-bucket candles (oldest-first) into one HTF candle."""
    turnovers = [c.turnover for c in candles if c.turnover is not None]
    return Candle(
        timestamp=start,
        open=candles[0].open,
        high=max(c.high for c in candles),
        low=min(c.low for c in candles),
        close=candles[-1].close,
        volume=sum(c.volume for c in candles),
        turnover=sum(turnovers) if turnovers else None,
    )


def aggregate_candle_at(
    ltf_candles: list[Candle],
    index: int,
    timeframe: Timeframe | str,
) -> Optional[Candle]:
    """Rebuild the HTF candle containing ``ltf_candles[index]``.

    Only candles at or before *index* are used, so the result is the
    partial HTF candle as it looked at that point in replay.  Returns
    ``None`` for an empty list or an out-of-range index.
    """
    if index < 0 or index >= len(ltf_candles):
        return None

    start = bucket_start(ltf_candles[index].timestamp, timeframe)
    first = index
    while first > 0 and ltf_candles[first - 1].timestamp >= start:
        first -= 1
    return _merge(ltf_candles[first : index + 1], start)


def resample_candles(
    ltf_candles: list[Candle],
    timeframe: Timeframe | str,
) -> list[Candle]:
    """Aggregate a whole LTF series into HTF candles, oldest-first.

    The last HTF candle may be partial.
    """
    result: list[Candle] = []
    group: list[Candle] = []
    group_start: Optional[int] = None

    for candle in ltf_candles:
        start = bucket_start(candle.timestamp, timeframe)
        if group and start != group_start:
            result.append(_merge(group, group_start))
            group = []
        group.append(candle)
        group_start = start

    if group:
        result.append(_merge(group, group_start))
    return result


class HTFAggregator:
    """Incrementally builds HTF candles as LTF candles arrive.

    ``current`` holds the in-progress HTF candle; completed ones are
    appended to ``history``.
    """

    def __init__(self, timeframe: Timeframe | str) -> None:
        self.timeframe = Timeframe(timeframe)
        self.history: list[Candle] = []
        self.current: Optional[Candle] = None

    def update(self, ltf_candle: Candle) -> Candle:
        """Fold *ltf_candle* into the current HTF candle and return it."""
        start = bucket_start(ltf_candle.timestamp, self.timeframe)
        prev = self.current

        if prev is not None and prev.timestamp == start:
            turnover = prev.turnover
            if ltf_candle.turnover is not None:
                turnover = (turnover or 0.0) + ltf_candle.turnover
            self.current = replace(
                prev,
                high=max(prev.high, ltf_candle.high),
                low=min(prev.low, ltf_candle.low),
                close=ltf_candle.close,
                volume=prev.volume + ltf_candle.volume,
                turnover=turnover,
            )
            return self.current

        if prev is not None:
            if not self.history or self.history[-1].timestamp != prev.timestamp:
                self.history.append(prev)
        self.current = replace(ltf_candle, timestamp=start)
        return self.current

    def reset(self) -> None:
        self.history = []
        self.current = None
