"""Candle timeframes and their durations."""

from enum import Enum

_MINUTE_MS = 60 * 1000


class Timeframe(str, Enum):
    """Kline intervals supported by the simulator (Binance notation)."""

    M5 = "5m"
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"


_DURATION_MS: dict[Timeframe, int] = {
    Timeframe.M5: 5 * _MINUTE_MS,
    Timeframe.M15: 15 * _MINUTE_MS,
    Timeframe.M30: 30 * _MINUTE_MS,
    Timeframe.H1: 60 * _MINUTE_MS,
    Timeframe.H4: 4 * 60 * _MINUTE_MS,
    Timeframe.D1: 24 * 60 * _MINUTE_MS,
}

_HIGHER: dict[Timeframe, Timeframe] = {
    Timeframe.M5: Timeframe.M30,
    Timeframe.M15: Timeframe.H1,
    Timeframe.M30: Timeframe.H4,
    Timeframe.H1: Timeframe.D1,
}


def timeframe_to_ms(tf: Timeframe | str) -> int:
    """Return the duration of one candle of *tf* in milliseconds.

    Raises ``ValueError`` for an unknown interval string.
    """
    return _DURATION_MS[Timeframe(tf)]


def higher_timeframe(tf: Timeframe | str) -> Timeframe:
    """Return the timeframe used for higher-timeframe context of *tf*.

    4h and 1d map to 1d.
    """
    return _HIGHER.get(Timeframe(tf), Timeframe.D1)
