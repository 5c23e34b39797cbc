"""Strategy data models — typed representations for channel detection."""

from dataclasses import asdict, dataclass, fields
from typing import Mapping, Optional


# ── Channel types / pivot sources ────────────────────────────────────────

RESISTANCE = "resistance"
SUPPORT = "support"
NEUTRAL = "neutral"

CHANNEL_TYPES = (RESISTANCE, SUPPORT, NEUTRAL)

SOURCE_HIGH_LOW = "High/Low"
SOURCE_CLOSE_OPEN = "Close/Open"

PIVOT_SOURCES = (SOURCE_HIGH_LOW, SOURCE_CLOSE_OPEN)


@dataclass(frozen=True)
class Candle:
    """A single candlestick bar. ``timestamp`` is the open time in ms."""

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    turnover: Optional[float] = None


@dataclass(frozen=True)
class PivotPoint:
    """A local extremum found by the pivot scanner."""

    value: float
    index: int  # position in the source candle list
    timestamp: int


@dataclass(frozen=True)
class ChannelCandidate:
    """A channel grown from one seed pivot, before selection."""

    high: float
    low: float
    pivot_count: int
    strength: int = 0


@dataclass(frozen=True)
class SRChannel:
    """A ranked support/resistance price band."""

    high: float
    low: float
    strength: int
    type: str  # "resistance", "support" or "neutral"

    def to_dict(self) -> dict:
        return asdict(self)


# camelCase keys accepted from JSON callers
_CAMEL_KEYS = {
    "pivotPeriod": "pivot_period",
    "channelWidthPercent": "channel_width_percent",
    "minStrength": "min_strength",
    "maxChannels": "max_channels",
    "loopbackPeriod": "loopback_period",
}


@dataclass(frozen=True)
class SRChannelOptions:
    """Tuning knobs for ``calculate_sr_channels``. All optional."""

    pivot_period: int = 10
    channel_width_percent: float = 5.0
    min_strength: float = 1.0
    max_channels: int = 6
    loopback_period: int = 290
    source: str = SOURCE_HIGH_LOW

    @classmethod
    def from_mapping(cls, data: Optional[Mapping]) -> "SRChannelOptions":
        """Build options from a dict with snake_case or camelCase keys.

        Missing keys (and keys set to ``None``) keep their defaults;
        unknown keys are ignored.  Raises ``ValueError`` when a value
        cannot be converted to the option's type.
        """
        if not data:
            return cls()
        casts = {f.name: _OPTION_CASTS[f.name] for f in fields(cls)}
        kwargs: dict = {}
        for key, value in data.items():
            name = _CAMEL_KEYS.get(key, key)
            if name not in casts or value is None:
                continue
            try:
                kwargs[name] = casts[name](value)
            except (TypeError, ValueError):
                raise ValueError(f"Invalid value for option {key}: {value!r}") from None
        return cls(**kwargs)


_OPTION_CASTS = {
    "pivot_period": int,
    "channel_width_percent": float,
    "min_strength": float,
    "max_channels": int,
    "loopback_period": int,
    "source": str,
}
