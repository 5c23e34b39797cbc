"""ChannelScope — application configuration.

Loads .env variables into a typed config object.
Validates values on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from channelscope.market.timeframes import Timeframe
from channelscope.strategy.models import PIVOT_SOURCES, SRChannelOptions


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    binance_base_url: str
    default_symbol: str
    default_interval: str
    candle_limit: int
    sr_pivot_period: int
    sr_channel_width_pct: float
    sr_min_strength: float
    sr_max_channels: int
    sr_loopback_period: int
    sr_source: str  # "High/Low" or "Close/Open"
    log_level: str
    api_port: int

    def channel_options(self) -> SRChannelOptions:
        """Return detector options built from the ``SR_*`` settings."""
        return SRChannelOptions(
            pivot_period=self.sr_pivot_period,
            channel_width_percent=self.sr_channel_width_pct,
            min_strength=self.sr_min_strength,
            max_channels=self.sr_max_channels,
            loopback_period=self.sr_loopback_period,
            source=self.sr_source,
        )


def _env_number(name: str, default: str, cast):
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(
            f"Invalid value for environment variable {name}: {raw!r}"
        ) from None


def _require_positive(name: str, value) -> None:
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the offending variable
    when a value cannot be parsed or is out of range.
    """
    load_dotenv(dotenv_path=env_path)

    interval = os.environ.get("DEFAULT_INTERVAL", Timeframe.H1.value)
    if interval not in {tf.value for tf in Timeframe}:
        raise ValueError(f"Unknown DEFAULT_INTERVAL: {interval!r}")

    source = os.environ.get("SR_SOURCE", "High/Low")
    if source not in PIVOT_SOURCES:
        raise ValueError(
            f"SR_SOURCE must be one of {', '.join(PIVOT_SOURCES)}, got {source!r}"
        )

    candle_limit = _env_number("CANDLE_LIMIT", "1000", int)
    pivot_period = _env_number("SR_PIVOT_PERIOD", "10", int)
    max_channels = _env_number("SR_MAX_CHANNELS", "6", int)
    loopback_period = _env_number("SR_LOOPBACK_PERIOD", "290", int)
    for name, value in [
        ("CANDLE_LIMIT", candle_limit),
        ("SR_PIVOT_PERIOD", pivot_period),
        ("SR_MAX_CHANNELS", max_channels),
        ("SR_LOOPBACK_PERIOD", loopback_period),
    ]:
        _require_positive(name, value)

    return Config(
        binance_base_url=os.environ.get(
            "BINANCE_BASE_URL", "https://api.binance.com"
        ).rstrip("/"),
        default_symbol=os.environ.get("DEFAULT_SYMBOL", "BTCUSDT"),
        default_interval=interval,
        candle_limit=candle_limit,
        sr_pivot_period=pivot_period,
        sr_channel_width_pct=_env_number("SR_CHANNEL_WIDTH_PCT", "5", float),
        sr_min_strength=_env_number("SR_MIN_STRENGTH", "1", float),
        sr_max_channels=max_channels,
        sr_loopback_period=loopback_period,
        sr_source=source,
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        api_port=_env_number("API_PORT", "8080", int),
    )
