"""Channel colours for the chart layer. No business logic."""

from channelscope.strategy.models import NEUTRAL, RESISTANCE, SUPPORT

_CHANNEL_RGB: dict[str, tuple[int, int, int]] = {
    RESISTANCE: (246, 70, 93),  # red
    SUPPORT: (46, 189, 133),  # green
    NEUTRAL: (156, 163, 175),  # gray
}

BORDER_OPACITY = 0.5


def get_channel_color(channel_type: str, opacity: float = 0.25) -> str:
    """Return the RGBA fill colour for a channel type.

    Unknown types fall back to the neutral gray.
    """
    r, g, b = _CHANNEL_RGB.get(channel_type, _CHANNEL_RGB[NEUTRAL])
    return f"rgba({r}, {g}, {b}, {opacity})"


def get_channel_border_color(channel_type: str) -> str:
    """Return the RGBA border colour for a channel type."""
    return get_channel_color(channel_type, BORDER_OPACITY)
