"""Define standardized channel names and mark-table column labels."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Channels:
    """Container for the visual channel names an aesthetic mapping may use.

    Attributes:
        x, y: Positional channels. Either may be continuous, discrete
            (categorical) or date-like.
        color: Outline/line/point colour.
        fill: Interior colour of areas, bars and boxes.
        alpha: Transparency, 0 (invisible) to 1 (opaque).
        size: Point diameter or line width.
        shape: Point marker; discrete only.
        linetype: Line dash pattern; discrete only.
        group: Grouping key for statistics and lines; never drawn.
    """

    x: str = "x"
    y: str = "y"
    color: str = "color"
    fill: str = "fill"
    alpha: str = "alpha"
    size: str = "size"
    shape: str = "shape"
    linetype: str = "linetype"
    group: str = "group"


CHANNELS = Channels()

ALL_CHANNELS: tuple[str, ...] = (
    CHANNELS.x,
    CHANNELS.y,
    CHANNELS.color,
    CHANNELS.fill,
    CHANNELS.alpha,
    CHANNELS.size,
    CHANNELS.shape,
    CHANNELS.linetype,
    CHANNELS.group,
)

POSITIONAL_CHANNELS: tuple[str, ...] = (CHANNELS.x, CHANNELS.y)

# Channels whose values are encoded visually (everything except position and group).
VISUAL_CHANNELS: tuple[str, ...] = (
    CHANNELS.color,
    CHANNELS.fill,
    CHANNELS.alpha,
    CHANNELS.size,
    CHANNELS.shape,
    CHANNELS.linetype,
)

CHANNEL_ALIASES: dict[str, str] = {"colour": "color", "col": "color"}

# Positional columns a marks table may carry besides x and y.
X_EXTENT_COLUMNS: tuple[str, ...] = ("x", "xmin", "xmax")
Y_EXTENT_COLUMNS: tuple[str, ...] = ("y", "ymin", "ymax", "lower", "upper", "middle")

# Internal bookkeeping columns carried through layer frames.
ROW_ID = ".row"
GROUP_ID = ".group"


def canonical_channel(name: str) -> str:
    """Return the canonical channel name for ``name`` or raise ``ValueError``."""
    key = CHANNEL_ALIASES.get(str(name), str(name))
    if key not in ALL_CHANNELS:
        raise ValueError(
            f"Unknown aesthetic channel '{name}'. Expected one of {ALL_CHANNELS}."
        )
    return key
