"""Named themes: bundles of non-data visual defaults.

A theme controls backgrounds, gridlines, axis lines and typography. It never
changes what is drawn from the data. Replacing a theme is wholesale: nothing
from the previous theme survives.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True)
class Theme:
    """Non-data visual defaults applied at render time.

    Attributes:
        name: Registry name.
        background: Figure background colour.
        panel_background: Plotting-area background colour.
        panel_border: Colour of a full frame around each panel, or ``None``.
        grid_color: Major gridline colour, or ``None`` for no grid.
        grid_linewidth: Major gridline width in points.
        axis_line: Whether left/bottom axis lines are drawn.
        strip_background: Facet strip background colour.
        text_color: Colour of titles, labels and tick labels.
        font_family: Matplotlib font family.
        base_size: Base font size in points.
    """

    name: str
    background: str = "#FFFFFF"
    panel_background: str = "#EBEBEB"
    panel_border: str | None = None
    grid_color: str | None = "#FFFFFF"
    grid_linewidth: float = 1.0
    axis_line: bool = False
    strip_background: str = "#D9D9D9"
    text_color: str = "#1A1A1A"
    font_family: str = "DejaVu Sans"
    base_size: float = 11.0

    def rc_params(self) -> dict[str, Any]:
        """Return matplotlib rcParams for use inside ``rc_context``."""
        return {
            "font.family": self.font_family,
            "font.size": self.base_size,
            "axes.titlesize": self.base_size,
            "axes.labelsize": self.base_size,
            "xtick.labelsize": self.base_size * 0.85,
            "ytick.labelsize": self.base_size * 0.85,
            "legend.fontsize": self.base_size * 0.9,
            "legend.title_fontsize": self.base_size,
            "figure.titlesize": self.base_size * 1.2,
            "text.color": self.text_color,
            "axes.labelcolor": self.text_color,
            "xtick.color": self.text_color,
            "ytick.color": self.text_color,
            "axes.edgecolor": self.panel_border or self.text_color,
            "mathtext.default": "regular",
            "figure.facecolor": self.background,
            "savefig.facecolor": self.background,
        }


THEMES: Mapping[str, Theme] = MappingProxyType(
    {
        "grey": Theme(name="grey"),
        "bw": Theme(
            name="bw",
            panel_background="#FFFFFF",
            panel_border="#333333",
            grid_color="#EBEBEB",
            grid_linewidth=0.8,
            strip_background="#D9D9D9",
        ),
        "minimal": Theme(
            name="minimal",
            panel_background="#FFFFFF",
            grid_color="#EBEBEB",
            grid_linewidth=0.8,
            strip_background="#FFFFFF",
        ),
        "classic": Theme(
            name="classic",
            panel_background="#FFFFFF",
            grid_color=None,
            axis_line=True,
            strip_background="#FFFFFF",
        ),
        "light": Theme(
            name="light",
            panel_background="#FFFFFF",
            panel_border="#B3B3B3",
            grid_color="#DEDEDE",
            grid_linewidth=0.6,
            strip_background="#B3B3B3",
        ),
        "dark": Theme(
            name="dark",
            panel_background="#7F7F7F",
            grid_color="#6B6B6B",
            grid_linewidth=0.8,
            strip_background="#262626",
            text_color="#1A1A1A",
        ),
        # Serif, boxless style for figures embedded in written reports.
        "paper": Theme(
            name="paper",
            panel_background="#FFFFFF",
            grid_color=None,
            axis_line=True,
            strip_background="#FFFFFF",
            font_family="STIXGeneral",
            base_size=12.0,
        ),
    }
)

DEFAULT_THEME = "grey"


def get_theme(theme: str | Theme) -> Theme:
    """Resolve a theme name (or pass a :class:`Theme` through).

    Raises:
        ValueError: If ``theme`` is not a registered name.
    """
    if isinstance(theme, Theme):
        return theme
    try:
        return THEMES[str(theme)]
    except KeyError:
        raise ValueError(
            f"Unknown theme '{theme}'. Expected one of {tuple(THEMES)}."
        ) from None


def scaled_theme(theme: str | Theme, base_size: float) -> Theme:
    """Return ``theme`` with a different base font size."""
    return replace(get_theme(theme), base_size=float(base_size))
