"""
Drawing, theming and export for built plots.

This subpackage turns a resolved plot (panels of marks with encoded visual
values) into a matplotlib figure. It performs no statistics and no scale
training; those happen in ``layerspec.build``.

Modules:
    style:
        Sizes, palettes, axis padding and multi-format save.

    themes:
        Named non-data themes (``grey``, ``bw``, ``minimal``, ``classic``,
        ``light``, ``dark``, ``paper``).

    draw:
        One drawer per geometry kind.

    figure:
        Figure composition (facet grid, strips, labels, legends) and the
        ``Image`` result type.

Design Principles:
    1. No pyplot global state. Each render owns its Figure and Agg canvas.

    2. Themes are applied through ``matplotlib.rc_context`` only.

Note:
    Only ``style`` and ``themes`` are imported here; ``figure`` depends on
    ``layerspec.build`` and is imported from there on demand.
"""

from .style import FIGURE_DPI, OUTPUT_FORMATS, STYLE, save_figure
from .themes import DEFAULT_THEME, THEMES, Theme, get_theme, scaled_theme

__all__ = [
    "FIGURE_DPI",
    "OUTPUT_FORMATS",
    "STYLE",
    "save_figure",
    "DEFAULT_THEME",
    "THEMES",
    "Theme",
    "get_theme",
    "scaled_theme",
]
