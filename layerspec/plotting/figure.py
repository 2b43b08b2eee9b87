"""Compose a :class:`~layerspec.build.BuiltPlot` into a matplotlib figure.

Rendering never touches pyplot's global state: each call creates its own
:class:`~matplotlib.figure.Figure` attached to an Agg canvas, and the theme's
rcParams are applied only inside :func:`matplotlib.rc_context`.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import matplotlib
import numpy as np
import pandas as pd
from matplotlib.axes import Axes
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.cm import ScalarMappable
from matplotlib.colors import Normalize
from matplotlib.figure import Figure
from matplotlib.patches import Patch
from matplotlib.ticker import FixedLocator, FuncFormatter, MaxNLocator

from ..build import BuiltPlot, Legend, PanelBuild
from ..scales import PositionScale
from .draw import draw_layer, legend_handle
from .style import (
    FIGURE_DPI,
    OUTPUT_FORMATS,
    SCREEN_DPI,
    STYLE,
    expand_limits,
    figure_size,
    gradient_colormap,
    save_figure,
)
from .themes import Theme

# Padding, in positions, around the first and last level of a discrete axis.
DISCRETE_PAD = 0.6


@dataclass(frozen=True, eq=False)
class Image:
    """A rendered plot.

    Attributes:
        figure: The matplotlib figure (Agg canvas attached).
        plot: The structural build the figure was drawn from.
    """

    figure: Figure
    plot: BuiltPlot

    @property
    def theme(self) -> Theme:
        return self.plot.theme

    def to_array(self) -> np.ndarray:
        """Rasterize the figure and return an ``(h, w, 4)`` uint8 RGBA array."""
        canvas = self.figure.canvas
        with matplotlib.rc_context(self.theme.rc_params()):
            canvas.draw()
        return np.asarray(canvas.buffer_rgba()).copy()

    def save(
        self,
        path_base: str | Path,
        formats: Sequence[str] = OUTPUT_FORMATS,
        dpi: int = FIGURE_DPI,
    ) -> Path:
        """Write the figure once per format; see :func:`save_figure`."""
        with matplotlib.rc_context(self.theme.rc_params()):
            return save_figure(self.figure, path_base, formats=formats, dpi=dpi)

    def marks(self) -> pd.DataFrame:
        return self.plot.marks()


def _style_axes(ax: Axes, theme: Theme) -> None:
    ax.set_facecolor(theme.panel_background)
    ax.set_axisbelow(True)
    if theme.grid_color is not None:
        ax.grid(True, color=theme.grid_color, linewidth=theme.grid_linewidth)
    else:
        ax.grid(False)
    for side, spine in ax.spines.items():
        if theme.panel_border is not None:
            spine.set_visible(True)
            spine.set_color(theme.panel_border)
        elif theme.axis_line and side in ("left", "bottom"):
            spine.set_visible(True)
            spine.set_color(theme.text_color)
        else:
            spine.set_visible(False)
    ax.tick_params(length=3 if theme.axis_line or theme.panel_border else 2)


def _set_axis(ax: Axes, axis: str, scale: PositionScale, domain) -> None:
    """Limits, tick positions and data-unit tick labels for one axis."""
    target = ax.xaxis if axis == "x" else ax.yaxis
    set_lim = ax.set_xlim if axis == "x" else ax.set_ylim
    if scale.discrete:
        k = len(scale.levels)
        lo, hi = (1.0, float(max(k, 1))) if domain is None else domain
        set_lim(min(lo, 1.0) - DISCRETE_PAD, max(hi, float(k)) + DISCRETE_PAD)
        target.set_major_locator(FixedLocator(np.arange(1, k + 1)))
    else:
        lo, hi = domain if domain is not None else (np.nan, np.nan)
        set_lim(*expand_limits(lo, hi))
        integer = scale.transform in ("log10", "log2", "log") and domain is not None and hi - lo >= 2
        target.set_major_locator(MaxNLocator(nbins=5, integer=integer))
    target.set_major_formatter(FuncFormatter(lambda value, _pos: scale.tick_label(value)))


def _draw_panel(ax: Axes, panel: PanelBuild, plot: BuiltPlot) -> None:
    _style_axes(ax, plot.theme)
    for layer in panel.layers:
        draw_layer(ax, layer.geom, layer.marks, zorder=2.0 + layer.index)
    _set_axis(ax, "x", plot.x_scale, panel.x_domain)
    _set_axis(ax, "y", plot.y_scale, panel.y_domain)
    if plot.facet.active:
        ax.set_title(
            panel.key.label,
            fontsize=STYLE.STRIP_FONTSIZE,
            color=plot.theme.text_color,
            bbox={
                "facecolor": plot.theme.strip_background,
                "edgecolor": "none",
                "boxstyle": "square,pad=0.3",
            },
        )


def _header(title: str) -> Patch:
    return Patch(facecolor="none", edgecolor="none", label=title)


def _add_legends(fig: Figure, axes: list[Axes], legends: Sequence[Legend]) -> None:
    """Colour bars for continuous colour, one figure legend for the rest."""
    keyed = [legend for legend in legends if not legend.continuous]
    for legend in legends:
        if not legend.continuous:
            continue
        lo, hi = legend.domain if legend.domain is not None else (0.0, 1.0)
        if lo == hi:
            lo, hi = lo - 0.5, hi + 0.5
        mappable = ScalarMappable(norm=Normalize(lo, hi), cmap=gradient_colormap())
        bar = fig.colorbar(mappable, ax=axes, shrink=0.6, aspect=18)
        bar.set_label(legend.title)
        bar.set_ticks(list(legend.positions))
        bar.set_ticklabels([label for label, _ in legend.entries])
    if not keyed:
        return
    handles, labels = [], []
    for legend in keyed:
        if len(keyed) > 1:
            handles.append(_header(legend.title))
            labels.append(legend.title)
        for label, values in legend.entries:
            handles.append(legend_handle(legend.geoms, dict(values)))
            labels.append(label)
    fig.legend(
        handles,
        labels,
        loc="outside right upper",
        title=keyed[0].title if len(keyed) == 1 else None,
        frameon=False,
    )


def render_plot(plot: BuiltPlot) -> Image:
    """Draw ``plot`` into a new figure.

    Args:
        plot (BuiltPlot): Output of :func:`layerspec.build.build_plot`.

    Returns:
        Image: The figure plus the structural build.
    """
    theme = plot.theme
    with matplotlib.rc_context(theme.rc_params()):
        fig = Figure(
            figsize=figure_size(plot.nrows, plot.ncols, legend=bool(plot.legends)),
            dpi=SCREEN_DPI,
            layout="constrained",
        )
        FigureCanvasAgg(fig)
        grid = fig.subplots(plot.nrows, plot.ncols, squeeze=False)
        for panel in plot.panels:
            _draw_panel(grid[panel.key.row][panel.key.col], panel, plot)

        for r in range(plot.nrows):
            for c in range(plot.ncols):
                ax = grid[r][c]
                if r < plot.nrows - 1 and not plot.facet.free_x:
                    ax.tick_params(labelbottom=False)
                if c > 0 and not plot.facet.free_y:
                    ax.tick_params(labelleft=False)

        labels = plot.labels
        if plot.nrows * plot.ncols == 1:
            grid[0][0].set_xlabel(labels.get("x", ""))
            grid[0][0].set_ylabel(labels.get("y", ""))
        else:
            fig.supxlabel(labels.get("x", ""), fontsize=theme.base_size)
            fig.supylabel(labels.get("y", ""), fontsize=theme.base_size)

        title = labels.get("title", "")
        if labels.get("subtitle"):
            title = f"{title}\n{labels['subtitle']}" if title else labels["subtitle"]
        if title:
            fig.suptitle(title, x=0.02, ha="left")
        if labels.get("caption"):
            grid[-1][-1].annotate(
                labels["caption"],
                xy=(1.0, 0.0),
                xycoords="axes fraction",
                xytext=(0, -36),
                textcoords="offset points",
                ha="right",
                va="top",
                fontsize=theme.base_size * 0.8,
            )
        _add_legends(fig, [ax for row in grid for ax in row], plot.legends)
    return Image(figure=fig, plot=plot)
