"""Geometry drawers: put one layer's marks on one Axes.

Each drawer takes a marks table produced by :mod:`layerspec.build` (drawing
coordinates plus encoded visual columns) and calls the matching matplotlib
primitive. Drawers never compute statistics or scales.
"""

from __future__ import annotations

from typing import Callable

import matplotlib.colors as mcolors
import numpy as np
import pandas as pd
from matplotlib.axes import Axes
from matplotlib.lines import Line2D
from matplotlib.patches import Patch

from ..schema import GROUP_ID
from .style import STYLE


def _rgba(color, alpha) -> tuple:
    if color is None or (isinstance(color, str) and color.lower() == "none"):
        return (0.0, 0.0, 0.0, 0.0)
    return mcolors.to_rgba(color, float(alpha))


def _rgba_list(colors, alphas) -> list:
    return [_rgba(c, a) for c, a in zip(colors, alphas)]


def _first(marks: pd.DataFrame, column: str):
    return marks[column].iloc[0]


def _groups(marks: pd.DataFrame):
    """Yield the marks of each group in order."""
    if GROUP_ID not in marks.columns:
        yield marks
        return
    for _, rows in marks.groupby(GROUP_ID, sort=True):
        yield rows


def draw_points(ax: Axes, marks: pd.DataFrame, zorder: float) -> None:
    """Scatter points; one call per marker shape."""
    for shape, rows in marks.groupby("shape", sort=False):
        fills = [
            f if isinstance(f, str) and f.lower() != "none" else c
            for f, c in zip(rows["fill"], rows["color"])
        ]
        ax.scatter(
            rows["x"].to_numpy(dtype=float),
            rows["y"].to_numpy(dtype=float),
            s=np.square(rows["size"].to_numpy(dtype=float)),
            marker=shape,
            c=_rgba_list(fills, rows["alpha"]),
            edgecolors=_rgba_list(rows["color"], rows["alpha"]),
            linewidths=0.5,
            zorder=zorder,
        )


def draw_lines(ax: Axes, marks: pd.DataFrame, zorder: float) -> None:
    """Connect marks in x order within each group."""
    for rows in _groups(marks):
        ax.plot(
            rows["x"].to_numpy(dtype=float),
            rows["y"].to_numpy(dtype=float),
            color=_rgba(_first(rows, "color"), _first(rows, "alpha")),
            linewidth=float(_first(rows, "size")),
            linestyle=_first(rows, "linetype"),
            zorder=zorder,
        )


def draw_smooth(ax: Axes, marks: pd.DataFrame, zorder: float) -> None:
    """Fitted curve per group with its confidence band underneath."""
    for rows in _groups(marks):
        x = rows["x"].to_numpy(dtype=float)
        lo = rows["ymin"].to_numpy(dtype=float)
        hi = rows["ymax"].to_numpy(dtype=float)
        if np.isfinite(lo).any() and np.isfinite(hi).any():
            ax.fill_between(
                x,
                lo,
                hi,
                color=_rgba(_first(rows, "fill"), _first(rows, "alpha")),
                linewidth=0,
                zorder=zorder,
            )
        ax.plot(
            x,
            rows["y"].to_numpy(dtype=float),
            color=_rgba(_first(rows, "color"), 1.0),
            linewidth=float(_first(rows, "size")) * 0.5,
            linestyle=_first(rows, "linetype"),
            zorder=zorder + 0.001,
        )


def draw_bars(ax: Axes, marks: pd.DataFrame, zorder: float) -> None:
    """Rectangles spanning ``xmin..xmax`` and ``ymin..ymax``."""
    if marks.empty:
        return
    xmin = marks["xmin"].to_numpy(dtype=float)
    ymin = marks["ymin"].to_numpy(dtype=float)
    ax.bar(
        xmin,
        marks["ymax"].to_numpy(dtype=float) - ymin,
        width=marks["xmax"].to_numpy(dtype=float) - xmin,
        bottom=ymin,
        align="edge",
        color=_rgba_list(marks["fill"], marks["alpha"]),
        edgecolor=_rgba_list(marks["color"], marks["alpha"]),
        linewidth=marks["size"].to_numpy(dtype=float),
        zorder=zorder,
    )


def draw_density(ax: Axes, marks: pd.DataFrame, zorder: float) -> None:
    """Density outline per group, filled down to zero when a fill is set."""
    for rows in _groups(marks):
        x = rows["x"].to_numpy(dtype=float)
        y = rows["y"].to_numpy(dtype=float)
        fill = _first(rows, "fill")
        if isinstance(fill, str) and fill.lower() != "none":
            ax.fill_between(
                x, 0.0, y, color=_rgba(fill, _first(rows, "alpha")), linewidth=0, zorder=zorder
            )
        ax.plot(
            x,
            y,
            color=_rgba(_first(rows, "color"), 1.0),
            linewidth=float(_first(rows, "size")),
            linestyle=_first(rows, "linetype"),
            zorder=zorder + 0.001,
        )


def draw_boxplots(ax: Axes, marks: pd.DataFrame, zorder: float) -> None:
    """Tukey boxplots from precomputed five-number summaries."""
    for _, box in marks.iterrows():
        stats = {
            "med": box["middle"],
            "q1": box["lower"],
            "q3": box["upper"],
            "whislo": box["ymin"],
            "whishi": box["ymax"],
            "fliers": np.asarray(box["outliers"], dtype=float),
        }
        edge = _rgba(box["color"], 1.0)
        linewidth = float(box["size"])
        ax.bxp(
            [stats],
            positions=[float(box["x"])],
            widths=[float(box["xmax"] - box["xmin"])],
            patch_artist=True,
            manage_ticks=False,
            boxprops={"facecolor": _rgba(box["fill"], box["alpha"]), "edgecolor": edge, "linewidth": linewidth},
            medianprops={"color": edge, "linewidth": linewidth * 1.5},
            whiskerprops={"color": edge, "linewidth": linewidth},
            capprops={"color": edge, "linewidth": 0},
            flierprops={
                "marker": "o",
                "markersize": STYLE.OUTLIER_SIZE,
                "markerfacecolor": edge,
                "markeredgecolor": edge,
            },
            zorder=zorder,
        )


DRAWERS: dict[str, Callable[[Axes, pd.DataFrame, float], None]] = {
    "point": draw_points,
    "jitter": draw_points,
    "line": draw_lines,
    "smooth": draw_smooth,
    "histogram": draw_bars,
    "freqpoly": draw_lines,
    "density": draw_density,
    "boxplot": draw_boxplots,
    "bar": draw_bars,
    "col": draw_bars,
}


def draw_layer(ax: Axes, geom: str, marks: pd.DataFrame, zorder: float) -> None:
    """Draw ``marks`` with the drawer registered for ``geom``."""
    if marks.empty:
        return
    DRAWERS[geom](ax, marks, zorder)


POINT_GEOMS = {"point", "jitter"}
LINE_GEOMS = {"line", "smooth", "freqpoly", "density"}


def legend_handle(geoms, values: dict):
    """Legend key glyph for one break, styled like the layers using it."""
    color = values.get("color", "#333333")
    fill = values.get("fill", color)
    alpha = values.get("alpha", 1.0)
    if POINT_GEOMS.intersection(geoms):
        return Line2D(
            [],
            [],
            linestyle="",
            marker=values.get("shape", "o"),
            markersize=float(values.get("size", 6.0)),
            markerfacecolor=_rgba(color if "color" in values else fill, alpha),
            markeredgecolor=_rgba(color if "color" in values else fill, alpha),
        )
    if LINE_GEOMS.intersection(geoms) and "fill" not in values:
        return Line2D(
            [],
            [],
            color=_rgba(color, alpha),
            linestyle=values.get("linetype", "-"),
            linewidth=float(values.get("size", 1.5)),
        )
    return Patch(facecolor=_rgba(fill, alpha), edgecolor=_rgba(values.get("color", "none"), 1.0))
