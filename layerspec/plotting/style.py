"""Centralized plotting constants, palettes, limits and save helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import matplotlib.colors as mcolors
import numpy as np
from matplotlib.figure import Figure

OUTPUT_FORMATS: tuple[str, ...] = ("png", "pdf", "svg")
FIGURE_DPI = 300
SCREEN_DPI = 100


@dataclass(frozen=True)
class StyleConfig:
    PANEL_WIDTH: float = 4.2
    PANEL_HEIGHT: float = 3.4
    MIN_FIGSIZE: tuple[float, float] = (6.0, 4.2)
    LEGEND_WIDTH: float = 1.6
    AXIS_EXPAND: float = 0.05
    STRIP_FONTSIZE: float = 10.0
    BOX_WIDTH: float = 0.75
    BAR_WIDTH: float = 0.9
    JITTER_FRACTION: float = 0.4
    OUTLIER_SIZE: float = 4.0
    SIZE_RANGE: tuple[float, float] = (3.0, 12.0)
    ALPHA_RANGE: tuple[float, float] = (0.1, 1.0)
    LEGEND_BREAKS: int = 4


STYLE = StyleConfig()

NA_COLOR = "#7F7F7F"
GRADIENT_LOW = "#132B43"
GRADIENT_HIGH = "#56B1F7"

DISCRETE_PALETTE = (
    "#1f77b4",
    "#ff7f0e",
    "#2ca02c",
    "#d62728",
    "#9467bd",
    "#8c564b",
    "#e377c2",
    "#7f7f7f",
    "#bcbd22",
    "#17becf",
)
SHAPES = ("o", "^", "s", "D", "v", "P", "X")
LINETYPES = ("-", "--", ":", "-.")


def discrete_palette(n: int) -> list[str]:
    """Return ``n`` distinct hex colours.

    Up to ten levels use the fixed categorical palette so colours stay stable
    between plots; more levels sample the ``turbo`` colormap evenly.
    """
    n = int(n)
    if n <= len(DISCRETE_PALETTE):
        return list(DISCRETE_PALETTE[:n])
    from matplotlib import colormaps

    cmap = colormaps["turbo"]
    return [mcolors.to_hex(cmap(v)) for v in np.linspace(0.05, 0.95, n)]


def gradient_colormap() -> mcolors.Colormap:
    """Return the dark-to-light blue colormap used for continuous colour."""
    return mcolors.LinearSegmentedColormap.from_list(
        "layerspec_gradient", [GRADIENT_LOW, GRADIENT_HIGH]
    )


def figure_size(nrows: int, ncols: int, *, legend: bool = False) -> tuple[float, float]:
    """Return a figure size that gives each facet panel a readable area."""
    width = max(STYLE.MIN_FIGSIZE[0], STYLE.PANEL_WIDTH * ncols)
    height = max(STYLE.MIN_FIGSIZE[1], STYLE.PANEL_HEIGHT * nrows)
    if legend:
        width += STYLE.LEGEND_WIDTH
    return (width, height)


def expand_limits(lo: float, hi: float, *, pad_frac: float = STYLE.AXIS_EXPAND) -> tuple[float, float]:
    """Pad a data range symmetrically so marks are not clipped at the frame."""
    if not (np.isfinite(lo) and np.isfinite(hi)):
        return (0.0, 1.0)
    if lo == hi:
        delta = max(abs(lo) * pad_frac, 0.5)
        return (lo - delta, hi + delta)
    pad = (hi - lo) * pad_frac
    return (lo - pad, hi + pad)


def save_figure(
    fig: Figure,
    savepath_base: str | Path,
    formats: Sequence[str] = OUTPUT_FORMATS,
    dpi: int = FIGURE_DPI,
    *,
    bbox_inches: str = "tight",
    pad_inches: float = 0.12,
) -> Path:
    """Save a figure to multiple formats using one extensionless base path.

    Args:
        fig (matplotlib.figure.Figure): Figure to serialize.
        savepath_base (str | pathlib.Path): Output path without extension; a
            trailing image extension from :data:`OUTPUT_FORMATS` is dropped,
            other dots are kept.
        formats (Sequence[str]): Any of :data:`OUTPUT_FORMATS`.
        dpi (int): Raster resolution, used for PNG only.

    Returns:
        pathlib.Path: Path of the first format written.

    Raises:
        ValueError: If a format is not one of :data:`OUTPUT_FORMATS`.
    """
    unknown = [ext for ext in formats if ext not in OUTPUT_FORMATS]
    if unknown:
        raise ValueError(
            f"Unsupported extension(s) {unknown}. Expected one of {OUTPUT_FORMATS}."
        )
    base = Path(savepath_base)
    if base.suffix.lstrip(".") in OUTPUT_FORMATS:
        base = base.with_suffix("")
    base.parent.mkdir(parents=True, exist_ok=True)
    for ext in formats:
        target = base.parent / f"{base.name}.{ext}"
        fig.savefig(
            str(target),
            dpi=dpi if ext == "png" else None,
            bbox_inches=bbox_inches,
            pad_inches=pad_inches,
            facecolor=fig.get_facecolor(),
        )
    return base.parent / f"{base.name}.{formats[0]}"


def sanitize_filename(name: str) -> str:
    """Normalize a filename component into a stable, filesystem-safe token."""
    text = re.sub(r"\s+", "_", str(name).strip())
    text = re.sub(r"[^A-Za-z0-9._-]+", "_", text)
    text = re.sub(r"_+", "_", text).strip("._")
    return text or "figure"
