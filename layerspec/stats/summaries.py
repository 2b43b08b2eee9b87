"""Summary statistics that turn layer rows into marks.

Binning (histogram, frequency polygon), kernel density, boxplot five-number
summaries and counts. All functions operate on arrays and return tidy
DataFrames; none of them know about aesthetics or drawing.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd
from scipy.stats import gaussian_kde

from .regression import InsufficientDataError

DEFAULT_BINS = 30
DENSITY_POINTS = 512
WHISKER_IQR = 1.5


def bin_edges(
    values: np.ndarray,
    *,
    binwidth: Optional[float] = None,
    bins: Optional[int] = None,
) -> np.ndarray:
    """Return histogram bin edges covering the finite range of ``values``.

    Args:
        values (numpy.ndarray): Observations (all panels and groups of a layer,
            so every panel shares the same bins).
        binwidth (float, optional): Bin width; bins are centered on integer
            multiples of the width.
        bins (int, optional): Number of equal-width bins over the data range.
            Used when ``binwidth`` is not given; defaults to
            :data:`DEFAULT_BINS`.

    Returns:
        numpy.ndarray: Monotonic edges; empty when no finite values exist.
    """
    arr = np.asarray(values, dtype=float)
    arr = arr[np.isfinite(arr)]
    if arr.size == 0:
        return np.asarray([], dtype=float)
    lo, hi = float(arr.min()), float(arr.max())
    if binwidth is not None:
        width = float(binwidth)
        start = (np.floor(lo / width + 0.5) - 0.5) * width
        n_bins = max(1, int(np.ceil((hi - start) / width)))
        if start + n_bins * width <= hi:
            n_bins += 1
        return start + width * np.arange(n_bins + 1)
    n_bins = int(bins) if bins is not None else DEFAULT_BINS
    if lo == hi:
        lo, hi = lo - 0.5, hi + 0.5
    return np.linspace(lo, hi, n_bins + 1)


def bin_counts(values: np.ndarray, edges: np.ndarray) -> pd.DataFrame:
    """Count ``values`` into ``edges``.

    Returns:
        pandas.DataFrame: Columns ``x`` (bin center), ``xmin``, ``xmax``,
        ``count`` and ``density`` (count / (n * width)).
    """
    arr = np.asarray(values, dtype=float)
    arr = arr[np.isfinite(arr)]
    if edges.size < 2:
        return pd.DataFrame(columns=["x", "xmin", "xmax", "count", "density"])
    counts, _ = np.histogram(arr, bins=edges)
    widths = np.diff(edges)
    total = max(int(arr.size), 1)
    return pd.DataFrame(
        {
            "x": (edges[:-1] + edges[1:]) / 2.0,
            "xmin": edges[:-1],
            "xmax": edges[1:],
            "count": counts.astype(float),
            "density": counts / (total * widths),
        }
    )


def frequency_polygon(values: np.ndarray, edges: np.ndarray) -> pd.DataFrame:
    """Bin counts at bin centers, padded with an empty bin on each side."""
    counts = bin_counts(values, edges)
    if counts.empty:
        return counts
    width_lo = float(counts["xmax"].iloc[0] - counts["xmin"].iloc[0])
    width_hi = float(counts["xmax"].iloc[-1] - counts["xmin"].iloc[-1])
    first = counts["xmin"].iloc[0]
    last = counts["xmax"].iloc[-1]
    pad = pd.DataFrame(
        {
            "x": [first - width_lo / 2.0, last + width_hi / 2.0],
            "xmin": [first - width_lo, last],
            "xmax": [first, last + width_hi],
            "count": [0.0, 0.0],
            "density": [0.0, 0.0],
        }
    )
    out = pd.concat([pad.iloc[[0]], counts, pad.iloc[[1]]], ignore_index=True)
    return out


def kernel_density(
    values: np.ndarray,
    grid: np.ndarray,
    *,
    adjust: float = 1.0,
) -> pd.DataFrame:
    """Gaussian kernel density estimate evaluated on ``grid``.

    Args:
        values (numpy.ndarray): Observations.
        grid (numpy.ndarray): Evaluation points.
        adjust (float): Multiplier on Scott's bandwidth.

    Returns:
        pandas.DataFrame: Columns ``x`` and ``density``.

    Raises:
        InsufficientDataError: If fewer than two distinct finite values exist.
    """
    arr = np.asarray(values, dtype=float)
    arr = arr[np.isfinite(arr)]
    if np.unique(arr).size < 2:
        raise InsufficientDataError(
            f"Density needs at least two distinct values, got {np.unique(arr).size}"
        )
    factor = float(adjust)
    kde = gaussian_kde(arr, bw_method=lambda k: k.scotts_factor() * factor)
    return pd.DataFrame({"x": grid, "density": kde(grid)})


def boxplot_stats(values: np.ndarray) -> dict:
    """Five-number summary with Tukey whiskers.

    Args:
        values (numpy.ndarray): Observations of one box.

    Returns:
        dict: ``lower``, ``middle``, ``upper`` (quartiles), ``ymin``/``ymax``
        (whisker ends: most extreme values within 1.5 IQR of the box),
        ``outliers`` (tuple of values beyond the whiskers) and ``n``.

    Raises:
        InsufficientDataError: If there are no finite values.

    References:
        Tukey (1977) boxplot; quartiles by linear interpolation (numpy
        default, R type 7).
    """
    arr = np.asarray(values, dtype=float)
    arr = np.sort(arr[np.isfinite(arr)])
    if arr.size == 0:
        raise InsufficientDataError("Boxplot needs at least one finite value")
    q1, q2, q3 = np.percentile(arr, [25, 50, 75])
    iqr = q3 - q1
    lo_fence = q1 - WHISKER_IQR * iqr
    hi_fence = q3 + WHISKER_IQR * iqr
    inside = arr[(arr >= lo_fence) & (arr <= hi_fence)]
    outliers = arr[(arr < lo_fence) | (arr > hi_fence)]
    return {
        "lower": float(q1),
        "middle": float(q2),
        "upper": float(q3),
        "ymin": float(inside.min()),
        "ymax": float(inside.max()),
        "outliers": tuple(float(v) for v in outliers),
        "n": int(arr.size),
    }


def count_values(values: np.ndarray) -> pd.DataFrame:
    """Count occurrences of each distinct finite value, sorted by value."""
    arr = np.asarray(values, dtype=float)
    arr = arr[np.isfinite(arr)]
    uniq, counts = np.unique(arr, return_counts=True)
    return pd.DataFrame({"x": uniq, "count": counts.astype(float)})
