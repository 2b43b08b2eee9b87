"""
Statistical transforms for plot layers.

This subpackage provides the numerical routines that turn layer rows into
summary geometry. All functions operate on arrays and DataFrames; no
aesthetic or drawing logic is included.

Modules:
    formula:
        Parser for ``y ~ x``, ``y ~ log(x)`` and ``y ~ poly(x, k)`` formulas.

    regression:
        Ordinary least-squares linear models with Student-t confidence bands
        for the mean response, and LOWESS local regression.

    summaries:
        Histogram binning, frequency polygons, Gaussian kernel density,
        boxplot five-number summaries and value counts.

    backend:
        The ``StatsBackend`` contract and its default implementation.

Design Principle:
    This subpackage has no dependencies on plotting/ modules. It can be
    tested on plain arrays.
"""

from .backend import DEFAULT_BACKEND, METHODS, ModelStatsBackend, StatsBackend
from .formula import DEFAULT_FORMULA, Formula, parse_formula
from .regression import InsufficientDataError, LinearFit, fit_linear_model, fit_loess
from .summaries import (
    DEFAULT_BINS,
    bin_counts,
    bin_edges,
    boxplot_stats,
    count_values,
    frequency_polygon,
    kernel_density,
)

__all__ = [
    "DEFAULT_BACKEND",
    "METHODS",
    "ModelStatsBackend",
    "StatsBackend",
    "DEFAULT_FORMULA",
    "Formula",
    "parse_formula",
    "InsufficientDataError",
    "LinearFit",
    "fit_linear_model",
    "fit_loess",
    "DEFAULT_BINS",
    "bin_counts",
    "bin_edges",
    "boxplot_stats",
    "count_values",
    "frequency_polygon",
    "kernel_density",
]
