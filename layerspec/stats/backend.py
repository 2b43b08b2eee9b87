"""Statistics backend contract used by smoothing layers.

The render step treats curve fitting as a black box: given the predictor and
response of one group and a :class:`~layerspec.spec.StatSpec`, a backend
returns the fitted curve sampled over the predictor's observed range as a
DataFrame with columns ``x``, ``y``, ``ymin`` and ``ymax`` (band columns are
NaN when no interval was requested). Pass a different backend to
``PlotSpec.render(stats=...)`` to swap the implementation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import numpy as np
import pandas as pd

from ..errors import UnsupportedStatError
from .formula import DEFAULT_FORMULA, parse_formula
from .regression import fit_linear_model, fit_loess, predictor_grid

if TYPE_CHECKING:
    from ..spec import StatSpec

METHODS: tuple[str, ...] = ("lm", "loess")


class StatsBackend(Protocol):
    def fit_curve(self, x: np.ndarray, y: np.ndarray, stat: "StatSpec") -> pd.DataFrame:
        ...


class ModelStatsBackend:
    """Default backend: numpy/scipy linear models and statsmodels LOWESS."""

    def fit_curve(self, x: np.ndarray, y: np.ndarray, stat: "StatSpec") -> pd.DataFrame:
        """Fit one group and return the sampled curve.

        Raises:
            UnsupportedStatError: For unknown methods or formulas the method
                cannot evaluate.
            InsufficientDataError: If the group is too small to fit.
        """
        method = stat.method
        if method not in METHODS:
            raise UnsupportedStatError(method, f"expected one of {METHODS}")
        formula = parse_formula(stat.formula, method=method)
        grid = predictor_grid(x, n=stat.n)
        if method == "lm":
            fit = fit_linear_model(x, y, formula)
            return fit.predict(grid, level=stat.level, se=stat.se)
        if formula.text != DEFAULT_FORMULA:
            raise UnsupportedStatError(
                method, f"local regression supports only '{DEFAULT_FORMULA}', got '{formula.text}'"
            )
        return fit_loess(x, y, grid, span=stat.span, level=stat.level, se=stat.se)


DEFAULT_BACKEND = ModelStatsBackend()
