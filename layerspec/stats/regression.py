"""Provide the curve fits behind smoothing layers.

This module supports:
- linear models (straight line, log predictor, polynomial) fitted by ordinary
  least squares, with a Student-t confidence band for the mean response, and
- local regression (LOWESS) with an approximate confidence band.

Both return the fitted curve sampled over the predictor's observed range.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy.stats import t as student_t
from statsmodels.nonparametric.smoothers_lowess import lowess

from ..errors import UnsupportedStatError
from .formula import Formula

CURVE_COLUMNS = ["x", "y", "ymin", "ymax"]


class InsufficientDataError(ValueError):
    """Raised when a group has too few usable points for the requested fit."""


def _finite_pairs(x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    mask = np.isfinite(x_arr) & np.isfinite(y_arr)
    return x_arr[mask], y_arr[mask]


def _t_critical(level: float, dof: float) -> float:
    if not np.isfinite(dof) or dof <= 0:
        return math.nan
    return float(student_t.ppf(0.5 + float(level) / 2.0, dof))


@dataclass(frozen=True)
class LinearFit:
    """Ordinary least-squares fit of ``y`` on a formula basis of ``x``.

    Attributes:
        formula (Formula): Predictor basis used for the design matrix.
        coef (numpy.ndarray): Coefficients, intercept first.
        cov (numpy.ndarray): Coefficient covariance matrix (``mse * (X'X)^-1``).
        r2 (float): Coefficient of determination.
        dof (int): Residual degrees of freedom.
        mse (float): Residual mean square.
        n (int): Number of finite observations used.
    """

    formula: Formula
    coef: np.ndarray
    cov: np.ndarray
    r2: float
    dof: int
    mse: float
    n: int

    def predict(self, x: np.ndarray, level: float = 0.95, se: bool = True) -> pd.DataFrame:
        """Predict the mean response and its confidence band at ``x``.

        Args:
            x (numpy.ndarray): Predictor values.
            level (float): Confidence level of the band. Defaults to ``0.95``.
            se (bool): Whether to compute the band; ``ymin``/``ymax`` are NaN
                otherwise.

        Returns:
            pandas.DataFrame: Columns ``x``, ``y``, ``ymin``, ``ymax``.
        """
        x = np.asarray(x, dtype=float)
        design = self.formula.design(x)
        yhat = design @ self.coef
        ymin = np.full_like(yhat, np.nan)
        ymax = np.full_like(yhat, np.nan)
        t_crit = _t_critical(level, self.dof)
        if se and np.isfinite(t_crit) and np.all(np.isfinite(self.cov)):
            se_fit = np.sqrt(np.clip(np.einsum("ij,jk,ik->i", design, self.cov, design), 0.0, None))
            ymin = yhat - t_crit * se_fit
            ymax = yhat + t_crit * se_fit
        return pd.DataFrame({"x": x, "y": yhat, "ymin": ymin, "ymax": ymax})


def fit_linear_model(x: np.ndarray, y: np.ndarray, formula: Formula) -> LinearFit:
    """Fit ``y ~ basis(x)`` by ordinary least squares.

    Args:
        x (numpy.ndarray): Predictor values.
        y (numpy.ndarray): Response values.
        formula (Formula): Parsed formula selecting the predictor basis.

    Returns:
        LinearFit: Coefficients and residual diagnostics.

    Raises:
        UnsupportedStatError: If ``log(x)`` is requested for non-positive x.
        InsufficientDataError: If there are fewer finite points than
            parameters plus one, or too few distinct predictor values.

    Note:
        ``r2`` and the band describe statistical scatter only.

    References:
        Ordinary least squares; confidence band for the mean response.
    """
    x_arr, y_arr = _finite_pairs(x, y)
    if formula.basis == "log" and np.any(x_arr <= 0):
        raise UnsupportedStatError("lm", "formula 'y ~ log(x)' needs x > 0")
    n = int(x_arr.size)
    p = formula.n_params
    if n < p + 1 or np.unique(x_arr).size < p:
        raise InsufficientDataError(
            f"Insufficient valid data for '{formula.text}': n={n}, parameters={p}"
        )

    design = formula.design(x_arr)
    coef, *_ = np.linalg.lstsq(design, y_arr, rcond=None)
    resid = y_arr - design @ coef
    sse = float(np.sum(resid**2))
    sst = float(np.sum((y_arr - y_arr.mean()) ** 2))
    r2 = 1.0 - sse / sst if sst > 0 else math.nan

    dof = n - p
    mse = sse / dof
    cov = mse * np.linalg.pinv(design.T @ design)
    return LinearFit(
        formula=formula,
        coef=coef,
        cov=cov,
        r2=float(r2),
        dof=int(dof),
        mse=float(mse),
        n=n,
    )


def fit_loess(
    x: np.ndarray,
    y: np.ndarray,
    grid: np.ndarray,
    *,
    span: float = 0.75,
    level: float = 0.95,
    se: bool = True,
) -> pd.DataFrame:
    """Fit a local regression curve and evaluate it on ``grid``.

    Args:
        x (numpy.ndarray): Predictor values.
        y (numpy.ndarray): Response values.
        grid (numpy.ndarray): Predictor values at which to evaluate the curve.
        span (float): Fraction of points used for each local fit.
        level (float): Confidence level of the band.
        se (bool): Whether to compute the band.

    Returns:
        pandas.DataFrame: Columns ``x``, ``y``, ``ymin``, ``ymax``.

    Raises:
        InsufficientDataError: If fewer than four finite points or three
            distinct predictor values are available.

    Note:
        The band uses the residual standard deviation shrunk by the local
        effective sample size (``span * n``). It is an approximation, not the
        exact local-likelihood interval.

    References:
        Cleveland (1979) robust locally weighted regression; statsmodels
        ``lowess``.
    """
    x_arr, y_arr = _finite_pairs(x, y)
    n = int(x_arr.size)
    if n < 4 or np.unique(x_arr).size < 3:
        raise InsufficientDataError(
            f"Insufficient valid data for local regression: n={n}"
        )
    grid = np.asarray(grid, dtype=float)
    fitted = lowess(y_arr, x_arr, frac=float(span), it=0, xvals=grid)
    ymin = np.full_like(fitted, np.nan)
    ymax = np.full_like(fitted, np.nan)
    if se:
        at_obs = lowess(y_arr, x_arr, frac=float(span), it=0, return_sorted=False)
        resid = y_arr - at_obs
        dof = n - 2
        sigma = float(np.sqrt(np.sum(resid**2) / dof))
        effective_n = max(float(span) * n, 2.0)
        half = _t_critical(level, dof) * sigma / np.sqrt(effective_n)
        ymin = fitted - half
        ymax = fitted + half
    return pd.DataFrame({"x": grid, "y": fitted, "ymin": ymin, "ymax": ymax})


def predictor_grid(x: np.ndarray, n: int = 80) -> np.ndarray:
    """Return ``n`` evenly spaced points over the finite range of ``x``."""
    x_arr = np.asarray(x, dtype=float)
    x_arr = x_arr[np.isfinite(x_arr)]
    if x_arr.size == 0:
        return np.asarray([], dtype=float)
    return np.linspace(float(x_arr.min()), float(x_arr.max()), int(n))
