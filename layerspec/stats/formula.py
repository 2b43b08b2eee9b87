"""Parse the small model-formula language used by smoothing layers.

Formulas describe the relationship between the ``y`` and ``x`` aesthetics:

    ``y ~ x``             straight line
    ``y ~ log(x)``        straight line in log(x)
    ``y ~ poly(x, k)``    polynomial of degree k

Formulas refer to aesthetics, not dataset columns; derived columns belong in
the aesthetic mapping.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import numpy as np

from ..errors import UnsupportedStatError

_IDENTITY = re.compile(r"^x$")
_LOG = re.compile(r"^log\(\s*x\s*\)$")
_POLY = re.compile(r"^poly\(\s*x\s*,\s*(\d+)\s*\)$")


@dataclass(frozen=True)
class Formula:
    """Parsed ``response ~ predictor`` relationship.

    Attributes:
        text (str): Normalized formula text.
        basis (str): ``"identity"``, ``"log"`` or ``"poly"``.
        degree (int): Polynomial degree (1 unless ``basis == "poly"``).
    """

    text: str
    basis: str = "identity"
    degree: int = 1

    def design(self, x: np.ndarray) -> np.ndarray:
        """Return the least-squares design matrix (intercept first) for ``x``."""
        x = np.asarray(x, dtype=float)
        if self.basis == "log":
            with np.errstate(divide="ignore", invalid="ignore"):
                x = np.log(x)
        return np.vander(x, self.degree + 1, increasing=True)

    @property
    def n_params(self) -> int:
        return self.degree + 1


DEFAULT_FORMULA = "y ~ x"


def parse_formula(text: str, method: str = "lm") -> Formula:
    """Parse ``text`` into a :class:`Formula`.

    Args:
        text (str): Formula such as ``"y ~ poly(x, 2)"``.
        method (str): Statistical method the formula is used with; only used
            for error context.

    Returns:
        Formula: Parsed formula.

    Raises:
        UnsupportedStatError: If the formula is not ``y ~ <predictor>`` with a
            supported predictor term.
    """
    if not isinstance(text, str) or "~" not in text:
        raise UnsupportedStatError(method, f"formula must look like 'y ~ x', got {text!r}")
    response, _, predictor = (part.strip() for part in text.partition("~"))
    if response != "y":
        raise UnsupportedStatError(
            method, f"formula response must be the y aesthetic, got '{response}'"
        )
    normalized = f"y ~ {predictor}"
    if _IDENTITY.match(predictor):
        return Formula(text=normalized)
    if _LOG.match(predictor):
        return Formula(text=normalized, basis="log")
    poly = _POLY.match(predictor)
    if poly:
        degree = int(poly.group(1))
        if degree < 1:
            raise UnsupportedStatError(method, "polynomial degree must be >= 1")
        return Formula(text=normalized, basis="poly", degree=degree)
    raise UnsupportedStatError(
        method,
        f"unsupported predictor '{predictor}'; use x, log(x) or poly(x, k)",
    )
