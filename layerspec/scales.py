"""Scale transforms and scale training for positional and visual channels.

Positional scales turn x/y values into drawing coordinates: discrete values
become integer positions 1..k, dates become matplotlib date numbers, and a
transform (log10, sqrt...) maps continuous values before statistics run.
Visual scales turn mapped values into colours, sizes, alphas, shapes and line
types. Every scale is trained on all layers and panels together so encodings
are shared across the whole plot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

import matplotlib.colors as mcolors
import matplotlib.dates as mdates
import numpy as np
import pandas as pd
from matplotlib.ticker import MaxNLocator

from .errors import InvalidScaleError
from .plotting.style import (
    LINETYPES,
    NA_COLOR,
    SHAPES,
    STYLE,
    discrete_palette,
    gradient_colormap,
)
from .schema import canonical_channel


@dataclass(frozen=True)
class Transform:
    name: str
    forward: Callable[[np.ndarray], np.ndarray]
    inverse: Callable[[np.ndarray], np.ndarray]
    valid: Callable[[np.ndarray], np.ndarray]
    domain: str


def _all(values: np.ndarray) -> np.ndarray:
    return np.ones(np.shape(values), dtype=bool)


TRANSFORMS: dict[str, Transform] = {
    "identity": Transform("identity", lambda v: v, lambda v: v, _all, "all reals"),
    "log10": Transform("log10", np.log10, lambda v: np.power(10.0, v), lambda v: v > 0, "x > 0"),
    "log2": Transform("log2", np.log2, lambda v: np.power(2.0, v), lambda v: v > 0, "x > 0"),
    "log": Transform("log", np.log, np.exp, lambda v: v > 0, "x > 0"),
    "sqrt": Transform("sqrt", np.sqrt, np.square, lambda v: v >= 0, "x >= 0"),
    "reverse": Transform("reverse", np.negative, np.negative, _all, "all reals"),
}


@dataclass(frozen=True)
class ScaleTransform:
    """A named transform attached to one channel."""

    channel: str
    transform: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "channel", canonical_channel(self.channel))


def get_transform(channel: str, name: str) -> Transform:
    """Return the :class:`Transform` called ``name``.

    Raises:
        InvalidScaleError: If ``name`` is not a known transform.
    """
    try:
        return TRANSFORMS[name]
    except KeyError:
        raise InvalidScaleError(
            channel, str(name), f"unknown transform; expected one of {tuple(TRANSFORMS)}"
        ) from None


def apply_transform(values: Any, channel: str, name: str) -> np.ndarray:
    """Transform ``values`` for ``channel``, rejecting out-of-domain input.

    Args:
        values: Numeric array-like (NaN entries pass through unchanged).
        channel (str): Channel the values belong to, for error context.
        name (str): Transform name from :data:`TRANSFORMS`.

    Returns:
        numpy.ndarray: Transformed float values.

    Raises:
        InvalidScaleError: If values are non-numeric or any finite value lies
            outside the transform's domain (e.g. log of zero). Offending rows
            are never dropped silently.
    """
    transform = get_transform(channel, name)
    try:
        arr = np.asarray(values, dtype=float)
    except (TypeError, ValueError):
        raise InvalidScaleError(channel, name, "values are not numeric") from None
    present = ~np.isnan(arr)
    bad = present & ~transform.valid(np.where(present, arr, 1.0))
    n_bad = int(np.sum(bad))
    if n_bad:
        raise InvalidScaleError(
            channel,
            name,
            f"{n_bad} value(s) outside the domain {transform.domain}",
            n_invalid=n_bad,
        )
    with np.errstate(invalid="ignore"):
        return transform.forward(arr)


def is_discrete(values: pd.Series) -> bool:
    """Return whether ``values`` should be treated as categorical."""
    dtype = values.dtype
    if isinstance(dtype, pd.CategoricalDtype):
        return True
    if pd.api.types.is_bool_dtype(dtype):
        return True
    if pd.api.types.is_datetime64_any_dtype(dtype) or pd.api.types.is_numeric_dtype(dtype):
        return False
    return True


def is_date(values: pd.Series) -> bool:
    return bool(pd.api.types.is_datetime64_any_dtype(values.dtype))


def _sort_levels(levels: list) -> list:
    try:
        return sorted(levels)
    except TypeError:
        return sorted(levels, key=str)


def train_levels(series_list: Iterable[pd.Series]) -> tuple:
    """Collect the ordered distinct levels of discrete series.

    Categorical series keep their category order (unused categories are
    dropped); other series contribute their sorted distinct values. Levels
    first seen in earlier series come first.
    """
    levels: list = []
    for series in series_list:
        present = series.dropna()
        if isinstance(series.dtype, pd.CategoricalDtype):
            used = set(present.unique())
            ordered = [c for c in series.cat.categories if c in used]
        else:
            ordered = _sort_levels(list(pd.unique(present)))
        for level in ordered:
            if level not in levels:
                levels.append(level)
    return tuple(levels)


def _format_number(value: float) -> str:
    if not np.isfinite(value):
        return str(value)
    return f"{value:.6g}"


@dataclass(frozen=True)
class PositionScale:
    """Trained scale for one positional channel (x or y).

    Attributes:
        channel: ``"x"`` or ``"y"``.
        transform: Transform name applied to continuous values.
        levels: Ordered categories for a discrete axis, else ``None``.
        dates: Whether values are dates (drawn as matplotlib date numbers).
    """

    channel: str
    transform: str = "identity"
    levels: Optional[tuple] = None
    dates: bool = False

    @property
    def discrete(self) -> bool:
        return self.levels is not None

    def map(self, values: pd.Series) -> np.ndarray:
        """Convert raw channel values to transformed drawing coordinates.

        Raises:
            InvalidScaleError: For transforms over discrete values or
                out-of-domain continuous values.
        """
        if self.levels is not None:
            if self.transform not in ("identity",):
                raise InvalidScaleError(
                    self.channel, self.transform, "cannot transform a discrete axis"
                )
            index = {level: i + 1.0 for i, level in enumerate(self.levels)}
            return np.asarray([index.get(v, np.nan) for v in values], dtype=float)
        if self.dates:
            numbers = mdates.date2num(pd.to_datetime(values).to_numpy())
            return apply_transform(numbers, self.channel, self.transform)
        return apply_transform(pd.to_numeric(values, errors="coerce"), self.channel, self.transform)

    def transform_values(self, values: Any) -> np.ndarray:
        """Transform values computed by a statistic (counts, densities)."""
        return apply_transform(values, self.channel, self.transform)

    def inverse(self, values: np.ndarray) -> np.ndarray:
        return get_transform(self.channel, self.transform).inverse(np.asarray(values, dtype=float))

    def tick_label(self, value: float) -> str:
        """Label a drawing coordinate in data units."""
        if self.levels is not None:
            idx = int(round(value)) - 1
            if 0 <= idx < len(self.levels) and abs(value - round(value)) < 1e-9:
                return str(self.levels[idx])
            return ""
        raw = float(self.inverse(np.asarray([value]))[0])
        if self.dates:
            return mdates.num2date(raw).strftime("%Y-%m-%d")
        return _format_number(raw)


def train_position(
    channel: str,
    series_list: list[pd.Series],
    transform: str = "identity",
) -> PositionScale:
    """Train a positional scale over every layer's values for ``channel``.

    Raises:
        InvalidScaleError: If discrete and continuous values are mixed, or a
            transform other than identity is requested for a discrete axis.
    """
    get_transform(channel, transform)
    populated = [s for s in series_list if len(s.dropna())]
    discrete = [is_discrete(s) for s in populated]
    if any(discrete) and not all(discrete):
        raise InvalidScaleError(
            channel, transform, "mixes discrete and continuous values across layers"
        )
    if populated and all(discrete):
        if transform != "identity":
            raise InvalidScaleError(channel, transform, "cannot transform a discrete axis")
        return PositionScale(channel=channel, transform=transform, levels=train_levels(populated))
    dates = bool(populated) and all(is_date(s) for s in populated)
    return PositionScale(channel=channel, transform=transform, dates=dates)


@dataclass(frozen=True)
class VisualScale:
    """Trained scale for a non-positional channel.

    Attributes:
        channel: ``color``, ``fill``, ``alpha``, ``size``, ``shape`` or
            ``linetype``.
        title: Legend title.
        levels: Ordered categories for a discrete scale, else ``None``.
        domain: ``(min, max)`` of transformed values for a continuous scale.
        transform: Transform applied before encoding.
    """

    channel: str
    title: str
    levels: Optional[tuple] = None
    domain: tuple[float, float] = (0.0, 1.0)
    transform: str = "identity"
    _lookup: dict = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.levels is not None:
            encoded = _discrete_values(self.channel, len(self.levels))
            object.__setattr__(self, "_lookup", dict(zip(self.levels, encoded)))

    @property
    def discrete(self) -> bool:
        return self.levels is not None

    def encode(self, values: Iterable) -> list:
        """Map raw data values to visual values (hex colours, sizes...)."""
        values = list(values)
        if self.levels is not None:
            na = _na_value(self.channel)
            return [self._lookup.get(v, na) for v in values]
        transformed = apply_transform(
            pd.to_numeric(pd.Series(values, dtype=object), errors="coerce"),
            self.channel,
            self.transform,
        )
        return [_continuous_value(self.channel, v, self.domain) for v in transformed]

    def break_values(self) -> list[float]:
        """Legend break positions of a continuous scale, in transformed units."""
        lo, hi = self.domain
        ticks = MaxNLocator(nbins=STYLE.LEGEND_BREAKS).tick_values(lo, hi)
        return [float(t) for t in ticks if lo - 1e-12 <= t <= hi + 1e-12] or [lo]

    def breaks(self) -> list[tuple[str, Any]]:
        """Return ``(label, visual value)`` legend entries."""
        if self.levels is not None:
            return [(str(level), self._lookup[level]) for level in self.levels]
        inverse = get_transform(self.channel, self.transform).inverse
        return [
            (_format_number(float(inverse(np.asarray(t)))), _continuous_value(self.channel, t, self.domain))
            for t in self.break_values()
        ]


def _na_value(channel: str) -> Any:
    return {
        "color": NA_COLOR,
        "fill": NA_COLOR,
        "alpha": 1.0,
        "size": STYLE.SIZE_RANGE[0],
        "shape": "o",
        "linetype": "-",
    }[channel]


def _discrete_values(channel: str, n: int) -> list:
    if channel in ("color", "fill"):
        return discrete_palette(n)
    if channel == "shape":
        return [SHAPES[i % len(SHAPES)] for i in range(n)]
    if channel == "linetype":
        return [LINETYPES[i % len(LINETYPES)] for i in range(n)]
    low, high = STYLE.ALPHA_RANGE if channel == "alpha" else STYLE.SIZE_RANGE
    if n == 1:
        return [high]
    return [float(v) for v in np.linspace(low, high, n)]


def _rescale(value: float, domain: tuple[float, float]) -> float:
    lo, hi = domain
    if hi == lo:
        return 1.0
    return (float(value) - lo) / (hi - lo)


def _continuous_value(channel: str, value: float, domain: tuple[float, float]) -> Any:
    if not np.isfinite(value):
        return _na_value(channel)
    t = min(max(_rescale(value, domain), 0.0), 1.0)
    if channel in ("color", "fill"):
        return mcolors.to_hex(gradient_colormap()(t))
    low, high = STYLE.ALPHA_RANGE if channel == "alpha" else STYLE.SIZE_RANGE
    return float(low + t * (high - low))


def train_visual(
    channel: str,
    title: str,
    series_list: list[pd.Series],
    transform: str = "identity",
) -> VisualScale:
    """Train a visual scale over every layer's values for ``channel``.

    Raises:
        InvalidScaleError: If a continuous variable is mapped to shape or
            linetype, discrete and continuous values are mixed, or a transform
            is requested for discrete values.
    """
    populated = [s for s in series_list if len(s.dropna())]
    discrete = [is_discrete(s) for s in populated]
    if any(discrete) and not all(discrete):
        raise InvalidScaleError(
            channel, transform, "mixes discrete and continuous values across layers"
        )
    if not populated or all(discrete):
        if populated and transform != "identity":
            raise InvalidScaleError(channel, transform, "cannot transform discrete values")
        return VisualScale(channel=channel, title=title, levels=train_levels(populated))
    if channel in ("shape", "linetype"):
        raise InvalidScaleError(
            channel, transform, "a continuous variable cannot be mapped to " + channel
        )
    values = np.concatenate(
        [apply_transform(pd.to_numeric(s, errors="coerce"), channel, transform) for s in populated]
    )
    finite = values[np.isfinite(values)]
    domain = (float(finite.min()), float(finite.max())) if finite.size else (0.0, 1.0)
    return VisualScale(channel=channel, title=title, domain=domain, transform=transform)
