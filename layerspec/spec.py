"""Immutable plot specifications and their extension operations.

A :class:`PlotSpec` holds a dataset, a default aesthetic mapping, ordered
layers, scale transforms, facet keys, labels and a theme. Every extension
(``add_layer``, ``add_scale``, ``add_facet``, ``set_theme``, ``set_labels``)
returns a new specification and leaves the receiver untouched, so partial
plots can be kept and reused as bases for several variations.

Column references are not checked here. Validation against the data happens
at render time, where errors can name the channel and column involved.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from numbers import Integral, Real
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, Optional, Sequence

import pandas as pd

from .aes import AestheticMapping, aes
from .datasets import DatasetProvider, as_frame
from .facets import FacetSpec
from .geoms import get_geom
from .plotting.themes import DEFAULT_THEME, Theme, get_theme
from .scales import ScaleTransform
from .schema import canonical_channel
from .stats.formula import DEFAULT_FORMULA

if TYPE_CHECKING:
    from .build import BuiltPlot
    from .plotting.figure import Image
    from .stats.backend import StatsBackend

LABEL_KEYS: tuple[str, ...] = ("title", "subtitle", "caption")


@dataclass(frozen=True)
class StatSpec:
    """Statistical transform applied by a smoothing layer.

    Attributes:
        method: ``"lm"`` (linear model) or ``"loess"`` (local regression).
        formula: ``"y ~ x"``, ``"y ~ log(x)"`` or ``"y ~ poly(x, k)"``.
            Local regression accepts only ``"y ~ x"``.
        se: Whether to draw the confidence band.
        level: Confidence level of the band.
        span: Fraction of points in each local fit (loess only).
        n: Number of points at which the curve is sampled.
    """

    method: str = "loess"
    formula: str = DEFAULT_FORMULA
    se: bool = True
    level: float = 0.95
    span: float = 0.75
    n: int = 80

    def __post_init__(self) -> None:
        if not 0.0 < float(self.level) < 1.0:
            raise ValueError(f"level must be in (0, 1), got {self.level}")
        if not 0.0 < float(self.span) <= 1.0:
            raise ValueError(f"span must be in (0, 1], got {self.span}")
        if not isinstance(self.n, Integral) or isinstance(self.n, bool) or self.n < 2:
            raise ValueError(f"n must be an integer of at least 2, got {self.n!r}")


def as_stat(stat: StatSpec | str | Mapping | None) -> Optional[StatSpec]:
    """Coerce ``stat`` to a :class:`StatSpec` (a string names the method)."""
    if stat is None or isinstance(stat, StatSpec):
        return stat
    if isinstance(stat, str):
        return StatSpec(method=stat)
    if isinstance(stat, Mapping):
        return StatSpec(**stat)
    raise TypeError(f"stat must be a StatSpec, method name or mapping, got {stat!r}")


@dataclass(frozen=True, eq=False)
class Layer:
    """One geometry drawn from the plot (or its own) data.

    Attributes:
        geom: Geometry kind (see :data:`layerspec.geoms.GEOM_KINDS`).
        data: Layer-specific dataset, or ``None`` to use the plot's.
        mapping: Partial mapping overlaid on the plot's default mapping.
        stat: Statistical transform; only smoothing layers accept one.
        params: Fixed visual values and geometry options.
        inherit_aes: Whether the plot's default mapping applies at all.
    """

    geom: str
    data: Optional[pd.DataFrame] = None
    mapping: AestheticMapping = field(default_factory=AestheticMapping)
    stat: Optional[StatSpec] = None
    params: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    inherit_aes: bool = True


def _check_param(name: str, value: Any) -> None:
    if name == "binwidth":
        if not isinstance(value, Real) or value <= 0:
            raise ValueError(f"binwidth must be a positive number, got {value!r}")
    elif name == "bins":
        if not isinstance(value, Integral) or isinstance(value, bool) or value < 1:
            raise ValueError(f"bins must be a positive integer, got {value!r}")
    elif name == "seed":
        if not isinstance(value, Integral) or isinstance(value, bool) or value < 0:
            raise ValueError(f"seed must be a non-negative integer, got {value!r}")
    elif name == "alpha":
        if not isinstance(value, Real) or not 0.0 <= value <= 1.0:
            raise ValueError(f"alpha must be in [0, 1], got {value!r}")
    elif name in ("size", "width", "height", "adjust"):
        if not isinstance(value, Real) or value < 0:
            raise ValueError(f"{name} must be a non-negative number, got {value!r}")


@dataclass(frozen=True, eq=False)
class PlotSpec:
    """Declarative description of a plot.

    Attributes:
        data: Plot dataset; never modified.
        mapping: Default aesthetic mapping shared by layers.
        layers: Layers in drawing order (later layers draw on top).
        scales: Scale transforms, at most one per channel.
        facet: Row/column facet keys and axis sharing.
        theme: Non-data visual defaults.
        labels: Title, subtitle, caption and per-channel titles.
    """

    data: pd.DataFrame
    mapping: AestheticMapping = field(default_factory=AestheticMapping)
    layers: tuple[Layer, ...] = ()
    scales: tuple[ScaleTransform, ...] = ()
    facet: FacetSpec = field(default_factory=FacetSpec)
    theme: Theme = field(default_factory=lambda: get_theme(DEFAULT_THEME))
    labels: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", as_frame(self.data))
        if not isinstance(self.mapping, AestheticMapping):
            object.__setattr__(self, "mapping", aes(self.mapping))

    @classmethod
    def from_dataset(
        cls,
        provider: DatasetProvider,
        name: str,
        mapping: Mapping | None = None,
        **channels,
    ) -> "PlotSpec":
        """Start a specification from a named dataset served by ``provider``."""
        return cls(data=provider.get(name), mapping=aes(mapping, **channels))

    def add_layer(
        self,
        geom: str,
        *,
        data=None,
        mapping: Mapping | None = None,
        stat: StatSpec | str | Mapping | None = None,
        inherit_aes: bool = True,
        **params,
    ) -> "PlotSpec":
        """Return a new specification with one more layer on top.

        Args:
            geom (str): Geometry kind, e.g. ``"point"`` or ``"smooth"``.
            data: Optional layer dataset (DataFrame or sequence of mappings).
            mapping (Mapping, optional): Channels overriding the default
                mapping for this layer; ``None`` values remove a channel.
            stat (StatSpec | str, optional): Statistical transform for
                smoothing layers.
            inherit_aes (bool): Whether to start from the default mapping.
            **params: Fixed visual values (``color="black"``) and geometry
                options (``binwidth=0.1``).

        Returns:
            PlotSpec: Extended specification.

        Raises:
            ValueError: If ``geom`` is not a known geometry kind or a numeric
                option is out of range.

        Note:
            Whether an option suits the geometry is checked at render.
        """
        get_geom(geom)
        for name, value in params.items():
            _check_param(name, value)
        layer = Layer(
            geom=geom,
            data=None if data is None else as_frame(data),
            mapping=mapping if isinstance(mapping, AestheticMapping) else aes(mapping),
            stat=as_stat(stat),
            params=MappingProxyType(dict(params)),
            inherit_aes=bool(inherit_aes),
        )
        return replace(self, layers=self.layers + (layer,))

    def add_scale(self, channel: str, transform: str) -> "PlotSpec":
        """Return a new specification with a transform on ``channel``.

        A later transform for the same channel replaces the earlier one.
        Unknown transform names are reported at render.
        """
        scale = ScaleTransform(channel=canonical_channel(channel), transform=str(transform))
        kept = tuple(s for s in self.scales if s.channel != scale.channel)
        return replace(self, scales=kept + (scale,))

    def add_facet(
        self,
        rows: Sequence[str] | str = (),
        cols: Sequence[str] | str = (),
        scales: str | None = None,
    ) -> "PlotSpec":
        """Return a new specification partitioned by extra facet keys."""
        return replace(self, facet=self.facet.extend(rows, cols, scales))

    def set_theme(self, theme: str | Theme) -> "PlotSpec":
        """Return a new specification with ``theme`` replacing the current one.

        Raises:
            ValueError: If ``theme`` is not a registered theme name.
        """
        return replace(self, theme=get_theme(theme))

    def set_labels(self, **labels: str) -> "PlotSpec":
        """Return a new specification with updated labels.

        Keys are ``title``, ``subtitle``, ``caption`` or a channel name
        (axis or legend title). Existing labels not named are kept.
        """
        merged = dict(self.labels)
        for key, text in labels.items():
            name = key if key in LABEL_KEYS else canonical_channel(key)
            merged[name] = str(text)
        return replace(self, labels=MappingProxyType(merged))

    def scale_for(self, channel: str) -> str:
        """Return the transform name requested for ``channel``."""
        for scale in self.scales:
            if scale.channel == channel:
                return scale.transform
        return "identity"

    def build(self, stats: "StatsBackend | None" = None) -> "BuiltPlot":
        """Resolve this plot into panels of marks without drawing."""
        from .build import build_plot

        return build_plot(self, stats=stats)

    def render(self, stats: "StatsBackend | None" = None) -> "Image":
        """Render this plot to a static image.

        Args:
            stats (StatsBackend, optional): Curve-fitting backend for
                smoothing layers. Defaults to
                :data:`layerspec.stats.DEFAULT_BACKEND`.

        Returns:
            Image: Rendered figure plus the structural build.

        Raises:
            MissingColumnError: A mapping or facet key names an absent column.
            InvalidScaleError: A transform does not suit the mapped values.
            UnsupportedGeometryOptionError: A layer has an option its geometry
                does not accept.
            MissingAestheticError: A geometry's required channel is unmapped.
            UnsupportedStatError: A statistic cannot be evaluated.
        """
        from .plotting.figure import render_plot

        return render_plot(self.build(stats=stats))


def plot_spec(data, mapping: Mapping | None = None, **channels) -> PlotSpec:
    """Create a specification from a dataset and a default mapping.

    Example:
        ``plot_spec(df, x="gdp_per_cap", y="life_exp").add_layer("point")``
    """
    return PlotSpec(data=data, mapping=aes(mapping, **channels))
