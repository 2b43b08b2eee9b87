"""Resolve a :class:`~layerspec.spec.PlotSpec` into panels of marks.

Building is the data half of rendering. Nothing is drawn here; the result is
a :class:`BuiltPlot` holding, per facet panel and layer, a tidy table of
marks in drawing coordinates with their encoded visual values, plus the
trained scales and legends. The figure composer turns it into an image.

Order of work:
1. resolve the default mapping and facet keys against the plot data;
2. per layer, check options and required channels and evaluate the
   effective mapping against the effective data;
3. train positional scales over all layers and convert values (discrete
   levels, dates, transforms);
4. run each layer's statistic per panel and group;
5. train visual scales over all layers and encode marks;
6. compute positional domains (shared unless facets free them).
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

import numpy as np
import pandas as pd

from .aes import AestheticMapping, merge_mappings
from .errors import (
    MissingAestheticError,
    PlotAdvisory,
    UnsupportedGeometryOptionError,
    UnsupportedStatError,
)
from .facets import FacetSpec, PanelKey, facet_grid, iter_panels, key_mask
from .geoms import CHANNEL_PARAMS, GeomDef, get_geom
from .plotting.style import STYLE
from .plotting.themes import Theme
from .scales import PositionScale, VisualScale, is_discrete, train_levels, train_position, train_visual
from .schema import GROUP_ID, ROW_ID, VISUAL_CHANNELS, X_EXTENT_COLUMNS, Y_EXTENT_COLUMNS
from .spec import Layer, PlotSpec, StatSpec
from .stats.backend import DEFAULT_BACKEND, StatsBackend
from .stats.formula import DEFAULT_FORMULA
from .stats.regression import InsufficientDataError
from .stats.summaries import (
    DEFAULT_BINS,
    DENSITY_POINTS,
    bin_counts,
    bin_edges,
    boxplot_stats,
    count_values,
    frequency_polygon,
    kernel_density,
)

# Statistics whose y values are computed rather than mapped.
COMPUTED_Y = {"bin": "count", "freqpoly": "count", "count": "count", "density": "density"}


@dataclass(frozen=True, eq=False)
class LayerMarks:
    """Marks of one layer within one panel.

    Attributes:
        index: Position of the layer in the plot specification.
        geom: Geometry kind.
        marks: One row per mark (point, curve vertex, bar, box) with
            positional columns in drawing coordinates and encoded visual
            columns (``color``, ``fill``, ``alpha``, ``size``...).
    """

    index: int
    geom: str
    marks: pd.DataFrame


@dataclass(frozen=True, eq=False)
class PanelBuild:
    """One facet panel: its key, layer marks and positional domains.

    Domains are ``(min, max)`` of the marks' extents in drawing coordinates,
    without padding, or ``None`` when the panel (or plot) has no marks.
    """

    key: PanelKey
    layers: tuple[LayerMarks, ...]
    x_domain: Optional[tuple[float, float]]
    y_domain: Optional[tuple[float, float]]

    @property
    def is_empty(self) -> bool:
        return all(layer.marks.empty for layer in self.layers)


@dataclass(frozen=True)
class Legend:
    """Legend for one or more visual channels sharing a title and breaks.

    Attributes:
        title: Legend title.
        channels: Visual channels described by the legend.
        entries: ``(label, {channel: visual value})`` per break.
        continuous: Whether this describes a continuous colour gradient
            (drawn as a colour bar).
        geoms: Geometry kinds using these channels, for key glyphs.
        domain: Transformed value range of a continuous scale.
        positions: Break positions of a continuous scale, in transformed
            units.
    """

    title: str
    channels: tuple[str, ...]
    entries: tuple[tuple[str, Mapping[str, Any]], ...]
    continuous: bool = False
    geoms: tuple[str, ...] = ()
    domain: Optional[tuple[float, float]] = None
    positions: tuple[float, ...] = ()


@dataclass(frozen=True, eq=False)
class BuiltPlot:
    """Fully resolved plot, ready to draw."""

    panels: tuple[PanelBuild, ...]
    nrows: int
    ncols: int
    x_scale: PositionScale
    y_scale: PositionScale
    scales: Mapping[str, VisualScale]
    legends: tuple[Legend, ...]
    labels: Mapping[str, str]
    theme: Theme
    facet: FacetSpec
    layer_geoms: tuple[str, ...] = ()

    def panel(self, row: int, col: int) -> PanelBuild:
        for panel in self.panels:
            if panel.key.row == row and panel.key.col == col:
                return panel
        raise KeyError(f"No panel at row {row}, column {col}")

    def layer_marks(self, index: int) -> pd.DataFrame:
        """Marks of layer ``index`` across all panels (with panel columns)."""
        frames = [
            _with_panel(layer.marks, panel.key)
            for panel in self.panels
            for layer in panel.layers
            if layer.index == index
        ]
        if not frames:
            return pd.DataFrame()
        return pd.concat(frames, ignore_index=True)

    def marks(self) -> pd.DataFrame:
        """All marks with ``panel_row``, ``panel_col`` and ``layer`` columns."""
        frames = []
        for panel in self.panels:
            for layer in panel.layers:
                frame = _with_panel(layer.marks, panel.key)
                frame.insert(2, "layer", layer.index)
                frame.insert(3, "geom", layer.geom)
                frames.append(frame)
        if not frames:
            return pd.DataFrame(columns=["panel_row", "panel_col", "layer", "geom"])
        return pd.concat(frames, ignore_index=True)


def _with_panel(marks: pd.DataFrame, key: PanelKey) -> pd.DataFrame:
    frame = marks.copy()
    frame.insert(0, "panel_row", key.row)
    frame.insert(1, "panel_col", key.col)
    return frame


@dataclass(eq=False)
class _LayerInput:
    index: int
    layer: Layer
    geom: GeomDef
    mapping: AestheticMapping
    data: pd.DataFrame
    values: pd.DataFrame
    group: np.ndarray
    fixed: dict
    options: dict
    stat: Optional[StatSpec]
    positions: pd.DataFrame = field(default_factory=pd.DataFrame)


def _advise(message: str) -> None:
    warnings.warn(message, PlotAdvisory, stacklevel=4)


def _has_columns(frame: pd.DataFrame) -> bool:
    return len(frame.columns) > 0 or len(frame) > 0


def _resolve_default(spec: PlotSpec) -> None:
    if not _has_columns(spec.data):
        return
    for channel, term in spec.mapping.items():
        if term is not None:
            term.evaluate(spec.data, channel)


def _check_options(layer: Layer, geom: GeomDef) -> None:
    for name in layer.params:
        if name not in geom.params:
            raise UnsupportedGeometryOptionError(geom.kind, name, geom.params)
    if layer.stat is not None and not geom.accepts_stat:
        raise UnsupportedGeometryOptionError(geom.kind, "stat", geom.params)


def _group_channels(mapping: AestheticMapping, values: pd.DataFrame) -> list[str]:
    if "group" in mapping:
        return ["group"]
    return [
        ch
        for ch in mapping
        if ch not in ("y", "group") and ch in values.columns and is_discrete(values[ch])
    ]


def _group_ids(values: pd.DataFrame, channels: list[str]) -> np.ndarray:
    """Integer group per row (1-based), ordered by the channels' levels."""
    if not channels or values.empty:
        return np.ones(len(values), dtype=int)
    codes = []
    for ch in channels:
        series = values[ch]
        order = {level: i for i, level in enumerate(train_levels([series]))}
        codes.append([order.get(v, len(order)) for v in series])
    keys = list(zip(*codes))
    lookup = {key: i + 1 for i, key in enumerate(sorted(set(keys)))}
    return np.asarray([lookup[key] for key in keys], dtype=int)


def _prepare_layer(spec: PlotSpec, index: int, layer: Layer) -> _LayerInput:
    geom = get_geom(layer.geom)
    _check_options(layer, geom)
    fixed = {k: v for k, v in layer.params.items() if k in CHANNEL_PARAMS}
    options = {k: v for k, v in layer.params.items() if k not in CHANNEL_PARAMS}

    base = spec.mapping if layer.inherit_aes else AestheticMapping()
    mapping = merge_mappings(base, layer.mapping).without(fixed)
    for channel in geom.required:
        if channel not in mapping:
            raise MissingAestheticError(geom.kind, channel)

    data = layer.data if layer.data is not None else spec.data
    if _has_columns(data):
        columns = {
            channel: term.evaluate(data, channel).reset_index(drop=True)
            for channel, term in mapping.items()
        }
    else:
        # zero rows and zero columns, e.g. an empty list of records
        columns = {channel: pd.Series(dtype=float) for channel in mapping}
    values = pd.DataFrame(columns, index=pd.RangeIndex(len(data)))
    group = _group_ids(values, _group_channels(mapping, values))

    stat = layer.stat
    if geom.kind == "smooth" and stat is None:
        _advise(
            f"Layer {index} (smooth): no statistic given, using method='loess' "
            f"and formula '{DEFAULT_FORMULA}'."
        )
        stat = StatSpec()
    if geom.stat in ("bin", "freqpoly") and "binwidth" not in options and "bins" not in options:
        _advise(
            f"Layer {index} ({geom.kind}): using bins={DEFAULT_BINS}. "
            "Pick a better value with binwidth or bins."
        )
    return _LayerInput(
        index=index,
        layer=layer,
        geom=geom,
        mapping=mapping,
        data=data,
        values=values,
        group=group,
        fixed=fixed,
        options=options,
        stat=stat,
    )


def _label_for(channel: str, spec: PlotSpec, inputs: list[_LayerInput]) -> str:
    if channel in spec.labels:
        return spec.labels[channel]
    if channel in spec.mapping and spec.mapping[channel] is not None:
        return spec.mapping[channel].label()
    for item in inputs:
        if channel in item.mapping:
            return item.mapping[channel].label()
    if channel == "y":
        for item in inputs:
            if item.geom.stat in COMPUTED_Y:
                return COMPUTED_Y[item.geom.stat]
    return ""


def _map_positions(item: _LayerInput, x_scale: PositionScale, y_scale: PositionScale) -> pd.DataFrame:
    positions = pd.DataFrame(index=item.values.index)
    if "x" in item.mapping:
        positions["x"] = x_scale.map(item.values["x"])
    if "y" in item.mapping:
        positions["y"] = y_scale.map(item.values["y"])
    return positions


def _resolution(values: np.ndarray, discrete: bool) -> float:
    """Smallest gap between distinct values (1 for discrete axes)."""
    if discrete:
        return 1.0
    arr = np.unique(np.asarray(values, dtype=float)[np.isfinite(values)])
    if arr.size < 2:
        return 1.0
    return float(np.min(np.diff(arr)))


def _carry(rows: pd.DataFrame, channels: list[str]) -> dict:
    """First value of each visual channel within a group."""
    return {ch: rows[ch].iloc[0] for ch in channels if ch in rows.columns and len(rows)}


def _visual_channels(item: _LayerInput) -> list[str]:
    return [ch for ch in item.mapping if ch in VISUAL_CHANNELS]


def _identity_marks(item: _LayerInput, mask: np.ndarray) -> pd.DataFrame:
    frame = item.positions.loc[mask].copy()
    for ch in _visual_channels(item):
        frame[ch] = item.values.loc[mask, ch]
    frame[GROUP_ID] = item.group[mask]
    frame[ROW_ID] = np.flatnonzero(mask)
    return frame.reset_index(drop=True)


def _stack(marks: pd.DataFrame) -> pd.DataFrame:
    """Stack bars sharing an x position; positive and negative separately."""
    if marks.empty:
        marks["ymin"] = pd.Series(dtype=float)
        marks["ymax"] = pd.Series(dtype=float)
        return marks
    marks = marks.sort_values(GROUP_ID, kind="stable").reset_index(drop=True)
    tops: dict[tuple, float] = {}
    ymin, ymax = [], []
    for x, y in zip(marks["x"].to_numpy(dtype=float), marks["y"].to_numpy(dtype=float)):
        key = (round(x, 9), y >= 0)
        lo = tops.get(key, 0.0)
        hi = lo + y
        tops[key] = hi
        ymin.append(lo)
        ymax.append(hi)
    marks["ymin"] = ymin
    marks["ymax"] = ymax
    marks["y"] = marks["ymax"]
    return marks


def _group_frames(item: _LayerInput, mask: np.ndarray):
    """Yield ``(group id, row mask)`` pairs within a panel mask."""
    for gid in np.unique(item.group[mask]):
        yield int(gid), mask & (item.group == gid)


def _skip_group(item: _LayerInput, key: PanelKey, gid: int, exc: Exception) -> None:
    where = f" in panel '{key.label}'" if key.label else ""
    _advise(f"Layer {item.index} ({item.geom.kind}): skipped group {gid}{where}: {exc}")


def _finite_xy(item: _LayerInput, mask: np.ndarray, channels=("x", "y")) -> np.ndarray:
    keep = mask.copy()
    for ch in channels:
        if ch in item.positions.columns:
            keep &= np.isfinite(item.positions[ch].to_numpy(dtype=float))
    return keep


def _smooth_marks(item, mask, key, backend: StatsBackend) -> pd.DataFrame:
    frames = []
    visual = _visual_channels(item)
    for gid, rows in _group_frames(item, mask):
        x = item.positions.loc[rows, "x"].to_numpy(dtype=float)
        y = item.positions.loc[rows, "y"].to_numpy(dtype=float)
        try:
            curve = backend.fit_curve(x, y, item.stat)
        except InsufficientDataError as exc:
            _skip_group(item, key, gid, exc)
            continue
        curve = curve.copy()
        for ch, value in _carry(item.values.loc[rows], visual).items():
            curve[ch] = value
        curve[GROUP_ID] = gid
        frames.append(curve)
    return _concat(frames, ["x", "y", "ymin", "ymax"])


def _binned_marks(item, mask, key, edges, polygon: bool) -> pd.DataFrame:
    frames = []
    visual = _visual_channels(item)
    for gid, rows in _group_frames(item, mask):
        x = item.positions.loc[rows, "x"].to_numpy(dtype=float)
        counts = frequency_polygon(x, edges) if polygon else bin_counts(x, edges)
        counts = counts.assign(y=counts["count"])
        for ch, value in _carry(item.values.loc[rows], visual).items():
            counts[ch] = value
        counts[GROUP_ID] = gid
        frames.append(counts)
    return _concat(frames, ["x", "xmin", "xmax", "count", "density", "y"])


def _density_marks(item, mask, key, grid) -> pd.DataFrame:
    frames = []
    visual = _visual_channels(item)
    adjust = float(item.options.get("adjust", 1.0))
    for gid, rows in _group_frames(item, mask):
        x = item.positions.loc[rows, "x"].to_numpy(dtype=float)
        try:
            dens = kernel_density(x, grid, adjust=adjust)
        except InsufficientDataError as exc:
            _skip_group(item, key, gid, exc)
            continue
        dens = dens.assign(y=dens["density"])
        for ch, value in _carry(item.values.loc[rows], visual).items():
            dens[ch] = value
        dens[GROUP_ID] = gid
        frames.append(dens)
    return _concat(frames, ["x", "density", "y"])


def _count_marks(item, mask, key, width: float) -> pd.DataFrame:
    frames = []
    visual = _visual_channels(item)
    for gid, rows in _group_frames(item, mask):
        counts = count_values(item.positions.loc[rows, "x"].to_numpy(dtype=float))
        counts = counts.assign(y=counts["count"])
        for ch, value in _carry(item.values.loc[rows], visual).items():
            counts[ch] = value
        counts[GROUP_ID] = gid
        frames.append(counts)
    marks = _concat(frames, ["x", "count", "y"])
    marks["xmin"] = marks["x"] - width / 2.0
    marks["xmax"] = marks["x"] + width / 2.0
    return _stack(marks)


def _boxplot_marks(item, mask, key, width: float) -> pd.DataFrame:
    rows_out = []
    visual = _visual_channels(item)
    has_x = "x" in item.positions.columns
    xs = item.positions["x"].to_numpy(dtype=float) if has_x else np.zeros(len(item.positions))
    for gid, rows in _group_frames(item, mask):
        for x in np.unique(xs[rows]):
            box_rows = rows & (xs == x)
            try:
                summary = boxplot_stats(item.positions.loc[box_rows, "y"].to_numpy(dtype=float))
            except InsufficientDataError as exc:
                _skip_group(item, key, gid, exc)
                continue
            summary.update(x=float(x), xmin=x - width / 2.0, xmax=x + width / 2.0)
            summary.update(_carry(item.values.loc[box_rows], visual))
            summary[GROUP_ID] = gid
            rows_out.append(summary)
    columns = ["x", "xmin", "xmax", "lower", "middle", "upper", "ymin", "ymax", "outliers", "n"]
    if not rows_out:
        return pd.DataFrame(columns=columns + [GROUP_ID])
    frame = pd.DataFrame.from_records(rows_out)
    return frame[columns + [c for c in frame.columns if c not in columns]]


def _concat(frames: list[pd.DataFrame], columns: list[str]) -> pd.DataFrame:
    if not frames:
        return pd.DataFrame({c: pd.Series(dtype=float) for c in columns + [GROUP_ID]})
    return pd.concat(frames, ignore_index=True)


def _transform_computed_y(marks: pd.DataFrame, y_scale: PositionScale) -> pd.DataFrame:
    if y_scale.transform == "identity" or marks.empty:
        return marks
    for column in ("y", "ymin", "ymax"):
        if column in marks.columns:
            marks[column] = y_scale.transform_values(marks[column].to_numpy(dtype=float))
    return marks


def _jitter(item: _LayerInput, x_scale: PositionScale, y_scale: PositionScale) -> None:
    """Displace positions randomly; seeded so builds are repeatable."""
    rng = np.random.default_rng(item.options.get("seed", 0))
    n = len(item.positions)
    for channel, scale, option in (("x", x_scale, "width"), ("y", y_scale, "height")):
        values = item.positions[channel].to_numpy(dtype=float)
        amount = item.options.get(option)
        if amount is None:
            amount = STYLE.JITTER_FRACTION * _resolution(values, scale.discrete)
        item.positions[channel] = values + rng.uniform(-amount, amount, n)


def _layer_marks(
    item: _LayerInput,
    panels: list[PanelKey],
    masks: list[np.ndarray],
    x_scale: PositionScale,
    y_scale: PositionScale,
    backend: StatsBackend,
) -> list[pd.DataFrame]:
    """Compute the marks of one layer in every panel."""
    stat = item.geom.stat
    kind = item.geom.kind
    all_x = item.positions["x"].to_numpy(dtype=float) if "x" in item.positions else np.asarray([])

    needs = ("x",) if stat in ("bin", "freqpoly", "density", "count") else ("x", "y")
    if kind == "boxplot":
        needs = ("y",)
    finite = _finite_xy(item, np.ones(len(item.positions), dtype=bool), needs)
    removed = int(len(finite) - finite.sum())
    if removed:
        _advise(f"Layer {item.index} ({kind}): removed {removed} row(s) with missing positions.")

    if stat in ("bin", "freqpoly", "density") and x_scale.discrete:
        raise UnsupportedStatError(stat, f"geometry '{kind}' needs a continuous x")

    edges = grid = None
    if stat in ("bin", "freqpoly"):
        edges = bin_edges(
            all_x[finite],
            binwidth=item.options.get("binwidth"),
            bins=item.options.get("bins"),
        )
    if stat == "density":
        xs = all_x[finite]
        grid = np.linspace(xs.min(), xs.max(), DENSITY_POINTS) if xs.size else np.asarray([])
    width = float(
        item.options.get(
            "width",
            (STYLE.BOX_WIDTH if kind == "boxplot" else STYLE.BAR_WIDTH)
            * _resolution(all_x[finite] if all_x.size else all_x, x_scale.discrete),
        )
    )

    out = []
    for key, panel_mask in zip(panels, masks):
        mask = panel_mask & finite
        if stat == "identity":
            marks = _identity_marks(item, mask)
            if kind == "line":
                marks = marks.sort_values([GROUP_ID, "x"], kind="stable").reset_index(drop=True)
            if kind == "col":
                marks["xmin"] = marks["x"] - width / 2.0
                marks["xmax"] = marks["x"] + width / 2.0
                marks = _stack(marks)
        elif stat == "smooth":
            marks = _smooth_marks(item, mask, key, backend)
        elif stat in ("bin", "freqpoly"):
            marks = _binned_marks(item, mask, key, edges, polygon=stat == "freqpoly")
            if kind == "histogram":
                marks = _stack(marks)
        elif stat == "density":
            marks = _density_marks(item, mask, key, grid)
        elif stat == "count":
            marks = _count_marks(item, mask, key, width)
        elif stat == "boxplot":
            marks = _boxplot_marks(item, mask, key, width)
        else:
            raise UnsupportedStatError(stat, f"no statistic for geometry '{kind}'")
        if stat in COMPUTED_Y:
            marks = _transform_computed_y(marks, y_scale)
        out.append(marks)
    return out


def _encode(marks: pd.DataFrame, item: _LayerInput, scales: Mapping[str, VisualScale]) -> pd.DataFrame:
    marks = marks.copy()
    for channel, default in item.geom.defaults.items():
        if channel in item.fixed:
            marks[channel] = pd.Series([item.fixed[channel]] * len(marks), index=marks.index, dtype=object)
        elif channel in item.mapping and channel in marks.columns:
            marks[channel] = scales[channel].encode(marks[channel])
        else:
            marks[channel] = pd.Series([default] * len(marks), index=marks.index, dtype=object)
    extra = [ch for ch in VISUAL_CHANNELS if ch in marks.columns and ch not in item.geom.defaults]
    return marks.drop(columns=extra)


def _domain(frames: list[pd.DataFrame], columns: tuple[str, ...], outliers: bool = False):
    values = []
    for frame in frames:
        for column in columns:
            if column in frame.columns:
                values.append(pd.to_numeric(frame[column], errors="coerce").to_numpy(dtype=float))
        if outliers and "outliers" in frame.columns:
            values.extend(np.asarray(o, dtype=float) for o in frame["outliers"] if len(o))
    if not values:
        return None
    arr = np.concatenate(values)
    arr = arr[np.isfinite(arr)]
    if arr.size == 0:
        return None
    return (float(arr.min()), float(arr.max()))


def _union(domains) -> Optional[tuple[float, float]]:
    present = [d for d in domains if d is not None]
    if not present:
        return None
    return (min(d[0] for d in present), max(d[1] for d in present))


def _legends(
    scales: Mapping[str, VisualScale],
    inputs: list[_LayerInput],
) -> tuple[Legend, ...]:
    """Merge scales sharing a title and breaks into one legend each."""
    merged: dict[tuple, dict] = {}
    for channel, scale in scales.items():
        if scale.discrete and not scale.levels:
            continue
        continuous = not scale.discrete and channel in ("color", "fill")
        breaks = scale.breaks()
        key = (scale.title, tuple(label for label, _ in breaks), continuous)
        entry = merged.setdefault(
            key,
            {
                "channels": [],
                "values": [dict() for _ in breaks],
                "domain": None if scale.discrete else scale.domain,
                "positions": () if scale.discrete else tuple(scale.break_values()),
            },
        )
        entry["channels"].append(channel)
        for slot, (_, value) in zip(entry["values"], breaks):
            slot[channel] = value
    legends = []
    for (title, labels, continuous), entry in merged.items():
        channels = tuple(entry["channels"])
        geoms = tuple(
            dict.fromkeys(
                item.geom.kind
                for item in inputs
                if any(ch in item.mapping and ch in item.geom.defaults for ch in channels)
            )
        )
        legends.append(
            Legend(
                title=title,
                channels=channels,
                entries=tuple(
                    (label, MappingProxyType(values))
                    for label, values in zip(labels, entry["values"])
                ),
                continuous=continuous,
                geoms=geoms,
                domain=entry["domain"],
                positions=entry["positions"],
            )
        )
    return tuple(legends)


def build_plot(spec: PlotSpec, stats: StatsBackend | None = None) -> BuiltPlot:
    """Resolve ``spec`` into panels, marks, scales and legends.

    Args:
        spec (PlotSpec): Specification to resolve.
        stats (StatsBackend, optional): Curve-fitting backend for smoothing
            layers; defaults to :data:`layerspec.stats.DEFAULT_BACKEND`.

    Returns:
        BuiltPlot: Structural description of the plot.

    Raises:
        MissingColumnError: A mapping channel or facet key names a column
            absent from the data in scope.
        InvalidScaleError: A transform is unknown or does not suit the data.
        UnsupportedGeometryOptionError: A layer option does not suit its
            geometry.
        MissingAestheticError: A required channel is not mapped.
        UnsupportedStatError: A statistic cannot be evaluated.

    Note:
        Groups too small for their statistic are skipped with a
        :class:`~layerspec.errors.PlotAdvisory` warning; every other problem
        fails the whole build.
    """
    backend = stats if stats is not None else DEFAULT_BACKEND
    _resolve_default(spec)
    row_combos, col_combos = facet_grid(spec.data, spec.facet)
    panels = list(iter_panels(row_combos, col_combos))
    keys = tuple(spec.facet.rows) + tuple(spec.facet.cols)

    inputs = [_prepare_layer(spec, i, layer) for i, layer in enumerate(spec.layers)]

    x_scale = train_position(
        "x", [item.values["x"] for item in inputs if "x" in item.values], spec.scale_for("x")
    )
    y_scale = train_position(
        "y", [item.values["y"] for item in inputs if "y" in item.values], spec.scale_for("y")
    )
    for item in inputs:
        item.positions = _map_positions(item, x_scale, y_scale)
        if item.geom.kind == "jitter":
            _jitter(item, x_scale, y_scale)

    per_layer = []
    for item in inputs:
        masks = [
            key_mask(item.data, keys, tuple(p.row_values) + tuple(p.col_values)) for p in panels
        ]
        per_layer.append(_layer_marks(item, panels, masks, x_scale, y_scale, backend))

    scales: dict[str, VisualScale] = {}
    for channel in VISUAL_CHANNELS:
        mapped = [item.values[channel] for item in inputs if channel in item.mapping]
        if mapped:
            scales[channel] = train_visual(
                channel, _label_for(channel, spec, inputs), mapped, spec.scale_for(channel)
            )

    panel_builds = []
    for p_index, key in enumerate(panels):
        layers = tuple(
            LayerMarks(
                index=item.index,
                geom=item.geom.kind,
                marks=_encode(per_layer[l_index][p_index], item, scales),
            )
            for l_index, item in enumerate(inputs)
        )
        frames = [layer.marks for layer in layers]
        panel_builds.append(
            PanelBuild(
                key=key,
                layers=layers,
                x_domain=_domain(frames, X_EXTENT_COLUMNS),
                y_domain=_domain(frames, Y_EXTENT_COLUMNS, outliers=True),
            )
        )

    if not spec.facet.free_x:
        shared = _union(p.x_domain for p in panel_builds)
        panel_builds = [
            PanelBuild(p.key, p.layers, shared, p.y_domain) for p in panel_builds
        ]
    if not spec.facet.free_y:
        shared = _union(p.y_domain for p in panel_builds)
        panel_builds = [
            PanelBuild(p.key, p.layers, p.x_domain, shared) for p in panel_builds
        ]

    labels = {name: text for name, text in spec.labels.items()}
    labels["x"] = _label_for("x", spec, inputs)
    labels["y"] = _label_for("y", spec, inputs)
    return BuiltPlot(
        panels=tuple(panel_builds),
        nrows=len(row_combos),
        ncols=len(col_combos),
        x_scale=x_scale,
        y_scale=y_scale,
        scales=MappingProxyType(scales),
        legends=_legends(scales, inputs),
        labels=MappingProxyType(labels),
        theme=spec.theme,
        facet=spec.facet,
        layer_geoms=tuple(item.geom.kind for item in inputs),
    )
