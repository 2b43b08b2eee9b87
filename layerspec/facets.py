"""Facet partitioning: split rows into a grid of panels by categorical keys.

The grid has one panel per combination of a row-key combination and a
column-key combination (the Cartesian product of the distinct combinations
present), so some panels may be empty. Rows are assigned by exact equality
of their key values; missing values form their own ``NA`` level.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Sequence

import numpy as np
import pandas as pd

from .errors import MissingColumnError
from .scales import train_levels

FACET_SCALES = ("fixed", "free", "free_x", "free_y")


@dataclass(frozen=True)
class FacetSpec:
    """Row and column partition keys plus axis-sharing policy."""

    rows: tuple[str, ...] = ()
    cols: tuple[str, ...] = ()
    scales: str = "fixed"

    def __post_init__(self) -> None:
        if self.scales not in FACET_SCALES:
            raise ValueError(f"scales must be one of {FACET_SCALES}, got '{self.scales}'")

    @property
    def active(self) -> bool:
        return bool(self.rows or self.cols)

    @property
    def free_x(self) -> bool:
        return self.scales in ("free", "free_x")

    @property
    def free_y(self) -> bool:
        return self.scales in ("free", "free_y")

    def extend(
        self,
        rows: Sequence[str] = (),
        cols: Sequence[str] = (),
        scales: str | None = None,
    ) -> "FacetSpec":
        """Return a spec with extra keys appended (duplicates ignored)."""
        new_rows = tuple(dict.fromkeys(tuple(self.rows) + tuple(_as_keys(rows))))
        new_cols = tuple(dict.fromkeys(tuple(self.cols) + tuple(_as_keys(cols))))
        return FacetSpec(rows=new_rows, cols=new_cols, scales=scales or self.scales)


def _as_keys(keys: Sequence[str] | str) -> tuple[str, ...]:
    if isinstance(keys, str):
        return (keys,)
    return tuple(str(k) for k in keys)


def _normalize(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and np.isnan(value):
        return None
    if value is pd.NaT or value is pd.NA:
        return None
    return value


def _levels(series: pd.Series) -> list:
    levels = list(train_levels([series]))
    if series.isna().any():
        levels.append(None)
    return levels


def key_combinations(frame: pd.DataFrame, keys: Sequence[str], side: str) -> list[tuple]:
    """Return ordered distinct value combinations of ``keys`` present in ``frame``.

    Args:
        frame (pandas.DataFrame): Plot dataset.
        keys (Sequence[str]): Facet key columns for one side of the grid.
        side (str): ``"rows"`` or ``"cols"``; used in errors.

    Returns:
        list[tuple]: One tuple per combination, ordered by each key's level
        order. ``[()]`` when there are no keys.

    Raises:
        MissingColumnError: If a key is not a column of ``frame``.
    """
    if not keys:
        return [()]
    for key in keys:
        if key not in frame.columns:
            raise MissingColumnError(side, key, frame.columns)
    order = {key: {level: i for i, level in enumerate(_levels(frame[key]))} for key in keys}
    seen: set = set()
    combos: list[tuple] = []
    for raw in frame[list(keys)].itertuples(index=False, name=None):
        combo = tuple(_normalize(v) for v in raw)
        if combo not in seen:
            seen.add(combo)
            combos.append(combo)
    combos.sort(key=lambda c: tuple(order[k][v] for k, v in zip(keys, c)))
    return combos


def key_mask(frame: pd.DataFrame, keys: Sequence[str], values: tuple) -> np.ndarray:
    """Boolean mask of rows whose ``keys`` equal ``values`` exactly.

    Keys missing from ``frame`` are ignored, so a layer dataset without the
    facet columns appears in every panel.
    """
    mask = np.ones(len(frame), dtype=bool)
    for key, value in zip(keys, values):
        if key not in frame.columns:
            continue
        column = frame[key]
        if value is None:
            mask &= column.isna().to_numpy()
        else:
            mask &= (column == value).fillna(False).to_numpy(dtype=bool)
    return mask


@dataclass(frozen=True)
class PanelKey:
    """Grid position and key values of one panel."""

    row: int
    col: int
    row_values: tuple
    col_values: tuple

    @property
    def label(self) -> str:
        parts = [_value_label(v) for v in self.row_values + self.col_values]
        return ", ".join(parts)


def _value_label(value: Any) -> str:
    return "NA" if value is None else str(value)


def facet_grid(frame: pd.DataFrame, facet: FacetSpec) -> tuple[list[tuple], list[tuple]]:
    """Return the row and column key combinations for ``frame``.

    An empty ``frame`` yields a single empty panel.
    """
    if len(frame) == 0 and len(frame.columns) == 0:
        return [()], [()]
    row_combos = key_combinations(frame, facet.rows, "rows") or [()]
    col_combos = key_combinations(frame, facet.cols, "cols") or [()]
    return row_combos, col_combos


def iter_panels(row_combos: list[tuple], col_combos: list[tuple]) -> Iterator[PanelKey]:
    """Yield panels in row-major order."""
    for r, row_values in enumerate(row_combos):
        for c, col_values in enumerate(col_combos):
            yield PanelKey(row=r, col=c, row_values=row_values, col_values=col_values)


def panel_rows(frame: pd.DataFrame, facet: FacetSpec, panel: PanelKey) -> pd.DataFrame:
    """Return the subset of ``frame`` that belongs to ``panel``."""
    keys = tuple(facet.rows) + tuple(facet.cols)
    values = tuple(panel.row_values) + tuple(panel.col_values)
    return frame.loc[key_mask(frame, keys, values)]
