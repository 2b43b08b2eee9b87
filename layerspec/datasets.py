"""Dataset providers: named, pre-cleaned tabular datasets.

The plotting core only needs read access to rows and columns by name, so a
provider is anything with ``get(name)`` and ``names()``. Providers are passed
in explicitly (``PlotSpec.from_dataset``); nothing is looked up from ambient
state.
"""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from typing import Protocol

import numpy as np
import pandas as pd


class DatasetProvider(Protocol):
    def get(self, name: str) -> pd.DataFrame:
        ...

    def names(self) -> list[str]:
        ...


def as_frame(data) -> pd.DataFrame:
    """Return ``data`` as a DataFrame.

    Args:
        data: A :class:`pandas.DataFrame` (returned as is, never modified) or
            a sequence of row mappings (column name → scalar).

    Returns:
        pandas.DataFrame: Tabular view of the rows.

    Raises:
        TypeError: If ``data`` is neither a DataFrame nor a sequence of
            mappings.
    """
    if isinstance(data, pd.DataFrame):
        return data
    if isinstance(data, Sequence) and not isinstance(data, (str, bytes)):
        rows = list(data)
        if not all(isinstance(row, Mapping) for row in rows):
            raise TypeError("Dataset rows must be mappings of column name to value")
        return pd.DataFrame.from_records(rows)
    raise TypeError(
        f"Dataset must be a pandas DataFrame or a sequence of row mappings, got {type(data)!r}"
    )


class InMemoryDatasetProvider:
    """Serve DataFrames registered under names."""

    def __init__(self, datasets: Mapping[str, object]):
        self._datasets = {str(k): as_frame(v) for k, v in datasets.items()}

    def get(self, name: str) -> pd.DataFrame:
        try:
            return self._datasets[name]
        except KeyError:
            raise KeyError(
                f"Unknown dataset '{name}'. Available: {sorted(self._datasets)}"
            ) from None

    def names(self) -> list[str]:
        return sorted(self._datasets)


class CsvDatasetProvider:
    """Serve ``<name>.csv`` files from one directory, loaded once each."""

    def __init__(self, directory: str, parse_dates: Mapping[str, Sequence[str]] | None = None):
        self.directory = directory
        self._parse_dates = dict(parse_dates or {})
        self._cache: dict[str, pd.DataFrame] = {}

    def get(self, name: str) -> pd.DataFrame:
        if name not in self._cache:
            path = os.path.join(self.directory, f"{name}.csv")
            if not os.path.exists(path):
                raise KeyError(f"Unknown dataset '{name}': {path} does not exist")
            self._cache[name] = pd.read_csv(path, parse_dates=list(self._parse_dates.get(name, [])))
        return self._cache[name]

    def names(self) -> list[str]:
        if not os.path.isdir(self.directory):
            return []
        return sorted(
            os.path.splitext(f)[0] for f in os.listdir(self.directory) if f.endswith(".csv")
        )


CONTINENTS = ("Africa", "Americas", "Asia", "Europe", "Oceania")
_CONTINENT_BASE = {
    # (log10 GDP per capita in 1952, annual growth, life expectancy in 1952)
    "Africa": (3.0, 0.010, 39.0),
    "Americas": (3.5, 0.014, 53.0),
    "Asia": (3.1, 0.024, 46.0),
    "Europe": (3.8, 0.018, 64.0),
    "Oceania": (4.0, 0.015, 69.0),
}
_COUNTRIES_PER_CONTINENT = {"Africa": 12, "Americas": 8, "Asia": 10, "Europe": 9, "Oceania": 2}


def demo_economies(seed: int = 1952) -> pd.DataFrame:
    """Synthetic country-year panel used by the walkthrough.

    Columns: ``country``, ``continent`` (categorical), ``year`` (1952-2007,
    every 5 years), ``decade``, ``pop``, ``gdp_per_cap``, ``life_exp`` and
    ``date`` (1 July of ``year``). Values are generated from a seeded random
    generator, so the frame is identical on every call; they are illustrative,
    not observed data.
    """
    rng = np.random.default_rng(seed)
    years = np.arange(1952, 2008, 5)
    records = []
    for continent in CONTINENTS:
        log_gdp0, growth, life0 = _CONTINENT_BASE[continent]
        for i in range(_COUNTRIES_PER_CONTINENT[continent]):
            country = f"{continent[:3]}-{i + 1:02d}"
            offset = rng.normal(0.0, 0.3)
            pop0 = 10 ** rng.uniform(5.5, 8.0)
            for year in years:
                t = year - 1952
                log_gdp = log_gdp0 + offset + growth * t + rng.normal(0.0, 0.05)
                life = life0 + 8.0 * offset + 0.3 * t * (1.0 - t / 150.0) + rng.normal(0.0, 1.5)
                records.append(
                    {
                        "country": country,
                        "continent": continent,
                        "year": int(year),
                        "decade": int(year // 10 * 10),
                        "pop": float(pop0 * (1.018 ** t)),
                        "gdp_per_cap": float(10**log_gdp),
                        "life_exp": float(min(life, 84.0)),
                    }
                )
    frame = pd.DataFrame.from_records(records)
    frame["continent"] = pd.Categorical(frame["continent"], categories=list(CONTINENTS))
    frame["date"] = pd.to_datetime(frame["year"].astype(str) + "-07-01")
    return frame


def demo_provider() -> InMemoryDatasetProvider:
    """Provider serving the seeded demo datasets (``economies``)."""
    return InMemoryDatasetProvider({"economies": demo_economies()})
