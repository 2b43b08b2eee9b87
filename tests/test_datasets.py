import pandas as pd
import pytest

from layerspec.datasets import (
    CONTINENTS,
    CsvDatasetProvider,
    InMemoryDatasetProvider,
    as_frame,
    demo_economies,
    demo_provider,
)


def test_demo_economies_is_seeded():
    pd.testing.assert_frame_equal(demo_economies(), demo_economies())
    assert not demo_economies(seed=1).equals(demo_economies())


def test_demo_economies_columns_and_years(economies):
    assert list(economies.columns) == [
        "country", "continent", "year", "decade", "pop", "gdp_per_cap", "life_exp", "date",
    ]
    assert economies["year"].min() == 1952
    assert economies["year"].max() == 2007
    assert tuple(economies["continent"].cat.categories) == CONTINENTS
    assert economies[["gdp_per_cap", "life_exp", "pop"]].notna().all().all()


def test_as_frame_passes_dataframes_through(three_points):
    assert as_frame(three_points) is three_points


def test_as_frame_rejects_rows_that_are_not_mappings():
    with pytest.raises(TypeError, match="mappings"):
        as_frame([{"a": 1}, (2,)])
    with pytest.raises(TypeError):
        as_frame("a,b\n1,2")


def test_in_memory_provider_lists_and_serves():
    provider = InMemoryDatasetProvider({"rows": [{"a": 1}], "frame": pd.DataFrame({"b": [2]})})
    assert provider.names() == ["frame", "rows"]
    assert provider.get("rows")["a"].tolist() == [1]
    assert "economies" in demo_provider().names()


def test_csv_provider_reads_and_caches(tmp_path):
    pd.DataFrame({"when": ["2001-01-01", "2002-01-01"], "v": [1.0, 2.0]}).to_csv(
        tmp_path / "series.csv", index=False
    )
    provider = CsvDatasetProvider(str(tmp_path), parse_dates={"series": ["when"]})
    assert provider.names() == ["series"]
    frame = provider.get("series")
    assert pd.api.types.is_datetime64_any_dtype(frame["when"])
    assert provider.get("series") is frame


def test_csv_provider_unknown_name(tmp_path):
    provider = CsvDatasetProvider(str(tmp_path / "missing"))
    assert provider.names() == []
    with pytest.raises(KeyError, match="Unknown dataset"):
        provider.get("series")
