import numpy as np
import pandas as pd
import pytest

from layerspec.errors import MissingColumnError
from layerspec.facets import FacetSpec, facet_grid, iter_panels, key_combinations, panel_rows


def make_frame():
    return pd.DataFrame(
        {
            "g": ["b", "a", "b", None],
            "h": [1, 1, 2, 2],
            "v": [1.0, 2.0, 3.0, 4.0],
        }
    )


def test_extend_accumulates_and_dedupes_keys():
    facet = FacetSpec().extend(rows=["g"]).extend(rows="g", cols=("h",), scales="free_y")
    assert facet.rows == ("g",)
    assert facet.cols == ("h",)
    assert facet.free_y and not facet.free_x


def test_invalid_scales_value_rejected():
    with pytest.raises(ValueError, match="scales"):
        FacetSpec(scales="loose")


def test_combinations_are_sorted_with_missing_last():
    assert key_combinations(make_frame(), ["g"], "rows") == [("a",), ("b",), (None,)]


def test_missing_facet_key_raises():
    with pytest.raises(MissingColumnError) as info:
        key_combinations(make_frame(), ["nope"], "cols")
    assert info.value.channel == "cols"
    assert info.value.column == "nope"


def test_grid_is_cartesian_product_and_union_is_whole_dataset():
    frame = make_frame()
    facet = FacetSpec(rows=("g",), cols=("h",))
    rows, cols = facet_grid(frame, facet)
    panels = list(iter_panels(rows, cols))
    assert len(panels) == 3 * 2
    subsets = [panel_rows(frame, facet, p) for p in panels]
    assert sum(len(s) for s in subsets) == len(frame)
    assert sorted(np.concatenate([s["v"].to_numpy() for s in subsets])) == [1.0, 2.0, 3.0, 4.0]
    assert any(len(s) == 0 for s in subsets)


def test_panel_label_joins_key_values():
    rows, cols = facet_grid(make_frame(), FacetSpec(rows=("g",), cols=("h",)))
    labels = [p.label for p in iter_panels(rows, cols)]
    assert labels[0] == "a, 1"
    assert labels[-1] == "NA, 2"


def test_no_keys_give_single_panel():
    rows, cols = facet_grid(make_frame(), FacetSpec())
    assert (rows, cols) == ([()], [()])
