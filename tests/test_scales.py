import numpy as np
import pandas as pd
import pytest

from layerspec.errors import InvalidScaleError
from layerspec.plotting.style import DISCRETE_PALETTE, GRADIENT_HIGH, GRADIENT_LOW, NA_COLOR
from layerspec.scales import (
    ScaleTransform,
    apply_transform,
    train_levels,
    train_position,
    train_visual,
)


def test_log10_transform_of_positive_values():
    np.testing.assert_allclose(apply_transform([1.0, 10.0, 1000.0], "x", "log10"), [0.0, 1.0, 3.0])


@pytest.mark.parametrize(
    "name,values,n_bad",
    [("log10", [0.0, 1.0, -2.0], 2), ("sqrt", [4.0, -1.0], 1), ("log", [0.0], 1)],
)
def test_out_of_domain_values_raise_with_count(name, values, n_bad):
    with pytest.raises(InvalidScaleError) as info:
        apply_transform(values, "x", name)
    assert info.value.channel == "x"
    assert info.value.transform == name
    assert info.value.n_invalid == n_bad


def test_missing_values_pass_through_transform():
    out = apply_transform([np.nan, 100.0], "y", "log10")
    assert np.isnan(out[0])
    assert out[1] == pytest.approx(2.0)


def test_unknown_transform_raises():
    with pytest.raises(InvalidScaleError, match="unknown transform"):
        apply_transform([1.0], "x", "logit")


def test_scale_transform_canonicalizes_channel():
    assert ScaleTransform("colour", "sqrt").channel == "color"


def test_levels_keep_categorical_order_and_sort_others():
    cat = pd.Series(pd.Categorical(["b", "a"], categories=["c", "b", "a"]))
    assert train_levels([cat]) == ("b", "a")
    assert train_levels([pd.Series(["z", "x", "y", "x"])]) == ("x", "y", "z")


def test_discrete_position_maps_to_integer_slots():
    scale = train_position("x", [pd.Series(["b", "a", "b"])])
    assert scale.discrete
    np.testing.assert_allclose(scale.map(pd.Series(["a", "b"])), [1.0, 2.0])
    assert scale.tick_label(2.0) == "b"


def test_discrete_position_rejects_transform():
    with pytest.raises(InvalidScaleError, match="discrete"):
        train_position("x", [pd.Series(["a", "b"])], "log10")


def test_mixed_discrete_and_continuous_rejected():
    with pytest.raises(InvalidScaleError, match="mixes"):
        train_position("x", [pd.Series(["a"]), pd.Series([1.0])])


def test_date_positions_and_labels():
    dates = pd.Series(pd.to_datetime(["2000-01-01", "2000-01-11"]))
    scale = train_position("x", [dates])
    assert scale.dates
    mapped = scale.map(dates)
    assert mapped[1] - mapped[0] == pytest.approx(10.0)
    assert scale.tick_label(mapped[0]) == "2000-01-01"


def test_log_position_tick_labels_in_data_units():
    scale = train_position("x", [pd.Series([10.0, 1000.0])], "log10")
    assert scale.tick_label(2.0) == "100"


def test_discrete_colour_uses_palette_in_level_order():
    scale = train_visual("color", "continent", [pd.Series(["Asia", "Africa", "Asia"])])
    assert scale.encode(["Africa", "Asia", None]) == [DISCRETE_PALETTE[0], DISCRETE_PALETTE[1], NA_COLOR]
    assert [label for label, _ in scale.breaks()] == ["Africa", "Asia"]


def test_continuous_colour_interpolates_gradient():
    scale = train_visual("color", "pop", [pd.Series([0.0, 5.0, 10.0])])
    low, mid, high = scale.encode([0.0, 5.0, 10.0])
    assert low == GRADIENT_LOW.lower()
    assert high == GRADIENT_HIGH.lower()
    assert mid not in (low, high)


def test_continuous_shape_rejected():
    with pytest.raises(InvalidScaleError, match="shape"):
        train_visual("shape", "pop", [pd.Series([1.0, 2.0])])


def test_size_scale_spans_configured_range():
    scale = train_visual("size", "pop", [pd.Series([1.0, 3.0])])
    small, large = scale.encode([1.0, 3.0])
    assert small < large
