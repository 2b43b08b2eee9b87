"""Tests for the immutable specification builder."""

import pandas as pd
import pytest

from layerspec import PlotSpec, StatSpec, aes, demo_provider, plot_spec
from layerspec.aes import ColumnRef
from layerspec.plotting.themes import THEMES, Theme


def test_new_spec_has_no_layers_scales_or_facets(three_points):
    spec = plot_spec(three_points, x="a", y="b")
    assert spec.layers == ()
    assert spec.scales == ()
    assert not spec.facet.active
    assert spec.theme == THEMES["grey"]
    assert spec.mapping["x"] == ColumnRef("a")


def test_construction_does_not_check_columns(three_points):
    spec = plot_spec(three_points, x="not_there_yet")
    assert spec.mapping["x"] == ColumnRef("not_there_yet")


def test_sequence_of_mappings_is_accepted():
    spec = plot_spec([{"a": 1, "b": 2}, {"a": 2, "b": 3}], x="a", y="b")
    assert list(spec.data.columns) == ["a", "b"]
    assert len(spec.data) == 2


def test_non_tabular_data_rejected():
    with pytest.raises(TypeError):
        plot_spec(42, x="a")


def test_extensions_return_new_specs_and_leave_base_untouched(three_points):
    base = plot_spec(three_points, x="a", y="b")
    layered = base.add_layer("point")
    scaled = layered.add_scale("x", "log10")
    faceted = scaled.add_facet(cols="a")
    themed = faceted.set_theme("bw")
    labelled = themed.set_labels(title="Three points")

    assert base.layers == ()
    assert len(layered.layers) == 1
    assert layered.scales == ()
    assert len(scaled.scales) == 1
    assert not scaled.facet.active
    assert faceted.theme.name == "grey"
    assert themed.labels == {}
    assert labelled.labels["title"] == "Three points"
    assert labelled.data is base.data


def test_unknown_geometry_fails_immediately(three_points):
    with pytest.raises(ValueError, match="Unsupported geometry kind 'sparkle'"):
        plot_spec(three_points, x="a").add_layer("sparkle")


@pytest.mark.parametrize(
    "params",
    [{"binwidth": 0}, {"binwidth": -1.0}, {"bins": 0}, {"bins": 2.5}, {"alpha": 1.5}],
)
def test_out_of_range_numeric_options_fail_immediately(three_points, params):
    with pytest.raises(ValueError):
        plot_spec(three_points, x="a").add_layer("histogram", **params)


def test_later_scale_for_same_channel_replaces_earlier(three_points):
    spec = plot_spec(three_points, x="a").add_scale("x", "log10").add_scale("y", "sqrt").add_scale("x", "sqrt")
    assert [(s.channel, s.transform) for s in spec.scales] == [("y", "sqrt"), ("x", "sqrt")]
    assert spec.scale_for("x") == "sqrt"
    assert spec.scale_for("color") == "identity"


def test_unknown_scale_transform_is_accepted_until_render(three_points):
    spec = plot_spec(three_points, x="a").add_scale("x", "logit")
    assert spec.scales[0].transform == "logit"


def test_facet_keys_accumulate(three_points):
    spec = plot_spec(three_points).add_facet(rows="a").add_facet(cols=["b"], scales="free")
    assert spec.facet.rows == ("a",)
    assert spec.facet.cols == ("b",)
    assert spec.facet.scales == "free"


def test_theme_replacement_is_wholesale(three_points):
    custom = Theme(name="custom", panel_background="#FAFAFA", base_size=20.0)
    spec = plot_spec(three_points).set_theme(custom).set_theme("minimal")
    assert spec.theme == THEMES["minimal"]
    assert spec.theme.base_size == THEMES["minimal"].base_size


def test_unknown_theme_rejected(three_points):
    with pytest.raises(ValueError, match="Unknown theme"):
        plot_spec(three_points).set_theme("neon")


def test_labels_merge_and_channel_alias(three_points):
    spec = plot_spec(three_points).set_labels(title="T", colour="Continent").set_labels(x="X")
    assert dict(spec.labels) == {"title": "T", "color": "Continent", "x": "X"}


def test_layer_records_overrides(three_points):
    spec = plot_spec(three_points, x="a", y="b").add_layer(
        "smooth", mapping=aes(color="a"), stat="lm", inherit_aes=False, color="black"
    )
    layer = spec.layers[0]
    assert layer.stat == StatSpec(method="lm")
    assert layer.params == {"color": "black"}
    assert layer.inherit_aes is False
    assert layer.mapping["color"] == ColumnRef("a")


def test_stat_spec_validation():
    with pytest.raises(ValueError, match="level"):
        StatSpec(level=1.5)
    with pytest.raises(ValueError, match="span"):
        StatSpec(span=0.0)
    with pytest.raises(ValueError, match="n must be an integer"):
        StatSpec(n=2.5)


def test_from_dataset_uses_provider():
    spec = PlotSpec.from_dataset(demo_provider(), "economies", x="gdp_per_cap", y="life_exp")
    assert {"gdp_per_cap", "life_exp", "continent"} <= set(spec.data.columns)
    assert isinstance(spec.data, pd.DataFrame)


def test_unknown_dataset_name_raises():
    with pytest.raises(KeyError, match="Unknown dataset"):
        PlotSpec.from_dataset(demo_provider(), "penguins")


@pytest.mark.parametrize("seed", [-1, 1.5, True])
def test_jitter_seed_must_be_non_negative_integer(three_points, seed):
    with pytest.raises(ValueError, match="seed"):
        plot_spec(three_points, x="a", y="b").add_layer("jitter", seed=seed)
