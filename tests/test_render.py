"""End-to-end build and render properties of plot specifications."""

import warnings

import numpy as np
import pandas as pd
import pytest

from layerspec import (
    InvalidScaleError,
    MissingAestheticError,
    MissingColumnError,
    PlotAdvisory,
    StatSpec,
    UnsupportedGeometryOptionError,
    UnsupportedStatError,
    col,
    plot_spec,
)
from layerspec.plotting.style import DISCRETE_PALETTE
from layerspec.schema import ROW_ID


def scatter(economies):
    return plot_spec(economies, x="gdp_per_cap", y="life_exp").add_layer("point")


def test_three_points_end_to_end(three_points):
    image = plot_spec(three_points, x="a", y="b").add_layer("point").render()
    panel = image.plot.panel(0, 0)
    assert panel.x_domain == (1.0, 3.0)
    assert panel.y_domain == (2.0, 6.0)
    marks = panel.layers[0].marks
    assert marks[["x", "y"]].to_numpy().tolist() == [[1.0, 2.0], [2.0, 4.0], [3.0, 6.0]]
    pixels = image.to_array()
    assert pixels.ndim == 3 and pixels.shape[2] == 4


def test_extending_a_spec_does_not_change_its_render(economies):
    base = scatter(economies)
    before = base.render().to_array()
    base.add_layer("smooth", stat="lm").add_scale("x", "log10").set_theme("dark")
    after = base.render().to_array()
    np.testing.assert_array_equal(before, after)


def test_render_is_deterministic(economies):
    spec = (
        scatter(economies)
        .add_layer("jitter", mapping={"color": "continent"}, width=0.1)
        .add_layer("smooth", stat=StatSpec(method="lm"))
    )
    first, second = spec.build(), spec.build()
    pd.testing.assert_frame_equal(first.marks(), second.marks())
    np.testing.assert_array_equal(spec.render().to_array(), spec.render().to_array())


def test_fixed_colour_applies_to_its_layer_only(economies):
    spec = (
        plot_spec(economies, x="gdp_per_cap", y="life_exp", color="continent")
        .add_layer("point")
        .add_layer("smooth", stat="lm", color="black")
    )
    built = spec.build()
    points = built.layer_marks(0)
    smooth = built.layer_marks(1)
    assert set(points["color"]) == set(DISCRETE_PALETTE[:5])
    assert set(smooth["color"]) == {"black"}
    # the fixed colour also removes continent grouping from the fit
    assert smooth[".group"].nunique() == 1


def test_facet_partition_is_exact_and_complete(economies):
    built = scatter(economies).add_facet(cols="decade").build()
    assert built.ncols == economies["decade"].nunique()
    seen = []
    for panel in built.panels:
        rows = panel.layers[0].marks[ROW_ID].to_numpy()
        (decade,) = panel.key.col_values
        assert (economies["decade"].to_numpy()[rows] == decade).all()
        seen.extend(rows.tolist())
    assert sorted(seen) == list(range(len(economies)))


def test_layer_data_without_facet_columns_repeats_in_every_panel(economies):
    reference = pd.DataFrame({"gdp_per_cap": [1000.0, 10000.0], "life_exp": [50.0, 70.0]})
    built = scatter(economies).add_layer("line", data=reference).add_facet(cols="continent").build()
    for panel in built.panels:
        assert len(panel.layers[1].marks) == 2


def test_missing_column_names_channel_and_column(economies):
    spec = plot_spec(economies, x="nonexistent_column", y="life_exp").add_layer("point")
    with pytest.raises(MissingColumnError) as info:
        spec.render()
    assert info.value.channel == "x"
    assert info.value.column == "nonexistent_column"
    assert "nonexistent_column" in str(info.value)


def test_missing_facet_column_raises(economies):
    with pytest.raises(MissingColumnError, match="'rows'"):
        scatter(economies).add_facet(rows="planet").render()


def test_log_scale_over_zero_raises(economies):
    data = economies.assign(gdp_per_cap=economies["gdp_per_cap"].where(economies.index != 0, 0.0))
    spec = plot_spec(data, x="gdp_per_cap", y="life_exp").add_layer("point").add_scale("x", "log10")
    with pytest.raises(InvalidScaleError) as info:
        spec.render()
    assert info.value.channel == "x"
    assert info.value.transform == "log10"
    assert info.value.n_invalid == 1


def test_unknown_transform_raises_at_render(three_points):
    spec = plot_spec(three_points, x="a", y="b").add_layer("point").add_scale("x", "logit")
    with pytest.raises(InvalidScaleError, match="unknown transform"):
        spec.build()


def test_log_scale_transforms_positions_but_labels_data_units(three_points):
    spec = plot_spec(three_points.assign(a=[10.0, 100.0, 1000.0]), x="a", y="b").add_layer("point")
    built = spec.add_scale("x", "log10").build()
    assert built.panel(0, 0).x_domain == pytest.approx((1.0, 3.0))
    assert built.x_scale.tick_label(2.0) == "100"


def test_unsupported_option_for_geometry(three_points):
    spec = plot_spec(three_points, x="a", y="b").add_layer("point", binwidth=0.5)
    with pytest.raises(UnsupportedGeometryOptionError) as info:
        spec.render()
    assert (info.value.geom, info.value.option) == ("point", "binwidth")


def test_stat_on_non_smooth_geometry_rejected(three_points):
    spec = plot_spec(three_points, x="a", y="b").add_layer("line", stat="lm")
    with pytest.raises(UnsupportedGeometryOptionError, match="'stat'"):
        spec.build()


def test_required_channel_missing(three_points):
    spec = plot_spec(three_points, x="a").add_layer("point")
    with pytest.raises(MissingAestheticError, match="'y'"):
        spec.build()


def test_inherit_aes_false_ignores_default_mapping(three_points):
    spec = plot_spec(three_points, x="a", y="b").add_layer("point", inherit_aes=False)
    with pytest.raises(MissingAestheticError):
        spec.build()


def test_loess_with_polynomial_formula_rejected(economies):
    spec = scatter(economies).add_layer("smooth", stat=StatSpec(method="loess", formula="y ~ poly(x, 2)"))
    with pytest.raises(UnsupportedStatError):
        spec.build()


def test_empty_dataset_renders_empty_panel(economies):
    empty = economies[economies["year"] < 0]
    image = plot_spec(empty, x="gdp_per_cap", y="life_exp").add_layer("point").render()
    panel = image.plot.panel(0, 0)
    assert panel.is_empty
    assert panel.x_domain is None
    assert image.to_array().size > 0


@pytest.mark.parametrize("facet", [False, True])
def test_empty_list_of_records_renders_empty_panel(facet):
    rows = [{"x": 1.0, "y": 2.0, "g": "a"}, {"x": 2.0, "y": 3.0, "g": "b"}]
    spec = plot_spec([r for r in rows if r["x"] > 10], x="x", y="y").add_layer("point")
    if facet:
        spec = spec.add_facet(cols="g")
    image = spec.render()
    assert len(image.plot.panels) == 1
    assert image.plot.panel(0, 0).is_empty
    assert image.to_array().size > 0


def test_histogram_without_bins_warns(economies):
    spec = plot_spec(economies, x="life_exp").add_layer("histogram")
    with pytest.warns(PlotAdvisory, match="bins=30"):
        built = spec.build()
    bars = built.layer_marks(0)
    assert len(bars) == 30
    assert bars["count"].sum() == len(economies)


def test_histogram_with_binwidth_is_quiet(economies):
    spec = plot_spec(economies, x="life_exp").add_layer("histogram", binwidth=5)
    with warnings.catch_warnings():
        warnings.simplefilter("error", PlotAdvisory)
        spec.build()


def test_smooth_without_stat_defaults_to_loess(economies):
    spec = scatter(economies).add_layer("smooth")
    with pytest.warns(PlotAdvisory, match="loess"):
        built = spec.build()
    curve = built.layer_marks(1)
    assert len(curve) == 80
    assert (curve["ymin"] <= curve["ymax"]).all()


def test_small_groups_are_skipped_with_advisory():
    data = pd.DataFrame(
        {"x": [1.0, 2.0, 3.0, 4.0, 5.0, 1.0], "y": [1.0, 2.0, 2.5, 4.0, 5.5, 9.0], "g": list("aaaaab")}
    )
    spec = plot_spec(data, x="x", y="y", color="g").add_layer("smooth", stat="lm")
    with pytest.warns(PlotAdvisory, match="skipped group 2"):
        built = spec.build()
    assert built.layer_marks(0)[".group"].unique().tolist() == [1]


def test_stacked_bars_by_fill(economies):
    latest = economies[economies["year"] == 2007]
    built = plot_spec(latest, x="continent", fill="continent").add_layer("bar").build()
    bars = built.layer_marks(0)
    assert bars["ymax"].sum() == len(latest)
    assert bars["x"].tolist() == [1.0, 2.0, 3.0, 4.0, 5.0]
    assert built.x_scale.levels == ("Africa", "Americas", "Asia", "Europe", "Oceania")


def test_derived_expression_column(economies):
    built = plot_spec(economies, x="year", y=col("gdp_per_cap") * col("pop")).add_layer("point").build()
    expected = (economies["gdp_per_cap"] * economies["pop"]).to_numpy()
    np.testing.assert_allclose(built.layer_marks(0)["y"].to_numpy(), expected)
    assert built.labels["y"] == "gdp_per_cap * pop"


def test_boxplot_per_discrete_x(economies):
    built = plot_spec(economies, x="continent", y="life_exp").add_layer("boxplot").build()
    boxes = built.layer_marks(0)
    assert len(boxes) == 5
    assert (boxes["lower"] <= boxes["middle"]).all()
    assert (boxes["middle"] <= boxes["upper"]).all()


def test_free_scales_give_per_panel_domains(economies):
    built = scatter(economies).add_facet(cols="continent", scales="free_x").build()
    x_domains = {panel.x_domain for panel in built.panels}
    y_domains = {panel.y_domain for panel in built.panels}
    assert len(x_domains) == len(built.panels)
    assert len(y_domains) == 1


def test_legend_merges_colour_and_fill_with_same_title(economies):
    spec = plot_spec(economies, x="life_exp", color="continent", fill="continent").add_layer(
        "density", alpha=0.2
    )
    built = spec.build()
    assert len(built.legends) == 1
    legend = built.legends[0]
    assert legend.title == "continent"
    assert legend.channels == ("color", "fill")
    assert [label for label, _ in legend.entries][:2] == ["Africa", "Americas"]


def test_continuous_colour_gives_colour_bar_legend(economies):
    built = scatter(economies).add_layer("point", mapping={"color": "pop"}).build()
    (legend,) = built.legends
    assert legend.continuous
    assert legend.domain is not None


def test_themes_render(economies):
    spec = scatter(economies).set_labels(title="Life expectancy", caption="Synthetic data")
    arrays = {name: spec.set_theme(name).render().to_array() for name in ("grey", "bw", "paper")}
    assert not np.array_equal(arrays["grey"], arrays["bw"])


def test_image_save_writes_each_format(three_points, tmp_path):
    image = plot_spec(three_points, x="a", y="b").add_layer("point").render()
    first = image.save(tmp_path / "three", formats=("png", "svg"))
    assert first == tmp_path / "three.png"
    assert (tmp_path / "three.png").stat().st_size > 0
    assert (tmp_path / "three.svg").exists()


def test_image_save_rejects_unknown_format(three_points, tmp_path):
    image = plot_spec(three_points, x="a", y="b").add_layer("point").render()
    with pytest.raises(ValueError, match="Unsupported extension"):
        image.save(tmp_path / "three", formats=("bmp",))


class FlatBackend:
    def __init__(self):
        self.calls = 0

    def fit_curve(self, x, y, stat):
        self.calls += 1
        grid = np.linspace(x.min(), x.max(), 3)
        return pd.DataFrame({"x": grid, "y": np.full(3, y.mean()), "ymin": np.nan, "ymax": np.nan})


def test_injected_stats_backend_is_used(economies):
    backend = FlatBackend()
    spec = plot_spec(economies, x="gdp_per_cap", y="life_exp", color="continent").add_layer(
        "smooth", stat="lm"
    )
    built = spec.build(stats=backend)
    assert backend.calls == 5
    curve = built.layer_marks(0)
    assert len(curve) == 15
    assert curve["ymin"].isna().all()
    spec.render(stats=FlatBackend())
