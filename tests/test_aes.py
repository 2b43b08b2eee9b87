import numpy as np
import pandas as pd
import pytest

from layerspec.aes import ColumnRef, DerivedExpr, aes, col, expr, factor, merge_mappings
from layerspec.errors import MissingColumnError, PlotSpecError


def make_frame():
    return pd.DataFrame(
        {
            "gdp": [1000.0, 2000.0, 4000.0],
            "pop": [10.0, 20.0, 40.0],
            "name": ["a", "b", "c"],
        }
    )


def test_strings_become_column_refs_and_alias_is_canonical():
    mapping = aes(x="gdp", colour="name")
    assert list(mapping) == ["x", "color"]
    assert mapping["x"] == ColumnRef("gdp")
    assert mapping["colour"] == ColumnRef("name")


def test_unknown_channel_rejected():
    with pytest.raises(ValueError, match="Unknown aesthetic channel"):
        aes(wobble="gdp")


def test_constant_mapping_value_rejected():
    with pytest.raises(TypeError, match="fixed layer parameter"):
        aes(color=3)


def test_arithmetic_builds_derived_expression():
    term = col("gdp") * col("pop") / 1e3
    assert isinstance(term, DerivedExpr)
    assert term.columns() == ("gdp", "pop")
    assert term.label() == "(gdp * pop) / 1000"
    values = term.evaluate(make_frame(), "y")
    np.testing.assert_allclose(values.to_numpy(), [10.0, 40.0, 160.0])


def test_unary_operators_and_labels():
    frame = make_frame()
    logged = expr("log10", "gdp")
    assert logged.label() == "log10(gdp)"
    np.testing.assert_allclose(logged.evaluate(frame, "x"), np.log10(frame["gdp"]))
    assert (-col("pop")).label() == "-pop"


def test_factor_produces_categorical():
    values = factor("pop").evaluate(make_frame(), "color")
    assert isinstance(values.dtype, pd.CategoricalDtype)
    assert list(values.cat.categories) == [10.0, 20.0, 40.0]


def test_missing_column_names_channel_and_column():
    with pytest.raises(MissingColumnError) as info:
        (col("gdp") / col("missing")).evaluate(make_frame(), "x")
    assert info.value.channel == "x"
    assert info.value.column == "missing"


def test_text_arithmetic_raises_plot_spec_error():
    with pytest.raises(PlotSpecError, match="Cannot evaluate"):
        (col("name") - 1).evaluate(make_frame(), "y")


def test_operator_arity_checked():
    with pytest.raises(ValueError, match="takes 2 operand"):
        DerivedExpr("+", ("gdp",))
    with pytest.raises(ValueError, match="Unknown operator"):
        DerivedExpr("%", ("gdp", "pop"))


def test_merge_overrides_per_channel_and_keeps_order():
    default = aes(x="gdp", y="pop", color="name")
    merged = merge_mappings(default, aes(y="gdp", size="pop"))
    assert list(merged) == ["x", "y", "color", "size"]
    assert merged["y"] == ColumnRef("gdp")
    assert merged["x"] == ColumnRef("gdp")


def test_merge_none_removes_channel():
    default = aes(x="gdp", y="pop", color="name")
    merged = merge_mappings(default, aes(color=None))
    assert "color" not in merged
    assert list(default) == ["x", "y", "color"]
