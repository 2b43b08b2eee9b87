import numpy as np
import pytest

from layerspec.errors import UnsupportedStatError
from layerspec.spec import StatSpec
from layerspec.stats import (
    DEFAULT_BACKEND,
    InsufficientDataError,
    fit_linear_model,
    fit_loess,
    parse_formula,
)


def test_parse_supported_formulas():
    assert parse_formula("y~x").text == "y ~ x"
    assert parse_formula("y ~ log(x)").basis == "log"
    poly = parse_formula("y ~ poly(x, 3)")
    assert poly.basis == "poly"
    assert poly.n_params == 4


@pytest.mark.parametrize("text", ["x ~ y", "y ~ exp(x)", "y x", "y ~ poly(x, 0)"])
def test_unsupported_formulas_raise(text):
    with pytest.raises(UnsupportedStatError):
        parse_formula(text)


def test_linear_fit_recovers_exact_line():
    x = np.array([1.0, 2.0, 3.0, 4.0])
    y = 3.0 + 2.0 * x
    fit = fit_linear_model(x, y, parse_formula("y ~ x"))
    np.testing.assert_allclose(fit.coef, [3.0, 2.0], atol=1e-10)
    assert fit.r2 == pytest.approx(1.0)
    curve = fit.predict(np.array([0.0, 10.0]))
    np.testing.assert_allclose(curve["y"], [3.0, 23.0], atol=1e-9)
    np.testing.assert_allclose(curve["ymin"], curve["y"], atol=1e-6)


def test_linear_band_contains_fit_and_widens_away_from_mean():
    rng = np.random.default_rng(3)
    x = np.linspace(0.0, 10.0, 40)
    y = 1.0 + 0.5 * x + rng.normal(0.0, 0.4, x.size)
    curve = fit_linear_model(x, y, parse_formula("y ~ x")).predict(np.array([0.0, 5.0, 10.0]))
    assert np.all(curve["ymin"] < curve["y"])
    assert np.all(curve["y"] < curve["ymax"])
    width = (curve["ymax"] - curve["ymin"]).to_numpy()
    assert width[1] < width[0]
    assert width[1] < width[2]


def test_poly_fit_recovers_quadratic():
    x = np.linspace(-2.0, 2.0, 9)
    y = 1.0 - x + 0.5 * x**2
    fit = fit_linear_model(x, y, parse_formula("y ~ poly(x, 2)"))
    np.testing.assert_allclose(fit.coef, [1.0, -1.0, 0.5], atol=1e-9)


def test_log_formula_needs_positive_x():
    with pytest.raises(UnsupportedStatError, match="x > 0"):
        fit_linear_model(np.array([0.0, 1.0, 2.0]), np.array([1.0, 2.0, 3.0]), parse_formula("y ~ log(x)"))


def test_linear_fit_with_too_few_points_raises():
    with pytest.raises(InsufficientDataError):
        fit_linear_model(np.array([1.0, 2.0]), np.array([1.0, 2.0]), parse_formula("y ~ x"))


def test_loess_follows_smooth_trend():
    x = np.linspace(0.0, 6.0, 60)
    y = np.sin(x)
    grid = np.linspace(0.5, 5.5, 11)
    curve = fit_loess(x, y, grid, span=0.2)
    np.testing.assert_allclose(curve["y"], np.sin(grid), atol=0.05)
    assert np.all(curve["ymax"] >= curve["ymin"])


def test_loess_needs_enough_points():
    with pytest.raises(InsufficientDataError):
        fit_loess(np.array([1.0, 2.0, 3.0]), np.array([1.0, 2.0, 3.0]), np.array([1.0, 2.0]))


def test_backend_samples_curve_over_observed_range():
    x = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
    y = 2.0 * x
    curve = DEFAULT_BACKEND.fit_curve(x, y, StatSpec(method="lm", n=5, se=False))
    assert list(curve.columns) == ["x", "y", "ymin", "ymax"]
    np.testing.assert_allclose(curve["x"], x)
    np.testing.assert_allclose(curve["y"], y, atol=1e-9)
    assert curve["ymin"].isna().all()


def test_backend_rejects_loess_with_polynomial_formula():
    x = np.arange(10.0)
    with pytest.raises(UnsupportedStatError, match="local regression"):
        DEFAULT_BACKEND.fit_curve(x, x, StatSpec(method="loess", formula="y ~ poly(x, 2)"))


def test_backend_rejects_unknown_method():
    x = np.arange(10.0)
    with pytest.raises(UnsupportedStatError, match="expected one of"):
        DEFAULT_BACKEND.fit_curve(x, x, StatSpec(method="gam"))
