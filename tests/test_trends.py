from __future__ import annotations

import math

import numpy as np
import pytest

from unitprice.models import FittedPoint, PricePoint, TrendType
from unitprice.trends import fit_trend, linear_coefficients, quadratic_coefficients


def test_linear_fit_matches_ols_on_statewide_scenario(points_factory):
    points = points_factory({2020: 100, 2021: 110, 2022: 121})
    xs = np.array([p.year for p in points], dtype=float)
    ys = np.array([p.price for p in points], dtype=float)

    slope, intercept = linear_coefficients(xs, ys)
    assert slope == pytest.approx(10.5)
    assert intercept == pytest.approx((331 - 10.5 * 6063) / 3)

    fitted = fit_trend(points, "linear")
    assert [p.x for p in fitted] == [2020, 2021, 2022]
    assert [p.y for p in fitted] == pytest.approx([99.8333333, 110.3333333, 120.8333333])


def test_linear_refit_of_fitted_line_is_stable(points_factory):
    points = points_factory({2018: 40.0, 2019: 47.5, 2020: 44.0, 2021: 52.25, 2022: 58.0})
    first = fit_trend(points, TrendType.LINEAR)
    refit = fit_trend([PricePoint(year=p.x, price=p.y) for p in first], TrendType.LINEAR)

    xs = np.array([p.x for p in first], dtype=float)
    slope_a, intercept_a = linear_coefficients(xs, np.array([p.y for p in first]))
    slope_b, intercept_b = linear_coefficients(xs, np.array([p.y for p in refit]))
    assert slope_b == pytest.approx(slope_a)
    assert intercept_b == pytest.approx(intercept_a)
    assert [p.y for p in refit] == pytest.approx([p.y for p in first])


def test_linear_all_equal_years_propagates_nan():
    slope, intercept = linear_coefficients(np.array([2020.0, 2020.0]), np.array([1.0, 2.0]))
    assert math.isnan(slope)
    assert math.isnan(intercept)


def test_exponential_fit_is_linear_fit_in_log_space(points_factory):
    points = points_factory({2019: 12.0, 2020: 13.1, 2021: 15.4, 2022: 16.0, 2023: 19.2})
    exp_fit = fit_trend(points, "exponential")
    log_points = [PricePoint(year=p.year, price=math.log(p.price)) for p in points]
    lin_fit = fit_trend(log_points, "linear")

    assert [p.x for p in exp_fit] == [p.x for p in lin_fit]
    assert [math.log(p.y) for p in exp_fit] == pytest.approx([p.y for p in lin_fit])


def test_exponential_with_non_positive_price_is_non_finite(points_factory):
    points = points_factory({2020: 0.0, 2021: 10.0, 2022: 12.0})
    fitted = fit_trend(points, "exponential")
    assert len(fitted) == 3
    assert not any(math.isfinite(p.y) for p in fitted)


def test_polynomial_recovers_exact_quadratic(points_factory):
    prices = {year: 2.0 * (year - 2020) ** 2 + 3.0 * (year - 2020) + 5.0 for year in range(2016, 2024)}
    fitted = fit_trend(points_factory(prices), "polynomial")
    assert [p.y for p in fitted] == pytest.approx(list(prices.values()))


def test_polynomial_coefficients_are_centered_on_mean_year():
    xs = np.array([2019.0, 2020.0, 2021.0])
    ys = np.array([4.0, 1.0, 4.0])
    a, b, c, center = quadratic_coefficients(xs, ys)
    assert center == 2020.0
    assert (a, b, c) == pytest.approx((3.0, 0.0, 1.0))


def test_polynomial_with_two_points_is_degenerate(points_factory):
    fitted = fit_trend(points_factory({2020: 5.0, 2021: 7.0}), "polynomial")
    assert len(fitted) == 2
    assert not any(math.isfinite(p.y) for p in fitted)


def test_moving_average_truncates_window_at_edges(points_factory):
    points = points_factory({2019: 1.0, 2020: 2.0, 2021: 3.0, 2022: 4.0})
    fitted = fit_trend(points, "moving")
    assert len(fitted) == len(points)
    assert fitted == [
        FittedPoint(x=2019, y=1.5),
        FittedPoint(x=2020, y=2.0),
        FittedPoint(x=2021, y=3.0),
        FittedPoint(x=2022, y=3.5),
    ]


@pytest.mark.parametrize("trend", ["linear", "exponential", "polynomial", "moving"])
def test_short_series_returns_empty(points_factory, trend):
    assert fit_trend(points_factory({2021: 10.0}), trend) == []
    assert fit_trend([], trend) == []


def test_none_trend_returns_empty(points_factory):
    assert fit_trend(points_factory({2020: 1.0, 2021: 2.0}), TrendType.NONE) == []


def test_unknown_trend_type_raises():
    with pytest.raises(ValueError):
        TrendType.parse("cubic")
