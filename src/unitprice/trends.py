"""
Trend-line fitting over a region's historical price series.

Degenerate numeric input (all years equal, fewer than three distinct years
for a quadratic, non-positive prices under the log transform) is not
intercepted: the fitted values come back as NaN/inf.  Callers that need a
hard failure should check ``math.isfinite`` on the output.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np

from .models import FittedPoint, PricePoint, TrendType

MOVING_WINDOW = 3


def _arrays(points: Sequence[PricePoint]) -> Tuple[np.ndarray, np.ndarray]:
    xs = np.array([p.year for p in points], dtype=float)
    ys = np.array([p.price for p in points], dtype=float)
    return xs, ys


def linear_coefficients(xs: np.ndarray, ys: np.ndarray) -> Tuple[float, float]:
    """Ordinary least squares ``(slope, intercept)``."""

    n = len(xs)
    with np.errstate(divide="ignore", invalid="ignore"):
        sum_x = np.sum(xs)
        sum_y = np.sum(ys)
        sum_xy = np.sum(xs * ys)
        sum_x2 = np.sum(xs * xs)
        slope = (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)
        intercept = (sum_y - slope * sum_x) / n
    return float(slope), float(intercept)


def exponential_coefficients(xs: np.ndarray, ys: np.ndarray) -> Tuple[float, float]:
    """Linear coefficients of ``ln(price)`` against year."""

    with np.errstate(divide="ignore", invalid="ignore"):
        log_ys = np.log(ys)
    return linear_coefficients(xs, log_ys)


def quadratic_coefficients(xs: np.ndarray, ys: np.ndarray) -> Tuple[float, float, float, float]:
    """
    Closed-form quadratic least squares via the 3x3 normal equations.

    Returns ``(a, b, c, center)`` for ``y = a*u**2 + b*u + c`` where
    ``u = x - center``.  Centering on the mean year is an exact
    re-parametrisation of ``a*x**2 + b*x + c`` that keeps the fourth-power
    moments of calendar years well inside float precision.  The
    coefficients are solved with Cramer's rule; a zero determinant (fewer
    than three distinct years) yields NaN/inf.
    """

    n = float(len(xs))
    center = float(np.mean(xs)) if len(xs) else 0.0
    u = xs - center
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        s1 = np.sum(u)
        s2 = np.sum(u ** 2)
        s3 = np.sum(u ** 3)
        s4 = np.sum(u ** 4)
        t0 = np.sum(ys)
        t1 = np.sum(u * ys)
        t2 = np.sum(u ** 2 * ys)

        det = s4 * (s2 * n - s1 * s1) - s3 * (s3 * n - s1 * s2) + s2 * (s3 * s1 - s2 * s2)
        det_a = t2 * (s2 * n - s1 * s1) - s3 * (t1 * n - s1 * t0) + s2 * (t1 * s1 - s2 * t0)
        det_b = s4 * (t1 * n - s1 * t0) - t2 * (s3 * n - s1 * s2) + s2 * (s3 * t0 - t1 * s2)
        det_c = s4 * (s2 * t0 - t1 * s1) - s3 * (s3 * t0 - t1 * s2) + t2 * (s3 * s1 - s2 * s2)

        a = det_a / det
        b = det_b / det
        c = det_c / det
    return float(a), float(b), float(c), center


def moving_average(points: Sequence[PricePoint], window: int = MOVING_WINDOW) -> List[FittedPoint]:
    """Centred moving average; the window is truncated at both ends."""

    half = window // 2
    result: List[FittedPoint] = []
    for i, point in enumerate(points):
        start = max(0, i - half)
        end = min(len(points), i + half + 1)
        values = [p.price for p in points[start:end]]
        result.append(FittedPoint(x=point.year, y=sum(values) / len(values)))
    return result


def evaluate_trend(points: Sequence[PricePoint], trend_type: TrendType, xs: Sequence[float]) -> List[float]:
    """
    Fit the regression family ``trend_type`` to ``points`` and evaluate it at ``xs``.

    Only the regression families are supported here; the moving average has
    no closed form to extrapolate and is handled by its callers.
    """

    hist_x, hist_y = _arrays(points)
    targets = np.array(list(xs), dtype=float)
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        if trend_type is TrendType.LINEAR:
            slope, intercept = linear_coefficients(hist_x, hist_y)
            values = slope * targets + intercept
        elif trend_type is TrendType.EXPONENTIAL:
            slope, intercept = exponential_coefficients(hist_x, hist_y)
            values = np.exp(slope * targets + intercept)
        elif trend_type is TrendType.POLYNOMIAL:
            a, b, c, center = quadratic_coefficients(hist_x, hist_y)
            u = targets - center
            values = a * u * u + b * u + c
        else:
            raise ValueError(f"No closed-form curve for trend type {trend_type.value!r}")
    return [float(v) for v in values]


def fit_trend(points: Sequence[PricePoint], trend_type: TrendType | str) -> List[FittedPoint]:
    """
    Fit ``trend_type`` to an ascending price series.

    Returns one :class:`FittedPoint` per input year in the same order, or an
    empty list when the series has fewer than two points or the trend type
    is ``none``.
    """

    kind = TrendType.parse(trend_type)
    if len(points) < 2 or kind is TrendType.NONE:
        return []
    if kind is TrendType.MOVING:
        return moving_average(points)
    years = [p.year for p in points]
    values = evaluate_trend(points, kind, years)
    return [FittedPoint(x=year, y=value) for year, value in zip(years, values)]


__all__ = [
    "MOVING_WINDOW",
    "evaluate_trend",
    "exponential_coefficients",
    "fit_trend",
    "linear_coefficients",
    "moving_average",
    "quadratic_coefficients",
]
