"""Forecasting, volatility and regional differential analytics."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from .data_store import ItemPriceTable
from .models import Differentials, PricePoint, Prediction, TrendType
from .regions import STATEWIDE
from .trends import MOVING_WINDOW, evaluate_trend

FORECAST_HORIZON = 3
BAND_MODES = ("fixed", "volatility")


@dataclass(frozen=True)
class ConfidenceBand:
    """
    Rule for the lower/upper bounds around each forecast value.

    ``fixed`` applies ``value * (1 -/+ pct)`` regardless of history.
    ``volatility`` uses a half width of ``z * sigma * sqrt(step)`` where
    ``sigma`` is the population volatility of the fitted series and
    ``step`` the number of years past the last observation.
    """

    mode: str = "fixed"
    pct: float = 0.10
    z: float = 1.0

    def __post_init__(self) -> None:
        mode = str(self.mode).strip().lower()
        if mode not in BAND_MODES:
            raise ValueError(f"Unsupported confidence band mode: {self.mode!r}")
        object.__setattr__(self, "mode", mode)

    def half_width(self, step: int, volatility: float) -> float:
        if self.mode == "volatility":
            return self.z * volatility * math.sqrt(step)
        return self.pct

    def describe(self) -> str:
        if self.mode == "volatility":
            return (
                f"Bounds scale with historical volatility: value x (1 -/+ {self.z:g} x sigma x sqrt(years ahead))"
            )
        return f"Upper and lower bounds are a fixed +/-{self.pct * 100:g}% of the predicted value"


FIXED_BAND = ConfidenceBand()


def predict_prices(
    points: Sequence[PricePoint],
    trend_type: TrendType | str,
    band: ConfidenceBand = FIXED_BAND,
) -> Optional[List[Prediction]]:
    """
    Forecast the three years following the last observation.

    The same curve family used for the trend line is evaluated at
    ``last_year + 1..3``; the moving average forecast is the flat mean of the
    last three observations.  Returns ``None`` for trend type ``none`` or
    fewer than two points.
    """

    kind = TrendType.parse(trend_type)
    if len(points) < 2 or kind is TrendType.NONE:
        return None

    last_year = max(p.year for p in points)
    years = [last_year + step for step in range(1, FORECAST_HORIZON + 1)]

    if kind is TrendType.MOVING:
        tail = list(points)[-MOVING_WINDOW:]
        average = sum(p.price for p in tail) / len(tail)
        values = [average] * len(years)
    else:
        values = evaluate_trend(points, kind, years)

    sigma = calculate_volatility(points) if band.mode == "volatility" else 0.0
    predictions: List[Prediction] = []
    for step, (year, value) in enumerate(zip(years, values), start=1):
        half = band.half_width(step, sigma)
        predictions.append(
            Prediction(
                year=year,
                value=value,
                lower=value * (1.0 - half),
                upper=value * (1.0 + half),
            )
        )
    return predictions


def calculate_volatility(points: Sequence[PricePoint]) -> float:
    """Population standard deviation of period-over-period simple returns."""

    if len(points) < 2:
        return 0.0
    prices = np.array([p.price for p in points], dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        returns = (prices[1:] - prices[:-1]) / prices[:-1]
        return float(np.std(returns))


def regional_differentials(
    table: ItemPriceTable,
    selected_regions: Iterable[str],
    reference: str = STATEWIDE,
) -> Optional[Differentials]:
    """
    Percentage deviation of each selected region from the reference series.

    Returns ``None`` unless the reference region is both present in the
    table and selected.  Only years observed on both sides are compared;
    regions without any shared year are left out.
    """

    selected = list(selected_regions)
    if not table.has_region(reference) or reference not in selected:
        return None

    ref_prices = table.prices_by_year(reference)
    differentials: Differentials = {}
    for region in selected:
        if region == reference or not table.has_region(region) or region in differentials:
            continue
        region_diffs: Dict[int, float] = {}
        for year, price in table.prices_by_year(region).items():
            if year not in ref_prices:
                continue
            ref_price = np.float64(ref_prices[year])
            with np.errstate(divide="ignore", invalid="ignore"):
                region_diffs[year] = float((np.float64(price) - ref_price) / ref_price * 100.0)
        if region_diffs:
            differentials[region] = dict(sorted(region_diffs.items()))
    return differentials


def regional_variation(differentials: Optional[Differentials]) -> float:
    """Population standard deviation of every differential value."""

    if not differentials:
        return 0.0
    values = [value for region in differentials.values() for value in region.values()]
    if not values:
        return 0.0
    return float(np.std(np.array(values, dtype=float)))


def combined_points(table: ItemPriceTable, regions: Iterable[str]) -> List[PricePoint]:
    """
    Pool the selected regions' observations into one year-sorted list.

    The sort is stable, so points sharing a year keep the selection order.
    """

    pooled: List[PricePoint] = []
    seen = set()
    for region in regions:
        if region in seen or not table.has_region(region):
            continue
        seen.add(region)
        pooled.extend(table.series(region))
    return sorted(pooled, key=lambda p: p.year)


def current_price(points: Sequence[PricePoint]) -> float:
    """Price of the most recent year; the earliest entry wins a tie."""

    latest: Optional[PricePoint] = None
    for point in points:
        if latest is None or point.year > latest.year:
            latest = point
    return latest.price if latest is not None else 0.0


def price_change_percent(points: Sequence[PricePoint]) -> float:
    if len(points) < 2:
        return 0.0
    first = np.float64(points[0].price)
    last = np.float64(points[-1].price)
    with np.errstate(divide="ignore", invalid="ignore"):
        return float((last - first) / first * 100.0)


__all__ = [
    "BAND_MODES",
    "ConfidenceBand",
    "FIXED_BAND",
    "FORECAST_HORIZON",
    "calculate_volatility",
    "combined_points",
    "current_price",
    "predict_prices",
    "price_change_percent",
    "regional_differentials",
    "regional_variation",
]
