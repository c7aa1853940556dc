"""Sequence the analytics over one item's regional price table."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .analysis import (
    FIXED_BAND,
    ConfidenceBand,
    calculate_volatility,
    combined_points,
    current_price,
    predict_prices,
    price_change_percent,
    regional_differentials,
    regional_variation,
)
from .charts import (
    AxisBounds,
    ChartDataset,
    axis_bounds,
    differential_datasets,
    observed_dataset,
    prediction_dataset,
    trend_dataset,
)
from .data_store import ItemPriceTable
from .models import AnalysisOptions, AnalysisResult, FittedPoint, Prediction, RegionSeries, TrendType
from .trends import fit_trend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemAnalysis:
    """Everything the chart, export and report layers need for one request."""

    result: AnalysisResult
    options: AnalysisOptions
    series: Dict[str, RegionSeries]
    datasets: List[ChartDataset] = field(default_factory=list)
    bounds: Optional[AxisBounds] = None
    band: ConfidenceBand = FIXED_BAND

    @property
    def regions(self) -> List[str]:
        return list(self.series)


def analyze_item(
    table: ItemPriceTable,
    options: AnalysisOptions,
    band: ConfidenceBand = FIXED_BAND,
) -> ItemAnalysis:
    """
    Run trend, prediction, differential and summary analytics.

    Regions in ``options.selected_regions`` that the table lacks are ignored.
    Nothing here raises for sparse data: short series simply produce no
    trend or forecast.
    """

    trend_type = options.trend_line_type
    selected = [r for r in dict.fromkeys(options.selected_regions) if table.has_region(r)]

    series: Dict[str, RegionSeries] = {}
    datasets: List[ChartDataset] = []
    for region in selected:
        points = table.series(region)
        if not points:
            continue
        trend: List[FittedPoint] = []
        predictions: Optional[List[Prediction]] = None
        if trend_type is not TrendType.NONE and len(points) >= 2:
            trend = fit_trend(points, trend_type)
            if options.show_predictions and trend:
                predictions = predict_prices(points, trend_type, band)
        series[region] = RegionSeries(region=region, points=points, trend=trend, predictions=predictions)

        datasets.append(observed_dataset(region, points, options.chart_type))
        if trend:
            datasets.append(trend_dataset(region, trend))
        if predictions:
            datasets.append(prediction_dataset(region, predictions))

    differentials = None
    if options.show_differentials:
        differentials = regional_differentials(table, options.selected_regions, table.reference)
        datasets.extend(differential_datasets(differentials))
        if differentials is None:
            logger.debug("Differentials skipped: %s not selected or absent", table.reference)

    pooled = combined_points(table, selected)
    pooled_predictions = None
    if options.show_predictions and trend_type is not TrendType.NONE:
        pooled_predictions = predict_prices(pooled, trend_type, band)

    result = AnalysisResult(
        current_price=current_price(pooled),
        price_change_percent=price_change_percent(pooled),
        volatility=calculate_volatility(pooled),
        regional_variation=regional_variation(differentials),
        predictions=pooled_predictions,
        differentials=differentials,
    )
    logger.debug(
        "Analyzed %d region(s): current=%.2f change=%.2f%% volatility=%.4f",
        len(series),
        result.current_price,
        result.price_change_percent,
        result.volatility,
    )
    return ItemAnalysis(
        result=result,
        options=options,
        series=series,
        datasets=datasets,
        bounds=axis_bounds(table.years(selected)),
        band=band,
    )


__all__ = ["ItemAnalysis", "analyze_item"]
