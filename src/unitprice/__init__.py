"""Historical pay item unit price trend analysis."""

from .analysis import (
    ConfidenceBand,
    calculate_volatility,
    predict_prices,
    regional_differentials,
    regional_variation,
)
from .data_store import DatasetLoadError, ItemPriceTable, PriceDataStore, load_dataset
from .models import AnalysisOptions, AnalysisResult, FittedPoint, PricePoint, Prediction, TrendType
from .orchestrator import ItemAnalysis, analyze_item
from .trends import fit_trend

__all__ = [
    "AnalysisOptions",
    "AnalysisResult",
    "ConfidenceBand",
    "DatasetLoadError",
    "FittedPoint",
    "ItemAnalysis",
    "ItemPriceTable",
    "PricePoint",
    "Prediction",
    "PriceDataStore",
    "TrendType",
    "analyze_item",
    "calculate_volatility",
    "fit_trend",
    "load_dataset",
    "predict_prices",
    "regional_differentials",
    "regional_variation",
]
