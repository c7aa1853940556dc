from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .regions import parse_region_list


class TrendType(str, Enum):
    """Curve family used for trend lines and forecasts."""

    NONE = "none"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    POLYNOMIAL = "polynomial"
    MOVING = "moving"

    @classmethod
    def parse(cls, value: object | None) -> "TrendType":
        if value is None:
            return cls.NONE
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if not text:
            return cls.NONE
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"Unknown trend line type: {value!r}") from None


@dataclass(frozen=True)
class PricePoint:
    """One observed unit price for a region in a given year."""

    year: int
    price: float


@dataclass(frozen=True)
class FittedPoint:
    x: int
    y: float


@dataclass(frozen=True)
class Prediction:
    """Point forecast with its lower/upper confidence bounds."""

    year: int
    value: float
    lower: float
    upper: float


Differentials = Dict[str, Dict[int, float]]


@dataclass(frozen=True)
class AnalysisOptions:
    """User-selected view configuration for a single analysis request."""

    selected_regions: Tuple[str, ...] = ("statewide",)
    trend_line_type: TrendType = TrendType.LINEAR
    chart_type: str = "line"
    show_predictions: bool = False
    show_differentials: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "selected_regions", tuple(parse_region_list(self.selected_regions)))
        object.__setattr__(self, "trend_line_type", TrendType.parse(self.trend_line_type))


@dataclass(frozen=True)
class AnalysisResult:
    """Summary metrics consumed by the chart, CSV and report layers."""

    current_price: float
    price_change_percent: float
    volatility: float
    regional_variation: float
    predictions: Optional[List[Prediction]] = None
    differentials: Optional[Differentials] = None


@dataclass(frozen=True)
class ItemMetadata:
    description: str = ""
    unit: str = ""


@dataclass(frozen=True)
class SearchHit:
    id: str
    description: str


@dataclass(frozen=True)
class RegionSeries:
    """Observed series for one region plus its derived trend and forecast."""

    region: str
    points: List[PricePoint]
    trend: List[FittedPoint] = field(default_factory=list)
    predictions: Optional[List[Prediction]] = None
