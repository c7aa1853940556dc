from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import SimpleNamespace
from typing import Mapping, Optional, Tuple

from .analysis import ConfidenceBand
from .models import AnalysisOptions, TrendType
from .regions import STATEWIDE, parse_region_list


_BOOLEAN_TRUE = {"1", "true", "yes", "on"}
DEFAULT_DATA_FILE = "unit_price_trends_with_price.json"
DEFAULT_RECENT_YEAR = 2020


@dataclass(frozen=True)
class Config:
    """Runtime configuration assembled from environment variables and CLI options."""

    base_dir: Path
    data_path: Path
    output_dir: Path
    selected_regions: Tuple[str, ...]
    trend_line_type: TrendType
    chart_type: str
    show_predictions: bool
    show_differentials: bool
    show_old_items: bool
    recent_year_cutoff: int
    band_mode: str
    band_pct: float
    band_z: float
    verbose: bool = False

    @property
    def band(self) -> ConfidenceBand:
        return ConfidenceBand(mode=self.band_mode, pct=self.band_pct, z=self.band_z)

    def analysis_options(self) -> AnalysisOptions:
        return AnalysisOptions(
            selected_regions=self.selected_regions,
            trend_line_type=self.trend_line_type,
            chart_type=self.chart_type,
            show_predictions=self.show_predictions,
            show_differentials=self.show_differentials,
        )


def _to_path(value: object | None) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, Path):
        return value.expanduser().resolve()
    text = str(value).strip()
    if not text:
        return None
    return Path(text).expanduser().resolve()


def _to_int(value: object | None) -> Optional[int]:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(float(text))
    except ValueError:
        return None


def _to_float(value: object | None) -> Optional[float]:
    if value is None:
        return None
    text = str(value).replace("%", "").strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _flag(value: object | None) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _BOOLEAN_TRUE


def _namespace(cli_args: object | None) -> SimpleNamespace:
    if cli_args is None:
        return SimpleNamespace()
    if isinstance(cli_args, SimpleNamespace):
        return cli_args
    if hasattr(cli_args, "__dict__"):
        return SimpleNamespace(**{k: v for k, v in vars(cli_args).items()})
    return SimpleNamespace()


def _chart_type(value: object | None) -> Optional[str]:
    text = str(value or "").strip().lower()
    return text if text in {"line", "bar"} else None


def load_config(env: Mapping[str, str], cli_args: object | None = None) -> Config:
    """Build a runtime :class:`Config` from environment variables and CLI options."""

    base_dir = Path(__file__).resolve().parents[2]
    default_data = (base_dir / "data" / DEFAULT_DATA_FILE).resolve()
    default_output_dir = (base_dir / "outputs").resolve()

    data_path = _to_path(env.get("UNIT_PRICE_DATA")) or default_data
    output_dir = _to_path(env.get("OUTPUT_DIR")) or default_output_dir
    selected_regions = tuple(parse_region_list(env.get("SELECTED_REGIONS"))) or (STATEWIDE,)
    trend_line_type = TrendType.parse(env.get("TREND_LINE_TYPE") or TrendType.LINEAR.value)
    chart_type = _chart_type(env.get("CHART_TYPE")) or "line"
    show_predictions = _flag(env.get("SHOW_PREDICTIONS"))
    show_differentials = _flag(env.get("SHOW_DIFFERENTIALS"))
    show_old_items = _flag(env.get("SHOW_OLD_ITEMS"))
    recent_year_cutoff = _to_int(env.get("RECENT_YEAR_CUTOFF")) or DEFAULT_RECENT_YEAR
    band_mode = (env.get("CONFIDENCE_BAND_MODE") or "fixed").strip().lower()
    band_pct = _to_float(env.get("CONFIDENCE_BAND_PCT"))
    if band_pct is None:
        band_pct = 0.10
    elif band_pct >= 1.0:
        # Accept "10" as well as "0.10".
        band_pct = band_pct / 100.0
    band_z = _to_float(env.get("CONFIDENCE_BAND_Z"))
    if band_z is None:
        band_z = 1.0
    verbose = False

    cli_ns = _namespace(cli_args)
    if getattr(cli_ns, "data", None):
        data_path = _to_path(cli_ns.data) or data_path
    if getattr(cli_ns, "output_dir", None):
        output_dir = _to_path(cli_ns.output_dir) or output_dir
    if getattr(cli_ns, "regions", None):
        selected_regions = tuple(parse_region_list(cli_ns.regions)) or selected_regions
    if getattr(cli_ns, "trend", None):
        trend_line_type = TrendType.parse(cli_ns.trend)
    if _chart_type(getattr(cli_ns, "chart_type", None)):
        chart_type = _chart_type(cli_ns.chart_type) or chart_type
    if getattr(cli_ns, "predictions", False):
        show_predictions = True
    if getattr(cli_ns, "differentials", False):
        show_differentials = True
    if getattr(cli_ns, "show_old_items", False):
        show_old_items = True
    if getattr(cli_ns, "band_mode", None):
        band_mode = str(cli_ns.band_mode).strip().lower()
    if getattr(cli_ns, "verbose", False):
        verbose = bool(cli_ns.verbose)

    # Raises ValueError for an unknown band mode.
    ConfidenceBand(mode=band_mode, pct=band_pct, z=band_z)

    return Config(
        base_dir=base_dir,
        data_path=data_path,
        output_dir=output_dir,
        selected_regions=selected_regions,
        trend_line_type=trend_line_type,
        chart_type=chart_type,
        show_predictions=show_predictions,
        show_differentials=show_differentials,
        show_old_items=show_old_items,
        recent_year_cutoff=recent_year_cutoff,
        band_mode=band_mode,
        band_pct=band_pct,
        band_z=band_z,
        verbose=verbose,
    )


__all__ = ["Config", "load_config"]
