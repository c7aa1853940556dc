from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Sequence

from .config import load_config
from .cli import ARTIFACT_CHOICES, run as run_analysis


@dataclass
class ReportOptions:
    item_id: str
    data_path: Optional[Path] = None
    output_dir: Optional[Path] = None
    regions: Sequence[str] = ("statewide",)
    trend_line_type: str = "linear"
    chart_type: str = "line"
    show_predictions: bool = False
    show_differentials: bool = False
    band_mode: str = "fixed"
    artifacts: Sequence[str] = field(default_factory=lambda: list(ARTIFACT_CHOICES))


def generate(options: ReportOptions) -> Dict[str, Path]:
    """Programmatic interface to analyze one item and return artifact paths.

    Returns a dict keyed by artifact name (``csv``, ``selected-csv``, ``xlsx``,
    ``chart``, ``pdf``, ``summary``).  The chart entry is absent when
    matplotlib is unavailable.
    """
    import os

    env = dict(os.environ)
    if options.data_path:
        env["UNIT_PRICE_DATA"] = str(options.data_path)
    if options.output_dir:
        env["OUTPUT_DIR"] = str(options.output_dir)
    env["SELECTED_REGIONS"] = ",".join(options.regions)
    env["TREND_LINE_TYPE"] = options.trend_line_type
    env["CHART_TYPE"] = options.chart_type
    env["SHOW_PREDICTIONS"] = "1" if options.show_predictions else "0"
    env["SHOW_DIFFERENTIALS"] = "1" if options.show_differentials else "0"
    env["CONFIDENCE_BAND_MODE"] = options.band_mode

    cfg = load_config(env, None)
    return run_analysis(cfg, options.item_id, options.artifacts)
