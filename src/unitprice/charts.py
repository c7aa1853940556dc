"""Chart dataset descriptors and an optional matplotlib rendering of them."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

try:  # pragma: no cover - optional dependency
    import matplotlib

    matplotlib.use("Agg")  # Ensure headless operation on CI/servers.
    import matplotlib.pyplot as plt
    from matplotlib.ticker import MaxNLocator, StrMethodFormatter
except Exception:  # pragma: no cover - matplotlib unavailable or misconfigured
    plt = None  # type: ignore
    MaxNLocator = None  # type: ignore
    StrMethodFormatter = None  # type: ignore

from .models import Differentials, FittedPoint, PricePoint, Prediction
from .regions import region_color, region_label

logger = logging.getLogger(__name__)

PRICE_AXIS = "y"
DIFFERENTIAL_AXIS = "differential"


@dataclass(frozen=True)
class ChartDataset:
    """One named series handed to the chart renderer."""

    label: str
    points: Tuple[FittedPoint, ...]
    kind: str = "line"
    color: str = "#000000"
    dashed: Tuple[int, ...] = ()
    fill: bool = False
    axis: str = PRICE_AXIS
    region: str = ""


@dataclass(frozen=True)
class AxisBounds:
    min_year: int
    max_year: int


def axis_bounds(years: Iterable[int]) -> Optional[AxisBounds]:
    """Min/max observed year, padded by one on each side when they coincide."""

    values = list(years)
    if not values:
        return None
    low, high = min(values), max(values)
    if low == high:
        low -= 1
        high += 1
    return AxisBounds(min_year=low, max_year=high)


def observed_dataset(region: str, points: Sequence[PricePoint], chart_type: str = "line") -> ChartDataset:
    color = region_color(region)
    return ChartDataset(
        label=region_label(region),
        points=tuple(FittedPoint(x=p.year, y=p.price) for p in points),
        kind="bar" if chart_type == "bar" else "line",
        color=color,
        fill=chart_type == "bar",
        region=region,
    )


def trend_dataset(region: str, trend: Sequence[FittedPoint]) -> ChartDataset:
    return ChartDataset(
        label=f"{region_label(region)} Trend",
        points=tuple(trend),
        color=region_color(region),
        dashed=(5, 5),
        region=region,
    )


def prediction_dataset(region: str, predictions: Sequence[Prediction]) -> ChartDataset:
    return ChartDataset(
        label=f"{region_label(region)} Prediction",
        points=tuple(FittedPoint(x=p.year, y=p.value) for p in predictions),
        color=region_color(region),
        fill=True,
        region=region,
    )


def differential_datasets(differentials: Optional[Differentials]) -> List[ChartDataset]:
    datasets: List[ChartDataset] = []
    for region, by_year in (differentials or {}).items():
        if not by_year:
            continue
        points = tuple(FittedPoint(x=year, y=value) for year, value in sorted(by_year.items()))
        datasets.append(
            ChartDataset(
                label=f"{region_label(region)} Differential",
                points=points,
                color=region_color(region),
                dashed=(2, 2),
                axis=DIFFERENTIAL_AXIS,
                region=region,
            )
        )
    return datasets


def _dash_pattern(dashed: Sequence[int]) -> object:
    if not dashed:
        return "-"
    return (0, tuple(dashed))


def render_chart_png(
    datasets: Sequence[ChartDataset],
    bounds: Optional[AxisBounds],
    path: Optional[Path] = None,
    *,
    title: str = "",
    dpi: int = 140,
) -> Dict[str, object]:
    """
    Draw ``datasets`` with matplotlib.

    Returns ``{"png": bytes | None, "path": str | None, "skipped": [...]}``;
    rendering problems are recorded under ``skipped`` rather than raised.
    """

    if plt is None:
        return {"png": None, "path": None, "skipped": ["matplotlib not available"]}
    if not datasets:
        return {"png": None, "path": None, "skipped": ["chart skipped (no datasets)"]}

    skipped: List[str] = []
    fig, ax = plt.subplots(figsize=(10, 5.5), dpi=dpi)
    diff_ax = None
    bar_sets = [ds for ds in datasets if ds.kind == "bar"]
    bar_width = 0.8 / max(1, len(bar_sets))
    try:
        for ds in datasets:
            if not ds.points:
                continue
            xs = [p.x for p in ds.points]
            ys = [p.y for p in ds.points]
            if ds.axis == DIFFERENTIAL_AXIS:
                if diff_ax is None:
                    diff_ax = ax.twinx()
                    diff_ax.set_ylabel("Price Differential (%)")
                diff_ax.plot(xs, ys, color=ds.color, linestyle=_dash_pattern(ds.dashed), linewidth=1.4, label=ds.label)
                continue
            if ds.kind == "bar":
                offset = (bar_sets.index(ds) - (len(bar_sets) - 1) / 2) * bar_width
                ax.bar([x + offset for x in xs], ys, width=bar_width, color=ds.color, alpha=0.35, label=ds.label)
                continue
            ax.plot(
                xs,
                ys,
                color=ds.color,
                linestyle=_dash_pattern(ds.dashed),
                marker="o" if not ds.dashed and not ds.fill else None,
                linewidth=2.0 if not ds.dashed else 1.4,
                label=ds.label,
            )
            if ds.fill:
                ax.fill_between(xs, ys, color=ds.color, alpha=0.12)

        if bounds is not None:
            right = bounds.max_year
            for ds in datasets:
                if ds.points:
                    right = max(right, max(p.x for p in ds.points))
            ax.set_xlim(bounds.min_year - 0.5, right + 0.5)
        if MaxNLocator is not None:
            ax.xaxis.set_major_locator(MaxNLocator(integer=True))
        if StrMethodFormatter is not None:
            ax.yaxis.set_major_formatter(StrMethodFormatter("$ {x:,.2f}"))
        ax.set_xlabel("Year")
        ax.set_ylabel("Price ($)")
        if title:
            ax.set_title(title)
        ax.grid(True, linestyle="--", alpha=0.3)
        handles, labels = ax.get_legend_handles_labels()
        if diff_ax is not None:
            extra_handles, extra_labels = diff_ax.get_legend_handles_labels()
            handles += extra_handles
            labels += extra_labels
        if handles:
            ax.legend(handles, labels, loc="upper left", frameon=False, fontsize="small")
        fig.tight_layout()

        buffer = io.BytesIO()
        fig.savefig(buffer, format="png", dpi=dpi, bbox_inches="tight")
        png_bytes = buffer.getvalue()
    except Exception as exc:  # pragma: no cover - robust path
        plt.close(fig)
        logger.warning("Chart rendering failed: %s", exc)
        return {"png": None, "path": None, "skipped": [f"chart rendering failed: {exc}"]}
    plt.close(fig)

    written: Optional[str] = None
    if path is not None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "wb") as handle:
            handle.write(png_bytes)
        written = str(target)
    return {"png": png_bytes, "path": written, "skipped": skipped}


__all__ = [
    "AxisBounds",
    "ChartDataset",
    "DIFFERENTIAL_AXIS",
    "PRICE_AXIS",
    "axis_bounds",
    "differential_datasets",
    "observed_dataset",
    "prediction_dataset",
    "render_chart_png",
    "trend_dataset",
]
