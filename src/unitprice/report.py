"""PDF and plain-text reporting of an item analysis."""

from __future__ import annotations

import io
import logging
import math
import textwrap
from datetime import date
from pathlib import Path
from typing import List, Optional, Sequence

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .analysis import ConfidenceBand
from .models import AnalysisResult, Differentials, ItemMetadata, Prediction
from .orchestrator import ItemAnalysis
from .regions import region_label

logger = logging.getLogger(__name__)

REPORT_TITLE = "Unit Price Analysis Report"
HEADER_FILL = colors.Color(59 / 255, 130 / 255, 246 / 255)
MARGIN = 54
ROW_HEIGHT = 16
FOOTER_SPACE = 28


def format_currency(value: float) -> str:
    if value is None or not math.isfinite(value):
        return "n/a"
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_percent(value: float) -> str:
    if value is None or not math.isfinite(value):
        return "n/a"
    return f"{value:.2f}%"


def summary_rows(result: AnalysisResult) -> List[List[str]]:
    return [
        ["Current Price", format_currency(result.current_price)],
        ["Price Change", format_percent(result.price_change_percent)],
        ["Volatility", format_percent(result.volatility * 100)],
        ["Regional Variation", format_percent(result.regional_variation)],
    ]


def prediction_rows(predictions: Sequence[Prediction]) -> List[List[str]]:
    return [
        [str(p.year), format_currency(p.value), format_currency(p.lower), format_currency(p.upper)]
        for p in predictions
    ]


def differential_table(differentials: Differentials) -> tuple[List[str], List[List[str]]]:
    """Header and rows for the differential table; ``-`` marks years a region lacks."""

    years = sorted({year for by_year in differentials.values() for year in by_year})
    header = ["Region", *[str(year) for year in years]]
    rows = []
    for region, by_year in differentials.items():
        row = [region_label(region)]
        for year in years:
            row.append(format_percent(by_year[year]) if year in by_year else "-")
        rows.append(row)
    return header, rows


def methodology_lines(band: ConfidenceBand) -> List[str]:
    return [
        "The price predictions extend the selected trend line three years past the last observation.",
        "",
        "1. Linear Regression:",
        "   - Formula: y = mx + b, where y is price and x is year",
        "   - Slope m = (n*sum(xy) - sum(x)*sum(y)) / (n*sum(x^2) - sum(x)^2)",
        "   - Intercept b = (sum(y) - m*sum(x)) / n",
        "",
        "2. Exponential Growth:",
        "   - Formula: y = a*e^(bx), linearized as ln(y) = ln(a) + bx",
        "   - Fitted using linear regression on log-transformed prices",
        "",
        "3. Polynomial (Quadratic):",
        "   - Formula: y = ax^2 + bx + c",
        "   - Coefficients solved from the 3x3 least-squares normal equations",
        "",
        "4. Moving Average:",
        "   - Trend: y_t = (y_(t-1) + y_t + y_(t+1)) / 3, truncated at the series ends",
        "   - Forecast: flat average of the last three observations",
        "",
        "Confidence Intervals:",
        f"   - {band.describe()}",
        "",
        "Volatility Calculation:",
        "   - Population standard deviation of year-over-year price returns",
        "   - sigma = sqrt(sum((r - mean(r))^2) / n), r = year-over-year return",
    ]


DIFFERENTIAL_METHODOLOGY = [
    "- Percentage difference from the statewide price in the same year",
    "- Formula: ((Regional Price - Statewide Price) / Statewide Price) x 100",
    "- Positive values indicate prices above statewide; negative values below",
    "",
    "Regional Variation Index:",
    "- Population standard deviation of all regional differentials",
]


class _NumberedCanvas(canvas.Canvas):
    """Canvas that stamps ``Page i of N`` on every page once the total is known."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._saved_page_states: List[dict] = []

    def showPage(self) -> None:  # noqa: N802 - reportlab API
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self) -> None:
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(total)
            super().showPage()
        super().save()

    def _draw_footer(self, total: int) -> None:
        width, _ = self._pagesize
        self.setFont("Helvetica", 8)
        self.setFillColor(colors.black)
        self.drawRightString(width - MARGIN, 18, f"Page {self._pageNumber} of {total}")


class _ReportWriter:
    """Cursor-based layout over a reportlab canvas."""

    def __init__(self, target: object) -> None:
        self.canvas = _NumberedCanvas(target, pagesize=letter)
        self.width, self.height = letter
        self.y = self.height - MARGIN

    def new_page(self) -> None:
        self.canvas.showPage()
        self.y = self.height - MARGIN

    def ensure(self, needed: float) -> None:
        if self.y - needed < MARGIN + FOOTER_SPACE:
            self.new_page()

    def title(self, text: str) -> None:
        self.canvas.setFont("Helvetica-Bold", 20)
        self.canvas.drawCentredString(self.width / 2, self.y, text)
        self.y -= 34

    def heading(self, text: str, size: int = 12) -> None:
        self.ensure(size + 10)
        self.canvas.setFont("Helvetica-Bold", size)
        self.canvas.drawString(MARGIN, self.y, text)
        self.y -= size + 6

    def line(self, text: str, size: int = 10, leading: Optional[float] = None) -> None:
        step = leading or size + 4
        wrap_at = int((self.width - 2 * MARGIN) / (size * 0.5))
        for chunk in textwrap.wrap(text, width=wrap_at) or [""]:
            self.ensure(step)
            self.canvas.setFont("Helvetica", size)
            self.canvas.drawString(MARGIN, self.y, chunk)
            self.y -= step

    def gap(self, amount: float = 10) -> None:
        self.y -= amount

    def table(self, header: Sequence[str], rows: Sequence[Sequence[str]], font_size: int = 9) -> None:
        usable = self.width - 2 * MARGIN
        col_width = usable / max(1, len(header))

        def draw_row(values: Sequence[str], bold: bool) -> None:
            top = self.y
            if bold:
                self.canvas.setFillColor(HEADER_FILL)
                self.canvas.rect(MARGIN, top - ROW_HEIGHT, usable, ROW_HEIGHT, stroke=0, fill=1)
                self.canvas.setFillColor(colors.white)
                self.canvas.setFont("Helvetica-Bold", font_size)
            else:
                self.canvas.setFillColor(colors.black)
                self.canvas.setFont("Helvetica", font_size)
            for idx, value in enumerate(values):
                self.canvas.drawString(MARGIN + idx * col_width + 4, top - ROW_HEIGHT + 5, str(value))
            self.canvas.setStrokeColor(colors.grey)
            self.canvas.rect(MARGIN, top - ROW_HEIGHT, usable, ROW_HEIGHT, stroke=1, fill=0)
            for idx in range(1, len(values)):
                x = MARGIN + idx * col_width
                self.canvas.line(x, top, x, top - ROW_HEIGHT)
            self.canvas.setFillColor(colors.black)
            self.y -= ROW_HEIGHT

        self.ensure(ROW_HEIGHT * 2)
        draw_row(header, bold=True)
        for row in rows:
            if self.y - ROW_HEIGHT < MARGIN + FOOTER_SPACE:
                self.new_page()
                draw_row(header, bold=True)
            draw_row(row, bold=False)
        self.gap(12)

    def image(self, png_bytes: bytes) -> None:
        image = ImageReader(io.BytesIO(png_bytes))
        img_width, img_height = image.getSize()
        draw_width = self.width - 2 * MARGIN
        draw_height = img_height * draw_width / img_width
        max_height = self.height - 2 * MARGIN - FOOTER_SPACE
        if draw_height > max_height:
            scale = max_height / draw_height
            draw_width *= scale
            draw_height = max_height
        self.ensure(draw_height)
        self.canvas.drawImage(image, MARGIN, self.y - draw_height, width=draw_width, height=draw_height, preserveAspectRatio=True, mask="auto")
        self.y -= draw_height + 10

    def save(self) -> None:
        self.canvas.showPage()
        self.canvas.save()


def build_report_pdf(
    path: Path,
    item_id: str,
    metadata: ItemMetadata,
    analysis: ItemAnalysis,
    *,
    chart_png: Optional[bytes] = None,
    report_date: Optional[date] = None,
) -> Path:
    """
    Write the analysis report PDF for ``item_id`` to ``path``.

    The predictions section is included when the analysis carries
    predictions, and the differentials section when differentials were
    computed and at least one region has data.
    """

    result = analysis.result
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    writer = _ReportWriter(str(path))

    writer.title(REPORT_TITLE)
    writer.line(f"Item Number: {item_id}", size=12)
    writer.line(f"Description: {metadata.description}", size=12)
    writer.line(f"Unit: {metadata.unit}", size=12)
    writer.line(f"Report Date: {(report_date or date.today()).strftime('%m/%d/%Y')}", size=12)
    writer.gap(12)

    writer.heading("Price Summary")
    writer.table(["Metric", "Value"], summary_rows(result), font_size=10)

    if result.predictions:
        writer.new_page()
        writer.heading("Price Predictions and Methodology")
        writer.heading("Forecasting Methodology:", size=10)
        for text in methodology_lines(analysis.band):
            writer.line(text, size=9, leading=12)
        writer.gap(10)
        writer.heading("Prediction Results:", size=10)
        writer.table(["Year", "Predicted Price", "Lower Bound", "Upper Bound"], prediction_rows(result.predictions))

    if result.differentials:
        writer.ensure(160)
        writer.heading("Regional Price Differentials")
        writer.heading("Regional Differential Calculation:", size=10)
        for text in DIFFERENTIAL_METHODOLOGY:
            writer.line(text, size=9, leading=12)
        writer.gap(10)
        header, rows = differential_table(result.differentials)
        writer.table(header, rows)

    if chart_png:
        writer.image(chart_png)

    writer.save()
    logger.debug("Wrote %s", path)
    return path


def make_summary_text(item_id: str, metadata: ItemMetadata, analysis: ItemAnalysis) -> str:
    """Plain-text version of the report's summary, predictions and differentials."""

    result = analysis.result
    lines = [
        f"Item {item_id}: {metadata.description}".rstrip(": "),
        f"Unit: {metadata.unit}" if metadata.unit else "Unit: (not provided)",
        f"Regions analyzed: {', '.join(region_label(r) for r in analysis.regions) or '(none)'}",
        f"Trend line: {analysis.options.trend_line_type.value}",
        "",
    ]
    summary = pd.DataFrame(summary_rows(result), columns=["Metric", "Value"])
    lines.append(summary.to_string(index=False))

    if result.predictions:
        predictions = pd.DataFrame(
            prediction_rows(result.predictions),
            columns=["Year", "Predicted Price", "Lower Bound", "Upper Bound"],
        )
        lines.extend(["", "Predictions:", predictions.to_string(index=False), analysis.band.describe() + "."])

    if result.differentials:
        header, rows = differential_table(result.differentials)
        differentials = pd.DataFrame(rows, columns=header)
        lines.extend(["", "Regional differentials (% vs statewide):", differentials.to_string(index=False)])
    return "\n".join(lines) + "\n"


__all__ = [
    "REPORT_TITLE",
    "build_report_pdf",
    "differential_table",
    "format_currency",
    "format_percent",
    "make_summary_text",
    "methodology_lines",
    "prediction_rows",
    "summary_rows",
]
