"""CSV and workbook exports of an item's price table."""

from __future__ import annotations

import csv
import io
import logging
import math
import re
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from .data_store import ItemPriceTable
from .regions import region_label

logger = logging.getLogger(__name__)

LONG_HEADER = ["Year", "Region", "Unit Price"]


def format_price(value: Optional[float]) -> str:
    """Render a price the way it appears in the source data (``100`` not ``100.0``)."""

    if value is None:
        return ""
    number = float(value)
    if math.isnan(number):
        return ""
    if number.is_integer() and abs(number) < 1e16:
        return str(int(number))
    return repr(number)


def _write_rows(rows: Iterable[Sequence[object]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue()


def table_to_csv(table: ItemPriceTable) -> str:
    """
    Whole-table export: one ``Year,Region,Unit Price`` row per observation.

    Rows are ordered by year, then by region display order.
    """

    frame = table.to_frame()
    rows: List[List[object]] = [LONG_HEADER]
    for record in frame.itertuples(index=False):
        rows.append([int(record.YEAR), record.REGION_LABEL, format_price(record.UNIT_PRICE)])
    return _write_rows(rows)


def selected_regions_to_csv(table: ItemPriceTable, regions: Sequence[str]) -> str:
    """
    Wide export with one column per selected region.

    Every selected region gets a column even when the table has no data for
    it; missing prices render as empty cells.
    """

    ordered = list(dict.fromkeys(regions))
    lookup = {region: table.prices_by_year(region) for region in ordered}
    rows: List[List[object]] = [["Year", *[region_label(region) for region in ordered]]]
    for year in table.years(ordered):
        rows.append([year, *[format_price(lookup[region].get(year)) for region in ordered]])
    return _write_rows(rows)


def safe_item_name(item_id: str, max_length: int = 60) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9_-]+", "_", item_id).strip("_")
    return (cleaned or "item")[:max_length]


def write_table_csv(table: ItemPriceTable, item_id: str, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{safe_item_name(item_id)}_unit_price.csv"
    path.write_text(table_to_csv(table), encoding="utf-8", newline="")
    logger.debug("Wrote %s", path)
    return path


def write_selected_csv(table: ItemPriceTable, regions: Sequence[str], output_dir: Path, filename: str = "price_data.csv") -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / filename
    path.write_text(selected_regions_to_csv(table, regions), encoding="utf-8", newline="")
    logger.debug("Wrote %s", path)
    return path


def write_workbook(table: ItemPriceTable, item_id: str, regions: Sequence[str], output_dir: Path) -> Path:
    """Excel workbook with a long ``Prices`` sheet and a wide ``Selected Regions`` sheet."""

    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{safe_item_name(item_id)}_unit_price.xlsx"
    long_df = table.to_frame().rename(
        columns={"YEAR": "Year", "REGION_LABEL": "Region", "UNIT_PRICE": "Unit Price"}
    )[["Year", "Region", "Unit Price"]]

    ordered = list(dict.fromkeys(regions))
    wide = pd.DataFrame({"Year": table.years(ordered)})
    for region in ordered:
        prices = table.prices_by_year(region)
        wide[region_label(region)] = wide["Year"].map(prices)

    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        long_df.to_excel(writer, sheet_name="Prices", index=False)
        wide.to_excel(writer, sheet_name="Selected Regions", index=False)
    logger.debug("Wrote %s", path)
    return path


__all__ = [
    "LONG_HEADER",
    "format_price",
    "safe_item_name",
    "selected_regions_to_csv",
    "table_to_csv",
    "write_selected_csv",
    "write_table_csv",
    "write_workbook",
]
