"""Loading and lookup for the unit price trends dataset."""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from .models import ItemMetadata, PricePoint, SearchHit
from .regions import STATEWIDE, normalize_region, region_label, region_sort_key

logger = logging.getLogger(__name__)

YearRecord = Mapping[str, object]


class DatasetLoadError(RuntimeError):
    """Raised when the dataset cannot be read or parsed."""


def _to_year(value: object) -> Optional[int]:
    text = str(value).strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number) or not number.is_integer():
        return None
    return int(number)


def _to_price(value: object) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).replace("$", "").replace(",", "").strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


class ItemPriceTable:
    """
    Read-only view over one item's ``region -> year -> record`` mapping.

    Region keys are normalized on construction so the reference series is
    always available under ``"statewide"``.  If two source keys normalize to
    the same region, the later one replaces the earlier one.
    """

    def __init__(self, data: Mapping[str, Mapping[str, YearRecord]], reference: str = STATEWIDE) -> None:
        regions: Dict[str, Dict[str, dict]] = {}
        for raw_region, years in (data or {}).items():
            region = normalize_region(raw_region)
            if region is None or not isinstance(years, Mapping):
                continue
            if region in regions:
                logger.debug("Duplicate region key %r replaces earlier %r", raw_region, region)
            regions[region] = {str(year): dict(record or {}) for year, record in years.items()}
        self._data = regions
        self.reference = reference

    @property
    def regions(self) -> List[str]:
        return sorted(self._data, key=region_sort_key)

    def has_region(self, region: str) -> bool:
        return region in self._data

    def records(self, region: str) -> Dict[str, dict]:
        return dict(self._data.get(region, {}))

    def series(self, region: str) -> List[PricePoint]:
        """
        Return the region's price series sorted ascending by year.

        Year keys that are not whole numbers and entries without a numeric
        price are skipped.  When two keys parse to the same year the last
        one in the source mapping wins.
        """

        by_year: Dict[int, float] = {}
        for year_key, record in self._data.get(region, {}).items():
            year = _to_year(year_key)
            price = _to_price(record.get("price"))
            if year is None or price is None:
                continue
            by_year[year] = price
        return [PricePoint(year=year, price=by_year[year]) for year in sorted(by_year)]

    def prices_by_year(self, region: str) -> Dict[int, float]:
        return {point.year: point.price for point in self.series(region)}

    def price(self, region: str, year: int) -> Optional[float]:
        return self.prices_by_year(region).get(int(year))

    def years(self, regions: Optional[Iterable[str]] = None) -> List[int]:
        targets = self.regions if regions is None else [r for r in regions if r in self._data]
        found = set()
        for region in targets:
            found.update(point.year for point in self.series(region))
        return sorted(found)

    def metadata(self) -> ItemMetadata:
        """
        Item-level description and unit.

        Taken from the reference region's earliest year carrying a value,
        falling back to the other regions in display order.
        """

        description = ""
        unit = ""
        ordered = [self.reference] + [r for r in self.regions if r != self.reference]
        for region in ordered:
            records = self._data.get(region)
            if not records:
                continue
            keyed = sorted(
                ((_to_year(key), record) for key, record in records.items()),
                key=lambda pair: (pair[0] is None, pair[0] or 0),
            )
            for _, record in keyed:
                if not description and str(record.get("description") or "").strip():
                    description = str(record["description"]).strip()
                if not unit and str(record.get("unit") or "").strip():
                    unit = str(record["unit"]).strip()
                if description and unit:
                    return ItemMetadata(description=description, unit=unit)
        return ItemMetadata(description=description, unit=unit)

    def to_frame(self, regions: Optional[Iterable[str]] = None) -> pd.DataFrame:
        """Long-form ``YEAR / REGION / REGION_LABEL / UNIT_PRICE`` frame sorted by year."""

        targets = self.regions if regions is None else [r for r in regions if r in self._data]
        rows = [
            {
                "YEAR": point.year,
                "REGION": region,
                "REGION_LABEL": region_label(region),
                "UNIT_PRICE": point.price,
            }
            for region in targets
            for point in self.series(region)
        ]
        frame = pd.DataFrame(rows, columns=["YEAR", "REGION", "REGION_LABEL", "UNIT_PRICE"])
        if frame.empty:
            return frame
        return frame.sort_values("YEAR", kind="stable").reset_index(drop=True)

    def __contains__(self, region: object) -> bool:
        return region in self._data

    def __repr__(self) -> str:
        return f"ItemPriceTable(regions={self.regions!r})"


def has_recent_data(table: ItemPriceTable, min_year: int) -> bool:
    """True when any region carries a year at or after ``min_year``."""

    return any(year >= min_year for year in table.years())


class PriceDataStore:
    """Immutable snapshot of the dataset with lookup, listing and search."""

    def __init__(self, data: Mapping[str, Mapping[str, Mapping[str, YearRecord]]]) -> None:
        self._tables: Dict[str, ItemPriceTable] = {
            str(item_id): ItemPriceTable(item_data)
            for item_id, item_data in (data or {}).items()
            if isinstance(item_data, Mapping)
        }

    @classmethod
    def from_path(cls, path: Path | str) -> "PriceDataStore":
        return cls(load_dataset(path))

    def __len__(self) -> int:
        return len(self._tables)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._tables

    def get_item_data(self, item_id: str) -> Optional[ItemPriceTable]:
        return self._tables.get(str(item_id).strip())

    def list_items(self, predicate: Optional[Callable[[str, ItemPriceTable], bool]] = None) -> List[str]:
        items = sorted(self._tables)
        if predicate is None:
            return items
        return [item for item in items if predicate(item, self._tables[item])]

    def recent_items(self, min_year: int = 2020, *, show_old_items: bool = False) -> List[str]:
        if show_old_items:
            return self.list_items()
        return self.list_items(lambda _item, table: has_recent_data(table, min_year))

    def search(self, query: str) -> List[SearchHit]:
        """Case-insensitive substring match on item id or description."""

        term = (query or "").strip().lower()
        hits: List[SearchHit] = []
        for item_id in sorted(self._tables):
            description = self._tables[item_id].metadata().description
            if term in item_id.lower() or term in description.lower():
                hits.append(SearchHit(id=item_id, description=description))
        return hits


def load_dataset(path: Path | str) -> Dict[str, dict]:
    """
    Read the nested ``item -> region -> year -> record`` JSON dataset.

    Any read or parse failure raises :class:`DatasetLoadError`; there is no
    partial fallback.
    """

    target = Path(path)
    try:
        with target.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (OSError, ValueError) as exc:
        raise DatasetLoadError(f"Failed to load dataset from {target}: {exc}") from exc
    if not isinstance(payload, dict):
        raise DatasetLoadError(f"Dataset at {target} must be a JSON object keyed by item id")
    logger.debug("Loaded %d items from %s", len(payload), target)
    return payload


__all__ = [
    "DatasetLoadError",
    "ItemPriceTable",
    "PriceDataStore",
    "has_recent_data",
    "load_dataset",
]
