from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import pytest

from unitprice.data_store import ItemPriceTable, PriceDataStore


def _year_block(prices: dict, description: str, unit: str) -> dict:
    return {
        str(year): {"price": price, "description": description, "unit": unit}
        for year, price in prices.items()
    }


@pytest.fixture
def sample_data() -> dict:
    hma = "QC/QA-HMA, 3, 64, SURFACE, 9.5 mm"
    excavation = "EXCAVATION, COMMON"
    return {
        "401-10258": {
            "STATE": _year_block({2020: 100, 2021: 110, 2022: 121}, hma, "TON"),
            "1": _year_block({2020: 90, 2021: 105, 2022: 118}, hma, "TON"),
        },
        "203-02000": {
            "STATE": _year_block({2019: 9.85, 2020: 10.4, 2021: 11.25, 2022: 13.1}, excavation, "CYS"),
            "1": _year_block({2019: 9.1, 2020: 9.95, 2022: 12.6}, excavation, "CYS"),
            "2": _year_block({2020: 11.2, 2021: 12.05, 2023: 15.0}, excavation, "CYS"),
        },
        "601-11210": {
            "STATE": _year_block({2014: 22.5, 2016: 23.75, 2018: 24.1}, "GUARDRAIL, W-BEAM", "LFT"),
        },
    }


@pytest.fixture
def store(sample_data: dict) -> PriceDataStore:
    return PriceDataStore(sample_data)


@pytest.fixture
def scenario_table(store: PriceDataStore) -> ItemPriceTable:
    table = store.get_item_data("401-10258")
    assert table is not None
    return table


@pytest.fixture
def dataset_file(tmp_path: Path, sample_data: dict) -> Path:
    path = tmp_path / "unit_price_trends_with_price.json"
    path.write_text(json.dumps(sample_data), encoding="utf-8")
    return path


@pytest.fixture
def points_factory() -> Callable[..., list]:
    from unitprice.models import PricePoint

    def _create(prices: dict) -> list:
        return [PricePoint(year=year, price=float(price)) for year, price in sorted(prices.items())]

    return _create
