from __future__ import annotations

import pandas as pd
import pytest

from unitprice.export import (
    format_price,
    safe_item_name,
    selected_regions_to_csv,
    table_to_csv,
    write_selected_csv,
    write_table_csv,
    write_workbook,
)


def test_statewide_table_csv_is_exact(store):
    from unitprice.data_store import ItemPriceTable

    table = ItemPriceTable({"STATE": store.get_item_data("401-10258").records("statewide")})
    assert table_to_csv(table) == (
        "Year,Region,Unit Price\n"
        "2020,Statewide,100\n"
        "2021,Statewide,110\n"
        "2022,Statewide,121\n"
    )


def test_table_csv_orders_by_year_then_region(scenario_table):
    lines = table_to_csv(scenario_table).splitlines()
    assert lines[0] == "Year,Region,Unit Price"
    assert lines[1:3] == ["2020,Statewide,100", "2020,Region 1,90"]
    assert len(lines) == 7


def test_selected_csv_leaves_missing_cells_empty(store):
    table = store.get_item_data("203-02000")
    lines = selected_regions_to_csv(table, ["statewide", "1"]).splitlines()
    assert lines[0] == "Year,Statewide,Region 1"
    assert "2021,11.25," in lines
    assert "2019,9.85,9.1" in lines


def test_selected_csv_keeps_column_for_region_without_data(scenario_table):
    lines = selected_regions_to_csv(scenario_table, ["statewide", "4"]).splitlines()
    assert lines[0] == "Year,Statewide,Region 4"
    assert lines[1] == "2020,100,"


@pytest.mark.parametrize(
    "value,expected",
    [(100.0, "100"), (11.25, "11.25"), (None, ""), (float("nan"), ""), (0.0, "0")],
)
def test_format_price(value, expected):
    assert format_price(value) == expected


def test_writers_create_files(tmp_path, scenario_table):
    out_dir = tmp_path / "out"
    csv_path = write_table_csv(scenario_table, "401-10258", out_dir)
    selected_path = write_selected_csv(scenario_table, ["statewide", "1"], out_dir)

    assert csv_path.name == "401-10258_unit_price.csv"
    assert csv_path.read_text(encoding="utf-8").startswith("Year,Region,Unit Price\n")
    assert selected_path.name == "price_data.csv"
    assert selected_path.read_text(encoding="utf-8").splitlines()[0] == "Year,Statewide,Region 1"


def test_workbook_has_long_and_wide_sheets(tmp_path, scenario_table):
    pytest.importorskip("openpyxl")
    path = write_workbook(scenario_table, "401-10258", ["statewide", "1"], tmp_path)

    prices = pd.read_excel(path, sheet_name="Prices")
    wide = pd.read_excel(path, sheet_name="Selected Regions")
    assert list(prices.columns) == ["Year", "Region", "Unit Price"]
    assert len(prices) == 6
    assert list(wide.columns) == ["Year", "Statewide", "Region 1"]
    assert wide["Region 1"].tolist() == [90, 105, 118]


@pytest.mark.parametrize(
    "item_id,expected",
    [("401-10258", "401-10258"), ("401/10258", "401_10258"), ("../x y", "x_y"), ("//", "item")],
)
def test_safe_item_name(item_id, expected):
    assert safe_item_name(item_id) == expected
