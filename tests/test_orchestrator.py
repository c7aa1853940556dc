from __future__ import annotations

import pytest

from unitprice.analysis import ConfidenceBand
from unitprice.charts import AxisBounds, DIFFERENTIAL_AXIS
from unitprice.models import AnalysisOptions, TrendType
from unitprice.orchestrator import analyze_item


def test_statewide_scenario_summary(scenario_table):
    options = AnalysisOptions(selected_regions=("statewide",), trend_line_type="linear", show_predictions=True)
    analysis = analyze_item(scenario_table, options)
    result = analysis.result

    assert result.current_price == 121.0
    assert result.price_change_percent == pytest.approx(21.0)
    assert result.volatility == pytest.approx(0.0)
    assert result.regional_variation == 0.0
    assert result.differentials is None
    assert [p.year for p in result.predictions] == [2023, 2024, 2025]
    assert [p.value for p in result.predictions] == pytest.approx([131.3333333, 141.8333333, 152.3333333])

    series = analysis.series["statewide"]
    assert [p.y for p in series.trend] == pytest.approx([99.8333333, 110.3333333, 120.8333333])
    assert series.predictions == result.predictions


def test_statewide_and_region_with_differentials(scenario_table):
    options = AnalysisOptions(
        selected_regions=("statewide", "1"),
        trend_line_type=TrendType.LINEAR,
        show_predictions=True,
        show_differentials=True,
    )
    analysis = analyze_item(scenario_table, options)
    result = analysis.result

    assert result.current_price == 121.0
    assert result.price_change_percent == pytest.approx(18.0)
    assert list(result.differentials) == ["1"]
    assert result.regional_variation == pytest.approx(3.1725, abs=1e-3)
    assert analysis.bounds == AxisBounds(min_year=2020, max_year=2022)
    assert [ds.label for ds in analysis.datasets] == [
        "Statewide",
        "Statewide Trend",
        "Statewide Prediction",
        "Region 1",
        "Region 1 Trend",
        "Region 1 Prediction",
        "Region 1 Differential",
    ]
    differential = analysis.datasets[-1]
    assert differential.axis == DIFFERENTIAL_AXIS
    assert differential.dashed == (2, 2)
    assert analysis.datasets[1].dashed == (5, 5)
    assert analysis.datasets[0].color == "#000000"
    assert analysis.datasets[3].color == "#2563eb"


def test_current_price_follows_selection_order_on_ties(scenario_table):
    options = AnalysisOptions(selected_regions=("1", "statewide"))
    analysis = analyze_item(scenario_table, options)
    assert analysis.result.current_price == 118.0
    assert analysis.regions == ["1", "statewide"]


def test_no_trend_means_no_trend_datasets_or_predictions(scenario_table):
    options = AnalysisOptions(trend_line_type="none", show_predictions=True)
    analysis = analyze_item(scenario_table, options)
    assert [ds.label for ds in analysis.datasets] == ["Statewide"]
    assert analysis.result.predictions is None
    assert analysis.series["statewide"].trend == []


def test_predictions_hidden_unless_requested(scenario_table):
    analysis = analyze_item(scenario_table, AnalysisOptions())
    assert analysis.result.predictions is None
    assert analysis.series["statewide"].predictions is None
    assert [ds.label for ds in analysis.datasets] == ["Statewide", "Statewide Trend"]


def test_differentials_need_statewide_selected(scenario_table):
    options = AnalysisOptions(selected_regions=("1",), show_differentials=True)
    analysis = analyze_item(scenario_table, options)
    assert analysis.result.differentials is None
    assert analysis.result.regional_variation == 0.0
    assert all(ds.axis != DIFFERENTIAL_AXIS for ds in analysis.datasets)


def test_unknown_and_sparse_regions(store):
    table = store.get_item_data("203-02000")
    options = AnalysisOptions(selected_regions=("statewide", "4", "2"), trend_line_type="polynomial")
    analysis = analyze_item(table, options)

    assert analysis.regions == ["statewide", "2"]
    assert analysis.bounds == AxisBounds(min_year=2019, max_year=2023)
    assert analysis.result.current_price == 15.0


def test_single_year_selection_pads_axis(sample_data):
    from unitprice.data_store import ItemPriceTable

    table = ItemPriceTable({"STATE": {"2022": {"price": 10}}})
    analysis = analyze_item(table, AnalysisOptions(show_predictions=True))

    assert analysis.bounds == AxisBounds(min_year=2021, max_year=2023)
    assert analysis.series["statewide"].trend == []
    assert analysis.result.predictions is None
    assert analysis.result.price_change_percent == 0.0
    assert analysis.result.volatility == 0.0


def test_bar_chart_type_marks_observed_series(scenario_table):
    options = AnalysisOptions(chart_type="bar", trend_line_type="moving")
    analysis = analyze_item(scenario_table, options)
    observed = analysis.datasets[0]
    assert observed.kind == "bar"
    assert observed.fill is True
    assert analysis.datasets[1].kind == "line"


def test_volatility_band_is_carried_through(scenario_table):
    band = ConfidenceBand(mode="volatility", z=1.0)
    analysis = analyze_item(scenario_table, AnalysisOptions(show_predictions=True), band)
    assert analysis.band is band
    first = analysis.result.predictions[0]
    assert first.lower == pytest.approx(first.value, rel=1e-9)


def test_options_normalize_region_spellings(scenario_table):
    options = AnalysisOptions(selected_regions=("STATE", "Region 1", "1"), show_differentials=True)
    assert options.selected_regions == ("statewide", "1")

    analysis = analyze_item(scenario_table, options)
    assert analysis.regions == ["statewide", "1"]
    assert list(analysis.result.differentials) == ["1"]
