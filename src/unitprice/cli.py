import argparse
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence

from dotenv import load_dotenv

from .charts import render_chart_png
from .config import Config
from .config import load_config as load_runtime_config
from .data_store import DatasetLoadError, ItemPriceTable, PriceDataStore
from .export import safe_item_name, write_selected_csv, write_table_csv, write_workbook
from .models import TrendType
from .orchestrator import ItemAnalysis, analyze_item
from .regions import region_label
from .report import build_report_pdf, format_currency, make_summary_text

BASE_DIR = Path(__file__).resolve().parents[2]
MIN_QUERY_LENGTH = 2

ARTIFACT_CHOICES: Sequence[str] = ("csv", "selected-csv", "xlsx", "chart", "pdf", "summary")

logger = logging.getLogger(__name__)


def load_store(runtime_cfg: Config) -> PriceDataStore:
    logger.debug("Loading dataset from %s", runtime_cfg.data_path)
    return PriceDataStore.from_path(runtime_cfg.data_path)


def write_artifacts(
    runtime_cfg: Config,
    item_id: str,
    table: ItemPriceTable,
    analysis: ItemAnalysis,
    artifacts: Iterable[str],
) -> Dict[str, Path]:
    """Write the requested artifacts and return their paths keyed by artifact name."""

    stage_counter = 0

    def log_stage(message: str) -> None:
        nonlocal stage_counter
        stage_counter += 1
        logger.info("[analysis:%02d] %s", stage_counter, message)

    def log_detail(message: str) -> None:
        logger.info("             %s", message)

    wanted = set(artifacts)
    unknown = wanted.difference(ARTIFACT_CHOICES)
    if unknown:
        raise ValueError(f"Unknown artifact(s): {', '.join(sorted(unknown))}")

    metadata = table.metadata()
    regions = analysis.options.selected_regions
    output_dir = runtime_cfg.output_dir
    file_stem = safe_item_name(item_id)
    outputs: Dict[str, Path] = {}

    if "csv" in wanted:
        log_stage("Writing unit price CSV")
        outputs["csv"] = write_table_csv(table, item_id, output_dir)
    if "selected-csv" in wanted:
        log_stage("Writing selected-region CSV")
        outputs["selected-csv"] = write_selected_csv(table, regions, output_dir)
    if "xlsx" in wanted:
        log_stage("Writing unit price workbook")
        outputs["xlsx"] = write_workbook(table, item_id, regions, output_dir)

    chart_png: Optional[bytes] = None
    if "chart" in wanted or "pdf" in wanted:
        log_stage("Rendering chart")
        chart_path = output_dir / f"{file_stem}_chart.png" if "chart" in wanted else None
        rendered = render_chart_png(
            analysis.datasets,
            analysis.bounds,
            chart_path,
            title=f"Price Trends for Item {metadata.description or item_id}",
        )
        for note in rendered["skipped"]:
            log_detail(str(note))
        chart_png = rendered["png"]  # type: ignore[assignment]
        if rendered["path"]:
            outputs["chart"] = Path(str(rendered["path"]))

    if "pdf" in wanted:
        log_stage("Building PDF report")
        outputs["pdf"] = build_report_pdf(
            output_dir / f"{file_stem}_analysis_report.pdf",
            item_id,
            metadata,
            analysis,
            chart_png=chart_png,
        )
    if "summary" in wanted:
        log_stage("Writing text summary")
        output_dir.mkdir(parents=True, exist_ok=True)
        summary_path = output_dir / f"{file_stem}_summary.txt"
        summary_path.write_text(make_summary_text(item_id, metadata, analysis), encoding="utf-8")
        outputs["summary"] = summary_path
    return outputs


def _analyze(runtime_cfg: Config, item_id: str, table: ItemPriceTable) -> ItemAnalysis:
    options = runtime_cfg.analysis_options()
    logger.info("Analyzing item %s (%s)", item_id, table.metadata().description or "no description")
    logger.info("   Regions: %s", ", ".join(region_label(r) for r in options.selected_regions))
    logger.info("   Trend line: %s", options.trend_line_type.value)
    missing = [r for r in options.selected_regions if not table.has_region(r)]
    if missing:
        logger.info("   Regions without data: %s", ", ".join(missing))

    analysis = analyze_item(table, options, runtime_cfg.band)
    if options.show_differentials and analysis.result.differentials is None:
        logger.info("   Differentials unavailable (statewide not selected or absent)")
    return analysis


def run(runtime_config: Config, item_id: str, artifacts: Iterable[str] = ()) -> Dict[str, Path]:
    """
    Load the dataset, analyze ``item_id`` and write ``artifacts``.

    Raises :class:`DatasetLoadError` when the dataset cannot be loaded and
    :class:`KeyError` when the item is absent.
    """

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(message)s")
    store = load_store(runtime_config)
    table = store.get_item_data(item_id)
    if table is None:
        raise KeyError(f"No data found for item: {item_id}")
    analysis = _analyze(runtime_config, item_id, table)
    return write_artifacts(runtime_config, item_id, table, analysis, artifacts)


def _cmd_list(runtime_cfg: Config, args: argparse.Namespace) -> int:
    store = load_store(runtime_cfg)
    items = store.recent_items(runtime_cfg.recent_year_cutoff, show_old_items=runtime_cfg.show_old_items)
    for item_id in items:
        table = store.get_item_data(item_id)
        description = table.metadata().description if table is not None else ""
        print(f"{item_id} - {description}")
    logger.debug("%d of %d items listed", len(items), len(store))
    return 0


def _cmd_search(runtime_cfg: Config, args: argparse.Namespace) -> int:
    query = (args.query or "").strip()
    if len(query) < MIN_QUERY_LENGTH:
        logger.warning("Search query must be at least %d characters", MIN_QUERY_LENGTH)
        return 2
    store = load_store(runtime_cfg)
    hits = store.search(query)
    if not hits:
        print("No items found")
        return 0
    for hit in hits:
        print(f"{hit.id} - {hit.description}")
    return 0


def _cmd_analyze(runtime_cfg: Config, args: argparse.Namespace) -> int:
    if args.all:
        artifacts = list(ARTIFACT_CHOICES)
    else:
        artifacts = [name for name in ARTIFACT_CHOICES if getattr(args, name.replace("-", "_"), False)]

    store = load_store(runtime_cfg)
    table = store.get_item_data(args.item)
    if table is None:
        logger.error("No data found for item: %s", args.item)
        return 1

    analysis = _analyze(runtime_cfg, args.item, table)
    outputs = write_artifacts(runtime_cfg, args.item, table, analysis, artifacts)

    print(make_summary_text(args.item, table.metadata(), analysis), end="")
    for region, region_series in analysis.series.items():
        if region_series.predictions:
            forecast = ", ".join(f"{p.year}: {format_currency(p.value)}" for p in region_series.predictions)
            print(f"{region_label(region)} forecast: {forecast}")

    if outputs:
        logger.info("\nOutputs written:")
        for path in outputs.values():
            logger.info(" - %s", path)
    return 0


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Analyze historical pay item unit price trends")
    parser.add_argument("--data", help="Path to the unit price trends JSON dataset")
    parser.add_argument("--output-dir", help="Directory for generated outputs")
    parser.add_argument("--show-old-items", action="store_true", help="Include items without recent price data")
    parser.add_argument("-v", "--verbose", action="store_true", help="Increase logging verbosity")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List pay items with recent data")

    search = sub.add_parser("search", help="Search pay items by number or description")
    search.add_argument("query")

    analyze = sub.add_parser("analyze", help="Analyze one pay item")
    analyze.add_argument("item", help="Pay item number")
    analyze.add_argument("--regions", nargs="+", help="Regions to include (statewide, 1, 2, ...)")
    analyze.add_argument("--trend", choices=[t.value for t in TrendType], help="Trend line type")
    analyze.add_argument("--chart-type", choices=["line", "bar"], help="Observed series chart type")
    analyze.add_argument("--predictions", action="store_true", help="Forecast three years past the data")
    analyze.add_argument("--differentials", action="store_true", help="Compare regions against statewide")
    analyze.add_argument("--band-mode", choices=["fixed", "volatility"], help="Confidence band rule for forecasts")
    analyze.add_argument("--csv", action="store_true", help="Write the whole-table CSV export")
    analyze.add_argument("--selected-csv", action="store_true", help="Write the selected-region CSV export")
    analyze.add_argument("--xlsx", action="store_true", help="Write an Excel workbook export")
    analyze.add_argument("--chart", action="store_true", help="Write a PNG chart")
    analyze.add_argument("--pdf", action="store_true", help="Write the PDF analysis report")
    analyze.add_argument("--summary", action="store_true", help="Write the plain-text summary")
    analyze.add_argument("--all", action="store_true", help="Write every artifact")
    return parser.parse_args(argv)


_COMMANDS = {
    "list": _cmd_list,
    "search": _cmd_search,
    "analyze": _cmd_analyze,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv(BASE_DIR / ".env")
    args = parse_args(argv)
    runtime_cfg = load_runtime_config(os.environ, args)
    log_level = logging.DEBUG if runtime_cfg.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(message)s")
    try:
        return _COMMANDS[args.command](runtime_cfg, args)
    except DatasetLoadError:
        logger.exception("Failed to load data. Check the dataset path and format.")
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
