# src/cli/runner.py

"""Headless CLI runner: ingest listing files and report on the ledger."""

import dataclasses
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.table import Table

from src.config.settings import Settings
from src.matching.catalog_auditor import CatalogAuditor
from src.services.ingestion_pipeline import (
    BatchSummary,
    IngestionPipeline,
    IngestResult,
)
from src.storage.file_manager import FileManager

logger = logging.getLogger("pellet_tracker.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def load_listings(path: Path) -> list[dict[str, object]]:
    """Read raw listings from a JSON array, ``{"listings": [...]}`` or JSONL.

    Raises ``ValueError`` when the file holds neither shape.
    """
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".jsonl":
        return [
            json.loads(line) for line in text.splitlines() if line.strip()
        ]

    data = json.loads(text)
    if isinstance(data, dict) and isinstance(data.get("listings"), list):
        data = data["listings"]
    if not isinstance(data, list):
        msg = f"{path.name} must contain a list of listings"
        raise ValueError(msg)
    return data


def _summary_to_dict(summary: BatchSummary) -> dict[str, object]:
    """Serialise a batch summary for JSON output."""
    return dataclasses.asdict(summary)


def _print_summary_table(summary: BatchSummary) -> None:
    """Render a Rich table of ingestion records to stdout."""
    table = Table(
        title="Ingestion Results",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Normalized name", max_width=50)
    table.add_column("Match", justify="center")
    table.add_column("Product", justify="right")
    table.add_column("Retailer", justify="right")
    table.add_column("Fallbacks", style="yellow")
    table.add_column("Drop", justify="right", style="green")

    results = [r for r in summary.records if isinstance(r, IngestResult)]
    for idx, r in enumerate(results, 1):
        drop = ""
        if r.price_drop is not None and r.price_drop.is_drop:
            drop = f"{r.price_drop.percent_change:+.2f}%"
        table.add_row(
            str(idx),
            r.normalized_name,
            r.match_type,
            str(r.product_id) if r.product_id is not None else "—",
            str(r.retailer_id) if r.retailer_id is not None else "—",
            ", ".join(r.fallbacks) or "—",
            drop or "—",
        )

    Console().print(table)


async def cli_ingest(
    listings_path: str,
    output_format: str = "json",
    output_dir: str | None = None,
    dry_run: bool = False,
    threshold: float | None = None,
    concurrency: int | None = None,
) -> int:
    """Ingest a listings file and return an exit code (0=ok, 1=fail)."""
    path = Path(listings_path)
    try:
        listings = load_listings(path)
    except (OSError, ValueError) as exc:
        logger.error("Cannot read %s: %s", path, exc)
        _err.print(f"[red]Cannot read {path}: {exc}[/red]")
        return 1

    if output_dir is not None:
        Settings.RESULTS_DIR = Path(output_dir)

    pipeline = IngestionPipeline(similarity_threshold=threshold)
    mode = " (dry run)" if dry_run else ""
    _err.print(
        f"[bold]Ingesting:[/bold] {len(listings)} listings "
        f"from {path.name}{mode}"
    )
    try:
        summary = await pipeline.process_batch(
            listings, concurrency=concurrency, dry_run=dry_run,
        )
    finally:
        pipeline.close()

    for error in summary.errors:
        _err.print(
            f"[red]#{error.index} {error.kind}: {error.message}[/red]"
        )

    created = sum(
        1 for r in summary.records
        if isinstance(r, IngestResult) and r.created
    )
    drops = sum(
        1 for r in summary.records
        if isinstance(r, IngestResult)
        and r.price_drop is not None
        and r.price_drop.is_drop
    )
    _err.print(
        f"[green]✓ {summary.succeeded} of {summary.total} ingested"
        f" ({created} new products, {drops} price drops,"
        f" {summary.failed} failed)[/green]"
    )

    if not dry_run:
        try:
            report = FileManager().save_batch_report(path.stem, summary)
            _err.print(f"[dim]Saved report → {report}[/dim]")
        except OSError as exc:
            logger.error("Save failed: %s", exc, exc_info=True)
            _err.print(f"[red]Save failed: {exc}[/red]")

    if output_format == "table":
        _print_summary_table(summary)
    else:
        json.dump(
            _summary_to_dict(summary),
            sys.stdout,
            ensure_ascii=False,
            indent=2,
            default=str,
        )
        sys.stdout.write("\n")

    return 0 if summary.failed == 0 else 1


def run_price_drops(
    threshold: float | None = None,
    lookback_days: int | None = None,
) -> int:
    """Print every (product, retailer) pair whose price dropped."""
    pipeline = IngestionPipeline()
    try:
        drops = pipeline.ledger.detect_price_drops(threshold, lookback_days)
        names = {p.id: p.product_name for p in pipeline.db.list_products()}
        retailers = {
            d.retailer_id: pipeline.db.get_retailer(d.retailer_id)
            for d in drops
        }
    finally:
        pipeline.close()

    if not drops:
        _err.print("[yellow]No price drops detected.[/yellow]")
        return 0

    table = Table(
        title="Price Drops",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Product", max_width=50)
    table.add_column("Retailer", style="magenta")
    table.add_column("Previous", justify="right")
    table.add_column("Current", justify="right", style="green")
    table.add_column("Change", justify="right")
    table.add_column("Since", style="dim")

    for d in drops:
        retailer = retailers.get(d.retailer_id)
        table.add_row(
            names.get(d.product_id, str(d.product_id)),
            retailer.name if retailer else str(d.retailer_id),
            f"{d.previous_price:,.2f}",
            f"{d.current_price:,.2f}",
            f"{d.percent_change:+.2f}%",
            d.previous_observed_at.strftime("%Y-%m-%d"),
        )

    Console().print(table)
    return 0


def run_catalog_audit(threshold: float | None = None) -> int:
    """List near-duplicate catalog entries for manual review."""
    pipeline = IngestionPipeline()
    try:
        products = pipeline.db.list_products()
    finally:
        pipeline.close()

    candidates = CatalogAuditor.find_near_duplicates(
        products,
        threshold if threshold is not None else Settings.SIMILARITY_THRESHOLD,
    )
    if not candidates:
        _err.print(
            f"[green]✓ No near-duplicates among {len(products)} products"
            "[/green]"
        )
        return 0

    table = Table(
        title="Near-duplicate Products",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Score", justify="right")
    table.add_column("Brand", style="magenta")
    table.add_column("First", max_width=45)
    table.add_column("Second", max_width=45)

    for c in candidates:
        table.add_row(
            f"{c.score:.3f}",
            c.first.brand,
            f"#{c.first.id} {c.first.normalized_name}",
            f"#{c.second.id} {c.second.normalized_name}",
        )

    Console().print(table)
    return 0


def run_export_history(product_id: int) -> int:
    """Export one product's price history to CSV."""
    pipeline = IngestionPipeline()
    try:
        product = pipeline.db.get_product(product_id)
        if product is None:
            _err.print(f"[red]Unknown product id: {product_id}[/red]")
            return 1
        history = pipeline.db.get_price_history(product_id)
        retailer_names: dict[int, str] = {}
        for o in history:
            if o.retailer_id not in retailer_names:
                retailer = pipeline.db.get_retailer(o.retailer_id)
                retailer_names[o.retailer_id] = (
                    retailer.name if retailer else ""
                )
    finally:
        pipeline.close()

    path = FileManager().export_price_history_csv(
        product, history, retailer_names,
    )
    _err.print(
        f"[green]✓ Exported {len(history)} observations → {path}[/green]"
    )
    return 0


def run_processing_stats(days: int | None = None) -> int:
    """Print ledger activity over the last *days* days."""
    window = days if days is not None else Settings.STATS_WINDOW_DAYS
    pipeline = IngestionPipeline()
    try:
        stats = pipeline.processing_stats(window)
    finally:
        pipeline.close()

    table = Table(
        title=f"Ledger Activity (last {window} days)",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Metric", style="magenta")
    table.add_column("Value", justify="right")
    for key, value in stats.items():
        table.add_row(
            key.replace("_", " "), "—" if value is None else str(value),
        )

    Console().print(table)
    return 0


def run_product_trend(product_id: int, days: int | None = None) -> int:
    """Print a product's price range and how its retailers compare."""
    window = days if days is not None else Settings.RETAILER_WINDOW_DAYS
    pipeline = IngestionPipeline()
    try:
        product = pipeline.db.get_product(product_id)
        if product is None:
            _err.print(f"[red]Unknown product id: {product_id}[/red]")
            return 1
        trend = pipeline.db.get_trend_summary(product_id)
        retailers = pipeline.db.compare_retailers(product_id, days=window)
    finally:
        pipeline.close()

    if trend is None:
        _err.print(
            f"[yellow]No price observations for #{product_id}.[/yellow]"
        )
        return 0

    _err.print(
        f"[bold]{product.product_name}[/bold] ({product.brand}): "
        f"min {trend['min']:,.2f}, max {trend['max']:,.2f}, "
        f"avg {trend['avg']:,.2f}, latest {trend['latest']:,.2f} "
        f"over {trend['count']} observations"
    )
    if not retailers:
        _err.print(
            f"[yellow]No retailer prices in the last {window} days.[/yellow]"
        )
        return 0

    table = Table(
        title=f"Retailers (last {window} days)",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Retailer", style="magenta")
    table.add_column("Avg", justify="right")
    table.add_column("Best", justify="right", style="green")
    table.add_column("Worst", justify="right")
    table.add_column("Checks", justify="right")
    table.add_column("In stock", justify="right")
    table.add_column("Last checked", style="dim")

    for r in retailers:
        last_checked = r["last_checked"]
        table.add_row(
            str(r["retailer"]),
            f"{r['avg_price']:,.2f}",
            f"{r['best_price']:,.2f}",
            f"{r['worst_price']:,.2f}",
            str(r["price_checks"]),
            f"{r['availability_percent']}%",
            last_checked.strftime("%Y-%m-%d %H:%M")
            if isinstance(last_checked, datetime)
            else str(last_checked),
        )

    Console().print(table)
    return 0
