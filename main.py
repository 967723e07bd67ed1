# main.py

"""Entry point for the pellet_tracker ingestion CLI."""

import argparse
import asyncio
import logging
import sys

from src.config.logging_config import setup_logging

logger = logging.getLogger("pellet_tracker.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="pellet_tracker",
        description=(
            "Resolve scraped wood-pellet listings to canonical products "
            "and record their prices."
        ),
    )
    parser.add_argument(
        "listings",
        nargs="?",
        default=None,
        help="JSON or JSONL file of scraped listings to ingest.",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        dest="output_dir",
        help="Custom report directory (default: results/).",
    )
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        default=False,
        dest="dry_run",
        help="Clean, validate and canonicalise without writing.",
    )
    parser.add_argument(
        "-t",
        "--threshold",
        type=float,
        default=None,
        help="Similarity threshold for fuzzy matching / audit.",
    )
    parser.add_argument(
        "-c",
        "--concurrency",
        type=int,
        default=None,
        help="Listings processed in parallel.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Show INFO messages on the console.",
    )
    parser.add_argument(
        "--drops",
        action="store_true",
        default=False,
        help="Report price drops across the ledger.",
    )
    parser.add_argument(
        "--drop-threshold",
        type=float,
        default=None,
        dest="drop_threshold",
        help="Percent decrease that counts as a drop (default: 10).",
    )
    parser.add_argument(
        "--days",
        type=int,
        default=None,
        help=(
            "Window in days for --drops and --stats (default: 7) "
            "and --trend (default: 30)."
        ),
    )
    parser.add_argument(
        "--audit",
        action="store_true",
        default=False,
        help="List near-duplicate products in the catalog.",
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        default=False,
        help="Summarise ledger activity over the last --days days.",
    )
    parser.add_argument(
        "--trend",
        type=int,
        default=None,
        metavar="PRODUCT_ID",
        help="Show a product's price range and retailer comparison.",
    )
    parser.add_argument(
        "--export-history",
        type=int,
        default=None,
        metavar="PRODUCT_ID",
        dest="export_history",
        help="Export a product's price history to CSV.",
    )
    return parser


def main() -> None:
    """Route to the requested CLI action."""
    parser = _build_parser()
    args = parser.parse_args()

    log_file = setup_logging("INFO" if args.verbose else None)
    logger.info("pellet_tracker starting, log file: %s", log_file)

    from src.cli import runner

    if args.drops:
        exit_code = runner.run_price_drops(args.drop_threshold, args.days)
    elif args.audit:
        exit_code = runner.run_catalog_audit(args.threshold)
    elif args.stats:
        exit_code = runner.run_processing_stats(args.days)
    elif args.trend is not None:
        exit_code = runner.run_product_trend(args.trend, args.days)
    elif args.export_history is not None:
        exit_code = runner.run_export_history(args.export_history)
    elif args.listings is not None:
        exit_code = asyncio.run(
            runner.cli_ingest(
                listings_path=args.listings,
                output_format=args.output_format,
                output_dir=args.output_dir,
                dry_run=args.dry_run,
                threshold=args.threshold,
                concurrency=args.concurrency,
            )
        )
    else:
        parser.print_help(sys.stderr)
        exit_code = 2

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
