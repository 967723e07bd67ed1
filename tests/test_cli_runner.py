# tests/test_cli_runner.py

"""Tests for the headless CLI runner."""

import asyncio
import json
import tempfile
import unittest
from pathlib import Path

from src.cli.runner import (
    cli_ingest,
    load_listings,
    run_catalog_audit,
    run_export_history,
    run_price_drops,
    run_processing_stats,
    run_product_trend,
)
from src.config.settings import Settings
from src.storage.price_history_db import PriceHistoryDB

LISTING = {
    "product_name": "6 mm kokskaidu granulas 15KG MAISOS",
    "brand": "SIA Staļi",
    "price": 235.0,
    "currency": "EUR",
    "in_stock": True,
    "url": "https://stali.lv/granulas",
}


class TestLoadListings(unittest.TestCase):
    """load_listings file shapes."""

    def setUp(self) -> None:
        """Create a temp directory for input files."""
        self.tmp_dir = Path(tempfile.mkdtemp())

    def test_json_array(self) -> None:
        """A top-level list is returned as is."""
        path = self.tmp_dir / "in.json"
        path.write_text(json.dumps([LISTING, LISTING]), encoding="utf-8")
        self.assertEqual(len(load_listings(path)), 2)

    def test_wrapped_object(self) -> None:
        """A {"listings": [...]} wrapper is unpacked."""
        path = self.tmp_dir / "in.json"
        path.write_text(json.dumps({"listings": [LISTING]}), encoding="utf-8")
        self.assertEqual(load_listings(path), [LISTING])

    def test_jsonl(self) -> None:
        """JSON lines are read one listing per line, blanks skipped."""
        path = self.tmp_dir / "in.jsonl"
        path.write_text(
            json.dumps(LISTING) + "\n\n" + json.dumps(LISTING) + "\n",
            encoding="utf-8",
        )
        self.assertEqual(len(load_listings(path)), 2)

    def test_wrong_shape(self) -> None:
        """A bare object without listings is rejected."""
        path = self.tmp_dir / "in.json"
        path.write_text(json.dumps({"foo": 1}), encoding="utf-8")
        with self.assertRaises(ValueError):
            load_listings(path)


class TestCliCommands(unittest.TestCase):
    """CLI entry points against the configured database."""

    def setUp(self) -> None:
        """Create a temp directory for input files."""
        self.tmp_dir = Path(tempfile.mkdtemp())

    def _write(self, listings: list[dict[str, object]]) -> Path:
        path = self.tmp_dir / "listings.json"
        path.write_text(json.dumps(listings), encoding="utf-8")
        return path

    def test_ingest_success_saves_report(self) -> None:
        """A clean batch exits 0 and writes a JSON report."""
        path = self._write([LISTING])
        code = asyncio.run(cli_ingest(str(path)))
        self.assertEqual(code, 0)
        reports = list(Settings.RESULTS_DIR.glob("batch_listings_*.json"))
        self.assertEqual(len(reports), 1)

    def test_ingest_partial_failure_exits_one(self) -> None:
        """Any failed listing makes the exit code 1."""
        path = self._write([LISTING, {**LISTING, "price": -5}])
        self.assertEqual(asyncio.run(cli_ingest(str(path))), 1)

    def test_ingest_table_format(self) -> None:
        """The table renderer runs without error."""
        path = self._write([LISTING])
        self.assertEqual(
            asyncio.run(cli_ingest(str(path), output_format="table")), 0,
        )

    def test_ingest_missing_file(self) -> None:
        """An unreadable input file exits 1."""
        code = asyncio.run(cli_ingest(str(self.tmp_dir / "missing.json")))
        self.assertEqual(code, 1)

    def test_dry_run_leaves_no_trace(self) -> None:
        """Dry runs write neither products nor a report."""
        path = self._write([LISTING])
        self.assertEqual(asyncio.run(cli_ingest(str(path), dry_run=True)), 0)
        self.assertFalse(Settings.RESULTS_DIR.exists())
        db = PriceHistoryDB()
        try:
            self.assertEqual(db.list_products(), [])
        finally:
            db.close()

    def test_reports_on_empty_ledger(self) -> None:
        """Ledger reports succeed on an empty store."""
        self.assertEqual(run_price_drops(), 0)
        self.assertEqual(run_catalog_audit(), 0)
        self.assertEqual(run_processing_stats(), 0)

    def test_export_history(self) -> None:
        """Known products export, unknown ids exit 1."""
        path = self._write([LISTING])
        asyncio.run(cli_ingest(str(path)))
        self.assertEqual(run_export_history(1), 0)
        self.assertEqual(
            len(list(Settings.RESULTS_DIR.glob("history_1_*.csv"))), 1,
        )
        self.assertEqual(run_export_history(999), 1)

    def test_product_trend(self) -> None:
        """Trend and retailer comparison print for known products only."""
        path = self._write([LISTING, {**LISTING, "price": 229.5}])
        asyncio.run(cli_ingest(str(path)))
        self.assertEqual(run_product_trend(1), 0)
        self.assertEqual(run_product_trend(1, days=1), 0)
        self.assertEqual(run_product_trend(999), 1)

    def test_processing_stats_after_ingest(self) -> None:
        """Stats cover freshly ingested listings."""
        path = self._write([LISTING])
        asyncio.run(cli_ingest(str(path)))
        self.assertEqual(run_processing_stats(days=1), 0)


if __name__ == "__main__":
    unittest.main()
