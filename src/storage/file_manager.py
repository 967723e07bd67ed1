# src/storage/file_manager.py

"""Handles saving batch reports and price history exports to disk."""

import csv
import dataclasses
import json
import logging
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings
from src.models.price_observation import PriceObservation
from src.models.product import Product

logger = logging.getLogger("pellet_tracker.storage")


def _slug(text: str) -> str:
    """Make a filesystem-friendly fragment from free text."""
    cleaned = "".join(c if c.isalnum() else "_" for c in text.lower())
    return "_".join(part for part in cleaned.split("_") if part)[:60]


class FileManager:
    """Handles saving batch reports and exports to disk."""

    def __init__(self, results_dir: Path | None = None) -> None:
        self.results_dir: Path = results_dir or Settings.RESULTS_DIR
        self.results_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(
            "FileManager initialised: results_dir=%s", self.results_dir,
        )

    def save_batch_report(self, source: str, summary: object) -> Path:
        """Save a batch summary dataclass to a timestamped JSON file."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = self.results_dir / f"batch_{_slug(source)}_{timestamp}.json"

        data = (
            dataclasses.asdict(summary)
            if dataclasses.is_dataclass(summary)
            else summary
        )
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2, default=str)

        logger.info("Saved batch report for '%s' to %s", source, filepath)
        return filepath

    def export_price_history_csv(
        self,
        product: Product,
        history: list[PriceObservation],
        retailer_names: dict[int, str],
    ) -> Path:
        """Export a product's price history to CSV, newest first."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = (
            f"history_{product.id}_{_slug(product.product_name)}"
            f"_{timestamp}.csv"
        )
        filepath = self.results_dir / filename

        rows = sorted(history, key=lambda o: o.observed_at, reverse=True)
        with open(filepath, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow([
                "Product Name", "Brand", "Retailer", "Price", "Currency",
                "In Stock", "Quantity", "Unit", "Observed At", "Source URL",
            ])
            for o in rows:
                writer.writerow([
                    product.product_name,
                    product.brand,
                    retailer_names.get(o.retailer_id, ""),
                    o.price,
                    o.currency,
                    o.in_stock,
                    o.quantity if o.quantity is not None else "",
                    o.unit or "",
                    o.observed_at.isoformat(),
                    o.source_url,
                ])

        logger.info(
            "Exported %d observations for product %d to %s",
            len(rows),
            product.id,
            filepath,
        )
        return filepath
