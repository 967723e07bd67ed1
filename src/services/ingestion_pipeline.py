# src/services/ingestion_pipeline.py

"""Orchestrates listing ingestion: clean, validate, resolve, record."""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from urllib.parse import urlparse

from src.config.settings import Settings
from src.matching.identity_resolver import IdentityResolver
from src.models.exceptions import (
    FatalPreconditionError,
    ListingValidationError,
)
from src.models.listing import CleanedListing
from src.models.price_observation import PriceDrop
from src.normalization.field_normalizer import (
    UNKNOWN,
    clean_scraped_data,
    extract_packaging,
    extract_weight,
)
from src.normalization.listing_validator import ListingValidator
from src.normalization.name_canonicalizer import normalize_name
from src.services.price_ledger import PriceLedgerWriter
from src.storage.price_history_db import PriceHistoryDB

logger = logging.getLogger("pellet_tracker.pipeline")


@dataclass
class IngestResult:
    """Outcome of ingesting one valid listing."""

    resolved: bool
    product_id: int | None
    retailer_id: int | None
    price_observation_id: int | None
    created: bool
    match_type: str
    normalized_name: str
    fallbacks: list[str] = field(
        default_factory=lambda: list[str]()
    )
    price_drop: PriceDrop | None = None
    dry_run: bool = False


@dataclass
class ValidationFailure:
    """Record for a listing rejected by validation."""

    errors: list[str]
    valid: bool = False


@dataclass
class BatchError:
    """One failed listing in a batch."""

    index: int
    product_name: str
    kind: str  # "validation", "fatal", "error"
    message: str


@dataclass
class BatchSummary:
    """Container for a completed batch ingestion."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: list[BatchError] = field(
        default_factory=lambda: list[BatchError]()
    )
    records: list[IngestResult | ValidationFailure] = field(
        default_factory=lambda: list[IngestResult | ValidationFailure]()
    )


def extract_domain(url: str) -> str | None:
    """Reduce a listing URL to ``scheme://host`` for the retailer record."""
    if not url:
        return None
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.hostname:
        return None
    return f"{parsed.scheme}://{parsed.hostname}"


def collect_fallbacks(listing: CleanedListing) -> list[str]:
    """Name the sentinel values normalisation had to fall back to."""
    fallbacks: list[str] = []
    if listing.currency_inferred:
        fallbacks.append("currency_inferred")
    if extract_weight(listing.product_name, listing.specifications) == UNKNOWN:
        fallbacks.append("weight_unknown")
    if extract_packaging(listing.product_name) == UNKNOWN:
        fallbacks.append("packaging_unknown")
    return fallbacks


class IngestionPipeline:
    """Coordinates normalisation, identity resolution and the price ledger."""

    def __init__(
        self,
        db: PriceHistoryDB | None = None,
        similarity_threshold: float | None = None,
        drop_threshold: float | None = None,
        lookback_days: int | None = None,
        strict_currency: bool | None = None,
    ) -> None:
        self._db = db or PriceHistoryDB()
        self.resolver = IdentityResolver(
            self._db, similarity_threshold=similarity_threshold,
        )
        self.ledger = PriceLedgerWriter(
            self._db,
            drop_threshold=drop_threshold,
            lookback_days=lookback_days,
        )
        self.strict_currency = (
            strict_currency
            if strict_currency is not None
            else Settings.STRICT_CURRENCY
        )

    @property
    def db(self) -> PriceHistoryDB:
        """The storage collaborator shared by every stage."""
        return self._db

    def close(self) -> None:
        """Close the underlying database."""
        self._db.close()

    # ── Single listing ───────────────────────────────────

    def process_listing(
        self,
        raw: Mapping[str, object],
        observed_at: datetime | None = None,
        dry_run: bool = False,
    ) -> IngestResult:
        """Run one raw listing through the whole pipeline.

        Raises :class:`ListingValidationError` for malformed listings.
        A dry run stops after canonicalisation and writes nothing.
        """
        if not isinstance(raw, Mapping):
            raise ListingValidationError(["listing must be an object"])

        cleaned = clean_scraped_data(raw)
        validation = ListingValidator.check(cleaned, self.strict_currency)
        if not validation.valid:
            raise ListingValidationError(validation.errors)

        fallbacks = collect_fallbacks(cleaned)
        if fallbacks:
            logger.info(
                "Listing '%s' used fallbacks: %s",
                cleaned.product_name,
                ", ".join(fallbacks),
            )

        if dry_run:
            return IngestResult(
                resolved=False,
                product_id=None,
                retailer_id=None,
                price_observation_id=None,
                created=False,
                match_type="dry_run",
                normalized_name=normalize_name(
                    cleaned.product_name, cleaned.specifications,
                ),
                fallbacks=fallbacks,
                dry_run=True,
            )

        retailer = self._db.upsert_retailer(
            cleaned.retailer, website_url=extract_domain(cleaned.url),
        )
        resolution = self.resolver.resolve(cleaned)
        observation = self.ledger.record(
            resolution.product.id, retailer.id, cleaned, observed_at,
        )
        drop = self.ledger.check_price_drop(observation)

        return IngestResult(
            resolved=True,
            product_id=resolution.product.id,
            retailer_id=retailer.id,
            price_observation_id=observation.id,
            created=resolution.created,
            match_type=resolution.match_type,
            normalized_name=resolution.normalized_name,
            fallbacks=fallbacks,
            price_drop=drop,
        )

    # ── Batch ────────────────────────────────────────────

    async def process_batch(
        self,
        listings: list[Mapping[str, object]],
        concurrency: int | None = None,
        observed_at: datetime | None = None,
        dry_run: bool = False,
    ) -> BatchSummary:
        """Ingest many listings with bounded parallelism.

        Failures are isolated per listing and reported in the summary;
        this method does not raise on partial failure.
        """
        limit = max(1, concurrency or Settings.BATCH_CONCURRENCY)
        semaphore = asyncio.Semaphore(limit)

        async def run_one(raw: Mapping[str, object]) -> IngestResult:
            async with semaphore:
                return await asyncio.to_thread(
                    self.process_listing, raw, observed_at, dry_run,
                )

        outcomes = await asyncio.gather(
            *(run_one(raw) for raw in listings),
            return_exceptions=True,
        )

        summary = BatchSummary(total=len(listings))
        for index, (raw, outcome) in enumerate(zip(listings, outcomes)):
            if isinstance(outcome, IngestResult):
                summary.succeeded += 1
                summary.records.append(outcome)
                continue

            if not isinstance(outcome, Exception):
                raise outcome

            summary.failed += 1
            name = (
                str(raw.get("product_name") or "")
                if isinstance(raw, Mapping)
                else ""
            )
            if isinstance(outcome, ListingValidationError):
                kind = "validation"
                summary.records.append(
                    ValidationFailure(errors=outcome.errors)
                )
                logger.warning(
                    "Listing %d ('%s') rejected: %s", index, name, outcome,
                )
            elif isinstance(outcome, FatalPreconditionError):
                kind = "fatal"
                logger.critical(
                    "Invariant broken on listing %d ('%s')",
                    index,
                    name,
                    exc_info=outcome,
                )
            else:
                kind = "error"
                logger.error(
                    "Listing %d ('%s') failed: %s",
                    index,
                    name,
                    outcome,
                    exc_info=outcome,
                )
            summary.errors.append(
                BatchError(
                    index=index,
                    product_name=name,
                    kind=kind,
                    message=str(outcome),
                )
            )

        logger.info(
            "Batch complete: %d total, %d succeeded, %d failed",
            summary.total,
            summary.succeeded,
            summary.failed,
        )
        return summary

    def processing_stats(
        self, days: int = Settings.STATS_WINDOW_DAYS,
    ) -> dict[str, object]:
        """Ledger activity summary over the last *days* days."""
        return self._db.get_processing_stats(days)
