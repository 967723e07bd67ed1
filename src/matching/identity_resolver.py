# src/matching/identity_resolver.py

"""Resolve cleaned listings to canonical catalog products."""

import logging
import threading
from dataclasses import dataclass, field

from src.config.settings import Settings
from src.matching.similarity import calculate_similarity
from src.models.exceptions import (
    DuplicateProductError,
    FatalPreconditionError,
    ResolutionConflictError,
)
from src.models.listing import CleanedListing
from src.models.product import Product
from src.normalization.name_canonicalizer import normalize_name
from src.storage.price_history_db import PriceHistoryDB

logger = logging.getLogger("pellet_tracker.matching")


@dataclass
class Resolution:
    """Which product a listing resolved to, and how."""

    product: Product
    created: bool
    match_type: str  # "exact", "fuzzy", "created"
    normalized_name: str
    score: float = 1.0
    enriched_fields: list[str] = field(
        default_factory=lambda: list[str]()
    )


class IdentityResolver:
    """Map listings to products: exact key, then same-brand fuzzy, then create.

    Creating a product is irreversible, so the fuzzy fallback errs on the
    side of the configured threshold.  A threshold of 0 or below turns
    the fallback off and only exact keys match.

    Lookup, fuzzy scan and create run under a per-brand lock, so threads
    sharing a resolver cannot both create near-duplicates of one item.
    The unique index on ``normalized_name`` still guards other writers.
    """

    def __init__(
        self,
        db: PriceHistoryDB,
        similarity_threshold: float | None = None,
        category: str | None = None,
        candidate_limit: int | None = None,
    ) -> None:
        self._db = db
        self.similarity_threshold = (
            similarity_threshold
            if similarity_threshold is not None
            else Settings.SIMILARITY_THRESHOLD
        )
        self.category = category or Settings.DEFAULT_CATEGORY
        self.candidate_limit = (
            candidate_limit
            if candidate_limit is not None
            else Settings.FUZZY_CANDIDATE_LIMIT
        )
        self._locks_guard = threading.Lock()
        self._brand_locks: dict[str, threading.Lock] = {}

    def resolve(self, listing: CleanedListing) -> Resolution:
        """Return the product for *listing*, creating it only if unmatched.

        Raises :class:`FatalPreconditionError` when the listing has no
        name or brand; validation must have rejected such input already.
        """
        if not listing.product_name.strip() or not listing.brand.strip():
            raise FatalPreconditionError(
                "Cannot resolve a listing without product_name and brand "
                f"(product_name={listing.product_name!r}, "
                f"brand={listing.brand!r})"
            )

        normalized = normalize_name(
            listing.product_name, listing.specifications,
        )

        with self._brand_lock(listing.brand):
            resolution = self._match(listing, normalized)
            if resolution is not None:
                return resolution

            try:
                return self._create(listing, normalized)
            except DuplicateProductError as exc:
                # Another writer created this identity between our lookup
                # and insert. Retry the match once and use its product.
                logger.warning(
                    "Create conflict for '%s'; retrying lookup", normalized,
                )
                resolution = self._match(listing, normalized)
                if resolution is None:
                    raise ResolutionConflictError(
                        f"Conflict on '{normalized}' but no product found "
                        "on retry"
                    ) from exc
                return resolution

    def find_similar_product(
        self, brand: str, normalized_name: str,
    ) -> tuple[Product, float] | None:
        """Best same-brand product whose key scores at or above threshold.

        Ties go to the oldest product.
        """
        if self.similarity_threshold <= 0:
            return None

        candidates = self._db.list_products_by_brand(
            brand, limit=self.candidate_limit,
        )
        best: Product | None = None
        best_score = 0.0
        for candidate in candidates:
            score = calculate_similarity(
                normalized_name, candidate.normalized_name,
            )
            # Inclusive: a score equal to the threshold is a match
            if score >= self.similarity_threshold and score > best_score:
                best = candidate
                best_score = score

        if best is None:
            return None
        return best, best_score

    # ── Private helpers ──────────────────────────────────

    def _brand_lock(self, brand: str) -> threading.Lock:
        key = brand.strip().casefold()
        with self._locks_guard:
            return self._brand_locks.setdefault(key, threading.Lock())

    def _match(
        self, listing: CleanedListing, normalized: str,
    ) -> Resolution | None:
        product = self._db.find_product_by_normalized_name(normalized)
        if product is not None:
            enriched = self._db.enrich_product_specifications(
                product.id, listing.specifications,
            )
            product.specifications.fill_missing(listing.specifications)
            logger.debug(
                "Exact match '%s' -> product %d", normalized, product.id,
            )
            return Resolution(
                product=product,
                created=False,
                match_type="exact",
                normalized_name=normalized,
                enriched_fields=enriched,
            )

        similar = self.find_similar_product(listing.brand, normalized)
        if similar is not None:
            product, score = similar
            logger.info(
                "Fuzzy match '%s' -> '%s' (product %d, score %.3f)",
                normalized,
                product.normalized_name,
                product.id,
                score,
            )
            return Resolution(
                product=product,
                created=False,
                match_type="fuzzy",
                normalized_name=normalized,
                score=score,
            )

        return None

    def _create(
        self, listing: CleanedListing, normalized: str,
    ) -> Resolution:
        product = self._db.create_product(
            product_name=listing.product_name,
            brand=listing.brand,
            normalized_name=normalized,
            specifications=listing.specifications,
            category=self.category,
        )
        return Resolution(
            product=product,
            created=True,
            match_type="created",
            normalized_name=normalized,
        )
