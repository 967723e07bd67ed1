# src/services/price_ledger.py

"""Append-only price ledger with price-drop detection."""

import logging
import re
from datetime import datetime, timedelta

from src.config.settings import Settings
from src.models.exceptions import FatalPreconditionError
from src.models.listing import CleanedListing, Specifications
from src.models.price_observation import PriceDrop, PriceObservation
from src.normalization.field_normalizer import UNKNOWN, normalize_weight
from src.storage.price_history_db import PriceHistoryDB

logger = logging.getLogger("pellet_tracker.ledger")

_QUANTITY_RE = re.compile(r"^(\d+(?:\.\d+)?)([a-z]+)$")


def extract_quantity(
    specifications: Specifications,
) -> tuple[float | None, str | None]:
    """Derive (quantity, unit) from the specification weight, e.g. (15.0, "kg")."""
    if not specifications.weight:
        return None, None
    weight = normalize_weight(specifications.weight)
    if weight == UNKNOWN:
        return None, None
    match = _QUANTITY_RE.match(weight)
    if not match:
        return None, None
    return float(match.group(1)), match.group(2)


class PriceLedgerWriter:
    """Write price observations and compare them with earlier ones.

    A drop is flagged when the current price is below the prior price by
    more than ``threshold`` percent, where the prior is the newest
    observation for the same (product, retailer) that is at least
    ``lookback_days`` older than the current one.
    """

    def __init__(
        self,
        db: PriceHistoryDB,
        drop_threshold: float | None = None,
        lookback_days: int | None = None,
    ) -> None:
        self._db = db
        self.drop_threshold = (
            drop_threshold
            if drop_threshold is not None
            else Settings.PRICE_DROP_THRESHOLD
        )
        self.lookback_days = (
            lookback_days
            if lookback_days is not None
            else Settings.PRICE_DROP_LOOKBACK_DAYS
        )

    def record(
        self,
        product_id: int,
        retailer_id: int,
        listing: CleanedListing,
        observed_at: datetime | None = None,
    ) -> PriceObservation:
        """Append one observation for a resolved (product, retailer) pair."""
        if product_id is None or retailer_id is None:
            raise FatalPreconditionError(
                "Price observations need resolved product and retailer ids"
            )
        if listing.price <= 0:
            raise FatalPreconditionError(
                f"Refusing to record non-positive price {listing.price}"
            )
        if listing.currency not in Settings.SUPPORTED_CURRENCIES:
            raise FatalPreconditionError(
                f"Refusing to record unsupported currency {listing.currency}"
            )

        quantity, unit = extract_quantity(listing.specifications)
        observation = self._db.append_price_observation(
            product_id=product_id,
            retailer_id=retailer_id,
            price=listing.price,
            currency=listing.currency,
            in_stock=listing.in_stock,
            observed_at=observed_at or datetime.now(),
            quantity=quantity,
            unit=unit,
            source_url=listing.url,
        )
        logger.info(
            "Recorded %s %.2f for product %d at retailer %d",
            observation.currency,
            observation.price,
            product_id,
            retailer_id,
        )
        return observation

    def check_price_drop(
        self,
        observation: PriceObservation,
        threshold: float | None = None,
        lookback_days: int | None = None,
    ) -> PriceDrop | None:
        """Compare *observation* with its prior; ``None`` if there is none."""
        threshold_pct = (
            threshold if threshold is not None else self.drop_threshold
        )
        days = lookback_days if lookback_days is not None else self.lookback_days

        previous = self._db.get_prior_observation(
            observation.product_id,
            observation.retailer_id,
            not_after=observation.observed_at - timedelta(days=days),
            exclude_id=observation.id,
        )
        if previous is None:
            return None
        if previous.currency != observation.currency:
            logger.debug(
                "Skipping drop check for product %d: currency changed "
                "%s -> %s",
                observation.product_id,
                previous.currency,
                observation.currency,
            )
            return None

        change = (observation.price - previous.price) / previous.price * 100
        is_drop = observation.price < previous.price * (
            1 - threshold_pct / 100.0
        )
        if is_drop:
            logger.info(
                "Price drop for product %d at retailer %d: "
                "%.2f -> %.2f (%.2f%%)",
                observation.product_id,
                observation.retailer_id,
                previous.price,
                observation.price,
                change,
            )
        return PriceDrop(
            product_id=observation.product_id,
            retailer_id=observation.retailer_id,
            previous_price=previous.price,
            current_price=observation.price,
            percent_change=round(change, 2),
            previous_observed_at=previous.observed_at,
            current_observed_at=observation.observed_at,
            is_drop=is_drop,
        )

    def detect_price_drops(
        self,
        threshold: float | None = None,
        lookback_days: int | None = None,
    ) -> list[PriceDrop]:
        """Flag drops across the whole ledger, largest drop first."""
        drops: list[PriceDrop] = []
        for latest in self._db.latest_observations():
            check = self.check_price_drop(latest, threshold, lookback_days)
            if check is not None and check.is_drop:
                drops.append(check)
        drops.sort(key=lambda d: d.percent_change)
        return drops
