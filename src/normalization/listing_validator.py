# src/normalization/listing_validator.py

"""Listing validation: reject malformed listings before resolution."""

import dataclasses
import logging
import math
from collections.abc import Mapping
from decimal import Decimal
from urllib.parse import urlparse

from src.config.settings import Settings
from src.models.listing import CleanedListing, ValidationResult

logger = logging.getLogger("pellet_tracker.normalization")


def _is_blank(value: object) -> bool:
    return not isinstance(value, str) or not value.strip()


def _is_positive_number(value: object) -> bool:
    if isinstance(value, bool):
        return False
    if not isinstance(value, (int, float, Decimal)):
        return False
    number = float(value)
    return math.isfinite(number) and number > 0


def _is_http_url(value: object) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme.lower() in {"http", "https"} and bool(parsed.netloc)


def validate_scraped_data(
    listing: Mapping[str, object] | CleanedListing,
) -> ValidationResult:
    """Check a raw or cleaned listing for the fields resolution needs.

    Every error message names the offending field.
    """
    data: Mapping[str, object] = (
        dataclasses.asdict(listing)
        if isinstance(listing, CleanedListing)
        else listing
    )
    errors: list[str] = []

    if _is_blank(data.get("product_name")):
        errors.append("product_name is required")

    if _is_blank(data.get("brand")):
        errors.append("brand is required")

    if not _is_positive_number(data.get("price")):
        errors.append("price must be a positive number")

    currency = data.get("currency")
    if currency not in Settings.SUPPORTED_CURRENCIES:
        supported = ", ".join(sorted(Settings.SUPPORTED_CURRENCIES))
        errors.append(f"currency must be one of {supported}")

    if not isinstance(data.get("in_stock"), bool):
        errors.append("in_stock must be a boolean")

    url = data.get("url")
    if url and not _is_http_url(url):
        errors.append("url must be a valid HTTP/HTTPS URL")

    return ValidationResult(valid=not errors, errors=errors)


class ListingValidator:
    """Validate cleaned listings before identity resolution."""

    @staticmethod
    def check(
        listing: CleanedListing,
        strict_currency: bool = False,
    ) -> ValidationResult:
        """Validate one cleaned listing.

        With *strict_currency* a currency that had to be inferred is
        rejected instead of accepted as the default.
        """
        result = validate_scraped_data(listing)
        if strict_currency and listing.currency_inferred:
            result.errors.append(
                "currency could not be determined from the listing"
            )
            result.valid = False
        if not result.valid:
            logger.debug(
                "Rejected listing '%s' (brand=%s): %s",
                listing.product_name,
                listing.brand,
                "; ".join(result.errors),
            )
        return result
