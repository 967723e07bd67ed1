# tests/test_listing_validator.py

"""Tests for listing validation."""

import unittest

from src.models.listing import CleanedListing
from src.normalization.field_normalizer import clean_scraped_data
from src.normalization.listing_validator import (
    ListingValidator,
    validate_scraped_data,
)


def _listing(**overrides: object) -> dict[str, object]:
    """Return a valid raw listing with optional overrides."""
    data: dict[str, object] = {
        "product_name": "6 mm kokskaidu granulas 15KG MAISOS",
        "brand": "SIA Staļi",
        "price": 235.0,
        "currency": "EUR",
        "in_stock": True,
        "url": "https://stali.lv/granulas",
    }
    data.update(overrides)
    return data


class TestValidateScrapedData(unittest.TestCase):
    """validate_scraped_data rules."""

    def test_valid_listing(self) -> None:
        """A complete listing passes with no errors."""
        result = validate_scraped_data(_listing())
        self.assertTrue(result.valid)
        self.assertEqual(result.errors, [])

    def test_negative_price(self) -> None:
        """A negative price is reported against the price field."""
        result = validate_scraped_data(_listing(price=-5))
        self.assertFalse(result.valid)
        self.assertTrue(any("price" in e for e in result.errors))

    def test_non_positive_or_non_numeric_price(self) -> None:
        """Zero, strings and booleans are not prices."""
        for price in (0, "235", True, None, float("nan")):
            with self.subTest(price=price):
                result = validate_scraped_data(_listing(price=price))
                self.assertIn(
                    "price must be a positive number", result.errors,
                )

    def test_unsupported_currency(self) -> None:
        """Currencies outside the supported set are rejected."""
        result = validate_scraped_data(_listing(currency="XYZ"))
        self.assertFalse(result.valid)
        self.assertTrue(any("currency" in e for e in result.errors))

    def test_supported_currencies(self) -> None:
        """Every supported code passes."""
        for code in ("EUR", "USD", "GBP", "JPY"):
            with self.subTest(code=code):
                self.assertTrue(
                    validate_scraped_data(_listing(currency=code)).valid
                )

    def test_missing_name_and_brand(self) -> None:
        """Blank or missing identity fields are both reported."""
        raw = _listing(product_name="   ")
        del raw["brand"]
        result = validate_scraped_data(raw)
        self.assertIn("product_name is required", result.errors)
        self.assertIn("brand is required", result.errors)

    def test_in_stock_must_be_bool(self) -> None:
        """String availability is not accepted on raw input."""
        result = validate_scraped_data(_listing(in_stock="yes"))
        self.assertIn("in_stock must be a boolean", result.errors)

    def test_url_scheme(self) -> None:
        """Only HTTP/HTTPS URLs are accepted; an empty URL is fine."""
        bad = validate_scraped_data(_listing(url="ftp://stali.lv/x"))
        self.assertIn("url must be a valid HTTP/HTTPS URL", bad.errors)
        self.assertTrue(validate_scraped_data(_listing(url="")).valid)
        raw = _listing()
        del raw["url"]
        self.assertTrue(validate_scraped_data(raw).valid)

    def test_errors_accumulate(self) -> None:
        """Every failing field gets its own message."""
        result = validate_scraped_data(
            _listing(price=-1, currency="XYZ", in_stock=None)
        )
        self.assertEqual(len(result.errors), 3)

    def test_accepts_cleaned_listing(self) -> None:
        """A CleanedListing is validated on its attributes."""
        cleaned = CleanedListing(
            product_name="Granulas", brand="Latgran", price=199.0,
            in_stock=True,
        )
        self.assertTrue(validate_scraped_data(cleaned).valid)


class TestListingValidator(unittest.TestCase):
    """ListingValidator check / validate."""

    def test_inferred_currency_passes_by_default(self) -> None:
        """A defaulted currency is acceptable unless strict."""
        cleaned = clean_scraped_data(_listing(currency="XYZ"))
        self.assertTrue(ListingValidator.check(cleaned).valid)

    def test_strict_currency_rejects_inferred(self) -> None:
        """Strict mode rejects a currency that had to be guessed."""
        cleaned = clean_scraped_data(_listing(currency="XYZ"))
        result = ListingValidator.check(cleaned, strict_currency=True)
        self.assertFalse(result.valid)
        self.assertTrue(any("currency" in e for e in result.errors))


if __name__ == "__main__":
    unittest.main()
