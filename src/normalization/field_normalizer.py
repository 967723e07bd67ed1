# src/normalization/field_normalizer.py

"""Canonicalise noisy scraped fields: currency, weight, packaging, specs.

Every function here is pure and never raises on odd input.  When a value
cannot be parsed the result is a defined sentinel (``"unknown"`` or the
default currency) so a listing is never dropped over a parsing ambiguity.
"""

import dataclasses
import logging
import math
import re
from collections.abc import Mapping
from decimal import Decimal

from src.config.settings import Settings
from src.models.listing import CleanedListing, Specifications

logger = logging.getLogger("pellet_tracker.normalization")

UNKNOWN = "unknown"

_CURRENCY_MAP: dict[str, str] = {
    "€": "EUR",
    "$": "USD",
    "£": "GBP",
    "¥": "JPY",
    "EUR": "EUR",
    "USD": "USD",
    "GBP": "GBP",
    "JPY": "JPY",
}

# Multipliers to kilograms, keyed by unit spelling
_KG_UNITS: dict[str, float] = {
    "": 1.0,
    "kg": 1.0,
    "kgs": 1.0,
    "kilogram": 1.0,
    "kilograms": 1.0,
    "kilogrami": 1.0,
    "t": 1000.0,
    "ton": 1000.0,
    "tons": 1000.0,
    "tonne": 1000.0,
    "tonnes": 1000.0,
    "tonna": 1000.0,
    "tonnas": 1000.0,
    "g": 0.001,
    "gr": 0.001,
    "grams": 0.001,
}

_NUMBER = r"(\d+(?:[.,]\d+)?)"

_WEIGHT_TOKEN_RE = re.compile(_NUMBER + r"\s*([^\W\d_]*)")

_NAME_WEIGHT_RE = re.compile(
    _NUMBER
    + r"\s*(kilograms?|kilogrami|kgs?|tonn(?:es|e|as|a)|tons?)(?![^\W\d_])",
    re.IGNORECASE,
)

_DIAMETER_RE = re.compile(_NUMBER + r"\s*mm(?![^\W\d_])")

_PRICE_RE = re.compile(r"-?\d[\d.,]*")

# Checked in order: the first matching group wins
_PACKAGING_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("bigbag", ("big bag", "bigbag", "big-bag")),
    ("bags", ("maiso", "maisu", "maiss", "bag", "sack")),
    ("pallets", ("pallet", "palete", "paletē")),
    ("bulk", ("bulk", "beramā", "berams")),
)

_WOOD_TYPE_KEYWORDS: tuple[str, ...] = ("kokskaidu", "wood")
_WOOD_TYPE = "kokskaidu granulas"

_FALSEY_STOCK: frozenset[str] = frozenset({
    "", "0", "false", "no", "n", "none", "null",
    "out of stock", "out_of_stock", "unavailable", "nav",
})


def _parse_number(text: str) -> float:
    """Parse a number that may use a decimal comma."""
    return float(text.replace(",", "."))


def _parse_price_token(token: str) -> float:
    """Parse ``1,234.50``, ``1.234,50`` and ``235,50`` style prices.

    When both separators appear the last one is the decimal mark.
    """
    token = token.rstrip(".,")
    if "," in token and "." in token:
        if token.rfind(",") > token.rfind("."):
            token = token.replace(".", "").replace(",", ".")
        else:
            token = token.replace(",", "")
    elif "," in token:
        token = token.replace(",", ".")
    try:
        return float(token)
    except ValueError:
        return 0.0


def _format_kg(value: float) -> str:
    """Render a kilogram amount without trailing zeros (``15kg``, ``0.5kg``).

    Amounts below one gram round to zero and come back as ``"unknown"``.
    """
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    if text == "0":
        return UNKNOWN
    return f"{text}kg"


# ── Currency ─────────────────────────────────────────────


def resolve_currency(value: object) -> tuple[str, bool]:
    """Map a currency symbol or code to an ISO code.

    Returns the code and whether it was inferred (the default was used
    because *value* was missing or unrecognised).
    """
    if value is None:
        return Settings.DEFAULT_CURRENCY, True
    text = str(value).strip()
    if not text:
        return Settings.DEFAULT_CURRENCY, True

    code = _CURRENCY_MAP.get(text.upper()) or _CURRENCY_MAP.get(text)
    if code is not None:
        return code, False

    logger.debug(
        "Unrecognised currency '%s', defaulting to %s",
        text,
        Settings.DEFAULT_CURRENCY,
    )
    return Settings.DEFAULT_CURRENCY, True


def normalize_currency(value: object) -> str:
    """Map a currency symbol or code to EUR, USD, GBP or JPY (default EUR)."""
    code, _inferred = resolve_currency(value)
    return code


# ── Weight ───────────────────────────────────────────────


def normalize_weight(raw: object) -> str:
    """Normalise a weight value to ``"<n>kg"``.

    Unit-less numbers are kilograms; tonnes are multiplied by 1000.
    Returns ``"unknown"`` for anything unparsable.
    """
    if raw is None or isinstance(raw, bool):
        return UNKNOWN

    if isinstance(raw, (int, float, Decimal)):
        value = float(raw)
        if not math.isfinite(value) or value <= 0:
            return UNKNOWN
        return _format_kg(value)

    match = _WEIGHT_TOKEN_RE.search(str(raw).lower())
    if not match:
        return UNKNOWN

    multiplier = _KG_UNITS.get(match.group(2))
    if multiplier is None:
        return UNKNOWN

    value = _parse_number(match.group(1)) * multiplier
    if value <= 0:
        return UNKNOWN
    return _format_kg(value)


def extract_weight(
    product_name: str,
    specifications: Specifications | Mapping[str, object] | None = None,
) -> str:
    """Find a product's weight in kilograms.

    Priority: ``specifications.weight``, then a ``<n> kg|kilogram|ton``
    token in the name, then ``"unknown"``.
    """
    spec_weight: object = None
    if isinstance(specifications, Specifications):
        spec_weight = specifications.weight
    elif specifications:
        spec_weight = specifications.get("weight")

    if spec_weight:
        weight = normalize_weight(spec_weight)
        if weight != UNKNOWN:
            return weight

    match = _NAME_WEIGHT_RE.search(product_name or "")
    if not match:
        return UNKNOWN

    unit = match.group(2).lower()
    value = _parse_number(match.group(1)) * _KG_UNITS.get(unit, 1.0)
    if value <= 0:
        return UNKNOWN
    return _format_kg(value)


# ── Packaging ────────────────────────────────────────────


def extract_packaging(product_name: str) -> str:
    """Classify packaging as bags, bigbag, pallets, bulk or unknown."""
    name = (product_name or "").casefold()
    for label, keywords in _PACKAGING_KEYWORDS:
        if any(kw in name for kw in keywords):
            return label
    return UNKNOWN


# ── Specifications ───────────────────────────────────────


def _field(listing: Mapping[str, object] | CleanedListing, name: str) -> object:
    """Read a field from either a raw mapping or a cleaned listing."""
    if isinstance(listing, CleanedListing):
        return getattr(listing, name, None)
    return listing.get(name)


def extract_specifications(
    listing: Mapping[str, object] | CleanedListing,
) -> Specifications:
    """Build the specification record for a listing.

    Seeds from the supplied specifications, then fills ``diameter`` and
    ``type`` from the description and ``weight``/``packaging`` from the
    product name.  Fields already present are never overwritten.
    """
    supplied = _field(listing, "specifications")
    if isinstance(supplied, Specifications):
        specs = dataclasses.replace(supplied)
    elif isinstance(supplied, Mapping):
        specs = Specifications.from_mapping(supplied)
    else:
        specs = Specifications()

    description = str(_field(listing, "description") or "").lower()
    if description:
        if specs.diameter is None:
            match = _DIAMETER_RE.search(description)
            if match:
                specs.diameter = f"{match.group(1)} mm"
        if specs.type is None and any(
            kw in description for kw in _WOOD_TYPE_KEYWORDS
        ):
            specs.type = _WOOD_TYPE

    product_name = str(_field(listing, "product_name") or "")
    if product_name:
        if specs.weight is None:
            weight = extract_weight(product_name)
            if weight != UNKNOWN:
                specs.weight = weight
        if specs.packaging is None:
            packaging = extract_packaging(product_name)
            if packaging != UNKNOWN:
                specs.packaging = packaging

    return specs


# ── Cleaning ─────────────────────────────────────────────


def _clean_text(value: object) -> str:
    """Trim a scraped string field; missing values become empty."""
    if value is None:
        return ""
    return str(value).strip()


def coerce_price(value: object) -> float:
    """Coerce a scraped price to a float; unparsable input becomes 0.

    Zero is never a valid price, so validation rejects it downstream.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    if isinstance(value, str):
        compact = re.sub(r"\s+", "", value)
        match = _PRICE_RE.search(compact)
        if match:
            return _parse_price_token(match.group(0))
    return 0.0


def coerce_in_stock(value: object) -> bool:
    """Coerce a scraped availability flag to a bool."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() not in _FALSEY_STOCK


def clean_scraped_data(listing: Mapping[str, object]) -> CleanedListing:
    """Clean one raw scraped listing.

    This is the single entry point every raw listing passes through
    before validation and identity resolution.
    """
    brand = _clean_text(listing.get("brand"))
    currency, inferred = resolve_currency(listing.get("currency"))

    cleaned = CleanedListing(
        product_name=_clean_text(listing.get("product_name")),
        brand=brand,
        retailer=_clean_text(listing.get("retailer")) or brand,
        price=coerce_price(listing.get("price")),
        currency=currency,
        currency_inferred=inferred,
        in_stock=coerce_in_stock(listing.get("in_stock")),
        url=_clean_text(listing.get("url")),
        description=_clean_text(listing.get("description")),
    )
    cleaned.specifications = extract_specifications(
        {
            "product_name": cleaned.product_name,
            "description": cleaned.description,
            "specifications": listing.get("specifications"),
        }
    )
    return cleaned
