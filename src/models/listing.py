# src/models/listing.py

"""Listing-side data models: specifications, cleaned listings, validation."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, fields

logger = logging.getLogger("pellet_tracker.models")


@dataclass
class Specifications:
    """Typed attribute record for a pellet product.

    Every field is optional; a missing attribute is ``None``.
    """

    weight: str | None = None
    packaging: str | None = None
    diameter: str | None = None
    type: str | None = None
    material: str | None = None

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        """Return the attribute names in declaration order."""
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[str, object] | None,
    ) -> "Specifications":
        """Build a record from a loose dict, ignoring unknown keys.

        Empty strings count as absent.
        """
        if not mapping:
            return cls()
        known = set(cls.field_names())
        values: dict[str, str | None] = {}
        for key, raw in mapping.items():
            name = str(key).strip().lower()
            if name not in known:
                logger.debug("Ignoring unknown specification '%s'", key)
                continue
            if raw is None:
                continue
            text = str(raw).strip()
            if text:
                values[name] = text
        return cls(**values)

    def fill_missing(self, other: "Specifications") -> list[str]:
        """Copy fields from *other* only where this record has none.

        Returns the names of the fields that were filled.
        """
        filled: list[str] = []
        for name in self.field_names():
            if getattr(self, name) is None:
                value = getattr(other, name)
                if value is not None:
                    setattr(self, name, value)
                    filled.append(name)
        return filled

    def to_dict(self) -> dict[str, str]:
        """Serialise the non-null fields."""
        result: dict[str, str] = {}
        for name in self.field_names():
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        return result


@dataclass
class CleanedListing:
    """A scraped listing after field normalisation."""

    product_name: str
    brand: str
    price: float
    currency: str = "EUR"
    in_stock: bool = False
    url: str = ""
    description: str = ""
    retailer: str = ""
    currency_inferred: bool = False
    specifications: Specifications = field(
        default_factory=Specifications
    )


@dataclass
class ValidationResult:
    """Outcome of validating one listing."""

    valid: bool
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )
