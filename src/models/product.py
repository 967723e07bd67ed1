# src/models/product.py

"""Catalog models: canonical products and the retailers that sell them."""

from dataclasses import dataclass, field
from datetime import datetime

from src.models.listing import Specifications


@dataclass
class Retailer:
    """A named seller, upserted by exact name."""

    id: int
    name: str
    website_url: str | None = None
    location: str | None = None


@dataclass
class Product:
    """Canonical catalog entry for one physical good."""

    id: int
    product_name: str
    brand: str
    normalized_name: str
    category: str = "wood_pellets"
    specifications: Specifications = field(
        default_factory=Specifications
    )
    created_at: datetime | None = None
