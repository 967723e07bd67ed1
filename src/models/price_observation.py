# src/models/price_observation.py

"""Temporal price observation models for the price ledger."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class PriceObservation:
    """A single price point for a (product, retailer) pair."""

    id: int
    product_id: int
    retailer_id: int
    price: float
    currency: str
    in_stock: bool
    observed_at: datetime
    quantity: float | None = None
    unit: str | None = None
    source_url: str = ""


@dataclass
class PriceDrop:
    """Comparison of an observation against its prior for the same pair."""

    product_id: int
    retailer_id: int
    previous_price: float
    current_price: float
    percent_change: float
    previous_observed_at: datetime
    current_observed_at: datetime
    is_drop: bool
