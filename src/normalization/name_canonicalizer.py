# src/normalization/name_canonicalizer.py

"""Deterministic ``normalized_name`` keys for product identity matching."""

import re
from collections.abc import Mapping

from src.models.listing import Specifications
from src.normalization.field_normalizer import (
    UNKNOWN,
    extract_packaging,
    extract_weight,
)

# Quality tiers and grade codes that do not change physical identity
_TIER_PREFIX_RE = re.compile(
    r"^(?:premium|standarts?|standarta|kokskaidu|wood pellets?)\s+",
    re.IGNORECASE,
)
_TIER_SUFFIX_RE = re.compile(
    r"\s+(?:premium|standarts?|enplus a1|a1|a2|din\+?)$",
    re.IGNORECASE,
)

_SEPARATOR_RE = re.compile(r"[-_]")
_NON_ALNUM_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")

# Most listings are bagged; the token adds no identity information
_DEFAULT_PACKAGING = "bags"


def normalize_name(
    product_name: str,
    specifications: Specifications | Mapping[str, object] | None = None,
) -> str:
    """Build the stored matching key for a product.

    The name is lower-cased, stripped of quality-tier words and
    punctuation, suffixed with the weight and (non-default) packaging
    tokens, and joined with underscores::

        >>> normalize_name("6 mm kokskaidu granulas 15KG MAISOS")
        '6_mm_kokskaidu_granulas_15kg_maisos_15kg'

    Identical input always yields an identical key.
    """
    normalized = _WHITESPACE_RE.sub(" ", product_name.lower().strip())
    normalized = _TIER_PREFIX_RE.sub("", normalized)
    normalized = _TIER_SUFFIX_RE.sub("", normalized)
    normalized = _SEPARATOR_RE.sub(" ", normalized)
    normalized = _NON_ALNUM_RE.sub("", normalized)

    weight = extract_weight(product_name, specifications)
    if weight != UNKNOWN:
        normalized += f" {weight}"

    packaging = extract_packaging(product_name)
    if packaging not in (UNKNOWN, _DEFAULT_PACKAGING):
        normalized += f" {packaging}"

    return _WHITESPACE_RE.sub("_", normalized.strip())
