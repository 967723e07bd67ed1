# src/matching/catalog_auditor.py

"""Offline audit of the catalog for near-duplicate products."""

import logging
from dataclasses import dataclass

from src.config.settings import Settings
from src.matching.similarity import calculate_similarity
from src.models.product import Product

logger = logging.getLogger("pellet_tracker.matching")


@dataclass
class DuplicateCandidate:
    """Two same-brand products whose keys are suspiciously close."""

    first: Product
    second: Product
    score: float


class CatalogAuditor:
    """Find product pairs that probably describe the same physical good."""

    @staticmethod
    def find_near_duplicates(
        products: list[Product],
        threshold: float = Settings.SIMILARITY_THRESHOLD,
    ) -> list[DuplicateCandidate]:
        """Compare every same-brand pair of normalized names.

        Returns pairs scoring at or above *threshold*, best first.
        """
        by_brand: dict[str, list[Product]] = {}
        for product in products:
            by_brand.setdefault(product.brand.casefold(), []).append(
                product
            )

        found: list[DuplicateCandidate] = []
        for group in by_brand.values():
            group.sort(key=lambda p: p.id)
            for i, first in enumerate(group):
                for second in group[i + 1:]:
                    score = calculate_similarity(
                        first.normalized_name, second.normalized_name,
                    )
                    if score >= threshold:
                        found.append(
                            DuplicateCandidate(first, second, score)
                        )

        found.sort(key=lambda c: (-c.score, c.first.id, c.second.id))
        if found:
            logger.info(
                "Catalog audit found %d near-duplicate pairs", len(found),
            )
        return found
