# tests/test_listing_model.py

"""Tests for the Specifications record."""

import unittest

from src.models.listing import Specifications


class TestSpecifications(unittest.TestCase):
    """Specifications construction, merge and serialisation."""

    def test_from_mapping_ignores_unknown_keys(self) -> None:
        """Only declared attributes survive."""
        specs = Specifications.from_mapping(
            {"weight": "15kg", "colour": "light", "Diameter": "6 mm"}
        )
        self.assertEqual(specs.weight, "15kg")
        self.assertEqual(specs.diameter, "6 mm")
        self.assertEqual(
            set(specs.to_dict()), {"weight", "diameter"},
        )

    def test_from_mapping_treats_blank_as_absent(self) -> None:
        """Empty strings and None are not stored."""
        specs = Specifications.from_mapping(
            {"weight": "  ", "packaging": None, "material": "pine"}
        )
        self.assertIsNone(specs.weight)
        self.assertIsNone(specs.packaging)
        self.assertEqual(specs.material, "pine")

    def test_from_mapping_none(self) -> None:
        """A missing mapping gives an empty record."""
        self.assertEqual(Specifications.from_mapping(None), Specifications())

    def test_fill_missing_never_overwrites(self) -> None:
        """Existing values win; only gaps are filled."""
        current = Specifications(weight="15kg", material="pine")
        incoming = Specifications(
            weight="975kg", material="spruce", diameter="6 mm",
        )
        filled = current.fill_missing(incoming)
        self.assertEqual(filled, ["diameter"])
        self.assertEqual(current.weight, "15kg")
        self.assertEqual(current.material, "pine")
        self.assertEqual(current.diameter, "6 mm")

    def test_fill_missing_nothing_to_fill(self) -> None:
        """An empty source fills nothing."""
        current = Specifications(weight="15kg")
        self.assertEqual(current.fill_missing(Specifications()), [])

    def test_to_dict_skips_none(self) -> None:
        """Serialisation drops absent fields."""
        self.assertEqual(
            Specifications(packaging="bags").to_dict(),
            {"packaging": "bags"},
        )


if __name__ == "__main__":
    unittest.main()
