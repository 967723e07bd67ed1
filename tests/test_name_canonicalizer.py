# tests/test_name_canonicalizer.py

"""Tests for normalized_name generation."""

import unittest

from src.normalization.name_canonicalizer import normalize_name


class TestNormalizeName(unittest.TestCase):
    """normalize_name canonical keys."""

    def test_reference_example(self) -> None:
        """The documented example produces the documented key."""
        self.assertEqual(
            normalize_name("6 mm kokskaidu granulas 15KG MAISOS"),
            "6_mm_kokskaidu_granulas_15kg_maisos_15kg",
        )

    def test_deterministic(self) -> None:
        """Same input always gives the same key."""
        names = [
            "6 mm kokskaidu granulas 15KG MAISOS",
            "Premium Granulas big bag 975 kg",
            "Wood pellets A1",
            "Staļi granulas",
        ]
        for name in names:
            with self.subTest(name=name):
                self.assertEqual(normalize_name(name), normalize_name(name))
                self.assertEqual(
                    normalize_name(name, {"weight": "1 t"}),
                    normalize_name(name, {"weight": "1 t"}),
                )

    def test_quality_tiers_ignored(self) -> None:
        """Tier prefixes and suffixes do not change the key."""
        expected = "granulas_15kg_15kg"
        self.assertEqual(normalize_name("Premium Granulas 15kg"), expected)
        self.assertEqual(normalize_name("Granulas 15kg A1"), expected)
        self.assertEqual(normalize_name("granulas 15kg"), expected)

    def test_separators_and_punctuation(self) -> None:
        """Hyphens and underscores split words; punctuation is removed."""
        self.assertEqual(normalize_name("Wood-Pellets_6mm"), "wood_pellets_6mm")
        self.assertEqual(
            normalize_name("Granulas (6mm), 15kg!"),
            "granulas_6mm_15kg_15kg",
        )

    def test_whitespace_collapsed(self) -> None:
        """Runs of whitespace become a single underscore."""
        self.assertEqual(
            normalize_name("  Granulas    maisos  15kg "),
            "granulas_maisos_15kg_15kg",
        )

    def test_non_default_packaging_appended(self) -> None:
        """Bigbag is part of the identity; bags is the default and omitted."""
        self.assertEqual(
            normalize_name("Granulas big bag 975 kg"),
            "granulas_big_bag_975_kg_975kg_bigbag",
        )
        self.assertEqual(
            normalize_name("Granulas 15kg maisos"),
            "granulas_15kg_maisos_15kg",
        )

    def test_specification_weight_used(self) -> None:
        """The specification weight is appended when the name has none."""
        self.assertEqual(
            normalize_name("Granulas", {"weight": "1 t"}),
            "granulas_1000kg",
        )

    def test_unicode_letters_kept(self) -> None:
        """Latvian letters are word characters and survive."""
        self.assertEqual(normalize_name("Staļi granulas"), "staļi_granulas")


if __name__ == "__main__":
    unittest.main()
