# tests/test_similarity.py

"""Tests for Levenshtein distance and similarity scoring."""

import unittest

from src.matching.similarity import calculate_similarity, levenshtein_distance


class TestLevenshteinDistance(unittest.TestCase):
    """levenshtein_distance values."""

    def test_known_distances(self) -> None:
        """Classic textbook pairs."""
        self.assertEqual(levenshtein_distance("kitten", "sitting"), 3)
        self.assertEqual(levenshtein_distance("flaw", "lawn"), 2)
        self.assertEqual(levenshtein_distance("", "abc"), 3)
        self.assertEqual(levenshtein_distance("abc", ""), 3)
        self.assertEqual(levenshtein_distance("abc", "abc"), 0)


class TestCalculateSimilarity(unittest.TestCase):
    """calculate_similarity properties."""

    def test_identical_is_one(self) -> None:
        """Equal strings score 1.0, ignoring case."""
        self.assertEqual(calculate_similarity("abc", "abc"), 1.0)
        self.assertEqual(calculate_similarity("Granulas", "granulas"), 1.0)

    def test_both_empty_is_one(self) -> None:
        """Two empty strings are identical."""
        self.assertEqual(calculate_similarity("", ""), 1.0)

    def test_one_empty_is_zero(self) -> None:
        """Against an empty string nothing is shared."""
        self.assertEqual(calculate_similarity("abc", ""), 0.0)

    def test_formula(self) -> None:
        """Score is (len(longer) - distance) / len(longer)."""
        self.assertAlmostEqual(
            calculate_similarity("kitten", "sitting"), 4 / 7,
        )

    def test_symmetric_and_bounded(self) -> None:
        """Order does not matter and scores stay in [0, 1]."""
        pairs = [
            ("kitten", "sitting"),
            ("granulas_15kg", "granulas_975kg_bigbag"),
            ("a", "xyz"),
        ]
        for a, b in pairs:
            with self.subTest(a=a, b=b):
                score = calculate_similarity(a, b)
                self.assertEqual(score, calculate_similarity(b, a))
                self.assertGreaterEqual(score, 0.0)
                self.assertLessEqual(score, 1.0)

    def test_one_character_difference_scores_high(self) -> None:
        """Keys differing by one underscore sit well above 0.85."""
        score = calculate_similarity(
            "6_mm_kokskaidu_granulas_15kg_maisos_15kg",
            "6mm_kokskaidu_granulas_15kg_maisos_15kg",
        )
        self.assertAlmostEqual(score, 39 / 40)
        self.assertGreater(score, 0.85)


if __name__ == "__main__":
    unittest.main()
