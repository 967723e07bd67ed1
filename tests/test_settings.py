# tests/test_settings.py

"""Tests for the Settings configuration class."""

import os
import unittest
from pathlib import Path
from unittest.mock import patch

from src.config.settings import Settings, _env_bool


class TestSettings(unittest.TestCase):
    """Verify Settings constants."""

    def test_similarity_threshold_in_unit_range(self) -> None:
        """SIMILARITY_THRESHOLD must lie in [0, 1]."""
        self.assertIsInstance(Settings.SIMILARITY_THRESHOLD, float)
        self.assertGreaterEqual(Settings.SIMILARITY_THRESHOLD, 0.0)
        self.assertLessEqual(Settings.SIMILARITY_THRESHOLD, 1.0)

    def test_candidate_limit_positive(self) -> None:
        """FUZZY_CANDIDATE_LIMIT must be >= 1."""
        self.assertGreaterEqual(Settings.FUZZY_CANDIDATE_LIMIT, 1)

    def test_default_currency_is_supported(self) -> None:
        """The fallback currency must itself be accepted."""
        self.assertIn(
            Settings.DEFAULT_CURRENCY, Settings.SUPPORTED_CURRENCIES,
        )

    def test_supported_currencies(self) -> None:
        """Exactly EUR, USD, GBP and JPY are supported."""
        self.assertEqual(
            Settings.SUPPORTED_CURRENCIES,
            frozenset({"EUR", "USD", "GBP", "JPY"}),
        )

    def test_drop_threshold_is_percent(self) -> None:
        """PRICE_DROP_THRESHOLD is a percentage between 0 and 100."""
        self.assertGreater(Settings.PRICE_DROP_THRESHOLD, 0)
        self.assertLess(Settings.PRICE_DROP_THRESHOLD, 100)

    def test_lookback_days_non_negative(self) -> None:
        """PRICE_DROP_LOOKBACK_DAYS must be >= 0."""
        self.assertIsInstance(Settings.PRICE_DROP_LOOKBACK_DAYS, int)
        self.assertGreaterEqual(Settings.PRICE_DROP_LOOKBACK_DAYS, 0)

    def test_batch_concurrency_positive(self) -> None:
        """BATCH_CONCURRENCY must be >= 1."""
        self.assertGreaterEqual(Settings.BATCH_CONCURRENCY, 1)

    def test_default_category(self) -> None:
        """New products default to the wood pellet category."""
        self.assertEqual(Settings.DEFAULT_CATEGORY, "wood_pellets")

    def test_console_log_level_is_a_name(self) -> None:
        """CONSOLE_LOG_LEVEL holds a level name string."""
        self.assertIsInstance(Settings.CONSOLE_LOG_LEVEL, str)
        self.assertTrue(Settings.CONSOLE_LOG_LEVEL)

    def test_paths_are_path_objects(self) -> None:
        """Directory and database settings must be Path instances."""
        for attr in (
            "BASE_DIR", "DATA_DIR", "RESULTS_DIR", "LOGS_DIR",
            "PRICE_DB_PATH",
        ):
            with self.subTest(attr=attr):
                self.assertIsInstance(getattr(Settings, attr), Path)


class TestEnvBool(unittest.TestCase):
    """_env_bool flag parsing."""

    def test_missing_uses_default(self) -> None:
        """An unset variable returns the default."""
        with patch.dict(os.environ, {}, clear=True):
            self.assertTrue(_env_bool("PELLET_TEST_FLAG", True))
            self.assertFalse(_env_bool("PELLET_TEST_FLAG", False))

    def test_truthy_values(self) -> None:
        """Common truthy spellings are accepted."""
        for raw in ("1", "true", "YES", " on "):
            with self.subTest(raw=raw):
                with patch.dict(os.environ, {"PELLET_TEST_FLAG": raw}):
                    self.assertTrue(_env_bool("PELLET_TEST_FLAG", False))

    def test_other_values_are_false(self) -> None:
        """Anything else is False."""
        for raw in ("0", "false", "", "maybe"):
            with self.subTest(raw=raw):
                with patch.dict(os.environ, {"PELLET_TEST_FLAG": raw}):
                    self.assertFalse(_env_bool("PELLET_TEST_FLAG", True))


if __name__ == "__main__":
    unittest.main()
