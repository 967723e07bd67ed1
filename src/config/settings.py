# src/config/settings.py

"""Central configuration for the pellet_tracker pipeline."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    """Central configuration for the pellet_tracker pipeline."""

    # --- Identity resolution ---
    SIMILARITY_THRESHOLD: float = float(
        os.getenv("PELLET_SIMILARITY_THRESHOLD", "0.85")
    )
    FUZZY_CANDIDATE_LIMIT: int = 500    # Same-brand products scanned per miss
    DEFAULT_CATEGORY: str = "wood_pellets"

    # --- Currency ---
    DEFAULT_CURRENCY: str = "EUR"
    SUPPORTED_CURRENCIES: frozenset[str] = frozenset(
        {"EUR", "USD", "GBP", "JPY"}
    )
    STRICT_CURRENCY: bool = _env_bool("PELLET_STRICT_CURRENCY", False)

    # --- Price drop detection ---
    PRICE_DROP_THRESHOLD: float = float(
        os.getenv("PELLET_DROP_THRESHOLD", "10.0")
    )                                   # Percent
    PRICE_DROP_LOOKBACK_DAYS: int = int(
        os.getenv("PELLET_DROP_LOOKBACK_DAYS", "7")
    )

    # --- Batch ingestion ---
    BATCH_CONCURRENCY: int = int(
        os.getenv("PELLET_BATCH_CONCURRENCY", "4")
    )
    STATS_WINDOW_DAYS: int = 7
    RETAILER_WINDOW_DAYS: int = 30       # Retailer comparison window

    # --- Logging ---
    CONSOLE_LOG_LEVEL: str = os.getenv("PELLET_LOG_LEVEL", "WARNING")

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    RESULTS_DIR: Path = BASE_DIR / "results"
    LOGS_DIR: Path = BASE_DIR / "logs"
    PRICE_DB_PATH: Path = Path(
        os.getenv("PELLET_DB_PATH", str(DATA_DIR / "pellet_prices.db"))
    )
