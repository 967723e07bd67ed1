# src/storage/price_history_db.py

"""SQLite-backed catalog and price ledger for pellet price tracking.

One database holds three tables:

* ``retailers``: sellers, unique by name.
* ``products``: the canonical catalog, unique by ``normalized_name``.
  The unique index is what serialises concurrent "create" decisions: a
  second writer for the same identity gets :class:`DuplicateProductError`
  and the resolver falls back to the row that won.
* ``price_observations``: append-only price points per
  (product, retailer) pair.

A single connection is shared across worker threads and guarded by a
lock, so each public method is atomic.
"""

import json
import logging
import sqlite3
import threading
from datetime import datetime, timedelta
from pathlib import Path

from src.config.settings import Settings
from src.models.exceptions import DuplicateProductError
from src.models.listing import Specifications
from src.models.price_observation import PriceObservation
from src.models.product import Product, Retailer

logger = logging.getLogger("pellet_tracker.storage")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS retailers (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT    NOT NULL UNIQUE,
    website_url TEXT,
    location    TEXT,
    created_at  TEXT    NOT NULL,
    updated_at  TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS products (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    product_name    TEXT    NOT NULL,
    brand           TEXT    NOT NULL,
    category        TEXT    NOT NULL DEFAULT 'wood_pellets',
    specifications  TEXT    NOT NULL DEFAULT '{}',
    normalized_name TEXT    NOT NULL UNIQUE,
    created_at      TEXT    NOT NULL,
    updated_at      TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_products_brand
    ON products(brand COLLATE NOCASE);

CREATE TABLE IF NOT EXISTS price_observations (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id  INTEGER NOT NULL REFERENCES products(id),
    retailer_id INTEGER NOT NULL REFERENCES retailers(id),
    price       REAL    NOT NULL CHECK (price > 0),
    currency    TEXT    NOT NULL DEFAULT 'EUR',
    in_stock    INTEGER NOT NULL DEFAULT 1,
    quantity    REAL    CHECK (quantity IS NULL OR quantity > 0),
    unit        TEXT,
    source_url  TEXT    NOT NULL DEFAULT '',
    observed_at TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_observations_pair_date
    ON price_observations(product_id, retailer_id, observed_at);
"""

_PRODUCT_COLUMNS = (
    "id, product_name, brand, category, specifications, "
    "normalized_name, created_at"
)

_OBSERVATION_COLUMNS = (
    "id, product_id, retailer_id, price, currency, in_stock, "
    "quantity, unit, source_url, observed_at"
)


def to_timestamp(moment: datetime) -> str:
    """Serialise a datetime to a fixed-width, sortable ISO string.

    Aware datetimes are converted to naive local time first so that all
    stored values compare consistently.
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone().replace(tzinfo=None)
    return moment.isoformat(timespec="microseconds")


def _row_to_product(row: tuple) -> Product:
    return Product(
        id=row[0],
        product_name=row[1],
        brand=row[2],
        category=row[3],
        specifications=Specifications.from_mapping(json.loads(row[4])),
        normalized_name=row[5],
        created_at=datetime.fromisoformat(row[6]),
    )


def _row_to_observation(row: tuple) -> PriceObservation:
    return PriceObservation(
        id=row[0],
        product_id=row[1],
        retailer_id=row[2],
        price=row[3],
        currency=row[4],
        in_stock=bool(row[5]),
        quantity=row[6],
        unit=row[7],
        source_url=row[8],
        observed_at=datetime.fromisoformat(row[9]),
    )


def _dump_specs(specifications: Specifications) -> str:
    return json.dumps(
        specifications.to_dict(), ensure_ascii=False, sort_keys=True,
    )


class PriceHistoryDB:
    """SQLite store for retailers, products and price observations."""

    def __init__(
        self, db_path: Path | None = None,
    ) -> None:
        path = db_path or Settings.PRICE_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.debug("PriceHistoryDB opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    # ── Retailers ────────────────────────────────────────

    def upsert_retailer(
        self,
        name: str,
        website_url: str | None = None,
        location: str | None = None,
    ) -> Retailer:
        """Insert a retailer or refresh its optional metadata.

        Existing metadata is only replaced by non-null values.
        """
        now = to_timestamp(datetime.now())
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(
                "INSERT INTO retailers "
                "(name, website_url, location, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT(name) DO UPDATE SET "
                "  website_url = COALESCE(excluded.website_url, "
                "                         retailers.website_url), "
                "  location = COALESCE(excluded.location, "
                "                      retailers.location), "
                "  updated_at = excluded.updated_at",
                (name, website_url, location, now, now),
            )
            row = cur.execute(
                "SELECT id, name, website_url, location "
                "FROM retailers WHERE name = ?",
                (name,),
            ).fetchone()
            self._conn.commit()
        return Retailer(
            id=row[0], name=row[1], website_url=row[2], location=row[3],
        )

    def get_retailer(self, retailer_id: int) -> Retailer | None:
        """Fetch a retailer by id."""
        with self._lock:
            row = self._conn.execute(
                "SELECT id, name, website_url, location "
                "FROM retailers WHERE id = ?",
                (retailer_id,),
            ).fetchone()
        if row is None:
            return None
        return Retailer(
            id=row[0], name=row[1], website_url=row[2], location=row[3],
        )

    # ── Products ─────────────────────────────────────────

    def find_product_by_normalized_name(
        self, normalized_name: str,
    ) -> Product | None:
        """Exact lookup on the matching key."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_PRODUCT_COLUMNS} FROM products "
                "WHERE normalized_name = ?",
                (normalized_name,),
            ).fetchone()
        return _row_to_product(row) if row else None

    def get_product(self, product_id: int) -> Product | None:
        """Fetch a product by id."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE id = ?",
                (product_id,),
            ).fetchone()
        return _row_to_product(row) if row else None

    def list_products_by_brand(
        self, brand: str, limit: int | None = None,
    ) -> list[Product]:
        """Return a brand's products (case-insensitive), oldest first."""
        max_rows = limit if limit is not None else -1
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_PRODUCT_COLUMNS} FROM products "
                "WHERE brand = ? COLLATE NOCASE "
                "ORDER BY id ASC LIMIT ?",
                (brand, max_rows),
            ).fetchall()
        return [_row_to_product(r) for r in rows]

    def list_products(self) -> list[Product]:
        """Return the whole catalog, oldest first."""
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_PRODUCT_COLUMNS} FROM products ORDER BY id ASC",
            ).fetchall()
        return [_row_to_product(r) for r in rows]

    def create_product(
        self,
        product_name: str,
        brand: str,
        normalized_name: str,
        specifications: Specifications | None = None,
        category: str = Settings.DEFAULT_CATEGORY,
    ) -> Product:
        """Insert a new catalog entry.

        Raises :class:`DuplicateProductError` when another writer already
        created a product with the same ``normalized_name``.
        """
        specs = specifications or Specifications()
        now = to_timestamp(datetime.now())
        with self._lock:
            try:
                cur = self._conn.execute(
                    "INSERT INTO products "
                    "(product_name, brand, category, specifications, "
                    " normalized_name, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        product_name,
                        brand,
                        category,
                        _dump_specs(specs),
                        normalized_name,
                        now,
                        now,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                self._conn.rollback()
                if "normalized_name" in str(exc):
                    raise DuplicateProductError(normalized_name) from exc
                raise
            self._conn.commit()
            product_id = cur.lastrowid

        logger.info(
            "Created product %d '%s' (%s)",
            product_id,
            product_name,
            normalized_name,
        )
        return Product(
            id=product_id,
            product_name=product_name,
            brand=brand,
            category=category,
            specifications=Specifications.from_mapping(specs.to_dict()),
            normalized_name=normalized_name,
            created_at=datetime.fromisoformat(now),
        )

    def enrich_product_specifications(
        self,
        product_id: int,
        specifications: Specifications,
    ) -> list[str]:
        """Fill in specification fields the product does not have yet.

        Known fields are never overwritten.  Returns the filled names.
        """
        with self._lock:
            row = self._conn.execute(
                "SELECT specifications FROM products WHERE id = ?",
                (product_id,),
            ).fetchone()
            if row is None:
                return []
            current = Specifications.from_mapping(json.loads(row[0]))
            filled = current.fill_missing(specifications)
            if filled:
                self._conn.execute(
                    "UPDATE products SET specifications = ?, "
                    "updated_at = ? WHERE id = ?",
                    (
                        _dump_specs(current),
                        to_timestamp(datetime.now()),
                        product_id,
                    ),
                )
                self._conn.commit()

        if filled:
            logger.debug(
                "Enriched product %d with %s", product_id, filled,
            )
        return filled

    # ── Price observations ───────────────────────────────

    def append_price_observation(
        self,
        product_id: int,
        retailer_id: int,
        price: float,
        currency: str,
        in_stock: bool,
        observed_at: datetime,
        quantity: float | None = None,
        unit: str | None = None,
        source_url: str = "",
    ) -> PriceObservation:
        """Append one price point. There is no update or delete path."""
        ts = to_timestamp(observed_at)
        with self._lock:
            cur = self._conn.execute(
                "INSERT INTO price_observations "
                "(product_id, retailer_id, price, currency, in_stock, "
                " quantity, unit, source_url, observed_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    product_id,
                    retailer_id,
                    price,
                    currency,
                    int(in_stock),
                    quantity,
                    unit,
                    source_url,
                    ts,
                ),
            )
            self._conn.commit()
            observation_id = cur.lastrowid

        return PriceObservation(
            id=observation_id,
            product_id=product_id,
            retailer_id=retailer_id,
            price=price,
            currency=currency,
            in_stock=in_stock,
            quantity=quantity,
            unit=unit,
            source_url=source_url,
            observed_at=datetime.fromisoformat(ts),
        )

    def get_prior_observation(
        self,
        product_id: int,
        retailer_id: int,
        not_after: datetime,
        exclude_id: int | None = None,
    ) -> PriceObservation | None:
        """Most recent observation for a pair at or before *not_after*."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_OBSERVATION_COLUMNS} FROM price_observations "
                "WHERE product_id = ? AND retailer_id = ? "
                "  AND observed_at <= ? AND id != ? "
                "ORDER BY observed_at DESC, id DESC LIMIT 1",
                (
                    product_id,
                    retailer_id,
                    to_timestamp(not_after),
                    exclude_id if exclude_id is not None else -1,
                ),
            ).fetchone()
        return _row_to_observation(row) if row else None

    def latest_observations(self) -> list[PriceObservation]:
        """Return the newest observation of every (product, retailer) pair."""
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_OBSERVATION_COLUMNS} FROM price_observations o "
                "WHERE o.id = ("
                "  SELECT i.id FROM price_observations i "
                "  WHERE i.product_id = o.product_id "
                "    AND i.retailer_id = o.retailer_id "
                "  ORDER BY i.observed_at DESC, i.id DESC LIMIT 1"
                ") "
                "ORDER BY o.product_id, o.retailer_id",
            ).fetchall()
        return [_row_to_observation(r) for r in rows]

    def get_price_history(
        self,
        product_id: int,
        retailer_id: int | None = None,
    ) -> list[PriceObservation]:
        """Return a product's observations, oldest first."""
        query = (
            f"SELECT {_OBSERVATION_COLUMNS} FROM price_observations "
            "WHERE product_id = ?"
        )
        params: list[object] = [product_id]
        if retailer_id is not None:
            query += " AND retailer_id = ?"
            params.append(retailer_id)
        query += " ORDER BY observed_at ASC, id ASC"

        with self._lock:
            rows = self._conn.execute(query, params).fetchall()
        return [_row_to_observation(r) for r in rows]

    # ── Analytics ────────────────────────────────────────

    def get_trend_summary(
        self, product_id: int,
    ) -> dict[str, object] | None:
        """Compute min / max / avg / latest price for a product."""
        with self._lock:
            row = self._conn.execute(
                "SELECT MIN(price), MAX(price), AVG(price), COUNT(id) "
                "FROM price_observations WHERE product_id = ?",
                (product_id,),
            ).fetchone()
            if row is None or row[3] == 0:
                return None
            latest_row = self._conn.execute(
                "SELECT price FROM price_observations "
                "WHERE product_id = ? "
                "ORDER BY observed_at DESC, id DESC LIMIT 1",
                (product_id,),
            ).fetchone()
        return {
            "min": row[0],
            "max": row[1],
            "avg": round(row[2], 2),
            "count": row[3],
            "latest": latest_row[0] if latest_row else 0.0,
        }

    def compare_retailers(
        self,
        product_id: int,
        days: int = Settings.RETAILER_WINDOW_DAYS,
        now: datetime | None = None,
    ) -> list[dict[str, object]]:
        """Per-retailer price statistics for a product, cheapest first."""
        since = to_timestamp((now or datetime.now()) - timedelta(days=days))
        with self._lock:
            rows = self._conn.execute(
                "SELECT r.id, r.name, r.location, r.website_url, "
                "       AVG(o.price), MIN(o.price), MAX(o.price), "
                "       COUNT(o.id), SUM(o.in_stock), MAX(o.observed_at) "
                "FROM price_observations o "
                "JOIN retailers r ON r.id = o.retailer_id "
                "WHERE o.product_id = ? AND o.observed_at >= ? "
                "GROUP BY r.id "
                "ORDER BY AVG(o.price) ASC",
                (product_id, since),
            ).fetchall()
        return [
            {
                "retailer_id": r[0],
                "retailer": r[1],
                "location": r[2],
                "website_url": r[3],
                "avg_price": round(r[4], 2),
                "best_price": r[5],
                "worst_price": r[6],
                "price_checks": r[7],
                "in_stock_count": r[8],
                "availability_percent": round(r[8] / r[7] * 100, 2),
                "last_checked": datetime.fromisoformat(r[9]),
            }
            for r in rows
        ]

    def get_processing_stats(
        self,
        days: int = Settings.STATS_WINDOW_DAYS,
        now: datetime | None = None,
    ) -> dict[str, object]:
        """Summarise ledger activity over the last *days* days."""
        since = to_timestamp((now or datetime.now()) - timedelta(days=days))
        with self._lock:
            row = self._conn.execute(
                "SELECT COUNT(id), COUNT(DISTINCT product_id), "
                "       COUNT(DISTINCT retailer_id), MIN(observed_at), "
                "       MAX(observed_at), AVG(price) "
                "FROM price_observations WHERE observed_at >= ?",
                (since,),
            ).fetchone()
        return {
            "total_records": row[0],
            "unique_products": row[1],
            "unique_retailers": row[2],
            "first_observation": row[3],
            "last_observation": row[4],
            "avg_price": round(row[5], 2) if row[5] is not None else None,
        }
