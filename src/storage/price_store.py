# src/storage/price_store.py

"""SQLite-backed store of subscribers, tracked products and price history."""

import logging
import re
import sqlite3
from datetime import datetime
from pathlib import Path
from types import TracebackType
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from src.config.settings import Settings
from src.models.price_record import PriceRecord
from src.models.product import Product, User

logger = logging.getLogger("price_watch.store")

# Marketplace tracking params that vary per visit
_TRACKING_PARAMS: frozenset[str] = frozenset({
    "abt_att", "asb", "asb2", "avtc", "avte", "avts",
    "from", "from_sku", "keywords", "oos_search",
    "sh", "targeturl", "text", "__rr",
})

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS users (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    chat_id    TEXT    NOT NULL UNIQUE,
    created_at TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS products (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id     INTEGER NOT NULL
                REFERENCES users(id) ON DELETE CASCADE,
    marketplace TEXT    NOT NULL,
    link        TEXT    NOT NULL,
    created_at  TEXT    NOT NULL,
    UNIQUE (user_id, link)
);

CREATE TABLE IF NOT EXISTS prices (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id       INTEGER NOT NULL
                     REFERENCES products(id) ON DELETE CASCADE,
    base_price       REAL    NOT NULL,
    discounted_price REAL    NOT NULL,
    created_at       TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_prices_product_date
    ON prices(product_id, created_at);
"""

# Every user, every product, and only the newest price row per product
_WORKING_SET_SQL = """\
WITH latest AS (
    SELECT product_id, base_price, discounted_price, created_at,
           ROW_NUMBER() OVER (
               PARTITION BY product_id
               ORDER BY created_at DESC, id DESC
           ) AS rn
    FROM prices
)
SELECT u.id, u.chat_id,
       p.id, p.marketplace, p.link,
       l.base_price, l.discounted_price, l.created_at
FROM users u
LEFT JOIN products p ON p.user_id = u.id
LEFT JOIN latest l ON l.product_id = p.id AND l.rn = 1
ORDER BY u.id, p.id
"""


class PersistenceError(Exception):
    """Raised when a cycle's batch of price records cannot be committed."""


def normalize_url(raw_url: str) -> str:
    """Strip tracking/session query params to get a stable product URL."""
    parsed = urlparse(raw_url.strip())

    params = parse_qs(parsed.query, keep_blank_values=True)
    cleaned = {
        k: v for k, v in params.items()
        if k.lower() not in _TRACKING_PARAMS
        and not k.lower().startswith("utm_")
    }
    new_query = urlencode(cleaned, doseq=True) if cleaned else ""
    path = re.sub(r"/{2,}", "/", parsed.path)
    return urlunparse((
        parsed.scheme,
        parsed.netloc,
        path,
        parsed.params,
        new_query,
        "",  # drop fragment
    ))


class PriceStore:
    """SQLite-backed store for users, products and their price records.

    Use as a context manager to scope one connection to one cycle::

        with PriceStore() as store:
            users = store.load_working_set()
    """

    def __init__(
        self, db_path: Path | None = None,
    ) -> None:
        path = db_path or Settings.PRICE_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.debug("PriceStore opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> "PriceStore":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ── Registration ─────────────────────────────────────

    def add_user(self, chat_id: str) -> int:
        """Insert a subscriber (idempotent by chat id); return its id."""
        with self._conn:
            self._conn.execute(
                "INSERT INTO users (chat_id, created_at) VALUES (?, ?) "
                "ON CONFLICT(chat_id) DO NOTHING",
                (chat_id, datetime.now().isoformat()),
            )
        user_id: int = self._conn.execute(
            "SELECT id FROM users WHERE chat_id = ?", (chat_id,),
        ).fetchone()[0]
        return user_id

    def add_product(
        self, user_id: int, marketplace: str, link: str,
    ) -> int:
        """Track *link* for *user_id* (idempotent); return the product id."""
        url = normalize_url(link)
        with self._conn:
            self._conn.execute(
                "INSERT INTO products "
                "(user_id, marketplace, link, created_at) "
                "VALUES (?, ?, ?, ?) "
                "ON CONFLICT(user_id, link) DO UPDATE "
                "SET marketplace=excluded.marketplace",
                (
                    user_id,
                    marketplace.lower(),
                    url,
                    datetime.now().isoformat(),
                ),
            )
        product_id: int = self._conn.execute(
            "SELECT id FROM products WHERE user_id = ? AND link = ?",
            (user_id, url),
        ).fetchone()[0]
        logger.info(
            "Tracking product %d (%s) for user %d",
            product_id,
            marketplace,
            user_id,
        )
        return product_id

    # ── Reconciliation ───────────────────────────────────

    def load_working_set(self) -> list[User]:
        """Return all users with their products and latest record only.

        One statement regardless of how many users, products or
        records exist.  A product with no history has empty ``prices``.
        """
        rows = self._conn.execute(_WORKING_SET_SQL).fetchall()
        users: dict[int, User] = {}
        for r in rows:
            user = users.get(r[0])
            if user is None:
                user = User(id=r[0], chat_id=str(r[1]))
                users[r[0]] = user
            if r[2] is None:
                continue
            product = Product(
                id=r[2],
                user_id=r[0],
                marketplace=r[3],
                link=r[4],
            )
            if r[7] is not None:
                product.prices.append(PriceRecord(
                    base_price=r[5],
                    discounted_price=r[6],
                    created_at=datetime.fromisoformat(r[7]),
                ))
            user.products.append(product)
        return list(users.values())

    def append_records(
        self, records: list[tuple[int, PriceRecord]],
    ) -> int:
        """Insert all ``(product_id, record)`` pairs in one transaction.

        Either every record is committed or none is.

        Raises:
            PersistenceError: The batch could not be written.
        """
        if not records:
            return 0
        rows = [
            (
                product_id,
                rec.base_price,
                rec.discounted_price,
                rec.created_at.isoformat(),
            )
            for product_id, rec in records
        ]
        try:
            with self._conn:
                self._conn.executemany(
                    "INSERT INTO prices "
                    "(product_id, base_price, discounted_price, created_at) "
                    "VALUES (?, ?, ?, ?)",
                    rows,
                )
        except sqlite3.Error as exc:
            logger.error(
                "Batch of %d price records rolled back: %s",
                len(rows),
                exc,
                exc_info=True,
            )
            msg = f"Failed to persist {len(rows)} price records"
            raise PersistenceError(msg) from exc

        logger.info("Persisted %d price records", len(rows))
        return len(rows)

    # ── Querying ─────────────────────────────────────────

    def get_price_history(
        self, product_id: int,
    ) -> list[PriceRecord]:
        """Return all records for a product, oldest first."""
        rows = self._conn.execute(
            "SELECT base_price, discounted_price, created_at "
            "FROM prices WHERE product_id = ? "
            "ORDER BY created_at ASC, id ASC",
            (product_id,),
        ).fetchall()
        return [
            PriceRecord(
                base_price=r[0],
                discounted_price=r[1],
                created_at=datetime.fromisoformat(r[2]),
            )
            for r in rows
        ]

    def get_product(self, product_id: int) -> Product | None:
        """Return a product without its history, or ``None``."""
        row = self._conn.execute(
            "SELECT id, user_id, marketplace, link "
            "FROM products WHERE id = ?",
            (product_id,),
        ).fetchone()
        if row is None:
            return None
        return Product(
            id=row[0], user_id=row[1], marketplace=row[2], link=row[3],
        )
