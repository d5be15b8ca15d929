"""
MomoXRSS Database Schema
========================

SQLite schema for feed subscriptions.

- subscriptions: one row per (feed URL, Discord channel) pair with its
  polling interval and last-seen marker
"""

import sqlite3
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class DatabaseSchema:
    """Database schema manager for the MomoXRSS SQLite database."""

    EXPECTED_TABLES = {"subscriptions"}

    def __init__(self, db_path: str = "data/momoxrss.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables and indexes."""
        with sqlite3.connect(self.db_path) as conn:
            self._create_subscriptions_table(conn)
            self._create_indexes(conn)

            conn.commit()
            logger.info("Database schema created successfully")

    def _create_subscriptions_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS subscriptions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                url TEXT NOT NULL,
                target TEXT NOT NULL,
                interval_ms INTEGER NOT NULL DEFAULT 3600000 CHECK (interval_ms >= 60000),
                last_seen_link TEXT NOT NULL DEFAULT '',
                last_seen_timestamp INTEGER,
                active BOOLEAN NOT NULL DEFAULT TRUE,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(url, target)
            )
        """
        )

    def _create_indexes(self, conn: sqlite3.Connection) -> None:
        indexes = [
            "CREATE INDEX IF NOT EXISTS idx_subscriptions_active ON subscriptions(active)",
            "CREATE INDEX IF NOT EXISTS idx_subscriptions_target ON subscriptions(target)",
            "CREATE INDEX IF NOT EXISTS idx_subscriptions_url ON subscriptions(url)",
        ]

        for index_sql in indexes:
            conn.execute(index_sql)

    def verify_schema(self) -> bool:
        """Verify database schema is correctly created."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.execute(
                    """
                    SELECT name FROM sqlite_master
                    WHERE type='table' AND name NOT LIKE 'sqlite_%'
                """
                )
                tables = {row[0] for row in cursor.fetchall()}

                if not self.EXPECTED_TABLES.issubset(tables):
                    logger.error(
                        f"Missing tables. Expected: {self.EXPECTED_TABLES}, Found: {tables}"
                    )
                    return False

                logger.info("Database schema verification passed")
                return True

        except sqlite3.Error as e:
            logger.error(f"Schema verification failed: {e}")
            return False
