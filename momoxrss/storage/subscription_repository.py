"""
Subscription Repository
=======================

Repository pattern implementation for feed subscriptions.
Every lookup is keyed by feed URL, optionally qualified by the target channel.
"""

import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import FeedSubscription
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import (
    DatabaseError,
    DuplicateSubscriptionError,
    NotFoundError,
    ErrorCode,
)
from ..utils.validators import IntervalValidator


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SubscriptionRepository:
    """Repository for managing feed subscriptions in the database."""

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize subscription repository.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.logger = get_logger_for_component("subscription_repository")

    def create(self, subscription: FeedSubscription) -> FeedSubscription:
        """Insert a new subscription.

        Raises:
            ValidationError: If the interval is below one minute
            DuplicateSubscriptionError: If (url, target) already exists
            DatabaseError: On any other database failure
        """
        interval_ms = IntervalValidator.validate(subscription.interval_ms)
        now = _now()

        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO subscriptions (
                        url, target, interval_ms, last_seen_link,
                        last_seen_timestamp, active, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        subscription.url,
                        subscription.target,
                        interval_ms,
                        subscription.last_seen_link or "",
                        subscription.last_seen_timestamp,
                        subscription.active,
                        now,
                        now,
                    ),
                )
                subscription_id = cursor.lastrowid
                conn.commit()

        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e):
                raise DuplicateSubscriptionError(subscription.url, subscription.target)
            raise DatabaseError(
                f"Failed to create subscription: {e}",
                error_code=ErrorCode.DATABASE_CONSTRAINT,
            )
        except sqlite3.Error as e:
            self.logger.error(f"Failed to create subscription: {e}")
            raise DatabaseError(
                f"Failed to create subscription: {e}", error_code=ErrorCode.DATABASE_ERROR
            )

        self.logger.info(
            f"Created subscription {subscription_id}: {subscription.url} -> {subscription.target}"
        )
        return self._get_by_id(subscription_id)

    def list_all(self) -> List[FeedSubscription]:
        return self._query("SELECT * FROM subscriptions ORDER BY id")

    def find_all_active(self) -> List[FeedSubscription]:
        """Get all subscriptions flagged active."""
        return self._query(
            "SELECT * FROM subscriptions WHERE active = ? ORDER BY id", (True,)
        )

    def find_by_target(self, target: str) -> List[FeedSubscription]:
        """Get all subscriptions posting to a Discord channel."""
        return self._query(
            "SELECT * FROM subscriptions WHERE target = ? ORDER BY id", (target,)
        )

    def find_one_by_url(
        self, url: str, target: Optional[str] = None
    ) -> Optional[FeedSubscription]:
        """Get the first subscription for a URL, optionally for one target.

        Returns:
            FeedSubscription if found, None otherwise
        """
        if target is None:
            rows = self._query(
                "SELECT * FROM subscriptions WHERE url = ? ORDER BY id LIMIT 1", (url,)
            )
        else:
            rows = self._query(
                "SELECT * FROM subscriptions WHERE url = ? AND target = ?",
                (url, target),
            )
        return rows[0] if rows else None

    def get(self, url: str, target: Optional[str] = None) -> FeedSubscription:
        """Like ``find_one_by_url`` but raises NotFoundError."""
        subscription = self.find_one_by_url(url, target)
        if subscription is None:
            raise NotFoundError("Subscription not found", feed_url=url)
        return subscription

    def update(
        self,
        url: str,
        target: Optional[str] = None,
        interval_ms: Optional[int] = None,
        new_target: Optional[str] = None,
        new_url: Optional[str] = None,
    ) -> FeedSubscription:
        """Update interval, target and/or URL of a subscription.

        Raises:
            NotFoundError: If no subscription matches
            ValidationError: If the interval is below one minute
            DuplicateSubscriptionError: If the new (url, target) pair exists
        """
        current = self.get(url, target)

        fields = []
        values = []
        if interval_ms is not None:
            fields.append("interval_ms = ?")
            values.append(IntervalValidator.validate(interval_ms))
        if new_target is not None:
            fields.append("target = ?")
            values.append(new_target)
        if new_url is not None:
            fields.append("url = ?")
            values.append(new_url)

        if not fields:
            return current

        fields.append("updated_at = ?")
        values.append(_now())
        values.append(current.id)

        try:
            with self.db.get_connection() as conn:
                conn.execute(
                    f"UPDATE subscriptions SET {', '.join(fields)} WHERE id = ?", values
                )
                conn.commit()
        except sqlite3.IntegrityError:
            raise DuplicateSubscriptionError(
                new_url or current.url, new_target or current.target
            )
        except sqlite3.Error as e:
            self.logger.error(f"Failed to update subscription {current.id}: {e}")
            raise DatabaseError(
                f"Failed to update subscription: {e}", error_code=ErrorCode.DATABASE_ERROR
            )

        self.logger.info(f"Updated subscription {current.id} ({url})")
        return self._get_by_id(current.id)

    def update_interval(self, url: str, interval_ms: int) -> FeedSubscription:
        """Set a new polling interval.

        Raises:
            ValidationError: If interval_ms < 60000
            NotFoundError: If no subscription matches
        """
        return self.update(url, interval_ms=IntervalValidator.validate(interval_ms))

    def toggle_active(self, url: str, target: Optional[str] = None) -> FeedSubscription:
        """Flip the active flag and return the updated subscription."""
        current = self.get(url, target)

        with self.db.get_connection() as conn:
            conn.execute(
                "UPDATE subscriptions SET active = NOT active, updated_at = ? WHERE id = ?",
                (_now(), current.id),
            )
            conn.commit()

        updated = self._get_by_id(current.id)
        self.logger.info(
            f"Subscription {current.id} ({url}) is now {'active' if updated.active else 'inactive'}"
        )
        return updated

    def delete(self, url: str, target: Optional[str] = None) -> FeedSubscription:
        """Delete a subscription and return what was removed."""
        current = self.get(url, target)

        with self.db.get_connection() as conn:
            conn.execute("DELETE FROM subscriptions WHERE id = ?", (current.id,))
            conn.commit()

        self.logger.info(f"Deleted subscription {current.id} ({url} -> {current.target})")
        return current

    def record_delivery(
        self,
        url: str,
        target: str,
        expected_link: str,
        expected_timestamp: Optional[int],
        link: str,
        timestamp: Optional[int] = None,
    ) -> bool:
        """Advance the last-seen marker if nobody else advanced it first.

        The row is updated only when its current last-seen values still equal
        the ones observed before delivery. ``timestamp`` of None or 0 keeps the
        stored timestamp.

        Returns:
            True if this call won and the row was updated
        """
        new_timestamp = timestamp if timestamp else None

        with self.db.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE subscriptions
                SET last_seen_link = ?,
                    last_seen_timestamp = COALESCE(?, last_seen_timestamp),
                    updated_at = ?
                WHERE url = ? AND target = ?
                  AND last_seen_link = ?
                  AND last_seen_timestamp IS ?
            """,
                (
                    link,
                    new_timestamp,
                    _now(),
                    url,
                    target,
                    expected_link or "",
                    expected_timestamp,
                ),
            )
            won = cursor.rowcount > 0

        if not won:
            self.logger.warning(
                f"Last-seen marker for {url} -> {target} changed concurrently; keeping stored value"
            )
        return won

    def _get_by_id(self, subscription_id: int) -> FeedSubscription:
        rows = self._query("SELECT * FROM subscriptions WHERE id = ?", (subscription_id,))
        if not rows:
            raise NotFoundError(f"Subscription {subscription_id} not found")
        return rows[0]

    def _query(self, query: str, params: tuple = ()) -> List[FeedSubscription]:
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            self.logger.error(f"Subscription query failed: {e}")
            raise DatabaseError(f"Subscription query failed: {e}", query=query)

        return [FeedSubscription.from_db_row(row) for row in rows]
