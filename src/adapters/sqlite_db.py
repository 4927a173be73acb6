"""
SQLite Subscription Store.

Implements SubscriptionStorePort using SQLite.
Designed to be Postgres-compatible (uses standard SQL patterns).

One connection per unit of work: a submit transaction opens its own
connection and closes it before any email is sent.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Any
from uuid import UUID

from src.components.subscriptions.models import (
    CommitError,
    InsertError,
    PoolError,
    QueryError,
    SubscriberRecord,
    SubscriberStatus,
)

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def connect(db_path: str, timeout: float = 2.0) -> sqlite3.Connection:
    """
    Open a connection with foreign keys enforced.

    `timeout` is how long a writer waits on SQLite's lock before failing.
    Raises PoolError when the database cannot be opened.
    """
    try:
        conn = sqlite3.connect(db_path, timeout=timeout)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
    except sqlite3.Error as e:
        logger.error("Failed to open database %s: %s", db_path, e)
        raise PoolError("acquire a database connection") from e
    return conn


# -----------------------------------------------------------------------------
# Transaction
# -----------------------------------------------------------------------------


class SQLiteSubscriptionTransaction:
    """
    Transaction covering the writes of one submit request.

    Rolls back and closes the connection on exit unless commit() succeeded.
    """

    def __init__(self, conn: sqlite3.Connection):
        self._conn: sqlite3.Connection | None = conn
        self._committed = False

    def __enter__(self) -> SQLiteSubscriptionTransaction:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if not self._committed:
            self.rollback()
        if self._conn:
            self._conn.close()
            self._conn = None

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Transaction is closed")
        return self._conn

    def insert_subscriber(
        self,
        subscriber_id: UUID,
        email: str,
        name: str,
        subscribed_at: datetime,
    ) -> None:
        try:
            self._require_conn().execute(
                """
                INSERT INTO subscriptions (id, email, name, subscribed_at, status)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    str(subscriber_id),
                    email,
                    name,
                    subscribed_at.isoformat(),
                    SubscriberStatus.PENDING_CONFIRMATION.value,
                ),
            )
        except sqlite3.Error as e:
            logger.error("Failed to execute query: %r", e)
            raise InsertError("insert the new subscriber") from e

    def insert_token(self, subscription_token: str, subscriber_id: UUID) -> None:
        try:
            self._require_conn().execute(
                """
                INSERT INTO subscription_tokens (subscription_token, subscriber_id)
                VALUES (?, ?)
                """,
                (subscription_token, str(subscriber_id)),
            )
        except sqlite3.Error as e:
            logger.error("Failed to execute query: %r", e)
            raise InsertError("store the subscription token") from e

    def commit(self) -> None:
        try:
            self._require_conn().commit()
        except sqlite3.Error as e:
            logger.error("Failed to commit transaction: %r", e)
            raise CommitError("commit the new subscriber") from e
        self._committed = True

    def rollback(self) -> None:
        if self._conn:
            try:
                self._conn.rollback()
            except sqlite3.Error:
                logger.exception("Rollback failed")


# -----------------------------------------------------------------------------
# Store
# -----------------------------------------------------------------------------


class SQLiteSubscriptionStore:
    """SQLite implementation of SubscriptionStorePort."""

    def __init__(self, db_path: str, timeout: float = 2.0):
        self.db_path = db_path
        self.timeout = timeout

    def _get_conn(self) -> sqlite3.Connection:
        return connect(self.db_path, self.timeout)

    def begin_transaction(self) -> SQLiteSubscriptionTransaction:
        return SQLiteSubscriptionTransaction(self._get_conn())

    def find_subscriber_id_by_token(self, subscription_token: str) -> UUID | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT subscriber_id FROM subscription_tokens WHERE subscription_token = ?",
                (subscription_token,),
            ).fetchone()
        except sqlite3.Error as e:
            logger.error("Failed to execute query: %r", e)
            raise QueryError("look up the subscription token") from e
        finally:
            conn.close()
        return UUID(row["subscriber_id"]) if row else None

    def mark_confirmed(self, subscriber_id: UUID) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE subscriptions SET status = ? WHERE id = ?",
                (SubscriberStatus.CONFIRMED.value, str(subscriber_id)),
            )
            conn.commit()
        except sqlite3.Error as e:
            logger.error("Failed to execute query: %r", e)
            raise QueryError("mark the subscriber as confirmed") from e
        finally:
            conn.close()

    def get_subscriber(self, subscriber_id: UUID) -> SubscriberRecord | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM subscriptions WHERE id = ?", (str(subscriber_id),)
            ).fetchone()
        except sqlite3.Error as e:
            raise QueryError("fetch the subscriber") from e
        finally:
            conn.close()
        return self._map_row(row) if row else None

    def list_subscribers_by_email(self, email: str) -> list[SubscriberRecord]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM subscriptions WHERE email = ? ORDER BY subscribed_at",
                (email,),
            ).fetchall()
        except sqlite3.Error as e:
            raise QueryError("list subscribers") from e
        finally:
            conn.close()
        return [self._map_row(r) for r in rows]

    def ping(self) -> None:
        """Readiness probe; raises on failure."""
        conn = self._get_conn()
        try:
            conn.execute("SELECT 1 FROM subscriptions LIMIT 1").fetchall()
        finally:
            conn.close()

    def _map_row(self, row: dict[str, Any]) -> SubscriberRecord:
        return SubscriberRecord(
            id=UUID(row["id"]),
            email=row["email"],
            name=row["name"],
            subscribed_at=datetime.fromisoformat(row["subscribed_at"]),
            status=SubscriberStatus(row["status"]),
        )
