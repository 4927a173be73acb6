"""
Subscriptions component ports.

Protocol interfaces for the subscription store and its transactions.
The email sender port lives in src.core.ports.email.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from src.components.subscriptions.models import SubscriberRecord


class SubscriptionTransactionPort(Protocol):
    """
    One ACID transaction covering the writes of a submit request.

    Usage:
        with store.begin_transaction() as tx:
            tx.insert_subscriber(...)
            tx.insert_token(...)
            tx.commit()

    Leaving the block without commit() rolls back.
    """

    def __enter__(self) -> SubscriptionTransactionPort:
        ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        ...

    def insert_subscriber(
        self,
        subscriber_id: UUID,
        email: str,
        name: str,
        subscribed_at: datetime,
    ) -> None:
        """Insert a pending_confirmation subscriber row. Raises InsertError."""
        ...

    def insert_token(self, subscription_token: str, subscriber_id: UUID) -> None:
        """Insert a token row. Raises InsertError."""
        ...

    def commit(self) -> None:
        """Commit both inserts. Raises CommitError."""
        ...

    def rollback(self) -> None:
        """Discard uncommitted writes."""
        ...


class SubscriptionStorePort(Protocol):
    """
    Subscription store interface.

    Sole owner of persisted subscriber and token rows.
    """

    def begin_transaction(self) -> SubscriptionTransactionPort:
        """Open a transaction. Raises PoolError when no connection is available."""
        ...

    def find_subscriber_id_by_token(self, subscription_token: str) -> UUID | None:
        """Resolve a token; None when it was never issued. Raises QueryError."""
        ...

    def mark_confirmed(self, subscriber_id: UUID) -> None:
        """Set status to confirmed. Idempotent. Raises QueryError."""
        ...

    def get_subscriber(self, subscriber_id: UUID) -> SubscriberRecord | None:
        """Get a subscriber row by ID."""
        ...

    def list_subscribers_by_email(self, email: str) -> list[SubscriberRecord]:
        """List subscriber rows for an email address, oldest first."""
        ...
