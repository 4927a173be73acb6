"""
Email Adapter Interface.

Protocol-based interface for sending transactional emails.
Used by the subscriptions component for confirmation emails.

Implementation strategies:
1. EmailClient: Postmark-style REST API over httpx
2. DevEmailAdapter: Logs emails to console (dev/test)

All strategies implement the same EmailPort interface.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol


class EmailStatus(Enum):
    """Email send result status."""

    SENT = "sent"
    SKIPPED = "skipped"  # Dev adapter or dry-run


@dataclass
class EmailResult:
    """Result of a successful email hand-off."""

    status: EmailStatus
    message_id: str | None = None  # Provider's message ID
    note: str | None = None
    sent_at: datetime | None = None
    recipient: str = ""

    @classmethod
    def success(cls, recipient: str, message_id: str | None = None) -> EmailResult:
        """Create a successful send result."""
        return cls(
            status=EmailStatus.SENT,
            message_id=message_id,
            recipient=recipient,
            sent_at=datetime.now(UTC),
        )

    @classmethod
    def skipped(
        cls,
        recipient: str,
        message_id: str | None = None,
        reason: str = "Dev mode",
    ) -> EmailResult:
        """Create a skipped result (dev adapter)."""
        return cls(
            status=EmailStatus.SKIPPED,
            message_id=message_id,
            recipient=recipient,
            note=reason,
        )


class EmailPort(Protocol):
    """
    Email sending interface.

    Implementations:
    - EmailClient: Sends via the provider's HTTP API
    - DevEmailAdapter: Logs to console (dev/test)
    """

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str,
    ) -> EmailResult:
        """
        Send a transactional email.

        Args:
            recipient: Email address of recipient
            subject: Email subject line
            body_html: HTML body content
            body_text: Plain text body

        Returns:
            EmailResult with send outcome

        Raises:
            EmailSendError: transport failure, timeout or non-2xx response
        """
        ...


# --- Error Types ---


class EmailError(Exception):
    """Base exception for email-related errors."""

    pass


class EmailSendError(EmailError):
    """Failed to send email."""

    def __init__(self, recipient: str, error: str, retriable: bool = True) -> None:
        self.recipient = recipient
        self.error = error
        self.retriable = retriable
        super().__init__(f"Failed to send email to {recipient}: {error}")
