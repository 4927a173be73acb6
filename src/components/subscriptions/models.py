"""
Subscriptions component models.

Value types, records and the error taxonomy for subscriber onboarding.

State machine: Subscriber (unknown → pending_confirmation → confirmed)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from http import HTTPStatus
from uuid import UUID

import regex

# --- Validation constants ---

MAX_NAME_GRAPHEMES = 256
FORBIDDEN_NAME_CHARACTERS = frozenset('/()"<>\\{}')
MAX_EMAIL_LENGTH = 254

# RFC 5322 simplified; the domain needs at least one dot
EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

_GRAPHEME = regex.compile(r"\X")

# Only the parse() factories hold this key.
_PARSED = object()


# --- Error Types ---


class SubscriptionError(Exception):
    """Base subscription error. Carries the HTTP status it surfaces as."""

    http_status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR


class ValidationError(SubscriptionError):
    """Malformed subscriber name or email."""

    http_status = HTTPStatus.BAD_REQUEST

    def __init__(self, field: str, raw: str, message: str) -> None:
        self.field = field
        self.raw = raw
        super().__init__(message)


class StoreError(SubscriptionError):
    """Subscription store failure."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Failed to {operation}.")


class PoolError(StoreError):
    """Could not acquire a database connection."""


class InsertError(StoreError):
    """Insert rejected by a constraint or lost to a connectivity fault."""


class CommitError(StoreError):
    """Transaction commit failed; none of its writes are durable."""


class QueryError(StoreError):
    """Lookup or update outside the submit transaction failed."""


class DispatchError(SubscriptionError):
    """Confirmation email could not be handed to the email provider."""

    def __init__(self, recipient: str) -> None:
        self.recipient = recipient
        super().__init__(f"Failed to send a confirmation email to {recipient}.")


def format_error_chain(exc: BaseException) -> str:
    """
    Render an exception and its causes for logs.

    Example:
        Failed to insert the subscription token.

        Caused by:
            IntegrityError: UNIQUE constraint failed: ...
    """
    lines = [str(exc) or type(exc).__name__]
    seen = {id(exc)}
    cause = exc.__cause__ or exc.__context__
    if cause is not None:
        lines.append("\nCaused by:")
    while cause is not None and id(cause) not in seen:
        seen.add(id(cause))
        lines.append(f"\t{type(cause).__name__}: {cause}")
        cause = cause.__cause__ or cause.__context__
    return "\n".join(lines)


# --- Value Types ---


@dataclass(frozen=True)
class SubscriberName:
    """
    Validated subscriber name.

    Build with SubscriberName.parse(); direct construction is refused.
    Copies made with dataclasses.replace() are validated again.
    """

    value: str
    _key: object = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self._key is not _PARSED:
            raise TypeError("SubscriberName must be built with SubscriberName.parse()")
        self._validate(self.value)

    @staticmethod
    def _validate(raw: str) -> None:
        """
        Reject names that are empty after trimming, longer than 256
        grapheme clusters, or that contain any of / ( ) " < > \\ { }.
        """
        is_empty_or_whitespace = not raw.strip()
        is_too_long = len(_GRAPHEME.findall(raw)) > MAX_NAME_GRAPHEMES
        has_forbidden = any(c in FORBIDDEN_NAME_CHARACTERS for c in raw)

        if is_empty_or_whitespace or is_too_long or has_forbidden:
            raise ValidationError("name", raw, f"{raw} is not a valid subscriber name.")

    @classmethod
    def parse(cls, raw: str) -> SubscriberName:
        """Validate a raw name. Raises ValidationError."""
        return cls(raw, _PARSED)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SubscriberEmail:
    """
    Validated subscriber email address.

    Build with SubscriberEmail.parse(); direct construction is refused.
    """

    value: str
    _key: object = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self._key is not _PARSED:
            raise TypeError("SubscriberEmail must be built with SubscriberEmail.parse()")
        self._validate(self.value)

    @staticmethod
    def _validate(raw: str) -> None:
        if len(raw) > MAX_EMAIL_LENGTH or not EMAIL_REGEX.match(raw):
            raise ValidationError("email", raw, f"{raw} is not a valid subscriber email.")

    @classmethod
    def parse(cls, raw: str) -> SubscriberEmail:
        """Validate a raw email address against EMAIL_REGEX."""
        return cls(raw, _PARSED)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class NewSubscriber:
    """Validated submission; lives only for one submit request."""

    name: SubscriberName
    email: SubscriberEmail


# --- Records ---


class SubscriberStatus(Enum):
    """
    Subscriber status.

    pending_confirmation → confirmed (via confirmation link), confirmed is terminal.
    """

    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"


@dataclass(frozen=True)
class SubscriberRecord:
    """Persisted subscriber row."""

    id: UUID
    email: str
    name: str
    subscribed_at: datetime
    status: SubscriberStatus


# --- Input Models ---


@dataclass(frozen=True)
class SubscribeInput:
    """Raw form fields for a new subscription."""

    name: str
    email: str


@dataclass(frozen=True)
class ConfirmInput:
    """Token from a confirmation link."""

    subscription_token: str


# --- Output Models ---


@dataclass(frozen=True)
class SubscribeOutput:
    """Outcome of a submit request."""

    success: bool
    status_code: int
    subscriber_id: UUID | None = None
    error: SubscriptionError | None = None


@dataclass(frozen=True)
class ConfirmOutput:
    """Outcome of a confirm request."""

    success: bool
    status_code: int
    subscriber_id: UUID | None = None
    error: SubscriptionError | None = None
    unknown_token: bool = False


# --- Configuration ---


@dataclass(frozen=True)
class OnboardingConfig:
    """Settings the onboarding flows need from the application config."""

    base_url: str = "http://127.0.0.1:8000"
    confirmation_subject: str = "Welcome"
    confirmation_path: str = "/subscriptions/confirm"
