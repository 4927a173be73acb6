"""
Subscriptions component.

Functional core for subscriber onboarding: validation, token generation,
confirmation email composition, and the submit/confirm flows.

Key behaviors:
- Subscriber and token rows are written in one transaction
- The confirmation email is sent only after that transaction commits
- Tokens are 25 alphanumerics from the secrets CSPRNG and never expire
- Confirming is idempotent
- Every failure is logged with its cause chain and mapped to an HTTP status
"""

from __future__ import annotations

import logging
import secrets
import string
from datetime import UTC, datetime
from http import HTTPStatus
from uuid import UUID, uuid4

from src.components.subscriptions.models import (
    ConfirmInput,
    ConfirmOutput,
    DispatchError,
    NewSubscriber,
    OnboardingConfig,
    SubscribeInput,
    SubscribeOutput,
    SubscriberEmail,
    SubscriberName,
    SubscriptionError,
    format_error_chain,
)
from src.components.subscriptions.ports import SubscriptionStorePort
from src.core.ports.email import EmailPort, EmailSendError
from src.core.telemetry import RequestLogger

logger = logging.getLogger(__name__)

TOKEN_LENGTH = 25
TOKEN_ALPHABET = string.ascii_letters + string.digits


# --- Pure Functions (Functional Core) ---


parse_name = SubscriberName.parse
parse_email = SubscriberEmail.parse


def parse_new_subscriber(inp: SubscribeInput) -> NewSubscriber:
    """Validate both form fields. Raises ValidationError."""
    return NewSubscriber(name=parse_name(inp.name), email=parse_email(inp.email))


def generate_token() -> str:
    """Generate a 25 character alphanumeric subscription token."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


def build_confirmation_link(
    base_url: str,
    subscription_token: str,
    path: str = "/subscriptions/confirm",
) -> str:
    """
    Build the confirmation link for the email.

    Args:
        base_url: Public base URL of this application
        subscription_token: Token issued at submit time
        path: URL path of the confirmation endpoint

    Returns:
        Full confirmation URL
    """
    base = base_url.rstrip("/")
    return f"{base}{path}?subscription_token={subscription_token}"


def build_confirmation_bodies(confirmation_link: str) -> tuple[str, str]:
    """Return (html, text) bodies, each holding the link exactly once."""
    html_body = (
        "Welcome to our newsletter!<br />"
        f'Click <a href="{confirmation_link}">here</a> to confirm your subscription.'
    )
    text_body = (
        "Welcome to our newsletter!\n"
        f"Visit {confirmation_link} to confirm your subscription."
    )
    return html_body, text_body


def send_confirmation(
    email_sender: EmailPort,
    new_subscriber: NewSubscriber,
    base_url: str,
    subscription_token: str,
    *,
    subject: str = "Welcome",
    path: str = "/subscriptions/confirm",
) -> None:
    """
    Send the confirmation email for a committed subscriber.

    Raises:
        DispatchError: the email provider rejected or never received the email
    """
    confirmation_link = build_confirmation_link(base_url, subscription_token, path)
    html_body, text_body = build_confirmation_bodies(confirmation_link)
    recipient = new_subscriber.email.value

    try:
        email_sender.send_email(recipient, subject, html_body, text_body)
    except EmailSendError as e:
        raise DispatchError(recipient) from e


# --- Run Handlers ---


def _request_logger(log: RequestLogger | None) -> RequestLogger:
    return log if log is not None else RequestLogger(logger, {})


def run_subscribe(
    inp: SubscribeInput,
    store: SubscriptionStorePort,
    *,
    email_sender: EmailPort,
    config: OnboardingConfig | None = None,
    log: RequestLogger | None = None,
    now: datetime | None = None,
) -> SubscribeOutput:
    """
    Handle a subscription request.

    1. Validate name and email (400, no side effects)
    2. Insert subscriber and token in one transaction, then commit (500)
    3. Send the confirmation email (500, subscriber stays pending)
    """
    cfg = config or OnboardingConfig()
    log = _request_logger(log).bind(subscriber_email=inp.email, subscriber_name=inp.name)
    subscriber_id: UUID | None = None

    log.info("Adding a new subscriber")
    try:
        new_subscriber = parse_new_subscriber(inp)

        subscriber_id = uuid4()
        subscription_token = generate_token()
        with store.begin_transaction() as tx:
            tx.insert_subscriber(
                subscriber_id,
                new_subscriber.email.value,
                new_subscriber.name.value,
                now or datetime.now(UTC),
            )
            tx.insert_token(subscription_token, subscriber_id)
            tx.commit()

        send_confirmation(
            email_sender,
            new_subscriber,
            cfg.base_url,
            subscription_token,
            subject=cfg.confirmation_subject,
            path=cfg.confirmation_path,
        )
    except SubscriptionError as e:
        _log_failure(log, e, subscriber_id)
        return SubscribeOutput(
            success=False,
            status_code=e.http_status,
            subscriber_id=subscriber_id if isinstance(e, DispatchError) else None,
            error=e,
        )

    log.info(
        "New subscriber saved, confirmation email sent",
        extra={"subscriber_id": str(subscriber_id)},
    )
    return SubscribeOutput(success=True, status_code=HTTPStatus.OK, subscriber_id=subscriber_id)


def run_confirm(
    inp: ConfirmInput,
    store: SubscriptionStorePort,
    *,
    log: RequestLogger | None = None,
) -> ConfirmOutput:
    """
    Handle a confirmation request.

    Unknown tokens get 401. Confirming twice succeeds twice.
    """
    log = _request_logger(log)

    log.info("Confirming a pending subscriber")
    try:
        subscriber_id = store.find_subscriber_id_by_token(inp.subscription_token)
        if subscriber_id is None:
            log.warning("Unknown subscription token")
            return ConfirmOutput(
                success=False,
                status_code=HTTPStatus.UNAUTHORIZED,
                unknown_token=True,
            )

        store.mark_confirmed(subscriber_id)
    except SubscriptionError as e:
        _log_failure(log, e, None)
        return ConfirmOutput(success=False, status_code=e.http_status, error=e)

    log.info("Subscriber confirmed", extra={"subscriber_id": str(subscriber_id)})
    return ConfirmOutput(success=True, status_code=HTTPStatus.OK, subscriber_id=subscriber_id)


def _log_failure(log: RequestLogger, error: SubscriptionError, subscriber_id: UUID | None) -> None:
    extra = {"error_kind": type(error).__name__, "error_chain": format_error_chain(error)}
    if error.http_status >= HTTPStatus.INTERNAL_SERVER_ERROR:
        if isinstance(error, DispatchError):
            # Row is committed as pending_confirmation but no email went out.
            extra["subscriber_id"] = str(subscriber_id)
        log.error(str(error), extra=extra)
    else:
        log.info(str(error), extra=extra)


def run(
    inp: SubscribeInput | ConfirmInput,
    *,
    store: SubscriptionStorePort,
    email_sender: EmailPort | None = None,
    config: OnboardingConfig | None = None,
    log: RequestLogger | None = None,
) -> SubscribeOutput | ConfirmOutput:
    """
    Main component entry point.

    Args:
        inp: Input command
        store: Subscription store (Required)
        email_sender: Email port (Required for SubscribeInput)
        config: Onboarding configuration (Optional)
        log: Request-scoped logger (Optional)

    Returns:
        Operation result
    """
    if isinstance(inp, SubscribeInput):
        if email_sender is None:
            raise ValueError("email_sender is required to subscribe")
        return run_subscribe(inp, store, email_sender=email_sender, config=config, log=log)
    elif isinstance(inp, ConfirmInput):
        return run_confirm(inp, store, log=log)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
