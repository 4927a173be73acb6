"""
Subscription endpoints.

Endpoints:
- POST /subscriptions - Subscribe (url-encoded form: name, email)
- GET /subscriptions/confirm - Confirm via the emailed link
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Form, Query, Response

from src.adapters.sqlite_db import SQLiteSubscriptionStore
from src.api.deps import (
    get_email_client,
    get_onboarding_config,
    get_request_logger,
    get_store,
)
from src.components.subscriptions.component import run
from src.components.subscriptions.models import (
    ConfirmInput,
    OnboardingConfig,
    SubscribeInput,
)
from src.core.ports.email import EmailPort
from src.core.telemetry import RequestLogger

router = APIRouter()


@router.post(
    "/subscriptions",
    response_class=Response,
    responses={
        200: {"description": "Subscriber saved and confirmation email sent"},
        400: {"description": "Missing or invalid name/email"},
        500: {"description": "Store or email provider failure"},
    },
    summary="Subscribe to the newsletter",
)
def subscribe(
    name: Annotated[str, Form()],
    email: Annotated[str, Form()],
    store: SQLiteSubscriptionStore = Depends(get_store),
    email_sender: EmailPort = Depends(get_email_client),
    config: OnboardingConfig = Depends(get_onboarding_config),
    log: RequestLogger = Depends(get_request_logger),
) -> Response:
    """
    Start the double opt-in flow.

    Stores a pending_confirmation subscriber with a fresh token, then emails
    the confirmation link. Responds with an empty body.
    """
    result = run(
        SubscribeInput(name=name, email=email),
        store=store,
        email_sender=email_sender,
        config=config,
        log=log,
    )
    return Response(status_code=result.status_code)


@router.get(
    "/subscriptions/confirm",
    response_class=Response,
    responses={
        200: {"description": "Subscriber confirmed"},
        400: {"description": "Missing subscription_token"},
        401: {"description": "Unknown subscription token"},
        500: {"description": "Store failure"},
    },
    summary="Confirm a pending subscriber",
)
def confirm(
    subscription_token: Annotated[str, Query()],
    store: SQLiteSubscriptionStore = Depends(get_store),
    log: RequestLogger = Depends(get_request_logger),
) -> Response:
    """Mark the token's subscriber confirmed. Idempotent."""
    result = run(ConfirmInput(subscription_token=subscription_token), store=store, log=log)
    return Response(status_code=result.status_code)
