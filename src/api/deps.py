import threading
from functools import lru_cache
from uuid import uuid4

from fastapi import Depends, Request

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.email_client import EmailClient
from src.adapters.sqlite_db import SQLiteSubscriptionStore
from src.app_shell.config import Settings, load_settings
from src.components.subscriptions.models import OnboardingConfig
from src.core.ports.email import EmailPort
from src.core.telemetry import RequestLogger
from src.core.telemetry import get_request_logger as build_request_logger


# --- Settings ---
@lru_cache
def get_settings() -> Settings:
    return load_settings()


def get_onboarding_config(settings: Settings = Depends(get_settings)) -> OnboardingConfig:
    return OnboardingConfig(base_url=settings.application.base_url)


# --- Store ---
def get_store(settings: Settings = Depends(get_settings)) -> SQLiteSubscriptionStore:
    return SQLiteSubscriptionStore(
        settings.database.path,
        timeout=settings.database.acquire_timeout_seconds,
    )


# --- Email ---
# One client per process so HTTP connections are pooled.
_email_client_instance: EmailPort | None = None
_email_client_lock = threading.Lock()


def build_email_client(settings: Settings) -> EmailPort:
    """EmailClient for real providers, DevEmailAdapter for dev:// URLs."""
    email_settings = settings.email_client
    if email_settings.is_dev:
        return DevEmailAdapter()
    return EmailClient(
        base_url=email_settings.base_url,
        sender=email_settings.sender(),
        authorization_token=email_settings.authorization_token,
        timeout=email_settings.timeout(),
    )


def get_email_client(settings: Settings = Depends(get_settings)) -> EmailPort:
    """Get email client singleton."""
    global _email_client_instance
    if _email_client_instance is None:
        with _email_client_lock:
            if _email_client_instance is None:
                _email_client_instance = build_email_client(settings)
    return _email_client_instance


def close_email_client() -> None:
    global _email_client_instance
    with _email_client_lock:
        client, _email_client_instance = _email_client_instance, None
    if isinstance(client, EmailClient):
        client.close()


# --- Logging ---
def get_request_logger(request: Request) -> RequestLogger:
    """Request-scoped logger carrying the id set by RequestIDMiddleware."""
    request_id = getattr(request.state, "request_id", None) or str(uuid4())
    return build_request_logger(request_id)
