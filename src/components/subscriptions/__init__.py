"""
Subscriptions component.

Newsletter subscriber onboarding with double opt-in confirmation.
"""

from src.components.subscriptions.component import (
    TOKEN_ALPHABET,
    TOKEN_LENGTH,
    build_confirmation_bodies,
    build_confirmation_link,
    generate_token,
    parse_email,
    parse_name,
    parse_new_subscriber,
    run,
    run_confirm,
    run_subscribe,
    send_confirmation,
)
from src.components.subscriptions.models import (
    EMAIL_REGEX,
    FORBIDDEN_NAME_CHARACTERS,
    MAX_NAME_GRAPHEMES,
    CommitError,
    ConfirmInput,
    ConfirmOutput,
    DispatchError,
    InsertError,
    NewSubscriber,
    OnboardingConfig,
    PoolError,
    QueryError,
    StoreError,
    SubscribeInput,
    SubscribeOutput,
    SubscriberEmail,
    SubscriberName,
    SubscriberRecord,
    SubscriberStatus,
    SubscriptionError,
    ValidationError,
    format_error_chain,
)
from src.components.subscriptions.ports import (
    SubscriptionStorePort,
    SubscriptionTransactionPort,
)

__all__ = [
    # Component
    "run",
    "run_subscribe",
    "run_confirm",
    # Pure functions
    "parse_name",
    "parse_email",
    "parse_new_subscriber",
    "generate_token",
    "build_confirmation_link",
    "build_confirmation_bodies",
    "send_confirmation",
    "format_error_chain",
    # Constants
    "EMAIL_REGEX",
    "FORBIDDEN_NAME_CHARACTERS",
    "MAX_NAME_GRAPHEMES",
    "TOKEN_ALPHABET",
    "TOKEN_LENGTH",
    # Models
    "SubscriberName",
    "SubscriberEmail",
    "NewSubscriber",
    "SubscriberRecord",
    "SubscriberStatus",
    "OnboardingConfig",
    # Input/Output
    "SubscribeInput",
    "SubscribeOutput",
    "ConfirmInput",
    "ConfirmOutput",
    # Errors
    "SubscriptionError",
    "ValidationError",
    "StoreError",
    "PoolError",
    "InsertError",
    "CommitError",
    "QueryError",
    "DispatchError",
    # Ports
    "SubscriptionStorePort",
    "SubscriptionTransactionPort",
]
