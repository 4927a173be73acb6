# Newsletter onboarding: Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.email import (
    EmailError,
    EmailPort,
    EmailResult,
    EmailSendError,
    EmailStatus,
)

__all__ = [
    # Email
    "EmailError",
    "EmailPort",
    "EmailResult",
    "EmailSendError",
    "EmailStatus",
]
