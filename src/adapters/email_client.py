"""
Email provider adapter.

Sends transactional emails through a Postmark-style REST API:
POST <base_url>/email with a JSON body {From, To, Subject, HtmlBody, TextBody}
and the server token in the X-Postmark-Server-Token header.

Any transport error, timeout or non-2xx response raises EmailSendError.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import SecretStr

from src.components.subscriptions.models import SubscriberEmail
from src.core.ports.email import EmailResult, EmailSendError

logger = logging.getLogger(__name__)

AUTH_HEADER = "X-Postmark-Server-Token"


class EmailClient:
    """
    HTTP email client (implements EmailPort).

    Holds one httpx.Client so connections are pooled across requests.
    """

    def __init__(
        self,
        base_url: str,
        sender: SubscriberEmail,
        authorization_token: SecretStr,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url
        self.sender = sender
        self._authorization_token = authorization_token
        self._http = httpx.Client(base_url=base_url, timeout=timeout)

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str,
    ) -> EmailResult:
        payload = {
            "From": self.sender.value,
            "To": recipient,
            "Subject": subject,
            "HtmlBody": body_html,
            "TextBody": body_text,
        }
        headers = {AUTH_HEADER: self._authorization_token.get_secret_value()}

        try:
            response = self._http.post("/email", json=payload, headers=headers)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise EmailSendError(recipient, "email provider timed out") from e
        except httpx.HTTPStatusError as e:
            raise EmailSendError(
                recipient,
                f"email provider returned {e.response.status_code}",
                retriable=e.response.status_code >= 500,
            ) from e
        except httpx.HTTPError as e:
            raise EmailSendError(recipient, f"transport error: {e}") from e

        logger.debug("Email accepted by provider for %s", recipient)
        return EmailResult.success(recipient, message_id=_message_id(response))

    def close(self) -> None:
        self._http.close()


def _message_id(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    return body.get("MessageID") if isinstance(body, dict) else None
