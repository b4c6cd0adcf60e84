from __future__ import annotations

import logging
from typing import Optional, Protocol

import requests

from ..core.constants import DEFAULT_NOTIFY_TIMEOUT_SECONDS
from ..core.exceptions import DeliveryError

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, recipient: str, message: str) -> None:
        """Deliver one message; raise DeliveryError on failure."""

        raise NotImplementedError


class SmsNotifier:
    """Posts messages to an SMS gateway (JSON body, bearer token)."""

    def __init__(
        self,
        api_url: str,
        api_token: str,
        *,
        sender: Optional[str] = None,
        timeout: float = DEFAULT_NOTIFY_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        if not api_url or not api_token:
            raise ValueError("SMS API url and token are required")
        self._api_url = api_url
        self._api_token = api_token
        self._sender = sender
        self._timeout = float(timeout)
        self._session = session or requests.Session()

    def send(self, recipient: str, message: str) -> None:
        payload = {"mobile_phone": recipient, "message": message}
        if self._sender:
            payload["from"] = self._sender
        try:
            response = self._session.post(
                self._api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self._api_token}"},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise DeliveryError(f"SMS to {recipient} failed: {e}") from e


class LoggingNotifier:
    """Writes messages to the log instead of sending them (SMS not configured)."""

    def send(self, recipient: str, message: str) -> None:
        logger.info("notification to %s: %s", recipient, message)


def deliver(notifier: Notifier, recipient: Optional[str], message: str) -> bool:
    """Send and swallow delivery failures; the business operation goes on.

    Returns True when the notifier accepted the message.
    """
    if not recipient:
        logger.info("notification skipped, no recipient: %s", message)
        return False
    try:
        notifier.send(recipient, message)
        return True
    except DeliveryError as e:
        logger.warning("notification not delivered: %s", e)
        return False
