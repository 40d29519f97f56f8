"""Outbound message channels.

A channel delivers one alert payload to one address. The webhook channel
posts JSON to a messaging automation endpoint with the phone number as the
``Number`` query parameter; the mock channel keeps messages in memory.
"""

import threading
from typing import Any, Dict, List, Optional, Protocol, Tuple

import requests

from campusmatch.logging import get_logger

from .models import ChannelError, ChannelResult

logger = get_logger(__name__, component="channel")


class MessageChannel(Protocol):
    """Delivers alert payloads."""

    name: str

    def send_message(self, address: str, payload: Dict[str, Any]) -> ChannelResult:
        ...


class WebhookChannel:
    """Posts alerts to a messaging webhook.

    Non-2xx answers come back as ``ChannelResult(success=False)``;
    connection failures and timeouts raise ChannelError. The gate treats
    both as channel_error.

    Args:
        webhook_url: Endpoint to POST to
        timeout: Request timeout in seconds
        session: requests session, injectable for tests
    """

    name = "webhook"

    def __init__(
        self,
        webhook_url: str,
        timeout: int = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not webhook_url:
            raise ValueError("webhook_url is required")
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})

    def send_message(self, address: str, payload: Dict[str, Any]) -> ChannelResult:
        """POST the payload for one recipient.

        Raises:
            ChannelError: On timeout or connection failure
        """
        try:
            response = self._session.post(
                self.webhook_url,
                params={"Number": address},
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise ChannelError(
                f"Webhook request timed out after {self.timeout} seconds"
            ) from e
        except requests.exceptions.RequestException as e:
            raise ChannelError(f"Webhook request failed: {e}") from e

        if response.status_code >= 400:
            logger.warning(
                f"Webhook answered HTTP {response.status_code}",
                extra={"event": "channel.webhook.http_error", "status_code": response.status_code},
            )
            return ChannelResult(
                success=False,
                message=f"HTTP {response.status_code}: {response.reason}",
            )

        try:
            data = response.json()
        except ValueError:
            data = response.text or None

        return ChannelResult(success=True, message="Job match notification sent", data=data)

    def close(self) -> None:
        self._session.close()


class MockChannel:
    """In-memory channel that accepts every message.

    Sent messages are kept in ``messages`` as (address, payload) tuples.
    """

    name = "mock"

    def __init__(self) -> None:
        self.messages: List[Tuple[str, Dict[str, Any]]] = []
        self._lock = threading.Lock()

    def send_message(self, address: str, payload: Dict[str, Any]) -> ChannelResult:
        with self._lock:
            self.messages.append((address, dict(payload)))
            count = len(self.messages)

        logger.info(
            f"Mock message to {address}: {str(payload.get('jobTitle', ''))[:100]}",
            extra={"event": "channel.mock.sent", "address": address},
        )
        return ChannelResult(
            success=True,
            message="Mock message recorded",
            data={"messageId": f"mock_{count}", "status": "sent"},
        )
