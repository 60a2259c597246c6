"""Push notification sinks.

The pipeline only needs ``send(subscription, title, body)``. Encryption
and VAPID signing happen in an external Web Push relay; this module
either forwards notifications to that relay over HTTP or, when no relay
is configured, just logs them.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from ..config import settings
from ..errors import NetworkError

logger = logging.getLogger(__name__)


@dataclass
class PushSubscription:
    endpoint: str
    p256dh: str
    auth: str


def notification_payload(title: str, body: str) -> dict:
    return {"title": title, "body": body, "url": "/"}


class PushSink(Protocol):
    async def send(self, subscription: PushSubscription, title: str, body: str) -> None:
        ...


class LoggingPushSink:
    """Records notifications in the log instead of delivering them."""

    async def send(self, subscription: PushSubscription, title: str, body: str) -> None:
        logger.info("Push (not delivered, no relay configured) to %s: %s - %s",
                    subscription.endpoint, title, body)


class WebhookPushSink:
    """POSTs each notification to a Web Push relay."""

    def __init__(
        self,
        relay_url: str,
        client: Optional[httpx.AsyncClient] = None,
        vapid_subject: Optional[str] = None,
    ):
        self.relay_url = relay_url
        self.client = client
        self.vapid_subject = vapid_subject or settings.vapid_subject

    async def send(self, subscription: PushSubscription, title: str, body: str) -> None:
        request = {
            "subscription": {
                "endpoint": subscription.endpoint,
                "keys": {"p256dh": subscription.p256dh, "auth": subscription.auth},
            },
            "payload": notification_payload(title, body),
            "vapid_subject": self.vapid_subject,
        }
        logger.info("Sending push notification to %s: %s", subscription.endpoint, title)

        try:
            if self.client is not None:
                resp = await self.client.post(self.relay_url, json=request)
            else:
                async with httpx.AsyncClient(timeout=settings.http_timeout_sec) as client:
                    resp = await client.post(self.relay_url, json=request)
        except httpx.HTTPError as exc:
            raise NetworkError(f"push relay request failed: {exc}") from exc

        if resp.status_code >= 400:
            raise NetworkError(f"push relay returned {resp.status_code}: {resp.text}")


def get_push_sink() -> PushSink:
    """Sink selected by configuration: the relay when a URL is set, else logging."""
    if settings.push_relay_url:
        return WebhookPushSink(settings.push_relay_url)
    return LoggingPushSink()
