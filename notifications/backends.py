"""
Delivery backends for core events.

A backend receives the event type, the recipient user (may be None for
operator-wide events) and a JSON-ready payload. Raising is allowed; the
dispatcher turns any failure into a warning.
"""

import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class NotificationBackend:
    def send(self, event_type, recipient, payload):
        raise NotImplementedError


class InAppBackend(NotificationBackend):
    """Stores a Notification row for the recipient."""

    def send(self, event_type, recipient, payload):
        from .models import Notification

        if recipient is None:
            return None
        return Notification.objects.create(
            recipient=recipient,
            event_type=event_type,
            payload=payload,
        )


class WebhookBackend(NotificationBackend):
    """POSTs the event as JSON to NOTIFICATION_WEBHOOK_URL."""

    def __init__(self, url=None, timeout=None):
        self.url = url if url is not None else settings.NOTIFICATION_WEBHOOK_URL
        self.timeout = timeout if timeout is not None else settings.NOTIFICATION_WEBHOOK_TIMEOUT

    def send(self, event_type, recipient, payload):
        if not self.url:
            logger.debug(f"[Notify] Webhook URL not configured, skipping {event_type}")
            return None

        body = {
            "event": str(event_type),
            "recipient": {
                "id": recipient.pk,
                "email": recipient.email,
            } if recipient is not None else None,
            "payload": payload,
        }
        response = requests.post(self.url, json=body, timeout=self.timeout)
        response.raise_for_status()
        return response
