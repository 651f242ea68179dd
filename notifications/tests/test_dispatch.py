from unittest.mock import MagicMock, patch

import pytest
import requests
from django.urls import reverse
from rest_framework import status

from notifications.backends import WebhookBackend
from notifications.dispatch import notify
from notifications.events import EventType
from notifications.models import Notification


@pytest.mark.django_db
class TestNotify:

    def test_in_app_delivery(self, verified_driver):
        warnings = notify(EventType.CONTRACT_SENT, recipient=verified_driver.user, contract_id=5)
        assert warnings == []
        notification = Notification.objects.get(recipient=verified_driver.user)
        assert notification.event_type == "ContractSent"
        assert notification.payload == {"contract_id": 5}

    def test_operator_events_skip_in_app(self, db):
        assert notify(EventType.PAYMENT_OVERDUE, payment_id=1) == []
        assert not Notification.objects.exists()

    def test_failing_backend_becomes_warning(self, verified_driver, settings):
        settings.NOTIFICATION_BACKENDS = [
            "notifications.backends.InAppBackend",
            "notifications.backends.WebhookBackend",
        ]
        settings.NOTIFICATION_WEBHOOK_URL = "https://hooks.example.com/rental"
        with patch("notifications.backends.requests.post", side_effect=requests.ConnectionError("refused")):
            warnings = notify(EventType.CONTRACT_ACTIVATED, recipient=verified_driver.user, contract_id=5)

        assert warnings == ["ContractActivated notification via WebhookBackend failed: refused"]
        assert Notification.objects.filter(event_type="ContractActivated").count() == 1

    def test_unimportable_backend_becomes_warning(self, settings, db):
        settings.NOTIFICATION_BACKENDS = ["notifications.backends.SmsBackend"]
        warnings = notify(EventType.PAYMENT_DUE_SOON, payment_id=1)
        assert len(warnings) == 1
        assert "SmsBackend" in warnings[0]


class TestWebhookBackend:

    def test_posts_event_json(self):
        recipient = MagicMock(pk=3, email="d@example.com")
        with patch("notifications.backends.requests.post") as post:
            WebhookBackend(url="https://hooks.example.com/rental", timeout=5).send(
                "PaymentDueSoon", recipient, {"payment_id": 9}
            )

        post.assert_called_once_with(
            "https://hooks.example.com/rental",
            json={
                "event": "PaymentDueSoon",
                "recipient": {"id": 3, "email": "d@example.com"},
                "payload": {"payment_id": 9},
            },
            timeout=5,
        )
        post.return_value.raise_for_status.assert_called_once()

    def test_no_url_skips(self):
        with patch("notifications.backends.requests.post") as post:
            assert WebhookBackend(url="").send("PaymentDueSoon", None, {}) is None
        post.assert_not_called()


@pytest.mark.django_db
class TestNotificationAPI:

    def test_list_and_mark_read(self, driver_client, verified_driver):
        notify(EventType.CONTRACT_SENT, recipient=verified_driver.user, contract_id=1)
        notify(EventType.CONTRACT_ACTIVATED, recipient=verified_driver.user, contract_id=1)

        response = driver_client.get(reverse("notification-list"), {"unread": "true"})
        assert len(response.data) == 2

        response = driver_client.post(reverse("notification-read", args=[response.data[0]["id"]]))
        assert response.status_code == status.HTTP_200_OK
        assert response.data["is_read"] is True

        response = driver_client.post(reverse("notification-read-all"))
        assert response.data["updated"] == 1

    def test_cannot_read_others(self, driver_client, make_driver):
        other = make_driver()
        notify(EventType.CONTRACT_SENT, recipient=other.user, contract_id=1)
        notification = Notification.objects.get(recipient=other.user)
        response = driver_client.post(reverse("notification-read", args=[notification.pk]))
        assert response.status_code == status.HTTP_404_NOT_FOUND
