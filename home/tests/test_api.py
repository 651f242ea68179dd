import pytest
from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from drivers.models import DriverProfile

User = get_user_model()


@pytest.mark.django_db
class TestUsersAPI:

    def test_obtain_token(self, admin_user):
        response = APIClient().post(
            reverse("token_obtain_pair"), {"email": "admin@example.com", "password": "pass12345"}, format="json"
        )
        assert response.status_code == status.HTTP_200_OK
        assert "access" in response.data

    def test_admin_creates_driver_account_with_profile(self, admin_client):
        response = admin_client.post(
            reverse("admin-create-user"),
            {
                "email": "new.driver@example.com",
                "password": "Str0ng-Passw0rd!",
                "password_confirm": "Str0ng-Passw0rd!",
                "first_name": "Lerato",
                "last_name": "Dube",
                "role": "driver",
            },
            format="json",
        )
        assert response.status_code == status.HTTP_201_CREATED
        user = User.objects.get(email="new.driver@example.com")
        assert DriverProfile.objects.filter(user=user).exists()

    def test_driver_cannot_list_users(self, driver_client):
        assert driver_client.get(reverse("list-users")).status_code == status.HTTP_403_FORBIDDEN

    def test_cannot_deactivate_self(self, admin_client, admin_user):
        response = admin_client.post(reverse("toggle-user-active", args=[admin_user.pk]))
        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestSettingsAPI:

    def test_get_settings(self, admin_client):
        response = admin_client.get(reverse("settings"))
        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["payments.graceDays"] == 3

    def test_patch_settings(self, admin_client):
        response = admin_client.patch(
            reverse("settings"), {"settings": {"payments.graceDays": 10}}, format="json"
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["payments.graceDays"] == 10

    def test_patch_invalid_setting(self, admin_client):
        response = admin_client.patch(
            reverse("settings"), {"settings": {"payments.graceDays": -2}}, format="json"
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["category"] == "validation_error"

    def test_readiness_reports_weights(self, admin_client):
        admin_client.patch(
            reverse("settings"),
            {"settings": {"onboarding.progressWeights": {"profile": 30, "documents": 40, "location": 20}}},
            format="json",
        )
        response = admin_client.get(reverse("settings-readiness"))
        assert response.data["data"]["ready"] is False
        assert response.data["data"]["progress_weights_total"] == 90
        assert response.data["warnings"] == ["Progress weights sum to 90, expected 100"]

    def test_audit_log_filter(self, admin_client, active_contract):
        response = admin_client.get(
            reverse("audit-log"), {"entity_type": "rentalcontract", "entity_id": active_contract.pk}
        )
        assert response.status_code == status.HTTP_200_OK
        assert {row["action_type"] for row in response.data} == {"CONTRACT_CREATED", "CONTRACT_TRANSITIONED",
                                                                 "PAYMENTS_GENERATED"}
