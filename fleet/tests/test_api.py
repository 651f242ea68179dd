import pytest
from django.core.management import call_command
from django.urls import reverse
from rest_framework import status

from fleet.models import Vehicle, VehicleStatus


@pytest.mark.django_db
class TestVehicleAPI:

    def test_create_uppercases_registration(self, admin_client):
        response = admin_client.post(
            reverse("vehicle-list"),
            {"registration_number": " ca 555-123 ", "make": "Suzuki", "model": "Swift", "year": 2022},
            format="json",
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["data"]["registration_number"] == "CA 555-123"
        assert response.data["data"]["status"] == VehicleStatus.AVAILABLE

    def test_status_is_read_only_on_update(self, admin_client, vehicle):
        response = admin_client.patch(
            reverse("vehicle-detail", args=[vehicle.pk]), {"status": "ASSIGNED", "notes": "Dent"}, format="json"
        )
        assert response.status_code == status.HTTP_200_OK
        vehicle.refresh_from_db()
        assert vehicle.status == VehicleStatus.AVAILABLE
        assert vehicle.notes == "Dent"

    def test_expired_compliance_is_flagged(self, admin_client, make_vehicle):
        vehicle = make_vehicle(insurance_expiry="2020-01-31")
        response = admin_client.get(reverse("vehicle-detail", args=[vehicle.pk]))
        assert [w["field"] for w in response.data["data"]["compliance_warnings"]] == ["insurance_expiry"]

    def test_list_filter(self, admin_client, make_vehicle):
        make_vehicle(status=VehicleStatus.INACTIVE)
        make_vehicle()
        response = admin_client.get(reverse("vehicle-list"), {"status": "INACTIVE"})
        assert response.data["count"] == 1

    def test_status_change_refused_while_assigned(self, admin_client, active_contract, vehicle):
        response = admin_client.post(
            reverse("vehicle-status", args=[vehicle.pk]), {"status": "MAINTENANCE"}, format="json"
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["details"]["precondition"] == "vehicle_assigned"

    def test_delete_vehicle_with_contracts_refused(self, admin_client, active_contract, vehicle):
        response = admin_client.delete(reverse("vehicle-detail", args=[vehicle.pk]))
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_delete_unused_vehicle(self, admin_client, vehicle):
        response = admin_client.delete(reverse("vehicle-detail", args=[vehicle.pk]))
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Vehicle.objects.filter(pk=vehicle.pk).exists()

    def test_driver_forbidden(self, driver_client):
        assert driver_client.get(reverse("vehicle-list")).status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestImportVehicles:

    CSV = (
        "Registration,Type,Make,Model,Year,Insurance Expiry\n"
        "ca111,car,Toyota,Corolla,2020,2025-06-30\n"
        "ca222,BIKE,Honda,CB125,,\n"
        ",CAR,VW,Polo,2019,\n"
        "ca333,TRUCK,Isuzu,D-Max,2018,\n"
    )

    @pytest.fixture
    def csv_file(self, tmp_path):
        path = tmp_path / "vehicles.csv"
        path.write_text(self.CSV)
        return str(path)

    def test_import_upserts_valid_rows(self, csv_file, make_vehicle):
        make_vehicle(registration_number="CA111", make="Old", model="Old")
        call_command("import_vehicles", csv_file)

        assert Vehicle.objects.get(registration_number="CA111").make == "Toyota"
        bike = Vehicle.objects.get(registration_number="CA222")
        assert bike.vehicle_type == "BIKE"
        assert bike.year is None
        assert not Vehicle.objects.filter(registration_number="CA333").exists()

    def test_dry_run_saves_nothing(self, csv_file):
        call_command("import_vehicles", csv_file, "--dry-run")
        assert not Vehicle.objects.exists()


@pytest.mark.django_db
class TestVehicleComplianceAPI:

    def test_upload_review_and_readiness(self, admin_client, vehicle):
        response = admin_client.post(
            reverse("vehicle-documents", args=[vehicle.pk]),
            {"type": "INSURANCE", "file_reference": "fleet/ins.pdf", "expires_on": "2030-01-31"},
            format="json",
        )
        assert response.status_code == status.HTTP_201_CREATED
        document_id = response.data["data"]["id"]
        assert response.data["data"]["status"] == "PENDING"

        response = admin_client.post(
            reverse("vehicle-document-review", args=[document_id]), {"decision": "APPROVED"}, format="json"
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["status"] == "APPROVED"

        response = admin_client.get(reverse("vehicle-readiness", args=[vehicle.pk]))
        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["missing_documents"] == ["LICENSE", "ROADWORTHY"]

    def test_driver_cannot_upload_vehicle_documents(self, driver_client, vehicle):
        response = driver_client.post(
            reverse("vehicle-documents", args=[vehicle.pk]),
            {"type": "INSURANCE", "file_reference": "fleet/ins.pdf"},
            format="json",
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_maintenance_completion_shows_in_costs(self, admin_client, vehicle):
        response = admin_client.post(
            reverse("vehicle-maintenance", args=[vehicle.pk]), {"title": "Service", "odometer_km": 88000},
            format="json",
        )
        assert response.status_code == status.HTTP_201_CREATED
        maintenance_id = response.data["data"]["id"]

        response = admin_client.patch(
            reverse("maintenance-detail", args=[maintenance_id]),
            {"status": "COMPLETED", "actual_cost_cents": 125000},
            format="json",
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["cost_id"] is not None

        admin_client.post(reverse("vehicle-costs", args=[vehicle.pk]), {"type": "FUEL", "amount_cents": 70000},
                          format="json")
        response = admin_client.get(reverse("vehicle-costs", args=[vehicle.pk]))
        assert response.data["data"]["summary"]["total_cents"] == 195000
        assert len(response.data["data"]["costs"]) == 2

    def test_invalid_maintenance_transition_is_conflict(self, admin_client, vehicle):
        response = admin_client.post(reverse("vehicle-maintenance", args=[vehicle.pk]), {"title": "Tyres"},
                                     format="json")
        maintenance_id = response.data["data"]["id"]
        admin_client.patch(reverse("maintenance-detail", args=[maintenance_id]), {"status": "CANCELLED"},
                           format="json")

        response = admin_client.patch(reverse("maintenance-detail", args=[maintenance_id]),
                                      {"status": "COMPLETED"}, format="json")
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["category"] == "invalid_transition"
