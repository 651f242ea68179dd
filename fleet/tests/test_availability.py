from datetime import date

import pytest

from contracts.models import RentalContract
from fleet.availability import reconcile_vehicle_status, set_vehicle_status
from fleet.models import Vehicle, VehicleStatus
from home.exceptions import PreconditionError, ValidationError
from home.models import AuditLog


@pytest.mark.django_db
class TestReconcileVehicleStatus:

    def test_assigned_while_holding_contract(self, active_contract, vehicle):
        Vehicle.objects.filter(pk=vehicle.pk).update(status=VehicleStatus.AVAILABLE)
        assert reconcile_vehicle_status(vehicle.pk).status == VehicleStatus.ASSIGNED

    def test_released_when_no_holding_contract(self, active_contract, vehicle):
        RentalContract.objects.filter(pk=active_contract.pk).update(status='ENDED', end_date=date(2024, 2, 1))
        assert reconcile_vehicle_status(vehicle.pk).status == VehicleStatus.AVAILABLE
        assert AuditLog.objects.filter(action_type='VEHICLE_STATUS_CHANGED', entity_id=str(vehicle.pk)).exists()

    def test_operator_statuses_are_left_alone(self, make_vehicle):
        vehicle = make_vehicle(status=VehicleStatus.MAINTENANCE)
        assert reconcile_vehicle_status(vehicle.pk).status == VehicleStatus.MAINTENANCE


@pytest.mark.django_db
class TestSetVehicleStatus:

    def test_operator_change(self, vehicle, admin_user):
        vehicle = set_vehicle_status(vehicle.pk, VehicleStatus.MAINTENANCE, user=admin_user)
        assert vehicle.status == VehicleStatus.MAINTENANCE

    def test_assigned_is_not_an_operator_status(self, vehicle):
        with pytest.raises(ValidationError):
            set_vehicle_status(vehicle.pk, VehicleStatus.ASSIGNED)

    def test_refused_while_assigned(self, active_contract, vehicle):
        with pytest.raises(PreconditionError) as exc:
            set_vehicle_status(vehicle.pk, VehicleStatus.MAINTENANCE)
        assert exc.value.precondition == 'vehicle_assigned'
        vehicle.refresh_from_db()
        assert vehicle.status == VehicleStatus.ASSIGNED
