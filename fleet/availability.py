"""
Vehicle availability synchronizer.

Vehicle status is derived from the contracts referencing the vehicle. Every
contract transition that can affect it calls reconcile_vehicle_status inside
its own transaction instead of writing the status itself.
"""

import logging

from django.db import transaction

from home.exceptions import NotFoundError, PreconditionError, ValidationError
from home.models import AuditLog
from .models import Vehicle, VehicleStatus, OPERATOR_STATUSES

logger = logging.getLogger(__name__)


def get_vehicle(vehicle_id, lock=False):
    queryset = Vehicle.objects.all()
    if lock:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=vehicle_id)
    except Vehicle.DoesNotExist:
        raise NotFoundError('Vehicle', vehicle_id)


def holding_contract_exists(vehicle_id, exclude_contract_id=None):
    """True when an ACTIVE or PAUSED contract holds the vehicle."""
    from contracts.models import RentalContract, HOLDING_STATUSES

    queryset = RentalContract.objects.filter(vehicle_id=vehicle_id, status__in=HOLDING_STATUSES)
    if exclude_contract_id is not None:
        queryset = queryset.exclude(pk=exclude_contract_id)
    return queryset.exists()


@transaction.atomic
def reconcile_vehicle_status(vehicle_id):
    """
    Recompute vehicle.status from its contracts.

    ASSIGNED while a holding contract exists; otherwise an ASSIGNED vehicle
    returns to AVAILABLE. MAINTENANCE and INACTIVE are operator decisions and
    are left alone when no contract holds the vehicle.
    """
    vehicle = get_vehicle(vehicle_id, lock=True)
    held = holding_contract_exists(vehicle_id)

    if held:
        new_status = VehicleStatus.ASSIGNED
    elif vehicle.status == VehicleStatus.ASSIGNED:
        new_status = VehicleStatus.AVAILABLE
    else:
        new_status = vehicle.status

    if new_status != vehicle.status:
        old_status = vehicle.status
        vehicle.status = new_status
        vehicle.save(update_fields=['status', 'updated_at'])
        AuditLog.record(
            'VEHICLE_STATUS_CHANGED', vehicle,
            from_state=old_status, to_state=new_status, reason='reconcile',
        )
        logger.info(f"[Availability] Vehicle {vehicle.pk} {old_status} -> {new_status}")

    return vehicle


def set_vehicle_status(vehicle_id, status, user=None):
    """
    Operator status change (AVAILABLE / MAINTENANCE / INACTIVE).

    Refused while a contract holds the vehicle, since ASSIGNED is derived.
    """
    if status not in OPERATOR_STATUSES:
        raise ValidationError({'status': f"Status must be one of {', '.join(OPERATOR_STATUSES)}"})

    with transaction.atomic():
        vehicle = get_vehicle(vehicle_id, lock=True)
        if vehicle.status == VehicleStatus.ASSIGNED or holding_contract_exists(vehicle_id):
            logger.warning(f"[Availability] Vehicle {vehicle.pk} status change refused: assigned")
            raise PreconditionError(
                'vehicle_assigned',
                f"Vehicle {vehicle.registration_number} is assigned to an active contract",
                vehicle_id=vehicle.pk,
            )

        old_status = vehicle.status
        if old_status != status:
            vehicle.status = status
            vehicle.save(update_fields=['status', 'updated_at'])
            AuditLog.record(
                'VEHICLE_STATUS_CHANGED', vehicle, user=user,
                from_state=old_status, to_state=status, reason='operator',
            )
            logger.info(f"[Availability] Vehicle {vehicle.pk} {old_status} -> {status} by operator")

    vehicle.warnings = []
    return vehicle
