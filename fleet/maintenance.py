"""
Vehicle maintenance records and running costs.

Maintenance moves PLANNED -> IN_PROGRESS -> COMPLETED (or CANCELLED) along
MAINTENANCE_TRANSITIONS. Completing a record with an actual cost books a
SERVICE cost for the vehicle exactly once. Maintenance does not touch the
vehicle's status; operators take a vehicle out of service through
fleet.availability.set_vehicle_status.
"""

import logging

from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone

from home.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from home.models import AuditLog
from .availability import get_vehicle
from .models import (
    CostType,
    MAINTENANCE_TRANSITIONS,
    MaintenanceStatus,
    VehicleCost,
    VehicleMaintenance,
)

logger = logging.getLogger(__name__)

EDITABLE_DETAILS = ('title', 'description', 'scheduled_on', 'odometer_km', 'estimated_cost_cents')


def non_negative(errors, name, value):
    if value is not None and value < 0:
        errors[name] = f"{name} cannot be negative"


def get_maintenance(maintenance_id, lock=False):
    queryset = VehicleMaintenance.objects.select_related('vehicle')
    if lock:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=maintenance_id)
    except VehicleMaintenance.DoesNotExist:
        raise NotFoundError('VehicleMaintenance', maintenance_id)


def schedule_maintenance(vehicle_id, title, description='', scheduled_on=None, odometer_km=None,
                         estimated_cost_cents=None, user=None):
    """Open a PLANNED maintenance record for a vehicle."""
    errors = {}
    if not title or not title.strip():
        errors['title'] = "Title is required"
    non_negative(errors, 'odometer_km', odometer_km)
    non_negative(errors, 'estimated_cost_cents', estimated_cost_cents)
    if errors:
        raise ValidationError(errors)

    with transaction.atomic():
        vehicle = get_vehicle(vehicle_id)
        maintenance = VehicleMaintenance.objects.create(
            vehicle=vehicle,
            title=title.strip(),
            description=description or '',
            scheduled_on=scheduled_on,
            odometer_km=odometer_km,
            estimated_cost_cents=estimated_cost_cents,
            created_by=user if user is not None and user.is_authenticated else None,
        )
        AuditLog.record('MAINTENANCE_SCHEDULED', maintenance, user=user, vehicle_id=vehicle.pk, title=maintenance.title)

    logger.info(f"[Maintenance] Vehicle {vehicle.pk}: '{maintenance.title}' planned")
    maintenance.warnings = []
    return maintenance


def update_maintenance(maintenance_id, status=None, actual_cost_cents=None, completed_at=None, user=None,
                       **details):
    """
    Change status and/or details of a maintenance record.

    Raises:
        ValidationError: unknown status, negative amounts or unknown detail fields
        NotFoundError: the record does not exist
        InvalidTransitionError: the status change is not allowed, or the record
            is COMPLETED or CANCELLED
    """
    errors = {}
    if status is not None and status not in MaintenanceStatus.values:
        errors['status'] = f"Unknown maintenance status {status}"
    unknown = set(details) - set(EDITABLE_DETAILS)
    if unknown:
        errors['fields'] = f"Not editable: {', '.join(sorted(unknown))}"
    non_negative(errors, 'actual_cost_cents', actual_cost_cents)
    non_negative(errors, 'odometer_km', details.get('odometer_km'))
    non_negative(errors, 'estimated_cost_cents', details.get('estimated_cost_cents'))
    if errors:
        raise ValidationError(errors)

    with transaction.atomic():
        maintenance = get_maintenance(maintenance_id, lock=True)
        from_state = MaintenanceStatus(maintenance.status)
        changing = status is not None and status != from_state

        if changing:
            allowed = MAINTENANCE_TRANSITIONS.get(from_state, ())
            if MaintenanceStatus(status) not in allowed:
                raise InvalidTransitionError('VehicleMaintenance', from_state, status)
        elif from_state not in MAINTENANCE_TRANSITIONS:
            raise InvalidTransitionError(
                'VehicleMaintenance', from_state, 'update',
                reason=f"Maintenance {maintenance.pk} is {from_state} and can no longer change",
            )

        for name, value in details.items():
            setattr(maintenance, name, value)
        if actual_cost_cents is not None:
            maintenance.actual_cost_cents = actual_cost_cents
        if changing:
            maintenance.status = status
            if status == MaintenanceStatus.COMPLETED:
                maintenance.completed_at = completed_at or timezone.now()
        maintenance.save()

        cost = None
        if changing and status == MaintenanceStatus.COMPLETED and maintenance.actual_cost_cents:
            cost = VehicleCost.objects.create(
                vehicle=maintenance.vehicle,
                maintenance=maintenance,
                type=CostType.SERVICE,
                title=maintenance.title,
                amount_cents=maintenance.actual_cost_cents,
                occurred_on=timezone.localdate(maintenance.completed_at),
                notes=f"Maintenance completed: {maintenance.title}",
                created_by=user if user is not None and user.is_authenticated else None,
            )

        AuditLog.record(
            'MAINTENANCE_UPDATED', maintenance, user=user,
            from_state=from_state, to_state=maintenance.status,
            fields=sorted(details), cost_id=cost.pk if cost else None,
        )

    logger.info(f"[Maintenance] Maintenance {maintenance.pk} {from_state} -> {maintenance.status}")
    maintenance.booked_cost = cost
    maintenance.warnings = []
    return maintenance


def record_cost(vehicle_id, cost_type, amount_cents, title='', occurred_on=None, vendor='', notes='',
                receipt_reference='', user=None):
    """Book a running cost (fuel, tyres, fines, ...) against a vehicle."""
    errors = {}
    if cost_type not in CostType.values:
        errors['type'] = f"Unknown cost type {cost_type}"
    if amount_cents is None or amount_cents <= 0:
        errors['amount_cents'] = "Amount must be a positive number of cents"
    if errors:
        raise ValidationError(errors)

    with transaction.atomic():
        vehicle = get_vehicle(vehicle_id)
        cost = VehicleCost.objects.create(
            vehicle=vehicle,
            type=cost_type,
            title=title or '',
            amount_cents=amount_cents,
            occurred_on=occurred_on or timezone.localdate(),
            vendor=vendor or '',
            notes=notes or '',
            receipt_reference=receipt_reference or '',
            created_by=user if user is not None and user.is_authenticated else None,
        )
        AuditLog.record('VEHICLE_COST_RECORDED', cost, user=user, vehicle_id=vehicle.pk,
                        type=cost_type, amount_cents=amount_cents)

    logger.info(f"[Maintenance] Vehicle {vehicle.pk}: {cost_type} cost of {amount_cents} recorded")
    cost.warnings = []
    return cost


def cost_summary(vehicle_id):
    """Total and per-type spend for a vehicle, in cents."""
    vehicle = get_vehicle(vehicle_id)
    by_type = (
        VehicleCost.objects.filter(vehicle=vehicle)
        .values('type')
        .annotate(total_cents=Sum('amount_cents'), count=Count('id'))
        .order_by('type')
    )
    rows = [
        {'type': row['type'], 'total_cents': row['total_cents'], 'count': row['count']}
        for row in by_type
    ]
    return {
        'vehicle_id': vehicle.pk,
        'total_cents': sum(row['total_cents'] for row in rows),
        'by_type': rows,
    }
