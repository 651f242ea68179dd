from django.conf import settings
from django.db import models
from django.db.models import Q

from drivers.models import DocumentStatus


class VehicleType(models.TextChoices):
    CAR = 'CAR', 'Car'
    BIKE = 'BIKE', 'Bike'


class VehicleStatus(models.TextChoices):
    AVAILABLE = 'AVAILABLE', 'Available'
    ASSIGNED = 'ASSIGNED', 'Assigned'
    MAINTENANCE = 'MAINTENANCE', 'Maintenance'
    INACTIVE = 'INACTIVE', 'Inactive'


# Statuses an operator may set by hand. ASSIGNED is derived from contracts.
OPERATOR_STATUSES = (
    VehicleStatus.AVAILABLE,
    VehicleStatus.MAINTENANCE,
    VehicleStatus.INACTIVE,
)


class Vehicle(models.Model):
    """
    A rentable vehicle.

    ``status`` is ASSIGNED exactly while an ACTIVE or PAUSED contract holds the
    vehicle; fleet.availability.reconcile_vehicle_status keeps it that way.
    Compliance expiry dates are informational only.
    """

    registration_number = models.CharField(max_length=20, unique=True)
    vehicle_type = models.CharField(max_length=10, choices=VehicleType.choices, default=VehicleType.CAR)
    make = models.CharField(max_length=50)
    model = models.CharField(max_length=50)
    year = models.PositiveSmallIntegerField(null=True, blank=True)
    notes = models.TextField(blank=True, default='')

    status = models.CharField(
        max_length=20,
        choices=VehicleStatus.choices,
        default=VehicleStatus.AVAILABLE,
        db_index=True
    )

    # Compliance
    license_expiry = models.DateField(null=True, blank=True)
    insurance_expiry = models.DateField(null=True, blank=True)
    roadworthy_expiry = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'vehicles'
        ordering = ['registration_number']

    def __str__(self):
        return f"{self.registration_number} {self.make} {self.model} [{self.status}]"

    def compliance_warnings(self, today):
        """Expired compliance dates as (field, date) pairs."""
        dates = {
            'license_expiry': self.license_expiry,
            'insurance_expiry': self.insurance_expiry,
            'roadworthy_expiry': self.roadworthy_expiry,
        }
        return [(field, value) for field, value in dates.items() if value is not None and value < today]


# ========================================
# COMPLIANCE DOCUMENTS
# ========================================

class VehicleDocumentType(models.TextChoices):
    OWNERSHIP = 'OWNERSHIP', 'Ownership Documents'
    LICENSE = 'LICENSE', 'Vehicle License'
    ROADWORTHY = 'ROADWORTHY', 'Roadworthy Certificate'
    INSURANCE = 'INSURANCE', 'Insurance Policy'
    SERVICE_HISTORY = 'SERVICE_HISTORY', 'Service History'
    INVOICE = 'INVOICE', 'Invoice/Receipt'
    OTHER = 'OTHER', 'Other'


# Documents a vehicle needs on file, approved and unexpired, to be ready for rental
REQUIRED_VEHICLE_DOCUMENTS = {
    VehicleType.CAR: (VehicleDocumentType.LICENSE, VehicleDocumentType.ROADWORTHY, VehicleDocumentType.INSURANCE),
    VehicleType.BIKE: (VehicleDocumentType.LICENSE, VehicleDocumentType.INSURANCE),
}


class VehicleDocument(models.Model):
    """
    A compliance document for a vehicle. Reviewed like driver documents: a new
    upload of the same type supersedes the current one and starts PENDING.
    """

    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.CASCADE,
        related_name='documents'
    )
    type = models.CharField(max_length=30, choices=VehicleDocumentType.choices)
    title = models.CharField(max_length=200, blank=True, default='')
    status = models.CharField(
        max_length=20,
        choices=DocumentStatus.choices,
        default=DocumentStatus.PENDING
    )
    file_reference = models.CharField(max_length=500)
    original_name = models.CharField(max_length=255, blank=True, default='')
    issued_on = models.DateField(null=True, blank=True)
    expires_on = models.DateField(null=True, blank=True)
    review_note = models.TextField(blank=True, default='')

    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reviewed_vehicle_documents'
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    superseded_at = models.DateTimeField(null=True, blank=True)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'vehicle_documents'
        ordering = ['uploaded_at', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['vehicle', 'type'],
                condition=Q(superseded_at__isnull=True),
                name='unique_current_vehicle_document_per_type',
            ),
        ]

    def __str__(self):
        return f"{self.type} ({self.status}) for vehicle {self.vehicle_id}"

    @property
    def is_current(self):
        return self.superseded_at is None

    def is_expired(self, today):
        return self.expires_on is not None and self.expires_on < today


# ========================================
# MAINTENANCE AND COSTS
# ========================================

class MaintenanceStatus(models.TextChoices):
    PLANNED = 'PLANNED', 'Planned'
    IN_PROGRESS = 'IN_PROGRESS', 'In Progress'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELLED = 'CANCELLED', 'Cancelled'


# from -> allowed next statuses. COMPLETED and CANCELLED are final.
MAINTENANCE_TRANSITIONS = {
    MaintenanceStatus.PLANNED: (
        MaintenanceStatus.IN_PROGRESS,
        MaintenanceStatus.COMPLETED,
        MaintenanceStatus.CANCELLED,
    ),
    MaintenanceStatus.IN_PROGRESS: (
        MaintenanceStatus.COMPLETED,
        MaintenanceStatus.CANCELLED,
    ),
}


class CostType(models.TextChoices):
    LICENSE = 'LICENSE', 'License'
    SERVICE = 'SERVICE', 'Service/Maintenance'
    REPAIR = 'REPAIR', 'Repair'
    TYRES = 'TYRES', 'Tyres'
    INSURANCE = 'INSURANCE', 'Insurance'
    FUEL = 'FUEL', 'Fuel'
    FINES = 'FINES', 'Fines'
    OTHER = 'OTHER', 'Other'


class VehicleMaintenance(models.Model):
    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.CASCADE,
        related_name='maintenance_records'
    )
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default='')
    status = models.CharField(
        max_length=20,
        choices=MaintenanceStatus.choices,
        default=MaintenanceStatus.PLANNED,
        db_index=True
    )
    scheduled_on = models.DateField(null=True, blank=True)
    odometer_km = models.PositiveIntegerField(null=True, blank=True)
    estimated_cost_cents = models.PositiveIntegerField(null=True, blank=True)
    actual_cost_cents = models.PositiveIntegerField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='maintenance_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'vehicle_maintenance'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} for vehicle {self.vehicle_id} [{self.status}]"


class VehicleCost(models.Model):
    """
    Money spent on a vehicle. Completing a maintenance record with an actual
    cost books one SERVICE cost linked back to it.
    """

    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.CASCADE,
        related_name='costs'
    )
    maintenance = models.OneToOneField(
        VehicleMaintenance,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='cost'
    )
    type = models.CharField(max_length=20, choices=CostType.choices)
    title = models.CharField(max_length=200, blank=True, default='')
    amount_cents = models.PositiveIntegerField()
    occurred_on = models.DateField()
    vendor = models.CharField(max_length=100, blank=True, default='')
    notes = models.TextField(blank=True, default='')
    receipt_reference = models.CharField(max_length=500, blank=True, default='')

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='vehicle_costs_recorded'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'vehicle_costs'
        ordering = ['-occurred_on', '-id']
        constraints = [
            models.CheckConstraint(
                condition=Q(amount_cents__gt=0),
                name='vehicle_cost_positive',
            ),
        ]

    def __str__(self):
        return f"{self.type} {self.amount_cents} for vehicle {self.vehicle_id}"
