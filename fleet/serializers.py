from django.utils import timezone
from rest_framework import serializers

from drivers.models import DocumentStatus
from .models import (
    CostType,
    MaintenanceStatus,
    OPERATOR_STATUSES,
    Vehicle,
    VehicleCost,
    VehicleDocument,
    VehicleDocumentType,
    VehicleMaintenance,
)


class VehicleSerializer(serializers.ModelSerializer):
    """
    Vehicle records. ``status`` is read-only here; operators change it through
    the status endpoint and contracts drive ASSIGNED.
    """
    compliance_warnings = serializers.SerializerMethodField()

    class Meta:
        model = Vehicle
        fields = [
            'id',
            'registration_number',
            'vehicle_type',
            'make',
            'model',
            'year',
            'notes',
            'status',
            'license_expiry',
            'insurance_expiry',
            'roadworthy_expiry',
            'compliance_warnings',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'status', 'compliance_warnings', 'created_at', 'updated_at']

    def validate_year(self, value):
        if value is None:
            return value
        next_year = timezone.localdate().year + 1
        if not 1900 <= value <= next_year:
            raise serializers.ValidationError(f"Year must be between 1900 and {next_year}")
        return value

    def validate_registration_number(self, value):
        return value.strip().upper()

    def get_compliance_warnings(self, obj):
        return [
            {'field': field, 'expired_on': expiry}
            for field, expiry in obj.compliance_warnings(timezone.localdate())
        ]


class VehicleStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=list(OPERATOR_STATUSES))


# ========================================
# COMPLIANCE DOCUMENTS
# ========================================

class VehicleDocumentSerializer(serializers.ModelSerializer):
    reviewed_by_email = serializers.EmailField(source='reviewed_by.email', read_only=True, default=None)
    is_expired = serializers.SerializerMethodField()

    class Meta:
        model = VehicleDocument
        fields = [
            'id',
            'vehicle',
            'type',
            'title',
            'status',
            'file_reference',
            'original_name',
            'issued_on',
            'expires_on',
            'is_expired',
            'review_note',
            'reviewed_by_email',
            'reviewed_at',
            'superseded_at',
            'uploaded_at',
        ]
        read_only_fields = fields

    def get_is_expired(self, obj):
        return obj.is_expired(timezone.localdate())


class VehicleDocumentUploadSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=VehicleDocumentType.choices)
    file_reference = serializers.CharField(max_length=500)
    title = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    original_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    issued_on = serializers.DateField(required=False, allow_null=True, default=None)
    expires_on = serializers.DateField(required=False, allow_null=True, default=None)


class VehicleDocumentReviewSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=[DocumentStatus.APPROVED, DocumentStatus.REJECTED])
    note = serializers.CharField(required=False, allow_blank=True, default='')


# ========================================
# MAINTENANCE AND COSTS
# ========================================

class VehicleMaintenanceSerializer(serializers.ModelSerializer):
    cost_id = serializers.SerializerMethodField()

    class Meta:
        model = VehicleMaintenance
        fields = [
            'id',
            'vehicle',
            'title',
            'description',
            'status',
            'scheduled_on',
            'odometer_km',
            'estimated_cost_cents',
            'actual_cost_cents',
            'completed_at',
            'cost_id',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_cost_id(self, obj):
        return VehicleCost.objects.filter(maintenance=obj).values_list('id', flat=True).first()


class MaintenanceCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(max_length=1000, required=False, allow_blank=True, default='')
    scheduled_on = serializers.DateField(required=False, allow_null=True, default=None)
    odometer_km = serializers.IntegerField(required=False, allow_null=True, min_value=0, default=None)
    estimated_cost_cents = serializers.IntegerField(required=False, allow_null=True, min_value=0, default=None)


class MaintenanceUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=MaintenanceStatus.choices, required=False)
    title = serializers.CharField(max_length=200, required=False)
    description = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    scheduled_on = serializers.DateField(required=False, allow_null=True)
    odometer_km = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    estimated_cost_cents = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    actual_cost_cents = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    completed_at = serializers.DateTimeField(required=False, allow_null=True)


class VehicleCostSerializer(serializers.ModelSerializer):
    class Meta:
        model = VehicleCost
        fields = [
            'id',
            'vehicle',
            'maintenance',
            'type',
            'title',
            'amount_cents',
            'occurred_on',
            'vendor',
            'notes',
            'receipt_reference',
            'created_at',
        ]
        read_only_fields = fields


class CostCreateSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=CostType.choices)
    amount_cents = serializers.IntegerField(min_value=1)
    title = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    occurred_on = serializers.DateField(required=False, allow_null=True, default=None)
    vendor = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, default='')
    receipt_reference = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')
