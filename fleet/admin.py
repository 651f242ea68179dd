from django.contrib import admin

from .models import Vehicle, VehicleCost, VehicleDocument, VehicleMaintenance


class VehicleDocumentInline(admin.TabularInline):
    model = VehicleDocument
    extra = 0
    fields = ['type', 'status', 'file_reference', 'expires_on', 'superseded_at']
    readonly_fields = fields
    can_delete = False


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = ['registration_number', 'vehicle_type', 'make', 'model', 'year', 'status']
    list_filter = ['vehicle_type', 'status']
    search_fields = ['registration_number', 'make', 'model']
    readonly_fields = ['status', 'created_at', 'updated_at']
    inlines = [VehicleDocumentInline]


@admin.register(VehicleDocument)
class VehicleDocumentAdmin(admin.ModelAdmin):
    list_display = ['vehicle', 'type', 'status', 'expires_on', 'uploaded_at', 'superseded_at']
    list_filter = ['type', 'status']
    search_fields = ['vehicle__registration_number']
    # Review goes through fleet.compliance
    readonly_fields = ['status', 'reviewed_by', 'reviewed_at', 'superseded_at', 'uploaded_at']


@admin.register(VehicleMaintenance)
class VehicleMaintenanceAdmin(admin.ModelAdmin):
    list_display = ['vehicle', 'title', 'status', 'scheduled_on', 'actual_cost_cents']
    list_filter = ['status']
    search_fields = ['vehicle__registration_number', 'title']
    readonly_fields = ['status', 'completed_at', 'created_by', 'created_at', 'updated_at']


@admin.register(VehicleCost)
class VehicleCostAdmin(admin.ModelAdmin):
    list_display = ['vehicle', 'type', 'amount_cents', 'occurred_on', 'vendor']
    list_filter = ['type']
    search_fields = ['vehicle__registration_number', 'vendor']
    readonly_fields = ['maintenance', 'created_by', 'created_at']
