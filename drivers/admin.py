from django.contrib import admin

from .models import DriverProfile, DriverDocument


class DriverDocumentInline(admin.TabularInline):
    model = DriverDocument
    extra = 0
    fields = ['type', 'status', 'file_reference', 'review_note', 'reviewed_at', 'superseded_at']
    readonly_fields = fields
    can_delete = False


@admin.register(DriverProfile)
class DriverProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'verification_status', 'completion_percent', 'submitted_at', 'created_at']
    list_filter = ['verification_status']
    search_fields = ['user__email', 'user__first_name', 'user__last_name', 'id_number']
    readonly_fields = ['verification_status', 'completion_percent', 'verified_at', 'created_at', 'updated_at']
    inlines = [DriverDocumentInline]


@admin.register(DriverDocument)
class DriverDocumentAdmin(admin.ModelAdmin):
    list_display = ['profile', 'type', 'status', 'uploaded_at', 'superseded_at']
    list_filter = ['type', 'status']
    readonly_fields = ['status', 'reviewed_by', 'reviewed_at', 'superseded_at', 'uploaded_at']
