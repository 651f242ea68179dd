from django.contrib import admin

from .models import ContractStatus, RentalContract


@admin.register(RentalContract)
class RentalContractAdmin(admin.ModelAdmin):
    list_display = ['id', 'driver', 'vehicle', 'status', 'frequency', 'fee_amount_cents', 'start_date', 'end_date']
    list_filter = ['status', 'frequency']
    search_fields = ['driver__user__email', 'vehicle__registration_number']
    # Status only moves through contracts.lifecycle
    readonly_fields = [
        'status', 'terms_hash', 'driver_signed_at', 'driver_signature_reference', 'acceptance',
        'locked_at', 'sent_at', 'activated_at', 'paused_at', 'resumed_on', 'ended_at', 'cancelled_at',
        'expired_at', 'created_by', 'created_at', 'updated_at',
    ]
    # Editable while DRAFT only; afterwards they drive vehicle assignment and the signed terms
    term_fields = [
        'driver', 'vehicle', 'fee_amount_cents', 'frequency', 'due_weekday', 'due_day_of_month',
        'start_date', 'end_date', 'terms_text', 'cancellation_reason',
    ]

    def get_readonly_fields(self, request, obj=None):
        readonly = list(super().get_readonly_fields(request, obj))
        if obj is not None and obj.status != ContractStatus.DRAFT:
            readonly += self.term_fields
        return readonly
