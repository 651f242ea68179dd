from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['id', 'contract', 'due_date', 'amount_cents', 'status', 'paid_at']
    list_filter = ['status']
    search_fields = ['contract__driver__user__email', 'contract__vehicle__registration_number', 'payment_reference']
    date_hierarchy = 'due_date'
    readonly_fields = [
        'contract', 'amount_cents', 'due_date', 'status', 'paid_at', 'marked_paid_by',
        'failed_at', 'overdue_at', 'reminder_sent_at', 'voided_at', 'created_at', 'updated_at',
    ]

    def has_delete_permission(self, request, obj=None):
        return False
