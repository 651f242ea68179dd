from django.utils import timezone
from rest_framework import serializers

from home import config
from .models import Payment
from .overdue import effective_status, days_overdue


class PaymentSerializer(serializers.ModelSerializer):
    """
    Payment row plus its resolver view: ``effective_status`` is OVERDUE for a
    PENDING row past the grace period even before the batch job persists it.
    """
    driver = serializers.IntegerField(source='contract.driver_id', read_only=True)
    vehicle = serializers.IntegerField(source='contract.vehicle_id', read_only=True)
    effective_status = serializers.SerializerMethodField()
    days_overdue = serializers.SerializerMethodField()
    marked_paid_by_email = serializers.EmailField(source='marked_paid_by.email', read_only=True, default=None)

    class Meta:
        model = Payment
        fields = [
            'id',
            'contract',
            'driver',
            'vehicle',
            'amount_cents',
            'due_date',
            'status',
            'effective_status',
            'days_overdue',
            'paid_at',
            'payment_reference',
            'marked_paid_by_email',
            'failed_at',
            'failure_reason',
            'overdue_at',
            'voided_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def _today(self):
        return self.context.get('today') or timezone.localdate()

    def _grace(self):
        if 'grace_period_days' not in self.context:
            self.context['grace_period_days'] = config.grace_period_days()
        return self.context['grace_period_days']

    def get_effective_status(self, obj):
        return effective_status(obj, self._grace(), self._today())

    def get_days_overdue(self, obj):
        if effective_status(obj, self._grace(), self._today()) != 'OVERDUE':
            return 0
        return days_overdue(obj, self._today())


class MarkPaidSerializer(serializers.Serializer):
    paid_at = serializers.DateTimeField(required=False, allow_null=True)
    reference = serializers.CharField(required=False, allow_blank=True, default='', max_length=100)


class MarkFailedSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class ExtendHorizonSerializer(serializers.Serializer):
    horizon = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class OverdueSummarySerializer(serializers.Serializer):
    total_overdue_payments = serializers.IntegerField()
    total_overdue_amount_cents = serializers.IntegerField()
    contracts_with_overdue = serializers.IntegerField()
    drivers_with_overdue = serializers.IntegerField()
    grace_period_days = serializers.IntegerField()
    as_of = serializers.DateField()
