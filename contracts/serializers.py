from rest_framework import serializers

from .models import RentalContract, Frequency


class RentalContractSerializer(serializers.ModelSerializer):
    driver_email = serializers.EmailField(source='driver.user.email', read_only=True)
    vehicle_registration = serializers.CharField(source='vehicle.registration_number', read_only=True)
    vehicle_status = serializers.CharField(source='vehicle.status', read_only=True)
    allowed_events = serializers.ListField(child=serializers.CharField(), read_only=True)

    class Meta:
        model = RentalContract
        fields = [
            'id',
            'driver',
            'driver_email',
            'vehicle',
            'vehicle_registration',
            'vehicle_status',
            'fee_amount_cents',
            'frequency',
            'due_weekday',
            'due_day_of_month',
            'start_date',
            'end_date',
            'terms_text',
            'status',
            'allowed_events',
            'driver_signed_at',
            'terms_hash',
            'locked_at',
            'sent_at',
            'activated_at',
            'paused_at',
            'resumed_on',
            'ended_at',
            'cancelled_at',
            'cancellation_reason',
            'expired_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ContractCreateSerializer(serializers.Serializer):
    """
    Input for admission. Cross-field rules (weekday vs. day of month, allowed
    frequencies) are checked by the lifecycle service.
    """
    driver_id = serializers.IntegerField()
    vehicle_id = serializers.IntegerField()
    fee_amount_cents = serializers.IntegerField(min_value=1)
    frequency = serializers.ChoiceField(choices=Frequency.choices)
    due_weekday = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=6)
    due_day_of_month = serializers.IntegerField(required=False, allow_null=True, min_value=1, max_value=31)
    start_date = serializers.DateField()
    end_date = serializers.DateField(required=False, allow_null=True)


class DriverSignSerializer(serializers.Serializer):
    signature_reference = serializers.CharField(max_length=500)
    agree_terms = serializers.BooleanField()
    agree_payments = serializers.BooleanField()

    def validate(self, attrs):
        if not (attrs['agree_terms'] and attrs['agree_payments']):
            raise serializers.ValidationError("You must accept the terms and the payment schedule")
        return attrs


class RejectContractSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class EndContractSerializer(serializers.Serializer):
    end_date = serializers.DateField(required=False, allow_null=True)
