from rest_framework import serializers

from .models import DriverProfile, DriverDocument, DocumentStatus, DocumentType, VerificationStatus
from .verification import compute_completion


class DriverDocumentSerializer(serializers.ModelSerializer):
    reviewed_by_email = serializers.EmailField(source='reviewed_by.email', read_only=True, default=None)

    class Meta:
        model = DriverDocument
        fields = [
            'id',
            'profile',
            'type',
            'status',
            'file_reference',
            'original_name',
            'review_note',
            'reviewed_by_email',
            'reviewed_at',
            'superseded_at',
            'uploaded_at',
        ]
        read_only_fields = fields


class DriverProfileSerializer(serializers.ModelSerializer):
    """
    Driver profile with the current (non-superseded) documents.
    """
    email = serializers.EmailField(source='user.email', read_only=True)
    first_name = serializers.CharField(source='user.first_name', read_only=True)
    last_name = serializers.CharField(source='user.last_name', read_only=True)
    phone = serializers.CharField(source='user.phone', read_only=True, default=None)
    documents = serializers.SerializerMethodField()

    class Meta:
        model = DriverProfile
        fields = [
            'id',
            'user',
            'email',
            'first_name',
            'last_name',
            'phone',
            'id_number',
            'address_line1',
            'address_line2',
            'city',
            'province',
            'postal_code',
            'verification_status',
            'completion_percent',
            'verification_note',
            'submitted_at',
            'verified_at',
            'last_lat',
            'last_lng',
            'last_accuracy',
            'last_location_at',
            'documents',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_documents(self, obj):
        return DriverDocumentSerializer(obj.current_documents(), many=True).data


class DriverProfileDetailSerializer(DriverProfileSerializer):
    """Adds the completion breakdown and configuration warning."""
    completion = serializers.SerializerMethodField()

    class Meta(DriverProfileSerializer.Meta):
        fields = DriverProfileSerializer.Meta.fields + ['completion']
        read_only_fields = fields

    def get_completion(self, obj):
        return compute_completion(obj)


class DriverProfileListSerializer(serializers.ModelSerializer):
    email = serializers.EmailField(source='user.email', read_only=True)
    full_name = serializers.CharField(source='user.get_full_name', read_only=True)

    class Meta:
        model = DriverProfile
        fields = [
            'id',
            'email',
            'full_name',
            'verification_status',
            'completion_percent',
            'submitted_at',
            'created_at',
        ]


class ProfileUpdateSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    phone = serializers.RegexField(
        r'^\+?1?\d{9,15}$',
        required=False,
        allow_blank=True,
        error_messages={'invalid': "Phone number must be entered in the format: '+999999999'."}
    )
    id_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    address_line1 = serializers.CharField(max_length=255, required=False, allow_blank=True)
    address_line2 = serializers.CharField(max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    province = serializers.CharField(max_length=100, required=False, allow_blank=True)
    postal_code = serializers.CharField(max_length=10, required=False, allow_blank=True)


class DocumentUploadSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=DocumentType.choices)
    file_reference = serializers.CharField(max_length=500)
    original_name = serializers.CharField(max_length=255, required=False, allow_blank=True)


class LocationSerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    accuracy = serializers.FloatField(required=False, allow_null=True, min_value=0)


class DocumentReviewSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=[DocumentStatus.APPROVED, DocumentStatus.REJECTED])
    note = serializers.CharField(required=False, allow_blank=True, default='')


class FinalizeVerificationSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[VerificationStatus.VERIFIED, VerificationStatus.REJECTED])
    note = serializers.CharField(required=False, allow_blank=True, default='')
