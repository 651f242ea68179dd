from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import CustomUser as User, AuditLog


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for User model - used for user profile display.
    """
    full_name = serializers.CharField(source='get_full_name', read_only=True)

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'username',
            'first_name',
            'last_name',
            'full_name',
            'phone',
            'role',
            'is_active',
            'is_email_verified',
            'date_joined'
        ]
        read_only_fields = ['id', 'date_joined', 'full_name', 'role', 'is_active']


class UserCreateSerializer(serializers.ModelSerializer):
    """
    Serializer for admin-created accounts (drivers and other admins).
    """
    password = serializers.CharField(
        write_only=True,
        required=True,
        validators=[validate_password],
        style={'input_type': 'password'}
    )
    password_confirm = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'password',
            'password_confirm',
            'first_name',
            'last_name',
            'phone',
            'role',
        ]
        read_only_fields = ['id']

    def validate(self, attrs):
        """
        Verify that passwords match.
        """
        if attrs['password'] != attrs.pop('password_confirm'):
            raise serializers.ValidationError({
                "password_confirm": "Passwords do not match."
            })
        return attrs

    def create(self, validated_data):
        return User.objects.create_user(**validated_data)


class ChangePasswordSerializer(serializers.Serializer):
    """
    Serializer for password change endpoint.
    """
    old_password = serializers.CharField(required=True, write_only=True)
    new_password = serializers.CharField(
        required=True,
        write_only=True,
        validators=[validate_password]
    )
    new_password_confirm = serializers.CharField(required=True, write_only=True)

    def validate(self, attrs):
        if attrs['new_password'] != attrs['new_password_confirm']:
            raise serializers.ValidationError({
                "new_password": "New password fields didn't match."
            })
        return attrs

    def validate_old_password(self, value):
        user = self.context['request'].user
        if not user.check_password(value):
            raise serializers.ValidationError("Old password is incorrect.")
        return value


class UserProfileUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['first_name', 'last_name', 'phone']


class SettingsUpdateSerializer(serializers.Serializer):
    """Mapping of setting key to new value; validated by home.config."""
    settings = serializers.DictField(child=serializers.JSONField(), allow_empty=False)


class AuditLogSerializer(serializers.ModelSerializer):
    user_email = serializers.EmailField(source='user.email', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = [
            'id',
            'action_type',
            'user',
            'user_email',
            'entity_type',
            'entity_id',
            'description',
            'metadata',
            'created_at',
        ]
        read_only_fields = fields
