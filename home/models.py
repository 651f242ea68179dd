from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models
from django.utils import timezone
from django.core.validators import RegexValidator


class CustomUserManager(BaseUserManager):
    """
    Custom user manager for the rental platform.
    Handles user creation with email as the unique identifier.
    """

    def create_user(self, email, password=None, **extra_fields):
        """
        Create and save a regular user with the given email and password.
        """
        if not email:
            raise ValueError('Users must have an email address')

        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """
        Create and save a superuser with the given email and password.
        """
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', CustomUser.ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True')

        return self.create_user(email, password, **extra_fields)

    def get_by_natural_key(self, email):
        return self.get(email=email)


class CustomUser(AbstractBaseUser, PermissionsMixin):
    """
    Custom user model for the rental platform.
    Uses email as the primary authentication field.

    Roles:
    - admin: operates the fleet, reviews drivers, issues contracts
    - driver: rents a vehicle, uploads documents, signs contracts
    """

    ADMIN = 'admin'
    DRIVER = 'driver'

    ROLE_CHOICES = [
        (ADMIN, 'Administrator'),
        (DRIVER, 'Driver'),
    ]

    phone_regex = RegexValidator(
        regex=r'^\+?1?\d{9,15}$',
        message="Phone number must be entered in the format: '+999999999'. Up to 15 digits allowed."
    )

    email = models.EmailField(
        verbose_name='email address',
        max_length=255,
        unique=True,
        db_index=True,
    )
    username = models.CharField(
        max_length=150,
        unique=True,
        blank=True,
        null=True,
        help_text='Optional username. Email will be used for login if not provided.'
    )

    # Personal Information
    first_name = models.CharField(max_length=150, blank=True)
    last_name = models.CharField(max_length=150, blank=True)
    phone = models.CharField(
        validators=[phone_regex],
        max_length=17,
        blank=True,
        null=True,
        help_text='Contact phone number'
    )

    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default=DRIVER,
        help_text='User role in the system'
    )

    # Status Fields
    is_active = models.BooleanField(
        default=True,
        help_text='Designates whether this user should be treated as active.'
    )
    is_staff = models.BooleanField(
        default=False,
        help_text='Designates whether the user can log into admin site.'
    )
    is_email_verified = models.BooleanField(default=False)

    # Timestamps
    date_joined = models.DateTimeField(default=timezone.now)
    last_login = models.DateTimeField(blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    groups = models.ManyToManyField(
        'auth.Group',
        verbose_name='groups',
        blank=True,
        help_text='The groups this user belongs to.',
        related_name='customuser_set',
        related_query_name='customuser',
    )
    user_permissions = models.ManyToManyField(
        'auth.Permission',
        verbose_name='user permissions',
        blank=True,
        help_text='Specific permissions for this user.',
        related_name='customuser_set',
        related_query_name='customuser',
    )

    objects = CustomUserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name']

    class Meta:
        db_table = 'custom_users'
        verbose_name = 'user'
        verbose_name_plural = 'users'
        ordering = ['-date_joined']
        indexes = [
            models.Index(fields=['email'], name='custom_user_email_idx'),
            models.Index(fields=['role'], name='custom_user_role_idx'),
            models.Index(fields=['is_active'], name='custom_user_active_idx'),
        ]

    def __str__(self):
        return f"{self.get_full_name()} ({self.email})"

    def get_full_name(self):
        """
        Return the first_name plus the last_name, with a space in between.
        """
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email

    def get_short_name(self):
        return self.first_name or self.email.split('@')[0]

    def is_admin_user(self):
        """Check if user is an administrator."""
        return self.role == self.ADMIN or self.is_superuser

    def is_driver(self):
        """Check if user is a driver."""
        return self.role == self.DRIVER

    def save(self, *args, **kwargs):
        """
        Override save to auto-generate username from email if not provided.
        """
        if not self.username:
            self.username = self.email.split('@')[0]

        if self.role == self.ADMIN:
            self.is_staff = True

        super().save(*args, **kwargs)


# ========================================
# APP SETTING MODEL
# ========================================

class AppSetting(models.Model):
    """
    Operator-editable configuration stored as key/value pairs.

    Values are JSON so that lists (required documents, allowed frequencies)
    and mappings (progress weights) round-trip without custom parsing.
    Typed access goes through home.config, never through this model directly.
    """

    key = models.CharField(max_length=100, unique=True)
    value = models.JSONField(null=True, blank=True)

    updated_by = models.ForeignKey(
        CustomUser,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='settings_updated'
    )
    updated_at = models.DateTimeField(auto_now=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'app_settings'
        ordering = ['key']

    def __str__(self):
        return f"{self.key} = {self.value!r}"


# ========================================
# AUDIT LOG MODEL
# ========================================

class AuditLog(models.Model):
    """
    Tracks every state-changing operation for compliance and debugging.
    Rows are written inside the same transaction as the change they describe.
    """

    ACTION_TYPE_CHOICES = [
        ('DOCUMENT_UPLOADED', 'Document Uploaded'),
        ('DOCUMENT_REVIEWED', 'Document Reviewed'),
        ('PROFILE_UPDATED', 'Profile Updated'),
        ('LOCATION_RECORDED', 'Location Recorded'),
        ('VERIFICATION_SUBMITTED', 'Verification Submitted'),
        ('VERIFICATION_FINALIZED', 'Verification Finalized'),
        ('CONTRACT_CREATED', 'Contract Created'),
        ('CONTRACT_TRANSITIONED', 'Contract Transitioned'),
        ('CONTRACT_DELETED', 'Contract Deleted'),
        ('VEHICLE_STATUS_CHANGED', 'Vehicle Status Changed'),
        ('PAYMENT_PAID', 'Payment Paid'),
        ('PAYMENT_FAILED', 'Payment Failed'),
        ('PAYMENTS_GENERATED', 'Payments Generated'),
        ('PAYMENTS_OVERDUE', 'Payments Marked Overdue'),
        ('VEHICLE_DOCUMENT_UPLOADED', 'Vehicle Document Uploaded'),
        ('VEHICLE_DOCUMENT_REVIEWED', 'Vehicle Document Reviewed'),
        ('MAINTENANCE_SCHEDULED', 'Maintenance Scheduled'),
        ('MAINTENANCE_UPDATED', 'Maintenance Updated'),
        ('VEHICLE_COST_RECORDED', 'Vehicle Cost Recorded'),
        ('SETTINGS_UPDATED', 'Settings Updated'),
    ]

    action_type = models.CharField(max_length=50, choices=ACTION_TYPE_CHOICES)
    user = models.ForeignKey(
        CustomUser,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs'
    )
    entity_type = models.CharField(max_length=50)
    entity_id = models.CharField(max_length=50)

    description = models.TextField(blank=True, default='')
    metadata = models.JSONField(
        null=True,
        blank=True,
        help_text="Additional data related to the action"
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id'], name='audit_entity_idx'),
            models.Index(fields=['user', '-created_at'], name='audit_user_created_idx'),
            models.Index(fields=['action_type'], name='audit_action_idx'),
        ]

    def __str__(self):
        return f"{self.action_type} {self.entity_type}#{self.entity_id} at {self.created_at}"

    @classmethod
    def record(cls, action_type, entity, user=None, description='', **metadata):
        """Write an audit row for a model instance."""
        if user is not None and not getattr(user, 'is_authenticated', False):
            user = None
        return cls.objects.create(
            action_type=action_type,
            user=user,
            entity_type=entity._meta.model_name,
            entity_id=str(entity.pk),
            description=description,
            metadata=metadata or None,
        )
