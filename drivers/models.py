from django.conf import settings
from django.db import models
from django.db.models import Q


class VerificationStatus(models.TextChoices):
    UNVERIFIED = 'UNVERIFIED', 'Unverified'
    IN_REVIEW = 'IN_REVIEW', 'In Review'
    VERIFIED = 'VERIFIED', 'Verified'
    REJECTED = 'REJECTED', 'Rejected'


class VerificationEvent(models.TextChoices):
    SUBMIT = 'submit', 'Submit for review'
    VERIFY = 'verify', 'Verify'
    REJECT = 'reject', 'Reject'
    REOPEN = 'reopen', 'Reopen after new upload'


# (from, event) -> to. Anything missing is an invalid transition.
VERIFICATION_TRANSITIONS = {
    (VerificationStatus.UNVERIFIED, VerificationEvent.SUBMIT): VerificationStatus.IN_REVIEW,
    (VerificationStatus.REJECTED, VerificationEvent.SUBMIT): VerificationStatus.IN_REVIEW,
    (VerificationStatus.UNVERIFIED, VerificationEvent.VERIFY): VerificationStatus.VERIFIED,
    (VerificationStatus.IN_REVIEW, VerificationEvent.VERIFY): VerificationStatus.VERIFIED,
    (VerificationStatus.UNVERIFIED, VerificationEvent.REJECT): VerificationStatus.REJECTED,
    (VerificationStatus.IN_REVIEW, VerificationEvent.REJECT): VerificationStatus.REJECTED,
    (VerificationStatus.VERIFIED, VerificationEvent.REOPEN): VerificationStatus.IN_REVIEW,
}


class DocumentType(models.TextChoices):
    CERTIFIED_ID = 'CERTIFIED_ID', 'Certified ID'
    PROOF_OF_RESIDENCE = 'PROOF_OF_RESIDENCE', 'Proof of Residence'
    DRIVERS_LICENSE = 'DRIVERS_LICENSE', "Driver's License"
    DRIVER_PHOTO = 'DRIVER_PHOTO', 'Driver Photo'
    PROOF_OF_BANKING = 'PROOF_OF_BANKING', 'Proof of Banking'
    OTHER = 'OTHER', 'Other'


class DocumentStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    APPROVED = 'APPROVED', 'Approved'
    REJECTED = 'REJECTED', 'Rejected'


# ========================================
# DRIVER PROFILE MODEL
# ========================================

class DriverProfile(models.Model):
    """
    KYC record of a driver account and the state of its verification.

    ``completion_percent`` is derived by drivers.verification and never
    edited directly. A VERIFIED profile always has completion 100 and every
    required document approved; any change that breaks this reopens review.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='driver_profile'
    )

    # KYC fields
    id_number = models.CharField(max_length=20, blank=True, default='')
    address_line1 = models.CharField(max_length=255, blank=True, default='')
    address_line2 = models.CharField(max_length=255, blank=True, default='')
    city = models.CharField(max_length=100, blank=True, default='')
    province = models.CharField(max_length=100, blank=True, default='')
    postal_code = models.CharField(max_length=10, blank=True, default='')

    # Verification
    verification_status = models.CharField(
        max_length=20,
        choices=VerificationStatus.choices,
        default=VerificationStatus.UNVERIFIED,
        db_index=True
    )
    completion_percent = models.PositiveSmallIntegerField(default=0)
    verification_note = models.TextField(blank=True, default='')
    submitted_at = models.DateTimeField(null=True, blank=True)
    verified_at = models.DateTimeField(null=True, blank=True)

    # Last location check-in
    last_lat = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    last_lng = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    last_accuracy = models.FloatField(null=True, blank=True)
    last_location_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'driver_profiles'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user.get_full_name()} [{self.verification_status}]"

    @property
    def is_verified(self):
        return self.verification_status == VerificationStatus.VERIFIED

    def profile_field_values(self):
        """Values of the configurable required profile fields."""
        user = self.user
        full_name = f"{user.first_name} {user.last_name}".strip()
        address = all([self.address_line1, self.city, self.province])
        return {
            'fullName': full_name,
            'phone': user.phone or '',
            'idNumber': self.id_number,
            'address': address,
        }

    def current_documents(self):
        return self.documents.filter(superseded_at__isnull=True)


# ========================================
# DRIVER DOCUMENT MODEL
# ========================================

class DriverDocument(models.Model):
    """
    An uploaded KYC document. Only the file reference is kept here; the bytes
    live in external storage. A new upload of the same type supersedes the
    current document instead of editing it.
    """

    profile = models.ForeignKey(
        DriverProfile,
        on_delete=models.CASCADE,
        related_name='documents'
    )
    type = models.CharField(max_length=30, choices=DocumentType.choices)
    status = models.CharField(
        max_length=20,
        choices=DocumentStatus.choices,
        default=DocumentStatus.PENDING
    )
    file_reference = models.CharField(max_length=500)
    original_name = models.CharField(max_length=255, blank=True, default='')
    review_note = models.TextField(blank=True, default='')

    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reviewed_documents'
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    superseded_at = models.DateTimeField(null=True, blank=True)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'driver_documents'
        ordering = ['uploaded_at', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['profile', 'type'],
                condition=Q(superseded_at__isnull=True),
                name='unique_current_document_per_type',
            ),
        ]

    def __str__(self):
        return f"{self.type} ({self.status}) for profile {self.profile_id}"

    @property
    def is_current(self):
        return self.superseded_at is None
