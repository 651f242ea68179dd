"""
Driver verification engine.

Tracks document approvals, derives the weighted completion percentage and
drives the verification status through VERIFICATION_TRANSITIONS.

Provides:
- compute_completion: weighted progress over profile, documents and location
- update_profile / upload_document / record_location: driver self-service
- record_document_review: admin approves or rejects one document
- submit_for_review: explicit (re)submission once the threshold is met
- finalize_verification: admin decision VERIFIED / REJECTED
"""

import logging
import math
from fractions import Fraction

from django.db import transaction
from django.utils import timezone

from home import config
from home.exceptions import (
    NotFoundError,
    InvalidTransitionError,
    InvalidStateError,
    PreconditionError,
    ValidationError,
)
from home.models import AuditLog
from notifications.dispatch import notify
from notifications.events import EventType

from .models import (
    DriverProfile,
    DriverDocument,
    DocumentStatus,
    DocumentType,
    VerificationEvent,
    VerificationStatus,
    VERIFICATION_TRANSITIONS,
)

logger = logging.getLogger(__name__)

PROFILE_UPDATE_FIELDS = (
    'first_name',
    'last_name',
    'phone',
    'id_number',
    'address_line1',
    'address_line2',
    'city',
    'province',
    'postal_code',
)
USER_FIELDS = ('first_name', 'last_name', 'phone')


# ========================================
# LOOKUPS
# ========================================

def get_profile(driver_id, lock=False):
    queryset = DriverProfile.objects.select_related('user')
    if lock:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=driver_id)
    except DriverProfile.DoesNotExist:
        raise NotFoundError('DriverProfile', driver_id)


def next_status(profile, event):
    current = VerificationStatus(profile.verification_status)
    event = VerificationEvent(event)
    to_state = VERIFICATION_TRANSITIONS.get((current, event))
    if to_state is None:
        raise InvalidTransitionError('DriverProfile', current.value, event.value)
    return to_state


# ========================================
# COMPLETION
# ========================================

def approved_required_documents(profile, required=None):
    required = required if required is not None else config.required_documents()
    approved = set(
        profile.current_documents()
        .filter(status=DocumentStatus.APPROVED, type__in=required)
        .values_list('type', flat=True)
    )
    return [doc_type for doc_type in required if doc_type in approved]


def compute_completion(profile):
    """
    Weighted completion of a driver profile.

    Each bucket contributes ``weight * fraction`` where fraction is:
    - profile: filled required fields / required fields
    - documents: approved required documents / required documents
    - location: 1 when a check-in exists or location is not required

    The sum is floored so 100 is only reached when every bucket is complete,
    and capped at 100. Inconsistent weights are reported, not rejected.
    """
    weights = config.progress_weights()
    weights_warning = config.progress_weights_warning(weights)
    if weights_warning:
        logger.warning(f"[Verification] {weights_warning}")

    required_fields = config.required_profile_fields()
    values = profile.profile_field_values()
    filled = sum(1 for field in required_fields if values.get(field))
    profile_fraction = Fraction(filled, len(required_fields)) if required_fields else Fraction(1)

    required_docs = config.required_documents()
    approved = approved_required_documents(profile, required_docs)
    documents_fraction = Fraction(len(approved), len(required_docs)) if required_docs else Fraction(1)

    has_location = profile.last_location_at is not None or not config.location_required()
    location_fraction = Fraction(1 if has_location else 0)

    total = (
        weights['profile'] * profile_fraction
        + weights['documents'] * documents_fraction
        + weights['location'] * location_fraction
    )
    percent = min(100, math.floor(total))

    return {
        'percent': percent,
        'buckets': {
            'profile': {'done': filled, 'total': len(required_fields)},
            'documents': {'done': len(approved), 'total': len(required_docs)},
            'location': {'done': int(has_location), 'total': 1},
        },
        'weights': weights,
        'weights_warning': weights_warning,
    }


def verified_invariant_holds(profile, completion=None):
    completion = completion or compute_completion(profile)
    required = config.required_documents()
    return (
        completion['percent'] == 100
        and len(approved_required_documents(profile, required)) == len(required)
    )


def recompute_completion(profile):
    """
    Store the fresh completion percentage. A VERIFIED profile that no longer
    meets the verified invariant is reopened to IN_REVIEW.
    """
    completion = compute_completion(profile)
    profile.completion_percent = completion['percent']
    update_fields = ['completion_percent', 'updated_at']

    if profile.is_verified and not verified_invariant_holds(profile, completion):
        profile.verification_status = next_status(profile, VerificationEvent.REOPEN)
        profile.verified_at = None
        update_fields += ['verification_status', 'verified_at']
        logger.info(f"[Verification] Driver {profile.pk} reopened for review")

    profile.save(update_fields=update_fields)
    profile.weights_warning = completion['weights_warning']
    return completion


# ========================================
# DRIVER SELF-SERVICE
# ========================================

def update_profile(driver_id, data, user=None):
    """Update KYC fields (and name/phone on the user) then recompute completion."""
    unknown = set(data) - set(PROFILE_UPDATE_FIELDS)
    if unknown:
        raise ValidationError({field: "Unknown profile field" for field in sorted(unknown)})

    with transaction.atomic():
        profile = get_profile(driver_id, lock=True)
        driver = profile.user

        user_changes = [f for f in USER_FIELDS if f in data]
        for field in user_changes:
            setattr(driver, field, data[field] or ('' if field != 'phone' else None))
        if user_changes:
            driver.save(update_fields=user_changes + ['updated_at'])

        profile_changes = [f for f in PROFILE_UPDATE_FIELDS if f in data and f not in USER_FIELDS]
        for field in profile_changes:
            setattr(profile, field, data[field] or '')
        if profile_changes:
            profile.save(update_fields=profile_changes + ['updated_at'])

        recompute_completion(profile)
        AuditLog.record(
            'PROFILE_UPDATED', profile, user=user,
            fields=sorted(data), completion=profile.completion_percent,
        )

    logger.info(f"[Verification] Driver {profile.pk} profile updated ({profile.completion_percent}%)")
    profile.warnings = []
    return profile


def upload_document(driver_id, doc_type, file_reference, original_name='', user=None):
    """
    Record a new PENDING document. The previous current document of the same
    type is superseded, never edited.
    """
    if doc_type not in DocumentType.values:
        raise ValidationError({'type': f"Unknown document type {doc_type}"})
    if not file_reference:
        raise ValidationError({'file_reference': "File reference is required"})

    with transaction.atomic():
        profile = get_profile(driver_id, lock=True)
        now = timezone.now()

        superseded = DriverDocument.objects.filter(
            profile=profile, type=doc_type, superseded_at__isnull=True
        ).update(superseded_at=now)

        document = DriverDocument.objects.create(
            profile=profile,
            type=doc_type,
            file_reference=file_reference,
            original_name=original_name or '',
        )
        recompute_completion(profile)
        AuditLog.record(
            'DOCUMENT_UPLOADED', document, user=user,
            driver_id=profile.pk, type=doc_type, superseded=superseded,
        )

    logger.info(f"[Verification] Driver {profile.pk} uploaded {doc_type} (document {document.pk})")
    document.profile = profile
    document.warnings = []
    return document


def record_location(driver_id, latitude, longitude, accuracy=None, user=None, now=None):
    """Store a location check-in and recompute completion."""
    errors = {}
    if latitude is None or not -90 <= float(latitude) <= 90:
        errors['latitude'] = "Latitude must be between -90 and 90"
    if longitude is None or not -180 <= float(longitude) <= 180:
        errors['longitude'] = "Longitude must be between -180 and 180"
    if accuracy is not None and float(accuracy) <= 0:
        errors['accuracy'] = "Accuracy must be positive"
    if errors:
        raise ValidationError(errors)

    with transaction.atomic():
        profile = get_profile(driver_id, lock=True)
        profile.last_lat = round(float(latitude), 6)
        profile.last_lng = round(float(longitude), 6)
        profile.last_accuracy = accuracy
        profile.last_location_at = now or timezone.now()
        profile.save(update_fields=['last_lat', 'last_lng', 'last_accuracy', 'last_location_at', 'updated_at'])

        recompute_completion(profile)
        AuditLog.record('LOCATION_RECORDED', profile, user=user, accuracy=accuracy)

    logger.info(f"[Verification] Driver {profile.pk} location recorded")
    profile.warnings = []
    return profile


# ========================================
# ADMIN REVIEW
# ========================================

def record_document_review(document_id, decision, note='', user=None):
    """
    Approve or reject one PENDING document and return the driver profile.

    Raises:
        ValidationError: decision is not APPROVED or REJECTED
        NotFoundError: the document does not exist
        InvalidStateError: the document is not PENDING or was superseded
    """
    if decision not in (DocumentStatus.APPROVED, DocumentStatus.REJECTED):
        raise ValidationError({'decision': "Decision must be APPROVED or REJECTED"})

    with transaction.atomic():
        try:
            document = DriverDocument.objects.select_for_update().get(pk=document_id)
        except DriverDocument.DoesNotExist:
            raise NotFoundError('DriverDocument', document_id)

        if document.status != DocumentStatus.PENDING:
            raise InvalidStateError('DriverDocument', document.status, 'review')
        if document.superseded_at is not None:
            raise InvalidStateError(
                'DriverDocument', document.status, 'review',
                reason=f"Document {document.pk} was superseded by a newer upload",
            )

        document.status = decision
        document.review_note = note or ''
        document.reviewed_by = user if user is not None and user.is_authenticated else None
        document.reviewed_at = timezone.now()
        document.save(update_fields=['status', 'review_note', 'reviewed_by', 'reviewed_at'])

        profile = get_profile(document.profile_id, lock=True)
        recompute_completion(profile)
        AuditLog.record(
            'DOCUMENT_REVIEWED', document, user=user,
            decision=decision, note=note, completion=profile.completion_percent,
        )

    logger.info(
        f"[Verification] Document {document.pk} {decision} for driver {profile.pk} "
        f"({profile.completion_percent}%)"
    )
    event = EventType.DOCUMENT_APPROVED if decision == DocumentStatus.APPROVED else EventType.DOCUMENT_REJECTED
    profile.warnings = notify(
        event,
        recipient=profile.user,
        driver_id=profile.pk,
        document_id=document.pk,
        document_type=document.type,
        note=document.review_note,
    )
    return profile


def submit_for_review(driver_id, user=None):
    """
    Explicitly move an UNVERIFIED or REJECTED driver to IN_REVIEW once
    completion reaches the submission threshold.
    """
    with transaction.atomic():
        profile = get_profile(driver_id, lock=True)
        to_state = next_status(profile, VerificationEvent.SUBMIT)

        recompute_completion(profile)
        threshold = config.submission_threshold()
        if profile.completion_percent < threshold:
            logger.warning(
                f"[Verification] Driver {profile.pk} submission refused: "
                f"{profile.completion_percent}% < {threshold}%"
            )
            raise PreconditionError(
                'completion_below_threshold',
                f"Profile is {profile.completion_percent}% complete; {threshold}% is required to submit",
                completion=profile.completion_percent,
                threshold=threshold,
            )

        from_state = profile.verification_status
        profile.verification_status = to_state
        profile.submitted_at = timezone.now()
        profile.save(update_fields=['verification_status', 'submitted_at', 'updated_at'])
        AuditLog.record(
            'VERIFICATION_SUBMITTED', profile, user=user,
            from_state=from_state, to_state=to_state,
        )

    logger.info(f"[Verification] Driver {profile.pk} {from_state} -> {to_state}")
    profile.warnings = []
    return profile


def check_can_verify(profile, completion):
    """Raise PreconditionError naming the first failed guard for VERIFIED."""
    if completion['weights_warning']:
        raise PreconditionError(
            'progress_weights_inconsistent',
            f"Cannot verify while configuration is inconsistent: {completion['weights_warning']}",
        )

    if profile.completion_percent < 100:
        raise PreconditionError(
            'completion_incomplete',
            f"Profile is only {profile.completion_percent}% complete",
            completion=profile.completion_percent,
        )

    current = profile.current_documents()
    if current.filter(status=DocumentStatus.PENDING).exists():
        raise PreconditionError(
            'documents_pending_review',
            "Please review all documents before finalizing",
        )
    if current.filter(status=DocumentStatus.REJECTED).exists():
        raise PreconditionError(
            'documents_rejected',
            "Cannot verify driver with rejected documents",
        )

    required = config.required_documents()
    missing = [t for t in required if t not in approved_required_documents(profile, required)]
    if missing:
        raise PreconditionError(
            'required_documents_missing',
            f"Required documents not approved: {', '.join(missing)}",
            missing=','.join(missing),
        )


def finalize_verification(driver_id, status, note='', user=None):
    """
    Admin decision on a driver: UNVERIFIED/IN_REVIEW -> VERIFIED or REJECTED.

    Raises:
        ValidationError: status is not VERIFIED or REJECTED
        NotFoundError: the driver does not exist
        InvalidTransitionError: the driver is already VERIFIED or REJECTED
        PreconditionError: VERIFIED requested while a guard fails
    """
    events = {
        VerificationStatus.VERIFIED: VerificationEvent.VERIFY,
        VerificationStatus.REJECTED: VerificationEvent.REJECT,
    }
    if status not in events:
        raise ValidationError({'status': "Status must be VERIFIED or REJECTED"})

    with transaction.atomic():
        profile = get_profile(driver_id, lock=True)
        to_state = next_status(profile, events[status])
        completion = recompute_completion(profile)

        if to_state == VerificationStatus.VERIFIED:
            try:
                check_can_verify(profile, completion)
            except PreconditionError as e:
                logger.warning(f"[Verification] Driver {profile.pk} not verified: {e.precondition}")
                raise

        from_state = profile.verification_status
        profile.verification_status = to_state
        profile.verification_note = note or ''
        profile.verified_at = timezone.now() if to_state == VerificationStatus.VERIFIED else None
        profile.save(update_fields=['verification_status', 'verification_note', 'verified_at', 'updated_at'])
        AuditLog.record(
            'VERIFICATION_FINALIZED', profile, user=user,
            from_state=from_state, to_state=to_state, note=note,
        )

    logger.info(f"[Verification] Driver {profile.pk} {from_state} -> {to_state}")
    profile.warnings = notify(
        EventType.VERIFICATION_FINALIZED,
        recipient=profile.user,
        driver_id=profile.pk,
        status=to_state,
        note=profile.verification_note,
    )
    return profile
