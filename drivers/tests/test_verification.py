from unittest.mock import patch

import pytest
from django.contrib.auth import get_user_model

from drivers import verification
from drivers.models import DocumentStatus, DocumentType, DriverDocument, DriverProfile, VerificationStatus
from home.exceptions import (
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from home.models import AppSetting
from notifications.models import Notification

User = get_user_model()

PROFILE_FIELDS = {
    'first_name': "Thabo",
    'last_name': "Mokoena",
    'phone': "+27821234567",
    'id_number': "9001015800087",
    'address_line1': "12 Long Street",
    'city': "Cape Town",
    'province': "Western Cape",
}

REQUIRED = [
    DocumentType.CERTIFIED_ID,
    DocumentType.PROOF_OF_RESIDENCE,
    DocumentType.DRIVERS_LICENSE,
    DocumentType.DRIVER_PHOTO,
]


def upload_all(profile):
    return [
        verification.upload_document(profile.pk, doc_type, f"kyc/{profile.pk}/{doc_type}.pdf")
        for doc_type in REQUIRED
    ]


@pytest.mark.django_db
class TestDriverProfileSignal:

    def test_profile_created_for_driver_accounts_only(self, admin_user):
        driver = User.objects.create_user(email="d@example.com", password="pass12345", role=User.DRIVER)
        assert DriverProfile.objects.filter(user=driver).exists()
        assert not DriverProfile.objects.filter(user=admin_user).exists()


@pytest.mark.django_db
class TestCompletion:

    def test_three_of_four_documents_is_below_100_and_fourth_completes(self, driver_profile, admin_user):
        verification.update_profile(driver_profile.pk, PROFILE_FIELDS)
        verification.record_location(driver_profile.pk, -33.92487, 18.424055, accuracy=12.5)
        documents = upload_all(driver_profile)

        for document in documents[:3]:
            profile = verification.record_document_review(document.pk, DocumentStatus.APPROVED, user=admin_user)
        assert profile.completion_percent < 100

        profile = verification.record_document_review(documents[3].pk, DocumentStatus.APPROVED, user=admin_user)
        assert profile.completion_percent == 100

        profile = verification.finalize_verification(driver_profile.pk, VerificationStatus.VERIFIED, user=admin_user)
        assert profile.verification_status == VerificationStatus.VERIFIED
        assert profile.verified_at is not None

    def test_buckets(self, driver_profile):
        verification.update_profile(driver_profile.pk, {'first_name': "Thabo", 'last_name': "Mokoena"})
        completion = verification.compute_completion(DriverProfile.objects.get(pk=driver_profile.pk))

        assert completion['buckets']['profile'] == {'done': 1, 'total': 4}
        assert completion['buckets']['documents'] == {'done': 0, 'total': 4}
        assert completion['percent'] == 10
        assert completion['weights_warning'] is None

    def test_location_not_required(self, driver_profile):
        AppSetting.objects.create(key='onboarding.locationRequired', value=False)
        assert verification.compute_completion(driver_profile)['percent'] == 20

    def test_inconsistent_weights_are_reported(self, driver_profile):
        AppSetting.objects.create(
            key='onboarding.progressWeights', value={'profile': 50, 'documents': 40, 'location': 20}
        )
        completion = verification.compute_completion(driver_profile)
        assert completion['weights_warning'] == "Progress weights sum to 110, expected 100"

    def test_completion_is_capped(self, make_driver):
        AppSetting.objects.create(
            key='onboarding.progressWeights', value={'profile': 60, 'documents': 40, 'location': 20}
        )
        profile = make_driver('complete')
        assert verification.compute_completion(profile)['percent'] == 100


@pytest.mark.django_db
class TestDocuments:

    def test_upload_supersedes_current_document(self, driver_profile):
        first = verification.upload_document(driver_profile.pk, DocumentType.CERTIFIED_ID, "kyc/a.pdf")
        second = verification.upload_document(driver_profile.pk, DocumentType.CERTIFIED_ID, "kyc/b.pdf")

        first.refresh_from_db()
        assert first.superseded_at is not None
        assert list(driver_profile.current_documents()) == [second]

        with pytest.raises(InvalidStateError):
            verification.record_document_review(first.pk, DocumentStatus.APPROVED)

    def test_review_requires_pending(self, driver_profile):
        document = verification.upload_document(driver_profile.pk, DocumentType.DRIVER_PHOTO, "kyc/p.jpg")
        verification.record_document_review(document.pk, DocumentStatus.REJECTED, note="Blurry")
        with pytest.raises(InvalidStateError):
            verification.record_document_review(document.pk, DocumentStatus.APPROVED)

    def test_review_missing_document(self, db):
        with pytest.raises(NotFoundError):
            verification.record_document_review(999999, DocumentStatus.APPROVED)

    def test_review_bad_decision(self, driver_profile):
        document = verification.upload_document(driver_profile.pk, DocumentType.DRIVER_PHOTO, "kyc/p.jpg")
        with pytest.raises(ValidationError):
            verification.record_document_review(document.pk, 'MAYBE')

    def test_review_notifies_driver(self, driver_profile):
        document = verification.upload_document(driver_profile.pk, DocumentType.DRIVER_PHOTO, "kyc/p.jpg")
        verification.record_document_review(document.pk, DocumentStatus.REJECTED, note="Blurry")
        notification = Notification.objects.get(recipient=driver_profile.user)
        assert notification.event_type == 'DocumentRejected'
        assert notification.payload['note'] == "Blurry"

    def test_new_upload_reopens_verified_driver(self, verified_driver):
        verification.upload_document(verified_driver.pk, DocumentType.CERTIFIED_ID, "kyc/new-id.pdf")
        verified_driver.refresh_from_db()
        assert verified_driver.verification_status == VerificationStatus.IN_REVIEW
        assert verified_driver.completion_percent < 100

    def test_unknown_document_type(self, driver_profile):
        with pytest.raises(ValidationError):
            verification.upload_document(driver_profile.pk, 'PASSPORT_SELFIE', "kyc/x.pdf")


@pytest.mark.django_db
class TestSubmitForReview:

    def test_below_threshold(self, driver_profile):
        with pytest.raises(PreconditionError) as exc:
            verification.submit_for_review(driver_profile.pk)
        assert exc.value.precondition == 'completion_below_threshold'

    def test_submits_at_threshold(self, driver_profile):
        verification.update_profile(driver_profile.pk, PROFILE_FIELDS)
        verification.record_location(driver_profile.pk, -33.9, 18.4)
        profile = verification.submit_for_review(driver_profile.pk)
        assert profile.completion_percent == 60
        assert profile.verification_status == VerificationStatus.IN_REVIEW
        assert profile.submitted_at is not None

    def test_cannot_submit_twice(self, driver_profile):
        verification.update_profile(driver_profile.pk, PROFILE_FIELDS)
        verification.record_location(driver_profile.pk, -33.9, 18.4)
        verification.submit_for_review(driver_profile.pk)
        with pytest.raises(InvalidTransitionError):
            verification.submit_for_review(driver_profile.pk)


@pytest.mark.django_db
class TestFinalizeVerification:

    @pytest.mark.parametrize('percent', range(100))
    def test_verified_requires_full_completion(self, make_driver, percent):
        profile = make_driver('complete')
        completion = {'percent': percent, 'buckets': {}, 'weights': {}, 'weights_warning': None}
        with patch('drivers.verification.compute_completion', return_value=completion):
            with pytest.raises(PreconditionError) as exc:
                verification.finalize_verification(profile.pk, VerificationStatus.VERIFIED)
        assert exc.value.precondition == 'completion_incomplete'
        profile.refresh_from_db()
        assert profile.verification_status == VerificationStatus.UNVERIFIED

    def test_pending_document_blocks_verified(self, make_driver):
        profile = make_driver('complete')
        DriverDocument.objects.create(profile=profile, type=DocumentType.OTHER, file_reference="kyc/other.pdf")
        with pytest.raises(PreconditionError) as exc:
            verification.finalize_verification(profile.pk, VerificationStatus.VERIFIED)
        assert exc.value.precondition == 'documents_pending_review'

    def test_rejected_document_blocks_verified(self, make_driver):
        profile = make_driver('complete')
        DriverDocument.objects.create(
            profile=profile, type=DocumentType.OTHER, file_reference="kyc/other.pdf",
            status=DocumentStatus.REJECTED,
        )
        with pytest.raises(PreconditionError) as exc:
            verification.finalize_verification(profile.pk, VerificationStatus.VERIFIED)
        assert exc.value.precondition == 'documents_rejected'

    def test_inconsistent_weights_block_verified(self, make_driver):
        profile = make_driver('complete')
        AppSetting.objects.create(
            key='onboarding.progressWeights', value={'profile': 60, 'documents': 40, 'location': 20}
        )
        with pytest.raises(PreconditionError) as exc:
            verification.finalize_verification(profile.pk, VerificationStatus.VERIFIED)
        assert exc.value.precondition == 'progress_weights_inconsistent'

    def test_reject_is_final_until_resubmission(self, make_driver):
        profile = make_driver('complete')
        profile = verification.finalize_verification(profile.pk, VerificationStatus.REJECTED, note="ID expired")
        assert profile.verification_status == VerificationStatus.REJECTED
        assert profile.verification_note == "ID expired"

        with pytest.raises(InvalidTransitionError):
            verification.finalize_verification(profile.pk, VerificationStatus.VERIFIED)

        profile = verification.submit_for_review(profile.pk)
        assert profile.verification_status == VerificationStatus.IN_REVIEW

    def test_already_verified(self, verified_driver):
        with pytest.raises(InvalidTransitionError):
            verification.finalize_verification(verified_driver.pk, VerificationStatus.VERIFIED)

    def test_finalize_notifies_driver(self, make_driver):
        profile = make_driver('complete')
        verification.finalize_verification(profile.pk, VerificationStatus.VERIFIED)
        notification = Notification.objects.get(recipient=profile.user, event_type='VerificationFinalized')
        assert notification.payload['status'] == 'VERIFIED'
