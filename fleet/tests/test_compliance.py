from datetime import date

import pytest

from drivers.models import DocumentStatus
from fleet import compliance
from fleet.models import VehicleDocument, VehicleDocumentType, VehicleStatus, VehicleType
from home.exceptions import InvalidStateError, ValidationError
from home.models import AuditLog

CAR_DOCUMENTS = (VehicleDocumentType.LICENSE, VehicleDocumentType.ROADWORTHY, VehicleDocumentType.INSURANCE)


def approve_documents(vehicle, types=CAR_DOCUMENTS, expires_on=None):
    for doc_type in types:
        document = compliance.upload_vehicle_document(
            vehicle.pk, doc_type, f"fleet/{vehicle.pk}/{doc_type.lower()}.pdf", expires_on=expires_on
        )
        compliance.review_vehicle_document(document.pk, DocumentStatus.APPROVED)


def states(readiness):
    return {step['id']: step['state'] for step in readiness['checklist']}


@pytest.mark.django_db
class TestVehicleDocuments:

    def test_upload_supersedes_current_document(self, vehicle):
        first = compliance.upload_vehicle_document(vehicle.pk, VehicleDocumentType.INSURANCE, "fleet/ins-1.pdf")
        second = compliance.upload_vehicle_document(vehicle.pk, VehicleDocumentType.INSURANCE, "fleet/ins-2.pdf")

        first.refresh_from_db()
        assert first.superseded_at is not None
        assert second.status == DocumentStatus.PENDING
        assert VehicleDocument.objects.filter(vehicle=vehicle, superseded_at__isnull=True).count() == 1
        assert AuditLog.objects.filter(action_type='VEHICLE_DOCUMENT_UPLOADED').count() == 2

    def test_superseded_document_cannot_be_reviewed(self, vehicle):
        first = compliance.upload_vehicle_document(vehicle.pk, VehicleDocumentType.LICENSE, "fleet/lic-1.pdf")
        compliance.upload_vehicle_document(vehicle.pk, VehicleDocumentType.LICENSE, "fleet/lic-2.pdf")

        with pytest.raises(InvalidStateError):
            compliance.review_vehicle_document(first.pk, DocumentStatus.APPROVED)

    def test_reviewed_document_cannot_be_reviewed_again(self, vehicle, admin_user):
        document = compliance.upload_vehicle_document(vehicle.pk, VehicleDocumentType.LICENSE, "fleet/lic.pdf")
        reviewed = compliance.review_vehicle_document(document.pk, DocumentStatus.REJECTED, "Blurry", user=admin_user)

        assert reviewed.status == DocumentStatus.REJECTED
        assert reviewed.reviewed_by == admin_user
        with pytest.raises(InvalidStateError):
            compliance.review_vehicle_document(document.pk, DocumentStatus.APPROVED)

    def test_expiry_before_issue_is_rejected(self, vehicle):
        with pytest.raises(ValidationError) as exc:
            compliance.upload_vehicle_document(
                vehicle.pk, VehicleDocumentType.INSURANCE, "fleet/ins.pdf",
                issued_on=date(2024, 6, 1), expires_on=date(2024, 1, 1),
            )
        assert 'expires_on' in exc.value.errors

    def test_missing_documents_depend_on_vehicle_type(self, make_vehicle):
        bike = make_vehicle(vehicle_type=VehicleType.BIKE)
        approve_documents(bike, types=(VehicleDocumentType.LICENSE,))

        assert compliance.missing_documents(bike) == ['INSURANCE']

    def test_expired_document_counts_as_missing(self, vehicle):
        approve_documents(vehicle, expires_on=date(2024, 6, 30))

        assert compliance.missing_documents(vehicle, today=date(2024, 6, 30)) == []
        assert compliance.missing_documents(vehicle, today=date(2024, 7, 1)) == ['LICENSE', 'ROADWORTHY', 'INSURANCE']


@pytest.mark.django_db
class TestVehicleReadiness:

    def test_new_vehicle_needs_documents_first(self, vehicle):
        readiness = compliance.vehicle_readiness(vehicle.pk)

        assert readiness['ready_for_rental'] is False
        assert readiness['missing_documents'] == ['LICENSE', 'ROADWORTHY', 'INSURANCE']
        assert states(readiness)['compliance-docs'] == 'ACTION'
        assert states(readiness)['contract-created'] == 'LOCKED'

    def test_compliant_vehicle_is_ready_for_a_contract(self, vehicle):
        approve_documents(vehicle)
        readiness = compliance.vehicle_readiness(vehicle.pk)

        assert readiness['ready_for_rental'] is True
        assert states(readiness)['contract-created'] == 'ACTION'
        assert readiness['contract'] is None

    def test_vehicle_out_of_service_cannot_take_a_contract(self, make_vehicle):
        vehicle = make_vehicle(status=VehicleStatus.MAINTENANCE)
        approve_documents(vehicle)
        readiness = compliance.vehicle_readiness(vehicle.pk)

        assert readiness['ready_for_rental'] is False
        contract_step = readiness['checklist'][2]
        assert contract_step['state'] == 'LOCKED'
        assert contract_step['hint'] == "Vehicle is MAINTENANCE"

    def test_sent_contract_waits_for_driver(self, make_contract, verified_driver, vehicle):
        approve_documents(vehicle)
        contract = make_contract(verified_driver, vehicle, stage='SENT_TO_DRIVER')
        readiness = compliance.vehicle_readiness(vehicle.pk)

        assert readiness['contract'] == {'id': contract.pk, 'status': 'SENT_TO_DRIVER'}
        assert states(readiness)['sent-to-driver'] == 'DONE'
        assert states(readiness)['driver-signed'] == 'WAITING'
        assert states(readiness)['contract-activated'] == 'LOCKED'

    def test_active_contract_completes_the_checklist(self, active_contract, vehicle):
        approve_documents(vehicle)
        readiness = compliance.vehicle_readiness(vehicle.pk)

        assert set(states(readiness).values()) == {'DONE'}
        assert readiness['ready_for_rental'] is False
