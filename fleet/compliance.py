"""
Vehicle compliance documents and the rental readiness checklist.

Documents follow the driver document flow: upload supersedes the current
document of the same type and starts PENDING, an admin approves or rejects
it. A vehicle's compliance is complete when every required type has a
current, APPROVED, unexpired document.

The readiness checklist is read-only: it reports where a vehicle stands on
the way to an active rental and never changes state.
"""

import logging

from django.db import transaction
from django.utils import timezone

from drivers.models import DocumentStatus
from home.exceptions import InvalidStateError, NotFoundError, ValidationError
from home.models import AuditLog
from .availability import get_vehicle
from .models import (
    REQUIRED_VEHICLE_DOCUMENTS,
    VehicleDocument,
    VehicleDocumentType,
    VehicleStatus,
)

logger = logging.getLogger(__name__)

DONE = 'DONE'
ACTION = 'ACTION'
WAITING = 'WAITING'
LOCKED = 'LOCKED'


def upload_vehicle_document(vehicle_id, doc_type, file_reference, title='', original_name='',
                            issued_on=None, expires_on=None, user=None):
    """Record a new PENDING compliance document, superseding the current one of that type."""
    errors = {}
    if doc_type not in VehicleDocumentType.values:
        errors['type'] = f"Unknown document type {doc_type}"
    if not file_reference:
        errors['file_reference'] = "File reference is required"
    if issued_on and expires_on and expires_on < issued_on:
        errors['expires_on'] = "Expiry date cannot be before the issue date"
    if errors:
        raise ValidationError(errors)

    with transaction.atomic():
        vehicle = get_vehicle(vehicle_id, lock=True)
        superseded = VehicleDocument.objects.filter(
            vehicle=vehicle, type=doc_type, superseded_at__isnull=True
        ).update(superseded_at=timezone.now())

        document = VehicleDocument.objects.create(
            vehicle=vehicle,
            type=doc_type,
            title=title or '',
            file_reference=file_reference,
            original_name=original_name or '',
            issued_on=issued_on,
            expires_on=expires_on,
        )
        AuditLog.record(
            'VEHICLE_DOCUMENT_UPLOADED', document, user=user,
            vehicle_id=vehicle.pk, type=doc_type, superseded=superseded,
        )

    logger.info(f"[Compliance] Vehicle {vehicle.pk} uploaded {doc_type} (document {document.pk})")
    document.warnings = []
    return document


def review_vehicle_document(document_id, decision, note='', user=None):
    """
    Approve or reject one PENDING, current vehicle document.

    Raises:
        ValidationError: decision is not APPROVED or REJECTED
        NotFoundError: the document does not exist
        InvalidStateError: the document is not PENDING or was superseded
    """
    if decision not in (DocumentStatus.APPROVED, DocumentStatus.REJECTED):
        raise ValidationError({'decision': "Decision must be APPROVED or REJECTED"})

    with transaction.atomic():
        try:
            document = VehicleDocument.objects.select_for_update().get(pk=document_id)
        except VehicleDocument.DoesNotExist:
            raise NotFoundError('VehicleDocument', document_id)

        if document.status != DocumentStatus.PENDING:
            raise InvalidStateError('VehicleDocument', document.status, 'review')
        if document.superseded_at is not None:
            raise InvalidStateError(
                'VehicleDocument', document.status, 'review',
                reason=f"Document {document.pk} was superseded by a newer upload",
            )

        document.status = decision
        document.review_note = note or ''
        document.reviewed_by = user if user is not None and user.is_authenticated else None
        document.reviewed_at = timezone.now()
        document.save(update_fields=['status', 'review_note', 'reviewed_by', 'reviewed_at'])
        AuditLog.record('VEHICLE_DOCUMENT_REVIEWED', document, user=user, decision=decision, note=note)

    logger.info(f"[Compliance] Vehicle document {document.pk} {decision}")
    document.warnings = []
    return document


def missing_documents(vehicle, today=None):
    """Required document types without a current, APPROVED, unexpired document."""
    today = today or timezone.localdate()
    required = REQUIRED_VEHICLE_DOCUMENTS.get(vehicle.vehicle_type, ())
    valid = {
        document.type
        for document in vehicle.documents.filter(superseded_at__isnull=True, status=DocumentStatus.APPROVED)
        if not document.is_expired(today)
    }
    return [str(doc_type) for doc_type in required if doc_type not in valid]


def step_state(completed, can_do_now, waiting=False):
    if completed:
        return DONE
    if not can_do_now:
        return LOCKED
    if waiting:
        return WAITING
    return ACTION


def step(step_id, label, completed, state, hint=None):
    return {'id': step_id, 'label': label, 'completed': completed, 'state': state, 'hint': hint}


def vehicle_readiness(vehicle_id, today=None):
    """
    Ordered checklist from vehicle registration to an active rental, with the
    latest open contract (if any). Each step is DONE, ACTION (the operator can
    act now), WAITING (someone else has to act) or LOCKED (an earlier step is
    outstanding).
    """
    from contracts.models import ContractStatus, NON_TERMINAL_STATUSES

    today = today or timezone.localdate()
    vehicle = get_vehicle(vehicle_id)
    missing = missing_documents(vehicle, today)
    docs_done = not missing
    contract = (
        vehicle.contracts.filter(status__in=NON_TERMINAL_STATUSES)
        .order_by('-created_at')
        .first()
    )
    status = contract.status if contract else None

    sent = status in (ContractStatus.SENT_TO_DRIVER, ContractStatus.SIGNED_BY_DRIVER,
                      ContractStatus.ACTIVE, ContractStatus.PAUSED)
    signed = status in (ContractStatus.SIGNED_BY_DRIVER, ContractStatus.ACTIVE, ContractStatus.PAUSED)
    activated = status in (ContractStatus.ACTIVE, ContractStatus.PAUSED)
    assigned = vehicle.status == VehicleStatus.ASSIGNED
    in_service = vehicle.status in (VehicleStatus.AVAILABLE, VehicleStatus.ASSIGNED)

    contract_hint = None
    if contract is None and not docs_done:
        contract_hint = "Complete compliance documents first"
    elif contract is None and not in_service:
        contract_hint = f"Vehicle is {vehicle.status}"

    checklist = [
        step('vehicle-details', "Vehicle details captured", True, DONE),
        step(
            'compliance-docs', "Vehicle compliance documents approved",
            docs_done, step_state(docs_done, True),
            hint=None if docs_done else f"Missing: {', '.join(missing)}",
        ),
        step(
            'contract-created', "Contract created for a verified driver",
            contract is not None, step_state(contract is not None, docs_done and in_service),
            hint=contract_hint,
        ),
        step(
            'sent-to-driver', "Sent to driver",
            sent, step_state(sent, status == ContractStatus.DRAFT),
            hint=None if sent or contract else "Create a contract first",
        ),
        step(
            'driver-signed', "Driver signed",
            signed, step_state(signed, status == ContractStatus.SENT_TO_DRIVER, waiting=True),
            hint="Waiting for the driver to sign" if status == ContractStatus.SENT_TO_DRIVER else None,
        ),
        step(
            'contract-activated', "Contract activated",
            activated, step_state(activated, status == ContractStatus.SIGNED_BY_DRIVER),
        ),
        step(
            'vehicle-assigned', "Vehicle assigned",
            assigned, step_state(assigned, activated),
        ),
    ]

    return {
        'vehicle_id': vehicle.pk,
        'ready_for_rental': docs_done and in_service and contract is None,
        'missing_documents': missing,
        'compliance_warnings': [
            {'field': field, 'expired_on': expiry} for field, expiry in vehicle.compliance_warnings(today)
        ],
        'contract': {'id': contract.pk, 'status': contract.status} if contract else None,
        'checklist': checklist,
    }
