"""
Contract lifecycle state machine.

Every operation runs in one transaction: the precondition checks, the
conditional status write, the payment schedule and the vehicle
reconciliation either all commit or none do. Notifications are sent after
commit and their failures come back as ``instance.warnings``.

Provides:
- create_contract: admission of a DRAFT contract
- send_contract / driver_sign / reject_contract / activate_contract
- suspend_contract / resume_contract / end_contract
- delete_draft_contract
- expire_contracts: batch EXPIRED for fixed-term contracts past their end date
"""

import hashlib
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from drivers.models import DriverProfile, VerificationStatus
from finance.schedule import materialize_schedule
from finance.services import void_payments_after
from fleet.availability import get_vehicle, holding_contract_exists, reconcile_vehicle_status
from fleet.models import VehicleStatus
from home import config
from home.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from home.models import AuditLog
from notifications.dispatch import notify
from notifications.events import EventType
from .models import (
    ContractEvent,
    ContractStatus,
    Frequency,
    HOLDING_STATUSES,
    NON_TERMINAL_STATUSES,
    RentalContract,
    TRANSITIONS,
)

logger = logging.getLogger(__name__)

REQUIRED_ACCEPTANCE = ('agreeTerms', 'agreePayments')


# ========================================
# HELPERS
# ========================================

def get_contract(contract_id, lock=False):
    queryset = RentalContract.objects.select_related('driver__user', 'vehicle')
    if lock:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=contract_id)
    except RentalContract.DoesNotExist:
        raise NotFoundError('RentalContract', contract_id)


def next_status(contract, event):
    current = ContractStatus(contract.status)
    event = ContractEvent(event)
    to_state = TRANSITIONS.get((current, event))
    if to_state is None:
        raise InvalidTransitionError('RentalContract', current.value, event.value)
    return to_state


def apply_transition(contract, event, user=None, **fields):
    """
    Conditionally write the new status (guarded by the status we read) plus
    any extra ``fields``, and audit it. Returns the new status.
    """
    from_state = contract.status
    to_state = next_status(contract, event)

    updated = RentalContract.objects.filter(pk=contract.pk, status=from_state).update(
        status=to_state, updated_at=timezone.now(), **fields
    )
    if not updated:
        raise ConflictError(
            f"Contract {contract.pk} changed state concurrently; reload and retry",
            details={'contract_id': contract.pk, 'expected_state': from_state},
        )

    contract.status = to_state
    for name, value in fields.items():
        setattr(contract, name, value)

    AuditLog.record(
        'CONTRACT_TRANSITIONED', contract, user=user,
        event=ContractEvent(event).value, from_state=from_state, to_state=to_state,
    )
    logger.info(f"[Lifecycle] Contract {contract.pk} {from_state} -> {to_state} ({ContractEvent(event).value})")
    return to_state


def validate_terms(fee_amount_cents, frequency, start_date, due_weekday=None,
                   due_day_of_month=None, end_date=None):
    errors = {}

    if not isinstance(fee_amount_cents, int) or isinstance(fee_amount_cents, bool) or fee_amount_cents <= 0:
        errors['fee_amount_cents'] = "Fee must be a positive whole number of cents"

    if frequency not in Frequency.values:
        errors['frequency'] = f"Frequency must be one of {', '.join(Frequency.values)}"
    elif frequency not in config.allowed_frequencies():
        errors['frequency'] = f"Frequency {frequency} is not allowed"

    if frequency == Frequency.WEEKLY:
        if due_weekday is None or not 0 <= due_weekday <= 6:
            errors['due_weekday'] = "Weekly contracts need a due weekday between 0 (Sunday) and 6 (Saturday)"
    elif due_weekday is not None:
        errors['due_weekday'] = "Due weekday is only used by weekly contracts"

    if frequency == Frequency.MONTHLY:
        if due_day_of_month is None or not 1 <= due_day_of_month <= 31:
            errors['due_day_of_month'] = "Monthly contracts need a due day of month between 1 and 31"
    elif due_day_of_month is not None:
        errors['due_day_of_month'] = "Due day of month is only used by monthly contracts"

    if start_date is None:
        errors['start_date'] = "Start date is required"
    elif end_date is not None and end_date < start_date:
        errors['end_date'] = "End date cannot be before the start date"

    if errors:
        raise ValidationError(errors)


def release_vehicle(contract, end_date):
    """Void billing after ``end_date`` and hand the vehicle back."""
    void_payments_after(contract, end_date)
    reconcile_vehicle_status(contract.vehicle_id)


# ========================================
# ADMISSION
# ========================================

def create_contract(driver_id, vehicle_id, fee_amount_cents, frequency, start_date,
                    due_weekday=None, due_day_of_month=None, end_date=None, user=None):
    """
    Admit a new DRAFT contract.

    The vehicle row is locked for the check-and-insert, and the partial unique
    constraints reject a second open contract on the vehicle or driver even
    when two admissions race.

    Raises:
        ValidationError: malformed terms
        NotFoundError: driver or vehicle missing
        PreconditionError: driver_not_verified, vehicle_not_available,
            vehicle_already_contracted, driver_already_contracted
        ConflictError: a concurrent admission claimed the vehicle or driver first
    """
    validate_terms(fee_amount_cents, frequency, start_date, due_weekday, due_day_of_month, end_date)

    try:
        with transaction.atomic():
            vehicle = get_vehicle(vehicle_id, lock=True)
            try:
                driver = DriverProfile.objects.select_for_update().get(pk=driver_id)
            except DriverProfile.DoesNotExist:
                raise NotFoundError('DriverProfile', driver_id)

            if driver.verification_status != VerificationStatus.VERIFIED:
                raise PreconditionError(
                    'driver_not_verified',
                    f"Driver {driver.pk} is {driver.verification_status}, not VERIFIED",
                    driver_id=driver.pk,
                )
            if vehicle.status != VehicleStatus.AVAILABLE:
                raise PreconditionError(
                    'vehicle_not_available',
                    f"Vehicle {vehicle.registration_number} is {vehicle.status}",
                    vehicle_id=vehicle.pk,
                )
            open_contracts = RentalContract.objects.filter(status__in=NON_TERMINAL_STATUSES)
            if open_contracts.filter(vehicle=vehicle).exists():
                raise PreconditionError(
                    'vehicle_already_contracted',
                    f"Vehicle {vehicle.registration_number} already has an open contract",
                    vehicle_id=vehicle.pk,
                )
            if open_contracts.filter(driver=driver).exists():
                raise PreconditionError(
                    'driver_already_contracted',
                    f"Driver {driver.pk} already has an open contract",
                    driver_id=driver.pk,
                )

            contract = RentalContract.objects.create(
                driver=driver,
                vehicle=vehicle,
                fee_amount_cents=fee_amount_cents,
                frequency=frequency,
                due_weekday=due_weekday,
                due_day_of_month=due_day_of_month,
                start_date=start_date,
                end_date=end_date,
                terms_text=config.contract_terms_text(),
                created_by=user if user is not None and user.is_authenticated else None,
            )
            AuditLog.record(
                'CONTRACT_CREATED', contract, user=user,
                driver_id=driver.pk, vehicle_id=vehicle.pk,
                fee_amount_cents=fee_amount_cents, frequency=frequency,
            )
    except IntegrityError as e:
        logger.warning(f"[Lifecycle] Admission race on vehicle {vehicle_id} / driver {driver_id}: {e}")
        raise ConflictError(
            "The vehicle or driver was claimed by another contract at the same time; reload and retry",
            details={'vehicle_id': vehicle_id, 'driver_id': driver_id},
        )

    logger.info(f"[Lifecycle] Contract {contract.pk} created for driver {driver.pk} on vehicle {vehicle.pk}")
    contract.warnings = []
    return contract


# ========================================
# TRANSITIONS
# ========================================

def send_contract(contract_id, user=None):
    """DRAFT -> SENT_TO_DRIVER. Terms must be complete."""
    with transaction.atomic():
        contract = get_contract(contract_id, lock=True)
        next_status(contract, ContractEvent.SEND)
        validate_terms(
            contract.fee_amount_cents, contract.frequency, contract.start_date,
            contract.due_weekday, contract.due_day_of_month, contract.end_date,
        )
        if not contract.terms_text.strip():
            raise PreconditionError('terms_missing', f"Contract {contract.pk} has no terms text")
        apply_transition(contract, ContractEvent.SEND, user=user, sent_at=timezone.now())

    contract.warnings = notify(
        EventType.CONTRACT_SENT,
        recipient=contract.driver.user,
        contract_id=contract.pk,
        vehicle_id=contract.vehicle_id,
        fee_amount_cents=contract.fee_amount_cents,
        frequency=contract.frequency,
        start_date=contract.start_date,
    )
    return contract


def driver_sign(contract_id, signature_reference, acceptance, user=None):
    """
    SENT_TO_DRIVER -> SIGNED_BY_DRIVER. Stores the signature reference and the
    SHA-256 of the terms text, and locks the terms.
    """
    errors = {}
    if not signature_reference:
        errors['signature_reference'] = "Signature is required"
    acceptance = acceptance or {}
    if not all(acceptance.get(flag) is True for flag in REQUIRED_ACCEPTANCE):
        errors['acceptance'] = "You must accept the terms and the payment schedule"

    with transaction.atomic():
        contract = get_contract(contract_id, lock=True)
        next_status(contract, ContractEvent.DRIVER_SIGN)
        if errors:
            raise ValidationError(errors)

        now = timezone.now()
        apply_transition(
            contract, ContractEvent.DRIVER_SIGN, user=user,
            driver_signed_at=now,
            driver_signature_reference=signature_reference,
            acceptance={flag: True for flag in REQUIRED_ACCEPTANCE},
            terms_hash=hashlib.sha256(contract.terms_text.encode('utf-8')).hexdigest(),
            locked_at=contract.locked_at or now,
        )

    contract.warnings = []
    return contract


def reject_contract(contract_id, reason='', user=None):
    """SENT_TO_DRIVER / SIGNED_BY_DRIVER -> CANCELLED, releasing the vehicle claim."""
    with transaction.atomic():
        contract = get_contract(contract_id, lock=True)
        now = timezone.now()
        apply_transition(
            contract, ContractEvent.REJECT, user=user,
            cancelled_at=now,
            cancellation_reason=reason or '',
        )
        release_vehicle(contract, timezone.localdate(now))

    contract.warnings = []
    return contract


def activate_contract(contract_id, user=None, horizon=None):
    """
    SIGNED_BY_DRIVER -> ACTIVE. Materializes the first payment periods and
    assigns the vehicle.

    Raises PreconditionError (vehicle_not_available) when the vehicle was
    reassigned or taken out of service since admission; the contract then
    stays SIGNED_BY_DRIVER.
    """
    horizon = config.horizon_periods() if horizon is None else horizon

    with transaction.atomic():
        contract = get_contract(contract_id, lock=True)
        next_status(contract, ContractEvent.ACTIVATE)

        vehicle = get_vehicle(contract.vehicle_id, lock=True)
        held_elsewhere = holding_contract_exists(vehicle.pk, exclude_contract_id=contract.pk)
        # ASSIGNED with no other holder is a stale flag reconcile will fix
        usable = vehicle.status in (VehicleStatus.AVAILABLE, VehicleStatus.ASSIGNED)
        if held_elsewhere or not usable:
            logger.warning(
                f"[Lifecycle] Contract {contract.pk} activation refused: vehicle {vehicle.pk} "
                f"is {vehicle.status}"
            )
            raise PreconditionError(
                'vehicle_not_available',
                f"Vehicle {vehicle.registration_number} is no longer available ({vehicle.status})",
                vehicle_id=vehicle.pk,
                vehicle_status=vehicle.status,
            )

        apply_transition(contract, ContractEvent.ACTIVATE, user=user, activated_at=timezone.now())
        created = materialize_schedule(contract, contract.start_date, horizon)
        if created:
            AuditLog.record(
                'PAYMENTS_GENERATED', contract, user=user,
                due_dates=[str(d) for d in created], reason='activate',
            )
        contract.vehicle = reconcile_vehicle_status(contract.vehicle_id)

    contract.warnings = notify(
        EventType.CONTRACT_ACTIVATED,
        recipient=contract.driver.user,
        contract_id=contract.pk,
        vehicle_id=contract.vehicle_id,
        fee_amount_cents=contract.fee_amount_cents,
        first_due_date=created[0] if created else None,
        payments_created=len(created),
    )
    return contract


def suspend_contract(contract_id, user=None):
    """ACTIVE -> PAUSED. Billing generation stops; the vehicle stays ASSIGNED."""
    with transaction.atomic():
        contract = get_contract(contract_id, lock=True)
        apply_transition(contract, ContractEvent.SUSPEND, user=user, paused_at=timezone.now())
        reconcile_vehicle_status(contract.vehicle_id)

    contract.warnings = []
    return contract


def resume_contract(contract_id, user=None, today=None, horizon=None):
    """PAUSED -> ACTIVE. Schedule generation resumes from today; suspended periods stay unbilled."""
    today = today or timezone.localdate()
    horizon = config.horizon_periods() if horizon is None else horizon

    with transaction.atomic():
        contract = get_contract(contract_id, lock=True)
        apply_transition(contract, ContractEvent.RESUME, user=user, paused_at=None, resumed_on=today)
        created = materialize_schedule(contract, today, horizon)
        if created:
            AuditLog.record(
                'PAYMENTS_GENERATED', contract, user=user,
                due_dates=[str(d) for d in created], reason='resume',
            )
        reconcile_vehicle_status(contract.vehicle_id)

    contract.warnings = []
    return contract


def end_contract(contract_id, end_date=None, user=None):
    """ACTIVE / PAUSED -> ENDED. Sets end_date, voids later billing, frees the vehicle."""
    end_date = end_date or timezone.localdate()

    with transaction.atomic():
        contract = get_contract(contract_id, lock=True)
        next_status(contract, ContractEvent.END)
        if end_date < contract.start_date:
            raise ValidationError({'end_date': "End date cannot be before the start date"})

        apply_transition(
            contract, ContractEvent.END, user=user,
            end_date=end_date,
            ended_at=timezone.now(),
        )
        release_vehicle(contract, end_date)
        contract.vehicle.refresh_from_db()

    contract.warnings = []
    return contract


def delete_draft_contract(contract_id, user=None):
    """Hard-delete a DRAFT contract. Any other state is kept for the record."""
    with transaction.atomic():
        contract = get_contract(contract_id, lock=True)
        if contract.status != ContractStatus.DRAFT:
            raise InvalidTransitionError(
                'RentalContract', contract.status, 'delete',
                reason=f"Only DRAFT contracts can be deleted; contract {contract.pk} is {contract.status}",
            )
        AuditLog.record(
            'CONTRACT_DELETED', contract, user=user,
            driver_id=contract.driver_id, vehicle_id=contract.vehicle_id,
        )
        contract_pk = contract.pk
        contract.delete()

    logger.info(f"[Lifecycle] Draft contract {contract_pk} deleted")
    return contract_pk


# ========================================
# BATCH
# ========================================

def expire_contracts(today=None):
    """
    ACTIVE / PAUSED contracts whose fixed end_date is before ``today`` become
    EXPIRED and release their vehicle. Each contract commits on its own, so
    the job is safe to re-run after a partial failure.
    """
    today = today or timezone.localdate()
    due = RentalContract.objects.filter(
        status__in=HOLDING_STATUSES,
        end_date__isnull=False,
        end_date__lt=today,
    ).values_list('id', flat=True)

    expired = []
    for contract_id in due:
        try:
            with transaction.atomic():
                contract = get_contract(contract_id, lock=True)
                apply_transition(contract, ContractEvent.EXPIRE, expired_at=timezone.now())
                release_vehicle(contract, contract.end_date)
        except (InvalidTransitionError, ConflictError) as e:
            # Ended or changed by someone else in the meantime.
            logger.info(f"[Lifecycle] Contract {contract_id} skipped by expiry: {e.message}")
            continue
        expired.append(contract)

    logger.info(f"[Lifecycle] {len(expired)} contract(s) expired as of {today}")
    return expired
