"""
Payment operations: settle, fail, extend the schedule horizon, void.

Money movement is external; these functions only track the payment records.
"""

import logging
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from contracts.models import RentalContract, ContractStatus
from home import config
from home.exceptions import NotFoundError, InvalidStateError, InvalidTransitionError
from home.models import AuditLog
from .models import Payment, PaymentStatus, PAYABLE_STATUSES
from .schedule import billing_floor, extend_schedule, materialize_schedule

logger = logging.getLogger(__name__)


def get_payment(payment_id, lock=False):
    queryset = Payment.objects.select_related('contract')
    if lock:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=payment_id)
    except Payment.DoesNotExist:
        raise NotFoundError('Payment', payment_id)


def mark_payment_paid(payment_id, user=None, paid_at=None, reference=''):
    """
    Record a settled payment.

    When payments.autoGenerateNext is on and the contract is ACTIVE, the due
    date following this one is appended if it is not materialized yet.

    Raises:
        NotFoundError: the payment does not exist
        InvalidStateError: the payment is already PAID or VOID
    """
    with transaction.atomic():
        payment = get_payment(payment_id, lock=True)
        if payment.status not in PAYABLE_STATUSES:
            raise InvalidStateError('Payment', payment.status, 'markPaid')

        from_state = payment.status
        updated = Payment.objects.filter(pk=payment.pk, status=from_state).update(
            status=PaymentStatus.PAID,
            paid_at=paid_at or timezone.now(),
            payment_reference=reference or '',
            marked_paid_by=user if user is not None and user.is_authenticated else None,
        )
        if not updated:
            raise InvalidStateError('Payment', payment.status, 'markPaid')
        payment.refresh_from_db()

        next_dates = []
        contract = payment.contract
        if config.auto_generate_next_payment() and contract.status == ContractStatus.ACTIVE:
            from_date = payment.due_date + timedelta(days=1)
            floor = billing_floor(contract)
            if floor is not None and floor > from_date:
                from_date = floor
            next_dates = materialize_schedule(contract, from_date, 1)

        AuditLog.record(
            'PAYMENT_PAID', payment, user=user,
            from_state=from_state, reference=reference,
            next_due_dates=[str(d) for d in next_dates],
        )

    logger.info(f"[Payments] Payment {payment.pk} ({payment.due_date}) marked PAID")
    payment.next_due_dates = next_dates
    payment.warnings = []
    return payment


def mark_payment_failed(payment_id, reason='', user=None):
    """Record a failed external capture. FAILED payments can still be paid later."""
    with transaction.atomic():
        payment = get_payment(payment_id, lock=True)
        if payment.status not in (PaymentStatus.PENDING, PaymentStatus.OVERDUE):
            raise InvalidStateError('Payment', payment.status, 'markFailed')

        from_state = payment.status
        updated = Payment.objects.filter(pk=payment.pk, status=from_state).update(
            status=PaymentStatus.FAILED,
            failed_at=timezone.now(),
            failure_reason=reason or '',
        )
        if not updated:
            raise InvalidStateError('Payment', payment.status, 'markFailed')
        payment.refresh_from_db()
        AuditLog.record('PAYMENT_FAILED', payment, user=user, from_state=from_state, reason=reason)

    logger.info(f"[Payments] Payment {payment.pk} ({payment.due_date}) marked FAILED")
    payment.warnings = []
    return payment


def extend_payment_horizon(contract_id, today=None, horizon=None, user=None):
    """
    Make sure the next ``horizon`` periods from today are materialized for an
    ACTIVE contract, catching up any periods a late run left out. Safe to
    call repeatedly or concurrently.
    """
    today = today or timezone.localdate()
    horizon = config.horizon_periods() if horizon is None else horizon

    with transaction.atomic():
        try:
            contract = RentalContract.objects.get(pk=contract_id)
        except RentalContract.DoesNotExist:
            raise NotFoundError('RentalContract', contract_id)

        if contract.status != ContractStatus.ACTIVE:
            raise InvalidTransitionError(
                'RentalContract', contract.status, 'extendPaymentHorizon',
                reason=f"Only ACTIVE contracts are billed; contract {contract.pk} is {contract.status}",
            )

        created = extend_schedule(contract, today, horizon)
        if created:
            AuditLog.record(
                'PAYMENTS_GENERATED', contract, user=user,
                due_dates=[str(d) for d in created], reason='extend',
            )

    contract.created_due_dates = created
    contract.warnings = []
    return contract


def extend_all_horizons(today=None, horizon=None):
    """
    Extend every ACTIVE contract. Each contract runs in its own transaction so a
    failure leaves the others extended; re-running is safe.
    """
    results = {'contracts': 0, 'payments_created': 0, 'errors': []}
    ids = RentalContract.objects.filter(status=ContractStatus.ACTIVE).values_list('id', flat=True)
    for contract_id in ids:
        try:
            contract = extend_payment_horizon(contract_id, today=today, horizon=horizon)
        except (NotFoundError, InvalidTransitionError) as e:
            # Contract changed state since it was listed.
            results['errors'].append(f"{contract_id}: {e.message}")
            continue
        results['contracts'] += 1
        results['payments_created'] += len(contract.created_due_dates)

    logger.info(
        f"[Schedule] Horizon extension: {results['contracts']} contract(s), "
        f"{results['payments_created']} payment(s) created"
    )
    return results


def void_payments_after(contract, end_date):
    """PENDING payments due after ``end_date`` become VOID. Rows are never deleted."""
    voided = Payment.objects.filter(
        contract=contract,
        status=PaymentStatus.PENDING,
        due_date__gt=end_date,
    ).update(status=PaymentStatus.VOID, voided_at=timezone.now())
    if voided:
        logger.info(f"[Payments] Contract {contract.pk}: {voided} payment(s) after {end_date} voided")
    return voided
