"""
Overdue/status resolver.

is_overdue and effective_status are read-time predicates: a PENDING row past
its grace period is overdue whether or not mark_overdue_payments has already
persisted OVERDUE. Persisting is an optimization for queries and reminders.
"""

import logging
from datetime import date, datetime, timedelta

from django.db import transaction
from django.utils import timezone

from home import config
from home.models import AuditLog
from notifications.dispatch import notify
from notifications.events import EventType
from .models import Payment, PaymentStatus

logger = logging.getLogger(__name__)


def as_date(now):
    if isinstance(now, datetime):
        return timezone.localdate(now) if timezone.is_aware(now) else now.date()
    if isinstance(now, date):
        return now
    raise TypeError(f"Expected date or datetime, got {type(now).__name__}")


def is_overdue(payment, grace_period_days, now):
    """PENDING and ``now`` is later than due_date + grace_period_days."""
    if payment.status != PaymentStatus.PENDING:
        return False
    return as_date(now) > payment.due_date + timedelta(days=grace_period_days)


def effective_status(payment, grace_period_days, now):
    if is_overdue(payment, grace_period_days, now):
        return PaymentStatus.OVERDUE.value
    return str(payment.status)


def days_overdue(payment, now):
    if payment.status not in (PaymentStatus.PENDING, PaymentStatus.OVERDUE):
        return 0
    return max(0, (as_date(now) - payment.due_date).days)


def mark_overdue_payments(today=None, grace_period_days=None):
    """
    Persist OVERDUE for every PENDING payment past its grace period and emit
    PaymentOverdue for each.

    Every payment is claimed with its own conditional UPDATE and only the
    claimed rows are audited and notified, so re-running (or running
    concurrently) never double-marks or double-notifies.
    Returns (payments, warnings).
    """
    today = today or timezone.localdate()
    grace = config.grace_period_days() if grace_period_days is None else grace_period_days

    candidates = list(
        Payment.objects.pending_past_grace(today, grace).select_related('contract__driver__user')
    )

    payments = []
    warnings = []
    for payment in candidates:
        with transaction.atomic():
            claimed = Payment.objects.filter(pk=payment.pk, status=PaymentStatus.PENDING).update(
                status=PaymentStatus.OVERDUE,
                overdue_at=timezone.now(),
            )
            if not claimed:
                continue
            payment.status = PaymentStatus.OVERDUE
            AuditLog.record('PAYMENTS_OVERDUE', payment, due_date=str(payment.due_date), grace_days=grace)

        payments.append(payment)
        warnings += notify(
            EventType.PAYMENT_OVERDUE,
            recipient=payment.contract.driver.user,
            payment_id=payment.pk,
            contract_id=payment.contract_id,
            amount_cents=payment.amount_cents,
            due_date=payment.due_date,
            days_overdue=days_overdue(payment, today),
        )

    logger.info(f"[Overdue] {len(payments)} payment(s) marked OVERDUE (grace {grace} days, as of {today})")
    return payments, warnings


def send_due_soon_reminders(today=None, days_before=None):
    """
    Emit PaymentDueSoon once per PENDING payment due within ``days_before``
    days. Each payment is claimed with a conditional update before notifying.
    """
    today = today or timezone.localdate()
    days_before = config.reminder_days_before() if days_before is None else days_before

    candidates = (
        Payment.objects.due_between(today, today + timedelta(days=days_before))
        .filter(reminder_sent_at__isnull=True)
        .select_related('contract__driver__user')
    )

    reminded = []
    warnings = []
    for payment in candidates:
        claimed = Payment.objects.filter(pk=payment.pk, reminder_sent_at__isnull=True).update(
            reminder_sent_at=timezone.now()
        )
        if not claimed:
            continue
        reminded.append(payment)
        warnings += notify(
            EventType.PAYMENT_DUE_SOON,
            recipient=payment.contract.driver.user,
            payment_id=payment.pk,
            contract_id=payment.contract_id,
            amount_cents=payment.amount_cents,
            due_date=payment.due_date,
        )

    logger.info(f"[Overdue] {len(reminded)} due-soon reminder(s) sent for {today}")
    return reminded, warnings
