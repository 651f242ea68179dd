"""
Payment schedule generator.

Due dates are anchored at the contract's start date:

- DAILY: every calendar day from start_date
- WEEKLY: the first ``due_weekday`` on/after start_date (0=Sunday), then +7 days
- MONTHLY: ``due_day_of_month`` of every month from the start month, clamped to
  the month's last day; the start month is skipped when that day has passed

generate_schedule is pure. materialize_schedule persists its output and relies
on the (contract, due_date) unique constraint so that concurrent callers never
duplicate a period. extend_schedule only ever appends forward.
"""

import logging
from datetime import timedelta
from itertools import count

from dateutil.relativedelta import relativedelta
from django.db.models import Max

from home.exceptions import ValidationError
from .models import Payment, PaymentStatus

logger = logging.getLogger(__name__)


def js_weekday(day):
    """0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def iter_due_dates(frequency, start_date, due_weekday=None, due_day_of_month=None):
    """Endless iterator of due dates for the given terms."""
    if frequency == 'DAILY':
        for offset in count():
            yield start_date + timedelta(days=offset)

    elif frequency == 'WEEKLY':
        if due_weekday is None or not 0 <= due_weekday <= 6:
            raise ValidationError({'due_weekday': "WEEKLY contracts need a due weekday between 0 and 6"})
        first = start_date + timedelta(days=(due_weekday - js_weekday(start_date)) % 7)
        for offset in count():
            yield first + timedelta(weeks=offset)

    elif frequency == 'MONTHLY':
        if due_day_of_month is None or not 1 <= due_day_of_month <= 31:
            raise ValidationError({'due_day_of_month': "MONTHLY contracts need a due day between 1 and 31"})
        anchor = start_date.replace(day=1)
        # relativedelta(day=N) clamps to the last day of shorter months
        for months in count():
            due = anchor + relativedelta(months=months, day=due_day_of_month)
            if due < start_date:
                continue
            yield due

    else:
        raise ValidationError({'frequency': f"Unknown frequency {frequency}"})


def generate_schedule(contract, from_date, horizon, window_start=None):
    """
    Unsaved Payment rows for due dates on or after ``from_date``, capped at
    the contract's end date.

    ``horizon`` counts due dates on or after ``window_start`` (defaults to
    ``from_date``) whether or not they are returned, and generation stops at
    the horizon-th one. With ``from_date`` before ``window_start`` the rows in
    between are returned too, which is how a late extension catches up.
    """
    payments = []
    if horizon <= 0:
        return payments

    window_start = from_date if window_start is None else window_start
    dates = iter_due_dates(
        contract.frequency,
        contract.start_date,
        due_weekday=contract.due_weekday,
        due_day_of_month=contract.due_day_of_month,
    )
    taken = 0
    for due in dates:
        if contract.end_date is not None and due > contract.end_date:
            break
        if due >= from_date:
            payments.append(Payment(
                contract=contract,
                amount_cents=contract.fee_amount_cents,
                due_date=due,
                status=PaymentStatus.PENDING,
            ))
        if due >= window_start:
            taken += 1
            if taken >= horizon:
                break
    return payments


def latest_due_date(contract):
    return Payment.objects.filter(contract=contract).aggregate(latest=Max('due_date'))['latest']


def billing_floor(contract):
    """Earliest date billing may resume from; periods inside a suspension stay unbilled."""
    return contract.resumed_on


def materialize_schedule(contract, from_date, horizon, window_start=None):
    """
    Persist generate_schedule's output for ``contract``.

    Each row is inserted with get_or_create against the (contract, due_date)
    unique constraint, so repeated or concurrent calls never duplicate a
    period. Returns the due dates this call inserted.
    """
    candidates = generate_schedule(contract, from_date, horizon, window_start=window_start)
    created = []
    for candidate in candidates:
        _, inserted = Payment.objects.get_or_create(
            contract=contract,
            due_date=candidate.due_date,
            defaults={
                'amount_cents': candidate.amount_cents,
                'status': candidate.status,
            },
        )
        if inserted:
            created.append(candidate.due_date)

    logger.info(
        f"[Schedule] Contract {contract.pk}: {len(created)} payment(s) materialized "
        f"from {from_date} (horizon {horizon})"
    )
    return created


def extend_schedule(contract, today, horizon):
    """
    Walk forward from the latest materialized due date (or the start date)
    and cover ``horizon`` periods from ``today``. Periods missed by an earlier
    late run are created as well; nothing before the last resume is.
    """
    latest = latest_due_date(contract)
    from_date = latest + timedelta(days=1) if latest else contract.start_date
    floor = billing_floor(contract)
    if floor is not None and floor > from_date:
        from_date = floor
    return materialize_schedule(contract, from_date, horizon, window_start=today)
