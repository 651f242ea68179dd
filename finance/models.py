from datetime import timedelta

from django.conf import settings
from django.db import models
from django.db.models import Q

from contracts.models import RentalContract


class PaymentStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    PAID = 'PAID', 'Paid'
    OVERDUE = 'OVERDUE', 'Overdue'
    FAILED = 'FAILED', 'Failed'
    VOID = 'VOID', 'Void'


# Statuses from which a payment may still be settled.
PAYABLE_STATUSES = (
    PaymentStatus.PENDING,
    PaymentStatus.OVERDUE,
    PaymentStatus.FAILED,
)


class PaymentQuerySet(models.QuerySet):

    def pending_past_grace(self, today, grace_period_days):
        """PENDING rows whose grace period has elapsed (not yet persisted as OVERDUE)."""
        cutoff = today - timedelta(days=grace_period_days)
        return self.filter(status=PaymentStatus.PENDING, due_date__lt=cutoff)

    def effectively_overdue(self, today, grace_period_days):
        """Rows that are overdue whether or not the batch job has flipped them yet."""
        cutoff = today - timedelta(days=grace_period_days)
        return self.filter(
            Q(status=PaymentStatus.OVERDUE)
            | Q(status=PaymentStatus.PENDING, due_date__lt=cutoff)
        )

    def due_between(self, start, end):
        return self.filter(status=PaymentStatus.PENDING, due_date__gte=start, due_date__lte=end)


class Payment(models.Model):
    """
    One scheduled rental payment.

    Rows are created by finance.schedule and never deleted. At most one row
    exists per (contract, due_date); the unique constraint makes concurrent
    schedule extension safe.
    """

    contract = models.ForeignKey(
        RentalContract,
        on_delete=models.PROTECT,
        related_name='payments'
    )
    amount_cents = models.PositiveIntegerField()
    due_date = models.DateField(help_text="Payment due date")

    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING
    )
    paid_at = models.DateTimeField(null=True, blank=True)
    payment_reference = models.CharField(max_length=100, blank=True, default='')
    marked_paid_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='payments_marked_paid'
    )
    failed_at = models.DateTimeField(null=True, blank=True)
    failure_reason = models.TextField(blank=True, default='')
    overdue_at = models.DateTimeField(null=True, blank=True)
    reminder_sent_at = models.DateTimeField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = PaymentQuerySet.as_manager()

    class Meta:
        db_table = 'payments'
        ordering = ['contract', 'due_date']
        constraints = [
            models.UniqueConstraint(
                fields=['contract', 'due_date'],
                name='unique_payment_per_contract_due_date',
            ),
        ]
        indexes = [
            models.Index(fields=['status', 'due_date'], name='payment_status_due_idx'),
        ]

    def __str__(self):
        return f"Payment {self.due_date} for contract {self.contract_id} [{self.status}]"
