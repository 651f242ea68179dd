from django.conf import settings
from django.db import models
from django.db.models import Q

from drivers.models import DriverProfile
from fleet.models import Vehicle


class ContractStatus(models.TextChoices):
    DRAFT = 'DRAFT', 'Draft'
    SENT_TO_DRIVER = 'SENT_TO_DRIVER', 'Sent to Driver'
    SIGNED_BY_DRIVER = 'SIGNED_BY_DRIVER', 'Signed by Driver'
    ACTIVE = 'ACTIVE', 'Active'
    PAUSED = 'PAUSED', 'Paused'
    ENDED = 'ENDED', 'Ended'
    CANCELLED = 'CANCELLED', 'Cancelled'
    EXPIRED = 'EXPIRED', 'Expired'


class ContractEvent(models.TextChoices):
    SEND = 'send', 'Send to driver'
    DRIVER_SIGN = 'driverSign', 'Driver signs'
    REJECT = 'reject', 'Reject'
    ACTIVATE = 'activate', 'Activate'
    SUSPEND = 'suspend', 'Suspend'
    RESUME = 'resume', 'Resume'
    END = 'end', 'End'
    EXPIRE = 'expire', 'Expire'


class Frequency(models.TextChoices):
    DAILY = 'DAILY', 'Daily'
    WEEKLY = 'WEEKLY', 'Weekly'
    MONTHLY = 'MONTHLY', 'Monthly'


TERMINAL_STATUSES = (
    ContractStatus.ENDED,
    ContractStatus.CANCELLED,
    ContractStatus.EXPIRED,
)
NON_TERMINAL_STATUSES = (
    ContractStatus.DRAFT,
    ContractStatus.SENT_TO_DRIVER,
    ContractStatus.SIGNED_BY_DRIVER,
    ContractStatus.ACTIVE,
    ContractStatus.PAUSED,
)
# Contracts that keep their vehicle ASSIGNED.
HOLDING_STATUSES = (
    ContractStatus.ACTIVE,
    ContractStatus.PAUSED,
)

# (from, event) -> to. Anything missing is an invalid transition.
# Deleting a DRAFT is not a transition; it removes the row.
TRANSITIONS = {
    (ContractStatus.DRAFT, ContractEvent.SEND): ContractStatus.SENT_TO_DRIVER,
    (ContractStatus.SENT_TO_DRIVER, ContractEvent.DRIVER_SIGN): ContractStatus.SIGNED_BY_DRIVER,
    (ContractStatus.SENT_TO_DRIVER, ContractEvent.REJECT): ContractStatus.CANCELLED,
    (ContractStatus.SIGNED_BY_DRIVER, ContractEvent.REJECT): ContractStatus.CANCELLED,
    (ContractStatus.SIGNED_BY_DRIVER, ContractEvent.ACTIVATE): ContractStatus.ACTIVE,
    (ContractStatus.ACTIVE, ContractEvent.SUSPEND): ContractStatus.PAUSED,
    (ContractStatus.PAUSED, ContractEvent.RESUME): ContractStatus.ACTIVE,
    (ContractStatus.ACTIVE, ContractEvent.END): ContractStatus.ENDED,
    (ContractStatus.PAUSED, ContractEvent.END): ContractStatus.ENDED,
    (ContractStatus.ACTIVE, ContractEvent.EXPIRE): ContractStatus.EXPIRED,
    (ContractStatus.PAUSED, ContractEvent.EXPIRE): ContractStatus.EXPIRED,
}


def allowed_events(status):
    status = ContractStatus(status)
    return [event for (from_state, event) in TRANSITIONS if from_state == status]


class RentalContract(models.Model):
    """
    Pairs one verified driver with one vehicle for a recurring fee.

    At most one non-terminal contract may reference a vehicle, and at most one
    a driver; both rules are enforced by partial unique constraints so that
    concurrent admissions fail at the database instead of double-assigning.
    Status only changes through contracts.lifecycle.
    """

    driver = models.ForeignKey(
        DriverProfile,
        on_delete=models.PROTECT,
        related_name='contracts'
    )
    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.PROTECT,
        related_name='contracts'
    )

    # Terms
    fee_amount_cents = models.PositiveIntegerField()
    frequency = models.CharField(max_length=10, choices=Frequency.choices)
    due_weekday = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text='0=Sunday .. 6=Saturday, WEEKLY only'
    )
    due_day_of_month = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text='1..31, clamped to the month length, MONTHLY only'
    )
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    terms_text = models.TextField(blank=True, default='')

    status = models.CharField(
        max_length=20,
        choices=ContractStatus.choices,
        default=ContractStatus.DRAFT,
        db_index=True
    )

    # Signing
    driver_signed_at = models.DateTimeField(null=True, blank=True)
    driver_signature_reference = models.CharField(max_length=500, blank=True, default='')
    acceptance = models.JSONField(null=True, blank=True)
    terms_hash = models.CharField(max_length=64, blank=True, default='')
    locked_at = models.DateTimeField(null=True, blank=True)

    # Lifecycle timestamps
    sent_at = models.DateTimeField(null=True, blank=True)
    activated_at = models.DateTimeField(null=True, blank=True)
    paused_at = models.DateTimeField(null=True, blank=True)
    resumed_on = models.DateField(null=True, blank=True)
    ended_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True, default='')
    expired_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='contracts_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'rental_contracts'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['vehicle'],
                condition=Q(status__in=NON_TERMINAL_STATUSES),
                name='unique_open_contract_per_vehicle',
            ),
            models.UniqueConstraint(
                fields=['driver'],
                condition=Q(status__in=NON_TERMINAL_STATUSES),
                name='unique_open_contract_per_driver',
            ),
            models.CheckConstraint(
                condition=Q(fee_amount_cents__gt=0),
                name='contract_fee_positive',
            ),
        ]

    def __str__(self):
        return f"Contract {self.pk} {self.vehicle_id}/{self.driver_id} [{self.status}]"

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    @property
    def allowed_events(self):
        return allowed_events(self.status)
