import hashlib
import random
from datetime import date
from unittest.mock import patch

import pytest
from django.db import IntegrityError, transaction

from contracts import lifecycle
from contracts.models import ContractStatus, HOLDING_STATUSES, NON_TERMINAL_STATUSES, RentalContract
from finance.models import Payment, PaymentStatus
from fleet.models import Vehicle, VehicleStatus
from home.exceptions import (
    ConflictError,
    InvalidTransitionError,
    PreconditionError,
    RentalError,
    ValidationError,
)
from home.models import AuditLog
from notifications.models import Notification


def due_dates(contract, status=None):
    payments = Payment.objects.filter(contract=contract).order_by('due_date')
    if status:
        payments = payments.filter(status=status)
    return list(payments.values_list('due_date', flat=True))


@pytest.mark.django_db
class TestWeeklyContractScenario:

    def test_send_sign_activate_assigns_vehicle_and_materializes_schedule(
        self, make_contract, verified_driver, vehicle, admin_user
    ):
        contract = make_contract(verified_driver, vehicle, stage='DRAFT')
        assert contract.status == ContractStatus.DRAFT
        assert contract.terms_text

        contract = lifecycle.send_contract(contract.pk, user=admin_user)
        assert contract.status == ContractStatus.SENT_TO_DRIVER
        assert contract.warnings == []

        contract = lifecycle.driver_sign(
            contract.pk, "signatures/1.png",
            {'agreeTerms': True, 'agreePayments': True},
            user=verified_driver.user,
        )
        assert contract.status == ContractStatus.SIGNED_BY_DRIVER
        assert contract.terms_hash == hashlib.sha256(contract.terms_text.encode('utf-8')).hexdigest()
        assert contract.locked_at is not None

        contract = lifecycle.activate_contract(contract.pk, user=admin_user)

        contract.refresh_from_db()
        vehicle.refresh_from_db()
        assert contract.status == ContractStatus.ACTIVE
        assert contract.activated_at is not None
        assert vehicle.status == VehicleStatus.ASSIGNED
        assert due_dates(contract) == [
            date(2024, 1, 8),
            date(2024, 1, 15),
            date(2024, 1, 22),
            date(2024, 1, 29),
        ]
        assert set(Payment.objects.filter(contract=contract).values_list('status', 'amount_cents')) == {
            (PaymentStatus.PENDING, 50000)
        }

    def test_driver_is_notified_on_send_and_activate(self, active_contract, verified_driver):
        events = list(
            Notification.objects.filter(recipient=verified_driver.user).values_list('event_type', flat=True)
        )
        assert 'ContractSent' in events
        assert 'ContractActivated' in events

    def test_transitions_are_audited(self, active_contract):
        transitions = AuditLog.objects.filter(
            action_type='CONTRACT_TRANSITIONED', entity_id=str(active_contract.pk)
        )
        assert [row.metadata['to_state'] for row in transitions.order_by('id')] == [
            'SENT_TO_DRIVER', 'SIGNED_BY_DRIVER', 'ACTIVE',
        ]


@pytest.mark.django_db
class TestAdmission:

    def test_unverified_driver_is_refused(self, make_driver, vehicle, weekly_terms):
        driver = make_driver('complete')
        with pytest.raises(PreconditionError) as exc:
            lifecycle.create_contract(driver.pk, vehicle.pk, **weekly_terms)
        assert exc.value.precondition == 'driver_not_verified'
        assert not RentalContract.objects.exists()

    def test_vehicle_in_maintenance_is_refused(self, verified_driver, make_vehicle, weekly_terms):
        vehicle = make_vehicle(status=VehicleStatus.MAINTENANCE)
        with pytest.raises(PreconditionError) as exc:
            lifecycle.create_contract(verified_driver.pk, vehicle.pk, **weekly_terms)
        assert exc.value.precondition == 'vehicle_not_available'

    def test_second_open_contract_on_vehicle_is_refused(self, make_driver, make_contract, vehicle, weekly_terms):
        make_contract(make_driver(), vehicle, stage='DRAFT')
        other = make_driver()
        with pytest.raises(PreconditionError) as exc:
            lifecycle.create_contract(other.pk, vehicle.pk, **weekly_terms)
        assert exc.value.precondition == 'vehicle_already_contracted'

    def test_second_open_contract_for_driver_is_refused(self, verified_driver, make_vehicle, make_contract,
                                                        weekly_terms):
        make_contract(verified_driver, make_vehicle(), stage='DRAFT')
        with pytest.raises(PreconditionError) as exc:
            lifecycle.create_contract(verified_driver.pk, make_vehicle().pk, **weekly_terms)
        assert exc.value.precondition == 'driver_already_contracted'

    def test_database_race_becomes_conflict(self, make_driver, make_contract, verified_driver, vehicle,
                                            weekly_terms):
        make_contract(make_driver(), vehicle, stage='DRAFT')

        # Blind the read-side check so only the partial unique constraint stands in the way
        with patch('contracts.lifecycle.NON_TERMINAL_STATUSES', ()):
            with pytest.raises(ConflictError):
                lifecycle.create_contract(verified_driver.pk, vehicle.pk, **weekly_terms)

        assert RentalContract.objects.filter(vehicle=vehicle).count() == 1

    def test_database_refuses_second_open_contract_on_vehicle(self, make_driver, make_contract, vehicle):
        existing = make_contract(make_driver(), vehicle, stage='ACTIVE')

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                RentalContract.objects.create(
                    driver=make_driver(),
                    vehicle=vehicle,
                    fee_amount_cents=existing.fee_amount_cents,
                    frequency=existing.frequency,
                    due_weekday=existing.due_weekday,
                    start_date=existing.start_date,
                    status=ContractStatus.SIGNED_BY_DRIVER,
                )

    def test_database_refuses_second_open_contract_for_driver(self, verified_driver, make_vehicle, make_contract):
        existing = make_contract(verified_driver, make_vehicle(), stage='SENT_TO_DRIVER')

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                RentalContract.objects.create(
                    driver=verified_driver,
                    vehicle=make_vehicle(),
                    fee_amount_cents=existing.fee_amount_cents,
                    frequency=existing.frequency,
                    due_weekday=existing.due_weekday,
                    start_date=existing.start_date,
                )

    def test_terminal_contracts_do_not_block_the_vehicle(self, make_driver, make_contract, vehicle):
        ended = make_contract(make_driver(), vehicle, stage='ACTIVE')
        lifecycle.end_contract(ended.pk, end_date=date(2024, 1, 20))

        contract = make_contract(make_driver(), vehicle, stage='DRAFT')
        assert contract.status == ContractStatus.DRAFT

    @pytest.mark.parametrize('terms, field', [
        ({'fee_amount_cents': 0}, 'fee_amount_cents'),
        ({'due_weekday': 7}, 'due_weekday'),
        ({'frequency': 'MONTHLY'}, 'due_day_of_month'),
        ({'end_date': date(2023, 12, 31)}, 'end_date'),
    ])
    def test_malformed_terms(self, verified_driver, vehicle, weekly_terms, terms, field):
        values = dict(weekly_terms, **terms)
        with pytest.raises(ValidationError) as exc:
            lifecycle.create_contract(verified_driver.pk, vehicle.pk, **values)
        assert field in exc.value.errors


@pytest.mark.django_db
class TestTransitions:

    def test_activate_when_vehicle_taken_out_of_service(self, make_contract, verified_driver, vehicle):
        contract = make_contract(verified_driver, vehicle, stage='SIGNED_BY_DRIVER')
        Vehicle.objects.filter(pk=vehicle.pk).update(status=VehicleStatus.MAINTENANCE)

        with pytest.raises(PreconditionError) as exc:
            lifecycle.activate_contract(contract.pk)

        assert exc.value.precondition == 'vehicle_not_available'
        contract.refresh_from_db()
        assert contract.status == ContractStatus.SIGNED_BY_DRIVER
        assert not Payment.objects.filter(contract=contract).exists()

    def test_activate_when_vehicle_deactivated(self, make_contract, verified_driver, vehicle):
        contract = make_contract(verified_driver, vehicle, stage='SIGNED_BY_DRIVER')
        Vehicle.objects.filter(pk=vehicle.pk).update(status=VehicleStatus.INACTIVE)

        with pytest.raises(PreconditionError) as exc:
            lifecycle.activate_contract(contract.pk)

        assert exc.value.details['vehicle_status'] == VehicleStatus.INACTIVE
        contract.refresh_from_db()
        vehicle.refresh_from_db()
        assert contract.status == ContractStatus.SIGNED_BY_DRIVER
        assert vehicle.status == VehicleStatus.INACTIVE

    def test_activate_over_stale_assigned_flag(self, make_contract, verified_driver, vehicle):
        contract = make_contract(verified_driver, vehicle, stage='SIGNED_BY_DRIVER')
        # Left ASSIGNED by an earlier contract with no holder today
        Vehicle.objects.filter(pk=vehicle.pk).update(status=VehicleStatus.ASSIGNED)

        contract = lifecycle.activate_contract(contract.pk)

        vehicle.refresh_from_db()
        assert contract.status == ContractStatus.ACTIVE
        assert vehicle.status == VehicleStatus.ASSIGNED

    @pytest.mark.parametrize('operation', [
        lifecycle.activate_contract,
        lifecycle.suspend_contract,
        lifecycle.resume_contract,
    ])
    def test_events_not_valid_for_draft(self, make_contract, verified_driver, vehicle, operation):
        contract = make_contract(verified_driver, vehicle, stage='DRAFT')
        with pytest.raises(InvalidTransitionError):
            operation(contract.pk)
        contract.refresh_from_db()
        assert contract.status == ContractStatus.DRAFT

    def test_sign_without_acceptance(self, make_contract, verified_driver, vehicle):
        contract = make_contract(verified_driver, vehicle, stage='SENT_TO_DRIVER')
        with pytest.raises(ValidationError) as exc:
            lifecycle.driver_sign(contract.pk, "signatures/1.png", {'agreeTerms': True})
        assert 'acceptance' in exc.value.errors
        contract.refresh_from_db()
        assert contract.status == ContractStatus.SENT_TO_DRIVER

    def test_reject_frees_vehicle_for_new_admission(self, make_driver, make_contract, vehicle, weekly_terms):
        contract = make_contract(make_driver(), vehicle, stage='SENT_TO_DRIVER')
        contract = lifecycle.reject_contract(contract.pk, reason="Driver declined")
        assert contract.status == ContractStatus.CANCELLED
        assert contract.cancellation_reason == "Driver declined"

        other = lifecycle.create_contract(make_driver().pk, vehicle.pk, **weekly_terms)
        assert other.status == ContractStatus.DRAFT

    def test_suspend_keeps_vehicle_and_resume_skips_paused_periods(self, active_contract, vehicle):
        contract = lifecycle.suspend_contract(active_contract.pk)
        vehicle.refresh_from_db()
        assert contract.status == ContractStatus.PAUSED
        assert vehicle.status == VehicleStatus.ASSIGNED

        contract = lifecycle.resume_contract(contract.pk, today=date(2024, 3, 1))
        assert contract.status == ContractStatus.ACTIVE
        assert due_dates(contract)[4:] == [
            date(2024, 3, 4),
            date(2024, 3, 11),
            date(2024, 3, 18),
            date(2024, 3, 25),
        ]

    def test_end_voids_later_payments_and_frees_vehicle(self, active_contract, vehicle):
        contract = lifecycle.end_contract(active_contract.pk, end_date=date(2024, 1, 20))
        vehicle.refresh_from_db()

        assert contract.status == ContractStatus.ENDED
        assert contract.end_date == date(2024, 1, 20)
        assert vehicle.status == VehicleStatus.AVAILABLE
        assert due_dates(contract, PaymentStatus.PENDING) == [date(2024, 1, 8), date(2024, 1, 15)]
        assert due_dates(contract, PaymentStatus.VOID) == [date(2024, 1, 22), date(2024, 1, 29)]

    def test_end_is_terminal(self, active_contract):
        lifecycle.end_contract(active_contract.pk, end_date=date(2024, 1, 20))
        with pytest.raises(InvalidTransitionError):
            lifecycle.resume_contract(active_contract.pk)

    def test_delete_draft_only(self, make_contract, verified_driver, vehicle):
        contract = make_contract(verified_driver, vehicle, stage='SENT_TO_DRIVER')
        with pytest.raises(InvalidTransitionError):
            lifecycle.delete_draft_contract(contract.pk)

        lifecycle.reject_contract(contract.pk)
        draft = lifecycle.create_contract(
            verified_driver.pk, vehicle.pk, 50000, 'DAILY', date(2024, 1, 1)
        )
        lifecycle.delete_draft_contract(draft.pk)
        assert not RentalContract.objects.filter(pk=draft.pk).exists()
        assert AuditLog.objects.filter(action_type='CONTRACT_DELETED', entity_id=str(draft.pk)).exists()


@pytest.mark.django_db
class TestExpiry:

    def test_fixed_term_contract_expires_and_releases_vehicle(self, make_contract, verified_driver, vehicle):
        contract = make_contract(verified_driver, vehicle, stage='ACTIVE', end_date=date(2024, 2, 1))

        expired = lifecycle.expire_contracts(today=date(2024, 2, 5))

        assert [c.pk for c in expired] == [contract.pk]
        contract.refresh_from_db()
        vehicle.refresh_from_db()
        assert contract.status == ContractStatus.EXPIRED
        assert vehicle.status == VehicleStatus.AVAILABLE
        assert lifecycle.expire_contracts(today=date(2024, 2, 5)) == []

    def test_open_ended_contract_never_expires(self, active_contract):
        assert lifecycle.expire_contracts(today=date(2030, 1, 1)) == []


@pytest.mark.django_db
class TestSingleClaimPerVehicle:
    """
    Random create/advance/end/reject sequences over shared vehicles must never
    leave two open contracts on a vehicle, and vehicle status must always
    mirror the holding contract.
    """

    def assert_invariants(self, vehicles):
        for vehicle in vehicles:
            vehicle.refresh_from_db()
            open_count = RentalContract.objects.filter(vehicle=vehicle, status__in=NON_TERMINAL_STATUSES).count()
            held = RentalContract.objects.filter(vehicle=vehicle, status__in=HOLDING_STATUSES).exists()
            assert open_count <= 1
            assert (vehicle.status == VehicleStatus.ASSIGNED) == held

    @pytest.mark.parametrize('seed', [7, 21, 1234])
    def test_random_sequences(self, seed, make_driver, make_vehicle, weekly_terms):
        rng = random.Random(seed)
        drivers = [make_driver() for _ in range(4)]
        vehicles = [make_vehicle() for _ in range(3)]
        advance = {
            ContractStatus.DRAFT: lambda pk: lifecycle.send_contract(pk),
            ContractStatus.SENT_TO_DRIVER: lambda pk: lifecycle.driver_sign(
                pk, "signatures/x.png", {'agreeTerms': True, 'agreePayments': True}
            ),
            ContractStatus.SIGNED_BY_DRIVER: lambda pk: lifecycle.activate_contract(pk, horizon=1),
            ContractStatus.ACTIVE: lambda pk: lifecycle.suspend_contract(pk),
            ContractStatus.PAUSED: lambda pk: lifecycle.resume_contract(pk, today=date(2024, 2, 1), horizon=1),
        }

        for _ in range(40):
            action = rng.choice(['create', 'create', 'advance', 'advance', 'end', 'reject'])
            contracts = list(RentalContract.objects.filter(status__in=NON_TERMINAL_STATUSES))
            try:
                if action == 'create':
                    lifecycle.create_contract(
                        rng.choice(drivers).pk, rng.choice(vehicles).pk, **weekly_terms
                    )
                elif contracts and action == 'advance':
                    contract = rng.choice(contracts)
                    advance[ContractStatus(contract.status)](contract.pk)
                elif contracts and action == 'end':
                    lifecycle.end_contract(rng.choice(contracts).pk, end_date=date(2024, 3, 1))
                elif contracts and action == 'reject':
                    lifecycle.reject_contract(rng.choice(contracts).pk)
            except RentalError:
                pass
            self.assert_invariants(vehicles)
