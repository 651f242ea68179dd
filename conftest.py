"""
Shared fixtures: users, drivers at each verification stage, vehicles and
contracts at each lifecycle stage.
"""

import itertools
from datetime import date

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from contracts import lifecycle
from drivers.models import DriverDocument, DocumentStatus, DocumentType, VerificationStatus
from fleet.models import Vehicle
from home import config

User = get_user_model()

REQUIRED_DOCUMENTS = (
    DocumentType.CERTIFIED_ID,
    DocumentType.PROOF_OF_RESIDENCE,
    DocumentType.DRIVERS_LICENSE,
    DocumentType.DRIVER_PHOTO,
)

_sequence = itertools.count(1)


@pytest.fixture(autouse=True)
def clear_config_cache():
    # Test transactions roll back without firing the AppSetting signals.
    config.clear_cache()
    yield
    config.clear_cache()


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email="admin@example.com",
        password="pass12345",
        first_name="Ada",
        last_name="Admin",
        role=User.ADMIN,
    )


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


def fill_profile(profile):
    user = profile.user
    user.first_name = "Thabo"
    user.last_name = "Driver"
    user.phone = "+27821234567"
    user.save()
    profile.id_number = "9001015800087"
    profile.address_line1 = "12 Long Street"
    profile.city = "Cape Town"
    profile.province = "Western Cape"
    profile.postal_code = "8001"
    profile.last_lat = "-33.924870"
    profile.last_lng = "18.424055"
    profile.last_location_at = timezone.now()
    profile.save()
    return profile


def add_documents(profile, types=REQUIRED_DOCUMENTS, status=DocumentStatus.APPROVED):
    return [
        DriverDocument.objects.create(
            profile=profile,
            type=doc_type,
            status=status,
            file_reference=f"kyc/{profile.pk}/{doc_type.lower()}.pdf",
        )
        for doc_type in types
    ]


@pytest.fixture
def make_driver(db):
    """
    Factory for driver accounts. ``stage`` is one of ``new`` (empty profile),
    ``complete`` (all fields, location and approved documents, not yet
    verified) or ``verified``.
    """
    def _make(stage='verified', email=None):
        n = next(_sequence)
        user = User.objects.create_user(
            email=email or f"driver{n}@example.com",
            password="pass12345",
            role=User.DRIVER,
        )
        profile = user.driver_profile
        if stage == 'new':
            return profile

        fill_profile(profile)
        add_documents(profile)
        profile.completion_percent = 100
        if stage == 'verified':
            profile.verification_status = VerificationStatus.VERIFIED
            profile.verified_at = timezone.now()
        profile.save()
        return profile

    return _make


@pytest.fixture
def driver_profile(make_driver):
    return make_driver('new', email="new.driver@example.com")


@pytest.fixture
def verified_driver(make_driver):
    return make_driver('verified', email="verified.driver@example.com")


@pytest.fixture
def driver_client(verified_driver):
    client = APIClient()
    client.force_authenticate(user=verified_driver.user)
    return client


@pytest.fixture
def make_vehicle(db):
    def _make(**fields):
        n = next(_sequence)
        defaults = {
            'registration_number': f"CA{n:05d}",
            'make': "Toyota",
            'model': "Corolla",
            'year': 2021,
        }
        defaults.update(fields)
        return Vehicle.objects.create(**defaults)

    return _make


@pytest.fixture
def vehicle(make_vehicle):
    return make_vehicle(registration_number="CA12345")


@pytest.fixture
def weekly_terms():
    return {
        'fee_amount_cents': 50000,
        'frequency': 'WEEKLY',
        'due_weekday': 1,
        'start_date': date(2024, 1, 3),
    }


@pytest.fixture
def make_contract(admin_user, weekly_terms):
    """
    Factory for a contract driven through the lifecycle to ``stage``:
    DRAFT, SENT_TO_DRIVER, SIGNED_BY_DRIVER or ACTIVE.
    """
    def _make(driver, vehicle, stage='DRAFT', **terms):
        values = dict(weekly_terms)
        values.update(terms)
        contract = lifecycle.create_contract(driver.pk, vehicle.pk, user=admin_user, **values)
        if stage == 'DRAFT':
            return contract
        contract = lifecycle.send_contract(contract.pk, user=admin_user)
        if stage == 'SENT_TO_DRIVER':
            return contract
        contract = lifecycle.driver_sign(
            contract.pk,
            "signatures/driver.png",
            {'agreeTerms': True, 'agreePayments': True},
            user=driver.user,
        )
        if stage == 'SIGNED_BY_DRIVER':
            return contract
        return lifecycle.activate_contract(contract.pk, user=admin_user)

    return _make


@pytest.fixture
def active_contract(make_contract, verified_driver, vehicle):
    return make_contract(verified_driver, vehicle, stage='ACTIVE')
