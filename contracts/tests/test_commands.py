from datetime import date

import pytest
from django.core.management import CommandError, call_command

from contracts.models import ContractStatus


@pytest.mark.django_db
class TestExpireContractsCommand:

    def test_expires_as_of_date(self, make_contract, verified_driver, vehicle):
        contract = make_contract(verified_driver, vehicle, stage='ACTIVE', end_date=date(2024, 2, 1))
        call_command('expire_contracts', '--date', '2024-02-02')
        contract.refresh_from_db()
        assert contract.status == ContractStatus.EXPIRED

    def test_invalid_date(self, db):
        with pytest.raises(CommandError):
            call_command('expire_contracts', '--date', 'tomorrow')
