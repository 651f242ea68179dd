import pytest
from django.contrib.admin.sites import site
from django.test import RequestFactory

from contracts.models import RentalContract


@pytest.fixture
def contract_admin():
    return site._registry[RentalContract]


@pytest.fixture
def admin_request(admin_user):
    request = RequestFactory().get('/admin/contracts/rentalcontract/')
    request.user = admin_user
    return request


@pytest.mark.django_db
class TestRentalContractAdmin:

    def test_draft_terms_are_editable(self, contract_admin, admin_request, make_contract, verified_driver, vehicle):
        contract = make_contract(verified_driver, vehicle, stage='DRAFT')
        readonly = contract_admin.get_readonly_fields(admin_request, contract)

        assert 'vehicle' not in readonly
        assert 'fee_amount_cents' not in readonly
        assert 'status' in readonly

    @pytest.mark.parametrize('stage', ['SENT_TO_DRIVER', 'SIGNED_BY_DRIVER', 'ACTIVE'])
    def test_terms_are_locked_after_draft(self, contract_admin, admin_request, make_contract, verified_driver,
                                          vehicle, stage):
        contract = make_contract(verified_driver, vehicle, stage=stage)
        readonly = contract_admin.get_readonly_fields(admin_request, contract)

        for field in ('driver', 'vehicle', 'fee_amount_cents', 'frequency', 'due_weekday',
                      'start_date', 'end_date', 'terms_text'):
            assert field in readonly

    def test_add_form_leaves_terms_editable(self, contract_admin, admin_request):
        assert 'vehicle' not in contract_admin.get_readonly_fields(admin_request)

    def test_change_form_does_not_offer_vehicle_for_active_contract(self, contract_admin, admin_request,
                                                                    active_contract):
        form_class = contract_admin.get_form(admin_request, active_contract, change=True)
        assert 'vehicle' not in form_class.base_fields
        assert 'fee_amount_cents' not in form_class.base_fields
