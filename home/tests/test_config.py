import pytest

from home import config
from home.exceptions import ValidationError
from home.models import AppSetting, AuditLog


@pytest.mark.django_db
class TestConfig:

    def test_defaults(self):
        assert config.grace_period_days() == 3
        assert config.horizon_periods() == 4
        assert config.auto_generate_next_payment() is True
        assert config.progress_weights() == {'profile': 40, 'documents': 40, 'location': 20}
        assert config.readiness_warnings() == []

    def test_stored_value_overrides_default_and_cache_is_cleared(self):
        assert config.grace_period_days() == 3
        AppSetting.objects.create(key='payments.graceDays', value=7)
        assert config.grace_period_days() == 7

        AppSetting.objects.filter(key='payments.graceDays').delete()
        # Queryset delete sends post_delete per row
        assert config.grace_period_days() == 3

    def test_update_settings_normalizes_and_audits(self, admin_user):
        effective = config.update_settings(
            {'payments.graceDays': '5', 'onboarding.locationRequired': 'false'}, user=admin_user
        )
        assert effective['payments.graceDays'] == 5
        assert config.location_required() is False
        assert AuditLog.objects.filter(action_type='SETTINGS_UPDATED').count() == 2

    @pytest.mark.parametrize('key, value', [
        ('payments.graceDays', -1),
        ('payments.graceDays', 'soon'),
        ('onboarding.submissionThreshold', 101),
        ('contracts.allowedFrequencies', ['HOURLY']),
        ('onboarding.requiredDocuments', ['SELFIE']),
        ('onboarding.progressWeights', {'profile': 50, 'bonus': 50}),
        ('onboarding.progressWeights', {'profile': -10}),
        ('payments.autoGenerateNext', 'maybe'),
        ('no.such.key', 1),
    ])
    def test_invalid_values_rejected(self, key, value):
        with pytest.raises(ValidationError):
            config.update_settings({key: value})
        assert not AppSetting.objects.exists()

    def test_inconsistent_weights_are_a_readiness_warning(self):
        config.update_settings({'onboarding.progressWeights': {'profile': 50, 'documents': 40, 'location': 20}})
        assert config.readiness_warnings() == ["Progress weights sum to 110, expected 100"]
