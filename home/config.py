"""
Typed access to operator configuration.

Values live in the AppSetting table and fall back to
settings.RENTAL_CONFIG_DEFAULTS. The whole key/value map is cached; the
AppSetting signals in home/signals.py clear the cache on every write.
"""

import logging

from django.conf import settings
from django.core.cache import cache
from django.db import transaction

from .exceptions import ValidationError

logger = logging.getLogger(__name__)

CONFIG_CACHE_KEY = "rental_app_settings"

FREQUENCIES = ("DAILY", "WEEKLY", "MONTHLY")
PROGRESS_BUCKETS = ("profile", "documents", "location")
PROFILE_FIELDS = ("fullName", "phone", "idNumber", "address")

INT_KEYS = (
    "payments.graceDays",
    "payments.horizonPeriods",
    "payments.reminderDaysBefore",
    "onboarding.submissionThreshold",
)
BOOL_KEYS = (
    "payments.autoGenerateNext",
    "onboarding.locationRequired",
)


def _defaults():
    return settings.RENTAL_CONFIG_DEFAULTS


def load_settings():
    """Return the stored key/value map (cached)."""
    values = cache.get(CONFIG_CACHE_KEY)
    if values is None:
        from .models import AppSetting

        values = dict(AppSetting.objects.values_list("key", "value"))
        cache.set(CONFIG_CACHE_KEY, values, timeout=settings.RENTAL_CONFIG_CACHE_TIMEOUT)
    return values


def clear_cache():
    cache.delete(CONFIG_CACHE_KEY)


def get_setting(key, default=None):
    values = load_settings()
    if key in values and values[key] is not None:
        return values[key]
    return _defaults().get(key, default)


def get_int(key):
    value = get_setting(key)
    try:
        return int(value)
    except (TypeError, ValueError):
        fallback = _defaults()[key]
        logger.warning(f"[Config] {key}={value!r} is not an integer, using {fallback}")
        return fallback


def get_bool(key):
    value = get_setting(key)
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def all_settings():
    """Effective configuration: defaults overlaid with stored values."""
    effective = dict(_defaults())
    effective.update({k: v for k, v in load_settings().items() if v is not None})
    return effective


# ========================================
# TYPED GETTERS
# ========================================

def grace_period_days():
    return get_int("payments.graceDays")


def horizon_periods():
    return get_int("payments.horizonPeriods")


def reminder_days_before():
    return get_int("payments.reminderDaysBefore")


def auto_generate_next_payment():
    return get_bool("payments.autoGenerateNext")


def allowed_frequencies():
    return list(get_setting("contracts.allowedFrequencies") or [])


def contract_terms_text():
    return get_setting("contracts.termsText") or ""


def required_documents():
    return list(get_setting("onboarding.requiredDocuments") or [])


def required_profile_fields():
    return list(get_setting("onboarding.requiredFields") or [])


def location_required():
    return get_bool("onboarding.locationRequired")


def submission_threshold():
    return get_int("onboarding.submissionThreshold")


def progress_weights():
    weights = get_setting("onboarding.progressWeights") or {}
    return {bucket: int(weights.get(bucket, 0) or 0) for bucket in PROGRESS_BUCKETS}


def progress_weights_warning(weights=None):
    """
    Return a warning message when the progress weights do not sum to 100,
    otherwise None. Completion is still computed with inconsistent weights;
    this only drives the operator-facing flag.
    """
    weights = weights if weights is not None else progress_weights()
    total = sum(weights.values())
    if total != 100:
        return f"Progress weights sum to {total}, expected 100"
    return None


def readiness_warnings():
    """Configuration problems an operator should fix."""
    warnings = []
    weights_warning = progress_weights_warning()
    if weights_warning:
        warnings.append(weights_warning)
    if not required_documents():
        warnings.append("No required documents configured")
    if not allowed_frequencies():
        warnings.append("No contract frequencies allowed")
    if not contract_terms_text().strip():
        warnings.append("Contract terms text is empty")
    return warnings


# ========================================
# VALIDATION / WRITES
# ========================================

def validate_setting(key, value):
    """Validate one configuration value; returns the normalized value."""
    from drivers.models import DocumentType

    if key not in _defaults():
        raise ValidationError({key: "Unknown setting"})

    if key in INT_KEYS:
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ValidationError({key: "Must be an integer"})
        if number < 0:
            raise ValidationError({key: "Must be zero or greater"})
        if key == "onboarding.submissionThreshold" and number > 100:
            raise ValidationError({key: "Must be between 0 and 100"})
        return number

    if key in BOOL_KEYS:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        raise ValidationError({key: "Must be a boolean"})

    if key == "contracts.allowedFrequencies":
        if not isinstance(value, list) or any(v not in FREQUENCIES for v in value):
            raise ValidationError({key: f"Must be a list drawn from {', '.join(FREQUENCIES)}"})
        return list(dict.fromkeys(value))

    if key == "onboarding.requiredDocuments":
        if not isinstance(value, list) or any(v not in DocumentType.values for v in value):
            raise ValidationError({key: "Must be a list of known document types"})
        return list(dict.fromkeys(value))

    if key == "onboarding.requiredFields":
        if not isinstance(value, list) or any(v not in PROFILE_FIELDS for v in value):
            raise ValidationError({key: f"Must be a list drawn from {', '.join(PROFILE_FIELDS)}"})
        return list(dict.fromkeys(value))

    if key == "onboarding.progressWeights":
        if not isinstance(value, dict) or set(value) - set(PROGRESS_BUCKETS):
            raise ValidationError({key: f"Keys must be {', '.join(PROGRESS_BUCKETS)}"})
        normalized = {}
        for bucket in PROGRESS_BUCKETS:
            try:
                weight = int(value.get(bucket, 0))
            except (TypeError, ValueError):
                raise ValidationError({key: f"Weight for {bucket} must be an integer"})
            if weight < 0:
                raise ValidationError({key: f"Weight for {bucket} must be zero or greater"})
            normalized[bucket] = weight
        return normalized

    if key == "contracts.termsText":
        if not isinstance(value, str):
            raise ValidationError({key: "Must be text"})
        return value

    return value


def update_settings(pairs, user=None):
    """Validate and upsert several settings in one transaction."""
    from .models import AppSetting, AuditLog

    normalized = {key: validate_setting(key, value) for key, value in pairs.items()}

    with transaction.atomic():
        for key, value in normalized.items():
            setting, _ = AppSetting.objects.update_or_create(
                key=key,
                defaults={"value": value, "updated_by": user},
            )
            AuditLog.record('SETTINGS_UPDATED', setting, user=user, key=key, value=value)

    clear_cache()
    logger.info(f"[Config] Updated settings: {', '.join(sorted(normalized))}")
    return all_settings()
