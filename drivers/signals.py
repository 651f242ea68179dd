import logging

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import DriverProfile

logger = logging.getLogger(__name__)


# ============================================================
# SIGNAL: Create a DriverProfile for every driver account
# ============================================================
@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_driver_profile(sender, instance, created, **kwargs):
    if not instance.is_driver():
        return
    profile, profile_created = DriverProfile.objects.get_or_create(user=instance)
    if profile_created:
        logger.info(f"[Verification] Driver profile {profile.pk} created for {instance.email}")
