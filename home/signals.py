from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from .config import clear_cache
from .models import AppSetting


@receiver(post_save, sender=AppSetting)
@receiver(post_delete, sender=AppSetting)
def clear_settings_cache(sender, instance, **kwargs):
    clear_cache()
