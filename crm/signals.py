from django.db.models.signals import post_migrate, post_save
from django.dispatch import receiver

from .models import AppSettings, User


@receiver(post_migrate)
def create_default_app_settings(sender, **kwargs):
    if sender.name != 'crm':
        return
    AppSettings.objects.get_or_create(singleton=True)


@receiver(post_save, sender=User)
def create_default_module_access(sender, instance: User, created: bool, **kwargs):
    """Every new account starts with its role's default module permissions."""
    if kwargs.get('raw') or not created:
        return
    from .permissions import ensure_module_access

    ensure_module_access(instance)
