from django.contrib.auth import get_user_model
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Profile, Role

User = get_user_model()


@receiver(post_save, sender=User, dispatch_uid="core.create_profile_for_user")
def create_profile_for_user(sender, instance, created, raw=False, **kwargs):
    if not created or raw:
        return
    Profile.objects.get_or_create(
        user=instance,
        defaults={
            "full_name": instance.get_full_name(),
            # createsuperuser accounts act as developers
            "role": Role.DEVELOPER if instance.is_superuser else Role.USER,
        },
    )
