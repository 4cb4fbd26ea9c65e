"""
Signal handlers keeping the cancelled-count cache in step with imported
reservations.
"""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import ChannelReservation
from .services.cache import CancelledCountCache


@receiver(post_save, sender=ChannelReservation)
def invalidate_cancelled_count_on_save(sender, instance, **kwargs):
    """A saved reservation may have changed status; drop the listing's cached counts."""
    CancelledCountCache().invalidate_property(instance.listing_id)


@receiver(post_delete, sender=ChannelReservation)
def invalidate_cancelled_count_on_delete(sender, instance, **kwargs):
    CancelledCountCache().invalidate_property(instance.listing_id)
