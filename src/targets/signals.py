"""Signals: dirty the shop's periods when team membership changes."""
from __future__ import annotations

import logging

from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

from targets import recalc

logger = logging.getLogger(__name__)


@receiver(pre_save, sender="shops.ShopMembership")
def on_membership_pre_save(sender, instance, **kwargs):
    """Capture previous role/active flag to detect changes in post_save."""
    if instance._state.adding:
        instance._previous_state = None
        return
    previous = sender.objects.filter(pk=instance.pk).only("role", "active").first()
    instance._previous_state = (previous.role, previous.active) if previous else None


@receiver(post_save, sender="shops.ShopMembership")
def on_membership_saved(sender, instance, created, **kwargs):
    previous = getattr(instance, "_previous_state", None)
    if not created and previous == (instance.role, instance.active):
        return
    count = recalc.mark_shop_dirty(instance.shop_id, f"equipe modifiee ({instance.user_id})")
    logger.debug("Membership change for shop=%s dirtied %d periods", instance.shop_id, count)


@receiver(post_delete, sender="shops.ShopMembership")
def on_membership_deleted(sender, instance, **kwargs):
    recalc.mark_shop_dirty(instance.shop_id, f"membre retire ({instance.user_id})")
