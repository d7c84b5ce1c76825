"""Recalc state tracker: per-period "derived targets are stale" flag.

The flag is written in the caller's transaction, so it is set and cleared
atomically with the change that causes it. It never blocks reads of the
current UserWeekTarget rows.
"""
from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from targets.locks import acquire_period_lock
from targets.models import Period, RecalcFlag

logger = logging.getLogger(__name__)


def get_state(period: Period) -> RecalcFlag:
    flag, _ = RecalcFlag.objects.get_or_create(
        period=period,
        defaults={"is_dirty": True, "reason": "etat initial", "marked_at": timezone.now()},
    )
    return flag


def is_dirty(period: Period) -> bool:
    return get_state(period).is_dirty


def mark_dirty(period: Period, reason: str) -> RecalcFlag:
    flag, _ = RecalcFlag.objects.update_or_create(
        period=period,
        defaults={"is_dirty": True, "reason": reason[:255], "marked_at": timezone.now()},
    )
    logger.debug("Period %s marked dirty: %s", period.pk, reason)
    return flag


def mark_shop_dirty(shop_id, reason: str) -> int:
    """Dirty every period of the shop that can still be recomputed.

    Each period lock is awaited first, so a membership change that lands
    while a recompute is running is marked after that recompute commits
    and is never overwritten by its ``clear()``.
    """
    count = 0
    with transaction.atomic():
        periods = Period.objects.filter(shop_id=shop_id).exclude(status__in=Period.FROZEN_STATUSES)
        for period in periods.order_by("pk"):
            acquire_period_lock(period.pk, wait=True)
            mark_dirty(period, reason)
            count += 1
    return count


def clear(period: Period) -> RecalcFlag:
    flag, _ = RecalcFlag.objects.update_or_create(
        period=period,
        defaults={"is_dirty": False, "reason": "", "cleared_at": timezone.now()},
    )
    return flag
