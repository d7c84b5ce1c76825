"""Celery tasks for the sales targets module."""
from __future__ import annotations

import logging

from celery import shared_task

from targets.exceptions import ConcurrencyError, TargetsError

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=30)
def recompute_period_targets(self, *, period_id: str):
    """Recompute the UserWeekTarget rows of one period."""
    from targets.allocation import recompute
    from targets.models import Period

    period = Period.objects.get(pk=period_id)
    try:
        result = recompute(period)
    except ConcurrencyError as exc:
        # Another recompute holds the period lock.
        raise self.retry(exc=exc, countdown=5)
    logger.info("Recomputed targets for period=%s (%d rows)", period_id, result.rows_written)
    return {"period_id": str(period_id), "rows_written": result.rows_written}


@shared_task(bind=True, max_retries=3, default_retry_delay=10)
def compute_period_leaderboard(self, *, period_id: str, rules_version: str | None = None):
    """Append a leaderboard snapshot for one period."""
    from targets.leaderboard import compute_snapshot
    from targets.models import Period

    period = Period.objects.get(pk=period_id)
    try:
        snapshot = compute_snapshot(period, rules_version)
    except ConcurrencyError as exc:
        raise self.retry(exc=exc)
    return {"period_id": str(period_id), "snapshot_id": str(snapshot.pk)}


@shared_task
def refresh_published_leaderboards():
    """
    Run every hour (Celery Beat).
    Append a snapshot for every published period whose targets are computed.
    """
    from targets.leaderboard import compute_snapshot
    from targets.models import Period

    periods = Period.objects.filter(
        status=Period.Status.PUBLISHED,
        user_week_targets__isnull=False,
    ).distinct()
    refreshed = 0
    for period in periods:
        try:
            compute_snapshot(period)
            refreshed += 1
        except TargetsError as exc:
            logger.warning("Leaderboard refresh failed period=%s: %s", period.pk, exc)

    logger.info("Refreshed leaderboards for %d periods", refreshed)
    return refreshed
