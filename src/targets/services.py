"""Business-logic / service functions for sales targets periods."""
from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Iterable

from django.conf import settings
from django.db import IntegrityError, transaction

from catalog.models import Category
from targets import allocation, leaderboard, recalc
from targets.exceptions import ValidationError
from targets.locks import acquire_period_lock
from targets.models import (
    LeaderboardRow,
    LeaderboardSnapshot,
    MonthlyTarget,
    Period,
    PeriodWeek,
    WeeklyDistribution,
    WeeklyRoleWeight,
)
from targets.validators import (
    CENT,
    SCOPE_ALL,
    check_distribution_write,
    check_role_weights_write,
    parse_percentage,
    parse_role,
    validate_config as _validate_config,
)

logger = logging.getLogger("salesboard")

WEEK_LENGTH = 7

ALLOWED_TRANSITIONS = {
    Period.Status.DRAFT: {Period.Status.PUBLISHED},
    Period.Status.PUBLISHED: {Period.Status.DRAFT, Period.Status.LOCKED},
    Period.Status.LOCKED: {Period.Status.ARCHIVED},
    Period.Status.ARCHIVED: set(),
}
STRICT_STATUSES = (Period.Status.PUBLISHED, Period.Status.LOCKED)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def month_weeks(year: int, month: int) -> list[tuple[int, date, date]]:
    """Consecutive 7-day slices of the month; the last one may be shorter."""
    last_day = calendar.monthrange(year, month)[1]
    weeks = []
    start_day = 1
    index = 1
    while start_day <= last_day:
        end_day = min(start_day + WEEK_LENGTH - 1, last_day)
        weeks.append((index, date(year, month, start_day), date(year, month, end_day)))
        start_day = end_day + 1
        index += 1
    return weeks


def _parse_amount(value, *, period: Period) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(
            f"Objectif invalide: {value!r}.",
            field="target_value",
            period_id=period.pk,
        )
    if not amount.is_finite() or amount < 0:
        raise ValidationError(
            "L'objectif doit etre positif ou nul.",
            field="target_value",
            period_id=period.pk,
        )
    if amount != amount.quantize(CENT):
        raise ValidationError(
            "L'objectif accepte au plus deux decimales.",
            field="target_value",
            period_id=period.pk,
        )
    return amount.quantize(CENT)


def _lock_for_write(period: Period) -> Period:
    """Block until any running recompute commits, then re-read the period."""
    acquire_period_lock(period.pk, wait=True)
    period = Period.objects.select_for_update().get(pk=period.pk)
    if period.is_frozen:
        raise ValidationError(
            f"La periode {period.label} est {period.get_status_display().lower()}: configuration figee.",
            field="status",
            period_id=period.pk,
        )
    return period


def _week(period: Period, week_index) -> PeriodWeek:
    week = PeriodWeek.objects.filter(period=period, week_index=week_index).first()
    if week is None:
        raise ValidationError(
            f"Semaine {week_index} inconnue pour la periode {period.label}.",
            field="week_index",
            period_id=period.pk,
            week_index=week_index if isinstance(week_index, int) else None,
        )
    return week


# ---------------------------------------------------------------------------
# create_period
# ---------------------------------------------------------------------------

@transaction.atomic
def create_period(shop, year: int, month: int) -> Period:
    """Create the period with its weeks and an initial dirty recalc flag."""
    if not 1 <= int(month) <= 12:
        raise ValidationError("Le mois doit etre compris entre 1 et 12.", field="month")
    try:
        with transaction.atomic():
            period = Period.objects.create(shop=shop, year=year, month=month)
    except IntegrityError:
        raise ValidationError(
            f"Une periode {year}-{int(month):02d} existe deja pour cette boutique.",
            field="month",
        )

    PeriodWeek.objects.bulk_create(
        [
            PeriodWeek(
                period=period,
                week_index=index,
                start_date=start,
                end_date=end,
                day_count=(end - start).days + 1,
            )
            for index, start, end in month_weeks(year, month)
        ]
    )
    recalc.mark_dirty(period, "periode creee")
    logger.info("Period %s created for shop=%s", period.label, shop.pk)
    return period


# ---------------------------------------------------------------------------
# Configuration writes
# ---------------------------------------------------------------------------

@transaction.atomic
def upsert_monthly_targets(period: Period, items: Iterable[tuple]) -> list[MonthlyTarget]:
    """Set the monthly target of each ``(category, value)`` pair."""
    period = _lock_for_write(period)
    parsed = []
    for category, value in items:
        if not isinstance(category, Category):
            category = Category.objects.filter(pk=category).first()
        if category is None or category.shop_id != period.shop_id:
            raise ValidationError(
                "Categorie inconnue pour cette boutique.",
                field="category",
                period_id=period.pk,
            )
        parsed.append((category, _parse_amount(value, period=period)))

    saved = []
    for category, amount in parsed:
        target, _ = MonthlyTarget.objects.update_or_create(
            period=period,
            category=category,
            defaults={"target_value": amount},
        )
        saved.append(target)
    recalc.mark_dirty(period, "objectifs mensuels modifies")
    logger.info("Monthly targets updated for period=%s (%d categories)", period.pk, len(saved))
    return saved


@transaction.atomic
def upsert_weekly_distribution(period: Period, items: Iterable[tuple]) -> list[WeeklyDistribution]:
    """Set the percentage of each ``(week_index, percentage)`` pair.

    Rejected with ``ValidationError`` when the resulting sum exceeds 100.
    """
    period = _lock_for_write(period)
    parsed = []
    for week_index, value in items:
        week = _week(period, week_index)
        parsed.append(
            (week, parse_percentage(value, field="percentage", period=period, week_index=week.week_index))
        )
    check_distribution_write(period, parsed)

    saved = []
    for week, pct in parsed:
        entry, _ = WeeklyDistribution.objects.update_or_create(
            period=period,
            week=week,
            defaults={"percentage": pct},
        )
        saved.append(entry)
    recalc.mark_dirty(period, "repartition hebdomadaire modifiee")
    return saved


@transaction.atomic
def upsert_role_weights(period: Period, week_index: int, items: Iterable[tuple]) -> list[WeeklyRoleWeight]:
    """Set the weight of each ``(role, percentage)`` pair for one week.

    Rejected with ``ValidationError`` when the week's sum exceeds 100.
    """
    period = _lock_for_write(period)
    week = _week(period, week_index)
    parsed = [
        (
            parse_role(role, period=period, week_index=week.week_index),
            parse_percentage(value, field="weight_percentage", period=period, week_index=week.week_index),
        )
        for role, value in items
    ]
    check_role_weights_write(period, week, parsed)

    saved = []
    for role, pct in parsed:
        weight, _ = WeeklyRoleWeight.objects.update_or_create(
            period=period,
            week=week,
            role=role,
            defaults={"weight_percentage": pct},
        )
        saved.append(weight)
    recalc.mark_dirty(period, f"poids des roles modifies (semaine {week.week_index})")
    return saved


# ---------------------------------------------------------------------------
# Operation surface
# ---------------------------------------------------------------------------

def validate_config(
    period: Period,
    scope: str = SCOPE_ALL,
    *,
    strict: bool = False,
    week_index: int | None = None,
) -> None:
    _validate_config(period, scope, strict=strict, week_index=week_index)


def block_transition_when_dirty() -> bool:
    return bool(getattr(settings, "TARGETS_BLOCK_TRANSITION_WHEN_DIRTY", False))


@transaction.atomic
def request_status_transition(period: Period, new_status: str) -> Period:
    """Move ``period`` to ``new_status``.

    Publishing and locking require every percentage sum to be exactly 100.
    """
    if new_status not in Period.Status.values:
        raise ValidationError(f"Statut inconnu: {new_status!r}.", field="status", period_id=period.pk)

    acquire_period_lock(period.pk, wait=True)
    period = Period.objects.select_for_update().get(pk=period.pk)
    if period.status == new_status:
        return period
    if new_status not in ALLOWED_TRANSITIONS[period.status]:
        raise ValidationError(
            f"Transition {period.status} -> {new_status} non autorisee.",
            field="status",
            period_id=period.pk,
        )

    if new_status in STRICT_STATUSES:
        _validate_config(period, SCOPE_ALL, strict=True)
        if recalc.is_dirty(period):
            if block_transition_when_dirty():
                raise ValidationError(
                    "Les objectifs doivent etre recalcules avant ce changement de statut.",
                    field="recalc",
                    period_id=period.pk,
                )
            logger.warning(
                "Period %s moves to %s with stale derived targets (%s)",
                period.pk, new_status, recalc.get_state(period).reason,
            )

    previous = period.status
    period.status = new_status
    period.save(update_fields=["status", "updated_at"])
    logger.info("Period %s status %s -> %s", period.pk, previous, new_status)
    return period


def recompute(period: Period) -> allocation.RecomputeResult:
    return allocation.recompute(period)


def compute_snapshot(period: Period, rules_version: str | None = None) -> LeaderboardSnapshot:
    return leaderboard.compute_snapshot(period, rules_version)


def get_leaderboard_rows(snapshot: LeaderboardSnapshot) -> list[LeaderboardRow]:
    return leaderboard.get_rows(snapshot)
