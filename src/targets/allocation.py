"""Allocation engine: monthly targets -> per-user weekly targets.

Two layers of percentage distribution are applied per category:

    weekly_target = monthly_target * week_pct / 100
    role_target   = weekly_target * role_pct / 100

Intermediate values keep full precision; the role target is rounded to
cents once, then split evenly between the active members of the role.
Leftover cents go one by one to the first members in canonical order
(ascending user id as string), so the shares always add up to the role
target exactly.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, localcontext

from django.db import DatabaseError, transaction
from django.utils import timezone

from shops.models import ShopMembership
from targets import recalc
from targets.exceptions import ConcurrencyError, RecomputeError
from targets.locks import acquire_period_lock
from targets.models import (
    MonthlyTarget,
    Period,
    UserWeekTarget,
    WeeklyDistribution,
    WeeklyRoleWeight,
)
from targets.validators import HUNDRED, ZERO, CENT, validate_config

logger = logging.getLogger(__name__)

# Enough digits for 14-digit amounts multiplied by two percentages.
_PRECISION = 40


@dataclass(frozen=True)
class UnallocatedShare:
    week_index: int
    role: str
    category_id: object
    amount: Decimal


@dataclass
class RecomputeResult:
    period_id: object
    rows_written: int = 0
    unallocated: list[UnallocatedShare] = field(default_factory=list)
    computed_at: datetime | None = None


# ---------------------------------------------------------------------------
# Pure arithmetic
# ---------------------------------------------------------------------------

def weekly_amount(monthly_target: Decimal, week_pct: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return monthly_target * week_pct / HUNDRED


def role_amount(weekly_target: Decimal, role_pct: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return weekly_target * role_pct / HUNDRED


def split_evenly(amount: Decimal, member_ids: list) -> list[tuple[object, Decimal]]:
    """Split ``amount`` (rounded to cents) between ``member_ids`` without drift.

    ``member_ids`` must already be in canonical order; the first
    ``remainder / 0.01`` of them receive one extra cent.
    """
    n = len(member_ids)
    if n == 0:
        return []
    total = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    base = (total / n).quantize(CENT, rounding=ROUND_DOWN)
    remainder = total - base * n
    extra_cents = int(remainder / CENT)
    shares = []
    for position, member_id in enumerate(member_ids):
        share = base + CENT if position < extra_cents else base
        shares.append((member_id, share))
    return shares


def canonical_order(user_ids) -> list:
    return sorted(user_ids, key=str)


# ---------------------------------------------------------------------------
# Recompute
# ---------------------------------------------------------------------------

def _active_members_by_role(period: Period) -> dict[str, list]:
    members: dict[str, list] = defaultdict(list)
    rows = ShopMembership.objects.filter(shop_id=period.shop_id, active=True).values_list(
        "role", "user_id"
    )
    for role, user_id in rows:
        members[role].append(user_id)
    return {role: canonical_order(ids) for role, ids in members.items()}


def build_allocation(period: Period) -> tuple[list[UserWeekTarget], list[UnallocatedShare]]:
    """Compute (without saving) the UserWeekTarget rows of ``period``."""
    weeks = list(period.weeks.order_by("week_index"))
    distribution = dict(
        WeeklyDistribution.objects.filter(period=period).values_list("week_id", "percentage")
    )
    weights: dict = defaultdict(list)
    for week_id, role, pct in (
        WeeklyRoleWeight.objects.filter(period=period)
        .order_by("role")
        .values_list("week_id", "role", "weight_percentage")
    ):
        weights[week_id].append((role, pct))
    monthly = list(
        MonthlyTarget.objects.filter(period=period)
        .order_by("category_id")
        .values_list("category_id", "target_value")
    )
    members = _active_members_by_role(period)

    rows: list[UserWeekTarget] = []
    unallocated: list[UnallocatedShare] = []
    for category_id, monthly_target in monthly:
        for week in weeks:
            week_target = weekly_amount(monthly_target, distribution.get(week.pk, ZERO))
            for role, role_pct in weights.get(week.pk, []):
                if role_pct <= ZERO:
                    continue
                target = role_amount(week_target, role_pct)
                role_members = members.get(role, [])
                if not role_members:
                    share = UnallocatedShare(
                        week_index=week.week_index,
                        role=role,
                        category_id=category_id,
                        amount=target.quantize(CENT, rounding=ROUND_HALF_UP),
                    )
                    unallocated.append(share)
                    logger.warning(
                        "Unallocated target period=%s week=%s role=%s category=%s amount=%s: no active member",
                        period.pk, week.week_index, role, category_id, share.amount,
                    )
                    continue
                for user_id, value in split_evenly(target, role_members):
                    rows.append(
                        UserWeekTarget(
                            period=period,
                            week=week,
                            user_id=user_id,
                            category_id=category_id,
                            target_value=value,
                        )
                    )
    return _merge_rows(rows), unallocated


def _merge_rows(rows: list[UserWeekTarget]) -> list[UserWeekTarget]:
    """One row per (week, user, category); a user only ever holds one role
    per shop, but the merge keeps the storage constraint safe regardless."""
    merged: dict[tuple, UserWeekTarget] = {}
    for row in rows:
        key = (row.week_id, row.user_id, row.category_id)
        if key in merged:
            merged[key].target_value += row.target_value
        else:
            merged[key] = row
    return list(merged.values())


def recompute(period: Period) -> RecomputeResult:
    """Replace every UserWeekTarget of ``period`` in one transaction.

    Raises ``ConcurrencyError`` when another recompute holds the period,
    ``ValidationError`` when a percentage sum exceeds 100 and
    ``RecomputeError`` for frozen periods, missing weeks or storage failures.
    Nothing is written unless everything succeeds.
    """
    try:
        with transaction.atomic():
            if not acquire_period_lock(period.pk, wait=False):
                raise ConcurrencyError(
                    f"Un recalcul est deja en cours pour la periode {period.label}."
                )
            period = Period.objects.select_for_update().get(pk=period.pk)
            if period.is_frozen:
                raise RecomputeError(
                    f"La periode {period.label} est {period.get_status_display().lower()}: recalcul impossible."
                )
            if not period.weeks.exists():
                raise RecomputeError(f"La periode {period.label} ne contient aucune semaine.")
            validate_config(period, strict=False)

            rows, unallocated = build_allocation(period)
            UserWeekTarget.objects.filter(period=period).delete()
            UserWeekTarget.objects.bulk_create(rows)
            recalc.clear(period)
    except DatabaseError as exc:
        logger.exception("Recompute failed for period=%s", period.pk)
        raise RecomputeError(f"Erreur de stockage pendant le recalcul: {exc}") from exc

    result = RecomputeResult(
        period_id=period.pk,
        rows_written=len(rows),
        unallocated=unallocated,
        computed_at=timezone.now(),
    )
    logger.info(
        "Recomputed period=%s: %d user week targets, %d unallocated shares",
        period.pk, result.rows_written, len(unallocated),
    )
    return result
