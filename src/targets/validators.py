"""Invariant validator for percentage-based period configuration.

Two rules, checked per scope (the period's weekly distribution, or the role
weights of one week):

* write time: the new sum may not exceed 100.00;
* publish/lock time (``strict=True``): the sum must equal 100.00 within
  ``TARGETS_PERCENT_TOLERANCE``.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Iterable

from django.conf import settings
from django.db.models import Sum

from shops.models import ShopMembership
from targets.exceptions import ValidationError
from targets.models import Period, PeriodWeek, WeeklyDistribution, WeeklyRoleWeight

HUNDRED = Decimal("100")
ZERO = Decimal("0")
CENT = Decimal("0.01")

SCOPE_DISTRIBUTION = "distribution"
SCOPE_ROLE_WEIGHTS = "role_weights"
SCOPE_ALL = "all"
SCOPES = (SCOPE_DISTRIBUTION, SCOPE_ROLE_WEIGHTS, SCOPE_ALL)


def percent_tolerance() -> Decimal:
    return Decimal(str(getattr(settings, "TARGETS_PERCENT_TOLERANCE", "0.01")))


def parse_percentage(value, *, field: str, period: Period, week_index: int | None = None) -> Decimal:
    """Exact 2-decimal percentage in [0, 100]."""
    try:
        pct = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(
            f"Pourcentage invalide: {value!r}.",
            field=field,
            period_id=period.pk,
            week_index=week_index,
        )
    if not pct.is_finite() or pct < ZERO or pct > HUNDRED:
        raise ValidationError(
            "Le pourcentage doit etre compris entre 0 et 100.",
            field=field,
            period_id=period.pk,
            week_index=week_index,
        )
    if pct != pct.quantize(CENT):
        raise ValidationError(
            "Le pourcentage accepte au plus deux decimales.",
            field=field,
            period_id=period.pk,
            week_index=week_index,
        )
    return pct.quantize(CENT)


def parse_role(role, *, period: Period, week_index: int) -> str:
    if role not in ShopMembership.Role.values:
        raise ValidationError(
            f"Role inconnu: {role!r}.",
            field="role",
            period_id=period.pk,
            week_index=week_index,
            roles=[str(role)],
        )
    return role


# ---------------------------------------------------------------------------
# Sums
# ---------------------------------------------------------------------------

def distribution_total(period: Period) -> Decimal:
    total = WeeklyDistribution.objects.filter(period=period).aggregate(total=Sum("percentage"))["total"]
    return total or ZERO


def role_weight_total(period: Period, week: PeriodWeek) -> Decimal:
    total = WeeklyRoleWeight.objects.filter(period=period, week=week).aggregate(
        total=Sum("weight_percentage")
    )["total"]
    return total or ZERO


# ---------------------------------------------------------------------------
# Write-time checks (new sum <= 100)
# ---------------------------------------------------------------------------

def check_distribution_write(
    period: Period,
    items: Iterable[tuple[PeriodWeek, Decimal]],
) -> Decimal:
    """Reject the upsert when the resulting distribution would exceed 100."""
    current = dict(
        WeeklyDistribution.objects.filter(period=period).values_list("week_id", "percentage")
    )
    for week, pct in items:
        current[week.pk] = pct
    total = sum(current.values(), ZERO)
    if total > HUNDRED:
        raise ValidationError(
            f"La repartition hebdomadaire depasserait 100% ({total}%).",
            field="weekly_distribution",
            period_id=period.pk,
            total=total,
        )
    return total


def check_role_weights_write(
    period: Period,
    week: PeriodWeek,
    items: Iterable[tuple[str, Decimal]],
) -> Decimal:
    """Reject the upsert when the week's role weights would exceed 100."""
    current = dict(
        WeeklyRoleWeight.objects.filter(period=period, week=week).values_list(
            "role", "weight_percentage"
        )
    )
    for role, pct in items:
        current[role] = pct
    total = sum(current.values(), ZERO)
    if total > HUNDRED:
        raise ValidationError(
            f"Les poids de la semaine {week.week_index} depasseraient 100% ({total}%).",
            field="role_weights",
            period_id=period.pk,
            week_index=week.week_index,
            roles=sorted(current),
            total=total,
        )
    return total


# ---------------------------------------------------------------------------
# Scope validation
# ---------------------------------------------------------------------------

def validate_distribution(period: Period, *, strict: bool = False) -> None:
    total = distribution_total(period)
    if total > HUNDRED:
        raise ValidationError(
            f"La repartition hebdomadaire depasse 100% ({total}%).",
            field="weekly_distribution",
            period_id=period.pk,
            total=total,
        )
    if not strict:
        return
    if not period.weeks.exists():
        raise ValidationError(
            "La periode ne contient aucune semaine.",
            field="weeks",
            period_id=period.pk,
            total=total,
        )
    if abs(total - HUNDRED) > percent_tolerance():
        raise ValidationError(
            f"La repartition hebdomadaire doit totaliser 100% (actuel: {total}%).",
            field="weekly_distribution",
            period_id=period.pk,
            total=total,
        )


def validate_role_weights(period: Period, week: PeriodWeek, *, strict: bool = False) -> None:
    weights = dict(
        WeeklyRoleWeight.objects.filter(period=period, week=week).values_list(
            "role", "weight_percentage"
        )
    )
    total = sum(weights.values(), ZERO)
    if total > HUNDRED or (strict and abs(total - HUNDRED) > percent_tolerance()):
        expected = "doivent totaliser" if strict else "ne peuvent depasser"
        raise ValidationError(
            f"Les poids de la semaine {week.week_index} {expected} 100% (actuel: {total}%).",
            field="role_weights",
            period_id=period.pk,
            week_index=week.week_index,
            roles=sorted(weights),
            total=total,
        )


def find_violations(
    period: Period,
    scope: str = SCOPE_ALL,
    *,
    strict: bool = False,
    week_index: int | None = None,
) -> list[ValidationError]:
    """Every violated rule in ``scope``, in week order."""
    if scope not in SCOPES:
        raise ValueError(f"Unknown validation scope: {scope}")

    errors: list[ValidationError] = []
    if scope in (SCOPE_DISTRIBUTION, SCOPE_ALL):
        try:
            validate_distribution(period, strict=strict)
        except ValidationError as exc:
            errors.append(exc)

    if scope in (SCOPE_ROLE_WEIGHTS, SCOPE_ALL):
        weeks = period.weeks.order_by("week_index")
        if week_index is not None:
            weeks = weeks.filter(week_index=week_index)
        for week in weeks:
            try:
                validate_role_weights(period, week, strict=strict)
            except ValidationError as exc:
                errors.append(exc)
    return errors


def validate_config(
    period: Period,
    scope: str = SCOPE_ALL,
    *,
    strict: bool = False,
    week_index: int | None = None,
) -> None:
    """Raise the first violation found in ``scope``."""
    errors = find_violations(period, scope, strict=strict, week_index=week_index)
    if errors:
        raise errors[0]
