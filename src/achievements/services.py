"""Business-logic / service functions for the achievements ledger."""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation

from django.db import transaction

from achievements.models import Achievement
from shops.models import ShopMembership

logger = logging.getLogger("salesboard")

CENT = Decimal("0.01")


def _to_amount(value) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Valeur realisee invalide: {value!r}.")
    if not amount.is_finite() or amount < 0:
        raise ValueError("La valeur realisee doit etre positive ou nulle.")
    return amount.quantize(CENT)


def _can_edit(actor, shop, owner) -> bool:
    if actor is None:
        return False
    if getattr(actor, "is_superuser", False) or actor.pk == owner.pk:
        return True
    return ShopMembership.objects.filter(
        shop=shop,
        user=actor,
        active=True,
        role__in=ShopMembership.MANAGING_ROLES,
    ).exists()


# ---------------------------------------------------------------------------
# record_achievement
# ---------------------------------------------------------------------------

def record_achievement(
    shop,
    user,
    category,
    occurred_on: date,
    achieved_value,
    source: str = Achievement.Source.MANUAL,
    actor=None,
) -> Achievement:
    """Append a new entry to the ledger.

    ``actor`` defaults to ``user``; recording on behalf of somebody else
    requires an owner or manager membership in the shop.
    """
    actor = actor or user
    if category.shop_id != shop.pk:
        raise ValueError("La categorie n'appartient pas a cette boutique.")
    if not ShopMembership.objects.filter(shop=shop, user=user, active=True).exists():
        raise ValueError("L'utilisateur n'est pas membre actif de la boutique.")
    if not _can_edit(actor, shop, user):
        raise PermissionError("Seuls les proprietaires et gestionnaires peuvent saisir pour un autre membre.")

    achievement = Achievement.objects.create(
        shop=shop,
        user=user,
        category=category,
        occurred_on=occurred_on,
        achieved_value=_to_amount(achieved_value),
        source=source,
        recorded_by=actor,
    )
    logger.info(
        "Achievement %s recorded for user=%s category=%s on %s (%s)",
        achievement.pk, user.pk, category.pk, occurred_on, achievement.achieved_value,
    )
    return achievement


# ---------------------------------------------------------------------------
# corrections
# ---------------------------------------------------------------------------

@transaction.atomic
def correct_achievement(achievement: Achievement, achieved_value, actor) -> Achievement:
    """Explicit correction of a ledger entry's value by an authorized actor."""
    achievement = Achievement.objects.select_for_update().get(pk=achievement.pk)
    if not _can_edit(actor, achievement.shop, achievement.user):
        raise PermissionError("Correction non autorisee.")

    previous = achievement.achieved_value
    achievement.achieved_value = _to_amount(achieved_value)
    achievement.recorded_by = actor
    achievement.save(update_fields=["achieved_value", "recorded_by", "updated_at"])
    logger.info(
        "Achievement %s corrected by %s: %s -> %s",
        achievement.pk, actor.pk, previous, achievement.achieved_value,
    )
    return achievement


@transaction.atomic
def delete_achievement(achievement: Achievement, actor) -> None:
    if not _can_edit(actor, achievement.shop, achievement.user):
        raise PermissionError("Suppression non autorisee.")
    logger.info("Achievement %s deleted by %s", achievement.pk, actor.pk)
    achievement.delete()


# ---------------------------------------------------------------------------
# queries
# ---------------------------------------------------------------------------

def achievements_between(shop, start: date, end: date, user=None):
    """Ledger entries of ``shop`` with ``start <= occurred_on <= end``."""
    qs = Achievement.objects.filter(
        shop=shop,
        occurred_on__gte=start,
        occurred_on__lte=end,
    )
    if user is not None:
        qs = qs.filter(user=user)
    return qs
