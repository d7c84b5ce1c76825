"""Models for the sales targets & leaderboard module."""
from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from core.models import TimeStampedModel

PERCENT_VALIDATORS = [MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))]


class Period(TimeStampedModel):
    """One shop-month of target configuration and tracking."""

    class Status(models.TextChoices):
        DRAFT = "draft", "Brouillon"
        PUBLISHED = "published", "Publie"
        LOCKED = "locked", "Verrouille"
        ARCHIVED = "archived", "Archive"

    FROZEN_STATUSES = (Status.LOCKED, Status.ARCHIVED)

    shop = models.ForeignKey(
        "shops.Shop",
        on_delete=models.CASCADE,
        related_name="periods",
        verbose_name="boutique",
    )
    year = models.PositiveSmallIntegerField("annee")
    month = models.PositiveSmallIntegerField(
        "mois",
        validators=[MinValueValidator(1), MaxValueValidator(12)],
    )
    status = models.CharField(
        "statut",
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
    )

    class Meta:
        verbose_name = "periode"
        verbose_name_plural = "periodes"
        ordering = ["-year", "-month"]
        constraints = [
            models.UniqueConstraint(
                fields=["shop", "year", "month"],
                name="uniq_period_shop_month",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.shop} {self.label}"

    @property
    def label(self) -> str:
        return f"{self.year}-{self.month:02d}"

    @property
    def start_date(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end_date(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    @property
    def is_frozen(self) -> bool:
        return self.status in self.FROZEN_STATUSES


class PeriodWeek(TimeStampedModel):
    """A 7-day slice of a period (the final week may be shorter)."""

    period = models.ForeignKey(
        Period,
        on_delete=models.CASCADE,
        related_name="weeks",
        verbose_name="periode",
    )
    week_index = models.PositiveSmallIntegerField("semaine")  # 1-based
    start_date = models.DateField("debut")
    end_date = models.DateField("fin")
    day_count = models.PositiveSmallIntegerField("nb jours")

    class Meta:
        verbose_name = "semaine"
        verbose_name_plural = "semaines"
        ordering = ["period", "week_index"]
        constraints = [
            models.UniqueConstraint(
                fields=["period", "week_index"],
                name="uniq_period_week_index",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.period.label} S{self.week_index}"


class MonthlyTarget(TimeStampedModel):
    """Monthly target of a period for one category."""

    period = models.ForeignKey(
        Period,
        on_delete=models.CASCADE,
        related_name="monthly_targets",
        verbose_name="periode",
    )
    category = models.ForeignKey(
        "catalog.Category",
        on_delete=models.PROTECT,
        related_name="monthly_targets",
        verbose_name="categorie",
    )
    target_value = models.DecimalField(
        "objectif",
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )

    class Meta:
        verbose_name = "objectif mensuel"
        verbose_name_plural = "objectifs mensuels"
        constraints = [
            models.UniqueConstraint(
                fields=["period", "category"],
                name="uniq_monthly_target_category",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.period.label} {self.category}: {self.target_value}"


class WeeklyDistribution(TimeStampedModel):
    """Share of the monthly target assigned to one week (percent)."""

    period = models.ForeignKey(
        Period,
        on_delete=models.CASCADE,
        related_name="weekly_distribution",
        verbose_name="periode",
    )
    week = models.ForeignKey(
        PeriodWeek,
        on_delete=models.CASCADE,
        related_name="distribution",
        verbose_name="semaine",
    )
    percentage = models.DecimalField(
        "pourcentage",
        max_digits=5,
        decimal_places=2,
        validators=PERCENT_VALIDATORS,
    )

    class Meta:
        verbose_name = "repartition hebdomadaire"
        verbose_name_plural = "repartitions hebdomadaires"
        ordering = ["week__week_index"]
        constraints = [
            models.UniqueConstraint(
                fields=["period", "week"],
                name="uniq_weekly_distribution_week",
            ),
        ]


class WeeklyRoleWeight(TimeStampedModel):
    """Share of one week's target assigned to a team role (percent)."""

    period = models.ForeignKey(
        Period,
        on_delete=models.CASCADE,
        related_name="role_weights",
        verbose_name="periode",
    )
    week = models.ForeignKey(
        PeriodWeek,
        on_delete=models.CASCADE,
        related_name="role_weights",
        verbose_name="semaine",
    )
    role = models.CharField("role", max_length=20)  # ShopMembership.Role values
    weight_percentage = models.DecimalField(
        "poids (%)",
        max_digits=5,
        decimal_places=2,
        validators=PERCENT_VALIDATORS,
    )

    class Meta:
        verbose_name = "poids de role"
        verbose_name_plural = "poids de roles"
        ordering = ["week__week_index", "role"]
        constraints = [
            models.UniqueConstraint(
                fields=["period", "week", "role"],
                name="uniq_role_weight_week_role",
            ),
        ]


class UserWeekTarget(TimeStampedModel):
    """Derived per-user, per-week, per-category target.

    Written only by ``targets.allocation``; the whole set of a period is
    replaced on every recompute.
    """

    period = models.ForeignKey(
        Period,
        on_delete=models.CASCADE,
        related_name="user_week_targets",
        verbose_name="periode",
    )
    week = models.ForeignKey(
        PeriodWeek,
        on_delete=models.CASCADE,
        related_name="user_targets",
        verbose_name="semaine",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="week_targets",
        verbose_name="vendeur",
    )
    category = models.ForeignKey(
        "catalog.Category",
        on_delete=models.CASCADE,
        related_name="user_week_targets",
        verbose_name="categorie",
    )
    target_value = models.DecimalField("objectif", max_digits=14, decimal_places=2)

    class Meta:
        verbose_name = "objectif hebdomadaire vendeur"
        verbose_name_plural = "objectifs hebdomadaires vendeurs"
        constraints = [
            models.UniqueConstraint(
                fields=["period", "week", "user", "category"],
                name="uniq_user_week_target",
            ),
        ]
        indexes = [
            models.Index(fields=["period", "user"], name="targets_uwt_period_user_idx"),
        ]


class RecalcFlag(TimeStampedModel):
    """Whether the derived targets of a period are stale."""

    period = models.OneToOneField(
        Period,
        on_delete=models.CASCADE,
        related_name="recalc_flag",
        verbose_name="periode",
    )
    is_dirty = models.BooleanField("a recalculer", default=True)
    reason = models.CharField("raison", max_length=255, blank=True)
    marked_at = models.DateTimeField("marque le", null=True, blank=True)
    cleared_at = models.DateTimeField("recalcule le", null=True, blank=True)

    class Meta:
        verbose_name = "etat de recalcul"
        verbose_name_plural = "etats de recalcul"

    def __str__(self) -> str:
        state = "dirty" if self.is_dirty else "clean"
        return f"{self.period.label} ({state})"


class LeaderboardSnapshot(TimeStampedModel):
    """Immutable ranked scoring of a period at a point in time."""

    period = models.ForeignKey(
        Period,
        on_delete=models.CASCADE,
        related_name="leaderboard_snapshots",
        verbose_name="periode",
    )
    rules_version = models.CharField("version des regles", max_length=32)
    sequence = models.PositiveIntegerField("numero")
    computed_at = models.DateTimeField("calcule le", default=timezone.now)

    class Meta:
        verbose_name = "snapshot classement"
        verbose_name_plural = "snapshots classement"
        ordering = ["-computed_at", "-sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["period", "sequence"],
                name="uniq_leaderboard_snapshot_sequence",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.period.label} #{self.sequence} ({self.rules_version})"


class LeaderboardRow(TimeStampedModel):
    """One ranked user within a snapshot."""

    class Trend(models.TextChoices):
        UP = "up", "En hausse"
        DOWN = "down", "En baisse"
        FLAT = "flat", "Stable"

    snapshot = models.ForeignKey(
        LeaderboardSnapshot,
        on_delete=models.CASCADE,
        related_name="rows",
        verbose_name="snapshot",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="leaderboard_rows",
        verbose_name="vendeur",
    )
    rank = models.PositiveIntegerField("rang")
    score = models.DecimalField("score", max_digits=14, decimal_places=2)
    total_target = models.DecimalField("objectif total", max_digits=14, decimal_places=2)
    achievement_pct = models.DecimalField("realisation (%)", max_digits=20, decimal_places=2)
    trend = models.CharField(
        "tendance",
        max_length=4,
        choices=Trend.choices,
        default=Trend.FLAT,
    )
    streak_days = models.PositiveIntegerField("serie (jours)", default=0)

    class Meta:
        verbose_name = "ligne classement"
        verbose_name_plural = "lignes classement"
        ordering = ["snapshot", "rank"]
        constraints = [
            models.UniqueConstraint(
                fields=["snapshot", "user"],
                name="uniq_leaderboard_row_user",
            ),
            models.UniqueConstraint(
                fields=["snapshot", "rank"],
                name="uniq_leaderboard_row_rank",
            ),
        ]

    def __str__(self) -> str:
        return f"#{self.rank} {self.user} ({self.achievement_pct}%)"
