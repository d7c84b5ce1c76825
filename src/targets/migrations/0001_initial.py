import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

PERCENT_VALIDATORS = [
    django.core.validators.MinValueValidator(Decimal("0")),
    django.core.validators.MaxValueValidator(Decimal("100")),
]


def _base_fields():
    return [
        ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
        ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
    ]


def _period_fk(related_name):
    return models.ForeignKey(
        on_delete=django.db.models.deletion.CASCADE,
        related_name=related_name,
        to="targets.period",
        verbose_name="periode",
    )


def _week_fk(related_name):
    return models.ForeignKey(
        on_delete=django.db.models.deletion.CASCADE,
        related_name=related_name,
        to="targets.periodweek",
        verbose_name="semaine",
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        ("shops", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Period",
            fields=_base_fields() + [
                ("year", models.PositiveSmallIntegerField(verbose_name="annee")),
                (
                    "month",
                    models.PositiveSmallIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ],
                        verbose_name="mois",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Brouillon"),
                            ("published", "Publie"),
                            ("locked", "Verrouille"),
                            ("archived", "Archive"),
                        ],
                        default="draft",
                        max_length=20,
                        verbose_name="statut",
                    ),
                ),
                (
                    "shop",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="periods",
                        to="shops.shop",
                        verbose_name="boutique",
                    ),
                ),
            ],
            options={
                "verbose_name": "periode",
                "verbose_name_plural": "periodes",
                "ordering": ["-year", "-month"],
                "constraints": [
                    models.UniqueConstraint(fields=("shop", "year", "month"), name="uniq_period_shop_month"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PeriodWeek",
            fields=_base_fields() + [
                ("week_index", models.PositiveSmallIntegerField(verbose_name="semaine")),
                ("start_date", models.DateField(verbose_name="debut")),
                ("end_date", models.DateField(verbose_name="fin")),
                ("day_count", models.PositiveSmallIntegerField(verbose_name="nb jours")),
                ("period", _period_fk("weeks")),
            ],
            options={
                "verbose_name": "semaine",
                "verbose_name_plural": "semaines",
                "ordering": ["period", "week_index"],
                "constraints": [
                    models.UniqueConstraint(fields=("period", "week_index"), name="uniq_period_week_index"),
                ],
            },
        ),
        migrations.CreateModel(
            name="MonthlyTarget",
            fields=_base_fields() + [
                (
                    "target_value",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                        verbose_name="objectif",
                    ),
                ),
                (
                    "category",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="monthly_targets",
                        to="catalog.category",
                        verbose_name="categorie",
                    ),
                ),
                ("period", _period_fk("monthly_targets")),
            ],
            options={
                "verbose_name": "objectif mensuel",
                "verbose_name_plural": "objectifs mensuels",
                "constraints": [
                    models.UniqueConstraint(fields=("period", "category"), name="uniq_monthly_target_category"),
                ],
            },
        ),
        migrations.CreateModel(
            name="WeeklyDistribution",
            fields=_base_fields() + [
                (
                    "percentage",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=5,
                        validators=PERCENT_VALIDATORS,
                        verbose_name="pourcentage",
                    ),
                ),
                ("period", _period_fk("weekly_distribution")),
                ("week", _week_fk("distribution")),
            ],
            options={
                "verbose_name": "repartition hebdomadaire",
                "verbose_name_plural": "repartitions hebdomadaires",
                "ordering": ["week__week_index"],
                "constraints": [
                    models.UniqueConstraint(fields=("period", "week"), name="uniq_weekly_distribution_week"),
                ],
            },
        ),
        migrations.CreateModel(
            name="WeeklyRoleWeight",
            fields=_base_fields() + [
                ("role", models.CharField(max_length=20, verbose_name="role")),
                (
                    "weight_percentage",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=5,
                        validators=PERCENT_VALIDATORS,
                        verbose_name="poids (%)",
                    ),
                ),
                ("period", _period_fk("role_weights")),
                ("week", _week_fk("role_weights")),
            ],
            options={
                "verbose_name": "poids de role",
                "verbose_name_plural": "poids de roles",
                "ordering": ["week__week_index", "role"],
                "constraints": [
                    models.UniqueConstraint(fields=("period", "week", "role"), name="uniq_role_weight_week_role"),
                ],
            },
        ),
        migrations.CreateModel(
            name="UserWeekTarget",
            fields=_base_fields() + [
                ("target_value", models.DecimalField(decimal_places=2, max_digits=14, verbose_name="objectif")),
                (
                    "category",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="user_week_targets",
                        to="catalog.category",
                        verbose_name="categorie",
                    ),
                ),
                ("period", _period_fk("user_week_targets")),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="week_targets",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="vendeur",
                    ),
                ),
                ("week", _week_fk("user_targets")),
            ],
            options={
                "verbose_name": "objectif hebdomadaire vendeur",
                "verbose_name_plural": "objectifs hebdomadaires vendeurs",
                "indexes": [
                    models.Index(fields=["period", "user"], name="targets_uwt_period_user_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("period", "week", "user", "category"),
                        name="uniq_user_week_target",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RecalcFlag",
            fields=_base_fields() + [
                ("is_dirty", models.BooleanField(default=True, verbose_name="a recalculer")),
                ("reason", models.CharField(blank=True, max_length=255, verbose_name="raison")),
                ("marked_at", models.DateTimeField(blank=True, null=True, verbose_name="marque le")),
                ("cleared_at", models.DateTimeField(blank=True, null=True, verbose_name="recalcule le")),
                (
                    "period",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="recalc_flag",
                        to="targets.period",
                        verbose_name="periode",
                    ),
                ),
            ],
            options={
                "verbose_name": "etat de recalcul",
                "verbose_name_plural": "etats de recalcul",
            },
        ),
        migrations.CreateModel(
            name="LeaderboardSnapshot",
            fields=_base_fields() + [
                ("rules_version", models.CharField(max_length=32, verbose_name="version des regles")),
                ("sequence", models.PositiveIntegerField(verbose_name="numero")),
                (
                    "computed_at",
                    models.DateTimeField(default=django.utils.timezone.now, verbose_name="calcule le"),
                ),
                ("period", _period_fk("leaderboard_snapshots")),
            ],
            options={
                "verbose_name": "snapshot classement",
                "verbose_name_plural": "snapshots classement",
                "ordering": ["-computed_at", "-sequence"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("period", "sequence"),
                        name="uniq_leaderboard_snapshot_sequence",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LeaderboardRow",
            fields=_base_fields() + [
                ("rank", models.PositiveIntegerField(verbose_name="rang")),
                ("score", models.DecimalField(decimal_places=2, max_digits=14, verbose_name="score")),
                (
                    "total_target",
                    models.DecimalField(decimal_places=2, max_digits=14, verbose_name="objectif total"),
                ),
                (
                    "achievement_pct",
                    models.DecimalField(decimal_places=2, max_digits=9, verbose_name="realisation (%)"),
                ),
                (
                    "trend",
                    models.CharField(
                        choices=[("up", "En hausse"), ("down", "En baisse"), ("flat", "Stable")],
                        default="flat",
                        max_length=4,
                        verbose_name="tendance",
                    ),
                ),
                ("streak_days", models.PositiveIntegerField(default=0, verbose_name="serie (jours)")),
                (
                    "snapshot",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rows",
                        to="targets.leaderboardsnapshot",
                        verbose_name="snapshot",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="leaderboard_rows",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="vendeur",
                    ),
                ),
            ],
            options={
                "verbose_name": "ligne classement",
                "verbose_name_plural": "lignes classement",
                "ordering": ["snapshot", "rank"],
                "constraints": [
                    models.UniqueConstraint(fields=("snapshot", "user"), name="uniq_leaderboard_row_user"),
                    models.UniqueConstraint(fields=("snapshot", "rank"), name="uniq_leaderboard_row_rank"),
                ],
            },
        ),
    ]
