"""Models for the achievements app (daily sales ledger)."""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from core.models import TimeStampedModel


class Achievement(TimeStampedModel):
    """One logged sales result for a user, category and day.

    The ledger is append-only: several entries may exist for the same
    (user, category, day); totals are always obtained by summing.
    """

    class Source(models.TextChoices):
        MANUAL = "manual", "Saisie manuelle"
        IMPORT = "import", "Import"
        API = "api", "API"

    shop = models.ForeignKey(
        "shops.Shop",
        on_delete=models.CASCADE,
        related_name="achievements",
        verbose_name="boutique",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="achievements",
        verbose_name="vendeur",
    )
    category = models.ForeignKey(
        "catalog.Category",
        on_delete=models.PROTECT,
        related_name="achievements",
        verbose_name="categorie",
    )
    occurred_on = models.DateField("date", db_index=True)
    achieved_value = models.DecimalField(
        "valeur realisee",
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )
    source = models.CharField(
        "source",
        max_length=10,
        choices=Source.choices,
        default=Source.MANUAL,
    )
    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="recorded_achievements",
        verbose_name="saisi par",
    )

    class Meta:
        verbose_name = "realisation"
        verbose_name_plural = "realisations"
        ordering = ["-occurred_on", "-created_at"]
        indexes = [
            models.Index(fields=["shop", "occurred_on"], name="achiev_shop_day_idx"),
            models.Index(fields=["user", "occurred_on"], name="achiev_user_day_idx"),
        ]

    def __str__(self):
        return f"{self.user} - {self.category} {self.occurred_on}: {self.achieved_value}"
