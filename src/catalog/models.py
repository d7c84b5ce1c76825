"""Models for the catalog app (sales categories)."""
from django.db import models

from core.models import TimeStampedModel


class Category(TimeStampedModel):
    """Sales category with optional tree structure via self-referencing FK.

    ``unit`` only tells the UI how to render values (a plain count or an
    amount of money); every value is stored as a 2-decimal number either way.
    """

    class Unit(models.TextChoices):
        COUNT = "count", "Nombre"
        CURRENCY = "currency", "Montant"

    shop = models.ForeignKey(
        "shops.Shop",
        on_delete=models.CASCADE,
        related_name="categories",
        verbose_name="boutique",
    )
    name = models.CharField("nom", max_length=255)
    unit = models.CharField(
        "unite",
        max_length=10,
        choices=Unit.choices,
        default=Unit.COUNT,
    )
    parent = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="children",
        verbose_name="categorie parente",
    )
    weight = models.DecimalField(
        "poids",
        max_digits=7,
        decimal_places=2,
        null=True,
        blank=True,
    )
    sort_order = models.PositiveIntegerField("ordre", null=True, blank=True)

    class Meta:
        verbose_name = "categorie"
        verbose_name_plural = "categories"
        ordering = ["sort_order", "name"]
        constraints = [
            models.UniqueConstraint(
                fields=["shop", "name"],
                name="uniq_category_name_per_shop",
            ),
        ]

    def __str__(self):
        return self.name
