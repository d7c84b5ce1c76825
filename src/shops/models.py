"""Models for the shops app (shops and team memberships)."""
from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


class Shop(TimeStampedModel):
    """A point of sale whose team shares monthly sales targets."""

    name = models.CharField("nom", max_length=255)
    timezone = models.CharField("fuseau horaire", max_length=64, default="UTC")
    is_active = models.BooleanField("actif", default=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "boutique"
        verbose_name_plural = "boutiques"

    def __str__(self):
        return self.name


class ShopMembership(TimeStampedModel):
    """Links a user to a shop with a team role.

    Only ``active`` memberships take part in target allocation.
    """

    class Role(models.TextChoices):
        OWNER = "owner", "Proprietaire"
        MANAGER = "manager", "Gestionnaire"
        SALES_JUNIOR = "sales_junior", "Vendeur junior"
        SALES_SENIOR = "sales_senior", "Vendeur senior"

    MANAGING_ROLES = (Role.OWNER, Role.MANAGER)

    shop = models.ForeignKey(
        Shop,
        on_delete=models.CASCADE,
        related_name="memberships",
        verbose_name="boutique",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="memberships",
        verbose_name="utilisateur",
    )
    role = models.CharField(
        "role",
        max_length=20,
        choices=Role.choices,
        default=Role.SALES_JUNIOR,
        db_index=True,
    )
    active = models.BooleanField("actif", default=True)
    joined_at = models.DateTimeField("rejoint le", auto_now_add=True)

    class Meta:
        verbose_name = "membre boutique"
        verbose_name_plural = "membres boutique"
        constraints = [
            models.UniqueConstraint(
                fields=["shop", "user"],
                name="uniq_shop_membership_user",
            ),
        ]
        indexes = [
            models.Index(fields=["shop", "role", "active"], name="shops_member_role_idx"),
        ]

    def __str__(self):
        return f"{self.user} - {self.shop} ({self.role})"

    @property
    def can_manage_targets(self) -> bool:
        return self.active and self.role in self.MANAGING_ROLES
