import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Shop",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                ("name", models.CharField(max_length=255, verbose_name="nom")),
                ("timezone", models.CharField(default="UTC", max_length=64, verbose_name="fuseau horaire")),
                ("is_active", models.BooleanField(default=True, verbose_name="actif")),
            ],
            options={
                "verbose_name": "boutique",
                "verbose_name_plural": "boutiques",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="ShopMembership",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("owner", "Proprietaire"),
                            ("manager", "Gestionnaire"),
                            ("sales_junior", "Vendeur junior"),
                            ("sales_senior", "Vendeur senior"),
                        ],
                        db_index=True,
                        default="sales_junior",
                        max_length=20,
                        verbose_name="role",
                    ),
                ),
                ("active", models.BooleanField(default=True, verbose_name="actif")),
                ("joined_at", models.DateTimeField(auto_now_add=True, verbose_name="rejoint le")),
                (
                    "shop",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="memberships",
                        to="shops.shop",
                        verbose_name="boutique",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="memberships",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="utilisateur",
                    ),
                ),
            ],
            options={
                "verbose_name": "membre boutique",
                "verbose_name_plural": "membres boutique",
                "indexes": [
                    models.Index(fields=["shop", "role", "active"], name="shops_member_role_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("shop", "user"), name="uniq_shop_membership_user"),
                ],
            },
        ),
    ]
