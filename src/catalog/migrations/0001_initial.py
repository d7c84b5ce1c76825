import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("shops", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Category",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                ("name", models.CharField(max_length=255, verbose_name="nom")),
                (
                    "unit",
                    models.CharField(
                        choices=[("count", "Nombre"), ("currency", "Montant")],
                        default="count",
                        max_length=10,
                        verbose_name="unite",
                    ),
                ),
                (
                    "weight",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=7, null=True, verbose_name="poids"),
                ),
                ("sort_order", models.PositiveIntegerField(blank=True, null=True, verbose_name="ordre")),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="children",
                        to="catalog.category",
                        verbose_name="categorie parente",
                    ),
                ),
                (
                    "shop",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="categories",
                        to="shops.shop",
                        verbose_name="boutique",
                    ),
                ),
            ],
            options={
                "verbose_name": "categorie",
                "verbose_name_plural": "categories",
                "ordering": ["sort_order", "name"],
                "constraints": [
                    models.UniqueConstraint(fields=("shop", "name"), name="uniq_category_name_per_shop"),
                ],
            },
        ),
    ]
