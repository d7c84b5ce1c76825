from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("targets", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="leaderboardrow",
            name="achievement_pct",
            field=models.DecimalField(decimal_places=2, max_digits=20, verbose_name="realisation (%)"),
        ),
    ]
