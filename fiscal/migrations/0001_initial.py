from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="RangeConfig",
            fields=[
                (
                    "kind",
                    models.CharField(
                        choices=[("NCF", "Comprobante fiscal (NCF)"), ("CF", "Consumidor final (CF)")],
                        max_length=8,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "range_start",
                    models.CharField(
                        help_text="First number of the authorized range (e.g. B01000000001).",
                        max_length=32,
                    ),
                ),
                (
                    "range_end",
                    models.CharField(
                        help_text="Last number of the authorized range, same prefix and width.",
                        max_length=32,
                    ),
                ),
                (
                    "last_assigned",
                    models.CharField(
                        blank=True,
                        help_text="Last number issued. Empty means nothing was issued yet.",
                        max_length=32,
                        null=True,
                    ),
                ),
                (
                    "released_numbers",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Numbers whose invoice was deleted. Audit trail, never reused.",
                    ),
                ),
                ("version", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Fiscal number range",
                "verbose_name_plural": "Fiscal number ranges",
                "db_table": "fiscal_range_config",
                "ordering": ["kind"],
            },
        ),
    ]
