from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("fiscal", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="rangeconfig",
            name="issued_marks",
            field=models.JSONField(
                blank=True,
                default=list,
                help_text="Highest number issued in each series left behind by a rotation.",
            ),
        ),
    ]
