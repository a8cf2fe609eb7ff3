from __future__ import annotations

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("payments", "0002_paymentsession"),
    ]

    operations = [
        migrations.AddField(
            model_name="paymentsession",
            name="provider",
            field=models.CharField(default="vnpay", max_length=50),
        ),
        migrations.AddField(
            model_name="paymentsession",
            name="request_id",
            field=models.CharField(blank=True, default="", max_length=80),
        ),
    ]
