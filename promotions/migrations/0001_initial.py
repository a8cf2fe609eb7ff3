from __future__ import annotations

from decimal import Decimal

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Voucher",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.SlugField(max_length=40, unique=True)),
                ("name", models.CharField(blank=True, default="", max_length=150)),
                ("discount_type", models.CharField(choices=[("percentage", "Percentage"), ("fixed", "Fixed amount")], max_length=20)),
                ("value", models.DecimalField(decimal_places=2, max_digits=14)),
                ("min_order_value", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("max_order_value", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("max_discount_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("quantity", models.PositiveIntegerField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("start_at", models.DateTimeField(blank=True, null=True)),
                ("end_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["code"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("value__gte", 0)), name="chk_voucher_value_gte_0"),
                ],
            },
        ),
    ]
