from __future__ import annotations

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("checkout", "0001_initial"),
        ("promotions", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="VoucherRedemption",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("order", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="voucher_redemption", to="checkout.order")),
                ("user", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="voucher_redemption", to=settings.AUTH_USER_MODEL)),
                ("voucher", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="redemptions", to="promotions.voucher")),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["voucher", "-created_at"], name="promo_redemption_voucher_idx")],
            },
        ),
    ]
