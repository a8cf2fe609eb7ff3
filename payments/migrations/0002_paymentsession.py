from __future__ import annotations

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    dependencies = [
        ("checkout", "0001_initial"),
        ("payments", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="PaymentSession",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_code", models.CharField(max_length=40, unique=True)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("amount_minor", models.BigIntegerField()),
                ("currency", models.CharField(default="VND", max_length=3)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("succeeded", "Succeeded"), ("failed", "Failed"), ("expired", "Expired")], default="pending", max_length=20)),
                ("expires_at", models.DateTimeField()),
                ("params", models.JSONField(blank=True, default=dict)),
                ("redirect_url", models.TextField(blank=True, default="")),
                ("gateway_transaction_no", models.CharField(blank=True, default="", max_length=64)),
                ("response_code", models.CharField(blank=True, default="", max_length=8)),
                ("raw_response", models.JSONField(blank=True, default=dict)),
                ("consumed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("order", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="payment_session", to="checkout.order")),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [models.Index(fields=["status", "expires_at"], name="payments_ps_status_exp_idx")],
            },
        ),
    ]
