from __future__ import annotations

from django.contrib import admin

from .models import PaymentMethod, PaymentSession


@admin.register(PaymentMethod)
class PaymentMethodAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "kind",
        "provider",
        "is_active",
        "sort_order",
        "updated_at",
    )
    list_filter = ("is_active", "kind", "provider")
    search_fields = ("code", "name")
    ordering = ("sort_order", "code")


@admin.register(PaymentSession)
class PaymentSessionAdmin(admin.ModelAdmin):
    list_display = (
        "order_code",
        "provider",
        "status",
        "amount",
        "currency",
        "response_code",
        "gateway_transaction_no",
        "expires_at",
        "consumed_at",
    )
    list_filter = ("status", "provider", "currency")
    search_fields = ("order_code", "gateway_transaction_no", "request_id")
    readonly_fields = [f.name for f in PaymentSession._meta.fields]

    def has_add_permission(self, request):
        return False
