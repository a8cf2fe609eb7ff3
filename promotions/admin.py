from __future__ import annotations

from django.contrib import admin

from .models import Voucher, VoucherRedemption


@admin.register(Voucher)
class VoucherAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "is_active",
        "discount_type",
        "value",
        "max_discount_amount",
        "min_order_value",
        "max_order_value",
        "quantity",
        "start_at",
        "end_at",
    )

    search_fields = ("code", "name")
    list_filter = ("is_active", "discount_type")
    readonly_fields = ("created_at", "updated_at")
    fieldsets = (
        (None, {"fields": ("code", "name", "is_active", "start_at", "end_at")}),
        (
            "Discount",
            {
                "fields": (
                    "discount_type",
                    "value",
                    "max_discount_amount",
                )
            },
        ),
        (
            "Eligibility",
            {
                "fields": (
                    "min_order_value",
                    "max_order_value",
                    "quantity",
                )
            },
        ),
        ("Meta", {"fields": ("created_at", "updated_at")}),
    )


@admin.register(VoucherRedemption)
class VoucherRedemptionAdmin(admin.ModelAdmin):
    list_display = ("id", "voucher", "user", "order", "created_at")
    search_fields = ("voucher__code", "user__email", "order__order_code")
    list_select_related = ("voucher", "user", "order")
    readonly_fields = ("voucher", "user", "order", "created_at")

    def has_add_permission(self, request):
        return False
