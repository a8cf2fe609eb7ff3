from __future__ import annotations

from django.contrib import admin
from django.contrib import messages
from django.http import HttpRequest

from api.errors import ShopError

from .models import Cart, CartItem, Order, OrderLine
from .wiring import get_services


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    autocomplete_fields = ("variant",)


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "session_key", "updated_at")
    search_fields = ("user__email", "session_key")
    inlines = (CartItemInline,)


class OrderLineInline(admin.TabularInline):
    model = OrderLine
    extra = 0
    fields = ("sku", "name", "color", "size", "unit_price", "qty", "line_total")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "order_code",
        "user",
        "status",
        "payment_status",
        "payment_kind",
        "final_total",
        "voucher_code",
        "created_at",
    )
    list_filter = ("status", "payment_status", "payment_kind")
    search_fields = ("order_code", "user__email", "gateway_transaction_no")
    inlines = (OrderLineInline,)
    # Status only changes through the actions below.
    readonly_fields = [f.name for f in Order._meta.fields]

    actions = ("mark_processing", "mark_shipped", "mark_delivered", "cancel_selected")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.status != Order.Status.CANCELLED:
            return False
        return super().has_delete_permission(request, obj)

    def delete_model(self, request, obj):
        get_services().orders.delete(obj)

    def delete_queryset(self, request, queryset):
        orders = get_services().orders
        for o in queryset:
            orders.delete(o)

    def _apply(self, request: HttpRequest, queryset, target: str) -> None:
        orders = get_services().orders
        changed = 0
        for o in queryset:
            try:
                orders.transition(o, target, actor=Order.CancelledBy.ADMIN, reason="admin action")
                changed += 1
            except ShopError as e:
                self.message_user(request, f"{o.order_code}: {e.detail}", level=messages.WARNING)
        if changed:
            self.message_user(request, f"Updated orders: {changed}.", level=messages.SUCCESS)

    @admin.action(description="Move to processing")
    def mark_processing(self, request, queryset):
        self._apply(request, queryset, Order.Status.PROCESSING)

    @admin.action(description="Move to shipped")
    def mark_shipped(self, request, queryset):
        self._apply(request, queryset, Order.Status.SHIPPED)

    @admin.action(description="Move to delivered")
    def mark_delivered(self, request, queryset):
        self._apply(request, queryset, Order.Status.DELIVERED)

    @admin.action(description="Cancel and release stock")
    def cancel_selected(self, request, queryset):
        self._apply(request, queryset, Order.Status.CANCELLED)
