from __future__ import annotations

from django.contrib import admin

from .models import Color, Product, Size, Variant


class VariantInline(admin.TabularInline):
    model = Variant
    extra = 0
    fields = ("sku", "color", "size", "price", "stock", "is_active")


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("sku", "name", "is_active", "updated_at")
    list_filter = ("is_active",)
    search_fields = ("sku", "name", "slug")
    prepopulated_fields = {"slug": ("name",)}
    inlines = (VariantInline,)


@admin.register(Variant)
class VariantAdmin(admin.ModelAdmin):
    list_display = ("sku", "product", "color", "size", "price", "stock", "is_active")
    list_filter = ("is_active", "color", "size")
    search_fields = ("sku", "product__name")
    autocomplete_fields = ("product",)


@admin.register(Color)
class ColorAdmin(admin.ModelAdmin):
    list_display = ("name", "is_active")
    search_fields = ("name",)


@admin.register(Size)
class SizeAdmin(admin.ModelAdmin):
    list_display = ("name", "sort_order")
    search_fields = ("name",)
