from __future__ import annotations

from django.db import models


class Product(models.Model):
    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    description = models.TextField(blank=True)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"


class Color(models.Model):
    name = models.CharField(max_length=80, unique=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Size(models.Model):
    name = models.CharField(max_length=40, unique=True)
    sort_order = models.IntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "name"]

    def __str__(self) -> str:
        return self.name


class Variant(models.Model):
    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="variants")
    sku = models.CharField(max_length=64, unique=True)
    color = models.ForeignKey(
        Color, null=True, blank=True, on_delete=models.PROTECT, related_name="variants"
    )
    size = models.ForeignKey(
        Size, null=True, blank=True, on_delete=models.PROTECT, related_name="variants"
    )

    price = models.DecimalField(max_digits=14, decimal_places=2)

    # Only the stock ledger (and admin catalog edits) write this field.
    stock = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["sku"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(stock__gte=0),
                name="chk_variant_stock_gte_0",
            ),
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name="chk_variant_price_gte_0",
            ),
            models.UniqueConstraint(
                fields=["product", "color", "size"],
                name="uniq_variant_product_color_size",
            ),
        ]

    def __str__(self) -> str:
        return self.sku

    @property
    def display_name(self) -> str:
        parts = [self.product.name]
        attrs = [str(a) for a in (self.color, self.size) if a is not None]
        if attrs:
            parts.append(" / ".join(attrs))
        return " - ".join(parts)

    @property
    def is_purchasable(self) -> bool:
        return bool(self.is_active and self.product.is_active)
