from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from django.db.models import F
from django.utils import timezone

from api.errors import InsufficientStock

from .models import Variant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockLine:
    variant_id: int
    qty: int
    sku: str = ""


def merge_stock_lines(lines: Iterable[StockLine]) -> list[StockLine]:
    """Collapses repeated variants and orders lines by variant id.

    A fixed order keeps concurrent batch reservations from touching rows in
    different sequences.
    """
    qty_by_variant: dict[int, int] = {}
    sku_by_variant: dict[int, str] = {}
    for ln in lines:
        qty_by_variant[int(ln.variant_id)] = qty_by_variant.get(int(ln.variant_id), 0) + int(ln.qty)
        sku_by_variant.setdefault(int(ln.variant_id), ln.sku)
    return [
        StockLine(variant_id=vid, qty=qty_by_variant[vid], sku=sku_by_variant[vid])
        for vid in sorted(qty_by_variant)
    ]


class StockLedger:
    """Stock counters for product variants.

    Every write is a single conditional UPDATE on the variant row, so callers
    in different processes never lose updates and stock never drops below zero.
    """

    def available(self, *, variant_id: int) -> int:
        stock = Variant.objects.filter(id=int(variant_id)).values_list("stock", flat=True).first()
        return max(0, int(stock or 0))

    def reserve(self, *, variant_id: int, qty: int, sku: str = "") -> None:
        qty = int(qty)
        if qty <= 0:
            raise ValueError("qty must be positive")

        updated = Variant.objects.filter(id=int(variant_id), stock__gte=qty).update(
            stock=F("stock") - qty,
            updated_at=timezone.now(),
        )
        if updated != 1:
            logger.info(
                "Stock reservation refused",
                extra={"variant_id": int(variant_id), "qty": qty},
            )
            label = sku or str(variant_id)
            raise InsufficientStock(
                f"Insufficient stock for item {label}",
                variant_id=int(variant_id),
                sku=sku,
            )

    def release(self, *, variant_id: int, qty: int) -> bool:
        qty = int(qty)
        if qty <= 0:
            raise ValueError("qty must be positive")

        updated = Variant.objects.filter(id=int(variant_id)).update(
            stock=F("stock") + qty,
            updated_at=timezone.now(),
        )
        if updated != 1:
            # Variant was removed from the catalog; nothing to give back to.
            logger.warning(
                "Stock release skipped for missing variant",
                extra={"variant_id": int(variant_id), "qty": qty},
            )
            return False
        return True

    def reserve_all(self, lines: Iterable[StockLine]) -> list[StockLine]:
        """Reserves every line or none of them.

        Returns the merged lines that were reserved; they are what
        `release_all` expects as compensation.
        """
        reserved: list[StockLine] = []
        for ln in merge_stock_lines(lines):
            try:
                self.reserve(variant_id=ln.variant_id, qty=ln.qty, sku=ln.sku)
            except InsufficientStock:
                if reserved:
                    logger.warning(
                        "Rolling back partial stock reservation",
                        extra={"variant_ids": [r.variant_id for r in reserved]},
                    )
                    self.release_all(reserved)
                raise
            reserved.append(ln)
        return reserved

    def release_all(self, lines: Iterable[StockLine]) -> None:
        for ln in merge_stock_lines(lines):
            self.release(variant_id=ln.variant_id, qty=ln.qty)
