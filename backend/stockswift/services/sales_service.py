"""
Sales Service - atomic sale finalization

A sale is written once, together with the stock decrement of every product
it references, inside a single storage transaction. If any product is
missing or any write fails, nothing is written.

Prices on the lines are the caller's sale-time snapshot; this module never
looks up current product prices.
"""
from __future__ import annotations

import uuid
from decimal import Decimal

from flask import current_app

from ..models.sales import DISCOUNT_TYPES
from ..storage import Storage
from ..validation import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
    to_decimal,
    to_int,
)
from .products_service import ProductRepository
from stockswift.time_utils import month_bounds_ms, now_ms, resolve_timezone

COLLECTION = "sales"

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def new_sale_id() -> str:
    return f"sale_{uuid.uuid4().hex}"


def _normalize_items(items: list[dict]) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("Cannot finalize a sale with no items")

    lines = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{i}] must be an object")
        product_id = item.get("productId")
        if not isinstance(product_id, str) or not product_id.strip():
            raise ValidationError(f"items[{i}].productId is required")
        for field in ("quantity", "salePrice", "costPrice"):
            if item.get(field) is None:
                raise ValidationError(f"items[{i}].{field} is required")

        quantity = to_int(f"items[{i}].quantity", item["quantity"])
        if quantity <= 0:
            raise ValidationError(f"items[{i}].quantity must be > 0")
        sale_price = to_decimal(f"items[{i}].salePrice", item["salePrice"])
        cost_price = to_decimal(f"items[{i}].costPrice", item["costPrice"])
        if sale_price < 0 or cost_price < 0:
            raise ValidationError(f"items[{i}] prices must be >= 0")

        lines.append({
            "productId": product_id,
            "quantity": quantity,
            "salePrice": sale_price,
            "costPrice": cost_price,
        })
    return lines


def resolve_discount(subtotal: Decimal, discount_value, discount_type: str) -> Decimal:
    """Absolute discount amount. Not clamped: total does the clamping."""
    if discount_type not in DISCOUNT_TYPES:
        raise ValidationError(f"discountType must be one of: {', '.join(DISCOUNT_TYPES)}")
    value = to_decimal("discountValue", discount_value if discount_value is not None else 0)
    if value < 0:
        raise ValidationError("discountValue must be >= 0")
    if discount_type == "percentage":
        if value > HUNDRED:
            raise ValidationError("percentage discount must be between 0 and 100")
        return subtotal * value / HUNDRED
    return value


def compute_totals(lines: list[dict], discount_value, discount_type: str) -> dict:
    subtotal = sum((line["salePrice"] * line["quantity"] for line in lines), ZERO)
    cogs = sum((line["costPrice"] * line["quantity"] for line in lines), ZERO)
    discount = resolve_discount(subtotal, discount_value, discount_type)
    return {
        "subtotal": subtotal,
        "discount": discount,
        "discountType": discount_type,
        "total": max(ZERO, subtotal - discount),
        "costOfGoodsSold": cogs,
    }


class SaleRepository:
    def __init__(
        self,
        storage: Storage,
        products: ProductRepository,
        *,
        enforce_stock: bool = False,
        timezone: str | None = None,
    ):
        self._storage = storage
        self._products = products
        self._enforce_stock = enforce_stock
        try:
            self._tz = resolve_timezone(timezone)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    def _validate_on_hand(self, lines: list[dict]) -> None:
        product_totals: dict[str, int] = {}
        for line in lines:
            product_totals[line["productId"]] = product_totals.get(line["productId"], 0) + line["quantity"]

        insufficient = []
        for product_id, qty in product_totals.items():
            on_hand = self._products.require(product_id)["quantity"]
            if on_hand < qty:
                insufficient.append({
                    "product_id": product_id,
                    "requested_quantity": qty,
                    "on_hand": on_hand,
                })

        if insufficient:
            raise InsufficientStockError(
                "Insufficient stock to finalize sale",
                details={"items": insufficient},
            )

    def finalize(self, items: list[dict], discount_value=0, discount_type: str = "fixed") -> dict:
        """
        Record a sale and decrement stock for every line, atomically.

        Raises:
            ValidationError: empty items, bad line, bad discount
            InsufficientStockError: only when stock enforcement is enabled
            NotFoundError: a line references a product that does not exist
            StorageError: the transaction could not be committed
        """
        lines = _normalize_items(items)
        totals = compute_totals(lines, discount_value, discount_type)

        with self._storage.transaction():
            if self._enforce_stock:
                self._validate_on_hand(lines)

            for line in lines:
                product = self._products.get(line["productId"])
                if product is None:
                    raise NotFoundError(f"Product not found: {line['productId']}")
                remaining = product["quantity"] - line["quantity"]
                if remaining < 0:
                    current_app.logger.warning(
                        "Sale drives product %s stock negative (%s)", product["id"], remaining
                    )
                self._products.update(product["id"], {"quantity": remaining})

            sale = self._storage.add(COLLECTION, {
                "id": new_sale_id(),
                "items": lines,
                **totals,
                "createdAt": now_ms(),
            })

        current_app.logger.info(
            "Finalized sale id=%s lines=%d total=%s", sale["id"], len(lines), sale["total"]
        )
        return sale

    def list(self) -> list[dict]:
        return self._storage.get_all(COLLECTION)

    def list_by_period(self, year: int, month: int) -> list[dict]:
        """
        Sales whose createdAt falls in the calendar month (0-indexed) of year,
        in the configured report timezone.
        """
        if isinstance(month, bool) or not isinstance(month, int) or not 0 <= month <= 11:
            raise ValidationError("month must be an integer between 0 and 11")
        if isinstance(year, bool) or not isinstance(year, int) or not 1 <= year <= 9998:
            raise ValidationError("year must be a valid calendar year")
        start, end = month_bounds_ms(year, month, self._tz)
        return self._storage.get_range(COLLECTION, created_from=start, created_to=end)

    def clear_all(self) -> int:
        return self._storage.clear(COLLECTION)
