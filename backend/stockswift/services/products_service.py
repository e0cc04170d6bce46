# backend/stockswift/services/products_service.py
"""
Products Service

CRUD + search over the product collection.

- add validates business rules (name/sku/expiryDate present, prices > 0)
- update only validates field types: it merges whatever the caller sends,
  including zero prices or negative stock (stock corrections use it)
- delete is a hard delete; sales keep their own snapshot of the product
"""
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import TypedDict

from flask import current_app

from ..models import Product
from ..storage import Storage
from ..validation import (
    NotFoundError,
    PRODUCT_CREATE_POLICY,
    PRODUCT_PATCH_POLICY,
    enforce_rules_product,
    validate_payload,
)
from stockswift.time_utils import now_ms

COLLECTION = "products"


class ProductPatch(TypedDict, total=False):
    """Fields a caller may change on an existing product. All optional."""
    sku: str
    name: str
    quantity: int
    costPrice: Decimal
    salePrice: Decimal
    expiryDate: date | str
    description: str | None
    image: str | None


def new_product_id() -> str:
    return f"prod_{uuid.uuid4().hex}"


def new_internal_code() -> str:
    return f"INT-{uuid.uuid4().hex[:12].upper()}"


def _matches(product: dict, needle: str) -> bool:
    return (
        needle in product["name"].lower()
        or needle in product["sku"].lower()
        or needle in product["internalCode"].lower()
    )


class ProductRepository:
    def __init__(self, storage: Storage):
        self._storage = storage

    def add(self, fields: dict) -> dict:
        """
        Create a product.

        Generates id, internalCode and both timestamps, then inserts through
        the storage engine.

        Raises:
            ValidationError: missing/blank required field, price <= 0, bad types
            ConstraintError: sku already used by another product
        """
        patch = validate_payload(
            model=Product,
            payload=fields,
            policy=PRODUCT_CREATE_POLICY,
            partial=False,
        )
        enforce_rules_product(patch)

        now = now_ms()
        record = {
            "quantity": 0,
            **patch,
            "id": new_product_id(),
            "internalCode": new_internal_code(),
            "createdAt": now,
            "updatedAt": now,
        }
        created = self._storage.add(COLLECTION, record)
        current_app.logger.info("Created product id=%s sku=%s", created["id"], created["sku"])
        return created

    def get(self, product_id: str) -> dict | None:
        return self._storage.get(COLLECTION, product_id)

    def require(self, product_id: str) -> dict:
        product = self.get(product_id)
        if product is None:
            raise NotFoundError(f"Product not found: {product_id}")
        return product

    def list(self) -> list[dict]:
        """All products, most recently created first."""
        # reversed() first so equal timestamps keep newest-inserted first
        return sorted(
            reversed(self._storage.get_all(COLLECTION)),
            key=lambda p: p["createdAt"],
            reverse=True,
        )

    def search(self, query: str | None) -> list[dict]:
        """
        Case-insensitive substring match on name, sku and internalCode.

        A blank query returns list(). Matches keep storage order.
        """
        if query is None or not query.strip():
            return self.list()
        # Only a blank query is special; otherwise spaces are part of the needle
        needle = query.lower()
        return [p for p in self._storage.get_all(COLLECTION) if _matches(p, needle)]

    def update(self, product_id: str, fields: ProductPatch) -> dict:
        """
        Merge fields over the stored product and refresh updatedAt.

        Raises:
            NotFoundError: no product with this id
            ValidationError: unknown/immutable field or wrong type
            ConstraintError: sku changed to one already in use
        """
        patch = validate_payload(
            model=Product,
            payload=fields,
            policy=PRODUCT_PATCH_POLICY,
            partial=True,
        )
        with self._storage.transaction():
            current = self.require(product_id)
            merged = {**current, **patch, "updatedAt": now_ms()}
            return self._storage.put(COLLECTION, merged)

    def delete(self, product_id: str) -> None:
        with self._storage.transaction():
            product = self.require(product_id)
            self._storage.delete(COLLECTION, product_id)
        current_app.logger.info("Deleted product id=%s sku=%s", product["id"], product["sku"])
