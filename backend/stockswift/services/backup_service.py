# Overview: Full-dataset export, import-replace and reset.

from __future__ import annotations

from flask import current_app

from ..storage import Storage
from ..validation import ValidationError
from .products_service import ProductRepository
from .sales_service import SaleRepository
from stockswift.time_utils import now_ms


def validate_backup(data) -> None:
    """
    Structural check only: both collections present (possibly empty) as lists.
    Record-level problems surface during the import transaction.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid backup file: expected an object")
    missing = [key for key in ("products", "sales") if key not in data or data[key] is None]
    if missing:
        raise ValidationError(f"Invalid backup file: missing {', '.join(missing)}")
    for key in ("products", "sales"):
        if not isinstance(data[key], list):
            raise ValidationError(f"Invalid backup file: {key} must be a list")


class BackupService:
    def __init__(self, storage: Storage, products: ProductRepository, sales: SaleRepository):
        self._storage = storage
        self._products = products
        self._sales = sales

    def export(self) -> dict:
        """Snapshot of every product and every sale: {products, sales, exportedAt}."""
        with self._storage.transaction():
            products = self._products.list()
            sales = self._sales.list()
        return {
            "products": products,
            "sales": sales,
            "exportedAt": now_ms(),
        }

    def import_data(self, data: dict) -> dict:
        """
        Replace the whole dataset with the backup's records, ids preserved.

        One transaction: if any record fails, the previous dataset is untouched.
        Returns the number of records restored per collection.
        """
        validate_backup(data)

        with self._storage.transaction():
            self._clear_collections()
            for product in data["products"]:
                self._storage.add("products", product)
            for sale in data["sales"]:
                self._storage.add("sales", sale)

        counts = {"products": len(data["products"]), "sales": len(data["sales"])}
        current_app.logger.info(
            "Imported backup: %d products, %d sales", counts["products"], counts["sales"]
        )
        return counts

    def clear_all_data(self) -> dict:
        """Delete every product and every sale. Irreversible."""
        with self._storage.transaction():
            counts = self._clear_collections()
        current_app.logger.info(
            "Cleared all data: %d products, %d sales", counts["products"], counts["sales"]
        )
        return counts

    def _clear_collections(self) -> dict:
        sales = self._sales.clear_all()
        products = self._storage.clear("products")
        return {"products": products, "sales": sales}
