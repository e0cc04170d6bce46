# Overview: Builds the storage handle and the services that share it.

from __future__ import annotations

from dataclasses import dataclass

from flask import Flask, current_app

from .extensions import db
from .storage import Storage
from .services.backup_service import BackupService
from .services.products_service import ProductRepository
from .services.sales_service import SaleRepository

EXTENSION_KEY = "stockswift"


@dataclass
class Services:
    storage: Storage
    products: ProductRepository
    sales: SaleRepository
    backup: BackupService


def build_services(app: Flask) -> Services:
    storage = Storage(db)
    products = ProductRepository(storage)
    sales = SaleRepository(
        storage,
        products,
        enforce_stock=app.config["ENFORCE_STOCK_ON_SALE"],
        timezone=app.config["REPORT_TIMEZONE"],
    )
    backup = BackupService(storage, products, sales)
    return Services(storage=storage, products=products, sales=sales, backup=backup)


def get_services() -> Services:
    """Services bundle of the current app (requires an app context)."""
    return current_app.extensions[EXTENSION_KEY]
