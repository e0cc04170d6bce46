# Overview: Stock overview derived from the product list (dashboard figures).

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable

from stockswift.time_utils import parse_iso_date

DEFAULT_WARNING_DAYS = 30


def stock_value(products: Iterable[dict]) -> Decimal:
    """Stock valued at cost: sum of costPrice * quantity."""
    return sum((p["costPrice"] * p["quantity"] for p in products), Decimal("0"))


def expiring_products(
    products: Iterable[dict],
    *,
    today: date,
    window_days: int = DEFAULT_WARNING_DAYS,
) -> list[dict]:
    """
    Products whose expiry date is between today and today + window_days
    (both inclusive). Already-expired products are not included.
    """
    horizon = today + timedelta(days=window_days)
    out = []
    for p in products:
        expiry = parse_iso_date(p.get("expiryDate"))
        if expiry is not None and today <= expiry <= horizon:
            out.append(p)
    return out


def stock_overview(
    products: list[dict],
    *,
    today: date,
    window_days: int = DEFAULT_WARNING_DAYS,
) -> dict:
    return {
        "productCount": len(products),
        "stockValue": stock_value(products),
        "expiringSoon": expiring_products(products, today=today, window_days=window_days),
    }
