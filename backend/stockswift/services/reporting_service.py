# Overview: Month-scoped financial summaries and their export encodings.

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable
from zoneinfo import ZoneInfo

from stockswift.time_utils import from_ms, now_ms, resolve_timezone, to_utc_z
from stockswift.validation import ValidationError

ZERO = Decimal("0")
CENT = Decimal("0.01")

TABULAR_HEADERS = ["Date", "Revenue", "Discount", "Total", "COGS", "Profit"]


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


@dataclass(frozen=True)
class ReportPeriod:
    """A calendar month. month is 0-indexed (0 = January)."""
    year: int
    month: int

    def __post_init__(self):
        if not 0 <= self.month <= 11:
            raise ValidationError("month must be between 0 and 11")

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month + 1:02d}"

    def file_name(self, extension: str) -> str:
        return f"report_{self.year:04d}_{self.month + 1:02d}.{extension}"


def summarize(sales: Iterable[dict]) -> dict:
    """
    Period metrics over a set of sales. Exact decimal sums; an empty set
    gives all-zero metrics.
    """
    gross = discount = net = cogs = ZERO
    units = 0
    count = 0
    for sale in sales:
        gross += sale["subtotal"]
        discount += sale["discount"]
        net += sale["total"]
        cogs += sale["costOfGoodsSold"]
        units += sum(item["quantity"] for item in sale["items"])
        count += 1

    return {
        "grossRevenue": gross,
        "totalDiscount": discount,
        "netRevenue": net,
        "costOfGoodsSold": cogs,
        "netProfit": net - cogs,
        "totalUnits": units,
        "salesCount": count,
    }


def _money(value: Decimal) -> str:
    return str(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def _sale_date(created_at: int, tz: ZoneInfo) -> str:
    return from_ms(created_at, tz).date().isoformat()


def to_tabular_export(sales: list[dict], metrics: dict, *, timezone: str | None = None) -> str:
    """
    CSV rendering: one row per sale, then a blank line and the period summary.

    Amounts are printed with two decimals; the underlying values are not changed.
    """
    try:
        tz = resolve_timezone(timezone)
    except ValueError as exc:
        raise ReportError(str(exc)) from exc

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(TABULAR_HEADERS)
    for sale in sales:
        writer.writerow([
            _sale_date(sale["createdAt"], tz),
            _money(sale["subtotal"]),
            _money(sale["discount"]),
            _money(sale["total"]),
            _money(sale["costOfGoodsSold"]),
            _money(sale["total"] - sale["costOfGoodsSold"]),
        ])

    writer.writerow([])
    writer.writerow(["PERIOD SUMMARY"])
    writer.writerow(["Gross Revenue", _money(metrics["grossRevenue"])])
    writer.writerow(["Total Discounts", _money(metrics["totalDiscount"])])
    writer.writerow(["Net Revenue", _money(metrics["netRevenue"])])
    writer.writerow(["COGS", _money(metrics["costOfGoodsSold"])])
    writer.writerow(["Net Profit", _money(metrics["netProfit"])])
    writer.writerow(["Units Sold", metrics["totalUnits"]])
    return buf.getvalue()


def to_document_export(
    sales: list[dict],
    metrics: dict,
    period: ReportPeriod,
    *,
    exported_at: int | None = None,
) -> dict:
    """Structured report: period, metric set, raw sales and the export time."""
    exported_at = now_ms() if exported_at is None else exported_at
    return {
        "period": period.label,
        "metrics": dict(metrics),
        "sales": list(sales),
        "exportedAt": to_utc_z(exported_at),
    }
