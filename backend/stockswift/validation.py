from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Integer, String, Text, Date
from sqlalchemy.orm import DeclarativeMeta

from stockswift.money import Money
from stockswift.time_utils import parse_iso_date


class ValidationError(ValueError):
    """Bad input: missing field, wrong type, broken business rule, malformed backup."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class NotFoundError(LookupError):
    """The operation targets an id that does not exist."""


class InsufficientStockError(ValidationError):
    """A sale asks for more units than the product has on hand."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what callers are allowed to set (identity and timestamps are not)
    - required_on_create: fields required by add
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


PRODUCT_WRITABLE_FIELDS = {
    "sku", "name", "quantity", "costPrice", "salePrice",
    "expiryDate", "description", "image",
}

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_WRITABLE_FIELDS,
    required_on_create={"sku", "name", "costPrice", "salePrice", "expiryDate"},
)

PRODUCT_PATCH_POLICY = ModelValidationPolicy(writable_fields=PRODUCT_WRITABLE_FIELDS)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    """Document key -> mapped column, following the model's DOCUMENT_FIELDS."""
    columns = {c.key: c for c in model.__mapper__.columns}
    return {doc_key: columns[attr] for doc_key, attr in model.DOCUMENT_FIELDS.items()}


def to_decimal(key: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        # repr keeps the shortest round-tripping form: 9.9 -> Decimal("9.9")
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValidationError(f"{key} must be a number")
    else:
        raise ValidationError(f"{key} must be a number")
    if not result.is_finite():
        raise ValidationError(f"{key} must be a finite number")
    return result


def to_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(key: str, col, value: Any, *, strip: bool = True):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return to_int(key, value)

    if isinstance(coltype, Money):
        return to_decimal(key, value)

    if isinstance(coltype, Date):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                parsed = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{key} must be an ISO-8601 date")
            if parsed is None:
                raise ValidationError(f"{key} cannot be blank")
            return parsed
        raise ValidationError(f"{key} must be a date")

    if isinstance(coltype, (String, Text)):
        text = str(value)
        return text.strip() if strip else text

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes caller input against:
    - column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by document field names.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(k, col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def coerce_record(model: DeclarativeMeta, record: dict) -> dict:
    """
    Full-record coercion used at the storage boundary (add / put / import).

    Every non-nullable field must be present. Values are converted to their
    stored Python types but strings are kept verbatim. Unknown keys are ignored.
    """
    if not isinstance(record, dict):
        raise ValidationError(f"{model.__tablename__} record must be an object")

    out: dict = {}
    for k, col in _columns_by_key(model).items():
        raw = record.get(k)
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} is required", details={"record_id": record.get("id")})
            out[k] = None
            continue
        out[k] = _coerce_value(k, col, raw, strip=False)
    return out


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules checked when a product is created. Updates deliberately skip them.
    """
    for field in ("name", "sku", "expiryDate"):
        if patch.get(field) in (None, ""):
            raise ValidationError(f"{field} is required")

    for field in ("costPrice", "salePrice"):
        price = patch.get(field)
        if price is None or price <= 0:
            raise ValidationError(f"{field} must be > 0")

    if patch.get("quantity") is not None and patch["quantity"] < 0:
        raise ValidationError("quantity must be >= 0")
