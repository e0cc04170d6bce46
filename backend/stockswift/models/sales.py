from __future__ import annotations

from ..extensions import db
from ..money import Money
from stockswift.validation import ValidationError, coerce_record

DISCOUNT_TYPES = ("fixed", "percentage")


class Sale(db.Model):
    """
    Finalized sale. Immutable once written: there is no update path, only
    create, full clear and import-replace.

    Amounts are resolved at finalize time (discount is the absolute amount,
    total is already clamped at zero) and never recomputed.
    """
    __tablename__ = "sales"
    __table_args__ = (
        # Period reports filter on the sale's own timestamp
        db.Index("ix_sales_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    DOCUMENT_FIELDS = {
        "id": "id",
        "subtotal": "subtotal",
        "discount": "discount",
        "discountType": "discount_type",
        "total": "total",
        "costOfGoodsSold": "cost_of_goods_sold",
        "createdAt": "created_at",
    }
    UNIQUE_FIELDS = ()

    seq = db.Column(db.Integer, primary_key=True)
    id = db.Column(db.String(64), nullable=False, unique=True, index=True)

    subtotal = db.Column(Money(), nullable=False)
    discount = db.Column(Money(), nullable=False)
    discount_type = db.Column(db.String(16), nullable=False, default="fixed")
    total = db.Column(Money(), nullable=False)
    cost_of_goods_sold = db.Column(Money(), nullable=False)

    created_at = db.Column(db.BigInteger, nullable=False)

    items = db.relationship(
        "SaleItem",
        order_by="SaleItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id!r} total={self.total} items={len(self.items)}>"

    def apply(self, record: dict) -> None:
        values = coerce_record(type(self), record)
        if values["discountType"] not in DISCOUNT_TYPES:
            raise ValidationError(
                f"discountType must be one of: {', '.join(DISCOUNT_TYPES)}",
                details={"record_id": values["id"]},
            )

        raw_items = record.get("items")
        if not isinstance(raw_items, list) or not raw_items:
            raise ValidationError("items must be a non-empty list", details={"record_id": values["id"]})

        for key, value in values.items():
            setattr(self, self.DOCUMENT_FIELDS[key], value)
        self.items = [SaleItem.from_dict(item, position=i) for i, item in enumerate(raw_items)]

    @classmethod
    def from_dict(cls, record: dict) -> "Sale":
        s = cls()
        s.apply(record)
        return s

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "items": [item.to_dict() for item in self.items],
            "subtotal": self.subtotal,
            "discount": self.discount,
            "discountType": self.discount_type,
            "total": self.total,
            "costOfGoodsSold": self.cost_of_goods_sold,
            "createdAt": self.created_at,
        }


class SaleItem(db.Model):
    """
    One line of a sale, embedded in its Sale document.

    product_id is a weak reference: products may be deleted later and the
    line keeps its own price/cost snapshot for reporting.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.Index("ix_sale_items_sale_position", "sale_seq", "position"),
        {"sqlite_autoincrement": True},
    )

    DOCUMENT_FIELDS = {
        "productId": "product_id",
        "quantity": "quantity",
        "salePrice": "sale_price",
        "costPrice": "cost_price",
    }

    seq = db.Column(db.Integer, primary_key=True)
    sale_seq = db.Column(db.Integer, db.ForeignKey("sales.seq", ondelete="CASCADE"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.String(64), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    sale_price = db.Column(Money(), nullable=False)
    cost_price = db.Column(Money(), nullable=False)

    @classmethod
    def from_dict(cls, record: dict, *, position: int) -> "SaleItem":
        item = cls(position=position)
        for key, value in coerce_record(cls, record).items():
            setattr(item, cls.DOCUMENT_FIELDS[key], value)
        return item

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "quantity": self.quantity,
            "salePrice": self.sale_price,
            "costPrice": self.cost_price,
        }
