from __future__ import annotations

from ..extensions import db
from ..money import Money
from stockswift.validation import coerce_record


class Product(db.Model):
    """
    Product master data.

    IDENTITY:
    - id is the record key (opaque string, generated on add, preserved by import)
    - sku is the human/barcode lookup key, unique across the collection
    - internal_code is system generated, unique, never edited

    seq only records insertion order ("storage natural order"); it never leaves
    the storage layer.

    Money columns hold decimal amounts, timestamps are epoch milliseconds so
    records map 1:1 onto the backup document.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.UniqueConstraint("internal_code", name="uq_products_internal_code"),
        db.Index("ix_products_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    # Document key -> column attribute
    DOCUMENT_FIELDS = {
        "id": "id",
        "sku": "sku",
        "internalCode": "internal_code",
        "name": "name",
        "quantity": "quantity",
        "costPrice": "cost_price",
        "salePrice": "sale_price",
        "expiryDate": "expiry_date",
        "description": "description",
        "image": "image",
        "createdAt": "created_at",
        "updatedAt": "updated_at",
    }
    UNIQUE_FIELDS = ("sku", "internalCode")

    seq = db.Column(db.Integer, primary_key=True)
    id = db.Column(db.String(64), nullable=False, unique=True, index=True)

    sku = db.Column(db.String(64), nullable=False)
    internal_code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    # Can go negative through a direct update or an unchecked sale
    quantity = db.Column(db.Integer, nullable=False, default=0)

    cost_price = db.Column(Money(), nullable=False)
    sale_price = db.Column(Money(), nullable=False)

    expiry_date = db.Column(db.Date, nullable=False)
    description = db.Column(db.Text, nullable=True)
    image = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.BigInteger, nullable=False)
    updated_at = db.Column(db.BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<Product id={self.id!r} sku={self.sku!r} name={self.name!r} quantity={self.quantity}>"

    def apply(self, record: dict) -> None:
        for key, value in coerce_record(type(self), record).items():
            setattr(self, self.DOCUMENT_FIELDS[key], value)

    @classmethod
    def from_dict(cls, record: dict) -> "Product":
        p = cls()
        p.apply(record)
        return p

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "internalCode": self.internal_code,
            "name": self.name,
            "quantity": self.quantity,
            "costPrice": self.cost_price,
            "salePrice": self.sale_price,
            "expiryDate": self.expiry_date.isoformat() if self.expiry_date else None,
            "description": self.description,
            "image": self.image,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
