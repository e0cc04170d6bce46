"""
Storage engine tests: collection operations, uniqueness and transactions.
"""
from decimal import Decimal

import pytest
from sqlalchemy import text

from stockswift.extensions import db
from stockswift.storage import ConstraintError, KeyNotFoundError, Storage, StorageError
from stockswift.validation import ValidationError

from conftest import ms, product_record, sale_record


def test_init_is_idempotent(storage):
    storage.init()
    storage.init()

    fresh = Storage(db)
    fresh.init()
    fresh.init()

    assert storage.count("products") == 0
    assert storage.count("sales") == 0


def test_add_then_get_returns_the_record(storage):
    created = storage.add("products", product_record())

    assert created == product_record()
    assert storage.get("products", "prod_1") == product_record()


def test_get_missing_key_returns_none(storage):
    assert storage.get("products", "prod_missing") is None
    assert storage.get("sales", "sale_missing") is None


def test_get_all_keeps_insertion_order(storage):
    storage.add("products", product_record(id="prod_b", sku="B", internalCode="INT-B", createdAt=ms(2025, 5, 1)))
    storage.add("products", product_record(id="prod_a", sku="A", internalCode="INT-A", createdAt=ms(2025, 1, 1)))

    assert [p["id"] for p in storage.get_all("products")] == ["prod_b", "prod_a"]


def test_add_with_existing_key_fails(storage):
    storage.add("products", product_record())

    with pytest.raises(ConstraintError):
        storage.add("products", product_record(sku="OTHER", internalCode="INT-OTHER"))

    assert storage.count("products") == 1


def test_add_with_duplicate_sku_fails_and_writes_nothing(storage):
    storage.add("products", product_record())

    with pytest.raises(ConstraintError) as exc:
        storage.add("products", product_record(id="prod_2", internalCode="INT-2"))

    assert exc.value.details["field"] == "sku"
    assert [p["id"] for p in storage.get_all("products")] == ["prod_1"]


def test_add_with_duplicate_internal_code_fails(storage):
    storage.add("products", product_record())

    with pytest.raises(ConstraintError):
        storage.add("products", product_record(id="prod_2", sku="SKU-2"))


def test_constraint_error_is_a_storage_error(storage):
    storage.add("products", product_record())
    with pytest.raises(StorageError):
        storage.add("products", product_record(id="prod_2", internalCode="INT-2"))


def test_add_rejects_incomplete_record(storage):
    record = product_record()
    del record["sku"]

    with pytest.raises(ValidationError):
        storage.add("products", record)

    assert storage.count("products") == 0


def test_put_inserts_missing_record(storage):
    storage.put("products", product_record())
    assert storage.get("products", "prod_1")["sku"] == "SKU-1"


def test_put_replaces_existing_record(storage):
    storage.add("products", product_record())

    updated = storage.put("products", product_record(quantity=3, salePrice=Decimal("2.00")))

    assert updated["quantity"] == 3
    stored = storage.get("products", "prod_1")
    assert stored["quantity"] == 3
    assert stored["salePrice"] == Decimal("2.00")
    assert storage.count("products") == 1


def test_put_rejects_sku_taken_by_another_record(storage):
    storage.add("products", product_record())
    storage.add("products", product_record(id="prod_2", sku="SKU-2", internalCode="INT-2"))

    with pytest.raises(ConstraintError):
        storage.put("products", product_record(id="prod_2", sku="SKU-1", internalCode="INT-2"))

    assert storage.get("products", "prod_2")["sku"] == "SKU-2"


def test_put_keeps_natural_order(storage):
    storage.add("products", product_record())
    storage.add("products", product_record(id="prod_2", sku="SKU-2", internalCode="INT-2"))

    storage.put("products", product_record(quantity=0))

    assert [p["id"] for p in storage.get_all("products")] == ["prod_1", "prod_2"]


def test_delete_removes_record(storage):
    storage.add("products", product_record())
    storage.delete("products", "prod_1")
    assert storage.get("products", "prod_1") is None


def test_delete_missing_key_fails(storage):
    with pytest.raises(KeyNotFoundError):
        storage.delete("products", "prod_missing")


def test_sale_items_round_trip_in_order(storage):
    record = sale_record(items=[
        {"productId": "prod_2", "quantity": 1, "salePrice": Decimal("4.00"), "costPrice": Decimal("2.00")},
        {"productId": "prod_1", "quantity": 2, "salePrice": Decimal("1.50"), "costPrice": Decimal("0.80")},
    ])
    storage.add("sales", record)

    stored = storage.get("sales", "sale_1")
    assert [item["productId"] for item in stored["items"]] == ["prod_2", "prod_1"]
    assert stored == record


def test_sale_with_unknown_discount_type_is_rejected(storage):
    with pytest.raises(ValidationError):
        storage.add("sales", sale_record(discountType="coupon"))


def test_sale_without_items_is_rejected(storage):
    with pytest.raises(ValidationError):
        storage.add("sales", sale_record(items=[]))


def test_clear_removes_every_record(storage):
    storage.add("sales", sale_record())
    storage.add("sales", sale_record(id="sale_2"))

    assert storage.clear("sales") == 2
    assert storage.get_all("sales") == []
    assert db.session.execute(text("SELECT COUNT(*) FROM sale_items")).scalar() == 0


def test_get_range_is_half_open(storage):
    storage.add("sales", sale_record(id="sale_before", createdAt=ms(2025, 2, 28, 23, 59, 59, 999)))
    storage.add("sales", sale_record(id="sale_start", createdAt=ms(2025, 3, 1)))
    storage.add("sales", sale_record(id="sale_end", createdAt=ms(2025, 4, 1)))

    found = storage.get_range("sales", created_from=ms(2025, 3, 1), created_to=ms(2025, 4, 1))

    assert [s["id"] for s in found] == ["sale_start"]


def test_unknown_collection_fails(storage):
    with pytest.raises(StorageError):
        storage.get_all("customers")
    with pytest.raises(StorageError):
        storage.clear("customers")


class TestTransactions:
    def test_failure_rolls_back_every_write(self, storage):
        storage.add("products", product_record())

        with pytest.raises(RuntimeError):
            with storage.transaction():
                storage.put("products", product_record(quantity=0))
                storage.add("sales", sale_record())
                raise RuntimeError("device storage quota exceeded")

        assert storage.get("products", "prod_1")["quantity"] == 24
        assert storage.get_all("sales") == []

    def test_clear_of_both_collections_is_atomic(self, storage):
        storage.add("products", product_record())
        storage.add("sales", sale_record())

        with pytest.raises(RuntimeError):
            with storage.transaction():
                storage.clear("sales")
                storage.clear("products")
                raise RuntimeError("abort")

        assert storage.count("products") == 1
        assert storage.count("sales") == 1

    def test_nested_blocks_commit_with_the_outermost(self, storage):
        with storage.transaction():
            with storage.transaction():
                storage.add("products", product_record())
            assert storage.in_transaction
            storage.add("sales", sale_record())

        assert not storage.in_transaction
        assert storage.count("products") == 1
        assert storage.count("sales") == 1

    def test_failure_in_nested_block_aborts_outer(self, storage):
        with pytest.raises(ConstraintError):
            with storage.transaction():
                storage.add("products", product_record())
                with storage.transaction():
                    storage.add("products", product_record(id="prod_2", internalCode="INT-2"))

        assert storage.count("products") == 0
