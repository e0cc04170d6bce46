"""
Backup tests: export, import-replace and full reset.
"""
from decimal import Decimal

import pytest

from stockswift.serialization import dumps, loads
from stockswift.services.backup_service import validate_backup
from stockswift.storage import ConstraintError
from stockswift.validation import ValidationError

from conftest import ms, product_record, sale_record


@pytest.fixture
def dataset(storage):
    storage.add("products", product_record())
    storage.add("products", product_record(
        id="prod_2", sku="SKU-2", internalCode="INT-000000000002", name="Crackers",
        createdAt=ms(2025, 2, 1), updatedAt=ms(2025, 2, 3), description="Salted",
    ))
    storage.add("sales", sale_record())
    storage.add("sales", sale_record(id="sale_2", createdAt=ms(2025, 3, 20)))


class TestExport:
    def test_contains_every_record(self, backup, dataset):
        data = backup.export()

        assert set(data) == {"products", "sales", "exportedAt"}
        assert [p["id"] for p in data["products"]] == ["prod_2", "prod_1"]
        assert [s["id"] for s in data["sales"]] == ["sale_1", "sale_2"]
        assert isinstance(data["exportedAt"], int)

    def test_empty_store_exports_empty_lists(self, backup):
        data = backup.export()

        assert data["products"] == []
        assert data["sales"] == []


class TestImport:
    def test_round_trip_restores_identical_records(self, backup, products, sales, dataset):
        exported = backup.export()
        backup.clear_all_data()

        counts = backup.import_data(exported)

        assert counts == {"products": 2, "sales": 2}
        assert products.list() == exported["products"]
        assert sales.list() == exported["sales"]

    def test_round_trip_through_json_text(self, backup, products, sales, dataset):
        exported = backup.export()
        text = dumps(exported)
        backup.clear_all_data()

        backup.import_data(loads(text))

        assert products.list() == exported["products"]
        assert sales.list() == exported["sales"]
        assert products.get("prod_1")["costPrice"] == Decimal("0.80")

    def test_round_trip_keeps_long_decimals_exact(self, backup, products, storage):
        storage.add("products", product_record(costPrice=Decimal("123456789012.123456"), salePrice=Decimal("0.1")))
        text = dumps(backup.export())
        backup.clear_all_data()

        backup.import_data(loads(text))

        stored = products.get("prod_1")
        assert str(stored["costPrice"]) == "123456789012.123456"
        assert stored["salePrice"] == Decimal("0.1")

    def test_replaces_existing_data(self, backup, products, sales, widget):
        backup.import_data({
            "products": [product_record()],
            "sales": [sale_record()],
        })

        assert products.get(widget["id"]) is None
        assert [p["id"] for p in products.list()] == ["prod_1"]
        assert [s["id"] for s in sales.list()] == ["sale_1"]

    def test_empty_backup_clears_everything(self, backup, products, sales, dataset):
        counts = backup.import_data({"products": [], "sales": []})

        assert counts == {"products": 0, "sales": 0}
        assert products.list() == []
        assert sales.list() == []

    def test_sales_may_reference_missing_products(self, backup, sales):
        backup.import_data({"products": [], "sales": [sale_record()]})
        assert sales.list()[0]["items"][0]["productId"] == "prod_1"

    def test_extra_top_level_keys_are_ignored(self, backup, products):
        backup.import_data({"products": [product_record()], "sales": [], "exportedAt": 1, "app": "x"})
        assert products.get("prod_1") is not None

    @pytest.mark.parametrize("document", [
        {"products": []},
        {"sales": []},
        {"products": None, "sales": []},
        {"products": "oops", "sales": []},
        {"products": [], "sales": {}},
        [],
        "backup",
    ])
    def test_invalid_document_changes_nothing(self, backup, products, widget, document):
        with pytest.raises(ValidationError):
            backup.import_data(document)

        assert [p["id"] for p in products.list()] == [widget["id"]]

    def test_duplicate_record_rolls_back_whole_import(self, backup, products, sales, widget):
        with pytest.raises(ConstraintError):
            backup.import_data({
                "products": [product_record(), product_record(id="prod_2", internalCode="INT-2")],
                "sales": [],
            })

        assert [p["id"] for p in products.list()] == [widget["id"]]
        assert products.get(widget["id"])["quantity"] == 10

    def test_malformed_record_rolls_back_whole_import(self, backup, products, sales, widget):
        broken = sale_record()
        del broken["total"]

        with pytest.raises(ValidationError):
            backup.import_data({"products": [product_record()], "sales": [broken]})

        assert [p["id"] for p in products.list()] == [widget["id"]]
        assert sales.list() == []


class TestClearAll:
    def test_removes_both_collections(self, backup, products, sales, dataset):
        counts = backup.clear_all_data()

        assert counts == {"products": 2, "sales": 2}
        assert products.list() == []
        assert sales.list() == []

    def test_empty_store_is_a_noop(self, backup):
        assert backup.clear_all_data() == {"products": 0, "sales": 0}


def test_validate_backup_accepts_empty_collections():
    validate_backup({"products": [], "sales": []})
