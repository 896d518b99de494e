# Overview: Pytest coverage for catalog writes and their stock-history entries.

from datetime import date
from decimal import Decimal

import pytest

from marketpos.errors import DuplicateBarcodeError, NotFoundError
from marketpos.extensions import db
from marketpos.models import Product, StockLedgerEntry
from marketpos.services import catalog_service, ledger_service
from marketpos.validation import ValidationError


def _history(product_id):
    return (
        db.session.query(StockLedgerEntry)
        .filter_by(product_id=product_id)
        .order_by(StockLedgerEntry.id.asc())
        .all()
    )


class TestCreate:

    def test_create_records_initial_receive(self, db_session):
        product = catalog_service.create({
            "barcode": "890",
            "name": "Tea",
            "quantity": 12,
            "cost_price": 1.5,
            "selling_price": "2.25",
            "expiry_date": "2027-01-31",
        })

        assert product.quantity == 12
        assert product.cost_price == Decimal("1.50")
        assert product.selling_price == Decimal("2.25")
        assert product.expiry_date == date(2027, 1, 31)

        entries = _history(product.id)
        assert len(entries) == 1
        assert entries[0].transaction_type == "RECEIVE"
        assert entries[0].quantity_change == 12
        assert entries[0].quantity_after == 12
        assert entries[0].notes == "Initial stock"

    def test_duplicate_barcode(self, milk):
        with pytest.raises(DuplicateBarcodeError):
            catalog_service.create({"barcode": "111", "name": "Other milk"})

        assert db.session.query(Product).filter_by(barcode="111").count() == 1

    @pytest.mark.parametrize("payload", [
        {"name": "No barcode"},
        {"barcode": "1", "name": ""},
        {"barcode": "1", "name": "Neg", "quantity": -1},
        {"barcode": "1", "name": "Frac", "quantity": 1.5},
        {"barcode": "1", "name": "Price", "selling_price": "-0.01"},
        {"barcode": "1", "name": "Price", "selling_price": "abc"},
        {"barcode": "1", "name": "Date", "expiry_date": "31/01/2027"},
        {"barcode": "1", "name": "Extra", "store_id": 4},
    ])
    def test_invalid_input_writes_nothing(self, db_session, payload):
        with pytest.raises(ValidationError):
            catalog_service.create(payload)

        assert db.session.query(Product).count() == 0
        assert db.session.query(StockLedgerEntry).count() == 0

    def test_recreate_after_delete_reactivates(self, milk):
        catalog_service.delete("111")

        product = catalog_service.create({"barcode": "111", "name": "Milk 2L", "quantity": 3})

        assert product.id == milk.id
        assert product.is_active
        assert product.name == "Milk 2L"
        assert ledger_service.ledger_balance(product.id) == 3


class TestUpdate:

    def test_quantity_change_is_an_adjustment(self, milk):
        catalog_service.update("111", {"quantity": 8, "name": "Milk 1L"})

        entries = _history(milk.id)
        assert [e.transaction_type for e in entries] == ["RECEIVE", "ADJUSTMENT"]
        assert entries[-1].quantity_change == 3
        assert entries[-1].quantity_after == 8
        assert entries[-1].product_name == "Milk 1L"

    def test_price_only_update_writes_no_history(self, milk):
        product = catalog_service.update("111", {"selling_price": "11.00"})

        assert product.selling_price == Decimal("11.00")
        assert len(_history(milk.id)) == 1

    def test_barcode_is_immutable(self, milk):
        with pytest.raises(ValidationError):
            catalog_service.update("111", {"barcode": "999"})

        # sending the same barcode back is harmless
        catalog_service.update("111", {"barcode": "111", "category": "Drinks"})
        assert catalog_service.get_by_barcode("111").category == "Drinks"

    def test_missing_product(self, db_session):
        with pytest.raises(NotFoundError):
            catalog_service.update("nope", {"name": "x"})


class TestReceive:

    def test_receive_adds_stock_and_history(self, milk):
        product = catalog_service.receive("111", 7, cost_price="6.50", notes="Weekly delivery")

        assert product.quantity == 12
        assert product.cost_price == Decimal("6.50")

        last = _history(milk.id)[-1]
        assert last.transaction_type == "RECEIVE"
        assert last.quantity_change == 7
        assert last.quantity_after == 12
        assert last.notes == "Weekly delivery"

    @pytest.mark.parametrize("quantity", [0, -2, "x", None])
    def test_receive_requires_positive_quantity(self, milk, quantity):
        with pytest.raises(ValidationError):
            catalog_service.receive("111", quantity)

        assert catalog_service.get_by_barcode("111").quantity == 5


class TestDelete:

    def test_soft_delete_zeroes_stock(self, milk):
        catalog_service.delete("111")

        with pytest.raises(NotFoundError):
            catalog_service.get_by_barcode("111")

        product = db.session.get(Product, milk.id)
        assert product.is_active is False
        assert product.quantity == 0

        last = _history(milk.id)[-1]
        assert last.transaction_type == "ADJUSTMENT"
        assert last.quantity_change == -5
        assert last.notes == "Product removed"

    def test_deleted_products_hidden_from_list(self, milk, bread):
        catalog_service.delete("222")

        assert [p.barcode for p in catalog_service.get_all()] == ["111"]
        assert len(catalog_service.get_all(include_inactive=True)) == 2

    def test_delete_missing(self, db_session):
        with pytest.raises(NotFoundError):
            catalog_service.delete("nope")


def test_catalog_sorted_by_name(milk, bread):
    assert [p.name for p in catalog_service.get_all()] == ["Bread", "Milk"]


def test_every_write_keeps_ledger_balanced(milk, bread):
    catalog_service.update("111", {"quantity": 2})
    catalog_service.receive("222", 9)
    catalog_service.delete("111")
    catalog_service.create({"barcode": "111", "name": "Milk", "quantity": 4})

    assert ledger_service.find_inconsistencies() == []
