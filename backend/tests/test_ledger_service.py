# Overview: Pytest coverage for stock ledger reads and consistency checks.

import pytest
from sqlalchemy import text

from marketpos.extensions import db
from marketpos.models import STOCK_ADJUSTMENT, STOCK_RECEIVE
from marketpos.services import catalog_service, ledger_service


def test_list_entries_newest_first(milk):
    catalog_service.receive("111", 2)
    catalog_service.update("111", {"quantity": 1})

    entries = ledger_service.list_entries(product_id=milk.id)

    assert [e.transaction_type for e in entries] == ["ADJUSTMENT", "RECEIVE", "RECEIVE"]
    assert [e.quantity_after for e in entries] == [1, 7, 5]


def test_list_entries_filters(milk, bread):
    catalog_service.update("222", {"quantity": 4})

    receives = ledger_service.list_entries(transaction_type=STOCK_RECEIVE)
    adjustments = ledger_service.list_entries(transaction_type=STOCK_ADJUSTMENT)

    assert len(receives) == 2
    assert [e.barcode for e in adjustments] == ["222"]
    assert len(ledger_service.list_entries(limit=1)) == 1


def test_balance_matches_quantity(milk):
    catalog_service.receive("111", 10)
    catalog_service.update("111", {"quantity": 3})

    assert ledger_service.ledger_balance(milk.id) == 3
    assert catalog_service.get_by_barcode("111").quantity == 3


def test_unknown_transaction_type_rejected(milk):
    with pytest.raises(ValueError):
        ledger_service.append_stock_entry(
            product=milk,
            transaction_type="THEFT",
            quantity_change=-1,
            quantity_after=4,
        )


def test_find_inconsistencies_reports_drift(milk, bread):
    # out-of-band edit that bypasses the catalog service
    db.session.execute(
        text("UPDATE products SET quantity = 9 WHERE barcode = '111'")
    )
    db.session.commit()

    assert ledger_service.find_inconsistencies() == [
        {"product_id": milk.id, "barcode": "111", "quantity": 9, "ledger_balance": 5},
    ]
