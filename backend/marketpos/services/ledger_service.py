# Overview: Service-layer operations for the stock ledger; append and read stock movements.

from __future__ import annotations

from typing import Optional

from sqlalchemy import func

from ..extensions import db
from ..models import Product, StockLedgerEntry, STOCK_TRANSACTION_TYPES
from ..time_utils import utcnow
"""
Stock Ledger Invariants (authoritative)

- Append-only journal of every quantity-affecting event (RECEIVE, ADJUSTMENT, SALE).
- No domain/business logic in the ledger itself.
- Entries are written inside the same DB transaction as the quantity change they record.
- For every product: products.quantity == SUM(stock_history.quantity_change).
"""


def append_stock_entry(
    *,
    product: Product | None = None,
    product_id: int | None = None,
    barcode: str | None = None,
    product_name: str | None = None,
    transaction_type: str,
    quantity_change: int,
    quantity_after: int,
    notes: Optional[str] = None,
) -> StockLedgerEntry:
    """
    Append-only stock ledger entry.

    - No deletes/updates of existing entries.
    - Never commits; the caller owns the transaction.
    - barcode/product_name default to the product's current values (snapshot).
    """
    if transaction_type not in STOCK_TRANSACTION_TYPES:
        raise ValueError(f"unknown stock transaction type: {transaction_type}")

    if product is not None:
        product_id = product.id
        barcode = barcode or product.barcode
        product_name = product_name or product.name

    if product_id is None:
        raise ValueError("product_id is required for a stock entry")

    entry = StockLedgerEntry(
        product_id=product_id,
        barcode=barcode,
        product_name=product_name,
        transaction_type=transaction_type,
        quantity_change=quantity_change,
        quantity_after=quantity_after,
        notes=notes,
        created_at=utcnow(),
    )
    db.session.add(entry)
    db.session.flush()  # ensures entry.id is assigned without committing
    return entry


def list_entries(
    *,
    product_id: int | None = None,
    transaction_type: str | None = None,
    limit: int = 100,
) -> list[StockLedgerEntry]:
    q = db.session.query(StockLedgerEntry)
    if product_id is not None:
        q = q.filter(StockLedgerEntry.product_id == product_id)
    if transaction_type:
        q = q.filter(StockLedgerEntry.transaction_type == transaction_type)
    return (
        q.order_by(StockLedgerEntry.created_at.desc(), StockLedgerEntry.id.desc())
        .limit(limit)
        .all()
    )


def ledger_balance(product_id: int) -> int:
    q = db.session.query(
        func.coalesce(func.sum(StockLedgerEntry.quantity_change), 0)
    ).filter(StockLedgerEntry.product_id == product_id)
    return int(q.scalar() or 0)


def find_inconsistencies() -> list[dict]:
    """
    Products whose on-hand quantity differs from their ledger balance.

    Includes inactive products; an empty list means the ledger and the
    catalog agree everywhere.
    """
    balances = (
        db.session.query(
            StockLedgerEntry.product_id.label("product_id"),
            func.sum(StockLedgerEntry.quantity_change).label("balance"),
        )
        .group_by(StockLedgerEntry.product_id)
        .subquery()
    )

    rows = (
        db.session.query(
            Product.id,
            Product.barcode,
            Product.quantity,
            func.coalesce(balances.c.balance, 0).label("balance"),
        )
        .outerjoin(balances, balances.c.product_id == Product.id)
        .filter(Product.quantity != func.coalesce(balances.c.balance, 0))
        .order_by(Product.id.asc())
        .all()
    )

    return [
        {
            "product_id": row.id,
            "barcode": row.barcode,
            "quantity": int(row.quantity),
            "ledger_balance": int(row.balance),
        }
        for row in rows
    ]
