# Overview: Locking primitives shared by catalog writes and checkout.

from __future__ import annotations

from sqlalchemy import select, text, update

from ..extensions import db
from ..models import Product


def begin_write() -> None:
    """
    Start the current transaction as a writer.

    SQLite ignores SELECT ... FOR UPDATE, so take the database write lock up
    front with BEGIN IMMEDIATE; competing writers wait (up to the driver's
    busy timeout) instead of interleaving read-modify-write cycles. Other
    databases rely on row locks taken by lock_for_update / UPDATE.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    populate_existing() makes the locked read overwrite any stale copy
    already held in the session's identity map.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update().populate_existing()


def decrement_if_available(product_id: int, quantity: int) -> int | None:
    """
    Atomically take `quantity` units from an active product.

    Single conditional UPDATE: it only matches when enough stock remains,
    so concurrent callers can never drive quantity below zero.
    Returns the on-hand quantity after the decrement, or None when the
    product is missing, inactive, or short of stock.
    """
    result = db.session.execute(
        update(Product)
        .where(
            Product.id == product_id,
            Product.is_active.is_(True),
            Product.quantity >= quantity,
        )
        .values(
            quantity=Product.quantity - quantity,
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return None

    return db.session.execute(
        select(Product.quantity).where(Product.id == product_id)
    ).scalar_one()
