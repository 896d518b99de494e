"""
Sale Service - atomic checkout

complete_sale() is the one operation in the system that must never
partially succeed. Within a single write transaction it:

1. allocates the next bill number and inserts the Sale
2. for each cart line, in cart order: inserts the SaleLine snapshot,
   conditionally decrements product stock and appends a SALE ledger entry
3. commits

Any failure rolls back all of it. Preconditions (non-empty cart, sane line
quantities, sufficient payment) are checked before the transaction opens.
Nothing is retried here; the caller keeps the cart and decides.
"""
from __future__ import annotations

from datetime import date
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from ..cart import CartLine, compute_summary
from ..errors import (
    EmptyCartError,
    InsufficientPaymentError,
    NotFoundError,
    PosError,
    SaleFailedError,
    StockExceededError,
)
from ..extensions import db
from ..models import BillSequence, Product, Sale, SaleLine, STOCK_SALE
from ..money import rate_to_units, round_currency, to_cents, to_decimal
from ..time_utils import day_bounds, utcnow
from ..validation import MAX_PRICE, MAX_QUANTITY, ValidationError
from .concurrency import begin_write, decrement_if_available
from .ledger_service import append_stock_entry

BILL_SEQUENCE = "SALE"


def next_bill_number() -> int:
    """
    Allocate the next bill number inside the current transaction.

    The sequence row is updated, not read-then-written, so concurrent
    checkouts serialize on it; a rollback returns the number.
    """
    result = db.session.execute(
        update(BillSequence)
        .where(BillSequence.name == BILL_SEQUENCE)
        .values(next_number=BillSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        current = db.session.execute(
            select(BillSequence.next_number).where(BillSequence.name == BILL_SEQUENCE)
        ).scalar_one()
        return current - 1

    # First sale ever: continue after any existing bills (e.g. imported data).
    last_id = db.session.execute(select(db.func.max(Sale.id))).scalar() or 0
    db.session.add(BillSequence(name=BILL_SEQUENCE, next_number=last_id + 2))
    db.session.flush()
    return last_id + 1


def _check_lines(lines: list[CartLine]) -> None:
    for line in lines:
        quantity = line.quantity
        if not isinstance(quantity, int) or isinstance(quantity, bool) or not 1 <= quantity <= MAX_QUANTITY:
            raise ValidationError(f"Invalid quantity for {line.barcode}")
        try:
            prices = (round_currency(line.unit_price), round_currency(line.unit_cost))
        except ValueError:
            raise ValidationError(f"Invalid price for {line.barcode}")
        if any(p < 0 or p > MAX_PRICE for p in prices):
            raise ValidationError(f"Invalid price for {line.barcode}")


def _sell_line(sale: Sale, position: int, line: CartLine) -> None:
    db.session.add(SaleLine(
        sale_id=sale.id,
        product_id=line.product_id,
        position=position,
        barcode=line.barcode,
        product_name=line.product_name,
        quantity=line.quantity,
        unit_price_cents=to_cents(line.unit_price),
        line_total_cents=to_cents(line.line_total),
        unit_cost_cents=to_cents(line.unit_cost),
    ))

    quantity_after = decrement_if_available(line.product_id, line.quantity)
    if quantity_after is None:
        product = db.session.get(Product, line.product_id, populate_existing=True)
        if product is None or not product.is_active:
            raise NotFoundError(details={"barcode": line.barcode})
        raise StockExceededError(
            f"Not enough stock for {line.product_name}",
            details={
                "barcode": line.barcode,
                "requested_quantity": line.quantity,
                "on_hand": product.quantity,
            },
        )

    append_stock_entry(
        product_id=line.product_id,
        barcode=line.barcode,
        product_name=line.product_name,
        transaction_type=STOCK_SALE,
        quantity_change=-line.quantity,
        quantity_after=quantity_after,
        notes=f"Sale #{sale.id}",
    )


def complete_sale(cart_lines: Iterable[CartLine], payment_amount, *, tax_percent) -> Sale:
    """
    Persist a sale for the given cart lines, all-or-nothing.

    Raises:
        EmptyCartError, ValidationError, InsufficientPaymentError: before any write
        StockExceededError: a line wants more than is on hand at commit time
        NotFoundError: a line references a missing or removed product
        SaleFailedError: storage fault (including lock timeouts); cause is chained
    """
    lines = list(cart_lines)
    if not lines:
        raise EmptyCartError()
    _check_lines(lines)

    try:
        payment = round_currency(payment_amount)
        tax_rate = to_decimal(tax_percent)
        tax_rate_units = rate_to_units(tax_rate)
    except ValueError as exc:
        raise ValidationError(str(exc))
    if payment < 0 or payment > MAX_PRICE:
        raise ValidationError(f"payment_amount must be between 0 and {MAX_PRICE}")
    if not 0 <= tax_rate <= 100:
        raise ValidationError("tax_percent must be between 0 and 100")

    summary = compute_summary(lines, tax_rate)
    if payment < summary.total:
        raise InsufficientPaymentError(details={"total": summary.total, "payment_amount": payment})
    change = summary.change_for(payment)

    try:
        begin_write()

        sale = Sale(
            id=next_bill_number(),
            subtotal_cents=to_cents(summary.subtotal),
            tax_cents=to_cents(summary.tax),
            total_cents=to_cents(summary.total),
            payment_amount_cents=to_cents(payment),
            change_amount_cents=to_cents(change),
            tax_rate_units=tax_rate_units,
            sale_date=utcnow(),
        )
        db.session.add(sale)
        db.session.flush()

        for position, line in enumerate(lines, start=1):
            _sell_line(sale, position, line)

        db.session.commit()
    except PosError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise SaleFailedError(details={"cause": type(exc).__name__}) from exc
    except Exception:
        db.session.rollback()
        raise

    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


def get_sale_lines(sale_id: int) -> list[SaleLine]:
    return (
        db.session.query(SaleLine)
        .filter(SaleLine.sale_id == sale_id)
        .order_by(SaleLine.position.asc())
        .all()
    )


def list_sales(from_date: date | None = None, to_date: date | None = None) -> list[Sale]:
    start_dt, end_dt = day_bounds(from_date, to_date)
    q = db.session.query(Sale)
    if start_dt:
        q = q.filter(Sale.sale_date >= start_dt)
    if end_dt:
        q = q.filter(Sale.sale_date < end_dt)
    return q.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()
