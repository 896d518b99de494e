# backend/marketpos/services/catalog_service.py
"""
Product catalog service.

Every operation that changes a product's quantity appends exactly one
stock-ledger entry and commits both together; a catalog write and its
ledger entry are never visible independently.

- create appends RECEIVE ("Initial stock")
- update appends ADJUSTMENT when quantity changes ("Stock adjusted")
- receive appends RECEIVE for a top-up
- delete is a soft delete; remaining stock is zeroed with an ADJUSTMENT
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import DuplicateBarcodeError, NotFoundError
from ..extensions import db
from ..models import Product, STOCK_ADJUSTMENT, STOCK_RECEIVE
from ..money import to_cents
from ..validation import (
    PRODUCT_POLICY,
    PRODUCT_UPDATE_POLICY,
    ValidationError,
    validate_payload,
    validate_receive,
)
from .concurrency import begin_write, lock_for_update
from .ledger_service import append_stock_entry


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k in ("cost_price", "selling_price"):
            setattr(p, f"{k}_cents", to_cents(v))
        elif k in PRODUCT_POLICY.fields:
            setattr(p, k, v)


def _locked_active_product(barcode: str) -> Product:
    product = lock_for_update(
        db.session.query(Product).filter(
            Product.barcode == barcode,
            Product.is_active.is_(True),
        )
    ).first()
    if product is None:
        raise NotFoundError()
    return product


def get_all(include_inactive: bool = False) -> list[Product]:
    """Catalog ordered by product name."""
    q = db.session.query(Product)
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def get_by_barcode(barcode: str) -> Product:
    product = (
        db.session.query(Product)
        .filter(Product.barcode == barcode, Product.is_active.is_(True))
        .first()
    )
    if product is None:
        raise NotFoundError()
    return product


def create(fields: dict) -> Product:
    """
    Create a product and record its initial stock.

    Raises:
        ValidationError: malformed fields
        DuplicateBarcodeError: an active product already has this barcode
    """
    patch = validate_payload(payload=fields, policy=PRODUCT_POLICY, partial=False)
    barcode = patch["barcode"]
    quantity = patch.get("quantity", 0)

    try:
        begin_write()
        product = lock_for_update(
            db.session.query(Product).filter(Product.barcode == barcode)
        ).first()

        if product is not None and product.is_active:
            raise DuplicateBarcodeError()

        if product is None:
            product = Product(barcode=barcode, quantity=0)
            db.session.add(product)

        # A soft-deleted barcode is reused; its old stock was zeroed on delete.
        previous_quantity = product.quantity or 0
        product.is_active = True
        apply_product_patch(product, {
            "name": patch["name"],
            "category": patch.get("category"),
            "quantity": quantity,
            "cost_price": patch.get("cost_price", 0),
            "selling_price": patch.get("selling_price", 0),
            "expiry_date": patch.get("expiry_date"),
        })
        db.session.flush()  # ensure product.id exists before ledger append

        append_stock_entry(
            product=product,
            transaction_type=STOCK_RECEIVE,
            quantity_change=quantity - previous_quantity,
            quantity_after=quantity,
            notes="Initial stock",
        )

        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent create of the same barcode.
        db.session.rollback()
        raise DuplicateBarcodeError()
    except Exception:
        db.session.rollback()
        raise

    return product


def update(barcode: str, fields: dict) -> Product:
    """
    Edit product fields; a quantity change is recorded as an ADJUSTMENT.

    Raises:
        ValidationError: malformed fields or an attempt to change the barcode
        NotFoundError: no active product with this barcode
    """
    fields = dict(fields or {})
    if "barcode" in fields:
        if fields.pop("barcode") != barcode:
            raise ValidationError("barcode cannot be changed")

    patch = validate_payload(payload=fields, policy=PRODUCT_UPDATE_POLICY, partial=True)

    try:
        begin_write()
        product = _locked_active_product(barcode)
        previous_quantity = product.quantity

        apply_product_patch(product, patch)
        db.session.flush()

        new_quantity = product.quantity
        if new_quantity != previous_quantity:
            append_stock_entry(
                product=product,
                transaction_type=STOCK_ADJUSTMENT,
                quantity_change=new_quantity - previous_quantity,
                quantity_after=new_quantity,
                notes="Stock adjusted",
            )

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return product


def receive(
    barcode: str,
    quantity: int,
    *,
    cost_price=None,
    selling_price=None,
    notes: str | None = None,
) -> Product:
    """
    Receive additional stock for an existing product.

    Optionally refreshes cost/selling price from the delivery.
    """
    payload = {"quantity": quantity}
    if cost_price is not None:
        payload["cost_price"] = cost_price
    if selling_price is not None:
        payload["selling_price"] = selling_price
    if notes is not None:
        payload["notes"] = notes
    data = validate_receive(payload)

    try:
        begin_write()
        product = _locked_active_product(barcode)

        product.quantity = product.quantity + data["quantity"]
        apply_product_patch(product, {
            k: data[k] for k in ("cost_price", "selling_price") if k in data
        })
        db.session.flush()

        append_stock_entry(
            product=product,
            transaction_type=STOCK_RECEIVE,
            quantity_change=data["quantity"],
            quantity_after=product.quantity,
            notes=data.get("notes") or "Stock received",
        )

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return product


def delete(barcode: str) -> None:
    """
    Soft-delete a product.

    Preserves the row so sale lines and stock history keep their product
    reference. Remaining stock is written off so the ledger still balances.
    """
    try:
        begin_write()
        product = _locked_active_product(barcode)

        if product.quantity:
            removed = product.quantity
            product.quantity = 0
            db.session.flush()
            append_stock_entry(
                product=product,
                transaction_type=STOCK_ADJUSTMENT,
                quantity_change=-removed,
                quantity_after=0,
                notes="Product removed",
            )

        product.is_active = False
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
