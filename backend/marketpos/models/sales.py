from __future__ import annotations

from ..extensions import db
from ..money import from_cents, rate_from_units
from ..time_utils import to_utc_z


class Sale(db.Model):
    """
    Completed sale (bill).

    id is the customer-facing bill number. It is allocated from
    BillSequence inside the sale transaction, never by the database's
    autoincrement, so an aborted checkout does not burn a number.

    Rows are written once by the checkout transaction and never updated.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_sale_date", "sale_date"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)

    # All amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)
    payment_amount_cents = db.Column(db.Integer, nullable=False)
    change_amount_cents = db.Column(db.Integer, nullable=False)

    # Rate in effect for this bill, ten-thousandths of a percent (71250 = 7.125%)
    tax_rate_units = db.Column(db.Integer, nullable=False)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False)

    lines = db.relationship(
        "SaleLine",
        backref=db.backref("sale", lazy=True),
        order_by="SaleLine.position",
        lazy=True,
    )

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "sale_id": self.id,
            "subtotal": from_cents(self.subtotal_cents),
            "tax": from_cents(self.tax_cents),
            "total": from_cents(self.total_cents),
            "payment_amount": from_cents(self.payment_amount_cents),
            "change_amount": from_cents(self.change_amount_cents),
            "tax_percent": rate_from_units(self.tax_rate_units),
            "sale_date": to_utc_z(self.sale_date),
        }
        if include_lines:
            data["items"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """
    Line item snapshot on a sale.

    unit_price and unit_cost are copied from the cart, not re-read from the
    product, so later price edits never change historical revenue or profit.
    """
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # Cart order (1-based)
    position = db.Column(db.Integer, nullable=False)

    barcode = db.Column(db.String(64), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "barcode": self.barcode,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": from_cents(self.unit_price_cents),
            "line_total": from_cents(self.line_total_cents),
            "unit_cost": from_cents(self.unit_cost_cents),
        }


class BillSequence(db.Model):
    """
    Gapless bill numbers.

    The row is incremented inside the checkout transaction; a rollback
    restores it together with everything else.
    """
    __tablename__ = "bill_sequences"

    name = db.Column(db.String(32), primary_key=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
