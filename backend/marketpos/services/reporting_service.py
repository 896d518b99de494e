# Overview: Read-only report queries over sales, sale lines and products.

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..models import Product, Sale, SaleLine
from ..money import HUNDRED, from_cents, round_currency, to_decimal
from ..time_utils import day_bounds, parse_iso_date, to_utc_z

"""
Reporting semantics:
- Aggregation runs on integer cents; rounding happens only when a value is presented.
- Date ranges are inclusive calendar days: to_date covers its whole day.
- Either bound may be omitted.
"""

REPORT_KINDS = ("sales", "inventory", "low-stock", "profit")


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


def parse_range(from_date: str | None, to_date: str | None) -> tuple[date | None, date | None]:
    try:
        start = parse_iso_date(from_date)
        end = parse_iso_date(to_date)
    except ValueError:
        raise ReportError("from_date and to_date must be ISO-8601 dates (YYYY-MM-DD)")
    if start and end and start > end:
        raise ReportError("from_date must be on or before to_date")
    return start, end


def _money(cents) -> Decimal:
    """Present a raw cents aggregate (int or float) as rounded currency."""
    return round_currency(to_decimal(cents or 0) / HUNDRED)


def _filter_sale_date(query, from_date: date | None, to_date: date | None):
    start_dt, end_dt = day_bounds(from_date, to_date)
    if start_dt:
        query = query.filter(Sale.sale_date >= start_dt)
    if end_dt:
        query = query.filter(Sale.sale_date < end_dt)
    return query


def sales_report(*, from_date: date | None = None, to_date: date | None = None) -> dict:
    query = db.session.query(
        Sale.id,
        Sale.sale_date,
        Sale.subtotal_cents,
        Sale.tax_cents,
        Sale.total_cents,
        func.count(SaleLine.id).label("items_count"),
        func.coalesce(func.sum(SaleLine.quantity), 0).label("total_items"),
    ).outerjoin(SaleLine, SaleLine.sale_id == Sale.id)

    query = _filter_sale_date(query, from_date, to_date)
    rows = query.group_by(
        Sale.id, Sale.sale_date, Sale.subtotal_cents, Sale.tax_cents, Sale.total_cents,
    ).order_by(Sale.sale_date.desc(), Sale.id.desc()).all()

    total_sales_cents = sum(int(row.total_cents) for row in rows)
    total_transactions = len(rows)
    average_cents = (
        Decimal(total_sales_cents) / total_transactions if total_transactions else Decimal(0)
    )

    return {
        "summary": {
            "total_sales": _money(total_sales_cents),
            "total_transactions": total_transactions,
            "average_transaction": _money(average_cents),
        },
        "data": [
            {
                "id": row.id,
                "sale_date": to_utc_z(row.sale_date),
                "subtotal": from_cents(row.subtotal_cents),
                "tax": from_cents(row.tax_cents),
                "total": from_cents(row.total_cents),
                "items_count": int(row.items_count or 0),
                "total_items": int(row.total_items or 0),
            }
            for row in rows
        ],
    }


def inventory_report() -> dict:
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.category.asc(), Product.name.asc())
        .all()
    )

    rows = []
    total_cost_cents = 0
    total_value_cents = 0
    total_items = 0
    for p in products:
        cost_cents = p.quantity * p.cost_price_cents
        value_cents = p.quantity * p.selling_price_cents
        total_cost_cents += cost_cents
        total_value_cents += value_cents
        total_items += p.quantity
        rows.append(
            {
                "barcode": p.barcode,
                "name": p.name,
                "category": p.category,
                "quantity": p.quantity,
                "cost_price": p.cost_price,
                "selling_price": p.selling_price,
                "total_cost": from_cents(cost_cents),
                "total_value": from_cents(value_cents),
                "expiry_date": p.expiry_date.isoformat() if p.expiry_date else None,
            }
        )

    return {
        "summary": {
            "total_products": len(rows),
            "total_items": total_items,
            "total_cost": from_cents(total_cost_cents),
            "total_value": from_cents(total_value_cents),
            "potential_profit": from_cents(total_value_cents - total_cost_cents),
        },
        "data": rows,
    }


def low_stock_report(*, threshold: int = 10) -> dict:
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.quantity < threshold)
        .order_by(Product.quantity.asc(), Product.name.asc())
        .all()
    )

    return {
        "summary": {
            "low_stock_items": len(products),
            "out_of_stock": sum(1 for p in products if p.quantity == 0),
        },
        "data": [
            {
                "barcode": p.barcode,
                "name": p.name,
                "category": p.category,
                "quantity": p.quantity,
                "selling_price": p.selling_price,
            }
            for p in products
        ],
    }


def profit_report(*, from_date: date | None = None, to_date: date | None = None) -> dict:
    revenue = func.sum(SaleLine.line_total_cents)
    cost = func.sum(SaleLine.quantity * SaleLine.unit_cost_cents)
    profit = (revenue - cost).label("profit")

    query = db.session.query(
        SaleLine.product_name.label("product_name"),
        SaleLine.barcode.label("barcode"),
        func.sum(SaleLine.quantity).label("total_sold"),
        revenue.label("revenue"),
        cost.label("cost"),
        profit,
        func.avg(SaleLine.unit_price_cents).label("avg_selling_price"),
    ).join(Sale, SaleLine.sale_id == Sale.id)

    query = _filter_sale_date(query, from_date, to_date)
    rows = (
        query.group_by(SaleLine.product_name, SaleLine.barcode)
        .order_by(profit.desc(), SaleLine.product_name.asc())
        .all()
    )

    total_revenue_cents = sum(int(row.revenue or 0) for row in rows)
    total_cost_cents = sum(int(row.cost or 0) for row in rows)
    total_profit_cents = total_revenue_cents - total_cost_cents
    profit_margin = (
        round_currency(Decimal(total_profit_cents) * HUNDRED / Decimal(total_revenue_cents))
        if total_revenue_cents > 0
        else Decimal("0")
    )

    return {
        "summary": {
            "total_revenue": from_cents(total_revenue_cents),
            "total_cost": from_cents(total_cost_cents),
            "total_profit": from_cents(total_profit_cents),
            "profit_margin": profit_margin,
        },
        "data": [
            {
                "product_name": row.product_name,
                "barcode": row.barcode,
                "total_sold": int(row.total_sold or 0),
                "revenue": from_cents(row.revenue or 0),
                "cost": from_cents(row.cost or 0),
                "profit": from_cents(row.profit or 0),
                "avg_selling_price": _money(row.avg_selling_price),
            }
            for row in rows
        ],
    }


def build_report(kind: str, *, from_date: str | None = None, to_date: str | None = None,
                 low_stock_threshold: int = 10) -> dict:
    """Dispatch by report kind (as used in the URL)."""
    if kind not in REPORT_KINDS:
        raise ReportError(f"Unknown report type: {kind}")

    start, end = parse_range(from_date, to_date)
    if kind == "sales":
        return sales_report(from_date=start, to_date=end)
    if kind == "inventory":
        return inventory_report()
    if kind == "low-stock":
        return low_stock_report(threshold=low_stock_threshold)
    return profit_report(from_date=start, to_date=end)
