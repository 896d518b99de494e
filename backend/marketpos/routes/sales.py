# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/marketpos/routes/sales.py
"""Checkout and sale lookup routes"""

from flask import Blueprint, current_app, jsonify, request

from ..errors import (
    EmptyCartError,
    InsufficientPaymentError,
    NotFoundError,
    SaleFailedError,
    StockExceededError,
)
from ..services import reporting_service, sale_service
from ..validation import ValidationError, check_declared_totals, parse_sale_payload


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
def complete_sale_route():
    """
    Complete a sale for the posted cart.

    Body: items[], payment_amount, tax_percent (optional), and the totals the
    till displayed (subtotal, tax, total, change_amount).

    The whole sale is one transaction; on any error nothing is written and
    the till keeps its cart.
    """
    try:
        sale_request = parse_sale_payload(
            request.get_json(silent=True) or {},
            default_tax_percent=current_app.config["DEFAULT_TAX_PERCENT"],
        )
        if not sale_request.lines:
            raise EmptyCartError()
        check_declared_totals(sale_request)

        sale = sale_service.complete_sale(
            sale_request.lines,
            sale_request.payment_amount,
            tax_percent=sale_request.tax_percent,
        )

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except (EmptyCartError, InsufficientPaymentError) as e:
        return jsonify({"error": e.message, "details": e.details}), 400
    except StockExceededError as e:
        return jsonify({"error": e.message, "details": e.details}), 409
    except NotFoundError as e:
        return jsonify({"error": e.message, "details": e.details}), 404
    except SaleFailedError as e:
        current_app.logger.exception("Sale transaction failed")
        return jsonify({"error": e.message}), 500
    except Exception:
        current_app.logger.exception("Failed to process sale")
        return jsonify({"error": "Failed to process sale"}), 500

    current_app.logger.info("Sale #%s completed, total %s", sale.id, sale.to_dict()["total"])
    return jsonify({
        "success": True,
        "sale_id": sale.id,
        "message": "Sale completed successfully",
    }), 201


@sales_bp.get("")
def list_sales_route():
    """
    List sales, newest first.

    Query params: from_date, to_date (YYYY-MM-DD, inclusive)
    """
    try:
        start, end = reporting_service.parse_range(
            request.args.get("from_date"),
            request.args.get("to_date"),
        )
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400

    sales = sale_service.list_sales(start, end)
    return jsonify([s.to_dict() for s in sales]), 200


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = sale_service.get_sale(sale_id)
    except NotFoundError as e:
        return jsonify({"error": e.message}), 404
    return jsonify(sale.to_dict(include_lines=True)), 200


@sales_bp.get("/<int:sale_id>/items")
def get_sale_items_route(sale_id: int):
    try:
        sale_service.get_sale(sale_id)
    except NotFoundError as e:
        return jsonify({"error": e.message}), 404
    lines = sale_service.get_sale_lines(sale_id)
    return jsonify([line.to_dict() for line in lines]), 200
