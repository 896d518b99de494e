# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/marketpos/routes/products.py
"""
Product catalog routes.

Products are addressed by barcode. Quantity-changing writes (create,
update, receive, delete) each record a stock-history entry in the same
transaction; see services/catalog_service.py.
"""
from flask import Blueprint, current_app, jsonify, request

from ..errors import DuplicateBarcodeError, NotFoundError
from ..services import catalog_service, ledger_service
from ..validation import ValidationError

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """List active products ordered by name."""
    products = catalog_service.get_all()
    return jsonify([p.to_dict() for p in products]), 200


@products_bp.get("/barcode/<barcode>")
def get_product_by_barcode(barcode: str):
    try:
        product = catalog_service.get_by_barcode(barcode)
    except NotFoundError as e:
        return jsonify({"error": e.message}), 404
    return jsonify(product.to_dict()), 200


@products_bp.post("")
def create_product_route():
    """
    Create a new product (initial receive).

    Body: barcode, name, category, quantity, cost_price, selling_price, expiry_date
    """
    payload = request.get_json(silent=True) or {}

    try:
        product = catalog_service.create(payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DuplicateBarcodeError as e:
        return jsonify({"error": e.message}), 400
    except Exception:
        current_app.logger.exception("Failed to add product")
        return jsonify({"error": "Failed to add product"}), 500

    current_app.logger.info("Product %s created with quantity %s", product.barcode, product.quantity)
    return jsonify({
        "success": True,
        "id": product.id,
        "message": "Product added successfully",
        "product": product.to_dict(),
    }), 201


@products_bp.put("/<barcode>")
def update_product_route(barcode: str):
    payload = request.get_json(silent=True) or {}

    try:
        product = catalog_service.update(barcode, payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": e.message}), 404
    except Exception:
        current_app.logger.exception("Failed to update product %s", barcode)
        return jsonify({"error": "Failed to update product"}), 500

    return jsonify({
        "success": True,
        "message": "Product updated successfully",
        "product": product.to_dict(),
    }), 200


@products_bp.post("/<barcode>/receive")
def receive_stock_route(barcode: str):
    """
    Receive more units of an existing product.

    Body: quantity (required), cost_price, selling_price, notes
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        product = catalog_service.receive(
            barcode,
            payload.get("quantity"),
            cost_price=payload.get("cost_price"),
            selling_price=payload.get("selling_price"),
            notes=payload.get("notes"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": e.message}), 404
    except Exception:
        current_app.logger.exception("Failed to receive stock for %s", barcode)
        return jsonify({"error": "Failed to receive stock"}), 500

    return jsonify({
        "success": True,
        "message": "Stock received successfully",
        "product": product.to_dict(),
    }), 200


@products_bp.delete("/<barcode>")
def delete_product_route(barcode: str):
    try:
        catalog_service.delete(barcode)
    except NotFoundError as e:
        return jsonify({"error": e.message}), 404
    except Exception:
        current_app.logger.exception("Failed to delete product %s", barcode)
        return jsonify({"error": "Failed to delete product"}), 500

    return jsonify({"success": True, "message": "Product deleted successfully"}), 200


@products_bp.get("/<barcode>/history")
def product_history_route(barcode: str):
    """
    Stock movements for a product, newest first.

    Query params:
    - type: RECEIVE | ADJUSTMENT | SALE (optional)
    - limit: int (default 100, max 500)
    """
    try:
        product = catalog_service.get_by_barcode(barcode)
    except NotFoundError as e:
        return jsonify({"error": e.message}), 404

    limit = request.args.get("limit", default=100, type=int)
    limit = max(1, min(limit, 500))

    entries = ledger_service.list_entries(
        product_id=product.id,
        transaction_type=request.args.get("type"),
        limit=limit,
    )
    return jsonify({
        "product": product.to_dict(),
        "items": [e.to_dict() for e in entries],
        "limit": limit,
    }), 200
