# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

# backend/cashdesk/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations (list, QR payload) are open to staff and admin
- Write operations (create, price, replenish, delete) require admin
"""
from flask import Blueprint, request, jsonify, current_app

from ..errors import PosError
from ..services import inventory_service
from ..services.qr_service import encode_product_ref
from ..validation import ValidationError, parse_cents
from ..decorators import require_auth, require_admin

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products_route():
    """
    List the catalog ordered by name.

    Query params:
    - search: str (optional) - case-insensitive name filter
    """
    products = inventory_service.list_products(request.args.get("search"))
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    """
    Create a product.

    Request body:
    {
        "name": "Water 600 ml",
        "price_cents": 1200,
        "stock": 30          (optional, default 0)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        price_cents = parse_cents(data.get("price_cents"), "price_cents")
        product = inventory_service.create_product(
            name=data.get("name"),
            price_cents=price_cents,
            stock=data.get("stock", 0),
        )
        return jsonify({"product": product.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/<int:product_id>/price")
@require_auth
@require_admin
def update_price_route(product_id: int):
    """Change a product's list price. Past sales are unaffected."""
    data = request.get_json(silent=True) or {}
    try:
        price_cents = parse_cents(data.get("price_cents"), "price_cents")
        product = inventory_service.update_price(product_id, price_cents)
        return jsonify({"product": product.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update price")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/replenish")
@require_auth
@require_admin
def replenish_route(product_id: int):
    """
    Add stock.

    Request body:
    {
        "quantity": 12,
        "cost_cents": 9000   (optional; > 0 records a drawer purchase)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        cost_cents = parse_cents(data.get("cost_cents", 0), "cost_cents")
        product = inventory_service.replenish(product_id, data.get("quantity"), cost_cents)
        return jsonify({"product": product.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to replenish product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    """Delete a product. Historical sale lines keep their copied name and price."""
    try:
        inventory_service.delete_product(product_id)
        return jsonify({"deleted": True}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>/qr")
@require_auth
def product_qr_route(product_id: int):
    """Text to render into the product's QR label (rendering is client-side)."""
    try:
        product = inventory_service.get_product(product_id)
        return jsonify({"product_id": product.id, "payload": encode_product_ref(product)}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
