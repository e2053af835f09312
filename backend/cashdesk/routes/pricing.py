# Overview: Flask API routes for the membership/service price table.

# backend/cashdesk/routes/pricing.py
"""
Membership price routes.

The table feeds the service-sale screen: the client looks up a tier price
and sends it as the line's unit price. Changing a price never touches sales
already recorded.
"""
from flask import Blueprint, request, jsonify, current_app, g

from ..services import pricing_service
from ..validation import ValidationError
from ..decorators import require_auth, require_admin

pricing_bp = Blueprint("pricing", __name__, url_prefix="/api/membership-prices")


@pricing_bp.get("")
@require_auth
def price_table_route():
    return jsonify({"prices": pricing_service.get_price_table()}), 200


@pricing_bp.put("/<category>/<tier>")
@require_auth
@require_admin
def set_price_route(category: str, tier: str):
    """
    Request body:
    {
        "price_cents": 45000
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        row = pricing_service.set_price(
            category,
            tier,
            data.get("price_cents"),
            updated_by=g.current_role,
        )
        return jsonify({"price": row.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to set membership price")
        return jsonify({"error": "Internal server error"}), 500
