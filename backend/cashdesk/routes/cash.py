# Overview: Flask API routes for manual cash movements (inflows, outflows, purchases).

# backend/cashdesk/routes/cash.py
from flask import Blueprint, request, jsonify, current_app

from ..errors import PosError
from ..services import register_service
from ..services.ledger_service import current_drawer_totals
from ..time_utils import parse_iso_datetime
from ..validation import ValidationError, money_to_cents
from ..decorators import require_auth

cash_bp = Blueprint("cash", __name__, url_prefix="/api/cash-movements")


@cash_bp.get("")
@require_auth
def list_movements_route():
    """
    Query params:
    - from: ISO datetime (optional, inclusive)
    - to: ISO datetime (optional, exclusive)
    """
    try:
        start = parse_iso_datetime(request.args.get("from"))
        end = parse_iso_datetime(request.args.get("to"))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    movements = register_service.list_cash_movements(start, end)
    return jsonify({"movements": [m.to_dict() for m in movements]}), 200


@cash_bp.post("")
@require_auth
def record_movement_route():
    """
    Record a manual cash movement.

    Request body:
    {
        "kind": "inflow" | "outflow" | "purchase",
        "concept": "Change fund",
        "amount_cents": 50000      // or "amount": "500.00"
    }

    Returns the movement and the drawer position after it.
    """
    data = request.get_json(silent=True) or {}
    try:
        if "amount_cents" in data:
            amount_cents = data.get("amount_cents")
        else:
            amount_cents = money_to_cents(data.get("amount"), "amount")
        movement = register_service.record_cash_movement(
            data.get("kind"),
            data.get("concept"),
            amount_cents,
        )
        return jsonify({
            "movement": movement.to_dict(),
            "drawer": current_drawer_totals().to_dict(),
        }), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to record cash movement")
        return jsonify({"error": "Internal server error"}), 500
