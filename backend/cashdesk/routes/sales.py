# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/cashdesk/routes/sales.py
"""Sales API routes: checkout, service sales, sales log and admin reversal"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import PosError
from ..services import sales_service, reversal_service, reporting_service
from ..services.cart_service import CartSession, ManualAdd, ScanEvent, build_cart
from ..services.inventory_service import get_product
from ..services.reporting_service import ReportError
from ..services.sales_service import ServiceItem
from ..validation import ValidationError, parse_cents
from ..decorators import require_auth, require_admin


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _cart_events(data: dict) -> list:
    events = []
    for raw in data.get("lines") or []:
        if not isinstance(raw, dict) or raw.get("product_id") is None:
            raise ValidationError("each line requires product_id")
        events.append(ManualAdd(product=get_product(raw["product_id"]), quantity=raw.get("quantity", 1)))
    for raw in data.get("scans") or []:
        if isinstance(raw, dict):
            events.append(ScanEvent(payload=raw.get("payload"), quantity=raw.get("quantity", 1)))
        else:
            events.append(ScanEvent(payload=raw))
    return events


@sales_bp.post("")
@require_auth
def finalize_sale_route():
    """
    Build a cart from selections/scans and finalize it.

    Request body:
    {
        "lines": [{"product_id": 3, "quantity": 2}],
        "scans": ["{\"v\":1,\"id\":5}"],          (optional, decoded QR texts)
        "payment_method": "drawer" | "transfer",
        "amount_tendered_cents": 5000,
        "note": ""                                 (optional)
    }

    Prices come from live inventory, never from the request. Identical scan
    payloads in one request count once (scanner debounce); send a quantity
    to sell several units.
    """
    data = request.get_json(silent=True) or {}
    try:
        tendered = parse_cents(data.get("amount_tendered_cents"), "amount_tendered_cents")
        session = CartSession(debounce_seconds=current_app.config["SCAN_DEBOUNCE_SECONDS"])
        cart = build_cart(_cart_events(data), session=session)
        sale = sales_service.finalize_sale(
            cart,
            data.get("payment_method", "drawer"),
            tendered,
            note=data.get("note"),
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to finalize sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/service")
@require_auth
def service_sale_route():
    """
    Record a service (non-inventory) sale.

    Request body:
    {
        "items": [{"name": "Playroom 1h", "unit_price_cents": 8000, "quantity": 1}],
        "discount_pct": 10,                 (optional)
        "discount_reason": "Siblings",      (optional)
        "payment_method": "drawer",
        "amount_tendered_cents": 10000
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        tendered = parse_cents(data.get("amount_tendered_cents"), "amount_tendered_cents")
        items = []
        for raw in data.get("items") or []:
            if not isinstance(raw, dict):
                raise ValidationError("each item must be an object")
            items.append(ServiceItem(
                name=raw.get("name") or "",
                unit_price_cents=parse_cents(raw.get("unit_price_cents"), "unit_price_cents"),
                quantity=raw.get("quantity", 1),
            ))
        sale = sales_service.register_service_sale(
            items,
            data.get("discount_pct", 0),
            data.get("payment_method", "drawer"),
            tendered,
            discount_reason=data.get("discount_reason") or "",
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to register service sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
def sales_log_route():
    """
    Sales log for the current day, week or month.

    Query params:
    - period: day | week | month (default day)
    """
    try:
        log = reporting_service.sales_log(request.args.get("period", "day"))
        return jsonify(log.to_dict()), 200
    except ReportError as e:
        return jsonify({"error": str(e)}), 400


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    """Get sale with lines."""
    try:
        sale = sales_service.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status


@sales_bp.patch("/<int:sale_id>/lines/<int:line_id>")
@require_auth
@require_admin
def adjust_line_route(sale_id: int, line_id: int):
    """
    Reduce a sale line; units return to stock.

    Request body:
    {
        "quantity": 1     // clamped to [0, original]; 0 removes the line
    }
    """
    data = request.get_json(silent=True) or {}
    if "quantity" not in data:
        return jsonify({"error": "quantity required"}), 400
    try:
        sale, restored = reversal_service.adjust_line_quantity(sale_id, line_id, data["quantity"])
        current_app.logger.info(
            "Sale %s line %s adjusted by %s, %s units restored",
            sale_id, line_id, g.current_role, restored,
        )
        return jsonify({"sale": sale.to_dict(), "restored_units": restored}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to adjust sale line")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_admin
def delete_sale_route(sale_id: int):
    """Delete a sale and return all its units to stock."""
    try:
        restored = reversal_service.delete_sale(sale_id)
        current_app.logger.info("Sale %s deleted, %s units restored", sale_id, restored)
        return jsonify({"deleted": True, "restored_units": restored}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500
