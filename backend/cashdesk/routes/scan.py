# Overview: Flask API route that resolves a decoded QR payload to a live product.

from flask import Blueprint, request, jsonify

from ..errors import PosError
from ..services.qr_service import decode_scan
from ..decorators import require_auth

scan_bp = Blueprint("scan", __name__, url_prefix="/api/scan")


@scan_bp.post("/decode")
@require_auth
def decode_scan_route():
    """
    Resolve the text a camera decoded from a product QR label.

    Request body:
    {
        "payload": "{\"v\":1,\"id\":7}"
    }

    Returns the live product (current name, price and stock) or 404.
    """
    data = request.get_json(silent=True) or {}
    try:
        product = decode_scan(data.get("payload"))
        return jsonify({"product": product.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
