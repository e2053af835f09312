# backend/cashdesk/routes/system.py
"""
System health endpoint.

Checks database connectivity and that the register state row is readable.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..models import Product, RegisterState
from cashdesk.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        product_count = db.session.query(Product).count()
        register_initialized = db.session.query(RegisterState).count() > 0

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy" if register_initialized else "degraded",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "products": product_count,
                "register_initialized": register_initialized,
            }
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy, or degraded (register not initialized yet; first use creates it)
    - 503: database unreachable
    """
    database_health = check_database_health()
    http_status = 503 if database_health["status"] == "unhealthy" else 200

    return {
        "status": database_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {
            "database": database_health,
        }
    }, http_status
