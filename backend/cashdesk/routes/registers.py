# Overview: Flask API routes for the drawer position, day close and month consolidation.

# backend/cashdesk/routes/registers.py
"""
Register API routes

Features:
- Current drawer position (cash ledger)
- Day close report and day close (destructive, needs explicit confirm)
- Month summary and month consolidation (export, then purge)

SECURITY: All routes require authentication; everything but the drawer
position requires admin.
"""

import csv
import io

from flask import Blueprint, request, jsonify, current_app

from ..errors import PosError
from ..services import ledger_service, period_service
from ..time_utils import parse_month
from ..decorators import require_auth, require_admin


registers_bp = Blueprint("registers", __name__, url_prefix="/api/register")


def _rows_to_csv(rows: list[list[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL)
    writer.writerows(rows)
    return buffer.getvalue()


@registers_bp.get("/drawer")
@require_auth
def drawer_route():
    """Drawer position since the last day close."""
    try:
        totals = ledger_service.current_drawer_totals()
        return jsonify({"drawer": totals.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to compute drawer totals")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.get("/day-report")
@require_auth
@require_admin
def day_report_route():
    """
    Preview of the day close: drawer totals and per-product summary.

    Query params:
    - format: json | csv (default json)
    """
    report = period_service.day_close_report()
    if request.args.get("format") == "csv":
        return current_app.response_class(
            "\ufeff" + _rows_to_csv(report.to_rows()),
            mimetype="text/csv",
            headers={"Content-Disposition": "attachment; filename=day_close.csv"},
        )
    return jsonify({"report": report.to_dict()}), 200


@registers_bp.post("/close-day")
@require_auth
@require_admin
def close_day_route():
    """
    Close the day: carry the drawer balance forward and purge the day's
    sales and cash movements.

    Request body:
    {
        "confirm": true     // required; the purge cannot be undone
    }
    """
    data = request.get_json(silent=True) or {}
    if data.get("confirm") is not True:
        return jsonify({"error": "confirm must be true to close the day"}), 400
    try:
        report = period_service.day_close_report()
        state = period_service.close_day(report.closed_at)
        return jsonify({"register": state.to_dict(), "report": report.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to close day")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.get("/month-summary")
@require_auth
@require_admin
def month_summary_route():
    """
    Query params:
    - month: YYYY-MM (required)
    """
    try:
        month_start = parse_month(request.args.get("month", ""))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    summary = period_service.month_summary(month_start)
    return jsonify({"summary": summary.to_dict()}), 200


@registers_bp.post("/consolidate-month")
@require_auth
@require_admin
def consolidate_month_route():
    """
    Export the month summary as CSV, then purge the month.

    Request body:
    {
        "month": "2026-09",
        "confirm": true
    }

    The CSV is rendered before anything is deleted and returned in the
    response body.
    """
    data = request.get_json(silent=True) or {}
    if data.get("confirm") is not True:
        return jsonify({"error": "confirm must be true to consolidate a month"}), 400
    try:
        month_start = parse_month(data.get("month") or "")
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    exported: dict[str, str] = {}

    def _export(summary):
        exported["csv"] = "\ufeff" + _rows_to_csv(summary.to_rows())

    try:
        result = period_service.consolidate_month(month_start, _export)
        return jsonify({
            "summary": result.summary.to_dict(),
            "sales_purged": result.sales_purged,
            "movements_purged": result.movements_purged,
            "csv": exported["csv"],
        }), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to consolidate month")
        return jsonify({"error": "Internal server error"}), 500
